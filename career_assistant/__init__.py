"""
Career Assistant
Résumé + job description in, cover letter, roadmap, critique and interview prep out.
"""

__version__ = "0.1.0"
