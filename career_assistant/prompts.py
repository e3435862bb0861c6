"""
Instruction template for the single analyze generation call.
"""

RESUME_TEXT_LIMIT = 8000
JOB_DESCRIPTION_LIMIT = 3000

ANALYZE_PROMPT_TEMPLATE = """You are an expert career counselor and AI assistant. Based on the provided resume and job description, generate a professional cover letter and a complete career preparation pack.

**IMPORTANT: You must respond with ONLY a valid JSON object in the exact format specified below. Do not include any other text, explanations, or markdown formatting.**

Resume Content:
[Insert Resume Text Here]

Job Title: [Insert Job Title Here]

Job Description:
[Insert Job Description Here]

Generate a JSON response with the following structure:
{
  "cover_letter": "A professional cover letter that focuses ONLY on skills and experiences that directly match the job requirements. Do not mention any skills that are not in the resume. Do not mention where the job was advertised. Do not include any placeholders or brackets. Format the closing with line breaks between each element.",
  "learning_roadmap": "A markdown learning roadmap (headings, bullet lists, tables allowed) organised by month and week, covering the skills the candidate needs for this role, with a capstone project and success metrics.",
  "study_notes": "Comprehensive study notes covering key technologies and skills from the job description.",
  "youtube_links": [
    {
      "title": "Topic name",
      "url": "https://www.youtube.com/results?search_query=Topic%20Tutorial"
    }
  ],
  "resume_analysis": {
    "missing_skills": ["Skills from the job description that are missing from the resume"],
    "areas_for_improvement": ["Specific areas where the resume could be improved"],
    "score": 75,
    "feedback": "Detailed feedback on how well the resume matches the job description and specific recommendations for improvement."
  },
  "interview_questions": {
    "technical_questions": ["..."],
    "behavioral_questions": ["..."],
    "system_design_questions": ["..."],
    "job_specific_questions": ["..."]
  }
}

Resume Analysis Requirements:
1. Analyze the resume against the job description and identify missing skills that are required for the position
2. Identify areas where the resume could be improved (e.g., formatting, missing information, weak action verbs)
3. Provide an integer score out of 100 based on how well the resume matches the job description
4. Give specific, actionable feedback for improvement

Cover Letter Requirements:
1. Do not mention where the job was advertised
2. Only include skills that are both in the resume and relevant to the job
3. If a required skill is missing from the resume, do not mention it at all
4. For projects, include the project URL in parentheses immediately after the project name, like this: "Project Name (https://project-url.com)"
5. Do not include project links at the end of the cover letter
6. Only include portfolio, GitHub, and LinkedIn in the contact information section
7. Close with "Thank you for your time and consideration." followed by "Sincerely," and the candidate's name and contact details taken from the resume

YouTube Links Requirements:
1. Provide 6 to 10 links, one per learning topic in the roadmap
2. Use YouTube search result URLs, never invented video ids
"""


def build_analysis_prompt(resume_text: str, job_title: str, job_description: str) -> str:
    """Fill the template. Résumé and job description are cut by character count."""
    return ANALYZE_PROMPT_TEMPLATE.replace(
        "[Insert Resume Text Here]", resume_text[:RESUME_TEXT_LIMIT]
    ).replace(
        "[Insert Job Title Here]", job_title
    ).replace(
        "[Insert Job Description Here]", job_description[:JOB_DESCRIPTION_LIMIT]
    )
