"""
Command-line client for the career assistant.

Commands:
    analyze  - Submit a resume and job description, print the results
    key      - Manage the locally saved Gemini API key (set, show, clear, test)
    serve    - Run the API server
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from career_assistant import gemini
from career_assistant.config import get_settings
from career_assistant.credentials import (
    KeyStore,
    build_candidates,
    is_valid_key_format,
    resolve_credential,
)
from career_assistant.dispatcher import AnalyzeClient
from career_assistant.errors import (
    AnalyzeError,
    CredentialInvalid,
    CredentialMissing,
    QuotaExceeded,
    is_credential_error,
)
from career_assistant.schemas import GenerationResult
from career_assistant.submission import ResumeFile, SubmissionPayload, validate_submission

app = typer.Typer(
    add_completion=False,
    help="Generate a cover letter, learning roadmap and interview prep from a resume.",
    invoke_without_command=True,
)
key_app = typer.Typer(add_completion=False, help="Manage the saved Gemini API key")
app.add_typer(key_app, name="key")


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def _store() -> KeyStore:
    return KeyStore(get_settings().key_file)


def prompt_for_api_key(store: KeyStore, invalid: bool = False) -> Optional[str]:
    """
    Key-entry prompt: ask for a key, test it, and save it when it works.

    Returns the saved key, or None if the user gave up.
    """
    title = "Invalid API Key" if invalid else "API Key Required"
    typer.secho(f"\n{title}", fg=typer.colors.RED if invalid else typer.colors.YELLOW, bold=True)
    if invalid:
        typer.echo("The current API key is invalid or has been deleted. Please enter a valid Google AI Studio API key.")
    else:
        typer.echo("No usable API key was found. Please enter your own Google AI Studio API key to continue.")
    typer.echo("Get one at https://aistudio.google.com/apikey (stored locally, only sent to Google AI Studio).")

    while True:
        key = typer.prompt("Google AI Studio API Key (leave empty to cancel)", default="", hide_input=True, show_default=False)
        key = key.strip()
        if not key:
            return None
        if not is_valid_key_format(key):
            typer.secho("That does not look like a Google AI Studio key (AIza...).", fg=typer.colors.RED)
            continue

        success, message = asyncio.run(gemini.check_api_key(key))
        typer.secho(message, fg=typer.colors.GREEN if success else typer.colors.RED)
        if success:
            store.set(key)
            return key


def render_result(result: GenerationResult) -> None:
    typer.secho("\n# Cover Letter\n", fg=typer.colors.BLUE, bold=True)
    typer.echo(result.cover_letter)
    typer.secho("\n# Learning Roadmap\n", fg=typer.colors.BLUE, bold=True)
    typer.echo(result.learning_roadmap)
    typer.secho("\n# Study Notes\n", fg=typer.colors.BLUE, bold=True)
    typer.echo(result.study_notes)

    if result.youtube_links:
        typer.secho("\n# Video Resources\n", fg=typer.colors.BLUE, bold=True)
        for link in result.youtube_links:
            typer.echo(f"- {link.title}: {link.url}")

    analysis = result.resume_analysis
    if analysis:
        typer.secho(f"\n# Resume Analysis (score {analysis.score}/100)\n", fg=typer.colors.BLUE, bold=True)
        typer.echo(analysis.feedback)
        if analysis.missing_skills:
            typer.echo("\nMissing skills: " + ", ".join(analysis.missing_skills))
        for item in analysis.areas_for_improvement:
            typer.echo(f"- {item}")

    questions = result.interview_questions
    if questions:
        typer.secho("\n# Interview Questions", fg=typer.colors.BLUE, bold=True)
        for label, items in [
            ("Technical", questions.technical_questions),
            ("Behavioral", questions.behavioral_questions),
            ("System Design", questions.system_design_questions),
            ("Job Specific", questions.job_specific_questions),
        ]:
            if items:
                typer.secho(f"\n## {label}", bold=True)
                for i, q in enumerate(items, 1):
                    typer.echo(f"{i}. {q}")


async def _resolve_and_dispatch(
    client: AnalyzeClient, payload: SubmissionPayload, api_key: Optional[str], store: KeyStore
) -> GenerationResult:
    settings = get_settings()
    candidates = build_candidates(
        supplied=api_key,
        server_default=settings.gemini_api_key,
        persisted=store.get(),
        supplied_trusted=True,
    )
    credential = await resolve_credential(candidates, gemini.is_api_key_valid)
    if credential is None:
        raise CredentialMissing()
    return await client.dispatch(payload, credential)


@app.command("analyze")
def analyze_command(
    resume: Path = typer.Argument(..., exists=True, dir_okay=False, help="Resume PDF (max 5MB)"),
    job_title: str = typer.Option(..., "--job-title", "-t", help="Target job title"),
    job_description: Optional[str] = typer.Option(None, "--job-description", "-d", help="Job description text"),
    job_description_file: Optional[Path] = typer.Option(
        None, "--job-description-file", "-f", exists=True, dir_okay=False, help="Read the job description from a file"
    ),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Use this Gemini API key for this run"),
    server: Optional[str] = typer.Option(None, "--server", help="API server base URL"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the raw JSON result to this file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """
    Submit a resume and job description to the analyze endpoint.

    Examples:\n

        $ career-assistant analyze resume.pdf -t "Backend Engineer" -f jd.txt

        $ career-assistant analyze resume.pdf -t "Data Analyst" -d "..." -o result.json
    """
    _setup_logging(verbose)
    settings = get_settings()

    if job_description_file:
        job_description = job_description_file.read_text(encoding="utf-8")
    if not job_description:
        typer.secho("Provide --job-description or --job-description-file", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    payload = SubmissionPayload(
        resume=ResumeFile.from_path(resume),
        job_title=job_title,
        job_description=job_description,
    )
    store = _store()
    client = AnalyzeClient(server or settings.server_url, timeout=settings.request_timeout)

    try:
        validate_submission(payload)
    except AnalyzeError as e:
        typer.secho(f"Error: {e.message}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho("Processing... (this can take up to a minute)", fg=typer.colors.BLUE)
    resubmitted = False
    while True:
        try:
            result = asyncio.run(_resolve_and_dispatch(client, payload, api_key, store))
            break
        except AnalyzeError as e:
            typer.secho(f"Error: {e.message}", fg=typer.colors.RED, err=True)
            if isinstance(e, QuotaExceeded):
                typer.secho(f"{e.details} Retry after {e.retry_after // 3600} hours.", fg=typer.colors.YELLOW, err=True)
            if not is_credential_error(e) or resubmitted:
                raise typer.Exit(code=1)

            new_key = prompt_for_api_key(store, invalid=isinstance(e, CredentialInvalid))
            if not new_key or not typer.confirm("Resubmit now?", default=True):
                raise typer.Exit(code=1)
            # The newly saved key is picked up from the store on the next resolution.
            api_key = None
            resubmitted = True

    if output:
        output.write_text(json.dumps(result.model_dump(exclude_none=True), indent=2), encoding="utf-8")
        typer.secho(f"✓ Result written to {output}", fg=typer.colors.GREEN)
    else:
        render_result(result)


@key_app.command("set")
def key_set_command(
    key: str = typer.Argument(..., help="Google AI Studio API key"),
    test: bool = typer.Option(True, "--test/--no-test", help="Check the key against the Gemini API first"),
):
    """Save an API key locally."""
    key = key.strip()
    if not is_valid_key_format(key):
        typer.secho("API key must start with 'AIza' and be longer than 30 characters.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    if test:
        success, message = asyncio.run(gemini.check_api_key(key))
        if not success:
            typer.secho(message, fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
    _store().set(key)
    typer.secho("✓ API key saved", fg=typer.colors.GREEN)


@key_app.command("show")
def key_show_command():
    """Show the saved API key (masked)."""
    key = _store().get()
    if not key:
        typer.echo("No API key saved")
        raise typer.Exit(code=1)
    typer.echo(gemini.mask_key(key))


@key_app.command("clear")
def key_clear_command():
    """Remove the saved API key."""
    _store().clear()
    typer.secho("✓ Saved API key cleared", fg=typer.colors.GREEN)


@key_app.command("test")
def key_test_command(key: Optional[str] = typer.Argument(None, help="Key to test (defaults to the saved key)")):
    """Check whether a key works against the Gemini API."""
    key = key or _store().get()
    if not key:
        typer.secho("No API key given and none saved", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    success, message = asyncio.run(gemini.check_api_key(key))
    typer.secho(message, fg=typer.colors.GREEN if success else typer.colors.RED)
    if not success:
        raise typer.Exit(code=1)


@app.command("serve")
def serve_command(
    host: str = typer.Option("0.0.0.0", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Run the API server."""
    import main as server

    server.run(host=host, port=port)


if __name__ == "__main__":
    app()
