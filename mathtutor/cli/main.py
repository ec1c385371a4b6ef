"""MathTutor CLI.

Usage:
    mathtutor serve            Start the API server
    mathtutor init-db          Create database tables
    mathtutor ask "2+2?"       Run one tutor turn in-process
    mathtutor version          Show version info
"""

import asyncio

import typer
from rich.console import Console
from rich.markdown import Markdown

from mathtutor import __version__


app = typer.Typer(
    name="mathtutor",
    help="Streaming math tutor service",
    no_args_is_help=True,
)

console = Console()


@app.command()
def version():
    """Show MathTutor version and agent SDK info."""
    console.print(f"[bold]MathTutor[/bold] v{__version__}")
    from importlib.metadata import PackageNotFoundError, version as pkg_version

    try:
        console.print(f"  Agents SDK: {pkg_version('openai-agents')}")
    except PackageNotFoundError:
        console.print("  Agents SDK: [red]not installed[/red]")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Start the API server with uvicorn."""
    import uvicorn

    console.print(f"Starting MathTutor API on [bold]http://{host}:{port}[/bold]")
    uvicorn.run("mathtutor.api.main:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db_command():
    """Create all database tables (safe to run repeatedly)."""
    from mathtutor.db.connection import DATABASE_URL, init_db

    init_db()
    console.print(f"[green]Database ready[/green] at {DATABASE_URL}")


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question for the tutor"),
    file_id: list[str] = typer.Option(
        [], "--file-id", help="Uploaded file id to mount (repeatable)"
    ),
):
    """Run one tutor turn to completion and print the answer."""
    from mathtutor.errors import MathTutorError, format_error
    from mathtutor.orchestrator.agent.config import extract_tutor_message
    from mathtutor.orchestrator.workflow import WorkflowInput, run_workflow

    try:
        result = asyncio.run(
            run_workflow(WorkflowInput(input_as_text=question, file_ids=file_id))
        )
    except MathTutorError as e:
        console.print(f"[red]{format_error(e)}[/red]")
        raise typer.Exit(code=1)
    message = extract_tutor_message(result["output_parsed"]) or result["output_text"]
    console.print(Markdown(message))


if __name__ == "__main__":
    app()
