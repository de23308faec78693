"""
Command Line Interface for the bug workflow service.
"""

from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import get_settings
from ..db.base import get_session_local, init_database
from ..db.services import BugService, build_workflow_engine
from ..log import configure_logging
from ..workflow.enums import BugStatus, Role
from ..workflow.policy import allowed_targets

app = typer.Typer(help="Bug Workflow Service - role-gated bug status workflow")
console = Console()


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, help="Port to run the API server on"),
    host: Optional[str] = typer.Option(None, help="Host to bind the server to"),
    dev: bool = typer.Option(False, help="Run in development mode with reload"),
):
    """Start the REST API."""
    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    console.print(Panel.fit("Starting Bug Workflow Service", style="bold blue"))
    console.print(f"Listening on http://{host}:{port}")

    uvicorn.run(
        "bug_workflow.api:app",
        host=host,
        port=port,
        reload=dev,
        workers=1 if dev else settings.api_workers,
    )


@app.command("init-db")
def init_db():
    """Create the database tables."""
    configure_logging(get_settings())
    init_database()
    console.print("✅ Database initialized")


@app.command()
def policy(
    role: Optional[Role] = typer.Option(None, help="Only show this role"),
):
    """Show the status transition policy."""
    roles = [role] if role else list(Role)

    table = Table(title="Bug Status Transition Policy", show_header=True, header_style="bold magenta")
    table.add_column("Role", style="cyan")
    table.add_column("From", style="yellow")
    table.add_column("Allowed targets")

    for r in roles:
        for status in BugStatus:
            targets = allowed_targets(r, status)
            rendered = ", ".join(s.value for s in BugStatus if s in targets) or "-"
            table.add_row(r.value, status.value, rendered)

    console.print(table)


@app.command()
def history(bug_id: int = typer.Argument(..., help="Bug to show the audit trail for")):
    """Show a bug's audit trail, newest first."""
    configure_logging(get_settings())
    db = get_session_local()()
    try:
        if not BugService(db).get(bug_id):
            console.print(f"❌ Bug #{bug_id} not found")
            raise typer.Exit(code=1)

        entries = build_workflow_engine(db).get_history(bug_id)
    finally:
        db.close()

    table = Table(title=f"History for Bug #{bug_id}", show_header=True, header_style="bold magenta")
    table.add_column("When", style="cyan")
    table.add_column("User")
    table.add_column("Action", style="green")
    table.add_column("Change")
    table.add_column("Description")

    for entry in entries:
        table.add_row(
            entry.created_at.isoformat(),
            str(entry.user_id),
            entry.action.value,
            f"{entry.old_value or ''} → {entry.new_value or ''}",
            entry.description or entry.summary,
        )

    console.print(table)


def main():
    app()


if __name__ == "__main__":
    main()
