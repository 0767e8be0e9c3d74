from __future__ import annotations

import typer

from ...services.elements import Elements
from ._context import echo_json, get_db_context

app = typer.Typer(name="tasks", help="Background task operations")


@app.command("list")
def list_tasks(
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    test_db: bool = typer.Option(False, "--test-db", help="Use test database context"),
):
    """List pending tasks."""
    with get_db_context(test_db) as db:
        pending = [
            {"id": task.id, "type": task.type, "description": task.description, "params": task.params}
            for task in Elements(db).tasks.get_pending()
        ]

    if json_output:
        echo_json({"status": "ok", "total": len(pending), "tasks": pending})
        return
    if not pending:
        typer.echo("No pending tasks")
        return
    for task in pending:
        typer.echo(f"  [{task['id']}] {task['type']}: {task['description']}")


@app.command("run")
def run_tasks(
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    test_db: bool = typer.Option(False, "--test-db", help="Use test database context"),
):
    """Run every pending task (e.g. reference rewrites queued by merges)."""
    with get_db_context(test_db) as db:
        completed = Elements(db).tasks.run_pending()

    if json_output:
        echo_json({"status": "ok", "completed": completed})
    else:
        typer.echo(f"Completed {completed} tasks")
