"""
Main CLI application using Typer with router-based command dispatch.

This module provides the operator command-line interface for elementkit: creating the
schema, inspecting and removing elements, and resolving reference tags.
"""

from __future__ import annotations

import typer

from ..infra.logging import configure_logging
from .commands import db, element, refs, tasks
from .router import get_router

app = typer.Typer(help="elementkit operator CLI")

router = get_router(app)

router.register("db", db.app, help_text="Database schema operations")
router.register("element", element.app, help_text="Element inspection and removal")
router.register("refs", refs.app, help_text="Reference tag operations")
router.register("tasks", tasks.app, help_text="Background task operations")


@app.callback()
def main(
    ctx: typer.Context,
    json: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """elementkit - element storage and query core."""
    configure_logging()
    ctx.ensure_object(dict)
    ctx.obj["json"] = json


def cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
