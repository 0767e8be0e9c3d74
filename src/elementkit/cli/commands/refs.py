from __future__ import annotations

import typer

from ...services.elements import Elements
from ._context import echo_json, get_db_context

app = typer.Typer(name="refs", help="Reference tag operations")


@app.command("parse")
def parse_refs(
    text: str = typer.Argument(..., help="Text containing reference tags such as {entry:42:title}"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    test_db: bool = typer.Option(False, "--test-db", help="Use test database context"),
):
    """Replace reference tags in TEXT with the values they point at.

    Examples:
        elementkit refs parse "Read {entry:news/hello:title} at {entry:news/hello}"
    """
    with get_db_context(test_db) as db:
        parsed = Elements(db).parse_refs(text)

    if json_output:
        echo_json({"status": "ok", "input": text, "output": parsed})
    else:
        typer.echo(parsed)
