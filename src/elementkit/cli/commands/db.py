from __future__ import annotations

import typer

from ...domain import entities  # noqa: F401  (registers the tables on Base.metadata)
from ...infra.db import Base, get_engine
from ...infra.schema import CONTENT_TABLE, content_table
from ._context import echo_json

app = typer.Typer(name="db", help="Database schema operations")


@app.command("init")
def init_db(
    db_url: str | None = typer.Option(None, "--db-url", help="Database URL (defaults to DATABASE_URL)"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Create every fixed table, including the shared content table.

    Matrix content tables and field columns are created later, when the fields that
    need them are saved.

    Examples:
        elementkit db init
        elementkit db init --db-url sqlite:///site.db
    """
    content_table(CONTENT_TABLE)
    engine = get_engine(db_url)
    Base.metadata.create_all(engine)

    tables = sorted(Base.metadata.tables)
    if json_output:
        echo_json({"status": "ok", "tables": tables})
    else:
        typer.echo(f"Created {len(tables)} tables")
