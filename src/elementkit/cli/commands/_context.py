"""Shared helpers for command modules."""

from __future__ import annotations

import json
from typing import Any

import typer

from ...infra.db import get_sessionmaker
from ...infra.settings import settings
from ...infra.uow import session


def get_db_context(test_db: bool):
    if not test_db:
        return session()
    if settings.test_database_url:
        return session(get_sessionmaker(for_test=True))
    return session()


def echo_json(payload: dict[str, Any]) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def fail(message: str, *, code: str, json_output: bool) -> None:
    """Report an error the way every command does and exit with status 1."""
    if json_output:
        echo_json({"status": "error", "code": code, "message": message})
    else:
        typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)
