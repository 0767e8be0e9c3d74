"""
Command group registration for the root Typer app.

Each area (database, elements, reference tags, tasks) ships its own Typer app; the
router mounts them and remembers what it mounted.
"""

from __future__ import annotations

from dataclasses import dataclass

import typer


@dataclass(frozen=True)
class CommandGroup:
    name: str
    app: typer.Typer
    help: str | None = None


class CliRouter:
    def __init__(self, root_app: typer.Typer) -> None:
        self.root_app = root_app
        self.groups: dict[str, CommandGroup] = {}

    def register(self, name: str, group_app: typer.Typer, *, help_text: str | None = None) -> CommandGroup:
        """Mount ``group_app`` under ``name``; a name can only be mounted once."""
        if name in self.groups:
            raise ValueError(f"Command group {name!r} is already mounted")
        self.root_app.add_typer(group_app, name=name, help=help_text)
        group = self.groups[name] = CommandGroup(name=name, app=group_app, help=help_text)
        return group

    def list_registered_groups(self) -> list[str]:
        return list(self.groups)


_routers: dict[int, CliRouter] = {}


def get_router(root_app: typer.Typer) -> CliRouter:
    """The router of ``root_app``, created on first use."""
    key = id(root_app)
    if key not in _routers:
        _routers[key] = CliRouter(root_app)
    return _routers[key]
