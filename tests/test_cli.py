"""
CLI tests.

Commands run against the test session: ``get_db_context`` is replaced in every command
module with a unit of work over the ``db`` fixture.
"""

import contextlib
import json

import pytest
from typer.testing import CliRunner

from elementkit.cli.commands import element as element_commands
from elementkit.cli.commands import refs as refs_commands
from elementkit.cli.commands import tasks as tasks_commands
from elementkit.cli.main import app, router
from elementkit.infra.logging import configure_logging
from elementkit.infra.uow import transaction


@pytest.fixture(autouse=True)
def cli_db(monkeypatch, db):
    # Route log output before CliRunner swaps the standard streams
    configure_logging()

    @contextlib.contextmanager
    def _context(test_db):
        with transaction(db):
            yield db

    for module in (element_commands, refs_commands, tasks_commands):
        monkeypatch.setattr(module, "get_db_context", _context)
    return db


class TestRouter:
    def test_command_groups(self):
        assert router.list_registered_groups() == ["db", "element", "refs", "tasks"]


class TestElementCommands:
    def setup_method(self):
        self.runner = CliRunner()

    def invoke(self, *args, **kwargs):
        return self.runner.invoke(app, list(args), **kwargs)

    def test_types(self):
        result = self.invoke("element", "types", "--json")
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert [t["handle"] for t in payload["element_types"]] == ["Entry", "Category", "User", "MatrixBlock"]
        assert "live" in payload["element_types"][0]["statuses"]

    def test_show(self, create_entry):
        entry = create_entry("Hello", fields={"body": "Hi", "count": 3})

        result = self.invoke("element", "show", str(entry.id), "--json")
        assert result.exit_code == 0
        shown = json.loads(result.stdout)["element"]
        assert shown["title"] == "Hello"
        assert shown["uri"] == "news/hello"
        assert shown["ref"] == "news/hello"
        assert shown["fields"]["count"] == 3

        result = self.invoke("element", "show", str(entry.id), "--locale", "de")
        assert result.exit_code == 0
        assert "Locale: de" in result.stdout

    def test_show_missing(self):
        result = self.invoke("element", "show", "999", "--json")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["code"] == "ELEMENT_NOT_FOUND"

    def test_find(self, create_entry):
        create_entry("Alpha")
        create_entry("Beta")
        create_entry("Hidden", enabled=False)

        result = self.invoke("element", "find", "--type", "Entry", "--order", "title desc", "--json")
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["total"] == 2
        assert [e["title"] for e in payload["elements"]] == ["Beta", "Alpha"]

        result = self.invoke("element", "find", "--type", "Entry", "--status", "any")
        assert result.exit_code == 0
        assert "Total: 3 elements" in result.stdout

    def test_find_rejects_bad_input(self, site):
        result = self.invoke("element", "find", "--type", "Entry", "--order", "title sideways", "--json")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["code"] == "QUERY_ERROR"

        result = self.invoke("element", "find", "--type", "Widget", "--json")
        assert result.exit_code == 1

    def test_delete(self, elements, create_entry):
        entry = create_entry("Doomed")

        result = self.invoke("element", "delete", str(entry.id), input="n\n")
        assert result.exit_code == 1
        assert elements.get_element_by_id(entry.id) is not None

        result = self.invoke("element", "delete", str(entry.id), "--yes", "--json")
        assert result.exit_code == 0
        assert json.loads(result.stdout)["deleted"] == [entry.id]
        assert elements.get_element_by_id(entry.id) is None

        result = self.invoke("element", "delete", str(entry.id), "--yes", "--json")
        assert result.exit_code == 1

    def test_merge_then_run_tasks(self, elements, create_entry):
        old = create_entry("Old")
        new = create_entry("New")
        create_entry("Page", fields={"body": f"{{entry:{old.id}:title}}"})

        result = self.invoke("element", "merge", str(old.id), str(new.id), "--yes", "--json")
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"status": "ok", "merged": old.id, "prevailing": new.id}

        result = self.invoke("tasks", "list", "--json")
        assert json.loads(result.stdout)["total"] == 2

        result = self.invoke("tasks", "run", "--json")
        assert json.loads(result.stdout)["completed"] == 2

        result = self.invoke("tasks", "list")
        assert "No pending tasks" in result.stdout

    def test_merge_into_itself(self):
        result = self.invoke("element", "merge", "5", "5", "--json")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["code"] == "VALIDATION_ERROR"

    def test_merge_missing_element(self, create_entry):
        entry = create_entry("Only")
        result = self.invoke("element", "merge", "999", str(entry.id), "--yes", "--json")
        assert result.exit_code == 1
        assert json.loads(result.stdout)["code"] == "ELEMENT_NOT_FOUND"


class TestRefsCommand:
    def test_parse(self, create_entry):
        entry = create_entry("Hello")
        result = CliRunner().invoke(app, ["refs", "parse", f"Read {{entry:{entry.id}:title}}"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "Read Hello"


class TestDbCommand:
    def test_init_creates_the_schema(self, tmp_path):
        path = tmp_path / "site.db"
        result = CliRunner().invoke(app, ["db", "init", "--db-url", f"sqlite:///{path}", "--json"])
        assert result.exit_code == 0
        tables = json.loads(result.stdout)["tables"]
        assert {"elements", "elements_i18n", "content", "structureelements", "relations"} <= set(tables)
        assert path.exists()
