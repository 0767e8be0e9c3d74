from __future__ import annotations

from typing import Any

import typer

from ...domain.models import Element
from ...infra.exceptions import ElementKitError
from ...services.elements import Elements
from ._context import echo_json, fail, get_db_context

app = typer.Typer(name="element", help="Element inspection and removal")


def _element_payload(element: Element) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": element.id,
        "type": element.get_class_handle(),
        "locale": element.locale,
        "status": element.get_status(),
        "title": element.title,
        "slug": element.slug,
        "uri": element.uri,
        "url": element.get_url(),
        "ref": element.get_ref(),
    }
    if element.level is not None:
        payload["level"] = element.level
    if element.has_content():
        payload["fields"] = element.get_content().values
    return payload


@app.command("types")
def list_types(
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    test_db: bool = typer.Option(False, "--test-db", help="Use test database context"),
):
    """List the registered element types."""
    with get_db_context(test_db) as db:
        element_types = [
            {
                "handle": element_type.get_class_handle(),
                "name": element_type.get_name(),
                "localized": element_type.is_localized(),
                "content": element_type.has_content(),
                "titles": element_type.has_titles(),
                "statuses": list(element_type.get_statuses()),
            }
            for element_type in Elements(db).get_all_element_types()
        ]

    if json_output:
        echo_json({"status": "ok", "total": len(element_types), "element_types": element_types})
        return
    for info in element_types:
        typer.echo(f"  {info['handle']}: {info['name']} (statuses: {', '.join(info['statuses'])})")


@app.command("show")
def show_element(
    element_id: int = typer.Argument(..., help="Element ID"),
    locale: str | None = typer.Option(None, "--locale", help="Locale to load the element in"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    test_db: bool = typer.Option(False, "--test-db", help="Use test database context"),
):
    """Show one element, whatever its status.

    Examples:
        elementkit element show 42
        elementkit element show 42 --locale de --json
    """
    with get_db_context(test_db) as db:
        element = Elements(db).get_element_by_id(element_id, locale=locale)
        payload = _element_payload(element) if element is not None else None

    if payload is None:
        fail(f"Element {element_id} not found", code="ELEMENT_NOT_FOUND", json_output=json_output)

    if json_output:
        echo_json({"status": "ok", "element": payload})
        return
    typer.echo(f"{payload['type']} {payload['id']}:")
    for key in ("title", "status", "locale", "slug", "uri", "url", "ref", "level"):
        if payload.get(key) is not None:
            typer.echo(f"  {key.capitalize()}: {payload[key]}")
    for handle, value in (payload.get("fields") or {}).items():
        typer.echo(f"  {handle}: {value}")


@app.command("find")
def find_elements(
    element_type: str = typer.Option(..., "--type", "-t", help="Element type handle (e.g. Entry)"),
    status: str | None = typer.Option("enabled", "--status", help="Status filter; 'any' disables it"),
    locale: str | None = typer.Option(None, "--locale", help="Locale to query in"),
    search: str | None = typer.Option(None, "--search", help="Search query"),
    order: str | None = typer.Option(None, "--order", help="Order expression, e.g. 'title desc'"),
    limit: int | None = typer.Option(100, "--limit", help="Maximum number of elements"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    test_db: bool = typer.Option(False, "--test-db", help="Use test database context"),
):
    """Find elements of one type.

    Examples:
        elementkit element find --type Entry --status live
        elementkit element find --type Category --search "fruit" --json
    """
    with get_db_context(test_db) as db:
        try:
            criteria = Elements(db).get_criteria(
                element_type,
                status=None if status == "any" else status,
                locale=locale,
                search=search,
                order=order,
                limit=limit,
            )
            total = criteria.total()
            found = [_element_payload(element) for element in criteria.find()]
        except ElementKitError as e:
            fail(str(e), code="QUERY_ERROR", json_output=json_output)

    if json_output:
        echo_json({"status": "ok", "total": total, "elements": found})
        return
    if not found:
        typer.echo("No elements found")
        return
    for payload in found:
        typer.echo(f"  [{payload['id']}] {payload['title'] or payload['slug'] or ''} ({payload['status']})")
    typer.echo(f"\nTotal: {total} elements")


@app.command("delete")
def delete_elements(
    element_ids: list[int] = typer.Argument(..., help="IDs of the elements to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    test_db: bool = typer.Option(False, "--test-db", help="Use test database context"),
):
    """Delete elements. Their structure children move up to take their place.

    Examples:
        elementkit element delete 12 13 --yes
    """
    if not yes and not typer.confirm(f"Delete {len(element_ids)} element(s)?"):
        raise typer.Exit(1)

    with get_db_context(test_db) as db:
        deleted = Elements(db).delete_element_by_id(element_ids)

    if not deleted:
        fail("No elements were deleted", code="ELEMENT_NOT_FOUND", json_output=json_output)
    if json_output:
        echo_json({"status": "ok", "deleted": element_ids})
    else:
        typer.echo(f"Deleted {len(element_ids)} element(s)")


@app.command("merge")
def merge_elements(
    merged_id: int = typer.Argument(..., help="ID of the element to merge away"),
    prevailing_id: int = typer.Argument(..., help="ID of the element that remains"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    test_db: bool = typer.Option(False, "--test-db", help="Use test database context"),
):
    """Merge one element into another and delete it.

    Relations and structure positions move to the prevailing element; reference tags in
    content are rewritten by a queued task (see `elementkit tasks run`).
    """
    if merged_id == prevailing_id:
        fail("An element cannot be merged into itself", code="VALIDATION_ERROR", json_output=json_output)
    if not yes and not typer.confirm(f"Merge element {merged_id} into {prevailing_id}?"):
        raise typer.Exit(1)

    with get_db_context(test_db) as db:
        elements = Elements(db)
        for element_id in (merged_id, prevailing_id):
            if elements.get_element_type_by_id(element_id) is None:
                fail(f"Element {element_id} not found", code="ELEMENT_NOT_FOUND", json_output=json_output)
        merged = elements.merge_elements_by_ids(merged_id, prevailing_id)

    if not merged:
        fail(f"Element {merged_id} not found", code="ELEMENT_NOT_FOUND", json_output=json_output)
    if json_output:
        echo_json({"status": "ok", "merged": merged_id, "prevailing": prevailing_id})
    else:
        typer.echo(f"Merged element {merged_id} into {prevailing_id}")
