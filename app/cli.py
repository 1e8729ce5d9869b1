from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from app.config import AppSettings, load_settings
from app.session import BomBrowserSession
from app.wiring import build_session
from domain.bom_tree import BomTreeState
from domain.errors import PartBomError, ValidationFailed
from domain.models import AuditLogEntry, PartDetails, PartSummary

app = typer.Typer(no_args_is_help=True)
part_app = typer.Typer(no_args_is_help=True)
link_app = typer.Typer(no_args_is_help=True)
app.add_typer(part_app, name="part")
app.add_typer(link_app, name="link")
console = Console()

T = TypeVar("T")

SessionFactory = Callable[[AppSettings], BomBrowserSession]

_session_factory: SessionFactory = build_session


def set_session_factory(factory: SessionFactory) -> None:
    global _session_factory
    _session_factory = factory


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, help="YAML config file."),
    log_level: str = typer.Option("WARNING", help="Logging level."),
) -> None:
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = load_settings(config)


def _run(ctx: typer.Context, action: Callable[[BomBrowserSession], Awaitable[T]]) -> T:
    settings: AppSettings = ctx.obj

    async def runner() -> T:
        session = _session_factory(settings)
        try:
            return await action(session)
        finally:
            await session.close()
            close_api = getattr(session.api, "aclose", None)
            if close_api is not None:
                await close_api()

    try:
        return asyncio.run(runner())
    except ValidationFailed as exc:
        for field, message in exc.errors.items():
            console.print(f"[red]{field}:[/] {message}")
        raise typer.Exit(code=1) from exc
    except PartBomError as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _parse_depth(value: str) -> int | str:
    raw = value.strip().lower()
    if raw == "all":
        return "all"
    try:
        depth = int(raw)
    except ValueError as exc:
        raise typer.BadParameter("depth must be a positive integer or 'all'") from exc
    if depth < 1:
        raise typer.BadParameter("depth must be a positive integer or 'all'")
    return depth


@app.command("search")
def search(
    ctx: typer.Context,
    query: str = typer.Argument("", help="Text to match against part numbers and names."),
) -> None:
    async def action(session: BomBrowserSession) -> list[PartSummary]:
        await session.search.run(query)
        if session.search.error:
            raise PartBomError(session.search.error)
        return session.search.results

    parts = _run(ctx, action)
    if not parts:
        console.print("[yellow]No parts found.[/]")
        return
    console.print(render_parts(parts))


@app.command("show")
def show(
    ctx: typer.Context,
    part_id: str = typer.Argument(..., help="Part to open."),
    expand: list[str] = typer.Option([], "--expand", "-e", help="Node ids to expand."),
    depth: str | None = typer.Option(None, help="Initial tree depth (number or 'all')."),
) -> None:
    if depth is not None:
        ctx.obj.browser.initial_depth = _parse_depth(depth)

    async def action(session: BomBrowserSession) -> BomBrowserSession:
        await session.select(part_id)
        for node_id in expand:
            if session.cache.bom.is_expanded(node_id):
                continue
            task = session.cache.toggle(node_id)
            if task is not None:
                await task
        return session

    session = _run(ctx, action)
    cache = session.cache
    if cache.details.error:
        console.print(f"[red]Details:[/] {cache.details.error}")
    elif cache.details.data is not None:
        console.print(render_details(cache.details.data))
    if cache.bom.error:
        console.print(f"[red]BOM:[/] {cache.bom.error}")
    else:
        console.print(render_bom_tree(cache.bom))
    if cache.audit.error:
        console.print(f"[red]Audit:[/] {cache.audit.error}")
    else:
        console.print(render_audit(cache.audit.data))


@part_app.command("create")
def create_part(
    ctx: typer.Context,
    name: str = typer.Option(..., help="Part name."),
    part_number: str = typer.Option("", help="Part number, generated by the service when empty."),
    description: str = typer.Option("", help="Free text description."),
) -> None:
    async def action(session: BomBrowserSession) -> PartSummary:
        return await session.parts.create(
            {"name": name, "part_number": part_number, "description": description},
            select=False,
        )

    created = _run(ctx, action)
    console.print(f"[green]Created[/] {created.id} {created.label()}")


def _run_link(
    ctx: typer.Context,
    parent_id: str,
    mutate: Callable[[BomBrowserSession], Awaitable[Any]],
) -> BomBrowserSession:
    async def action(session: BomBrowserSession) -> BomBrowserSession:
        await asyncio.gather(session.catalog.refresh(), session.select(parent_id))
        await mutate(session)
        return session

    return _run(ctx, action)


@link_app.command("create")
def create_link(
    ctx: typer.Context,
    parent_id: str = typer.Argument(..., help="Parent part."),
    child_id: str = typer.Argument(..., help="Child part."),
    quantity: str = typer.Argument(..., help="Quantity of the child per parent."),
) -> None:
    session = _run_link(ctx, parent_id, lambda s: s.mutations.create_link(child_id, quantity))
    _print_link_result(session)


@link_app.command("update")
def update_link(
    ctx: typer.Context,
    parent_id: str = typer.Argument(..., help="Parent part."),
    child_id: str = typer.Argument(..., help="Child part."),
    quantity: str = typer.Argument(..., help="New quantity."),
) -> None:
    session = _run_link(ctx, parent_id, lambda s: s.mutations.update_link(child_id, quantity))
    _print_link_result(session)


@link_app.command("delete")
def delete_link(
    ctx: typer.Context,
    parent_id: str = typer.Argument(..., help="Parent part."),
    child_id: str = typer.Argument(..., help="Child part."),
) -> None:
    session = _run_link(ctx, parent_id, lambda s: s.mutations.delete_link(child_id))
    _print_link_result(session)


def _print_link_result(session: BomBrowserSession) -> None:
    details = session.cache.details.data
    if details is None:
        console.print("[green]Done.[/]")
        return
    console.print(f"[green]Done.[/] {details.id} now has {details.child_count} child links.")
    console.print(render_bom_tree(session.cache.bom))


def render_parts(parts: list[PartSummary]) -> Table:
    table = Table("ID", "Part number", "Name")
    for part in parts:
        table.add_row(part.id, part.part_number, part.name)
    return table


def render_details(details: PartDetails) -> Table:
    table = Table(title=f"{details.part_number} {details.name}", show_header=False)
    table.add_row("ID", details.id)
    table.add_row("Description", details.description or "-")
    table.add_row("Created", details.created_at or "-")
    table.add_row("Updated", details.updated_at or "-")
    table.add_row("Parents", str(details.parent_count))
    table.add_row("Children", str(details.child_count))
    for child in details.child_parts:
        table.add_row("", f"{child.label()} x{child.quantity}")
    return table


def render_bom_tree(state: BomTreeState) -> Tree | str:
    rows = list(state.visible_rows())
    if not rows:
        return "No BOM tree loaded."
    branches: list[Tree] = []
    root: Tree | None = None
    for row in rows:
        node = row.node
        label = node.part.label()
        if node.quantity_from_parent is not None:
            label = f"{label} x{node.quantity_from_parent}"
        if node.loading_children:
            label = f"{label} [dim](loading)[/]"
        elif node.children_error:
            label = f"{label} [red]({node.children_error})[/]"
        elif node.has_children and not row.expanded:
            label = f"{label} [dim]+[/]"
        del branches[row.depth:]
        if root is None:
            root = Tree(label)
            branch = root
        else:
            branch = branches[-1].add(label)
        branches.append(branch)
    return root if root is not None else "No BOM tree loaded."


def render_audit(entries: list[AuditLogEntry]) -> Table:
    table = Table("Time", "Action", "Message", title="Audit history")
    for entry in entries:
        table.add_row(entry.timestamp, entry.action, entry.message)
    return table


if __name__ == "__main__":
    app()
