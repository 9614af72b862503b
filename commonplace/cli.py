#!/usr/bin/env python3
"""
cli.py
-------------------
Commonplace maintenance command-line interface.

A thin front end over the public Store and LinkGraph interface. Every entry
it touches is acquired through ``Store.checkout`` or ``Store.transaction``
so nothing stays checked out after a failed command.

Command Structure:
    - Entries (create, show, delete, ids, tag)
    - Links (link, unlink, links, add-url, cleanup)

Usage:
    # Create an entry with some content
    commonplace create diary/2024-01-01 --content "woke up at 7"

    # Link it to a contact
    commonplace create contact/alice
    commonplace link diary/2024-01-01 contact/alice

    # Inspect
    commonplace links diary/2024-01-01
    commonplace ids diary --tag travel

    # Use another store
    commonplace --root ~/notes/store ids
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from pathlib import Path
from typing import Optional, Tuple

# --- Third party imports ---
import click

# --- Local imports ---
from commonplace.core.exceptions import StoreError
from commonplace.core.logging_manager import handle_cli_error
from commonplace.core.paths import CONFIG_PATH, STORE_DIR
from commonplace.extensions.filters import FieldGrep, Filter, HasTag, select
from commonplace.extensions.tags import add_tag, get_tags, remove_tag
from commonplace.links.graph import LinkGraph
from commonplace.links.models import InternalLink
from commonplace.store.manager import Store


@click.group()
@click.option(
    "--root",
    type=click.Path(),
    default=str(STORE_DIR),
    help="Store root directory",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(),
    default=str(CONFIG_PATH),
    help="Path to YAML configuration",
)
@click.option(
    "--log-dir",
    type=click.Path(),
    default=None,
    help="Directory for log files (overrides logging.dir)",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Show detailed errors and tracebacks",
)
@click.pass_context
def cli(ctx, root, config_path, log_dir, verbose):
    """Commonplace Store Maintenance CLI"""
    ctx.ensure_object(dict)
    ctx.obj["root"] = Path(root)
    ctx.obj["config_path"] = Path(config_path)
    ctx.obj["log_dir"] = Path(log_dir) if log_dir else None
    ctx.obj["verbose"] = verbose
    ctx.obj["logger"] = None
    ctx.call_on_close(lambda: _close_logger(ctx))


def _close_logger(ctx: click.Context) -> None:
    logger = ctx.obj.get("logger")
    if logger is not None:
        logger.close()


def get_store(ctx: click.Context) -> Store:
    """Get or open the store from context."""
    if "store" not in ctx.obj:
        store = Store.open(
            root=ctx.obj["root"],
            config_path=ctx.obj["config_path"],
            log_dir=ctx.obj["log_dir"],
        )
        ctx.obj["store"] = store
        ctx.obj["logger"] = store.logger
    return ctx.obj["store"]


def get_graph(ctx: click.Context) -> LinkGraph:
    if "graph" not in ctx.obj:
        ctx.obj["graph"] = LinkGraph(get_store(ctx))
    return ctx.obj["graph"]


def _parse_assignment(raw: str) -> Tuple[str, str]:
    path, sep, value = raw.partition("=")
    if not sep or not path:
        raise click.BadParameter(f"expected PATH=VALUE, got '{raw}'")
    return path.strip(), value


# ----- Entries -----

@cli.command()
@click.argument("identifier")
@click.option("--content", default="", help="Body text")
@click.option(
    "--set",
    "assignments",
    multiple=True,
    metavar="PATH=VALUE",
    help="Header string field to set (repeatable)",
)
@click.option("--tag", "tags", multiple=True, help="Tag to add (repeatable)")
@click.pass_context
def create(ctx, identifier, content, assignments, tags):
    """Create a new entry."""
    fields = [_parse_assignment(raw) for raw in assignments]
    try:
        store = get_store(ctx)
        with store.checkout(identifier, create=True) as entry:
            entry.content = content
            for path, value in fields:
                entry.header.set(path, value)
            for tag in tags:
                add_tag(entry, tag)
        click.echo(f"✅ Created {entry.identifier}")

    except StoreError as e:
        handle_cli_error(ctx, e, "create", {"identifier": identifier})


@cli.command()
@click.argument("identifier")
@click.pass_context
def show(ctx, identifier):
    """Print an entry as stored."""
    try:
        store = get_store(ctx)
        with store.checkout(identifier) as entry:
            text = entry.to_text()
        click.echo(text, nl=False)

    except StoreError as e:
        handle_cli_error(ctx, e, "show", {"identifier": identifier})


@cli.command()
@click.argument("identifier")
@click.option(
    "--keep-links",
    is_flag=True,
    help="Do not remove the entry from its peers' link lists first",
)
@click.pass_context
def delete(ctx, identifier, keep_links):
    """Delete an entry (unlinking it from its peers first)."""
    try:
        store = get_store(ctx)
        if not keep_links:
            peers = get_graph(ctx).unlink_all(identifier)
            for peer in peers:
                click.echo(f"  • unlinked {peer}")
        store.delete(identifier)
        click.echo(f"✅ Deleted {identifier}")

    except StoreError as e:
        handle_cli_error(ctx, e, "delete", {"identifier": identifier})


@cli.command()
@click.argument("collection", required=False)
@click.option("--tag", "tags", multiple=True, help="Only entries carrying this tag")
@click.option(
    "--grep",
    "greps",
    multiple=True,
    metavar="PATH=PATTERN",
    help="Only entries whose string field matches the pattern",
)
@click.pass_context
def ids(ctx, collection, tags, greps):
    """List stored identifiers, optionally filtered."""
    searches = [_parse_assignment(raw) for raw in greps]
    try:
        store = get_store(ctx)
        predicate: Optional[Filter] = None
        for tag in tags:
            predicate = HasTag(tag) if predicate is None else predicate & HasTag(tag)
        for path, pattern in searches:
            condition = FieldGrep(path, pattern)
            predicate = condition if predicate is None else predicate & condition

        found = store.ids(collection) if predicate is None else select(store, predicate, collection)
        for identifier in found:
            click.echo(str(identifier))

    except StoreError as e:
        handle_cli_error(ctx, e, "ids", {"collection": collection})


@cli.command()
@click.argument("identifier")
@click.argument("tags", nargs=-1)
@click.option("--remove", is_flag=True, help="Remove the tags instead of adding them")
@click.pass_context
def tag(ctx, identifier, tags, remove):
    """Add (or remove) tags; with no tags, list them."""
    try:
        store = get_store(ctx)
        with store.checkout(identifier) as entry:
            for name in tags:
                if remove:
                    remove_tag(entry, name)
                else:
                    add_tag(entry, name)
            current = get_tags(entry)
        click.echo(" ".join(current))

    except StoreError as e:
        handle_cli_error(ctx, e, "tag", {"identifier": identifier, "tags": list(tags)})


# ----- Links -----

@cli.command()
@click.argument("first")
@click.argument("second")
@click.pass_context
def link(ctx, first, second):
    """Link two entries to each other."""
    try:
        if get_graph(ctx).add_internal_link(first, second):
            click.echo(f"✅ Linked {first} <-> {second}")
        else:
            click.echo(f"Already linked: {first} <-> {second}")

    except StoreError as e:
        handle_cli_error(ctx, e, "link", {"first": first, "second": second})


@cli.command()
@click.argument("first")
@click.argument("second")
@click.pass_context
def unlink(ctx, first, second):
    """Remove the link between two entries."""
    try:
        get_graph(ctx).remove_internal_link(first, second)
        click.echo(f"✅ Unlinked {first} <-> {second}")

    except StoreError as e:
        handle_cli_error(ctx, e, "unlink", {"first": first, "second": second})


@cli.command()
@click.argument("identifier")
@click.pass_context
def links(ctx, identifier):
    """List the links of an entry."""
    try:
        for item in get_graph(ctx).links_of(identifier):
            if isinstance(item, InternalLink):
                kind = "dangling" if item.dangling else "internal"
            else:
                kind = "external"
            click.echo(f"{kind:<9} {item.target}")

    except StoreError as e:
        handle_cli_error(ctx, e, "links", {"identifier": identifier})


@cli.command("add-url")
@click.argument("identifier")
@click.argument("locator")
@click.pass_context
def add_url(ctx, identifier, locator):
    """Attach an external resource (URL, path, ...) to an entry."""
    try:
        if get_graph(ctx).add_external_link(identifier, locator):
            click.echo(f"✅ Added {locator.strip()} to {identifier}")
        else:
            click.echo(f"Already linked: {locator.strip()}")

    except StoreError as e:
        handle_cli_error(ctx, e, "add_url", {"identifier": identifier, "locator": locator})


@cli.command()
@click.argument("identifier", required=False)
@click.pass_context
def cleanup(ctx, identifier):
    """
    Remove dangling links and report one-sided links.

    With IDENTIFIER only that entry is cleaned. One-sided links are never
    repaired automatically; the command exits with status 1 if any exist.
    """
    try:
        store = get_store(ctx)
        graph = get_graph(ctx)
        targets = [identifier] if identifier else list(store.ids())
        removed = 0
        for target in targets:
            for peer in graph.remove_dangling_links(target):
                removed += 1
                click.echo(f"  • {target}: removed dangling link to {peer}")

        broken = [] if identifier else list(graph.inconsistencies())
        for holder, peer in broken:
            click.echo(f"⚠️  {holder} links {peer} but {peer} does not link back", err=True)

        click.echo(f"✅ Removed {removed} dangling link(s)")
        if broken:
            ctx.exit(1)

    except StoreError as e:
        handle_cli_error(ctx, e, "cleanup", {"identifier": identifier})


if __name__ == "__main__":
    cli(obj={})
