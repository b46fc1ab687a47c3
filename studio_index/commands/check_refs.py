"""Check a reference manifest against the cache and repair drift."""

from __future__ import annotations

from pathlib import Path

import click
from rich.markup import escape

from studio_index.cli import Context, pass_context
from studio_index.commands import (
    EXIT_NOT_FOUND,
    EXIT_SUCCESS,
    EXIT_USAGE_ERROR,
)
from studio_index.commands._common import current_cache
from studio_index.exceptions import ReferenceFileError
from studio_index.references import (
    ReferenceTask,
    apply_tasks,
    load_references,
    save_references,
    scan_references,
)
from studio_index.resolver import LinkageMode, ReferenceState
from studio_index.utils.output import console, create_table, error, info, success, verbose

_STATE_STYLES = {
    ReferenceState.MALFORMED: "error",
    ReferenceState.NOT_FOUND: "error",
    ReferenceState.MISMATCH: "warning",
    ReferenceState.MOVED: "warning",
}


@click.command("check-refs")
@click.argument(
    "manifest",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
)
@click.option(
    "--repair",
    is_flag=True,
    default=False,
    help="Rewrite drifted references in the manifest",
)
@click.option(
    "--linkage",
    type=click.Choice([m.value for m in LinkageMode]),
    default=None,
    help="Override the configured linkage mode for this check",
)
@click.option(
    "--skip",
    multiple=True,
    metavar="NAME",
    help="Leave this reference untouched when repairing (repeatable)",
)
@pass_context
def cli(
    ctx: Context,
    manifest: Path,
    repair: bool,
    linkage: str | None,
    skip: tuple[str, ...],
) -> None:
    """Check event references in MANIFEST against the cache.

    Each reference is resolved through the authoritative field (path or
    GUID, see the linkage command) and the other field is compared with
    the cached event. References that don't resolve, or that drifted,
    are listed. With --repair the drifted ones are rewritten in place.

    Exits with status 3 when unresolved references remain.

    \b
    Examples:
      studio-index check-refs refs.json
      studio-index check-refs refs.json --repair
      studio-index check-refs refs.json --repair --skip player/footsteps
      studio-index check-refs refs.json --linkage guid
    """
    try:
        references = load_references(manifest)
    except ReferenceFileError as e:
        error(escape(str(e)))
        raise SystemExit(EXIT_USAGE_ERROR)

    current_cache(ctx)
    resolver = ctx.manager.resolver(LinkageMode(linkage) if linkage else None)
    verbose(f"Checking {len(references)} references ({resolver.linkage.value} linkage)")

    tasks = scan_references(resolver, references)
    for task in tasks:
        if task.name in skip:
            task.enabled = False

    if not tasks:
        if not ctx.quiet:
            success(f"All {len(references)} references are up to date")
        raise SystemExit(EXIT_SUCCESS)

    _print_tasks(tasks)

    unresolved = [t for t in tasks if not t.repairable]
    if repair:
        updated = apply_tasks(resolver, references, tasks)
        repaired = [t for t in tasks if t.enabled and t.repairable]
        if repaired:
            save_references(manifest, updated)
            success(f"Repaired {len(repaired)} references in {escape(str(manifest))}")
        else:
            info("Nothing to repair")
    elif any(t.repairable for t in tasks) and not ctx.quiet:
        info("Run with --repair to fix the drifted references")

    if unresolved:
        error(f"{len(unresolved)} references could not be resolved")
        raise SystemExit(EXIT_NOT_FOUND)
    raise SystemExit(EXIT_SUCCESS)


def _print_tasks(tasks: list[ReferenceTask]) -> None:
    table = create_table(show_header=True, header_style="bold")
    table.add_column("Reference", no_wrap=True)
    table.add_column("Status")
    table.add_column("Detail")
    for task in tasks:
        style = _STATE_STYLES.get(task.status.state, "info")
        status = f"[{style}]{task.status.state.value}[/{style}]"
        if not task.enabled:
            status += " [dim](skipped)[/dim]"
        table.add_row(escape(task.name), status, escape(task.description))
    console.print(table)
