"""List the events in the cache."""

from __future__ import annotations

import click
from rich.markup import escape

from studio_index.cli import Context, pass_context
from studio_index.commands import EXIT_SUCCESS
from studio_index.commands._common import current_cache
from studio_index.utils.output import console, create_table, info


@click.command("list-events")
@click.option(
    "--prefix",
    "-p",
    default=None,
    help="Only list events whose path starts with this prefix",
)
@click.option(
    "--paths",
    "paths_only",
    is_flag=True,
    default=False,
    help="Print one event path per line (for piping)",
)
@pass_context
def cli(ctx: Context, prefix: str | None, paths_only: bool) -> None:
    """List cached events, sorted by path.

    \b
    Examples:
      studio-index list-events
      studio-index list-events --prefix event:/amb/
      studio-index list-events --paths | grep footsteps
    """
    cache = current_cache(ctx)

    events = sorted(cache.events, key=lambda e: e.path)
    if prefix:
        events = [e for e in events if e.path.startswith(prefix)]

    if paths_only:
        for event in events:
            click.echo(event.path)
        raise SystemExit(EXIT_SUCCESS)

    if not events:
        info("No events found")
        raise SystemExit(EXIT_SUCCESS)

    table = create_table(show_header=True, header_style="bold")
    table.add_column("Path", no_wrap=True)
    table.add_column("GUID", style="guid", no_wrap=True)
    table.add_column("Banks")
    table.add_column("Params", justify="right")
    table.add_column("Length", justify="right")
    for event in events:
        table.add_row(
            escape(event.path),
            str(event.id),
            escape(", ".join(event.bank_names)),
            str(len(event.parameters)),
            f"{event.length} ms",
        )
    console.print(table)
    if not ctx.quiet:
        info(f"{len(events)} events")

    raise SystemExit(EXIT_SUCCESS)
