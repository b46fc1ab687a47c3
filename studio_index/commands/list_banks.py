"""List the banks in the cache."""

from __future__ import annotations

import click
from rich.markup import escape

from studio_index.cli import Context, pass_context
from studio_index.commands import EXIT_SUCCESS
from studio_index.commands._common import current_cache
from studio_index.utils.output import console, create_table, info


def _format_size(size: int) -> str:
    for unit in ("B", "KiB", "MiB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GiB"


@click.command("list-banks")
@pass_context
def cli(ctx: Context) -> None:
    """List cached banks with their per-platform sizes.

    Master banks and strings banks are marked in the Kind column.

    \b
    Examples:
      studio-index list-banks
    """
    cache = current_cache(ctx)

    if not cache.banks:
        info("No banks found")
        raise SystemExit(EXIT_SUCCESS)

    master = {id(b) for b in cache.master_banks}
    strings = {id(b) for b in cache.strings_banks}
    platforms = sorted({p for bank in cache.banks for p in bank.file_sizes})

    table = create_table(show_header=True, header_style="bold")
    table.add_column("Name", style="bank", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Studio path")
    for platform in platforms:
        table.add_column(platform or "Size", justify="right")

    for bank in cache.banks:
        kind = "strings" if id(bank) in strings else "master" if id(bank) in master else ""
        sizes = [
            _format_size(bank.file_sizes[p]) if p in bank.file_sizes else "-" for p in platforms
        ]
        table.add_row(escape(bank.name), kind, escape(bank.studio_path), *sizes)
    console.print(table)
    if not ctx.quiet:
        info(f"{len(cache.banks)} banks")

    raise SystemExit(EXIT_SUCCESS)
