"""Rebuild the event cache from the compiled bank folder."""

from __future__ import annotations

import click
from rich.markup import escape

from studio_index.cli import Context, pass_context
from studio_index.commands import EXIT_CACHE_ERROR, EXIT_NOT_FOUND, EXIT_SUCCESS
from studio_index.exceptions import CacheError, StudioIndexError
from studio_index.utils.output import create_progress, error, info, success, verbose


@click.command("rebuild-cache")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    default=False,
    help="Re-read every bank and replace the cache file even if it is current",
)
@pass_context
def cli(ctx: Context, force: bool) -> None:
    """Rebuild the event cache from the built banks.

    Reads the metadata exported next to each bank and replaces the cache
    in one step. If the rebuild fails, the previous cache stays in effect.

    \b
    Examples:
      studio-index rebuild-cache
      studio-index rebuild-cache --force
      studio-index -v rebuild-cache
    """
    config = ctx.config
    if config is None:
        error("Configuration not loaded")
        raise SystemExit(EXIT_NOT_FOUND)

    if config.source_bank_path is None:
        error(
            "No bank folder configured",
            hint="Set [paths] source_bank_path in the config or pass --banks",
        )
        raise SystemExit(EXIT_NOT_FOUND)

    manager = ctx.manager

    try:
        if not ctx.quiet:
            info(f"Rebuilding cache from {config.source_bank_path}...")
        with create_progress() as progress:
            progress.add_task("Building cache...", total=None)
            cache = manager.rebuild_cache(force=force)
    except CacheError as e:
        error(f"Cache error: {escape(str(e))}", hint="The previous cache is still in effect")
        raise SystemExit(EXIT_CACHE_ERROR)
    except StudioIndexError as e:
        error(escape(str(e)))
        raise SystemExit(EXIT_CACHE_ERROR)

    verbose(f"Cache written to {config.effective_cache_dir}")
    if not ctx.quiet:
        stale = sum(1 for p in cache.parameters if not p.exists)
        msg = (
            f"Cache rebuilt with {len(cache.events)} events in {len(cache.banks)} banks "
            f"({len(cache.parameters)} global parameters"
        )
        if stale:
            msg += f", {stale} stale"
        success(msg + ")")

    raise SystemExit(EXIT_SUCCESS)
