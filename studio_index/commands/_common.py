"""Helpers shared by the cache-reading commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape

from studio_index.commands import EXIT_CACHE_ERROR, EXIT_NOT_FOUND
from studio_index.exceptions import StudioIndexError
from studio_index.utils.output import error

if TYPE_CHECKING:
    from studio_index.cache.entries import Cache
    from studio_index.cli import Context


def current_cache(ctx: Context) -> Cache:
    """Return the published cache, building it on first use.

    Exits with ``EXIT_NOT_FOUND`` when no bank folder is configured and
    with ``EXIT_CACHE_ERROR`` when the cache can't be loaded or built.
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

    try:
        return ctx.manager.current
    except StudioIndexError as e:
        error(f"Cache error: {escape(str(e))}")
        raise SystemExit(EXIT_CACHE_ERROR)
