"""Show or change which reference field is authoritative."""

from __future__ import annotations

import click

from studio_index.cli import Context, pass_context
from studio_index.commands import EXIT_SUCCESS, EXIT_USAGE_ERROR
from studio_index.config import save_config
from studio_index.resolver import LinkageMode
from studio_index.utils.output import error, info, success


@click.command("linkage")
@click.argument(
    "mode",
    required=False,
    type=click.Choice([m.value for m in LinkageMode]),
)
@pass_context
def cli(ctx: Context, mode: str | None) -> None:
    """Show or set the linkage mode.

    With path linkage a reference is resolved by its event path and the
    GUID is kept in sync; with guid linkage it is resolved by GUID and
    the path is kept in sync. Setting a mode saves it to the config file.

    \b
    Examples:
      studio-index linkage
      studio-index linkage guid
    """
    config = ctx.config
    if config is None:
        error("Configuration not loaded")
        raise SystemExit(EXIT_USAGE_ERROR)

    if mode is None:
        info(f"Linkage: {config.linkage.value}")
        raise SystemExit(EXIT_SUCCESS)

    config.linkage = LinkageMode(mode)
    try:
        path = save_config(config)
    except OSError as e:
        error(f"Failed to write config file: {e}")
        raise SystemExit(EXIT_USAGE_ERROR)

    success(f"Linkage set to {config.linkage.value} in {path}")
    raise SystemExit(EXIT_SUCCESS)
