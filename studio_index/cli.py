"""Command-line interface for studio-index."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import click
from rich.logging import RichHandler

from studio_index import __version__
from studio_index.cache.manager import CacheManager
from studio_index.config import Config, load_config
from studio_index.utils.output import (
    error,
    error_console,
    set_color,
    set_verbosity,
    warning,
)


class Context:
    """Shared context for all commands."""

    def __init__(self) -> None:
        self.config: Config | None = None
        self.verbose: bool = False
        self.debug: bool = False
        self.quiet: bool = False
        self._manager: CacheManager | None = None

    @property
    def manager(self) -> CacheManager:
        """Cache manager for the loaded configuration, created on first use."""
        if self._manager is None:
            if self.config is None:
                raise click.UsageError("Configuration not loaded")
            self._manager = CacheManager(self.config)
        return self._manager


pass_context = click.make_pass_decorator(Context, ensure=True)


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    help="Path to config file (default: ~/.config/studio-index/config.toml)",
)
@click.option(
    "--banks",
    "-b",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    help="Folder the authoring tool builds banks into (overrides config)",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output",
)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug output (implies --verbose)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    default=False,
    help="Suppress non-error output",
)
@click.version_option(version=__version__, prog_name="studio-index")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    banks: Path | None,
    no_color: bool,
    verbose: bool,
    debug: bool,
    quiet: bool,
) -> None:
    """studio-index: Event cache and reference checker for audio projects.

    Mirrors the banks built by a sound-authoring tool into a local index of
    banks, events and parameters, and checks event references (path plus
    GUID) against it.

    Configuration is loaded from ~/.config/studio-index/config.toml by default.
    Use --config to specify an alternative configuration file.

    Examples:

        # Rebuild the event cache
        studio-index rebuild-cache

        # Check a reference manifest and repair drifted references
        studio-index check-refs refs.json --repair
    """
    # Initialize context
    ctx.ensure_object(Context)
    app_ctx = ctx.obj
    app_ctx.verbose = verbose or debug
    app_ctx.debug = debug
    app_ctx.quiet = quiet

    # Configure module-level verbosity for output helpers
    set_verbosity(verbose=verbose, debug=debug)
    if verbose or debug:
        logging.basicConfig(
            level=logging.DEBUG if debug else logging.INFO,
            format="%(name)s: %(message)s",
            handlers=[RichHandler(console=error_console, show_path=False)],
        )

    # Configure color output: disabled by --no-color, NO_COLOR env, or config
    disable_color = no_color or os.environ.get("NO_COLOR") is not None

    if disable_color:
        set_color(False)

    # Load configuration
    try:
        loaded_config, warnings = load_config(config)
        app_ctx.config = loaded_config

        # Override source_bank_path if --banks is specified
        if banks is not None:
            loaded_config.source_bank_path = banks.expanduser().resolve()
            warnings = [w for w in warnings if not w.startswith("No config file")]

        # Apply config settings
        if not disable_color and not loaded_config.colored_output:
            set_color(False)

        # Show warnings unless quiet
        if not quiet:
            for warn in warnings:
                warning(warn)

    except Exception as e:
        error(str(e))
        ctx.exit(1)


@cli.command("help")
@click.argument("command", required=False, nargs=-1)
@click.pass_context
def help_cmd(ctx: click.Context, command: tuple[str, ...]) -> None:
    """Show help for a command."""
    group = cli
    # Resolve subcommand chain
    for name in command:
        cmd = group.get_command(ctx, name)
        if cmd is None:
            error(f"Unknown command: {name}")
            ctx.exit(1)
            return
        if isinstance(cmd, click.Group):
            group = cmd
        else:
            click.echo(cmd.get_help(ctx))
            return
    # Print group help
    click.echo(group.get_help(ctx))


def register_commands() -> None:
    """Register all commands from the commands package."""
    from studio_index.commands import discover_commands

    for command in discover_commands():
        cli.add_command(command)


# Register commands on import
register_commands()
