"""Look up one event by path or GUID."""

from __future__ import annotations

import json

import click
from rich.markup import escape

from studio_index.cache.entries import EventEntry, ticks_to_datetime
from studio_index.cli import Context, pass_context
from studio_index.commands import EXIT_NOT_FOUND, EXIT_SUCCESS, EXIT_USAGE_ERROR
from studio_index.commands._common import current_cache
from studio_index.exceptions import InvalidIdentifierError
from studio_index.utils.output import console, create_table, error, info


@click.command("find")
@click.argument("query")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@pass_context
def cli(ctx: Context, query: str, output_format: str) -> None:
    """Find an event by path or GUID.

    QUERY is an event path such as ``event:/amb/wind`` or a braced GUID
    such as ``{0000abcd-0000-0000-0000-000000000000}``.

    \b
    Examples:
      studio-index find event:/amb/wind
      studio-index find "{3c1e5c4b-94a5-4bda-9e1c-6c7d5a0c8f11}"
      studio-index find event:/amb/wind --format json
    """
    current_cache(ctx)
    resolver = ctx.manager.resolver()

    try:
        event = resolver.find(query)
    except InvalidIdentifierError as e:
        error(escape(str(e)))
        raise SystemExit(EXIT_USAGE_ERROR)

    if event is None:
        error(f"Event not found: {escape(query)}")
        raise SystemExit(EXIT_NOT_FOUND)

    if output_format == "json":
        click.echo(json.dumps(_event_dict(event), indent=2))
    else:
        _print_event(event)

    raise SystemExit(EXIT_SUCCESS)


def _print_event(event: EventEntry) -> None:
    info(escape(event.path))
    console.print(f"  GUID:      [guid]{event.id}[/guid]")
    console.print(f"  Length:    {event.length} ms")
    flags = [
        name
        for name, enabled in (
            ("3D", event.is_3d),
            ("stream", event.is_stream),
            ("oneshot", event.is_oneshot),
        )
        if enabled
    ]
    console.print(f"  Flags:     {', '.join(flags) or '-'}")
    if event.is_3d:
        console.print(f"  Distance:  {event.min_distance} - {event.max_distance}")

    banks = create_table(title="Banks", show_header=True, header_style="bold")
    banks.add_column("Name", style="bank")
    banks.add_column("Studio path", style="path")
    banks.add_column("Modified")
    for bank in event.banks:
        modified = ticks_to_datetime(bank.last_modified).strftime("%Y-%m-%d %H:%M")
        banks.add_row(escape(bank.name), escape(bank.studio_path), modified)
    console.print(banks)

    if event.parameters:
        params = create_table(title="Parameters", show_header=True, header_style="bold")
        params.add_column("Name")
        params.add_column("Scope")
        params.add_column("Type")
        params.add_column("Range", justify="right")
        params.add_column("Default", justify="right")
        for param in event.local_parameters + event.global_parameters:
            name = escape(param.name)
            if not param.exists:
                name = f"[dim]{name} (removed)[/dim]"
            params.add_row(
                name,
                "global" if param.is_global else "local",
                param.type.value,
                f"{param.minimum:g} - {param.maximum:g}",
                f"{param.default:g}",
            )
        console.print(params)


def _event_dict(event: EventEntry) -> dict:
    return {
        "path": event.path,
        "guid": str(event.id),
        "banks": event.bank_names,
        "is_3d": event.is_3d,
        "is_stream": event.is_stream,
        "is_oneshot": event.is_oneshot,
        "min_distance": event.min_distance,
        "max_distance": event.max_distance,
        "length": event.length,
        "parameters": [
            {
                "name": p.name,
                "id": str(p.id),
                "type": p.type.value,
                "global": p.is_global,
                "minimum": p.minimum,
                "maximum": p.maximum,
                "default": p.default,
                "labels": list(p.labels),
                "exists": p.exists,
            }
            for p in event.parameters
        ],
    }
