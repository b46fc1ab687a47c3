"""Authoring-side metadata for compiled banks.

The authoring tool exports a JSON description next to every bank it
builds (``Master.bank`` -> ``Master.bank.json``).  Each export carries
the bank's id and studio path, the events it contains and the global
parameters it defines::

    {
      "id": "{0b7e4c1a-...}",
      "path": "bank:/Master",
      "events": [
        {
          "path": "event:/amb/wind",
          "id": "{5f1d...}",
          "is_3d": true,
          "is_stream": false,
          "is_oneshot": false,
          "min_distance": 1.0,
          "max_distance": 20.0,
          "length": 0,
          "parameters": [
            {"name": "Intensity", "id": {"data1": 1, "data2": 2},
             "minimum": 0.0, "maximum": 1.0, "default": 0.5,
             "flags": ["discrete"], "labels": []}
          ]
        }
      ],
      "global_parameters": [...]
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Flag, auto
from pathlib import Path
from typing import Any, Protocol

from studio_index.cache.entries import ParameterId, ParameterType, StableId
from studio_index.exceptions import InvalidIdentifierError, MetadataReadError

EXPORT_SUFFIX = ".json"

log = logging.getLogger(__name__)


class ParameterFlags(Flag):
    """Flags reported for a parameter description."""

    NONE = 0
    READONLY = auto()
    AUTOMATIC = auto()
    GLOBAL = auto()
    DISCRETE = auto()
    LABELED = auto()


_FLAG_NAMES = {
    "readonly": ParameterFlags.READONLY,
    "automatic": ParameterFlags.AUTOMATIC,
    "global": ParameterFlags.GLOBAL,
    "discrete": ParameterFlags.DISCRETE,
    "labeled": ParameterFlags.LABELED,
}


@dataclass(frozen=True)
class ParameterDescription:
    """A parameter as reported by the authoring tool."""

    name: str
    id: ParameterId
    minimum: float
    maximum: float
    default: float
    flags: ParameterFlags = ParameterFlags.NONE
    labels: tuple[str, ...] = ()

    @property
    def is_global(self) -> bool:
        return bool(self.flags & ParameterFlags.GLOBAL)

    @property
    def is_controllable(self) -> bool:
        """Read-only parameters can't be set unless they are global."""
        return self.is_global or not self.flags & ParameterFlags.READONLY

    @property
    def parameter_type(self) -> ParameterType:
        if self.flags & ParameterFlags.LABELED:
            return ParameterType.LABELED
        if self.flags & ParameterFlags.DISCRETE:
            return ParameterType.DISCRETE
        return ParameterType.CONTINUOUS


@dataclass(frozen=True)
class EventDescription:
    """An event as reported by the authoring tool."""

    path: str
    id: StableId
    parameters: tuple[ParameterDescription, ...] = ()
    is_3d: bool = False
    is_stream: bool = False
    is_oneshot: bool = False
    min_distance: float = 0.0
    max_distance: float = 0.0
    length: int = 0


@dataclass(frozen=True)
class BankMetadata:
    """Everything the authoring tool reports for one bank."""

    id: StableId
    studio_path: str
    events: tuple[EventDescription, ...] = ()
    global_parameters: tuple[ParameterDescription, ...] = ()


class MetadataProvider(Protocol):
    """Source of authoring metadata for compiled bank files."""

    def read_bank(self, bank_path: Path) -> BankMetadata:
        """Return the metadata for *bank_path*.

        Raises:
            MetadataReadError: If the metadata can't be read.
        """
        ...


def export_path_for(bank_path: Path) -> Path:
    """Location of the JSON export belonging to *bank_path*."""
    return bank_path.with_name(bank_path.name + EXPORT_SUFFIX)


class JsonMetadataProvider:
    """Reads the JSON export the authoring tool writes next to each bank."""

    def read_bank(self, bank_path: Path) -> BankMetadata:
        export = export_path_for(bank_path)
        log.debug("Reading bank metadata from %s", export)
        try:
            with open(export, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise MetadataReadError(bank_path, f"missing export {export.name}") from e
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MetadataReadError(bank_path, str(e)) from e

        try:
            return parse_bank_metadata(data)
        except (KeyError, TypeError, ValueError, InvalidIdentifierError) as e:
            raise MetadataReadError(bank_path, f"invalid export: {e}") from e


# ---------------------------------------------------------------------------
# JSON parsing
# ---------------------------------------------------------------------------


def _require(data: dict[str, Any], key: str, kind: type | tuple[type, ...]) -> Any:
    value = data[key]
    # bool is an int subclass; only accept it where a bool is wanted
    if isinstance(value, bool) and kind is not bool:
        raise TypeError(f"'{key}' must be {kind}, got bool")
    if not isinstance(value, kind):
        raise TypeError(f"'{key}' must be {kind}, got {type(value).__name__}")
    return value


def _optional(data: dict[str, Any], key: str, kind: type | tuple[type, ...], default: Any) -> Any:
    if key not in data or data[key] is None:
        return default
    return _require(data, key, kind)


def _parse_flags(names: list[Any]) -> ParameterFlags:
    flags = ParameterFlags.NONE
    for name in names:
        flag = _FLAG_NAMES.get(str(name).lower())
        if flag is None:
            raise ValueError(f"unknown parameter flag {name!r}")
        flags |= flag
    return flags


def _parse_parameter_id(raw: Any) -> ParameterId:
    if isinstance(raw, dict):
        return ParameterId(int(raw["data1"]), int(raw["data2"]))
    if isinstance(raw, int) and not isinstance(raw, bool):
        return ParameterId.from_int(raw)
    if isinstance(raw, str):
        return ParameterId.from_int(int(raw, 0))
    raise TypeError(f"invalid parameter id {raw!r}")


def parse_parameter(data: dict[str, Any]) -> ParameterDescription:
    """Parse one parameter description from a JSON export."""
    number = (int, float)
    return ParameterDescription(
        name=_require(data, "name", str),
        id=_parse_parameter_id(data["id"]),
        minimum=float(_require(data, "minimum", number)),
        maximum=float(_require(data, "maximum", number)),
        default=float(_require(data, "default", number)),
        flags=_parse_flags(_optional(data, "flags", list, [])),
        labels=tuple(str(label) for label in _optional(data, "labels", list, [])),
    )


def parse_event(data: dict[str, Any]) -> EventDescription:
    """Parse one event description from a JSON export."""
    number = (int, float)
    return EventDescription(
        path=_require(data, "path", str),
        id=StableId.parse(_require(data, "id", str)),
        parameters=tuple(parse_parameter(p) for p in _optional(data, "parameters", list, [])),
        is_3d=_optional(data, "is_3d", bool, False),
        is_stream=_optional(data, "is_stream", bool, False),
        is_oneshot=_optional(data, "is_oneshot", bool, False),
        min_distance=float(_optional(data, "min_distance", number, 0.0)),
        max_distance=float(_optional(data, "max_distance", number, 0.0)),
        length=_optional(data, "length", int, 0),
    )


def parse_bank_metadata(data: Any) -> BankMetadata:
    """Parse a whole bank export.

    Raises:
        KeyError, TypeError, ValueError: On structurally invalid input.
        InvalidIdentifierError: On unparseable identifiers.
    """
    if not isinstance(data, dict):
        raise TypeError("export must be a JSON object")
    return BankMetadata(
        id=StableId.parse(_optional(data, "id", str, "")),
        studio_path=_require(data, "path", str),
        events=tuple(parse_event(e) for e in _optional(data, "events", list, [])),
        global_parameters=tuple(
            parse_parameter(p) for p in _optional(data, "global_parameters", list, [])
        ),
    )
