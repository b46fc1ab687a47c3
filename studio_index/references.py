"""Reference manifests: named event references kept by a consuming project.

A manifest is a JSON file mapping reference names to path/guid pairs::

    {
      "references": {
        "player/footsteps": {"path": "event:/sfx/footsteps", "guid": "{...}"},
        "ambience": {"path": "event:/amb/wind"}
      }
    }

Scanning a manifest produces one task per reference that needs
attention; applying the enabled, repairable tasks rewrites the
references the way the resolver's repair actions describe.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from studio_index.cache.entries import StableId
from studio_index.exceptions import InvalidIdentifierError, ReferenceFileError
from studio_index.resolver import Reference, ReferenceState

if TYPE_CHECKING:
    from studio_index.resolver import Resolver, ReferenceStatus


@dataclass
class ReferenceTask:
    """A reference that is not OK, with its status and (maybe) a repair."""

    name: str
    reference: Reference
    status: ReferenceStatus
    enabled: bool = True

    @property
    def repairable(self) -> bool:
        return self.status.repairable

    @property
    def description(self) -> str:
        if self.status.mismatch is not None:
            return self.status.mismatch.repair_tooltip
        if self.status.state is ReferenceState.MALFORMED:
            return "Reference has neither a path nor a GUID"
        return f"Event not found: {self.reference}"


def load_references(path: Path) -> dict[str, Reference]:
    """Read a reference manifest.

    Raises:
        ReferenceFileError: If the file is missing or not a valid manifest.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ReferenceFileError(path, "file not found") from e
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ReferenceFileError(path, str(e)) from e

    if not isinstance(data, dict) or not isinstance(data.get("references"), dict):
        raise ReferenceFileError(path, "expected an object with a 'references' object")

    references: dict[str, Reference] = {}
    for name, raw in data["references"].items():
        references[name] = _parse_reference(path, name, raw)
    return references


def _parse_reference(path: Path, name: str, raw: Any) -> Reference:
    if not isinstance(raw, dict):
        raise ReferenceFileError(path, f"reference '{name}' must be an object")
    event_path = raw.get("path") or ""
    if not isinstance(event_path, str):
        raise ReferenceFileError(path, f"reference '{name}': path must be a string")
    guid_text = raw.get("guid")
    if guid_text is not None and not isinstance(guid_text, str):
        raise ReferenceFileError(path, f"reference '{name}': guid must be a string")
    try:
        guid = StableId.parse(guid_text)
    except InvalidIdentifierError as e:
        raise ReferenceFileError(path, f"reference '{name}': {e}") from e
    return Reference(path=event_path, guid=guid)


def save_references(path: Path, references: dict[str, Reference]) -> None:
    """Write *references* back as a manifest, preserving their order."""
    data: dict[str, Any] = {"references": {}}
    for name, reference in references.items():
        entry: dict[str, str] = {}
        if reference.path:
            entry["path"] = reference.path
        if not reference.guid.is_null:
            entry["guid"] = str(reference.guid)
        data["references"][name] = entry
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def scan_references(resolver: Resolver, references: dict[str, Reference]) -> list[ReferenceTask]:
    """Check every reference and return tasks for those that aren't OK."""
    tasks: list[ReferenceTask] = []
    for name, reference in references.items():
        status = resolver.check(reference)
        if status.state is ReferenceState.OK:
            continue
        tasks.append(ReferenceTask(name=name, reference=reference, status=status))
    return tasks


def apply_tasks(
    resolver: Resolver,
    references: dict[str, Reference],
    tasks: list[ReferenceTask],
) -> dict[str, Reference]:
    """Return a copy of *references* with enabled repairable tasks applied."""
    updated = dict(references)
    for task in tasks:
        if not task.enabled or task.status.mismatch is None:
            continue
        updated[task.name] = resolver.repair(task.reference, task.status.mismatch)
    return updated
