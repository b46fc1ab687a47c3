"""Resolve event references against a cache snapshot.

A reference carries both an event path and the event's stable id.  The
linkage mode decides which of the two is authoritative; the other one
is checked against the resolved event and can be repaired.  Resolution
is a pure function of the reference, the linkage mode and the snapshot:
nothing here mutates the cache.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum

from studio_index.cache.entries import Cache, EventEntry, StableId
from studio_index.exceptions import MalformedReferenceError

UPDATER_COMMAND = "studio-index check-refs --repair"


class LinkageMode(Enum):
    """Which half of a reference is the source of truth."""

    PATH = "path"
    GUID = "guid"


@dataclass(frozen=True)
class Reference:
    """A consumer-held reference to an event.

    A reference is well-formed when at least one of ``path`` and ``guid``
    is set.  A null guid means "unset", not "invalid".
    """

    path: str = ""
    guid: StableId = StableId.NULL

    @property
    def is_null(self) -> bool:
        return not self.path and self.guid.is_null

    @classmethod
    def for_event(cls, event: EventEntry) -> Reference:
        return cls(path=event.path, guid=event.id)

    @classmethod
    def parse(cls, text: str) -> Reference:
        """Braced GUID text becomes an id reference, anything else a path."""
        text = text.strip()
        if text.startswith("{"):
            return cls(guid=StableId.parse(text))
        return cls(path=text)

    def replace_path(self, path: str) -> Reference:
        return dataclasses.replace(self, path=path)

    def replace_guid(self, guid: StableId) -> Reference:
        return dataclasses.replace(self, guid=guid)

    def __str__(self) -> str:
        return f"{self.guid} ({self.path})"


class MismatchKind(Enum):
    """Kinds of drift between a reference and the event it resolves to."""

    GUID_MISMATCH = "guid_mismatch"
    PATH_MISMATCH = "path_mismatch"
    MOVED = "moved"


@dataclass(frozen=True)
class MismatchInfo:
    """A detected drift and the repair that fixes it.

    Attributes:
        kind: What drifted.
        message: One-line summary.
        help_text: Longer explanation for the user.
        repair_tooltip: Description of the repair action.
        field: Reference field the repair rewrites, ``"guid"`` or ``"path"``.
        value: New value for that field.
    """

    kind: MismatchKind
    message: str
    help_text: str
    repair_tooltip: str
    field: str
    value: str | StableId

    def apply(self, reference: Reference) -> Reference:
        if isinstance(self.value, StableId):
            return reference.replace_guid(self.value)
        return reference.replace_path(str(self.value))


class ReferenceState(Enum):
    """Outcome of checking one reference."""

    OK = "ok"
    MALFORMED = "malformed"
    NOT_FOUND = "not_found"
    MISMATCH = "mismatch"
    MOVED = "moved"


@dataclass(frozen=True)
class ReferenceStatus:
    """Result of :meth:`Resolver.check`."""

    state: ReferenceState
    event: EventEntry | None = None
    mismatch: MismatchInfo | None = None

    @property
    def repairable(self) -> bool:
        return self.mismatch is not None


def _guid_mismatch(event: EventEntry) -> MismatchInfo:
    return MismatchInfo(
        kind=MismatchKind.GUID_MISMATCH,
        message="GUID doesn't match path",
        help_text=(
            "The GUID on this reference doesn't match the path.\n"
            "Repair it to update the GUID to match the path, or run "
            f"'{UPDATER_COMMAND}' to fix every reference in a manifest."
        ),
        repair_tooltip=f"Repair: set GUID to {event.id}",
        field="guid",
        value=event.id,
    )


def _path_mismatch(event: EventEntry) -> MismatchInfo:
    return MismatchInfo(
        kind=MismatchKind.PATH_MISMATCH,
        message="Path doesn't match GUID",
        help_text=(
            "The path on this reference doesn't match the GUID.\n"
            "Repair it to update the path to match the GUID, or run "
            f"'{UPDATER_COMMAND}' to fix every reference in a manifest."
        ),
        repair_tooltip=f"Repair: set path to '{event.path}'",
        field="path",
        value=event.path,
    )


def _moved(event: EventEntry) -> MismatchInfo:
    return MismatchInfo(
        kind=MismatchKind.MOVED,
        message=f"Moved to {event.path}",
        help_text=(
            "This event has been moved in the authoring project.\n"
            "Repair it to adopt the new path."
        ),
        repair_tooltip=f"Repair: set path to '{event.path}'",
        field="path",
        value=event.path,
    )


class Resolver:
    """Dual-key lookup and drift detection over one cache snapshot.

    Args:
        cache: The snapshot to resolve against.
        linkage: Which reference field is authoritative.
    """

    def __init__(self, cache: Cache, linkage: LinkageMode) -> None:
        self.cache = cache
        self.linkage = linkage

    def find_by_path(self, path: str) -> EventEntry | None:
        return self.cache.find_event_by_path(path)

    def find_by_id(self, guid: StableId) -> EventEntry | None:
        return self.cache.find_event_by_id(guid)

    def find(self, path_or_guid: str) -> EventEntry | None:
        """Look up by id when given braced GUID text, by path otherwise."""
        if path_or_guid.startswith("{"):
            return self.find_by_id(StableId.parse(path_or_guid))
        return self.find_by_path(path_or_guid)

    def resolve(self, reference: Reference) -> EventEntry | None:
        """Resolve *reference* through its authoritative field.

        Returns None when the event isn't in the cache or the reference
        is malformed.
        """
        if reference.is_null:
            return None
        if self.linkage is LinkageMode.PATH:
            return self.find_by_path(reference.path)
        return self.find_by_id(reference.guid)

    def detect_mismatch(self, reference: Reference) -> MismatchInfo | None:
        """Check the non-authoritative field against the resolved event.

        Only one kind of mismatch is ever reported: under path linkage the
        guid is checked (an unset guid counts as a mismatch), under guid
        linkage the path is.
        """
        event = self.resolve(reference)
        if event is None:
            return None
        if self.linkage is LinkageMode.PATH:
            if reference.guid != event.id:
                return _guid_mismatch(event)
        elif reference.path != event.path:
            return _path_mismatch(event)
        return None

    def detect_rename(self, reference: Reference) -> EventEntry | None:
        """Return the event *reference* points at if it was moved.

        Only applies under path linkage with a set guid: the guid still
        resolves, but to an event at a different path.
        """
        if self.linkage is not LinkageMode.PATH or reference.guid.is_null:
            return None
        event = self.find_by_id(reference.guid)
        if event is not None and event.path != reference.path:
            return event
        return None

    def rename_info(self, reference: Reference) -> MismatchInfo | None:
        """The repair for a moved event, if *reference* points at one."""
        event = self.detect_rename(reference)
        if event is None:
            return None
        return _moved(event)

    def repair(self, reference: Reference, info: MismatchInfo) -> Reference:
        """Apply the repair described by *info* and return the new reference.

        Raises:
            MalformedReferenceError: If *reference* has neither path nor guid.
        """
        if reference.is_null:
            raise MalformedReferenceError()
        return info.apply(reference)

    def check(self, reference: Reference) -> ReferenceStatus:
        """Classify *reference* and attach the repair when there is one.

        A reference whose path no longer resolves under path linkage, but
        whose guid does, is reported as moved.
        """
        if reference.is_null:
            return ReferenceStatus(ReferenceState.MALFORMED)

        event = self.resolve(reference)
        if event is not None:
            mismatch = self.detect_mismatch(reference)
            if mismatch is None:
                return ReferenceStatus(ReferenceState.OK, event)
            return ReferenceStatus(ReferenceState.MISMATCH, event, mismatch)

        moved = self.detect_rename(reference)
        if moved is not None:
            return ReferenceStatus(ReferenceState.MOVED, moved, _moved(moved))
        return ReferenceStatus(ReferenceState.NOT_FOUND)
