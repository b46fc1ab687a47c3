"""In-memory entries mirrored from the authoring project.

A :class:`Cache` is an immutable snapshot of one build: it owns every
bank, event and parameter entry and the lookup indexes over them.  A
rebuild always produces a new snapshot; published snapshots are never
patched.
"""

from __future__ import annotations

import posixpath
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import ClassVar

from studio_index.exceptions import (
    BankPathError,
    DuplicateEventIdError,
    DuplicateEventPathError,
    InvalidIdentifierError,
)

# Bump whenever the persisted layout changes; older caches are discarded.
CURRENT_CACHE_VERSION = 10

_WORD_MASK = 0xFFFFFFFF

# ---------------------------------------------------------------------------
# Tick timestamps (100 ns intervals since 0001-01-01)
# ---------------------------------------------------------------------------

TICKS_PER_SECOND = 10_000_000
_TICKS_EPOCH = datetime(1, 1, 1, tzinfo=timezone.utc)
_UNIX_EPOCH_TICKS = 621_355_968_000_000_000


def timestamp_to_ticks(timestamp: float) -> int:
    """Convert a POSIX timestamp (e.g. ``st_mtime``) to ticks."""
    return _UNIX_EPOCH_TICKS + round(timestamp * TICKS_PER_SECOND)


def ticks_to_datetime(ticks: int) -> datetime:
    """Convert ticks to a timezone-aware UTC datetime."""
    return _TICKS_EPOCH + timedelta(microseconds=ticks // 10)


def normalize_path(path: str) -> str:
    """Return *path* with forward slashes as the only separator."""
    return str(path).replace("\\", "/")


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class StableId:
    """128-bit identifier assigned by the authoring tool.

    Survives renames and moves.  The all-zero value means "unset".
    """

    value: int = 0

    NULL: ClassVar[StableId]

    def __post_init__(self) -> None:
        if not 0 <= self.value < 1 << 128:
            raise InvalidIdentifierError(hex(self.value))

    @property
    def is_null(self) -> bool:
        return self.value == 0

    @property
    def words(self) -> tuple[int, int, int, int]:
        """The identifier split into four 32-bit words, most significant first."""
        return (
            (self.value >> 96) & _WORD_MASK,
            (self.value >> 64) & _WORD_MASK,
            (self.value >> 32) & _WORD_MASK,
            self.value & _WORD_MASK,
        )

    @classmethod
    def from_words(cls, data1: int, data2: int, data3: int, data4: int) -> StableId:
        """Compose an identifier from four 32-bit words."""
        value = 0
        for word in (data1, data2, data3, data4):
            if not 0 <= word <= _WORD_MASK:
                raise InvalidIdentifierError(hex(word))
            value = (value << 32) | word
        return cls(value)

    @classmethod
    def parse(cls, text: str | None) -> StableId:
        """Parse braced GUID text, bare UUID text or ``0x`` hex.

        Empty or missing text yields :attr:`NULL`.

        Raises:
            InvalidIdentifierError: If *text* is not a valid identifier.
        """
        if text is None:
            return cls.NULL
        raw = text.strip()
        if not raw:
            return cls.NULL
        try:
            if raw.lower().startswith("0x"):
                return cls(int(raw, 16))
            return cls(uuid.UUID(raw).int)
        except ValueError as e:
            raise InvalidIdentifierError(text) from e

    def __str__(self) -> str:
        return "{" + str(uuid.UUID(int=self.value)) + "}"


StableId.NULL = StableId(0)


@dataclass(frozen=True, order=True)
class ParameterId:
    """Compact parameter identifier made of two 32-bit words."""

    data1: int = 0
    data2: int = 0

    def __post_init__(self) -> None:
        for word in (self.data1, self.data2):
            if not 0 <= word <= _WORD_MASK:
                raise InvalidIdentifierError(hex(word))

    def as_int(self) -> int:
        """The 64-bit wire value."""
        return (self.data1 << 32) | self.data2

    @classmethod
    def from_int(cls, value: int) -> ParameterId:
        return cls((value >> 32) & _WORD_MASK, value & _WORD_MASK)

    def __str__(self) -> str:
        return f"{self.data1:08x}:{self.data2:08x}"


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


class ParameterType(Enum):
    """How a parameter's value space is interpreted."""

    CONTINUOUS = "continuous"
    DISCRETE = "discrete"
    LABELED = "labeled"


@dataclass(eq=False)
class ParamEntry:
    """A controllable parameter of an event, or a global parameter.

    Attributes:
        name: Parameter name, unique (case-sensitive) within its event.
        minimum: Lower bound of the value range.
        maximum: Upper bound of the value range.
        default: Default value, inside ``[minimum, maximum]``.
        id: Wire-level identifier.
        is_global: Global parameters are not scoped to an event instance.
        type: Value space interpretation.
        studio_path: Path in the authoring tool's namespace.
        labels: Value labels for labeled parameters.
        exists: False once the authoring metadata stopped reporting it.
    """

    name: str
    minimum: float
    maximum: float
    default: float
    id: ParameterId = field(default_factory=ParameterId)
    is_global: bool = False
    type: ParameterType = ParameterType.CONTINUOUS
    studio_path: str = ""
    labels: tuple[str, ...] = ()
    exists: bool = True

    def __post_init__(self) -> None:
        if self.minimum > self.maximum:
            raise ValueError(
                f"parameter '{self.name}': minimum {self.minimum} > maximum {self.maximum}"
            )
        if not self.minimum <= self.default <= self.maximum:
            raise ValueError(
                f"parameter '{self.name}': default {self.default} outside "
                f"[{self.minimum}, {self.maximum}]"
            )

    def __repr__(self) -> str:
        scope = "global" if self.is_global else "local"
        return f"<ParamEntry(name='{self.name}', {scope}, exists={self.exists})>"


@dataclass(eq=False)
class BankEntry:
    """A compiled bank file found in the bank folder.

    Attributes:
        path: Normalized (forward-slash) file path.
        name: Bank name derived from ``path`` and the bank folder.
        studio_path: Bank path in the authoring tool's namespace.
        file_sizes: Byte size per build platform (``""`` for single-platform).
        last_modified: File write time in ticks.
        exists: Whether the file was present when the cache was built.
    """

    path: str
    name: str
    studio_path: str = ""
    file_sizes: dict[str, int] = field(default_factory=dict)
    last_modified: int = 0
    exists: bool = True

    @staticmethod
    def calculate_name(file_path: str, base_path: str) -> str:
        """Derive a bank name from its file path relative to *base_path*.

        The base folder prefix and the final extension are removed and
        separators are normalized, so ``<base>/sfx/Weapons.bank`` becomes
        ``sfx/Weapons``.

        Raises:
            BankPathError: If *file_path* is not strictly inside *base_path*.
        """
        normalized = normalize_path(file_path)
        base = normalize_path(base_path).rstrip("/")
        prefix = base + "/"
        if not base or not normalized.startswith(prefix) or len(normalized) == len(prefix):
            raise BankPathError(file_path, base_path)
        relative = normalized[len(prefix) :]
        return posixpath.splitext(relative)[0]

    @classmethod
    def from_file(
        cls,
        file_path: str,
        base_path: str,
        *,
        file_sizes: dict[str, int] | None = None,
        last_modified: int = 0,
    ) -> BankEntry:
        """Create an entry for a bank file under *base_path*."""
        return cls(
            path=normalize_path(file_path),
            name=cls.calculate_name(file_path, base_path),
            file_sizes=dict(file_sizes or {}),
            last_modified=last_modified,
        )

    @property
    def leaf_name(self) -> str:
        return self.name.rsplit("/", 1)[-1]

    def set_studio_path(self, studio_path: str) -> None:
        """Record the bank's path in the authoring tool.

        Localized banks are exported under a per-locale name that no longer
        contains the bank's own name; for those the directory part of
        *studio_path* is kept and the local leaf name substituted.
        """
        leaf = self.leaf_name
        if leaf not in studio_path:
            studio_path = studio_path[: studio_path.rfind("/") + 1] + leaf
        self.studio_path = studio_path

    def __repr__(self) -> str:
        return f"<BankEntry(name='{self.name}', exists={self.exists})>"


@dataclass(eq=False)
class EventEntry:
    """A playable event and the banks that contain it."""

    path: str
    id: StableId
    banks: tuple[BankEntry, ...] = ()
    parameters: tuple[ParamEntry, ...] = ()
    is_3d: bool = False
    is_stream: bool = False
    is_oneshot: bool = False
    min_distance: float = 0.0
    max_distance: float = 0.0
    length: int = 0

    def __post_init__(self) -> None:
        self.banks = tuple(self.banks)
        self.parameters = tuple(self.parameters)
        if self.min_distance > self.max_distance:
            raise ValueError(
                f"event '{self.path}': min distance {self.min_distance} > "
                f"max distance {self.max_distance}"
            )
        if self.length < 0:
            raise ValueError(f"event '{self.path}': negative length {self.length}")
        names = [p.name for p in self.parameters]
        if len(names) != len(set(names)):
            raise ValueError(f"event '{self.path}': duplicate parameter names")

    @property
    def local_parameters(self) -> list[ParamEntry]:
        return sorted((p for p in self.parameters if not p.is_global), key=lambda p: p.name)

    @property
    def global_parameters(self) -> list[ParamEntry]:
        return sorted((p for p in self.parameters if p.is_global), key=lambda p: p.name)

    @property
    def bank_names(self) -> list[str]:
        return [bank.name for bank in self.banks]

    def parameter(self, name: str) -> ParamEntry | None:
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def __repr__(self) -> str:
        return f"<EventEntry(path='{self.path}', id={self.id})>"


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


class Cache:
    """Immutable snapshot of the authoring project.

    All collections are tuples and the lookup indexes are built once,
    here, so lookups by event path or id are O(1).

    Raises:
        DuplicateEventPathError: If two events share a path.
        DuplicateEventIdError: If two events share a stable id.
    """

    def __init__(
        self,
        *,
        banks: Iterable[BankEntry] = (),
        events: Iterable[EventEntry] = (),
        parameters: Iterable[ParamEntry] = (),
        master_banks: Iterable[BankEntry] = (),
        strings_banks: Iterable[BankEntry] = (),
        cache_version: int = CURRENT_CACHE_VERSION,
        strings_bank_write_time: int = 0,
    ) -> None:
        self.banks: tuple[BankEntry, ...] = tuple(banks)
        self.events: tuple[EventEntry, ...] = tuple(events)
        self.parameters: tuple[ParamEntry, ...] = tuple(parameters)
        self.master_banks: tuple[BankEntry, ...] = tuple(master_banks)
        self.strings_banks: tuple[BankEntry, ...] = tuple(strings_banks)
        self.cache_version = cache_version
        self.strings_bank_write_time = strings_bank_write_time

        self._events_by_path: dict[str, EventEntry] = {}
        self._events_by_id: dict[StableId, EventEntry] = {}
        for event in self.events:
            existing = self._events_by_path.get(event.path)
            if existing is not None:
                raise DuplicateEventPathError(event.path, existing.id, event.id)
            self._events_by_path[event.path] = event
            if event.id.is_null:
                continue
            existing = self._events_by_id.get(event.id)
            if existing is not None:
                raise DuplicateEventIdError(event.id, existing.path, event.path)
            self._events_by_id[event.id] = event

        self._banks_by_path = {bank.path: bank for bank in self.banks}
        self._parameters_by_name = {param.name: param for param in self.parameters}

    @classmethod
    def empty(cls) -> Cache:
        """Snapshot used when no bank folder is configured."""
        return cls()

    @property
    def is_current(self) -> bool:
        """Whether this snapshot was written by the current cache layout."""
        return self.cache_version == CURRENT_CACHE_VERSION

    @property
    def is_valid(self) -> bool:
        """Whether this snapshot was built from a bank folder."""
        return self.strings_bank_write_time != 0

    def find_event_by_path(self, path: str) -> EventEntry | None:
        return self._events_by_path.get(path)

    def find_event_by_id(self, event_id: StableId) -> EventEntry | None:
        if event_id.is_null:
            return None
        return self._events_by_id.get(event_id)

    def find_bank_by_path(self, path: str) -> BankEntry | None:
        return self._banks_by_path.get(normalize_path(path))

    def find_parameter(self, name: str) -> ParamEntry | None:
        """Look up a global parameter by name."""
        return self._parameters_by_name.get(name)

    def __repr__(self) -> str:
        return (
            f"<Cache(version={self.cache_version}, banks={len(self.banks)}, "
            f"events={len(self.events)}, parameters={len(self.parameters)})>"
        )
