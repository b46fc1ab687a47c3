"""Build and refresh the event cache from the compiled bank folder."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from studio_index.cache.entries import (
    BankEntry,
    Cache,
    EventEntry,
    ParamEntry,
    ParameterId,
    timestamp_to_ticks,
)
from studio_index.exceptions import (
    BankFolderNotFoundError,
    DuplicateEventPathError,
    MetadataReadError,
    NoBanksFoundError,
)
from studio_index.utils.output import debug, verbose

if TYPE_CHECKING:
    from collections.abc import Iterable

    from studio_index.cache.metadata import (
        BankMetadata,
        EventDescription,
        MetadataProvider,
        ParameterDescription,
    )

BANK_EXTENSION = ".bank"
STRINGS_BANK_EXTENSION = ".strings.bank"

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Bank folder scanner
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BankFile:
    """A compiled bank file as found on disk."""

    path: Path
    last_modified: int
    file_sizes: dict[str, int] = field(default_factory=dict)

    @property
    def is_strings_bank(self) -> bool:
        return self.path.name.endswith(STRINGS_BANK_EXTENSION)


@dataclass(frozen=True)
class BankScan:
    """Result of scanning the bank folder.

    Attributes:
        base_path: Folder bank names are derived relative to.
        strings_banks: ``*.strings.bank`` files.
        banks: All other bank files.
        write_time: Newest write time across all bank files, in ticks.
    """

    base_path: Path
    strings_banks: tuple[BankFile, ...]
    banks: tuple[BankFile, ...]
    write_time: int


def _is_resource_fork(path: Path) -> bool:
    # macOS writes "._" companions onto FAT32 volumes
    return path.name.startswith("._")


def scan_bank_files(
    source_bank_path: Path,
    platforms: Iterable[str] = (),
    editor_platform: str | None = None,
) -> BankScan:
    """Scan the bank folder for compiled banks.

    Multi-platform projects keep one build folder per platform under
    *source_bank_path*; the folder of *editor_platform* is scanned and the
    size of each bank is recorded for every platform folder that has it.
    Single-platform projects keep banks directly in *source_bank_path* and
    record sizes under the ``""`` key.

    Raises:
        BankFolderNotFoundError: If the folder to scan doesn't exist.
        NoBanksFoundError: If the folder holds no strings bank.
    """
    platforms = list(platforms)
    if platforms:
        folder = source_bank_path / (editor_platform or platforms[0])
    else:
        folder = source_bank_path

    if not folder.is_dir():
        raise BankFolderNotFoundError(folder)

    debug(f"Scanning {folder} for *{BANK_EXTENSION}")
    paths = sorted(p for p in folder.rglob(f"*{BANK_EXTENSION}") if not _is_resource_fork(p))

    files: list[BankFile] = []
    for path in paths:
        stat = path.stat()
        if platforms:
            relative = path.relative_to(folder)
            sizes = {}
            for platform in platforms:
                platform_path = source_bank_path / platform / relative
                if platform_path.is_file():
                    sizes[platform] = platform_path.stat().st_size
        else:
            sizes = {"": stat.st_size}
        files.append(BankFile(path, timestamp_to_ticks(stat.st_mtime), sizes))

    strings_banks = tuple(f for f in files if f.is_strings_bank)
    if not strings_banks:
        raise NoBanksFoundError(folder)

    verbose(f"Found {len(files)} bank files ({len(strings_banks)} strings banks)")
    return BankScan(
        base_path=folder,
        strings_banks=strings_banks,
        banks=tuple(f for f in files if not f.is_strings_bank),
        write_time=max(f.last_modified for f in files),
    )


# ---------------------------------------------------------------------------
# Entry construction
# ---------------------------------------------------------------------------


def _bank_entry(bank_file: BankFile, base_path: Path, metadata: BankMetadata) -> BankEntry:
    entry = BankEntry.from_file(
        str(bank_file.path),
        str(base_path),
        file_sizes=bank_file.file_sizes,
        last_modified=bank_file.last_modified,
    )
    entry.set_studio_path(metadata.studio_path)
    return entry


def _param_entry(description: ParameterDescription, studio_path: str) -> ParamEntry:
    return ParamEntry(
        name=description.name,
        minimum=description.minimum,
        maximum=description.maximum,
        default=description.default,
        id=description.id,
        is_global=description.is_global,
        type=description.parameter_type,
        studio_path=studio_path,
        labels=description.labels,
    )


def _carry_stale(
    fresh: list[ParamEntry], previous: Iterable[ParamEntry]
) -> list[ParamEntry]:
    """Append previously live parameters the metadata no longer reports.

    They are kept for one more generation with ``exists=False`` so callers
    can tell a removed parameter from one that never existed.  Entries that
    were already stale, or whose name has been reused, are dropped.
    """
    ids = {p.id for p in fresh}
    names = {p.name for p in fresh}
    result = list(fresh)
    for param in previous:
        if not param.exists or param.id in ids or param.name in names:
            continue
        result.append(dataclasses.replace(param, exists=False))
        names.add(param.name)
    return result


@dataclass
class _EventDraft:
    description: EventDescription
    banks: list[BankEntry] = field(default_factory=list)


def _event_parameters(
    description: EventDescription, previous: EventEntry | None
) -> list[ParamEntry]:
    leaf = description.path.rsplit("/", 1)[-1]
    fresh: list[ParamEntry] = []
    seen: set[ParameterId] = set()
    for param in description.parameters:
        if not param.is_controllable or param.id in seen:
            continue
        seen.add(param.id)
        fresh.append(_param_entry(param, f"parameter:/{leaf}/{param.name}"))
    if previous is None:
        return fresh
    return _carry_stale(fresh, previous.parameters)


def _event_entry(draft: _EventDraft, previous: Cache | None) -> EventEntry:
    description = draft.description
    prior = previous.find_event_by_id(description.id) if previous is not None else None
    return EventEntry(
        path=description.path,
        id=description.id,
        banks=tuple(draft.banks),
        parameters=tuple(_event_parameters(description, prior)),
        is_3d=description.is_3d,
        is_stream=description.is_stream,
        is_oneshot=description.is_oneshot,
        min_distance=description.min_distance,
        max_distance=description.max_distance,
        length=description.length,
    )


# ---------------------------------------------------------------------------
# Cache builder orchestration
# ---------------------------------------------------------------------------


def build_cache(
    scan: BankScan,
    provider: MetadataProvider,
    previous: Cache | None = None,
) -> Cache:
    """Build a new cache snapshot from a bank folder scan.

    The snapshot is assembled completely before it is returned; nothing
    in *previous* is modified.  Parameters that *previous* knew about but
    the metadata no longer reports are carried over as stale.

    Raises:
        MetadataReadError: If any bank's metadata can't be read, or is
            internally inconsistent.
        DuplicateEventIdError: If two events share a stable id.
        DuplicateEventPathError: If one event path carries two ids.
    """
    base_path = scan.base_path

    # Strings banks: one per master bank; DLC projects cloned from the same
    # Studio project repeat the same strings bank id, so keep only the first.
    strings_banks: list[BankEntry] = []
    master_bank_names: set[str] = set()
    seen_strings_ids = set()
    for bank_file in scan.strings_banks:
        metadata = provider.read_bank(bank_file.path)
        if metadata.id in seen_strings_ids:
            log.info("Skipping strings bank %s with duplicate id %s", bank_file.path, metadata.id)
            continue
        seen_strings_ids.add(metadata.id)
        strings_banks.append(_bank_entry(bank_file, base_path, metadata))
        master_bank_names.add(
            bank_file.path.name[: -len(STRINGS_BANK_EXTENSION)] + BANK_EXTENSION
        )

    banks: list[BankEntry] = list(strings_banks)
    master_banks: list[BankEntry] = []
    drafts: dict[str, _EventDraft] = {}
    global_params: list[ParamEntry] = []
    global_ids: set[ParameterId] = set()

    verbose(f"Reading metadata for {len(scan.banks)} banks...")
    for bank_file in scan.banks:
        metadata = provider.read_bank(bank_file.path)
        bank = _bank_entry(bank_file, base_path, metadata)
        banks.append(bank)
        if bank_file.path.name in master_bank_names:
            master_banks.append(bank)

        for event in metadata.events:
            draft = drafts.get(event.path)
            if draft is None:
                draft = drafts[event.path] = _EventDraft(event)
            elif draft.description.id != event.id:
                raise DuplicateEventPathError(event.path, draft.description.id, event.id)
            draft.banks.append(bank)

        for param in metadata.global_parameters:
            if not param.is_global or param.id in global_ids:
                continue
            global_ids.add(param.id)
            try:
                global_params.append(_param_entry(param, f"parameter:/{param.name}"))
            except ValueError as e:
                raise MetadataReadError(bank_file.path, str(e)) from e

    events: list[EventEntry] = []
    for draft in drafts.values():
        try:
            events.append(_event_entry(draft, previous))
        except ValueError as e:
            raise MetadataReadError(Path(draft.banks[0].path), str(e)) from e

    if previous is not None:
        global_params = _carry_stale(global_params, previous.parameters)

    cache = Cache(
        banks=banks,
        events=events,
        parameters=global_params,
        master_banks=master_banks,
        strings_banks=strings_banks,
        strings_bank_write_time=scan.write_time,
    )
    stale = sum(1 for p in cache.parameters if not p.exists)
    log.info(
        "Cache built: %d banks, %d events, %d global parameters (%d stale)",
        len(cache.banks),
        len(cache.events),
        len(cache.parameters),
        stale,
    )
    return cache


def refresh_cache(
    scan: BankScan,
    provider: MetadataProvider,
    previous: Cache | None,
) -> Cache:
    """Return *previous* if it is still current, otherwise build a new cache.

    A cache is current when its layout version matches and no bank file
    has been written since it was built.
    """
    if (
        previous is not None
        and previous.is_current
        and previous.strings_bank_write_time == scan.write_time
    ):
        verbose("Cache is current, no refresh needed")
        return previous
    return build_cache(scan, provider, previous)
