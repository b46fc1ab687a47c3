"""Persist cache snapshots to the cache database and load them back."""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy.exc import OperationalError

from studio_index.cache.entries import (
    CURRENT_CACHE_VERSION,
    BankEntry,
    Cache,
    EventEntry,
    ParamEntry,
    ParameterId,
    ParameterType,
    StableId,
)
from studio_index.cache.models import (
    BankFileSize,
    CacheBank,
    CacheEvent,
    CacheParameter,
    CacheState,
    EventBank,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

log = logging.getLogger(__name__)

_ALL_MODELS = [BankFileSize, CacheBank, CacheEvent, CacheParameter, CacheState, EventBank]


def clear_cache_tables(session: Session) -> None:
    """Delete every persisted row, leaving the schema in place."""
    for model in _ALL_MODELS:
        session.query(model).delete()
    session.flush()


def _parameter_row(param: ParamEntry, event_path: str | None, position: int) -> CacheParameter:
    return CacheParameter(
        event_path=event_path,
        name=param.name,
        studio_path=param.studio_path,
        minimum=param.minimum,
        maximum=param.maximum,
        default_value=param.default,
        data1=param.id.data1,
        data2=param.id.data2,
        type=param.type.value,
        is_global=param.is_global,
        labels=json.dumps(list(param.labels)) if param.labels else None,
        exists=param.exists,
        position=position,
    )


def save_cache(session: Session, cache: Cache) -> None:
    """Replace the persisted cache with *cache* in a single transaction."""
    clear_cache_tables(session)

    master_paths = {bank.path for bank in cache.master_banks}
    strings_paths = {bank.path for bank in cache.strings_banks}
    for position, bank in enumerate(cache.banks):
        session.add(
            CacheBank(
                path=bank.path,
                name=bank.name,
                studio_path=bank.studio_path,
                last_modified=bank.last_modified,
                exists=bank.exists,
                is_master=bank.path in master_paths,
                is_strings=bank.path in strings_paths,
                position=position,
            )
        )
        for platform, size in bank.file_sizes.items():
            session.add(BankFileSize(bank_path=bank.path, platform=platform, size=size))

    for position, event in enumerate(cache.events):
        session.add(
            CacheEvent(
                path=event.path,
                guid=str(event.id),
                is_3d=event.is_3d,
                is_stream=event.is_stream,
                is_oneshot=event.is_oneshot,
                min_distance=event.min_distance,
                max_distance=event.max_distance,
                length=event.length,
                position=position,
            )
        )
        for bank_position, bank in enumerate(event.banks):
            session.add(
                EventBank(event_path=event.path, bank_path=bank.path, position=bank_position)
            )
        for param_position, param in enumerate(event.parameters):
            session.add(_parameter_row(param, event.path, param_position))

    for position, param in enumerate(cache.parameters):
        session.add(_parameter_row(param, None, position))

    session.add(
        CacheState(
            id=1,
            cache_version=cache.cache_version,
            strings_bank_write_time=cache.strings_bank_write_time,
            last_updated=datetime.now(timezone.utc).isoformat(),
            bank_count=len(cache.banks),
            event_count=len(cache.events),
        )
    )
    session.commit()
    log.debug("Saved cache: %r", cache)


def _param_entry(row: CacheParameter) -> ParamEntry:
    return ParamEntry(
        name=row.name,
        minimum=row.minimum,
        maximum=row.maximum,
        default=row.default_value,
        id=ParameterId(row.data1, row.data2),
        is_global=row.is_global,
        type=ParameterType(row.type),
        studio_path=row.studio_path,
        labels=tuple(json.loads(row.labels)) if row.labels else (),
        exists=row.exists,
    )


def load_cache(session: Session) -> Cache | None:
    """Load the persisted cache.

    Returns None when nothing has been persisted yet or when the stored
    layout version differs from :data:`CURRENT_CACHE_VERSION`; callers
    rebuild in both cases.
    """
    try:
        state = session.get(CacheState, 1)
    except OperationalError as exc:
        log.info("Persisted cache has an unreadable layout, ignoring it: %s", exc)
        return None

    if state is None:
        return None
    if state.cache_version != CURRENT_CACHE_VERSION:
        log.info(
            "Event cache is in an old format (version %s, current %s)",
            state.cache_version,
            CURRENT_CACHE_VERSION,
        )
        return None

    sizes: dict[str, dict[str, int]] = defaultdict(dict)
    for row in session.query(BankFileSize):
        sizes[row.bank_path][row.platform] = row.size

    banks: dict[str, BankEntry] = {}
    master_banks: list[BankEntry] = []
    strings_banks: list[BankEntry] = []
    for row in session.query(CacheBank).order_by(CacheBank.position):
        bank = BankEntry(
            path=row.path,
            name=row.name,
            studio_path=row.studio_path,
            file_sizes=sizes.get(row.path, {}),
            last_modified=row.last_modified,
            exists=row.exists,
        )
        banks[row.path] = bank
        if row.is_master:
            master_banks.append(bank)
        if row.is_strings:
            strings_banks.append(bank)

    event_banks: dict[str, list[BankEntry]] = defaultdict(list)
    for row in session.query(EventBank).order_by(EventBank.event_path, EventBank.position):
        event_banks[row.event_path].append(banks[row.bank_path])

    event_params: dict[str, list[ParamEntry]] = defaultdict(list)
    global_params: list[ParamEntry] = []
    for row in session.query(CacheParameter).order_by(CacheParameter.position):
        if row.event_path is None:
            global_params.append(_param_entry(row))
        else:
            event_params[row.event_path].append(_param_entry(row))

    events = [
        EventEntry(
            path=row.path,
            id=StableId.parse(row.guid),
            banks=tuple(event_banks.get(row.path, ())),
            parameters=tuple(event_params.get(row.path, ())),
            is_3d=row.is_3d,
            is_stream=row.is_stream,
            is_oneshot=row.is_oneshot,
            min_distance=row.min_distance,
            max_distance=row.max_distance,
            length=row.length,
        )
        for row in session.query(CacheEvent).order_by(CacheEvent.position)
    ]

    return Cache(
        banks=banks.values(),
        events=events,
        parameters=global_params,
        master_banks=master_banks,
        strings_banks=strings_banks,
        cache_version=state.cache_version,
        strings_bank_write_time=state.strings_bank_write_time,
    )
