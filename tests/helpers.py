"""Builders for on-disk bank folders and authoring-tool JSON exports."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, text

from studio_index.cache.entries import StableId
from studio_index.cache.session import CACHE_DB_NAME

WIND_ID = StableId(0xABCD)
RAIN_ID = StableId(0xBEEF)
STEPS_ID = StableId(0x5157)


def param_json(
    name: str,
    data1: int,
    data2: int = 0,
    *,
    minimum: float = 0.0,
    maximum: float = 1.0,
    default: float = 0.0,
    flags: list[str] | None = None,
    labels: list[str] | None = None,
) -> dict[str, Any]:
    """A parameter description as the authoring tool exports it."""
    return {
        "name": name,
        "id": {"data1": data1, "data2": data2},
        "minimum": minimum,
        "maximum": maximum,
        "default": default,
        "flags": flags or [],
        "labels": labels or [],
    }


def event_json(
    path: str,
    guid: StableId,
    parameters: list[dict[str, Any]] | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """An event description as the authoring tool exports it."""
    data = {"path": path, "id": str(guid), "parameters": parameters or []}
    data.update(fields)
    return data


class BankFolder:
    """A bank folder on disk with a JSON export next to every bank."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self._clock = 1_700_000_000
        self._next_id = 0x2000
        root.mkdir(parents=True, exist_ok=True)

    def add_bank(
        self,
        name: str,
        *,
        events: list[dict[str, Any]] | None = None,
        global_parameters: list[dict[str, Any]] | None = None,
        bank_id: StableId | None = None,
        studio_path: str | None = None,
        size: int = 64,
        export: dict[str, Any] | None = None,
    ) -> Path:
        """Write ``<name>.bank`` and its export; returns the bank path.

        Every write gets a newer modification time than the previous one.
        """
        bank_path = self.root / f"{name}.bank"
        bank_path.parent.mkdir(parents=True, exist_ok=True)
        bank_path.write_bytes(b"\0" * size)
        if export is None:
            self._next_id += 1
            export = {
                "id": str(bank_id or StableId(self._next_id)),
                "path": studio_path or f"bank:/{name}",
                "events": events or [],
                "global_parameters": global_parameters or [],
            }
        bank_path.with_name(bank_path.name + ".json").write_text(json.dumps(export))
        self.touch(bank_path)
        return bank_path

    def remove_bank(self, name: str) -> None:
        bank_path = self.root / f"{name}.bank"
        bank_path.unlink()
        bank_path.with_name(bank_path.name + ".json").unlink()
        # removing a bank alone doesn't change the newest write time
        self.touch(self.root / "Master.strings.bank")

    def touch(self, path: Path) -> None:
        self._clock += 10
        os.utime(path, (self._clock, self._clock))


def seed_old_cache_layout(cache_dir: Path) -> None:
    """Write a cache database laid out by an older release."""
    cache_dir.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{cache_dir / CACHE_DB_NAME}")
    with engine.begin() as conn:
        conn.execute(
            text("CREATE TABLE cache_state (id INTEGER PRIMARY KEY, cache_version INTEGER)")
        )
        conn.execute(text("INSERT INTO cache_state VALUES (1, 2)"))
        conn.execute(text("CREATE TABLE banks (path TEXT PRIMARY KEY, name TEXT)"))
        conn.execute(text("INSERT INTO banks VALUES ('/old/Master.bank', 'Master')"))
    engine.dispose()
