"""Shared pytest fixtures."""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from helpers import RAIN_ID, STEPS_ID, WIND_ID, BankFolder, event_json, param_json

from studio_index.cache.entries import StableId
from studio_index.config import Config

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    path = Path(tempfile.mkdtemp())
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def bank_folder(temp_dir: Path) -> BankFolder:
    """A small single-platform project.

    ``Master`` holds the global ``Weather`` parameter, ``sfx/Ambience``
    holds ``event:/amb/wind`` and ``event:/amb/rain`` and ``sfx/Steps``
    holds ``event:/sfx/steps``, which is also in ``Master``.
    """
    folder = BankFolder(temp_dir / "banks")
    folder.add_bank("Master.strings", bank_id=StableId(0x1000))
    steps = event_json(
        "event:/sfx/steps",
        STEPS_ID,
        [
            param_json(
                "Surface", 7, maximum=2.0, flags=["labeled"], labels=["grass", "wood", "stone"]
            )
        ],
        is_oneshot=True,
        length=350,
    )
    folder.add_bank(
        "Master",
        bank_id=StableId(0x1001),
        events=[steps],
        global_parameters=[param_json("Weather", 1, 1, flags=["global"], default=0.25)],
    )
    folder.add_bank(
        "sfx/Ambience",
        events=[
            event_json(
                "event:/amb/wind",
                WIND_ID,
                [
                    param_json("Strength", 2, default=0.5),
                    param_json("Distance", 3, flags=["readonly"]),
                    param_json("Weather", 1, 1, flags=["global"], default=0.25),
                ],
                is_3d=True,
                min_distance=1.0,
                max_distance=40.0,
            ),
            event_json("event:/amb/rain", RAIN_ID, is_stream=True, length=12000),
        ],
    )
    folder.add_bank("sfx/Steps", events=[steps])
    return folder


@pytest.fixture
def bank_config(bank_folder: BankFolder, temp_dir: Path) -> Config:
    """A Config pointing at ``bank_folder`` with the cache in its own dir."""
    return Config(source_bank_path=bank_folder.root, cache_dir=temp_dir / "cache")


@pytest.fixture
def sample_config(temp_dir: Path, bank_folder: BankFolder) -> Path:
    """Create a sample config file pointing at ``bank_folder``."""
    config_path = temp_dir / "config.toml"
    config_path.write_text(f"""[paths]
source_bank_path = "{bank_folder.root.as_posix()}"
cache_dir = "{(temp_dir / "cache").as_posix()}"

[linkage]
mode = "path"

[display]
colored_output = false
""")
    return config_path
