"""Configuration management for studio-index."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

from studio_index.exceptions import (
    ConfigParseError,
    ConfigValidationError,
)
from studio_index.resolver import LinkageMode

DEFAULT_EDITOR_PLATFORM = "Desktop"


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".config" / "studio-index" / "config.toml"


@dataclass
class Config:
    """Application configuration.

    Attributes:
        source_bank_path: Folder the authoring tool builds banks into.
            None means no project is configured and the cache is empty.
        cache_dir: Directory for the cache database. Defaults to
            ``source_bank_path``.
        linkage: Which reference field is authoritative.
        build_platforms: Per-platform build folders under
            ``source_bank_path``. Empty for single-platform projects.
        editor_platform: Platform folder scanned for the editor.
        colored_output: Whether to use colored terminal output.
        config_path: Path the config was (or would have been) loaded from;
            ``save_config`` writes back here.
    """

    source_bank_path: Path | None = None
    cache_dir: Path | None = None
    linkage: LinkageMode = LinkageMode.PATH
    build_platforms: list[str] = field(default_factory=list)
    editor_platform: str = DEFAULT_EDITOR_PLATFORM
    colored_output: bool = True
    config_path: Path | None = None

    @property
    def effective_cache_dir(self) -> Path:
        """Where the cache database lives."""
        if self.cache_dir is not None:
            return self.cache_dir
        if self.source_bank_path is not None:
            return self.source_bank_path
        return Path.cwd()

    def validate(self) -> list[str]:
        """Validate configuration values.

        Returns:
            List of warning messages for non-fatal issues.
        """
        warnings: list[str] = []

        if self.source_bank_path is not None:
            self.source_bank_path = self.source_bank_path.expanduser().resolve()
            if not self.source_bank_path.exists():
                warnings.append(f"Bank folder not found: {self.source_bank_path}")
            elif self.build_platforms and not (
                self.source_bank_path / self.editor_platform
            ).is_dir():
                warnings.append(
                    f"Platform folder '{self.editor_platform}' not found in "
                    f"{self.source_bank_path}"
                )
        if self.cache_dir is not None:
            self.cache_dir = self.cache_dir.expanduser().resolve()

        if self.build_platforms and self.editor_platform not in self.build_platforms:
            warnings.append(
                f"platforms.editor_platform='{self.editor_platform}' is not one of "
                f"platforms.build_platforms"
            )

        return warnings


def load_config(config_path: Path | None = None) -> tuple[Config, list[str]]:
    """Load configuration from file or use defaults.

    Args:
        config_path: Explicit config file path. If None, uses default location.

    Returns:
        Tuple of (Config object, list of warning messages).

    Raises:
        ConfigParseError: If config file exists but has invalid syntax.
        ConfigValidationError: If config values are invalid.
    """
    warnings: list[str] = []

    if config_path is None:
        config_path = get_default_config_path()

    config_path = config_path.expanduser().resolve()

    if not config_path.exists():
        config = Config(config_path=config_path)
        warnings.append(
            f"No config file found at {config_path}. Using defaults. "
            f"Set [paths] source_bank_path to point at your built banks."
        )
        return config, warnings + config.validate()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise ConfigParseError(config_path, str(e)) from e

    config = _parse_config_dict(data, config_path)
    return config, warnings + config.validate()


def _parse_config_dict(data: dict[str, Any], config_path: Path) -> Config:
    """Parse configuration dictionary into Config object."""
    config = Config(config_path=config_path)

    # Parse [paths] section
    paths = data.get("paths", {})
    if "source_bank_path" in paths:
        value = paths["source_bank_path"]
        if not isinstance(value, str):
            raise ConfigValidationError("paths.source_bank_path", value, "must be a string path")
        config.source_bank_path = Path(value)

    if "cache_dir" in paths:
        value = paths["cache_dir"]
        if not isinstance(value, str):
            raise ConfigValidationError("paths.cache_dir", value, "must be a string path")
        config.cache_dir = Path(value)

    # Parse [linkage] section
    linkage = data.get("linkage", {})
    if "mode" in linkage:
        value = linkage["mode"]
        try:
            config.linkage = LinkageMode(value)
        except ValueError as e:
            raise ConfigValidationError("linkage.mode", value, "must be 'path' or 'guid'") from e

    # Parse [platforms] section
    platforms = data.get("platforms", {})
    if "build_platforms" in platforms:
        value = platforms["build_platforms"]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigValidationError(
                "platforms.build_platforms", value, "must be a list of strings"
            )
        config.build_platforms = list(value)

    if "editor_platform" in platforms:
        value = platforms["editor_platform"]
        if not isinstance(value, str):
            raise ConfigValidationError("platforms.editor_platform", value, "must be a string")
        config.editor_platform = value

    # Parse [display] section
    display = data.get("display", {})
    if "colored_output" in display:
        value = display["colored_output"]
        if not isinstance(value, bool):
            raise ConfigValidationError("display.colored_output", value, "must be a boolean")
        config.colored_output = value

    return config


def save_config(config: Config, config_path: Path | None = None) -> Path:
    """Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Path to save to. If None, uses config.config_path or default.

    Returns:
        The path written to.
    """
    if config_path is None:
        config_path = config.config_path or get_default_config_path()

    config_path = config_path.expanduser().resolve()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {
        "paths": {},
        "linkage": {"mode": config.linkage.value},
        "display": {"colored_output": config.colored_output},
    }

    if config.source_bank_path is not None:
        data["paths"]["source_bank_path"] = str(config.source_bank_path)
    if config.cache_dir is not None:
        data["paths"]["cache_dir"] = str(config.cache_dir)

    if config.build_platforms or config.editor_platform != DEFAULT_EDITOR_PLATFORM:
        data["platforms"] = {
            "build_platforms": list(config.build_platforms),
            "editor_platform": config.editor_platform,
        }

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
    return config_path
