"""Exception hierarchy for studio-index."""

from pathlib import Path


class StudioIndexError(Exception):
    """Base exception for all studio-index errors.

    All exceptions in this package inherit from this class,
    allowing callers to catch all studio-index errors with
    a single except clause.
    """

    pass


# Configuration Errors
class ConfigError(StudioIndexError):
    """Configuration-related errors."""

    pass


class ConfigParseError(ConfigError):
    """Configuration file has invalid syntax."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid config at {path}: {detail}")


class ConfigValidationError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: object, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid config value for '{key}': {reason}")


# Cache Errors
class CacheError(StudioIndexError):
    """Cache-related errors."""

    pass


class BankPathError(CacheError):
    """A bank file does not live under the expected base folder."""

    def __init__(self, file_path: str, base_path: str) -> None:
        self.file_path = file_path
        self.base_path = base_path
        super().__init__(f"Bank file {file_path} is not inside {base_path}")


class CacheBuildError(CacheError):
    """A cache rebuild failed; the previous cache stays in effect."""

    pass


class BankFolderNotFoundError(CacheBuildError):
    """The configured bank folder doesn't exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Bank folder not found: {path}")


class NoBanksFoundError(CacheBuildError):
    """The bank folder has no strings bank to build from."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(
            f"Directory {path} doesn't contain any banks. "
            "Build the banks in Studio or check the path in the settings."
        )


class MetadataReadError(CacheBuildError):
    """Authoring metadata for a bank could not be read."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Unable to read metadata for {path}: {reason}")


class DuplicateEventIdError(CacheBuildError):
    """Two distinct events claim the same stable identifier."""

    def __init__(self, event_id: object, first_path: str, second_path: str) -> None:
        self.event_id = event_id
        self.first_path = first_path
        self.second_path = second_path
        super().__init__(
            f"Events '{first_path}' and '{second_path}' share the same id {event_id}"
        )


class DuplicateEventPathError(CacheBuildError):
    """One event path is reported with two different stable identifiers."""

    def __init__(self, path: str, first_id: object, second_id: object) -> None:
        self.path = path
        self.first_id = first_id
        self.second_id = second_id
        super().__init__(f"Event '{path}' is reported with ids {first_id} and {second_id}")


# Reference Errors
class EventReferenceError(StudioIndexError):
    """Event reference errors."""

    pass


class InvalidIdentifierError(EventReferenceError):
    """Text could not be parsed as a stable identifier."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"Invalid identifier: {text!r}")


class MalformedReferenceError(EventReferenceError):
    """Reference has neither a path nor an identifier."""

    def __init__(self) -> None:
        super().__init__("Reference has neither a path nor an id; nothing to repair from")


class ReferenceFileError(EventReferenceError):
    """A reference manifest is missing or invalid."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid reference file {path}: {detail}")
