"""studio-index: event cache and reference checker for sound-authoring projects."""

__version__ = "0.1.0"
