"""Local cache of the authoring project's banks, events and parameters."""

from studio_index.cache.builder import build_cache, refresh_cache, scan_bank_files
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
from studio_index.cache.manager import CacheManager
from studio_index.cache.metadata import JsonMetadataProvider, MetadataProvider
from studio_index.cache.session import CACHE_DB_NAME, get_cache_session
from studio_index.cache.store import load_cache, save_cache

__all__ = [
    "BankEntry",
    "CACHE_DB_NAME",
    "CURRENT_CACHE_VERSION",
    "Cache",
    "CacheManager",
    "EventEntry",
    "JsonMetadataProvider",
    "MetadataProvider",
    "ParamEntry",
    "ParameterId",
    "ParameterType",
    "StableId",
    "build_cache",
    "get_cache_session",
    "load_cache",
    "refresh_cache",
    "save_cache",
    "scan_bank_files",
]
