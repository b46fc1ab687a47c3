"""Own the published cache snapshot and its rebuild lifecycle."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from studio_index.cache.builder import build_cache, refresh_cache, scan_bank_files
from studio_index.cache.entries import Cache
from studio_index.cache.metadata import JsonMetadataProvider
from studio_index.cache.session import delete_cache, get_cache_session
from studio_index.cache.store import load_cache, save_cache

if TYPE_CHECKING:
    from studio_index.cache.metadata import MetadataProvider
    from studio_index.config import Config
    from studio_index.resolver import LinkageMode, Resolver

log = logging.getLogger(__name__)


class CacheManager:
    """Holds the current snapshot and replaces it on rebuild.

    A rebuild assembles and persists a complete new snapshot before the
    published reference is swapped, so readers never see a partial cache.
    If the rebuild fails, the previous snapshot stays published and the
    error propagates to the caller.

    Args:
        config: Application configuration (bank folder, platforms, linkage).
        provider: Source of authoring metadata. Defaults to the JSON exports
            written next to each bank.
    """

    def __init__(self, config: Config, provider: MetadataProvider | None = None) -> None:
        self.config = config
        self.provider: MetadataProvider = provider or JsonMetadataProvider()
        self._cache: Cache | None = None

    @property
    def is_initialized(self) -> bool:
        return self._cache is not None

    @property
    def current(self) -> Cache:
        """The published snapshot, loaded or built on first access."""
        if self._cache is None:
            self._cache = self._load_or_build()
        return self._cache

    @property
    def is_valid(self) -> bool:
        return self.current.is_valid

    def resolver(self, linkage: LinkageMode | None = None) -> Resolver:
        """A resolver over the current snapshot."""
        from studio_index.resolver import Resolver

        return Resolver(self.current, linkage or self.config.linkage)

    def rebuild_cache(self, *, force: bool = False) -> Cache:
        """Rebuild the cache and publish the result.

        Without *force* an up-to-date cache is kept as is. With *force*, or
        when the persisted cache is missing or in an old format, every bank
        is re-read and the persisted cache file is replaced.
        """
        previous = self._cache if self._cache is not None else self._load_persisted()
        if previous is None:
            log.info("Event cache is missing or in an old format; creating a new one")
        cache = self._build(previous, force=force or previous is None)
        self._cache = cache
        return cache

    def _load_persisted(self) -> Cache | None:
        if self.config.source_bank_path is None:
            return None
        with get_cache_session(self.config.effective_cache_dir) as session:
            return load_cache(session)

    def _load_or_build(self) -> Cache:
        if self.config.source_bank_path is None:
            return Cache.empty()

        return self.rebuild_cache()

    def _build(self, previous: Cache | None, *, force: bool) -> Cache:
        if self.config.source_bank_path is None:
            return Cache.empty()

        scan = scan_bank_files(
            self.config.source_bank_path,
            self.config.build_platforms,
            self.config.editor_platform,
        )
        if force:
            cache = build_cache(scan, self.provider, previous)
        else:
            cache = refresh_cache(scan, self.provider, previous)

        if cache is not previous:
            cache_dir = self.config.effective_cache_dir
            if force:
                # an old layout may not even share the current schema
                delete_cache(cache_dir)
            with get_cache_session(cache_dir) as session:
                save_cache(session, cache)
        return cache
