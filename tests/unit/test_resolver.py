"""Unit tests for dual-key reference resolution, drift detection and repair."""

from __future__ import annotations

import pytest

from studio_index.cache.entries import BankEntry, Cache, EventEntry, StableId
from studio_index.exceptions import InvalidIdentifierError, MalformedReferenceError
from studio_index.resolver import (
    LinkageMode,
    MismatchKind,
    Reference,
    ReferenceState,
    Resolver,
)

WIND = StableId(0xABCD)


def _cache(*events: tuple[str, StableId]) -> Cache:
    bank = BankEntry(path="/banks/Ambience.bank", name="Ambience")
    return Cache(
        banks=[bank],
        events=[EventEntry(path=path, id=guid, banks=(bank,)) for path, guid in events],
        strings_bank_write_time=1,
    )


@pytest.fixture
def wind_cache() -> Cache:
    return _cache(("/amb/wind", WIND), ("/amb/rain", StableId(0xBEEF)))


@pytest.fixture
def renamed_cache() -> Cache:
    return _cache(("/amb/gust", WIND))


class TestReference:
    def test_null(self) -> None:
        assert Reference().is_null
        assert not Reference(path="/amb/wind").is_null
        assert not Reference(guid=WIND).is_null

    def test_parse(self) -> None:
        assert Reference.parse("/amb/wind") == Reference(path="/amb/wind")
        assert Reference.parse(str(WIND)) == Reference(guid=WIND)

    def test_parse_invalid_guid(self) -> None:
        with pytest.raises(InvalidIdentifierError):
            Reference.parse("{garbage}")

    def test_replace_returns_new_reference(self) -> None:
        ref = Reference(path="/amb/wind")
        updated = ref.replace_guid(WIND)
        assert updated == Reference(path="/amb/wind", guid=WIND)
        assert ref.guid.is_null

    def test_for_event(self, wind_cache: Cache) -> None:
        event = wind_cache.find_event_by_id(WIND)
        assert Reference.for_event(event) == Reference(path="/amb/wind", guid=WIND)


class TestLookup:
    def test_every_event_found_by_both_keys(self, wind_cache: Cache) -> None:
        resolver = Resolver(wind_cache, LinkageMode.PATH)
        for event in wind_cache.events:
            assert resolver.find_by_id(event.id) is event
            assert resolver.find_by_path(event.path) is event

    def test_find_dispatches_on_braces(self, wind_cache: Cache) -> None:
        resolver = Resolver(wind_cache, LinkageMode.PATH)
        assert resolver.find(str(WIND)).path == "/amb/wind"
        assert resolver.find("/amb/rain").id == StableId(0xBEEF)

    def test_not_found_is_none(self, wind_cache: Cache) -> None:
        resolver = Resolver(wind_cache, LinkageMode.PATH)
        assert resolver.find_by_path("/amb/WIND") is None
        assert resolver.find_by_id(StableId(1)) is None
        assert resolver.find_by_id(StableId.NULL) is None

    def test_resolve_by_authoritative_field(self, wind_cache: Cache) -> None:
        ref = Reference(path="/amb/rain", guid=WIND)
        assert Resolver(wind_cache, LinkageMode.PATH).resolve(ref).path == "/amb/rain"
        assert Resolver(wind_cache, LinkageMode.GUID).resolve(ref).path == "/amb/wind"

    def test_resolve_malformed(self, wind_cache: Cache) -> None:
        assert Resolver(wind_cache, LinkageMode.PATH).resolve(Reference()) is None
        assert Resolver(wind_cache, LinkageMode.GUID).resolve(Reference()) is None


class TestDetectMismatch:
    @pytest.mark.parametrize("linkage", list(LinkageMode))
    def test_fresh_reference_has_no_mismatch(self, wind_cache: Cache, linkage) -> None:
        resolver = Resolver(wind_cache, linkage)
        for event in wind_cache.events:
            assert resolver.detect_mismatch(Reference.for_event(event)) is None

    def test_unset_guid_under_path_linkage(self, wind_cache: Cache) -> None:
        resolver = Resolver(wind_cache, LinkageMode.PATH)
        ref = Reference(path="/amb/wind", guid=StableId(0x0000))

        info = resolver.detect_mismatch(ref)
        assert info is not None
        assert info.kind is MismatchKind.GUID_MISMATCH
        assert info.field == "guid"
        assert info.value == WIND

        repaired = resolver.repair(ref, info)
        assert repaired == Reference(path="/amb/wind", guid=WIND)
        assert resolver.detect_mismatch(repaired) is None

    def test_wrong_guid_under_path_linkage(self, wind_cache: Cache) -> None:
        resolver = Resolver(wind_cache, LinkageMode.PATH)
        info = resolver.detect_mismatch(Reference(path="/amb/wind", guid=StableId(0xBEEF)))
        assert info.kind is MismatchKind.GUID_MISMATCH
        assert str(WIND) in info.repair_tooltip

    def test_path_is_not_checked_under_guid_linkage(self, wind_cache: Cache) -> None:
        resolver = Resolver(wind_cache, LinkageMode.GUID)
        info = resolver.detect_mismatch(Reference(path="/old/wind", guid=WIND))
        assert info.kind is MismatchKind.PATH_MISMATCH
        assert info.field == "path"
        assert info.value == "/amb/wind"

    def test_empty_path_under_guid_linkage(self, wind_cache: Cache) -> None:
        resolver = Resolver(wind_cache, LinkageMode.GUID)
        ref = Reference(guid=WIND)
        info = resolver.detect_mismatch(ref)
        assert resolver.repair(ref, info) == Reference(path="/amb/wind", guid=WIND)

    def test_unresolved_has_no_mismatch(self, wind_cache: Cache) -> None:
        resolver = Resolver(wind_cache, LinkageMode.PATH)
        assert resolver.detect_mismatch(Reference(path="/nope", guid=WIND)) is None

    def test_help_text_names_updater(self, wind_cache: Cache) -> None:
        resolver = Resolver(wind_cache, LinkageMode.PATH)
        info = resolver.detect_mismatch(Reference(path="/amb/wind"))
        assert "check-refs" in info.help_text


class TestDetectRename:
    def test_renamed_event(self, renamed_cache: Cache) -> None:
        resolver = Resolver(renamed_cache, LinkageMode.PATH)
        ref = Reference(path="/amb/wind", guid=WIND)

        assert resolver.resolve(ref) is None
        moved = resolver.detect_rename(ref)
        assert moved is not None
        assert moved.path == "/amb/gust"

        info = resolver.rename_info(ref)
        assert info.kind is MismatchKind.MOVED
        repaired = resolver.repair(ref, info)
        assert repaired == Reference(path="/amb/gust", guid=WIND)
        assert resolver.detect_mismatch(repaired) is None
        assert resolver.detect_rename(repaired) is None

    def test_no_rename_without_guid(self, renamed_cache: Cache) -> None:
        resolver = Resolver(renamed_cache, LinkageMode.PATH)
        assert resolver.detect_rename(Reference(path="/amb/wind")) is None

    def test_no_rename_under_guid_linkage(self, renamed_cache: Cache) -> None:
        resolver = Resolver(renamed_cache, LinkageMode.GUID)
        assert resolver.detect_rename(Reference(path="/amb/wind", guid=WIND)) is None
        assert resolver.rename_info(Reference(path="/amb/wind", guid=WIND)) is None


class TestRepair:
    def test_refuses_malformed(self, wind_cache: Cache) -> None:
        resolver = Resolver(wind_cache, LinkageMode.PATH)
        info = resolver.detect_mismatch(Reference(path="/amb/wind"))
        with pytest.raises(MalformedReferenceError):
            resolver.repair(Reference(), info)


class TestCheck:
    def test_ok(self, wind_cache: Cache) -> None:
        status = Resolver(wind_cache, LinkageMode.PATH).check(
            Reference(path="/amb/wind", guid=WIND)
        )
        assert status.state is ReferenceState.OK
        assert status.event.id == WIND
        assert not status.repairable

    def test_malformed(self, wind_cache: Cache) -> None:
        status = Resolver(wind_cache, LinkageMode.PATH).check(Reference())
        assert status.state is ReferenceState.MALFORMED
        assert not status.repairable

    def test_mismatch(self, wind_cache: Cache) -> None:
        status = Resolver(wind_cache, LinkageMode.PATH).check(Reference(path="/amb/wind"))
        assert status.state is ReferenceState.MISMATCH
        assert status.repairable

    def test_moved(self, renamed_cache: Cache) -> None:
        status = Resolver(renamed_cache, LinkageMode.PATH).check(
            Reference(path="/amb/wind", guid=WIND)
        )
        assert status.state is ReferenceState.MOVED
        assert status.event.path == "/amb/gust"
        assert status.mismatch.value == "/amb/gust"

    def test_not_found(self, wind_cache: Cache) -> None:
        status = Resolver(wind_cache, LinkageMode.GUID).check(Reference(guid=StableId(1)))
        assert status.state is ReferenceState.NOT_FOUND
        assert status.event is None
