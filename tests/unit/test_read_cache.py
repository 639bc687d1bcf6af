"""Tests for the read cache."""

from block_editor.core.runtime.cache import CachedRead, ReadCache


def test_key_separates_context_and_overlay_version() -> None:
    cache = ReadCache()
    cache.set(ReadCache.key("b1", with_context=False, overlay_version=0), CachedRead("{}"))

    assert ReadCache.key("b1", with_context=False, overlay_version=0) in cache
    assert ReadCache.key("b1", with_context=True, overlay_version=0) not in cache
    assert ReadCache.key("b1", with_context=False, overlay_version=1) not in cache


def test_invalidate_clears_all_entries() -> None:
    cache = ReadCache()
    cache.set(ReadCache.key("b1", with_context=False, overlay_version=0), CachedRead("{}"))
    cache.set(
        ReadCache.key("b2", with_context=True, overlay_version=0),
        CachedRead("{}", context_ids=("b1", "b3")),
    )
    assert len(cache) == 2

    cache.invalidate()

    assert len(cache) == 0
    assert cache.get(ReadCache.key("b1", with_context=False, overlay_version=0)) is None
