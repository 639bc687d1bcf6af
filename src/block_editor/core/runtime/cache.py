"""Memoized read_blocks results."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CachedRead:
    """A serialized read result plus the context blocks it exposed."""

    payload: str
    context_ids: tuple[str, ...] = ()


CacheKey = tuple[str, bool, int]


class ReadCache:
    """Read results keyed by ``(block_id, with_context, overlay_version)``.

    The overlay version is the pending-diff count at read time, so a read
    taken before a mutation is never served after one even if a caller
    forgets to invalidate.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, CachedRead] = {}

    @staticmethod
    def key(block_id: str, *, with_context: bool, overlay_version: int) -> CacheKey:
        return (block_id, with_context, overlay_version)

    def get(self, key: CacheKey) -> CachedRead | None:
        return self._entries.get(key)

    def set(self, key: CacheKey, entry: CachedRead) -> None:
        self._entries[key] = entry

    def invalidate(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
