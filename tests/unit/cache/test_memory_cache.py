"""Tests for the in-memory neighbor cache."""

from amity.cache.memory import InMemoryNeighborCache


class TestInMemoryNeighborCache:
    """Test dictionary-backed cache semantics."""

    async def test_miss_is_none(self, cache: InMemoryNeighborCache) -> None:
        """Absent and empty are different states."""
        assert await cache.get(1) is None
        await cache.put(1, [])
        assert await cache.get(1) == []

    async def test_put_replaces_whole_list(self, cache: InMemoryNeighborCache) -> None:
        await cache.put(1, [2, 3])
        await cache.put(1, [4])
        assert await cache.get(1) == [4]

    async def test_stored_lists_are_copies(self, cache: InMemoryNeighborCache) -> None:
        """Mutating a list after put or get does not change the entry."""
        neighbors = [2]
        await cache.put(1, neighbors)
        neighbors.append(3)
        (await cache.get(1)).append(4)

        assert await cache.get(1) == [2]

    async def test_delete(self, cache: InMemoryNeighborCache) -> None:
        await cache.put("a", ["b"])
        await cache.delete("a")
        await cache.delete("never-stored")
        assert len(cache) == 0
