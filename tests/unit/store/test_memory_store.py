"""
Tests for the in-memory store.

Covers create-if-absent, burn-after-read consumption, comment threads,
timestamp check-and-record and bounded purging.
"""

import asyncio
from typing import Any, Dict

import pytest

from blindpaste.config import ModelSettings
from blindpaste.core.exceptions import ConfigurationError, StoreConflictError, StoreError
from blindpaste.core.store import MemoryStore, create_store


def paste_record(burn: int = 0, expire_date: Any = None, created: int = 1000) -> Dict[str, Any]:
    meta: Dict[str, Any] = {"created": created, "salt": "s" * 64}
    if expire_date is not None:
        meta["expire_date"] = expire_date
    return {
        "v": 2,
        "ct": "Y2lwaGVy",
        "adata": [["iv", "salt", 100000, 256, 128, "aes", "gcm", "zlib"], "plaintext", 0, burn],
        "meta": meta,
    }


def comment_record(created: int) -> Dict[str, Any]:
    return {"v": 2, "ct": "Y29tbWVudA==", "adata": [], "meta": {"created": created}}


class TestPastes:
    """Test paste create, read and delete."""

    @pytest.mark.asyncio
    async def test_create_and_read(self, store: MemoryStore) -> None:
        """Test a stored paste reads back unchanged."""

        await store.create("aaaaaaaaaaaaaaaa", paste_record())

        assert await store.exists("aaaaaaaaaaaaaaaa")
        record = await store.read("aaaaaaaaaaaaaaaa")
        assert record == paste_record()

    @pytest.mark.asyncio
    async def test_create_existing_id_conflicts(self, store: MemoryStore) -> None:
        """Test an id can only be created once."""

        await store.create("aaaaaaaaaaaaaaaa", paste_record())
        with pytest.raises(StoreConflictError):
            await store.create("aaaaaaaaaaaaaaaa", paste_record())

    @pytest.mark.asyncio
    async def test_records_are_copied(self, store: MemoryStore) -> None:
        """Test callers cannot mutate stored state."""

        record = paste_record()
        await store.create("aaaaaaaaaaaaaaaa", record)
        record["meta"]["salt"] = "changed"

        loaded = await store.read("aaaaaaaaaaaaaaaa")
        loaded["ct"] = "changed"

        stored = await store.peek("aaaaaaaaaaaaaaaa")
        assert stored["meta"]["salt"] == "s" * 64
        assert stored["ct"] == "Y2lwaGVy"

    @pytest.mark.asyncio
    async def test_read_missing_returns_none(self, store: MemoryStore) -> None:
        assert await store.read("0000000000000000") is None
        assert await store.peek("0000000000000000") is None

    @pytest.mark.asyncio
    async def test_burn_after_reading_consumed_on_read(self, store: MemoryStore) -> None:
        """Test a burn-after-read paste is removed by the read that returns it."""

        await store.create("aaaaaaaaaaaaaaaa", paste_record(burn=1))

        assert await store.read("aaaaaaaaaaaaaaaa") is not None
        assert await store.read("aaaaaaaaaaaaaaaa") is None
        assert not await store.exists("aaaaaaaaaaaaaaaa")

    @pytest.mark.asyncio
    async def test_peek_does_not_consume(self, store: MemoryStore) -> None:
        """Test peeking leaves burn-after-read pastes in place."""

        await store.create("aaaaaaaaaaaaaaaa", paste_record(burn=1))

        assert await store.peek("aaaaaaaaaaaaaaaa") is not None
        assert await store.exists("aaaaaaaaaaaaaaaa")

    @pytest.mark.asyncio
    async def test_concurrent_burn_reads(self, store: MemoryStore) -> None:
        """Test only one of many concurrent readers receives a burn paste."""

        await store.create("aaaaaaaaaaaaaaaa", paste_record(burn=1))

        results = await asyncio.gather(*[store.read("aaaaaaaaaaaaaaaa") for _ in range(10)])

        assert len([r for r in results if r is not None]) == 1

    @pytest.mark.asyncio
    async def test_delete_removes_paste_and_comments(self, store: MemoryStore) -> None:
        await store.create("aaaaaaaaaaaaaaaa", paste_record())
        await store.create_comment("aaaaaaaaaaaaaaaa", "aaaaaaaaaaaaaaaa", "bbbbbbbbbbbbbbbb", comment_record(1))

        assert await store.delete("aaaaaaaaaaaaaaaa") is True
        assert await store.delete("aaaaaaaaaaaaaaaa") is False
        assert await store.read_comments("aaaaaaaaaaaaaaaa") == []


class TestComments:
    """Test comment threads."""

    @pytest.mark.asyncio
    async def test_comments_ordered_by_creation(self, store: MemoryStore) -> None:
        """Test comments come back ordered by creation time."""

        await store.create("aaaaaaaaaaaaaaaa", paste_record())
        await store.create_comment("aaaaaaaaaaaaaaaa", "aaaaaaaaaaaaaaaa", "cccccccccccccccc", comment_record(30))
        await store.create_comment("aaaaaaaaaaaaaaaa", "aaaaaaaaaaaaaaaa", "bbbbbbbbbbbbbbbb", comment_record(10))
        await store.create_comment("aaaaaaaaaaaaaaaa", "bbbbbbbbbbbbbbbb", "dddddddddddddddd", comment_record(20))

        comments = await store.read_comments("aaaaaaaaaaaaaaaa")

        assert [c["id"] for c in comments] == ["bbbbbbbbbbbbbbbb", "dddddddddddddddd", "cccccccccccccccc"]
        assert comments[1]["record"]["parentid"] == "bbbbbbbbbbbbbbbb"
        assert comments[1]["record"]["pasteid"] == "aaaaaaaaaaaaaaaa"

    @pytest.mark.asyncio
    async def test_comment_on_missing_paste(self, store: MemoryStore) -> None:
        with pytest.raises(StoreError) as exc_info:
            await store.create_comment("aaaaaaaaaaaaaaaa", "aaaaaaaaaaaaaaaa", "bbbbbbbbbbbbbbbb", comment_record(1))

        assert not isinstance(exc_info.value, StoreConflictError)

    @pytest.mark.asyncio
    async def test_duplicate_comment_conflicts(self, store: MemoryStore) -> None:
        await store.create("aaaaaaaaaaaaaaaa", paste_record())
        await store.create_comment("aaaaaaaaaaaaaaaa", "aaaaaaaaaaaaaaaa", "bbbbbbbbbbbbbbbb", comment_record(1))

        with pytest.raises(StoreConflictError):
            await store.create_comment("aaaaaaaaaaaaaaaa", "aaaaaaaaaaaaaaaa", "bbbbbbbbbbbbbbbb", comment_record(2))

        assert await store.exists_comment("aaaaaaaaaaaaaaaa", "bbbbbbbbbbbbbbbb")
        assert not await store.exists_comment("aaaaaaaaaaaaaaaa", "cccccccccccccccc")


class TestPurgeExpired:
    """Test bounded removal of expired pastes."""

    @pytest.mark.asyncio
    async def test_purge_bounded_by_batch_size(self, store: MemoryStore) -> None:
        """Test a purge never removes more than the batch size."""

        for i in range(15):
            await store.create(f"{i:016x}", paste_record(expire_date=500))
        await store.create("ffffffffffffffff", paste_record(expire_date=5000))
        await store.create("eeeeeeeeeeeeeeee", paste_record())

        assert await store.purge_expired(10, now=1000) == 10
        assert await store.purge_expired(10, now=1000) == 5
        assert await store.purge_expired(10, now=1000) == 0

        assert await store.exists("ffffffffffffffff")
        assert await store.exists("eeeeeeeeeeeeeeee")

    @pytest.mark.asyncio
    async def test_purge_zero_batch(self, store: MemoryStore) -> None:
        await store.create("aaaaaaaaaaaaaaaa", paste_record(expire_date=500))

        assert await store.purge_expired(0, now=1000) == 0
        assert await store.exists("aaaaaaaaaaaaaaaa")


class TestValues:
    """Test namespaced timestamps and values."""

    @pytest.mark.asyncio
    async def test_record_if_elapsed(self, store: MemoryStore) -> None:
        """Test check-and-record returns the blocking timestamp."""

        assert await store.record_if_elapsed("ns", "key", now=1000, interval=10) is None
        assert await store.record_if_elapsed("ns", "key", now=1005, interval=10) == 1000
        assert await store.record_if_elapsed("ns", "key", now=1010, interval=10) == 1000
        assert await store.record_if_elapsed("ns", "key", now=1011, interval=10) is None

    @pytest.mark.asyncio
    async def test_refused_check_does_not_move_window(self, store: MemoryStore) -> None:
        await store.record_if_elapsed("ns", "key", now=1000, interval=10)
        await store.record_if_elapsed("ns", "key", now=1009, interval=10)

        assert await store.record_if_elapsed("ns", "key", now=1010.5, interval=10) is None

    @pytest.mark.asyncio
    async def test_purge_values(self, store: MemoryStore) -> None:
        await store.record_if_elapsed("ns", "old", now=100, interval=10)
        await store.record_if_elapsed("ns", "new", now=900, interval=10)

        assert await store.purge_values("ns", older_than=500) == 1
        assert await store.record_if_elapsed("ns", "old", now=901, interval=10) is None
        assert await store.record_if_elapsed("ns", "new", now=901, interval=10) == 900

    @pytest.mark.asyncio
    async def test_setdefault_value_keeps_first(self, store: MemoryStore) -> None:
        assert await store.setdefault_value("salt", "first") == "first"
        assert await store.setdefault_value("salt", "second") == "first"


class TestCreateStore:
    """Test backend selection."""

    def test_memory_backend(self) -> None:
        store = create_store(ModelSettings(backend="memory"))
        assert isinstance(store, MemoryStore)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            create_store(ModelSettings(backend="database"))

        assert exc_info.value.details["available"] == ["memory"]
