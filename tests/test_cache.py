"""
Tests for the document cache and its invalidation.
"""

import asyncio

import pytest

from editor_pdf_client.cache import DocumentCache, document_key, list_key
from editor_pdf_client.models import Document, DocumentListResponse


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class CountingLoader:
    """Async loader returning a new document version on every call."""

    def __init__(self, document_id: str = "doc-1") -> None:
        self.document_id = document_id
        self.calls = 0

    async def __call__(self) -> Document:
        self.calls += 1
        return Document(id=self.document_id, status="processed", version=self.calls, page_count=3)


def list_loader(counter):
    async def load() -> DocumentListResponse:
        counter.append(1)
        return DocumentListResponse(documents=[], total=0, limit=20, offset=0)

    return load


class TestReadThrough:
    """Tests for cached reads."""

    def test_fresh_entry_is_reused(self):
        cache = DocumentCache(clock=FakeClock())
        loader = CountingLoader()

        async def run():
            await cache.get_document("doc-1", loader)
            return await cache.get_document("doc-1", loader)

        document = asyncio.run(run())
        assert loader.calls == 1
        assert document.version == 1

    def test_stale_after_configured_age(self):
        """Documents go stale after 60s, list pages after 30s by default."""
        clock = FakeClock()
        cache = DocumentCache(clock=clock)
        loader = CountingLoader()
        list_calls = []

        async def run():
            await cache.get_document("doc-1", loader)
            await cache.list_documents(20, 0, list_loader(list_calls))
            clock.now += 45
            await cache.get_document("doc-1", loader)
            await cache.list_documents(20, 0, list_loader(list_calls))

        asyncio.run(run())
        assert loader.calls == 1
        assert len(list_calls) == 2

    def test_loader_error_is_not_cached(self):
        cache = DocumentCache(clock=FakeClock())

        async def failing():
            raise RuntimeError("offline")

        async def run():
            with pytest.raises(RuntimeError):
                await cache.get_document("doc-1", failing)
            return cache.peek(document_key("doc-1"))

        assert asyncio.run(run()) is None


class TestInvalidation:
    """Tests for marking entries stale."""

    def test_invalidated_document_is_refetched(self):
        cache = DocumentCache(clock=FakeClock())
        loader = CountingLoader()

        async def run():
            await cache.get_document("doc-1", loader)
            cache.invalidate_document("doc-1")
            assert cache.is_invalidated(document_key("doc-1"))
            return await cache.get_document("doc-1", loader)

        document = asyncio.run(run())
        assert document.version == 2
        assert not cache.is_invalidated(document_key("doc-1"))

    def test_invalidation_keeps_previous_value(self):
        """Consumers can keep showing the old value until the refetch lands."""
        cache = DocumentCache(clock=FakeClock())
        asyncio.run(cache.get_document("doc-1", CountingLoader()))
        cache.invalidate_document("doc-1")

        entry = cache.peek(document_key("doc-1"))
        assert entry.invalidated
        assert entry.value.version == 1

    def test_list_invalidation_only_touches_list_pages(self):
        cache = DocumentCache(clock=FakeClock())
        list_calls = []

        async def run():
            await cache.get_document("doc-1", CountingLoader())
            await cache.get_document("list", CountingLoader("list"))
            await cache.list_documents(20, 0, list_loader(list_calls))
            await cache.list_documents(20, 20, list_loader(list_calls))

        asyncio.run(run())
        cache.invalidate_document_lists()

        assert cache.is_invalidated(list_key(20, 0))
        assert cache.is_invalidated(list_key(20, 20))
        assert not cache.is_invalidated(document_key("doc-1"))
        assert not cache.is_invalidated(document_key("list"))

    def test_unknown_keys_are_ignored(self):
        cache = DocumentCache()
        cache.invalidate_document("missing")
        cache.invalidate_document_lists()
        assert cache.peek(document_key("missing")) is None

    def test_from_config(self, config):
        cache = DocumentCache.from_config(config)
        assert cache.document_stale_seconds == 60
        assert cache.list_stale_seconds == 30
