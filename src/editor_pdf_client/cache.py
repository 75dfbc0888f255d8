"""
Read-through cache of document representations.

Two families of entries are kept: single documents keyed by id and document
list pages keyed by their query parameters. Invalidation never drops an
entry; it flags the key so the next read re-fetches, which lets consumers
keep showing the previous value until the fresh one arrives.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Protocol, Tuple, TypeVar

from .models import Document, DocumentListResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

CacheKey = Tuple[Hashable, ...]

DOCUMENTS_ROOT = "documents"
LIST_MARKER = "list"


def document_key(document_id: str) -> CacheKey:
    return (DOCUMENTS_ROOT, document_id)


def list_key(limit: Optional[int], offset: Optional[int]) -> CacheKey:
    return (DOCUMENTS_ROOT, LIST_MARKER, limit, offset)


class InvalidationRegistry(Protocol):
    """Capability the submission path uses to mark cached documents stale."""

    def invalidate_document(self, document_id: str) -> None:
        ...

    def invalidate_document_lists(self) -> None:
        ...


@dataclass
class CacheEntry:
    value: Any
    fetched_at: float
    invalidated: bool = False

    def is_stale(self, now: float, stale_seconds: float) -> bool:
        return self.invalidated or (now - self.fetched_at) >= stale_seconds


class DocumentCache:
    """
    In-memory cache implementing :class:`InvalidationRegistry`.

    Attributes:
        document_stale_seconds: Age after which a single document is re-fetched
        list_stale_seconds: Age after which a list page is re-fetched
    """

    def __init__(
        self,
        document_stale_seconds: float = 60.0,
        list_stale_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.document_stale_seconds = document_stale_seconds
        self.list_stale_seconds = list_stale_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}

    @classmethod
    def from_config(cls, config: Any) -> "DocumentCache":
        return cls(
            document_stale_seconds=float(config.cache.document_stale_seconds),
            list_stale_seconds=float(config.cache.list_stale_seconds),
        )

    async def get_document(self, document_id: str, loader: Callable[[], Awaitable[Document]]) -> Document:
        return await self._read_through(document_key(document_id), self.document_stale_seconds, loader)

    async def list_documents(
        self,
        limit: Optional[int],
        offset: Optional[int],
        loader: Callable[[], Awaitable[DocumentListResponse]],
    ) -> DocumentListResponse:
        return await self._read_through(list_key(limit, offset), self.list_stale_seconds, loader)

    async def _read_through(self, key: CacheKey, stale_seconds: float, loader: Callable[[], Awaitable[T]]) -> T:
        entry = self._entries.get(key)
        if entry is not None and not entry.is_stale(self._clock(), stale_seconds):
            return entry.value

        value = await loader()
        self._entries[key] = CacheEntry(value=value, fetched_at=self._clock())
        logger.debug(f"Cached {key}")
        return value

    def peek(self, key: CacheKey) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def is_invalidated(self, key: CacheKey) -> bool:
        entry = self._entries.get(key)
        return bool(entry and entry.invalidated)

    def invalidate_document(self, document_id: str) -> None:
        self._invalidate(document_key(document_id))

    def invalidate_document_lists(self) -> None:
        for key in list(self._entries):
            if len(key) == 4 and key[0] == DOCUMENTS_ROOT and key[1] == LIST_MARKER:
                self._invalidate(key)

    def _invalidate(self, key: CacheKey) -> None:
        entry = self._entries.get(key)
        if entry is None:
            return
        entry.invalidated = True
        logger.info(f"Invalidated cache entry {key}")

    def clear(self) -> None:
        self._entries.clear()
