"""
Page preview navigation, zoom and raster loading.

Fetches are never aborted. Each one is stamped with a generation number when
it is issued and its result is applied only if no newer fetch has been issued
since, so a slow response for a page the user already left can never replace
the page currently on screen.
"""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Set, Tuple

from PIL import Image, UnidentifiedImageError

from .errors import ApiError
from .utils import clamp, freshness_token

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Could not load page"
DECODE_ERROR_MESSAGE = "Could not decode page image"
EMPTY_DOCUMENT_MESSAGE = "Document has no pages"


class PreviewStatus(str, Enum):
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass(frozen=True)
class PreviewView:
    status: PreviewStatus
    page: int
    url: Optional[str] = None
    image: Optional[bytes] = None
    size: Optional[Tuple[int, int]] = None
    error: Optional[str] = None


class PreviewSource(Protocol):
    def preview_url(self, document_id: str, page: int) -> str:
        ...

    async def fetch_preview(self, document_id: str, page: int, token: str) -> bytes:
        ...


def decode_size(data: bytes) -> Tuple[int, int]:
    """Verify that ``data`` is a decodable image and return its pixel size."""
    with Image.open(io.BytesIO(data)) as image:
        size = image.size
        image.verify()
    return size


class PagePreviewController:
    """
    Current page, zoom factor and the raster shown for that page.

    Navigation methods are synchronous and schedule the fetch on the running
    event loop, so ``open_document``, ``go_to_page``, ``previous_page``,
    ``next_page`` and ``reload`` must be called from inside that loop
    (they raise RuntimeError otherwise). Call :meth:`settle` to wait for
    every in-flight fetch.
    """

    def __init__(
        self,
        source: PreviewSource,
        min_zoom: float = 0.5,
        max_zoom: float = 3.0,
        zoom_step: float = 0.25,
        default_zoom: float = 1.0,
        token_param: str = "t",
        token_factory: Callable[[], str] = freshness_token,
    ) -> None:
        self._source = source
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self.zoom_step = zoom_step
        self.default_zoom = default_zoom
        self.token_param = token_param
        self._token_factory = token_factory

        self.document_id: Optional[str] = None
        self.page_count = 0
        self.version: Optional[int] = None
        self.page = 1
        self.zoom = default_zoom
        self.view = PreviewView(status=PreviewStatus.LOADING, page=1)

        self._generation = 0
        self._inflight: Set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config: Any, source: PreviewSource) -> "PagePreviewController":
        preview = config.preview
        return cls(
            source,
            min_zoom=float(preview.min_zoom),
            max_zoom=float(preview.max_zoom),
            zoom_step=float(preview.zoom_step),
            default_zoom=float(preview.default_zoom),
            token_param=str(preview.token_param),
        )

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def can_go_previous(self) -> bool:
        return self.page > 1

    @property
    def can_go_next(self) -> bool:
        return self.page < self.page_count

    def open_document(self, document_id: str, page_count: int, version: Optional[int] = None) -> None:
        """
        Show a document, or pick up a new version of the one already shown.

        Switching documents returns to page 1; a new version of the same
        document keeps the current page, clamped to the new page count.
        """
        same_document = document_id == self.document_id
        if same_document and page_count == self.page_count and version == self.version:
            return

        self.document_id = document_id
        self.page_count = max(0, page_count)
        self.version = version
        self.page = int(clamp(self.page if same_document else 1, 1, max(1, self.page_count)))
        self.reload()

    def go_to_page(self, page: int) -> None:
        target = int(clamp(page, 1, max(1, self.page_count)))
        if target == self.page:
            return
        self.page = target
        self.reload()

    def previous_page(self) -> None:
        if self.can_go_previous:
            self.go_to_page(self.page - 1)

    def next_page(self) -> None:
        if self.can_go_next:
            self.go_to_page(self.page + 1)

    def zoom_in(self) -> None:
        self.zoom = round(clamp(self.zoom + self.zoom_step, self.min_zoom, self.max_zoom), 2)

    def zoom_out(self) -> None:
        self.zoom = round(clamp(self.zoom - self.zoom_step, self.min_zoom, self.max_zoom), 2)

    def reset_zoom(self) -> None:
        self.zoom = self.default_zoom

    def reload(self) -> None:
        """Issue a fresh fetch for the current page; the view goes back to Loading."""
        if self.document_id is None:
            return
        if self.page_count < 1:
            self._generation += 1
            self.view = PreviewView(status=PreviewStatus.ERROR, page=self.page, error=EMPTY_DOCUMENT_MESSAGE)
            return

        loop = asyncio.get_running_loop()
        self._generation += 1
        generation = self._generation
        self.view = PreviewView(status=PreviewStatus.LOADING, page=self.page)

        task = loop.create_task(self._load(generation, self.document_id, self.page))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def settle(self) -> None:
        while self._inflight:
            await asyncio.gather(*list(self._inflight))

    def _is_current(self, generation: int, document_id: str, page: int) -> bool:
        return generation == self._generation and (document_id, page) == (self.document_id, self.page)

    async def _load(self, generation: int, document_id: str, page: int) -> None:
        token = self._token_factory()
        url = f"{self._source.preview_url(document_id, page)}?{self.token_param}={token}"
        logger.debug(f"Fetching preview #{generation} for {document_id} page {page}")

        try:
            data = await self._source.fetch_preview(document_id, page, token)
        except ApiError as exc:
            self._apply(generation, document_id, page, PreviewView(
                status=PreviewStatus.ERROR, page=page, error=LOAD_ERROR_MESSAGE,
            ), reason=str(exc))
            return

        try:
            size = decode_size(data)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            self._apply(generation, document_id, page, PreviewView(
                status=PreviewStatus.ERROR, page=page, error=DECODE_ERROR_MESSAGE,
            ), reason=str(exc))
            return

        self._apply(generation, document_id, page, PreviewView(
            status=PreviewStatus.LOADED, page=page, url=url, image=data, size=size,
        ))

    def _apply(self, generation: int, document_id: str, page: int, view: PreviewView, reason: str = "") -> None:
        if not self._is_current(generation, document_id, page):
            logger.debug(f"Discarding stale preview #{generation} (latest #{self._generation})")
            return
        if view.status is PreviewStatus.ERROR:
            logger.warning(f"Preview for {document_id} page {page} failed: {reason}")
        self.view = view
