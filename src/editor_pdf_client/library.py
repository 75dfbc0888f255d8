"""
Document listing, upload and deletion, plus editor wiring.

These operations are plain request/response glue around the document
service: reads go through the shared cache, writes invalidate the cached
list pages and post a notice either way.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional

from .cache import DocumentCache
from .document_service import DocumentService
from .errors import EditorClientError
from .gateway import ProcessingGateway
from .models import Document, DocumentListResponse, UploadDocumentResponse
from .notifications import Notifier
from .preview import PagePreviewController
from .session import DEFAULT_DISCARD_PROMPT, AnnotationSession, never_confirm

logger = logging.getLogger(__name__)


class DocumentLibrary:
    def __init__(
        self,
        service: DocumentService,
        cache: DocumentCache,
        notifier: Notifier,
        config: Optional[Any] = None,
    ) -> None:
        self.service = service
        self.cache = cache
        self.notifier = notifier
        self.config = config

    def _notice(self, key: str, fallback: str) -> str:
        if self.config is None:
            return fallback
        return str(self.config.notices.get(key, fallback))

    async def list_documents(self, limit: Optional[int] = None, offset: Optional[int] = None) -> DocumentListResponse:
        return await self.cache.list_documents(
            limit, offset, lambda: self.service.list_documents(limit=limit, offset=offset)
        )

    async def get_document(self, document_id: str) -> Document:
        """
        Fetch one document through the cache.

        Raises:
            DocumentNotFoundError: If the service has no such document
            ApiError: For any other service failure
        """
        return await self.cache.get_document(document_id, lambda: self.service.get_document(document_id))

    async def upload(self, path: Path) -> UploadDocumentResponse:
        try:
            response = await self.service.upload_document(path)
        except EditorClientError as exc:
            self.notifier.error(
                self._notice("upload_error", "Could not upload document"),
                str(exc) or self._notice("retry_hint", "Please try again"),
            )
            raise

        self.cache.invalidate_document_lists()
        self.notifier.success(response.message or self._notice("upload_success", "Document uploaded successfully"))
        logger.info(f"Uploaded {Path(path).name} as {response.document.id}")
        return response

    async def delete(self, document_id: str) -> None:
        try:
            await self.service.delete_document(document_id)
        except EditorClientError as exc:
            self.notifier.error(
                self._notice("delete_error", "Could not delete document"),
                str(exc) or self._notice("retry_hint", "Please try again"),
            )
            raise

        self.cache.invalidate_document(document_id)
        self.cache.invalidate_document_lists()
        self.notifier.success(self._notice("delete_success", "Document deleted successfully"))
        logger.info(f"Deleted document {document_id}")

    async def open_editor(
        self,
        document_id: str,
        confirm: Callable[[str], bool] = never_confirm,
    ) -> AnnotationSession:
        """
        Build a session, its preview controller and gateway for one document.

        Must be awaited inside the event loop that will drive the editor,
        since opening the preview issues the first page fetch.
        """
        document = await self.get_document(document_id)

        if self.config is not None:
            preview = PagePreviewController.from_config(self.config, self.service)
            gateway = ProcessingGateway.from_config(self.config, self.service, self.cache, self.notifier)
            prompt = str(self.config.notices.discard_prompt)
        else:
            preview = PagePreviewController(self.service)
            gateway = ProcessingGateway(self.service, self.cache, self.notifier)
            prompt = DEFAULT_DISCARD_PROMPT

        preview.open_document(document.id, document.page_count, document.version)
        return AnnotationSession(document.id, preview, gateway, confirm=confirm, discard_prompt=prompt)

    async def refresh_editor(self, session: AnnotationSession) -> Document:
        """Re-read the session's document and point the preview at its current version."""
        document = await self.get_document(session.document_id)
        session.preview.open_document(document.id, document.page_count, document.version)
        return document
