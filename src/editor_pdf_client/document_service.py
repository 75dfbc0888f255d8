"""
Async REST client for the document service.

Every JSON response is wrapped in the envelope ``{success, data?, message?}``;
page previews are the one exception and come back as raw image bytes.
Transport failures and non-2xx answers are translated into :class:`ApiError`
(:class:`DocumentNotFoundError` for 404) carrying the server's message when
it sent one.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .errors import ApiError, DocumentNotFoundError, InvalidUploadError
from .models import (
    ApiEnvelope,
    Document,
    DocumentListResponse,
    ProcessDocumentRequest,
    ProcessDocumentResponse,
    UploadDocumentResponse,
)
from .utils import is_pdf_file, sanitize_filename

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_ERROR_MESSAGE = "Unexpected response from the document service"


class DocumentService:
    """
    Thin async wrapper over the document endpoints.

    Use as an async context manager, or call :meth:`aclose` when done.

    Attributes:
        base_url: API root, e.g. ``http://localhost:8080/api/v1``
        token_param: Query parameter carrying the preview freshness token
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        token_param: str = "t",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_param = token_param
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: Any, transport: Optional[httpx.AsyncBaseTransport] = None) -> "DocumentService":
        return cls(
            base_url=str(config.api.base_url),
            timeout=float(config.api.timeout),
            token_param=str(config.preview.token_param),
            transport=transport,
        )

    async def __aenter__(self) -> "DocumentService":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_documents(self, limit: Optional[int] = None, offset: Optional[int] = None) -> DocumentListResponse:
        params: Dict[str, int] = {}
        if limit is not None:
            params["limit"] = limit
        if offset is not None:
            params["offset"] = offset
        response = await self._request("GET", "/documents", params=params)
        return self._parse(DocumentListResponse, response)

    async def get_document(self, document_id: str) -> Document:
        response = await self._request("GET", f"/documents/{document_id}")
        return self._parse(Document, response)

    async def upload_document(self, path: Path) -> UploadDocumentResponse:
        path = Path(path)
        if not is_pdf_file(path):
            raise InvalidUploadError("Only PDF uploads are supported")
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise InvalidUploadError(f"Could not read {path.name}: {exc}") from exc

        files = {"file": (sanitize_filename(path.name), data, "application/pdf")}
        response = await self._request("POST", "/documents", files=files)
        return self._parse(UploadDocumentResponse, response)

    async def process_document(self, document_id: str, request: ProcessDocumentRequest) -> ProcessDocumentResponse:
        response = await self._request("POST", f"/documents/{document_id}/process", json=request.to_payload())
        return self._parse(ProcessDocumentResponse, response)

    def preview_url(self, document_id: str, page: int) -> str:
        return f"{self.base_url}/documents/{document_id}/preview/{page}"

    async def fetch_preview(self, document_id: str, page: int, token: str) -> bytes:
        response = await self._request(
            "GET",
            f"/documents/{document_id}/preview/{page}",
            params={self.token_param: token},
        )
        return response.content

    async def delete_document(self, document_id: str) -> str:
        response = await self._request("DELETE", f"/documents/{document_id}")
        if not response.content:
            return ""
        try:
            envelope = ApiEnvelope.model_validate(response.json())
        except ValueError:
            return ""
        if isinstance(envelope.data, dict) and envelope.data.get("message"):
            return str(envelope.data["message"])
        return envelope.message or ""

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        logger.debug(f"{method} {url}")
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error(f"{method} {url} failed: {exc}")
            raise ApiError(f"Could not reach the document service: {exc}") from exc

        if response.status_code == 404:
            raise DocumentNotFoundError(self._error_message(response, "Document not found"))
        if response.is_error:
            message = self._error_message(response, f"Request failed with status {response.status_code}")
            logger.warning(f"{method} {url} returned {response.status_code}: {message}")
            raise ApiError(message, status_code=response.status_code)
        return response

    @staticmethod
    def _error_message(response: httpx.Response, fallback: str) -> str:
        try:
            payload = response.json()
        except ValueError:
            return fallback
        if not isinstance(payload, dict):
            return fallback
        return payload.get("message") or payload.get("error") or fallback

    @classmethod
    def _parse(cls, model: Type[ModelT], response: httpx.Response) -> ModelT:
        try:
            return model.model_validate(cls._extract_data(response))
        except ValidationError as exc:
            logger.warning(f"Malformed {model.__name__} payload: {exc}")
            raise ApiError(DEFAULT_ERROR_MESSAGE, status_code=response.status_code) from exc

    @staticmethod
    def _extract_data(response: httpx.Response) -> Any:
        try:
            envelope = ApiEnvelope.model_validate(response.json())
        except ValueError as exc:
            raise ApiError(DEFAULT_ERROR_MESSAGE, status_code=response.status_code) from exc
        if envelope.success and envelope.data is not None:
            return envelope.data
        raise ApiError(envelope.message or envelope.error or DEFAULT_ERROR_MESSAGE, status_code=response.status_code)
