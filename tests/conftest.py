"""
Pytest configuration and fixtures for Editor PDF Client tests.
"""

import asyncio
import io
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
from fastapi import APIRouter, FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from PIL import Image

# Set test environment variables before importing the package
os.environ["EDITOR_PDF_API_URL"] = "http://testserver/api/v1"
os.environ.pop("EDITOR_PDF_CONFIG", None)

from editor_pdf_client.cache import DocumentCache
from editor_pdf_client.configuration import make_runtime_config
from editor_pdf_client.document_service import DocumentService
from editor_pdf_client.errors import ApiError
from editor_pdf_client.models import Document, ProcessDocumentRequest, ProcessDocumentResponse
from editor_pdf_client.notifications import NoticeBoard

BASE_URL = "http://testserver/api/v1"


def make_png(width: int = 40, height: int = 60, color: str = "white") -> bytes:
    """Encode a solid-color PNG of the given size."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FakeDocumentBackend:
    """
    In-memory stand-in for the document service, served through FastAPI.

    Attributes:
        documents: Stored document payloads keyed by id
        process_calls: (document_id, request body) for every process request
        preview_requests: (document_id, page, query params) for every preview fetch
        list_requests: Number of list requests served
        process_failure: (status, body) returned by the process endpoint when set
        preview_mode: "png", "garbage" or "error"
    """

    def __init__(self) -> None:
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.process_calls: List[Tuple[str, Dict[str, Any]]] = []
        self.preview_requests: List[Tuple[str, int, Dict[str, str]]] = []
        self.list_requests = 0
        self.process_failure: Optional[Tuple[int, Dict[str, Any]]] = None
        self.preview_mode = "png"
        self._next_id = 1
        self.app = self._build_app()

    def add_document(self, page_count: int = 5, version: int = 1, status: str = "processed") -> Dict[str, Any]:
        document_id = f"doc-{self._next_id}"
        self._next_id += 1
        document = {
            "id": document_id,
            "user_id": "user-1",
            "file_path": f"uploads/{document_id}.pdf",
            "file_url": f"{BASE_URL}/files/{document_id}.pdf",
            "checksum": "abc123",
            "version": version,
            "status": status,
            "page_count": page_count,
            "created_at": _now(),
            "updated_at": _now(),
        }
        self.documents[document_id] = document
        return document

    @staticmethod
    def _not_found() -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "not_found", "message": "Document not found"},
        )

    def _build_app(self) -> FastAPI:
        router = APIRouter(prefix="/api/v1")

        @router.get("/documents")
        async def list_documents(limit: int = 20, offset: int = 0):
            self.list_requests += 1
            documents = list(self.documents.values())
            return {
                "success": True,
                "data": {
                    "documents": documents[offset:offset + limit],
                    "total": len(documents),
                    "limit": limit,
                    "offset": offset,
                },
            }

        @router.post("/documents", status_code=201)
        async def upload_document(file: UploadFile = File(...)):
            await file.read()
            document = self.add_document(page_count=1, status="uploaded")
            document["file_path"] = f"uploads/{file.filename}"
            return {
                "success": True,
                "data": {"document": document, "message": "Document uploaded successfully"},
            }

        @router.get("/documents/{document_id}")
        async def get_document(document_id: str):
            if document_id not in self.documents:
                return self._not_found()
            return {"success": True, "data": self.documents[document_id]}

        @router.post("/documents/{document_id}/process")
        async def process_document(document_id: str, request: Request):
            body = await request.json()
            self.process_calls.append((document_id, body))
            if self.process_failure is not None:
                status, payload = self.process_failure
                return JSONResponse(status_code=status, content=payload)
            if document_id not in self.documents:
                return self._not_found()

            document = self.documents[document_id]
            document["version"] += 1
            document["updated_at"] = _now()
            return {
                "success": True,
                "data": {"document": document, "message": "Document processed successfully"},
            }

        @router.get("/documents/{document_id}/preview/{page}")
        async def preview_page(document_id: str, page: int, request: Request):
            self.preview_requests.append((document_id, page, dict(request.query_params)))
            if document_id not in self.documents:
                return self._not_found()
            if self.preview_mode == "error":
                return JSONResponse(
                    status_code=500,
                    content={"success": False, "error": "render_failed", "message": "Render failed"},
                )
            if self.preview_mode == "garbage":
                return Response(content=b"definitely not an image", media_type="image/png")
            return Response(content=make_png(), media_type="image/png")

        @router.delete("/documents/{document_id}")
        async def delete_document(document_id: str):
            if self.documents.pop(document_id, None) is None:
                return self._not_found()
            return {"success": True, "data": {"message": "Document deleted successfully"}}

        app = FastAPI()
        app.include_router(router)
        return app


class StubProcessingBackend:
    """
    Scriptable ``process_document`` for gateway and session tests.

    Set ``gate`` to an asyncio.Event to hold requests in flight until it is set.
    """

    def __init__(self, error: Optional[Exception] = None, message: str = "Done") -> None:
        self.calls: List[Tuple[str, ProcessDocumentRequest]] = []
        self.error = error
        self.message = message
        self.gate: Optional[asyncio.Event] = None

    async def process_document(self, document_id: str, request: ProcessDocumentRequest) -> ProcessDocumentResponse:
        self.calls.append((document_id, request))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        document = Document(id=document_id, status="processed", version=2, page_count=5)
        return ProcessDocumentResponse(document=document, message=self.message)


class RecordingRegistry:
    """Invalidation registry that only remembers what it was asked to do."""

    def __init__(self) -> None:
        self.documents: List[str] = []
        self.list_invalidations = 0

    def invalidate_document(self, document_id: str) -> None:
        self.documents.append(document_id)

    def invalidate_document_lists(self) -> None:
        self.list_invalidations += 1


class InstantPreviewSource:
    """Preview source answering every fetch immediately with a PNG."""

    def __init__(self, data: Optional[bytes] = None) -> None:
        self.data = data if data is not None else make_png()
        self.fetches: List[Tuple[str, int, str]] = []
        self.error: Optional[ApiError] = None

    def preview_url(self, document_id: str, page: int) -> str:
        return f"{BASE_URL}/documents/{document_id}/preview/{page}"

    async def fetch_preview(self, document_id: str, page: int, token: str) -> bytes:
        self.fetches.append((document_id, page, token))
        if self.error is not None:
            raise self.error
        return self.data


class GatedPreviewSource(InstantPreviewSource):
    """
    Preview source whose fetches block until released per page.

    Gates are created lazily so they bind to the loop running the test.
    """

    def __init__(self) -> None:
        super().__init__()
        self._gates: Dict[int, asyncio.Event] = {}

    def gate(self, page: int) -> asyncio.Event:
        if page not in self._gates:
            self._gates[page] = asyncio.Event()
        return self._gates[page]

    def release(self, page: int) -> None:
        self.gate(page).set()

    async def fetch_preview(self, document_id: str, page: int, token: str) -> bytes:
        self.fetches.append((document_id, page, token))
        await self.gate(page).wait()
        return make_png(width=10 * page, height=20)


@pytest.fixture
def config():
    """Runtime config pointed at the in-process test server."""
    return make_runtime_config({"api": {"base_url": BASE_URL}})


@pytest.fixture
def backend():
    """Fresh fake document service."""
    return FakeDocumentBackend()


@pytest.fixture
def service(backend, config):
    """DocumentService talking to the fake backend over ASGI."""
    client = DocumentService.from_config(config, transport=httpx.ASGITransport(app=backend.app))
    yield client
    asyncio.run(client.aclose())


@pytest.fixture
def cache():
    return DocumentCache()


@pytest.fixture
def notices():
    return NoticeBoard()


@pytest.fixture
def sample_pdf(tmp_path):
    """Create a minimal valid PDF file for testing."""
    # Minimal PDF that is technically valid
    pdf_content = b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>
endobj
trailer
<< /Size 4 /Root 1 0 R >>
%%EOF"""
    path = tmp_path / "Quarterly Report (final).pdf"
    path.write_bytes(pdf_content)
    return path


@pytest.fixture
def sample_image(tmp_path):
    """Small PNG on disk, as picked in the image tool."""
    path = tmp_path / "logo.png"
    path.write_bytes(make_png(8, 8, "red"))
    return path
