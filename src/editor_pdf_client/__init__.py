"""
Editor PDF Client - annotation batches for a remote PDF rendering service

This package holds the client-side core of a PDF editor whose rendering and
mutation happen on a backend service. It enables:

- Building text, image and line-drawing instructions through per-tool forms
- Accumulating instructions into one ordered batch per open document
- Validating and submitting the batch as a single atomic request
- Browsing rendered page previews with paging and zoom
- Listing, uploading and deleting documents

Key Components:
    - session: AnnotationSession, the tool/batch state machine
    - builders: TextTool, ImageTool and DrawingTool form state
    - validation: schema checks for instructions and batches
    - gateway: ProcessingGateway, the submission lifecycle
    - preview: PagePreviewController, navigation and raster loading
    - document_service: async REST client
    - cache: document cache and its invalidation registry
    - library: document CRUD and editor wiring
    - configuration: config loading and merging logic

Usage:
    From the command line:
        editor-pdf list
        editor-pdf apply <document-id> batch.json

    The base URL comes from config (``api.base_url``) or the
    ``EDITOR_PDF_API_URL`` environment variable.
"""

from .errors import (
    ApiError,
    BatchValidationError,
    BuilderInputError,
    DocumentNotFoundError,
    EditorClientError,
    InvalidUploadError,
)
from .gateway import GatewayState, ProcessingGateway, SubmissionResult
from .models import (
    Document,
    DocumentStatus,
    DrawingInstruction,
    EditInstruction,
    ImageInstruction,
    ProcessDocumentRequest,
    TextInstruction,
    ToolKind,
)
from .preview import PagePreviewController, PreviewStatus, PreviewView
from .session import AnnotationSession, DiscardOutcome, SessionState

__all__ = [
    "AnnotationSession",
    "ApiError",
    "BatchValidationError",
    "BuilderInputError",
    "DiscardOutcome",
    "Document",
    "DocumentNotFoundError",
    "DocumentStatus",
    "DrawingInstruction",
    "EditInstruction",
    "EditorClientError",
    "GatewayState",
    "ImageInstruction",
    "InvalidUploadError",
    "PagePreviewController",
    "PreviewStatus",
    "PreviewView",
    "ProcessDocumentRequest",
    "ProcessingGateway",
    "SessionState",
    "SubmissionResult",
    "TextInstruction",
    "ToolKind",
]
