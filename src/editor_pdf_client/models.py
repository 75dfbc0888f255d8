from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ToolKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    DRAWING = "drawing"


class DocumentStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    PROCESSED = "processed"
    ERROR = "error"


class InstructionBase(BaseModel):
    """
    Fields shared by every edit instruction.

    Instructions are frozen: once appended to a session they are never
    mutated in place, a changed page produces a copy.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    page: int = Field(1, ge=1)
    x: float = Field(..., ge=0)
    y: float = Field(..., ge=0)
    width: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)
    content: Optional[str] = None
    font_size: Optional[float] = Field(None, alias="fontSize", gt=0)
    metadata: Optional[Dict[str, Any]] = None

    def on_page(self, page: int) -> "InstructionBase":
        return self.model_copy(update={"page": page})

    def to_payload(self) -> Dict[str, Any]:
        """Wire representation: camelCase keys, unset optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TextInstruction(InstructionBase):
    type: Literal["text"] = "text"
    content: str = Field(..., min_length=1)
    font_size: float = Field(12, alias="fontSize", ge=8, le=72)

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Text content must not be blank")
        return value


class ImageMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    filename: str = Field(..., min_length=1)
    mime_type: str = Field(..., alias="mimeType")

    @field_validator("mime_type")
    @classmethod
    def _must_be_image(cls, value: str) -> str:
        if not value.startswith("image/"):
            raise ValueError("Media type must start with 'image/'")
        return value


class ImageInstruction(InstructionBase):
    type: Literal["image"] = "image"
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    content: str
    metadata: ImageMetadata

    @field_validator("content")
    @classmethod
    def _must_be_data_url(cls, value: str) -> str:
        # data:<mime>;base64,<payload>
        header, sep, payload = value.partition(",")
        if not sep or not payload or not header.startswith("data:image/") or not header.endswith(";base64"):
            raise ValueError("Image content must be a base64 data URL")
        return value


class DrawingMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    x2: float = Field(..., ge=0)
    y2: float = Field(..., ge=0)
    stroke_width: float = Field(2, alias="strokeWidth", ge=1, le=10)
    drawing_type: Literal["line"] = Field("line", alias="drawingType")


class DrawingInstruction(InstructionBase):
    type: Literal["drawing"] = "drawing"
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    metadata: DrawingMetadata


EditInstruction = Annotated[
    Union[TextInstruction, ImageInstruction, DrawingInstruction],
    Field(discriminator="type"),
]

INSTRUCTION_MODELS: Dict[ToolKind, Type[InstructionBase]] = {
    ToolKind.TEXT: TextInstruction,
    ToolKind.IMAGE: ImageInstruction,
    ToolKind.DRAWING: DrawingInstruction,
}


class ProcessDocumentRequest(BaseModel):
    instructions: List[EditInstruction] = Field(..., min_length=1)

    def to_payload(self) -> Dict[str, Any]:
        return {"instructions": [instruction.to_payload() for instruction in self.instructions]}


class Document(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    user_id: Optional[str] = None
    file_path: Optional[str] = None
    file_url: Optional[str] = None
    checksum: Optional[str] = None
    version: int = 1
    status: DocumentStatus
    page_count: int = Field(0, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DocumentListResponse(BaseModel):
    documents: List[Document]
    total: int
    limit: int
    offset: int


class UploadDocumentResponse(BaseModel):
    document: Document
    message: str = ""


class ProcessDocumentResponse(BaseModel):
    document: Document
    message: str = ""


class ApiEnvelope(BaseModel):
    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    error: Optional[str] = None
