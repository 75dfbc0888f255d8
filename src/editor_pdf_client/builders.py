"""
Per-tool form state and instruction construction.

Each tool owns only the fields relevant to its instruction type. A tool is a
plain value object held by the session while that tool is active; ``submit``
either produces a frozen instruction and resets the form to its defaults, or
raises :class:`BuilderInputError` and leaves the form untouched.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional, Type

from pydantic import ValidationError

from .errors import BuilderInputError
from .models import (
    DrawingInstruction,
    ImageInstruction,
    InstructionBase,
    TextInstruction,
    ToolKind,
)
from .utils import encode_data_url, guess_media_type, is_image_media_type

logger = logging.getLogger(__name__)


def _construct(model: Type[InstructionBase], payload: Dict[str, Any]) -> InstructionBase:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "instruction"
        raise BuilderInputError(field, first["msg"]) from exc


@dataclass
class SelectedFile:
    path: Path
    name: str
    media_type: Optional[str]

    @classmethod
    def from_path(cls, path: Path, media_type: Optional[str] = None) -> "SelectedFile":
        path = Path(path)
        return cls(path=path, name=path.name, media_type=media_type or guess_media_type(path))


@dataclass
class InstructionBuilder(ABC):
    kind: ClassVar[ToolKind]

    @abstractmethod
    async def submit(self) -> InstructionBase:
        ...

    def reset(self) -> None:
        for field in fields(self):
            setattr(self, field.name, field.default)

    def cancel(self) -> None:
        self.reset()


@dataclass
class TextTool(InstructionBuilder):
    kind: ClassVar[ToolKind] = ToolKind.TEXT

    content: str = ""
    font_size: float = 12
    x: float = 100
    y: float = 100

    async def submit(self) -> InstructionBase:
        if not self.content.strip():
            raise BuilderInputError("content", "Text content is required")

        instruction = _construct(
            TextInstruction,
            {"x": self.x, "y": self.y, "content": self.content, "fontSize": self.font_size},
        )
        self.reset()
        return instruction


@dataclass
class ImageTool(InstructionBuilder):
    kind: ClassVar[ToolKind] = ToolKind.IMAGE

    file: Optional[SelectedFile] = None
    x: float = 100
    y: float = 100
    width: float = 200
    height: float = 200

    def select_file(self, path: Path, media_type: Optional[str] = None) -> SelectedFile:
        self.file = SelectedFile.from_path(path, media_type)
        return self.file

    async def submit(self) -> InstructionBase:
        selected = self.file
        if selected is None:
            raise BuilderInputError("file", "An image file is required")
        if not is_image_media_type(selected.media_type):
            raise BuilderInputError("file", f"{selected.name} is not an image")

        # Only suspension point while building an instruction.
        try:
            content = await encode_data_url(selected.path, selected.media_type)
        except OSError as exc:
            raise BuilderInputError("file", f"Could not read {selected.name}: {exc}") from exc

        instruction = _construct(
            ImageInstruction,
            {
                "x": self.x,
                "y": self.y,
                "width": self.width,
                "height": self.height,
                "content": content,
                "metadata": {"filename": selected.name, "mimeType": selected.media_type},
            },
        )
        self.reset()
        return instruction


@dataclass
class DrawingTool(InstructionBuilder):
    """Straight line between two endpoints; the instruction carries its bounding box."""

    kind: ClassVar[ToolKind] = ToolKind.DRAWING

    x1: float = 100
    y1: float = 100
    x2: float = 200
    y2: float = 200
    stroke_width: float = 2

    async def submit(self) -> InstructionBase:
        instruction = _construct(
            DrawingInstruction,
            {
                "x": self.x1,
                "y": self.y1,
                "width": abs(self.x2 - self.x1),
                "height": abs(self.y2 - self.y1),
                "metadata": {
                    "x2": self.x2,
                    "y2": self.y2,
                    "strokeWidth": self.stroke_width,
                    "drawingType": "line",
                },
            },
        )
        self.reset()
        return instruction


BUILDERS: Dict[ToolKind, Type[InstructionBuilder]] = {
    ToolKind.TEXT: TextTool,
    ToolKind.IMAGE: ImageTool,
    ToolKind.DRAWING: DrawingTool,
}


def create_builder(kind: ToolKind) -> InstructionBuilder:
    kind = ToolKind(kind)
    builder = BUILDERS[kind]()
    logger.debug(f"Created {kind.value} tool with defaults")
    return builder
