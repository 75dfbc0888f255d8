"""
Utility functions for file handling and small numeric helpers.

This module provides helper functions for:
- Checking and naming files before they are uploaded or embedded
- Encoding image files into self-describing data URLs
- Producing freshness tokens for cache-busting requests
- Clamping values into a closed range
"""

from __future__ import annotations

import asyncio
import base64
import mimetypes
import re
import time
from pathlib import Path
from typing import Iterable, Optional

# Pattern to match characters that are not safe in an uploaded filename
# Allows: alphanumeric characters, underscores, and hyphens
SANITIZE_PATTERN = re.compile(r"[^a-zA-Z0-9_-]+")


def sanitize_filename(filename: str, fallback: str = "document") -> str:
    """
    Generate an upload-safe PDF filename from a local filename.

    Args:
        filename: The original filename (may include a path)
        fallback: Stem to use if sanitization leaves nothing

    Returns:
        A filename made of safe characters, always ending in ``.pdf``

    Example:
        >>> sanitize_filename("My Report (final).PDF")
        "My-Report-final.pdf"
        >>> sanitize_filename("@#$.pdf")
        "document.pdf"
    """
    stem, suffix = split_extension(filename)
    cleaned = SANITIZE_PATTERN.sub("-", stem.strip()).strip("-_") or fallback
    suffix = suffix.lower()
    if suffix not in allowed_pdf_extensions():
        suffix = ".pdf"
    return f"{cleaned}{suffix}"


def split_extension(filename: str) -> tuple[str, str]:
    """
    Split a filename into stem and extension components.

    Args:
        filename: The filename to split (can include path)

    Returns:
        A tuple of (stem, extension) where extension includes the dot

    Example:
        >>> split_extension("document.pdf")
        ("document", ".pdf")
        >>> split_extension("/path/to/file.tar.gz")
        ("file.tar", ".gz")
    """
    path = Path(filename)
    return path.stem, path.suffix


def allowed_pdf_extensions() -> Iterable[str]:
    """
    Get the list of allowed PDF file extensions.

    Returns:
        An iterable of valid PDF extensions (currently only '.pdf')
    """
    return [".pdf"]


def is_pdf_file(path: Path) -> bool:
    return path.suffix.lower() in allowed_pdf_extensions()


def guess_media_type(path: Path) -> Optional[str]:
    """Media type derived from the file extension, None if unknown."""
    media_type, _ = mimetypes.guess_type(path.name)
    return media_type


def is_image_media_type(media_type: Optional[str]) -> bool:
    return bool(media_type) and media_type.startswith("image/")


async def encode_data_url(path: Path, media_type: str) -> str:
    """
    Read a file without blocking the event loop and encode it as a data URL.

    Args:
        path: File to read
        media_type: Declared media type, becomes the data URL header

    Returns:
        ``data:<media_type>;base64,<payload>``

    Raises:
        OSError: If the file cannot be read
    """
    raw = await asyncio.to_thread(path.read_bytes)
    payload = base64.b64encode(raw).decode("ascii")
    return f"data:{media_type};base64,{payload}"


def freshness_token() -> str:
    """Millisecond timestamp appended to requests to defeat intermediate caches."""
    return str(time.time_ns() // 1_000_000)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
