"""
Tests for file and numeric helpers.
"""

import asyncio
import base64
from pathlib import Path

import pytest

from editor_pdf_client.utils import (
    clamp,
    encode_data_url,
    freshness_token,
    guess_media_type,
    is_image_media_type,
    is_pdf_file,
    sanitize_filename,
    split_extension,
)


class TestFilenames:
    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("My Report (final).PDF", "My-Report-final.pdf"),
            ("@#$.pdf", "document.pdf"),
            ("/tmp/nested/scan_01.pdf", "scan_01.pdf"),
            ("notes", "notes.pdf"),
        ],
    )
    def test_sanitize_filename(self, filename, expected):
        assert sanitize_filename(filename) == expected

    def test_split_extension(self):
        assert split_extension("/path/to/file.tar.gz") == ("file.tar", ".gz")

    def test_is_pdf_file(self):
        assert is_pdf_file(Path("a.PDF"))
        assert not is_pdf_file(Path("a.png"))


class TestMediaTypes:
    def test_guess_media_type(self):
        assert guess_media_type(Path("logo.png")) == "image/png"
        assert guess_media_type(Path("mystery")) is None

    @pytest.mark.parametrize(
        "media_type, expected",
        [("image/jpeg", True), ("application/pdf", False), (None, False), ("", False)],
    )
    def test_is_image_media_type(self, media_type, expected):
        assert is_image_media_type(media_type) is expected


class TestEncoding:
    def test_encode_data_url(self, tmp_path):
        path = tmp_path / "pixel.gif"
        path.write_bytes(b"GIF89a")
        url = asyncio.run(encode_data_url(path, "image/gif"))
        assert url == "data:image/gif;base64," + base64.b64encode(b"GIF89a").decode("ascii")

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            asyncio.run(encode_data_url(tmp_path / "gone.png", "image/png"))


class TestHelpers:
    def test_freshness_token_is_millisecond_timestamp(self):
        token = freshness_token()
        assert token.isdigit()
        assert len(token) >= 13

    @pytest.mark.parametrize("value, expected", [(-1, 0), (5, 5), (11, 10)])
    def test_clamp(self, value, expected):
        assert clamp(value, 0, 10) == expected
