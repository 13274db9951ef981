"""Tests for image and media source loading."""

import io
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from office_whisperer.media import load_image, media_stream, read_source


def image_bytes(fmt, size=(30, 10)):
    buffer = io.BytesIO()
    Image.new("RGB", size, "blue").save(buffer, format=fmt)
    return buffer.getvalue()


class TestReadSource:

    def test_local_file(self, tmp_path):
        path = tmp_path / "clip.bin"
        path.write_bytes(b"\x00\x01")
        assert read_source(str(path)) == b"\x00\x01"
        assert media_stream(str(path)).read() == b"\x00\x01"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="File not found"):
            read_source(str(tmp_path / "missing.png"))

    def test_url_downloaded(self):
        response = MagicMock(content=b"remote")
        with patch("office_whisperer.media.requests.get", return_value=response) as get:
            assert read_source("https://example.com/logo.png") == b"remote"
        assert get.call_args.kwargs["timeout"] == 30
        response.raise_for_status.assert_called_once()


class TestLoadImage:

    def test_png_passes_through(self, tmp_path):
        data = image_bytes("PNG")
        path = tmp_path / "a.png"
        path.write_bytes(data)
        assert load_image(str(path)).getvalue() == data

    def test_webp_converted_to_png(self, tmp_path):
        path = tmp_path / "a.webp"
        path.write_bytes(image_bytes("WEBP"))
        stream = load_image(str(path))
        with Image.open(stream) as img:
            assert img.format == "PNG"

