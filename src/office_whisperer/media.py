'''
Image and media sources for the document generators.

A source is a local path or an http(s) URL. Images are checked with Pillow and
converted to PNG when the Office libraries cannot embed their format.
'''

import io
import os

import requests
from PIL import Image

import logging
logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 30
EMBEDDABLE_FORMATS = {"PNG", "JPEG", "GIF", "BMP", "TIFF"}


def read_source(source: str, timeout: int = DOWNLOAD_TIMEOUT) -> bytes:
    """Return the raw bytes of a local file or an http(s) URL."""
    if source.startswith(("http://", "https://")):
        headers = {
            'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36'
        }
        response = requests.get(source, headers=headers, timeout=timeout)
        response.raise_for_status()
        return response.content

    full_path = os.path.abspath(os.path.expanduser(source))
    if not os.path.exists(full_path):
        raise FileNotFoundError(f"File not found: {full_path}")
    with open(full_path, "rb") as f:
        return f.read()


def load_image(source: str) -> io.BytesIO:
    """Image stream ready for openpyxl/python-docx/python-pptx."""
    data = read_source(source)
    with Image.open(io.BytesIO(data)) as img:
        img_format = img.format
        if img_format in EMBEDDABLE_FORMATS:
            return io.BytesIO(data)
        logger.info(f"Converting {img_format} image from {source} to PNG")
        converted = io.BytesIO()
        img.convert("RGBA").save(converted, format="PNG")
    converted.seek(0)
    return converted


def media_stream(source: str) -> io.BytesIO:
    """Video/audio bytes as a stream (for python-pptx add_movie)."""
    return io.BytesIO(read_source(source))
