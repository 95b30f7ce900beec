"""
Shared pytest fixtures for image_manager tests.

Provides:
- Image bytes generated with Pillow (PNG, JPEG)
- A bare PNG header declaring oversized dimensions
- Staging and target directories
- A factory that stages bytes like an HTTP host would
"""

import io
import struct
import zlib
from pathlib import Path

import pytest
from PIL import Image

from image_manager.schemas import UploadedField, UploadRequest


def make_image_bytes(fmt: str, size=(4, 3)) -> bytes:
    image = Image.new("RGB", size, (200, 30, 30))
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


def make_png_header(width: int, height: int) -> bytes:
    """Signature, IHDR and a one-byte IDAT: enough for Pillow to read the size."""

    def chunk(tag: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + tag + data + struct.pack(">I", zlib.crc32(tag + data))

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", b"\x00")


@pytest.fixture
def oversized_png() -> bytes:
    return make_png_header(30000, 30000)


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def target_dir(tmp_path: Path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def stage(staging_dir: Path):
    """Write bytes into the staging area and return the staging path."""
    counter = {"n": 0}

    def _stage(content: bytes) -> str:
        counter["n"] += 1
        path = staging_dir / f"php{counter['n']}.tmp"
        path.write_bytes(content)
        return str(path)

    return _stage


@pytest.fixture
def single_request(stage):
    """Build an UploadRequest for one file submitted under the 'image' field."""

    def _request(name: str, content: bytes, out_file_name: str = "", error: int = 0) -> UploadRequest:
        field = UploadedField(name=name, tmp_name=stage(content), error=error, size=len(content))
        return UploadRequest(files={"image": field}, field="image", out_file_name=out_file_name)

    return _request
