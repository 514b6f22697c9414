"""Shared fixtures for the test suite.

All fixtures here produce real buffers / real files so tests exercise actual
code paths rather than hand-crafted stubs.
"""

import io
from pathlib import Path

import numpy as np
import pytest
from click.testing import CliRunner
from PIL import Image

from ocr_prep.raster import RasterBuffer


# ── CLI runner ─────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


# ── Buffer fixtures ────────────────────────────────────────────────────────


def make_blob(size: int, blob: int = 30, background: int = 220) -> np.ndarray:
    """A square grayscale image with a dark square in the middle."""
    pixels = np.full((size, size), background, dtype=np.uint8)
    lo, hi = size // 4, 3 * size // 4
    pixels[lo:hi, lo:hi] = blob
    return pixels


@pytest.fixture
def blob_buffer() -> RasterBuffer:
    """200×200 light background (220) with a 100×100 dark blob (30)."""
    return RasterBuffer.from_array(make_blob(200))


@pytest.fixture
def large_blob_buffer() -> RasterBuffer:
    """Same layout as blob_buffer but large enough to skip the upscale."""
    return RasterBuffer.from_array(make_blob(320))


@pytest.fixture
def bimodal_buffer() -> RasterBuffer:
    """Left half 50, right half 200: two equal histogram peaks."""
    pixels = np.full((10, 20), 200, dtype=np.uint8)
    pixels[:, :10] = 50
    return RasterBuffer.from_array(pixels)


# ── Image file fixtures ────────────────────────────────────────────────────


@pytest.fixture
def png_bytes() -> bytes:
    """A real, valid 10×10 red PNG image as raw bytes."""
    buf = io.BytesIO()
    Image.new("RGB", (10, 10), color=(255, 0, 0)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_file(tmp_path: Path, png_bytes: bytes) -> Path:
    """The PNG written to a temporary file on disk."""
    path = tmp_path / "test.png"
    path.write_bytes(png_bytes)
    return path


@pytest.fixture
def label_file(tmp_path: Path) -> Path:
    """An RGB photo-like label: dark blob on a light background, saved as PNG."""
    gray = make_blob(120)
    rgb = np.stack([gray, gray, gray], axis=-1)
    path = tmp_path / "label.png"
    Image.fromarray(rgb).save(path, format="PNG")
    return path
