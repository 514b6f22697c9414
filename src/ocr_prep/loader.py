"""Image decoding and encoding using Pillow.

The pipeline only ever sees decoded ``RasterBuffer`` values; turning file
bytes into one (and back into PNG for inspection) happens here.
"""

import io
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image

from ocr_prep.raster import RasterBuffer

# Pillow modes that carry a single 8-bit luminance channel (alpha is dropped).
GRAYSCALE_MODES = {"1", "L", "LA"}

# 16-bit scanner output arrives as I;16 (or I;16B etc.) or, from older Pillow
# releases, as 32-bit "I" holding 16-bit values.
HIGH_BIT_DEPTH_INT_MODES = {"I", "I;16", "I;16B", "I;16L", "I;16N"}

SIXTEEN_BIT_TO_BYTE = 65535 / 255


class ImageDecodeError(ValueError):
    """Raised when raw bytes cannot be decoded into a usable image."""


def _high_bit_depth_to_bytes(img: Image.Image) -> np.ndarray:
    """Reduce a 16/32-bit integer or float grayscale image to 8 bits.

    ``Image.convert("L")`` clips these modes at 255 instead of rescaling, which
    turns an ordinary 16-bit scan into a blank white page.
    """
    values = np.asarray(img, dtype=np.float64)
    if img.mode == "F":
        lo, hi = float(values.min()), float(values.max())
        if hi > lo:
            values = (values - lo) * (255.0 / (hi - lo))
        else:
            values = np.zeros_like(values)
    else:
        values = values / SIXTEEN_BIT_TO_BYTE
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


def from_pil(img: Image.Image) -> RasterBuffer:
    if img.mode in HIGH_BIT_DEPTH_INT_MODES or img.mode == "F":
        return RasterBuffer.from_array(_high_bit_depth_to_bytes(img))
    target = "L" if img.mode in GRAYSCALE_MODES else "RGB"
    if img.mode != target:
        img = img.convert(target)
    return RasterBuffer.from_array(np.asarray(img, dtype=np.uint8))


def to_pil(buffer: RasterBuffer) -> Image.Image:
    # fromarray needs a writable array; as_array() is read-only
    return Image.fromarray(np.array(buffer.as_array(), copy=True))


def decode_image(data: bytes) -> RasterBuffer:
    """Decode an encoded image (PNG, JPEG, ...) into a RasterBuffer."""
    if not data:
        raise ImageDecodeError("Image data is empty")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return from_pil(img)
    except (OSError, ValueError) as e:
        raise ImageDecodeError(f"Could not decode image: {e}") from e


def load_image(path: Union[str, Path]) -> RasterBuffer:
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ImageDecodeError(f"Could not read image file: {path}") from e
    return decode_image(data)


def encode_png(buffer: RasterBuffer) -> bytes:
    buf = io.BytesIO()
    to_pil(buffer).save(buf, format="PNG")
    return buf.getvalue()


def save_image(buffer: RasterBuffer, path: Union[str, Path]) -> Path:
    """Write *buffer* as a PNG file and return the path written."""
    path = Path(path)
    path.write_bytes(encode_png(buffer))
    return path
