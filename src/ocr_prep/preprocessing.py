"""Pixel stages that condition a photographed label for text recognition.

Every stage is a pure function: it takes a ``RasterBuffer`` and returns a new
one, never touching its input.  The stages are wired together in
``ocr_prep.pipeline``; they are exposed here so callers can build their own
sequences.

Stages
------
1. Grayscale        : ITU-R BT.601 luminance (0.299 R + 0.587 G + 0.114 B).

2. Up-scale         : bilinear resampling by a fixed factor.  Recognition
                      accuracy drops sharply once glyphs are only a few pixels
                      tall, so small photos are doubled before anything else.

3. Denoise          : 3×3 box blur.  Knocks out isolated sensor / JPEG noise
                      pixels before any statistics are taken over the image.

4. Contrast stretch : linear remap of [min, max] onto [0, 255].  Uniform
                      images are returned untouched.

5. Binarise         : global threshold, either the integer mean intensity or
                      Otsu's between-class-variance optimum.  Output samples
                      are restricted to {0, 255}.

6. Sharpen          : 3×3 unity-gain high-pass kernel to crisp glyph edges.

Rounding
--------
All stages round half up (``floor(x + 0.5)``) and clamp to [0, 255].
Python's built-in ``round`` rounds half to even and would shift mid-tone
samples by one level.
"""

import logging
from typing import Sequence

import numpy as np

from ocr_prep.config import BinarizationPolicy, BorderMode
from ocr_prep.raster import BOX_BLUR_3X3, SHARPEN_3X3, Kernel, RasterBuffer, histogram

logger = logging.getLogger(__name__)

LUMA_WEIGHTS = (0.299, 0.587, 0.114)


# ── Helpers ────────────────────────────────────────────────────────────────────


def _round_clip(values: np.ndarray) -> np.ndarray:
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


def _require_single_channel(buffer: RasterBuffer, stage: str) -> None:
    if buffer.channels != 1:
        raise ValueError(f"{stage} requires a single-channel buffer; convert to grayscale first")


def _bilinear_axis(dst_size: int, src_size: int, factor: float):
    """Source indices and weights for one axis, sampling at pixel centres."""
    coords = (np.arange(dst_size) + 0.5) / factor - 0.5
    coords = np.clip(coords, 0, src_size - 1)
    lo = np.floor(coords).astype(np.intp)
    hi = np.minimum(lo + 1, src_size - 1)
    return lo, hi, coords - lo


# ── Stages ─────────────────────────────────────────────────────────────────────


def to_grayscale(buffer: RasterBuffer) -> RasterBuffer:
    """Reduce a buffer to single-channel luminance.  Grayscale input is returned as is."""
    if buffer.channels == 1:
        return buffer
    rgb = buffer.as_array().astype(np.float64)
    luma = rgb @ np.array(LUMA_WEIGHTS)
    return RasterBuffer.from_array(_round_clip(luma))


def upscale(buffer: RasterBuffer, factor: float) -> RasterBuffer:
    """Resize by *factor* (> 1.0) using bilinear interpolation.

    The output is ``round(width * factor) × round(height * factor)``.  Source
    coordinates that fall outside the image are clamped to the edge rather
    than read out of range.
    """
    if factor <= 1.0:
        raise ValueError(f"Scale factor must be greater than 1.0, got {factor}")

    new_width = int(np.floor(buffer.width * factor + 0.5))
    new_height = int(np.floor(buffer.height * factor + 0.5))

    src = buffer.as_array().astype(np.float64)
    x0, x1, fx = _bilinear_axis(new_width, buffer.width, factor)
    y0, y1, fy = _bilinear_axis(new_height, buffer.height, factor)

    # broadcast the weights over the channel axis of colour buffers
    extra = (1,) * (src.ndim - 2)
    fx = fx.reshape((1, -1) + extra)
    fy = fy.reshape((-1, 1) + extra)

    top = src[y0][:, x0] * (1 - fx) + src[y0][:, x1] * fx
    bottom = src[y1][:, x0] * (1 - fx) + src[y1][:, x1] * fx
    return RasterBuffer.from_array(_round_clip(top * (1 - fy) + bottom * fy))


def convolve(
    buffer: RasterBuffer,
    kernel: Kernel,
    border: BorderMode = BorderMode.REPLICATE,
) -> RasterBuffer:
    """Apply *kernel* to a single-channel buffer without changing its size.

    ``BorderMode.REPLICATE`` extends the edge samples outwards so every pixel
    is filtered.  ``BorderMode.CROP`` only filters pixels the kernel fully
    covers and copies the outer ring from the input.
    """
    _require_single_channel(buffer, "convolve")
    src = buffer.as_array()
    height, width = src.shape
    r = kernel.radius

    padded = np.pad(src.astype(np.float64), r, mode="edge")
    acc = np.zeros((height, width), dtype=np.float64)
    for dy, row in enumerate(kernel.weights):
        for dx, weight in enumerate(row):
            if weight:
                acc += weight * padded[dy:dy + height, dx:dx + width]
    out = _round_clip(acc)

    if border == BorderMode.CROP:
        inner = np.zeros((height, width), dtype=bool)
        inner[r:height - r, r:width - r] = True
        out = np.where(inner, out, src)

    return RasterBuffer.from_array(out)


def denoise(buffer: RasterBuffer, border: BorderMode = BorderMode.REPLICATE) -> RasterBuffer:
    return convolve(buffer, BOX_BLUR_3X3, border)


def sharpen(buffer: RasterBuffer, border: BorderMode = BorderMode.REPLICATE) -> RasterBuffer:
    return convolve(buffer, SHARPEN_3X3, border)


def stretch_contrast(buffer: RasterBuffer) -> RasterBuffer:
    """Linearly stretch the intensity range of a grayscale buffer to [0, 255]."""
    _require_single_channel(buffer, "stretch_contrast")
    src = buffer.as_array()
    lo, hi = int(src.min()), int(src.max())
    if lo == hi:
        return buffer
    scale = 255.0 / (hi - lo)
    logger.debug("Contrast stretch %d..%d -> 0..255", lo, hi)
    return RasterBuffer.from_array(_round_clip((src.astype(np.float64) - lo) * scale))


# ── Binarisation ───────────────────────────────────────────────────────────────


def binarize_threshold(buffer: RasterBuffer, threshold: int) -> RasterBuffer:
    """Samples strictly above *threshold* become 255, the rest 0."""
    _require_single_channel(buffer, "binarize")
    out = np.where(buffer.as_array() > threshold, 255, 0).astype(np.uint8)
    return RasterBuffer.from_array(out)


def mean_threshold(buffer: RasterBuffer) -> int:
    _require_single_channel(buffer, "mean_threshold")
    return int(buffer.samples.sum(dtype=np.int64)) // len(buffer.samples)


def otsu_threshold(hist: Sequence[int]) -> int:
    """Return the threshold that maximises the between-class variance.

    Background is every intensity ``<= t``.  Ties keep the lowest ``t``, and a
    histogram with a single populated bin yields 0.
    """
    if len(hist) != 256:
        raise ValueError(f"Expected 256 histogram bins, got {len(hist)}")

    total = sum(hist)
    total_sum = sum(t * count for t, count in enumerate(hist))

    sum_b = 0
    w_b = 0
    var_max = 0.0
    threshold = 0

    for t in range(256):
        w_b += hist[t]
        if w_b == 0:
            continue
        w_f = total - w_b
        if w_f == 0:
            break

        sum_b += t * hist[t]
        m_b = sum_b / w_b
        m_f = (total_sum - sum_b) / w_f

        var_between = w_b * w_f * (m_b - m_f) ** 2
        if var_between > var_max:
            var_max = var_between
            threshold = t

    return threshold


def binarize_mean(buffer: RasterBuffer) -> RasterBuffer:
    return binarize_threshold(buffer, mean_threshold(buffer))


def binarize_otsu(buffer: RasterBuffer) -> RasterBuffer:
    _require_single_channel(buffer, "binarize_otsu")
    return binarize_threshold(buffer, otsu_threshold(histogram(buffer)))


def select_threshold(buffer: RasterBuffer, policy: BinarizationPolicy) -> int:
    if policy == BinarizationPolicy.OTSU:
        _require_single_channel(buffer, "otsu_threshold")
        return otsu_threshold(histogram(buffer))
    if policy == BinarizationPolicy.MEAN:
        return mean_threshold(buffer)
    raise ValueError(f"Unknown binarization policy: {policy!r}")


def binarize(buffer: RasterBuffer, policy: BinarizationPolicy) -> RasterBuffer:
    """Binarise with the threshold chosen by *policy*."""
    return binarize_threshold(buffer, select_threshold(buffer, policy))
