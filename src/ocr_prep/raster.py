"""In-memory raster types shared by every preprocessing stage.

A ``RasterBuffer`` is a rectangular grid of 8-bit samples with an explicit
width, height and channel count (1 = grayscale / binary, 3 = RGB).  Samples
are stored row-major, top-to-bottom, in a read-only numpy array so that a
buffer handed to one stage can never be changed behind the back of another.

Binary images are not a separate type: they are single-channel buffers whose
samples are restricted to {0, 255}.
"""

from dataclasses import dataclass, field
from typing import Sequence, Union

import numpy as np

SUPPORTED_CHANNELS = (1, 3)


def _freeze(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class RasterBuffer:
    width: int
    height: int
    channels: int
    samples: Union[Sequence[int], np.ndarray] = field(repr=False)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Raster dimensions must be positive, got {self.width}x{self.height}"
            )
        if self.channels not in SUPPORTED_CHANNELS:
            raise ValueError(
                f"Unsupported channel count {self.channels}; expected 1 or 3"
            )

        if isinstance(self.samples, (bytes, bytearray)):
            raw = np.frombuffer(self.samples, dtype=np.uint8)
        else:
            raw = np.asarray(self.samples)
        expected = self.width * self.height * self.channels
        if raw.size != expected:
            raise ValueError(
                f"Expected {expected} samples for {self.width}x{self.height}x"
                f"{self.channels}, got {raw.size}"
            )
        if raw.dtype.kind not in "iub":
            raise ValueError(f"Samples must be integers, got dtype {raw.dtype}")
        if raw.size and (raw.min() < 0 or raw.max() > 255):
            raise ValueError("Samples must lie in the range 0..255")

        shape = (self.height, self.width)
        if self.channels == 3:
            shape += (3,)
        pixels = raw.astype(np.uint8).reshape(shape)
        # frozen dataclass: bypass __setattr__ to store the normalised array
        object.__setattr__(self, "samples", _freeze(pixels.reshape(-1)))
        object.__setattr__(self, "_pixels", _freeze(pixels))

    # ── Constructors ───────────────────────────────────────────────────────

    @classmethod
    def from_array(cls, array: np.ndarray) -> "RasterBuffer":
        """Wrap a ``(h, w)`` or ``(h, w, 3)`` array.  The data is copied."""
        array = np.asarray(array)
        if array.ndim == 3 and array.shape[2] == 1:
            array = array[:, :, 0]
        if array.ndim == 2:
            height, width = array.shape
            channels = 1
        elif array.ndim == 3:
            height, width, channels = array.shape
        else:
            raise ValueError(f"Expected a 2-D or 3-D array, got shape {array.shape}")
        return cls(width, height, channels, np.array(array, copy=True).reshape(-1))

    @classmethod
    def filled(
        cls, width: int, height: int, value: int, channels: int = 1
    ) -> "RasterBuffer":
        return cls(width, height, channels, np.full(width * height * channels, value))

    # ── Accessors ──────────────────────────────────────────────────────────

    def as_array(self) -> np.ndarray:
        """Read-only ``(h, w)`` or ``(h, w, 3)`` view of the samples."""
        return self._pixels

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def is_grayscale(self) -> bool:
        return self.channels == 1

    @property
    def is_binary(self) -> bool:
        if self.channels != 1:
            return False
        return bool(np.isin(self.samples, (0, 255)).all())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RasterBuffer):
            return NotImplemented
        return (
            self.size == other.size
            and self.channels == other.channels
            and np.array_equal(self.samples, other.samples)
        )

    __hash__ = None  # type: ignore[assignment]


@dataclass(frozen=True)
class Kernel:
    """Immutable square convolution kernel with an odd side length."""

    weights: tuple[tuple[float, ...], ...]

    def __post_init__(self) -> None:
        rows = tuple(tuple(float(w) for w in row) for row in self.weights)
        size = len(rows)
        if size == 0 or size % 2 == 0:
            raise ValueError(f"Kernel side length must be odd, got {size}")
        if any(len(row) != size for row in rows):
            raise ValueError("Kernel must be square")
        object.__setattr__(self, "weights", rows)

    @property
    def size(self) -> int:
        return len(self.weights)

    @property
    def radius(self) -> int:
        return self.size // 2


BOX_BLUR_3X3 = Kernel(((1 / 9,) * 3,) * 3)

SHARPEN_3X3 = Kernel((
    (0, -1, 0),
    (-1, 5, -1),
    (0, -1, 0),
))


def histogram(buffer: RasterBuffer) -> list[int]:
    """Return the 256-bin intensity histogram of a single-channel buffer."""
    if buffer.channels != 1:
        raise ValueError("histogram() requires a single-channel buffer")
    counts = np.bincount(buffer.samples, minlength=256)
    return [int(c) for c in counts]
