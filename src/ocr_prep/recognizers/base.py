"""Abstract base for text recognizers fed by the preprocessing pipeline."""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Optional

from ocr_prep.raster import RasterBuffer


class EngineMode(IntEnum):
    LEGACY_ONLY = 0
    LSTM_ONLY = 1
    LEGACY_AND_LSTM = 2
    DEFAULT = 3


class PageSegMode(IntEnum):
    OSD_ONLY = 0
    AUTO_OSD = 1
    AUTO_ONLY = 2
    AUTO = 3
    SINGLE_COLUMN = 4
    SINGLE_BLOCK_VERT_TEXT = 5
    SINGLE_BLOCK = 6
    SINGLE_LINE = 7
    SINGLE_WORD = 8
    CIRCLE_WORD = 9
    SINGLE_CHAR = 10
    SPARSE_TEXT = 11
    SPARSE_TEXT_OSD = 12
    RAW_LINE = 13


class BaseRecognizer(ABC):
    @abstractmethod
    def recognize(
        self,
        buffer: RasterBuffer,
        language: str = "eng",
        engine_mode: EngineMode = EngineMode.LSTM_ONLY,
        page_seg_mode: PageSegMode = PageSegMode.AUTO,
        dpi: Optional[int] = None,
    ) -> str:
        """Return the text found in a preprocessed buffer."""
        ...
