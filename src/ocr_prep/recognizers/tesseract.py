"""Tesseract recognizer via pytesseract."""

import logging
from typing import Optional

import pytesseract

from ocr_prep.loader import to_pil
from ocr_prep.raster import RasterBuffer
from ocr_prep.recognizers.base import BaseRecognizer, EngineMode, PageSegMode

logger = logging.getLogger(__name__)


def build_config(
    engine_mode: EngineMode, page_seg_mode: PageSegMode, dpi: Optional[int] = None
) -> str:
    config = f"--oem {int(engine_mode)} --psm {int(page_seg_mode)}"
    if dpi:
        config += f" --dpi {dpi}"
    return config


class TesseractRecognizer(BaseRecognizer):
    def __init__(self, timeout: int = 0) -> None:
        self.timeout = timeout

    def recognize(
        self,
        buffer: RasterBuffer,
        language: str = "eng",
        engine_mode: EngineMode = EngineMode.LSTM_ONLY,
        page_seg_mode: PageSegMode = PageSegMode.AUTO,
        dpi: Optional[int] = None,
    ) -> str:
        config = build_config(engine_mode, page_seg_mode, dpi)
        logger.debug("tesseract lang=%s config=%r", language, config)
        text = pytesseract.image_to_string(
            to_pil(buffer),
            lang=language,
            config=config,
            timeout=self.timeout,
        )
        return str(text)
