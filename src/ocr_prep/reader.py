"""Barcode-first text extraction.

A barcode, when one can be decoded, identifies a product more reliably than
anything OCR will read off the label, so the decoder is asked first and the
preprocessing pipeline only runs when it comes back empty.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ocr_prep.config import PipelineConfig
from ocr_prep.pipeline import PipelineResult, run_pipeline
from ocr_prep.raster import RasterBuffer
from ocr_prep.recognizers.base import BaseRecognizer, EngineMode, PageSegMode

logger = logging.getLogger(__name__)

# Any callable returning the decoded symbol text, or None when no symbol is found.
BarcodeDecoder = Callable[[RasterBuffer], Optional[str]]

SOURCE_BARCODE = "barcode"
SOURCE_OCR = "ocr"


@dataclass(frozen=True)
class ReadResult:
    text: str
    source: str
    pipeline: Optional[PipelineResult] = None


def extract_text(
    buffer: RasterBuffer,
    recognizer: BaseRecognizer,
    config: Optional[PipelineConfig] = None,
    barcode_decoder: Optional[BarcodeDecoder] = None,
    language: str = "eng",
    engine_mode: EngineMode = EngineMode.LSTM_ONLY,
    page_seg_mode: PageSegMode = PageSegMode.AUTO,
) -> ReadResult:
    if barcode_decoder is not None:
        code = barcode_decoder(buffer)
        if code:
            logger.debug("Barcode decoded, skipping OCR")
            return ReadResult(text=code, source=SOURCE_BARCODE)
        logger.debug("No barcode found, running OCR")

    config = config or PipelineConfig()
    result = run_pipeline(buffer, config)
    text = recognizer.recognize(
        result.buffer,
        language=language,
        engine_mode=engine_mode,
        page_seg_mode=page_seg_mode,
        dpi=config.target_dpi,
    )
    return ReadResult(text=text, source=SOURCE_OCR, pipeline=result)
