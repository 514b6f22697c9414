"""Fixed-order preprocessing pipeline.

    Loaded -> Grayscaled -> [Scaled] -> [Denoised] -> Contrasted
           -> Binarized -> [Sharpened] -> Ready

Bracketed stages are switched by ``PipelineConfig`` only.  There is no
resume or retry: a failed run is simply started again on a fresh buffer.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ocr_prep.config import PipelineConfig
from ocr_prep.preprocessing import (
    binarize_threshold,
    denoise,
    select_threshold,
    sharpen,
    stretch_contrast,
    to_grayscale,
    upscale,
)
from ocr_prep.raster import RasterBuffer

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    LOADED = "loaded"
    GRAYSCALED = "grayscaled"
    SCALED = "scaled"
    DENOISED = "denoised"
    CONTRASTED = "contrasted"
    BINARIZED = "binarized"
    SHARPENED = "sharpened"
    READY = "ready"


@dataclass(frozen=True)
class PipelineResult:
    buffer: RasterBuffer
    config: PipelineConfig
    threshold: int
    stages: tuple[PipelineStage, ...] = field(default_factory=tuple)

    @property
    def scaled(self) -> bool:
        return PipelineStage.SCALED in self.stages


def needs_upscale(buffer: RasterBuffer, config: PipelineConfig) -> bool:
    return min(buffer.width, buffer.height) < config.min_dimension_for_upscale


def run_pipeline(buffer: RasterBuffer, config: Optional[PipelineConfig] = None) -> PipelineResult:
    """Run every configured stage over *buffer* and report what happened."""
    config = config or PipelineConfig()
    stages = [PipelineStage.LOADED]

    def advance(stage: PipelineStage, current: RasterBuffer) -> RasterBuffer:
        stages.append(stage)
        logger.debug("%s: %dx%d", stage.value, current.width, current.height)
        return current

    current = advance(PipelineStage.GRAYSCALED, to_grayscale(buffer))

    if needs_upscale(current, config):
        current = advance(PipelineStage.SCALED, upscale(current, config.upscale_factor))
    else:
        logger.debug(
            "Skipping upscale: min dimension %d >= %d",
            min(current.width, current.height),
            config.min_dimension_for_upscale,
        )

    if config.include_denoise:
        current = advance(PipelineStage.DENOISED, denoise(current, config.border_mode))

    current = advance(PipelineStage.CONTRASTED, stretch_contrast(current))

    threshold = select_threshold(current, config.binarization_policy)
    logger.debug("%s threshold: %d", config.binarization_policy.value, threshold)
    current = advance(PipelineStage.BINARIZED, binarize_threshold(current, threshold))

    if config.include_sharpen:
        current = advance(PipelineStage.SHARPENED, sharpen(current, config.border_mode))

    stages.append(PipelineStage.READY)
    return PipelineResult(
        buffer=current,
        config=config,
        threshold=threshold,
        stages=tuple(stages),
    )


def preprocess_for_ocr(buffer: RasterBuffer, config: Optional[PipelineConfig] = None) -> RasterBuffer:
    """Run the pipeline and return only the final buffer."""
    return run_pipeline(buffer, config).buffer
