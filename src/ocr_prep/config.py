"""Pipeline configuration loaded from presets, environment variables and CLI flags."""

import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional


class BinarizationPolicy(str, Enum):
    OTSU = "otsu"
    MEAN = "mean"


class BorderMode(str, Enum):
    REPLICATE = "replicate"
    CROP = "crop"


@dataclass(frozen=True)
class PipelineConfig:
    min_dimension_for_upscale: int = 300
    upscale_factor: float = 2.0
    binarization_policy: BinarizationPolicy = BinarizationPolicy.OTSU
    include_denoise: bool = False
    include_sharpen: bool = False
    border_mode: BorderMode = BorderMode.REPLICATE
    # Forwarded to the recognizer only; the pixel stages ignore it.
    target_dpi: Optional[int] = None

    def __post_init__(self) -> None:
        # accept plain strings for the enum fields, e.g. "mean" or "crop"
        for name, enum_cls in (("binarization_policy", BinarizationPolicy), ("border_mode", BorderMode)):
            value = getattr(self, name)
            if isinstance(value, str) and not isinstance(value, enum_cls):
                try:
                    object.__setattr__(self, name, enum_cls(value.lower()))
                except ValueError:
                    raise ValueError(f"Unknown {name.replace('_', ' ')}: {value!r}") from None
        self.validate()

    def validate(self) -> None:
        """Raise ValueError if any field is out of range."""
        if self.min_dimension_for_upscale < 0:
            raise ValueError(
                "min_dimension_for_upscale must be >= 0, "
                f"got {self.min_dimension_for_upscale}"
            )
        if self.upscale_factor <= 1.0:
            raise ValueError(
                f"upscale_factor must be greater than 1.0, got {self.upscale_factor}"
            )
        if self.target_dpi is not None and self.target_dpi <= 0:
            raise ValueError(f"target_dpi must be positive, got {self.target_dpi}")
        if not isinstance(self.binarization_policy, BinarizationPolicy):
            raise ValueError(f"Unknown binarization policy: {self.binarization_policy!r}")
        if not isinstance(self.border_mode, BorderMode):
            raise ValueError(f"Unknown border mode: {self.border_mode!r}")

    @classmethod
    def from_env(cls, preset: Optional[str] = None, **overrides: Any) -> "PipelineConfig":
        """Resolve a config: overrides > environment > preset > defaults.

        Overrides whose value is None are ignored so CLI options that were not
        given fall through to the environment.
        """
        preset_name = (preset or os.environ.get(PRESET_ENV_KEY) or DEFAULT_PRESET).lower()
        if preset_name not in PRESETS:
            raise RuntimeError(
                f"Unknown preset '{preset_name}'. "
                f"Choose one of: {', '.join(sorted(PRESETS))}."
            )

        values: dict[str, Any] = {}
        for field_name, env_key in ENV_KEYS.items():
            raw = os.environ.get(env_key, "").strip()
            if not raw:
                continue
            try:
                values[field_name] = _PARSERS[field_name](raw)
            except ValueError:
                raise RuntimeError(f"Invalid value for {env_key}: {raw!r}") from None

        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return replace(PRESETS[preset_name], **values)
        except ValueError as e:
            raise RuntimeError(f"Invalid pipeline configuration: {e}") from e


def _parse_bool(raw: str) -> bool:
    value = raw.lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(raw)


PRESETS = {
    # Contrast stretch straight into a global Otsu threshold.
    "otsu": PipelineConfig(),
    # Box blur, mean threshold, then sharpen the binary result.
    "adaptive": PipelineConfig(
        binarization_policy=BinarizationPolicy.MEAN,
        include_denoise=True,
        include_sharpen=True,
    ),
}

DEFAULT_PRESET = "otsu"

PRESET_ENV_KEY = "OCR_PREP_PRESET"

ENV_KEYS = {
    "min_dimension_for_upscale": "OCR_PREP_MIN_DIMENSION",
    "upscale_factor": "OCR_PREP_UPSCALE_FACTOR",
    "binarization_policy": "OCR_PREP_POLICY",
    "include_denoise": "OCR_PREP_DENOISE",
    "include_sharpen": "OCR_PREP_SHARPEN",
    "border_mode": "OCR_PREP_BORDER",
    "target_dpi": "OCR_PREP_DPI",
}

_PARSERS: dict[str, Callable[[str], Any]] = {
    "min_dimension_for_upscale": int,
    "upscale_factor": float,
    "binarization_policy": lambda raw: BinarizationPolicy(raw.lower()),
    "include_denoise": _parse_bool,
    "include_sharpen": _parse_bool,
    "border_mode": lambda raw: BorderMode(raw.lower()),
    "target_dpi": int,
}
