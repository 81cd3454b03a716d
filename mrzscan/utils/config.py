"""Configuration management for the MRZ capture pipeline.

Loads and validates YAML configuration with defaults for document frame
geometry, image normalization, OCR, line extraction, and capture
settings. Invalid values are rejected when the configuration is built,
never per frame.
"""

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

MRZ_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789<"


class DocumentFrameSpec(BaseModel):
    """Geometry of the document frame the capture overlay guides the user to.

    ``aspect_ratio`` is width / height of the physical document. The fill
    fractions say how much of the limiting viewport dimension the frame
    occupies, and ``mrz_band_fraction`` is the share of the frame height
    taken by the MRZ band at the bottom.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: int = 1
    aspect_ratio: float = Field(gt=0)
    width_fill_fraction: float = Field(default=0.9, gt=0, le=1)
    height_fill_fraction: float = Field(default=0.75, gt=0, le=1)
    mrz_band_fraction: float = Field(default=0.35, gt=0, lt=1)
    margin_fraction: float = Field(default=0.1, ge=0)


# ISO/IEC 7810 ID-3 passport data page, 125mm x 88mm.
PASSPORT_TD3 = DocumentFrameSpec(
    name="td3",
    aspect_ratio=1.42,
    mrz_band_fraction=0.4,
)

# ISO/IEC 7810 ID-1 card, 85.6mm x 54mm.
ID_CARD_TD1 = DocumentFrameSpec(
    name="td1",
    aspect_ratio=86.0 / 55.0,
    mrz_band_fraction=0.35,
)


def _default_frame_specs() -> dict[str, DocumentFrameSpec]:
    return {spec.name: spec for spec in (PASSPORT_TD3, ID_CARD_TD1)}


class NormalizationConfig(BaseModel):
    """Configuration for grayscale conversion and binarization."""

    threshold: int = Field(default=128, ge=0, le=255)
    scale_factor: float = Field(default=1.0, ge=1.0)
    method: Literal["fixed", "otsu"] = "fixed"


class OCRConfig(BaseModel):
    """Configuration for the Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    lang: str = "eng"
    tessdata_dir: str | None = None
    psm: int = 6
    dpi: int = 300
    char_whitelist: str = MRZ_ALPHABET
    timeout: float = Field(default=0.0, ge=0)


class ExtractionConfig(BaseModel):
    """Configuration for MRZ line extraction from raw OCR text."""

    strategy: Literal["pattern", "equal_length"] = "pattern"
    min_line_length: int = Field(default=40, gt=0)
    max_line_length: int = Field(default=45, gt=0)
    min_charset_run: int = Field(default=10, gt=0)
    max_lines: int = Field(default=2, gt=0)

    @model_validator(mode="after")
    def _check_length_bounds(self) -> "ExtractionConfig":
        if self.min_line_length > self.max_line_length:
            raise ValueError("min_line_length must not exceed max_line_length")
        return self


class CaptureConfig(BaseModel):
    """Configuration for frame and still-photo capture handling."""

    document_type: str = "td3"
    crop_to_mrz: bool = True
    photo_max_width: int = Field(default=720, gt=0)
    photo_max_height: int = Field(default=1280, gt=0)
    failure_threshold: int = Field(default=5, gt=0)


class AppConfig(BaseModel):
    """Top-level application configuration."""

    frame_specs: dict[str, DocumentFrameSpec] = Field(
        default_factory=_default_frame_specs
    )
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_document_type(self) -> "AppConfig":
        if self.capture.document_type not in self.frame_specs:
            raise ValueError(
                f"Unknown document type '{self.capture.document_type}', "
                f"expected one of {sorted(self.frame_specs)}"
            )
        return self

    def frame_spec(self, document_type: str | None = None) -> DocumentFrameSpec:
        """Return the frame spec for a document type.

        Args:
            document_type: Name of the spec. Defaults to the configured
                capture document type.

        Returns:
            The matching frame spec.

        Raises:
            ValueError: If no spec is registered under that name.
        """
        name = document_type or self.capture.document_type
        try:
            return self.frame_specs[name]
        except KeyError:
            raise ValueError(
                f"Unknown document type '{name}', "
                f"expected one of {sorted(self.frame_specs)}"
            ) from None


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
