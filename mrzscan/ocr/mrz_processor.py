"""MRZ capture pipeline orchestration.

Runs one frame or photo through the stages in order:

    raw input -> oriented -> document cropped -> band cropped
              -> normalized -> recognized -> extracted

Each stage returns a new image and no state carries over between frames.
Per-frame failures stop that frame's run and are reported in the
``ScanOutcome``; they never propagate to the caller's capture loop.
"""

import io
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

import numpy as np
from PIL import Image

from mrzscan.camera.frames import Frame, StillCapture
from mrzscan.extraction.mrz_lines import MrzLineExtractor, MrzResult
from mrzscan.preprocessing.geometry import (
    Rect,
    compute_document_rect,
    compute_mrz_band_rect,
    crop,
    fit_within,
)
from mrzscan.preprocessing.orientation import OrientationCorrector
from mrzscan.preprocessing.pipeline import ImageNormalizer
from mrzscan.utils.config import AppConfig, DocumentFrameSpec
from mrzscan.utils.exceptions import MrzScanError
from mrzscan.utils.logger import get_logger

from .tesseract_engine import OcrEngine, TesseractMrzEngine

logger = get_logger(__name__)


class PipelineStage(StrEnum):
    """Last stage a pipeline run completed."""

    RAW_INPUT = "raw_input"
    ORIENTED = "oriented"
    DOCUMENT_CROPPED = "document_cropped"
    BAND_CROPPED = "band_cropped"
    NORMALIZED = "normalized"
    RECOGNIZED = "recognized"
    EXTRACTED = "extracted"


@dataclass
class ScanOutcome:
    """Report of a single pipeline run."""

    result: MrzResult
    stage: PipelineStage
    document_type: str
    document_rect: Rect | None = None
    band_rect: Rect | None = None
    raw_text: str = ""
    error_kind: str | None = None
    error_message: str | None = None
    cancelled: bool = False

    @property
    def found(self) -> bool:
        return self.result.is_complete


class _Cancelled(Exception):
    pass


def load_image(source: Path | bytes) -> np.ndarray:
    """Decode an image file or bytes into an RGB array."""
    if isinstance(source, bytes):
        img = Image.open(io.BytesIO(source))
    else:
        img = Image.open(source)
    return np.array(img.convert("RGB"))


def encode_png(image: np.ndarray) -> bytes:
    """Encode an RGB or grayscale array as PNG bytes."""
    buf = io.BytesIO()
    Image.fromarray(image).save(buf, format="PNG")
    return buf.getvalue()


class MrzProcessor:
    """End-to-end MRZ pipeline owning a long-lived OCR engine.

    The engine is started once here and shut down by :meth:`close`. Setup
    problems (unknown document type, missing Tesseract or model data)
    raise from the constructor.

    Args:
        config: Application configuration.
        engine: OCR engine to use. Built from ``config.ocr`` when omitted.
    """

    def __init__(self, config: AppConfig, engine: OcrEngine | None = None) -> None:
        self.config = config
        self.default_spec = config.frame_spec()
        self.corrector = OrientationCorrector()
        self.normalizer = ImageNormalizer(config.normalization)
        self.extractor = MrzLineExtractor(config.extraction)
        self.engine = engine or TesseractMrzEngine.from_config(config.ocr)
        self.engine.start()
        logger.info(
            "MRZ processor ready (document=%s, crop_to_mrz=%s)",
            self.default_spec.name,
            config.capture.crop_to_mrz,
        )

    def scan_frame(
        self,
        frame: Frame,
        document_type: str | None = None,
        cancelled: Callable[[], bool] | None = None,
    ) -> ScanOutcome:
        """Run a live preview frame through the whole pipeline.

        Args:
            frame: Raw camera frame.
            document_type: Frame spec name, defaults to the configured one.
            cancelled: Polled between stages; a ``True`` answer abandons
                the run without a result.

        Returns:
            Outcome of the run. Errors are recorded, not raised.

        Raises:
            ValueError: If ``document_type`` names no configured frame spec.
        """
        spec = self.config.frame_spec(document_type)
        outcome = self._new_outcome(spec)
        try:
            self._check(cancelled)
            image = self.corrector.correct(frame)
            outcome.stage = PipelineStage.ORIENTED
            self._run_stages(
                image, spec, outcome, self.config.capture.crop_to_mrz, cancelled
            )
        except _Cancelled:
            return self._cancelled(outcome)
        except MrzScanError as exc:
            self._record_failure(outcome, exc)
        return outcome

    def process_frame(self, frame: Frame) -> MrzResult | None:
        """Return the MRZ found in a frame, or ``None`` if there is none."""
        outcome = self.scan_frame(frame)
        return outcome.result if outcome.found else None

    def scan_image(
        self,
        image: np.ndarray,
        document_type: str | None = None,
        crop_to_mrz: bool | None = None,
    ) -> ScanOutcome:
        """Run an already-upright image through the pipeline.

        Args:
            image: RGB, RGBA or grayscale image.
            document_type: Frame spec name, defaults to the configured one.
            crop_to_mrz: Crop to the MRZ band before OCR. When ``False``
                OCR runs on the whole document frame.

        Returns:
            Outcome of the run. Errors are recorded, not raised.

        Raises:
            ValueError: If ``document_type`` names no configured frame spec.
        """
        if crop_to_mrz is None:
            crop_to_mrz = self.config.capture.crop_to_mrz
        spec = self.config.frame_spec(document_type)
        outcome = self._new_outcome(spec)
        outcome.stage = PipelineStage.ORIENTED
        try:
            self._run_stages(image, spec, outcome, crop_to_mrz, None)
        except MrzScanError as exc:
            self._record_failure(outcome, exc)
        return outcome

    def capture_photo(
        self,
        capture: StillCapture,
        crop_document: bool = False,
        document_type: str | None = None,
    ) -> np.ndarray:
        """Produce the upright, optionally cropped photo for the host.

        Normalization and OCR are skipped.

        Args:
            capture: Still photo with capture-time device orientation.
            crop_document: Crop to the document frame plus margin.
            document_type: Frame spec name, defaults to the configured one.

        Returns:
            RGB image.

        Raises:
            InvalidGeometryError: If the photo is too small to crop.
        """
        image = self.corrector.correct_still(capture)
        image = fit_within(
            image,
            self.config.capture.photo_max_width,
            self.config.capture.photo_max_height,
        )
        if not crop_document:
            return image

        spec = self.config.frame_spec(document_type)
        height, width = image.shape[:2]
        rect = compute_document_rect(width, height, spec, with_margin=True)
        logger.info("Cropping photo to document frame %s", rect.to_pixels())
        return crop(image, rect)

    def close(self) -> None:
        """Shut down the OCR engine."""
        self.engine.close()

    def __enter__(self) -> "MrzProcessor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _new_outcome(self, spec: DocumentFrameSpec) -> ScanOutcome:
        return ScanOutcome(
            result=MrzResult(strategy=self.extractor.config.strategy),
            stage=PipelineStage.RAW_INPUT,
            document_type=spec.name,
        )

    def _run_stages(
        self,
        image: np.ndarray,
        spec: DocumentFrameSpec,
        outcome: ScanOutcome,
        crop_to_mrz: bool,
        cancelled: Callable[[], bool] | None,
    ) -> None:
        self._check(cancelled)
        height, width = image.shape[:2]
        outcome.document_rect = compute_document_rect(width, height, spec)
        document = crop(image, outcome.document_rect)
        outcome.stage = PipelineStage.DOCUMENT_CROPPED

        region = document
        if crop_to_mrz:
            self._check(cancelled)
            outcome.band_rect = compute_mrz_band_rect(Rect.of_image(document), spec)
            region = crop(document, outcome.band_rect)
            outcome.stage = PipelineStage.BAND_CROPPED

        self._check(cancelled)
        normalized = self.normalizer.normalize(region)
        outcome.stage = PipelineStage.NORMALIZED

        self._check(cancelled)
        outcome.raw_text = self.engine.recognize(normalized)
        outcome.stage = PipelineStage.RECOGNIZED

        self._check(cancelled)
        outcome.result = self.extractor.extract(outcome.raw_text)
        outcome.stage = PipelineStage.EXTRACTED

        if outcome.found:
            logger.info("MRZ found (%d lines)", len(outcome.result.lines))
        else:
            logger.debug("No complete MRZ in frame")

    @staticmethod
    def _check(cancelled: Callable[[], bool] | None) -> None:
        if cancelled is not None and cancelled():
            raise _Cancelled

    @staticmethod
    def _cancelled(outcome: ScanOutcome) -> ScanOutcome:
        logger.debug("Pipeline run cancelled after %s", outcome.stage.value)
        outcome.cancelled = True
        outcome.result = MrzResult(strategy=outcome.result.strategy)
        return outcome

    @staticmethod
    def _record_failure(outcome: ScanOutcome, exc: MrzScanError) -> None:
        logger.warning("Frame skipped at %s: %s", outcome.stage.value, exc)
        outcome.error_kind = exc.kind
        outcome.error_message = str(exc)
