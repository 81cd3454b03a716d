"""Exception hierarchy for the MRZ capture pipeline.

Per-frame errors (geometry, frame format, OCR engine) are raised by the
individual stages and contained by the pipeline orchestrator, which turns
them into an empty result for that frame. Configuration errors surface
from pydantic at load time and are never caught here.

Exception Hierarchy:
    MrzScanError (base)
    ├── InvalidGeometryError
    ├── OrientationUnavailableError
    ├── FrameFormatError
    ├── OcrEngineFailureError
    └── PipelineClosedError
"""


class MrzScanError(Exception):
    """Base exception for all MRZ pipeline errors.

    Attributes:
        message: Human-readable error message.
        details: Additional context for logging and API responses.
        kind: Short machine-readable tag identifying the error class.
    """

    kind = "mrz_scan_error"

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InvalidGeometryError(MrzScanError):
    """Raised when a computed crop rectangle has non-positive area.

    Happens when the source image is smaller than the fill fractions of the
    frame spec require, or when the aspect ratio pushes the frame out of
    the image entirely.
    """

    kind = "invalid_geometry"


class OrientationUnavailableError(MrzScanError):
    """Raised when rotation metadata is missing or not a known value."""

    kind = "orientation_unavailable"


class FrameFormatError(MrzScanError):
    """Raised when a raw camera buffer does not match its declared shape."""

    kind = "frame_format"


class OcrEngineFailureError(MrzScanError):
    """Raised when the OCR engine is missing, fails, or times out."""

    kind = "ocr_engine_failure"


class PipelineClosedError(MrzScanError):
    """Raised when work is submitted to a stopped scanner."""

    kind = "pipeline_closed"
