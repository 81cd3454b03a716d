"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel


class ScanResponse(BaseModel):
    """Response schema for a single MRZ scan."""

    success: bool
    found: bool
    scan_id: str
    filename: str
    document_type: str
    lines: list[str]
    mrz: str
    strategy: str
    stage: str
    error: str | None = None
    processing_time_ms: float


class BatchItemResponse(BaseModel):
    """Response schema for a single item in a batch scan."""

    filename: str
    result: ScanResponse | None = None
    error: str | None = None


class BatchScanResponse(BaseModel):
    """Response schema for scanning several images."""

    success: bool
    total_images: int
    found: int
    failed: int
    results: list[BatchItemResponse]


class FrameSpecInfo(BaseModel):
    """Geometry of a supported document frame."""

    name: str
    version: int
    aspect_ratio: float
    width_fill_fraction: float
    height_fill_fraction: float
    mrz_band_fraction: float
    margin_fraction: float


class FrameSpecsResponse(BaseModel):
    """Response schema listing the configured document frames."""

    default: str
    specs: list[FrameSpecInfo]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
