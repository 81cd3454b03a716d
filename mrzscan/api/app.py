"""FastAPI application exposing the MRZ capture pipeline.

Provides REST endpoints for scanning uploaded images, exporting the
upright capture photo, listing document frame specs, and health checks.
"""

import shutil
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, Query, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from mrzscan.camera.frames import DeviceOrientation, Frame, PixelFormat, StillCapture
from mrzscan.ocr.mrz_processor import MrzProcessor, encode_png, load_image
from mrzscan.utils.config import load_config
from mrzscan.utils.exceptions import MrzScanError
from mrzscan.utils.logger import get_logger

from .schemas import (
    BatchItemResponse,
    BatchScanResponse,
    FrameSpecInfo,
    FrameSpecsResponse,
    HealthResponse,
    ScanResponse,
)

logger = get_logger(__name__)

API_VERSION = "1.0.0"


@lru_cache(maxsize=1)
def _get_processor() -> MrzProcessor:
    """Create the shared processor once; its OCR engine lives with the app."""
    return MrzProcessor(load_config())


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    if _get_processor.cache_info().currsize:
        _get_processor().close()
        _get_processor.cache_clear()


app = FastAPI(
    lifespan=lifespan,
    title="MRZ Capture API",
    description="Extract machine-readable zones from passport and ID card photos",
    version=API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/tiff",
    "image/bmp",
    "application/octet-stream",
}


def _processor_or_503() -> MrzProcessor:
    try:
        return _get_processor()
    except MrzScanError as exc:
        logger.error("OCR pipeline unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc


def _check_content_type(file: UploadFile) -> None:
    if file.content_type and file.content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}",
        )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
    )


@app.get("/frame-specs", response_model=FrameSpecsResponse)
async def list_frame_specs() -> FrameSpecsResponse:
    """List the configured document frame specs."""
    config = load_config()
    return FrameSpecsResponse(
        default=config.capture.document_type,
        specs=[
            FrameSpecInfo(**spec.model_dump()) for spec in config.frame_specs.values()
        ],
    )


@app.post("/scan", response_model=ScanResponse)
async def scan_document(
    file: Annotated[UploadFile, File(...)],
    document_type: Annotated[str | None, Query()] = None,
    rotation: Annotated[int | None, Query()] = None,
    crop_to_mrz: Annotated[bool, Query()] = True,
) -> ScanResponse:
    """Scan an uploaded image for an MRZ.

    Args:
        file: Uploaded image (PNG, JPEG, TIFF or BMP).
        document_type: Frame spec name, defaults to the configured one.
        rotation: Sensor rotation; when given the image is corrected like
            a live camera frame.
        crop_to_mrz: Crop to the MRZ band before OCR.

    Returns:
        Scan result with the MRZ lines when found.
    """
    start_time = time.time()
    _check_content_type(file)

    processor = _processor_or_503()
    try:
        processor.config.frame_spec(document_type)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        image = load_image(await file.read())
    except OSError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid image: {exc}") from exc

    try:
        if rotation is None:
            outcome = processor.scan_image(image, document_type, crop_to_mrz)
        else:
            height, width = image.shape[:2]
            frame = Frame(image, width, height, PixelFormat.RGB, rotation)
            outcome = processor.scan_frame(frame, document_type)
    except Exception as exc:
        logger.error("Scan failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return ScanResponse(
        success=outcome.error_kind is None,
        found=outcome.found,
        scan_id=str(uuid.uuid4()),
        filename=file.filename or "image",
        document_type=outcome.document_type,
        lines=list(outcome.result.lines),
        mrz=outcome.result.text,
        strategy=outcome.result.strategy,
        stage=outcome.stage.value,
        error=outcome.error_message,
        processing_time_ms=(time.time() - start_time) * 1000,
    )


@app.post("/scan/batch", response_model=BatchScanResponse)
async def scan_batch(
    files: Annotated[list[UploadFile], File(...)],
    document_type: Annotated[str | None, Query()] = None,
) -> BatchScanResponse:
    """Scan several uploaded images for MRZs."""
    results: list[BatchItemResponse] = []
    found = 0
    failed = 0

    for file in files:
        name = file.filename or "unknown"
        try:
            result = await scan_document(file, document_type)
        except HTTPException as exc:
            results.append(BatchItemResponse(filename=name, error=str(exc.detail)))
            failed += 1
            continue
        if result.found:
            found += 1
        results.append(BatchItemResponse(filename=name, result=result))

    return BatchScanResponse(
        success=failed < len(files),
        total_images=len(files),
        found=found,
        failed=failed,
        results=results,
    )


@app.post("/photo")
async def capture_photo(
    file: Annotated[UploadFile, File(...)],
    orientation: Annotated[DeviceOrientation | None, Query()] = None,
    crop: Annotated[bool, Query()] = False,
    document_type: Annotated[str | None, Query()] = None,
) -> Response:
    """Return the upright, optionally document-cropped photo as PNG."""
    _check_content_type(file)

    processor = _processor_or_503()
    try:
        processor.config.frame_spec(document_type)
        image = load_image(await file.read())
    except (OSError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        photo = processor.capture_photo(
            StillCapture(image=image, orientation=orientation), crop, document_type
        )
    except MrzScanError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return Response(content=encode_png(photo), media_type="image/png")
