"""Camera frame types and pixel-buffer extraction.

Frames arrive from the camera subsystem as raw buffers in the sensor's
native layout. ``to_image`` turns them into the RGB or grayscale numpy
arrays the rest of the pipeline works on.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

import cv2
import numpy as np

from mrzscan.utils.exceptions import FrameFormatError
from mrzscan.utils.logger import get_logger

logger = get_logger(__name__)


class PixelFormat(StrEnum):
    """Layouts of raw camera buffers."""

    GRAY = "gray"
    RGB = "rgb"
    RGBA = "rgba"
    BGR = "bgr"
    BGRA = "bgra"
    NV21 = "nv21"
    NV12 = "nv12"


class DeviceOrientation(StrEnum):
    """Device orientation reported at still-capture time."""

    PORTRAIT = "portrait"
    PORTRAIT_UPSIDE_DOWN = "portrait_upside_down"
    LANDSCAPE_LEFT = "landscape_left"
    LANDSCAPE_RIGHT = "landscape_right"
    UNKNOWN = "unknown"


_CHANNELS = {
    PixelFormat.GRAY: 1,
    PixelFormat.RGB: 3,
    PixelFormat.RGBA: 4,
    PixelFormat.BGR: 3,
    PixelFormat.BGRA: 4,
}

_TO_RGB = {
    PixelFormat.RGBA: cv2.COLOR_RGBA2RGB,
    PixelFormat.BGR: cv2.COLOR_BGR2RGB,
    PixelFormat.BGRA: cv2.COLOR_BGRA2RGB,
    PixelFormat.NV21: cv2.COLOR_YUV2RGB_NV21,
    PixelFormat.NV12: cv2.COLOR_YUV2RGB_NV12,
}


@dataclass(frozen=True)
class Frame:
    """A single live-preview frame delivered by the camera.

    Attributes:
        data: Raw pixel buffer, either bytes or a numpy array.
        width: Frame width in pixels.
        height: Frame height in pixels.
        pixel_format: Layout of ``data``.
        rotation_degrees: Sensor rotation relative to the device's natural
            orientation, or ``None`` when the camera did not report it.
        mirrored: Whether the frame comes from a front-facing camera.
    """

    data: np.ndarray | bytes
    width: int
    height: int
    pixel_format: PixelFormat = PixelFormat.RGB
    rotation_degrees: int | None = 0
    mirrored: bool = False


@dataclass(frozen=True)
class StillCapture:
    """A user-triggered photo and the device orientation when it was taken."""

    image: np.ndarray
    orientation: DeviceOrientation | None = None
    mirrored: bool = False


class TorchControl(Protocol):
    """Camera collaborator able to switch the flashlight."""

    def set_torch(self, on: bool) -> None: ...


def to_image(frame: Frame) -> np.ndarray:
    """Extract an RGB (or grayscale) image from a raw camera frame.

    Args:
        frame: Raw camera frame.

    Returns:
        ``uint8`` array of shape ``(h, w, 3)``, or ``(h, w)`` for grayscale
        frames.

    Raises:
        FrameFormatError: If the buffer size does not match the declared
            width, height and pixel format.
    """
    if frame.width <= 0 or frame.height <= 0:
        raise FrameFormatError(
            "Frame dimensions must be positive",
            {"width": frame.width, "height": frame.height},
        )

    if isinstance(frame.data, (bytes, bytearray)):
        buffer = np.frombuffer(frame.data, dtype=np.uint8)
    else:
        buffer = np.asarray(frame.data, dtype=np.uint8)

    if frame.pixel_format in (PixelFormat.NV21, PixelFormat.NV12):
        if frame.width % 2 or frame.height % 2:
            raise FrameFormatError(
                "YUV 4:2:0 frames need even dimensions",
                {"width": frame.width, "height": frame.height},
            )
        shape: tuple[int, ...] = (frame.height * 3 // 2, frame.width)
    elif _CHANNELS[frame.pixel_format] == 1:
        shape = (frame.height, frame.width)
    else:
        shape = (frame.height, frame.width, _CHANNELS[frame.pixel_format])

    expected = int(np.prod(shape))
    if buffer.size != expected:
        raise FrameFormatError(
            "Buffer size does not match frame format",
            {
                "format": frame.pixel_format.value,
                "expected": expected,
                "actual": int(buffer.size),
            },
        )

    pixels = buffer.reshape(shape)
    code = _TO_RGB.get(frame.pixel_format)
    if code is None:
        return pixels.copy()

    logger.debug("Converting %s frame to RGB", frame.pixel_format.value)
    return cv2.cvtColor(pixels, code)
