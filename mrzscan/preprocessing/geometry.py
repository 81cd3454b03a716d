"""Document and MRZ band crop geometry.

No document detection happens here: the capture overlay guides the user to
align the document with a frame of known aspect ratio, so the crop is
derived from the image size and a ``DocumentFrameSpec`` alone. This keeps
cropping deterministic and free of per-frame latency.
"""

from dataclasses import dataclass

import cv2
import numpy as np

from mrzscan.utils.config import DocumentFrameSpec
from mrzscan.utils.exceptions import InvalidGeometryError
from mrzscan.utils.logger import get_logger

logger = get_logger(__name__)

# Float slack when comparing clamped edges against integer image bounds.
_EPSILON = 1e-6


@dataclass(frozen=True)
class Rect:
    """Axis-aligned crop rectangle in pixel coordinates of a reference image.

    Raises:
        InvalidGeometryError: If width or height is not positive.
    """

    left: float
    top: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidGeometryError(
                "Crop rectangle has non-positive area",
                {"width": self.width, "height": self.height},
            )

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @classmethod
    def of_image(cls, image: np.ndarray) -> "Rect":
        """Return the rectangle covering a whole image."""
        height, width = image.shape[:2]
        return cls(0.0, 0.0, float(width), float(height))

    def fits_within(self, width: float, height: float) -> bool:
        """Check that the rectangle lies inside a ``width`` x ``height`` area."""
        return (
            self.left >= 0
            and self.top >= 0
            and self.right <= width + _EPSILON
            and self.bottom <= height + _EPSILON
        )

    def to_pixels(self) -> tuple[int, int, int, int]:
        """Truncate to integer ``(x, y, width, height)``."""
        return int(self.left), int(self.top), int(self.width), int(self.height)


def _clamp(
    left: float,
    top: float,
    width: float,
    height: float,
    bound_width: float,
    bound_height: float,
) -> Rect:
    """Clamp a rectangle into ``[0, bound_width] x [0, bound_height]``.

    The low edges are pulled to zero and the size shrinks to whatever room
    is left before the high edges.
    """
    left = max(0.0, left)
    top = max(0.0, top)
    width = min(width, bound_width - left)
    height = min(height, bound_height - top)
    return Rect(left, top, width, height)


def compute_document_rect(
    image_width: int,
    image_height: int,
    spec: DocumentFrameSpec,
    with_margin: bool = False,
) -> Rect:
    """Compute the centered document frame for an image.

    In portrait images the frame fills ``width_fill_fraction`` of the width
    and the height follows from the aspect ratio; in landscape or square
    images it fills ``height_fill_fraction`` of the height instead.

    Args:
        image_width: Source image width in pixels.
        image_height: Source image height in pixels.
        spec: Document frame geometry.
        with_margin: Expand the frame by ``spec.margin_fraction`` on each
            side, for full-document crops that tolerate misalignment.

    Returns:
        Document rectangle clamped to the image.

    Raises:
        InvalidGeometryError: If the image or the resulting frame is empty.
    """
    if image_width <= 0 or image_height <= 0:
        raise InvalidGeometryError(
            "Image dimensions must be positive",
            {"width": image_width, "height": image_height},
        )

    if image_height > image_width:
        width = image_width * spec.width_fill_fraction
        height = width / spec.aspect_ratio
    else:
        height = image_height * spec.height_fill_fraction
        width = height * spec.aspect_ratio

    left = (image_width - width) / 2.0
    top = (image_height - height) / 2.0

    if with_margin:
        margin_x = width * spec.margin_fraction
        margin_y = height * spec.margin_fraction
        left -= margin_x
        top -= margin_y
        width *= 1 + 2 * spec.margin_fraction
        height *= 1 + 2 * spec.margin_fraction

    rect = _clamp(left, top, width, height, image_width, image_height)
    logger.debug(
        "Document rect for %dx%d (%s v%d): %s",
        image_width,
        image_height,
        spec.name,
        spec.version,
        rect,
    )
    return rect


def compute_mrz_band_rect(
    document_rect: Rect,
    spec: DocumentFrameSpec,
    crop_to_mrz_only: bool = True,
) -> Rect:
    """Compute the MRZ band at the bottom of a document frame.

    Args:
        document_rect: Document frame, usually from
            :func:`compute_document_rect`.
        spec: Document frame geometry.
        crop_to_mrz_only: When ``False`` the whole document frame is
            returned unchanged.

    Returns:
        Full-width band covering the bottom ``mrz_band_fraction`` of the
        document frame, in the same coordinates as ``document_rect``.

    Raises:
        InvalidGeometryError: If the band has no area.
    """
    if not crop_to_mrz_only:
        return document_rect

    band_height = document_rect.height * spec.mrz_band_fraction
    band_top = document_rect.top + document_rect.height - band_height
    return _clamp(
        document_rect.left,
        band_top,
        document_rect.width,
        band_height,
        document_rect.right,
        document_rect.bottom,
    )


def crop(image: np.ndarray, rect: Rect) -> np.ndarray:
    """Copy the pixels of ``rect`` out of ``image``.

    Args:
        image: Source image.
        rect: Rectangle in ``image`` coordinates.

    Returns:
        New array holding the cropped region.

    Raises:
        InvalidGeometryError: If the rectangle is outside the image or
            truncates to zero pixels.
    """
    image_height, image_width = image.shape[:2]
    if not rect.fits_within(image_width, image_height):
        raise InvalidGeometryError(
            "Crop rectangle exceeds image bounds",
            {"rect": rect.to_pixels(), "image": (image_width, image_height)},
        )

    x, y, w, h = rect.to_pixels()
    if w <= 0 or h <= 0:
        raise InvalidGeometryError(
            "Crop rectangle is smaller than one pixel", {"rect": (x, y, w, h)}
        )
    return image[y : y + h, x : x + w].copy()


def fit_within(image: np.ndarray, max_width: int, max_height: int) -> np.ndarray:
    """Downscale a still photo to the preview resolution.

    Landscape images are scaled by ``max_width / width``, portrait and
    square ones by ``max_height / height``. Images are never upscaled.

    Args:
        image: Source image.
        max_width: Width budget for landscape images.
        max_height: Height budget for portrait images.

    Returns:
        Resized copy of the image.
    """
    height, width = image.shape[:2]
    if width > height:
        ratio = max_width / width
    else:
        ratio = max_height / height

    if ratio >= 1:
        return image.copy()

    size = (max(1, int(width * ratio)), max(1, int(height * ratio)))
    logger.debug("Resizing still from %dx%d to %dx%d", width, height, *size)
    return cv2.resize(image, size, interpolation=cv2.INTER_AREA)
