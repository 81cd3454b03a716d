"""Image normalization ahead of OCR.

Upscales small MRZ crops, desaturates them and reduces them to two
intensity levels. The stage is pure: the same input and parameters always
give a bit-identical output, and the input array is never modified.
"""

import cv2
import numpy as np

from mrzscan.utils.config import NormalizationConfig
from mrzscan.utils.logger import get_logger

from .binarize import binarize_fixed, binarize_otsu

logger = get_logger(__name__)


def upscale(image: np.ndarray, scale_factor: float) -> np.ndarray:
    """Uniformly enlarge an image with bicubic interpolation.

    Args:
        image: Input image.
        scale_factor: Enlargement factor, at least 1.

    Returns:
        Resized image, or a copy when ``scale_factor`` is 1.
    """
    if scale_factor < 1:
        raise ValueError(f"Scale factor must be >= 1, got {scale_factor}")
    if scale_factor == 1:
        return image.copy()

    height, width = image.shape[:2]
    size = (round(width * scale_factor), round(height * scale_factor))
    return cv2.resize(image, size, interpolation=cv2.INTER_CUBIC)


def normalize(
    image: np.ndarray,
    threshold: int = 128,
    scale_factor: float = 1.0,
    method: str = "fixed",
) -> np.ndarray:
    """Prepare an image for OCR.

    Args:
        image: Input image (grayscale, RGB or RGBA, ``uint8``).
        threshold: Luminance cut-off for the ``"fixed"`` method.
        scale_factor: Upscale factor applied before binarization.
        method: ``"fixed"`` or ``"otsu"``.

    Returns:
        Single-channel ``uint8`` image holding only 0 and 255.

    Raises:
        ValueError: On an out-of-range threshold, a scale factor below 1
            or an unknown method.
    """
    if method not in ("fixed", "otsu"):
        raise ValueError(f"Unsupported binarization method: {method}")
    if not 0 <= threshold <= 255:
        raise ValueError(f"Threshold must be within 0..255, got {threshold}")

    scaled = upscale(image, scale_factor)
    if method == "otsu":
        return binarize_otsu(scaled)
    return binarize_fixed(scaled, threshold)


class ImageNormalizer:
    """Normalization stage bound to a configuration.

    Args:
        config: Threshold, scale factor and binarization method.
    """

    def __init__(self, config: NormalizationConfig) -> None:
        self.config = config

    def normalize(self, image: np.ndarray) -> np.ndarray:
        """Normalize an image with the configured parameters."""
        result = normalize(
            image,
            threshold=self.config.threshold,
            scale_factor=self.config.scale_factor,
            method=self.config.method,
        )
        logger.debug(
            "Normalized %s -> %s (black ratio %.2f)",
            image.shape,
            result.shape,
            float(np.mean(result == 0)),
        )
        return result
