"""Grayscale conversion and binarization for MRZ crops.

MRZ text is printed in dark OCR-B on a light background, so a global
threshold is enough once the crop is limited to the band. Otsu's method is
available for captures where the lighting makes a fixed cut-off unreliable.
"""

import cv2
import numpy as np

from mrzscan.utils.logger import get_logger

logger = get_logger(__name__)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Desaturate an RGB or RGBA image using luminance weights.

    Args:
        image: Input image (grayscale, RGB or RGBA).

    Returns:
        Single-channel grayscale image.

    Raises:
        ValueError: If the channel layout is not supported.
    """
    if image.ndim == 2:
        return image
    if image.ndim == 3 and image.shape[2] == 1:
        return image[:, :, 0]
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    raise ValueError(f"Unsupported image shape: {image.shape}")


def binarize_fixed(image: np.ndarray, threshold: int = 128) -> np.ndarray:
    """Binarize with a fixed luminance threshold.

    Pixels darker than ``threshold`` become black (0), all others white
    (255).

    Args:
        image: Input image (grayscale, RGB or RGBA).
        threshold: Luminance cut-off in 0..255.

    Returns:
        Binary image with pixel values 0 or 255.
    """
    if not 0 <= threshold <= 255:
        raise ValueError(f"Threshold must be within 0..255, got {threshold}")

    gray = to_gray(image)
    binary = np.where(gray < threshold, 0, 255).astype(np.uint8)
    logger.debug("Applied fixed binarization (threshold=%d)", threshold)
    return binary


def binarize_otsu(image: np.ndarray) -> np.ndarray:
    """Binarize an image using Otsu's automatic thresholding.

    Args:
        image: Input image (grayscale, RGB or RGBA).

    Returns:
        Binary image with pixel values 0 or 255.
    """
    gray = to_gray(image)
    threshold, binary = cv2.threshold(
        gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU
    )
    logger.debug("Applied Otsu binarization (threshold=%.0f)", threshold)
    return binary
