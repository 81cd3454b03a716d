"""Orientation correction for camera frames and still photos.

Live preview frames carry the sensor rotation, while still photos are
corrected from the device orientation at capture time. The two paths get
their metadata differently, so each has its own correction table. Angles
are in degrees, positive meaning clockwise.
"""

import cv2
import numpy as np

from mrzscan.camera.frames import DeviceOrientation, Frame, StillCapture, to_image
from mrzscan.utils.exceptions import OrientationUnavailableError
from mrzscan.utils.logger import get_logger

logger = get_logger(__name__)

SENSOR_CORRECTION: dict[int, int] = {
    0: 0,
    90: -90,
    180: 180,
    270: 90,
}

STILL_CORRECTION: dict[DeviceOrientation, int] = {
    DeviceOrientation.PORTRAIT: 90,
    DeviceOrientation.PORTRAIT_UPSIDE_DOWN: -90,
    DeviceOrientation.LANDSCAPE_LEFT: 0,
    DeviceOrientation.LANDSCAPE_RIGHT: 180,
}

_ROTATE_CODES = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def sensor_correction_angle(rotation: int | None) -> int:
    """Map a sensor rotation to the rotation that makes a frame upright.

    Raises:
        OrientationUnavailableError: If the rotation is missing or not one
            of 0, 90, 180, 270.
    """
    if rotation is None or rotation not in SENSOR_CORRECTION:
        raise OrientationUnavailableError(
            "Unrecognized sensor rotation", {"rotation": rotation}
        )
    return SENSOR_CORRECTION[rotation]


def still_correction_angle(orientation: DeviceOrientation | None) -> int:
    """Map the device orientation at capture time to a correction angle.

    Raises:
        OrientationUnavailableError: If the orientation is missing or
            unknown.
    """
    if orientation is None or orientation not in STILL_CORRECTION:
        raise OrientationUnavailableError(
            "Device orientation unavailable", {"orientation": orientation}
        )
    return STILL_CORRECTION[orientation]


def rotate_image(
    image: np.ndarray, degrees: int, mirrored: bool = False
) -> np.ndarray:
    """Rotate an image by a multiple of 90 degrees.

    Quarter turns are exact pixel permutations; width and height swap for
    ±90. Mirrored images are flipped horizontally after the rotation.

    Args:
        image: Input image.
        degrees: Clockwise rotation, a multiple of 90.
        mirrored: Flip the result horizontally (front camera).

    Returns:
        New rotated array.

    Raises:
        ValueError: If ``degrees`` is not a quarter turn.
    """
    turn = degrees % 360
    if turn % 90:
        raise ValueError(f"Only quarter-turn rotations are supported, got {degrees}")

    rotated = image.copy() if turn == 0 else cv2.rotate(image, _ROTATE_CODES[turn])
    if mirrored:
        rotated = cv2.flip(rotated, 1)
    return rotated


class OrientationCorrector:
    """Turns raw camera output into upright images.

    Missing or unrecognized orientation metadata never fails a frame: the
    corrector logs a warning and leaves the image as captured.
    """

    def correct(
        self,
        raw: Frame | np.ndarray,
        sensor_rotation_degrees: int | None = None,
        target_upright: bool = True,
    ) -> np.ndarray:
        """Extract pixels from a live frame and rotate them upright.

        Args:
            raw: Camera frame, or an already decoded image.
            sensor_rotation_degrees: Sensor rotation. Defaults to the
                frame's own ``rotation_degrees``.
            target_upright: When ``False`` only pixel extraction happens.

        Returns:
            Upright RGB or grayscale image.
        """
        mirrored = False
        if isinstance(raw, Frame):
            image = to_image(raw)
            mirrored = raw.mirrored
            if sensor_rotation_degrees is None:
                sensor_rotation_degrees = raw.rotation_degrees
        else:
            image = raw

        if not target_upright:
            return image.copy() if image is raw else image

        try:
            angle = sensor_correction_angle(sensor_rotation_degrees)
        except OrientationUnavailableError as exc:
            logger.warning("%s, keeping frame as captured", exc)
            angle = 0

        logger.debug("Correcting frame rotation by %d degrees", angle)
        return rotate_image(image, angle, mirrored=mirrored)

    def correct_still(self, capture: StillCapture) -> np.ndarray:
        """Rotate a still photo according to the device orientation."""
        try:
            angle = still_correction_angle(capture.orientation)
        except OrientationUnavailableError as exc:
            logger.warning("%s, keeping photo as captured", exc)
            angle = 0

        logger.debug("Correcting still rotation by %d degrees", angle)
        return rotate_image(capture.image, angle, mirrored=capture.mirrored)
