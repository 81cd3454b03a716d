"""Tesseract OCR engine wrapper tuned for MRZ text.

The engine is created once per pipeline, verified at ``start()`` and reused
for every frame. Recognition is restricted to the MRZ alphabet, dictionary
lookup is disabled because MRZ text is not natural language, and calls are
serialized so live frames and still captures can share one engine.
"""

import threading
from pathlib import Path
from typing import Protocol

import numpy as np
import pytesseract
from PIL import Image

from mrzscan.utils.config import MRZ_ALPHABET, OCRConfig
from mrzscan.utils.exceptions import OcrEngineFailureError
from mrzscan.utils.logger import get_logger

logger = get_logger(__name__)


class OcrEngine(Protocol):
    """Black-box recognizer: normalized image in, multi-line text out."""

    def start(self) -> None: ...

    def recognize(self, image: np.ndarray) -> str: ...

    def close(self) -> None: ...


class TesseractMrzEngine:
    """Tesseract-backed MRZ recognizer with an explicit lifecycle.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        lang: Tesseract language / traineddata name (e.g. ``"ocrb"``).
        tessdata_dir: Directory holding the traineddata files. When set,
            ``<lang>.traineddata`` must exist there.
        psm: Tesseract page segmentation mode.
        dpi: Resolution hint passed to Tesseract.
        char_whitelist: Characters Tesseract may emit.
        timeout: Seconds before a recognition call is aborted; 0 disables.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        lang: str = "eng",
        tessdata_dir: str | None = None,
        psm: int = 6,
        dpi: int = 300,
        char_whitelist: str = MRZ_ALPHABET,
        timeout: float = 0.0,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.lang = lang
        self.tessdata_dir = Path(tessdata_dir) if tessdata_dir else None
        self.psm = psm
        self.dpi = dpi
        self.char_whitelist = char_whitelist
        self.timeout = timeout
        self._lock = threading.Lock()
        self._running = False

    @classmethod
    def from_config(cls, config: OCRConfig) -> "TesseractMrzEngine":
        """Build an engine from the OCR section of the app configuration."""
        return cls(
            tesseract_cmd=config.tesseract_cmd,
            lang=config.lang,
            tessdata_dir=config.tessdata_dir,
            psm=config.psm,
            dpi=config.dpi,
            char_whitelist=config.char_whitelist,
            timeout=config.timeout,
        )

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def tesseract_config(self) -> str:
        """Command-line options passed to Tesseract on every call."""
        options = [
            f"--psm {self.psm}",
            f"--dpi {self.dpi}",
            f"-c tessedit_char_whitelist={self.char_whitelist}",
            "-c load_system_dawg=0",
            "-c load_freq_dawg=0",
        ]
        if self.tessdata_dir is not None:
            options.insert(0, f'--tessdata-dir "{self.tessdata_dir}"')
        return " ".join(options)

    def start(self) -> None:
        """Verify the Tesseract binary and model data once.

        Raises:
            OcrEngineFailureError: If Tesseract or the traineddata file
                cannot be found.
        """
        if self._running:
            return

        if self.tessdata_dir is not None:
            model = self.tessdata_dir / f"{self.lang}.traineddata"
            if not model.is_file():
                raise OcrEngineFailureError(
                    "OCR model data not found", {"path": str(model)}
                )

        try:
            version = pytesseract.get_tesseract_version()
        except (pytesseract.TesseractNotFoundError, OSError) as exc:
            raise OcrEngineFailureError(
                "Tesseract is not available", {"error": str(exc)}
            ) from exc

        self._running = True
        logger.info(
            "Tesseract %s ready (lang=%s, psm=%d)", version, self.lang, self.psm
        )

    def recognize(self, image: np.ndarray) -> str:
        """Recognize MRZ text in a normalized image.

        Args:
            image: Binarized grayscale image.

        Returns:
            Raw multi-line UTF-8 text as produced by Tesseract.

        Raises:
            OcrEngineFailureError: If the engine is not running, errors out
                or times out.
        """
        if not self._running:
            raise OcrEngineFailureError("OCR engine is not running")

        pil_image = Image.fromarray(image)
        with self._lock:
            try:
                text = pytesseract.image_to_string(
                    pil_image,
                    lang=self.lang,
                    config=self.tesseract_config,
                    timeout=self.timeout,
                )
            except (pytesseract.TesseractError, RuntimeError, OSError) as exc:
                logger.error("Tesseract recognition failed: %s", exc)
                raise OcrEngineFailureError(
                    "Tesseract recognition failed", {"error": str(exc)}
                ) from exc

        logger.debug("OCR returned %d characters", len(text))
        return text

    def close(self) -> None:
        """Release the engine; further ``recognize`` calls fail."""
        if self._running:
            logger.info("Tesseract engine closed")
        self._running = False

    def __enter__(self) -> "TesseractMrzEngine":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
