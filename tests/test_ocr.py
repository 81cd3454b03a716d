"""Tests for the Tesseract MRZ engine wrapper."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from mrzscan.ocr.tesseract_engine import TesseractMrzEngine
from mrzscan.utils.config import MRZ_ALPHABET, OCRConfig
from mrzscan.utils.exceptions import OcrEngineFailureError


class FakeTesseractError(Exception):
    """Stand-in for pytesseract.TesseractError."""


class FakeTesseractNotFoundError(OSError):
    """Stand-in for pytesseract.TesseractNotFoundError."""


@pytest.fixture
def mock_tesseract() -> Iterator[MagicMock]:
    with patch("mrzscan.ocr.tesseract_engine.pytesseract") as mock:
        mock.TesseractError = FakeTesseractError
        mock.TesseractNotFoundError = FakeTesseractNotFoundError
        mock.get_tesseract_version.return_value = "5.3.0"
        mock.image_to_string.return_value = "P<UTO\nL898\n"
        yield mock


@pytest.fixture
def binary_image() -> np.ndarray:
    image = np.full((40, 200), 255, dtype=np.uint8)
    image[10:30, 20:180] = 0
    return image


class TestTesseractConfig:
    """Tests for the options passed to Tesseract."""

    def test_default_options(self) -> None:
        config = TesseractMrzEngine().tesseract_config
        assert "--psm 6" in config
        assert "--dpi 300" in config
        assert f"tessedit_char_whitelist={MRZ_ALPHABET}" in config
        assert "load_system_dawg=0" in config
        assert "load_freq_dawg=0" in config
        assert "--tessdata-dir" not in config

    def test_tessdata_dir_first(self, tmp_path: Path) -> None:
        config = TesseractMrzEngine(tessdata_dir=str(tmp_path)).tesseract_config
        assert config.startswith(f'--tessdata-dir "{tmp_path}"')

    def test_from_config(self, mock_tesseract: MagicMock) -> None:
        engine = TesseractMrzEngine.from_config(
            OCRConfig(tesseract_cmd="/opt/tesseract", lang="ocrb", psm=4, timeout=2)
        )
        assert engine.lang == "ocrb"
        assert engine.psm == 4
        assert engine.timeout == 2
        assert mock_tesseract.pytesseract.tesseract_cmd == "/opt/tesseract"


class TestLifecycle:
    """Tests for start and close."""

    def test_start_checks_version(self, mock_tesseract: MagicMock) -> None:
        engine = TesseractMrzEngine()
        engine.start()
        assert engine.is_running
        mock_tesseract.get_tesseract_version.assert_called_once()

    def test_start_twice_checks_once(self, mock_tesseract: MagicMock) -> None:
        engine = TesseractMrzEngine()
        engine.start()
        engine.start()
        mock_tesseract.get_tesseract_version.assert_called_once()

    def test_missing_binary(self, mock_tesseract: MagicMock) -> None:
        mock_tesseract.get_tesseract_version.side_effect = FakeTesseractNotFoundError(
            "tesseract is not installed"
        )
        engine = TesseractMrzEngine()
        with pytest.raises(OcrEngineFailureError, match="not available"):
            engine.start()
        assert not engine.is_running

    def test_missing_traineddata(
        self, mock_tesseract: MagicMock, tmp_path: Path
    ) -> None:
        engine = TesseractMrzEngine(lang="ocrb", tessdata_dir=str(tmp_path))
        with pytest.raises(OcrEngineFailureError) as exc_info:
            engine.start()
        assert exc_info.value.details["path"].endswith("ocrb.traineddata")
        mock_tesseract.get_tesseract_version.assert_not_called()

    def test_present_traineddata(
        self, mock_tesseract: MagicMock, tmp_path: Path
    ) -> None:
        (tmp_path / "ocrb.traineddata").write_bytes(b"model")
        engine = TesseractMrzEngine(lang="ocrb", tessdata_dir=str(tmp_path))
        engine.start()
        assert engine.is_running

    def test_context_manager(self, mock_tesseract: MagicMock) -> None:
        with TesseractMrzEngine() as engine:
            assert engine.is_running
        assert not engine.is_running


class TestRecognize:
    """Tests for text recognition."""

    def test_returns_raw_text(
        self, mock_tesseract: MagicMock, binary_image: np.ndarray
    ) -> None:
        with TesseractMrzEngine(lang="ocrb", timeout=3) as engine:
            assert engine.recognize(binary_image) == "P<UTO\nL898\n"

        kwargs = mock_tesseract.image_to_string.call_args.kwargs
        assert kwargs["lang"] == "ocrb"
        assert kwargs["timeout"] == 3
        assert kwargs["config"] == engine.tesseract_config

    def test_not_started_raises(
        self, mock_tesseract: MagicMock, binary_image: np.ndarray
    ) -> None:
        with pytest.raises(OcrEngineFailureError, match="not running"):
            TesseractMrzEngine().recognize(binary_image)
        mock_tesseract.image_to_string.assert_not_called()

    def test_closed_raises(
        self, mock_tesseract: MagicMock, binary_image: np.ndarray
    ) -> None:
        engine = TesseractMrzEngine()
        engine.start()
        engine.close()
        with pytest.raises(OcrEngineFailureError):
            engine.recognize(binary_image)

    @pytest.mark.parametrize(
        "error",
        [FakeTesseractError("bad image"), RuntimeError("Tesseract process timeout")],
    )
    def test_engine_errors_wrapped(
        self,
        mock_tesseract: MagicMock,
        binary_image: np.ndarray,
        error: Exception,
    ) -> None:
        mock_tesseract.image_to_string.side_effect = error
        with TesseractMrzEngine() as engine:
            with pytest.raises(OcrEngineFailureError) as exc_info:
                engine.recognize(binary_image)
        assert exc_info.value.kind == "ocr_engine_failure"
        assert exc_info.value.__cause__ is error
