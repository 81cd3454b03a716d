"""Shared test fixtures for the MRZ pipeline test suite."""

from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pytest

MRZ_LINE_1 = "P<UTOERIKSSON<<ANNA<MARIA<<<<<<<<<<<<<<<<<<<"
MRZ_LINE_2 = "L898902C36UTO7408122F1204159ZE184226B<<<<<10"


@pytest.fixture
def mrz_lines() -> tuple[str, str]:
    """Two 44-character TD3 MRZ lines."""
    return MRZ_LINE_1, MRZ_LINE_2


@pytest.fixture
def noisy_ocr_text() -> str:
    """OCR output with three noise lines of differing lengths before the MRZ."""
    return "\n".join(
        [
            "PASSPORT",
            "UTOPIA REPUBLIC OF",
            "SURNAME ERIKSSON GIVEN NAMES ANNA MARIA",
            MRZ_LINE_1,
            MRZ_LINE_2,
        ]
    ) + "\n\f"


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a synthetic RGB gradient image."""
    ramp = np.linspace(0, 255, 300, dtype=np.uint8)
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[:, :, 0] = ramp
    image[:, :, 1] = ramp
    image[:, :, 2] = ramp[::-1]
    return image


@pytest.fixture
def fake_engine() -> MagicMock:
    """OCR engine stand-in that returns a valid two-line MRZ."""
    engine = MagicMock()
    engine.recognize.return_value = f"NOISE\n{MRZ_LINE_1}\n{MRZ_LINE_2}\n"
    return engine


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
