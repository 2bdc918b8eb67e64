"""Shared test fixtures for the certification OCR test suite."""

import io
from collections.abc import Callable
from pathlib import Path

import numpy as np
import pytest
from PIL import Image


def _make_png_bytes(width: int = 300, height: int = 200) -> bytes:
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[height // 4 : 3 * height // 4, width // 6 : 5 * width // 6] = (255, 255, 255)
    buf = io.BytesIO()
    Image.fromarray(image).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (200, 120, 40)
    return image


@pytest.fixture
def make_png() -> Callable[..., bytes]:
    """Return a factory that encodes a synthetic RGB page as PNG."""
    return _make_png_bytes


@pytest.fixture
def png_bytes() -> bytes:
    """Return a small PNG page."""
    return _make_png_bytes()


@pytest.fixture
def receipt_text() -> str:
    """OCR text of a card receipt with a labeled total and payment date."""
    return "영수증\n합계 45,000원\n결제일 2024.03.05"


@pytest.fixture
def certificate_text() -> str:
    """OCR text of a certificate with labeled name, date and issuer."""
    return "자격증\n자격증명: 정보처리기사\n취득일 2023.11.20\n발급기관: 한국산업인력공단"


@pytest.fixture
def other_text() -> str:
    """OCR text that is neither a receipt nor a certificate."""
    return "회의록 안건 검토"


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
