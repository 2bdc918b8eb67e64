"""Configuration management for the certification document OCR pipeline.

Loads and validates YAML configuration with sensible defaults
for intake, PDF rendering, preprocessing, OCR, review, and catalog settings.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

SUPPORTED_MEDIA_TYPES: tuple[str, ...] = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
    "application/pdf",
)


class IntakeConfig(BaseModel):
    """Limits applied to uploaded files before any processing."""

    max_file_size_mb: int = 50
    allowed_media_types: list[str] = Field(
        default_factory=lambda: list(SUPPORTED_MEDIA_TYPES)
    )

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024


class PDFConfig(BaseModel):
    """Configuration for PDF page rasterization."""

    scale: float = 2.0
    max_pages: int | None = None
    min_page_bytes: int = 100

    @property
    def dpi(self) -> int:
        """Render resolution; PDF user space is 72 points per inch."""
        return int(72 * self.scale)


class PreprocessingConfig(BaseModel):
    """Configuration for image preprocessing pipeline."""

    enabled: bool = True
    max_dimension: int = 2000
    min_dimension: int = 100
    contrast: float = 1.5
    threshold: int = 128
    decode_timeout_s: float = 10.0


class OCRConfig(BaseModel):
    """Configuration for Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    lang: str = "kor+eng"
    psm: int = 3
    timeout_s: float = 300.0


class ReviewConfig(BaseModel):
    """Configuration for the human review step."""

    confidence_threshold: float = 80.0


class CatalogConfig(BaseModel):
    """Location of the certification reference catalog."""

    path: str = "configs/catalog.yaml"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    intake: IntakeConfig = Field(default_factory=IntakeConfig)
    pdf: PDFConfig = Field(default_factory=PDFConfig)
    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    review: ReviewConfig = Field(default_factory=ReviewConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
