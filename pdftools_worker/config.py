"""Environment-driven settings for the PDF tools."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

UNICODE_FONT_PATHS = (
    Path(__file__).resolve().parent / "assets" / "DejaVuSans.ttf",
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
    Path("/usr/share/fonts/DejaVuSans.ttf"),
)


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on", "y"}


def _env_str(name: str, default: str) -> str:
    value = os.environ.get(name)
    return value.strip() if value else default


@dataclass(frozen=True)
class Settings:
    """Tunable defaults shared by the tools."""

    merge_min_inputs: int = 2
    watermark_font_size: float = 60.0
    watermark_rotation: float = 45.0
    watermark_opacity: float = 0.3
    signature_scale: float = 0.3
    verify_redactions: bool = True
    ttf_path: str = ""
    log_level: str = "INFO"


def load_settings() -> Settings:
    """
    Build settings from ``PDFTOOLS_*`` environment variables.

    Missing or malformed values fall back to the defaults on ``Settings``.

    Returns:
        Settings: A frozen settings snapshot for one call.
    """
    defaults = Settings()
    return Settings(
        merge_min_inputs=max(1, _env_int("PDFTOOLS_MERGE_MIN_INPUTS", defaults.merge_min_inputs)),
        watermark_font_size=_env_float("PDFTOOLS_WATERMARK_FONT_SIZE", defaults.watermark_font_size),
        watermark_rotation=_env_float("PDFTOOLS_WATERMARK_ROTATION", defaults.watermark_rotation),
        watermark_opacity=min(
            max(_env_float("PDFTOOLS_WATERMARK_OPACITY", defaults.watermark_opacity), 0.0), 1.0
        ),
        signature_scale=_env_float("PDFTOOLS_SIGNATURE_SCALE", defaults.signature_scale),
        verify_redactions=_env_bool("PDFTOOLS_VERIFY_REDACTIONS", defaults.verify_redactions),
        ttf_path=_env_str("PDFTOOLS_TTF_PATH", defaults.ttf_path),
        log_level=_env_str("PDFTOOLS_LOG_LEVEL", defaults.log_level).upper(),
    )


def resolve_unicode_font_path(settings: Settings | None = None) -> Path | None:
    """
    Locate a Unicode-compatible TrueType font file if one is available.

    Checks the configured ``PDFTOOLS_TTF_PATH`` first, then falls back to known candidate paths.

    Returns:
        Path | None: Path to the font file if found, `None` otherwise.
    """
    settings = settings or load_settings()
    if settings.ttf_path:
        candidate = Path(settings.ttf_path)
        if candidate.is_file():
            return candidate
    for candidate in UNICODE_FONT_PATHS:
        if candidate.is_file():
            return candidate
    return None
