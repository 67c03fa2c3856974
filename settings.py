"""
Central configuration for Pet It or Cook It

Precedence for config values:
1) Overrides passed to create_app()
2) Environment variables (a local .env file is loaded if present)
3) Sensible defaults

The Vision API key is optional. Without it the app falls back to the
local labeler (if enabled) or a random classification.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent

DEFAULT_VISION_API_URL = 'https://vision.googleapis.com/v1/images:annotate'
DEFAULT_SHARE_ENDPOINT_URL = 'https://petitorcookit-backend.onrender.com/api/reddit-post'


# --- Helpers ---------------------------------------------------------------

def env(key: str, default: Optional[str] = None) -> Optional[str]:
    """Return os.getenv(key), treating blank values as unset."""
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def as_bool(value: Optional[str], default: bool = False) -> bool:
    """Parse common truthy strings to bool."""
    if value is None:
        return default
    return str(value).strip().lower() in {'1', 'true', 't', 'yes', 'y', 'on'}


def as_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


def as_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def resolve_path(raw: Optional[str]) -> Optional[Path]:
    """Resolve a font/asset path relative to the project root."""
    if not raw:
        return None
    p = Path(raw).expanduser()
    return p if p.is_absolute() else (BASE_DIR / p)


@dataclass(frozen=True)
class Settings:
    vision_api_key: Optional[str] = None
    vision_api_url: str = DEFAULT_VISION_API_URL
    vision_timeout: float = 15.0
    vision_retries: int = 2

    share_endpoint_url: str = DEFAULT_SHARE_ENDPOINT_URL
    share_timeout: float = 60.0

    # Optional CLIP labeler used when the Vision API is not configured
    local_labeler: bool = False
    local_labeler_model: str = 'openai/clip-vit-base-patch32'

    font_path: Optional[Path] = None
    emoji_font_path: Optional[Path] = None

    # Share image budget
    max_pixels: int = 25_000_000
    max_size_mb: float = 10.0

    max_upload_mb: int = 20

    host: str = '0.0.0.0'
    port: int = 8000
    debug: bool = False
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'Settings':
        return cls(
            vision_api_key=env('GOOGLE_VISION_API_KEY'),
            vision_api_url=env('VISION_API_URL', DEFAULT_VISION_API_URL),
            vision_timeout=as_float(env('VISION_TIMEOUT'), 15.0),
            vision_retries=as_int(env('VISION_RETRIES'), 2),
            share_endpoint_url=env('SHARE_ENDPOINT_URL', DEFAULT_SHARE_ENDPOINT_URL),
            share_timeout=as_float(env('SHARE_TIMEOUT'), 60.0),
            local_labeler=as_bool(env('LOCAL_LABELER'), default=False),
            local_labeler_model=env('LOCAL_LABELER_MODEL', 'openai/clip-vit-base-patch32'),
            font_path=resolve_path(env('FONT_PATH')),
            emoji_font_path=resolve_path(env('EMOJI_FONT_PATH')),
            max_pixels=as_int(env('MAX_PIXELS'), 25_000_000),
            max_size_mb=as_float(env('MAX_SIZE_MB'), 10.0),
            max_upload_mb=as_int(env('MAX_UPLOAD_MB'), 20),
            host=env('HOST', '0.0.0.0'),
            port=as_int(env('PORT'), 8000),
            debug=as_bool(env('DEBUG'), default=False),
            log_level=env('LOG_LEVEL', 'INFO').upper(),
        )

    def with_overrides(self, **overrides) -> 'Settings':
        return replace(self, **overrides)
