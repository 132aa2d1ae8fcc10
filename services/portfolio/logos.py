from __future__ import annotations
from urllib.parse import quote

from services.config.env import get_logo_config


def logo_url(ticker: str) -> str:
    """Logo image URL on the configured symbol-logo service."""
    cfg = get_logo_config()
    return f"{cfg.base_url}/{quote(ticker.strip().upper())}"


def logo_fallback(ticker: str) -> str:
    # Placeholder glyph shown when the image fails to load
    t = ticker.strip()
    return t[0].upper() if t else "?"
