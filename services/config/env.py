from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Values from a local .env never override the real environment
load_dotenv(override=False)

_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class StoreConfig:
    data_path: Path | None


def get_store_config() -> StoreConfig:
    raw = os.getenv("LOGFOLIO_DATA_PATH", "./data/portfolio.json")
    return StoreConfig(data_path=Path(raw).resolve() if raw else None)


@dataclass(frozen=True)
class AutosaveConfig:
    delay_sec: float = 2.0


def get_autosave_config() -> AutosaveConfig:
    return AutosaveConfig(delay_sec=float(os.getenv("LOGFOLIO_AUTOSAVE_DELAY", "2.0")))


@dataclass(frozen=True)
class DisplayConfig:
    blur_currency: bool = False


def get_display_config() -> DisplayConfig:
    return DisplayConfig(blur_currency=_env_bool("LOGFOLIO_BLUR_CURRENCY"))


@dataclass(frozen=True)
class LogoConfig:
    base_url: str = "https://api.elbstream.com/logos/symbol"


def get_logo_config() -> LogoConfig:
    return LogoConfig(base_url=os.getenv("LOGO_BASE_URL", LogoConfig.base_url).rstrip("/"))


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    log_dir: str | None = None


def get_logging_config() -> LoggingConfig:
    return LoggingConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        log_dir=os.getenv("LOG_DIR") or None,
    )
