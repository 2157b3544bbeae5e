import os
import logging
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000


@dataclass(frozen=True)
class Settings:
    lunarcrush_api_key: Optional[str] = None
    token_terminal_api_key: Optional[str] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    blum_data_dir: Optional[str] = None


def _parse_timeout(raw: Optional[str]) -> int:
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT_MS
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"REQUEST_TIMEOUT_MS='{raw}' is not an integer. Using default of {DEFAULT_TIMEOUT_MS}ms.")
        return DEFAULT_TIMEOUT_MS
    if value <= 0:
        logger.warning(f"REQUEST_TIMEOUT_MS={value} must be positive. Using default of {DEFAULT_TIMEOUT_MS}ms.")
        return DEFAULT_TIMEOUT_MS
    return value


def load_settings() -> Settings:
    """Reads API keys and the shared request timeout from the environment (and a .env file if present)."""
    load_dotenv()

    settings = Settings(
        lunarcrush_api_key=os.getenv("LUNARCRUSH_API_KEY"),
        token_terminal_api_key=os.getenv("TOKEN_TERMINAL_API_KEY"),
        timeout_ms=_parse_timeout(os.getenv("REQUEST_TIMEOUT_MS")),
        blum_data_dir=os.getenv("BLUM_DATA_DIR") or None,
    )

    # No exit here, the tools for that source report the failure when called
    if not settings.lunarcrush_api_key:
        logger.error("LunarCrush API key not found. Please set the LUNARCRUSH_API_KEY environment variable.")
    if not settings.token_terminal_api_key:
        logger.error("Token Terminal API key not found. Please set the TOKEN_TERMINAL_API_KEY environment variable.")

    return settings
