"""
Runtime configuration.

Values come from the environment, with a local .env file loaded first.
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


# Remote model service
OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://openrouter.ai/api/v1")
CHAT_MODEL = os.getenv("CHAT_MODEL", "openai/gpt-4o-mini")

# Catalog
CATALOG_DB_PATH: Optional[str] = os.getenv("CATALOG_DB_PATH")
CATALOG_SNAPSHOT_DELAY = _float_env("CATALOG_SNAPSHOT_DELAY", 0.0)

# Checkout stub
CHECKOUT_BASE_URL = os.getenv("CHECKOUT_BASE_URL", "https://your-store.com/checkout")

# Retry policy for model calls (seconds)
RETRY_BASE_DELAY = _float_env("RETRY_BASE_DELAY", 1.0)
RETRY_MULTIPLIER = _float_env("RETRY_MULTIPLIER", 2.0)
RETRY_MAX_DELAY = _float_env("RETRY_MAX_DELAY", 30.0)
RETRY_MAX_RETRIES = _int_env("RETRY_MAX_RETRIES", 3)
RETRY_SAFETY_MARGIN = _float_env("RETRY_SAFETY_MARGIN", 1.0)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: Optional[str] = None) -> None:
    """Set up root logging for command-line use."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
