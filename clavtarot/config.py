"""
config.py — Environment-driven settings.

Values come from the process environment, optionally seeded from a `.env`
file in the working directory (python-dotenv). Every setting has a default,
so nothing here is required unless you use the LLM narration.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not a number); using %s", name, raw, default)
        return default
    if value < 0:
        logger.warning("Ignoring %s=%r (negative); using %s", name, raw, default)
        return default
    return value


# LLM
GEMINI_TOKEN: Optional[str] = os.getenv("GEMINI_TOKEN")
DEFAULT_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

# Terminal pacing
REVEAL_DELAY: float = _env_float("CLAVTAROT_REVEAL_DELAY", 0.8)
SHUFFLE_SECONDS: float = _env_float("CLAVTAROT_SHUFFLE_SECONDS", 1.2)

# Catalog override (None -> packaged deck)
DECK_PATH: Optional[str] = os.getenv("CLAVTAROT_DECK_PATH") or None

LOG_LEVEL: str = os.getenv("CLAVTAROT_LOG_LEVEL", "WARNING").upper()

# Host agent installation
OPENCLAW_HOME: Path = Path(os.getenv("OPENCLAW_HOME") or Path.home() / ".openclaw").expanduser()
