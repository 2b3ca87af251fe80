"""
Utility functions for the SkillMatch app.
"""

import hashlib
import logging

from . import config

_NOISY_LOGGERS = ("pdfplumber", "pdfminer", "httpx", "httpcore", "websockets")


def _sha(text: str) -> str:
    """Computes SHA256 hash of a string."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def configure_logging(level: str = None) -> None:
    """Set up root logging once and quieten chatty libraries."""
    logging.basicConfig(
        level=(level or config.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def clip(text: str, limit: int = 200) -> str:
    """Shorten text for log lines."""
    text = text or ""
    return text if len(text) <= limit else text[:limit] + "…"
