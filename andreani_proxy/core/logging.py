"""
Logging utilities for the proxy service.

Provides a consistent logging format and a helper to keep secrets out of logs.
"""

import logging
import sys
from typing import Optional


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


def mask_secret(value: Optional[str], *, visible: int = 4) -> str:
    """Return a loggable rendition of a secret keeping only a short prefix."""
    if not value:
        return "<empty>"
    if len(value) <= visible * 2:
        return "*" * len(value)
    return f"{value[:visible]}...({len(value)} chars)"


__all__ = ["configure_logging", "mask_secret"]
