"""
Utility functions shared by the services.
"""

import time
from typing import Optional


def is_blank(value: Optional[str]) -> bool:
    """True for None, the empty string, or whitespace-only text."""
    return value is None or not value.strip()


def current_epoch() -> int:
    """Current server time in whole epoch seconds."""
    return int(time.time())
