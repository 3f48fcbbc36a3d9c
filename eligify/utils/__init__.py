"""
Utility modules.
"""

from .datetime_utils import is_date_like, normalize_datetime
from .logger import EngineLogger, get_logger, setup_logger

__all__ = [
    # Logger
    "get_logger",
    "setup_logger",
    "EngineLogger",
    # Datetime
    "normalize_datetime",
    "is_date_like",
]
