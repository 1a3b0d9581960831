"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    HistoryParseError,
    HistorySourceError,
    ConfigurationError,
    ReportGenerationError,
)
from .logging_config import setup_logging, mask_identifier

__all__ = [
    "ReconciliationError",
    "HistoryParseError",
    "HistorySourceError",
    "ConfigurationError",
    "ReportGenerationError",
    "setup_logging",
    "mask_identifier",
]
