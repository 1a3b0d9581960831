"""Custom exceptions for the history reconciliation package."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class HistoryParseError(ReconciliationError):
    """Error parsing a transaction history file."""

    pass


class HistorySourceError(ReconciliationError):
    """Error talking to the remote history service."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating Excel report."""

    pass
