"""Remote history sources."""

from .history_client import BalanceResult, HistoryClient, HistoryFetchResult, HistorySource

__all__ = ["BalanceResult", "HistoryClient", "HistoryFetchResult", "HistorySource"]
