"""Parsers for saved transaction history."""

from .history_parser import HistoryParser, unwrap_history_data

__all__ = ["HistoryParser", "unwrap_history_data"]
