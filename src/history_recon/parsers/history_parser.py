"""
Transaction history file parser.
Loads raw history records from API JSON dumps or CSV exports.
"""

from pathlib import Path
from typing import Any
import json
import logging

import pandas as pd

from ..config import ReconConfig
from ..utils.exceptions import HistoryParseError

logger = logging.getLogger(__name__)


def unwrap_history_data(payload: Any) -> list[Any]:
    """
    Extract the record list from a history API payload.

    Accepts the API envelope (`{"status": ..., "data": [...]}`), an envelope
    whose `data` is a single object, a `{"transactions": [...]}` wrapper, or
    a bare list.

    Raises:
        HistoryParseError: If the payload has none of these shapes
    """
    if isinstance(payload, list):
        return payload

    if isinstance(payload, dict):
        for key in ("data", "transactions"):
            if key in payload:
                data = payload[key]
                if data is None:
                    return []
                return data if isinstance(data, list) else [data]
        raise HistoryParseError("History payload has no 'data' or 'transactions' field")

    raise HistoryParseError(f"Unsupported history payload type: {type(payload).__name__}")


class HistoryParser:
    """
    Parser for saved transaction history.

    Records are returned exactly as stored; interpretation of types, dates
    and amounts is left to the reconciler.
    """

    def __init__(self, config: ReconConfig):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config
        self.encoding = config.input.encoding
        self.delimiter = config.input.delimiter

    def parse_file(self, file_path: Path) -> list[Any]:
        """
        Parse a history file and return its raw records.

        Args:
            file_path: Path to a .json or .csv file

        Returns:
            List of raw records

        Raises:
            HistoryParseError: If parsing fails
        """
        logger.info(f"Parsing history file: {file_path}")

        suffix = file_path.suffix.lower()
        if suffix == ".json":
            records = self._parse_json(file_path)
        elif suffix == ".csv":
            records = self._parse_csv(file_path)
        else:
            raise HistoryParseError(f"Unsupported history file type: {file_path.suffix or '(none)'}")

        logger.info(f"Extracted {len(records)} records from {file_path.name}")
        return records

    def _parse_json(self, file_path: Path) -> list[Any]:
        try:
            with open(file_path, "r", encoding=self.encoding) as f:
                payload = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read JSON file: {e}")
            raise HistoryParseError(f"Failed to read JSON file: {e}") from e

        return unwrap_history_data(payload)

    def _parse_csv(self, file_path: Path) -> list[dict[str, Any]]:
        try:
            df = pd.read_csv(
                file_path,
                encoding=self.encoding,
                delimiter=self.delimiter,
                dtype=str,
                keep_default_na=False,
            )
        except Exception as e:
            logger.error(f"Failed to read CSV file: {e}")
            raise HistoryParseError(f"Failed to read CSV file: {e}") from e

        return self._process_dataframe(df)

    def _process_dataframe(self, df: pd.DataFrame) -> list[dict[str, Any]]:
        """
        Convert DataFrame rows to raw records.

        Empty cells are left out so they read as absent fields.
        """
        records: list[dict[str, Any]] = []
        for row in df.to_dict(orient="records"):
            records.append({k: v for k, v in row.items() if v != ""})
        return records
