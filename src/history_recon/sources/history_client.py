"""
History API client.
Fetches raw transaction history for a customer/account from the backend.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional
import logging
import time

import httpx

from ..config import SourceConfig
from ..utils.exceptions import HistorySourceError
from ..utils.logging_config import mask_identifier

logger = logging.getLogger(__name__)


@dataclass
class HistoryFetchResult:
    """Outcome of one history fetch."""

    success: bool
    transactions: list[Any] = field(default_factory=list)
    current_balance: Any = None
    error: Optional[str] = None
    error_detail: Optional[dict[str, Any]] = None


@dataclass
class BalanceResult:
    """Outcome of a latest-balance lookup."""

    balance: Any
    success: bool
    error: Optional[str] = None


class HistorySource(ABC):
    """Anything that can supply raw history records for a customer."""

    @abstractmethod
    async def fetch_history(
        self,
        customer_id: str,
        account_no: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> HistoryFetchResult:
        """
        Fetch raw history records.

        Args:
            customer_id: Customer whose history is requested
            account_no: Restrict to one account (optional)
            limit: Maximum number of records the backend should return
            offset: Paging offset

        Returns:
            HistoryFetchResult; failures are reported in it, not raised
        """
        pass


class HistoryClient(HistorySource):
    """HTTP client for the history endpoint."""

    def __init__(
        self,
        config: Optional[SourceConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or SourceConfig()
        self.history_url = self.config.history_url
        self.client = client or httpx.AsyncClient(timeout=self.config.timeout_seconds)

    async def __aenter__(self) -> "HistoryClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def fetch_history(
        self,
        customer_id: str,
        account_no: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> HistoryFetchResult:
        logger.info(
            f"Fetching history for customer {mask_identifier(customer_id)}, "
            f"account {account_no or 'none'}, limit {limit}, offset {offset}"
        )

        body: dict[str, Any] = {"limit": limit, "offset": offset}
        if customer_id:
            body["customer_id"] = customer_id
        if account_no:
            body["account_number"] = account_no
        # Cache buster
        body["_cache"] = int(time.time() * 1000)

        try:
            data = await self._post_json(body)
        except (httpx.HTTPError, HistorySourceError) as e:
            message = str(e) or "Failed to fetch transactions"
            logger.error(f"History fetch failed: {message}")
            return HistoryFetchResult(
                success=False,
                transactions=[],
                error=message,
                error_detail={"message": message, "type": "NETWORK_ERROR"},
            )

        raw = data.get("data")
        if not raw:
            transactions: list[Any] = []
        else:
            transactions = raw if isinstance(raw, list) else [raw]

        success = data.get("status") == "success"
        logger.info(
            f"History response: status={data.get('status')}, "
            f"{len(transactions)} records, balance={data.get('current_balance')}"
        )

        return HistoryFetchResult(
            success=success,
            transactions=transactions,
            current_balance=data.get("current_balance"),
            error=None if success else (data.get("message") or "No transactions found"),
        )

    async def fetch_latest_balance(
        self, customer_id: str, account_no: Optional[str] = None
    ) -> BalanceResult:
        """Look up the current balance with a single-record history fetch."""
        result = await self.fetch_history(customer_id, account_no=account_no, limit=1)
        return BalanceResult(
            balance=result.current_balance,
            success=result.success,
            error=result.error,
        )

    async def _post_json(self, body: dict[str, Any]) -> dict[str, Any]:
        """POST the request and decode a JSON object response."""
        response = await self.client.post(self.history_url, json=body)

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise HistorySourceError(f"API returned non-JSON: {response.text[:100]}")

        try:
            data = response.json()
        except ValueError as e:
            raise HistorySourceError(f"API returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise HistorySourceError("API returned an unexpected response shape")
        return data
