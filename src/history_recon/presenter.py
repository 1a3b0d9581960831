"""
History screen presenter.
Sequences fetch -> reconcile -> view state, and handles row selection.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional
import logging

from .matching.engine import TransactionReconciler
from .models.transaction import GroupedTransaction
from .reports.receipt import DEFAULT_CURRENCY, format_transaction_details
from .sources.history_client import HistoryFetchResult, HistorySource
from .utils.logging_config import mask_identifier
from .utils.normalize import record_kind_text

logger = logging.getLogger(__name__)

MISSING_CUSTOMER_MESSAGE = "Customer ID is missing. Cannot fetch transactions."
NO_MAIN_TRANSACTIONS_MESSAGE = (
    "No main transactions (Payout/Dedicated Account) found for this account "
    "in the recent history."
)
NO_TRANSACTIONS_MESSAGE = "No transactions found for this account."
FETCH_FAILED_MESSAGE = "Failed to fetch transactions"
NETWORK_ERROR_MESSAGE = "Network error fetching transactions"


@dataclass
class HistoryViewState:
    """What the history screen shows."""

    transactions: list[GroupedTransaction] = field(default_factory=list)
    loading: bool = False
    refreshing: bool = False
    error: Optional[str] = None
    error_detail: Optional[dict[str, Any]] = None
    selected: Optional[GroupedTransaction] = None
    current_balance: Any = None


class HistoryPresenter:
    """
    Drives one history screen.

    Each load takes a ticket; a load whose ticket is no longer the latest
    when its fetch resolves is stale and leaves the view state untouched.
    """

    def __init__(
        self,
        source: HistorySource,
        customer_id: Optional[str],
        account_no: Optional[str] = None,
        reconciler: Optional[TransactionReconciler] = None,
        limit: int = 50,
        currency: str = DEFAULT_CURRENCY,
    ):
        self.source = source
        self.customer_id = customer_id
        self.account_no = account_no
        self.reconciler = reconciler or TransactionReconciler()
        self.limit = limit
        self.currency = currency
        self.state = HistoryViewState()
        self._ticket = 0

    async def load(self, refreshing: bool = False) -> HistoryViewState:
        """
        Fetch history and rebuild the grouped transaction list.

        Args:
            refreshing: True for pull-to-refresh (keeps the current list visible)

        Returns:
            The view state after this load (unchanged if the load went stale)
        """
        self._ticket += 1
        ticket = self._ticket

        if not self.customer_id:
            self.state.error = MISSING_CUSTOMER_MESSAGE
            self.state.error_detail = {
                "message": MISSING_CUSTOMER_MESSAGE,
                "code": "MISSING_CUSTOMER_ID",
            }
            self.state.transactions = []
            self.state.loading = False
            self.state.refreshing = False
            return self.state

        if refreshing:
            self.state.refreshing = True
        else:
            self.state.loading = True
        self.state.error = None
        self.state.error_detail = None

        logger.info(
            f"Loading history for customer {mask_identifier(self.customer_id)}, "
            f"account {self.account_no or 'none'}"
        )

        try:
            result = await self.source.fetch_history(
                self.customer_id, account_no=self.account_no, limit=self.limit
            )
        except Exception as e:
            if ticket != self._ticket:
                logger.debug(f"Discarding stale history failure (load {ticket})")
                return self.state
            logger.exception("History fetch raised")
            message = str(e) or NETWORK_ERROR_MESSAGE
            self.state.transactions = []
            self.state.error = message
            self.state.error_detail = {
                "message": message,
                "type": "NETWORK_ERROR",
            }
            self._finish()
            return self.state

        if ticket != self._ticket:
            logger.debug(f"Discarding stale history result (load {ticket})")
            return self.state

        self._apply(result)
        self._finish()
        return self.state

    async def refresh(self) -> HistoryViewState:
        return await self.load(refreshing=True)

    def _apply(self, result: HistoryFetchResult) -> None:
        if result.success and result.transactions is not None:
            records = result.transactions
            grouped = self.reconciler.reconcile(records)

            self.state.transactions = grouped
            self.state.current_balance = result.current_balance
            self.state.error = None

            non_charge_count = sum(
                1
                for r in records
                if not isinstance(r, Mapping)
                or record_kind_text(r, self.reconciler.type_fields) != "charges"
            )
            if not grouped and non_charge_count > 0:
                self.state.error = NO_MAIN_TRANSACTIONS_MESSAGE
            elif not grouped and not records:
                self.state.error = NO_TRANSACTIONS_MESSAGE
            return

        message = result.error or FETCH_FAILED_MESSAGE
        self.state.transactions = []
        self.state.error = message
        self.state.error_detail = result.error_detail or {
            "message": message,
            "type": "API_ERROR",
            "apiResponse": {
                "success": result.success,
                "error": result.error,
                "count": len(result.transactions or []),
            },
        }

    def _finish(self) -> None:
        self.state.loading = False
        self.state.refreshing = False

    def select(self, transaction_id: Any) -> str:
        """
        Open the detail view of a displayed transaction.

        Returns:
            Detail text of the selected transaction

        Raises:
            KeyError: If no displayed transaction has this id
        """
        for txn in self.state.transactions:
            if txn.id == transaction_id:
                self.state.selected = txn
                return format_transaction_details(txn, currency=self.currency)
        raise KeyError(transaction_id)

    def clear_selection(self) -> None:
        self.state.selected = None
