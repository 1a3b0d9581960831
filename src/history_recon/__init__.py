"""Transaction history grouping and fee reconciliation."""

__version__ = "0.1.0"

from .config import ReconConfig, load_config
from .matching.engine import TransactionReconciler, reconcile
from .models.transaction import GroupedTransaction, ReconciliationResult

__all__ = [
    "__version__",
    "ReconConfig",
    "load_config",
    "TransactionReconciler",
    "reconcile",
    "GroupedTransaction",
    "ReconciliationResult",
]
