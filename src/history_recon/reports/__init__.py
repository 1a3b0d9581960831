"""Report generation for reconciled history."""

from .excel_generator import ExcelReportGenerator, default_report_path
from .receipt import display_label, format_amount, format_transaction_details

__all__ = [
    "ExcelReportGenerator",
    "default_report_path",
    "display_label",
    "format_amount",
    "format_transaction_details",
]
