"""
Excel report generator for reconciled transaction history.
Creates multi-sheet workbooks with formatted output.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..models.transaction import ReconciliationResult, ReconciliationSummary
from ..config import ReconConfig
from ..utils.exceptions import ReportGenerationError
from ..utils.normalize import key_text, parse_amount
from .receipt import display_label, transaction_type_text

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="0A1128", end_color="0A1128", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
FEE_FILL = PatternFill(start_color="DDF4FC", end_color="DDF4FC", fill_type="solid")
DEBIT_FONT = Font(color="C0392B")
CREDIT_FONT = Font(color="1E8449")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

RECORD_HEADERS = ["Date", "Reference", "Type", "Amount", "Direction", "Description"]


class ExcelReportGenerator:
    """Generates Excel history reports with multiple sheets."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config
        self.sheet_config = config.output.sheets
        self.currency = config.display.currency

    def generate_report(
        self,
        summary: ReconciliationSummary,
        result: ReconciliationResult,
        output_path: Path,
    ) -> Path:
        """
        Generate the complete history report.

        Args:
            summary: Reconciliation summary
            result: Reconciliation result with diagnostics
            output_path: Path for output file

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be written
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = Workbook()
        if wb.active:
            wb.remove(wb.active)

        sheets = self.sheet_config
        if sheets.summary.enabled:
            self._create_summary_sheet(wb, summary)
        if sheets.transactions.enabled:
            self._create_transactions_sheet(wb, result)
        if sheets.fees.enabled:
            self._create_fees_sheet(wb, result)
        if sheets.unmatched_fees.enabled:
            self._create_record_sheet(wb, sheets.unmatched_fees.name, result.unmatched_fees)
        if sheets.dropped.enabled:
            dropped = [r for r in result.dropped_records if isinstance(r, Mapping)]
            self._create_record_sheet(wb, sheets.dropped.name, dropped)

        # openpyxl refuses to save a workbook without sheets
        if not wb.worksheets:
            wb.create_sheet("Empty")

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Failed to save report {output_path}: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(self, wb: Workbook, summary: ReconciliationSummary) -> None:
        """Create the summary sheet with key metrics."""
        ws = wb.create_sheet(self.sheet_config.summary.name)

        ws["A1"] = "Transaction History Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        sections: list[tuple[str, list[tuple[str, Any]]]] = [
            (
                "Source",
                [
                    ("History Source:", summary.source_name),
                    ("Generated:", summary.reconciliation_date.strftime("%Y-%m-%d %H:%M:%S")),
                    ("Period:", f"{summary.period_start or '-'} to {summary.period_end or '-'}"),
                    ("Config File:", summary.config_file_used or "Default"),
                ],
            ),
            (
                "Record Counts",
                [
                    ("Records Received:", summary.record_count),
                    ("Main Transactions:", summary.main_count),
                    ("Fee Records:", summary.fee_count),
                    ("Grouped Transactions:", summary.grouped_count),
                    ("Displayed:", summary.displayed_count),
                    ("Truncated:", summary.truncated_count),
                    ("Fees Attached:", summary.attached_fee_count),
                    ("Fees Unmatched:", summary.unmatched_fee_count),
                    ("Duplicate Transactions:", summary.duplicate_transaction_count),
                    ("Duplicate Fees:", summary.duplicate_fee_count),
                    ("Dropped Records:", summary.dropped_count),
                    ("Fee Match Rate:", f"{summary.fee_match_rate:.1f}%"),
                ],
            ),
            (
                "Amount Totals (displayed)",
                [
                    ("Total Debits:", f"{self.currency} {summary.total_debits:,.2f}"),
                    ("Total Credits:", f"{self.currency} {summary.total_credits:,.2f}"),
                    ("Net Change:", f"{self.currency} {summary.net_change:,.2f}"),
                    ("Total Fees:", f"{self.currency} {summary.total_fees:,.2f}"),
                ],
            ),
        ]

        row = 3
        for title, items in sections:
            ws[f"A{row}"] = title
            ws[f"A{row}"].font = Font(bold=True)
            row += 1
            for label, value in items:
                ws[f"A{row}"] = label
                ws[f"B{row}"] = value
                row += 1
            row += 1

        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 40

    def _create_transactions_sheet(self, wb: Workbook, result: ReconciliationResult) -> None:
        """Create the grouped transactions sheet, fees nested under each row."""
        ws = wb.create_sheet(self.sheet_config.transactions.name)
        headers = ["ID"] + RECORD_HEADERS + ["Fee Count", "Fee Total"]
        self._write_headers(ws, headers)

        row = 2
        for txn in result.transactions:
            fee_total = sum((parse_amount(f.get("amount")) for f in txn.associated_fees), 0.0)
            row_data = [
                key_text(txn.id),
                key_text(txn.transaction_date),
                key_text(txn.reference),
                transaction_type_text(txn),
                txn.amount_value,
                txn.debit_credit_indicator or "",
                display_label(txn),
                len(txn.associated_fees),
                fee_total,
            ]
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row, column=col, value=value)
                cell.border = THIN_BORDER
                if col == 5:
                    cell.font = DEBIT_FONT if txn.is_debit else CREDIT_FONT
            row += 1

            for fee in txn.associated_fees:
                fee_label = f"  {transaction_type_text(fee, default='Fee')}"
                fee_data = ["", "", "", fee_label, parse_amount(fee.get("amount"))]
                for col, value in enumerate(fee_data, start=1):
                    cell = ws.cell(row=row, column=col, value=value)
                    cell.fill = FEE_FILL
                row += 1

        self._auto_fit_columns(ws)

    def _create_fees_sheet(self, wb: Workbook, result: ReconciliationResult) -> None:
        """Create a flat sheet of attached fees with their parent transaction."""
        ws = wb.create_sheet(self.sheet_config.fees.name)
        headers = ["Transaction ID", "Transaction Reference"] + RECORD_HEADERS
        self._write_headers(ws, headers)

        row = 2
        for txn in result.transactions:
            for fee in txn.associated_fees:
                row_data = [key_text(txn.id), key_text(txn.reference)] + self._record_row(fee)
                for col, value in enumerate(row_data, start=1):
                    ws.cell(row=row, column=col, value=value).border = THIN_BORDER
                row += 1

        self._auto_fit_columns(ws)

    def _create_record_sheet(
        self, wb: Workbook, sheet_name: str, records: list[Mapping[str, Any]]
    ) -> None:
        """Create a sheet listing raw records left out of the grouped view."""
        ws = wb.create_sheet(sheet_name)
        self._write_headers(ws, RECORD_HEADERS)

        for row_num, record in enumerate(records, start=2):
            for col, value in enumerate(self._record_row(record), start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                cell.fill = UNMATCHED_FILL

        self._auto_fit_columns(ws)

    def _record_row(self, record: Mapping[str, Any]) -> list[Any]:
        return [
            key_text(record.get("transactionDate")),
            key_text(record.get("reference")),
            transaction_type_text(record, default=""),
            parse_amount(record.get("amount")),
            key_text(record.get("debitCreditIndicator")),
            key_text(record.get("transaction_description") or record.get("description")),
        ]

    def _write_headers(self, ws: Worksheet, headers: list[str]) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = max(
                (len(str(cell.value)) for cell in column_cells if cell.value is not None),
                default=0,
            )
            column = column_cells[0].column_letter
            ws.column_dimensions[column].width = min(max_length + 2, 50)


def default_report_path(config: ReconConfig, now: Optional[datetime] = None) -> Path:
    """Build the report filename from the configured template."""
    now = now or datetime.now()
    template = config.output.excel.filename_template
    return Path(template.format(date=now.strftime("%Y%m%d"), time=now.strftime("%H%M%S")))
