"""
Excel report generator for reconciliation sessions.
Creates a multi-sheet workbook with formatted output.
"""

from datetime import datetime
from pathlib import Path
from typing import Any
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..config import ReconConfig
from ..matching.session import ReconciliationSession
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


class ExcelReportGenerator:
    """Writes the state of a reconciliation session to an .xlsx workbook."""

    def __init__(self, config: ReconConfig):
        self.config = config
        self.sheets = config.output.sheets

    def generate_report(self, session: ReconciliationSession, output_path: Path) -> Path:
        """
        Generate the reconciliation report.

        Args:
            session: Loaded session (completed or still matching)
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

        if self.sheets.summary.enabled:
            self._create_summary_sheet(wb, session)
        if self.sheets.matched.enabled:
            self._create_matched_sheet(wb, session)
        if self.sheets.unmatched_bank.enabled:
            self._create_unmatched_bank_sheet(wb, session)
        if self.sheets.unmatched_system.enabled:
            self._create_unmatched_system_sheet(wb, session)

        if not wb.worksheets:
            raise ReportGenerationError("All report sheets are disabled")

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Cannot write report {output_path}: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(self, wb: Workbook, session: ReconciliationSession) -> None:
        ws = wb.create_sheet(self.sheets.summary.name)
        summary = session.summary()
        result = session.result

        ws["A1"] = "Bank Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        bank = session.bank_transactions()
        dates = [t.date for t in bank]
        rows: list[tuple[str, Any]] = [
            ("Company:", session.company_id),
            ("Account:", session.account_id),
            ("Statement Period:", f"{min(dates)} to {max(dates)}" if dates else "-"),
            ("Generated At:", datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
            ("Status:", "completed" if result else "in progress"),
            ("Reconciliation ID:", result.reconciliation.id if result else "-"),
            ("", ""),
            ("Bank Transactions:", summary.total),
            ("Matched:", summary.matched_count),
            ("Unmatched Bank:", summary.unmatched_count),
            ("Unmatched System:", summary.unmatched_system_count),
            ("Match Rate:", f"{summary.match_rate:.1f}%"),
            ("Suggestion Rule:", session.strategy.describe()),
        ]

        for i, (label, value) in enumerate(rows, start=3):
            ws[f"A{i}"] = label
            ws[f"B{i}"] = value
            if label:
                ws[f"A{i}"].font = Font(bold=True)

        ws.column_dimensions["A"].width = 24
        ws.column_dimensions["B"].width = 44

    def _create_matched_sheet(self, wb: Workbook, session: ReconciliationSession) -> None:
        ws = wb.create_sheet(self.sheets.matched.name)
        self._write_headers(
            ws,
            [
                "Bank ID",
                "Bank Date",
                "Bank Reference",
                "Bank Description",
                "Debit",
                "Credit",
                "System ID",
                "System Date",
                "System Reference",
                "System Amount",
                "System Type",
                "Matched At",
            ],
        )

        for row_num, relation in enumerate(session.matches(), start=2):
            bank_txn = session.get_bank_transaction(relation.bank_transaction_id)
            system_txn = session.get_system_transaction(relation.system_transaction_id)
            self._write_row(
                ws,
                row_num,
                [
                    bank_txn.id,
                    bank_txn.date,
                    bank_txn.reference,
                    bank_txn.description,
                    float(bank_txn.debit) or None,
                    float(bank_txn.credit) or None,
                    system_txn.id,
                    system_txn.date,
                    system_txn.reference,
                    float(system_txn.amount),
                    system_txn.type.value,
                    relation.matched_at.strftime("%Y-%m-%d %H:%M:%S"),
                ],
                MATCH_FILL,
            )

        self._auto_fit_columns(ws)

    def _create_unmatched_bank_sheet(self, wb: Workbook, session: ReconciliationSession) -> None:
        ws = wb.create_sheet(self.sheets.unmatched_bank.name)
        self._write_headers(
            ws, ["ID", "Date", "Reference", "Description", "Debit", "Credit", "Balance"]
        )

        for row_num, txn in enumerate(session.unmatched_bank(), start=2):
            balance = txn.running_balance
            self._write_row(
                ws,
                row_num,
                [
                    txn.id,
                    txn.date,
                    txn.reference,
                    txn.description,
                    float(txn.debit) or None,
                    float(txn.credit) or None,
                    float(balance) if balance is not None else None,
                ],
                UNMATCHED_FILL,
            )

        self._auto_fit_columns(ws)

    def _create_unmatched_system_sheet(
        self, wb: Workbook, session: ReconciliationSession
    ) -> None:
        ws = wb.create_sheet(self.sheets.unmatched_system.name)
        self._write_headers(ws, ["ID", "Date", "Reference", "Description", "Amount", "Type"])

        for row_num, txn in enumerate(session.unmatched_system(), start=2):
            self._write_row(
                ws,
                row_num,
                [
                    txn.id,
                    txn.date,
                    txn.reference,
                    txn.description,
                    float(txn.amount),
                    txn.type.value,
                ],
                UNMATCHED_FILL,
            )

        self._auto_fit_columns(ws)

    def _write_headers(self, ws: Worksheet, headers: list[str]) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _write_row(
        self, ws: Worksheet, row_num: int, values: list[Any], fill: PatternFill
    ) -> None:
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row_num, column=col, value=value)
            cell.border = THIN_BORDER
            cell.fill = fill

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            column = column_cells[0].column_letter
            max_length = max(
                (len(str(cell.value)) for cell in column_cells if cell.value is not None),
                default=0,
            )
            ws.column_dimensions[column].width = min(max_length + 2, 50)
