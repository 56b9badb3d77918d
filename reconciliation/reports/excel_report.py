"""Excel report generator for invoice reconciliation results."""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from reconciliation.engine.models import (
    BankTransaction,
    MatchCandidate,
    Payment,
    ReconciliationSummary,
    TransactionStatus,
)

AMOUNT_FORMAT = '#,##0.00 "MAD"'


class ExcelReportGenerator:
    """Generate Excel reports from reconciliation state."""

    # Style constants
    HEADER_FILL = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")
    HEADER_FONT = Font(name="Calibri", size=11, bold=True, color="FFFFFF")
    MATCHED_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
    PARTIAL_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
    UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
    IGNORED_FILL = PatternFill(start_color="EDEDED", end_color="EDEDED", fill_type="solid")
    TITLE_FONT = Font(name="Calibri", size=16, bold=True, color="1F4E79")
    SUBTITLE_FONT = Font(name="Calibri", size=12, bold=True, color="1F4E79")
    KPI_FONT = Font(name="Calibri", size=14, bold=True)
    THIN_BORDER = Border(
        left=Side(style="thin"),
        right=Side(style="thin"),
        top=Side(style="thin"),
        bottom=Side(style="thin"),
    )

    def generate(
        self,
        transactions: List[BankTransaction],
        summary: ReconciliationSummary,
        payments: List[Payment],
        output_path: str | Path,
        candidates: Optional[Dict[str, List[MatchCandidate]]] = None,
    ) -> Path:
        """
        Generate Excel report with 5 tabs.

        Args:
            transactions: Bank transactions in their current state.
            summary: Summary statistics.
            payments: Payments materialized from confirmed matches.
            output_path: Path for the output Excel file.
            candidates: Optional suggestions per transaction id, shown next to
                unmatched transactions.

        Returns:
            Path to the generated report.
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        candidates = candidates or {}

        wb = Workbook()

        self._create_summary_tab(wb, summary, len(payments))

        reconciled = [t for t in transactions if t.is_reconciled]
        self._create_matched_tab(wb, reconciled)

        unmatched = [t for t in transactions if t.status == TransactionStatus.UNMATCHED]
        self._create_unmatched_tab(wb, unmatched, candidates)

        ignored = [t for t in transactions if t.status == TransactionStatus.IGNORED]
        self._create_ignored_tab(wb, ignored)

        self._create_payments_tab(wb, payments)

        wb.save(str(output_path))
        return output_path

    def _create_summary_tab(
        self, wb: Workbook, summary: ReconciliationSummary, payment_count: int
    ) -> None:
        """Create the Summary dashboard tab."""
        ws = wb.active
        ws.title = "Summary"
        ws.sheet_properties.tabColor = "1F4E79"

        ws.merge_cells("A1:F1")
        ws["A1"] = "Bank Reconciliation Report"
        ws["A1"].font = self.TITLE_FONT
        ws["A1"].alignment = Alignment(horizontal="center")

        ws.merge_cells("A2:F2")
        ws["A2"] = f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        ws["A2"].alignment = Alignment(horizontal="center")

        kpis = [
            ("Match Rate", f"{summary.match_rate:.1f}%"),
            ("Total Transactions", str(summary.total_transactions)),
            ("Matched", str(summary.matched_transactions)),
            ("Unmatched", str(summary.unmatched_transactions)),
            ("Ignored", str(summary.ignored_transactions)),
            ("Payments Created", str(payment_count)),
        ]

        ws["A4"] = "Key Performance Indicators"
        ws["A4"].font = self.SUBTITLE_FONT

        for i, (label, value) in enumerate(kpis, start=5):
            ws[f"A{i}"] = label
            ws[f"A{i}"].font = Font(bold=True)
            ws[f"B{i}"] = value
            ws[f"B{i}"].font = self.KPI_FONT

            if label == "Unmatched" and int(value) > 0:
                ws[f"B{i}"].fill = self.UNMATCHED_FILL
            elif label == "Match Rate":
                ws[f"B{i}"].fill = (
                    self.MATCHED_FILL if summary.match_rate >= 95 else self.UNMATCHED_FILL
                )

        row = len(kpis) + 7
        ws[f"A{row}"] = "Amount Summary"
        ws[f"A{row}"].font = self.SUBTITLE_FONT
        row += 1

        amounts = [
            ("Total Amount", summary.total_amount),
            ("Matched Amount", summary.matched_amount),
            ("Unmatched Amount", summary.unmatched_amount),
        ]

        for label, amount in amounts:
            ws[f"A{row}"] = label
            ws[f"A{row}"].font = Font(bold=True)
            ws[f"B{row}"] = float(amount)
            ws[f"B{row}"].number_format = AMOUNT_FORMAT
            row += 1

        ws.column_dimensions["A"].width = 25
        ws.column_dimensions["B"].width = 20

    def _create_matched_tab(self, wb: Workbook, reconciled: List[BankTransaction]) -> None:
        """Matched and partially matched transactions."""
        ws = wb.create_sheet("Matched")
        ws.sheet_properties.tabColor = "00B050"

        headers = [
            "Date", "Amount", "Description", "Reference",
            "Status", "Invoices", "Confidence",
        ]
        self._write_headers(ws, headers)

        for i, txn in enumerate(reconciled, start=2):
            self._write_transaction(ws, i, txn)
            ws[f"E{i}"] = txn.status.value
            ws[f"F{i}"] = ", ".join(txn.matched_payments)
            ws[f"G{i}"] = txn.match_confidence if txn.match_confidence is not None else ""

            fill = (
                self.MATCHED_FILL if txn.status == TransactionStatus.MATCHED
                else self.PARTIAL_FILL
            )
            self._fill_row(ws, i, len(headers), fill)

        self._auto_width(ws, headers)

    def _create_unmatched_tab(
        self,
        wb: Workbook,
        unmatched: List[BankTransaction],
        candidates: Dict[str, List[MatchCandidate]],
    ) -> None:
        """Unmatched transactions with their best suggestion, if any."""
        ws = wb.create_sheet("Unmatched")
        ws.sheet_properties.tabColor = "FF0000"

        headers = [
            "Date", "Amount", "Description", "Reference",
            "Best Candidate", "Client", "Confidence",
        ]
        self._write_headers(ws, headers)

        for i, txn in enumerate(unmatched, start=2):
            self._write_transaction(ws, i, txn)
            suggestions = candidates.get(txn.id) or []
            if suggestions:
                best = suggestions[0]
                ws[f"E{i}"] = best.invoice_number
                ws[f"F{i}"] = best.client_name
                ws[f"G{i}"] = best.confidence
            self._fill_row(ws, i, len(headers), self.UNMATCHED_FILL)

        self._auto_width(ws, headers)

    def _create_ignored_tab(self, wb: Workbook, ignored: List[BankTransaction]) -> None:
        ws = wb.create_sheet("Ignored")
        ws.sheet_properties.tabColor = "808080"

        headers = ["Date", "Amount", "Description", "Reference"]
        self._write_headers(ws, headers)

        for i, txn in enumerate(ignored, start=2):
            self._write_transaction(ws, i, txn)
            self._fill_row(ws, i, len(headers), self.IGNORED_FILL)

        self._auto_width(ws, headers)

    def _create_payments_tab(self, wb: Workbook, payments: List[Payment]) -> None:
        """Payments created from confirmed matches."""
        ws = wb.create_sheet("Payments")
        ws.sheet_properties.tabColor = "FFC000"

        headers = [
            "Payment ID", "Invoice", "Date", "Amount",
            "Method", "Reference", "Bank Transaction", "Notes",
        ]
        self._write_headers(ws, headers)

        for i, payment in enumerate(payments, start=2):
            ws[f"A{i}"] = payment.id
            ws[f"B{i}"] = payment.invoice_id
            ws[f"C{i}"] = payment.date.strftime("%Y-%m-%d")
            ws[f"D{i}"] = float(payment.amount)
            ws[f"D{i}"].number_format = AMOUNT_FORMAT
            ws[f"E{i}"] = payment.method.value
            ws[f"F{i}"] = payment.reference
            ws[f"G{i}"] = payment.transaction_id or ""
            ws[f"H{i}"] = payment.notes

        self._auto_width(ws, headers)

    def _write_transaction(self, ws, row: int, txn: BankTransaction) -> None:
        ws[f"A{row}"] = txn.date.strftime("%Y-%m-%d")
        ws[f"B{row}"] = float(txn.amount)
        ws[f"B{row}"].number_format = AMOUNT_FORMAT
        ws[f"C{row}"] = txn.description[:80]
        ws[f"D{row}"] = txn.reference or ""

    def _fill_row(self, ws, row: int, width: int, fill: PatternFill) -> None:
        for col in range(1, width + 1):
            ws.cell(row=row, column=col).fill = fill

    def _write_headers(self, ws, headers: List[str]) -> None:
        """Write styled header row."""
        for col_idx, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.font = self.HEADER_FONT
            cell.fill = self.HEADER_FILL
            cell.alignment = Alignment(horizontal="center")
            cell.border = self.THIN_BORDER

        # Freeze top row
        ws.freeze_panes = "A2"

        ws.auto_filter.ref = f"A1:{get_column_letter(len(headers))}1"

    def _auto_width(self, ws, headers: List[str]) -> None:
        """Auto-adjust column widths."""
        for col_idx, header in enumerate(headers, start=1):
            col_letter = get_column_letter(col_idx)
            max_len = len(header) + 4
            ws.column_dimensions[col_letter].width = min(max_len, 35)
