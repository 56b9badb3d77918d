"""CLI entry point for invoice bank reconciliation."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from reconciliation.engine.matcher import MatchingEngine
from reconciliation.engine.models import AllocationPolicy
from reconciliation.engine.payments import PaymentMaterializer
from reconciliation.engine.repository import InvoiceRepository, TransactionStore
from reconciliation.engine.tracker import ReconciliationTracker
from reconciliation.parsers.csv_parser import InvoiceLoader
from reconciliation.parsers.loader import load_statements
from reconciliation.reports.csv_export import export_payments_csv, export_transactions_csv
from reconciliation.reports.excel_report import ExcelReportGenerator

logger = logging.getLogger(__name__)


def validate_tolerance(ctx, param, value):
    """Validate relative tolerance is between 0 and 1."""
    if value < 0 or value > 1:
        raise click.BadParameter("Tolerance must be between 0 and 1.")
    return value


def validate_max_candidates(ctx, param, value):
    if value < 1:
        raise click.BadParameter("At least one candidate must be kept.")
    return value


def _has_balance(repository: InvoiceRepository, invoice_id: str) -> bool:
    invoice = repository.find(invoice_id)
    return invoice is not None and invoice.outstanding > 0


@click.command()
@click.option(
    "--bank", "-b",
    required=True,
    multiple=True,
    type=click.Path(exists=True),
    help="Bank statement file(s): OFX/QFX, QIF, MT940, CSV or Excel.",
)
@click.option(
    "--invoices", "-i",
    required=True,
    type=click.Path(exists=True),
    help="Invoice ledger (CSV or Excel).",
)
@click.option(
    "--output", "-o",
    required=True,
    type=click.Path(),
    help="Path for the output Excel report.",
)
@click.option(
    "--csv-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Also write transactions.csv and payments.csv to this directory.",
)
@click.option(
    "--auto-match/--no-auto-match",
    default=True,
    help="Match unmatched transactions to their first candidate invoice.",
)
@click.option(
    "--confirm",
    is_flag=True,
    default=False,
    help="Confirm auto matches and record the resulting payments.",
)
@click.option(
    "--allocation",
    type=click.Choice([p.value for p in AllocationPolicy]),
    default=AllocationPolicy.FULL_BALANCE.value,
    show_default=True,
    help="How confirmed matches are turned into payment amounts.",
)
@click.option(
    "--prefilter-tolerance", "-t",
    default=0.01,
    type=float,
    callback=validate_tolerance,
    help="Max relative gap between invoice balance and bank amount (default: 0.01 = 1%).",
)
@click.option(
    "--max-candidates",
    default=5,
    type=int,
    callback=validate_max_candidates,
    help="Number of invoice suggestions kept per transaction (default: 5).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(
    bank: tuple,
    invoices: str,
    output: str,
    csv_dir: Optional[str],
    auto_match: bool,
    confirm: bool,
    allocation: str,
    prefilter_tolerance: float,
    max_candidates: int,
    verbose: bool,
) -> None:
    """
    Invoice Bank Reconciliation

    Matches bank statement lines against open invoices and writes an
    Excel report of matches, suggestions and payments.

    Example:
        python -m reconciliation.main --bank releve.ofx --invoices factures.csv --output report.xlsx
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    click.echo("=" * 60)
    click.echo("  INVOICE BANK RECONCILIATION")
    click.echo("=" * 60)

    try:
        click.echo(f"\n  Parsing {len(bank)} bank statement(s)...")
        transactions = load_statements(Path(p) for p in bank)
        click.echo(f"   Found {len(transactions)} bank transactions")

        click.echo(f"\n  Loading invoices: {invoices}...")
        invoice_list, clients = InvoiceLoader().parse(Path(invoices))
        repository = InvoiceRepository(invoice_list, clients)
        click.echo(f"   Found {len(repository.find_open())} open invoices "
                   f"out of {len(repository)}")

        engine = MatchingEngine(
            prefilter_tolerance=prefilter_tolerance,
            max_candidates=max_candidates,
        )
        tracker = ReconciliationTracker(
            store=TransactionStore(),
            invoices=repository,
            engine=engine,
            materializer=PaymentMaterializer(policy=AllocationPolicy(allocation)),
        )
        tracker.load(transactions)

        if auto_match:
            click.echo("\n  Auto-matching...")
            matched = tracker.auto_match_all()
            click.echo(f"   Matched {len(matched)} transaction(s)")

            if confirm:
                left_for_review = 0
                for txn in matched:
                    # auto-match can link several lines to one invoice; the first confirmed pays it
                    due = [
                        invoice_id for invoice_id in txn.matched_payments
                        if _has_balance(repository, invoice_id)
                    ]
                    if not due:
                        logger.info("Transaction %s not confirmed: invoice(s) %s already settled",
                                    txn.id, ", ".join(txn.matched_payments))
                        left_for_review += 1
                        continue
                    tracker.confirm_match(txn.id, due)
                click.echo(f"   Recorded {len(tracker.payments)} payment(s)")
                if left_for_review:
                    click.echo(f"   {left_for_review} transaction(s) left for review: "
                               "invoice already settled in this run")

        candidates = {
            txn.id: tracker.get_candidates(txn.id)
            for txn in tracker.transactions()
            if not txn.is_reconciled
        }
        summary = tracker.summary()

        click.echo(f"\n  Generating report: {output}...")
        output_path = ExcelReportGenerator().generate(
            tracker.transactions(), summary, tracker.payments, output, candidates,
        )

        if csv_dir:
            export_transactions_csv(tracker.transactions(), Path(csv_dir) / "transactions.csv")
            export_payments_csv(tracker.payments, Path(csv_dir) / "payments.csv")
            click.echo(f"   CSV files written to {csv_dir}")

        click.echo("\n" + "=" * 60)
        click.echo("  RECONCILIATION SUMMARY")
        click.echo("=" * 60)
        click.echo(f"  Match Rate:           {summary.match_rate:.1f}%")
        click.echo(f"  Matched:              {summary.matched_transactions}")
        click.echo(f"  Unmatched:            {summary.unmatched_transactions}")
        click.echo(f"  Ignored:              {summary.ignored_transactions}")
        click.echo(f"  Matched Amount:       {summary.matched_amount:,.2f} MAD")
        click.echo(f"  Unmatched Amount:     {summary.unmatched_amount:,.2f} MAD")
        click.echo("=" * 60)
        click.echo(f"\n  Report saved to: {output_path.absolute()}")

    except FileNotFoundError as e:
        click.echo(f"\n  ERROR: {e}", err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(f"\n  ERROR: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logger.exception("Unexpected error during reconciliation")
        click.echo(f"\n  UNEXPECTED ERROR: {e}", err=True)
        sys.exit(2)


if __name__ == "__main__":
    main()
