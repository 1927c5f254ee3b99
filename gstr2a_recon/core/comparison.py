from decimal import Decimal
from typing import List

from gstr2a_recon.core.aggregation import aggregate_line_items
from gstr2a_recon.core.period import format_ledger_date
from gstr2a_recon.schemas.authority import AuthorityRecord
from gstr2a_recon.schemas.ledger import PurchaseLedgerRecord
from gstr2a_recon.schemas.reconciliation import PresentIn, ReconciliationResult, ReconciliationStatus


def normalize_authority_date(raw: str) -> str:
    # GSTR-2A sends DD-MM-YYYY; the ledger side is rendered DD/MM/YYYY
    return raw.replace("-", "/")


def compare_pair(
    authority: AuthorityRecord,
    ledger: PurchaseLedgerRecord,
    tolerance: Decimal,
) -> ReconciliationResult:
    """
    Classify a key present on both sides as Matched or Mismatched.

    Checks, in reason order: document date, GST amount, taxable value.
    Amounts match while the absolute difference is <= tolerance.
    Invoice value is not compared against the ledger's net bill amount.
    """
    reasons: List[str] = []

    authority_date = authority.document_date
    ledger_date = format_ledger_date(ledger.bill_date)
    if normalize_authority_date(authority_date) != ledger_date:
        reasons.append(f"Date mismatch: Authority({authority_date}) vs Ledger({ledger_date})")

    authority_taxable, authority_gst = aggregate_line_items(authority)
    ledger_taxable = ledger.total_taxable_value
    ledger_gst = ledger.total_gst_amount

    if abs(authority_gst - ledger_gst) > tolerance:
        reasons.append(f"GST Amount mismatch: Authority({authority_gst:.2f}) vs Ledger({ledger_gst:.2f})")

    if abs(authority_taxable - ledger_taxable) > tolerance:
        reasons.append(f"Taxable Value mismatch: Authority({authority_taxable:.2f}) vs Ledger({ledger_taxable:.2f})")

    return ReconciliationResult(
        document_number=authority.document_number,
        document_date=authority_date,
        counterparty_tax_id=authority.counterparty_tax_id,
        document_value=authority.document_value,
        authority_taxable_value=authority_taxable,
        ledger_taxable_value=ledger_taxable,
        authority_gst_amount=authority_gst,
        ledger_gst_amount=ledger_gst,
        present_in=PresentIn.BOTH,
        status=ReconciliationStatus.MISMATCHED if reasons else ReconciliationStatus.MATCHED,
        mismatch_reasons=tuple(reasons),
    )
