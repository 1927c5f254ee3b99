import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from gstr2a_recon.core.matching import match_records
from gstr2a_recon.core.normalizer import normalize_authority
from gstr2a_recon.core.period import TaxPeriod, filter_ledger_for_period
from gstr2a_recon.schemas.authority import AuthorityFamily, B2BPayload, CDNPayload
from gstr2a_recon.schemas.ledger import PurchaseLedgerRecord
from gstr2a_recon.schemas.reconciliation import (
    DuplicatePolicy,
    ReconciliationReport,
    ReconciliationResult,
    ReconciliationStatus,
    ReconciliationSummary,
)

logger = logging.getLogger(__name__)

# AUTHORITATIVE RECONCILIATION ENGINE
# Pure function of its arguments: no fetching, no stored state.


def summarize(results: Sequence[ReconciliationResult]) -> ReconciliationSummary:
    counts = {status: 0 for status in ReconciliationStatus}
    for r in results:
        counts[r.status] += 1
    return ReconciliationSummary(
        total=len(results),
        matched=counts[ReconciliationStatus.MATCHED],
        mismatched=counts[ReconciliationStatus.MISMATCHED],
        missing_in_ledger=counts[ReconciliationStatus.MISSING_IN_LEDGER],
        missing_in_authority=counts[ReconciliationStatus.MISSING_IN_AUTHORITY],
    )


def reconcile(
    *,
    b2b: Optional[B2BPayload],
    cdn: Optional[CDNPayload],
    ledger: Iterable[PurchaseLedgerRecord],
    period: TaxPeriod,
    tolerance: Decimal = Decimal("2.00"),
    families: Iterable[AuthorityFamily] = (AuthorityFamily.B2B, AuthorityFamily.CDN),
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.FIRST,
) -> ReconciliationReport:
    """
    Reconcile GSTR-2A records against the purchase ledger for one tax period.

    Authority records are taken as reported for the period; only the ledger
    side is filtered by bill date. Every key in the union of both sides yields
    exactly one result, sorted by document number.
    """
    selected: List[AuthorityFamily] = sorted(set(families), key=lambda f: f.value)
    authority_records = normalize_authority(b2b, cdn, selected)
    ledger_records = filter_ledger_for_period(ledger, period)

    results = match_records(
        authority_records,
        ledger_records,
        tolerance=tolerance,
        policy=duplicate_policy,
    )
    summary = summarize(results)

    logger.info(
        f"Reconciliation COMPLETED for period {period}: authority={len(authority_records)} "
        f"ledger={len(ledger_records)} matched={summary.matched} mismatched={summary.mismatched} "
        f"missing_in_ledger={summary.missing_in_ledger} missing_in_authority={summary.missing_in_authority}"
    )

    return ReconciliationReport(
        period=period.label,
        tolerance=tolerance,
        families=[f.value for f in selected],
        authority_count=len(authority_records),
        ledger_count=len(ledger_records),
        results=tuple(results),
        summary=summary,
    )


def empty_message(period: TaxPeriod) -> str:
    return f"No data available for period {period}"
