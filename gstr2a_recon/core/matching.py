import logging
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, TypeVar

from gstr2a_recon.core.aggregation import aggregate_line_items
from gstr2a_recon.core.comparison import compare_pair
from gstr2a_recon.core.exceptions import DuplicateRecordError
from gstr2a_recon.core.period import format_ledger_date
from gstr2a_recon.schemas.authority import AuthorityRecord
from gstr2a_recon.schemas.ledger import PurchaseLedgerRecord
from gstr2a_recon.schemas.reconciliation import (
    DuplicatePolicy,
    PresentIn,
    ReconciliationKey,
    ReconciliationResult,
    ReconciliationStatus,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_index(
    records: Iterable[T],
    key: Callable[[T], ReconciliationKey],
    policy: DuplicatePolicy = DuplicatePolicy.FIRST,
    side: str = "records",
) -> Dict[ReconciliationKey, T]:
    index: Dict[ReconciliationKey, T] = {}
    for record in records:
        k = key(record)
        if k in index:
            if policy == DuplicatePolicy.REJECT:
                raise DuplicateRecordError(
                    f"Duplicate {side} key: {k.document_number} / {k.counterparty_tax_id}",
                    details={"document_number": k.document_number, "counterparty_tax_id": k.counterparty_tax_id},
                )
            logger.warning(f"Duplicate {side} key {tuple(k)}; keeping the {policy.value} record")
            if policy == DuplicatePolicy.FIRST:
                continue
        index[k] = record
    return index


def _authority_only(record: AuthorityRecord) -> ReconciliationResult:
    taxable, gst = aggregate_line_items(record)
    return ReconciliationResult(
        document_number=record.document_number,
        document_date=record.document_date,
        counterparty_tax_id=record.counterparty_tax_id,
        document_value=record.document_value,
        authority_taxable_value=taxable,
        authority_gst_amount=gst,
        present_in=PresentIn.AUTHORITY_ONLY,
        status=ReconciliationStatus.MISSING_IN_LEDGER,
    )


def _ledger_only(record: PurchaseLedgerRecord) -> ReconciliationResult:
    return ReconciliationResult(
        document_number=record.bill_number,
        document_date=format_ledger_date(record.bill_date),
        counterparty_tax_id=record.counterparty_tax_id,
        document_value=record.net_bill_amount,
        ledger_taxable_value=record.total_taxable_value,
        ledger_gst_amount=record.total_gst_amount,
        present_in=PresentIn.LEDGER_ONLY,
        status=ReconciliationStatus.MISSING_IN_AUTHORITY,
    )


def sort_results(results: Iterable[ReconciliationResult]) -> List[ReconciliationResult]:
    return sorted(results, key=lambda r: (r.document_number, r.counterparty_tax_id))


def match_records(
    authority: Iterable[AuthorityRecord],
    ledger: Iterable[PurchaseLedgerRecord],
    *,
    tolerance: Decimal,
    policy: DuplicatePolicy = DuplicatePolicy.FIRST,
) -> List[ReconciliationResult]:
    authority_index = build_index(authority, lambda r: r.key(), policy, side="authority")
    ledger_index = build_index(ledger, lambda r: r.key(), policy, side="ledger")

    results: List[ReconciliationResult] = []
    for k in set(authority_index) | set(ledger_index):
        authority_record = authority_index.get(k)
        ledger_record = ledger_index.get(k)
        if authority_record is not None and ledger_record is not None:
            results.append(compare_pair(authority_record, ledger_record, tolerance))
        elif authority_record is not None:
            results.append(_authority_only(authority_record))
        else:
            results.append(_ledger_only(ledger_record))

    return sort_results(results)
