from decimal import Decimal
from typing import Any, Dict, Iterable, List

from gstr2a_recon.schemas.reconciliation import ReconciliationResult, ReconciliationStatus
from gstr2a_recon.schemas.supplier import SupplierRiskLevel, SupplierSummary

RISK_ORDER = {SupplierRiskLevel.HIGH: 0, SupplierRiskLevel.MEDIUM: 1, SupplierRiskLevel.LOW: 2}


def summarize_by_supplier(results: Iterable[ReconciliationResult]) -> List[SupplierSummary]:
    """
    Groups finished reconciliation results by supplier GSTIN.
    DOES NOT perform any new reconciliation logic.
    """
    supplier_map: Dict[str, Dict[str, Any]] = {}

    for r in results:
        data = supplier_map.setdefault(r.counterparty_tax_id, {
            "total_documents": 0,
            "counts": {status: 0 for status in ReconciliationStatus},
            "authority_gst_amount": Decimal("0"),
            "ledger_gst_amount": Decimal("0"),
            "unreported_itc_amount": Decimal("0"),
        })
        data["total_documents"] += 1
        data["counts"][r.status] += 1
        if r.authority_gst_amount is not None:
            data["authority_gst_amount"] += r.authority_gst_amount
        if r.ledger_gst_amount is not None:
            data["ledger_gst_amount"] += r.ledger_gst_amount
            if r.status == ReconciliationStatus.MISSING_IN_AUTHORITY:
                data["unreported_itc_amount"] += r.ledger_gst_amount

    summaries = []
    for gstin, data in supplier_map.items():
        counts = data["counts"]
        if counts[ReconciliationStatus.MISSING_IN_AUTHORITY] > 0:
            risk_level = SupplierRiskLevel.HIGH
        elif counts[ReconciliationStatus.MATCHED] < data["total_documents"]:
            risk_level = SupplierRiskLevel.MEDIUM
        else:
            risk_level = SupplierRiskLevel.LOW

        summaries.append(SupplierSummary(
            counterparty_tax_id=gstin,
            total_documents=data["total_documents"],
            matched_count=counts[ReconciliationStatus.MATCHED],
            mismatched_count=counts[ReconciliationStatus.MISMATCHED],
            missing_in_ledger_count=counts[ReconciliationStatus.MISSING_IN_LEDGER],
            missing_in_authority_count=counts[ReconciliationStatus.MISSING_IN_AUTHORITY],
            authority_gst_amount=data["authority_gst_amount"],
            ledger_gst_amount=data["ledger_gst_amount"],
            unreported_itc_amount=data["unreported_itc_amount"],
            risk_level=risk_level
        ))

    return sorted(summaries, key=lambda s: (RISK_ORDER[s.risk_level], -s.unreported_itc_amount, s.counterparty_tax_id))
