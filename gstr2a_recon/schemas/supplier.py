from enum import Enum

from pydantic import BaseModel

from gstr2a_recon.schemas.reconciliation import Amount


class SupplierRiskLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class SupplierSummary(BaseModel):
    counterparty_tax_id: str
    total_documents: int
    matched_count: int
    mismatched_count: int
    missing_in_ledger_count: int
    missing_in_authority_count: int
    authority_gst_amount: Amount
    ledger_gst_amount: Amount
    # Ledger GST with no GSTR-2A counterpart: credit that cannot be claimed yet
    unreported_itc_amount: Amount
    risk_level: SupplierRiskLevel
