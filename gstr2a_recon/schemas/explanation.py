from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional
from gstr2a_recon.schemas.reconciliation import ReconciliationStatus

class ExplainRequest(BaseModel):
    document_number: str
    counterparty_tax_id: str
    status: ReconciliationStatus
    mismatch_reasons: List[str] = Field(default_factory=list)
    authority_taxable_value: Optional[Decimal] = None
    ledger_taxable_value: Optional[Decimal] = None
    authority_gst_amount: Optional[Decimal] = None
    ledger_gst_amount: Optional[Decimal] = None

class ExplainResponse(BaseModel):
    explanation: str
    root_cause: str
    suggested_action: str
    original_status: ReconciliationStatus
