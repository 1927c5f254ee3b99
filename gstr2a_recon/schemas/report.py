from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Any, List, Optional
from datetime import datetime, timezone
from gstr2a_recon.schemas.authority import AuthorityFamily
from gstr2a_recon.schemas.reconciliation import Amount, ReconciliationResult, ReconciliationSummary
from gstr2a_recon.schemas.supplier import SupplierSummary

class RunRequest(BaseModel):
    period: str = Field(..., description="Tax period in MMYYYY form, e.g. 082025")
    families: Optional[List[AuthorityFamily]] = None
    tolerance: Optional[Decimal] = Field(None, ge=0)
    # Raw payloads are validated by the normalizer so shape errors surface as MALFORMED_PAYLOAD
    b2b: Optional[Any] = None
    cdn: Optional[Any] = None
    ledger: Optional[Any] = Field(None, description="Purchase bills; loaded from DBF_FOLDER_PATH when omitted")

class ReportAudit(BaseModel):
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    report_id: str
    data_sources: List[str] = ["GSTR2A", "Purchase_Ledger"]

class ReportResponse(BaseModel):
    status: str = "success"
    message: Optional[str] = None
    period: str
    families: List[str]
    tolerance: Amount
    authority_count: int = 0
    ledger_count: int = 0
    summary: ReconciliationSummary
    results: List[ReconciliationResult] = []
    supplier_summary: List[SupplierSummary] = []
    audit: ReportAudit
