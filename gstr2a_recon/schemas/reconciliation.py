from decimal import Decimal
from enum import Enum
from typing import Annotated, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

# Decimal in Python, plain number in JSON responses
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ReconciliationKey(NamedTuple):
    document_number: str
    counterparty_tax_id: str


class ReconciliationStatus(str, Enum):
    MATCHED = "Matched"
    MISMATCHED = "Mismatched"
    MISSING_IN_LEDGER = "Missing in Ledger"
    MISSING_IN_AUTHORITY = "Missing in Authority"


class PresentIn(str, Enum):
    AUTHORITY_ONLY = "AuthorityOnly"
    LEDGER_ONLY = "LedgerOnly"
    BOTH = "Both"


class DuplicatePolicy(str, Enum):
    FIRST = "first"
    LAST = "last"
    REJECT = "reject"


class ReconciliationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    document_number: str
    document_date: str
    counterparty_tax_id: str
    document_value: Optional[Amount] = None
    authority_taxable_value: Optional[Amount] = None
    ledger_taxable_value: Optional[Amount] = None
    authority_gst_amount: Optional[Amount] = None
    ledger_gst_amount: Optional[Amount] = None
    present_in: PresentIn
    status: ReconciliationStatus
    mismatch_reasons: Tuple[str, ...] = ()

    @property
    def key(self) -> ReconciliationKey:
        return ReconciliationKey(self.document_number, self.counterparty_tax_id)


class ReconciliationSummary(BaseModel):
    total: int = 0
    matched: int = 0
    mismatched: int = 0
    missing_in_ledger: int = 0
    missing_in_authority: int = 0


class ReconciliationReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    period: str
    tolerance: Amount
    families: List[str]
    authority_count: int = 0
    ledger_count: int = 0
    results: Tuple[ReconciliationResult, ...] = ()
    summary: ReconciliationSummary = Field(default_factory=ReconciliationSummary)

    @property
    def is_empty(self) -> bool:
        return not self.results
