from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gstr2a_recon.schemas.reconciliation import ReconciliationKey


class PurchaseLedgerRecord(BaseModel):
    """
    One purchase bill from the organisation's own books.
    Totals are pre-aggregated from the cash-book lines sharing the bill number.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    bill_number: str = Field(..., alias="PBILL")
    counterparty_tax_id: str = Field("", alias="C_CST")
    bill_date: str = Field("", alias="PBILLDATE")
    net_bill_amount: Optional[Decimal] = Field(None, alias="N_B_AMT")
    total_taxable_value: Decimal = Field(Decimal("0"), alias="TOTAL_TAXABLE_VALUE")
    total_gst_amount: Decimal = Field(Decimal("0"), alias="TOTAL_GST_AMOUNT")
    cgst_sgst_amount: Optional[Decimal] = Field(None, alias="CGST_SGST_AMOUNT")
    igst_amount: Optional[Decimal] = Field(None, alias="IGST_AMOUNT")

    @field_validator('bill_number', 'counterparty_tax_id', 'bill_date', mode='before')
    @classmethod
    def coerce_text(cls, v):
        if v is None:
            return ""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator('net_bill_amount', mode='before')
    @classmethod
    def blank_as_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('total_taxable_value', 'total_gst_amount', mode='before')
    @classmethod
    def none_as_zero(cls, v):
        # DBF exports write blank numeric columns as null
        if v is None or (isinstance(v, str) and not v.strip()):
            return 0
        return v

    def key(self) -> ReconciliationKey:
        return ReconciliationKey(self.bill_number, self.counterparty_tax_id)


class CashBookLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    bill: Optional[str] = Field(None, alias="BILL")
    date: Optional[str] = Field(None, alias="DATE")
    account_code: Optional[str] = Field(None, alias="C_CODE")
    debit: Optional[str] = Field(None, alias="DR")

    @field_validator('bill', 'date', 'account_code', 'debit', mode='before')
    @classmethod
    def coerce_to_str(cls, v):
        if v is None:
            return None
        return str(v)


class PurchaseBill(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    bill_number: Optional[str] = Field(None, alias="PBILL")
    bill_date: Optional[str] = Field(None, alias="PBILLDATE")
    counterparty_tax_id: Optional[str] = Field(None, alias="C_CST")
    net_bill_amount: Optional[Decimal] = Field(None, alias="N_B_AMT")

    @field_validator('bill_number', 'bill_date', 'counterparty_tax_id', mode='before')
    @classmethod
    def coerce_to_str(cls, v):
        if v is None:
            return None
        return str(v)

    @field_validator('net_bill_amount', mode='before')
    @classmethod
    def blank_as_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


LedgerPayload = List[PurchaseLedgerRecord]
