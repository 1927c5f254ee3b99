from decimal import Decimal
from enum import Enum
from typing import List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from gstr2a_recon.schemas.reconciliation import ReconciliationKey


class AuthorityFamily(str, Enum):
    B2B = "B2B"
    CDN = "CDN"


class ItemDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    txval: Decimal = Decimal("0")
    rt: Decimal = Decimal("0")
    iamt: Decimal = Decimal("0")
    camt: Decimal = Decimal("0")
    samt: Decimal = Decimal("0")
    csamt: Decimal = Decimal("0")

    @property
    def gst_amount(self) -> Decimal:
        return self.iamt + self.camt + self.samt + self.csamt


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    num: int = 0
    itm_det: ItemDetail


class _AuthorityDocument(BaseModel):
    """
    Fields shared by invoices and credit/debit notes as reported in GSTR-2A.
    `ctin` is copied down from the supplier group during flattening.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    ctin: str
    val: Decimal = Decimal("0")
    itms: List[LineItem] = Field(default_factory=list)

    @property
    def counterparty_tax_id(self) -> str:
        return self.ctin

    @property
    def document_value(self) -> Decimal:
        return self.val

    @property
    def line_items(self) -> List[LineItem]:
        return self.itms

    def key(self) -> ReconciliationKey:
        return ReconciliationKey(self.document_number, self.counterparty_tax_id)


class B2BInvoice(_AuthorityDocument):
    family: Literal[AuthorityFamily.B2B] = AuthorityFamily.B2B
    inum: str
    idt: str

    @property
    def document_number(self) -> str:
        return self.inum

    @property
    def document_date(self) -> str:
        return self.idt


class CDNNote(_AuthorityDocument):
    family: Literal[AuthorityFamily.CDN] = AuthorityFamily.CDN
    nt_num: str
    nt_dt: str
    ntty: str = ""

    @property
    def document_number(self) -> str:
        return self.nt_num

    @property
    def document_date(self) -> str:
        return self.nt_dt


AuthorityRecord = Union[B2BInvoice, CDNNote]


# Raw payload shapes, as downloaded from the GST portal (one file per family).
# Documents inside a supplier group do not carry their own ctin.

class _RawInvoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    inum: str
    idt: str
    val: Decimal = Decimal("0")
    itms: List[LineItem] = Field(default_factory=list)


class _RawNote(BaseModel):
    model_config = ConfigDict(extra="ignore")

    nt_num: str
    nt_dt: str
    ntty: str = ""
    val: Decimal = Decimal("0")
    itms: List[LineItem] = Field(default_factory=list)


class B2BSupplier(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ctin: str
    inv: List[_RawInvoice] = Field(default_factory=list)


class CDNSupplier(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ctin: str
    nt: List[_RawNote] = Field(default_factory=list)


class B2BPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    b2b: List[B2BSupplier] = Field(default_factory=list)


class CDNPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    cdn: List[CDNSupplier] = Field(default_factory=list)
