from decimal import Decimal
from typing import Tuple

from gstr2a_recon.schemas.authority import AuthorityRecord


def aggregate_line_items(record: AuthorityRecord) -> Tuple[Decimal, Decimal]:
    """
    Per-invoice totals from the reported line items.
    Returns (taxable value, GST amount) where GST = IGST + CGST + SGST + cess.
    A record without line items totals to zero.
    """
    taxable = sum((item.itm_det.txval for item in record.line_items), Decimal("0"))
    gst = sum((item.itm_det.gst_amount for item in record.line_items), Decimal("0"))
    return taxable, gst
