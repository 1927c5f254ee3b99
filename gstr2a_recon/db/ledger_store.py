import json
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from gstr2a_recon.core.exceptions import LedgerSourceError, MalformedPayloadError, UnparsableDateError
from gstr2a_recon.core.period import TaxPeriod, parse_ledger_date
from gstr2a_recon.schemas.ledger import CashBookLine, PurchaseBill, PurchaseLedgerRecord

logger = logging.getLogger(__name__)

# Cash-book account code prefixes
TAXABLE_PREFIX = "GG"
CGST_SGST_PREFIX = "VG"
IGST_PREFIX = "VI"

CENTS = Decimal("0.01")


def _debit(line: CashBookLine) -> Decimal:
    try:
        return Decimal(line.debit or "0")
    except InvalidOperation:
        return Decimal("0")


def _in_period(raw: Optional[str], period: TaxPeriod) -> bool:
    if not raw:
        return False
    try:
        return period.contains(parse_ledger_date(raw))
    except UnparsableDateError:
        return False


def _read_json(path: Path) -> Any:
    try:
        with path.open(encoding="utf-8-sig") as handle:
            return json.load(handle)
    except FileNotFoundError as e:
        raise LedgerSourceError(
            "Purchase data files not found. Please check the DBF folder path.",
            details={"path": str(path)},
        ) from e
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedPayloadError(f"Malformed source data: cannot parse {path.name}") from e


def build_ledger(
    purchases: List[Dict[str, Any]],
    cash_lines: List[Dict[str, Any]],
    period: TaxPeriod,
) -> List[PurchaseLedgerRecord]:
    """
    Join purchase bills with the cash-book lines posted against the same bill
    number in the same period and total them:

      taxable value = DR of GG* accounts
      GST amount    = DR of VG* (CGST/SGST) and VI* (IGST) accounts

    Purchase bills are returned for every date; period filtering of bills is
    left to the reconciliation run.
    """
    if not isinstance(purchases, list) or not isinstance(cash_lines, list):
        raise MalformedPayloadError("Malformed source data: purchase and cash files must hold JSON arrays")

    try:
        bills = [PurchaseBill.model_validate(row) for row in purchases]
        lines = [CashBookLine.model_validate(row) for row in cash_lines]
    except ValidationError as e:
        raise MalformedPayloadError("Malformed source data: purchase ledger files") from e

    lines_by_bill: Dict[str, List[CashBookLine]] = {}
    for line in lines:
        if line.bill and _in_period(line.date, period):
            lines_by_bill.setdefault(line.bill, []).append(line)

    records: List[PurchaseLedgerRecord] = []
    for bill in bills:
        if not bill.bill_number:
            continue
        taxable = cgst_sgst = igst = Decimal("0")
        for line in lines_by_bill.get(bill.bill_number, []):
            code = line.account_code or ""
            if code.startswith(TAXABLE_PREFIX):
                taxable += _debit(line)
            elif code.startswith(CGST_SGST_PREFIX):
                cgst_sgst += _debit(line)
            elif code.startswith(IGST_PREFIX):
                igst += _debit(line)

        records.append(PurchaseLedgerRecord(
            bill_number=bill.bill_number,
            counterparty_tax_id=bill.counterparty_tax_id or "",
            bill_date=bill.bill_date or "",
            net_bill_amount=bill.net_bill_amount,
            total_taxable_value=taxable.quantize(CENTS, rounding=ROUND_HALF_UP),
            total_gst_amount=(cgst_sgst + igst).quantize(CENTS, rounding=ROUND_HALF_UP),
            cgst_sgst_amount=cgst_sgst.quantize(CENTS, rounding=ROUND_HALF_UP),
            igst_amount=igst.quantize(CENTS, rounding=ROUND_HALF_UP),
        ))
    return records


def load_purchase_ledger(folder: Optional[str], period: TaxPeriod) -> List[PurchaseLedgerRecord]:
    if not folder:
        raise LedgerSourceError("DBF_FOLDER_PATH is not configured.", status_code=500)

    json_dir = Path(folder) / "data" / "json"
    purchases = _read_json(json_dir / "pur.json")
    cash_lines = _read_json(json_dir / "CASH.json")

    records = build_ledger(purchases, cash_lines, period)
    logger.info(f"Loaded {len(records)} purchase records with GST details from {json_dir} for period {period}")
    return records
