import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List

from gstr2a_recon.core.exceptions import InvalidPeriodError, UnparsableDateError
from gstr2a_recon.schemas.ledger import PurchaseLedgerRecord

logger = logging.getLogger(__name__)

MIN_YEAR = 2000
MAX_YEAR = 2099

# Fallbacks for ledger dates that are not ISO timestamps
LEDGER_DATE_FORMATS = ("%d/%m/%Y", "%d-%m-%Y", "%Y%m%d")


@dataclass(frozen=True)
class TaxPeriod:
    month: int
    year: int

    @classmethod
    def parse(cls, raw: str) -> "TaxPeriod":
        """Parse a GST return period in MMYYYY form, e.g. ``082025``."""
        raw = (raw or "").strip()
        if len(raw) != 6 or not raw.isdigit():
            raise InvalidPeriodError(details={"period": raw})
        month, year = int(raw[:2]), int(raw[2:])
        if not 1 <= month <= 12 or not MIN_YEAR <= year <= MAX_YEAR:
            raise InvalidPeriodError(details={"period": raw})
        return cls(month=month, year=year)

    @property
    def label(self) -> str:
        return f"{self.month:02d}{self.year:04d}"

    def contains(self, day: date) -> bool:
        return day.month == self.month and day.year == self.year

    def __str__(self) -> str:
        return self.label


def parse_ledger_date(raw: str) -> date:
    """
    Ledger dates are ISO timestamps such as ``2025-08-05T00:00:00.000Z``.
    The calendar date is taken as written; no timezone shift is applied.
    """
    if not raw or not raw.strip():
        raise UnparsableDateError(raw or "")
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    for pattern in LEDGER_DATE_FORMATS:
        try:
            return datetime.strptime(text, pattern).date()
        except ValueError:
            continue
    raise UnparsableDateError(raw)


def format_ledger_date(raw: str) -> str:
    """Render a ledger date as DD/MM/YYYY, or return it untouched when unparsable."""
    try:
        return parse_ledger_date(raw).strftime("%d/%m/%Y")
    except UnparsableDateError:
        return raw


def filter_ledger_for_period(
    records: Iterable[PurchaseLedgerRecord], period: TaxPeriod
) -> List[PurchaseLedgerRecord]:
    kept: List[PurchaseLedgerRecord] = []
    skipped = 0
    for record in records:
        try:
            bill_day = parse_ledger_date(record.bill_date)
        except UnparsableDateError:
            skipped += 1
            logger.warning(f"Skipping ledger bill {record.bill_number!r}: unparsable date {record.bill_date!r}")
            continue
        if period.contains(bill_day):
            kept.append(record)
    if skipped:
        logger.info(f"Period filter {period}: {skipped} ledger records excluded for bad dates")
    return kept
