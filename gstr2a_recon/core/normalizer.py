import logging
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from gstr2a_recon.core.exceptions import MalformedPayloadError
from gstr2a_recon.schemas.authority import (
    AuthorityFamily,
    AuthorityRecord,
    B2BInvoice,
    B2BPayload,
    CDNNote,
    CDNPayload,
)
from gstr2a_recon.schemas.ledger import PurchaseLedgerRecord

logger = logging.getLogger(__name__)


def _validation_details(exc: ValidationError) -> dict:
    return {
        "errors": [
            {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
            for err in exc.errors()[:10]
        ]
    }


def parse_b2b_payload(raw: Any) -> B2BPayload:
    if raw is None:
        return B2BPayload()
    try:
        return B2BPayload.model_validate(raw)
    except ValidationError as e:
        raise MalformedPayloadError("Malformed source data: B2B payload", details=_validation_details(e)) from e


def parse_cdn_payload(raw: Any) -> CDNPayload:
    if raw is None:
        return CDNPayload()
    try:
        return CDNPayload.model_validate(raw)
    except ValidationError as e:
        raise MalformedPayloadError("Malformed source data: CDN payload", details=_validation_details(e)) from e


def parse_ledger_payload(raw: Any) -> List[PurchaseLedgerRecord]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise MalformedPayloadError("Malformed source data: ledger payload must be a list of purchase bills")
    records: List[PurchaseLedgerRecord] = []
    for index, row in enumerate(raw):
        try:
            records.append(PurchaseLedgerRecord.model_validate(row))
        except ValidationError as e:
            raise MalformedPayloadError(
                f"Malformed source data: ledger row {index}", details=_validation_details(e)
            ) from e
    return records


def flatten_b2b(payload: B2BPayload) -> List[B2BInvoice]:
    """Each supplier group holds an `inv` list; copy the group's ctin onto every invoice."""
    return [
        B2BInvoice(ctin=supplier.ctin, inum=inv.inum, idt=inv.idt, val=inv.val, itms=inv.itms)
        for supplier in payload.b2b
        for inv in supplier.inv
    ]


def flatten_cdn(payload: CDNPayload) -> List[CDNNote]:
    """Same as `flatten_b2b` for the `nt` lists of credit/debit notes."""
    return [
        CDNNote(ctin=supplier.ctin, nt_num=note.nt_num, nt_dt=note.nt_dt, ntty=note.ntty, val=note.val, itms=note.itms)
        for supplier in payload.cdn
        for note in supplier.nt
    ]


def normalize_authority(
    b2b: Optional[B2BPayload],
    cdn: Optional[CDNPayload],
    families: Iterable[AuthorityFamily],
) -> List[AuthorityRecord]:
    """Combine the selected families into one flat, family-agnostic sequence (B2B first)."""
    selected = set(families)
    records: List[AuthorityRecord] = []
    if AuthorityFamily.B2B in selected and b2b is not None:
        records.extend(flatten_b2b(b2b))
    if AuthorityFamily.CDN in selected and cdn is not None:
        records.extend(flatten_cdn(cdn))
    logger.debug(f"Normalized {len(records)} authority records for families {sorted(f.value for f in selected)}")
    return records
