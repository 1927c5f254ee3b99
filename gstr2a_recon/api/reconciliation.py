from fastapi import APIRouter, File, Form, Header, UploadFile
from typing import Any, List, Optional
import asyncio
import json
import logging
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from gstr2a_recon.api.reports import build_report_response
from gstr2a_recon.core.acquisition import acquire_sources
from gstr2a_recon.core.config import settings
from gstr2a_recon.core.exceptions import MalformedPayloadError, ReconciliationError
from gstr2a_recon.core.normalizer import parse_b2b_payload, parse_cdn_payload, parse_ledger_payload
from gstr2a_recon.core.period import TaxPeriod
from gstr2a_recon.core.reconciliation import reconcile
from gstr2a_recon.core.supplier_summary import summarize_by_supplier
from gstr2a_recon.db.ledger_store import load_purchase_ledger
from gstr2a_recon.db.memory import APP_STATE
from gstr2a_recon.schemas.authority import AuthorityFamily
from gstr2a_recon.schemas.reconciliation import DuplicatePolicy
from gstr2a_recon.schemas.report import ReportResponse, RunRequest

router = APIRouter()
logger = logging.getLogger(__name__)


def resolve_families(requested: Optional[List[AuthorityFamily]]) -> List[AuthorityFamily]:
    if requested is None:
        return [AuthorityFamily(f) for f in settings.DEFAULT_FAMILIES]
    if not requested:
        raise ReconciliationError("Please select at least one section (B2B or CDN)", error_code="NO_FAMILY")
    return list(dict.fromkeys(requested))


async def _run(
    tenant_id: str,
    period_raw: str,
    families: List[AuthorityFamily],
    tolerance: Optional[Decimal],
    b2b_raw: Any,
    cdn_raw: Any,
    ledger_raw: Any,
) -> ReportResponse:
    period = TaxPeriod.parse(period_raw)
    if tolerance is None:
        tolerance = settings.DEFAULT_TOLERANCE

    async def load_authority():
        b2b = parse_b2b_payload(b2b_raw) if AuthorityFamily.B2B in families else None
        cdn = parse_cdn_payload(cdn_raw) if AuthorityFamily.CDN in families else None
        return b2b, cdn

    async def load_ledger():
        if ledger_raw is not None:
            return parse_ledger_payload(ledger_raw)
        return await asyncio.to_thread(load_purchase_ledger, settings.DBF_FOLDER_PATH, period)

    sources = await acquire_sources(load_authority, load_ledger)

    report = reconcile(
        b2b=sources.b2b,
        cdn=sources.cdn,
        ledger=sources.ledger,
        period=period,
        tolerance=tolerance,
        families=families,
        duplicate_policy=DuplicatePolicy(settings.DUPLICATE_POLICY),
    )

    # Update authoritative central store
    APP_STATE[tenant_id] = {
        "report": report,
        "suppliers": summarize_by_supplier(report.results),
        "report_id": str(uuid.uuid4()),
        "timestamp": datetime.now().isoformat()
    }
    logger.info(f"Reconciliation stored for tenant: {tenant_id}. Period: {period}. Count: {report.summary.total}")

    return build_report_response(APP_STATE[tenant_id])


@router.post("/reconciliation/run", response_model=ReportResponse)
async def run_reconciliation(
    request: RunRequest,
    x_tenant_id: str = Header(..., alias="X-Tenant-ID")
):
    return await _run(
        x_tenant_id,
        request.period,
        resolve_families(request.families),
        request.tolerance,
        request.b2b,
        request.cdn,
        request.ledger,
    )


async def _read_json_upload(upload: Optional[UploadFile], label: str) -> Any:
    if upload is None:
        return None
    content = await upload.read()
    try:
        return json.loads(content.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedPayloadError(f"Malformed source data: {label} file is not valid JSON") from e


def _parse_families_field(raw: Optional[str]) -> Optional[List[AuthorityFamily]]:
    if raw is None:
        return None
    try:
        return [AuthorityFamily(part.strip().upper()) for part in raw.split(",") if part.strip()]
    except ValueError as e:
        raise ReconciliationError(f"Unknown section in '{raw}'", error_code="NO_FAMILY") from e


def _parse_tolerance_field(raw: Optional[str]) -> Optional[Decimal]:
    if raw is None or not raw.strip():
        return None
    try:
        value = Decimal(raw.strip())
    except InvalidOperation as e:
        raise ReconciliationError("Tolerance must be numeric", error_code="INVALID_TOLERANCE") from e
    if not value.is_finite():
        raise ReconciliationError("Tolerance must be a finite number", error_code="INVALID_TOLERANCE")
    if value < 0:
        raise ReconciliationError("Tolerance must not be negative", error_code="INVALID_TOLERANCE")
    return value


@router.post("/reconciliation/upload", response_model=ReportResponse)
async def upload_reconciliation(
    period: str = Form(...),
    families: Optional[str] = Form(None),
    tolerance: Optional[str] = Form(None),
    b2b_file: Optional[UploadFile] = File(None),
    cdn_file: Optional[UploadFile] = File(None),
    ledger_file: Optional[UploadFile] = File(None),
    x_tenant_id: str = Header(..., alias="X-Tenant-ID")
):
    """Same as /reconciliation/run with the saved GSTR-2A JSON downloads sent as files."""
    selected = resolve_families(_parse_families_field(families))
    return await _run(
        x_tenant_id,
        period,
        selected,
        _parse_tolerance_field(tolerance),
        await _read_json_upload(b2b_file, "B2B"),
        await _read_json_upload(cdn_file, "CDN"),
        await _read_json_upload(ledger_file, "ledger"),
    )
