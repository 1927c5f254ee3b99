from fastapi import APIRouter, HTTPException, Header, Query
from fastapi.responses import StreamingResponse
from gstr2a_recon.db.memory import APP_STATE
from gstr2a_recon.core.export import export_filename, render_pdf, write_csv
from gstr2a_recon.core.reconciliation import empty_message
from gstr2a_recon.core.period import TaxPeriod
from gstr2a_recon.schemas.reconciliation import ReconciliationStatus
from gstr2a_recon.schemas.report import ReportAudit, ReportResponse
from typing import Any, Dict, Optional
import io
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


def build_report_response(state: Dict[str, Any], status_filter: Optional[ReconciliationStatus] = None) -> ReportResponse:
    report = state["report"]
    results = [r for r in report.results if status_filter is None or r.status == status_filter]
    return ReportResponse(
        message=empty_message(TaxPeriod.parse(report.period)) if report.is_empty else None,
        period=report.period,
        families=report.families,
        tolerance=report.tolerance,
        authority_count=report.authority_count,
        ledger_count=report.ledger_count,
        summary=report.summary,
        results=results,
        supplier_summary=state.get("suppliers", []),
        audit=ReportAudit(report_id=state["report_id"])
    )


def _stored_run(x_tenant_id: str) -> Dict[str, Any]:
    state = APP_STATE.get(x_tenant_id)
    if not state or "report" not in state:
        raise HTTPException(status_code=404, detail="No reconciliation results found for this session.")
    return state


@router.get("/reports/reconciliation", response_model=ReportResponse)
async def get_reconciliation_report(
    status: Optional[ReconciliationStatus] = Query(None),
    x_tenant_id: str = Header(..., alias="X-Tenant-ID")
):
    logger.info(f"JSON Report requested for tenant: {x_tenant_id}")
    return build_report_response(_stored_run(x_tenant_id), status)


@router.get("/reports/reconciliation/csv")
async def get_reconciliation_csv(x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    report = _stored_run(x_tenant_id)["report"]
    if report.is_empty:
        raise HTTPException(status_code=404, detail="No comparison data to save")

    content = write_csv(report.results).encode("utf-8")
    return StreamingResponse(
        io.BytesIO(content),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f"attachment; filename={export_filename(report.period)}",
            "Content-Length": str(len(content))
        }
    )


@router.get("/reports/reconciliation/pdf")
async def get_reconciliation_pdf(x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    logger.info(f"PDF Report Generation STARTED for tenant: {x_tenant_id}")
    report = _stored_run(x_tenant_id)["report"]

    try:
        pdf_bytes = render_pdf(report)
    except Exception as e:
        logger.error(f"PDF Build Failed: {str(e)}")
        raise HTTPException(status_code=500, detail="PDF generation failed during document build.")

    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename={export_filename(report.period, 'pdf')}",
            "Content-Length": str(len(pdf_bytes))
        }
    )
