from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response, JSONResponse
import hashlib
import json
from gstr2a_recon.core.audit import audit_repo
from gstr2a_recon.db.memory import APP_STATE
from gstr2a_recon.schemas.audit import AuditLogEntry, AuditStatus
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"
PUBLIC_PREFIXES = ("/health", "/docs", "/openapi.json", "/redoc")

# First matching fragment wins
ACTION_TYPES = (
    ("/reconciliation/upload", "UPLOAD"),
    ("/reconciliation/run", "RECONCILE"),
    ("/csv", "CSV_EXPORT"),
    ("/pdf", "PDF_EXPORT"),
    ("/reports", "REPORT"),
    ("explain", "EXPLAIN"),
    ("health", "HEALTH_CHECK"),
)


def action_type_for(endpoint: str) -> str:
    for fragment, action in ACTION_TYPES:
        if fragment in endpoint:
            return action
    return "UNKNOWN"


# Runs carry the period in the request body, not the query string
RUN_ACTIONS = ("UPLOAD", "RECONCILE")


def _period_from_json(body: bytes, content_type: str) -> Optional[str]:
    if not body or "application/json" not in content_type:
        return None
    try:
        data = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        # The endpoint itself rejects the payload
        return None
    if isinstance(data, dict) and isinstance(data.get("period"), str):
        return data["period"]
    return None


def _stored_period(tenant_id: str) -> Optional[str]:
    state = APP_STATE.get(tenant_id)
    if state and "report" in state:
        return state["report"].period
    return None


def _save(entry: AuditLogEntry):
    # Audit storage problems must never turn into a failed request
    try:
        audit_repo.save(entry)
    except Exception as e:
        logger.error(f"Audit Logging Failed: {e}")


class AuditMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        # 1. Capture Request Details
        endpoint = request.url.path
        method = request.method
        action_type = action_type_for(endpoint)
        period: Optional[str] = request.query_params.get("period")

        # 2. Strict Tenant ID Check
        tenant_id = request.headers.get(TENANT_HEADER)
        is_public = endpoint == "/" or endpoint.startswith(PUBLIC_PREFIXES)

        if not tenant_id and not is_public:
            _save(AuditLogEntry(
                endpoint=endpoint,
                method=method,
                action_type=action_type,
                tenant_id="MISSING",
                period=period,
                status=AuditStatus.FAILURE
            ))
            return JSONResponse(
                status_code=400,
                content={"detail": "Missing tenant identifier", "error_code": "MISSING_TENANT"}
            )

        if not tenant_id:
            tenant_id = "PUBLIC"

        # 3. Capture & Hash Input (always hashed, even when empty)
        request_body_bytes = await request.body()
        input_hash = hashlib.sha256(request_body_bytes).hexdigest()
        if period is None:
            period = _period_from_json(request_body_bytes, request.headers.get("content-type", ""))

        # 4. Process Request
        status = AuditStatus.FAILURE
        output_hash = None

        try:
            response = await call_next(request)
            if 200 <= response.status_code < 300:
                status = AuditStatus.SUCCESS
                if period is None and action_type in RUN_ACTIONS:
                    period = _stored_period(tenant_id)

            # 5. Capture & Hash Output
            response_body_bytes = b""
            async for chunk in response.body_iterator:
                response_body_bytes += chunk
            output_hash = hashlib.sha256(response_body_bytes).hexdigest()

            response = Response(
                content=response_body_bytes,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type
            )
        finally:
            # 6. Log Event
            _save(AuditLogEntry(
                endpoint=endpoint,
                method=method,
                action_type=action_type,
                tenant_id=tenant_id,
                period=period,
                input_hash=input_hash,
                output_hash=output_hash,
                status=status
            ))

        return response
