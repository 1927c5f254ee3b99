import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from gstr2a_recon.core.config import settings
from gstr2a_recon.core.exceptions import ReconciliationError
from gstr2a_recon.core.middleware import AuditMiddleware
from gstr2a_recon.api import explanation, health, reconciliation, reports

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)
app.add_middleware(AuditMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(reconciliation.router)
app.include_router(reports.router)
app.include_router(explanation.router)


@app.exception_handler(ReconciliationError)
async def reconciliation_error_handler(request: Request, exc: ReconciliationError):
    logger.warning(f"{exc.error_code} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error_code": exc.error_code, "details": exc.details}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
