from fastapi import APIRouter
from gstr2a_recon.core.config import settings

router = APIRouter()

@router.get("/health")
async def health():
    return {"status": "ok", "service": settings.PROJECT_NAME}
