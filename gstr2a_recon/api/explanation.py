from fastapi import APIRouter, Body
from gstr2a_recon.schemas.explanation import ExplainRequest, ExplainResponse
from gstr2a_recon.core.ai import generate_explanation

router = APIRouter()

@router.post("/explain-mismatch", response_model=ExplainResponse)
async def explain_mismatch(request: ExplainRequest = Body(...)):
    """
    Explain one reconciliation result in plain language.
    Read-only: the returned status is always the one that was sent in.
    """
    return generate_explanation(request)
