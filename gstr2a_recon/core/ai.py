from openai import OpenAI, OpenAIError
import json
import logging
from gstr2a_recon.schemas.explanation import ExplainRequest, ExplainResponse
from gstr2a_recon.schemas.reconciliation import ReconciliationStatus
from gstr2a_recon.core.config import settings

logger = logging.getLogger(__name__)

_client = None

def get_client():
    """Created on first use, and only when an API key is configured."""
    global _client
    if _client is None and settings.OPENAI_API_KEY:
        try:
            _client = OpenAI(api_key=settings.OPENAI_API_KEY)
        except OpenAIError as e:
            logger.warning(f"OpenAI client could not be initialized: {e}")
    return _client

def set_client_for_testing(client):
    global _client
    _client = client

SYSTEM_PROMPT = """
You are a read-only reconciliation analyst for GST input tax credit.
You explain why a supplier document reported in GSTR-2A and the matching purchase bill
in the buyer's books disagree, based strictly on the provided data.

RULES:
1. DO NOT change the reconciliation status.
2. DO NOT perform new calculations or invent numbers.
3. DO NOT advise on tax filing compliance (legal advice).
4. Output valid JSON only.

OUTPUT FORMAT:
{
  "explanation": "Plain English explanation...",
  "root_cause": "Category (e.g., Data Entry Error, Timing Issue, Supplier Non-Filing)",
  "suggested_action": "Action (e.g., Contact Supplier, Correct Purchase Entry, Carry Forward)"
}
"""

# Used when no LLM is available
FALLBACK_BY_STATUS = {
    ReconciliationStatus.MATCHED: (
        "GSTR-2A and the purchase ledger agree within tolerance.",
        "None",
        "No action required.",
    ),
    ReconciliationStatus.MISSING_IN_LEDGER: (
        "The supplier reported this document but no purchase bill was found for the period.",
        "Missing Purchase Entry",
        "Check whether the bill was booked in another period or not booked at all.",
    ),
    ReconciliationStatus.MISSING_IN_AUTHORITY: (
        "The purchase bill is booked but the supplier has not reported it in GSTR-2A.",
        "Supplier Non-Filing",
        "Follow up with the supplier to file GSTR-1.",
    ),
}

def fallback_explanation(request: ExplainRequest) -> ExplainResponse:
    if request.status in FALLBACK_BY_STATUS:
        explanation, root_cause, action = FALLBACK_BY_STATUS[request.status]
    else:
        explanation = "; ".join(request.mismatch_reasons) or "Automated explanation unavailable. Please review manually."
        root_cause = "Value Difference"
        action = "Manual Review"
    return ExplainResponse(
        explanation=explanation,
        root_cause=root_cause,
        suggested_action=action,
        original_status=request.status
    )

def generate_explanation(request: ExplainRequest) -> ExplainResponse:
    fallback_response = fallback_explanation(request)

    client = get_client()
    if not client:
        return fallback_response

    user_content = f"""
    Status: {request.status.value}
    Document: {request.document_number} (Supplier GSTIN: {request.counterparty_tax_id})
    Differences: {json.dumps(request.mismatch_reasons)}
    Amounts: {request.model_dump_json(include={'authority_taxable_value', 'ledger_taxable_value', 'authority_gst_amount', 'ledger_gst_amount'})}

    Explain this situation.
    """

    try:
        response = client.chat.completions.create(
            model=settings.OPENAI_MODEL,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_content}
            ],
            temperature=0.0,
            response_format={"type": "json_object"}
        )

        data = json.loads(response.choices[0].message.content)

        # The status always comes from the engine, never from the model
        return ExplainResponse(
            explanation=data.get("explanation", fallback_response.explanation),
            root_cause=data.get("root_cause", "Unknown"),
            suggested_action=data.get("suggested_action", "Review"),
            original_status=request.status
        )

    except (OpenAIError, json.JSONDecodeError, AttributeError, IndexError, TypeError) as e:
        logger.error(f"AI Generation Failed: {e}")
        return fallback_response
