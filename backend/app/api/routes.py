"""
API Routes — thin HTTP layer over the VerificationPipeline.

ENDPOINTS:
- POST /api/verify             → JSON text → VerificationResponse (standard mode)
- POST /api/analyze            → multipart (PDF and/or text) → agent analysis, always segmented
- GET  /api/quota/{account_id} → current daily quota

REFUSALS:
The pipeline returns a VerificationRefusal instead of raising. It is sent
back as the JSON body with:
- 400 invalid_input
- 429 limit_reached (body includes the quota snapshot)
- 404 account_not_found

Unexpected errors propagate to FastAPI's 500 handler.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from app.models.schemas import (
    QuotaSnapshot,
    RefusalReason,
    VerificationMode,
    VerificationRefusal,
    VerificationResponse,
    VerifyRequest,
)
from app.services.container import ServiceContainer
from app.services.errors import AccountNotFoundError, InvalidInputError
from app.services.pdf_extractor import extract_pdf_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

MAX_UPLOAD_BYTES = 15 * 1024 * 1024

REFUSAL_STATUS = {
    RefusalReason.INVALID_INPUT: 400,
    RefusalReason.LIMIT_REACHED: 429,
    RefusalReason.ACCOUNT_NOT_FOUND: 404,
}


def get_services(request: Request) -> ServiceContainer:
    """The container built in the lifespan."""
    return request.app.state.services


def _refusal_response(refusal: VerificationRefusal) -> JSONResponse:
    return JSONResponse(
        status_code=REFUSAL_STATUS[refusal.reason],
        content=refusal.model_dump(mode="json"),
    )


# =============================================================================
# VERIFICATION ENDPOINTS
# =============================================================================

@router.post("/verify", response_model=VerificationResponse)
async def verify(
    request: VerifyRequest,
    services: ServiceContainer = Depends(get_services),
):
    """
    Score the reliability of a piece of text.

    Example:
        POST /api/verify
        {"text": "France had 68 million inhabitants in 2023.", "account_id": 1, "lang": "en"}

        Returns VerificationResponse with score, summary, breakdown, sources
    """
    logger.info(f"Verify request: {len(request.text)} chars, account {request.account_id}")

    outcome = await services.pipeline.verify(
        request.text,
        request.account_id,
        lang=request.lang,
        mode=VerificationMode.STANDARD,
    )
    if isinstance(outcome, VerificationRefusal):
        return _refusal_response(outcome)
    return outcome


@router.post("/analyze", response_model=VerificationResponse)
async def analyze(
    account_id: int = Form(...),
    text: str = Form(""),
    lang: str = Form("en"),
    file: Optional[UploadFile] = File(None),
    services: ServiceContainer = Depends(get_services),
):
    """
    Deep agent analysis of a document (PDF upload) and/or text.

    Text and PDF text are combined (text first). Counts against the daily
    agent-analysis limit and is always segmented.
    """
    document_text = ""
    from_file = False

    if file is not None and file.filename:
        contents = await file.read(MAX_UPLOAD_BYTES + 1)
        if len(contents) > MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=413, detail="File too large (max 15 MB)")

        is_pdf = (file.content_type == "application/pdf") or file.filename.lower().endswith(".pdf")
        try:
            if is_pdf:
                document_text = await asyncio.to_thread(extract_pdf_text, contents)
            else:
                document_text = contents.decode("utf-8", errors="replace")
        except InvalidInputError as e:
            if not text.strip():
                return _refusal_response(
                    VerificationRefusal(reason=RefusalReason.INVALID_INPUT, message=str(e))
                )
            logger.warning(f"Ignoring unreadable upload '{file.filename}': {e}")
        from_file = bool(document_text.strip())

    combined = "\n\n".join(part.strip() for part in (text, document_text) if part and part.strip())
    logger.info(f"Analyze request: {len(combined)} chars (file={from_file}), account {account_id}")

    outcome = await services.pipeline.verify(
        combined,
        account_id,
        lang=lang,
        mode=VerificationMode.AGENT_ANALYSIS,
        from_file=from_file,
    )
    if isinstance(outcome, VerificationRefusal):
        return _refusal_response(outcome)
    return outcome


# =============================================================================
# QUOTA ENDPOINT
# =============================================================================

@router.get("/quota/{account_id}", response_model=QuotaSnapshot)
async def get_quota(
    account_id: int,
    services: ServiceContainer = Depends(get_services),
) -> QuotaSnapshot:
    """Current plan, limits, usage and remaining units for today (UTC)."""
    try:
        return await services.gatekeeper.snapshot(account_id)
    except AccountNotFoundError:
        raise HTTPException(status_code=404, detail=f"Account {account_id} not found")
