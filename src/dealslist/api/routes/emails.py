"""Mail import endpoints: fetch, parse, model-extract and save deals."""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from dealslist.models.deal import Deal
from dealslist.models.email import EmailContent, ParsedEmail
from dealslist.pipeline.pipeline import DealImportPipeline

from ..auth import verify_admin_token
from ..responses import error_response, invalid_payload

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", dependencies=[Depends(verify_admin_token)])


class ParseEmailsRequest(BaseModel):
    emails: list[EmailContent]


class GptParseEmailsRequest(BaseModel):
    parsed: list[ParsedEmail]


class SaveDealsRequest(BaseModel):
    deals: list[Deal]


def _pipeline(request: Request) -> DealImportPipeline:
    return request.app.state.pipeline


@router.get("/fetch-emails")
async def fetch_emails(request: Request):
    """Unread inbox mail as [{id, content}]; fetched messages are marked read."""
    pipeline = _pipeline(request)
    if pipeline.poller is None:
        return error_response(503, "Gmail is not configured")

    try:
        emails = await pipeline.poll_inbox()
    except Exception as e:
        logger.error("fetch_emails.failed", error=str(e), error_type=type(e).__name__)
        return error_response(500, str(e) or "Failed to fetch emails")

    return [email.model_dump() for email in emails]


@router.post("/parse-emails")
async def parse_emails(body: dict[str, Any], request: Request):
    """Body {emails: [{id, content}]} → [{id, parsed}] of sanitized text."""
    try:
        payload = ParseEmailsRequest.model_validate(body)
    except PydanticValidationError:
        return invalid_payload()

    try:
        parsed = _pipeline(request).parse_emails(payload.emails)
    except Exception as e:
        logger.error("parse_emails.failed", error=str(e), error_type=type(e).__name__)
        return error_response(500, str(e) or "Failed to parse emails")

    return [p.model_dump() for p in parsed]


@router.post("/gpt-parse-emails")
async def gpt_parse_emails(body: dict[str, Any], request: Request):
    """Body {parsed: [{id, parsed}]} → deduplicated deals extracted by the model."""
    try:
        payload = GptParseEmailsRequest.model_validate(body)
    except PydanticValidationError:
        return invalid_payload()

    try:
        result = await _pipeline(request).extract_deals(payload.parsed)
    except Exception as e:
        logger.error("gpt_parse_emails.failed", error=str(e), error_type=type(e).__name__)
        return error_response(500, str(e) or "Failed to process emails")

    return [deal.to_dict() for deal in result.deals]


@router.post("/save-deals")
async def save_deals(body: dict[str, Any], request: Request):
    """Body {deals: Deal[]} → {message, savedCount, skippedCount, errorCount, errors?}."""
    try:
        payload = SaveDealsRequest.model_validate(body)
    except PydanticValidationError:
        return invalid_payload()

    try:
        result = await _pipeline(request).save_deals(payload.deals)
    except Exception as e:
        logger.error("save_deals.failed", error=str(e), error_type=type(e).__name__)
        return error_response(500, str(e) or "Failed to save deals")

    return result.to_dict()
