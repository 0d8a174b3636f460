"""Deals admin CRUD: /api/dealslist and /api/dealslist/{deal_id}."""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from dealslist.errors import ValidationError
from dealslist.repository import DealRepository

from ..auth import verify_admin_token
from ..responses import error_response

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/dealslist", dependencies=[Depends(verify_admin_token)])


def _repository(request: Request) -> DealRepository:
    return request.app.state.repository


@router.get("")
async def list_deals(
    request: Request,
    active: bool | None = None,
    deal_type: str | None = None,
):
    """All deals, optionally filtered by ?active= and ?deal_type=."""
    try:
        return await _repository(request).list_deals(active=active, deal_type=deal_type)
    except Exception as e:
        logger.error("deals.list_failed", error=str(e), error_type=type(e).__name__)
        return error_response(500, "Failed to fetch deals")


@router.post("", status_code=201)
async def create_deal(body: dict[str, Any], request: Request):
    """Create a deal; the stored item (with dealId, timestamps and ttl) is returned."""
    try:
        item = await _repository(request).create_deal(body)
    except ValidationError as e:
        return error_response(400, e.message)
    except Exception as e:
        logger.error("deals.create_failed", error=str(e), error_type=type(e).__name__)
        return error_response(500, "Failed to create deal")

    return JSONResponse(status_code=201, content=item)


@router.get("/{deal_id}")
async def get_deal(deal_id: str, request: Request):
    try:
        item = await _repository(request).get_deal(deal_id)
    except Exception as e:
        logger.error("deals.get_failed", deal_id=deal_id, error=str(e))
        return error_response(500, "Failed to fetch deal")

    if item is None:
        return error_response(404, "Deal not found")
    return item


@router.patch("/{deal_id}")
async def update_deal(deal_id: str, body: dict[str, Any], request: Request):
    """Merge the body into the stored deal and return the updated item."""
    try:
        item = await _repository(request).update_deal(deal_id, body)
    except ValidationError as e:
        return error_response(400, e.message)
    except Exception as e:
        logger.error("deals.update_failed", deal_id=deal_id, error=str(e))
        return error_response(500, "Failed to update deal")

    if item is None:
        return error_response(404, "Deal not found")
    return item


@router.delete("/{deal_id}", status_code=204)
async def delete_deal(deal_id: str, request: Request):
    try:
        deleted = await _repository(request).delete_deal(deal_id)
    except Exception as e:
        logger.error("deals.delete_failed", deal_id=deal_id, error=str(e))
        return error_response(500, "Failed to delete deal")

    if not deleted:
        return error_response(404, "Deal not found")
    return Response(status_code=204)
