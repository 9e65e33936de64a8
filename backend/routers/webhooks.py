"""
Provider Webhook Router

Receives engagement events pushed by the delivery provider.

Endpoints:
- POST /webhooks/open - Open tracking event
- POST /webhooks/click - Link click event

A payload without EventID is stored on every delivery, so provider
redeliveries are counted again. Payloads with an EventID already stored
are acknowledged with duplicate=true and not stored.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.schemas import OpenWebhookPayload, ClickWebhookPayload, WebhookResponse
from services.tracking import TrackingService, TrackingResult
from utils.errors import CampaignMailError, error_body

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def _response(result: TrackingResult) -> WebhookResponse:
    if result.duplicate:
        return WebhookResponse(success=True, duplicate=True)
    return WebhookResponse(success=True)


@router.post("/open", response_model=WebhookResponse, response_model_exclude_none=True)
async def on_open_event(payload: OpenWebhookPayload, db: AsyncSession = Depends(get_db)):
    try:
        result = await TrackingService(db).record_open(
            message_id=payload.message_id,
            received_at=payload.received_at,
            user_agent=payload.user_agent,
            ip_address=payload.ip,
            recipient=payload.recipient,
            provider_event_id=payload.event_id,
        )
    except CampaignMailError as e:
        logger.error(f"Error recording email open: {e.details}")
        return JSONResponse(status_code=500, content=error_body("Failed to record email open", e))
    return _response(result)


@router.post("/click", response_model=WebhookResponse, response_model_exclude_none=True)
async def on_click_event(payload: ClickWebhookPayload, db: AsyncSession = Depends(get_db)):
    try:
        result = await TrackingService(db).record_click(
            message_id=payload.message_id,
            received_at=payload.received_at,
            user_agent=payload.user_agent,
            ip_address=payload.ip,
            original_link=payload.original_link,
            recipient=payload.recipient,
            provider_event_id=payload.event_id,
        )
    except CampaignMailError as e:
        logger.error(f"Error recording email click: {e.details}")
        return JSONResponse(status_code=500, content=error_body("Failed to record email click", e))
    return _response(result)
