"""
Email Router

Endpoints:
- POST /send-email - Send a template to one recipient
- GET /sent-emails - Send log with template names
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from email_integration import EmailClient, EmailSender
from models.schemas import SendEmailRequest, SendEmailResponse, SentEmailLogRow
from services.analytics import AnalyticsService
from utils.errors import CampaignMailError, error_body

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Email"])


def get_email_client(request: Request) -> EmailClient:
    """Dependency returning the provider client built at startup."""
    client = getattr(request.app.state, "email_client", None)
    if client is None:
        raise RuntimeError("Email client has not been initialised")
    return client


@router.post("/send-email", response_model=SendEmailResponse)
async def send_email(
    request: SendEmailRequest,
    client: EmailClient = Depends(get_email_client),
    db: AsyncSession = Depends(get_db)
):
    """
    Send a stored template to a recipient with open and click tracking.

    Every failure is reported as 500 with the error type, including an
    unknown template id.
    """
    sender = EmailSender(client=client, db=db)
    try:
        sent_email = await sender.send_template_email(request.template_id, request.to_email)
    except CampaignMailError as e:
        logger.error(f"Failed to send email: {type(e).__name__}: {e.details}")
        return JSONResponse(
            status_code=500,
            content=error_body("Failed to send email", e, include_type=True),
        )

    return SendEmailResponse(
        success=True,
        message="Email sent successfully",
        emailId=sent_email.id,
    )


@router.get("/sent-emails", response_model=List[SentEmailLogRow])
async def list_sent_emails(db: AsyncSession = Depends(get_db)):
    """Every sent email with its template name, newest first."""
    try:
        return await AnalyticsService(db).sent_emails()
    except SQLAlchemyError as e:
        logger.error(f"Error in /sent-emails: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch sent emails", "details": str(e)},
        )
