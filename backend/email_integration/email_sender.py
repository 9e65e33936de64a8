"""
Email Sender - Template Send Pipeline

Sends a stored template to one recipient and records the send:
1. Provider credentials must be configured
2. The template must exist
3. The provider must accept the message
4. The sent_emails row (with the provider message id) is committed
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import TemplateDB, SentEmailDB, SentEmailStatus
from utils.errors import ConfigurationError, DatabaseError, NotFoundError, SendFailure

from .email_client import EmailClient, EmailMessage

logger = logging.getLogger(__name__)


class EmailSender:
    """
    High-level service for sending template emails.

    The provider call happens before the database transaction, so a crash
    between the two leaves a delivered message without a local record.
    """

    def __init__(self, client: EmailClient, db: AsyncSession):
        self.client = client
        self.db = db

    async def send_template_email(self, template_id: int, to_email: str) -> SentEmailDB:
        """
        Send a template to a recipient.

        Raises:
            ConfigurationError: provider key or sender address missing
            NotFoundError: template does not exist
            SendFailure: provider rejected the message or was unreachable
            DatabaseError: the send could not be recorded
        """
        logger.info(f"Received request to send email: template={template_id} to={to_email}")

        missing = self.client.missing_configuration()
        if missing:
            raise ConfigurationError(f"{missing} is not configured")

        template = await self._get_template(template_id)

        result = await self.client.send_email(EmailMessage(
            to=to_email,
            subject=template.subject,
            html_body=template.html_content,
        ))
        if not result.success:
            raise SendFailure(
                result.error or "Provider rejected the message",
                provider=self.client.provider.value,
                status_code=result.status_code,
            )

        return await self._record_send(template_id, to_email, result.provider_message_id)

    async def _get_template(self, template_id: int) -> TemplateDB:
        try:
            template = await self.db.scalar(
                select(TemplateDB).where(TemplateDB.id == template_id)
            )
            # End the read so no transaction is held across the provider call
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError("Failed to load template", details=str(e)) from e

        if template is None:
            raise NotFoundError("Template", template_id)
        return template

    async def _record_send(
        self,
        template_id: int,
        to_email: str,
        provider_message_id: Optional[str]
    ) -> SentEmailDB:
        sent_email = SentEmailDB(
            template_id=template_id,
            recipient=to_email,
            status=SentEmailStatus.SENT.value,
            message_id=provider_message_id,
        )
        try:
            self.db.add(sent_email)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Email {provider_message_id} was delivered but could not be recorded: {e}"
            )
            raise DatabaseError("Failed to record sent email", details=str(e)) from e

        await self.db.refresh(sent_email)
        logger.info(f"Email sent and recorded successfully: id={sent_email.id}")
        return sent_email
