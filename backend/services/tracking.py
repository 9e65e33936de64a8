"""
Engagement Tracking Service

Records open and click events pushed by the delivery provider.

Events are correlated to a sent email through the provider message id
stored at send time. Each stored event bumps the matching counter on
sent_emails in the same transaction, so sent_emails.opens / clicks always
equal the number of detail rows.

Events that carry a provider event id are stored at most once; events
without one are appended on every delivery.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Type, Union

from sqlalchemy import select, update, case, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import SentEmailDB, EmailOpenDB, EmailClickDB, utc_now
from utils.errors import DatabaseError, NotFoundError

logger = logging.getLogger(__name__)

# Providers send anywhere from one to seven fractional digits (e.g. .9070259Z)
_FRACTION_RE = re.compile(r"\.(\d+)")


def _six_digit_fraction(match: re.Match) -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def parse_provider_timestamp(value: Union[str, datetime, None]) -> datetime:
    """
    Parse a provider timestamp into an aware UTC datetime.

    Missing or unparseable values fall back to the current time.
    """
    if value is None or value == "":
        return utc_now()
    if isinstance(value, datetime):
        parsed = value
    else:
        text = _FRACTION_RE.sub(_six_digit_fraction, value.strip())
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.warning(f"Unparseable provider timestamp {value!r}, using current time")
            return utc_now()

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class TrackingResult:
    """Outcome of recording one provider event."""
    email_id: Optional[int]
    event_id: Optional[int] = None
    duplicate: bool = False


class TrackingService:
    """Stores provider engagement events."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record_open(
        self,
        message_id: str,
        received_at: Union[str, datetime, None] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
        recipient: Optional[str] = None,
        provider_event_id: Optional[str] = None,
    ) -> TrackingResult:
        logger.info(f"Email opened: message_id={message_id} recipient={recipient}")
        occurred_at = parse_provider_timestamp(received_at)
        return await self._record(
            EmailOpenDB,
            message_id,
            provider_event_id,
            occurred_at,
            dict(
                opened_at=occurred_at,
                user_agent=user_agent,
                ip_address=ip_address,
                provider_event_id=provider_event_id,
            ),
        )

    async def record_click(
        self,
        message_id: str,
        received_at: Union[str, datetime, None] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
        original_link: Optional[str] = None,
        recipient: Optional[str] = None,
        provider_event_id: Optional[str] = None,
    ) -> TrackingResult:
        logger.info(
            f"Email link clicked: message_id={message_id} recipient={recipient} link={original_link}"
        )
        occurred_at = parse_provider_timestamp(received_at)
        return await self._record(
            EmailClickDB,
            message_id,
            provider_event_id,
            occurred_at,
            dict(
                clicked_url=original_link,
                clicked_at=occurred_at,
                user_agent=user_agent,
                ip_address=ip_address,
                provider_event_id=provider_event_id,
            ),
        )

    async def _record(
        self,
        model: Type[Union[EmailOpenDB, EmailClickDB]],
        message_id: str,
        provider_event_id: Optional[str],
        occurred_at: datetime,
        values: dict,
    ) -> TrackingResult:
        counter = SentEmailDB.opens if model is EmailOpenDB else SentEmailDB.clicks

        try:
            if provider_event_id:
                existing = (await self.db.execute(
                    select(model.id, model.email_id).where(model.provider_event_id == provider_event_id)
                )).first()
                if existing is not None:
                    await self.db.commit()
                    logger.info(f"Duplicate {model.__tablename__} event {provider_event_id} ignored")
                    return TrackingResult(email_id=existing.email_id, event_id=existing.id, duplicate=True)

            email_id = await self.db.scalar(
                select(SentEmailDB.id).where(SentEmailDB.message_id == message_id)
            )
            if email_id is None:
                await self.db.commit()
                raise NotFoundError("Sent email", message_id, key="message ID")

            event = model(email_id=email_id, **values)
            self.db.add(event)
            await self.db.flush()

            await self.db.execute(
                update(SentEmailDB)
                .where(SentEmailDB.id == email_id)
                .values({
                    counter: counter + 1,
                    SentEmailDB.last_activity_at: case(
                        (
                            or_(
                                SentEmailDB.last_activity_at.is_(None),
                                SentEmailDB.last_activity_at < occurred_at,
                            ),
                            occurred_at,
                        ),
                        else_=SentEmailDB.last_activity_at,
                    ),
                }),
                execution_options={"synchronize_session": False},
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if provider_event_id:
                # Same event stored concurrently by another delivery
                logger.info(f"Duplicate {model.__tablename__} event {provider_event_id} ignored")
                return TrackingResult(email_id=None, duplicate=True)
            raise DatabaseError(f"Failed to record {model.__tablename__} event", details=str(e)) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError(f"Failed to record {model.__tablename__} event", details=str(e)) from e

        return TrackingResult(email_id=email_id, event_id=event.id)
