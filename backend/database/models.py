"""
Campaign Mail - Database Models

Tables:
- templates: Reusable subject/body pairs
- sent_emails: One row per message accepted by the provider
- email_opens: Open events reported by the provider
- email_clicks: Click events reported by the provider
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, Index, func
)
from sqlalchemy.orm import relationship

from database.connection import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SentEmailStatus(str, PyEnum):
    SENT = "sent"


class TemplateDB(Base):
    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    subject = Column(String(500), nullable=False)
    html_content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now())

    sent_emails = relationship("SentEmailDB", back_populates="template", passive_deletes=True)

    __table_args__ = (
        Index("idx_templates_created_at", "created_at"),
    )


class SentEmailDB(Base):
    __tablename__ = "sent_emails"

    id = Column(Integer, primary_key=True, autoincrement=True)
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False)
    recipient = Column(String(255), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now())
    status = Column(String(20), nullable=False, default=SentEmailStatus.SENT.value)
    opens = Column(Integer, nullable=False, default=0, server_default="0")
    clicks = Column(Integer, nullable=False, default=0, server_default="0")
    last_activity_at = Column(DateTime(timezone=True), nullable=True)
    # Provider-assigned id, used to correlate webhook events
    message_id = Column(String(255), nullable=True, unique=True)

    template = relationship("TemplateDB", back_populates="sent_emails")

    __table_args__ = (
        Index("idx_sent_emails_template", "template_id"),
        Index("idx_sent_emails_sent_at", "sent_at"),
    )


class EmailOpenDB(Base):
    __tablename__ = "email_opens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email_id = Column(Integer, ForeignKey("sent_emails.id", ondelete="CASCADE"), nullable=False)
    opened_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    user_agent = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    provider_event_id = Column(String(255), nullable=True, unique=True)

    __table_args__ = (
        Index("idx_email_opens_email", "email_id"),
    )


class EmailClickDB(Base):
    __tablename__ = "email_clicks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email_id = Column(Integer, ForeignKey("sent_emails.id", ondelete="CASCADE"), nullable=False)
    clicked_url = Column(Text, nullable=True)
    clicked_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    user_agent = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    provider_event_id = Column(String(255), nullable=True, unique=True)

    __table_args__ = (
        Index("idx_email_clicks_email", "email_id"),
    )
