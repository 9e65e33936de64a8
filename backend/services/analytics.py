"""
Analytics Queries

Read-only aggregations for the dashboard, computed on every request.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import TemplateDB, SentEmailDB, EmailOpenDB, EmailClickDB

logger = logging.getLogger(__name__)

RECENT_EMAILS_LIMIT = 5
ACTIVITIES_LIMIT = 10


def percentage(part: int, total: int) -> float:
    """100 * part / total rounded half-up to one decimal; 0 when total is 0."""
    if not total:
        return 0.0
    value = Decimal(part) * 100 / Decimal(total)
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class AnalyticsService:
    """Dashboard queries over templates, sends and engagement events."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def opens_breakdown(self) -> List[Dict[str, Any]]:
        """Open count and first open per template name and recipient."""
        query = (
            select(
                TemplateDB.name.label("template_name"),
                SentEmailDB.recipient,
                func.count(EmailOpenDB.id).label("open_count"),
                func.min(EmailOpenDB.opened_at).label("first_opened_at"),
            )
            .select_from(TemplateDB)
            .join(SentEmailDB, SentEmailDB.template_id == TemplateDB.id)
            .outerjoin(EmailOpenDB, EmailOpenDB.email_id == SentEmailDB.id)
            .group_by(TemplateDB.name, SentEmailDB.recipient)
            .order_by(TemplateDB.name, SentEmailDB.recipient)
        )
        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings()]

    async def clicks_breakdown(self) -> List[Dict[str, Any]]:
        """Click count and first click per template name and recipient."""
        query = (
            select(
                TemplateDB.name.label("template_name"),
                SentEmailDB.recipient,
                func.count(EmailClickDB.id).label("click_count"),
                func.min(EmailClickDB.clicked_at).label("first_clicked_at"),
            )
            .select_from(TemplateDB)
            .join(SentEmailDB, SentEmailDB.template_id == TemplateDB.id)
            .outerjoin(EmailClickDB, EmailClickDB.email_id == SentEmailDB.id)
            .group_by(TemplateDB.name, SentEmailDB.recipient)
            .order_by(TemplateDB.name, SentEmailDB.recipient)
        )
        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings()]

    async def sent_emails(self) -> List[Dict[str, Any]]:
        """Full send log with template names, newest first."""
        query = (
            select(
                SentEmailDB.id,
                TemplateDB.name.label("template_name"),
                SentEmailDB.recipient,
                SentEmailDB.sent_at,
                SentEmailDB.status,
                SentEmailDB.opens,
                SentEmailDB.clicks,
                SentEmailDB.last_activity_at,
            )
            .select_from(SentEmailDB)
            .outerjoin(TemplateDB, TemplateDB.id == SentEmailDB.template_id)
            .order_by(SentEmailDB.sent_at.desc(), SentEmailDB.id.desc())
        )
        result = await self.db.execute(query)
        rows = [dict(row) for row in result.mappings()]
        logger.info(f"Found {len(rows)} emails")
        return rows

    async def stats(self) -> Dict[str, Any]:
        """Totals, open/click rates and the most recent sends."""
        totals = (await self.db.execute(
            select(
                func.count(SentEmailDB.id).label("total_emails"),
                func.count(case((SentEmailDB.opens > 0, 1))).label("opened"),
                func.count(case((SentEmailDB.clicks > 0, 1))).label("clicked"),
            )
        )).one()
        template_count = await self.db.scalar(select(func.count(TemplateDB.id)))

        recent = await self.db.execute(
            select(
                TemplateDB.name.label("template"),
                SentEmailDB.recipient,
                SentEmailDB.sent_at,
                SentEmailDB.status,
            )
            .join(TemplateDB, TemplateDB.id == SentEmailDB.template_id)
            .order_by(SentEmailDB.sent_at.desc(), SentEmailDB.id.desc())
            .limit(RECENT_EMAILS_LIMIT)
        )

        return {
            "totalEmails": int(totals.total_emails),
            "openRate": percentage(totals.opened, totals.total_emails),
            "clickRate": percentage(totals.clicked, totals.total_emails),
            "templates": int(template_count or 0),
            "recentEmails": [dict(row) for row in recent.mappings()],
        }

    async def activities(self) -> List[Dict[str, Any]]:
        """The most recent sends as a generic activity feed."""
        result = await self.db.execute(
            select(SentEmailDB.recipient, SentEmailDB.sent_at)
            .order_by(SentEmailDB.sent_at.desc(), SentEmailDB.id.desc())
            .limit(ACTIVITIES_LIMIT)
        )
        return [
            {
                "type": "email_sent",
                "description": row.recipient,
                "timestamp": row.sent_at,
            }
            for row in result
        ]
