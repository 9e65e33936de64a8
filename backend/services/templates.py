"""
Template Store

CRUD over the templates table. Deleting a template removes every sent
email of that template together with their open and click events.
"""

import logging
from typing import List

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import TemplateDB, SentEmailDB, EmailOpenDB, EmailClickDB, utc_now
from utils.errors import DatabaseError, NotFoundError

logger = logging.getLogger(__name__)


class TemplateService:
    """Template CRUD bound to one database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_templates(self) -> List[TemplateDB]:
        """All templates, newest first."""
        result = await self.db.scalars(
            select(TemplateDB).order_by(TemplateDB.created_at.desc(), TemplateDB.id.desc())
        )
        templates = list(result)
        logger.debug(f"Templates found: {len(templates)}")
        return templates

    async def get_template(self, template_id: int) -> TemplateDB:
        template = await self.db.get(TemplateDB, template_id)
        if template is None:
            raise NotFoundError("Template", template_id)
        return template

    async def create_template(self, name: str, subject: str, html_content: str) -> TemplateDB:
        now = utc_now()
        template = TemplateDB(
            name=name,
            subject=subject,
            html_content=html_content,
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(template)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError("Failed to create template", details=str(e)) from e

        await self.db.refresh(template)
        logger.info(f"Template created: id={template.id} name={template.name!r}")
        return template

    async def update_template(
        self,
        template_id: int,
        name: str,
        subject: str,
        html_content: str
    ) -> TemplateDB:
        """Replace name, subject and body of an existing template."""
        try:
            template = await self.db.get(TemplateDB, template_id)
            if template is None:
                await self.db.rollback()
                raise NotFoundError("Template", template_id)

            template.name = name
            template.subject = subject
            template.html_content = html_content
            template.updated_at = utc_now()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError("Failed to update template", details=str(e)) from e

        await self.db.refresh(template)
        logger.info(f"Template {template_id} updated successfully")
        return template

    async def delete_template(self, template_id: int) -> TemplateDB:
        """
        Delete a template and everything sent from it.

        Events are removed first, then sent emails, then the template, in
        one transaction. Returns the deleted template.
        """
        try:
            template = await self.db.get(TemplateDB, template_id)
            if template is None:
                await self.db.rollback()
                raise NotFoundError("Template", template_id)

            email_ids = select(SentEmailDB.id).where(SentEmailDB.template_id == template_id)
            await self.db.execute(
                delete(EmailClickDB).where(EmailClickDB.email_id.in_(email_ids)),
                execution_options={"synchronize_session": False},
            )
            await self.db.execute(
                delete(EmailOpenDB).where(EmailOpenDB.email_id.in_(email_ids)),
                execution_options={"synchronize_session": False},
            )
            sent_result = await self.db.execute(
                delete(SentEmailDB).where(SentEmailDB.template_id == template_id),
                execution_options={"synchronize_session": False},
            )
            await self.db.delete(template)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError("Failed to delete template", details=str(e)) from e

        logger.info(
            f"Template {template_id} deleted with {sent_result.rowcount} sent emails"
        )
        return template
