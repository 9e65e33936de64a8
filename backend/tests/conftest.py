"""
Shared fixtures: a throwaway SQLite database, a recording email client
and an HTTP client bound to the application.
"""

import itertools
from typing import List

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from config import Settings
from database import Database, TemplateDB, SentEmailDB
from email_integration import EmailClient, EmailMessage, EmailResult, EmailStatus


class FakeEmailClient(EmailClient):
    """Email client that records messages instead of calling a provider."""

    def __init__(self, api_key: str = "test-token", from_address: str = "sender@example.com", fail_with: str = None):
        super().__init__(api_key=api_key, from_address=from_address, provider="postmark")
        self.fail_with = fail_with
        self.sent: List[EmailMessage] = []
        self._ids = itertools.count(1)

    async def send_email(self, message: EmailMessage) -> EmailResult:
        self.sent.append(message)
        if self.fail_with:
            return EmailResult(success=False, error=self.fail_with, status_code=422)
        return EmailResult(
            success=True,
            provider_message_id=f"pm-msg-{next(self._ids)}",
            status=EmailStatus.SENT,
            status_code=200,
        )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path}/campaign.db",
        EMAIL_PROVIDER="postmark",
        POSTMARK_API_KEY="test-token",
        FROM_EMAIL="sender@example.com",
        SEED_ON_STARTUP=False,
        SENTRY_DSN="",
    )


@pytest_asyncio.fixture
async def database(settings):
    """Database with the schema applied."""
    db = Database(settings.get_database_url())
    await db.create_schema()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest.fixture
def email_client():
    return FakeEmailClient()


@pytest_asyncio.fixture
async def client(settings, database, email_client):
    """HTTP client for the application wired to the test database."""
    from server import create_app

    app = create_app(settings, database=database, email_client=email_client, run_startup=False)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def template(session):
    tpl = TemplateDB(name="Welcome Email", subject="Welcome!", html_content="<div>Welcome aboard!</div>")
    session.add(tpl)
    await session.commit()
    await session.refresh(tpl)
    return tpl


@pytest_asyncio.fixture
async def sent_email(session, template):
    email = SentEmailDB(template_id=template.id, recipient="reader@example.com", message_id="pm-msg-42")
    session.add(email)
    await session.commit()
    await session.refresh(email)
    return email
