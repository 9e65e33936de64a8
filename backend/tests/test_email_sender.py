"""
Unit Tests for the Template Send Pipeline

Tests:
- Successful send records the provider message id
- Missing configuration, unknown template and provider rejection
  leave sent_emails unchanged

Run with: pytest backend/tests/test_email_sender.py -v
"""

import pytest
from sqlalchemy import select, func

from database import SentEmailDB
from email_integration import EmailSender
from utils.errors import ConfigurationError, NotFoundError, SendFailure

from conftest import FakeEmailClient


async def _sent_count(session):
    return await session.scalar(select(func.count()).select_from(SentEmailDB))


class TestSendTemplateEmail:
    """EmailSender.send_template_email"""

    @pytest.mark.asyncio
    async def test_send_records_row_with_message_id(self, session, template, email_client):
        """The send is stored with status sent, zero counters and the provider id."""
        sender = EmailSender(client=email_client, db=session)

        sent = await sender.send_template_email(template.id, "user@example.com")

        assert sent.id is not None
        assert sent.template_id == template.id
        assert sent.recipient == "user@example.com"
        assert sent.status == "sent"
        assert sent.opens == 0
        assert sent.clicks == 0
        assert sent.message_id == "pm-msg-1"
        assert sent.sent_at is not None

        assert len(email_client.sent) == 1
        message = email_client.sent[0]
        assert message.to == "user@example.com"
        assert message.subject == "Welcome!"
        assert message.html_body == "<div>Welcome aboard!</div>"
        assert message.track_opens is True

    @pytest.mark.asyncio
    async def test_two_sends_get_distinct_ids(self, session, template, email_client):
        sender = EmailSender(client=email_client, db=session)

        first = await sender.send_template_email(template.id, "a@example.com")
        second = await sender.send_template_email(template.id, "a@example.com")

        assert first.id != second.id
        assert first.message_id != second.message_id
        assert await _sent_count(session) == 2

    @pytest.mark.asyncio
    async def test_no_transaction_open_during_provider_call(self, session, template):
        """The template read is finished before the provider is called."""
        seen = []

        class RecordingClient(FakeEmailClient):
            async def send_email(self, message):
                seen.append(session.in_transaction())
                return await super().send_email(message)

        sender = EmailSender(client=RecordingClient(), db=session)

        sent = await sender.send_template_email(template.id, "user@example.com")

        assert seen == [False]
        assert sent.message_id == "pm-msg-1"
        assert await _sent_count(session) == 1

    @pytest.mark.asyncio
    async def test_unknown_template_raises_not_found(self, session, template, email_client):
        """No provider call and no row for a missing template."""
        sender = EmailSender(client=email_client, db=session)

        with pytest.raises(NotFoundError):
            await sender.send_template_email(template.id + 1, "user@example.com")

        assert email_client.sent == []
        assert await _sent_count(session) == 0

    @pytest.mark.asyncio
    async def test_missing_api_key_raises_configuration_error(self, session, template):
        client = FakeEmailClient(api_key="")
        sender = EmailSender(client=client, db=session)

        with pytest.raises(ConfigurationError) as exc_info:
            await sender.send_template_email(template.id, "user@example.com")

        assert "POSTMARK_API_KEY" in str(exc_info.value)
        assert client.sent == []
        assert await _sent_count(session) == 0

    @pytest.mark.asyncio
    async def test_missing_sender_address_raises_configuration_error(self, session, template):
        client = FakeEmailClient(from_address="")
        sender = EmailSender(client=client, db=session)

        with pytest.raises(ConfigurationError) as exc_info:
            await sender.send_template_email(template.id, "user@example.com")

        assert "FROM_EMAIL" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_provider_rejection_raises_send_failure(self, session, template):
        """A rejected message is reported and not recorded."""
        client = FakeEmailClient(fail_with="Postmark error: Invalid 'To' address")
        sender = EmailSender(client=client, db=session)

        with pytest.raises(SendFailure) as exc_info:
            await sender.send_template_email(template.id, "not-an-address")

        assert "Invalid 'To' address" in str(exc_info.value)
        assert exc_info.value.provider == "postmark"
        assert exc_info.value.status_code == 422
        assert await _sent_count(session) == 0
