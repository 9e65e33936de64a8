"""
HTTP Tests for the Campaign Mail API

Tests:
- Template endpoints and their 404 bodies
- /send-email success and failure bodies
- Provider webhooks
- Analytics endpoints
- /test-db and /health probes

Run with: pytest backend/tests/test_api.py -v
"""

import pytest
from sqlalchemy import select, func

from database import SentEmailDB, EmailOpenDB


class TestTemplateEndpoints:

    @pytest.mark.asyncio
    async def test_create_and_list(self, client):
        response = await client.post("/templates", json={
            "name": "Promo",
            "subject": "Sale",
            "html_content": "<p>Sale</p>",
        })

        assert response.status_code == 200
        created = response.json()
        assert created["name"] == "Promo"
        assert isinstance(created["id"], int)
        assert created["created_at"]
        assert created["updated_at"]

        listing = await client.get("/templates")
        assert listing.status_code == 200
        assert [t["id"] for t in listing.json()] == [created["id"]]

    @pytest.mark.asyncio
    async def test_create_missing_field_is_rejected(self, client):
        response = await client.post("/templates", json={"name": "x", "subject": "y"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_get_one(self, client, template):
        response = await client.get(f"/templates/{template.id}")
        assert response.status_code == 200
        assert response.json()["subject"] == "Welcome!"

    @pytest.mark.asyncio
    async def test_update(self, client, template):
        response = await client.put(f"/templates/{template.id}", json={
            "name": "Renamed",
            "subject": "New",
            "html_content": "<p>New</p>",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == template.id
        assert body["name"] == "Renamed"
        assert body["html_content"] == "<p>New</p>"

    @pytest.mark.asyncio
    async def test_unknown_template_returns_404(self, client, template):
        missing = template.id + 100
        payload = {"name": "a", "subject": "b", "html_content": "c"}

        for response in (
            await client.get(f"/templates/{missing}"),
            await client.put(f"/templates/{missing}", json=payload),
            await client.delete(f"/templates/{missing}"),
        ):
            assert response.status_code == 404
            assert response.json() == {"error": "Template not found"}

    @pytest.mark.asyncio
    async def test_delete_returns_deleted_template(self, client, database, template, sent_email):
        response = await client.delete(f"/templates/{template.id}")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Template deleted successfully"
        assert body["deletedTemplate"]["id"] == template.id
        assert body["deletedTemplate"]["name"] == "Welcome Email"

        async with database.session() as s:
            assert await s.scalar(select(func.count()).select_from(SentEmailDB)) == 0


class TestSendEmailEndpoint:

    @pytest.mark.asyncio
    async def test_send_success(self, client, database, template, email_client):
        response = await client.post("/send-email", json={
            "template_id": template.id,
            "to_email": "user@example.com",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Email sent successfully"
        assert isinstance(body["emailId"], int)
        assert email_client.sent[0].to == "user@example.com"

        async with database.session() as s:
            row = await s.get(SentEmailDB, body["emailId"])
            assert row.recipient == "user@example.com"
            assert row.message_id == "pm-msg-1"

    @pytest.mark.asyncio
    async def test_unknown_template_returns_500_with_type(self, client, template, email_client):
        response = await client.post("/send-email", json={
            "template_id": template.id + 1,
            "to_email": "user@example.com",
        })

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to send email"
        assert body["type"] == "NotFoundError"
        assert "not found" in body["details"]
        assert email_client.sent == []

    @pytest.mark.asyncio
    async def test_provider_failure_returns_500(self, client, template, email_client):
        email_client.fail_with = "Postmark error: Inactive recipient"

        response = await client.post("/send-email", json={
            "template_id": template.id,
            "to_email": "bounced@example.com",
        })

        assert response.status_code == 500
        body = response.json()
        assert body["type"] == "SendFailure"
        assert body["details"] == "Postmark error: Inactive recipient"

    @pytest.mark.asyncio
    async def test_missing_configuration_returns_500(self, client, template, email_client):
        email_client.api_key = ""

        response = await client.post("/send-email", json={
            "template_id": template.id,
            "to_email": "user@example.com",
        })

        assert response.status_code == 500
        assert response.json()["type"] == "ConfigurationError"

    @pytest.mark.asyncio
    async def test_sent_emails_log(self, client, sent_email):
        response = await client.get("/sent-emails")

        assert response.status_code == 200
        rows = response.json()
        assert rows[0]["id"] == sent_email.id
        assert rows[0]["template_name"] == "Welcome Email"
        assert rows[0]["status"] == "sent"


class TestWebhookEndpoints:

    @pytest.mark.asyncio
    async def test_open_webhook(self, client, database, sent_email):
        response = await client.post("/webhooks/open", json={
            "RecordType": "Open",
            "MessageID": "pm-msg-42",
            "Recipient": "reader@example.com",
            "ReceivedAt": "2024-03-01T10:15:30.9070259Z",
            "UserAgent": "Mozilla/5.0",
            "IP": "203.0.113.7",
        })

        assert response.status_code == 200
        assert response.json() == {"success": True}

        async with database.session() as s:
            row = await s.get(SentEmailDB, sent_email.id)
            assert row.opens == 1

    @pytest.mark.asyncio
    async def test_click_webhook(self, client, database, sent_email):
        response = await client.post("/webhooks/click", json={
            "RecordType": "Click",
            "MessageID": "pm-msg-42",
            "OriginalLink": "https://example.com/offer",
            "ReceivedAt": "2024-03-01T10:20:00Z",
        })

        assert response.status_code == 200
        async with database.session() as s:
            row = await s.get(SentEmailDB, sent_email.id)
            assert row.clicks == 1

    @pytest.mark.asyncio
    async def test_unknown_message_id_returns_500(self, client, database, sent_email):
        response = await client.post("/webhooks/open", json={"MessageID": "unknown-id"})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to record email open"
        async with database.session() as s:
            assert await s.scalar(select(func.count()).select_from(EmailOpenDB)) == 0

    @pytest.mark.asyncio
    async def test_missing_message_id_is_rejected(self, client):
        response = await client.post("/webhooks/open", json={"Recipient": "x@example.com"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_redelivered_event_id_is_acknowledged_once(self, client, database, sent_email):
        payload = {"MessageID": "pm-msg-42", "EventID": "evt-123"}

        first = await client.post("/webhooks/open", json=payload)
        second = await client.post("/webhooks/open", json=payload)

        assert first.json() == {"success": True}
        assert second.json() == {"success": True, "duplicate": True}
        async with database.session() as s:
            assert await s.scalar(select(func.count()).select_from(EmailOpenDB)) == 1


class TestAnalyticsEndpoints:

    @pytest.mark.asyncio
    async def test_engagement_flow(self, client, template):
        """Send, two opens and a click show up in every analytics view."""
        send = await client.post("/send-email", json={
            "template_id": template.id,
            "to_email": "user@example.com",
        })
        assert send.status_code == 200

        await client.post("/webhooks/open", json={"MessageID": "pm-msg-1"})
        await client.post("/webhooks/open", json={"MessageID": "pm-msg-1"})
        await client.post("/webhooks/click", json={
            "MessageID": "pm-msg-1",
            "OriginalLink": "https://example.com",
        })

        opens = (await client.get("/analytics/opens")).json()
        clicks = (await client.get("/analytics/clicks")).json()
        stats = (await client.get("/stats")).json()
        activities = (await client.get("/activities")).json()

        assert opens[0]["template_name"] == "Welcome Email"
        assert opens[0]["open_count"] == 2
        assert clicks[0]["click_count"] == 1
        assert stats["totalEmails"] == 1
        assert stats["openRate"] == 100.0
        assert stats["clickRate"] == 100.0
        assert stats["templates"] == 1
        assert stats["recentEmails"][0]["template"] == "Welcome Email"
        assert activities[0]["type"] == "email_sent"
        assert activities[0]["description"] == "user@example.com"

    @pytest.mark.asyncio
    async def test_stats_empty(self, client):
        response = await client.get("/stats")

        assert response.status_code == 200
        assert response.json() == {
            "totalEmails": 0,
            "openRate": 0.0,
            "clickRate": 0.0,
            "templates": 0,
            "recentEmails": [],
        }


class TestHealthEndpoints:

    @pytest.mark.asyncio
    async def test_test_db(self, client):
        response = await client.get("/test-db")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["timestamp"]

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "connected"
        assert body["checks"]["email"] == {"provider": "postmark", "status": "configured"}

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"


class TestLifespan:

    @pytest.mark.asyncio
    async def test_startup_creates_schema_and_seeds(self, tmp_path):
        """Startup builds the database, applies the schema and seeds it when empty."""
        from config import Settings
        from server import create_app

        settings = Settings(
            _env_file=None,
            ENVIRONMENT="test",
            DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path}/startup.db",
            SEED_ON_STARTUP=True,
            SEED_EMAIL_COUNT=20,
            SEED_RECIPIENT_COUNT=5,
        )
        app = create_app(settings)

        async with app.router.lifespan_context(app):
            database = app.state.database
            async with database.session() as s:
                assert await s.scalar(select(func.count()).select_from(SentEmailDB)) == 20
            assert app.state.email_client.is_configured() is False
