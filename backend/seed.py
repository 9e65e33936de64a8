"""
Demo Data Seeder

Fills the database with synthetic campaign data for the dashboard:
- 5 templates
- unique recipient addresses generated with Faker
- sent emails spread over the last 90 days
- 0-7 opens per email, never more clicks than opens,
  each event within 24 hours of the send

Run: python seed.py [--emails N] [--recipients N]
Running standalone clears all four tables first.
"""

import argparse
import asyncio
import logging
import random
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv
from faker import Faker
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from database import Database
from database.models import TemplateDB, SentEmailDB, EmailOpenDB, EmailClickDB, SentEmailStatus, utc_now

logger = logging.getLogger(__name__)

BATCH_SIZE = 100
HISTORY_DAYS = 90
MAX_OPENS = 7
EVENT_WINDOW_MINUTES = 60 * 24

SEED_TEMPLATES = [
    {
        "name": "Welcome Email",
        "subject": "Welcome to Our Platform! 🎉",
        "html_content": "<div>Welcome aboard!</div>",
    },
    {
        "name": "Monthly Newsletter",
        "subject": "📰 Your Monthly Update",
        "html_content": "<div>Monthly updates...</div>",
    },
    {
        "name": "Password Reset",
        "subject": "Reset Your Password",
        "html_content": "<div>Reset your password...</div>",
    },
    {
        "name": "Order Confirmation",
        "subject": "Order Confirmed ✅",
        "html_content": "<div>Order details...</div>",
    },
    {
        "name": "Webinar Invitation",
        "subject": "🎯 Join Our Upcoming Webinar",
        "html_content": "<div>Webinar details...</div>",
    },
]

USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7)",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64)",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 14_7_1 like Mac OS X)",
    "Mozilla/5.0 (iPad; CPU OS 14_7_1 like Mac OS X)",
    "Mozilla/5.0 (Android 11; Mobile)",
]

CLICK_URLS = [
    "http://example.com/signup",
    "http://example.com/pricing",
    "http://example.com/features",
    "http://example.com/blog",
    "http://example.com/contact",
]


def generate_emails(count: int, fake: Faker) -> List[str]:
    """Generate `count` distinct email addresses."""
    emails = set()
    while len(emails) < count:
        emails.add(fake.email())
    return list(emails)


def random_ip(rng: random.Random) -> str:
    return f"192.168.{rng.randrange(255)}.{rng.randrange(255)}"


async def count_templates(session: AsyncSession) -> int:
    return await session.scalar(select(func.count(TemplateDB.id))) or 0


async def table_counts(session: AsyncSession) -> Dict[str, int]:
    return {
        "template_count": await count_templates(session),
        "email_count": await session.scalar(select(func.count(SentEmailDB.id))) or 0,
        "opens_count": await session.scalar(select(func.count(EmailOpenDB.id))) or 0,
        "clicks_count": await session.scalar(select(func.count(EmailClickDB.id))) or 0,
    }


async def clear_tables(session: AsyncSession) -> None:
    for model in (EmailClickDB, EmailOpenDB, SentEmailDB, TemplateDB):
        await session.execute(delete(model), execution_options={"synchronize_session": False})


async def seed_database(
    database: Database,
    email_count: int = 10000,
    recipient_count: int = 1000,
    rng: Optional[random.Random] = None,
    fake: Optional[Faker] = None,
) -> Dict[str, int]:
    """
    Replace all data with a fresh synthetic data set.

    Returns the final row count of every table.

    Raises:
        ValueError: negative email count, or emails without any recipient
    """
    if email_count < 0:
        raise ValueError(f"email_count must not be negative, got {email_count}")
    if email_count and recipient_count < 1:
        raise ValueError(f"recipient_count must be at least 1 to seed {email_count} emails")

    rng = rng or random.Random()
    fake = fake or Faker()

    async with database.session() as session:
        try:
            logger.info("Starting database seed...")
            await clear_tables(session)

            logger.info("Inserting templates...")
            templates = [TemplateDB(**t) for t in SEED_TEMPLATES]
            session.add_all(templates)
            await session.flush()
            template_ids = [t.id for t in templates]

            recipients = generate_emails(recipient_count, fake)
            logger.info(f"Generated {len(recipients)} unique email addresses")

            logger.info(f"Generating sent emails for the last {HISTORY_DAYS} days...")
            now = utc_now()
            for start in range(0, email_count, BATCH_SIZE):
                batch_size = min(BATCH_SIZE, email_count - start)
                await _seed_batch(session, rng, now, template_ids, recipients, batch_size)
                logger.info(f"Processed {start + batch_size}/{email_count} emails")

            await session.commit()
        except Exception:
            await session.rollback()
            logger.error("Error seeding database", exc_info=True)
            raise

        stats = await table_counts(session)

    logger.info(f"Seed completed successfully! Statistics: {stats}")
    return stats


async def _seed_batch(
    session: AsyncSession,
    rng: random.Random,
    now,
    template_ids: List[int],
    recipients: List[str],
    batch_size: int,
) -> None:
    plans: List[Dict[str, Any]] = []
    for _ in range(batch_size):
        sent_at = now - timedelta(
            days=rng.randrange(HISTORY_DAYS),
            hours=rng.randrange(24),
            minutes=rng.randrange(60),
        )
        opens = rng.randint(0, MAX_OPENS)
        clicks = rng.randint(0, opens)
        open_times = [_event_time(rng, sent_at) for _ in range(opens)]
        click_times = [_event_time(rng, sent_at) for _ in range(clicks)]
        event_times = open_times + click_times

        email = SentEmailDB(
            template_id=rng.choice(template_ids),
            recipient=rng.choice(recipients),
            sent_at=sent_at,
            status=SentEmailStatus.SENT.value,
            opens=opens,
            clicks=clicks,
            last_activity_at=max(event_times) if event_times else None,
        )
        plans.append({"email": email, "open_times": open_times, "click_times": click_times})

    session.add_all([p["email"] for p in plans])
    await session.flush()

    events = []
    for plan in plans:
        email_id = plan["email"].id
        for opened_at in plan["open_times"]:
            events.append(EmailOpenDB(
                email_id=email_id,
                opened_at=opened_at,
                user_agent=rng.choice(USER_AGENTS),
                ip_address=random_ip(rng),
            ))
        for clicked_at in plan["click_times"]:
            events.append(EmailClickDB(
                email_id=email_id,
                clicked_url=rng.choice(CLICK_URLS),
                clicked_at=clicked_at,
                user_agent=rng.choice(USER_AGENTS),
                ip_address=random_ip(rng),
            ))
    session.add_all(events)
    await session.flush()


def _event_time(rng: random.Random, sent_at):
    return sent_at + timedelta(minutes=rng.randrange(EVENT_WINDOW_MINUTES))


async def seed_if_empty(database: Database, email_count: int, recipient_count: int) -> bool:
    """Seed only when no template exists yet. Returns True when seeding ran."""
    async with database.session() as session:
        existing = await count_templates(session)

    if existing:
        logger.info("Database already contains data, skipping seed")
        return False

    logger.info("Database is empty, running seed...")
    await seed_database(database, email_count=email_count, recipient_count=recipient_count)
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seed the campaign database with demo data")
    parser.add_argument("--emails", type=int, default=None, help="Number of sent emails")
    parser.add_argument("--recipients", type=int, default=None, help="Number of distinct recipients")
    return parser


def resolve_counts(args: argparse.Namespace, settings) -> Tuple[int, int]:
    """Command line counts, falling back to settings only when not given."""
    email_count = args.emails if args.emails is not None else settings.SEED_EMAIL_COUNT
    recipient_count = args.recipients if args.recipients is not None else settings.SEED_RECIPIENT_COUNT
    return email_count, recipient_count


async def main():
    from config import get_settings

    args = build_parser().parse_args()

    settings = get_settings()
    database = Database(settings.get_database_url(), pool_size=settings.DB_POOL_SIZE)
    try:
        await database.create_schema()
        email_count, recipient_count = resolve_counts(args, settings)
        await seed_database(database, email_count=email_count, recipient_count=recipient_count)
    finally:
        await database.dispose()


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
