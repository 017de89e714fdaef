"""Lead capture: contact requests and newsletter subscriptions."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from iobic.exceptions import NotFoundError
from iobic.models import Contact, NewsletterSubscription
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

CONTACT_STATUSES: tuple[str, ...] = ("new", "contacted", "converted", "archived")


def serialize_contact(contact: Contact) -> dict[str, Any]:
    return {
        "id": contact.id,
        "name": contact.name,
        "business": contact.business,
        "email": contact.email,
        "phone": contact.phone,
        "businessType": contact.business_type,
        "message": contact.message,
        "status": contact.status,
        "createdAt": contact.created_at.isoformat() if contact.created_at else None,
    }


def serialize_subscription(subscription: NewsletterSubscription) -> dict[str, Any]:
    return {
        "id": subscription.id,
        "email": subscription.email,
        "createdAt": subscription.created_at.isoformat() if subscription.created_at else None,
    }


async def create_contact(
    session: AsyncSession,
    *,
    name: str,
    business: str,
    email: str,
    phone: str,
    business_type: str | None = None,
    message: str | None = None,
) -> Contact:
    contact = Contact(
        name=name,
        business=business,
        email=email,
        phone=phone,
        business_type=business_type or None,
        message=message or None,
        status="new",
        created_at=datetime.now(UTC),
    )
    session.add(contact)
    await session.flush()
    logger.info("Received contact request %s", contact.id)
    return contact


async def get_contact(session: AsyncSession, contact_id: int) -> Contact | None:
    return await session.get(Contact, contact_id)


async def list_contacts(session: AsyncSession, *, status: str | None = None) -> list[Contact]:
    query = select(Contact).order_by(Contact.created_at.desc(), Contact.id.desc())
    if status:
        query = query.where(Contact.status == status)
    result = await session.execute(query)
    return list(result.scalars().all())


async def update_contact_status(session: AsyncSession, contact_id: int, status: str) -> Contact:
    if status not in CONTACT_STATUSES:
        raise ValueError(f"Invalid contact status '{status}'")
    contact = await session.get(Contact, contact_id)
    if contact is None:
        raise NotFoundError(f"Contact {contact_id} not found")
    contact.status = status
    await session.flush()
    return contact


async def get_newsletter_subscription_by_email(
    session: AsyncSession, email: str
) -> NewsletterSubscription | None:
    result = await session.execute(
        select(NewsletterSubscription).where(NewsletterSubscription.email == email)
    )
    return result.scalars().first()


async def create_newsletter_subscription(
    session: AsyncSession, email: str
) -> NewsletterSubscription:
    """Subscribe ``email``, returning the existing row if already subscribed."""
    existing = await get_newsletter_subscription_by_email(session, email)
    if existing is not None:
        return existing

    subscription = NewsletterSubscription(email=email, created_at=datetime.now(UTC))
    try:
        async with session.begin_nested():
            session.add(subscription)
            await session.flush()
    except IntegrityError:
        # Lost a race with a concurrent signup; the unique constraint kept one row.
        existing = await get_newsletter_subscription_by_email(session, email)
        if existing is None:
            raise
        return existing
    logger.info("New newsletter subscription %s", subscription.id)
    return subscription


async def list_newsletter_subscriptions(session: AsyncSession) -> list[NewsletterSubscription]:
    result = await session.execute(
        select(NewsletterSubscription).order_by(
            NewsletterSubscription.created_at.desc(), NewsletterSubscription.id.desc()
        )
    )
    return list(result.scalars().all())
