"""Admin views over captured leads."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from iobic.exceptions import NotFoundError
from iobic.models import User
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_admin
from api.services.leads import (
    CONTACT_STATUSES,
    list_contacts,
    list_newsletter_subscriptions,
    serialize_contact,
    serialize_subscription,
    update_contact_status,
)

router = APIRouter()


class ContactStatusRequest(BaseModel):
    status: str


@router.get("/contacts")
async def list_all_contacts(
    status: str | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
):
    return [serialize_contact(c) for c in await list_contacts(db, status=status)]


@router.put("/contacts/{contact_id}/status")
async def set_contact_status(
    contact_id: int,
    req: ContactStatusRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
):
    if req.status not in CONTACT_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid contact status")
    try:
        contact = await update_contact_status(db, contact_id, req.status)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Contact not found") from exc
    return serialize_contact(contact)


@router.get("/newsletter")
async def list_subscribers(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
):
    return [serialize_subscription(s) for s in await list_newsletter_subscriptions(db)]
