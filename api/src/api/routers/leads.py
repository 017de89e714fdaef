"""Public lead capture: contact form and newsletter signup."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from iobic.schemas.common import stripped_or_none, validated_email
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db
from api.services.leads import create_contact, create_newsletter_subscription

router = APIRouter()


class ContactRequest(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    business: str = Field(min_length=2, max_length=200)
    email: str = Field(min_length=3, max_length=320)
    phone: str = Field(min_length=5, max_length=50)
    business_type: str | None = Field(default=None, max_length=200, alias="businessType")
    message: str | None = Field(default=None, max_length=5000)

    model_config = {"populate_by_name": True}

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return validated_email(value)

    @field_validator("business_type", "message")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        return stripped_or_none(value)


class NewsletterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        # Stored as submitted; dedup is case-sensitive.
        return validated_email(value, lowercase=False)


@router.post("/contact", status_code=status.HTTP_201_CREATED)
async def submit_contact(req: ContactRequest, db: AsyncSession = Depends(get_db)):
    contact = await create_contact(
        db,
        name=req.name.strip(),
        business=req.business.strip(),
        email=req.email,
        phone=req.phone.strip(),
        business_type=req.business_type,
        message=req.message,
    )
    return {
        "success": True,
        "message": "Contact request received successfully",
        "id": contact.id,
    }


@router.post("/newsletter", status_code=status.HTTP_201_CREATED)
async def subscribe_newsletter(req: NewsletterRequest, db: AsyncSession = Depends(get_db)):
    subscription = await create_newsletter_subscription(db, req.email)
    return {
        "success": True,
        "message": "Newsletter subscription created successfully",
        "id": subscription.id,
    }
