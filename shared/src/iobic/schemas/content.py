"""Pydantic schemas for content item payloads.

The ``content`` object of a content item is a tagged union: the item's
``type`` selects exactly one payload model, and only that model is used to
validate the nested object.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, TypeAdapter, ValidationError

from iobic.exceptions import ContentValidationError
from iobic.models.content_item import CONTENT_TYPES

NonEmptyStr = Annotated[str, Field(min_length=1)]


class CallToAction(BaseModel):
    text: NonEmptyStr
    url: NonEmptyStr


class HeroContent(BaseModel):
    """Top-of-page banner."""
    title: NonEmptyStr
    subtitle: NonEmptyStr
    cta: CallToAction
    image: str | None = None


class FeatureContent(BaseModel):
    """Feature blurb."""
    title: NonEmptyStr
    description: NonEmptyStr
    icon: str | None = None
    image: str | None = None


class UseCaseContent(BaseModel):
    """Industry use case with its list of benefits."""
    title: NonEmptyStr
    description: NonEmptyStr
    industry: NonEmptyStr
    benefits: list[NonEmptyStr] = Field(min_length=1)
    image: str | None = None


class PricingPlanContent(BaseModel):
    """Pricing tier card."""
    model_config = ConfigDict(populate_by_name=True)

    title: NonEmptyStr
    price: NonEmptyStr
    period: NonEmptyStr
    description: NonEmptyStr
    features: list[NonEmptyStr] = Field(min_length=1)
    is_popular: bool = Field(default=False, alias="isPopular")
    cta: CallToAction


class TestimonialContent(BaseModel):
    """Customer quote."""
    quote: NonEmptyStr
    author: NonEmptyStr
    role: NonEmptyStr
    company: NonEmptyStr
    image: str | None = None
    rating: int | None = Field(default=None, ge=1, le=5)


class SettingContent(BaseModel):
    """Free-form key/value payload stored as a content item."""
    model_config = ConfigDict(extra="allow")


class _ItemFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: NonEmptyStr
    language: str = Field(default="en", min_length=2, max_length=8)
    position: int = 0
    is_active: bool = Field(default=True, alias="isActive")


class HeroItem(_ItemFields):
    type: Literal["hero"]
    content: HeroContent


class FeatureItem(_ItemFields):
    type: Literal["feature"]
    content: FeatureContent


class UseCaseItem(_ItemFields):
    type: Literal["use_case"]
    content: UseCaseContent


class PricingPlanItem(_ItemFields):
    type: Literal["pricing_plan"]
    content: PricingPlanContent


class TestimonialItem(_ItemFields):
    type: Literal["testimonial"]
    content: TestimonialContent


class SettingItem(_ItemFields):
    type: Literal["setting"]
    content: SettingContent


AnyContentItem = Annotated[
    Union[HeroItem, FeatureItem, UseCaseItem, PricingPlanItem, TestimonialItem, SettingItem],
    Field(discriminator="type"),
]


class ContentItemCreate(RootModel[AnyContentItem]):
    """Request body for creating a content item."""

    def to_row_values(self) -> dict[str, Any]:
        item = self.root
        return {
            "title": item.title,
            "type": item.type,
            "content": dump_content(item.content),
            "language": item.language,
            "position": item.position,
            "is_active": item.is_active,
        }


class ContentItemUpdate(BaseModel):
    """Partial update; a changed ``type`` or ``content`` is re-validated as a pair."""
    model_config = ConfigDict(populate_by_name=True)

    title: NonEmptyStr | None = None
    type: Literal["hero", "feature", "use_case", "pricing_plan", "testimonial", "setting"] | None = None
    content: dict[str, Any] | None = None
    language: str | None = Field(default=None, min_length=2, max_length=8)
    position: int | None = None
    is_active: bool | None = Field(default=None, alias="isActive")


_item_adapter: TypeAdapter[AnyContentItem] = TypeAdapter(AnyContentItem)


def dump_content(payload: BaseModel) -> dict[str, Any]:
    return payload.model_dump(by_alias=True, exclude_none=True)


def validation_errors(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


def validate_content(content_type: str, content: Any) -> dict[str, Any]:
    """Validate ``content`` against the single model ``content_type`` selects.

    Returns the normalized payload as stored; raises ContentValidationError
    on an unknown type or a shape mismatch.
    """
    if content_type not in CONTENT_TYPES:
        raise ContentValidationError(
            "Invalid content type",
            errors=[{"loc": ["type"], "msg": f"Unknown content type '{content_type}'", "type": "enum"}],
        )
    envelope = {"type": content_type, "title": "-", "content": content}
    try:
        item = _item_adapter.validate_python(envelope)
    except ValidationError as exc:
        raise ContentValidationError("Invalid content item data", errors=validation_errors(exc)) from exc
    return dump_content(item.content)
