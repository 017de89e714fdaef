"""SQLAlchemy ORM models for IOBIC."""

from iobic.models.base import Base
from iobic.models.contact import Contact
from iobic.models.content_item import CONTENT_TYPES, ContentItem
from iobic.models.media import Media
from iobic.models.newsletter_subscription import NewsletterSubscription
from iobic.models.site_setting import SiteSetting
from iobic.models.user import User

__all__ = [
    "Base",
    "CONTENT_TYPES",
    "Contact",
    "ContentItem",
    "Media",
    "NewsletterSubscription",
    "SiteSetting",
    "User",
]
