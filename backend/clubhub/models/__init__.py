"""Convenience imports for Alembic metadata discovery."""

from clubhub.models.person import Club, Membership, Person
from clubhub.models.notification import Notification, NotificationRecipient

__all__ = ["Club", "Membership", "Notification", "NotificationRecipient", "Person"]
