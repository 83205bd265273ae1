"""Database models."""

from crmsync.models.contact import Contact
from crmsync.models.event import Event

__all__ = [
    "Contact",
    "Event",
]
