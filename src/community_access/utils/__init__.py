"""Utilities module for community-access."""

from .uuid import generate_uuid_v7, normalize_uuid
from .datetime import utc_now

__all__ = [
    "generate_uuid_v7",
    "normalize_uuid",
    "utc_now",
]
