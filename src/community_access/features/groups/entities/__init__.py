"""Group entities and collaborator protocols."""

from .group import Group
from .protocols import GroupDirectory, CommunityDirectory

__all__ = [
    "Group",
    "GroupDirectory",
    "CommunityDirectory",
]
