"""Explicit authorization results.

Denials are ordinary outcomes, so the gate returns them as values rather
than raising.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DenialReason(str, Enum):
    """Why an authorization question was answered no."""

    NOT_FOUND = "not_found"
    NOT_MEMBER = "not_member"
    INSUFFICIENT_ROLE = "insufficient_role"
    STORE_UNAVAILABLE = "store_unavailable"


@dataclass(frozen=True)
class AuthorizationDecision:
    """Answer to one authorization question."""

    allowed: bool
    reason: Optional[DenialReason] = None
    granted_by: Optional[str] = None

    @classmethod
    def allow(cls, granted_by: str) -> 'AuthorizationDecision':
        return cls(allowed=True, granted_by=granted_by)

    @classmethod
    def deny(cls, reason: DenialReason) -> 'AuthorizationDecision':
        return cls(allowed=False, reason=reason)

    def __bool__(self) -> bool:
        return self.allowed
