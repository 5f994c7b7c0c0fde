"""UUID utilities for community-access."""

import time
import uuid
from typing import Optional, Union


def generate_uuid_v7() -> str:
    """
    Generate a UUIDv7 with time-based ordering.

    UUIDv7 keeps record ids time-ordered, which keeps the role_records and
    group_memberships primary key indexes compact.

    Returns:
        String representation of UUIDv7
    """
    timestamp_ms = int(time.time() * 1000)
    timestamp_bytes = timestamp_ms.to_bytes(6, byteorder='big')
    random_bytes = uuid.uuid4().bytes[6:]
    uuid_bytes = timestamp_bytes + random_bytes

    # Version 7 in the high nibble of byte 6
    uuid_bytes = uuid_bytes[:6] + bytes([(uuid_bytes[6] & 0x0f) | 0x70]) + uuid_bytes[7:]

    # Variant 10 in the high bits of byte 8
    uuid_bytes = uuid_bytes[:8] + bytes([(uuid_bytes[8] & 0x3f) | 0x80]) + uuid_bytes[9:]

    return str(uuid.UUID(bytes=uuid_bytes))


def normalize_uuid(value: Union[str, uuid.UUID]) -> Optional[uuid.UUID]:
    """
    Coerce a string or UUID into a UUID.

    Returns:
        UUID instance, or None if the value is not a valid UUID
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None
