from __future__ import annotations

from uuid import UUID

from lms.services.errors import InvalidIdentifier


def parse_id(value: str | UUID, field: str = "id") -> UUID:
    """Parse an identifier supplied by a caller, raising InvalidIdentifier."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise InvalidIdentifier(field, value) from None


def parse_optional_id(value: str | UUID | None, field: str = "id") -> UUID | None:
    if value is None or value == "":
        return None
    return parse_id(value, field)
