"""
Identifier validation.

All entity ids are UUID strings. Anything else is rejected before it
reaches a query.
"""
import re

from projecthub.core.exceptions import ValidationError

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)


def is_uuid(value) -> bool:
    return isinstance(value, str) and UUID_PATTERN.fullmatch(value) is not None


def validate_uuid(value, label: str = "ID") -> str:
    """
    Return the id in canonical lowercase form.

    Raises ValidationError (malformed_id) if it is not UUID-shaped.
    """
    if not is_uuid(value):
        raise ValidationError(f"Invalid {label} format", reason="malformed_id")
    return value.lower()
