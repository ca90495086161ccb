"""Shared model base and helpers."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_millis(value: datetime) -> int:
    """Epoch milliseconds, used as sorted-set scores."""
    return int(value.timestamp() * 1000)


class CamelModel(BaseModel):
    """Model serialized with camelCase keys on the wire.

    Python code uses snake_case attribute names; payloads may use either.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )
