"""
Shared building blocks for every stored record.

DESIGN DECISION: Identifiers are generated on the device (uuid4), never by
the server. A record created while offline has exactly the same identifier
shape as one created online, so a later sync cannot collide or duplicate.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Optional
from uuid import UUID, uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


UTC = timezone.utc


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


def new_id() -> UUID:
    """The single place record identifiers come from."""
    return uuid4()


class Record(BaseModel):
    """
    Base class for all persisted entities.

    Rows coming back from the backend may carry joined or extra columns,
    so unknown fields are ignored rather than rejected.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        extra="ignore",
    )

    id: UUID = Field(
        default_factory=new_id,
        description="Client-generated unique identifier"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the record (row-level filtering key)"
    )
    created_at: UtcDatetime = Field(
        default_factory=utc_now,
        description="When the record was first written"
    )
    updated_at: UtcDatetime = Field(
        default_factory=utc_now,
        description="Last write timestamp"
    )

    def to_row(self) -> dict[str, Any]:
        """JSON-safe dict used for both the backend and the local store."""
        return self.model_dump(mode="json")

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Record":
        return cls.model_validate(row)
