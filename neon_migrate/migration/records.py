"""
Row models for data read from SQLite.

Prisma stores DateTime columns in SQLite as epoch milliseconds, but databases
edited by hand or by older tooling may hold ISO strings instead. Both are
normalized to timezone-aware UTC datetimes here.
"""
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_NUMERIC = re.compile(r"^-?\d+(\.\d+)?$")
_FRACTION = re.compile(r"(T|\s)(\d{2}:\d{2}:\d{2})\.(\d+)")


def from_epoch_millis(value: Any) -> datetime:
    try:
        return EPOCH + timedelta(milliseconds=value)
    except OverflowError:
        raise ValueError(f"timestamp out of range: {value!r}") from None


def pad_fraction(text: str) -> str:
    """Normalize fractional seconds to six digits; datetime.fromisoformat before 3.11 needs 3 or 6."""
    return _FRACTION.sub(
        lambda m: f"{m.group(1)}{m.group(2)}.{m.group(3)[:6].ljust(6, '0')}", text, count=1
    )


def parse_timestamp(value: Any) -> datetime:
    """Interpret a stored timestamp as an absolute UTC time.

    Numbers (and numeric strings) are epoch milliseconds. Other strings must be
    ISO-8601; naive values are taken to be UTC.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"not a timestamp: {value!r}")

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = from_epoch_millis(value)
    elif isinstance(value, str):
        text = value.strip()
        if _NUMERIC.match(text):
            parsed = from_epoch_millis(float(text) if "." in text else int(text))
        else:
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(pad_fraction(text))
            except ValueError:
                raise ValueError(f"unrecognized timestamp format: {value!r}") from None
    else:
        raise ValueError(f"unsupported timestamp type: {type(value).__name__}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_naive_utc(value: datetime) -> datetime:
    """Convert to the naive UTC form stored in `timestamp without time zone` columns."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class PostRecord(BaseModel):
    """One row of the `Post` table."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    username: str
    content: str
    image: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")

    @field_validator("created_at", mode="before")
    @classmethod
    def normalize_created_at(cls, v):
        return parse_timestamp(v)

    @classmethod
    def source_columns(cls) -> List[str]:
        """Column names as they appear in the database."""
        return [field.alias or name for name, field in cls.model_fields.items()]

    def to_insert_params(self) -> Dict[str, Any]:
        """Values keyed by model attribute, ready for an INSERT."""
        return {
            "id": self.id,
            "username": self.username,
            "content": self.content,
            "image": self.image,
            "created_at": to_naive_utc(self.created_at),
        }
