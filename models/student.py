# models/student.py
import math
import re
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

import config

SortField = Literal["name", "email", "age", "address", "createdAt"]
SortOrder = Literal["asc", "desc"]

SORT_FIELDS = ("name", "email", "age", "address", "createdAt")
TEXT_SEARCH_FIELDS = ("name", "email", "address")
TIMESTAMP_FIELDS = ("createdAt", "updatedAt")

_FRACTION_RE = re.compile(r"\.(\d+)")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Coerce a stored timestamp (datetime or ISO-8601 string) to an aware datetime."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        # fromisoformat before 3.11 only takes 3 or 6 fraction digits.
        text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def to_iso_timestamp(value: Any, now: Optional[datetime] = None) -> str:
    # Absent or unparsable timestamps fall back to the current time.
    parsed = parse_timestamp(value)
    if parsed is None:
        parsed = now or utcnow()
    return parsed.isoformat().replace("+00:00", "Z")


class StudentInput(BaseModel):
    """Fields accepted by createStudent and updateStudent."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    age: int
    address: str = Field(..., min_length=1)


class SearchStudentInput(BaseModel):
    searchTerm: Optional[str] = None
    sortBy: SortField = "name"
    sortOrder: SortOrder = "asc"
    limit: int = Field(default_factory=lambda: config.DEFAULT_PAGE_SIZE)
    offset: int = 0

    @field_validator("searchTerm", mode="before")
    @classmethod
    def blank_term_is_none(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("sortBy", mode="before")
    @classmethod
    def default_sort_by(cls, value):
        return "name" if value in (None, "") else value

    @field_validator("sortOrder", mode="before")
    @classmethod
    def normalize_sort_order(cls, value):
        # Anything other than "desc" sorts ascending.
        return "desc" if isinstance(value, str) and value.strip().lower() == "desc" else "asc"

    @field_validator("limit", mode="before")
    @classmethod
    def clamp_limit(cls, value):
        if value is None:
            return config.DEFAULT_PAGE_SIZE
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("limit must be an integer")
        if value <= 0:
            raise ValueError("limit must be a positive integer")
        return min(value, config.MAX_PAGE_SIZE)

    @field_validator("offset", mode="before")
    @classmethod
    def check_offset(cls, value):
        if value is None:
            return 0
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("offset must be an integer")
        if value < 0:
            raise ValueError("offset must be a non-negative integer")
        return value


class Student(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None
    address: Optional[str] = None
    createdAt: str
    updatedAt: str

    @classmethod
    def from_document(cls, doc: dict) -> "Student":
        now = utcnow()
        age = doc.get("age")
        if isinstance(age, float) and math.isfinite(age) and age.is_integer():
            age = int(age)
        elif not isinstance(age, int) or isinstance(age, bool):
            age = None
        return cls(
            id=str(doc["id"]),
            name=doc.get("name"),
            email=doc.get("email"),
            age=age,
            address=doc.get("address"),
            createdAt=to_iso_timestamp(doc.get("createdAt"), now),
            updatedAt=to_iso_timestamp(doc.get("updatedAt"), now),
        )
