"""Pydantic models for request payloads and service results.

Inbound payloads validate what arrives over HTTP before any service sees it.
Outbound records are what the services return; the HTTP layer dumps them with
``model_dump(mode="json")`` into the response envelope.
"""

import re
from datetime import date, datetime, timedelta
from ipaddress import ip_address
from typing import Annotated, Any, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator, model_validator

from src.core.exceptions import ValidationError
from src.core.utils.api_key_utils import is_api_key_format
from src.core.utils.time_utils import day_bounds, isoformat_utc, to_utc_naive

EVENT_TYPE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
DEVICE_TYPES = ("mobile", "desktop", "tablet", "other")

# Stored datetimes are naive UTC; render them with an explicit offset
UtcDatetime = Annotated[datetime, PlainSerializer(isoformat_utc, return_type=str, when_used="json")]


def _validate_http_url(value: str, field_name: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"{field_name} must be a valid URL with protocol (http:// or https://)")
    return value


def _strip_optional(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# --- Inbound payloads ---


class RequestModel(BaseModel):
    """Base for request bodies. Unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, str_strip_whitespace=True)


class EventPayload(RequestModel):
    """Body of POST /api/analytics/collect."""

    event: str = Field(..., min_length=1, max_length=100, description="Event type, e.g. 'page_view'")
    url: str | None = Field(None, description="Page URL where the event happened")
    referrer: str | None = None
    device: Literal["mobile", "desktop", "tablet", "other"] | None = None
    timestamp: datetime | None = Field(None, description="ISO-8601 time of the event; capture time when omitted")
    metadata: dict[str, Any] | None = None
    ip_address: str | None = Field(None, alias="ipAddress")
    session_id: str | None = Field(None, max_length=100)
    user_id: str | None = Field(None, max_length=100)

    @field_validator("event")
    @classmethod
    def validate_event(cls, v: str) -> str:
        if not EVENT_TYPE_PATTERN.match(v):
            raise ValueError("Event type can only contain letters, numbers, underscores, and hyphens")
        return v

    @field_validator("url", "referrer", "device", "ip_address", "session_id", "user_id", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _strip_optional(v)

    @field_validator("url", "referrer")
    @classmethod
    def validate_urls(cls, v: str | None, info) -> str | None:
        if v is None:
            return v
        return _validate_http_url(v, info.field_name)

    @field_validator("ip_address")
    @classmethod
    def validate_ip_address(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            return str(ip_address(v))
        except ValueError:
            raise ValueError("IP address must be valid") from None

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime | None) -> datetime | None:
        if v is None:
            return None
        v = to_utc_naive(v)
        # The event's day must have a summary window
        day_bounds(v.date())
        return v


class RegisterTenantRequest(RequestModel):
    """Body of POST /api/auth/register."""

    app_name: str = Field(..., min_length=3, max_length=100)
    app_url: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1, max_length=255)

    @field_validator("app_url")
    @classmethod
    def validate_app_url(cls, v: str) -> str:
        return _validate_http_url(v, "app_url")


class DescribeCredentialRequest(RequestModel):
    """Body of POST /api/auth/api-key."""

    app_id: str = Field(..., min_length=1, max_length=50)


class RevokeCredentialRequest(RequestModel):
    """Body of POST /api/auth/revoke."""

    api_key: str = Field(..., min_length=1)

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        if not is_api_key_format(v):
            raise ValueError("Invalid API key format")
        return v


class RotateCredentialRequest(RequestModel):
    """Body of POST /api/auth/regenerate."""

    app_id: str = Field(..., min_length=1, max_length=50)
    user_id: str = Field(..., min_length=1, max_length=255)


# --- Date filtering ---


class DateRange(BaseModel):
    """Time window for analytics reads.

    ``start`` is inclusive. ``end`` is inclusive unless ``end_exclusive`` is set, which
    is how a date-only end bound covers its whole day.
    """

    model_config = ConfigDict(frozen=True)

    start: datetime | None = None
    end: datetime | None = None
    end_exclusive: bool = False

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.start is not None and self.end is not None:
            if self.end < self.start or (self.end_exclusive and self.end == self.start):
                raise ValueError("start must not be after end")
        return self

    @classmethod
    def single_day(cls, day: date) -> "DateRange":
        start, end = day_bounds(day)
        return cls(start=start, end=end, end_exclusive=True)

    @classmethod
    def from_query(cls, start: str | None, end: str | None) -> "DateRange | None":
        """Build a range from query-string values.

        Accepts ISO-8601 dates (``2024-05-01`` or ``20240501``) or full datetimes. Aware values
        are converted to UTC.

        Raises:
            ValidationError: If a bound is unparseable or the bounds are reversed
        """
        start = (start or "").strip() or None
        end = (end or "").strip() or None
        if start is None and end is None:
            return None

        start_value = None
        if start is not None:
            start_value, _ = _parse_bound("startDate", start, end_of_day=False)

        end_value = None
        end_exclusive = False
        if end is not None:
            end_value, end_exclusive = _parse_bound("endDate", end, end_of_day=True)

        if start_value is not None and end_value is not None:
            if end_value < start_value or (end_exclusive and end_value == start_value):
                raise ValidationError("endDate", "must not be before startDate")

        return cls(start=start_value, end=end_value, end_exclusive=end_exclusive)

    def whole_day(self) -> date | None:
        """The UTC day this range covers exactly, if it is one whole day."""
        if self.start is None or self.end is None or not self.end_exclusive:
            return None
        if self.start.time() != datetime.min.time() or self.end - self.start != timedelta(days=1):
            return None
        return self.start.date()


def _parse_bound(field_name: str, value: str, end_of_day: bool) -> tuple[datetime, bool]:
    """Resolve one query bound to a naive UTC datetime.

    A bare date (extended ``2024-05-01`` or basic ``20240501``) expands to the
    start of that day, or for an end bound to the exclusive start of the next
    day. The flag in the result says whether that exclusive expansion happened.
    """
    try:
        day = date.fromisoformat(value)
    except ValueError:
        day = None

    try:
        if day is not None and end_of_day:
            return day_bounds(day)[1], True
        if day is not None:
            return datetime.combine(day, datetime.min.time()), False
        return to_utc_naive(datetime.fromisoformat(value)), False
    except ValueError:
        raise ValidationError(field_name, "must be an ISO-8601 date or datetime within the supported range") from None


# --- Outbound records ---


class RecordModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class TenantContext(RecordModel):
    """Identity attached to an authenticated request."""

    tenant_id: str
    tenant_name: str
    owner_id: str


class TenantRecord(RecordModel):
    tenant_id: str
    name: str
    url: str
    owner_id: str
    created_at: UtcDatetime
    updated_at: UtcDatetime


class IssuedCredential(RecordModel):
    """A freshly issued key. The only place the plaintext ever appears."""

    tenant_id: str
    api_key: str
    masked_key: str
    created_at: UtcDatetime
    expires_at: UtcDatetime


class RegistrationResult(RecordModel):
    tenant: TenantRecord
    credential: IssuedCredential


class CredentialMetadata(RecordModel):
    tenant_id: str
    tenant_name: str
    tenant_url: str
    masked_key: str
    is_active: bool
    created_at: UtcDatetime
    expires_at: UtcDatetime | None = None
    last_used_at: UtcDatetime | None = None


class RevocationRecord(RecordModel):
    tenant_id: str
    masked_key: str
    revoked_at: UtcDatetime


class StoredEvent(RecordModel):
    id: str
    tenant_id: str
    event_type: str
    url: str | None = None
    referrer: str | None = None
    device: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    metadata: dict[str, Any] | None = Field(None, validation_alias="event_metadata")
    session_id: str | None = None
    user_id: str | None = None
    timestamp: UtcDatetime
    created_at: UtcDatetime


class EventSummaryRecord(RecordModel):
    tenant_id: str
    event_type: str
    summary_date: date
    total_count: int
    unique_users: int
    device_data: dict[str, int]
    updated_at: UtcDatetime


class AggregateSummary(BaseModel):
    """Totals for a filter, served from a stored summary or computed from events."""

    event_type: str | None = None
    total_count: int
    unique_users: int
    device_data: dict[str, int]
    start: UtcDatetime | None = None
    end: UtcDatetime | None = None
    source: Literal["summary", "events"]


class UserEvent(BaseModel):
    event_type: str
    url: str | None = None
    timestamp: UtcDatetime


class UserStats(BaseModel):
    user_id: str
    total_events: int
    device_breakdown: dict[str, int]
    recent_events: list[UserEvent]
    first_seen: UtcDatetime
    last_seen: UtcDatetime
    ip_addresses: list[str]


class EventTypeCount(BaseModel):
    event_type: str
    count: int
    unique_users: int
