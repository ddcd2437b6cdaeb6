"""Tests for request payload validation and date ranges."""

from datetime import date, datetime

import pytest

from src.core.exceptions import ValidationError
from src.core.schemas import (
    DateRange,
    EventPayload,
    RegisterTenantRequest,
    RevokeCredentialRequest,
    RotateCredentialRequest,
    StoredEvent,
)
from src.core.utils.api_key_utils import generate_api_key
from src.core.validation import parse_payload


class TestEventPayload:
    def test_minimal_payload(self):
        payload = parse_payload(EventPayload, {"event": "page_view"})
        assert payload.event == "page_view"
        assert payload.timestamp is None
        assert payload.device is None

    @pytest.mark.parametrize("event", ["page_view", "Sign-Up", "click_2"])
    def test_valid_event_names(self, event):
        assert parse_payload(EventPayload, {"event": event}).event == event

    @pytest.mark.parametrize("event", ["", "has space", "dot.ted", "x" * 101])
    def test_invalid_event_names(self, event):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(EventPayload, {"event": event})
        assert exc_info.value.field == "event"

    def test_missing_event(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(EventPayload, {"url": "https://x.com"})
        assert exc_info.value.field == "event"

    def test_event_pattern_message_has_no_pydantic_prefix(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(EventPayload, {"event": "bad event"})
        assert exc_info.value.errors[0]["message"].startswith("Event type can only contain")

    @pytest.mark.parametrize("field", ["url", "referrer"])
    def test_urls_need_http_scheme(self, field):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(EventPayload, {"event": "click", field: "ftp://x.com"})
        assert exc_info.value.field == field

    def test_blank_optional_strings_become_none(self):
        payload = parse_payload(EventPayload, {"event": "click", "url": "  ", "user_id": ""})
        assert payload.url is None
        assert payload.user_id is None

    def test_unknown_device_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(EventPayload, {"event": "click", "device": "watch"})
        assert exc_info.value.field == "device"

    def test_ip_address_alias_and_validation(self):
        assert parse_payload(EventPayload, {"event": "click", "ipAddress": "192.0.2.1"}).ip_address == "192.0.2.1"
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(EventPayload, {"event": "click", "ipAddress": "999.1.1.1"})
        assert exc_info.value.errors[0]["message"] == "IP address must be valid"

    def test_timestamp_normalized_to_naive_utc(self):
        payload = parse_payload(EventPayload, {"event": "click", "timestamp": "2024-05-01T10:00:00-04:00"})
        assert payload.timestamp == datetime(2024, 5, 1, 14, 0)
        assert payload.timestamp.tzinfo is None

    @pytest.mark.parametrize(
        "timestamp",
        ["0001-01-01T00:30:00+05:00", "9999-12-31T23:30:00-05:00", "9999-12-31T12:00:00Z"],
    )
    def test_timestamp_outside_summary_range_rejected(self, timestamp):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(EventPayload, {"event": "click", "timestamp": timestamp})
        assert exc_info.value.field == "timestamp"

    def test_timestamp_on_day_before_last_accepted(self):
        payload = parse_payload(EventPayload, {"event": "click", "timestamp": "9999-12-30T23:59:59Z"})
        assert payload.timestamp == datetime(9999, 12, 30, 23, 59, 59)

    def test_unknown_fields_ignored(self):
        payload = parse_payload(EventPayload, {"event": "click", "tenant_id": "tenant_other"})
        assert not hasattr(payload, "tenant_id")

    def test_collects_every_error(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(EventPayload, {"event": "bad event", "device": "watch", "url": "nope"})
        fields = {error["field"] for error in exc_info.value.errors}
        assert fields == {"event", "device", "url"}


class TestParsePayload:
    def test_non_object_body(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(EventPayload, ["event"])
        assert exc_info.value.field == "body"

    def test_model_instance_passes_through(self):
        payload = EventPayload(event="click")
        assert parse_payload(EventPayload, payload) is payload


class TestAuthRequests:
    def test_register_request(self):
        request = parse_payload(
            RegisterTenantRequest, {"app_name": " My App ", "app_url": "https://x.com", "user_id": "u1"}
        )
        assert request.app_name == "My App"

    @pytest.mark.parametrize(
        "body, field",
        [
            ({"app_name": "ab", "app_url": "https://x.com", "user_id": "u1"}, "app_name"),
            ({"app_name": "My App", "app_url": "x.com", "user_id": "u1"}, "app_url"),
            ({"app_name": "My App", "app_url": "https://x.com"}, "user_id"),
        ],
    )
    def test_register_request_errors(self, body, field):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(RegisterTenantRequest, body)
        assert exc_info.value.field == field

    def test_revoke_request_checks_key_format(self):
        api_key = generate_api_key()
        assert parse_payload(RevokeCredentialRequest, {"api_key": api_key}).api_key == api_key
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(RevokeCredentialRequest, {"api_key": "sk_live_123"})
        assert exc_info.value.errors[0]["message"] == "Invalid API key format"

    def test_rotate_request_requires_owner(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(RotateCredentialRequest, {"app_id": "tenant_1"})
        assert exc_info.value.field == "user_id"


class TestDateRange:
    def test_no_bounds(self):
        assert DateRange.from_query(None, "  ") is None

    def test_date_only_bounds_cover_whole_days(self):
        date_range = DateRange.from_query("2024-05-01", "2024-05-03")
        assert date_range.start == datetime(2024, 5, 1)
        assert date_range.end == datetime(2024, 5, 4)
        assert date_range.end_exclusive is True
        assert date_range.whole_day() is None

    def test_same_date_is_one_whole_day(self):
        assert DateRange.from_query("2024-05-01", "2024-05-01").whole_day() == date(2024, 5, 1)
        assert DateRange.single_day(date(2024, 5, 1)).whole_day() == date(2024, 5, 1)

    def test_datetime_bounds_are_inclusive(self):
        date_range = DateRange.from_query("2024-05-01T00:00:00Z", "2024-05-02T00:00:00+00:00")
        assert date_range.start == datetime(2024, 5, 1)
        assert date_range.end == datetime(2024, 5, 2)
        assert date_range.end_exclusive is False
        assert date_range.whole_day() is None

    def test_open_ended(self):
        date_range = DateRange.from_query("2024-05-01", None)
        assert date_range.start == datetime(2024, 5, 1)
        assert date_range.end is None

    def test_reversed_bounds(self):
        with pytest.raises(ValidationError) as exc_info:
            DateRange.from_query("2024-05-03", "2024-05-01")
        assert exc_info.value.field == "endDate"

    @pytest.mark.parametrize("start, end, field", [("yesterday", None, "startDate"), (None, "2024-13-01", "endDate")])
    def test_unparseable_bounds(self, start, end, field):
        with pytest.raises(ValidationError) as exc_info:
            DateRange.from_query(start, end)
        assert exc_info.value.field == field

    def test_basic_format_date_covers_whole_day(self):
        date_range = DateRange.from_query("20240501", "20240501")
        assert date_range.start == datetime(2024, 5, 1)
        assert date_range.end == datetime(2024, 5, 2)
        assert date_range.end_exclusive is True
        assert date_range.whole_day() == date(2024, 5, 1)

    def test_last_supported_day_as_start(self):
        assert DateRange.from_query("9999-12-31", None).start == datetime(9999, 12, 31)

    @pytest.mark.parametrize(
        "start, end, field",
        [
            (None, "9999-12-31", "endDate"),
            ("0001-01-01T00:30:00+05:00", None, "startDate"),
            (None, "9999-12-31T23:30:00-05:00", "endDate"),
        ],
    )
    def test_out_of_range_bounds(self, start, end, field):
        with pytest.raises(ValidationError) as exc_info:
            DateRange.from_query(start, end)
        assert exc_info.value.field == field


class TestRecords:
    def test_datetimes_serialized_with_utc_offset(self):
        event = StoredEvent(
            id="e1",
            tenant_id="tenant_1",
            event_type="click",
            event_metadata={"a": 1},
            timestamp=datetime(2024, 5, 1, 12, 0),
            created_at=datetime(2024, 5, 1, 12, 0, 1),
        )
        dumped = event.model_dump(mode="json")
        assert dumped["timestamp"] == "2024-05-01T12:00:00+00:00"
        assert dumped["metadata"] == {"a": 1}
