"""Tests for event capture."""

from datetime import date, datetime

import pytest
from sqlalchemy import func, select

from src.core.database.models import Event
from src.core.exceptions import ValidationError
from src.core.schemas import DateRange, EventPayload
from src.core.utils.time_utils import utc_now


def _stored(session, event_id):
    session.expire_all()
    return session.get(Event, event_id)


class TestIngest:
    def test_persists_event_fields(self, services, tenant_id, db_session, event_factory):
        payload = event_factory.create(
            event="signup",
            url="https://x.com/join",
            referrer="https://news.example.org/",
            device="mobile",
            metadata={"plan": "pro", "seats": 3},
            session_id="s1",
            user_id="u1",
        )

        stored = services.ingestor.ingest(tenant_id, payload, origin_ip="10.0.0.1", user_agent="pytest-agent")

        row = _stored(db_session, stored.id)
        assert row.tenant_id == tenant_id
        assert row.event_type == "signup"
        assert row.url == "https://x.com/join"
        assert row.referrer == "https://news.example.org/"
        assert row.device == "mobile"
        assert row.event_metadata == {"plan": "pro", "seats": 3}
        assert row.session_id == "s1"
        assert row.user_id == "u1"
        assert row.ip_address == "10.0.0.1"
        assert row.user_agent == "pytest-agent"

        assert stored.metadata == {"plan": "pro", "seats": 3}

    def test_timestamp_defaults_to_capture_time(self, services, tenant_id, event_factory):
        before = utc_now()
        stored = services.ingestor.ingest(tenant_id, event_factory.create())
        after = utc_now()

        assert before <= stored.timestamp <= after
        assert stored.created_at == stored.timestamp

    def test_client_timestamp_converted_to_utc(self, services, tenant_id, event_factory, db_session):
        stored = services.ingestor.ingest(tenant_id, event_factory.create(timestamp="2024-05-01T01:00:00+02:00"))
        assert stored.timestamp == datetime(2024, 4, 30, 23, 0)
        assert _stored(db_session, stored.id).timestamp == datetime(2024, 4, 30, 23, 0)

    def test_payload_ip_wins_over_transport_ip(self, services, tenant_id, event_factory):
        stored = services.ingestor.ingest(tenant_id, event_factory.create(ipAddress="203.0.113.9"), origin_ip="10.0.0.1")
        assert stored.ip_address == "203.0.113.9"

    def test_accepts_validated_payload(self, services, tenant_id):
        payload = EventPayload(event="click", device="tablet")
        stored = services.ingestor.ingest(tenant_id, payload)
        assert stored.event_type == "click"
        assert stored.device == "tablet"

    def test_invalid_payload_stores_nothing(self, services, tenant_id, work_queue, db_session):
        work_queue.jobs.clear()
        with pytest.raises(ValidationError) as exc_info:
            services.ingestor.ingest(tenant_id, {"event": "bad event!"})

        assert exc_info.value.field == "event"
        assert db_session.scalar(select(func.count(Event.id))) == 0
        assert work_queue.jobs == []


class TestAggregationScheduling:
    def test_schedules_exactly_one_recompute(self, services, tenant_id, work_queue, event_factory):
        work_queue.jobs.clear()
        services.ingestor.ingest(tenant_id, event_factory.create(event="click", timestamp="2024-05-01T10:00:00Z"))

        assert len(work_queue.jobs) == 1
        func_, args, kwargs = work_queue.jobs[0]
        assert func_ == services.aggregation.recompute_quietly
        assert args == (tenant_id, "click", date(2024, 5, 1))
        assert kwargs == {}

    def test_scheduled_job_builds_summary(self, services, tenant_id, work_queue, event_factory):
        services.ingestor.ingest(tenant_id, event_factory.create(event="click", timestamp="2024-05-01T10:00:00Z"))
        work_queue.run_pending()

        summary = services.queries.summary_for(tenant_id, "click", DateRange.single_day(date(2024, 5, 1)))
        assert summary.source == "summary"
        assert summary.total_count == 1

    def test_full_queue_does_not_affect_ingestion(self, services, tenant_id, work_queue, event_factory, db_session):
        work_queue.accept = False
        stored = services.ingestor.ingest(tenant_id, event_factory.create())

        assert work_queue.dropped == 1
        assert _stored(db_session, stored.id) is not None
