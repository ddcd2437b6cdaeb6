"""
Read side of the analytics API.

Everything here is scoped to a single tenant. Summaries for one event type over
one whole UTC day come from the event_summaries cache when a row exists; every
other filter is answered directly from the events table.
"""

import logging

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import sessionmaker

from src.core.database.database_session import get_db_session
from src.core.database.models import Event, EventSummary
from src.core.exceptions import ValidationError
from src.core.schemas import (
    AggregateSummary,
    DateRange,
    EventTypeCount,
    StoredEvent,
    UserEvent,
    UserStats,
)
from src.services.aggregation_service import aggregate_events

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 100
MAX_RECENT_LIMIT = 1000
USER_RECENT_EVENTS = 10


def range_conditions(date_range: DateRange | None) -> list:
    """SQL conditions restricting Event.timestamp to ``date_range``."""
    if date_range is None:
        return []

    conditions = []
    if date_range.start is not None:
        conditions.append(Event.timestamp >= date_range.start)
    if date_range.end is not None:
        if date_range.end_exclusive:
            conditions.append(Event.timestamp < date_range.end)
        else:
            conditions.append(Event.timestamp <= date_range.end)
    return conditions


class QueryService:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def summary_for(
        self,
        tenant_id: str,
        event_type: str | None = None,
        date_range: DateRange | None = None,
    ) -> AggregateSummary | None:
        """Totals, distinct users and device breakdown for the filter.

        Returns:
            The summary, or None when no events match
        """
        start = date_range.start if date_range else None
        end = date_range.end if date_range else None
        day = date_range.whole_day() if date_range else None

        with get_db_session(self._session_factory) as session:
            if event_type is not None and day is not None:
                stmt = select(EventSummary).where(
                    EventSummary.tenant_id == tenant_id,
                    EventSummary.event_type == event_type,
                    EventSummary.summary_date == day,
                )
                cached = session.scalars(stmt).first()
                if cached is not None and cached.total_count > 0:
                    return AggregateSummary(
                        event_type=event_type,
                        total_count=cached.total_count,
                        unique_users=cached.unique_users,
                        device_data=cached.device_data or {},
                        start=start,
                        end=end,
                        source="summary",
                    )

            conditions = [Event.tenant_id == tenant_id, *range_conditions(date_range)]
            if event_type is not None:
                conditions.append(Event.event_type == event_type)
            total, unique_users, device_data = aggregate_events(session, conditions)

        if total == 0:
            return None
        return AggregateSummary(
            event_type=event_type,
            total_count=total,
            unique_users=unique_users,
            device_data=device_data,
            start=start,
            end=end,
            source="events",
        )

    def stats_for_user(self, tenant_id: str, user_id: str) -> UserStats | None:
        """Activity of one end user within the tenant, or None if they have no events."""
        conditions = [Event.tenant_id == tenant_id, Event.user_id == user_id]

        with get_db_session(self._session_factory) as session:
            total, first_seen, last_seen = session.execute(
                select(func.count(Event.id), func.min(Event.timestamp), func.max(Event.timestamp)).where(*conditions)
            ).one()
            if not total:
                return None

            _, _, device_breakdown = aggregate_events(session, conditions)

            recent_stmt = (
                select(Event.event_type, Event.url, Event.timestamp)
                .where(*conditions)
                .order_by(Event.timestamp.desc(), Event.created_at.desc())
                .limit(USER_RECENT_EVENTS)
            )
            recent = [
                UserEvent(event_type=row.event_type, url=row.url, timestamp=row.timestamp)
                for row in session.execute(recent_stmt)
            ]

            ip_stmt = (
                select(distinct(Event.ip_address))
                .where(*conditions, Event.ip_address.is_not(None))
                .order_by(Event.ip_address)
            )
            ip_addresses = list(session.scalars(ip_stmt))

        return UserStats(
            user_id=user_id,
            total_events=total,
            device_breakdown=device_breakdown,
            recent_events=recent,
            first_seen=first_seen,
            last_seen=last_seen,
            ip_addresses=ip_addresses,
        )

    def recent_events(self, tenant_id: str, limit: int = DEFAULT_RECENT_LIMIT) -> list[StoredEvent]:
        """Most recent events first.

        Raises:
            ValidationError: If ``limit`` is outside 1..1000
        """
        if not 1 <= limit <= MAX_RECENT_LIMIT:
            raise ValidationError("limit", f"must be between 1 and {MAX_RECENT_LIMIT}")

        with get_db_session(self._session_factory) as session:
            stmt = (
                select(Event)
                .where(Event.tenant_id == tenant_id)
                .order_by(Event.timestamp.desc(), Event.created_at.desc())
                .limit(limit)
            )
            return [StoredEvent.model_validate(event) for event in session.scalars(stmt)]

    def counts_by_type(self, tenant_id: str, date_range: DateRange | None = None) -> list[EventTypeCount]:
        """Events and distinct users per event type, busiest type first."""
        event_count = func.count(Event.id)
        stmt = (
            select(Event.event_type, event_count, func.count(distinct(Event.user_id)))
            .where(Event.tenant_id == tenant_id, *range_conditions(date_range))
            .group_by(Event.event_type)
            .order_by(event_count.desc(), Event.event_type)
        )

        with get_db_session(self._session_factory) as session:
            return [
                EventTypeCount(event_type=event_type, count=count, unique_users=unique_users)
                for event_type, count, unique_users in session.execute(stmt)
            ]
