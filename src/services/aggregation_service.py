"""
Daily event summaries.

An EventSummary row is a cache over the events table for one
(tenant, event type, UTC day). It is always recomputed from scratch and written
with a single atomic upsert, so recomputing is idempotent and concurrent
recomputations of the same key converge on the same row.
"""

import logging
from datetime import date

from sqlalchemy import distinct, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, sessionmaker

from src.core.database.database_session import get_db_session
from src.core.database.models import Event, EventSummary
from src.core.exceptions import AggregationFailure, PersistenceFailure, ValidationError
from src.core.schemas import EventSummaryRecord
from src.core.utils.time_utils import day_bounds, utc_now

logger = logging.getLogger(__name__)

UNKNOWN_DEVICE = "unknown"

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def aggregate_events(session: Session, conditions: list) -> tuple[int, int, dict[str, int]]:
    """Count events matching ``conditions``.

    Returns:
        Tuple of (total events, distinct non-null user ids, device -> count)
    """
    total, unique_users = session.execute(
        select(func.count(Event.id), func.count(distinct(Event.user_id))).where(*conditions)
    ).one()

    device_rows = session.execute(
        select(Event.device, func.count(Event.id)).where(*conditions).group_by(Event.device)
    ).all()

    device_data: dict[str, int] = {}
    for device, count in device_rows:
        key = device or UNKNOWN_DEVICE
        device_data[key] = device_data.get(key, 0) + int(count)

    return int(total or 0), int(unique_users or 0), device_data


def _upsert_statement(dialect_name: str, values: dict):
    insert = _DIALECT_INSERTS.get(dialect_name)
    if insert is None:
        raise AggregationFailure(f"Summary upsert is not supported on {dialect_name}")

    table = EventSummary.__table__
    stmt = insert(table).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=[table.c.tenant_id, table.c.event_type, table.c.date],
        set_={
            "total_count": stmt.excluded.total_count,
            "unique_users": stmt.excluded.unique_users,
            "device_data": stmt.excluded.device_data,
            "updated_at": stmt.excluded.updated_at,
        },
    )


class AggregationEngine:
    """Owns the event_summaries table."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def recompute(self, tenant_id: str, event_type: str, day: date) -> EventSummaryRecord:
        """Rebuild the summary row for one (tenant, event type, UTC day).

        Raises:
            AggregationFailure: If the events cannot be read or the summary cannot be written
        """
        try:
            start, end = day_bounds(day)
        except ValueError as e:
            raise AggregationFailure(f"No summary window for {day}") from e

        conditions = [
            Event.tenant_id == tenant_id,
            Event.event_type == event_type,
            Event.timestamp >= start,
            Event.timestamp < end,
        ]

        try:
            with get_db_session(self._session_factory) as session:
                total, unique_users, device_data = aggregate_events(session, conditions)
                now = utc_now()
                stmt = _upsert_statement(
                    session.get_bind().dialect.name,
                    {
                        "tenant_id": tenant_id,
                        "event_type": event_type,
                        "date": day,
                        "total_count": total,
                        "unique_users": unique_users,
                        "device_data": device_data,
                        "created_at": now,
                        "updated_at": now,
                    },
                )
                session.execute(stmt)
                session.commit()
        except PersistenceFailure as e:
            raise AggregationFailure(f"Could not recompute {event_type} for {tenant_id} on {day}") from e

        logger.debug(f"Summary {tenant_id}/{event_type}/{day}: {total} events, {unique_users} users")
        return EventSummaryRecord(
            tenant_id=tenant_id,
            event_type=event_type,
            summary_date=day,
            total_count=total,
            unique_users=unique_users,
            device_data=device_data,
            updated_at=now,
        )

    def recompute_quietly(self, tenant_id: str, event_type: str, day: date) -> EventSummaryRecord | None:
        """Background entry point. Never raises; the next event for the key retries."""
        try:
            return self.recompute(tenant_id, event_type, day)
        except Exception:
            logger.exception(f"Summary recomputation failed for {tenant_id}/{event_type}/{day}")
            return None

    def rebuild(self, tenant_id: str, start_day: date, end_day: date) -> int:
        """Recompute every (event type, day) key with events between the two days, inclusive.

        Returns:
            Number of summary rows written

        Raises:
            ValidationError: If ``end_day`` is before ``start_day``
            AggregationFailure: If any key fails to recompute
        """
        if end_day < start_day:
            raise ValidationError("end_day", "must not be before start_day")

        try:
            window_start = day_bounds(start_day)[0]
            window_end = day_bounds(end_day)[1]
        except ValueError:
            raise ValidationError("end_day", "is past the last supported day") from None
        event_day = func.date(Event.timestamp)

        with get_db_session(self._session_factory) as session:
            stmt = (
                select(Event.event_type, event_day)
                .where(
                    Event.tenant_id == tenant_id,
                    Event.timestamp >= window_start,
                    Event.timestamp < window_end,
                )
                .group_by(Event.event_type, event_day)
                .order_by(event_day, Event.event_type)
            )
            keys = session.execute(stmt).all()

        for event_type, day in keys:
            # SQLite returns date() as text
            if isinstance(day, str):
                day = date.fromisoformat(day)
            self.recompute(tenant_id, event_type, day)

        logger.info(f"Rebuilt {len(keys)} summaries for {tenant_id} from {start_day} to {end_day}")
        return len(keys)
