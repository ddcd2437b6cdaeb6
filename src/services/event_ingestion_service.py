"""
Event capture.

Writes one immutable event row per call and, once it is durable, hands the
affected daily summary to the background queue. The caller never waits for
aggregation and never sees its failures.
"""

import logging
from typing import Any

from sqlalchemy.orm import sessionmaker

from src.core.database.database_session import get_db_session
from src.core.database.models import Event
from src.core.schemas import EventPayload, StoredEvent
from src.core.utils.time_utils import utc_now
from src.core.validation import parse_payload
from src.services.aggregation_service import AggregationEngine
from src.services.background_work_queue import BackgroundWorkQueue

logger = logging.getLogger(__name__)


class EventIngestor:
    def __init__(
        self,
        session_factory: sessionmaker,
        aggregation: AggregationEngine,
        work_queue: BackgroundWorkQueue,
    ):
        self._session_factory = session_factory
        self._aggregation = aggregation
        self._work_queue = work_queue

    def ingest(
        self,
        tenant_id: str,
        payload: EventPayload | dict[str, Any],
        origin_ip: str | None = None,
        user_agent: str | None = None,
    ) -> StoredEvent:
        """Persist one event for an authenticated tenant.

        Args:
            tenant_id: Resolved tenant
            payload: Validated payload, or a raw dict to validate
            origin_ip: Address observed by the transport; used when the payload has none
            user_agent: Client User-Agent header

        Raises:
            ValidationError: If a raw payload is malformed
            PersistenceFailure: If the event could not be stored
        """
        payload = parse_payload(EventPayload, payload)
        captured_at = utc_now()

        event = Event(
            tenant_id=tenant_id,
            event_type=payload.event,
            url=payload.url,
            referrer=payload.referrer,
            device=payload.device,
            ip_address=payload.ip_address or origin_ip,
            user_agent=user_agent,
            event_metadata=payload.metadata,
            session_id=payload.session_id,
            user_id=payload.user_id,
            timestamp=payload.timestamp or captured_at,
            created_at=captured_at,
        )

        with get_db_session(self._session_factory) as session:
            session.add(event)
            session.flush()
            stored = StoredEvent.model_validate(event)
            session.commit()

        self._work_queue.submit(
            self._aggregation.recompute_quietly, tenant_id, stored.event_type, stored.timestamp.date()
        )
        return stored
