"""Composition root: builds every service over one session factory and one work queue."""

import logging

from sqlalchemy.orm import sessionmaker

from src.core.auth import Authenticator
from src.core.config import AppConfig, get_config
from src.core.database.database_session import get_session_factory
from src.services.aggregation_service import AggregationEngine
from src.services.analytics_query_service import QueryService
from src.services.background_work_queue import BackgroundWorkQueue
from src.services.credential_service import CredentialStore
from src.services.event_ingestion_service import EventIngestor
from src.services.tenant_registry import TenantRegistry

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Owns the service instances used by one application.

    A work queue passed in by the caller stays the caller's to shut down.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        session_factory: sessionmaker | None = None,
        work_queue: BackgroundWorkQueue | None = None,
    ):
        self.config = config or get_config()
        self.session_factory = session_factory or get_session_factory()

        self._owns_queue = work_queue is None
        self.work_queue = work_queue or BackgroundWorkQueue(
            workers=self.config.aggregation.workers,
            maxsize=self.config.aggregation.queue_size,
            name="aggregation",
        )

        self.credentials = CredentialStore(
            self.session_factory, self.work_queue, ttl_days=self.config.credentials.ttl_days
        )
        self.tenants = TenantRegistry(self.session_factory, self.credentials)
        self.authenticator = Authenticator(self.credentials)
        self.aggregation = AggregationEngine(self.session_factory)
        self.ingestor = EventIngestor(self.session_factory, self.aggregation, self.work_queue)
        self.queries = QueryService(self.session_factory)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the work queue if this container created it."""
        if self._owns_queue:
            self.work_queue.shutdown(wait=wait)
