"""
Tenant (registered application) records.

A tenant is identified by its owner and its normalized URL; the pair is unique.
Registration creates the tenant and its first API key in one transaction, so a
tenant never exists without a key having been issued for it.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from src.core.database.database_session import get_db_session
from src.core.database.models import Tenant
from src.core.exceptions import DuplicateRegistration
from src.core.schemas import RegistrationResult, TenantRecord
from src.services.credential_service import CredentialStore

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """Canonical form used for uniqueness: trimmed and lower-cased."""
    return url.strip().lower()


class TenantRegistry:
    """Owns the tenants table."""

    def __init__(self, session_factory: sessionmaker, credentials: CredentialStore):
        self._session_factory = session_factory
        self._credentials = credentials

    normalize_url = staticmethod(normalize_url)

    def register(self, name: str, url: str, owner_id: str) -> RegistrationResult:
        """Create a tenant and issue its first API key.

        Raises:
            DuplicateRegistration: If the owner already registered this URL,
                including when a concurrent registration wins the race
        """
        normalized = normalize_url(url)
        with get_db_session(self._session_factory) as session:
            if self._find_existing(session, owner_id, normalized) is not None:
                raise DuplicateRegistration()

            try:
                tenant = Tenant(name=name.strip(), url=normalized, owner_id=owner_id)
                session.add(tenant)
                session.flush()

                credential = self._credentials.issue(session, tenant)
                record = TenantRecord.model_validate(tenant)
                session.commit()
            except IntegrityError as e:
                session.rollback()
                logger.info(f"Concurrent registration of {normalized} for owner {owner_id}: {e.orig}")
                raise DuplicateRegistration() from e

        logger.info(f"Registered tenant {record.tenant_id} ({normalized}) for owner {owner_id}")
        return RegistrationResult(tenant=record, credential=credential)

    @staticmethod
    def _find_existing(session: Session, owner_id: str, normalized_url: str) -> str | None:
        stmt = select(Tenant.tenant_id).where(Tenant.owner_id == owner_id, Tenant.url == normalized_url)
        return session.scalars(stmt).first()

    def get(self, tenant_id: str) -> TenantRecord | None:
        with get_db_session(self._session_factory) as session:
            tenant = session.get(Tenant, tenant_id)
            return TenantRecord.model_validate(tenant) if tenant else None

    def list_for_owner(self, owner_id: str) -> list[TenantRecord]:
        """All tenants registered by ``owner_id``, oldest first."""
        with get_db_session(self._session_factory) as session:
            stmt = select(Tenant).where(Tenant.owner_id == owner_id).order_by(Tenant.created_at, Tenant.tenant_id)
            return [TenantRecord.model_validate(tenant) for tenant in session.scalars(stmt)]
