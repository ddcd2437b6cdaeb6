"""
API key lifecycle: issuance, revocation, rotation, lookup.

Only SHA-256 fingerprints and 15-character display prefixes are stored. The
plaintext key exists in memory while it is being issued and is returned to the
caller exactly once. At most one key per tenant is active; the database enforces
that with a partial unique index, and rotation swaps keys inside one transaction
holding the tenant row lock.
"""

import logging
from datetime import timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from src.core.database.database_session import get_db_session
from src.core.database.models import ApiKey, Tenant
from src.core.exceptions import (
    NoActiveCredential,
    NotFoundOrAlreadyInactive,
    NotFoundOrUnauthorized,
    PersistenceFailure,
)
from src.core.schemas import CredentialMetadata, IssuedCredential, RevocationRecord, TenantContext
from src.core.utils.api_key_utils import (
    extract_api_key_prefix,
    generate_api_key,
    hash_api_key,
    is_api_key_format,
    mask_api_key,
    mask_key_prefix,
)
from src.core.utils.time_utils import utc_now
from src.services.background_work_queue import BackgroundWorkQueue

logger = logging.getLogger(__name__)

DEFAULT_KEY_TTL_DAYS = 365


class CredentialStore:
    """Owns the api_keys table."""

    def __init__(
        self,
        session_factory: sessionmaker,
        work_queue: BackgroundWorkQueue,
        ttl_days: int = DEFAULT_KEY_TTL_DAYS,
    ):
        self._session_factory = session_factory
        self._work_queue = work_queue
        self._ttl = timedelta(days=ttl_days)

    def issue(self, session: Session, tenant: Tenant) -> IssuedCredential:
        """Create a new active key for ``tenant`` in the caller's transaction.

        The caller commits. Any other active key for the tenant must already be
        deactivated, otherwise the flush violates the one-active-key index.
        """
        api_key = generate_api_key()
        now = utc_now()
        row = ApiKey(
            tenant_id=tenant.tenant_id,
            key_hash=hash_api_key(api_key),
            key_prefix=extract_api_key_prefix(api_key),
            is_active=True,
            created_at=now,
            expires_at=now + self._ttl,
        )
        session.add(row)
        session.flush()

        logger.info(f"Issued API key {mask_api_key(api_key)} for tenant {tenant.tenant_id}")
        return IssuedCredential(
            tenant_id=tenant.tenant_id,
            api_key=api_key,
            masked_key=mask_api_key(api_key),
            created_at=row.created_at,
            expires_at=row.expires_at,
        )

    def revoke(self, api_key: str) -> RevocationRecord:
        """Deactivate the active key matching ``api_key``.

        Raises:
            NotFoundOrAlreadyInactive: If no active key matches, whether it never existed or was already revoked
        """
        key_hash = hash_api_key(api_key)
        with get_db_session(self._session_factory) as session:
            stmt = select(ApiKey).where(ApiKey.key_hash == key_hash, ApiKey.is_active.is_(True)).with_for_update()
            row = session.scalars(stmt).first()
            if row is None:
                raise NotFoundOrAlreadyInactive()

            row.is_active = False
            row.revoked_at = utc_now()
            record = RevocationRecord(
                tenant_id=row.tenant_id,
                masked_key=mask_key_prefix(row.key_prefix),
                revoked_at=row.revoked_at,
            )
            session.commit()

        logger.info(f"Revoked API key {record.masked_key} for tenant {record.tenant_id}")
        return record

    def rotate(self, tenant_id: str, owner_id: str) -> IssuedCredential:
        """Replace every active key of the tenant with a single new one.

        Raises:
            NotFoundOrUnauthorized: If the tenant does not exist or is owned by someone else
        """
        with get_db_session(self._session_factory) as session:
            # Row lock serializes concurrent rotations of the same tenant
            stmt = select(Tenant).where(Tenant.tenant_id == tenant_id).with_for_update()
            tenant = session.scalars(stmt).first()
            if tenant is None or tenant.owner_id != owner_id:
                raise NotFoundOrUnauthorized()

            result = session.execute(
                update(ApiKey)
                .where(ApiKey.tenant_id == tenant_id, ApiKey.is_active.is_(True))
                .values(is_active=False, revoked_at=utc_now())
            )
            issued = self.issue(session, tenant)
            session.commit()

        logger.info(f"Rotated API key for tenant {tenant_id}; {result.rowcount} previous key(s) revoked")
        return issued

    def describe(self, tenant_id: str) -> CredentialMetadata:
        """Masked metadata of the tenant's active key.

        Raises:
            NoActiveCredential: If the tenant has no active key (or does not exist)
        """
        with get_db_session(self._session_factory) as session:
            stmt = (
                select(ApiKey, Tenant)
                .join(Tenant, Tenant.tenant_id == ApiKey.tenant_id)
                .where(ApiKey.tenant_id == tenant_id, ApiKey.is_active.is_(True))
            )
            row = session.execute(stmt).first()
            if row is None:
                raise NoActiveCredential()

            key, tenant = row
            return CredentialMetadata(
                tenant_id=tenant.tenant_id,
                tenant_name=tenant.name,
                tenant_url=tenant.url,
                masked_key=mask_key_prefix(key.key_prefix),
                is_active=key.is_active,
                created_at=key.created_at,
                expires_at=key.expires_at,
                last_used_at=key.last_used_at,
            )

    def resolve(self, api_key: str | None) -> TenantContext | None:
        """Look up the tenant owning an active, unexpired key.

        A successful lookup queues a last-used timestamp update; that update is
        best effort and never affects the result.
        """
        if not is_api_key_format(api_key):
            return None

        key_hash = hash_api_key(api_key)
        with get_db_session(self._session_factory) as session:
            stmt = (
                select(ApiKey.id, ApiKey.expires_at, Tenant.tenant_id, Tenant.name, Tenant.owner_id)
                .join(Tenant, Tenant.tenant_id == ApiKey.tenant_id)
                .where(ApiKey.key_hash == key_hash, ApiKey.is_active.is_(True))
            )
            row = session.execute(stmt).first()

        if row is None:
            return None
        if row.expires_at is not None and row.expires_at <= utc_now():
            logger.info(f"Rejected expired API key {mask_api_key(api_key)}")
            return None

        self._work_queue.submit(self.touch_last_used, row.id)
        return TenantContext(tenant_id=row.tenant_id, tenant_name=row.name, owner_id=row.owner_id)

    def touch_last_used(self, key_id: str) -> None:
        """Record that a key was just used. Failures are logged, not raised."""
        try:
            with get_db_session(self._session_factory) as session:
                session.execute(update(ApiKey).where(ApiKey.id == key_id).values(last_used_at=utc_now()))
                session.commit()
        except PersistenceFailure:
            logger.warning(f"Could not update last_used_at for API key {key_id}", exc_info=True)
