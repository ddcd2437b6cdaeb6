"""SQLAlchemy models for database schema."""

import logging
import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from src.core.database.json_type import JSONType
from src.core.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


def _new_tenant_id() -> str:
    return f"tenant_{uuid.uuid4().hex[:16]}"


def _new_uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models using SQLAlchemy 2.0 declarative style."""

    pass


class Tenant(Base):
    """A registered application. Owns its API keys and events."""

    __tablename__ = "tenants"

    tenant_id: Mapped[str] = mapped_column(String(50), primary_key=True, default=_new_tenant_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Stored normalized (trimmed, lower-case)
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    api_keys = relationship("ApiKey", back_populates="tenant", cascade="all, delete-orphan")
    events = relationship("Event", back_populates="tenant", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("owner_id", "url", name="uq_tenants_owner_url"),
        Index("idx_tenants_owner", "owner_id"),
    )


class ApiKey(Base):
    """Hashed API key. Rows are deactivated, never deleted."""

    __tablename__ = "api_keys"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_uuid)
    tenant_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("tenants.tenant_id", ondelete="CASCADE"), nullable=False
    )
    key_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    key_prefix: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    tenant = relationship("Tenant", back_populates="api_keys")

    __table_args__ = (
        # At most one active key per tenant, enforced by the database
        Index(
            "uq_api_keys_one_active_per_tenant",
            "tenant_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("idx_api_keys_tenant", "tenant_id"),
    )


class Event(Base):
    """One captured occurrence. Append-only."""

    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_uuid)
    tenant_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("tenants.tenant_id", ondelete="CASCADE"), nullable=False
    )
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)
    device: Mapped[str | None] = mapped_column(String(50), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    event_metadata: Mapped[dict | None] = mapped_column("metadata", JSONType, nullable=True)
    session_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    user_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)

    tenant = relationship("Tenant", back_populates="events")

    __table_args__ = (
        Index("idx_events_tenant_timestamp", "tenant_id", "timestamp"),
        Index("idx_events_tenant_type_timestamp", "tenant_id", "event_type", "timestamp"),
        Index(
            "idx_events_tenant_user",
            "tenant_id",
            "user_id",
            postgresql_where=text("user_id IS NOT NULL"),
        ),
    )


class EventSummary(Base):
    """Daily aggregate per (tenant, event type). A rebuildable cache over events."""

    __tablename__ = "event_summaries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_uuid)
    tenant_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("tenants.tenant_id", ondelete="CASCADE"), nullable=False
    )
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    summary_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    total_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unique_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    device_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)

    __table_args__ = (
        UniqueConstraint("tenant_id", "event_type", "date", name="uq_event_summaries_key"),
        Index("idx_summaries_tenant_date", "tenant_id", "date"),
    )
