"""Tests for tenant registration and lookup."""

from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from src.core.database.models import ApiKey, Tenant
from src.core.exceptions import DuplicateRegistration
from src.services.tenant_registry import TenantRegistry, normalize_url


def _count(session, model):
    session.expire_all()
    return session.scalar(select(func.count()).select_from(model))


class TestNormalizeUrl:
    def test_trims_and_lowercases(self):
        assert normalize_url("  HTTPS://X.com/Path ") == "https://x.com/path"

    def test_exposed_on_registry(self):
        assert TenantRegistry.normalize_url(" https://A.io ") == "https://a.io"


class TestRegister:
    def test_register_creates_tenant_and_key(self, services, db_session):
        result = services.tenants.register("My App", "https://Example.com", "owner_1")

        assert result.tenant.tenant_id.startswith("tenant_")
        assert result.tenant.name == "My App"
        assert result.tenant.url == "https://example.com"
        assert result.tenant.owner_id == "owner_1"
        assert result.credential.tenant_id == result.tenant.tenant_id

        assert _count(db_session, Tenant) == 1
        assert _count(db_session, ApiKey) == 1

    def test_duplicate_registration_rejected(self, services, db_session):
        services.tenants.register("T", "https://x.com", "owner_1")

        with pytest.raises(DuplicateRegistration):
            services.tenants.register("T again", "  HTTPS://X.COM ", "owner_1")

        assert _count(db_session, Tenant) == 1
        assert _count(db_session, ApiKey) == 1

    def test_same_url_different_owner_allowed(self, services, db_session):
        services.tenants.register("T", "https://x.com", "owner_1")
        services.tenants.register("T", "https://x.com", "owner_2")
        assert _count(db_session, Tenant) == 2

    def test_duplicate_detected_at_commit_is_reported_as_duplicate(self, services, db_session):
        services.tenants.register("T", "https://x.com", "owner_1")

        # Simulate a concurrent registration that passed the pre-check
        with patch.object(TenantRegistry, "_find_existing", return_value=None):
            with pytest.raises(DuplicateRegistration):
                services.tenants.register("T", "https://x.com", "owner_1")

        assert _count(db_session, Tenant) == 1
        assert _count(db_session, ApiKey) == 1

    def test_name_is_trimmed(self, services):
        result = services.tenants.register("  Spaced App  ", "https://spaced.io", "owner_1")
        assert result.tenant.name == "Spaced App"


class TestLookup:
    def test_get(self, services, registration):
        record = services.tenants.get(registration.tenant.tenant_id)
        assert record == registration.tenant

    def test_get_unknown(self, services):
        assert services.tenants.get("tenant_missing") is None

    def test_list_for_owner(self, services):
        first = services.tenants.register("A", "https://a.com", "owner_1")
        second = services.tenants.register("B", "https://b.com", "owner_1")
        services.tenants.register("C", "https://c.com", "owner_2")

        tenants = services.tenants.list_for_owner("owner_1")
        assert {tenant.tenant_id for tenant in tenants} == {first.tenant.tenant_id, second.tenant.tenant_id}
        assert services.tenants.list_for_owner("nobody") == []
