"""API key authentication.

Resolves the key presented on a request to the tenant that owns it. Works on any
header mapping (Werkzeug ``Headers``, plain dicts) so it can be exercised without
a request context.
"""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from src.core.schemas import TenantContext

if TYPE_CHECKING:
    from src.services.credential_service import CredentialStore

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"
BEARER_PREFIX = "bearer "


def _get_header_case_insensitive(headers: Mapping[str, str] | None, header_name: str) -> str | None:
    """Get a header value with case-insensitive lookup.

    HTTP headers are case-insensitive, but Python dicts are case-sensitive.

    Args:
        headers: Mapping of headers
        header_name: Header name to look up (will be compared case-insensitively)

    Returns:
        Header value if found, None otherwise
    """
    if not headers:
        return None

    header_name_lower = header_name.lower()
    for key, value in headers.items():
        if key.lower() == header_name_lower:
            return value
    return None


def extract_api_key(headers: Mapping[str, str] | None) -> str | None:
    """Return the presented API key, or None.

    ``X-API-Key`` takes precedence over ``Authorization: Bearer <key>``.
    """
    api_key = (_get_header_case_insensitive(headers, API_KEY_HEADER) or "").strip()
    if api_key:
        return api_key

    authorization = (_get_header_case_insensitive(headers, "Authorization") or "").strip()
    if authorization.lower().startswith(BEARER_PREFIX):
        token = authorization[len(BEARER_PREFIX) :].strip()
        return token or None
    return None


class Authenticator:
    """Maps request headers to a TenantContext."""

    def __init__(self, credentials: "CredentialStore"):
        self._credentials = credentials

    def extract_api_key(self, headers: Mapping[str, str] | None) -> str | None:
        return extract_api_key(headers)

    def authenticate(self, headers: Mapping[str, str] | None) -> TenantContext | None:
        """Resolve the request's API key.

        Returns:
            The owning tenant, or None when no key is presented or the key is
            unknown, revoked or expired
        """
        api_key = extract_api_key(headers)
        if api_key is None:
            return None

        context = self._credentials.resolve(api_key)
        if context is None:
            logger.info("Rejected request with an invalid, revoked or expired API key")
        return context
