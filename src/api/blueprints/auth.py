"""API key management routes: registration, lookup, revocation, rotation."""

import logging

from flask import Blueprint, request

from src.api.extensions import key_management_limit, limiter
from src.api.utils import get_services, success_response
from src.core.schemas import (
    DescribeCredentialRequest,
    RegisterTenantRequest,
    RevokeCredentialRequest,
    RotateCredentialRequest,
)
from src.core.validation import parse_payload

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

KEY_MANAGEMENT_LIMIT_MESSAGE = "Too many api key management requests, please try again later"


@auth_bp.route("/register", methods=["POST"])
@limiter.limit(key_management_limit, error_message=KEY_MANAGEMENT_LIMIT_MESSAGE)
def register():
    """Register a new app and issue its first API key."""
    payload = parse_payload(RegisterTenantRequest, request.get_json(silent=True))
    result = get_services().tenants.register(payload.app_name, payload.app_url, payload.user_id)

    tenant = result.tenant.model_dump(mode="json")
    credential = result.credential.model_dump(mode="json")
    return success_response(
        {
            "app_id": tenant["tenant_id"],
            "app_name": tenant["name"],
            "app_url": tenant["url"],
            "api_key": credential["api_key"],
            "key_prefix": credential["masked_key"],
            "created_at": tenant["created_at"],
            "expires_at": credential["expires_at"],
        },
        message="App registered successfully. Save your API key - it will not be shown again!",
        status=201,
    )


@auth_bp.route("/api-key", methods=["POST"])
@limiter.limit(key_management_limit, error_message=KEY_MANAGEMENT_LIMIT_MESSAGE)
def get_api_key():
    """Masked details of an app's active API key."""
    payload = parse_payload(DescribeCredentialRequest, request.get_json(silent=True))
    metadata = get_services().credentials.describe(payload.app_id).model_dump(mode="json")
    return success_response(
        {
            "app_id": metadata["tenant_id"],
            "app_name": metadata["tenant_name"],
            "app_url": metadata["tenant_url"],
            "key_prefix": metadata["masked_key"],
            "is_active": metadata["is_active"],
            "created_at": metadata["created_at"],
            "expires_at": metadata["expires_at"],
            "last_used_at": metadata["last_used_at"],
            "note": "For security reasons, the full API key is only shown once during registration",
        },
        message="API key details retrieved successfully",
    )


@auth_bp.route("/revoke", methods=["POST"])
@limiter.limit(key_management_limit, error_message=KEY_MANAGEMENT_LIMIT_MESSAGE)
def revoke():
    payload = parse_payload(RevokeCredentialRequest, request.get_json(silent=True))
    record = get_services().credentials.revoke(payload.api_key).model_dump(mode="json")
    return success_response(
        {
            "app_id": record["tenant_id"],
            "key_prefix": record["masked_key"],
            "revoked_at": record["revoked_at"],
        },
        message="API key revoked successfully",
    )


@auth_bp.route("/regenerate", methods=["POST"])
@limiter.limit(key_management_limit, error_message=KEY_MANAGEMENT_LIMIT_MESSAGE)
def regenerate():
    """Revoke every active key of an app and issue a new one. Owner only."""
    payload = parse_payload(RotateCredentialRequest, request.get_json(silent=True))
    issued = get_services().credentials.rotate(payload.app_id, payload.user_id).model_dump(mode="json")
    return success_response(
        {
            "app_id": issued["tenant_id"],
            "api_key": issued["api_key"],
            "key_prefix": issued["masked_key"],
            "created_at": issued["created_at"],
            "expires_at": issued["expires_at"],
        },
        message="New API key generated. Previous keys have been revoked.",
    )
