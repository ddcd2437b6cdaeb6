"""Event collection and analytics read routes. All require a tenant API key."""

import logging

from flask import Blueprint, g, request

from src.api.extensions import analytics_limit, collection_limit, limiter
from src.api.utils import error_response, get_services, require_api_key, success_response
from src.core.exceptions import ValidationError
from src.core.schemas import DateRange
from src.services.analytics_query_service import DEFAULT_RECENT_LIMIT

logger = logging.getLogger(__name__)

analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")

COLLECTION_LIMIT_MESSAGE = "Too many event submissions, please try again later."
ANALYTICS_LIMIT_MESSAGE = "Too many analytics requests, please try again later."


def _date_range_from_args() -> DateRange | None:
    return DateRange.from_query(request.args.get("startDate"), request.args.get("endDate"))


@analytics_bp.route("/collect", methods=["POST"])
@limiter.limit(collection_limit, error_message=COLLECTION_LIMIT_MESSAGE)
@require_api_key
def collect():
    """Store one event for the authenticated app."""
    stored = get_services().ingestor.ingest(
        g.tenant.tenant_id,
        request.get_json(silent=True),
        origin_ip=request.remote_addr,
        user_agent=request.user_agent.string or None,
    )
    return success_response(
        {
            "event_id": stored.id,
            "event_type": stored.event_type,
            "timestamp": stored.model_dump(mode="json")["timestamp"],
        },
        message="Event collected successfully",
        status=201,
    )


@analytics_bp.route("/event-summary", methods=["GET"])
@limiter.limit(analytics_limit, error_message=ANALYTICS_LIMIT_MESSAGE)
@require_api_key
def event_summary():
    event_type = (request.args.get("event") or "").strip()
    if not event_type:
        raise ValidationError("event", "Event type is required")

    summary = get_services().queries.summary_for(g.tenant.tenant_id, event_type, _date_range_from_args())
    if summary is None:
        return error_response("No events found for the specified criteria", 404)
    return success_response(summary.model_dump(mode="json"), message="Event Summary fetched successfully")


@analytics_bp.route("/user-stats", methods=["GET"])
@limiter.limit(analytics_limit, error_message=ANALYTICS_LIMIT_MESSAGE)
@require_api_key
def user_stats():
    user_id = (request.args.get("userId") or "").strip()
    if not user_id:
        raise ValidationError("userId", "User ID is required")

    stats = get_services().queries.stats_for_user(g.tenant.tenant_id, user_id)
    if stats is None:
        return error_response("No statistics found for the specified user", 404)
    return success_response(stats.model_dump(mode="json"), message="User statistics on event fetched successfully")


@analytics_bp.route("/recent-events", methods=["GET"])
@limiter.limit(analytics_limit, error_message=ANALYTICS_LIMIT_MESSAGE)
@require_api_key
def recent_events():
    raw_limit = request.args.get("limit")
    try:
        limit = int(raw_limit) if raw_limit else DEFAULT_RECENT_LIMIT
    except ValueError:
        raise ValidationError("limit", "must be an integer") from None

    events = get_services().queries.recent_events(g.tenant.tenant_id, limit)
    return success_response(
        [event.model_dump(mode="json") for event in events], message="Recent events fetched successfully"
    )


@analytics_bp.route("/event-counts", methods=["GET"])
@limiter.limit(analytics_limit, error_message=ANALYTICS_LIMIT_MESSAGE)
@require_api_key
def event_counts():
    counts = get_services().queries.counts_by_type(g.tenant.tenant_id, _date_range_from_args())
    return success_response(
        [count.model_dump(mode="json") for count in counts], message="Event counts fetched successfully"
    )
