"""
Client-side services: authenticated requests, record collections and the
reviewer dashboard.
"""

from valuedesk.services.cache_store import RequestCache, make_cache_key
from valuedesk.services.dashboard import (
    DashboardAggregator,
    DashboardQuery,
    DurationTracker,
    ElapsedDuration,
    RecordStatus,
    StatusSummary,
    build_query,
    compute_durations,
    deduplicate,
    normalize_status,
)
from valuedesk.services.gateway import GatewayContext, GatewayResponse, RequestGateway
from valuedesk.services.notifications import NotificationCenter, RichNotificationSink
from valuedesk.services.record_service import FormType, RecordService, extract_records
from valuedesk.services.session_store import MemorySessionStore, SessionState, SessionStore

__all__ = [
    "RequestCache",
    "make_cache_key",
    "DashboardAggregator",
    "DashboardQuery",
    "DurationTracker",
    "ElapsedDuration",
    "RecordStatus",
    "StatusSummary",
    "build_query",
    "compute_durations",
    "deduplicate",
    "normalize_status",
    "GatewayContext",
    "GatewayResponse",
    "RequestGateway",
    "NotificationCenter",
    "RichNotificationSink",
    "FormType",
    "RecordService",
    "extract_records",
    "MemorySessionStore",
    "SessionState",
    "SessionStore",
]
