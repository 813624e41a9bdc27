"""HTTP client utilities and session management."""

from core.http.request import SUCCESS_STATUSES, request_json
from core.http.session import cleanup_session, get_session

__all__ = [
    "SUCCESS_STATUSES",
    "cleanup_session",
    "get_session",
    "request_json",
]
