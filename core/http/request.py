"""
Shared HTTP request helper for backend calls.

Keeps JSON request/response handling and error mapping consistent across
clients. Any status outside ``expected_status`` becomes an
ExternalServiceError carrying the status, body and URL.
"""

from __future__ import annotations

import functools
import json as jsonlib
import logging
from typing import TYPE_CHECKING, Any

from core.exceptions import ExternalServiceException

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = range(200, 300)


async def request_json(
    method: str,
    url: str,
    *,
    session: Any,
    params: dict[str, Any] | None = None,
    json: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    expected_status: int | Iterable[int] = SUCCESS_STATUSES,
    service_name: str = "Service",
    timeout: Any | None = None,
) -> Any | None:
    method_upper = method.upper()
    if isinstance(expected_status, int):
        expected = {expected_status}
    else:
        expected = set(expected_status)

    if method_upper == "GET":
        request_fn = session.get
    elif method_upper == "POST":
        request_fn = session.post
    else:
        request_fn = functools.partial(session.request, method_upper)

    request_kwargs: dict[str, Any] = {
        "params": params,
        "json": json,
        "headers": headers,
    }
    if timeout is not None:
        request_kwargs["timeout"] = timeout

    async with request_fn(url, **request_kwargs) as response:
        body = await response.text(errors="replace")
        if response.status not in expected:
            msg = f"{service_name} error: {response.status}"
            raise ExternalServiceException(
                msg,
                {
                    "status": response.status,
                    "body": body,
                    "url": str(getattr(response, "url", url)),
                },
            )
        if not body:
            return None
        try:
            return jsonlib.loads(body)
        except ValueError:
            logger.debug("%s returned a non-JSON body for %s", service_name, url)
            return None
