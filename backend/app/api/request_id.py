"""Request ID helper for endpoints.

Relies on the observability middleware storing the request id on
``request.state`` and binding it into the logging context.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from app.obs import logging as obs_logging


def get_request_id(request: Optional[Request] = None, default: str = "unknown") -> str:
    """Return the current request id if bound, else a default."""
    if request is not None:
        rid = getattr(request.state, "request_id", None)
        if rid:
            return str(rid)
    return obs_logging._REQUEST_ID.get() or default
