"""
Request context middleware for the agent.

Each request gets a request_id: the caller's X-Request-ID when it is a
well-formed id (so an instrumented application can correlate its own logs
with the agent's), otherwise a fresh UUID. The id is echoed back in the
X-Request-ID response header.

When the request carries `project` (and optionally `environment`) query
parameters, as sample ingests do, those are bound to the log context for the
whole request, so a flush or token renewal triggered by the ingest logs which
project caused it.
"""

import re
import time
import uuid
from typing import Optional

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from hotpath_agent.core.logging_config import clear_request_id, sample_context, set_request_id

REQUEST_ID_HEADER = "X-Request-ID"

_VALID_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def resolve_request_id(inbound: Optional[str]) -> str:
    """Reuse a caller supplied id if it is safe to log, else mint one."""
    if inbound and _VALID_REQUEST_ID.fullmatch(inbound):
        return inbound
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        set_request_id(request_id)

        started = time.perf_counter()
        try:
            with sample_context(
                request.query_params.get("project"),
                request.query_params.get("environment"),
            ):
                response: Response = await call_next(request)

            response.headers[REQUEST_ID_HEADER] = request_id
            logger.debug(
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"in {(time.perf_counter() - started) * 1000:.1f}ms"
            )
            return response

        except Exception as e:
            logger.error(f"{request.method} {request.url.path} - Request failed: {e}")
            raise
        finally:
            clear_request_id()
