"""FastAPI middleware for request context and logging.

Middleware should be added to the FastAPI app in this order:
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestContextMiddleware)  # last added runs first
"""

import json
import time

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from src.core.request_context import generate_request_id, get_request_id, set_request_id

REQUEST_ID_HEADER = "X-Request-ID"

# Max body size to log (in bytes) - ingestion payloads are small
MAX_BODY_LOG_SIZE = 10000  # 10KB

# Paths never logged (probes)
SILENT_PATHS = frozenset({"/health"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to inject request_id into context.

    Reuses the caller's ``X-Request-ID`` when it sends one (the ingestion
    collaborator does), so a single activity can be traced across
    services. Otherwise a fresh UUID is generated. The ID is echoed back
    in the response header.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        """Process the request and inject request_id.

        Parameters
        ----------
        request : Request
            The incoming HTTP request
        call_next : callable
            The next middleware or route handler

        Returns
        -------
        Response
            The HTTP response with X-Request-ID header added
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        set_request_id(request_id)

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log HTTP requests and responses.

    Logs method, path and (for writes) the JSON body on the way in, and
    status code and duration on the way out. All logs include the
    request_id from context.
    """

    async def _read_body(self, request: Request):
        try:
            body_bytes = await request.body()
        except Exception as e:
            return f"<error reading body: {str(e)}>"

        if not body_bytes:
            return None
        if len(body_bytes) > MAX_BODY_LOG_SIZE:
            return f"<body too large: {len(body_bytes)} bytes>"
        try:
            return json.loads(body_bytes)
        except json.JSONDecodeError:
            return body_bytes.decode("utf-8", errors="replace")[:500]

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in SILENT_PATHS:
            return await call_next(request)

        request_id = get_request_id()
        start_time = time.time()

        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "query_params": str(request.query_params),
            "client_ip": request.client.host if request.client else None,
        }
        if request.method in ("POST", "PUT", "PATCH"):
            body_data = await self._read_body(request)
            if body_data is not None:
                log_data["body"] = body_data

        logger.info("Request started", **log_data)

        response = await call_next(request)

        duration = time.time() - start_time
        log = logger.warning if response.status_code >= 400 else logger.info
        log(
            "Request completed",
            request_id=request_id,
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )

        return response
