"""Correlation ID middleware."""

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

MAX_CORRELATION_ID_LENGTH = 128


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Tag every request and response with a correlation ID."""

    async def dispatch(self, request: Request, call_next):
        """Process request with correlation ID."""
        correlation_id = request.headers.get("x-correlation-id", "").strip()
        if not correlation_id or len(correlation_id) > MAX_CORRELATION_ID_LENGTH:
            correlation_id = str(uuid.uuid4())

        request.state.correlation_id = correlation_id
        response: Response = await call_next(request)
        response.headers["x-correlation-id"] = correlation_id
        return response
