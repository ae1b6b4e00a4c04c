"""Authentication middleware to extract the calling account from its session token."""

import logging

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from neurolex_api.auth.session import decode_session_token

logger = logging.getLogger(__name__)

PUBLIC_PATHS = [
    "/health",
    "/ready",
    "/docs",
    "/openapi.json",
    "/",
    "/v1/tokens/purchase-config",
    "/v1/tokens/quote",
]


class AuthMiddleware(BaseHTTPMiddleware):
    """Resolve the account id from a bearer token."""

    async def dispatch(self, request: Request, call_next):
        """Process request with account extraction."""
        # Skip auth for health checks, docs, metrics and public config
        if request.url.path in PUBLIC_PATHS or request.url.path.startswith("/metrics"):
            return await call_next(request)

        authorization = request.headers.get("authorization", "")
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Missing session. Provide an Authorization: Bearer token."},
            )

        account_id = decode_session_token(token.strip())
        if not account_id:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or expired session token."},
            )

        request.state.account_id = account_id

        # Structured logging
        correlation_id = getattr(request.state, "correlation_id", None)
        logger.info(
            "Authenticated request",
            extra={
                "account_id": account_id,
                "correlation_id": correlation_id,
                "path": request.url.path,
            },
        )

        return await call_next(request)
