"""Session tokens identifying the calling account."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, Request, status
from jose import JWTError, jwt

from neurolex_api.settings import get_settings


def create_session_token(account_id: str, expires_in: Optional[timedelta] = None) -> str:
    """Issue a signed session token whose subject is the account id."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expires_in = expires_in or timedelta(hours=settings.jwt_expiration_hours)
    claims = {
        "sub": account_id,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str) -> Optional[str]:
    """Return the account id from a valid token, or None."""
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    subject = claims.get("sub")
    return subject if isinstance(subject, str) and subject else None


def get_current_account_id(request: Request) -> str:
    """Account id set by the auth middleware."""
    account_id = getattr(request.state, "account_id", None)
    if not account_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing session. Provide an Authorization: Bearer token.",
        )
    return account_id
