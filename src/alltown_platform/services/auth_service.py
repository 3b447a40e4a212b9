"""Principal tokens: decode bearer JWTs issued by the identity provider."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from alltown_platform.app.config import get_settings

settings = get_settings()


def create_access_token(principal_id: str, role: str | None = None) -> str:
    """Mint a token the way the identity provider does (used by tooling and tests)."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expiration_minutes)
    payload = {"sub": principal_id, "exp": expire}
    if role:
        payload["role"] = role
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
