from datetime import datetime, timedelta, timezone

from jose import jwt

from league_scoring.core.config import get_settings

settings = get_settings()


def decode_access_token(token: str) -> dict:
    """Decode a bearer token issued by the identity provider. Raises JWTError."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])


def create_access_token(data: dict, expires_minutes: int = 60) -> str:
    """Mint a token with the shared secret. Used by local tooling and tests."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
