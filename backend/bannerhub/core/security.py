from datetime import datetime, timedelta, timezone
from typing import Any, Optional
import jwt

from bannerhub.core.config import settings

ACCESS_TOKEN_EXPIRE_MINUTES = 60

def create_access_token(subject: str | Any, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a token the way the identity service issues them (used for local tooling and tests)."""
    expire = datetime.now(tz=timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode: dict[str, Any] = {"sub": str(subject), "exp": expire}
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode an access token issued by the identity collaborator.
    Raises jwt.PyJWTError if invalid and returns the payload as a dict.
    """
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    return payload
