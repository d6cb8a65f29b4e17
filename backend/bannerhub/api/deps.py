from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
import jwt

from bannerhub.core.security import decode_access_token

# Tokens are issued by the identity collaborator; this service only reads them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

def get_actor(token: Optional[str] = Depends(oauth2_scheme)) -> Optional[str]:
    """Return the acting identity (JWT subject), or None when no token was sent.

    Services substitute a generated placeholder for None.
    """
    if not token:
        return None
    try:
        payload = decode_access_token(token)
        sub = payload.get("sub")
        if not sub:
            raise ValueError("Missing subject")
        return str(sub)
    except (jwt.PyJWTError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
