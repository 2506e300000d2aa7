from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from bayline.core.config import settings

ALGORITHM = "HS256"
STAFF_SCOPE = "staff"


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a staff bearer token. Login itself lives outside this service."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"exp": expire, "sub": str(subject), "scope": STAFF_SCOPE}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[str]:
    """Returns the staff identifier (sub claim) or None if token is invalid/expired."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("scope") != STAFF_SCOPE:
        return None
    return payload.get("sub")
