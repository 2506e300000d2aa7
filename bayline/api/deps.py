from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bayline.core.security import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_staff(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> str:
    """Resolve the staff identifier from the bearer token or reject with 401."""
    staff_id = decode_token(credentials.credentials) if credentials else None
    if not staff_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return staff_id
