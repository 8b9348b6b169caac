"""JWT authentication middleware for FastAPI."""
from fastapi import HTTPException, status, Request
from jose import jwt, JWTError, ExpiredSignatureError
from pydantic import BaseModel
from typing import Optional
from datetime import timedelta

from taskmanager.config import Settings
from taskmanager.utils.time import utcnow


class CurrentUser(BaseModel):
    """User information extracted from JWT."""
    user_id: str
    email: Optional[str] = None


def create_access_token(settings: Settings, user_id: str, email: str) -> str:
    now = utcnow()
    payload = {
        "sub": user_id,
        "email": email,
        "exp": now + timedelta(days=settings.jwt_expire_days),
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(settings: Settings, token: str) -> CurrentUser:
    """
    Decode a bearer token into the user it was issued for.

    Raises:
        HTTPException: If token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentUser(user_id=user_id, email=payload.get("email"))


async def get_current_user(request: Request) -> CurrentUser:
    """
    Validate JWT token from Authorization header and extract user information.

    Args:
        request: FastAPI request object to extract Authorization header

    Returns:
        CurrentUser with user_id and email from token

    Raises:
        HTTPException: If token is missing, invalid or expired
    """
    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = auth_header[7:]  # Remove "Bearer " prefix
    return decode_access_token(request.app.state.settings, token)
