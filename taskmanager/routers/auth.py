"""Authentication router: registration, login and profile preferences."""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session, select
from werkzeug.security import check_password_hash, generate_password_hash

from taskmanager.db.config import get_session
from taskmanager.middleware.auth import CurrentUser, create_access_token, get_current_user
from taskmanager.models import User
from taskmanager.schemas.auth import (
    LoginRequest,
    NotificationPreferences,
    ProfileResponse,
    ProfileUpdate,
    RegisterRequest,
    TokenResponse,
)
from taskmanager.utils.time import utcnow

router = APIRouter(tags=["Authentication"])  # No prefix since main.py adds /auth prefix


def _profile(user: User) -> ProfileResponse:
    return ProfileResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        timezone=user.timezone,
        notification_preferences=NotificationPreferences(email=user.notify_email, push=user.notify_push),
        last_login=user.last_login,
        created_at=user.created_at,
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, request: Request, session: Session = Depends(get_session)):
    existing = session.exec(select(User).where(User.email == body.email.lower())).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists"
        )

    user = User(
        email=body.email.lower(),
        name=body.name,
        password_hash=generate_password_hash(body.password),
    )
    session.add(user)
    session.commit()
    session.refresh(user)

    token = create_access_token(request.app.state.settings, user.id, user.email)
    return TokenResponse(token=token, user_id=user.id, email=user.email)


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, request: Request, session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.email == body.email.lower())).first()
    if not user or not check_password_hash(user.password_hash, body.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    user.last_login = utcnow()
    session.add(user)
    session.commit()

    token = create_access_token(request.app.state.settings, user.id, user.email)
    return TokenResponse(token=token, user_id=user.id, email=user.email)


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    user = session.get(User, current_user.user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return _profile(user)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    body: ProfileUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Update name, timezone and notification channel preferences."""
    user = session.get(User, current_user.user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if body.name is not None:
        user.name = body.name
    if body.timezone is not None:
        user.timezone = body.timezone
    if body.notification_preferences is not None:
        user.notify_email = body.notification_preferences.email
        user.notify_push = body.notification_preferences.push
    user.updated_at = utcnow()

    session.add(user)
    session.commit()
    session.refresh(user)
    return _profile(user)
