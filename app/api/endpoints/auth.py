"""
Authentication endpoints: registration, login, logout and credential changes.
Sessions are signed cookies holding the user id.
"""
import logging

from fastapi import APIRouter, Depends, Request

from app.api.deps import get_current_user, get_storage, login_session, logout_session
from app.core.exceptions import AuthenticationException, ConflictException, ValidationException
from app.core.logging import log_event
from app.models.domain import User
from app.models.schemas import (
    CredentialsRequest,
    MessageResponse,
    UpdateCredentialsRequest,
    UserResponse,
)
from app.services.auth_service import authenticate, hash_password_async, verify_password_async
from app.storage.base import PromptStorage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    payload: CredentialsRequest,
    request: Request,
    storage: PromptStorage = Depends(get_storage)
):
    """Create an account and log it in."""
    if await storage.get_user_by_username(payload.username):
        raise ConflictException(f"Username already taken: {payload.username}")

    user = await storage.create_user({
        "username": payload.username,
        "password": await hash_password_async(payload.password),
    })
    login_session(request, user)

    log_event(
        level="INFO",
        logger="app.api.endpoints.auth",
        function="register",
        operation="register",
        event="user_registered",
        message=f"Registered user {user.username}",
        context={"user_id": user.id}
    )
    return UserResponse.from_domain(user)


@router.post("/login", response_model=UserResponse)
async def login(
    payload: CredentialsRequest,
    request: Request,
    storage: PromptStorage = Depends(get_storage)
):
    """Check credentials and start a session."""
    user = await authenticate(storage, payload.username, payload.password)
    if user is None:
        logger.warning(f"Failed login for '{payload.username}'")
        raise AuthenticationException("Invalid username or password")

    login_session(request, user)
    logger.info(f"User {user.id} logged in")
    return UserResponse.from_domain(user)


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request):
    """End the session. Succeeds without a session too."""
    logout_session(request)
    return MessageResponse(message="Logged out")


@router.get("/user", response_model=UserResponse)
async def current_user(user: User = Depends(get_current_user)):
    """Get the logged-in user."""
    return UserResponse.from_domain(user)


@router.post("/update-credentials", response_model=UserResponse)
async def update_credentials(
    payload: UpdateCredentialsRequest,
    user: User = Depends(get_current_user),
    storage: PromptStorage = Depends(get_storage)
):
    """Change username and password after checking the current password."""
    if not await verify_password_async(payload.current_password, user.password):
        raise ValidationException("Current password is incorrect")

    owner = await storage.get_user_by_username(payload.username)
    if owner is not None and owner.id != user.id:
        raise ConflictException(f"Username already taken: {payload.username}")

    updated = await storage.update_user(
        user.id,
        payload.username,
        await hash_password_async(payload.new_password),
    )
    if updated is None:
        raise AuthenticationException()

    logger.info(f"User {user.id} updated credentials")
    return UserResponse.from_domain(updated)
