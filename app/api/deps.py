"""
Dependency injection for FastAPI endpoints.
Provides the shared storage, settings and the logged-in user.
"""
from fastapi import Depends, Request

from app.core.config import Settings
from app.core.exceptions import AuthenticationException, StorageBackendException
from app.models.domain import User
from app.storage.base import PromptStorage

SESSION_USER_KEY = "user_id"


def get_app_settings(request: Request) -> Settings:
    """
    Get the settings the application was built with.

    Returns:
        Settings instance
    """
    return request.app.state.settings


def get_storage(request: Request) -> PromptStorage:
    """
    Get the storage built at startup.

    Raises:
        StorageBackendException: If startup has not built a store yet
    """
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        raise StorageBackendException("none", "storage is not initialized")
    return storage


async def get_current_user(
    request: Request,
    storage: PromptStorage = Depends(get_storage)
) -> User:
    """
    Resolve the session's user.

    Raises:
        AuthenticationException: If there is no session or its user is gone
    """
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        raise AuthenticationException()

    user = await storage.get_user(int(user_id))
    if user is None:
        # Users are process-local; a restart invalidates old sessions
        request.session.clear()
        raise AuthenticationException()
    return user


def login_session(request: Request, user: User) -> None:
    request.session[SESSION_USER_KEY] = user.id


def logout_session(request: Request) -> None:
    request.session.clear()
