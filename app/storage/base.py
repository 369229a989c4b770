"""
Storage contract shared by the local and Notion-backed stores.

Exactly one implementation is built at startup and handed to the route
layer. Lookups by id return None/False when nothing is found; they do not
raise. Only ``create_prompt`` raises, since there is no empty prompt to
return.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from app.core.config import Settings
from app.models.domain import DeletedPrompt, Prompt, PromptDraft, User
from app.storage.trash import TrashBin
from app.storage.users import UserRegistry

NOTION_TOKEN_KEY = "notionApiToken"
NOTION_DATABASE_KEY = "notionDatabaseId"


class PromptStorage(ABC):
    """
    Base class for prompt stores.

    Users, settings and trash entries are process-local for every backend,
    so they are handled here. Subclasses implement prompt persistence and
    the trash transitions that touch it.
    """

    backend_name = "base"

    def __init__(self, settings: Settings):
        self.settings = settings
        self._users = UserRegistry()
        self._trash = TrashBin(retention_days=settings.trash_retention_days)
        # Unset credentials are absent so they read back as not found
        self._settings_cache: Dict[str, str] = {}
        if settings.notion_api_token:
            self._settings_cache[NOTION_TOKEN_KEY] = settings.notion_api_token
        if settings.notion_database_id:
            self._settings_cache[NOTION_DATABASE_KEY] = settings.notion_database_id
        self._users.ensure_account(settings.admin_username, settings.admin_password)

    # Users

    async def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        return self._users.get_by_username(username)

    async def create_user(self, data: Mapping[str, Any]) -> User:
        """Create a user from ``{"username", "password"}``; the id is assigned here."""
        return self._users.create(data["username"], data["password"])

    async def update_user(self, user_id: int, username: str, password: str) -> Optional[User]:
        return self._users.update(user_id, username, password)

    # Prompts

    @abstractmethod
    async def get_prompts(self) -> List[Prompt]:
        """All active prompts with full content."""

    @abstractmethod
    async def get_prompt(self, prompt_id: int) -> Optional[Prompt]:
        """One active prompt with full content, or None."""

    @abstractmethod
    async def create_prompt(self, draft: PromptDraft) -> Prompt:
        """Persist a new prompt with a fresh id and createdAt = now."""

    @abstractmethod
    async def update_prompt(self, prompt_id: int, data: Mapping[str, Any]) -> Optional[Prompt]:
        """Merge only the supplied fields into an existing prompt."""

    @abstractmethod
    async def delete_prompt(self, prompt_id: int) -> bool:
        """Remove a prompt from the active set."""

    # Trash

    @abstractmethod
    async def move_to_trash(self, prompt_id: int) -> bool:
        """Copy a prompt into the trash and remove it from the active set."""

    @abstractmethod
    async def restore_from_trash(self, deleted_id: int) -> bool:
        """Turn a trash entry back into an active prompt."""

    async def get_deleted_prompts(self) -> List[DeletedPrompt]:
        return self._trash.list()

    async def delete_from_trash(self, deleted_id: int) -> bool:
        return self._trash.remove(deleted_id)

    async def empty_trash(self) -> bool:
        self._trash.clear()
        return True

    async def purge_expired_trash(self, now: Optional[datetime] = None) -> int:
        """Drop trash entries past their expiry date. Never called automatically."""
        return self._trash.purge_expired(now)

    # Settings

    async def get_setting(self, key: str) -> Optional[str]:
        return self._settings_cache.get(key)

    async def set_setting(self, key: str, value: str) -> None:
        self._settings_cache[key] = value

    @abstractmethod
    async def update_notion_settings(self, api_token: str, database_id: str) -> None:
        """Replace the Notion credentials at runtime."""

    async def close(self) -> None:
        """Release backend resources on shutdown."""

    def _cache_notion_settings(self, api_token: str, database_id: str) -> None:
        self._settings_cache[NOTION_TOKEN_KEY] = api_token
        self._settings_cache[NOTION_DATABASE_KEY] = database_id
