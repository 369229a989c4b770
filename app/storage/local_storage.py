"""
Local prompt store: prompts in memory, mirrored to a JSON file.

Every mutation of the active set rewrites the whole file. Users, settings
and trash entries are memory-only, so a restart keeps active prompts and
loses the trash.
"""
import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

from app.core.config import Settings
from app.models.domain import Prompt, PromptDraft, utcnow
from app.repositories.prompt_file_repository import PromptFileRepository
from app.storage.base import PromptStorage

logger = logging.getLogger(__name__)


class LocalPromptStorage(PromptStorage):
    """Default store with no external dependencies."""

    backend_name = "local"

    def __init__(self, settings: Settings, repository: Optional[PromptFileRepository] = None):
        """
        Initialize the store and load prompts from disk.

        Args:
            settings: Application settings
            repository: File repository, defaults to one at ``settings.data_file``
        """
        super().__init__(settings)
        self.repository = repository or PromptFileRepository(settings.data_file)
        self._prompts: Dict[int, Prompt] = {}
        self._next_prompt_id = 1
        # One writer at a time for the read-modify-write-file cycle
        self._lock = asyncio.Lock()
        self._load_prompts()

    def _load_prompts(self) -> None:
        self.repository.ensure_file()
        for prompt in self.repository.load():
            self._prompts[prompt.id] = prompt
            if prompt.id >= self._next_prompt_id:
                self._next_prompt_id = prompt.id + 1
        logger.info(
            f"Loaded {len(self._prompts)} prompts from {self.repository.path}, "
            f"next id {self._next_prompt_id}"
        )

    def _save_prompts(self) -> None:
        # Write failures are logged by the repository; memory stays ahead of disk
        if not self.repository.save(list(self._prompts.values())):
            logger.error(f"Prompts file {self.repository.path} is behind in-memory state")

    def _allocate_id(self) -> int:
        prompt_id = self._next_prompt_id
        self._next_prompt_id += 1
        return prompt_id

    async def get_prompts(self) -> List[Prompt]:
        return list(self._prompts.values())

    async def get_prompt(self, prompt_id: int) -> Optional[Prompt]:
        return self._prompts.get(prompt_id)

    async def create_prompt(self, draft: PromptDraft) -> Prompt:
        async with self._lock:
            prompt = Prompt(
                id=self._allocate_id(),
                title=draft.title,
                content=draft.content,
                category=draft.category,
                tags=list(draft.tags),
                created_at=utcnow(),
            )
            self._prompts[prompt.id] = prompt
            self._save_prompts()
        logger.info(f"Created prompt {prompt.id}")
        return prompt

    async def update_prompt(self, prompt_id: int, data: Mapping[str, Any]) -> Optional[Prompt]:
        async with self._lock:
            existing = self._prompts.get(prompt_id)
            if existing is None:
                return None
            updated = existing.merged(data)
            self._prompts[prompt_id] = updated
            self._save_prompts()
        return updated

    async def delete_prompt(self, prompt_id: int) -> bool:
        async with self._lock:
            if self._prompts.pop(prompt_id, None) is None:
                return False
            self._save_prompts()
        return True

    async def move_to_trash(self, prompt_id: int) -> bool:
        async with self._lock:
            prompt = self._prompts.pop(prompt_id, None)
            if prompt is None:
                return False
            self._trash.add(prompt)
            self._save_prompts()
        return True

    async def restore_from_trash(self, deleted_id: int) -> bool:
        """
        Put a trashed prompt back under its original id, or under a new id
        if that slot has been taken since. createdAt is kept.
        """
        async with self._lock:
            entry = self._trash.get(deleted_id)
            if entry is None:
                return False

            if entry.original_id in self._prompts:
                prompt_id = self._allocate_id()
            else:
                prompt_id = entry.original_id

            self._prompts[prompt_id] = Prompt(
                id=prompt_id,
                title=entry.title,
                content=entry.content,
                category=entry.category,
                tags=list(entry.tags),
                created_at=entry.created_at,
            )
            self._trash.remove(deleted_id)
            self._save_prompts()
        logger.info(f"Restored trash entry {deleted_id} as prompt {prompt_id}")
        return True

    async def update_notion_settings(self, api_token: str, database_id: str) -> None:
        # Backend is fixed for the process lifetime; only the cached values change
        self._cache_notion_settings(api_token, database_id)
