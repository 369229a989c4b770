"""
In-memory trash bookkeeping shared by both storage backends.

Trash entries are never persisted; a restart empties the trash.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from app.models.domain import DeletedPrompt, Prompt, utcnow

logger = logging.getLogger(__name__)


class TrashBin:
    """Holds DeletedPrompt entries keyed by their own sequential id."""

    def __init__(self, retention_days: int = 7):
        self.retention_days = retention_days
        self._entries: Dict[int, DeletedPrompt] = {}
        self._next_id = 1

    def add(self, prompt: Prompt, deleted_at: Optional[datetime] = None) -> DeletedPrompt:
        """
        Record a copy of ``prompt`` as trashed.

        Args:
            prompt: Prompt being removed from the active set
            deleted_at: Deletion time, defaults to now

        Returns:
            The new trash entry (expiry = deleted_at + retention_days)
        """
        entry = DeletedPrompt.from_prompt(
            trash_id=self._next_id,
            prompt=prompt,
            deleted_at=deleted_at or utcnow(),
            retention_days=self.retention_days,
        )
        self._next_id += 1
        self._entries[entry.id] = entry
        logger.info(f"Moved prompt {prompt.id} to trash as entry {entry.id}")
        return entry

    def get(self, deleted_id: int) -> Optional[DeletedPrompt]:
        return self._entries.get(deleted_id)

    def remove(self, deleted_id: int) -> bool:
        """Discard one entry. Returns False if it does not exist."""
        return self._entries.pop(deleted_id, None) is not None

    def clear(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Emptied trash ({count} entries)")

    def list(self) -> List[DeletedPrompt]:
        """All entries in trash order."""
        return list(self._entries.values())

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """
        Discard entries whose expiry date has passed.
        Only runs when called; nothing schedules it.

        Returns:
            Number of entries removed
        """
        now = now or utcnow()
        expired = [entry.id for entry in self._entries.values() if entry.is_expired(now)]
        for deleted_id in expired:
            del self._entries[deleted_id]
        if expired:
            logger.info(f"Purged {len(expired)} expired trash entries")
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
