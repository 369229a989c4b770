"""
Domain models for business logic.
These are internal representations separate from API schemas.

Serialized forms use the camelCase field names of the prompts file
(``{"prompts": [{id, title, content, category, tags, createdAt}]}``).
"""
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List, Mapping

# Fields a caller may set on a prompt; id and createdAt are owned by storage
PROMPT_FIELDS = ("title", "content", "category", "tags")


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO-8601 timestamp as written by this app or by JavaScript
    (``2025-01-01T10:00:00.000Z``). Naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Render a datetime as ISO-8601."""
    return value.isoformat()


def pick_prompt_changes(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Reduce a partial update to the supplied prompt fields.
    Unknown keys and keys set to None count as not supplied.
    """
    changes = {}
    for key in PROMPT_FIELDS:
        value = data.get(key)
        if value is None:
            continue
        changes[key] = list(value) if key == "tags" else value
    return changes


@dataclass
class PromptDraft:
    """Fields needed to create a prompt."""
    title: str
    content: str
    category: str
    tags: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'PromptDraft':
        """Create from dictionary."""
        return cls(
            title=data["title"],
            content=data["content"],
            category=data["category"],
            tags=list(data.get("tags") or []),
        )


@dataclass
class Prompt:
    """Internal prompt representation. Content is always the full text."""
    id: int
    title: str
    content: str
    category: str
    tags: List[str]
    created_at: datetime

    def merged(self, changes: Mapping[str, Any]) -> 'Prompt':
        """Return a copy with only the supplied fields replaced."""
        return replace(self, **pick_prompt_changes(changes))

    def to_draft(self) -> PromptDraft:
        """Strip identity, keeping the user-editable fields."""
        return PromptDraft(
            title=self.title,
            content=self.content,
            category=self.category,
            tags=list(self.tags),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "tags": list(self.tags),
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Prompt':
        """Create from dictionary."""
        return cls(
            id=int(data["id"]),
            title=data["title"],
            content=data["content"],
            category=data["category"],
            tags=list(data.get("tags") or []),
            created_at=parse_timestamp(data["createdAt"]),
        )


@dataclass
class DeletedPrompt:
    """A trashed prompt: a full copy of the prompt plus trash timestamps."""
    id: int
    original_id: int
    title: str
    content: str
    category: str
    tags: List[str]
    created_at: datetime
    deleted_at: datetime
    expiry_date: datetime

    @classmethod
    def from_prompt(
        cls,
        trash_id: int,
        prompt: Prompt,
        deleted_at: datetime,
        retention_days: int = 7
    ) -> 'DeletedPrompt':
        """Build a trash entry for ``prompt`` deleted at ``deleted_at``."""
        return cls(
            id=trash_id,
            original_id=prompt.id,
            title=prompt.title,
            content=prompt.content,
            category=prompt.category,
            tags=list(prompt.tags),
            created_at=prompt.created_at,
            deleted_at=deleted_at,
            expiry_date=deleted_at + timedelta(days=retention_days),
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check whether the retention period has passed."""
        return (now or utcnow()) >= self.expiry_date

    def to_draft(self) -> PromptDraft:
        """Fields needed to recreate the prompt."""
        return PromptDraft(
            title=self.title,
            content=self.content,
            category=self.category,
            tags=list(self.tags),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "originalId": self.original_id,
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "tags": list(self.tags),
            "createdAt": format_timestamp(self.created_at),
            "deletedAt": format_timestamp(self.deleted_at),
            "expiryDate": format_timestamp(self.expiry_date),
        }


@dataclass
class User:
    """
    Application user. ``password`` is either legacy plaintext or a
    ``hash.salt`` scrypt digest.
    """
    id: int
    username: str
    password: str

    def to_public_dict(self) -> Dict[str, Any]:
        """Convert to dictionary without the password."""
        return {"id": self.id, "username": self.username}
