"""
Pydantic models for API request/response validation.

Field names on the wire are camelCase (``createdAt``, ``currentPassword``);
the models accept either form and always respond with camelCase.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.domain import DeletedPrompt, Prompt, User


def _clean_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return None
    cleaned = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


# Response Models

class PromptResponse(BaseModel):
    """Response model for prompt data."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str
    content: str
    category: str
    tags: List[str]
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_domain(cls, prompt: Prompt) -> 'PromptResponse':
        return cls(
            id=prompt.id,
            title=prompt.title,
            content=prompt.content,
            category=prompt.category,
            tags=list(prompt.tags),
            created_at=prompt.created_at,
        )


class DeletedPromptResponse(BaseModel):
    """Response model for a trash entry."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    original_id: int = Field(alias="originalId")
    title: str
    content: str
    category: str
    tags: List[str]
    created_at: datetime = Field(alias="createdAt")
    deleted_at: datetime = Field(alias="deletedAt")
    expiry_date: datetime = Field(alias="expiryDate")

    @classmethod
    def from_domain(cls, entry: DeletedPrompt) -> 'DeletedPromptResponse':
        return cls(
            id=entry.id,
            original_id=entry.original_id,
            title=entry.title,
            content=entry.content,
            category=entry.category,
            tags=list(entry.tags),
            created_at=entry.created_at,
            deleted_at=entry.deleted_at,
            expiry_date=entry.expiry_date,
        )


class UserResponse(BaseModel):
    """Public user data; never carries the password."""
    id: int
    username: str

    @classmethod
    def from_domain(cls, user: User) -> 'UserResponse':
        return cls(**user.to_public_dict())


class SettingResponse(BaseModel):
    """Response model for one setting."""
    key: str
    value: str


class PurgeResponse(BaseModel):
    """Response model for an expired-trash sweep."""
    message: str
    removed: int


class HealthResponse(BaseModel):
    """Response model for the health check."""
    status: str
    storage: str


class ErrorResponse(BaseModel):
    """Response model for errors."""
    error: str
    detail: Optional[str] = None
    status_code: int


class MessageResponse(BaseModel):
    """Generic message response."""
    message: str


# Request Models

class PromptCreate(BaseModel):
    """Request model for creating a prompt. Category is checked by the route."""
    title: str = Field(min_length=1)
    content: str
    category: str = Field(min_length=1)
    tags: List[str] = Field(default_factory=list)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Reject titles made only of whitespace."""
        if not v.strip():
            raise ValueError("Title must not be blank")
        return v

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return _clean_tags(v)


class PromptUpdate(BaseModel):
    """Request model for a partial prompt update. Omitted fields stay unchanged."""
    title: Optional[str] = Field(default=None, min_length=1)
    content: Optional[str] = None
    category: Optional[str] = Field(default=None, min_length=1)
    tags: Optional[List[str]] = None

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_tags(v)


class CredentialsRequest(BaseModel):
    """Request model for login and registration."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class UpdateCredentialsRequest(BaseModel):
    """Request model for changing the logged-in user's name and password."""
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(min_length=3)
    current_password: str = Field(alias="currentPassword", min_length=1)
    new_password: str = Field(alias="newPassword", min_length=6)


class UpdateNotionSettingsRequest(BaseModel):
    """Request model for rotating the Notion credentials."""
    model_config = ConfigDict(populate_by_name=True)

    notion_api_token: str = Field(alias="notionApiToken", min_length=1)
    notion_database_id: str = Field(alias="notionDatabaseId", min_length=1)


class SettingValueRequest(BaseModel):
    """Request model for storing one setting."""
    value: str
