"""
Settings endpoints: key/value settings and Notion credential rotation.
"""
import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user, get_storage
from app.core.exceptions import SettingNotFoundException
from app.models.domain import User
from app.models.schemas import (
    MessageResponse,
    SettingResponse,
    SettingValueRequest,
    UpdateNotionSettingsRequest,
)
from app.storage.base import PromptStorage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/settings/{key}", response_model=SettingResponse)
async def get_setting(
    key: str,
    user: User = Depends(get_current_user),
    storage: PromptStorage = Depends(get_storage)
):
    """Get one setting value."""
    value = await storage.get_setting(key)
    if value is None:
        raise SettingNotFoundException(key)
    return SettingResponse(key=key, value=value)


@router.post("/settings/{key}", response_model=SettingResponse)
async def set_setting(
    key: str,
    payload: SettingValueRequest,
    user: User = Depends(get_current_user),
    storage: PromptStorage = Depends(get_storage)
):
    """Store one setting value."""
    await storage.set_setting(key, payload.value)
    logger.info(f"Setting '{key}' updated")
    return SettingResponse(key=key, value=payload.value)


@router.post("/update-notion-settings", response_model=MessageResponse)
async def update_notion_settings(
    payload: UpdateNotionSettingsRequest,
    user: User = Depends(get_current_user),
    storage: PromptStorage = Depends(get_storage)
):
    """
    Replace the Notion credentials.

    The Notion store reconnects immediately. The local store only keeps the
    values; switching backends takes a restart with the credentials set.
    """
    await storage.update_notion_settings(payload.notion_api_token, payload.notion_database_id)
    logger.info(f"Notion settings updated on {storage.backend_name} storage")

    if storage.backend_name == "notion":
        return MessageResponse(message="Notion settings updated")
    return MessageResponse(message="Notion settings saved; restart to switch to Notion storage")
