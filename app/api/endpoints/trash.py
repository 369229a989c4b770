"""
Trash endpoints: list, restore, delete permanently and purge expired entries.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Response

from app.api.deps import get_current_user, get_storage
from app.core.exceptions import DeletedPromptNotFoundException
from app.models.domain import User
from app.models.schemas import DeletedPromptResponse, MessageResponse, PurgeResponse
from app.storage.base import PromptStorage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/trash", response_model=List[DeletedPromptResponse])
async def list_trash(
    user: User = Depends(get_current_user),
    storage: PromptStorage = Depends(get_storage)
):
    """Get all trash entries."""
    entries = await storage.get_deleted_prompts()
    return [DeletedPromptResponse.from_domain(entry) for entry in entries]


# Declared before /trash/{deleted_id} so "expired" is not read as an id
@router.delete("/trash/expired", response_model=PurgeResponse)
async def purge_expired_trash(
    user: User = Depends(get_current_user),
    storage: PromptStorage = Depends(get_storage)
):
    """Remove trash entries past their expiry date."""
    removed = await storage.purge_expired_trash()
    logger.info(f"Purged {removed} expired trash entries")
    return PurgeResponse(message=f"Removed {removed} expired prompts", removed=removed)


@router.post("/trash/{deleted_id}/restore", response_model=MessageResponse)
async def restore_prompt(
    deleted_id: int,
    user: User = Depends(get_current_user),
    storage: PromptStorage = Depends(get_storage)
):
    """Turn a trash entry back into an active prompt."""
    if not await storage.restore_from_trash(deleted_id):
        raise DeletedPromptNotFoundException(deleted_id)

    logger.info(f"Restored trash entry {deleted_id}")
    return MessageResponse(message="Prompt restored")


@router.delete("/trash/{deleted_id}", status_code=204, response_class=Response)
async def delete_from_trash(
    deleted_id: int,
    user: User = Depends(get_current_user),
    storage: PromptStorage = Depends(get_storage)
):
    """Permanently delete one trash entry."""
    if not await storage.delete_from_trash(deleted_id):
        raise DeletedPromptNotFoundException(deleted_id)
    return Response(status_code=204)


@router.delete("/trash", response_model=MessageResponse)
async def empty_trash(
    user: User = Depends(get_current_user),
    storage: PromptStorage = Depends(get_storage)
):
    """Permanently delete every trash entry."""
    await storage.empty_trash()
    logger.info("Trash emptied")
    return MessageResponse(message="Trash emptied")
