"""
Prompt endpoints.
Handles prompt listing, CRUD and moving prompts to the trash.
"""
import time
import logging
from typing import List

from fastapi import APIRouter, Depends, Response

from app.api.deps import get_app_settings, get_current_user, get_storage
from app.core.config import Settings
from app.core.exceptions import PromptNotFoundException, ValidationException
from app.core.logging import (
    log_event,
    log_operation_start,
    log_operation_complete,
    log_operation_error,
)
from app.models.domain import PromptDraft, User
from app.models.schemas import PromptCreate, PromptResponse, PromptUpdate
from app.storage.base import PromptStorage

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_category(category: str, settings: Settings) -> None:
    if not settings.is_valid_category(category):
        raise ValidationException(
            f"Unknown category '{category}'. "
            f"Must be one of: {', '.join(settings.prompt_categories)}"
        )


@router.get("/prompts", response_model=List[PromptResponse])
async def list_prompts(
    user: User = Depends(get_current_user),
    storage: PromptStorage = Depends(get_storage)
):
    """Get all active prompts with full content."""
    start_time = time.time()
    prompts = await storage.get_prompts()

    log_event(
        level="DEBUG",
        logger="app.api.endpoints.prompts",
        function="list_prompts",
        operation="list_prompts",
        event="operation_complete",
        message="Successfully retrieved prompts",
        context={
            "prompt_count": len(prompts),
            "backend": storage.backend_name,
            "duration_seconds": time.time() - start_time
        }
    )
    return [PromptResponse.from_domain(prompt) for prompt in prompts]


@router.get("/prompts/{prompt_id}", response_model=PromptResponse)
async def get_prompt(
    prompt_id: int,
    user: User = Depends(get_current_user),
    storage: PromptStorage = Depends(get_storage)
):
    """Get a single prompt."""
    prompt = await storage.get_prompt(prompt_id)
    if prompt is None:
        raise PromptNotFoundException(prompt_id)
    return PromptResponse.from_domain(prompt)


@router.post("/prompts", response_model=PromptResponse, status_code=201)
async def create_prompt(
    payload: PromptCreate,
    user: User = Depends(get_current_user),
    storage: PromptStorage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings)
):
    """Create a prompt."""
    _check_category(payload.category, settings)

    start_time = time.time()
    operation = "create_prompt"
    log_operation_start(
        logger="app.api.endpoints.prompts",
        function="create_prompt",
        operation=operation,
        message="Creating prompt",
        context={
            "title": payload.title[:100],
            "content_length": len(payload.content),
            "category": payload.category,
        }
    )

    try:
        prompt = await storage.create_prompt(PromptDraft(
            title=payload.title,
            content=payload.content,
            category=payload.category,
            tags=payload.tags,
        ))
    except Exception as e:
        log_operation_error(
            logger="app.api.endpoints.prompts",
            function="create_prompt",
            operation=operation,
            error=e,
            message="Error creating prompt",
            context={"duration_seconds": time.time() - start_time}
        )
        raise

    log_operation_complete(
        logger="app.api.endpoints.prompts",
        function="create_prompt",
        operation=operation,
        message="Prompt created",
        context={"prompt_id": prompt.id},
        duration=time.time() - start_time
    )
    return PromptResponse.from_domain(prompt)


@router.put("/prompts/{prompt_id}", response_model=PromptResponse)
async def update_prompt(
    prompt_id: int,
    payload: PromptUpdate,
    user: User = Depends(get_current_user),
    storage: PromptStorage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings)
):
    """Update only the supplied fields of a prompt."""
    changes = payload.model_dump(exclude_none=True)
    if "category" in changes:
        _check_category(changes["category"], settings)

    prompt = await storage.update_prompt(prompt_id, changes)
    if prompt is None:
        raise PromptNotFoundException(prompt_id)

    logger.info(f"Updated prompt {prompt_id}: {sorted(changes)}")
    return PromptResponse.from_domain(prompt)


@router.delete("/prompts/{prompt_id}", status_code=204, response_class=Response)
async def delete_prompt(
    prompt_id: int,
    user: User = Depends(get_current_user),
    storage: PromptStorage = Depends(get_storage)
):
    """Move a prompt to the trash."""
    if not await storage.move_to_trash(prompt_id):
        raise PromptNotFoundException(prompt_id)

    logger.info(f"Moved prompt {prompt_id} to trash")
    return Response(status_code=204)
