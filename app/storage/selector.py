"""
Pick the storage backend once at startup.
"""
import logging
from typing import Optional

from app.core.config import Settings
from app.core.logging import log_operation_error
from app.storage.base import PromptStorage
from app.storage.local_storage import LocalPromptStorage
from app.storage.notion_storage import ClientFactory, NotionPromptStorage, default_client_factory

logger = logging.getLogger(__name__)


async def build_storage(
    settings: Settings,
    client_factory: Optional[ClientFactory] = None
) -> PromptStorage:
    """
    Build the Notion store when both credentials are configured, otherwise
    the local store. Any error while setting up Notion falls back to local.
    """
    if not settings.notion_configured:
        logger.info("Notion credentials not configured, using local storage")
        return LocalPromptStorage(settings)

    factory = client_factory or default_client_factory
    try:
        logger.info("Notion credentials found, initializing Notion storage")
        client = factory(settings.notion_api_token)
        storage = NotionPromptStorage(
            settings,
            client=client,
            database_id=settings.notion_database_id,
            client_factory=factory,
        )
        await storage.initialize()
        return storage
    except Exception as e:
        log_operation_error(
            logger=__name__,
            function="build_storage",
            operation="storage_selection",
            error=e,
            message="Failed to initialize Notion storage, falling back to local storage",
        )
        return LocalPromptStorage(settings)
