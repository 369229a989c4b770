"""
Storage layer exports.

One ``PromptStorage`` is built at startup by ``build_storage`` and shared
by every request.
"""
from app.storage.base import PromptStorage
from app.storage.local_storage import LocalPromptStorage
from app.storage.notion_storage import NotionPromptStorage
from app.storage.selector import build_storage

__all__ = [
    'PromptStorage',
    'LocalPromptStorage',
    'NotionPromptStorage',
    'build_storage',
]
