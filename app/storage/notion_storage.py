"""
Prompt store backed by a Notion database.

Notion rich text fields hold about 2000 characters, so long content is
written as a main page holding the first chunk plus one extra page per
overflow chunk. Overflow pages live in the same database and point back at
their parent through ``parentPromptId``; the parent records how many there
are in ``contentPartCount``. Reads always return the reassembled content.

Notion page ids are UUID strings. The rest of the app sees small integers,
mapped in memory by ``IdentifierMap``. Users, settings and trash entries are
process-local.
"""
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from notion_client import AsyncClient
from notion_client.helpers import async_collect_paginated_api

from app.core.config import Settings
from app.core.exceptions import PromptCreationException
from app.core.logging import log_event, log_operation_error, operation_logger
from app.models.domain import (
    Prompt,
    PromptDraft,
    format_timestamp,
    parse_timestamp,
    pick_prompt_changes,
    utcnow,
)
from app.storage import chunking
from app.storage.base import PromptStorage
from app.storage.id_mapping import IdentifierMap

logger = logging.getLogger(__name__)

BACKEND = "Notion"

# Database property names
DEFAULT_TITLE_PROPERTY = "title"
CONTENT_PROPERTY = "content"
CATEGORY_PROPERTY = "category"
TAGS_PROPERTY = "tags"
CREATED_AT_PROPERTY = "createdAt"
PART_COUNT_PROPERTY = "contentPartCount"
PART_INDEX_PROPERTY = "partIndex"
PARENT_PROPERTY = "parentPromptId"

KNOWN_OPTION_COLORS = {
    "creative": "blue",
    "academic": "green",
    "business": "orange",
    "technical": "gray",
    "other": "default",
    "gpt": "green",
    "writing": "blue",
    "code": "gray",
}
OPTION_PALETTE = ["purple", "pink", "yellow", "brown", "red", "blue", "green", "orange"]

# Overflow pages carry their parent's UUID; top-level prompts carry nothing
TOP_LEVEL_FILTER = {
    "or": [
        {"property": PARENT_PROPERTY, "rich_text": {"is_empty": True}},
        {"property": PARENT_PROPERTY, "rich_text": {"does_not_contain": "-"}},
    ]
}

ClientFactory = Callable[[str], Any]


def default_client_factory(api_token: str) -> AsyncClient:
    """Build a Notion API client for ``api_token``."""
    return AsyncClient(auth=api_token)


def _select_options(names: Sequence[str]) -> List[Dict[str, str]]:
    options = []
    for index, name in enumerate(names):
        color = KNOWN_OPTION_COLORS.get(name, OPTION_PALETTE[index % len(OPTION_PALETTE)])
        options.append({"name": name, "color": color})
    return options


def required_properties(categories: Sequence[str], tags: Sequence[str]) -> Dict[str, Dict[str, Any]]:
    """Property schema the store needs in the database, keyed by property name."""
    return {
        CONTENT_PROPERTY: {"rich_text": {}},
        CATEGORY_PROPERTY: {"select": {"options": _select_options(categories)}},
        TAGS_PROPERTY: {"multi_select": {"options": _select_options(tags)}},
        CREATED_AT_PROPERTY: {"date": {}},
        PART_COUNT_PROPERTY: {"number": {}},
        PART_INDEX_PROPERTY: {"number": {}},
        PARENT_PROPERTY: {"rich_text": {}},
    }


def looks_like_native_id(value: str) -> bool:
    """Notion ids are dashed UUIDs; matches the ``does_not_contain "-"`` query heuristic."""
    return "-" in value


def _rich_text(value: str) -> Dict[str, Any]:
    return {"rich_text": [{"text": {"content": value}}]}


def _title_text(value: str) -> Dict[str, Any]:
    return {"title": [{"text": {"content": value}}]}


def _plain_text(items: Optional[List[Dict[str, Any]]]) -> str:
    parts = []
    for item in items or []:
        if not item:
            continue
        text = item.get("plain_text")
        if text is None:
            text = (item.get("text") or {}).get("content", "")
        parts.append(text)
    return "".join(parts)


def _is_archived(page: Mapping[str, Any]) -> bool:
    return bool(page.get("archived") or page.get("in_trash"))


def _property(page: Mapping[str, Any], name: str) -> Dict[str, Any]:
    return (page.get("properties") or {}).get(name) or {}


def _parent_of(page: Mapping[str, Any]) -> str:
    return _plain_text(_property(page, PARENT_PROPERTY).get("rich_text"))


def _is_part(page: Mapping[str, Any]) -> bool:
    return looks_like_native_id(_parent_of(page))


def _part_index(page: Mapping[str, Any]) -> float:
    number = _property(page, PART_INDEX_PROPERTY).get("number")
    return number if number is not None else 0


class NotionPromptStorage(PromptStorage):
    """Prompt store on a Notion database with chunked content."""

    backend_name = "notion"

    def __init__(
        self,
        settings: Settings,
        client: Any,
        database_id: str,
        client_factory: ClientFactory = default_client_factory,
    ):
        """
        Args:
            settings: Application settings (limits, taxonomy, admin account)
            client: Notion client exposing ``databases`` and ``pages`` endpoints
            database_id: Notion database holding prompts and their parts
            client_factory: Builds a new client when credentials change
        """
        super().__init__(settings)
        self.client = client
        self.database_id = database_id
        self.client_factory = client_factory
        self.title_property = DEFAULT_TITLE_PROPERTY
        self._ids = IdentifierMap()
        # Overflow chunks by integer prompt id; a cache, the pages are authoritative
        self._part_cache: Dict[int, List[str]] = {}
        self._cache_notion_settings(settings.notion_api_token or "", database_id)
        logger.info(f"NotionPromptStorage initialized with database ID: {database_id}")

    # Schema

    async def initialize(self) -> None:
        """
        Add any missing properties to the database schema.

        Best effort: an error is logged and swallowed, since a database that
        already has a compatible schema still works.
        """
        try:
            database = await self.client.databases.retrieve(database_id=self.database_id)
            existing = database.get("properties") or {}
            self.title_property = self._find_title_property(existing)

            required = required_properties(
                self.settings.prompt_categories,
                self.settings.default_tags,
            )
            missing = {name: spec for name, spec in required.items() if name not in existing}

            if not missing:
                logger.info("Notion database schema is up-to-date")
                return

            log_event(
                level="INFO",
                logger=__name__,
                function="initialize",
                operation="notion_schema_reconcile",
                event="schema_update",
                message="Updating Notion database schema with missing properties",
                context={"database_id": self.database_id, "missing": sorted(missing)}
            )
            await self.client.databases.update(
                database_id=self.database_id,
                properties=missing,
            )
            logger.info("Notion database schema updated successfully")
        except Exception as e:
            log_operation_error(
                logger=__name__,
                function="initialize",
                operation="notion_schema_reconcile",
                error=e,
                message="Error initializing Notion database schema",
                context={"database_id": self.database_id}
            )

    @staticmethod
    def _find_title_property(properties: Mapping[str, Any]) -> str:
        for name, spec in properties.items():
            if (spec or {}).get("type") == "title":
                return name
        return DEFAULT_TITLE_PROPERTY

    # Page <-> Prompt

    def _read_title(self, page: Mapping[str, Any]) -> str:
        prop = _property(page, self.title_property)
        if "title" not in prop:
            for candidate in (page.get("properties") or {}).values():
                if isinstance((candidate or {}).get("title"), list):
                    prop = candidate
                    break
        return _plain_text(prop.get("title")) or "Untitled"

    def _read_created_at(self, page: Mapping[str, Any]):
        start = (_property(page, CREATED_AT_PROPERTY).get("date") or {}).get("start")
        raw = start or page.get("created_time")
        if raw:
            try:
                return parse_timestamp(raw)
            except ValueError:
                logger.warning(f"Unparseable createdAt '{raw}' on page {page.get('id')}")
        return utcnow()

    def _read_page(self, page: Mapping[str, Any]) -> Tuple[Prompt, Optional[int]]:
        """
        Map a top-level page to a Prompt holding only the main segment.

        Returns:
            (prompt, part_count); part_count is None when the page has no count
        """
        prompt_id = self._ids.get_or_assign(page["id"])

        category = (_property(page, CATEGORY_PROPERTY).get("select") or {}).get("name") or "other"
        tags = [
            option["name"]
            for option in _property(page, TAGS_PROPERTY).get("multi_select") or []
            if option and option.get("name")
        ]
        part_count = _property(page, PART_COUNT_PROPERTY).get("number")

        prompt = Prompt(
            id=prompt_id,
            title=self._read_title(page),
            content=_plain_text(_property(page, CONTENT_PROPERTY).get("rich_text")),
            category=category,
            tags=tags,
            created_at=self._read_created_at(page),
        )
        return prompt, (int(part_count) if part_count is not None else None)

    async def _load_parts(self, native_id: str) -> List[str]:
        """Fetch overflow chunks for ``native_id`` in part-index order."""
        pages = await self._query(
            filter={"property": PARENT_PROPERTY, "rich_text": {"equals": native_id}},
            sorts=[{"property": PART_INDEX_PROPERTY, "direction": "ascending"}],
        )
        # Sort again locally; order must not depend on the backend
        pages = sorted(
            (page for page in pages if not _is_archived(page) and _parent_of(page) == native_id),
            key=_part_index,
        )
        return [_plain_text(_property(page, CONTENT_PROPERTY).get("rich_text")) for page in pages]

    async def _assemble(self, prompt: Prompt, native_id: str, part_count: Optional[int]) -> Prompt:
        """Attach overflow chunks to a prompt read from its main page."""
        if part_count == 0:
            self._part_cache.pop(prompt.id, None)
            return prompt

        cached = self._part_cache.get(prompt.id)
        if cached is not None and part_count is not None and len(cached) == part_count:
            parts = cached
        else:
            parts = await self._load_parts(native_id)
            if part_count is not None and len(parts) != part_count:
                logger.warning(
                    f"Prompt {prompt.id} expects {part_count} content parts, found {len(parts)}"
                )
            if parts:
                self._part_cache[prompt.id] = parts
            else:
                self._part_cache.pop(prompt.id, None)

        if not parts:
            return prompt
        return replace(prompt, content=chunking.join(prompt.content, parts))

    # Notion calls

    async def _query(self, **kwargs) -> List[Dict[str, Any]]:
        return await async_collect_paginated_api(
            self.client.databases.query,
            database_id=self.database_id,
            **kwargs
        )

    def _limit_title(self, title: str) -> str:
        limit = self.settings.title_max_length
        return title[:limit] + "..." if len(title) > limit else title

    def _part_title(self, title: str, index: int) -> str:
        limit = self.settings.part_title_max_length
        if len(title) > limit:
            return f"{title[:limit]}... - Part {index}"
        return f"{title} - Part {index}"

    async def _write_parts(self, native_id: str, title: str, parts: Sequence[str]) -> None:
        """Create one page per overflow chunk, numbered from 1."""
        for index, part in enumerate(parts, start=1):
            child = await self.client.pages.create(
                parent={"database_id": self.database_id},
                properties={
                    self.title_property: _title_text(self._part_title(title, index)),
                    CONTENT_PROPERTY: _rich_text(part),
                    PART_INDEX_PROPERTY: {"number": index},
                    PARENT_PROPERTY: _rich_text(native_id),
                },
            )
            logger.debug(f"Created content part {index} for {native_id}: {child.get('id')}")

    async def _archive_parts(self, native_id: str) -> int:
        """Archive every overflow page of ``native_id``. Returns the count."""
        pages = await self._query(
            filter={"property": PARENT_PROPERTY, "rich_text": {"equals": native_id}},
        )
        archived = 0
        for page in pages:
            if _is_archived(page):
                continue
            await self.client.pages.update(page_id=page["id"], archived=True)
            archived += 1
        if archived:
            logger.info(f"Archived {archived} old content parts of {native_id}")
        return archived

    # Prompts

    async def get_prompts(self) -> List[Prompt]:
        try:
            pages = [
                page for page in await self._query(filter=TOP_LEVEL_FILTER)
                if not _is_archived(page) and not _is_part(page)
            ]
            # Part queries run one prompt at a time
            prompts = []
            for page in pages:
                prompt, part_count = self._read_page(page)
                prompts.append(await self._assemble(prompt, page["id"], part_count))
            return prompts
        except Exception as e:
            log_operation_error(
                logger=__name__,
                function="get_prompts",
                operation="notion_get_prompts",
                error=e,
                message="Error fetching prompts from Notion",
            )
            return []

    async def get_prompt(self, prompt_id: int) -> Optional[Prompt]:
        native_id = self._ids.lookup_native(prompt_id)
        if native_id is None:
            logger.warning(f"No Notion page mapped to prompt id {prompt_id}")
            return None

        try:
            page = await self.client.pages.retrieve(page_id=native_id)
            if _is_archived(page) or _is_part(page):
                return None
            prompt, part_count = self._read_page(page)
            return await self._assemble(prompt, native_id, part_count)
        except Exception as e:
            log_operation_error(
                logger=__name__,
                function="get_prompt",
                operation="notion_get_prompt",
                error=e,
                message=f"Error fetching prompt {prompt_id} from Notion",
                context={"prompt_id": prompt_id, "page_id": native_id}
            )
            return None

    @operation_logger("notion_create_prompt")
    async def create_prompt(self, draft: PromptDraft) -> Prompt:
        """
        Write the main page, then one page per overflow chunk.

        If a chunk cannot be written the main page is archived again, so a
        prompt never exists with part of its content missing.

        Raises:
            PromptCreationException: If any Notion write fails
        """
        main_content, parts = chunking.split(draft.content, self.settings.content_chunk_size)
        if chunking.needs_split(draft.content, self.settings.content_chunk_size):
            logger.info(
                f"Long content detected: {len(draft.content)} characters, "
                f"split into {len(parts) + 1} parts"
            )

        created_at = utcnow()
        properties = {
            self.title_property: _title_text(self._limit_title(draft.title)),
            CONTENT_PROPERTY: _rich_text(main_content),
            PART_COUNT_PROPERTY: {"number": len(parts)},
            CATEGORY_PROPERTY: {"select": {"name": draft.category}},
            TAGS_PROPERTY: {"multi_select": [{"name": tag} for tag in draft.tags]},
            CREATED_AT_PROPERTY: {"date": {"start": format_timestamp(created_at)}},
        }

        try:
            page = await self.client.pages.create(
                parent={"database_id": self.database_id},
                properties=properties,
            )
        except Exception as e:
            raise PromptCreationException(BACKEND, str(e)) from e

        native_id = page["id"]
        try:
            await self._write_parts(native_id, draft.title, parts)
        except Exception as e:
            logger.error(f"Error creating content parts for {native_id}, rolling back: {e}")
            await self._archive_quietly(native_id)
            raise PromptCreationException(BACKEND, f"content part write failed: {e}") from e

        prompt_id = self._ids.assign(native_id)
        if parts:
            self._part_cache[prompt_id] = list(parts)

        return Prompt(
            id=prompt_id,
            title=draft.title,
            content=draft.content,
            category=draft.category,
            tags=list(draft.tags),
            created_at=created_at,
        )

    async def _archive_quietly(self, native_id: str) -> None:
        try:
            await self.client.pages.update(page_id=native_id, archived=True)
            await self._archive_parts(native_id)
        except Exception as e:
            logger.error(f"Could not archive page {native_id}: {e}")

    @operation_logger("notion_update_prompt")
    async def update_prompt(self, prompt_id: int, data: Mapping[str, Any]) -> Optional[Prompt]:
        """
        Merge supplied fields into a prompt.

        A content change archives all existing part pages before new ones are
        written, then updates the main page. The steps are not transactional:
        a failure in between leaves the parts incomplete.
        """
        native_id = self._ids.lookup_native(prompt_id)
        if native_id is None:
            logger.warning(f"No Notion page mapped to prompt id {prompt_id}")
            return None

        existing = await self.get_prompt(prompt_id)
        if existing is None:
            return None

        changes = pick_prompt_changes(data)
        properties: Dict[str, Any] = {}
        new_parts: Optional[List[str]] = None

        try:
            if "title" in changes:
                properties[self.title_property] = _title_text(self._limit_title(changes["title"]))

            if "content" in changes:
                main_content, new_parts = chunking.split(
                    changes["content"],
                    self.settings.content_chunk_size,
                )
                await self._archive_parts(native_id)
                self._part_cache.pop(prompt_id, None)
                await self._write_parts(native_id, changes.get("title", existing.title), new_parts)
                properties[CONTENT_PROPERTY] = _rich_text(main_content)
                properties[PART_COUNT_PROPERTY] = {"number": len(new_parts)}

            if "category" in changes:
                properties[CATEGORY_PROPERTY] = {"select": {"name": changes["category"]}}

            if "tags" in changes:
                properties[TAGS_PROPERTY] = {
                    "multi_select": [{"name": tag} for tag in changes["tags"]]
                }

            if properties:
                await self.client.pages.update(page_id=native_id, properties=properties)
        except Exception as e:
            self._part_cache.pop(prompt_id, None)
            log_operation_error(
                logger=__name__,
                function="update_prompt",
                operation="notion_update_prompt",
                error=e,
                message=f"Error updating prompt {prompt_id} in Notion",
                context={"prompt_id": prompt_id, "page_id": native_id}
            )
            return None

        if new_parts:
            self._part_cache[prompt_id] = list(new_parts)

        return existing.merged(changes)

    async def delete_prompt(self, prompt_id: int) -> bool:
        """Archive the prompt's page (Notion has no hard delete here) and its parts."""
        native_id = self._ids.lookup_native(prompt_id)
        if native_id is None:
            logger.warning(f"No Notion page mapped to prompt id {prompt_id}")
            return False

        try:
            await self.client.pages.update(page_id=native_id, archived=True)
        except Exception as e:
            log_operation_error(
                logger=__name__,
                function="delete_prompt",
                operation="notion_delete_prompt",
                error=e,
                message=f"Error deleting prompt {prompt_id} from Notion",
                context={"prompt_id": prompt_id, "page_id": native_id}
            )
            return False

        self._ids.remove(prompt_id)
        self._part_cache.pop(prompt_id, None)

        try:
            await self._archive_parts(native_id)
        except Exception as e:
            # Orphaned parts are invisible to prompt listings
            logger.warning(f"Could not archive content parts of {native_id}: {e}")
        return True

    # Trash

    async def move_to_trash(self, prompt_id: int) -> bool:
        prompt = await self.get_prompt(prompt_id)
        if prompt is None:
            return False
        if not await self.delete_prompt(prompt_id):
            return False
        self._trash.add(prompt)
        return True

    async def restore_from_trash(self, deleted_id: int) -> bool:
        """Recreate the prompt as a new page with a new id, then drop the entry."""
        entry = self._trash.get(deleted_id)
        if entry is None:
            return False

        try:
            restored = await self.create_prompt(entry.to_draft())
        except PromptCreationException as e:
            logger.error(f"Error restoring trash entry {deleted_id}: {e.message}")
            return False

        self._trash.remove(deleted_id)
        logger.info(f"Restored trash entry {deleted_id} as prompt {restored.id}")
        return True

    # Settings

    async def update_notion_settings(self, api_token: str, database_id: str) -> None:
        """Switch to new credentials and reconcile the schema again."""
        self._cache_notion_settings(api_token, database_id)

        old_client = self.client
        self.client = self.client_factory(api_token)

        if database_id != self.database_id:
            # Ids and cached parts belong to the old database
            self._ids.clear()
            self._part_cache.clear()
        self.database_id = database_id

        if old_client is not self.client:
            await self._close_client(old_client)
        await self.initialize()

    async def close(self) -> None:
        await self._close_client(self.client)

    @staticmethod
    async def _close_client(client: Any) -> None:
        aclose = getattr(client, "aclose", None)
        if aclose is not None:
            await aclose()
