"""
Pytest configuration and shared fixtures.

Provides isolated settings, both storage backends and an in-memory stand-in
for the Notion API client that understands the filters, sorts and
pagination the Notion store uses.
"""
import copy
import itertools
import uuid
from typing import Any, Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.main import create_app
from app.storage.local_storage import LocalPromptStorage
from app.storage.notion_storage import NotionPromptStorage


# pytest-asyncio is auto-configured via pyproject.toml asyncio_mode="auto"

DATABASE_ID = "db-0000"


class FakeNotionError(Exception):
    """Raised by the fake client for injected failures."""


def _plain(items: Optional[List[Dict[str, Any]]]) -> str:
    return "".join((item.get("text") or {}).get("content", "") for item in items or [])


def _with_plain_text(value: Dict[str, Any]) -> Dict[str, Any]:
    """Add the ``plain_text`` Notion puts on every rich text item in responses."""
    value = copy.deepcopy(value)
    for key in ("title", "rich_text"):
        for item in value.get(key) or []:
            item.setdefault("type", "text")
            item["plain_text"] = (item.get("text") or {}).get("content", "")
    return value


class FakeNotionClient:
    """
    Minimal in-memory Notion database.

    ``fail(method, after=n)`` makes the (n+1)-th call to ``method``
    (``"pages.create"``, ``"pages.update"``, ``"databases.query"``, ...)
    and every call after it raise ``FakeNotionError``.
    """

    def __init__(self, schema: Optional[Dict[str, Any]] = None, page_size: int = 100):
        self.schema: Dict[str, Any] = schema if schema is not None else {
            "Name": {"id": "title", "type": "title", "title": {}},
        }
        self.records: Dict[str, Dict[str, Any]] = {}
        self.page_size = page_size
        self.calls: List[tuple] = []
        self.closed = False
        self._failures: Dict[str, int] = {}
        self._clock = itertools.count()

        self.databases = _Endpoint(self, {
            "retrieve": self._databases_retrieve,
            "update": self._databases_update,
            "query": self._databases_query,
        }, "databases")
        self.pages = _Endpoint(self, {
            "create": self._pages_create,
            "update": self._pages_update,
            "retrieve": self._pages_retrieve,
        }, "pages")

    def fail(self, method: str, after: int = 0) -> None:
        self._failures[method] = after

    def count_calls(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    async def aclose(self) -> None:
        self.closed = True

    def _record(self, method: str, kwargs: Dict[str, Any]) -> None:
        self.calls.append((method, kwargs))
        if method in self._failures:
            if self._failures[method] <= 0:
                raise FakeNotionError(f"{method} failed")
            self._failures[method] -= 1

    # Data helpers for tests

    def text_of(self, page: Dict[str, Any], name: str) -> str:
        prop = page["properties"].get(name) or {}
        return _plain(prop.get("rich_text") or prop.get("title"))

    def live_pages(self) -> List[Dict[str, Any]]:
        return [page for page in self.records.values() if not page["archived"]]

    def parts_of(self, parent_id: str) -> List[Dict[str, Any]]:
        return [
            page for page in self.live_pages()
            if self.text_of(page, "parentPromptId") == parent_id
        ]

    # databases

    async def _databases_retrieve(self, database_id: str, **kwargs):
        return {"object": "database", "id": database_id, "properties": copy.deepcopy(self.schema)}

    async def _databases_update(self, database_id: str, properties: Dict[str, Any], **kwargs):
        for name, spec in properties.items():
            prop_type = next(iter(spec))
            self.schema[name] = {"id": name, "name": name, "type": prop_type, **copy.deepcopy(spec)}
        return await self._databases_retrieve(database_id)

    async def _databases_query(
        self,
        database_id: str,
        filter: Optional[Dict[str, Any]] = None,
        sorts: Optional[List[Dict[str, Any]]] = None,
        start_cursor: Optional[str] = None,
        page_size: Optional[int] = None,
        **kwargs
    ):
        results = [
            page for page in self.records.values()
            if not page["archived"] and (filter is None or self._matches(page, filter))
        ]
        results.sort(key=lambda page: page["_order"])
        for sort in reversed(sorts or []):
            results.sort(
                key=lambda page: self._number(page, sort["property"]),
                reverse=sort.get("direction") == "descending",
            )

        start = int(start_cursor) if start_cursor else 0
        size = page_size or self.page_size
        window = results[start:start + size]
        has_more = start + size < len(results)
        return {
            "object": "list",
            "results": [self._public(page) for page in window],
            "has_more": has_more,
            "next_cursor": str(start + size) if has_more else None,
        }

    def _number(self, page: Dict[str, Any], name: str) -> float:
        value = (page["properties"].get(name) or {}).get("number")
        return value if value is not None else float("inf")

    def _matches(self, page: Dict[str, Any], condition: Dict[str, Any]) -> bool:
        if "or" in condition:
            return any(self._matches(page, sub) for sub in condition["or"])
        if "and" in condition:
            return all(self._matches(page, sub) for sub in condition["and"])

        text = self.text_of(page, condition["property"])
        (op, value), = condition["rich_text"].items()
        if op == "is_empty":
            return text == ""
        if op == "equals":
            return text == value
        if op == "contains":
            return value in text
        if op == "does_not_contain":
            return value not in text
        raise AssertionError(f"Unsupported filter operator: {op}")

    # pages

    async def _pages_create(self, parent: Dict[str, Any], properties: Dict[str, Any], **kwargs):
        page_id = str(uuid.uuid4())
        self.records[page_id] = {
            "object": "page",
            "id": page_id,
            "created_time": "2025-01-01T00:00:00.000Z",
            "archived": False,
            "in_trash": False,
            "parent": parent,
            "properties": {name: _with_plain_text(value) for name, value in properties.items()},
            "_order": next(self._clock),
        }
        return self._public(self.records[page_id])

    async def _pages_update(
        self,
        page_id: str,
        properties: Optional[Dict[str, Any]] = None,
        archived: Optional[bool] = None,
        **kwargs
    ):
        if page_id not in self.records:
            raise FakeNotionError(f"Could not find page with ID: {page_id}")
        page = self.records[page_id]
        if properties:
            for name, value in properties.items():
                page["properties"][name] = _with_plain_text(value)
        if archived is not None:
            page["archived"] = archived
            page["in_trash"] = archived
        return self._public(page)

    async def _pages_retrieve(self, page_id: str, **kwargs):
        if page_id not in self.records:
            raise FakeNotionError(f"Could not find page with ID: {page_id}")
        return self._public(self.records[page_id])

    @staticmethod
    def _public(page: Dict[str, Any]) -> Dict[str, Any]:
        return copy.deepcopy({key: value for key, value in page.items() if not key.startswith("_")})


class _Endpoint:
    """Records each call, applies injected failures, then dispatches."""

    def __init__(self, client: FakeNotionClient, methods: Dict[str, Any], prefix: str):
        self._client = client
        self._methods = methods
        self._prefix = prefix

    def __getattr__(self, name: str):
        handler = self._methods[name]
        method = f"{self._prefix}.{name}"

        async def call(**kwargs):
            self._client._record(method, kwargs)
            return await handler(**kwargs)

        return call


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment and the working directory."""
    return Settings(
        _env_file=None,
        data_file=tmp_path / "data" / "prompts.json",
        log_dir=tmp_path / "logs",
        notion_api_token=None,
        notion_database_id=None,
        session_secret="test-secret",
    )


@pytest.fixture
def notion_settings(settings: Settings) -> Settings:
    return settings.model_copy(update={
        "notion_api_token": "secret_test_token",
        "notion_database_id": DATABASE_ID,
    })


@pytest.fixture
def local_storage(settings: Settings) -> LocalPromptStorage:
    return LocalPromptStorage(settings)


@pytest.fixture
def fake_notion_factory():
    """Build extra fake clients, e.g. with a small page size."""
    return FakeNotionClient


@pytest.fixture
def fake_notion() -> FakeNotionClient:
    return FakeNotionClient()


@pytest.fixture
async def notion_storage(notion_settings: Settings, fake_notion: FakeNotionClient) -> NotionPromptStorage:
    storage = NotionPromptStorage(
        notion_settings,
        client=fake_notion,
        database_id=DATABASE_ID,
        client_factory=lambda token: fake_notion,
    )
    await storage.initialize()
    return storage


@pytest.fixture
async def client(settings: Settings, local_storage: LocalPromptStorage):
    """HTTP client for an app running on the local store, not logged in."""
    app = create_app(settings=settings, storage=local_storage)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
async def auth_client(client: AsyncClient):
    """HTTP client logged in as the seeded admin account."""
    response = await client.post("/api/login", json={"username": "admin", "password": "admin"})
    assert response.status_code == 200
    return client
