"""
Unit tests for the local JSON-file prompt store.
"""
import asyncio
import json
from dataclasses import replace
from datetime import timedelta

import pytest
from filelock import Timeout

from app.models.domain import PromptDraft, utcnow
from app.repositories.prompt_file_repository import PromptFileRepository
from app.storage.local_storage import LocalPromptStorage


def draft(title: str = "Haiku", content: str = "Write a haiku", **overrides) -> PromptDraft:
    fields = dict(title=title, content=content, category="creative", tags=["writing"])
    fields.update(overrides)
    return PromptDraft(**fields)


class BusyLock:
    """Stands in for a lock file another process never releases."""

    def __enter__(self):
        raise Timeout("prompts.lock")

    def __exit__(self, *exc_info):
        return False


class TestPromptCrud:
    """Test create, read, update and delete."""

    async def test_create_assigns_sequential_ids(self, local_storage):
        first = await local_storage.create_prompt(draft("One"))
        second = await local_storage.create_prompt(draft("Two"))

        assert (first.id, second.id) == (1, 2)
        assert first.created_at.tzinfo is not None

    async def test_get_prompt(self, local_storage):
        created = await local_storage.create_prompt(draft())

        assert await local_storage.get_prompt(created.id) == created
        assert await local_storage.get_prompt(999) is None

    async def test_long_content_is_stored_whole(self, local_storage):
        """Test the local store never chunks content."""
        content = "x" * 5000
        created = await local_storage.create_prompt(draft(content=content))

        fetched = await local_storage.get_prompt(created.id)

        assert fetched.content == content

    async def test_update_merges_supplied_fields(self, local_storage):
        """Test only supplied fields change; id and createdAt stay."""
        created = await local_storage.create_prompt(draft())

        updated = await local_storage.update_prompt(created.id, {"title": "Renamed"})

        assert updated.title == "Renamed"
        assert updated.content == created.content
        assert updated.tags == created.tags
        assert updated.id == created.id
        assert updated.created_at == created.created_at

    async def test_update_unknown_prompt(self, local_storage):
        assert await local_storage.update_prompt(42, {"title": "x"}) is None

    async def test_delete_prompt(self, local_storage):
        created = await local_storage.create_prompt(draft())

        assert await local_storage.delete_prompt(created.id) is True
        assert await local_storage.get_prompt(created.id) is None
        assert await local_storage.delete_prompt(created.id) is False

    async def test_concurrent_creates_get_distinct_ids(self, local_storage):
        prompts = await asyncio.gather(*(
            local_storage.create_prompt(draft(f"P{i}")) for i in range(10)
        ))

        assert sorted(prompt.id for prompt in prompts) == list(range(1, 11))
        assert len(await local_storage.get_prompts()) == 10


class TestPersistence:
    """Test the prompts file."""

    async def test_file_is_created_empty(self, settings):
        LocalPromptStorage(settings)

        assert json.loads(settings.data_file.read_text(encoding="utf-8")) == {"prompts": []}

    async def test_prompts_survive_restart_but_trash_does_not(self, settings):
        storage = LocalPromptStorage(settings)
        kept = await storage.create_prompt(draft("Kept"))
        trashed = await storage.create_prompt(draft("Trashed"))
        await storage.move_to_trash(trashed.id)

        reloaded = LocalPromptStorage(settings)

        assert [prompt.title for prompt in await reloaded.get_prompts()] == ["Kept"]
        assert (await reloaded.get_prompt(kept.id)).created_at == kept.created_at
        assert await reloaded.get_deleted_prompts() == []

    async def test_id_counter_continues_after_restart(self, settings):
        storage = LocalPromptStorage(settings)
        await storage.create_prompt(draft("One"))
        await storage.create_prompt(draft("Two"))

        reloaded = LocalPromptStorage(settings)
        created = await reloaded.create_prompt(draft("Three"))

        assert created.id == 3

    async def test_file_layout(self, local_storage, settings):
        await local_storage.create_prompt(draft(tags=["gpt", "code"]))

        data = json.loads(settings.data_file.read_text(encoding="utf-8"))

        record = data["prompts"][0]
        assert set(record) == {"id", "title", "content", "category", "tags", "createdAt"}
        assert record["tags"] == ["gpt", "code"]

    async def test_reads_javascript_timestamps(self, settings):
        settings.data_file.parent.mkdir(parents=True, exist_ok=True)
        settings.data_file.write_text(json.dumps({"prompts": [{
            "id": 7,
            "title": "Imported",
            "content": "c",
            "category": "other",
            "tags": [],
            "createdAt": "2024-05-01T08:30:00.000Z",
        }]}), encoding="utf-8")

        storage = LocalPromptStorage(settings)
        prompt = await storage.get_prompt(7)

        assert prompt.title == "Imported"
        assert prompt.created_at.year == 2024

    async def test_malformed_file_is_reset(self, settings):
        settings.data_file.parent.mkdir(parents=True, exist_ok=True)
        settings.data_file.write_text("{not json", encoding="utf-8")

        storage = LocalPromptStorage(settings)

        assert await storage.get_prompts() == []
        assert json.loads(settings.data_file.read_text(encoding="utf-8")) == {"prompts": []}

    async def test_unreadable_records_are_skipped(self, settings):
        settings.data_file.parent.mkdir(parents=True, exist_ok=True)
        settings.data_file.write_text(json.dumps({"prompts": [
            {"id": 1, "title": "Good", "content": "c", "category": "other",
             "tags": [], "createdAt": "2025-01-01T00:00:00+00:00"},
            {"id": 2, "title": "Missing fields"},
        ]}), encoding="utf-8")

        storage = LocalPromptStorage(settings)

        assert [prompt.id for prompt in await storage.get_prompts()] == [1]

    async def test_unusable_data_directory_starts_empty(self, settings, tmp_path):
        """Test a data path below a regular file gives a working, empty store."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        blocked = settings.model_copy(update={"data_file": blocker / "prompts.json"})

        storage = LocalPromptStorage(blocked)

        assert await storage.get_prompts() == []
        created = await storage.create_prompt(draft())
        assert await storage.get_prompt(created.id) == created
        assert blocker.read_text(encoding="utf-8") == "not a directory"

    async def test_locked_file_at_startup_starts_empty(self, settings):
        settings.data_file.parent.mkdir(parents=True, exist_ok=True)
        settings.data_file.write_text(json.dumps({"prompts": [
            {"id": 1, "title": "On disk", "content": "c", "category": "other",
             "tags": [], "createdAt": "2025-01-01T00:00:00+00:00"},
        ]}), encoding="utf-8")
        repository = PromptFileRepository(settings.data_file)
        repository.lock = BusyLock()

        storage = LocalPromptStorage(settings, repository=repository)

        assert await storage.get_prompts() == []

    async def test_failed_write_keeps_memory_ahead_of_disk(self, local_storage, settings, monkeypatch):
        """Test a mutation succeeds when the file write fails and the next write catches up."""
        monkeypatch.setattr(local_storage.repository, "save", lambda prompts: False)

        first = await local_storage.create_prompt(draft("First"))

        assert await local_storage.get_prompt(first.id) == first
        assert json.loads(settings.data_file.read_text(encoding="utf-8")) == {"prompts": []}

        monkeypatch.undo()
        await local_storage.create_prompt(draft("Second"))

        data = json.loads(settings.data_file.read_text(encoding="utf-8"))
        assert [record["title"] for record in data["prompts"]] == ["First", "Second"]


class TestTrash:
    """Test trash transitions."""

    async def test_move_to_trash(self, local_storage):
        created = await local_storage.create_prompt(draft())

        assert await local_storage.move_to_trash(created.id) is True

        assert await local_storage.get_prompt(created.id) is None
        [entry] = await local_storage.get_deleted_prompts()
        assert entry.original_id == created.id
        assert entry.content == created.content

    async def test_move_unknown_prompt(self, local_storage):
        assert await local_storage.move_to_trash(99) is False
        assert await local_storage.get_deleted_prompts() == []

    async def test_restore_reuses_original_id(self, local_storage):
        created = await local_storage.create_prompt(draft())
        await local_storage.move_to_trash(created.id)
        [entry] = await local_storage.get_deleted_prompts()

        assert await local_storage.restore_from_trash(entry.id) is True

        restored = await local_storage.get_prompt(created.id)
        assert restored.title == created.title
        assert restored.created_at == created.created_at
        assert await local_storage.get_deleted_prompts() == []

    async def test_restore_twice_fails(self, local_storage):
        created = await local_storage.create_prompt(draft())
        await local_storage.move_to_trash(created.id)
        [entry] = await local_storage.get_deleted_prompts()

        assert await local_storage.restore_from_trash(entry.id) is True
        assert await local_storage.restore_from_trash(entry.id) is False

    async def test_restore_allocates_new_id_when_original_taken(self, local_storage):
        created = await local_storage.create_prompt(draft("First"))
        await local_storage.move_to_trash(created.id)
        [entry] = await local_storage.get_deleted_prompts()
        local_storage._prompts[created.id] = replace(created, title="Squatter")

        assert await local_storage.restore_from_trash(entry.id) is True

        by_title = {prompt.title: prompt for prompt in await local_storage.get_prompts()}
        assert by_title["Squatter"].id == created.id
        assert by_title["First"].id == 2
        assert by_title["First"].created_at == created.created_at

    async def test_delete_from_trash_and_empty(self, local_storage):
        for title in ("A", "B", "C"):
            created = await local_storage.create_prompt(draft(title))
            await local_storage.move_to_trash(created.id)
        entries = await local_storage.get_deleted_prompts()

        assert await local_storage.delete_from_trash(entries[0].id) is True
        assert await local_storage.delete_from_trash(entries[0].id) is False
        assert len(await local_storage.get_deleted_prompts()) == 2

        assert await local_storage.empty_trash() is True
        assert await local_storage.get_deleted_prompts() == []


class TestUsersAndSettings:
    """Test the process-local users and settings."""

    async def test_admin_account_is_seeded(self, local_storage):
        admin = await local_storage.get_user_by_username("admin")

        assert admin is not None
        assert admin.id == 1

    async def test_create_and_update_user(self, local_storage):
        user = await local_storage.create_user({"username": "alice", "password": "pw"})

        assert user.id == 2
        assert await local_storage.get_user(user.id) == user

        updated = await local_storage.update_user(user.id, "alice2", "pw2")
        assert updated.username == "alice2"
        assert await local_storage.get_user_by_username("alice") is None

    async def test_update_unknown_user(self, local_storage):
        assert await local_storage.update_user(99, "x", "y") is None

    async def test_settings(self, local_storage):
        assert await local_storage.get_setting("theme") is None

        await local_storage.set_setting("theme", "dark")

        assert await local_storage.get_setting("theme") == "dark"

    async def test_empty_setting_value_is_kept(self, local_storage):
        await local_storage.set_setting("suffix", "")

        assert await local_storage.get_setting("suffix") == ""

    async def test_unset_notion_credentials_are_not_found(self, local_storage):
        assert await local_storage.get_setting("notionApiToken") is None
        assert await local_storage.get_setting("notionDatabaseId") is None

    async def test_update_notion_settings_only_caches(self, local_storage):
        await local_storage.update_notion_settings("secret_x", "db-1")

        assert await local_storage.get_setting("notionApiToken") == "secret_x"
        assert await local_storage.get_setting("notionDatabaseId") == "db-1"
        assert local_storage.backend_name == "local"


@pytest.mark.parametrize("days_ago, expected_removed", [(8, 1), (3, 0)])
async def test_purge_expired_trash(local_storage, days_ago, expected_removed):
    created = await local_storage.create_prompt(draft())
    await local_storage.move_to_trash(created.id)

    removed = await local_storage.purge_expired_trash(now=utcnow() + timedelta(days=days_ago))

    assert removed == expected_removed
