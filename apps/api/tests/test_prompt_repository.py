"""Tests for the prompt record store."""

from datetime import datetime, timezone

from prototyper.database.models import FAILURE_REASON_MAX_LENGTH
from prototyper.schemas import BuildArtifacts, EventLevel, PromptStatus, SandboxConfig


def artifacts(slug="preview-abc123abc123"):
    return BuildArtifacts(
        source="export default function App(){return null;}",
        compiled_artifact="/* compiled */",
        preview_slug=slug,
        sandbox_config=SandboxConfig(
            runtime="react18",
            allowed_globals=["React", "useState", "useEffect"],
            compiled_at=datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        ),
    )


class TestCreateAndRead:

    async def test_new_prompt_is_pending(self, store, owner):
        prompt = await store.create(owner.id, "Build a notifications center", "Notifications")

        assert prompt.status == PromptStatus.PENDING.value
        assert prompt.generation_handle is None
        assert prompt.preview_slug is None
        assert prompt.failure_reason is None

    async def test_find_is_owner_scoped(self, store, owner, other_owner):
        prompt = await store.create(owner.id, "Build a chart", "Chart")

        assert (await store.find_for_owner(prompt.id, owner.id)).id == prompt.id
        assert await store.find_for_owner(prompt.id, other_owner.id) is None

    async def test_list_for_owner_is_newest_update_first(self, store, owner, other_owner):
        first = await store.create(owner.id, "one", "One")
        second = await store.create(owner.id, "two", "Two")
        await store.create(other_owner.id, "foreign", "Foreign")
        await store.mark_failed(first.id, "boom")

        listed = await store.list_for_owner(owner.id)

        assert [p.id for p in listed] == [first.id, second.id]


class TestDelete:

    async def test_deletes_prompt_and_its_events(self, store, events, owner):
        prompt = await store.create(owner.id, "Build a chart", "Chart")
        await events.record(prompt.id, EventLevel.INFO, "Processing prompt")

        assert await store.delete(prompt.id, owner.id) == 1
        assert await store.find_for_owner(prompt.id, owner.id) is None
        assert await events.list_recent(prompt.id) == []

    async def test_foreign_delete_is_a_no_op(self, store, owner, other_owner):
        prompt = await store.create(owner.id, "Build a chart", "Chart")

        assert await store.delete(prompt.id, other_owner.id) == 0
        assert await store.find_for_owner(prompt.id, owner.id) is not None

    async def test_unknown_id_deletes_nothing(self, store, owner):
        assert await store.delete("does-not-exist", owner.id) == 0


class TestEligibility:

    async def test_excludes_ready_and_orders_by_oldest_update(self, store, owner):
        first = await store.create(owner.id, "one", "One")
        second = await store.create(owner.id, "two", "Two")
        third = await store.create(owner.id, "three", "Three")
        fourth = await store.create(owner.id, "four", "Four")

        await store.mark_building(second.id)
        await store.save_build_result(third.id, artifacts())
        await store.mark_failed(first.id, "boom")

        eligible = await store.list_eligible_for_build(limit=10)

        assert [p.id for p in eligible] == [fourth.id, second.id, first.id]

    async def test_respects_limit(self, store, owner):
        for n in range(3):
            await store.create(owner.id, f"prompt {n}", f"Prompt {n}")

        assert len(await store.list_eligible_for_build(limit=2)) == 2


class TestTransitions:

    async def test_mark_building_keeps_handle_unless_given(self, store, owner):
        prompt = await store.create(owner.id, "Build a chart", "Chart")

        await store.mark_building(prompt.id, handle="resp_1")
        await store.mark_building(prompt.id)

        stored = await store.find_for_owner(prompt.id, owner.id)
        assert stored.status == PromptStatus.BUILDING.value
        assert stored.generation_handle == "resp_1"

    async def test_save_generation_stores_handle_and_source(self, store, owner):
        prompt = await store.create(owner.id, "Build a chart", "Chart")
        await store.mark_building(prompt.id)

        await store.save_generation(prompt.id, "resp_9", "const App = () => null;")

        stored = await store.find_for_owner(prompt.id, owner.id)
        assert stored.status == PromptStatus.BUILDING.value
        assert stored.generation_handle == "resp_9"
        assert stored.generated_source == "const App = () => null;"

    async def test_mark_failed_truncates_reason(self, store, owner):
        prompt = await store.create(owner.id, "Build a chart", "Chart")

        await store.mark_failed(prompt.id, "x" * (FAILURE_REASON_MAX_LENGTH + 500))

        stored = await store.find_for_owner(prompt.id, owner.id)
        assert stored.status == PromptStatus.FAILED.value
        assert len(stored.failure_reason) == FAILURE_REASON_MAX_LENGTH

    async def test_save_build_result_clears_failure_and_stores_artifacts(self, store, owner):
        prompt = await store.create(owner.id, "Build a chart", "Chart")
        await store.mark_failed(prompt.id, "Compilation failed: Unexpected token")

        await store.save_build_result(prompt.id, artifacts())

        stored = await store.find_for_owner(prompt.id, owner.id)
        assert stored.status == PromptStatus.READY.value
        assert stored.failure_reason is None
        assert stored.compiled_artifact == "/* compiled */"
        assert stored.preview_slug == "preview-abc123abc123"
        assert stored.sandbox_config == {
            "runtime": "react18",
            "allowedGlobals": ["React", "useState", "useEffect"],
            "compiledAt": "2026-01-02T03:04:05Z",
        }

    async def test_find_by_preview_slug_is_owner_scoped(self, store, owner, other_owner):
        prompt = await store.create(owner.id, "Build a chart", "Chart")
        await store.save_build_result(prompt.id, artifacts("preview-owned000000"))

        assert (await store.find_by_preview_slug("preview-owned000000", owner.id)).id == prompt.id
        assert await store.find_by_preview_slug("preview-owned000000", other_owner.id) is None
