"""Tests for the polling worker."""

import asyncio
import logging

import pytest

from prototyper.exceptions import StoreError
from prototyper.schemas import GenerationResult
from prototyper.worker.lifecycle import PromptLifecycle
from prototyper.worker.loop import PromptWorker

from fakes import FakeCompiler, FakeGenerator


def make_worker(store, events, generator=None, compiler=None, batch_size=2, poll_interval=0.01):
    generator = generator or FakeGenerator()
    lifecycle = PromptLifecycle(
        store=store,
        events=events,
        generator=generator,
        compiler=compiler or FakeCompiler(),
    )
    return PromptWorker(
        store=store,
        lifecycle=lifecycle,
        generator=generator,
        poll_interval=poll_interval,
        batch_size=batch_size,
    )


class TestTick:

    async def test_idle_when_generation_is_not_configured(self, store, events, owner, caplog):
        prompt = await store.create(owner.id, "Build a chart", "Chart")
        generator = FakeGenerator(configured=False)
        worker = make_worker(store, events, generator=generator)

        with caplog.at_level(logging.INFO, logger="prototyper.worker.loop"):
            assert await worker.tick() == 0
            assert await worker.tick() == 0

        assert caplog.text.count("OPENAI_API_KEY is not configured") == 1
        assert generator.calls == []
        assert (await store.find_for_owner(prompt.id, owner.id)).status == "pending"
        assert await events.list_recent(prompt.id) == []

    async def test_idle_notice_repeats_after_configuration_returns(self, store, events, caplog):
        generator = FakeGenerator(configured=False)
        worker = make_worker(store, events, generator=generator)

        with caplog.at_level(logging.INFO, logger="prototyper.worker.loop"):
            await worker.tick()
            generator.configured = True
            await worker.tick()
            generator.configured = False
            await worker.tick()

        assert caplog.text.count("OPENAI_API_KEY is not configured") == 2

    async def test_processes_at_most_batch_size(self, store, events, owner):
        for n in range(3):
            await store.create(owner.id, f"prompt {n}", f"Prompt {n}")
        worker = make_worker(store, events, batch_size=2)

        assert await worker.tick() == 2

        statuses = sorted(p.status for p in await store.list_for_owner(owner.id))
        assert statuses == ["pending", "ready", "ready"]

    async def test_one_failure_does_not_stop_the_batch(self, store, events, owner):
        bad = await store.create(owner.id, "bad", "Bad")
        good = await store.create(owner.id, "good", "Good")

        def behavior(text, handle):
            if text == "bad":
                raise RuntimeError("model exploded")
            return GenerationResult(handle="thread-good", source="const App = () => null;")

        worker = make_worker(store, events, generator=FakeGenerator(behavior))

        assert await worker.tick() == 2

        assert (await store.find_for_owner(bad.id, owner.id)).status == "failed"
        assert (await store.find_for_owner(good.id, owner.id)).status == "ready"

    async def test_store_error_ends_the_tick(self, store, events, owner):
        await store.create(owner.id, "one", "One")
        await store.create(owner.id, "two", "Two")
        generator = FakeGenerator()
        worker = make_worker(store, events, generator=generator)

        async def broken_save_generation(prompt_id, handle, source):
            raise StoreError("save_generation", "disk full")

        store.save_generation = broken_save_generation

        with pytest.raises(StoreError):
            await worker.tick()

        assert len(generator.calls) == 1

    async def test_ready_prompts_are_not_picked(self, store, events, owner):
        await store.create(owner.id, "Build a chart", "Chart")
        worker = make_worker(store, events)

        assert await worker.tick() == 1
        assert await worker.tick() == 0


class TestRun:

    async def test_run_processes_until_stopped(self, store, events, owner):
        prompt = await store.create(owner.id, "Build a chart", "Chart")
        worker = make_worker(store, events)

        task = asyncio.create_task(worker.run())
        for _ in range(200):
            if (await store.find_for_owner(prompt.id, owner.id)).status == "ready":
                break
            await asyncio.sleep(0.01)
        worker.stop()
        await asyncio.wait_for(task, timeout=2)

        assert worker.running is False
        assert (await store.find_for_owner(prompt.id, owner.id)).status == "ready"

    async def test_run_survives_tick_errors(self, store, events, caplog):
        worker = make_worker(store, events)
        ticks = 0

        async def failing_tick():
            nonlocal ticks
            ticks += 1
            if ticks >= 3:
                worker.stop()
            raise StoreError("list_eligible_for_build", "connection lost")

        worker.tick = failing_tick

        with caplog.at_level(logging.ERROR, logger="prototyper.worker.loop"):
            await asyncio.wait_for(worker.run(), timeout=2)

        assert ticks == 3
        assert caplog.text.count("Prompt worker tick failed") == 3
