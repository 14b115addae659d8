import asyncio

import httpx
import pytest

from task_tracker.api.models import TaskStatus as StoreStatus
from task_tracker.client import (
    TASKS_KEY,
    NetworkError,
    NotFoundError,
    ServerError,
    Task,
    TaskStatus,
    ValidationError,
    task_key,
)

from .fakes import run_pending

SAMPLE = Task(id="1", title="Sample Task", description="This is a sample task", status="pending")


class TestReads:
    @pytest.mark.asyncio
    async def test_list_tasks_returns_sample(self, sync, transport):
        assert sync.loading is True
        tasks = await sync.list_tasks()
        assert tasks == (SAMPLE,)
        assert sync.tasks == (SAMPLE,)
        assert sync.loading is False
        assert transport.calls == [("GET", "/api/tasks")]

    @pytest.mark.asyncio
    async def test_list_tasks_always_refetches(self, sync, transport):
        await sync.list_tasks()
        await sync.list_tasks()
        assert transport.count("GET") == 2

    @pytest.mark.asyncio
    async def test_concurrent_list_calls_share_one_request(self, sync, transport):
        first, second = await asyncio.gather(sync.list_tasks(), sync.list_tasks())
        assert first == second == (SAMPLE,)
        assert transport.count("GET") == 1

    @pytest.mark.asyncio
    async def test_get_task_served_from_cache_while_fresh(self, sync, transport):
        assert await sync.get_task("1") == SAMPLE
        assert await sync.get_task("1") == SAMPLE
        assert transport.count("GET") == 1

    @pytest.mark.asyncio
    async def test_get_task_not_found(self, sync):
        with pytest.raises(NotFoundError) as info:
            await sync.get_task("404")
        assert info.value.status == 404
        assert info.value.message == "Task not found"

    @pytest.mark.asyncio
    async def test_read_retries_server_errors(self, sync, transport):
        transport.fail("GET", 503, 500)
        assert await sync.list_tasks() == (SAMPLE,)
        assert transport.count("GET") == 3

    @pytest.mark.asyncio
    async def test_read_error_surfaces_after_retries(self, sync, transport):
        transport.fail("GET", *([httpx.ConnectError("refused")] * 4))
        with pytest.raises(NetworkError):
            await sync.list_tasks()
        assert transport.count("GET") == 4
        assert sync.error == "Network error occurred"
        assert sync.loading is False


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_success(self, sync, store):
        await sync.list_tasks()
        created = await sync.create_task("A", "B")
        assert created.id
        assert created.status is TaskStatus.PENDING
        assert created in await sync.list_tasks()
        assert store.get_task(created.id)["title"] == "A"

    @pytest.mark.asyncio
    async def test_placeholder_shown_until_server_answers(self, sync, transport):
        await sync.list_tasks()
        gate = transport.hold("POST")
        pending = asyncio.ensure_future(sync.create_task("Buy milk", "2%"))
        await run_pending()

        placeholder = sync.tasks[-1]
        assert placeholder.id.startswith("local-")
        assert (placeholder.title, placeholder.status) == ("Buy milk", TaskStatus.PENDING)
        assert sync.is_creating is True

        gate.set()
        created = await pending
        assert sync.is_creating is False
        assert created.id == "2"
        assert [t.id for t in sync.tasks] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_create_without_cached_list_still_works(self, sync):
        created = await sync.create_task("A", "B", status="done")
        assert created.status is TaskStatus.DONE
        assert sync.cache.get_query_data(task_key(created.id)) == created

    @pytest.mark.asyncio
    async def test_validation_rejected_before_any_state_change(self, sync, transport, store):
        await sync.list_tasks()
        before = sync.tasks
        calls = list(transport.calls)

        with pytest.raises(ValidationError) as info:
            await sync.create_task("", "x")
        assert info.value.details
        with pytest.raises(ValidationError):
            await sync.create_task("   ", "x")
        with pytest.raises(ValidationError):
            await sync.create_task("t", "x", status="archived")

        assert sync.tasks is before
        assert transport.calls == calls
        assert len(store.list_tasks()) == 1
        assert sync.creating.status == "idle"


class TestRollback:
    """A failed mutation leaves the cache exactly as it was before it started."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method, mutate",
        [
            ("POST", lambda s: s.create_task("New", "Task")),
            ("PATCH", lambda s: s.update_task_status("1", "done")),
            ("PUT", lambda s: s.update_task("1", "Changed", "Changed too", "done")),
            ("DELETE", lambda s: s.delete_task("1")),
        ],
    )
    async def test_server_error_restores_snapshot(self, sync, transport, store, method, mutate):
        await sync.list_tasks()
        before = sync.tasks
        transport.fail(method, 500, 500)

        with pytest.raises(ServerError) as info:
            await mutate(sync)

        assert info.value.status == 500
        assert sync.tasks is before
        assert transport.count(method) == 2
        assert sync.error == "Injected failure"

        # Revalidation was scheduled and brings back the (unchanged) server state
        assert sync.is_fetching is True
        await sync.cache.wait_idle()
        assert sync.tasks == before
        assert [t["id"] for t in store.list_tasks()] == ["1"]

    @pytest.mark.asyncio
    async def test_network_error_restores_snapshot(self, sync, transport):
        await sync.list_tasks()
        before = sync.tasks
        transport.fail("PATCH", httpx.ConnectError("refused"), httpx.ConnectError("refused"))

        with pytest.raises(NetworkError) as info:
            await sync.toggle_status("1")
        assert info.value.status == 0
        assert sync.tasks is before
        assert sync.updating_status.status == "error"

    @pytest.mark.asyncio
    async def test_optimistic_update_visible_then_rolled_back(self, sync, transport):
        await sync.list_tasks()
        before = sync.tasks
        transport.fail("DELETE", 500, 500)
        gate = transport.hold("GET")  # keep the revalidation from landing

        pending = asyncio.ensure_future(sync.delete_task("1"))
        await asyncio.sleep(0)
        assert sync.tasks == ()
        assert sync.is_deleting is True

        with pytest.raises(ServerError):
            await pending
        assert sync.tasks is before
        assert sync.is_deleting is False
        gate.set()

    @pytest.mark.asyncio
    async def test_failure_before_request_settles_state(self, sync, transport):
        await sync.list_tasks()
        before = sync.tasks

        def broken(tasks):
            raise RuntimeError("bad optimistic update")

        with pytest.raises(RuntimeError):
            await sync._mutate(
                sync.deleting, "delete task 1", broken, lambda: sync.api.delete_task("1"), lambda current, _: current
            )

        assert sync.is_deleting is False
        assert sync.deleting.status == "error"
        assert sync.tasks is before
        assert transport.count("DELETE") == 0

    @pytest.mark.asyncio
    async def test_mutation_retried_once(self, sync, transport, store):
        await sync.list_tasks()
        transport.fail("PATCH", 503)
        updated = await sync.update_task_status("1", "done")
        assert updated.status is TaskStatus.DONE
        assert transport.count("PATCH") == 2
        assert store.get_task("1")["status"] is StoreStatus.DONE

    @pytest.mark.asyncio
    async def test_client_errors_not_retried(self, sync, transport):
        await sync.list_tasks()
        transport.fail("PUT", 400)
        with pytest.raises(ValidationError):
            await sync.update_task("1", "T", "D", "done")
        assert transport.count("PUT") == 1

    @pytest.mark.asyncio
    async def test_each_mutation_snapshots_independently(self, sync, transport):
        await sync.list_tasks()
        original = sync.tasks
        transport.fail("PATCH", 500, 500)

        created = await sync.create_task("Second", "task")
        after_create = sync.tasks
        assert after_create != original

        with pytest.raises(ServerError):
            await sync.update_task_status("1", "done")
        # Rolled back to the state just before the status update, not to the original
        assert sync.tasks is after_create
        assert created in sync.tasks


class TestToggleAndDelete:
    @pytest.mark.asyncio
    async def test_toggle_flips_status_both_ways(self, sync, store):
        await sync.list_tasks()
        assert (await sync.toggle_status("1")).status is TaskStatus.DONE
        assert store.get_task("1")["status"] is StoreStatus.DONE
        assert (await sync.toggle_status("1")).status is TaskStatus.PENDING
        assert store.get_task("1")["status"] is StoreStatus.PENDING

    @pytest.mark.asyncio
    async def test_toggle_unknown_id_makes_no_request(self, sync, transport):
        await sync.list_tasks()
        calls = list(transport.calls)
        with pytest.raises(NotFoundError):
            await sync.toggle_status("999")
        assert transport.calls == calls

    @pytest.mark.asyncio
    async def test_toggle_before_list_loaded(self, sync, transport):
        with pytest.raises(NotFoundError):
            await sync.toggle_status("1")
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_delete_twice(self, sync):
        await sync.list_tasks()
        created = await sync.create_task("Temp", "gone soon")
        await sync.delete_task(created.id)
        assert created.id not in [t.id for t in sync.tasks]

        with pytest.raises(NotFoundError):
            await sync.delete_task(created.id)

    @pytest.mark.asyncio
    async def test_task_deleted_elsewhere_reappears_until_revalidation(self, sync, store):
        await sync.list_tasks()
        store.delete_task("1")

        with pytest.raises(NotFoundError):
            await sync.delete_task("1")
        assert sync.tasks == (SAMPLE,)

        await sync.cache.wait_idle()
        assert sync.tasks == ()

    @pytest.mark.asyncio
    async def test_update_task_replaces_fields(self, sync):
        await sync.list_tasks()
        updated = await sync.update_task("1", "New title", "New description", TaskStatus.DONE)
        assert updated == Task(id="1", title="New title", description="New description", status="done")
        assert sync.tasks == (updated,)


class TestCancellation:
    @pytest.mark.asyncio
    async def test_stale_list_read_does_not_clobber_mutation(self, sync, transport):
        await sync.list_tasks()
        gate = transport.hold("GET")

        # This read gets its (soon stale) answer before the mutation and stays in flight
        read = asyncio.ensure_future(sync.list_tasks())
        await transport.reached("GET")
        assert sync.is_fetching is True

        await sync.update_task_status("1", "done")
        assert sync.tasks[0].status is TaskStatus.DONE

        gate.set()
        result = await read
        assert result[0].status is TaskStatus.DONE

        await sync.cache.wait_idle()
        assert sync.tasks[0].status is TaskStatus.DONE


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_list_create_toggle_delete(self, sync, store):
        assert await sync.list_tasks() == (SAMPLE,)

        created = await sync.create_task("Buy milk", "2%")
        assert created.id == "2"
        assert created.status is TaskStatus.PENDING
        assert len(store.list_tasks()) == 2

        await sync.toggle_status("1")
        assert store.get_task("1")["status"] is StoreStatus.DONE

        await sync.delete_task("2")
        assert store.list_tasks() == [
            {"id": "1", "title": "Sample Task", "description": "This is a sample task", "status": StoreStatus.DONE}
        ]

        await sync.cache.wait_idle()
        assert sync.tasks == (SAMPLE.model_copy(update={"status": TaskStatus.DONE}),)
        assert sync.error is None
        assert sync.cache.get_query_data(TASKS_KEY) == sync.tasks
