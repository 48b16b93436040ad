"""Tests for DetailRefresher absence handling."""

import asyncio

import httpx
import pytest

from taskdeck.exceptions import ApiResponseError
from taskdeck.models.diffs import DiffFile
from taskdeck.services.console_state import ConsoleStore
from taskdeck.services.detail_refresher import DetailRefresher

from helpers import detail_payload, diff_payload, json_response

SMALL_DIFF = {"path": "a.py", "diff": "@@ -1 +1 @@\n-a\n+b\n", "lineCount": 3}
BIG_DIFF = {"path": "big.py", "diff": "@@ -1 +1 @@\n+x\n", "lineCount": 900, "tooLarge": True}


def handler_for(detail=None, diff=None, detail_status=200, diff_status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/diff"):
            if diff_status != 200:
                return httpx.Response(diff_status)
            return json_response(diff)
        if detail_status != 200:
            return httpx.Response(detail_status, text="gone")
        return json_response(detail)

    return handler


class TestDetailRefresher:
    """Tests for DetailRefresher."""

    @pytest.mark.asyncio
    async def test_load_stores_detail_and_diff(self, make_client):
        store = ConsoleStore()
        store.select_task("task-1")
        client = make_client(handler_for(detail_payload(), diff_payload(SMALL_DIFF)))

        detail = await DetailRefresher(client, store).load("task-1")

        assert detail is store.detail
        assert store.detail.task_id == "task-1"
        assert store.diff.files == (DiffFile(path="a.py", line_count=3, text=SMALL_DIFF["diff"]),)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_diff_404_is_not_ready(self, make_client):
        store = ConsoleStore()
        store.select_task("task-1")
        client = make_client(handler_for(detail_payload(), diff_status=404))

        await DetailRefresher(client, store).refresh("task-1")

        assert store.detail is not None
        assert store.diff.is_not_ready
        assert store.diff_views() == []
        assert store.error is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_detail_404_clears_selection(self, make_client):
        store = ConsoleStore()
        store.select_task("task-1")
        client = make_client(handler_for(detail_status=404))

        result = await DetailRefresher(client, store).refresh("task-1")

        assert result is None
        assert store.selected_task_id is None
        assert store.detail is None
        assert store.error is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_detail_404_leaves_other_selection_alone(self, make_client):
        store = ConsoleStore()
        store.select_task("task-2")
        client = make_client(handler_for(detail_status=404))

        await DetailRefresher(client, store).refresh("task-1")

        assert store.selected_task_id == "task-2"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, make_client):
        store = ConsoleStore()
        store.select_task("task-1")
        client = make_client(handler_for(detail_status=500))

        with pytest.raises(ApiResponseError):
            await DetailRefresher(client, store).refresh("task-1")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_late_response_for_old_selection_dropped(self, make_client):
        store = ConsoleStore()
        store.select_task("task-1")
        release = asyncio.Event()

        async def slow_handler(request: httpx.Request) -> httpx.Response:
            await release.wait()
            return handler_for(detail_payload(), diff_payload(SMALL_DIFF))(request)

        client = make_client(slow_handler)
        refresher = DetailRefresher(client, store)

        pending = asyncio.ensure_future(refresher.refresh("task-1"))
        await asyncio.sleep(0)
        store.select_task("task-2")
        release.set()

        assert await pending is None
        assert store.detail is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_refresh_keeps_reveals_and_load_resets_them(self, make_client):
        store = ConsoleStore()
        store.select_task("task-1")
        client = make_client(handler_for(detail_payload(), diff_payload(BIG_DIFF)))
        refresher = DetailRefresher(client, store)

        await refresher.load("task-1")
        store.reveal_diff("big.py")

        await refresher.refresh("task-1")
        assert store.reveal_gate.is_revealed("big.py")

        await refresher.load("task-1")
        assert not store.reveal_gate.is_revealed("big.py")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_no_task_id(self, make_client):
        client = make_client(handler_for())

        assert await DetailRefresher(client, ConsoleStore()).refresh(None) is None
        await client.aclose()
