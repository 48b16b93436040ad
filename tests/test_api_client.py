"""Tests for ConsoleApiClient over a mocked transport."""

import httpx
import pytest

from taskdeck.exceptions import ApiConnectionError, ApiNotFoundError, ApiResponseError
from taskdeck.models import AccountState, TaskStatus
from taskdeck.services.api_client import log_stream_path, task_path

from helpers import detail_payload, diff_payload, json_response, task_payload


def routes(table: dict):
    """Handler answering ``path -> response`` (or a callable raising)."""

    def handler(request: httpx.Request) -> httpx.Response:
        key = request.url.path
        if request.url.query:
            key = f"{key}?{request.url.query.decode()}"
        result = table.get(key)
        if result is None:
            return httpx.Response(404, text="missing")
        if callable(result):
            return result(request)
        return result

    return handler


class TestPaths:
    def test_task_path_quotes_id(self):
        assert task_path("a/b") == "/api/tasks/a%2Fb"

    def test_log_stream_path(self):
        assert log_stream_path("t1", "r 1") == "/api/tasks/t1/logs/stream?runId=r%201"


class TestRequestJson:
    """Tests for status and transport mapping."""

    @pytest.mark.asyncio
    async def test_404_raises_not_found(self, make_client):
        client = make_client(routes({}))

        with pytest.raises(ApiNotFoundError) as excinfo:
            await client.request_json("/api/tasks/nope")

        assert excinfo.value.status == 404
        await client.aclose()

    @pytest.mark.asyncio
    async def test_error_status_uses_body_text(self, make_client):
        client = make_client(routes({"/api/envs": httpx.Response(500, text="database on fire")}))

        with pytest.raises(ApiResponseError) as excinfo:
            await client.list_envs()

        assert excinfo.value.status == 500
        assert excinfo.value.message == "database on fire"
        assert not isinstance(excinfo.value, ApiNotFoundError)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_error_status_without_body(self, make_client):
        client = make_client(routes({"/api/envs": httpx.Response(502)}))

        with pytest.raises(ApiResponseError, match="Request failed: 502"):
            await client.list_envs()
        await client.aclose()

    @pytest.mark.asyncio
    async def test_204_returns_none(self, make_client):
        client = make_client(routes({"/api/envs": httpx.Response(204)}))

        assert await client.list_envs() is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_invalid_json(self, make_client):
        client = make_client(routes({"/api/envs": httpx.Response(200, text="<html>")}))

        with pytest.raises(ApiResponseError, match="not valid JSON"):
            await client.list_envs()
        await client.aclose()

    @pytest.mark.asyncio
    async def test_transport_error_is_retryable(self, make_client):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(refuse)

        with pytest.raises(ApiConnectionError) as excinfo:
            await client.list_tasks()

        assert excinfo.value.retryable
        await client.aclose()


class TestFetching:
    """Tests for the typed fetch helpers."""

    @pytest.mark.asyncio
    async def test_fetch_snapshot(self, make_client):
        client = make_client(
            routes(
                {
                    "/api/envs": json_response([{"envId": "e1", "repoUrl": "git@x:y.git"}]),
                    "/api/tasks": json_response([task_payload("t1"), task_payload("t2", "completed")]),
                    "/api/accounts": json_response({"accounts": [{"id": "a1"}], "activeAccountId": "a1"}),
                }
            )
        )

        snapshot = await client.fetch_snapshot()

        assert [env.env_id for env in snapshot.environments] == ["e1"]
        assert [task.task_id for task in snapshot.tasks] == ["t1", "t2"]
        assert snapshot.tasks[1].status is TaskStatus.COMPLETED
        assert snapshot.accounts.active_account_id == "a1"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_fetch_snapshot_coerces_malformed_payloads(self, make_client):
        client = make_client(
            routes(
                {
                    "/api/envs": json_response({"unexpected": True}),
                    "/api/tasks": httpx.Response(200, text="null"),
                    "/api/accounts": json_response([]),
                }
            )
        )

        snapshot = await client.fetch_snapshot()

        assert snapshot.environments == ()
        assert snapshot.tasks == ()
        assert snapshot.accounts == AccountState()
        await client.aclose()

    @pytest.mark.asyncio
    async def test_get_task_and_diff(self, make_client):
        client = make_client(
            routes(
                {
                    "/api/tasks/t1": json_response(detail_payload("t1", entries={"run-1": ["e1"]})),
                    "/api/tasks/t1/diff": json_response(
                        diff_payload({"path": "a.py", "diff": "@@ -1 +1 @@\n-a\n+b\n", "lineCount": 3})
                    ),
                }
            )
        )

        detail = await client.get_task("t1")
        diff = await client.get_task_diff("t1")

        assert detail.task_id == "t1"
        assert detail.run_logs[0].entries[0].id == "e1"
        assert diff.available
        assert diff.files[0].path == "a.py"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_malformed_detail_is_response_error(self, make_client):
        client = make_client(routes({"/api/tasks/t1": json_response(["not", "an", "object"])}))

        with pytest.raises(ApiResponseError):
            await client.get_task("t1")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_event_sources_use_stream_paths(self, make_client):
        client = make_client(routes({}))

        assert client.state_events().url == "/api/events/stream"
        assert client.log_events("t1", "r1").url == "/api/tasks/t1/logs/stream?runId=r1"
        await client.aclose()
