import json

import httpx
import pytest

from progress_sync.config import Settings
from progress_sync.domain.entities import ProgressUpdate
from progress_sync.domain.errors import ApiError, RemoteSyncError
from progress_sync.infrastructure.http_client import create_http_client
from progress_sync.infrastructure.remote_progress import RemoteProgressService


def make_client(handler, token=None):
    settings = Settings(API_BASE_URL="http://api.test/api", API_TOKEN=token)
    return create_http_client(settings, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_update_one_payload():
    """Тест формата запроса обновления одного курса"""
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, json={"updated": 1})

    async with make_client(handler, token="secret") as client:
        result = await RemoteProgressService(client).update_one(5, 40)

    assert result == {"updated": 1}
    request = seen[0]
    assert request.method == "PUT"
    assert request.url.path == "/api/user/progress"
    assert request.headers["Authorization"] == "Bearer secret"
    assert json.loads(request.content) == {"updates": [{"courseId": 5, "progress": 40}]}

@pytest.mark.asyncio
async def test_update_many_payload():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(204)

    async with make_client(handler) as client:
        result = await RemoteProgressService(client).update_many(
            [ProgressUpdate(1, 10), ProgressUpdate(2, 100)]
        )

    assert result is None
    assert seen == [{"updates": [{"courseId": 1, "progress": 10}, {"courseId": 2, "progress": 100}]}]

@pytest.mark.asyncio
async def test_server_error_becomes_remote_sync_error():
    """Тест: 5xx приводится к типизированной ошибке с сообщением сервера"""
    def handler(request):
        return httpx.Response(503, json={"message": "Maintenance"})

    async with make_client(handler) as client:
        with pytest.raises(RemoteSyncError) as exc:
            await RemoteProgressService(client).update_one(1, 1)

    assert exc.value.status == 503
    assert exc.value.message == "Maintenance"
    assert isinstance(exc.value, ApiError)

@pytest.mark.asyncio
async def test_error_field_and_plain_body():
    responses = iter([
        httpx.Response(400, json={"error": "Bad progress"}),
        httpx.Response(500, text="oops"),
    ])

    def handler(request):
        return next(responses)

    async with make_client(handler) as client:
        service = RemoteProgressService(client)
        with pytest.raises(RemoteSyncError) as first:
            await service.update_one(1, 1)
        with pytest.raises(RemoteSyncError) as second:
            await service.update_one(1, 1)

    assert first.value.message == "Bad progress"
    assert second.value.message == "HTTP 500"

@pytest.mark.asyncio
async def test_network_error_has_no_status():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    async with make_client(handler) as client:
        with pytest.raises(RemoteSyncError) as exc:
            await RemoteProgressService(client).update_one(1, 1)

    assert exc.value.status is None
