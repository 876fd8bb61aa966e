import asyncio

import httpx
import pytest
from prometheus_client import REGISTRY

from progress_sync.config import Settings
from progress_sync.domain.errors import ApiError
from progress_sync.infrastructure.cache import TTLCache
from progress_sync.infrastructure.catalog import CatalogClient, count_videos
from progress_sync.infrastructure.http_client import create_http_client


class FakeApi:
    """Мок сервера каталога со счётчиком запросов"""

    def __init__(self):
        self.calls = []
        self.fail_next = False
        self.delay = 0.0

    async def __call__(self, request: httpx.Request):
        self.calls.append((request.method, request.url.path))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_next:
            self.fail_next = False
            return httpx.Response(500, json={"message": "down"})
        path = request.url.path
        if path == "/api/courses":
            return httpx.Response(200, json=[{"id": 1}, {"id": 2}])
        if path == "/api/courses/1/content":
            return httpx.Response(200, json={"id": 1, "videos": [{"id": 1}, {"id": 2}, {"id": 3}]})
        if path.startswith("/api/courses/"):
            return httpx.Response(200, json={"id": int(path.rsplit("/", 1)[1])})
        if path == "/api/admin/trainers" and request.method == "GET":
            return httpx.Response(200, json=[{"id": 10}])
        if path == "/api/user/mycourses":
            return httpx.Response(200, json=[{"id": 1, "serverProgress": 80}])
        return httpx.Response(200, json={"ok": True})

    def count(self, method, path):
        return self.calls.count((method, path))


@pytest.fixture
def api():
    return FakeApi()

@pytest.fixture
def cache(clock):
    return TTLCache(clock=clock)

@pytest.fixture
def make_catalog(api, cache, store):
    clients = []

    def _make():
        settings = Settings(API_BASE_URL="http://api.test/api")
        client = create_http_client(settings, transport=httpx.MockTransport(api))
        clients.append(client)
        return CatalogClient(client, cache, progress_store=store)

    return _make


@pytest.mark.asyncio
async def test_all_courses_cached(api, make_catalog):
    """Тест: повторное чтение в пределах TTL не ходит на сервер"""
    hits_before = REGISTRY.get_sample_value("cache_hits_total") or 0.0
    catalog = make_catalog()

    first = await catalog.get_all_courses()
    second = await catalog.get_all_courses()

    assert first == second == [{"id": 1}, {"id": 2}]
    assert api.count("GET", "/api/courses") == 1
    assert REGISTRY.get_sample_value("cache_hits_total") - hits_before == 1

@pytest.mark.asyncio
async def test_course_detail_expires(api, make_catalog, clock):
    catalog = make_catalog()
    await catalog.get_course(5)
    clock.advance(179)
    await catalog.get_course(5)
    assert api.count("GET", "/api/courses/5") == 1

    clock.advance(2)
    await catalog.get_course(5)
    assert api.count("GET", "/api/courses/5") == 2

@pytest.mark.asyncio
async def test_update_course_invalidates(api, make_catalog, cache):
    """Тест инвалидации после изменения курса"""
    catalog = make_catalog()
    await catalog.get_course(1)
    await catalog.get_all_courses()

    await catalog.update_course(1, {"title": "New"})

    assert not cache.has("course_1")
    assert not cache.has("all_courses")
    await catalog.get_course(1)
    assert api.count("GET", "/api/courses/1") == 2

@pytest.mark.asyncio
async def test_create_and_delete_course_invalidate(make_catalog, cache):
    catalog = make_catalog()
    await catalog.get_all_courses()
    await catalog.create_course({"title": "x"})
    assert not cache.has("all_courses")

    await catalog.get_course(2)
    await catalog.get_all_courses()
    await catalog.delete_course(2)
    assert not cache.has("course_2")
    assert not cache.has("all_courses")

@pytest.mark.asyncio
async def test_trainer_writes_invalidate_list(api, make_catalog, cache):
    catalog = make_catalog()
    assert await catalog.get_all_trainers() == [{"id": 10}]
    await catalog.delete_trainer(10)
    assert not cache.has("all_trainers")

    await catalog.get_all_trainers()
    await catalog.create_trainer({"name": "A"})
    assert not cache.has("all_trainers")

    await catalog.get_all_trainers()
    await catalog.update_trainer(10, {"name": "B"})
    assert not cache.has("all_trainers")
    assert api.count("GET", "/api/admin/trainers") == 3

@pytest.mark.asyncio
async def test_concurrent_reads_share_one_request(api, make_catalog):
    """Тест: параллельные промахи по одному ключу дают один запрос"""
    api.delay = 0.02
    catalog = make_catalog()
    results = await asyncio.gather(*(catalog.get_all_courses() for _ in range(5)))
    assert all(r == [{"id": 1}, {"id": 2}] for r in results)
    assert api.count("GET", "/api/courses") == 1

@pytest.mark.asyncio
async def test_cancelled_leader_does_not_cancel_waiters(api, make_catalog):
    """Тест: отмена первого запроса не отменяет параллельных читателей"""
    api.delay = 0.05
    catalog = make_catalog()

    leader = asyncio.create_task(catalog.get_all_courses())
    await asyncio.sleep(0.01)
    waiter = asyncio.create_task(catalog.get_all_courses())
    await asyncio.sleep(0.01)

    leader.cancel()
    assert await waiter == [{"id": 1}, {"id": 2}]
    with pytest.raises(asyncio.CancelledError):
        await leader
    assert api.count("GET", "/api/courses") == 2

@pytest.mark.asyncio
async def test_failures_are_not_cached(api, make_catalog, cache):
    catalog = make_catalog()
    api.fail_next = True
    with pytest.raises(ApiError):
        await catalog.get_all_courses()
    assert not cache.has("all_courses")

    assert await catalog.get_all_courses() == [{"id": 1}, {"id": 2}]

@pytest.mark.asyncio
async def test_course_content_records_total_videos(make_catalog, store, api):
    catalog = make_catalog()
    await catalog.get_course_content(1)
    await catalog.get_course_content(1)
    assert store.total_videos(1) == 3
    assert api.count("GET", "/api/courses/1/content") == 2

@pytest.mark.asyncio
async def test_enrolled_courses_not_cached(make_catalog, api):
    catalog = make_catalog()
    await catalog.get_enrolled_courses()
    await catalog.get_enrolled_courses()
    assert api.count("GET", "/api/user/mycourses") == 2

def test_count_videos():
    assert count_videos({"totalVideos": 7}) == 7
    assert count_videos({"videos": [1, 2]}) == 2
    assert count_videos({"title": "x"}) is None
    assert count_videos(None) is None
