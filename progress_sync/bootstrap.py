from dataclasses import dataclass

import httpx
import structlog

from .application.progress_store import ProgressStore
from .application.progress_tracker import ProgressTracker
from .application.route_sync import RouteBoundarySync
from .application.sync_scheduler import SyncScheduler
from .application.teardown_flush import TeardownFlush
from .config import Settings
from .infrastructure.beacon import IBeaconTransport, ThreadBeaconTransport
from .infrastructure.cache import TTLCache
from .infrastructure.catalog import CatalogClient
from .infrastructure.http_client import build_headers, create_http_client
from .infrastructure.remote_progress import RemoteProgressService
from .infrastructure.scheduling import PeriodicTask
from .infrastructure.storage import IKeyValueStore, build_key_value_store

logger = structlog.get_logger(__name__)


@dataclass
class Container:
    tracker: ProgressTracker
    catalog: CatalogClient
    cache: TTLCache
    http_client: httpx.AsyncClient
    cache_sweeper: PeriodicTask

    async def start(self) -> None:
        self.tracker.initialize()
        self.cache_sweeper.start()

    async def aclose(self) -> None:
        await self.cache_sweeper.stop()
        self.tracker.flush_on_teardown()
        await self.http_client.aclose()


def build_container(
    settings: Settings,
    storage: IKeyValueStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    beacon: IBeaconTransport | None = None,
) -> Container:
    """Собрать граф объектов один раз при старте приложения."""
    storage = storage or build_key_value_store(settings.STORAGE_URL)
    http_client = create_http_client(settings, transport=transport)
    cache = TTLCache(default_ttl=settings.CACHE_TTL)

    store = ProgressStore(
        storage,
        progress_key=settings.PROGRESS_STORAGE_KEY,
        totals_key=settings.TOTAL_VIDEOS_STORAGE_KEY,
    )
    scheduler = SyncScheduler(
        store,
        RemoteProgressService(http_client),
        storage,
        debounce_seconds=settings.SYNC_DEBOUNCE_SECONDS,
        last_sync_key=settings.LAST_SYNC_STORAGE_KEY,
    )
    beacon = beacon or ThreadBeaconTransport(
        headers=build_headers(settings.API_TOKEN),
        timeout=settings.BEACON_TIMEOUT,
        max_payload_bytes=settings.BEACON_MAX_PAYLOAD_BYTES,
    )
    beacon_url = settings.API_BASE_URL.rstrip("/") + settings.BEACON_PATH
    catalog = CatalogClient(http_client, cache, progress_store=store)
    tracker = ProgressTracker(
        store,
        scheduler,
        TeardownFlush(store, beacon, beacon_url),
        RouteBoundarySync(scheduler, marker=settings.CLASSROOM_PATH_MARKER),
        catalog=catalog,
    )
    sweeper = PeriodicTask(settings.CACHE_CLEANUP_INTERVAL, cache.cleanup, name="cache_cleanup")
    logger.info("container_built", storage=type(storage).__name__, api=settings.API_BASE_URL)
    return Container(tracker=tracker, catalog=catalog, cache=cache, http_client=http_client, cache_sweeper=sweeper)
