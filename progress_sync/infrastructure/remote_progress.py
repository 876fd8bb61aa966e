import httpx
import structlog

from ..domain.entities import ProgressUpdate
from ..domain.errors import RemoteSyncError
from .http_client import request_json

logger = structlog.get_logger(__name__)

PROGRESS_PATH = "/user/progress"


class RemoteProgressService:
    """Клиент серверного эндпоинта PUT /user/progress.

    Оба вызова идемпотентны: процент - это снимок, а не дельта.
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def update_one(self, course_id: int, percent: int):
        return await self.update_many([ProgressUpdate(course_id=course_id, progress=percent)])

    async def update_many(self, updates: list[ProgressUpdate]):
        payload = {"updates": [u.to_payload() for u in updates]}
        logger.debug("progress_update_request", courses=len(updates))
        return await request_json(self.client, "PUT", PROGRESS_PATH, error_cls=RemoteSyncError, json=payload)
