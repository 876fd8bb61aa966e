import json

import structlog

from ..infrastructure.beacon import IBeaconTransport
from ..infrastructure.metrics import teardown_dispatch_total
from .progress_store import ProgressStore

logger = structlog.get_logger(__name__)


class TeardownFlush:
    """Последняя попытка доставить прогресс при закрытии клиента.

    Не трогает флаг синхронизации и не ждёт ответа: отправка односторонняя.
    """

    def __init__(self, store: ProgressStore, beacon: IBeaconTransport, url: str):
        self.store = store
        self.beacon = beacon
        self.url = url

    def build_payload(self) -> bytes | None:
        updates, skipped = self.store.pending_updates()
        if skipped:
            logger.info("teardown_courses_skipped", count=len(skipped), course_ids=skipped)
        if not updates:
            return None
        return json.dumps({"updates": [u.to_payload() for u in updates]}).encode("utf-8")

    def flush(self) -> bool:
        payload = self.build_payload()
        if payload is None:
            logger.debug("teardown_nothing_to_flush")
            return False
        accepted = self.beacon.send(self.url, payload)
        teardown_dispatch_total.labels(accepted=str(accepted).lower()).inc()
        logger.info("teardown_dispatched", accepted=accepted, size=len(payload))
        return accepted
