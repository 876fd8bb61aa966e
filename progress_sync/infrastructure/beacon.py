import threading

import httpx
import structlog

logger = structlog.get_logger(__name__)


class IBeaconTransport:
    def send(self, url: str, payload: bytes) -> bool: ...


class ThreadBeaconTransport(IBeaconTransport):
    """Отправка "выстрелил и забыл" для завершения работы клиента.

    POST уходит в отдельном не-daemon потоке: интерпретатор дожидается его
    при выходе, поэтому запрос не обрывается вместе с процессом.
    Возвращаемое значение - принята ли отправка, а не получил ли её сервер.
    """

    def __init__(self, headers: dict | None = None, timeout: float = 2.0, max_payload_bytes: int = 65536):
        self.headers = headers or {}
        self.timeout = timeout
        self.max_payload_bytes = max_payload_bytes

    def send(self, url: str, payload: bytes) -> bool:
        if len(payload) > self.max_payload_bytes:
            logger.warning("beacon_payload_too_large", size=len(payload), limit=self.max_payload_bytes)
            return False
        thread = threading.Thread(
            target=self._post,
            args=(url, payload),
            name="progress-beacon",
            daemon=False,
        )
        try:
            thread.start()
        except RuntimeError as e:
            logger.error("beacon_dispatch_failed", url=url, error=str(e))
            return False
        return True

    def _post(self, url: str, payload: bytes) -> None:
        try:
            with httpx.Client(timeout=self.timeout, headers=self.headers) as client:
                response = client.post(url, content=payload)
            logger.debug("beacon_delivered", url=url, status_code=response.status_code)
        except httpx.HTTPError as e:
            # результат недоступен вызывающему, только лог
            logger.warning("beacon_delivery_failed", url=url, error=str(e))
