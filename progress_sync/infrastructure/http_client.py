from typing import Any

import httpx
import structlog

from ..config import Settings
from ..domain.errors import ApiError

logger = structlog.get_logger(__name__)


def build_headers(token: str | None) -> dict:
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def create_http_client(settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.API_BASE_URL,
        timeout=settings.REQUEST_TIMEOUT,
        headers=build_headers(settings.API_TOKEN),
        transport=transport,
    )


def _error_message(response: httpx.Response) -> tuple[str, Any]:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if message:
            return str(message), data
    return f"HTTP {response.status_code}", data


async def request_json(client: httpx.AsyncClient, method: str, url: str, error_cls: type[ApiError] = ApiError, **kwargs) -> Any:
    """Выполнить запрос и вернуть JSON тела; любые сбои приводятся к ApiError."""
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        raise error_cls(str(e) or e.__class__.__name__) from e

    if response.is_error:
        message, data = _error_message(response)
        if response.status_code == 401:
            logger.warning("api_unauthorized", method=method, url=url)
        raise error_cls(message, status=response.status_code, data=data)

    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
