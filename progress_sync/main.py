import time
import logging
import structlog
from fastapi import FastAPI, Request

from .bootstrap import build_container
from .infrastructure.metrics import (
    metrics_endpoint,
    http_requests_total,
    http_request_duration_seconds
)
from .interfaces.http.routers import progress as progress_router
from .interfaces.http.routers import catalog as catalog_router
from .config import settings

# Настройка структурированного логирования
log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.make_filtering_bound_logger(log_level),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

app = FastAPI(title="Progress Sync Agent", version="0.1.0")

# Middleware для правильной кодировки и метрик
@app.middleware("http")
async def add_charset_header(request: Request, call_next):
    start_time = time.time()
    method = request.method
    path = request.url.path

    response = await call_next(request)

    if response.headers.get("content-type", "").startswith("application/json"):
        response.headers["content-type"] = "application/json; charset=utf-8"

    # Метрики
    duration = time.time() - start_time
    status_code = response.status_code
    http_requests_total.labels(method=method, endpoint=path, status=status_code).inc()
    http_request_duration_seconds.labels(method=method, endpoint=path).observe(duration)

    # Логирование
    logger.info(
        "http_request",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=round(duration * 1000, 2)
    )

    return response


@app.on_event("startup")
async def on_startup():
    logger.info("Starting progress sync agent", version="0.1.0")
    # тесты подкладывают свой контейнер заранее
    if getattr(app.state, "container", None) is None:
        app.state.container = build_container(settings)
    await app.state.container.start()
    logger.info("Progress store loaded")


@app.on_event("shutdown")
async def on_shutdown():
    container = getattr(app.state, "container", None)
    if container is not None:
        await container.aclose()
    logger.info("Progress sync agent stopped")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    """Prometheus metrics endpoint"""
    return metrics_endpoint()


app.include_router(progress_router.router)
app.include_router(catalog_router.router)
