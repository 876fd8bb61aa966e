from prometheus_client import Counter, Histogram, Gauge, generate_latest
from fastapi import Response

# Метрики для HTTP запросов
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

# Метрики для кэша
cache_hits_total = Counter('cache_hits_total', 'Total cache hits')
cache_misses_total = Counter('cache_misses_total', 'Total cache misses')

# Метрики синхронизации прогресса
progress_sync_total = Counter(
    'progress_sync_total',
    'Progress sync attempts',
    ['kind', 'outcome']
)
progress_sync_skipped_courses_total = Counter(
    'progress_sync_skipped_courses_total',
    'Courses skipped in batch sync because total videos is unknown'
)
progress_sync_in_flight = Gauge('progress_sync_in_flight', 'Progress sync currently in flight')

teardown_dispatch_total = Counter(
    'teardown_dispatch_total',
    'Teardown beacon dispatches',
    ['accepted']
)

def metrics_endpoint():
    """Endpoint для Prometheus метрик"""
    return Response(content=generate_latest(), media_type="text/plain")
