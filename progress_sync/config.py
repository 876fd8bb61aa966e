from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:8080/api"
    API_TOKEN: str | None = None
    REQUEST_TIMEOUT: float = 10.0

    STORAGE_URL: str = "sqlite:///./progress_sync.db"
    PROGRESS_STORAGE_KEY: str = "courseProgress"
    TOTAL_VIDEOS_STORAGE_KEY: str = "courseTotalVideos"
    LAST_SYNC_STORAGE_KEY: str = "lastProgressSync"

    SYNC_DEBOUNCE_SECONDS: float = 0.5

    CACHE_TTL: int = 300  # 5 minutes
    COURSE_DETAIL_TTL: int = 180
    ALL_COURSES_TTL: int = 120
    TRAINERS_TTL: int = 120
    CACHE_CLEANUP_INTERVAL: int = 600  # 0 - без фоновой очистки

    CLASSROOM_PATH_MARKER: str = "/classroom/"

    BEACON_PATH: str = "/user/progress/beacon"
    BEACON_TIMEOUT: float = 2.0
    BEACON_MAX_PAYLOAD_BYTES: int = 65536

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
