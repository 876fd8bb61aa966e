import redis
import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .db import create_storage_engine, make_session_factory
from .models import Base, KeyValueORM

logger = structlog.get_logger(__name__)


class IKeyValueStore:
    def load(self, key: str) -> str | None: ...
    def store(self, key: str, value: str) -> bool: ...


class SqlKeyValueStore(IKeyValueStore):
    """Локальное хранилище ключ-значение поверх SQLAlchemy (по умолчанию sqlite)."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @classmethod
    def from_url(cls, url: str) -> "SqlKeyValueStore":
        engine = create_storage_engine(url)
        Base.metadata.create_all(bind=engine)
        return cls(make_session_factory(engine))

    def load(self, key: str) -> str | None:
        try:
            with self.session_factory() as db:
                row = db.get(KeyValueORM, key)
                return row.value if row else None
        except SQLAlchemyError as e:
            logger.warning("storage_load_failed", key=key, error=str(e))
            return None

    def store(self, key: str, value: str) -> bool:
        # одна строка на ключ: значение всегда перезаписывается целиком
        try:
            with self.session_factory() as db:
                db.merge(KeyValueORM(key=key, value=value))
                db.commit()
            return True
        except SQLAlchemyError as e:
            logger.error("storage_write_failed", key=key, error=str(e))
            return False


class RedisKeyValueStore(IKeyValueStore):
    def __init__(self, client: redis.Redis, namespace: str = "progress_sync"):
        self.client = client
        self.namespace = namespace

    @classmethod
    def from_url(cls, url: str) -> "RedisKeyValueStore":
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True
        )
        return cls(client)

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def load(self, key: str) -> str | None:
        try:
            return self.client.get(self._key(key))
        except redis.RedisError as e:
            # Если Redis недоступен, считаем что данных нет
            logger.warning("storage_load_failed", key=key, error=str(e))
            return None

    def store(self, key: str, value: str) -> bool:
        try:
            self.client.set(self._key(key), value)
            return True
        except redis.RedisError as e:
            logger.error("storage_write_failed", key=key, error=str(e))
            return False


def build_key_value_store(url: str) -> IKeyValueStore:
    if url.startswith(("redis://", "rediss://", "unix://")):
        return RedisKeyValueStore.from_url(url)
    return SqlKeyValueStore.from_url(url)
