from unittest.mock import MagicMock

import redis

from progress_sync.infrastructure.storage import (
    SqlKeyValueStore, RedisKeyValueStore, build_key_value_store,
)


def test_sql_store_roundtrip(storage):
    """Тест записи и чтения из sqlite"""
    assert storage.load("courseProgress") is None
    assert storage.store("courseProgress", '{"1": {"2": true}}') is True
    assert storage.load("courseProgress") == '{"1": {"2": true}}'

def test_sql_store_overwrites(storage):
    storage.store("k", "first")
    storage.store("k", "second")
    assert storage.load("k") == "second"

def test_sql_stores_are_isolated():
    a = SqlKeyValueStore.from_url("sqlite:///:memory:")
    b = SqlKeyValueStore.from_url("sqlite:///:memory:")
    a.store("k", "v")
    assert b.load("k") is None

def test_redis_store_namespaced_keys():
    """Тест Redis-хранилища"""
    client = MagicMock()
    client.get.return_value = "payload"
    s = RedisKeyValueStore(client)

    assert s.store("courseProgress", "payload") is True
    client.set.assert_called_once_with("progress_sync:courseProgress", "payload")
    assert s.load("courseProgress") == "payload"
    client.get.assert_called_once_with("progress_sync:courseProgress")

def test_redis_store_errors_are_recovered():
    """Тест обработки недоступного Redis"""
    client = MagicMock()
    client.get.side_effect = redis.ConnectionError("down")
    client.set.side_effect = redis.ConnectionError("down")
    s = RedisKeyValueStore(client)

    assert s.load("k") is None
    assert s.store("k", "v") is False

def test_build_key_value_store_by_scheme():
    assert isinstance(build_key_value_store("sqlite:///:memory:"), SqlKeyValueStore)
    assert isinstance(build_key_value_store("redis://localhost:6379/99"), RedisKeyValueStore)
