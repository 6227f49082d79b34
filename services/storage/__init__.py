"""
Storage Package

Async key-value backends for small persisted documents.
"""

from services.storage.key_value import (
    KeyValueStore,
    MemoryKeyValueStore,
    JsonFileKeyValueStore,
    RedisKeyValueStore,
    get_key_value_store,
)

__all__ = [
    'KeyValueStore',
    'MemoryKeyValueStore',
    'JsonFileKeyValueStore',
    'RedisKeyValueStore',
    'get_key_value_store',
]
