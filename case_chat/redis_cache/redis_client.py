import re
from typing import List, Optional

import redis

from case_chat.exception.custom_exception import BlobStoreError
from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.utils.config_loader import RedisConfig
from case_chat.utils.thread_pool import run_sync


def create_redis_client(cfg: RedisConfig) -> redis.Redis:
    return redis.Redis(
        host=cfg.host,
        port=cfg.port,
        db=cfg.db,
        decode_responses=False,
        socket_timeout=cfg.socket_timeout,
        socket_connect_timeout=cfg.socket_timeout,
    )


_GLOB_SPECIAL = re.compile(r"[*?\[\]\\]")


def _blob_key(container: str, name: str) -> str:
    """
    example : blob:chathistory:session_18_nov_2025_3-13_pm_ab12cd34.json
    """
    return f"blob:{container}:{name}"


class RedisBlobStore:
    """
    A blob container stored as plain Redis string keys (no TTL).

    Objects are overwritten with SET; listing uses SCAN over the container's
    key prefix, so it never blocks the server the way KEYS would.
    """

    def __init__(self, client: redis.Redis, container: str):
        self.client = client
        self.container = container

    def _read(self, name: str) -> Optional[bytes]:
        try:
            value = self.client.get(_blob_key(self.container, name))
        except redis.RedisError as e:
            raise BlobStoreError(f"Failed to read blob {self.container}/{name}", e) from e
        if isinstance(value, str):
            value = value.encode("utf-8")
        return value

    def _write(self, name: str, data: bytes, overwrite: bool) -> None:
        key = _blob_key(self.container, name)
        try:
            written = self.client.set(key, data, nx=not overwrite)
        except redis.RedisError as e:
            raise BlobStoreError(f"Failed to write blob {self.container}/{name}", e) from e
        if not written:
            raise BlobStoreError(f"Blob {self.container}/{name} already exists")
        log.debug("Blob written to redis | key=%s | bytes=%d", key, len(data))

    def _exists(self, name: str) -> bool:
        try:
            return bool(self.client.exists(_blob_key(self.container, name)))
        except redis.RedisError as e:
            raise BlobStoreError(f"Failed to check blob {self.container}/{name}", e) from e

    def _list(self, prefix: str) -> List[str]:
        key_prefix = _blob_key(self.container, "")
        try:
            pattern = _GLOB_SPECIAL.sub(lambda m: "\\" + m.group(0), key_prefix + prefix) + "*"
            keys = self.client.scan_iter(match=pattern)
            names = []
            for key in keys:
                if isinstance(key, bytes):
                    key = key.decode("utf-8")
                names.append(key[len(key_prefix):])
            return sorted(names)
        except redis.RedisError as e:
            raise BlobStoreError(f"Failed to list container {self.container}", e) from e

    async def read(self, name: str) -> Optional[bytes]:
        return await run_sync(self._read, name)

    async def write(self, name: str, data: bytes, overwrite: bool = True) -> None:
        await run_sync(self._write, name, data, overwrite)

    async def exists(self, name: str) -> bool:
        return await run_sync(self._exists, name)

    async def list_names(self, prefix: str = "") -> List[str]:
        return await run_sync(self._list, prefix)
