"""
Redis URL Store

Persists URL records as:

    url:{short_code}                  hash {normalized_url, created_at}
    url_by_normalized:{normalized}    string short_code

Both keys are written in one WATCH/MULTI transaction, so the pair appears
together or not at all. If a watched key changes before EXEC, the transaction
is retried; the retry observes the competing write and reports the conflict.
"""

from datetime import datetime
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import WatchError

from database.store import InsertResult, UrlRecord, UrlStore, utc_now
from services.logger import setup_logger

logger = setup_logger("database.redis")


def _code_key(short_code: str) -> str:
    return f"url:{short_code}"


def _index_key(normalized_url: str) -> str:
    return f"url_by_normalized:{normalized_url}"


class RedisUrlStore(UrlStore):
    """URL store backed by an async Redis client with decode_responses=True."""

    def __init__(self, redis_client: redis.Redis, watch_retries: int = 3):
        self.redis_client = redis_client
        self.watch_retries = max(1, watch_retries)

    async def _try_insert(self, short_code: str, normalized_url: str) -> InsertResult:
        code_key = _code_key(short_code)
        index_key = _index_key(normalized_url)

        pipe = self.redis_client.pipeline()
        try:
            await pipe.watch(code_key, index_key)

            if await pipe.exists(index_key):
                await pipe.unwatch()
                return InsertResult.URL_EXISTS

            if await pipe.exists(code_key):
                await pipe.unwatch()
                return InsertResult.CODE_EXISTS

            pipe.multi()
            pipe.hset(
                name=code_key,
                mapping={
                    "normalized_url": normalized_url,
                    "created_at": utc_now().isoformat(),
                },
            )
            pipe.set(index_key, short_code)
            await pipe.execute()

            return InsertResult.CREATED
        finally:
            await pipe.reset()

    async def insert(self, short_code: str, normalized_url: str) -> InsertResult:
        for attempt in range(1, self.watch_retries + 1):
            try:
                return await self._try_insert(short_code, normalized_url)
            except WatchError as e:
                logger.warning(
                    "Watched key modified during insert of '%s' (attempt %d/%d): %s",
                    short_code,
                    attempt,
                    self.watch_retries,
                    e,
                )
                if attempt == self.watch_retries:
                    raise

    async def _read_record(self, short_code: str) -> Optional[UrlRecord]:
        data = await self.redis_client.hgetall(_code_key(short_code))
        if not data:
            return None
        return UrlRecord(
            short_code=short_code,
            normalized_url=data["normalized_url"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )

    async def find_by_normalized_url(self, normalized_url: str) -> Optional[UrlRecord]:
        short_code = await self.redis_client.get(_index_key(normalized_url))
        if short_code is None:
            return None
        return await self._read_record(short_code)

    async def find_by_code(self, short_code: str) -> Optional[UrlRecord]:
        return await self._read_record(short_code)

    async def close(self) -> None:
        await self.redis_client.aclose()
