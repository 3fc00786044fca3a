"""
URL Store Contract

The persistence collaborator of the shortener. A store owns the durable URL
records and the two uniqueness constraints the registration protocol relies
on:

    - primary:   one record per short code
    - secondary: one record per normalized URL

The shortener never checks for existence before inserting. It proposes a
record and reads the tagged InsertResult, so every backend must decide
uniqueness atomically inside insert().

Backends:
    - MemoryUrlStore: process-local dictionaries, used in tests and local runs
    - CassandraUrlStore (database.cassandra_store): lightweight transactions
    - RedisUrlStore (database.redis_store): WATCH/MULTI transactions
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UrlRecord:
    """A registered (short code, normalized URL) pair."""

    short_code: str
    normalized_url: str
    created_at: datetime = field(default_factory=utc_now)


class InsertResult(Enum):
    CREATED = "created"
    URL_EXISTS = "url_exists"
    CODE_EXISTS = "code_exists"


class UrlStore(ABC):
    """Abstract base class for URL store backends.

    Each method is one independently committed unit of work.
    """

    @abstractmethod
    async def insert(self, short_code: str, normalized_url: str) -> InsertResult:
        """Atomically create a record unless either key is already taken.

        Returns:
            InsertResult.CREATED on success, URL_EXISTS if the normalized URL
            is already registered, CODE_EXISTS if the short code is taken.
        """
        raise NotImplementedError

    @abstractmethod
    async def find_by_normalized_url(self, normalized_url: str) -> Optional[UrlRecord]:
        """Point lookup by the secondary uniqueness key."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_code(self, short_code: str) -> Optional[UrlRecord]:
        """Point lookup by the primary key."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release connections held by the backend."""
        return None


class MemoryUrlStore(UrlStore):
    """In-process store guarded by a threading lock.

    Safe to share between threads and event loops. Every call yields to the
    event loop once before touching the data, so concurrent registrations
    interleave the way they would against a remote store.
    """

    def __init__(self):
        self._by_code: dict[str, UrlRecord] = {}
        self._by_url: dict[str, UrlRecord] = {}
        self._lock = threading.Lock()

    async def insert(self, short_code: str, normalized_url: str) -> InsertResult:
        await asyncio.sleep(0)
        with self._lock:
            if normalized_url in self._by_url:
                return InsertResult.URL_EXISTS
            if short_code in self._by_code:
                return InsertResult.CODE_EXISTS

            record = UrlRecord(short_code=short_code, normalized_url=normalized_url)
            self._by_code[short_code] = record
            self._by_url[normalized_url] = record
            return InsertResult.CREATED

    async def find_by_normalized_url(self, normalized_url: str) -> Optional[UrlRecord]:
        await asyncio.sleep(0)
        with self._lock:
            return self._by_url.get(normalized_url)

    async def find_by_code(self, short_code: str) -> Optional[UrlRecord]:
        await asyncio.sleep(0)
        with self._lock:
            return self._by_code.get(short_code)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_code)
