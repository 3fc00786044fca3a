"""
Cassandra URL Store

Persists URL records in two tables:

    url                (short_code PRIMARY KEY, normalized_url, created_at)
    url_by_normalized  (normalized_url PRIMARY KEY, short_code, created_at)

Both uniqueness constraints are enforced with lightweight transactions
(INSERT ... IF NOT EXISTS). The primary row is written first and the index row
second; when the index insert loses, the primary row is deleted again. A code
returned by find_by_normalized_url therefore always resolves, and find_by_code
only returns rows the index points back to.

The driver is blocking, so statements run in worker threads to keep the event
loop free. The statements of one insert share a single thread, which finishes
them even if the awaiting task is cancelled.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

from cassandra.cluster import Session

from database.store import InsertResult, UrlRecord, UrlStore, utc_now
from services.logger import setup_logger

logger = setup_logger("database.cassandra")


def _as_utc(value: datetime) -> datetime:
    # The driver hands back naive datetimes in UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CassandraUrlStore(UrlStore):
    """URL store backed by a Cassandra session using dict_factory rows."""

    def __init__(self, session: Session):
        self.session = session
        self._insert_url = session.prepare(
            """
            INSERT INTO url (short_code, normalized_url, created_at)
            VALUES (?, ?, ?)
            IF NOT EXISTS
            """
        )
        self._insert_index = session.prepare(
            """
            INSERT INTO url_by_normalized (normalized_url, short_code, created_at)
            VALUES (?, ?, ?)
            IF NOT EXISTS
            """
        )
        self._delete_url = session.prepare(
            "DELETE FROM url WHERE short_code=? IF normalized_url=?"
        )
        self._select_by_code = session.prepare("SELECT * FROM url WHERE short_code=?")
        self._select_by_url = session.prepare(
            "SELECT * FROM url_by_normalized WHERE normalized_url=?"
        )

    async def _execute(self, statement, parameters):
        return await asyncio.to_thread(self.session.execute, statement, parameters)

    def _insert_pair(self, short_code: str, normalized_url: str) -> InsertResult:
        """Blocking insert of both rows, including the cleanup of a lost race.

        Runs to completion in its worker thread even when the awaiting
        coroutine is cancelled, so a timeout never leaves the cleanup undone.
        """
        created_at = utc_now().replace(tzinfo=None)

        result = self.session.execute(
            self._insert_url, [short_code, normalized_url, created_at]
        )
        if not result.was_applied:
            logger.error("Short code '%s' is already registered.", short_code)
            return InsertResult.CODE_EXISTS

        result = self.session.execute(
            self._insert_index, [normalized_url, short_code, created_at]
        )
        if result.was_applied:
            return InsertResult.CREATED

        logger.debug(
            "URL '%s' registered concurrently, discarding code '%s'.",
            normalized_url,
            short_code,
        )
        try:
            self.session.execute(self._delete_url, [short_code, normalized_url])
        except Exception as e:
            # find_by_code hides the leftover row: the index points elsewhere.
            logger.error(
                "Failed to delete unindexed row for code '%s': %r", short_code, e
            )
            raise
        return InsertResult.URL_EXISTS

    async def insert(self, short_code: str, normalized_url: str) -> InsertResult:
        return await asyncio.to_thread(self._insert_pair, short_code, normalized_url)

    async def find_by_normalized_url(self, normalized_url: str) -> Optional[UrlRecord]:
        rows = await self._execute(self._select_by_url, [normalized_url])
        row = rows.one()
        if row is None:
            return None
        return UrlRecord(
            short_code=row["short_code"],
            normalized_url=row["normalized_url"],
            created_at=_as_utc(row["created_at"]),
        )

    async def find_by_code(self, short_code: str) -> Optional[UrlRecord]:
        rows = await self._execute(self._select_by_code, [short_code])
        row = rows.one()
        if row is None:
            return None

        # Only rows the index points back to are registered; anything else is
        # the remnant of an insert that lost its race.
        index = await self._execute(self._select_by_url, [row["normalized_url"]])
        index_row = index.one()
        if index_row is None or index_row["short_code"] != short_code:
            logger.debug("Ignoring unindexed row for code '%s'.", short_code)
            return None

        return UrlRecord(
            short_code=row["short_code"],
            normalized_url=row["normalized_url"],
            created_at=_as_utc(row["created_at"]),
        )

    async def close(self) -> None:
        self.session.shutdown()
        self.session.cluster.shutdown()
