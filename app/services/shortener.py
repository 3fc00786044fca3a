"""
URL Shortener Service

Registers long URLs under short codes and resolves codes back to URLs.

Registration Protocol:
    1. Normalize the URL (trim, lower-case scheme and authority)
    2. Mint a Snowflake ID and encode it as a Base62 short code
    3. Ask the store to insert (code, normalized URL)
    4. CREATED    -> return the new code
       URL_EXISTS -> look up the record registered first and return its code

Uniqueness is decided by the store alone: there is no existence check before
the insert, so two concurrent registrations of the same URL cannot both win.
The losing attempt only wastes one Snowflake ID. No locks are held across the
store calls, and each store call is its own unit of work, so a whole
register() call can be retried safely after a timeout.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from core.exceptions import (
    InvalidInputError,
    InvariantViolationError,
    ShortCodeNotFoundError,
)
from database.store import InsertResult, UrlStore
from services.logger import setup_logger
from utils import base62
from utils.snowflake import SnowflakeIDGenerator
from utils.url_normalizer import normalize_url

logger = setup_logger("shortener")


@dataclass(frozen=True)
class ShortenResult:
    short_code: str
    short_url: str


class UrlShortener:
    """Registration and resolution of short codes.

    Attributes:
        store: The URL store holding the uniqueness constraints.
        generator: The process-wide Snowflake ID generator.
        base_url: Prefix of the public short URLs, without trailing slash.
        store_timeout: Seconds allowed for each store call. None disables it.
    """

    def __init__(
        self,
        store: UrlStore,
        generator: SnowflakeIDGenerator,
        base_url: str = "",
        store_timeout: Optional[float] = None,
    ):
        self.store = store
        self.generator = generator
        self.base_url = base_url.rstrip("/")
        self.store_timeout = store_timeout

    async def _bounded(self, coro):
        if self.store_timeout is None:
            return await coro
        return await asyncio.wait_for(coro, timeout=self.store_timeout)

    async def register(self, raw_url: str) -> str:
        """Return the short code for a URL, creating it on first use.

        Args:
            raw_url: The URL as submitted by the client.

        Returns:
            The short code registered for the normalized URL.

        Raises:
            InvalidInputError: If the URL is blank.
            ClockOutOfRangeError: If the generator's clock is outside the
                timestamp range.
            ClockMovedBackwardsError: If the generator's clock regressed.
            SequenceExhaustedTimeoutError: If the generator could not get a
                fresh millisecond in time.
            InvariantViolationError: If the store reported a conflict it
                cannot back up with a record.
            asyncio.TimeoutError: If a store call exceeded store_timeout.
        """
        normalized_url = normalize_url(raw_url)
        logger.debug("Shortening URL: original=%r, normalized=%r", raw_url, normalized_url)

        short_code = base62.encode(self.generator.generate_id())
        result = await self._bounded(self.store.insert(short_code, normalized_url))

        if result is InsertResult.CREATED:
            logger.info("Created new short code: '%s' -> '%s'", short_code, normalized_url)
            return short_code

        if result is InsertResult.CODE_EXISTS:
            logger.error(
                "Generated short code '%s' is already registered. Is another "
                "generator running with node ID %d?",
                short_code,
                self.generator.node_id,
            )
            raise InvariantViolationError(
                f"Generated short code {short_code} collides with an existing record"
            )

        logger.info("Idempotency hit for URL: '%s'. Retrieving existing mapping.", normalized_url)
        existing = await self._bounded(self.store.find_by_normalized_url(normalized_url))
        if existing is None:
            logger.error(
                "Store reported a conflict for '%s' but no existing mapping was found.",
                normalized_url,
            )
            raise InvariantViolationError(
                f"Constraint violation occurred but no existing mapping found for: {normalized_url}"
            )

        logger.info(
            "Returned existing short code: '%s' -> '%s'", existing.short_code, normalized_url
        )
        return existing.short_code

    async def shorten(self, raw_url: str) -> ShortenResult:
        """Register a URL and build its public short URL."""
        short_code = await self.register(raw_url)
        return ShortenResult(short_code=short_code, short_url=self.short_url(short_code))

    def short_url(self, short_code: str) -> str:
        return f"{self.base_url}/{short_code}"

    async def resolve(self, short_code: str) -> str:
        """Return the URL registered under a short code.

        Raises:
            InvalidInputError: If the code is not valid Base62.
            ShortCodeNotFoundError: If nothing is registered under the code.
        """
        if not base62.is_valid(short_code):
            raise InvalidInputError(f"Invalid short code: {short_code!r}")

        record = await self._bounded(self.store.find_by_code(short_code))
        if record is None:
            raise ShortCodeNotFoundError(short_code)
        return record.normalized_url
