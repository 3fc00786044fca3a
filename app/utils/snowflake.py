"""
Snowflake ID Generator Module

A Python implementation of Twitter's Snowflake algorithm for generating unique,
time-ordered 64-bit identifiers. Each ID is rendered as a Base62 short code by
the shortener service, so IDs minted later sort after IDs minted earlier.

Algorithm Overview:
    The generated 64-bit IDs have the following structure:

    |         41 bits          |  10 bits |  13 bits  |
    |       timestamp          | node_id  | sequence  |
    | ms since custom epoch    |  0-1023  |  0-8191   |

    - Timestamp: 41 bits = ~69 years of milliseconds from the custom epoch
      (2024-01-01T00:00:00Z by default)
    - Node ID: 10 bits = 1024 possible generator instances (0-1023). A single
      instance deployment uses 0; the field is reserved for future assignment.
    - Sequence: 13 bits = 8,192 IDs per millisecond per node

Thread Safety:
    - Uses threading.Lock() for atomic ID generation
    - The read-check-update of (last_timestamp, sequence) is serialized, so no
      two callers ever receive the same (timestamp, sequence) pair

Clock Considerations:
    - Handles same-millisecond generation with the sequence counter
    - Refuses to generate when the clock moves backwards
    - Busy-waits for the next millisecond when the sequence is exhausted,
      optionally bounded by max_wait_ms

Based on: Twitter's Snowflake algorithm
"""

import threading
import time
from typing import Callable, NamedTuple, Optional

from core.exceptions import (
    ClockMovedBackwardsError,
    ClockOutOfRangeError,
    InvalidInputError,
    SequenceExhaustedTimeoutError,
)

DEFAULT_EPOCH = 1704067200000

TIMESTAMP_BITS = 41
NODE_ID_BITS = 10
SEQUENCE_BITS = 13
MAX_TIMESTAMP = (1 << TIMESTAMP_BITS) - 1
MAX_NODE_ID = (1 << NODE_ID_BITS) - 1
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1
NODE_ID_SHIFT = SEQUENCE_BITS
TIMESTAMP_SHIFT = NODE_ID_BITS + SEQUENCE_BITS


class IdentifierParts(NamedTuple):
    timestamp: int
    node_id: int
    sequence: int


def _check_range(name: str, value: int, maximum: int) -> None:
    if not 0 <= value <= maximum:
        raise InvalidInputError(f"{name} must be between 0 and {maximum}, got: {value}")


def compose_id(timestamp: int, node_id: int, sequence: int) -> int:
    """Packs the three components into a 64-bit ID.

    Raises:
        InvalidInputError: If any component does not fit its bit allocation.
    """
    _check_range("Timestamp", timestamp, MAX_TIMESTAMP)
    _check_range("Node ID", node_id, MAX_NODE_ID)
    _check_range("Sequence", sequence, MAX_SEQUENCE)

    return (timestamp << TIMESTAMP_SHIFT) | (node_id << NODE_ID_SHIFT) | sequence


def parse_id(snowflake_id: int) -> IdentifierParts:
    """Splits a 64-bit ID back into (timestamp, node_id, sequence)."""
    return IdentifierParts(
        timestamp=(snowflake_id >> TIMESTAMP_SHIFT) & MAX_TIMESTAMP,
        node_id=(snowflake_id >> NODE_ID_SHIFT) & MAX_NODE_ID,
        sequence=snowflake_id & MAX_SEQUENCE,
    )


def _system_clock() -> int:
    return int(time.time() * 1000)


class SnowflakeIDGenerator:
    """A thread-safe Snowflake ID generator for creating unique identifiers.

    Attributes:
        node_id: The unique ID for this generator instance (0-1023).
        epoch: The custom epoch timestamp in milliseconds.
        max_wait_ms: Upper bound on the wait for the next millisecond when the
            sequence is exhausted. None waits indefinitely.
    """

    def __init__(
        self,
        node_id: int = 0,
        epoch: int = DEFAULT_EPOCH,
        clock: Optional[Callable[[], int]] = None,
        max_wait_ms: Optional[int] = None,
    ):
        """Initializes a new Snowflake ID generator instance.

        Args:
            node_id: A unique identifier for this node (0-1023).
            epoch: The custom epoch timestamp in milliseconds.
            clock: Returns the current Unix time in milliseconds. Defaults to
                the system clock.
            max_wait_ms: Optional cap on the sequence exhaustion wait.

        Raises:
            ValueError: If the node_id is outside the valid range (0-1023).
        """
        if not 0 <= node_id <= MAX_NODE_ID:
            raise ValueError(f"Node ID must be between 0 and {MAX_NODE_ID}")

        self._node_id = node_id
        self.epoch = epoch
        self.max_wait_ms = max_wait_ms
        self._clock = clock or _system_clock
        self._sequence = 0
        self._last_timestamp = -1
        self._lock = threading.Lock()

    @property
    def node_id(self) -> int:
        return self._node_id

    def _current_timestamp(self) -> int:
        """Returns milliseconds elapsed since the custom epoch."""
        return self._clock() - self.epoch

    def _wait_for_next_millis(self, last_timestamp: int) -> int:
        """Waits until the clock moves past last_timestamp.

        Args:
            last_timestamp: The timestamp of the last generated ID.

        Returns:
            The next millisecond timestamp.

        Raises:
            SequenceExhaustedTimeoutError: If max_wait_ms elapses first.
            ClockMovedBackwardsError: If the clock regresses while waiting.
        """
        deadline = None
        if self.max_wait_ms is not None:
            deadline = time.monotonic() + self.max_wait_ms / 1000

        timestamp = self._current_timestamp()
        while timestamp <= last_timestamp:
            if timestamp < last_timestamp:
                raise ClockMovedBackwardsError(last_timestamp, timestamp)
            if deadline is not None and time.monotonic() > deadline:
                raise SequenceExhaustedTimeoutError(
                    f"Sequence exhausted at timestamp {last_timestamp} and the clock "
                    f"did not advance within {self.max_wait_ms} ms"
                )
            timestamp = self._current_timestamp()
        return timestamp

    def _check_timestamp(self, timestamp: int) -> int:
        if not 0 <= timestamp <= MAX_TIMESTAMP:
            raise ClockOutOfRangeError(timestamp, MAX_TIMESTAMP)
        return timestamp

    def generate_id(self) -> int:
        """Generates a new unique Snowflake ID.

        Returns:
            A 64-bit unique Snowflake ID.

        Raises:
            ClockOutOfRangeError: If the clock reads before the epoch or beyond
                the 41-bit timestamp field.
            ClockMovedBackwardsError: If the system clock moves backward.
            SequenceExhaustedTimeoutError: If the sequence is exhausted and the
                clock does not advance within max_wait_ms.
        """
        with self._lock:
            timestamp = self._check_timestamp(self._current_timestamp())

            if timestamp < self._last_timestamp:
                raise ClockMovedBackwardsError(self._last_timestamp, timestamp)

            if timestamp == self._last_timestamp:
                sequence = (self._sequence + 1) & MAX_SEQUENCE
                if sequence == 0:
                    timestamp = self._check_timestamp(
                        self._wait_for_next_millis(self._last_timestamp)
                    )
            else:
                sequence = 0

            snowflake_id = compose_id(timestamp, self._node_id, sequence)

            self._sequence = sequence
            self._last_timestamp = timestamp

            return snowflake_id
