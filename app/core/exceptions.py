class ShortenerError(Exception):
    """Base class for errors raised by the shortener core."""

    pass


class InvalidInputError(ShortenerError, ValueError):
    """Raised when a caller passes a value the core cannot work with."""

    pass


class ClockMovedBackwardsError(ShortenerError):
    """Raised when the wall clock reads earlier than the last issued timestamp."""

    def __init__(self, last_timestamp: int, current_timestamp: int):
        self.last_timestamp = last_timestamp
        self.current_timestamp = current_timestamp
        super().__init__(
            f"Clock moved backwards: last timestamp {last_timestamp}, "
            f"current timestamp {current_timestamp}. Refusing to generate ID."
        )


class SequenceExhaustedTimeoutError(ShortenerError):
    """Raised when the clock does not advance while waiting for a fresh millisecond."""

    pass


class InvariantViolationError(ShortenerError):
    """Raised when the store contradicts itself during registration."""

    pass


class ShortCodeNotFoundError(ShortenerError):
    """Raised when no URL is registered under a short code."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code not found: {short_code}")


class ClockOutOfRangeError(ShortenerError):
    """Raised when the clock reads before the epoch or past the 41-bit timestamp range."""

    def __init__(self, timestamp: int, max_timestamp: int):
        self.timestamp = timestamp
        self.max_timestamp = max_timestamp
        super().__init__(
            f"Clock reading {timestamp} ms since epoch is outside "
            f"[0, {max_timestamp}]. Refusing to generate ID."
        )
