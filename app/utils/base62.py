"""
Base62 Codec Module

Reversible mapping between non-negative integers and short, URL-safe strings.
Snowflake IDs are rendered through this codec to produce the short codes handed
out by the service.

Alphabet:
    0-9, then a-z, then A-Z (62 symbols). The order is fixed; changing it would
    change every code ever issued.

    encode(0)  -> "0"
    encode(61) -> "Z"
    encode(62) -> "10"

Properties:
    - No padding: output length grows with the magnitude of the number
    - No leading zero digits except for the value 0 itself
    - decode(encode(n)) == n for every non-negative 64-bit n
    - Typical Snowflake IDs encode to 9-11 characters
"""

from core.exceptions import InvalidInputError

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
BASE = len(ALPHABET)
MAX_VALUE = (1 << 64) - 1

_INDEX = {char: index for index, char in enumerate(ALPHABET)}


def encode(number: int) -> str:
    """Encodes a non-negative integer as a Base62 string.

    Args:
        number: The integer to encode.

    Returns:
        The Base62 representation, most significant digit first.

    Raises:
        InvalidInputError: If the number is negative or not an integer.
    """
    if not isinstance(number, int) or isinstance(number, bool):
        raise InvalidInputError(f"Only integers can be encoded, got: {number!r}")
    if number < 0:
        raise InvalidInputError(f"Number must be non-negative, got: {number}")

    if number == 0:
        return ALPHABET[0]

    digits = []
    while number:
        number, remainder = divmod(number, BASE)
        digits.append(ALPHABET[remainder])
    return "".join(reversed(digits))


def decode(encoded: str) -> int:
    """Decodes a Base62 string back into the integer it represents.

    Args:
        encoded: A non-empty string made only of alphabet characters.

    Returns:
        The decoded integer.

    Raises:
        InvalidInputError: If the string is empty, contains a character outside
            the alphabet, or decodes to more than 64 bits.
    """
    if not encoded or not isinstance(encoded, str):
        raise InvalidInputError("Encoded string cannot be null or empty")

    result = 0
    for char in encoded:
        digit = _INDEX.get(char)
        if digit is None:
            raise InvalidInputError(f"Invalid character in encoded string: {char!r}")
        result = result * BASE + digit

    if result > MAX_VALUE:
        raise InvalidInputError(f"Decoded value exceeds 64 bits: {encoded}")
    return result


def is_valid(encoded: str) -> bool:
    """Returns True if the string decodes to a value within 64 bits."""
    try:
        decode(encoded)
    except InvalidInputError:
        return False
    return True
