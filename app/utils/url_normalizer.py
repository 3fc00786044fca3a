from urllib.parse import urlsplit

from core.exceptions import InvalidInputError


def _authority_end(url: str, scheme: str) -> int:
    """Index just past the scheme and authority of url, 0 if it has neither."""
    end = 0
    if scheme and url[: len(scheme) + 1].lower() == scheme + ":":
        end = len(scheme) + 1
    if url.startswith("//", end):
        end += 2
        while end < len(url) and url[end] not in "/?#":
            end += 1
    return end


def normalize_url(raw_url: str) -> str:
    """Canonicalize a URL before it is compared against registered URLs.

    Surrounding whitespace is stripped and the scheme and authority are
    lower-cased in place. Everything after the authority is kept byte for
    byte, including empty "?" or "#" delimiters. Input that cannot be split
    into URL components is returned stripped but otherwise untouched.

    Raises:
        InvalidInputError: If the URL is missing or blank.
    """
    if raw_url is None or not raw_url.strip():
        raise InvalidInputError("URL cannot be null or empty")

    trimmed = raw_url.strip()
    try:
        parts = urlsplit(trimmed)
    except ValueError:
        return trimmed

    end = _authority_end(trimmed, parts.scheme)
    return trimmed[:end].lower() + trimmed[end:]
