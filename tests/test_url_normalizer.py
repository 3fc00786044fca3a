"""Tests for URL normalization."""

import pytest

from core.exceptions import InvalidInputError
from utils.url_normalizer import normalize_url


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  HTTPS://Example.COM/Path  ", "https://example.com/Path"),
        ("https://example.com/Path", "https://example.com/Path"),
        ("HTTP://EXAMPLE.com:8080/A/b?Q=Yes#Frag", "http://example.com:8080/A/b?Q=Yes#Frag"),
        ("\thttps://Example.com\n", "https://example.com"),
        ("https://example.com/CaseSensitive/", "https://example.com/CaseSensitive/"),
    ],
)
def test_normalizes_scheme_and_host_only(raw, expected):
    assert normalize_url(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("https://Example.com/a?", "https://example.com/a?"),
        ("HTTPS://Example.COM/Path#", "https://example.com/Path#"),
        ("https://Example.com?#", "https://example.com?#"),
        ("HTTP:/Path", "http:/Path"),
        ("HTTPS://Example.com?Q=1", "https://example.com?Q=1"),
    ],
)
def test_only_scheme_and_authority_change(raw, expected):
    assert normalize_url(raw) == expected


def test_path_case_is_preserved():
    assert normalize_url("https://example.com/ABC") != normalize_url("https://example.com/abc")


def test_unparseable_url_falls_back_to_trimmed_input():
    assert normalize_url("  http://[::1/Broken  ") == "http://[::1/Broken"


def test_relative_input_is_kept():
    assert normalize_url(" Example.COM/Path ") == "Example.COM/Path"


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_blank_input_rejected(raw):
    with pytest.raises(InvalidInputError):
        normalize_url(raw)
