"""Tests for store backend selection."""

import pytest

from core.config import settings
from database import build_store
from database.store import MemoryUrlStore


def test_backend_defaults_to_setting(monkeypatch):
    monkeypatch.setattr(settings, "STORE_BACKEND", "Memory")

    assert isinstance(build_store(), MemoryUrlStore)
    assert isinstance(build_store(None), MemoryUrlStore)


def test_explicit_backend_overrides_setting(monkeypatch):
    monkeypatch.setattr(settings, "STORE_BACKEND", "cassandra")

    assert isinstance(build_store("memory"), MemoryUrlStore)


def test_unknown_backend_rejected():
    with pytest.raises(ValueError, match="Unknown store backend"):
        build_store("sqlite")
