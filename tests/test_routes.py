"""Integration tests for API routes."""

import pytest
from redis.exceptions import ConnectionError

from database.store import InsertResult, MemoryUrlStore
from main import app, get_shortener
from services.shortener import UrlShortener
from utils.snowflake import DEFAULT_EPOCH, MAX_TIMESTAMP, SnowflakeIDGenerator


class TestHealthRoutes:
    @pytest.mark.asyncio
    async def test_health_endpoint(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestShortenRoutes:
    @pytest.mark.asyncio
    async def test_shorten_returns_code_and_url(self, client):
        response = await client.post("/api/shorten", json={"url": "https://example.com/Doc"})

        assert response.status_code == 200
        data = response.json()
        assert data["short_url"] == f"https://miniurl.test/{data['short_code']}"

    @pytest.mark.asyncio
    async def test_shorten_is_idempotent_over_equivalent_urls(self, client):
        first = await client.post("/api/shorten", json={"url": "  HTTPS://Example.COM/Path  "})
        second = await client.post("/api/shorten", json={"url": "https://example.com/Path"})

        assert first.json()["short_code"] == second.json()["short_code"]

    @pytest.mark.asyncio
    async def test_blank_url_is_client_error(self, client):
        response = await client.post("/api/shorten", json={"url": "   "})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid Request"
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_missing_url_is_validation_error(self, client):
        response = await client.post("/api/shorten", json={})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_store_failure_is_service_unavailable(self, client):
        class BrokenStore(MemoryUrlStore):
            async def insert(self, short_code, normalized_url):
                raise ConnectionError("connection refused")

        broken = UrlShortener(BrokenStore(), SnowflakeIDGenerator())
        app.dependency_overrides[get_shortener] = lambda: broken

        response = await client.post("/api/shorten", json={"url": "https://example.com"})

        assert response.status_code == 503
        assert response.json()["error"] == "Service Unavailable"

    @pytest.mark.asyncio
    async def test_store_contradiction_is_server_error(self, client):
        class LyingStore(MemoryUrlStore):
            async def insert(self, short_code, normalized_url):
                return InsertResult.URL_EXISTS

        lying = UrlShortener(LyingStore(), SnowflakeIDGenerator())
        app.dependency_overrides[get_shortener] = lambda: lying

        response = await client.post("/api/shorten", json={"url": "https://example.com"})

        assert response.status_code == 500
        assert response.json()["message"] == "Short URL generation failed"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("offset", [-5, MAX_TIMESTAMP + 1])
    async def test_clock_out_of_range_is_server_error(self, client, offset):
        generator = SnowflakeIDGenerator(clock=lambda: DEFAULT_EPOCH + offset)
        skewed = UrlShortener(MemoryUrlStore(), generator)
        app.dependency_overrides[get_shortener] = lambda: skewed

        response = await client.post("/api/shorten", json={"url": "https://example.com"})

        assert response.status_code == 500
        assert response.json()["message"] == "Short URL generation failed"


class TestRedirectRoutes:
    @pytest.mark.asyncio
    async def test_redirects_to_registered_url(self, client):
        created = await client.post("/api/shorten", json={"url": "HTTPS://Example.com/Target"})
        code = created.json()["short_code"]

        response = await client.get(f"/{code}")

        assert response.status_code == 301
        assert response.headers["location"] == "https://example.com/Target"

    @pytest.mark.asyncio
    async def test_unknown_code_is_not_found(self, client):
        response = await client.get("/unknown0")

        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"

    @pytest.mark.asyncio
    async def test_malformed_code_is_not_found(self, client):
        response = await client.get("/favicon.ico")
        assert response.status_code == 404
