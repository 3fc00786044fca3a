"""
Database Connection and Model Module for URL Shortener Service

This module handles connectivity for the store backends of the URL shortening
service and the Cassandra table definitions. The backend is selected with the
STORE_BACKEND setting:

    - cassandra: primary persistent storage (DataStax Astra DB secure bundle or
      plain contact points)
    - redis: persistent key-value storage with WATCH/MULTI transactions
    - memory: process-local storage for tests and local development

Connection Management:
    - Cassandra: bounded retry loop, dict row factory, schema synchronized with
      the models below on every start
    - Redis: async client with health checks and retry on timeout

Error Handling:
    STORE_ERRORS lists the driver exceptions a store call may raise. The
    shortener core lets them propagate unmodified; the HTTP layer maps them to
    503 responses.
"""

import asyncio
import base64
import os
from time import sleep
from typing import Optional

from cassandra import InvalidRequest, OperationTimedOut, ReadTimeout, Unavailable, WriteTimeout
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import Cluster, ConnectionException, NoHostAvailable, Session
from cassandra.cqlengine import columns, connection
from cassandra.cqlengine.management import sync_table
from cassandra.cqlengine.models import Model
from cassandra.policies import RoundRobinPolicy
from cassandra.query import dict_factory
import redis.asyncio as redis
from redis.exceptions import ConnectionError, ResponseError, TimeoutError, WatchError

from core.config import settings
from database.store import MemoryUrlStore, UrlStore, utc_now
from services.logger import setup_logger

logger = setup_logger("database")

STORE_ERRORS = (
    InvalidRequest,
    Unavailable,
    OperationTimedOut,
    ReadTimeout,
    WriteTimeout,
    NoHostAvailable,
    ConnectionError,
    ResponseError,
    TimeoutError,
    WatchError,
    asyncio.TimeoutError,
)


def naive_utc_now():
    # cqlengine DateTime columns store naive UTC values.
    return utc_now().replace(tzinfo=None)


class URL(Model):
    """
    Cassandra model for a registered URL, keyed by its short code.

    Attributes:
        short_code (Text): Base62 rendering of the Snowflake ID. Primary key,
                           used by the redirect lookup.
        normalized_url (Text): The canonical form of the registered URL.
        created_at (DateTime): When the record was created (UTC).
    """

    __table_name__ = "url"
    __keyspace__ = settings.KEYSPACE

    short_code = columns.Text(primary_key=True, required=True)
    normalized_url = columns.Text(required=True)
    created_at = columns.DateTime(required=True, default=naive_utc_now)


class URLByNormalized(Model):
    """
    Cassandra model enforcing one short code per normalized URL.

    Attributes:
        normalized_url (Text): The canonical URL. Primary key.
        short_code (Text): The code registered for this URL.
        created_at (DateTime): Copied from the matching URL row.
    """

    __table_name__ = "url_by_normalized"
    __keyspace__ = settings.KEYSPACE

    normalized_url = columns.Text(primary_key=True, required=True)
    short_code = columns.Text(required=True)
    created_at = columns.DateTime(required=True, default=naive_utc_now)


def _cluster_options() -> dict:
    """Build Cluster keyword arguments for Astra or plain contact points."""
    options = {
        "load_balancing_policy": RoundRobinPolicy(),
        "idle_heartbeat_interval": 3,
        "protocol_version": 4,
    }

    if settings.CASSANDRA_CLIENT_ID:
        options["auth_provider"] = PlainTextAuthProvider(
            username=settings.CASSANDRA_CLIENT_ID,
            password=settings.CASSANDRA_CLIENT_SECRET,
        )

    if settings.ASTRA_BUNDLE_B64:
        base_dir = os.path.dirname(os.path.abspath(__file__))
        bundle_path = os.path.join(base_dir, "secure-connect-url-shortener.zip")
        with open(bundle_path, "wb") as bundle_file:
            bundle_file.write(base64.b64decode(settings.ASTRA_BUNDLE_B64))
        options["cloud"] = {"secure_connect_bundle": bundle_path}
    else:
        options["contact_points"] = [
            host.strip() for host in settings.CASSANDRA_HOSTS.split(",") if host.strip()
        ]
        options["port"] = settings.CASSANDRA_PORT

    return options


def connect_to_db(max_retries: int = 10, retry_delay: int = 5) -> Session:
    """
    Establish a Cassandra session with retry logic and table initialization.

    Connection Process:
        1. Builds cluster options (secure bundle or contact points, auth)
        2. Connects to the configured keyspace with a dict row factory
        3. Registers the session with CQL Engine
        4. Synchronizes the url and url_by_normalized tables

    Raises:
        RuntimeError: If all connection attempts fail.
    """
    for attempt in range(1, max_retries + 1):
        try:
            logger.info(
                "Attempting to connect to Cassandra (Attempt %d/%d)...",
                attempt,
                max_retries,
            )

            cluster = Cluster(**_cluster_options())
            session = cluster.connect(settings.KEYSPACE)
            session.row_factory = dict_factory

            connection.set_session(session)

            sync_table(URL)
            sync_table(URLByNormalized)

            logger.info(
                "Cassandra connection established and tables are created successfully."
            )
            return session

        except (NoHostAvailable, ConnectionException) as e:
            logger.error("Connection attempt %d failed: %s", attempt, e)
            if attempt < max_retries:
                logger.info("Retrying in %d seconds...", retry_delay)
                sleep(retry_delay)
            else:
                logger.error("All connection attempts exhausted")

    logger.error("Failed to establish Cassandra connection after all retry attempts")
    raise RuntimeError("Failed to connect to Cassandra after multiple attempts.")


def connect_to_redis() -> redis.Redis:
    """
    Create the async Redis client used by the Redis store.

    Raises:
        ConnectionError: If the client cannot be configured.
    """
    logger.info(
        "Connecting to Redis at %s:%d (SSL: %s, Auth: %s)",
        settings.REDIS_HOST,
        settings.REDIS_PORT,
        settings.REDIS_SSL,
        bool(settings.REDIS_USERNAME),
    )

    try:
        redis_client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            username=settings.REDIS_USERNAME or None,
            password=settings.REDIS_PASSWORD or None,
            ssl=settings.REDIS_SSL,
            decode_responses=True,  # Automatically decode responses to strings
            retry_on_timeout=True,
            health_check_interval=30,
            socket_connect_timeout=20,
            socket_timeout=10,
        )
    except ConnectionError as e:
        logger.error("Redis connection failed: %s", e)
        raise

    logger.info("Redis client configured successfully.")
    return redis_client


def build_store(backend: Optional[str] = None) -> UrlStore:
    """Create the URL store selected by STORE_BACKEND.

    Raises:
        ValueError: If the backend name is unknown.
        RuntimeError: If Cassandra cannot be reached.
    """
    backend = (backend or settings.STORE_BACKEND).lower()

    if backend == "cassandra":
        from database.cassandra_store import CassandraUrlStore

        return CassandraUrlStore(connect_to_db())

    if backend == "redis":
        from database.redis_store import RedisUrlStore

        return RedisUrlStore(connect_to_redis(), settings.REDIS_WATCH_RETRIES)

    if backend == "memory":
        logger.warning("Using in-memory URL store; records are lost on restart.")
        return MemoryUrlStore()

    raise ValueError(f"Unknown store backend: {backend}")
