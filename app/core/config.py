from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENV: str = "dev"
    LOG_LEVEL: str = "DEBUG"
    NODE_ID: int = 0
    EPOCH: int = 1704067200000  # 2024-01-01T00:00:00Z
    DOMAIN: str = "http://localhost:8000"
    STORE_BACKEND: str = "memory"
    STORE_TIMEOUT: float = 5.0
    SEQUENCE_WAIT_TIMEOUT_MS: int = 1000
    KEYSPACE: str = "miniurl"
    CASSANDRA_HOSTS: str = "127.0.0.1"
    CASSANDRA_PORT: int = 9042
    CASSANDRA_CLIENT_ID: str = ""
    CASSANDRA_CLIENT_SECRET: str = ""
    ASTRA_BUNDLE_B64: str = ""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_USERNAME: str = ""
    REDIS_PASSWORD: str = ""
    REDIS_SSL: bool = False
    REDIS_WATCH_RETRIES: int = 3

    class Config:
        env_file = ".env"


settings = Settings()
