from __future__ import annotations

from uuid import uuid4

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env(name: str) -> AliasChoices:
    """Read AMITY_<name> first, then the plain <name>."""
    return AliasChoices(f"AMITY_{name}", name)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="AMITY_", env_file=".env", extra="ignore")

    app_name: str = "amity"
    env: str = "dev"

    # Instance ID for distributed deployments
    instance_id: str = Field(default_factory=lambda: str(uuid4())[:8])

    # Backend selection: "memory" (single process) or "redis" (Redis + FalkorDB)
    backend: str = Field(default="redis", validation_alias="AMITY_BACKEND")

    # Redis (cache, bus, reply slots, sequence counters)
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias=_env("REDIS_URL"))

    # FalkorDB graph store
    falkordb_host: str = Field(default="localhost", validation_alias=_env("FALKORDB_HOST"))
    falkordb_port: int = Field(default=6379, validation_alias=_env("FALKORDB_PORT"))
    falkordb_password: SecretStr | None = Field(
        default=None, validation_alias=_env("FALKORDB_PASSWORD")
    )
    falkordb_graph: str = Field(default="friendship", validation_alias=_env("FALKORDB_GRAPH"))
    falkordb_max_connections: int = Field(
        default=16, validation_alias=_env("FALKORDB_MAX_CONNECTIONS")
    )

    # Request bus
    bus_stream: str = Field(default="amity:requests", validation_alias=_env("BUS_STREAM"))
    bus_consumer_group: str = Field(default="amity-dispatchers", validation_alias=_env("BUS_GROUP"))
    bus_consumer_id: str | None = Field(default=None, validation_alias=_env("BUS_CONSUMER_ID"))
    bus_dead_letter_stream: str = Field(
        default="amity:requests:dead", validation_alias=_env("BUS_DEAD_LETTER_STREAM")
    )

    # Request/response bridge
    reply_ttl: int = Field(default=60, validation_alias=_env("REPLY_TTL"))  # seconds
    call_timeout: float = Field(default=10.0, validation_alias=_env("CALL_TIMEOUT"))
    publish_timeout: float = Field(default=10.0, validation_alias=_env("PUBLISH_TIMEOUT"))
    dispatcher_concurrency: int = Field(default=32, validation_alias=_env("DISPATCHER_CONCURRENCY"))

    # Recommendation traversal
    recommend_depth: int = Field(default=2, validation_alias=_env("RECOMMEND_DEPTH"))
    recommend_threshold: int = Field(default=2, validation_alias=_env("RECOMMEND_THRESHOLD"))
    recommend_inclusive: bool = Field(default=True, validation_alias=_env("RECOMMEND_INCLUSIVE"))

    # Neighbor cache
    populate_cache_on_read: bool = Field(
        default=False, validation_alias=_env("POPULATE_CACHE_ON_READ")
    )
    cache_ttl: int | None = Field(default=None, validation_alias=_env("CACHE_TTL"))

    # Observability
    log_level: str = Field(default="INFO", validation_alias=_env("LOG_LEVEL"))
    log_json: bool = Field(default=True, validation_alias=_env("LOG_JSON"))


settings = Settings()
