# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Core configuration - centralized config for the wotgraph package.

All environment-based configuration should flow through this module.
This provides a single source of truth and consistent defaults.

Usage:
    from wotgraph.core.config import get_config
    config = get_config()

    relays = config.relay_urls
    deadline = config.relay_deadline
"""

from __future__ import annotations

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigException

DEFAULT_RELAYS = (
    "wss://relay.damus.io",
    "wss://relay.nostr.band",
    "wss://nos.lol",
    "wss://relay.snort.social",
)


class CoreSettings(BaseSettings):
    """Core configuration settings for wotgraph.

    Settings can be configured via environment variables with the
    WOTGRAPH_ prefix, or through a local .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ==========================================================================
    # RELAY SETTINGS
    # ==========================================================================

    relays: str = Field(
        default=",".join(DEFAULT_RELAYS),
        description="Comma-separated list of relay websocket URLs",
        validation_alias="WOTGRAPH_RELAYS",
    )
    relay_deadline_ms: int = Field(
        default=5000,
        description="Deadline for one aggregated relay query (follow lists)",
        validation_alias="WOTGRAPH_RELAY_DEADLINE_MS",
    )
    profile_deadline_ms: int = Field(
        default=3000,
        description="Deadline for profile metadata queries",
        validation_alias="WOTGRAPH_PROFILE_DEADLINE_MS",
    )
    notes_deadline_ms: int = Field(
        default=10000,
        description="Deadline for note queries",
        validation_alias="WOTGRAPH_NOTES_DEADLINE_MS",
    )
    profile_batch_size: int = Field(
        default=100,
        description="Maximum authors per profile filter",
        validation_alias="WOTGRAPH_PROFILE_BATCH_SIZE",
    )
    notes_page_size: int = Field(
        default=20,
        description="Notes fetched per page",
        validation_alias="WOTGRAPH_NOTES_PAGE_SIZE",
    )

    # ==========================================================================
    # GRAPH SETTINGS
    # ==========================================================================

    max_expand_distance: int = Field(
        default=3,
        description="Nodes at or beyond this distance are not expanded",
        validation_alias="WOTGRAPH_MAX_EXPAND_DISTANCE",
    )
    path_count_max_depth: int = Field(
        default=4,
        description="Hop bound for path counting over cyclic graphs",
        validation_alias="WOTGRAPH_PATH_COUNT_MAX_DEPTH",
    )

    # ==========================================================================
    # CACHE SETTINGS
    # ==========================================================================

    cache_ttl_seconds: int = Field(
        default=24 * 60 * 60,
        description="Age after which cached facts are treated as absent",
        validation_alias="WOTGRAPH_CACHE_TTL_SECONDS",
    )
    cache_max_size: int = Field(
        default=5000,
        description="Maximum entries per cache namespace",
        validation_alias="WOTGRAPH_CACHE_MAX_SIZE",
    )
    cache_path: str | None = Field(
        default=None,
        description="Path of the persisted fact cache (optional)",
        validation_alias="WOTGRAPH_CACHE_PATH",
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="WOTGRAPH_LOG_LEVEL",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json', 'text', or '' (auto-detect)",
        validation_alias="WOTGRAPH_LOG_FORMAT",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (optional)",
        validation_alias="WOTGRAPH_LOG_FILE",
    )

    @field_validator(
        "relay_deadline_ms",
        "profile_deadline_ms",
        "notes_deadline_ms",
        "profile_batch_size",
        "notes_page_size",
        "cache_max_size",
        "path_count_max_depth",
    )
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"must be positive, got {value}")
        return value

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def relay_urls(self) -> list[str]:
        """Relay URLs with blanks and duplicates removed, order preserved."""
        urls: list[str] = []
        for raw in self.relays.split(","):
            url = raw.strip()
            if url and url not in urls:
                urls.append(url)
        return urls

    @property
    def relay_deadline(self) -> float:
        """Relay deadline in seconds."""
        return self.relay_deadline_ms / 1000.0

    @property
    def profile_deadline(self) -> float:
        """Profile deadline in seconds."""
        return self.profile_deadline_ms / 1000.0

    @property
    def notes_deadline(self) -> float:
        """Notes deadline in seconds."""
        return self.notes_deadline_ms / 1000.0


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: CoreSettings | None = None


def get_config() -> CoreSettings:
    """Get the global configuration instance.

    Returns:
        The singleton CoreSettings instance.

    Raises:
        ConfigException: If an environment value is invalid.
    """
    global _config
    if _config is None:
        try:
            _config = CoreSettings()
        except ValidationError as e:
            invalid = [str(err["loc"][0]) for err in e.errors() if err.get("loc")]
            raise ConfigException(f"Invalid configuration: {e.error_count()} error(s)", missing_vars=invalid) from e
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
