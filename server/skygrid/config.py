"""SkyGrid configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: SKYGRID_<SECTION>_<KEY> (uppercase).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    env: str = "dev"  # "dev" or "prod"


@dataclass
class QueueConfig:
    backend: str = "asyncio"  # "asyncio" or "kafka"
    max_size: int = 100_000
    bootstrap_servers: str = "localhost:9092"
    topic: str = "skygrid-entries"
    group_id: str = "skygrid-store"


@dataclass
class StorageConfig:
    backend: str = "file"
    base_dir: str = "data/index"


@dataclass
class IndexConfig:
    tiers: list[int] = field(default_factory=lambda: [4, 5, 6, 7])
    step_count: int = 20
    # [minimum radius, tier], largest radius first.
    radius_thresholds: list[list[float]] = field(
        default_factory=lambda: [[625, 4], [156, 5], [39, 6]]
    )
    finest_tier: int = 7
    staleness_seconds: float = 15


@dataclass
class QueryConfig:
    max_concurrent_lookups: int = 64


@dataclass
class FetchConfig:
    url: str = "https://opensky-network.org/api/states/all"
    interval_seconds: int = 120
    out_dir: str = "OpenSkyData"
    timeout_seconds: float = 30.0


@dataclass
class LimitsConfig:
    max_batch_size: int = 5000
    active_window_seconds: float = 120.0


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"
    file: str = ""


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    index: IndexConfig = field(default_factory=IndexConfig)
    query: QueryConfig = field(default_factory=QueryConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Reject settings under which write and read paths would disagree."""
        thresholds = self.index.radius_thresholds
        query_tiers = {int(t) for _, t in thresholds} | {self.index.finest_tier}
        missing = query_tiers - set(self.index.tiers)
        if missing:
            raise ValueError(
                f"query tiers {sorted(missing)} are not written by the index "
                f"(index.tiers={self.index.tiers})"
            )
        if self.index.step_count < 0:
            raise ValueError("index.step_count must be >= 0")
        if self.queue.backend not in ("asyncio", "kafka"):
            raise ValueError(f"unknown queue backend {self.queue.backend!r}")
        # One record's entries are published at once and must fit.
        if 0 < self.queue.max_size < len(self.index.tiers):
            raise ValueError(
                f"queue.max_size {self.queue.max_size} is smaller than the "
                f"{len(self.index.tiers)} entries of one record"
            )
        if self.storage.backend != "file":
            raise ValueError(f"unknown storage backend {self.storage.backend!r}")


def _int_list(value: str) -> list[int]:
    return [int(v) for v in value.split(",") if v.strip()]


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "SKYGRID_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "SKYGRID_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "SKYGRID_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "SKYGRID_QUEUE_BACKEND": lambda v: setattr(config.queue, "backend", v),
        "SKYGRID_QUEUE_MAX_SIZE": lambda v: setattr(config.queue, "max_size", int(v)),
        "SKYGRID_QUEUE_BOOTSTRAP_SERVERS": lambda v: setattr(config.queue, "bootstrap_servers", v),
        "SKYGRID_QUEUE_TOPIC": lambda v: setattr(config.queue, "topic", v),
        "SKYGRID_QUEUE_GROUP_ID": lambda v: setattr(config.queue, "group_id", v),
        "SKYGRID_STORAGE_BACKEND": lambda v: setattr(config.storage, "backend", v),
        "SKYGRID_STORAGE_BASE_DIR": lambda v: setattr(config.storage, "base_dir", v),
        "SKYGRID_INDEX_TIERS": lambda v: setattr(config.index, "tiers", _int_list(v)),
        "SKYGRID_INDEX_STEP_COUNT": lambda v: setattr(config.index, "step_count", int(v)),
        "SKYGRID_INDEX_STALENESS_SECONDS": lambda v: setattr(config.index, "staleness_seconds", float(v)),
        "SKYGRID_QUERY_MAX_CONCURRENT_LOOKUPS": lambda v: setattr(config.query, "max_concurrent_lookups", int(v)),
        "SKYGRID_FETCH_URL": lambda v: setattr(config.fetch, "url", v),
        "SKYGRID_FETCH_INTERVAL": lambda v: setattr(config.fetch, "interval_seconds", int(v)),
        "SKYGRID_FETCH_OUT_DIR": lambda v: setattr(config.fetch, "out_dir", v),
        "SKYGRID_LIMITS_MAX_BATCH_SIZE": lambda v: setattr(config.limits, "max_batch_size", int(v)),
        "SKYGRID_LIMITS_ACTIVE_WINDOW": lambda v: setattr(config.limits, "active_window_seconds", float(v)),
        "SKYGRID_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "SKYGRID_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
        "SKYGRID_LOG_FILE": lambda v: setattr(config.logging, "file", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    # Try to load YAML
    if config_path is None:
        config_path = Path(os.environ.get("SKYGRID_CONFIG", "config.yaml"))
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for section_name, values in raw.items():
            section = getattr(config, section_name, None)
            if section is None or not isinstance(values, dict):
                continue
            for k, v in values.items():
                if hasattr(section, k):
                    setattr(section, k, v)

    # Environment overrides always win
    _apply_env_overrides(config)
    config.validate()
    return config
