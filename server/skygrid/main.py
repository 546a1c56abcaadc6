"""SkyGrid server main entry point.

This is the only file that knows about concrete implementations.
It wires together the core, queue, storage, and API layers.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TextIO

import structlog
from fastapi import FastAPI

from skygrid.api.monitoring import router as monitoring_router
from skygrid.api.query import router as query_router
from skygrid.api.records import router as records_router
from skygrid.config import AppConfig, load_config
from skygrid.core.planner import RangeQueryPlanner
from skygrid.core.processor import RecordProcessor
from skygrid.core.query import QueryService
from skygrid.core.resolution import ResolutionPolicy
from skygrid.core.stats import IndexStats
from skygrid.core.validator import RecordValidator
from skygrid.core.writer import IndexWriter
from skygrid.queue.asyncio_queue import AsyncioEntryQueue
from skygrid.queue.base import EntryQueue
from skygrid.storage.file_storage import FileEntryStore

log = structlog.get_logger()

# Module-level singletons (set during startup)
_components: Components | None = None
_config: AppConfig | None = None
_log_file: TextIO | None = None


@dataclass
class Components:
    stats: IndexStats
    queue: EntryQueue
    storage: FileEntryStore
    policy: ResolutionPolicy
    planner: RangeQueryPlanner
    writer: IndexWriter
    processor: RecordProcessor
    query_service: QueryService


def _get_components() -> Components:
    assert _components is not None, "Server not initialized"
    return _components


def get_processor() -> RecordProcessor:
    return _get_components().processor


def get_query_service() -> QueryService:
    return _get_components().query_service


def get_planner() -> RangeQueryPlanner:
    return _get_components().planner


def get_stats() -> IndexStats:
    return _get_components().stats


def get_config() -> AppConfig:
    assert _config is not None, "Server not initialized"
    return _config


def build_queue(config: AppConfig) -> EntryQueue:
    if config.queue.backend == "kafka":
        # Imported lazily so the in-process backend does not need a broker client.
        from skygrid.queue.kafka_queue import KafkaEntryQueue

        return KafkaEntryQueue(
            bootstrap_servers=config.queue.bootstrap_servers,
            topic=config.queue.topic,
            group_id=config.queue.group_id,
        )
    return AsyncioEntryQueue(max_size=config.queue.max_size)


def build_components(config: AppConfig, queue: EntryQueue | None = None) -> Components:
    """Create every core component from configuration."""
    index = config.index
    stats = IndexStats(active_window_seconds=config.limits.active_window_seconds)
    queue = queue if queue is not None else build_queue(config)
    storage = FileEntryStore(base_dir=config.storage.base_dir)
    policy = ResolutionPolicy(
        thresholds=tuple((r, t) for r, t in index.radius_thresholds),
        finest_tier=index.finest_tier,
    )
    planner = RangeQueryPlanner(policy, step_count=index.step_count)
    validator = RecordValidator(staleness_seconds=index.staleness_seconds)
    writer = IndexWriter(sink=queue, validator=validator, stats=stats,
                         tiers=tuple(index.tiers))
    processor = RecordProcessor(writer=writer, queue=queue, storage=storage, stats=stats)
    query_service = QueryService(
        planner, storage, stats,
        max_concurrent_lookups=config.query.max_concurrent_lookups,
    )
    return Components(
        stats=stats,
        queue=queue,
        storage=storage,
        policy=policy,
        planner=planner,
        writer=writer,
        processor=processor,
        query_service=query_service,
    )


def close_logging() -> None:
    """Close the log file opened by setup_logging, if any."""
    global _log_file
    if _log_file is None:
        return
    # Loggers must not keep writing to the closed file.
    structlog.configure(logger_factory=structlog.PrintLoggerFactory())
    _log_file.close()
    _log_file = None


def setup_logging(config: AppConfig) -> None:
    """Configure structlog based on the logging config.

    Calling it again replaces (and closes) the previous log file.
    """
    global _log_file
    close_logging()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    logger_factory = structlog.PrintLoggerFactory()
    if config.logging.file:
        _log_file = open(config.logging.file, "a", encoding="utf-8")
        logger_factory = structlog.WriteLoggerFactory(file=_log_file)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
        logger_factory=logger_factory,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    global _components, _config

    _config = load_config()
    setup_logging(_config)

    log.info("server_starting",
             env=_config.server.env,
             storage_dir=_config.storage.base_dir,
             queue_backend=_config.queue.backend,
             tiers=_config.index.tiers)

    _components = build_components(_config)

    # Start background storage consumer
    consumer_task = asyncio.create_task(_components.processor.run_storage_consumer())

    log.info("server_started",
             host=_config.server.host,
             port=_config.server.port)

    yield

    # Shutdown
    consumer_task.cancel()
    try:
        await consumer_task
    except asyncio.CancelledError:
        pass
    await _components.queue.close()
    log.info("server_stopped")
    close_logging()


app = FastAPI(
    title="SkyGrid",
    description="Geohash-indexed aircraft telemetry store",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(records_router)
app.include_router(query_router)
app.include_router(monitoring_router)


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    config = load_config()
    uvicorn.run("skygrid.main:app", host=config.server.host, port=config.server.port)
