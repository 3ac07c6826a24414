"""star-sync service entrypoint.

Runs the starred-repository sync on boot and/or on a fixed interval until
SIGTERM/SIGINT. Writes a health file after each successful run for
container liveness checks.

Usage:
    star-sync

Environment:
    ENABLE_SYNC_ON_BOOT=true    Run a sync immediately on start
    ENABLE_SYNC_SCHEDULE=true   Run a sync every SYNC_INTERVAL seconds
    METRICS_PORT=9100           Expose Prometheus metrics on this port
    See config.py for all variables.
"""

import asyncio
import logging
import signal
import sys
import time
from pathlib import Path

from prometheus_client import start_http_server
from pydantic import ValidationError

from starsync.config import SyncConfig, get_config
from starsync.logging_config import configure_logging
from starsync.metrics import get_metrics
from starsync.scheduler import Scheduler
from starsync.store import RepositoryStore
from starsync.sync import StarSyncEngine, SyncResult

logger = logging.getLogger("starsync.service")

SYNC_JOB_NAME = "sync-starred-repos"
BOOT_JOB_NAME = "sync-starred-repos-on-boot"


def write_health_file(path: Path) -> None:
    """Write health file for Docker healthcheck."""
    try:
        path.write_text(str(int(time.time())))
    except OSError as e:
        logger.warning("Failed to write health file: %s", e)


async def run_sync_cycle(engine: StarSyncEngine, health_file: Path) -> SyncResult | None:
    """Run one sync and refresh the health file on success."""
    result = await engine.sync_once()
    if result is not None and result.succeeded:
        write_health_file(health_file)
    return result


async def serve(
    config: SyncConfig,
    engine: StarSyncEngine,
    shutdown: asyncio.Event,
    scheduler: Scheduler | None = None,
) -> None:
    """Wire the triggers and wait for shutdown.

    Args:
        config: Resolved configuration
        engine: Sync engine to trigger
        shutdown: Set to stop the service
        scheduler: Scheduler to register jobs on (default: a new one)
    """
    scheduler = scheduler or Scheduler()

    async def job() -> None:
        await run_sync_cycle(engine, config.health_file)

    if config.enable_sync_on_boot:
        logger.info("Initial synchronization on boot is enabled.")
        await scheduler.run_now(BOOT_JOB_NAME, job)
    else:
        logger.info("Initial synchronization on boot is disabled.")

    if config.enable_sync_schedule:
        logger.info(
            "Scheduling synchronization every %d seconds", config.sync_interval
        )
        scheduler.register_periodic(SYNC_JOB_NAME, config.sync_interval, job)
    else:
        logger.info("Scheduled synchronization is disabled.")

    try:
        await shutdown.wait()
    finally:
        await scheduler.shutdown()


async def run_service(config: SyncConfig) -> None:
    """Build the long-lived components, serve, then release them."""
    metrics = get_metrics()
    if config.metrics_port:
        start_http_server(config.metrics_port)
        logger.info("Prometheus metrics exposed on port %d", config.metrics_port)

    store = RepositoryStore(config.database_url)
    store.create_schema()
    engine = StarSyncEngine.from_config(config, store, metrics)

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.set)

    try:
        await serve(config, engine, shutdown)
    finally:
        if engine.client is not None:
            await engine.client.close()
        store.close()
        logger.info("star-sync service shut down gracefully")


def main() -> None:
    """Console entrypoint."""
    try:
        config = get_config()
    except ValidationError as e:
        configure_logging()
        logger.error("Failed to load config: %s", e)
        sys.exit(1)

    configure_logging(config.log_level, config.log_format)
    logger.info("star-sync service starting", extra={"config": config.describe()})
    asyncio.run(run_service(config))


if __name__ == "__main__":
    main()
