"""
Vehicle Data Receiver Main Entrypoint
Runs the failed event retry coordinator against the vehicle management service
"""

import asyncio
import signal
import sys
from typing import Optional

import httpx
import structlog

from vehicle_data_receiver.config.loader import load_config
from vehicle_data_receiver.config.settings import ReceiverSettings
from vehicle_data_receiver.dlq.writer import PoisonEventWriter
from vehicle_data_receiver.handlers.forwarding import build_forwarding_handlers, create_api_client
from vehicle_data_receiver.handlers.ingestion import DeadLetterIngestion
from vehicle_data_receiver.handlers.registry import HandlerRegistry
from vehicle_data_receiver.observability.health import run_periodic_health_checks, start_health_server
from vehicle_data_receiver.observability.logging import configure_logging
from vehicle_data_receiver.observability.metrics import start_metrics_server
from vehicle_data_receiver.observability.tracing import init_tracing
from vehicle_data_receiver.retry.coordinator import RetryCoordinator
from vehicle_data_receiver.retry.policy import RetryPolicy, retry_with_policy
from vehicle_data_receiver.store.postgres import PostgresFailedEventStore

logger = structlog.get_logger(__name__)


class FailedEventRetryService:
    """
    Wires the failed event store, the event handlers and the retry coordinator

    The ingestion attribute is the live dead-letter path; the coordinator
    reprocesses what it recorded.
    """

    def __init__(self, config: ReceiverSettings):
        """
        Initialize service

        Args:
            config: Receiver configuration
        """
        self.config = config

        self.policy = RetryPolicy(
            max_attempts=config.retry.max_attempts,
            base_delay=config.retry.base_delay_seconds,
            max_delay=config.retry.max_delay_seconds,
            multiplier=config.retry.backoff_multiplier,
            jitter=config.retry.jitter,
        )
        self.store = PostgresFailedEventStore(
            connection_url=config.database.connection_url,
            connect_timeout=config.database.connect_timeout,
        )
        self.client: Optional[httpx.AsyncClient] = None
        self.registry = HandlerRegistry()
        self.poison_writer = (
            PoisonEventWriter(directory=config.poison.directory) if config.poison.enabled else None
        )
        self.ingestion = DeadLetterIngestion(
            store=self.store,
            registry=self.registry,
            handler_timeout_seconds=config.coordinator.handler_timeout_seconds,
        )
        self.coordinator = RetryCoordinator(
            store=self.store,
            registry=self.registry,
            policy=self.policy,
            poison_writer=self.poison_writer,
            batch_size=config.coordinator.batch_size,
            page_size=config.coordinator.page_size,
            max_pages=config.coordinator.max_pages,
            handler_timeout_seconds=config.coordinator.handler_timeout_seconds,
            pass_timeout_seconds=config.coordinator.pass_timeout_seconds,
        )

        logger.info("FailedEventRetryService initialized")

    async def start(self) -> None:
        """
        Connect the store and register the forwarding handlers
        """
        # The database may still be starting alongside the receiver
        startup_policy = RetryPolicy(max_attempts=5, base_delay=1.0, max_delay=30.0, jitter=True)
        await retry_with_policy(self.store.connect, startup_policy)

        if self.config.database.create_schema:
            await self.store.create_schema()

        vehicle_management = self.config.vehicle_management
        self.client = create_api_client(
            base_url=vehicle_management.base_url,
            api_key=vehicle_management.api_key,
            timeout_seconds=vehicle_management.timeout_seconds,
        )
        for handler in build_forwarding_handlers(vehicle_management.routes, self.client):
            self.registry.register(handler)

        logger.info("Handlers registered", handlers=self.registry.names())

    async def stop(self) -> None:
        """
        Release the HTTP client and the store connection
        """
        if self.client is not None:
            await self.client.aclose()
            self.client = None

        try:
            await self.store.disconnect()
        except Exception as e:
            logger.error("Error disconnecting failed event store", error=str(e))

    async def run(self) -> None:
        """
        Run the retry loop until shutdown() is called
        """
        await self.start()

        health_task = asyncio.create_task(
            run_periodic_health_checks(
                self.store,
                interval_seconds=self.config.observability.health_check_interval_seconds,
            )
        )

        try:
            await self.coordinator.run_forever(
                interval_seconds=self.config.coordinator.interval_seconds
            )
        finally:
            health_task.cancel()
            try:
                await health_task
            except asyncio.CancelledError:
                pass
            await self.stop()

    def shutdown(self) -> None:
        """
        Request graceful shutdown
        """
        logger.info("Shutdown signal received")
        self.coordinator.stop()


async def main(config_path: Optional[str] = None) -> None:
    """
    Main entrypoint
    """
    if config_path is None and len(sys.argv) > 1:
        config_path = sys.argv[1]

    config = load_config(config_path)
    observability = config.observability

    configure_logging(log_level=observability.log_level, log_format=observability.log_format)

    logger.info("Starting vehicle data receiver retry service", config_path=config_path)

    start_metrics_server(port=observability.metrics_port)
    start_health_server(port=observability.health_check_port)
    if observability.enable_tracing:
        init_tracing(enable_console_export=observability.enable_console_traces)

    service = FailedEventRetryService(config)

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(signum, service.shutdown)

    try:
        await service.run()
    except Exception as e:
        logger.error("Retry service failed", error=str(e))
        sys.exit(1)

    logger.info("Retry service stopped")


def run() -> None:
    """Console script entrypoint"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
