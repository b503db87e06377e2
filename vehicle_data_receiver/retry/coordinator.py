"""
Retry Coordinator
Reprocesses dead-lettered events oldest-first without blocking live ingestion
"""

import asyncio
import dataclasses
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import structlog

from vehicle_data_receiver.codec import DecodeError, decode
from vehicle_data_receiver.dlq.writer import PoisonEventWriter
from vehicle_data_receiver.handlers.base import HandlerError, UnknownHandlerError
from vehicle_data_receiver.handlers.registry import HandlerRegistry
from vehicle_data_receiver.models.failed_event import FailedEvent, QuarantineReason, epoch_seconds
from vehicle_data_receiver.observability.logging import log_retry_outcome
from vehicle_data_receiver.observability.metrics import (
    increment_pass_errors,
    increment_quarantined,
    increment_retries,
    observe_pass_duration,
    set_store_depth,
)
from vehicle_data_receiver.observability.tracing import trace_failed_event_retry, trace_retry_pass
from vehicle_data_receiver.retry.policy import RetryPolicy
from vehicle_data_receiver.store.base import BaseFailedEventStore, NotFoundError, StorageError

logger = structlog.get_logger(__name__)


@dataclass
class RetryPassResult:
    """
    Outcome counts of one coordinator pass

    Attributes:
        attempted: Records dispatched to a handler or found undecodable
        succeeded: Records reprocessed and removed
        failed: Records whose handler failed or timed out
        quarantined: Records excluded from further automatic retry
        unknown_handler: Records skipped because no handler has their name
        not_due: Records skipped because their backoff has not elapsed
        vanished: Records removed concurrently while being retried
        aborted: Whether the pass stopped early on a storage error or timeout
        error: Error that aborted the pass
    """

    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    quarantined: int = 0
    unknown_handler: int = 0
    not_due: int = 0
    vanished: int = 0
    aborted: bool = False
    error: Optional[str] = None


class RetryCoordinator:
    """
    Drives reprocessing of failed events

    Each pass pages through pending records in ascending timestamp order so
    older failures are never starved by newer ones. Per record the handler is
    resolved by name, the payload decoded and the handler invoked with a
    timeout. Success removes the record; failure updates attempted_at and
    leaves it for a later pass.

    Storage errors abort the pass and are retried on the next one. Decode,
    dispatch and handler errors are contained per record.
    """

    def __init__(
        self,
        store: BaseFailedEventStore,
        registry: HandlerRegistry,
        policy: Optional[RetryPolicy] = None,
        poison_writer: Optional[PoisonEventWriter] = None,
        batch_size: int = 100,
        page_size: Optional[int] = None,
        max_pages: int = 10,
        handler_timeout_seconds: float = 10.0,
        pass_timeout_seconds: float = 300.0,
        clock: Callable[[], int] = epoch_seconds,
    ):
        """
        Initialize retry coordinator

        Args:
            store: Failed event store
            registry: Handlers available for reprocessing
            policy: Backoff and max-attempts policy
            poison_writer: Sink receiving quarantined records (optional)
            batch_size: Maximum records attempted per pass
            page_size: Records fetched per list_pending call (defaults to batch_size)
            max_pages: Maximum pages read per pass
            handler_timeout_seconds: Per-invocation handler timeout
            pass_timeout_seconds: Upper bound for a whole pass
            clock: Source of the current epoch seconds
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self.store = store
        self.registry = registry
        self.policy = policy or RetryPolicy()
        self.poison_writer = poison_writer
        self.batch_size = batch_size
        self.page_size = page_size or batch_size
        self.max_pages = max_pages
        self.handler_timeout_seconds = handler_timeout_seconds
        self.pass_timeout_seconds = pass_timeout_seconds
        self.clock = clock

        self._wakeup = asyncio.Event()
        self._stopping = False

        logger.info(
            "RetryCoordinator initialized",
            handlers=registry.names(),
            batch_size=batch_size,
            max_attempts=self.policy.max_attempts,
        )

    async def run_once(self) -> RetryPassResult:
        """
        Run a single bounded retry pass

        Returns:
            Outcome counts of the pass
        """
        result = RetryPassResult()
        span = trace_retry_pass(self.batch_size)
        started = time.monotonic()

        try:
            await asyncio.wait_for(self._run_pass(result), timeout=self.pass_timeout_seconds)

        except StorageError as e:
            result.aborted = True
            result.error = str(e)
            increment_pass_errors("storage_error")
            logger.error("Retry pass aborted by storage error", error=str(e))

        except asyncio.TimeoutError:
            result.aborted = True
            result.error = f"Retry pass exceeded {self.pass_timeout_seconds}s"
            increment_pass_errors("timeout")
            logger.error("Retry pass timed out", timeout_seconds=self.pass_timeout_seconds)

        finally:
            observe_pass_duration(time.monotonic() - started)
            span.end()

        logger.info("Retry pass finished", **dataclasses.asdict(result))
        return result

    async def run_forever(self, interval_seconds: float = 60.0) -> None:
        """
        Run passes on a fixed interval until stop() is called

        A pass can be started early with trigger().

        Args:
            interval_seconds: Pause between passes
        """
        logger.info("Starting retry loop", interval_seconds=interval_seconds)
        self._stopping = False

        while not self._stopping:
            await self.run_once()
            if self._stopping:
                break

            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass
            self._wakeup.clear()

        logger.info("Retry loop stopped")

    def trigger(self) -> None:
        """Start the next pass without waiting for the interval"""
        self._wakeup.set()

    def stop(self) -> None:
        """Request the retry loop to stop after the current pass"""
        self._stopping = True
        self._wakeup.set()

    async def _run_pass(self, result: RetryPassResult) -> None:
        # Reconnects after a dropped connection; a failure aborts this pass only
        await self.store.ensure_connected()

        cursor: Optional[Tuple[int, int]] = None
        pages = 0

        while result.attempted < self.batch_size and pages < self.max_pages:
            page = await self.store.list_pending(limit=self.page_size, after=cursor)
            pages += 1

            for failed_event in page:
                if result.attempted >= self.batch_size:
                    break
                cursor = (failed_event.timestamp, failed_event.id)

                if not self.policy.is_due(failed_event, self.clock()):
                    result.not_due += 1
                    continue

                await self.retry_event(failed_event, result)

            if len(page) < self.page_size:
                break

        set_store_depth(await self.store.count_pending(), await self.store.count_quarantined())

    async def retry_event(self, failed_event: FailedEvent, result: RetryPassResult) -> str:
        """
        Reprocess one failed event

        Args:
            failed_event: Record to reprocess
            result: Pass result updated in place

        Returns:
            Outcome: succeeded, failed, timeout, unknown_handler, decode_error or vanished

        Raises:
            StorageError: If the store cannot be updated
        """
        span = trace_failed_event_retry(failed_event.id, failed_event.handler_name, failed_event.imei)
        started = time.monotonic()
        outcome: Optional[str] = None
        error: Optional[str] = None

        try:
            try:
                handler = self.registry.resolve(failed_event.handler_name)
            except UnknownHandlerError as e:
                outcome, error = "unknown_handler", str(e)
                result.unknown_handler += 1
                return outcome

            result.attempted += 1

            try:
                event = decode(failed_event.event_data)
            except DecodeError as e:
                # Corruption is not transient: no attempt is consumed, attempted_at stays
                outcome, error = "decode_error", str(e)
                if await self._quarantine(failed_event, QuarantineReason.DECODE_ERROR, error):
                    result.quarantined += 1
                return outcome

            try:
                await asyncio.wait_for(handler.process(event), timeout=self.handler_timeout_seconds)
            except asyncio.TimeoutError:
                outcome = "timeout"
                error = f"Handler timed out after {self.handler_timeout_seconds}s"
            except HandlerError as e:
                outcome, error = "failed", str(e)
            except Exception as e:
                logger.exception(
                    "Event handler raised unexpectedly",
                    failed_event_id=failed_event.id,
                    handler_name=failed_event.handler_name,
                )
                outcome, error = "failed", f"{type(e).__name__}: {e}"
            else:
                await self.store.remove(failed_event.id)
                outcome = "succeeded"
                result.succeeded += 1
                return outcome

            result.failed += 1
            attempted_at = self.clock()
            try:
                await self.store.mark_retried(failed_event.id, attempted_at)
            except NotFoundError:
                outcome = "vanished"
                result.vanished += 1
                return outcome

            retried = dataclasses.replace(
                failed_event,
                attempted_at=max(attempted_at, failed_event.timestamp),
                attempt_count=failed_event.attempt_count + 1,
            )
            if self.policy.is_exhausted(retried.attempt_count):
                if await self._quarantine(retried, QuarantineReason.MAX_ATTEMPTS_EXCEEDED, error):
                    result.quarantined += 1

            return outcome

        finally:
            if outcome is not None:
                increment_retries(failed_event.handler_name, outcome)
                log_retry_outcome(
                    logger,
                    failed_event_id=failed_event.id,
                    handler_name=failed_event.handler_name,
                    imei=failed_event.imei,
                    outcome=outcome,
                    attempt_count=failed_event.attempt_count,
                    duration_ms=(time.monotonic() - started) * 1000,
                    error=error,
                )
            span.end()

    async def _quarantine(self, failed_event: FailedEvent, reason: QuarantineReason, error: str) -> bool:
        quarantined_at = self.clock()
        try:
            await self.store.quarantine(failed_event.id, reason, quarantined_at)
        except NotFoundError:
            return False

        increment_quarantined(failed_event.handler_name, reason.value)
        if self.poison_writer is not None:
            self.poison_writer.write_event(
                dataclasses.replace(
                    failed_event,
                    quarantined_at=quarantined_at,
                    quarantine_reason=reason,
                ),
                reason=reason,
                error_message=error,
            )
        return True
