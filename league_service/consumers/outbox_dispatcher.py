import asyncio
import logging
import signal
import threading
import time
from typing import Optional

from league_service.consumers.event_router import OutboxEventRouter, build_default_router
from league_service.core.config import (
    LOG_LEVEL,
    OUTBOX_BATCH_SIZE,
    OUTBOX_MAX_RETRIES,
    OUTBOX_POLL_INTERVAL_MS,
    OUTBOX_SHUTDOWN_TIMEOUT_MS,
    OUTBOX_STALE_CLAIM_SECONDS,
)
from league_service.core.db import init_db, close_db
from league_service.events import outbox_store
from league_service.models.outbox import OutboxEvent, OutboxStatus

log = logging.getLogger("outbox_dispatcher")

SHUTDOWN_POLL_SECONDS = 0.1


class InFlightFlag:
    """Mutex-protected 'a cycle is running' marker."""

    def __init__(self):
        self._lock = threading.Lock()
        self._set = False

    def try_acquire(self) -> bool:
        with self._lock:
            if self._set:
                return False
            self._set = True
            return True

    def release(self) -> None:
        with self._lock:
            self._set = False

    def is_set(self) -> bool:
        with self._lock:
            return self._set


class OutboxDispatcher:
    """
    Background poller that claims PENDING outbox events, routes them and records
    the outcome with a bounded number of attempts.

    One repeating timer per process and at most one cycle in flight. Events in a
    batch are handled sequentially, oldest first, and one event's failure never
    aborts the rest of the batch.
    """

    def __init__(
        self,
        router: Optional[OutboxEventRouter] = None,
        poll_interval_ms: int = OUTBOX_POLL_INTERVAL_MS,
        batch_size: int = OUTBOX_BATCH_SIZE,
        max_retries: int = OUTBOX_MAX_RETRIES,
        shutdown_timeout_ms: int = OUTBOX_SHUTDOWN_TIMEOUT_MS,
        stale_claim_seconds: int = OUTBOX_STALE_CLAIM_SECONDS,
    ):
        self.router = router or build_default_router()
        self.poll_interval_ms = poll_interval_ms
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.shutdown_timeout_ms = shutdown_timeout_ms
        self.stale_claim_seconds = stale_claim_seconds
        self._in_flight = InFlightFlag()
        self._timer_task: Optional[asyncio.Task] = None
        self._cycle_task: Optional[asyncio.Task] = None

    @property
    def is_processing(self) -> bool:
        return self._in_flight.is_set()

    @property
    def is_running(self) -> bool:
        return self._timer_task is not None

    # ----------- Lifecycle -----------

    async def start(self):
        """Releases claims left behind by a previous process, then starts polling."""
        if self._timer_task is not None:
            return
        log.info(f"Starting outbox dispatcher with interval {self.poll_interval_ms}ms")
        await self._release_stale_claims()
        self._timer_task = asyncio.create_task(self._run_timer())

    def stop(self):
        """Stops scheduling new cycles. A cycle already running is left to finish."""
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

    async def shutdown(self, signal_name: Optional[str] = None):
        """
        Stops polling, then waits for the in-flight cycle up to the shutdown timeout.
        On timeout the in-flight flag is force-cleared so process exit never hangs.
        """
        log.info(f"Application shutting down: {signal_name or 'unknown signal'}")
        self.stop()

        deadline = time.monotonic() + self.shutdown_timeout_ms / 1000
        while self.is_processing and time.monotonic() < deadline:
            await asyncio.sleep(SHUTDOWN_POLL_SECONDS)

        if self.is_processing:
            log.warning("Shutdown timeout reached, forcing stop of outbox dispatcher")
            self._in_flight.release()

        log.info("Outbox dispatcher stopped")

    async def _run_timer(self):
        while True:
            await asyncio.sleep(self.poll_interval_ms / 1000)
            if self.is_processing:
                log.debug("Previous outbox cycle still in flight, skipping tick")
                continue
            self._cycle_task = asyncio.create_task(self._run_cycle())

    async def _run_cycle(self):
        try:
            await self.process_outbox_events()
        except Exception:
            log.exception("Error in outbox processing loop")

    # ----------- Processing -----------

    async def process_outbox_events(self) -> int:
        """
        Runs one cycle and returns how many events completed.
        Also the manual trigger; returns 0 without doing anything if a cycle is in flight.
        """
        if not self._in_flight.try_acquire():
            return 0

        completed = 0
        try:
            # Claims whose outcome write failed would otherwise stay PROCESSING until restart
            await self._release_stale_claims()
            events = await outbox_store.find_pending_events(limit=self.batch_size)
            if not events:
                return 0

            log.debug(f"Processing {len(events)} outbox events")
            for event in events:
                if await self._process_event(event):
                    completed += 1
        except Exception:
            log.exception("Error processing outbox events")
        finally:
            self._in_flight.release()
        return completed

    async def _release_stale_claims(self):
        try:
            await outbox_store.release_stale_claims(self.stale_claim_seconds)
        except Exception:
            log.exception("Could not release stale outbox claims")

    async def _process_event(self, event: OutboxEvent) -> bool:
        try:
            if not await outbox_store.claim_event(event.id):
                log.info(f"Outbox event {event.id} was claimed elsewhere, skipping")
                return False
        except Exception:
            log.exception(f"Could not claim outbox event {event.id}")
            return False

        try:
            await self.router.dispatch(event)
            await outbox_store.update_event_status(event.id, OutboxStatus.COMPLETED)
        except Exception as exc:
            await self._record_failure(event, exc)
            return False

        log.debug(f"Successfully processed outbox event {event.id}")
        return True

    async def _record_failure(self, event: OutboxEvent, exc: Exception):
        error_message = str(exc) or exc.__class__.__name__
        retry_count = event.retry_count + 1
        new_status = OutboxStatus.FAILED if retry_count >= self.max_retries else OutboxStatus.PENDING

        log.error(f"Failed to process outbox event {event.id} ({event.event_type}): {error_message}")
        try:
            await outbox_store.update_event_status(event.id, new_status, error_message)
        except Exception:
            log.exception(f"Could not record failure for outbox event {event.id}")
            return

        if new_status == OutboxStatus.FAILED:
            log.error(f"Outbox event {event.id} failed after {retry_count} attempts")


async def run_dispatcher():
    """Main loop for the standalone dispatcher worker."""
    await init_db()
    dispatcher = OutboxDispatcher()

    loop = asyncio.get_running_loop()
    stop_requested = asyncio.Event()
    received = []

    def _on_signal(sig):
        received.append(sig.name)
        stop_requested.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _on_signal, sig)

    await dispatcher.start()
    log.info("--- Outbox Dispatcher Service Started ---")
    try:
        await stop_requested.wait()
    finally:
        await dispatcher.shutdown(received[0] if received else None)
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    asyncio.run(run_dispatcher())
