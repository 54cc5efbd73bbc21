"""
Query Engine

Owns one transport and polls one producer's operations over it:
bounded retry with reconnect per operation, one Reading per complete
cycle, published to the output queue at a fixed interval.
"""

import asyncio
import time
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum

from meterpoll.common.exceptions import CommunicationError, CycleAbortedError
from meterpoll.common.logging_setup import get_service_logger, log_operation_read
from meterpoll.meters.operation import Operation
from meterpoll.meters.producer import Producer
from .reading import Reading
from .transport import Transport

logger = get_service_logger("query.engine")


class ConnectionState(str, Enum):
    """Transport connection state as seen by the engine"""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class EngineStopped(Exception):
    """Raised internally when stop() interrupts a cycle"""


@dataclass
class EngineStats:
    """Counters for observability"""
    cycles: int = 0
    published: int = 0
    aborted: int = 0
    failed_reads: int = 0
    connects: int = 0
    last_error: str = ""
    last_published_at: str | None = None
    last_cycle_ms: float = 0.0


class QueryEngine:
    """
    Polls one meter over one transport.

    Operations run strictly one at a time. A failed read closes the
    transport (a faulted handle is never reused), waits retry_delay_s and
    reconnects on the next attempt. When one operation exhausts
    max_retries the whole cycle is dropped: no partial Reading is ever
    published.
    """

    MAX_RETRY_COUNT = 3
    RETRY_DELAY_S = 1.0

    def __init__(
        self,
        transport: Transport,
        producer: Producer,
        output: asyncio.Queue,
        name: str | None = None,
        interval_s: float = 1.0,
        max_retries: int = MAX_RETRY_COUNT,
        retry_delay_s: float = RETRY_DELAY_S,
        fail_fast: bool = False,
    ):
        self.transport = transport
        self.producer = producer
        self.output = output
        self.name = name or producer.type_id
        self.interval_s = interval_s
        self.max_retries = max_retries
        self.retry_delay_s = retry_delay_s
        self.fail_fast = fail_fast

        self.stats = EngineStats()

        self._operations = producer.produce()
        self._probe = producer.probe()
        self._state = ConnectionState.DISCONNECTED
        self._needs_probe = True
        self._stop_event = asyncio.Event()
        self._running = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the engine to stop at the next operation or sleep boundary"""
        self._stop_event.set()

    async def connect(self) -> None:
        """Disconnected -> Connected, CommunicationError if the link cannot be opened"""
        if self._state == ConnectionState.CONNECTED:
            return

        await self.transport.connect()
        self._state = ConnectionState.CONNECTED
        self._needs_probe = True
        self.stats.connects += 1
        logger.info(f"{self.name}: connected via {self.transport.describe()}")

    async def close(self) -> None:
        """Close and discard the transport handle"""
        try:
            await self.transport.close()
        finally:
            self._state = ConnectionState.DISCONNECTED

    async def retrieve(self, operation: Operation) -> float:
        """Execute one operation once and decode the result"""
        await self.connect()
        data = await self.transport.read_registers(
            operation.address,
            operation.length,
            operation.function_code,
        )

        # DecodeError propagates: a payload mismatch is a profile bug, not a transient fault
        value = operation.transform(data)
        log_operation_read(
            logger,
            self.name,
            operation.measurement.value,
            operation.address,
            value,
        )
        return value

    async def query_or_fail(self, operation: Operation) -> float:
        """
        Execute an operation with bounded retry.

        Raises:
            CycleAbortedError: every attempt failed
            EngineStopped: stop() was called during a retry wait
        """
        last_error = ""
        for attempt in range(1, self.max_retries + 1):
            try:
                return await self.retrieve(operation)
            except CommunicationError as e:
                last_error = e.message
                self.stats.failed_reads += 1
                logger.warning(
                    f"{self.name}: reading {operation} failed ({attempt}/{self.max_retries}): "
                    f"{e.message}, closing transport",
                    extra={"meter": self.name, "attempt": attempt},
                )
                await self.close()

            if attempt < self.max_retries and await self._wait(self.retry_delay_s):
                raise EngineStopped()

        raise CycleAbortedError(
            f"cannot read {operation} after {self.max_retries} attempts: {last_error}",
            meter=self.name,
            measurement=operation.measurement.value,
            attempts=self.max_retries,
        )

    async def run_cycle(self) -> Reading | None:
        """
        Run one poll cycle.

        Returns:
            The assembled Reading, or None if stop() interrupted the cycle

        Raises:
            CycleAbortedError: an operation exhausted its retries
        """
        start = time.monotonic()
        self.stats.cycles += 1

        try:
            # Check the device answers before committing to a full cycle
            if self._needs_probe:
                await self.query_or_fail(self._probe)
                self._needs_probe = False

            values = {}
            for operation in self._operations:
                if self.stopping:
                    return None
                values[operation.measurement] = await self.query_or_fail(operation)
        except EngineStopped:
            return None

        self.stats.last_cycle_ms = (time.monotonic() - start) * 1000

        return Reading(
            meter=self.name,
            device_type=self.producer.type_id,
            values=values,
            timestamp=datetime.now(timezone.utc),
            uncertain=frozenset(op.measurement for op in self._operations if op.sign_uncertain),
        )

    async def publish(self, reading: Reading) -> None:
        """Hand the reading to the consumer, blocking while the queue is full"""
        await self.output.put(reading)
        self.stats.published += 1
        self.stats.last_published_at = reading.timestamp.isoformat()

    async def run(self) -> None:
        """
        Poll until stop() is called.

        Aborted cycles are logged and skipped unless fail_fast is set.
        Decode and programming errors end the engine.
        """
        self._running = True
        logger.info(
            f"{self.name}: polling {self.producer.description} "
            f"({len(self._operations)} operations every {self.interval_s}s)",
            extra={"meter": self.name, "operations": len(self._operations)},
        )

        try:
            while not self.stopping:
                try:
                    reading = await self.run_cycle()
                except CycleAbortedError as e:
                    self.stats.aborted += 1
                    self.stats.last_error = e.message
                    logger.error(
                        f"{self.name}: poll cycle aborted: {e.message}",
                        extra={"meter": self.name, "measurement": e.measurement},
                    )
                    if self.fail_fast:
                        raise
                else:
                    if reading is not None:
                        await self.publish(reading)

                if await self._wait(self.interval_s):
                    break
        finally:
            await self.close()
            self._running = False
            logger.info(f"{self.name}: stopped")

    async def _wait(self, seconds: float) -> bool:
        """Sleep unless stopped first. Returns True if stop() was called."""
        if seconds <= 0:
            await asyncio.sleep(0)
            return self.stopping
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    def get_stats(self) -> dict:
        """Engine state and counters"""
        return {
            "meter": self.name,
            "device_type": self.producer.type_id,
            "state": self._state.value,
            "running": self._running,
            **asdict(self.stats),
        }
