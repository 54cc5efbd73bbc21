"""
Poller Service

Responsible for:
- Building one query engine per configured meter
- Running the engines side by side, one task per serial link
- Draining the shared reading queue
- Reporting engine status over a small health server
"""

import asyncio
import signal
from datetime import datetime, timezone
from typing import Callable

from aiohttp import web

from meterpoll.common.config import MeterConfig, PollerConfig
from meterpoll.common.exceptions import ConfigError
from meterpoll.common.logging_setup import get_service_logger, log_reading
from meterpoll.meters import ProducerRegistry, default_registry
from meterpoll.meters.producer import Producer
from meterpoll.services.query.engine import QueryEngine
from meterpoll.services.query.reading import Reading
from meterpoll.services.query.transport import ModbusRTUTransport, Transport

logger = get_service_logger("poller")

TransportFactory = Callable[[MeterConfig, Producer], Transport]
ReadingHandler = Callable[[Reading], None]


def serial_transport(meter: MeterConfig, producer: Producer) -> Transport:
    """Default transport factory: one pymodbus RTU client per meter"""
    return ModbusRTUTransport.from_config(meter)


class PollerService:
    """
    Runs the query engines for every configured meter.

    Engines share nothing but the output queue. An engine that dies on a
    decode or programming error is logged and left stopped while the
    others keep polling, unless fail_fast is configured.
    """

    def __init__(
        self,
        config: PollerConfig,
        registry: ProducerRegistry | None = None,
        transport_factory: TransportFactory = serial_transport,
        on_reading: ReadingHandler | None = None,
    ):
        self.config = config
        self.registry = registry or default_registry()
        self.transport_factory = transport_factory
        self.on_reading = on_reading

        self.output: asyncio.Queue[Reading] = asyncio.Queue(maxsize=config.poll.queue_size)
        self.engines: list[QueryEngine] = []
        self.failed: dict[str, str] = {}

        self._start_time = datetime.now(timezone.utc)
        self._running = False
        self._engine_tasks: dict[str, asyncio.Task] = {}
        self._consumer_task: asyncio.Task | None = None
        self._shutdown_event = asyncio.Event()

        self._health_app: web.Application | None = None
        self._health_runner: web.AppRunner | None = None

        # Resolve every producer before anything polls
        self._build_engines()

    def _build_engines(self) -> None:
        devices = set()
        for meter in self.config.meters:
            if meter.serial.device in devices:
                raise ConfigError(f"serial device {meter.serial.device} is configured twice")
            devices.add(meter.serial.device)

            producer = self.registry.create(meter.device_type)
            transport = self.transport_factory(meter, producer)
            self.engines.append(QueryEngine(
                transport=transport,
                producer=producer,
                output=self.output,
                name=meter.name,
                interval_s=self.config.poll.interval_s,
                max_retries=self.config.poll.max_retries,
                retry_delay_s=self.config.poll.retry_delay_s,
                fail_fast=self.config.poll.fail_fast,
            ))
            logger.info(
                f"Configured meter: {meter.name} type={meter.device_type} "
                f"serial={meter.serial.device} baud={meter.serial.baudrate} address={meter.address}"
            )

    async def start(self) -> None:
        """Start engines, consumer and health server"""
        logger.info(f"Starting poller ({len(self.engines)} meters)")
        self._running = True

        self._consumer_task = asyncio.create_task(self._consume_loop())
        for engine in self.engines:
            task = asyncio.create_task(engine.run(), name=f"engine:{engine.name}")
            task.add_done_callback(self._engine_done)
            self._engine_tasks[engine.name] = task

        if self.config.health_port:
            await self._start_health_server()

    async def run(self) -> None:
        """Start, then wait for a shutdown signal or for every engine to end"""
        await self.start()
        self._setup_signal_handlers()
        await self._shutdown_event.wait()

    async def stop(self) -> None:
        """Stop engines at their next boundary and drain the queue"""
        logger.info("Stopping poller")
        self._running = False

        for engine in self.engines:
            engine.stop()
        if self._engine_tasks:
            await asyncio.gather(*self._engine_tasks.values(), return_exceptions=True)

        if self._consumer_task:
            self._consumer_task.cancel()
            try:
                await self._consumer_task
            except asyncio.CancelledError:
                pass
        self._drain()

        await self._stop_health_server()
        logger.info("Poller stopped")

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    def _engine_done(self, task: asyncio.Task) -> None:
        name = task.get_name().removeprefix("engine:")
        if task.cancelled():
            return

        error = task.exception()
        if error is not None:
            self.failed[name] = str(error)
            logger.error(
                f"Engine {name} terminated: {error}",
                exc_info=(type(error), error, error.__traceback__),
            )
            if self.config.poll.fail_fast:
                self.request_shutdown()

        if all(t.done() for t in self._engine_tasks.values()):
            self.request_shutdown()

    def _handle(self, reading: Reading) -> None:
        if self.on_reading is not None:
            self.on_reading(reading)
        else:
            log_reading(logger, reading.to_dict())

    async def _consume_loop(self) -> None:
        """Hand each reading to the output handler"""
        while True:
            reading = await self.output.get()
            try:
                self._handle(reading)
            except Exception as e:
                logger.error(f"Error handling reading from {reading.meter}: {e}")
            finally:
                self.output.task_done()

    def _drain(self) -> None:
        while not self.output.empty():
            self._handle(self.output.get_nowait())
            self.output.task_done()

    def _setup_signal_handlers(self) -> None:
        """Setup graceful shutdown signal handlers"""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._handle_shutdown)
            except NotImplementedError:
                signal.signal(sig, lambda s, f: self._handle_shutdown())

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal"""
        logger.info("Received shutdown signal")
        self.request_shutdown()

    def get_status(self) -> dict:
        """Per-engine status"""
        status = {}
        for engine in self.engines:
            entry = engine.get_stats()
            if engine.name in self.failed:
                entry["failed"] = self.failed[engine.name]
            status[engine.name] = entry
        return status

    async def _start_health_server(self) -> None:
        """Start the health check HTTP server"""
        self._health_app = web.Application()
        self._health_app.router.add_get("/health", self._health_handler)
        self._health_app.router.add_get("/status", self._status_handler)

        self._health_runner = web.AppRunner(self._health_app)
        await self._health_runner.setup()

        site = web.TCPSite(self._health_runner, "127.0.0.1", self.config.health_port)
        await site.start()

        logger.info(f"Health server started on port {self.config.health_port}")

    async def _stop_health_server(self) -> None:
        """Stop the health check HTTP server"""
        if self._health_runner:
            await self._health_runner.cleanup()
            self._health_runner = None

    async def _health_handler(self, request: web.Request) -> web.Response:
        """Handle health check requests"""
        uptime = (datetime.now(timezone.utc) - self._start_time).total_seconds()
        running = sum(1 for e in self.engines if e.is_running)
        healthy = self._running and running == len(self.engines)

        return web.json_response({
            "status": "healthy" if healthy else "unhealthy",
            "service": "poller",
            "uptime": int(uptime),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "meters": len(self.engines),
            "running": running,
            "failed": self.failed,
        }, status=200 if healthy else 503)

    async def _status_handler(self, request: web.Request) -> web.Response:
        """Return status of every engine"""
        return web.json_response(self.get_status())
