"""
Test the poller service with virtual meters in place of serial links.
"""

import asyncio
import time

import pytest

from meterpoll.common.config import MeterConfig, PollerConfig, PollSettings, SerialSettings
from meterpoll.common.exceptions import ConfigError, UnknownDeviceTypeError
from meterpoll.meters import Measurement
from meterpoll.services.poller import PollerService
from meterpoll.simulator import VirtualMeter

M = Measurement


def make_config(*meters, **poll):
    poll.setdefault("interval_s", 0.01)
    poll.setdefault("retry_delay_s", 0)
    return PollerConfig(
        meters=[
            MeterConfig(
                name=name,
                device_type=device_type,
                serial=SerialSettings(device=f"/dev/ttyUSB{i}"),
            )
            for i, (name, device_type) in enumerate(meters)
        ],
        poll=PollSettings(**poll),
    )


class MeterBank:
    """Transport factory handing out virtual meters, kept for inspection"""

    def __init__(self, values=None):
        self.values = values or {}
        self.meters = {}

    def __call__(self, meter, producer):
        virtual = VirtualMeter(producer, self.values.get(meter.name), name=meter.name)
        self.meters[meter.name] = virtual
        return virtual


class BrokenMeter(VirtualMeter):
    async def read_registers(self, address, count, function_code=None):
        return b"\x00"


async def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def test_readings_flow_from_every_meter():
    readings = []
    bank = MeterBank({
        "grid": {M.VOLTAGE_L1: 229.5},
        "heatpump": {M.POWER_L1: 1500.0},
    })

    async def scenario():
        config = make_config(("grid", "SDM"), ("heatpump", "SDM230"))
        service = PollerService(config, transport_factory=bank, on_reading=readings.append)
        await service.start()
        await wait_until(lambda: {r.meter for r in readings} == {"grid", "heatpump"})
        await service.stop()
        return service

    service = asyncio.run(scenario())

    by_meter = {r.meter: r for r in readings}
    assert by_meter["grid"].device_type == "SDM"
    assert by_meter["grid"].voltage.l1 == 229.5
    assert by_meter["heatpump"][M.POWER_L1] == 1500.0
    assert service.failed == {}
    # Every transport is released on stop
    assert all(not meter.is_connected for meter in bank.meters.values())
    assert service.output.empty()


def test_unknown_device_type_fails_before_polling():
    bank = MeterBank()

    async def scenario():
        PollerService(make_config(("grid", "JANITZA")), transport_factory=bank)

    with pytest.raises(UnknownDeviceTypeError) as exc_info:
        asyncio.run(scenario())
    assert "SDM" in exc_info.value.known
    assert bank.meters == {}


def test_shared_serial_device_is_rejected():
    config = make_config(("grid", "SDM"), ("pv", "SDM"))
    config.meters[1].serial.device = config.meters[0].serial.device

    async def scenario():
        PollerService(config, transport_factory=MeterBank())

    with pytest.raises(ConfigError):
        asyncio.run(scenario())


def test_failed_engine_does_not_stop_the_others():
    readings = []

    def factory(meter, producer):
        if meter.name == "broken":
            return BrokenMeter(producer, name=meter.name)
        return VirtualMeter(producer, name=meter.name)

    async def scenario():
        config = make_config(("broken", "SDM"), ("grid", "SDM"))
        service = PollerService(config, transport_factory=factory, on_reading=readings.append)
        await service.start()
        await wait_until(lambda: "broken" in service.failed)
        count = sum(1 for r in readings if r.meter == "grid")
        await wait_until(lambda: sum(1 for r in readings if r.meter == "grid") > count)
        status = service.get_status()
        await service.stop()
        return service, status

    service, status = asyncio.run(scenario())

    assert "Decode Error" in service.failed["broken"]
    assert status["broken"]["running"] is False
    assert "failed" in status["broken"]
    assert status["grid"]["published"] >= 1
    assert all(r.meter == "grid" for r in readings)


def test_fail_fast_shuts_the_service_down():
    def factory(meter, producer):
        return BrokenMeter(producer, name=meter.name)

    async def scenario():
        config = make_config(("broken", "SDM"), fail_fast=True)
        service = PollerService(config, transport_factory=factory)
        run_task = asyncio.create_task(service.run())
        await asyncio.wait_for(run_task, timeout=2.0)
        await service.stop()
        return service

    service = asyncio.run(scenario())
    assert "broken" in service.failed


def test_pending_readings_are_drained_on_stop():
    readings = []

    async def scenario():
        config = make_config(("grid", "SDM"))
        service = PollerService(config, transport_factory=MeterBank(), on_reading=readings.append)
        reading = await service.engines[0].run_cycle()
        service.output.put_nowait(reading)
        await service.stop()
        return reading

    reading = asyncio.run(scenario())
    assert readings == [reading]
