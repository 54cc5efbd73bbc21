"""
Test the Modbus RTU transport with a stand-in pymodbus client.
"""

import asyncio

import pytest
from pymodbus.exceptions import ModbusException

from meterpoll.common.exceptions import CommunicationError, CycleAbortedError
from meterpoll.meters.operation import FunctionCode
from meterpoll.meters.sdm import SDMProducer
from meterpoll.services.query import ModbusRTUTransport, QueryEngine

# 230.5 as a float32 word pair
VOLTS = [0x4366, 0x8000]


class FakeResponse:
    def __init__(self, registers, error=False):
        self.registers = list(registers)
        self._error = error

    def isError(self):
        return self._error


class FakeClient:
    """Answers reads from a script of errors, then with VOLTS"""

    def __init__(self, errors=(), response=None):
        self.connected = True
        self.errors = list(errors)
        self.response = response
        self.calls = []

    async def _read(self, kind, address, count, device_id):
        self.calls.append((kind, address, count, device_id))
        if self.errors:
            raise self.errors.pop(0)
        return self.response or FakeResponse(VOLTS[:count])

    async def read_input_registers(self, address, count, device_id):
        return await self._read("input", address, count, device_id)

    async def read_holding_registers(self, address, count, device_id):
        return await self._read("holding", address, count, device_id)

    def close(self):
        self.connected = False


class FakeSerialTransport(ModbusRTUTransport):
    """ModbusRTUTransport whose connect() installs the fake client"""

    def __init__(self, client, **kwargs):
        super().__init__("/dev/ttyTEST", slave_id=7, **kwargs)
        self.client = client
        self.connects = 0

    async def connect(self):
        self.connects += 1
        self.client.connected = True
        self._client = self.client
        self._connected = True


def read(transport, function_code=FunctionCode.READ_INPUT_REGISTERS):
    async def scenario():
        await transport.connect()
        return await transport.read_registers(0x0000, 2, function_code)

    return asyncio.run(scenario())


def test_read_returns_big_endian_bytes():
    client = FakeClient()
    assert read(FakeSerialTransport(client)) == b"\x43\x66\x80\x00"
    assert client.calls == [("input", 0x0000, 2, 7)]


def test_holding_registers_use_their_own_function():
    client = FakeClient()
    read(FakeSerialTransport(client), FunctionCode.READ_HOLDING_REGISTERS)
    assert client.calls[0][0] == "holding"


@pytest.mark.parametrize("error", [
    OSError(5, "Input/output error"),
    ModbusException("no response"),
    asyncio.TimeoutError(),
])
def test_read_faults_become_communication_errors(error):
    transport = FakeSerialTransport(FakeClient(errors=[error]))
    with pytest.raises(CommunicationError) as exc_info:
        read(transport)
    assert exc_info.value.port == "/dev/ttyTEST"
    assert exc_info.value.__cause__ is error


def test_exception_response_is_a_communication_error():
    transport = FakeSerialTransport(FakeClient(response=FakeResponse([], error=True)))
    with pytest.raises(CommunicationError, match="Modbus error"):
        read(transport)


def test_short_response_is_a_communication_error():
    transport = FakeSerialTransport(FakeClient(response=FakeResponse([0x4366])))
    with pytest.raises(CommunicationError, match="Short response"):
        read(transport)


def test_read_without_connection_fails():
    transport = ModbusRTUTransport("/dev/ttyTEST")

    async def scenario():
        await transport.read_registers(0x0000, 2)

    with pytest.raises(CommunicationError, match="Not connected"):
        asyncio.run(scenario())


def test_serial_io_error_is_retried_by_the_engine():
    client = FakeClient(errors=[OSError(5, "Input/output error")])

    async def scenario():
        producer = SDMProducer()
        transport = FakeSerialTransport(client)
        engine = QueryEngine(transport, producer, asyncio.Queue(), retry_delay_s=0)
        value = await engine.query_or_fail(producer.probe())
        return value, engine, transport

    value, engine, transport = asyncio.run(scenario())
    assert value == 230.5
    assert engine.stats.failed_reads == 1
    assert transport.connects == 2


def test_persistent_serial_io_error_aborts_only_the_cycle():
    client = FakeClient(errors=[OSError(5, "Input/output error")] * 3)

    async def scenario():
        producer = SDMProducer()
        engine = QueryEngine(FakeSerialTransport(client), producer, asyncio.Queue(), retry_delay_s=0)
        with pytest.raises(CycleAbortedError):
            await engine.run_cycle()
        # The link recovers and the next cycle completes
        return await engine.run_cycle(), engine

    reading, engine = asyncio.run(scenario())
    assert engine.stats.failed_reads == 3
    assert reading.voltage.l1 == 230.5
