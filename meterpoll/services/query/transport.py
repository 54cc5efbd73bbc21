"""
Modbus Transport

Register read boundary used by the query engine, and its pymodbus
implementation for direct RS485 serial (Modbus RTU) links.
"""

import asyncio
from abc import ABC, abstractmethod

from pymodbus.client import AsyncModbusSerialClient
from pymodbus.exceptions import ModbusException

from meterpoll.common.config import MeterConfig
from meterpoll.common.exceptions import CommunicationError
from meterpoll.common.logging_setup import get_service_logger
from meterpoll.meters.operation import FunctionCode
from meterpoll.meters.transforms import registers_to_bytes

logger = get_service_logger("query.transport")


class Transport(ABC):
    """
    Address-indexed register reads over one physical link.

    Every failure is reported as CommunicationError. After an error the
    caller closes the transport; the next connect() opens a fresh handle.
    """

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Open the link, CommunicationError on failure"""

    @abstractmethod
    async def read_registers(
        self,
        address: int,
        count: int,
        function_code: FunctionCode = FunctionCode.READ_INPUT_REGISTERS,
    ) -> bytes:
        """Read count registers starting at address, big-endian bytes"""

    @abstractmethod
    async def close(self) -> None:
        """Close and discard the handle"""

    def describe(self) -> str:
        return self.__class__.__name__


class ModbusRTUTransport(Transport):
    """
    Async Modbus RTU serial transport for direct RS485/RS232 connections.

    One instance owns one serial port; reads are issued one at a time by
    the engine that owns it.
    """

    def __init__(
        self,
        port: str,
        slave_id: int = 1,
        baudrate: int = 9600,
        bytesize: int = 8,
        parity: str = "N",
        stopbits: int = 1,
        timeout: float = 1.0,
    ):
        self.port = port
        self.slave_id = slave_id
        self.baudrate = baudrate
        self.bytesize = bytesize
        self.parity = parity
        self.stopbits = stopbits
        self.timeout = timeout

        self._client: AsyncModbusSerialClient | None = None
        self._connected = False

    @classmethod
    def from_config(cls, meter: MeterConfig) -> "ModbusRTUTransport":
        serial = meter.serial
        return cls(
            port=serial.device,
            slave_id=meter.address,
            baudrate=serial.baudrate,
            bytesize=serial.bytesize,
            parity=serial.parity,
            stopbits=serial.stopbits,
            timeout=serial.timeout_s,
        )

    @property
    def is_connected(self) -> bool:
        return self._connected and self._client is not None and self._client.connected

    def describe(self) -> str:
        return (
            f"{self.port} {self.baudrate} {self.bytesize}{self.parity}{self.stopbits} "
            f"slave={self.slave_id}"
        )

    async def connect(self) -> None:
        """Establish serial connection to the Modbus device"""
        if self.is_connected:
            return

        try:
            self._client = AsyncModbusSerialClient(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=self.bytesize,
                parity=self.parity,
                stopbits=self.stopbits,
                timeout=self.timeout,
                retries=0,  # the engine owns the retry policy
            )

            await self._client.connect()
            self._connected = self._client.connected

        except (ModbusException, OSError, asyncio.TimeoutError) as e:
            self._connected = False
            raise CommunicationError(
                f"Serial connection error on {self.port}: {e}",
                port=self.port,
            ) from e

        if not self._connected:
            raise CommunicationError(
                f"Failed to connect to serial port {self.port}",
                port=self.port,
            )

        logger.debug(f"Connected to serial port {self.describe()}")

    async def read_registers(
        self,
        address: int,
        count: int,
        function_code: FunctionCode = FunctionCode.READ_INPUT_REGISTERS,
    ) -> bytes:
        """Read input or holding registers"""
        if not self.is_connected:
            raise CommunicationError(
                f"Not connected to serial port {self.port}",
                port=self.port,
                address=address,
            )

        if function_code == FunctionCode.READ_INPUT_REGISTERS:
            read = self._client.read_input_registers
        elif function_code == FunctionCode.READ_HOLDING_REGISTERS:
            read = self._client.read_holding_registers
        else:
            raise ValueError(f"function code {function_code} not supported for reads")

        try:
            response = await read(address=address, count=count, device_id=self.slave_id)
        except ModbusException as e:
            raise CommunicationError(f"Modbus exception: {e}", port=self.port, address=address) from e
        except asyncio.TimeoutError as e:
            raise CommunicationError("Read timeout", port=self.port, address=address) from e
        except OSError as e:
            # pyserial SerialException is an OSError
            raise CommunicationError(f"Serial I/O error: {e}", port=self.port, address=address) from e

        if response.isError():
            raise CommunicationError(f"Modbus error: {response}", port=self.port, address=address)

        if len(response.registers) != count:
            raise CommunicationError(
                f"Short response: expected {count} registers, got {len(response.registers)}",
                port=self.port,
                address=address,
            )

        return registers_to_bytes(response.registers)

    async def close(self) -> None:
        """Close serial connection"""
        if self._client:
            self._client.close()
            self._client = None
        self._connected = False
        logger.debug(f"Disconnected from serial port {self.port}")
