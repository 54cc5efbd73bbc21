"""
Virtual Meter

Simulates a meter of any registered device family as an in-memory
transport. Values are stored as float32 register pairs at the addresses
the producer's opcode table defines, so the query engine decodes them
exactly as it would on a real bus.

Used by the --simulate CLI flag and by the test suite, which also uses
the failure injection hooks.
"""

from collections import deque
from dataclasses import dataclass

from meterpoll.common.exceptions import CommunicationError
from meterpoll.common.logging_setup import get_service_logger
from meterpoll.meters.measurement import Measurement as M
from meterpoll.meters.operation import FunctionCode
from meterpoll.meters.producer import Producer
from meterpoll.meters.transforms import bytes_to_registers, float32_to_rtu, registers_to_bytes
from meterpoll.services.query.transport import Transport

logger = get_service_logger("simulator")


# Plausible values for a lightly loaded 230 V / 50 Hz installation
DEFAULT_VALUES: dict[M, float] = {
    M.VOLTAGE_L1: 230.0,
    M.VOLTAGE_L2: 230.0,
    M.VOLTAGE_L3: 230.0,
    M.VOLTAGE: 230.0,
    M.FREQUENCY: 50.0,
    M.COSPHI_L1: 1.0,
    M.COSPHI_L2: 1.0,
    M.COSPHI_L3: 1.0,
    M.COSPHI: 1.0,
}


@dataclass
class FailurePlan:
    """Pending injected failures"""
    reads: int = 0
    connects: int = 0


class VirtualMeter(Transport):
    """
    In-memory transport serving one producer's register map.

    Register memory maps address -> 16-bit value; unmapped addresses
    read as 0, like an uninitialised device register.
    """

    READ_HISTORY = 256

    def __init__(
        self,
        producer: Producer,
        values: dict[M, float] | None = None,
        name: str = "virtual",
    ):
        self.producer = producer
        self.name = name
        self.readings: dict[M, float] = {
            m: DEFAULT_VALUES.get(m, 0.0) for m in producer.opcodes
        }
        self._registers: dict[int, int] = {}
        self._connected = False
        self._failures = FailurePlan()

        # Statistics for assertions
        self.read_count = 0
        self.connect_count = 0
        self.close_count = 0
        # Most recent reads only, a simulated meter polls forever
        self.reads: deque[tuple[int, int, FunctionCode]] = deque(maxlen=self.READ_HISTORY)

        self.set_values(values or {})
        logger.debug(f"Virtual meter '{name}' initialized ({producer.type_id})")

    @property
    def is_connected(self) -> bool:
        return self._connected

    def describe(self) -> str:
        return f"virtual {self.producer.type_id} '{self.name}'"

    def set_values(self, values: dict[M, float]) -> None:
        """Update readings and re-encode register memory"""
        aliases = self.producer.opcodes.aliases()
        for measurement, value in values.items():
            measurement = M(measurement)
            # Raises UnmappedMeasurementError for registers this family lacks
            self.producer.opcode(measurement)
            self.readings[measurement] = value
            if measurement in aliases:
                self.readings[aliases[measurement]] = value
        self._update_registers()

    def set_load(self, power_w: float, voltage: float = 230.0) -> None:
        """
        Balanced three phase load at unity power factor.
        Only measurements the producer maps are touched.
        """
        phase_power = power_w / 3
        current = phase_power / voltage
        candidates = {
            M.VOLTAGE_L1: voltage, M.VOLTAGE_L2: voltage, M.VOLTAGE_L3: voltage,
            M.CURRENT_L1: current, M.CURRENT_L2: current, M.CURRENT_L3: current,
            M.POWER_L1: phase_power, M.POWER_L2: phase_power, M.POWER_L3: phase_power,
            M.POWER: power_w,
            M.APPARENT_POWER: power_w,
        }
        self.set_values({m: v for m, v in candidates.items() if self.producer.supports(m)})

    def _update_registers(self) -> None:
        # Aliased measurements share an address, the owner's value wins
        aliases = self.producer.opcodes.aliases()
        for measurement, value in self.readings.items():
            if measurement in aliases:
                continue
            address = self.producer.opcode(measurement)
            high, low = bytes_to_registers(float32_to_rtu(value))
            self._registers[address] = high
            self._registers[address + 1] = low

    def fail_next(self, count: int = 1) -> None:
        """Make the next count reads raise CommunicationError"""
        self._failures.reads += count

    def fail_connect(self, count: int = 1) -> None:
        """Make the next count connects raise CommunicationError"""
        self._failures.connects += count

    async def connect(self) -> None:
        self.connect_count += 1
        if self._failures.connects > 0:
            self._failures.connects -= 1
            raise CommunicationError(f"{self.name}: simulated connect failure", port=self.name)
        self._connected = True

    async def read_registers(
        self,
        address: int,
        count: int,
        function_code: FunctionCode = FunctionCode.READ_INPUT_REGISTERS,
    ) -> bytes:
        self.read_count += 1
        self.reads.append((address, count, function_code))
        if not self._connected:
            raise CommunicationError(f"{self.name}: not connected", port=self.name, address=address)
        if self._failures.reads > 0:
            self._failures.reads -= 1
            raise CommunicationError(f"{self.name}: simulated timeout", port=self.name, address=address)
        return registers_to_bytes(
            [self._registers.get(addr, 0) for addr in range(address, address + count)]
        )

    async def close(self) -> None:
        self.close_count += 1
        self._connected = False

    def __repr__(self) -> str:
        return f"VirtualMeter(name='{self.name}', type={self.producer.type_id})"
