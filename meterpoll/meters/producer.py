"""
Producer Base Class

A producer is the driver profile for one device family: it owns the
opcode table and turns it into the operations the query engine runs.
"""

from abc import ABC, abstractmethod

from .measurement import Measurement
from .operation import FunctionCode, Opcodes, Operation
from .transforms import Transform, rtu_ieee754_to_float64


class Producer(ABC):
    """
    Base class for device family profiles.

    Subclasses set TYPE and DESCRIPTION and implement make_opcodes().
    The defaults describe the dominant encoding in this domain: input
    registers, two words per value, big-endian IEEE-754 float.
    """

    TYPE: str = ""
    DESCRIPTION: str = ""

    FUNCTION_CODE = FunctionCode.READ_INPUT_REGISTERS
    READ_LENGTH = 2
    TRANSFORM: Transform = staticmethod(rtu_ieee754_to_float64)
    PROBE = Measurement.VOLTAGE_L1

    def __init__(self):
        self.opcodes = self.make_opcodes()
        # Operations are immutable, build them once
        self._operations = tuple(self._snip(m) for m in self.opcodes)

    @abstractmethod
    def make_opcodes(self) -> Opcodes:
        """Return the measurement -> register table for this family"""

    @property
    def type_id(self) -> str:
        return self.TYPE

    @property
    def description(self) -> str:
        return self.DESCRIPTION

    def opcode(self, measurement: Measurement) -> int:
        """Register address for a measurement, UnmappedMeasurementError if absent"""
        return self.opcodes.address(measurement)

    def supports(self, measurement: Measurement) -> bool:
        return measurement in self.opcodes

    def _snip(self, measurement: Measurement) -> Operation:
        entry = self.opcodes[measurement]
        return Operation(
            function_code=self.FUNCTION_CODE,
            address=entry.address,
            length=self.READ_LENGTH,
            measurement=measurement,
            transform=self.TRANSFORM,
            sign_uncertain=entry.sign_uncertain,
        )

    def probe(self) -> Operation:
        """Cheap, always-present read used to check the device answers"""
        return self._snip(self.PROBE)

    def produce(self) -> list[Operation]:
        """All operations for one poll cycle, in table order"""
        return list(self._operations)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.TYPE} ({len(self.opcodes)} measurements)>"
