"""
Opcodes and Operations

Opcodes map measurements to register addresses for one device family.
An Operation is a fully specified read instruction built from an opcode.
"""

from dataclasses import dataclass
from enum import IntEnum
from collections.abc import Iterator, Mapping
from typing import Union

from meterpoll.common.exceptions import OpcodeAliasError, UnmappedMeasurementError
from .measurement import Measurement
from .transforms import Transform


class FunctionCode(IntEnum):
    """Modbus read function codes"""
    READ_HOLDING_REGISTERS = 3
    READ_INPUT_REGISTERS = 4


@dataclass(frozen=True)
class Opcode:
    """Register address plus annotations for one measurement"""
    address: int
    alias_of: Measurement | None = None     # intentional reuse of another measurement's register
    sign_uncertain: bool = False            # sign convention not confirmed by the datasheet
    note: str = ""

    def __post_init__(self):
        if not 0 <= self.address <= 0xFFFF:
            raise ValueError(f"register address {self.address} is not 16-bit")


@dataclass(frozen=True)
class Operation:
    """One register read: what to read, how many words, how to decode it"""
    function_code: FunctionCode
    address: int
    length: int
    measurement: Measurement
    transform: Transform
    sign_uncertain: bool = False

    def __str__(self) -> str:
        return f"{self.measurement.value}@0x{self.address:04X}/{self.length}"


class Opcodes(Mapping):
    """
    Measurement -> Opcode table for one device family.

    Several measurements may share a register, but only when the entry
    says so with alias_of. Looking up a measurement the table does not
    contain raises UnmappedMeasurementError.
    """

    def __init__(
        self,
        table: Mapping[Measurement, Union[int, Opcode]],
        name: str = "",
    ):
        self.name = name
        self._table: dict[Measurement, Opcode] = {}
        for measurement, entry in table.items():
            if not isinstance(entry, Opcode):
                entry = Opcode(entry)
            self._table[Measurement(measurement)] = entry
        self._validate_aliases()

    def _validate_aliases(self) -> None:
        # Every register has exactly one owner, all other users are declared aliases
        owners: dict[int, Measurement] = {}
        for measurement, entry in self._table.items():
            if entry.alias_of is not None:
                target = self._table.get(entry.alias_of)
                if target is None:
                    raise UnmappedMeasurementError(entry.alias_of.value, self.name)
                if target.address != entry.address:
                    raise OpcodeAliasError(entry.address, measurement.value, entry.alias_of.value)
                continue

            owner = owners.setdefault(entry.address, measurement)
            if owner != measurement:
                raise OpcodeAliasError(entry.address, owner.value, measurement.value)

    def __getitem__(self, measurement: Measurement) -> Opcode:
        try:
            return self._table[measurement]
        except KeyError:
            raise UnmappedMeasurementError(str(measurement), self.name) from None

    def __iter__(self) -> Iterator[Measurement]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, measurement) -> bool:
        return measurement in self._table

    def get(self, measurement, default=None):
        return self._table.get(measurement, default)

    def address(self, measurement: Measurement) -> int:
        return self[measurement].address

    def aliases(self) -> dict[Measurement, Measurement]:
        """Declared aliases: measurement -> measurement it reuses"""
        return {m: e.alias_of for m, e in self._table.items() if e.alias_of is not None}

    def uncertain(self) -> list[Measurement]:
        """Measurements whose sign convention is not confirmed"""
        return [m for m, e in self._table.items() if e.sign_uncertain]
