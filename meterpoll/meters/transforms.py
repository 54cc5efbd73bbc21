"""
Register Decode Transforms

Convert raw register bytes (big-endian, high word first) to values.
A transform is referenced by an Operation and applied to the bytes the
transport returned for that operation.
"""

import struct
from typing import Callable

from meterpoll.common.exceptions import DecodeError

Transform = Callable[[bytes], float]


def _check_length(data: bytes, expected: int, name: str) -> None:
    if len(data) != expected:
        raise DecodeError(
            f"{name} expects {expected} bytes, got {len(data)}",
            expected=expected,
            actual=len(data),
        )


def rtu_ieee754_to_float32(data: bytes) -> float:
    """Two big-endian registers -> IEEE-754 float32"""
    _check_length(data, 4, "float32")
    return struct.unpack(">f", data)[0]


def rtu_ieee754_to_float64(data: bytes) -> float:
    """
    Two big-endian registers -> IEEE-754 float32, widened to float64.

    Python floats are already doubles so the value is identical to the
    float32 decode; the separate name lets an Operation record which
    width its consumers expect.
    """
    _check_length(data, 4, "float32")
    return float(struct.unpack(">f", data)[0])


def float32_to_rtu(value: float) -> bytes:
    """Inverse of rtu_ieee754_to_float32, used by the simulator"""
    return struct.pack(">f", value)


def registers_to_bytes(registers: list[int]) -> bytes:
    """Pack 16-bit register words big-endian, as they travel on the wire"""
    try:
        return struct.pack(f">{len(registers)}H", *registers)
    except struct.error as e:
        raise DecodeError(f"register value out of range: {e}") from e


def bytes_to_registers(data: bytes) -> list[int]:
    """Split bytes into 16-bit big-endian register words"""
    if len(data) % 2:
        raise DecodeError(f"odd payload length {len(data)}", actual=len(data))
    return list(struct.unpack(f">{len(data) // 2}H", data))
