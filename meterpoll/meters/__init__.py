"""
Meter Profiles

Measurement vocabulary, opcode tables and the device family producers.
Device family modules expose register(registry); default_registry()
calls each of them once during startup and seals the result.
"""

from .measurement import Measurement, PHASE_GROUPS, describe
from .operation import FunctionCode, Opcode, Opcodes, Operation
from .producer import Producer
from .registry import ProducerRegistry
from . import sdm

# Device family modules, each with a register(registry) function
FAMILIES = (sdm,)


def default_registry() -> ProducerRegistry:
    """Build and seal a registry holding every built-in device family"""
    registry = ProducerRegistry()
    for family in FAMILIES:
        family.register(registry)
    registry.seal()
    return registry


__all__ = [
    "Measurement",
    "PHASE_GROUPS",
    "describe",
    "FunctionCode",
    "Opcode",
    "Opcodes",
    "Operation",
    "Producer",
    "ProducerRegistry",
    "default_registry",
]
