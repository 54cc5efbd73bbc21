"""
Query Service - Modbus Polling

Responsibilities:
- Own one transport per physical serial link
- Execute a producer's operations with bounded retry and reconnect
- Publish one Reading per complete poll cycle
"""

from .engine import QueryEngine, ConnectionState, EngineStats
from .reading import Reading, PhaseValues
from .transport import Transport, ModbusRTUTransport

__all__ = [
    "QueryEngine",
    "ConnectionState",
    "EngineStats",
    "Reading",
    "PhaseValues",
    "Transport",
    "ModbusRTUTransport",
]
