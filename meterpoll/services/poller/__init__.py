"""
Poller Service - wires configuration, registry and query engines together.
"""

from .service import PollerService, serial_transport

__all__ = ["PollerService", "serial_transport"]
