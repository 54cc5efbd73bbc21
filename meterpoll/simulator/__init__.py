"""
Simulator

In-memory meters for running the poller without hardware.
"""

from .virtual_meter import VirtualMeter

__all__ = ["VirtualMeter"]
