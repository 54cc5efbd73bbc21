"""
meterpoll

Driver layer for polling multi-phase grid meters over a shared Modbus RTU
serial bus. Device families map a vendor-neutral measurement vocabulary
to their register layouts; the query engine reads them with bounded
retry and reconnect and publishes one timestamped reading per cycle.
"""

__version__ = "0.3.0"
