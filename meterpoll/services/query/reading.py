"""
Reading

Timestamped snapshot of every value decoded during one poll cycle.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, NamedTuple

from meterpoll.meters.measurement import Measurement, PHASE_GROUPS


class PhaseValues(NamedTuple):
    """Per-phase values, None where the meter has no such register"""
    l1: float | None
    l2: float | None
    l3: float | None


@dataclass
class Reading:
    """
    One poll cycle's values.

    timestamp is the cycle completion time. Registers are read one after
    another so the values are not mutually atomic.
    """
    meter: str
    device_type: str
    values: dict[Measurement, float] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    uncertain: frozenset[Measurement] = frozenset()   # sign convention unconfirmed

    def __getitem__(self, measurement: Measurement) -> float:
        return self.values[Measurement(measurement)]

    def __contains__(self, measurement) -> bool:
        return measurement in self.values

    def get(self, measurement: Measurement, default: float | None = None) -> float | None:
        return self.values.get(Measurement(measurement), default)

    def phases(self, group: str) -> PhaseValues:
        """Per-phase values for a group such as "voltage" or "import" """
        l1, l2, l3 = PHASE_GROUPS[group]
        return PhaseValues(self.get(l1), self.get(l2), self.get(l3))

    @property
    def voltage(self) -> PhaseValues:
        return self.phases("voltage")

    def phase_groups(self) -> dict[str, PhaseValues]:
        """Every phase group the meter reported at least one value for"""
        groups = {}
        for group in PHASE_GROUPS:
            values = self.phases(group)
            if any(v is not None for v in values):
                groups[group] = values
        return groups

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form keyed by measurement identifier"""
        return {
            "meter": self.meter,
            "device_type": self.device_type,
            "timestamp": self.timestamp.isoformat(),
            "values": {m.value: v for m, v in self.values.items()},
            "phases": {group: values._asdict() for group, values in self.phase_groups().items()},
            "uncertain": sorted(m.value for m in self.uncertain),
        }
