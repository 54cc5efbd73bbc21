"""
Measurement Vocabulary

Vendor-neutral names for the physical quantities a grid meter reports.
Values are the identifiers downstream consumers key on, so they never
change once published.
"""

from enum import Enum


class Measurement(str, Enum):
    """Closed set of measurement identifiers"""
    # Phase voltages / currents / active power
    VOLTAGE_L1 = "VoltageL1"
    VOLTAGE_L2 = "VoltageL2"
    VOLTAGE_L3 = "VoltageL3"
    CURRENT_L1 = "CurrentL1"
    CURRENT_L2 = "CurrentL2"
    CURRENT_L3 = "CurrentL3"
    POWER_L1 = "PowerL1"
    POWER_L2 = "PowerL2"
    POWER_L3 = "PowerL3"

    # Apparent / reactive power per phase
    APPARENT_POWER_L1 = "ApparentPowerL1"
    APPARENT_POWER_L2 = "ApparentPowerL2"
    APPARENT_POWER_L3 = "ApparentPowerL3"
    REACTIVE_POWER_L1 = "ReactivePowerL1"
    REACTIVE_POWER_L2 = "ReactivePowerL2"
    REACTIVE_POWER_L3 = "ReactivePowerL3"

    # Totals and averages
    VOLTAGE = "Voltage"
    CURRENT = "Current"
    POWER = "Power"
    APPARENT_POWER = "ApparentPower"
    REACTIVE_POWER = "ReactivePower"
    IMPORT_POWER = "ImportPower"
    PHASE_ANGLE = "PhaseAngle"
    FREQUENCY = "Frequency"

    # Power factor
    COSPHI_L1 = "CosphiL1"
    COSPHI_L2 = "CosphiL2"
    COSPHI_L3 = "CosphiL3"
    COSPHI = "Cosphi"

    # Voltage THD
    THD_L1 = "THDL1"
    THD_L2 = "THDL2"
    THD_L3 = "THDL3"
    THD = "THD"

    # Current THD
    THDI_L1 = "THDiL1"
    THDI_L2 = "THDiL2"
    THDI_L3 = "THDiL3"
    THDI = "THDi"

    # Active energy
    IMPORT_L1 = "ImportL1"
    IMPORT_L2 = "ImportL2"
    IMPORT_L3 = "ImportL3"
    IMPORT = "Import"
    EXPORT_L1 = "ExportL1"
    EXPORT_L2 = "ExportL2"
    EXPORT_L3 = "ExportL3"
    EXPORT = "Export"
    SUM_L1 = "SumL1"
    SUM_L2 = "SumL2"
    SUM_L3 = "SumL3"
    SUM = "Sum"

    # Reactive energy
    REACTIVE_IMPORT_L1 = "ReactiveImportL1"
    REACTIVE_IMPORT_L2 = "ReactiveImportL2"
    REACTIVE_IMPORT_L3 = "ReactiveImportL3"
    REACTIVE_EXPORT_L1 = "ReactiveExportL1"
    REACTIVE_EXPORT_L2 = "ReactiveExportL2"
    REACTIVE_EXPORT_L3 = "ReactiveExportL3"
    REACTIVE_SUM_L1 = "ReactiveSumL1"
    REACTIVE_SUM_L2 = "ReactiveSumL2"
    REACTIVE_SUM_L3 = "ReactiveSumL3"
    REACTIVE_SUM = "ReactiveSum"

    def __str__(self) -> str:
        return self.value


M = Measurement

# (description, unit) for every measurement
_INFO: dict[Measurement, tuple[str, str]] = {
    M.VOLTAGE_L1: ("L1 Voltage", "V"),
    M.VOLTAGE_L2: ("L2 Voltage", "V"),
    M.VOLTAGE_L3: ("L3 Voltage", "V"),
    M.CURRENT_L1: ("L1 Current", "A"),
    M.CURRENT_L2: ("L2 Current", "A"),
    M.CURRENT_L3: ("L3 Current", "A"),
    M.POWER_L1: ("L1 Power", "W"),
    M.POWER_L2: ("L2 Power", "W"),
    M.POWER_L3: ("L3 Power", "W"),
    M.APPARENT_POWER_L1: ("L1 Apparent Power", "VA"),
    M.APPARENT_POWER_L2: ("L2 Apparent Power", "VA"),
    M.APPARENT_POWER_L3: ("L3 Apparent Power", "VA"),
    M.REACTIVE_POWER_L1: ("L1 Reactive Power", "var"),
    M.REACTIVE_POWER_L2: ("L2 Reactive Power", "var"),
    M.REACTIVE_POWER_L3: ("L3 Reactive Power", "var"),
    M.VOLTAGE: ("Average Voltage", "V"),
    M.CURRENT: ("Neutral Current", "A"),
    M.POWER: ("Power", "W"),
    M.APPARENT_POWER: ("Apparent Power", "VA"),
    M.REACTIVE_POWER: ("Reactive Power", "var"),
    M.IMPORT_POWER: ("Import Power Demand", "W"),
    M.PHASE_ANGLE: ("Phase Angle", "°"),
    M.FREQUENCY: ("Frequency", "Hz"),
    M.COSPHI_L1: ("L1 Cosphi", ""),
    M.COSPHI_L2: ("L2 Cosphi", ""),
    M.COSPHI_L3: ("L3 Cosphi", ""),
    M.COSPHI: ("Average Cosphi", ""),
    M.THD_L1: ("L1 Voltage to neutral THD", "%"),
    M.THD_L2: ("L2 Voltage to neutral THD", "%"),
    M.THD_L3: ("L3 Voltage to neutral THD", "%"),
    M.THD: ("Average voltage to neutral THD", "%"),
    M.THDI_L1: ("L1 Current THD", "%"),
    M.THDI_L2: ("L2 Current THD", "%"),
    M.THDI_L3: ("L3 Current THD", "%"),
    M.THDI: ("Average current THD", "%"),
    M.IMPORT_L1: ("L1 Import", "kWh"),
    M.IMPORT_L2: ("L2 Import", "kWh"),
    M.IMPORT_L3: ("L3 Import", "kWh"),
    M.IMPORT: ("Total Import", "kWh"),
    M.EXPORT_L1: ("L1 Export", "kWh"),
    M.EXPORT_L2: ("L2 Export", "kWh"),
    M.EXPORT_L3: ("L3 Export", "kWh"),
    M.EXPORT: ("Total Export", "kWh"),
    M.SUM_L1: ("L1 Sum", "kWh"),
    M.SUM_L2: ("L2 Sum", "kWh"),
    M.SUM_L3: ("L3 Sum", "kWh"),
    M.SUM: ("Total Sum", "kWh"),
    M.REACTIVE_IMPORT_L1: ("L1 Reactive Import", "kvarh"),
    M.REACTIVE_IMPORT_L2: ("L2 Reactive Import", "kvarh"),
    M.REACTIVE_IMPORT_L3: ("L3 Reactive Import", "kvarh"),
    M.REACTIVE_EXPORT_L1: ("L1 Reactive Export", "kvarh"),
    M.REACTIVE_EXPORT_L2: ("L2 Reactive Export", "kvarh"),
    M.REACTIVE_EXPORT_L3: ("L3 Reactive Export", "kvarh"),
    M.REACTIVE_SUM_L1: ("L1 Reactive Sum", "kvarh"),
    M.REACTIVE_SUM_L2: ("L2 Reactive Sum", "kvarh"),
    M.REACTIVE_SUM_L3: ("L3 Reactive Sum", "kvarh"),
    M.REACTIVE_SUM: ("Total Reactive Sum", "kvarh"),
}

# Group name -> (L1, L2, L3)
PHASE_GROUPS: dict[str, tuple[Measurement, Measurement, Measurement]] = {
    "voltage": (M.VOLTAGE_L1, M.VOLTAGE_L2, M.VOLTAGE_L3),
    "current": (M.CURRENT_L1, M.CURRENT_L2, M.CURRENT_L3),
    "power": (M.POWER_L1, M.POWER_L2, M.POWER_L3),
    "apparent_power": (M.APPARENT_POWER_L1, M.APPARENT_POWER_L2, M.APPARENT_POWER_L3),
    "reactive_power": (M.REACTIVE_POWER_L1, M.REACTIVE_POWER_L2, M.REACTIVE_POWER_L3),
    "cosphi": (M.COSPHI_L1, M.COSPHI_L2, M.COSPHI_L3),
    "thd": (M.THD_L1, M.THD_L2, M.THD_L3),
    "thdi": (M.THDI_L1, M.THDI_L2, M.THDI_L3),
    "import": (M.IMPORT_L1, M.IMPORT_L2, M.IMPORT_L3),
    "export": (M.EXPORT_L1, M.EXPORT_L2, M.EXPORT_L3),
    "sum": (M.SUM_L1, M.SUM_L2, M.SUM_L3),
    "reactive_import": (M.REACTIVE_IMPORT_L1, M.REACTIVE_IMPORT_L2, M.REACTIVE_IMPORT_L3),
    "reactive_export": (M.REACTIVE_EXPORT_L1, M.REACTIVE_EXPORT_L2, M.REACTIVE_EXPORT_L3),
    "reactive_sum": (M.REACTIVE_SUM_L1, M.REACTIVE_SUM_L2, M.REACTIVE_SUM_L3),
}


def describe(measurement: Measurement) -> tuple[str, str]:
    """Return (description, unit) for a measurement"""
    return _INFO[Measurement(measurement)]
