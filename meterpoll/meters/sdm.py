"""
Eastron SDM Family

Register map as defined by the Eastron SDM630 (Modbus protocol, input
registers, IEEE-754 float pairs). The SDM630 table is largely a superset
of all SDM devices; the single phase SDM220 and SDM230 only implement
the subsets below.
See http://bg-etech.de/download/manual/SDM630Register.pdf
"""

from .measurement import Measurement as M
from .operation import Opcode, Opcodes
from .producer import Producer

# Reactive power sign: datasheet says "positive = capacitive?", unconfirmed.
# Reactive import/export energy likely means capacitive/inductive, sign unconfirmed.
_SIGN = "sign convention unconfirmed"


def sdm630_opcodes() -> Opcodes:
    return Opcodes({
        M.VOLTAGE_L1: 0x0000,   # Phase 1 line to neutral volts
        M.VOLTAGE_L2: 0x0002,
        M.VOLTAGE_L3: 0x0004,
        M.CURRENT_L1: 0x0006,   # Phase 1 current
        M.CURRENT_L2: 0x0008,
        M.CURRENT_L3: 0x000A,
        M.POWER_L1: 0x000C,     # Phase 1 active power
        M.POWER_L2: 0x000E,
        M.POWER_L3: 0x0010,

        M.APPARENT_POWER_L1: 0x0012,
        M.APPARENT_POWER_L2: 0x0014,
        M.APPARENT_POWER_L3: 0x0016,
        M.REACTIVE_POWER_L1: Opcode(0x0018, sign_uncertain=True, note=_SIGN),
        M.REACTIVE_POWER_L2: Opcode(0x001A, sign_uncertain=True, note=_SIGN),
        M.REACTIVE_POWER_L3: Opcode(0x001C, sign_uncertain=True, note=_SIGN),

        M.VOLTAGE: 0x002A,      # Average line to neutral volts
        M.POWER: 0x0034,        # Total system active power
        M.APPARENT_POWER: 0x0038,
        M.REACTIVE_POWER: Opcode(0x003C, sign_uncertain=True, note=_SIGN),
        M.PHASE_ANGLE: 0x0042,  # Total system phase angle
        M.IMPORT_POWER: 0x0054, # Total system power demand

        # Neutral current, not the sum of phase currents
        M.CURRENT: Opcode(0x00E0, note="neutral current"),
        M.THDI_L1: 0x00F0,
        M.THDI_L2: 0x00F2,
        M.THDI_L3: 0x00F4,
        M.THDI: 0x00FA,         # Average line current THD

        M.REACTIVE_SUM: 0x0158, # Total kvarh

        M.IMPORT_L1: 0x015A,
        M.IMPORT_L2: 0x015C,
        M.IMPORT_L3: 0x015E,
        M.IMPORT: 0x0048,       # Import kWh since last reset
        M.EXPORT_L1: 0x0160,
        M.EXPORT_L2: 0x0162,
        M.EXPORT_L3: 0x0164,
        M.EXPORT: 0x004A,
        M.SUM_L1: 0x0166,
        M.SUM_L2: 0x0168,
        M.SUM_L3: 0x016A,
        M.REACTIVE_IMPORT_L1: Opcode(0x016C, sign_uncertain=True, note=_SIGN),
        M.REACTIVE_IMPORT_L2: Opcode(0x016E, sign_uncertain=True, note=_SIGN),
        M.REACTIVE_IMPORT_L3: Opcode(0x0170, sign_uncertain=True, note=_SIGN),
        M.REACTIVE_EXPORT_L1: Opcode(0x0172, sign_uncertain=True, note=_SIGN),
        M.REACTIVE_EXPORT_L2: Opcode(0x0174, sign_uncertain=True, note=_SIGN),
        M.REACTIVE_EXPORT_L3: Opcode(0x0176, sign_uncertain=True, note=_SIGN),
        M.REACTIVE_SUM_L1: 0x0178,
        M.REACTIVE_SUM_L2: 0x017A,
        M.REACTIVE_SUM_L3: 0x017C,
        M.SUM: 0x0156,          # Total kWh

        M.COSPHI_L1: 0x001E,
        M.COSPHI_L2: 0x0020,
        M.COSPHI_L3: 0x0022,
        M.COSPHI: 0x003E,       # Total system power factor
        M.THD_L1: 0x00EA,       # Voltage THD
        M.THD_L2: 0x00EC,
        M.THD_L3: 0x00EE,
        M.THD: 0x00F8,
        M.FREQUENCY: 0x0046,
    }, name="SDM630")


class SDMProducer(Producer):
    """Eastron SDM630 and register compatible three phase meters"""

    TYPE = "SDM"
    DESCRIPTION = "Eastron SDM630"

    def make_opcodes(self) -> Opcodes:
        return sdm630_opcodes()


class SDM220Producer(Producer):
    """Eastron SDM220 single phase meter"""

    TYPE = "SDM220"
    DESCRIPTION = "Eastron SDM220"

    def make_opcodes(self) -> Opcodes:
        return Opcodes({
            M.VOLTAGE_L1: 0x0000,
            M.CURRENT_L1: 0x0006,
            M.IMPORT: 0x0048,
            M.EXPORT: 0x004A,
            M.SUM: 0x0156,
        }, name="SDM220")


class SDM230Producer(Producer):
    """Eastron SDM230 single phase meter"""

    TYPE = "SDM230"
    DESCRIPTION = "Eastron SDM230"

    def make_opcodes(self) -> Opcodes:
        return Opcodes({
            M.VOLTAGE_L1: 0x0000,
            M.CURRENT_L1: 0x0006,
            M.POWER_L1: 0x000C,
            M.COSPHI_L1: 0x001E,
            M.FREQUENCY: 0x0046,
            M.IMPORT: 0x0048,
            M.EXPORT: 0x004A,
            # No total kWh register on this firmware, the import counter doubles as sum
            M.SUM: Opcode(0x0048, alias_of=M.IMPORT, note="import register reused as sum"),
        }, name="SDM230")


def register(registry) -> None:
    """Add the SDM family to a producer registry"""
    registry.register(SDMProducer)
    registry.register(SDM220Producer)
    registry.register(SDM230Producer)
