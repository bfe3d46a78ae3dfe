"""International Standard Atmosphere model and airspeed conversions.

All functions are pure. Altitudes are in feet, pressures in Pa, temperatures
in degrees Celsius and speeds in knots unless the name says otherwise.

Typical usage example:
    from acfperf.physics.atmosphere import alt2press, isadev2sat, kcas2ktas

    press = alt2press(10000, ISA_SL_PRESS)
    oat = isadev2sat(100, 0)
    ktas = kcas2ktas(250, press, oat)
"""

import math
from dataclasses import dataclass

from acfperf.physics.units import c2kelvin, feet2met, kelvin2c, kt2mps, met2feet, mps2kt

# ISA parameters
ISA_SL_TEMP_C = 15.0
ISA_SL_TEMP_K = 288.15
ISA_SL_PRESS = 101325.0  # Pa
ISA_SL_DENS = 1.225  # kg/m³
ISA_TLR_PER_1000FT = 1.98  # °C per 1000 ft
ISA_TLR_PER_1M = 0.0065  # K per meter
ISA_SPEED_SOUND = 340.294  # m/s
ISA_TP_ALT = 36089.0  # ft

# Physical constants
EARTH_GRAVITY = 9.80665  # m/s²
DRY_AIR_MOL = 0.02896968  # kg/mol
R_UNIV = 8.314462618  # J/(mol·K)
R_SPEC = 287.058  # J/(kg·K), dry air
GAMMA = 1.4  # ratio of specific heats, dry air

MIN_ALT = -2000.0
MAX_ALT = 100000.0

_BARO_EXP = (EARTH_GRAVITY * DRY_AIR_MOL) / (R_UNIV * ISA_TLR_PER_1M)


@dataclass(frozen=True)
class Environment:
    """Atmospheric conditions shared by all steps of a driver call.

    Attributes:
        isadev: ISA temperature deviation (°C).
        qnh: Sea-level equivalent pressure (Pa).
        tp_alt: Tropopause altitude (ft).
    """

    isadev: float = 0.0
    qnh: float = ISA_SL_PRESS
    tp_alt: float = ISA_TP_ALT

    def __post_init__(self) -> None:
        assert self.qnh > 0, "QNH must be positive"
        assert MIN_ALT <= self.tp_alt <= MAX_ALT


def alt2press(alt: float, qnh: float, sl_temp_k: float = ISA_SL_TEMP_K) -> float:
    """Static pressure at a barometric altitude.

    Uses the full barometric formula with a linear lapse. The lapse is not
    stopped at the tropopause; callers handle the isothermal layer.

    Args:
        alt: Barometric altitude (ft).
        qnh: Surface reference pressure (Pa).
        sl_temp_k: Surface reference temperature (K).

    Returns:
        Static air pressure (Pa).
    """
    assert MIN_ALT <= alt <= MAX_ALT, f"altitude out of range: {alt}"
    assert qnh > 0 and sl_temp_k > 0
    return qnh * math.pow(1 - (ISA_TLR_PER_1M * feet2met(alt)) / sl_temp_k, _BARO_EXP)


def press2alt(press: float, qnh: float, sl_temp_k: float = ISA_SL_TEMP_K) -> float:
    """Barometric altitude (ft) at which ``press`` is found. Inverse of alt2press."""
    assert press > 0 and qnh > 0 and sl_temp_k > 0
    return met2feet(sl_temp_k * (1 - math.pow(press / qnh, 1 / _BARO_EXP)) / ISA_TLR_PER_1M)


def alt2fl(alt: float, qnh: float) -> float:
    """Flight level: the altitude this pressure would indicate at 1013.25 hPa, in 100s of ft."""
    return press2alt(alt2press(alt, qnh), ISA_SL_PRESS) / 100


def fl2alt(fl: float, qnh: float) -> float:
    """Barometric altitude (ft) at QNH ``qnh`` of flight level ``fl``."""
    return press2alt(alt2press(fl * 100, ISA_SL_PRESS), qnh)


def _isa_temp(fl: float) -> float:
    # isothermal above the tropopause
    fl = min(fl, ISA_TP_ALT / 100)
    return ISA_SL_TEMP_C - (fl / 10) * ISA_TLR_PER_1000FT


def sat2isadev(fl: float, sat: float) -> float:
    """ISA deviation (°C) of static air temperature ``sat`` at flight level ``fl``."""
    return sat - _isa_temp(fl)


def isadev2sat(fl: float, isadev: float) -> float:
    """Static air temperature (°C) at flight level ``fl`` for an ISA deviation."""
    return isadev + _isa_temp(fl)


def speed_sound(oat: float) -> float:
    """Speed of sound (m/s) in dry air at static temperature ``oat`` (°C)."""
    assert c2kelvin(oat) > 0
    return math.sqrt(GAMMA * R_SPEC * c2kelvin(oat))


def air_density(pressure: float, oat: float) -> float:
    """Dry air density (kg/m³): rho = p / (R_spec * T)."""
    assert pressure > 0 and c2kelvin(oat) > 0
    return pressure / (R_SPEC * c2kelvin(oat))


def dyn_press(ktas: float, press: float, oat: float) -> float:
    """Incompressible dynamic pressure (Pa) at true airspeed ``ktas``."""
    return 0.5 * air_density(press, oat) * kt2mps(ktas) ** 2


def impact_press(mach: float, pressure: float) -> float:
    """Isentropic impact pressure (Pa): qc = P((1 + 0.2 M²)^3.5 - 1)."""
    assert mach >= 0 and pressure > 0
    return pressure * (math.pow(1 + 0.2 * mach**2, 3.5) - 1)


def impact_press2kcas(qc: float) -> float:
    """Calibrated airspeed (kt) producing impact pressure ``qc`` at ISA sea level."""
    assert qc >= 0
    return mps2kt(ISA_SPEED_SOUND * math.sqrt(5 * (math.pow(qc / ISA_SL_PRESS + 1, 2 / 7) - 1)))


def kcas2mach(kcas: float, pressure: float) -> float:
    """Mach number flown at calibrated airspeed ``kcas`` and static pressure ``pressure``.

    The CAS relation is solved for impact pressure
    ``qc = P0((CAS² / (5 a0²) + 1)^3.5 - 1)`` and the impact pressure relation
    for Mach, ``M = sqrt(5((qc / P + 1)^(2/7) - 1))``.
    """
    assert kcas >= 0 and pressure > 0
    qc = ISA_SL_PRESS * (math.pow(kt2mps(kcas) ** 2 / (5 * ISA_SPEED_SOUND**2) + 1, 3.5) - 1)
    return math.sqrt(5 * (math.pow(qc / pressure + 1, 2 / 7) - 1))


def mach2kcas(mach: float, pressure: float) -> float:
    return impact_press2kcas(impact_press(mach, pressure))


def ktas2mach(ktas: float, oat: float) -> float:
    return kt2mps(ktas) / speed_sound(oat)


def mach2ktas(mach: float, oat: float) -> float:
    return mps2kt(mach * speed_sound(oat))


def kcas2ktas(kcas: float, pressure: float, oat: float) -> float:
    """Calibrated to true airspeed (kt) at static pressure (Pa) and temperature (°C)."""
    return mach2ktas(kcas2mach(kcas, pressure), oat)


def ktas2kcas(ktas: float, pressure: float, oat: float) -> float:
    """True to calibrated airspeed (kt). Inverse of kcas2ktas."""
    return mach2kcas(ktas2mach(ktas, oat), pressure)


def mach2keas(mach: float, press: float) -> float:
    """Equivalent airspeed (kt): Ve = a0 * M * sqrt(P / P0)."""
    assert press > 0
    return mps2kt(ISA_SPEED_SOUND * mach * math.sqrt(press / ISA_SL_PRESS))


def keas2mach(keas: float, press: float) -> float:
    assert press > 0
    return kt2mps(keas) / (ISA_SPEED_SOUND * math.sqrt(press / ISA_SL_PRESS))


def sat2tat(sat: float, mach: float) -> float:
    """Total air temperature (°C): TAT = SAT(1 + (gamma - 1) / 2 * M²) in kelvin."""
    return kelvin2c(c2kelvin(sat) * (1 + ((GAMMA - 1) / 2) * mach**2))


def tat2sat(tat: float, mach: float) -> float:
    return kelvin2c(c2kelvin(tat) / (1 + ((GAMMA - 1) / 2) * mach**2))


def adiabatic_heating(press_ratio: float, start_temp: float) -> float:
    """Temperature (°C) of air compressed adiabatically by ``press_ratio``.

    From P1^(1-gamma) T1^gamma = P2^(1-gamma) T2^gamma with P1 normalized to 1.
    """
    assert press_ratio > 0
    return kelvin2c(
        math.pow(math.pow(c2kelvin(start_temp), GAMMA) / math.pow(press_ratio, 1 - GAMMA), 1 / GAMMA)
    )
