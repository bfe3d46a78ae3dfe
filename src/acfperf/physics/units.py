"""Unit conversions between the aviation units used in data files and SI.

Internal computation is SI; data files and the public driver API speak
feet, knots, nautical miles, pounds and degrees Celsius.
"""

FEET_PER_METER = 3.2808398950131
METERS_PER_FOOT = 0.3048
METERS_PER_NM = 1852.0
KG_PER_LB = 0.45359237
SECS_PER_HR = 3600.0
PA_PER_INHG = 101325.0 / 29.92


def feet2met(ft: float) -> float:
    return ft * METERS_PER_FOOT


def met2feet(m: float) -> float:
    return m * FEET_PER_METER


def nm2met(nm: float) -> float:
    return nm * METERS_PER_NM


def met2nm(m: float) -> float:
    return m / METERS_PER_NM


def kt2mps(kt: float) -> float:
    """Knots to meters per second."""
    return nm2met(kt) / SECS_PER_HR


def mps2kt(mps: float) -> float:
    """Meters per second to knots."""
    return met2nm(mps) * SECS_PER_HR


def fpm2mps(fpm: float) -> float:
    """Feet per minute to meters per second."""
    return feet2met(fpm / 60.0)


def mps2fpm(mps: float) -> float:
    """Meters per second to feet per minute."""
    return met2feet(mps * 60.0)


def lbs2kg(lbs: float) -> float:
    return lbs * KG_PER_LB


def kg2lbs(kg: float) -> float:
    return kg / KG_PER_LB


def lbph2kgps(lbph: float) -> float:
    """Pounds per hour to kilograms per second."""
    return lbs2kg(lbph) / SECS_PER_HR


def c2kelvin(c: float) -> float:
    return c + 273.15


def kelvin2c(k: float) -> float:
    return k - 273.15


def c2fah(c: float) -> float:
    return c * 1.8 + 32.0


def fah2c(f: float) -> float:
    return (f - 32.0) / 1.8


def hpa2pa(hpa: float) -> float:
    return hpa * 100.0


def pa2hpa(pa: float) -> float:
    return pa / 100.0


def inhg2pa(inhg: float) -> float:
    return inhg * PA_PER_INHG


def pa2inhg(pa: float) -> float:
    return pa / PA_PER_INHG
