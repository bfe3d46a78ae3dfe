"""Aerodynamic and propulsion model.

Lift and drag come from the aircraft's Cl/Cd curves, blended between the
clean and flaps-extended curves by the flap ratio. Engine thrust is linear in
throttle between idle and maximum, scaled for air density, Mach number,
engine count and derate.
"""

import math
from dataclasses import dataclass

from acfperf.core.logging_system import get_logger
from acfperf.performance.aircraft import AircraftPerf, FlightPerf
from acfperf.performance.curves import Curve, clamp, wavg
from acfperf.physics.atmosphere import (
    EARTH_GRAVITY,
    ISA_SL_DENS,
    Environment,
    air_density,
    alt2fl,
    alt2press,
    isadev2sat,
    ktas2mach,
)
from acfperf.physics.units import kt2mps, met2nm, mps2kt

logger = get_logger(__name__)

# AoA assumed when no AoA on the Cl curve produces enough lift (deg)
DEFAULT_AOA = 10.0


@dataclass(frozen=True)
class AoaSolution:
    """Angle of attack required for level flight.

    Attributes:
        aoa: Angle of attack (deg).
        stalled: True when the required lift coefficient is out of reach
            and DEFAULT_AOA stands in for the unreachable solution.
    """

    aoa: float
    stalled: bool = False


def cl_curve_get_aoa(cl: float, curve: Curve, max_aoa: float) -> float:
    """Lowest AoA on ``curve`` producing ``cl``, or NaN if none does.

    Candidates beyond the Cl-max AoA lie on the back side of the lift curve
    and are ignored.
    """
    candidates = [aoa for aoa in curve.inverse(cl) if aoa <= max_aoa]
    if not candidates:
        return math.nan
    return min(candidates)


def solve_aoa(pd: float, mass: float, flap_ratio: float, acft: AircraftPerf) -> AoaSolution:
    """Find the AoA at which lift equals the weight of ``mass``.

    Args:
        pd: Dynamic pressure (Pa).
        mass: Aircraft mass (kg).
        flap_ratio: 0 = flaps up, 1 = flaps fully extended.
        acft: Aircraft performance specification.
    """
    assert pd > 0 and mass > 0
    assert 0.0 <= flap_ratio <= 1.0
    cl = (mass * EARTH_GRAVITY) / (pd * acft.wing_area)

    aoa_clean = cl_curve_get_aoa(cl, acft.cl_curve, acft.cl_max_aoa)
    if flap_ratio == 0:
        aoa_flap = aoa_clean
    else:
        aoa_flap = cl_curve_get_aoa(cl, acft.cl_flap_curve, acft.cl_flap_max_aoa)

    stalled = math.isnan(aoa_clean) or math.isnan(aoa_flap)
    if stalled:
        logger.debug("Cl %.3f out of reach at flap ratio %.2f, using default AoA", cl, flap_ratio)
    if math.isnan(aoa_clean):
        aoa_clean = DEFAULT_AOA
    if math.isnan(aoa_flap):
        aoa_flap = DEFAULT_AOA
    return AoaSolution(wavg(aoa_clean, aoa_flap, flap_ratio), stalled)


def get_aoa(pd: float, mass: float, flap_ratio: float, acft: AircraftPerf) -> float:
    """AoA (deg) for level flight, DEFAULT_AOA when out of reach."""
    return solve_aoa(pd, mass, flap_ratio, acft).aoa


def get_drag(pd: float, aoa: float, flap_ratio: float, acft: AircraftPerf) -> float:
    """Airframe drag (N) at dynamic pressure ``pd`` and angle of attack ``aoa``."""
    cd = wavg(acft.cd_curve(aoa), acft.cd_flap_curve(aoa), flap_ratio)
    return cd * pd * acft.wing_area


def _thrust_factor(flt: FlightPerf, acft: AircraftPerf, alt_ft: float, ktas: float, env: Environment) -> float:
    press = alt2press(alt_ft, env.qnh)
    # temperature stays constant above the tropopause
    oat = isadev2sat(alt2fl(min(alt_ft, env.tp_alt), env.qnh), env.isadev)
    d_ratio = acft.thr_dens_curve(air_density(press, oat) / ISA_SL_DENS)
    m_factor = acft.thr_mach_curve(ktas2mach(ktas, oat))
    return flt.num_eng * d_ratio * m_factor * flt.thr_derate


def eng_get_thrust(
    flt: FlightPerf,
    acft: AircraftPerf,
    throttle: float,
    alt_ft: float,
    ktas: float,
    env: Environment,
) -> float:
    """Total engine thrust (N) at a throttle setting.

    Args:
        flt: Flight configuration (engines running, derate).
        acft: Aircraft performance specification.
        throttle: 0 = idle, 1 = maximum.
        alt_ft: Altitude (ft).
        ktas: True airspeed (kt).
        env: Atmospheric conditions.

    Returns:
        ``wavg(min_thr, max_thr, throttle)`` where both limits are scaled
        by density ratio, Mach, engine count and derate.
    """
    assert 0.0 <= throttle <= 1.0
    assert ktas >= 0
    factor = _thrust_factor(flt, acft, alt_ft, ktas, env)
    return wavg(acft.eng_min_thr * factor, acft.eng_max_thr * factor, throttle)


def thrust_to_throttle(
    flt: FlightPerf,
    acft: AircraftPerf,
    thr: float,
    alt_ft: float,
    ktas: float,
    env: Environment,
) -> float:
    """Throttle setting (clamped to 0..1) producing total thrust ``thr``."""
    factor = _thrust_factor(flt, acft, alt_ft, ktas, env)
    min_thr = acft.eng_min_thr * factor
    max_thr = acft.eng_max_thr * factor
    return clamp((thr - min_thr) / (max_thr - min_thr), 0.0, 1.0)


def acft_get_sfc(acft: AircraftPerf, thr: float, throttle: float, isadev: float) -> float:
    """Fuel flow (kg/s) of the engines delivering total thrust ``thr`` (N)."""
    assert thr >= 0
    return acft.eng_sfc * thr * acft.sfc_thro_curve(throttle) * acft.sfc_isa_curve(isadev)


def perf_TO_spd(flt: FlightPerf, acft: AircraftPerf) -> float:
    """Liftoff true airspeed (kt) at ISA sea level with takeoff flaps.

    The speed at which the wing at Cl-max AoA carries the flight's gross
    weight.
    """
    lift = flt.gross_weight * EARTH_GRAVITY
    cl = wavg(
        acft.cl_curve(acft.cl_max_aoa),
        acft.cl_flap_curve(acft.cl_flap_max_aoa),
        flt.to_flap,
    )
    pd = lift / (cl * acft.wing_area)
    return mps2kt(math.sqrt((2 * pd) / ISA_SL_DENS))


def perf_get_turn_rate(bank_ratio: float, gs_kt: float, acft: AircraftPerf) -> float:
    """Turn rate (deg/s) at a bank ratio and ground speed.

    Up to half bank the half-bank rate is scaled linearly; between half and
    full bank the two curves are blended.

    Raises:
        ValueError: If the aircraft has no half-bank curve, or a bank ratio
            above 0.5 is requested without a full-bank curve.
    """
    assert 0.0 <= bank_ratio <= 1.0
    assert gs_kt >= 0
    if acft.half_bank_curve is None:
        raise ValueError(f"{acft.acft_type}: no half-bank turn rate curve")
    half = acft.half_bank_curve(gs_kt)
    if bank_ratio <= 0.5:
        return half * (bank_ratio / 0.5)
    if acft.full_bank_curve is None:
        raise ValueError(f"{acft.acft_type}: no full-bank turn rate curve")
    return wavg(half, acft.full_bank_curve(gs_kt), (bank_ratio - 0.5) / 0.5)


def turn_radius(gs_kt: float, rate_deg_s: float) -> float:
    """Radius (NM) of a turn flown at ``gs_kt`` and ``rate_deg_s``."""
    assert rate_deg_s > 0
    return met2nm(kt2mps(gs_kt) / math.radians(rate_deg_s))
