"""Explicit Euler step kernels.

Each kernel advances a StepState in place over at most ``dt`` seconds and
returns the time it actually consumed. A kernel consumes less than ``dt``
when its target (speed, altitude or remaining distance) is reached within
the step.

Energy bookkeeping uses the total mechanical energy ``E = m g h + m v² / 2``
with ``h`` in metres above sea level and ``v`` the true airspeed in m/s.
"""

import math
from dataclasses import dataclass

from acfperf.core.logging_system import get_logger
from acfperf.performance.aero import (
    acft_get_sfc,
    eng_get_thrust,
    get_aoa,
    get_drag,
    thrust_to_throttle,
)
from acfperf.performance.aircraft import AircraftPerf, FlightPerf
from acfperf.performance.curves import clamp, wavg
from acfperf.performance.tables import CellField, TableSet
from acfperf.physics.atmosphere import (
    EARTH_GRAVITY,
    Environment,
    alt2fl,
    alt2press,
    dyn_press,
    isadev2sat,
    kcas2ktas,
    ktas2kcas,
    ktas2mach,
    mach2ktas,
)
from acfperf.physics.units import feet2met, kt2mps, met2feet, met2nm, mps2fpm, mps2kt, nm2met

logger = get_logger(__name__)

# Step sizes (s)
SECS_PER_STEP_TAKEOFF = 1.0
SECS_PER_STEP_DECEL = 1.0
SECS_PER_STEP = 5.0
SECS_PER_STEP_CRZ = 10.0

# Vertical acceleration limit (m/s²)
MAX_VS_ACCEL = 2.5
# Ground speed floor for cruise and descent progress (kt)
MIN_GS_KT = 60.0


@dataclass
class StepState:
    """Integration state shared by the kernels of one driver call.

    Attributes:
        alt_ft: Altitude (ft).
        kcas: Calibrated airspeed (kt).
        vs_mps: Vertical speed of the last step (m/s).
        dist_nm: Ground distance covered (NM).
        burn_kg: Fuel burned (kg).
        time_s: Time elapsed (s).
    """

    alt_ft: float
    kcas: float
    vs_mps: float = 0.0
    dist_nm: float = 0.0
    burn_kg: float = 0.0
    time_s: float = 0.0


def total_energy(mass: float, alt_m: float, tas: float) -> float:
    """Kinetic plus potential energy (J)."""
    return mass * EARTH_GRAVITY * alt_m + 0.5 * mass * tas**2


def energy_to_alt(energy: float, mass: float, tas: float) -> float:
    """Altitude (m) at which ``mass`` flying at ``tas`` has total energy ``energy``."""
    return (energy - 0.5 * mass * tas**2) / (mass * EARTH_GRAVITY)


def static_air(alt_ft: float, env: Environment) -> tuple[float, float]:
    """Static pressure (Pa) and temperature (°C) at ``alt_ft``."""
    press = alt2press(alt_ft, env.qnh)
    oat = isadev2sat(alt2fl(alt_ft, env.qnh), env.isadev)
    return press, oat


def tables_lookup(
    tset: TableSet,
    prefer_mach: bool,
    env: Environment,
    mass: float,
    alt_ft: float,
    kcas: float,
    field: CellField,
) -> float:
    """Look up a table field at a flight state.

    The speed axis given by ``prefer_mach`` is used when the set has tables
    on it, otherwise the other axis. Tables are indexed on pressure
    altitude.

    Returns:
        The interpolated value, or NaN for an empty set.
    """
    if len(tset) == 0:
        return math.nan
    is_mach = prefer_mach if tset.has_axis(prefer_mach) else not prefer_mach
    press, oat = static_air(alt_ft, env)
    ktas = kcas2ktas(kcas, press, oat)
    spd = ktas2mach(ktas, oat) if is_mach else kt2mps(kcas)
    alt_m = feet2met(alt2fl(alt_ft, env.qnh) * 100)
    return tset.lookup(env.isadev, mass, spd, is_mach, alt_m, field)


def spd_chg_step(
    accel: bool,
    state: StepState,
    kcas_targ: float,
    wind_kt: float,
    mass: float,
    flap_ratio: float,
    on_ground: bool,
    flt: FlightPerf,
    acft: AircraftPerf,
    env: Environment,
    dt: float,
) -> float:
    """Level acceleration (throttle 1) or deceleration (throttle 0) step.

    When accelerating and the target is already at or below the current
    speed, the speed snaps to the target and no time is consumed.

    Args:
        accel: Accelerate at maximum thrust, or decelerate at idle.
        state: Integration state, updated in place.
        kcas_targ: Target CAS (kt).
        wind_kt: Along-track wind (kt, tailwind positive).
        mass: Aircraft mass (kg).
        flap_ratio: Flap setting, 0..1.
        on_ground: No lift is required (AoA 0).
        flt: Flight configuration.
        acft: Aircraft performance specification.
        env: Atmospheric conditions.
        dt: Time available (s).

    Returns:
        Time consumed (s).
    """
    assert mass > 0 and dt >= 0
    press, oat = static_air(state.alt_ft, env)
    ktas_now = kcas2ktas(state.kcas, press, oat)
    tas_now = kt2mps(ktas_now)
    tas_targ = kt2mps(kcas2ktas(kcas_targ, press, oat))
    pd = dyn_press(ktas_now, press, oat)

    aoa = 0.0 if on_ground else get_aoa(pd, mass, flap_ratio, acft)
    drag = get_drag(pd, aoa, flap_ratio, acft)
    throttle = 1.0 if accel else 0.0
    thr = eng_get_thrust(flt, acft, throttle, state.alt_ft, ktas_now, env)

    # the drivers handle thrust-deficient cases; never reverse the trend here
    if accel:
        delta_v = max((thr - drag) / mass, 0.0)
    else:
        delta_v = min((thr - drag) / mass, 0.0)

    if accel and tas_targ <= tas_now:
        state.kcas = kcas_targ
        return 0.0

    alt_m = feet2met(state.alt_ft)
    t = dt
    tas_lim = tas_now + delta_v * t
    e_lim = total_energy(mass, alt_m, tas_lim)
    e_targ = total_energy(mass, alt_m, tas_targ)

    if (accel and e_targ > e_lim) or (not accel and e_targ < e_lim):
        state.kcas = ktas2kcas(mps2kt(max(tas_lim, 0.0)), press, oat)
    else:
        t = max((tas_targ - tas_now) / delta_v, 0.0) if delta_v != 0 else 0.0
        t = min(t, dt)
        state.kcas = kcas_targ

    dist_m = tas_now * t + 0.5 * delta_v * t**2 + kt2mps(wind_kt) * t
    state.dist_nm += met2nm(max(dist_m, 0.0))
    state.burn_kg += acft_get_sfc(acft, thr, throttle, env.isadev) * t
    state.time_s += t
    return t


def alt_chg_step(
    clb: bool,
    state: StepState,
    alt_targ: float,
    wind_kt: float,
    mass: float,
    flap_ratio: float,
    flt: FlightPerf,
    acft: AircraftPerf,
    env: Environment,
    dt: float,
) -> float:
    """Climb (throttle 1) or descent (throttle 0) step at constant TAS.

    The excess (or deficit) of thrust over drag is converted to altitude.
    The vertical speed may change by at most MAX_VS_ACCEL per second from
    the previous step's value; the CAS is recomputed at the new altitude.

    Returns:
        Time consumed (s).
    """
    assert mass > 0 and dt >= 0
    alt = state.alt_ft
    press, oat = static_air(alt, env)
    ktas = kcas2ktas(state.kcas, press, oat)
    tas = kt2mps(ktas)
    pd = dyn_press(ktas, press, oat)
    aoa = get_aoa(pd, mass, flap_ratio, acft)
    drag = get_drag(pd, aoa, flap_ratio, acft)
    throttle = 1.0 if clb else 0.0
    thr_eng = eng_get_thrust(flt, acft, throttle, alt, ktas, env)
    thr = max(thr_eng, drag) if clb else min(thr_eng, drag)

    alt_m = feet2met(alt)
    targ_m = feet2met(alt_targ)
    e_now = total_energy(mass, alt_m, tas)
    e_lim = e_now + (thr - drag) * tas * dt
    vs = (energy_to_alt(e_lim, mass, tas) - alt_m) / dt if dt > 0 else 0.0

    # vertical acceleration limit, then no sinking in a climb or climbing in a descent
    vs = clamp(vs, state.vs_mps - MAX_VS_ACCEL * dt, state.vs_mps + MAX_VS_ACCEL * dt)
    vs = max(vs, 0.0) if clb else min(vs, 0.0)

    t = dt
    new_alt_m = alt_m + vs * t
    reached = new_alt_m >= targ_m if clb else new_alt_m <= targ_m
    if vs != 0 and reached:
        t = clamp((targ_m - alt_m) / vs, 0.0, dt)
        new_alt_m = targ_m
        state.alt_ft = alt_targ
    else:
        state.alt_ft = met2feet(new_alt_m)

    press2, oat2 = static_air(state.alt_ft, env)
    state.kcas = ktas2kcas(ktas, press2, oat2)
    state.vs_mps = vs

    climb_m = new_alt_m - alt_m
    horiz_m = math.sqrt(max((tas * t) ** 2 - climb_m**2, 0.0)) + kt2mps(wind_kt) * t
    state.dist_nm += met2nm(max(horiz_m, 0.0))
    state.burn_kg += acft_get_sfc(acft, thr_eng, throttle, env.isadev) * t
    state.time_s += t
    return t


def crz_step(
    state: StepState,
    spd: float,
    is_mach: bool,
    wind_kt: float,
    mass: float,
    flt: FlightPerf,
    acft: AircraftPerf,
    env: Environment,
    dt: float,
    dist_rmng_nm: float = math.inf,
) -> float:
    """Level, unaccelerated cruise step at a held CAS or Mach.

    Fuel flow comes from the cruise tables when the aircraft has any,
    otherwise thrust is set equal to drag and converted through the SFC
    model. The ground speed never drops below MIN_GS_KT.

    Returns:
        Time consumed (s); less than ``dt`` on the step that covers the
        remaining distance.
    """
    assert mass > 0 and dt >= 0
    press, oat = static_air(state.alt_ft, env)
    if is_mach:
        ktas = mach2ktas(spd, oat)
        state.kcas = ktas2kcas(ktas, press, oat)
    else:
        ktas = kcas2ktas(spd, press, oat)
        state.kcas = spd

    if len(acft.crz_tables) > 0:
        ff = tables_lookup(acft.crz_tables, is_mach, env, mass, state.alt_ft, state.kcas, CellField.FF)
    else:
        ff = level_flight_ff(state.alt_ft, ktas, mass, flt, acft, env)

    gs = kt2mps(max(ktas + wind_kt, MIN_GS_KT))
    t = min(dt, nm2met(dist_rmng_nm) / gs)

    state.vs_mps = 0.0
    state.dist_nm += met2nm(gs * t)
    state.burn_kg += ff * t
    state.time_s += t
    return t


def level_flight_ff(
    alt_ft: float, ktas: float, mass: float, flt: FlightPerf, acft: AircraftPerf, env: Environment
) -> float:
    """Fuel flow (kg/s) holding level flight with thrust equal to drag."""
    press, oat = static_air(alt_ft, env)
    pd = dyn_press(ktas, press, oat)
    drag = get_drag(pd, get_aoa(pd, mass, 0.0, acft), 0.0, acft)
    throttle = thrust_to_throttle(flt, acft, drag, alt_ft, ktas, env)
    return acft_get_sfc(acft, drag, throttle, env.isadev)


def des_burn_step(
    state: StepState,
    mass: float,
    flt: FlightPerf,
    acft: AircraftPerf,
    env: Environment,
    dt: float,
) -> float:
    """Fuel burned (kg) over ``dt`` descending at ``state.vs_mps``.

    With descent tables, the cruise and descent fuel flows are blended by
    how much of the tabulated descent rate is actually flown: a shallower
    descent burns closer to cruise, a steeper one closer to idle. Without
    tables the thrust balancing drag and the descent's power gain is used,
    clamped between idle and maximum.
    """
    assert mass > 0 and dt >= 0
    press, oat = static_air(state.alt_ft, env)
    ktas = kcas2ktas(state.kcas, press, oat)

    if len(acft.des_tables) > 0:
        ff_des = tables_lookup(acft.des_tables, False, env, mass, state.alt_ft, state.kcas, CellField.FF)
        vs_des = tables_lookup(acft.des_tables, False, env, mass, state.alt_ft, state.kcas, CellField.VS)
        if len(acft.crz_tables) > 0:
            ff_crz = tables_lookup(acft.crz_tables, False, env, mass, state.alt_ft, state.kcas, CellField.FF)
        else:
            ff_crz = level_flight_ff(state.alt_ft, ktas, mass, flt, acft, env)
        ratio = clamp(abs(state.vs_mps) / abs(vs_des), 0.0, 1.0) if vs_des != 0 else 0.0
        return wavg(ff_crz, ff_des, ratio) * dt

    tas = kt2mps(ktas)
    pd = dyn_press(ktas, press, oat)
    drag = get_drag(pd, get_aoa(pd, mass, 0.0, acft), 0.0, acft)
    thr_req = drag + mass * EARTH_GRAVITY * state.vs_mps / tas
    thr_min = eng_get_thrust(flt, acft, 0.0, state.alt_ft, ktas, env)
    thr_max = eng_get_thrust(flt, acft, 1.0, state.alt_ft, ktas, env)
    thr = clamp(thr_req, thr_min, thr_max)
    throttle = thrust_to_throttle(flt, acft, thr, state.alt_ft, ktas, env)
    return acft_get_sfc(acft, thr, throttle, env.isadev) * dt


def clb_table_step(
    state: StepState,
    alt_targ: float,
    wind_kt: float,
    mass: float,
    acft: AircraftPerf,
    env: Environment,
    dt: float,
) -> float | None:
    """Climb step using the tabulated climb rate and fuel flow, CAS held.

    Returns:
        Time consumed (s), or None when the tables give no positive climb
        rate at this state and the analytic model has to be used instead.
    """
    assert mass > 0 and dt >= 0
    ff = tables_lookup(acft.clb_tables, False, env, mass, state.alt_ft, state.kcas, CellField.FF)
    vs = tables_lookup(acft.clb_tables, False, env, mass, state.alt_ft, state.kcas, CellField.VS)
    if math.isnan(vs) or math.isnan(ff) or vs <= 0:
        return None

    press, oat = static_air(state.alt_ft, env)
    tas = kt2mps(kcas2ktas(state.kcas, press, oat))
    alt_m = feet2met(state.alt_ft)
    targ_m = feet2met(alt_targ)

    t = dt
    if alt_m + vs * t >= targ_m:
        t = clamp((targ_m - alt_m) / vs, 0.0, dt)
        state.alt_ft = alt_targ
    else:
        state.alt_ft = met2feet(alt_m + vs * t)

    state.vs_mps = vs
    state.dist_nm += met2nm(max(tas + kt2mps(wind_kt), 0.0) * t)
    state.burn_kg += max(ff, 0.0) * t
    state.time_s += t
    return t


def trace_step(phase: str, state: StepState, old_alt: float, old_kcas: float, dt: float) -> None:
    """Log one driver step at DEBUG level."""
    if dt <= 0:
        return
    logger.debug(
        "%s V:%5.1f +V:%5.2f H:%6.0f fpm:%5.0f s:%6.2f burn:%7.1f",
        phase,
        state.kcas,
        (state.kcas - old_kcas) / dt,
        state.alt_ft,
        mps2fpm(feet2met(state.alt_ft - old_alt) / dt),
        state.dist_nm,
        state.burn_kg,
    )
