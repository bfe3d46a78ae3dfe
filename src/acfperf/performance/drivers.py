"""Flight phase drivers.

Each driver runs the step kernels in a fixed-step loop until its target is
reached: an altitude and speed (accelclb2dist, decel2dist), a ground
distance (dist2accelclb, crz2burn, des2burn). Every loop is capped at
MAX_ITER_STEPS; hitting the cap means the problem has no solution with the
given aircraft and conditions.

Typical usage example:
    flt = new_flight_config(acft)
    res = accelclb2dist(
        flt, acft, Environment(),
        FlightPoint(0.0, 170.0), FlightPoint(10000.0, 280.0),
        flap_ratio=0.0, mach_lim=0.78, accel_type=AccelClimbType.ACCEL_TAKEOFF,
    )
    print(f"{res.dist_nm:.1f} NM, {res.burn_kg:.0f} kg")
"""

import math
from dataclasses import dataclass
from enum import Enum

from acfperf.core.logging_system import get_logger
from acfperf.performance.aircraft import AircraftPerf, FlightPerf, SpeedLimit
from acfperf.performance.curves import wavg
from acfperf.performance.integrator import (
    MIN_GS_KT,
    SECS_PER_STEP,
    SECS_PER_STEP_CRZ,
    SECS_PER_STEP_DECEL,
    SECS_PER_STEP_TAKEOFF,
    StepState,
    alt_chg_step,
    clb_table_step,
    crz_step,
    des_burn_step,
    spd_chg_step,
    static_air,
    trace_step,
)
from acfperf.physics.atmosphere import Environment, alt2press, kcas2ktas, mach2kcas
from acfperf.physics.units import feet2met, kt2mps, met2nm, nm2met
from acfperf.physics.vectors import Vector2, along_track, lerp_wind

logger = get_logger(__name__)

MAX_ITER_STEPS = 100000
ALT_THRESH = 1.0  # ft
KCAS_THRESH = 0.1  # kt
DIST_THRESH = 1e-6  # NM
# Below this remaining speed gain the climb tables take over the climb
ACCEL_DONE_THRESH = 5.0  # kt
# ACCEL_TAKEOFF becomes ACCEL_AND_CLB this far above the acceleration altitude
TAKEOFF_PROMOTE_HT = 1000.0  # ft

Wind = Vector2 | float


class AccelClimbType(Enum):
    """How a step's time is shared between accelerating and climbing.

    Attributes:
        ACCEL_THEN_CLB: Accelerate to the target speed first, then climb.
        ACCEL_TAKEOFF: Takeoff profile: accelerate to the initial climb
            speed, climb with takeoff flaps to the acceleration altitude,
            then split accelerate and climb clean.
        ACCEL_AND_CLB: Split each step evenly between accelerating and
            climbing.
    """

    ACCEL_THEN_CLB = "accel_then_clb"
    ACCEL_TAKEOFF = "accel_takeoff"
    ACCEL_AND_CLB = "accel_and_clb"


@dataclass(frozen=True)
class FlightPoint:
    """A point on the vertical profile.

    Attributes:
        alt_ft: Altitude (ft).
        kcas: Calibrated airspeed (kt).
        wind: Along-track wind (kt, tailwind positive) or a wind vector.
    """

    alt_ft: float
    kcas: float
    wind: Wind = 0.0


@dataclass(frozen=True)
class StepSplit:
    """Time budget of one accelerate/climb step.

    Attributes:
        accel_dt: Time available for accelerating (s).
        clb_dt: Time reserved for climbing (s). The climb also gets any
            acceleration time left unused.
        flap_ratio: Flap setting to fly the step with.
        on_ground: The aircraft is still on the runway.
        kcas_cap: Highest CAS to accelerate to during this step (kt).
    """

    accel_dt: float
    clb_dt: float
    flap_ratio: float
    on_ground: bool
    kcas_cap: float


@dataclass(frozen=True)
class ClimbResult:
    """Outcome of an acceleration and climb.

    Attributes:
        dist_nm: Ground distance covered (NM).
        burn_kg: Fuel burned (kg).
        kcas: Final CAS (kt).
        alt_ft: Final altitude (ft).
        time_s: Time elapsed (s).
        converged: False if the step cap was hit before the targets.
    """

    dist_nm: float
    burn_kg: float
    kcas: float
    alt_ft: float
    time_s: float
    converged: bool = True


@dataclass(frozen=True)
class LegResult:
    """Fuel and time over a cruise or descent leg."""

    burn_kg: float
    time_s: float


@dataclass(frozen=True)
class DecelResult:
    """Outcome of a level deceleration.

    Attributes:
        dist_nm: Ground distance covered (NM).
        kcas: Final CAS (kt); above the target if the distance cap hit first.
        burn_kg: Fuel burned (kg).
        time_s: Time elapsed (s).
    """

    dist_nm: float
    kcas: float
    burn_kg: float
    time_s: float


def apply_spd_lims(kcas: float, alt_ft: float, spd_lims: tuple[SpeedLimit, ...]) -> float:
    """Lower ``kcas`` to every speed limit applying below its altitude."""
    for lim in spd_lims:
        if alt_ft < lim.alt_ft and kcas > lim.kcas:
            kcas = lim.kcas
    return kcas


def _kcas_limit(
    kcas: float, alt_ft: float, mach_lim: float, spd_lims: tuple[SpeedLimit, ...], env: Environment
) -> float:
    kcas = apply_spd_lims(kcas, alt_ft, spd_lims)
    if mach_lim > 0:
        kcas = min(kcas, mach2kcas(mach_lim, alt2press(alt_ft, env.qnh)))
    return kcas


def accelclb_split(
    accel_type: AccelClimbType,
    state: StepState,
    kcas_lim: float,
    flap_ratio: float,
    start_alt: float,
    flt: FlightPerf,
    max_dt: float = math.inf,
) -> StepSplit:
    """Decide how the next step is flown.

    Args:
        accel_type: Acceleration strategy in effect.
        state: Current integration state.
        kcas_lim: Target CAS after speed and Mach limits (kt).
        flap_ratio: Flap ratio to use once clean of the takeoff phase.
        start_alt: Altitude the maneuver started at (ft).
        flt: Flight configuration.
        max_dt: Upper bound on the step duration (s).

    Returns:
        The step's time split, flap setting and ground flag.
    """
    if accel_type is AccelClimbType.ACCEL_TAKEOFF:
        accel_alt = start_alt + flt.accel_height
        kcas_init = min(flt.clb_ias_init, kcas_lim) if flt.clb_ias_init > 0 else kcas_lim
        if kcas_init - state.kcas > KCAS_THRESH:
            dt = min(SECS_PER_STEP_TAKEOFF, max_dt)
            return StepSplit(dt, 0.0, flt.to_flap, state.alt_ft == start_alt, kcas_init)
        if state.alt_ft < accel_alt:
            dt = min(SECS_PER_STEP, max_dt)
            return StepSplit(0.0, dt, flt.to_flap, False, kcas_init)
        dt = min(SECS_PER_STEP, max_dt)
        return StepSplit(dt / 2, dt / 2, flap_ratio, False, kcas_lim)

    dt = min(SECS_PER_STEP, max_dt)
    if accel_type is AccelClimbType.ACCEL_THEN_CLB:
        return StepSplit(dt, 0.0, flap_ratio, False, kcas_lim)
    return StepSplit(dt / 2, dt / 2, flap_ratio, False, kcas_lim)


def _accelclb_step(
    accel_type: AccelClimbType,
    split: StepSplit,
    state: StepState,
    alt_tgt: float,
    kcas_tgt: float,
    wind_kt: float,
    mass: float,
    flt: FlightPerf,
    acft: AircraftPerf,
    env: Environment,
) -> float:
    accel_t = 0.0
    if split.accel_dt > 0:
        accel_t = spd_chg_step(
            True, state, split.kcas_cap, wind_kt, mass, split.flap_ratio, split.on_ground,
            flt, acft, env, split.accel_dt,
        )

    clb_dt = split.clb_dt + (split.accel_dt - accel_t)
    clb_t = 0.0
    if clb_dt > 0 and alt_tgt - state.alt_ft > ALT_THRESH and not split.on_ground:
        use_table = len(acft.clb_tables) > 0 and (
            accel_type is AccelClimbType.ACCEL_AND_CLB or kcas_tgt - state.kcas < ACCEL_DONE_THRESH
        )
        t = None
        if use_table:
            t = clb_table_step(state, alt_tgt, wind_kt, mass, acft, env, clb_dt)
        if t is None:
            t = alt_chg_step(True, state, alt_tgt, wind_kt, mass, split.flap_ratio, flt, acft, env, clb_dt)
        clb_t = t
    return accel_t + clb_t


def accelclb2dist(
    flt: FlightPerf,
    acft: AircraftPerf,
    env: Environment,
    start: FlightPoint,
    end: FlightPoint,
    flap_ratio: float,
    mach_lim: float,
    accel_type: AccelClimbType,
    heading: float = 0.0,
) -> ClimbResult:
    """Distance and fuel needed to accelerate and climb between two points.

    Engines run at maximum thrust (subject to derate). The wind is
    interpolated between the start and end winds by altitude progress.

    Args:
        flt: Flight configuration; the fuel on board is ``flt.fuel``.
        acft: Aircraft performance specification.
        env: Atmospheric conditions.
        start: Starting altitude, CAS and wind.
        end: Target altitude, CAS and wind.
        flap_ratio: Flap ratio (0..1) outside the takeoff phase.
        mach_lim: Limiting Mach number, 0 for none.
        accel_type: Acceleration strategy.
        heading: True track (deg), used to project wind vectors.

    Returns:
        The final state. ``converged`` is False if the step cap was hit;
        the result then holds the progress made so far.
    """
    assert start.alt_ft <= end.alt_ft
    assert flt.fuel >= 0 and flt.num_eng <= acft.num_eng

    state = StepState(start.alt_ft, start.kcas)
    kcas_tgt = end.kcas
    alt_span = end.alt_ft - start.alt_ft

    for _ in range(MAX_ITER_STEPS):
        kcas_lim = _kcas_limit(kcas_tgt, state.alt_ft, mach_lim, flt.clb_spd_lim, env)
        if end.alt_ft - state.alt_ft < ALT_THRESH and kcas_lim < kcas_tgt:
            kcas_tgt = kcas_lim
        if end.alt_ft - state.alt_ft <= ALT_THRESH and kcas_tgt - state.kcas <= KCAS_THRESH:
            return ClimbResult(state.dist_nm, state.burn_kg, state.kcas, state.alt_ft, state.time_s)

        if (
            accel_type is AccelClimbType.ACCEL_TAKEOFF
            and state.alt_ft > start.alt_ft + flt.accel_height + TAKEOFF_PROMOTE_HT
        ):
            accel_type = AccelClimbType.ACCEL_AND_CLB

        alt_fract = (state.alt_ft - start.alt_ft) / alt_span if alt_span > 0 else 1.0
        wind_kt = along_track(lerp_wind(start.wind, end.wind, alt_fract), heading)
        mass = flt.zfw + flt.fuel - state.burn_kg

        split = accelclb_split(accel_type, state, kcas_lim, flap_ratio, start.alt_ft, flt)
        old_alt, old_kcas = state.alt_ft, state.kcas
        dt = _accelclb_step(accel_type, split, state, end.alt_ft, kcas_tgt, wind_kt, mass, flt, acft, env)
        if flt.debug:
            trace_step("accelclb", state, old_alt, old_kcas, dt)

    logger.warning(
        "accelclb2dist: no convergence after %d steps (alt %.0f ft, %.1f kt)",
        MAX_ITER_STEPS,
        state.alt_ft,
        state.kcas,
    )
    return ClimbResult(state.dist_nm, state.burn_kg, state.kcas, state.alt_ft, state.time_s, converged=False)


def dist2accelclb(
    flt: FlightPerf,
    acft: AircraftPerf,
    env: Environment,
    start: FlightPoint,
    alt_tgt: float,
    kcas_tgt: float,
    dist_tgt_nm: float,
    flap_ratio: float,
    mach_lim: float,
    accel_type: AccelClimbType,
    heading: float = 0.0,
) -> ClimbResult | None:
    """State reached after accelerating and climbing over a ground distance.

    The maneuver stops when either the distance is covered or both the
    altitude and speed targets are reached. The last step is shortened to
    land on the target distance.

    Returns:
        The state reached, or None if the step cap was hit.
    """
    assert start.alt_ft <= alt_tgt and start.kcas <= kcas_tgt
    assert dist_tgt_nm >= 0 and flt.fuel >= 0

    state = StepState(start.alt_ft, start.kcas)
    wind_kt = along_track(start.wind, heading)

    for _ in range(MAX_ITER_STEPS):
        kcas_lim = _kcas_limit(kcas_tgt, state.alt_ft, mach_lim, flt.clb_spd_lim, env)
        if alt_tgt - state.alt_ft < ALT_THRESH and kcas_lim < kcas_tgt:
            kcas_tgt = kcas_lim
        done = alt_tgt - state.alt_ft <= ALT_THRESH and kcas_tgt - state.kcas <= KCAS_THRESH
        if done or dist_tgt_nm - state.dist_nm <= DIST_THRESH:
            return ClimbResult(state.dist_nm, state.burn_kg, state.kcas, state.alt_ft, state.time_s)

        if (
            accel_type is AccelClimbType.ACCEL_TAKEOFF
            and state.alt_ft > start.alt_ft + flt.accel_height + TAKEOFF_PROMOTE_HT
        ):
            accel_type = AccelClimbType.ACCEL_AND_CLB

        press, oat = static_air(state.alt_ft, env)
        gs = kt2mps(max(kcas2ktas(state.kcas, press, oat) + wind_kt, MIN_GS_KT))
        t_rmng = nm2met(dist_tgt_nm - state.dist_nm) / gs
        mass = flt.zfw + flt.fuel - state.burn_kg

        split = accelclb_split(accel_type, state, kcas_lim, flap_ratio, start.alt_ft, flt, t_rmng)
        old_alt, old_kcas = state.alt_ft, state.kcas
        dt = _accelclb_step(accel_type, split, state, alt_tgt, kcas_tgt, wind_kt, mass, flt, acft, env)
        if flt.debug:
            trace_step("dist2accelclb", state, old_alt, old_kcas, dt)

    logger.warning("dist2accelclb: no convergence after %d steps", MAX_ITER_STEPS)
    return None


def crz2burn(
    env: Environment,
    alt_ft: float,
    spd: float,
    is_mach: bool,
    heading: float,
    wind1: Wind,
    wind2: Wind,
    fuel_kg: float,
    dist_nm: float,
    acft: AircraftPerf,
    flt: FlightPerf,
) -> LegResult | None:
    """Fuel and time to fly a level cruise leg.

    The wind varies linearly from ``wind1`` at the start of the leg to
    ``wind2`` at its end. When ``is_mach`` the Mach number is held and TAS
    follows the local temperature; otherwise the CAS is held.

    Args:
        env: Atmospheric conditions.
        alt_ft: Cruise altitude (ft).
        spd: Cruise CAS (kt) or Mach number.
        is_mach: Whether ``spd`` is a Mach number.
        heading: True track (deg).
        wind1: Wind at the start of the leg.
        wind2: Wind at the end of the leg.
        fuel_kg: Fuel on board at the start of the leg (kg).
        dist_nm: Leg length (NM).
        acft: Aircraft performance specification.
        flt: Flight configuration.

    Returns:
        Fuel and time over the leg, or None if the step cap was hit.
    """
    assert fuel_kg >= 0 and dist_nm >= 0 and spd > 0
    state = StepState(alt_ft, 0.0 if is_mach else spd)

    for _ in range(MAX_ITER_STEPS):
        if dist_nm - state.dist_nm <= DIST_THRESH:
            return LegResult(state.burn_kg, state.time_s)
        fract = state.dist_nm / dist_nm
        wind_kt = along_track(lerp_wind(wind1, wind2, fract), heading)
        mass = flt.zfw + fuel_kg - state.burn_kg

        old_dist = state.dist_nm
        dt = crz_step(
            state, spd, is_mach, wind_kt, mass, flt, acft, env, SECS_PER_STEP_CRZ, dist_nm - state.dist_nm
        )
        if flt.debug:
            logger.debug("crz s:%7.2f +s:%5.2f burn:%7.1f t:%6.0f", state.dist_nm, state.dist_nm - old_dist,
                         state.burn_kg, state.time_s)
        if dt <= 0:
            break

    logger.warning("crz2burn: no convergence over %.1f NM at %.0f ft", dist_nm, alt_ft)
    return None


def des2burn(
    flt: FlightPerf,
    acft: AircraftPerf,
    env: Environment,
    fuel_kg: float,
    heading: float,
    dist_nm: float,
    mach_lim: float,
    start: FlightPoint,
    end: FlightPoint,
) -> LegResult | None:
    """Fuel and time to fly a descent leg.

    Altitude, CAS and wind are interpolated linearly between the leg
    endpoints by distance flown. The vertical speed needed to lose the
    leg's altitude at the current ground speed selects how close to idle
    the engines run. Descent speed limits and ``mach_lim`` cap the CAS.

    Returns:
        Fuel and time over the leg, or None if the step cap was hit.
    """
    assert start.alt_ft >= end.alt_ft
    assert fuel_kg >= 0 and dist_nm >= 0

    state = StepState(start.alt_ft, start.kcas)
    alt_loss_m = feet2met(start.alt_ft - end.alt_ft)

    for _ in range(MAX_ITER_STEPS):
        rmng_nm = dist_nm - state.dist_nm
        if rmng_nm <= DIST_THRESH:
            return LegResult(state.burn_kg, state.time_s)

        fract = state.dist_nm / dist_nm
        state.alt_ft = wavg(start.alt_ft, end.alt_ft, fract)
        kcas = wavg(start.kcas, end.kcas, fract)
        state.kcas = _kcas_limit(kcas, state.alt_ft, mach_lim, flt.des_spd_lim, env)

        wind_kt = along_track(lerp_wind(start.wind, end.wind, fract), heading)
        press, oat = static_air(state.alt_ft, env)
        gs = kt2mps(max(kcas2ktas(state.kcas, press, oat) + wind_kt, MIN_GS_KT))
        state.vs_mps = -alt_loss_m / (nm2met(dist_nm) / gs)

        t = min(SECS_PER_STEP, nm2met(rmng_nm) / gs)
        mass = flt.zfw + fuel_kg - state.burn_kg
        state.burn_kg += des_burn_step(state, mass, flt, acft, env, t)
        state.dist_nm += met2nm(gs * t)
        state.time_s += t
        if flt.debug:
            logger.debug("des H:%6.0f V:%5.1f vs:%6.2f s:%7.2f burn:%7.1f", state.alt_ft, state.kcas,
                         state.vs_mps, state.dist_nm, state.burn_kg)

    logger.warning("des2burn: no convergence over %.1f NM", dist_nm)
    return None


def decel2dist(
    flt: FlightPerf,
    acft: AircraftPerf,
    env: Environment,
    fuel_kg: float,
    alt_ft: float,
    kcas1: float,
    kcas2: float,
    dist_cap_nm: float,
    flap_ratio: float = 0.0,
    wind: Wind = 0.0,
    heading: float = 0.0,
) -> DecelResult:
    """Distance needed to slow down in level flight at idle thrust.

    Args:
        flt: Flight configuration.
        acft: Aircraft performance specification.
        env: Atmospheric conditions.
        fuel_kg: Fuel on board (kg).
        alt_ft: Altitude (ft).
        kcas1: Starting CAS (kt).
        kcas2: Target CAS (kt), not above ``kcas1``.
        dist_cap_nm: Stop once this distance is covered (NM).
        flap_ratio: Flap setting during the deceleration.
        wind: Along-track wind or wind vector.
        heading: True track (deg).

    Returns:
        Distance, final speed, fuel and time. If the distance cap is hit
        first, the final speed is above ``kcas2``.
    """
    assert kcas2 <= kcas1 and fuel_kg >= 0 and dist_cap_nm > 0

    state = StepState(alt_ft, kcas1)
    wind_kt = along_track(wind, heading)

    for _ in range(MAX_ITER_STEPS):
        if state.kcas - kcas2 <= KCAS_THRESH or state.dist_nm >= dist_cap_nm:
            return DecelResult(state.dist_nm, state.kcas, state.burn_kg, state.time_s)
        mass = flt.zfw + fuel_kg - state.burn_kg
        old_kcas = state.kcas
        dt = spd_chg_step(
            False, state, kcas2, wind_kt, mass, flap_ratio, False, flt, acft, env, SECS_PER_STEP_DECEL
        )
        if flt.debug:
            trace_step("decel", state, alt_ft, old_kcas, dt)

    logger.warning("decel2dist: no convergence after %d steps (%.1f kt)", MAX_ITER_STEPS, state.kcas)
    return DecelResult(state.dist_nm, state.kcas, state.burn_kg, state.time_s)
