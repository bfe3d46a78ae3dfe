"""Aircraft performance specification and per-flight configuration.

An AircraftPerf is built once per aircraft type by the loader and never
changes afterwards; it may be shared by any number of flights. A FlightPerf
starts as a copy of the aircraft's reference configuration and is then
adjusted by the planner (fuel, derate, engines running, ...).
"""

import dataclasses
from dataclasses import dataclass, field

from acfperf.performance.curves import Curve
from acfperf.performance.tables import TableSet

MAX_SPD_LIMS = 2


@dataclass(frozen=True)
class SpeedLimit:
    """A CAS limit applying below an altitude.

    Attributes:
        kcas: Speed limit (kt CAS).
        alt_ft: The limit applies while below this altitude (ft).
    """

    kcas: float
    alt_ft: float


@dataclass
class FlightPerf:
    """Flight performance configuration.

    Masses in kg, speeds in kt CAS or Mach, altitudes in ft.

    Attributes:
        zfw: Zero fuel weight.
        fuel: Fuel on board.
        crz_lvl: Cruise altitude.
        clb_ias: Climb CAS.
        clb_ias_init: Initial climb CAS (after liftoff, below acceleration altitude).
        clb_mach: Climb Mach.
        crz_ias: Cruise CAS.
        crz_mach: Cruise Mach.
        des_ias: Descent CAS.
        des_mach: Descent Mach.
        to_flap: Takeoff flap ratio (0 = clean, 1 = fully extended).
        accel_height: Acceleration height above the departure altitude.
        clb_spd_lim: Climb speed limits, at most two.
        des_spd_lim: Descent speed limits, at most two.
        num_eng: Number of engines running.
        thr_derate: Thrust derate factor (1.0 = no derate).
        bank_ratio: Bank used in turns (0.5 = half bank, 1.0 = full bank).
        debug: Log every integration step at DEBUG level.
    """

    zfw: float = 0.0
    fuel: float = 0.0
    crz_lvl: float = 0.0
    clb_ias: float = 0.0
    clb_ias_init: float = 0.0
    clb_mach: float = 0.0
    crz_ias: float = 0.0
    crz_mach: float = 0.0
    des_ias: float = 0.0
    des_mach: float = 0.0
    to_flap: float = 0.0
    accel_height: float = 0.0
    clb_spd_lim: tuple[SpeedLimit, ...] = ()
    des_spd_lim: tuple[SpeedLimit, ...] = ()
    num_eng: int = 0
    thr_derate: float = 1.0
    bank_ratio: float = 0.5
    debug: bool = False

    @property
    def gross_weight(self) -> float:
        return self.zfw + self.fuel


@dataclass(frozen=True)
class AircraftPerf:
    """Immutable aircraft performance specification.

    Attributes:
        acft_type: Aircraft type identifier.
        eng_type: Engine type identifier.
        num_eng: Number of engines installed.
        eng_max_thr: Per-engine maximum thrust at ISA sea level (N).
        eng_min_thr: Per-engine idle thrust at ISA sea level (N).
        eng_sfc: Baseline specific fuel consumption (kg/(N·s)).
        ref: Reference flight configuration.
        wing_area: Wing reference area (m²).
        cl_max_aoa: AoA of maximum lift, flaps up (deg).
        cl_flap_max_aoa: AoA of maximum lift, flaps down (deg).
        thr_dens_curve: Thrust fraction vs air density ratio.
        thr_mach_curve: Thrust fraction vs Mach.
        sfc_thro_curve: SFC multiplier vs throttle (0..1).
        sfc_isa_curve: SFC multiplier vs ISA deviation (°C).
        cl_curve: Lift coefficient vs AoA, flaps up.
        cl_flap_curve: Lift coefficient vs AoA, flaps down.
        cd_curve: Drag coefficient vs AoA, flaps up.
        cd_flap_curve: Drag coefficient vs AoA, flaps down.
        half_bank_curve: Turn rate (deg/s) vs ground speed (kt) at half bank.
        full_bank_curve: Turn rate (deg/s) vs ground speed (kt) at full bank.
        clb_tables: Tabulated climb performance (may be empty).
        crz_tables: Tabulated cruise performance (may be empty).
        des_tables: Tabulated descent performance (may be empty).
        table_ff_corr: Correction factor already applied to tabulated fuel.
    """

    acft_type: str
    eng_type: str
    num_eng: int
    eng_max_thr: float
    eng_min_thr: float
    eng_sfc: float
    ref: FlightPerf
    wing_area: float
    cl_max_aoa: float
    cl_flap_max_aoa: float
    thr_dens_curve: Curve
    thr_mach_curve: Curve
    sfc_thro_curve: Curve
    sfc_isa_curve: Curve
    cl_curve: Curve
    cl_flap_curve: Curve
    cd_curve: Curve
    cd_flap_curve: Curve
    half_bank_curve: Curve | None = None
    full_bank_curve: Curve | None = None
    clb_tables: TableSet = field(default_factory=TableSet)
    crz_tables: TableSet = field(default_factory=TableSet)
    des_tables: TableSet = field(default_factory=TableSet)
    table_ff_corr: float = 1.0

    def __post_init__(self) -> None:
        assert self.num_eng > 0
        assert len(self.ref.clb_spd_lim) <= MAX_SPD_LIMS
        assert len(self.ref.des_spd_lim) <= MAX_SPD_LIMS


def new_flight_config(acft: AircraftPerf) -> FlightPerf:
    """Create a flight configuration from the aircraft's reference values."""
    flt = dataclasses.replace(acft.ref)
    if flt.num_eng == 0:
        flt.num_eng = acft.num_eng
    return flt
