"""Aircraft performance model, step kernels and flight phase drivers."""

from acfperf.performance.aircraft import AircraftPerf, FlightPerf, SpeedLimit, new_flight_config
from acfperf.performance.drivers import (
    AccelClimbType,
    ClimbResult,
    DecelResult,
    FlightPoint,
    LegResult,
    accelclb2dist,
    crz2burn,
    decel2dist,
    des2burn,
    dist2accelclb,
)
from acfperf.performance.loader import PerfParseError, load_aircraft_performance, parse_aircraft_performance

__all__ = [
    "AccelClimbType",
    "AircraftPerf",
    "ClimbResult",
    "DecelResult",
    "FlightPerf",
    "FlightPoint",
    "LegResult",
    "PerfParseError",
    "SpeedLimit",
    "accelclb2dist",
    "crz2burn",
    "decel2dist",
    "des2burn",
    "dist2accelclb",
    "load_aircraft_performance",
    "new_flight_config",
    "parse_aircraft_performance",
]
