"""acfperf - aircraft performance prediction from the command line.

Loads a ``.perf`` aircraft file and runs one flight phase driver with the
aircraft's reference flight configuration, optionally adjusted by a YAML
scenario file and command line options.

Typical usage:
    acfperf tests/data/twinjet.perf info
    acfperf tests/data/twinjet.perf climb --to-alt 10000 --to-kcas 280
    acfperf --isadev 10 tests/data/twinjet.perf cruise --alt 35000 --mach 0.78 --dist 200
    acfperf --config scenario.yaml tests/data/twinjet.perf descent --dist 100
"""

import argparse
import sys

from acfperf.core.config import ConfigError, ScenarioConfig
from acfperf.core.logging_system import LoggingError, get_logger, initialize_logging
from acfperf.performance.aero import perf_TO_spd
from acfperf.performance.aircraft import AircraftPerf, FlightPerf, new_flight_config
from acfperf.performance.drivers import (
    AccelClimbType,
    FlightPoint,
    accelclb2dist,
    crz2burn,
    decel2dist,
    des2burn,
)
from acfperf.performance.loader import PerfParseError, load_aircraft_performance
from acfperf.physics.atmosphere import Environment
from acfperf.physics.units import pa2hpa

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_SOLUTION = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description="acfperf - Aircraft performance prediction")

    parser.add_argument("perf_file", help="Aircraft performance file (.perf)")
    parser.add_argument("--config", help="Scenario YAML file (environment and flight settings)")
    parser.add_argument("--log-config", help="Logging configuration YAML file")
    parser.add_argument("--isadev", type=float, help="ISA temperature deviation (deg C)")
    parser.add_argument("--qnh", type=float, help="Altimeter setting (hPa)")
    parser.add_argument("--debug", action="store_true", help="Log every integration step")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("info", help="Show the aircraft and its reference configuration")

    clb = sub.add_parser("climb", help="Distance and fuel to accelerate and climb")
    clb.add_argument("--from-alt", type=float, default=0.0, help="Start altitude (ft)")
    clb.add_argument("--from-kcas", type=float, help="Start CAS (kt), default liftoff speed")
    clb.add_argument("--to-alt", type=float, help="Target altitude (ft), default cruise level")
    clb.add_argument("--to-kcas", type=float, help="Target CAS (kt), default climb speed")
    clb.add_argument("--flap", type=float, default=0.0, help="Flap ratio after takeoff (0..1)")
    clb.add_argument("--mach-lim", type=float, help="Limiting Mach, default climb Mach")
    clb.add_argument(
        "--type",
        choices=[t.value for t in AccelClimbType],
        default=AccelClimbType.ACCEL_TAKEOFF.value,
        help="Acceleration strategy",
    )
    clb.add_argument("--wind", type=float, default=0.0, help="Along-track wind (kt, tailwind positive)")

    crz = sub.add_parser("cruise", help="Fuel and time over a cruise leg")
    crz.add_argument("--alt", type=float, help="Cruise altitude (ft), default cruise level")
    spd = crz.add_mutually_exclusive_group()
    spd.add_argument("--mach", type=float, help="Cruise Mach, default cruise Mach")
    spd.add_argument("--kcas", type=float, help="Cruise CAS (kt)")
    crz.add_argument("--dist", type=float, required=True, help="Leg length (NM)")
    crz.add_argument("--wind", type=float, default=0.0, help="Along-track wind (kt, tailwind positive)")

    des = sub.add_parser("descent", help="Fuel and time over a descent leg")
    des.add_argument("--from-alt", type=float, help="Start altitude (ft), default cruise level")
    des.add_argument("--to-alt", type=float, default=0.0, help="End altitude (ft)")
    des.add_argument("--from-kcas", type=float, help="Start CAS (kt), default descent speed")
    des.add_argument("--to-kcas", type=float, help="End CAS (kt), default descent speed")
    des.add_argument("--mach-lim", type=float, help="Limiting Mach, default descent Mach")
    des.add_argument("--dist", type=float, required=True, help="Leg length (NM)")
    des.add_argument("--wind", type=float, default=0.0, help="Along-track wind (kt, tailwind positive)")

    dec = sub.add_parser("decel", help="Distance to slow down in level flight")
    dec.add_argument("--alt", type=float, default=10000.0, help="Altitude (ft)")
    dec.add_argument("--from-kcas", type=float, required=True, help="Start CAS (kt)")
    dec.add_argument("--to-kcas", type=float, required=True, help="Target CAS (kt)")
    dec.add_argument("--dist-cap", type=float, default=50.0, help="Give up after this distance (NM)")
    dec.add_argument("--flap", type=float, default=0.0, help="Flap ratio (0..1)")
    dec.add_argument("--wind", type=float, default=0.0, help="Along-track wind (kt, tailwind positive)")

    return parser.parse_args(argv)


def run_info(acft: AircraftPerf, flt: FlightPerf, env: Environment) -> int:
    ref = acft.ref
    print(f"Aircraft:     {acft.acft_type} ({acft.num_eng} x {acft.eng_type})")
    print(f"Max thrust:   {acft.eng_max_thr / 1000:.1f} kN per engine")
    print(f"Wing area:    {acft.wing_area:.1f} m2")
    print(f"ZFW / fuel:   {flt.zfw:.0f} kg / {flt.fuel:.0f} kg")
    print(f"Cruise level: FL{ref.crz_lvl / 100:03.0f}")
    print(f"Climb:        {ref.clb_ias:.0f} kt / M{ref.clb_mach:.2f}")
    print(f"Cruise:       {ref.crz_ias:.0f} kt / M{ref.crz_mach:.2f}")
    print(f"Descent:      {ref.des_ias:.0f} kt / M{ref.des_mach:.2f}")
    for lim in ref.clb_spd_lim:
        print(f"Climb limit:  {lim.kcas:.0f} kt below {lim.alt_ft:.0f} ft")
    for lim in ref.des_spd_lim:
        print(f"Descent limit: {lim.kcas:.0f} kt below {lim.alt_ft:.0f} ft")
    print(f"Liftoff TAS:  {perf_TO_spd(flt, acft):.0f} kt")
    print(
        f"Tables:       {len(acft.clb_tables)} climb, {len(acft.crz_tables)} cruise, "
        f"{len(acft.des_tables)} descent"
    )
    print(f"Environment:  ISA{env.isadev:+.0f}, QNH {pa2hpa(env.qnh):.0f} hPa")
    return EXIT_OK


def run_climb(args: argparse.Namespace, acft: AircraftPerf, flt: FlightPerf, env: Environment) -> int:
    from_kcas = args.from_kcas if args.from_kcas is not None else perf_TO_spd(flt, acft)
    start = FlightPoint(args.from_alt, from_kcas, args.wind)
    end = FlightPoint(
        args.to_alt if args.to_alt is not None else flt.crz_lvl,
        args.to_kcas if args.to_kcas is not None else flt.clb_ias,
        args.wind,
    )
    mach_lim = args.mach_lim if args.mach_lim is not None else flt.clb_mach
    res = accelclb2dist(flt, acft, env, start, end, args.flap, mach_lim, AccelClimbType(args.type))
    print(
        f"Climb {start.alt_ft:.0f} ft/{start.kcas:.0f} kt -> {res.alt_ft:.0f} ft/{res.kcas:.0f} kt: "
        f"{res.dist_nm:.1f} NM, {res.burn_kg:.0f} kg, {res.time_s / 60:.1f} min"
    )
    if not res.converged:
        print("Warning: climb did not converge, values are partial", file=sys.stderr)
        return EXIT_NO_SOLUTION
    return EXIT_OK


def run_cruise(args: argparse.Namespace, acft: AircraftPerf, flt: FlightPerf, env: Environment) -> int:
    alt = args.alt if args.alt is not None else flt.crz_lvl
    if args.kcas is not None:
        spd, is_mach = args.kcas, False
    else:
        spd, is_mach = (args.mach if args.mach is not None else flt.crz_mach), True
    res = crz2burn(env, alt, spd, is_mach, 0.0, args.wind, args.wind, flt.fuel, args.dist, acft, flt)
    if res is None:
        print("No solution: cruise did not converge", file=sys.stderr)
        return EXIT_NO_SOLUTION
    spd_str = f"M{spd:.2f}" if is_mach else f"{spd:.0f} kt"
    print(f"Cruise {args.dist:.0f} NM at {alt:.0f} ft, {spd_str}: {res.burn_kg:.0f} kg, {res.time_s / 60:.1f} min")
    return EXIT_OK


def run_descent(args: argparse.Namespace, acft: AircraftPerf, flt: FlightPerf, env: Environment) -> int:
    start = FlightPoint(
        args.from_alt if args.from_alt is not None else flt.crz_lvl,
        args.from_kcas if args.from_kcas is not None else flt.des_ias,
        args.wind,
    )
    end = FlightPoint(args.to_alt, args.to_kcas if args.to_kcas is not None else flt.des_ias, args.wind)
    mach_lim = args.mach_lim if args.mach_lim is not None else flt.des_mach
    res = des2burn(flt, acft, env, flt.fuel, 0.0, args.dist, mach_lim, start, end)
    if res is None:
        print("No solution: descent did not converge", file=sys.stderr)
        return EXIT_NO_SOLUTION
    print(
        f"Descent {start.alt_ft:.0f} -> {end.alt_ft:.0f} ft over {args.dist:.0f} NM: "
        f"{res.burn_kg:.0f} kg, {res.time_s / 60:.1f} min"
    )
    return EXIT_OK


def run_decel(args: argparse.Namespace, acft: AircraftPerf, flt: FlightPerf, env: Environment) -> int:
    res = decel2dist(
        flt, acft, env, flt.fuel, args.alt, args.from_kcas, args.to_kcas, args.dist_cap, args.flap, args.wind
    )
    print(
        f"Decel {args.from_kcas:.0f} -> {res.kcas:.0f} kt at {args.alt:.0f} ft: "
        f"{res.dist_nm:.1f} NM, {res.burn_kg:.0f} kg, {res.time_s:.0f} s"
    )
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 on errors, 2 when a driver finds no solution).
    """
    args = parse_args(argv)
    try:
        if args.log_config:
            initialize_logging(args.log_config, use_platform_dir=True)
        else:
            initialize_logging(use_platform_dir=True)

        scenario = ScenarioConfig.load(args.config) if args.config else ScenarioConfig()
        acft = load_aircraft_performance(args.perf_file)
        env = scenario.environment(args.isadev, args.qnh)
        flt = new_flight_config(acft)
        scenario.apply_to_flight(flt)
        flt.debug = args.debug
    except (ConfigError, LoggingError, PerfParseError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    commands = {
        "climb": run_climb,
        "cruise": run_cruise,
        "descent": run_descent,
        "decel": run_decel,
    }
    try:
        if args.command == "info":
            return run_info(acft, flt, env)
        return commands[args.command](args, acft, flt, env)
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.exception("Fatal error: %s", e)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
