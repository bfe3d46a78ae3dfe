"""Pytest configuration and fixtures for all tests."""

import dataclasses
from pathlib import Path

import pytest

from acfperf.performance.aircraft import AircraftPerf, FlightPerf, new_flight_config
from acfperf.performance.loader import load_aircraft_performance
from acfperf.performance.tables import TableSet
from acfperf.physics.atmosphere import Environment

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture(scope="session")
def twinjet_path() -> Path:
    """Path to the generic twinjet performance file."""
    return DATA_DIR / "twinjet.perf"


@pytest.fixture(scope="session")
def twinjet_text(twinjet_path: Path) -> str:
    """Contents of the twinjet performance file, for tests that edit it."""
    return twinjet_path.read_text(encoding="utf-8")


@pytest.fixture(scope="session")
def twinjet(twinjet_path: Path) -> AircraftPerf:
    """Loaded twinjet performance specification.

    Shared by the whole session; tests must not modify its table sets.
    """
    return load_aircraft_performance(twinjet_path)


@pytest.fixture
def flight(twinjet: AircraftPerf) -> FlightPerf:
    """Fresh flight configuration from the twinjet's reference values."""
    return new_flight_config(twinjet)


@pytest.fixture
def isa_env() -> Environment:
    """ISA, standard pressure, no temperature deviation."""
    return Environment()


@pytest.fixture(scope="session")
def twinjet_analytic(twinjet: AircraftPerf) -> AircraftPerf:
    """The twinjet without any tables, flown on the aerodynamic model alone."""
    return dataclasses.replace(twinjet, clb_tables=TableSet(), crz_tables=TableSet(), des_tables=TableSet())
