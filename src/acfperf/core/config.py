"""Scenario files for command line runs.

A scenario is a YAML file with two optional sections. ``environment`` sets
the atmosphere every driver call sees and ``flight`` adjusts the aircraft's
reference flight configuration:

    environment:
      isadev: 10.0        # deg C
      qnh_hpa: 1008.0
      tp_alt_ft: 36089.0
    flight:
      zfw_kg: 52000.0
      fuel_kg: 9000.0
      thr_derate: 0.95

Like ``.perf`` files, scenarios are read strictly: unknown sections or keys
and non-numeric values raise ConfigError.

Typical usage example:
    scenario = ScenarioConfig.load("config/scenario.example.yaml")
    env = scenario.environment(isadev=args.isadev)
    scenario.apply_to_flight(flt)
"""

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from acfperf.core.logging_system import get_logger
from acfperf.physics.atmosphere import ISA_TP_ALT, Environment
from acfperf.physics.units import hpa2pa

if TYPE_CHECKING:
    from acfperf.performance.aircraft import FlightPerf

logger = get_logger(__name__)

STD_QNH_HPA = 1013.25

# Keys accepted in each section; flight keys map to FlightPerf attributes
_ENVIRONMENT_KEYS = ("isadev", "qnh_hpa", "tp_alt_ft")
_FLIGHT_KEYS = {
    "zfw_kg": "zfw",
    "fuel_kg": "fuel",
    "thr_derate": "thr_derate",
}
_SECTIONS = {"environment": _ENVIRONMENT_KEYS, "flight": tuple(_FLIGHT_KEYS)}


class ConfigError(Exception):
    """Raised when a scenario file cannot be used."""


class ScenarioConfig:
    """Environment and flight settings read from a scenario file.

    Examples:
        >>> scenario = ScenarioConfig({"environment": {"isadev": 15}})
        >>> scenario.environment().isadev
        15.0
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = data if data is not None else {}
        self._validate()

    @classmethod
    def load(cls, path: str | Path) -> "ScenarioConfig":
        """Load a scenario from a YAML file.

        Raises:
            ConfigError: If the file is missing, unreadable, not a mapping
                or holds unknown or non-numeric settings.
        """
        path = Path(path)

        if not path.exists():
            raise ConfigError(f"Scenario file not found: {path}")

        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load scenario: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Scenario root must be a mapping: {path}")

        scenario = cls(data)
        logger.info("Loaded scenario from: %s", path)
        return scenario

    def _validate(self) -> None:
        for section, values in self._data.items():
            if section not in _SECTIONS:
                raise ConfigError(f"Unknown scenario section: {section}")
            if not isinstance(values, dict):
                raise ConfigError(f"Scenario section is not a mapping: {section}")
            for key, value in values.items():
                if key not in _SECTIONS[section]:
                    raise ConfigError(f"Unknown scenario key: {section}.{key}")
                # bool is an int subclass
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ConfigError(f"{section}.{key} must be a number, got {value!r}")

    def get(self, key: str, default: float | None = None) -> float | None:
        """Get a setting using dot notation, e.g. ``"flight.fuel_kg"``."""
        section, _, name = key.partition(".")
        value = self._data.get(section, {}).get(name)
        return default if value is None else float(value)

    def environment(self, isadev: float | None = None, qnh_hpa: float | None = None) -> Environment:
        """Atmospheric conditions, with command line values taking precedence.

        Args:
            isadev: ISA deviation override (deg C).
            qnh_hpa: Altimeter setting override (hPa).
        """
        if isadev is None:
            isadev = self.get("environment.isadev", 0.0)
        if qnh_hpa is None:
            qnh_hpa = self.get("environment.qnh_hpa", STD_QNH_HPA)
        if qnh_hpa <= 0:
            raise ConfigError(f"QNH must be positive, got {qnh_hpa}")
        return Environment(isadev, hpa2pa(qnh_hpa), self.get("environment.tp_alt_ft", ISA_TP_ALT))

    def apply_to_flight(self, flt: "FlightPerf") -> None:
        """Overwrite the flight settings the scenario gives."""
        for key, attr in _FLIGHT_KEYS.items():
            value = self.get(f"flight.{key}")
            if value is not None:
                setattr(flt, attr, value)
                logger.debug("Scenario sets %s = %s", attr, value)
