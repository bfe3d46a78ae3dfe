"""Atmosphere, unit conversion and vector primitives."""

from acfperf.physics.atmosphere import ISA_SL_PRESS, ISA_TP_ALT, Environment
from acfperf.physics.vectors import Vector2

__all__ = ["ISA_SL_PRESS", "ISA_TP_ALT", "Environment", "Vector2"]
