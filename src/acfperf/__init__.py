"""acfperf - Aircraft performance prediction engine.

Predicts fuel burn, distance and time across takeoff acceleration, climb,
cruise, descent and deceleration from an aircraft's aerodynamic and engine
data, loaded from a ``.perf`` file.
"""

__version__ = "0.1.0"
