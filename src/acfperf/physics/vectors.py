"""2D vector utilities for winds and flight directions.

Vectors use the navigation frame: x points east, y points north. A wind
vector points in the direction the air mass moves toward, with its
magnitude the wind speed in knots.

Typical usage example:
    from acfperf.physics.vectors import Vector2

    wind = Vector2.from_heading(270.0, 30.0)  # 30 kt blowing toward the west
    tailwind = wind.dot(Vector2.from_heading(270.0))
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Vector2:
    """2D vector with common operations.

    Attributes:
        x: X component (east).
        y: Y component (north).

    Examples:
        >>> Vector2(1.0, 2.0) + Vector2(3.0, 4.0)
        Vector2(x=4.0, y=6.0)
    """

    x: float
    y: float

    def __add__(self, other: "Vector2") -> "Vector2":
        return Vector2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Vector2") -> "Vector2":
        return Vector2(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> "Vector2":
        return Vector2(self.x * scalar, self.y * scalar)

    def dot(self, other: "Vector2") -> float:
        return self.x * other.x + self.y * other.y

    def lerp(self, other: "Vector2", t: float) -> "Vector2":
        """Linear interpolation: ``self`` at t=0, ``other`` at t=1."""
        return self + (other - self) * t

    @classmethod
    def from_heading(cls, heading: float, magnitude: float = 1.0) -> "Vector2":
        """Create a vector pointing toward a true heading.

        Args:
            heading: True heading in degrees (0 = north, 90 = east).
            magnitude: Length of the vector.
        """
        assert 0.0 <= heading <= 360.0, f"invalid heading: {heading}"
        rad = math.radians(heading)
        return cls(math.sin(rad) * magnitude, math.cos(rad) * magnitude)


def along_track(wind: "Vector2 | float", heading: float) -> float:
    """Along-track wind component in knots (positive = tailwind).

    Args:
        wind: Either an along-track scalar in knots, which is returned as
            is, or a wind vector in knots.
        heading: True track of the flight in degrees.
    """
    if isinstance(wind, Vector2):
        return wind.dot(Vector2.from_heading(heading))
    return float(wind)


def lerp_wind(wind1: "Vector2 | float", wind2: "Vector2 | float", t: float) -> "Vector2 | float":
    """Interpolate between two winds of the same kind."""
    if isinstance(wind1, Vector2) and isinstance(wind2, Vector2):
        return wind1.lerp(wind2, t)
    if isinstance(wind1, Vector2) or isinstance(wind2, Vector2):
        raise TypeError("cannot interpolate between a wind vector and a scalar wind")
    return wind1 + (wind2 - wind1) * t
