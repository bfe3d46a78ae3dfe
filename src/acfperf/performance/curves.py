"""Piecewise-linear curves and their inverse, plus Lagrange polynomial fits.

Performance data is described as sampled curves ``y = f(x)`` (lift
coefficient against angle of attack, thrust fraction against Mach, ...).
Between samples the curve is linear; outside the sampled range the nearest
segment can be extended.

Typical usage example:
    from acfperf.performance.curves import Curve

    cl = Curve([(0.0, 0.25), (4.0, 0.65), (8.0, 1.0)])
    cl(6.0)          # 0.825
    cl.inverse(0.5)  # [2.5]
"""

import bisect
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt

MAX_PN_INTERP_ORDER = 16

Point = tuple[float, float]


def wavg(x: float, y: float, w: float) -> float:
    """Weighted average: ``x`` at ``w == 0``, ``y`` at ``w == 1``."""
    return x + (y - x) * w


def clamp(x: float, lo: float, hi: float) -> float:
    return min(max(x, lo), hi)


def fx_lin(x: float, x1: float, y1: float, x2: float, y2: float) -> float:
    """Evaluate the line through (x1, y1) and (x2, y2) at ``x``."""
    return ((x - x1) / (x2 - x1)) * (y2 - y1) + y1


def _segment(xs: Sequence[float], x: float) -> int:
    """Index of the segment [xs[i], xs[i + 1]] to use for ``x``."""
    i = bisect.bisect_left(xs, x) - 1
    return min(max(i, 0), len(xs) - 2)


def fx_lin_multi(
    x: float,
    points: Sequence[Point],
    extrapolate: bool = False,
    xs: Sequence[float] | None = None,
) -> float:
    """Evaluate a piecewise-linear function.

    Args:
        x: Point at which to evaluate.
        points: At least two (x, y) points with strictly increasing x.
        extrapolate: If True, ``x`` outside the covered range is evaluated
            on the nearest segment, extended. Otherwise NaN is returned.
        xs: The x column of ``points``. When given, lookup is a binary
            search touching only the two points of the selected segment;
            otherwise the column is built on every call.

    Returns:
        Function value, or NaN outside the range without extrapolation.
    """
    assert len(points) >= 2
    if xs is None:
        xs = [p[0] for p in points]
    if not extrapolate and (x < xs[0] or x > xs[-1]):
        return math.nan
    i = _segment(xs, x)
    (x1, y1), (x2, y2) = points[i], points[i + 1]
    return fx_lin(x, x1, y1, x2, y2)


def fx_lin_multi_inv(y: float, points: Sequence[Point], extrapolate: bool = False) -> list[float]:
    """Find every x at which a piecewise-linear function equals ``y``.

    No monotonicity is assumed; a curve rising and then falling yields a
    root on each side. Flat segments lying exactly on ``y`` contribute
    their left endpoint. With ``extrapolate``, roots on the extended end
    segments are included when they fall beyond the sampled range.

    Returns:
        Sorted list of x values, possibly empty.
    """
    assert len(points) >= 2
    roots: list[float] = []

    for (x1, y1), (x2, y2) in zip(points, points[1:]):
        if min(y1, y2) <= y <= max(y1, y2):
            x = x1 if y1 == y2 else fx_lin(y, y1, x1, y2, x2)
            # a root on a shared vertex is reported by both segments
            if not roots or not math.isclose(roots[-1], x, rel_tol=0.0, abs_tol=1e-12):
                roots.append(x)

    if extrapolate:
        (x1, y1), (x2, y2) = points[0], points[1]
        if y1 != y2:
            x = fx_lin(y, y1, x1, y2, x2)
            if x < x1:
                roots.insert(0, x)
        (x1, y1), (x2, y2) = points[-2], points[-1]
        if y1 != y2:
            x = fx_lin(y, y1, x1, y2, x2)
            if x > x2:
                roots.append(x)

    return roots


@dataclass(frozen=True)
class Curve:
    """Immutable piecewise-linear curve with strictly increasing x.

    Curves extrapolate by default: performance data routinely gets queried
    slightly past its sampled range.

    Attributes:
        points: The (x, y) samples.

    Raises:
        ValueError: If fewer than two points are given or x does not
            strictly increase.
    """

    points: tuple[Point, ...]
    _xs: tuple[float, ...] = field(init=False, repr=False, compare=False)

    def __init__(self, points: Sequence[Point]) -> None:
        pts = tuple((float(x), float(y)) for x, y in points)
        if len(pts) < 2:
            raise ValueError(f"curve needs at least 2 points, got {len(pts)}")
        for (xa, _), (xb, _) in zip(pts, pts[1:]):
            if not xa < xb:
                raise ValueError(f"curve x values must strictly increase ({xa} >= {xb})")
        object.__setattr__(self, "points", pts)
        object.__setattr__(self, "_xs", tuple(p[0] for p in pts))

    def __call__(self, x: float, extrapolate: bool = True) -> float:
        return fx_lin_multi(x, self.points, extrapolate, self._xs)

    def __len__(self) -> int:
        return len(self.points)

    def inverse(self, y: float, extrapolate: bool = True) -> list[float]:
        """All x where the curve equals ``y``, see fx_lin_multi_inv()."""
        return fx_lin_multi_inv(y, self.points, extrapolate)

    @property
    def x_min(self) -> float:
        return self._xs[0]

    @property
    def x_max(self) -> float:
        return self._xs[-1]


class PolyInterp:
    """Lagrange interpolating polynomial through a small set of points.

    The monomial coefficients are derived once on construction, so repeated
    evaluation is a single Horner pass.

    Examples:
        >>> p = PolyInterp([(0.0, 1.0), (1.0, 2.0), (2.0, 5.0)])
        >>> p(3.0)
        10.0
    """

    def __init__(self, points: Sequence[Point]) -> None:
        if not 1 <= len(points) <= MAX_PN_INTERP_ORDER:
            raise ValueError(
                f"polynomial interpolation takes 1 to {MAX_PN_INTERP_ORDER} points, got {len(points)}"
            )
        xs = np.array([p[0] for p in points], dtype=np.float64)
        ys = np.array([p[1] for p in points], dtype=np.float64)
        if len(np.unique(xs)) != len(xs):
            raise ValueError("polynomial interpolation points need distinct x values")

        coeffs = np.zeros(len(xs), dtype=np.float64)
        for i in range(len(xs)):
            others = np.delete(xs, i)
            # basis polynomial l_i(x) = prod(x - x_j) / prod(x_i - x_j)
            basis = np.poly(others) / np.prod(xs[i] - others)
            coeffs += ys[i] * basis
        self.coeffs: npt.NDArray[np.float64] = coeffs

    @property
    def order(self) -> int:
        return len(self.coeffs) - 1

    def __call__(self, x: float) -> float:
        return float(np.polyval(self.coeffs, x))
