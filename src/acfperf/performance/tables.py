"""Tabulated climb, cruise and descent performance.

A table set is indexed on four axes: ISA deviation, speed (either CAS or
Mach), altitude and gross weight. Each grid cell holds the vertical speed,
cumulative fuel used, cumulative time and instantaneous fuel flow that the
manufacturer's data gives for that state.

Layout:
    TableSet
      └─ IsaBucket (sorted by ISA deviation)
           ├─ tables keyed by CAS (m/s), sorted
           └─ tables keyed by Mach, sorted
                └─ PerfTable: cells[num_alts, num_wts, CellField]

Typical usage example:
    tset = TableSet()
    tset.add(table)
    ff = tset.lookup(isa=0.0, mass=60000.0, spd=0.78, is_mach=True,
                     alt_m=10668.0, field=CellField.FF)
"""

import bisect
import math
from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np
import numpy.typing as npt

from acfperf.performance.curves import clamp, wavg

# Fractional extrapolation limits along the speed and ISA axes
SPD_FRACT_MIN = -0.25
SPD_FRACT_MAX = 2.0
ISA_FRACT_MIN = -1.0
ISA_FRACT_MAX = 2.0


class CellField(IntEnum):
    """Fields of a table cell, in storage order.

    Attributes:
        VS: Vertical speed (m/s).
        FUSED: Cumulative fuel used (kg).
        FUSED_T: Cumulative time (s).
        FF: Fuel flow (kg/s).
    """

    VS = 0
    FUSED = 1
    FUSED_T = 2
    FF = 3


class DuplicateTableError(ValueError):
    """Raised when a table with the same ISA and speed key is added twice."""


def _bracket(xs: npt.NDArray[np.float64] | list[float], x: float) -> tuple[int, int, float]:
    """Find the pair of indices bracketing ``x`` and the fraction between them.

    Outside the range the two outermost entries are returned with a
    fraction below 0 or above 1. A single entry yields (0, 0, 0).
    """
    n = len(xs)
    if n == 1:
        return 0, 0, 0.0
    i = bisect.bisect_right(xs, x) - 1
    i = min(max(i, 0), n - 2)
    x1, x2 = float(xs[i]), float(xs[i + 1])
    return i, i + 1, (x - x1) / (x2 - x1)


@dataclass
class PerfTable:
    """A single performance table at fixed ISA deviation and speed.

    Attributes:
        isa: ISA deviation (°C).
        spd: CAS (m/s) or Mach number, depending on ``is_mach``.
        is_mach: Whether ``spd`` is a Mach number.
        alts: Ascending altitudes (m).
        wts: Ascending gross weights (kg).
        cells: Array of shape (len(alts), len(wts), len(CellField)).
    """

    isa: float
    spd: float
    is_mach: bool
    alts: npt.NDArray[np.float64]
    wts: npt.NDArray[np.float64]
    cells: npt.NDArray[np.float64]

    def __post_init__(self) -> None:
        self.alts = np.asarray(self.alts, dtype=np.float64)
        self.wts = np.asarray(self.wts, dtype=np.float64)
        self.cells = np.asarray(self.cells, dtype=np.float64)
        if len(self.alts) == 0 or len(self.wts) == 0:
            raise ValueError("table needs at least one altitude and one weight")
        if np.any(np.diff(self.alts) <= 0):
            raise ValueError("table altitudes must be strictly ascending")
        if np.any(np.diff(self.wts) <= 0):
            raise ValueError("table weights must be strictly ascending")
        if self.cells.shape != (len(self.alts), len(self.wts), len(CellField)):
            raise ValueError(f"table cell grid has shape {self.cells.shape}")

    @property
    def min_wt(self) -> float:
        return float(self.wts[0])

    @property
    def max_wt(self) -> float:
        return float(self.wts[-1])

    def lookup(self, mass: float, alt_m: float, field: CellField) -> float:
        """Interpolate a field across weight, then altitude.

        Mass is clamped to ``[min_wt, max_wt - 1)``; altitude is linearly
        extrapolated from the two nearest rows.
        """
        if len(self.wts) > 1:
            mass = clamp(mass, self.min_wt, self.max_wt - 1)
        w1, w2, wt_fract = _bracket(self.wts, mass)
        a1, a2, alt_fract = _bracket(self.alts, alt_m)

        row1 = wavg(self.cells[a1, w1, field], self.cells[a1, w2, field], wt_fract)
        row2 = wavg(self.cells[a2, w1, field], self.cells[a2, w2, field], wt_fract)
        return float(wavg(row1, row2, alt_fract))

    def derive_climb_ff(self) -> None:
        """Replace FF with the local fuel flow derived from cumulative values.

        Each cell gets ``dFUSED / dFUSED_T`` against the next-lower altitude;
        the lowest altitude uses ``FUSED / FUSED_T``. Where the time
        difference is zero the tabulated flow is kept.

        Raises:
            ValueError: If a derived fuel flow is negative.
        """
        fused = self.cells[:, :, CellField.FUSED]
        fused_t = self.cells[:, :, CellField.FUSED_T]
        ff = self.cells[:, :, CellField.FF].copy()

        d_fused = np.diff(fused, axis=0, prepend=0.0)
        d_t = np.diff(fused_t, axis=0, prepend=0.0)
        mask = d_t > 0
        ff[mask] = d_fused[mask] / d_t[mask]

        if np.any(ff < 0):
            alt_idx, wt_idx = np.argwhere(ff < 0)[0]
            raise ValueError(
                f"negative climb fuel flow at altitude {self.alts[alt_idx]:.0f} m, "
                f"weight {self.wts[wt_idx]:.0f} kg"
            )
        self.cells[:, :, CellField.FF] = ff


@dataclass
class IsaBucket:
    """All tables sharing one ISA deviation, kept sorted per speed axis."""

    isa: float
    cas_tables: list[PerfTable] = field(default_factory=list)
    mach_tables: list[PerfTable] = field(default_factory=list)

    def tables(self, is_mach: bool) -> list[PerfTable]:
        return self.mach_tables if is_mach else self.cas_tables

    def add(self, table: PerfTable) -> None:
        tables = self.tables(table.is_mach)
        keys = [t.spd for t in tables]
        i = bisect.bisect_left(keys, table.spd)
        if i < len(keys) and keys[i] == table.spd:
            raise DuplicateTableError(
                f"duplicate table for ISA {self.isa:+g}, "
                f"{'Mach' if table.is_mach else 'CAS'} {table.spd:g}"
            )
        tables.insert(i, table)

    def lookup(self, mass: float, spd: float, is_mach: bool, alt_m: float, field: CellField) -> float:
        tables = self.tables(is_mach)
        assert tables, "bucket has no tables on this speed axis"
        s1, s2, spd_fract = _bracket([t.spd for t in tables], spd)
        spd_fract = clamp(spd_fract, SPD_FRACT_MIN, SPD_FRACT_MAX)
        v1 = tables[s1].lookup(mass, alt_m, field)
        if s1 == s2:
            return v1
        return wavg(v1, tables[s2].lookup(mass, alt_m, field), spd_fract)


class TableSet:
    """Indexed set of performance tables for one flight phase.

    An empty set means no tabulated data is available and callers must
    fall back to the analytic aerodynamic model.
    """

    def __init__(self) -> None:
        self.buckets: list[IsaBucket] = []

    def __len__(self) -> int:
        return sum(len(b.cas_tables) + len(b.mach_tables) for b in self.buckets)

    def __iter__(self):
        for bucket in self.buckets:
            yield from bucket.cas_tables
            yield from bucket.mach_tables

    def add(self, table: PerfTable) -> None:
        """Add a table, creating its ISA bucket if needed.

        Raises:
            DuplicateTableError: If a table with the same ISA deviation and
                speed key already exists on the same axis.
        """
        isas = [b.isa for b in self.buckets]
        i = bisect.bisect_left(isas, table.isa)
        if i == len(isas) or isas[i] != table.isa:
            self.buckets.insert(i, IsaBucket(table.isa))
        self.buckets[i].add(table)

    def has_axis(self, is_mach: bool) -> bool:
        return any(b.tables(is_mach) for b in self.buckets)

    def lookup(
        self,
        isa: float,
        mass: float,
        spd: float,
        is_mach: bool,
        alt_m: float,
        field: CellField,
    ) -> float:
        """Interpolate a cell field at an arbitrary state.

        Interpolation runs mass first, then altitude, then speed, then ISA
        deviation. Buckets without a table on the requested axis are skipped.

        Args:
            isa: ISA deviation (°C).
            mass: Gross weight (kg).
            spd: CAS (m/s) or Mach number.
            is_mach: Which speed axis ``spd`` belongs to.
            alt_m: Pressure altitude (m).
            field: Cell field to return.

        Returns:
            Interpolated value, or NaN if no table covers the speed axis.
        """
        assert mass > 0 and not math.isnan(spd)
        buckets = [b for b in self.buckets if b.tables(is_mach)]
        if not buckets:
            return math.nan

        i1, i2, isa_fract = _bracket([b.isa for b in buckets], isa)
        isa_fract = clamp(isa_fract, ISA_FRACT_MIN, ISA_FRACT_MAX)
        v1 = buckets[i1].lookup(mass, spd, is_mach, alt_m, field)
        if i1 == i2:
            return v1
        return wavg(v1, buckets[i2].lookup(mass, spd, is_mach, alt_m, field), isa_fract)


def table_lookup(
    tset: TableSet,
    isa: float,
    mass: float,
    spd: float,
    is_mach: bool,
    alt_m: float,
    field: CellField,
) -> float:
    """Functional form of TableSet.lookup()."""
    return tset.lookup(isa, mass, spd, is_mach, alt_m, field)


def fill_row(values: list[float], wts: list[float]) -> list[float]:
    """Complete a table row that has fewer values than weights.

    Missing trailing cells are linearly extrapolated across weight from the
    two highest-weight values present; a single value is replicated.

    Args:
        values: The values given, for the lowest ``len(values)`` weights.
        wts: All weights of the table.

    Returns:
        A list with one value per weight.

    Raises:
        ValueError: If no values or too many values are given.
    """
    n = len(values)
    if n == 0 or n > len(wts):
        raise ValueError(f"expected 1 to {len(wts)} values, got {n}")
    if n == 1:
        return values * len(wts)
    row = list(values)
    w1, w2 = wts[n - 2], wts[n - 1]
    y1, y2 = values[n - 2], values[n - 1]
    for w in wts[n:]:
        row.append(((w - w1) / (w2 - w1)) * (y2 - y1) + y1)
    return row
