"""Parser for ``.perf`` aircraft performance files.

A ``.perf`` file is line oriented. ``#`` starts a comment, blank lines are
ignored and the first line must be ``VERSION 1``. Every other line is a
``KEY value`` pair, a curve header followed by its ``x,y`` points, or a
table block:

    VERSION 1
    ACFTTYPE B738
    NUMENG 2
    MAXTHR 121400
    CL 3
    -4,-0.1
    0,0.3
    16,1.6
    CRZTABLE
    ISA 0
    MACH 0.78
    GWLBK 120 140 160
    FL350
    FFLB/ENG 2300 2500 2750
    ENDTABLE

The parser is strict: any malformed, duplicate or unknown line and any
missing required field raises PerfParseError. Nothing is partially loaded.

Typical usage example:
    acft = load_aircraft_performance("data/b738.perf")
    flt = new_flight_config(acft)
"""

from collections.abc import Iterator
from pathlib import Path

import numpy as np

from acfperf.core.logging_system import get_logger
from acfperf.performance.aircraft import AircraftPerf, FlightPerf, SpeedLimit
from acfperf.performance.curves import Curve
from acfperf.performance.tables import CellField, DuplicateTableError, PerfTable, TableSet, fill_row
from acfperf.physics.units import feet2met, fpm2mps, kt2mps, lbph2kgps, lbs2kg, met2feet

logger = get_logger(__name__)

PERF_MIN_VERSION = 1
PERF_MAX_VERSION = 1

# Scalar keys mapped to the field they fill
_REQUIRED_SCALARS = {
    "MAXTHR": "eng_max_thr",
    "MINTHR": "eng_min_thr",
    "SFC": "eng_sfc",
    "WINGAREA": "wing_area",
    "CLMAX": "cl_max_aoa",
    "CLFLAPMAX": "cl_flap_max_aoa",
    "REFZFW": "zfw",
    "REFFUEL": "fuel",
    "REFCRZLVL": "crz_lvl",
    "REFCLBIAS": "clb_ias",
    "REFCLBMACH": "clb_mach",
    "REFCRZIAS": "crz_ias",
    "REFCRZMACH": "crz_mach",
    "REFDESIAS": "des_ias",
    "REFDESMACH": "des_mach",
    "REFTOFLAP": "to_flap",
    "REFACCELHT": "accel_height",
}
_OPTIONAL_SCALARS = {
    "REFCLBIASINIT": "clb_ias_init",
    "TABLEFFCORR": "table_ff_corr",
}
_SPD_LIM_KEYS = {
    "clb": (("REFCLBSPDLIM", "REFCLBSPDLIMALT"), ("REFCLBSPDLIM2", "REFCLBSPDLIMALT2")),
    "des": (("REFDESSPDLIM", "REFDESSPDLIMALT"), ("REFDESSPDLIM2", "REFDESSPDLIMALT2")),
}
_REQUIRED_CURVES = {
    "THRDENS": "thr_dens_curve",
    "THRMACH": "thr_mach_curve",
    "SFCTHRO": "sfc_thro_curve",
    "SFCISA": "sfc_isa_curve",
    "CL": "cl_curve",
    "CLFLAP": "cl_flap_curve",
    "CD": "cd_curve",
    "CDFLAP": "cd_flap_curve",
}
_OPTIONAL_CURVES = {
    "HALFBANK": "half_bank_curve",
    "FULLBANK": "full_bank_curve",
}
_TABLE_BLOCKS = {"CLBTABLE": "clb", "CRZTABLE": "crz", "DESTABLE": "des"}

# Table field rows and the cell field each one fills
_TABLE_FIELDS = {
    "FPM": CellField.VS,
    "TIMM": CellField.FUSED_T,
    "FULB": CellField.FUSED,
    "FFLB/ENG": CellField.FF,
}
# Field rows every altitude row of a table kind must carry
_REQUIRED_TABLE_FIELDS = {
    "clb": ("FPM", "TIMM", "FULB"),
    "crz": ("FFLB/ENG",),
    "des": ("FPM", "FFLB/ENG"),
}


class PerfParseError(Exception):
    """Raised when a ``.perf`` file cannot be loaded.

    Attributes:
        filename: Name of the file being parsed.
        line_num: Offending line (1-based), or None for whole-file errors.
        message: Description of the problem.
        missing: Names of the required fields absent from the file.
    """

    def __init__(
        self,
        filename: str,
        line_num: int | None,
        message: str,
        missing: tuple[str, ...] = (),
    ) -> None:
        self.filename = filename
        self.line_num = line_num
        self.message = message
        self.missing = missing
        where = filename if line_num is None else f"{filename}:{line_num}"
        super().__init__(f"{where}: {message}")


def _significant_lines(text: str) -> Iterator[tuple[int, str]]:
    for line_num, line in enumerate(text.splitlines(), start=1):
        line = line.split("#", 1)[0].strip()
        if line:
            yield line_num, line


def _parse_altitude(token: str) -> float | None:
    """Altitude (m) of a table row header, or None if ``token`` is not one."""
    try:
        if token.startswith("FL"):
            return feet2met(float(token[2:]) * 100)
        return float(token)
    except ValueError:
        return None


class _PerfParser:
    """Single-use parser holding the state of one file."""

    def __init__(self, text: str, filename: str) -> None:
        self.filename = filename
        self.lines = _significant_lines(text)
        self.strings: dict[str, str] = {}
        self.scalars: dict[str, float] = {}
        self.curves: dict[str, Curve] = {}
        self.num_eng: int | None = None
        self.tables = {kind: TableSet() for kind in _TABLE_BLOCKS.values()}
        self.table_lines: list[tuple[str, PerfTable, int]] = []

    def error(self, line_num: int | None, message: str) -> PerfParseError:
        return PerfParseError(self.filename, line_num, message)

    def parse(self) -> AircraftPerf:
        self._parse_version()
        for line_num, line in self.lines:
            parts = line.split(None, 1)
            key = parts[0]
            value = parts[1].strip() if len(parts) == 2 else ""

            if key in ("ACFTTYPE", "ENGTYPE"):
                if not value or key in self.strings:
                    raise self.error(line_num, f"malformed or duplicate {key} line")
                self.strings[key] = value
            elif key == "NUMENG":
                if self.num_eng is not None:
                    raise self.error(line_num, "duplicate NUMENG line")
                num_eng = self._positive(key, value, line_num)
                if num_eng != int(num_eng):
                    raise self.error(line_num, f"invalid value for NUMENG: {value}")
                self.num_eng = int(num_eng)
            elif key in _REQUIRED_SCALARS or key in _OPTIONAL_SCALARS or self._is_spd_lim(key):
                if key in self.scalars:
                    raise self.error(line_num, f"duplicate {key} line")
                self.scalars[key] = self._positive(key, value, line_num)
            elif key in _REQUIRED_CURVES or key in _OPTIONAL_CURVES:
                if key in self.curves:
                    raise self.error(line_num, f"duplicate {key} curve")
                self.curves[key] = self._parse_curve(key, value, line_num)
            elif key in _TABLE_BLOCKS:
                if value:
                    raise self.error(line_num, f"malformed {key} line")
                if self.num_eng is None:
                    raise self.error(line_num, "NUMENG must precede table blocks")
                self._parse_table(_TABLE_BLOCKS[key], line_num)
            else:
                raise self.error(line_num, f"unknown line '{key}'")
        return self._build()

    def _parse_version(self) -> None:
        first = next(self.lines, None)
        if first is None:
            raise self.error(None, "empty file, missing VERSION line")
        line_num, line = first
        tokens = line.split()
        if tokens[0] != "VERSION":
            raise self.error(line_num, "first line was not VERSION")
        if len(tokens) != 2:
            raise self.error(line_num, "malformed VERSION line")
        try:
            version = int(tokens[1])
        except ValueError as e:
            raise self.error(line_num, "malformed VERSION line") from e
        if not PERF_MIN_VERSION <= version <= PERF_MAX_VERSION:
            raise self.error(line_num, f"unsupported file version {version}")

    @staticmethod
    def _is_spd_lim(key: str) -> bool:
        return any(key in pair for pairs in _SPD_LIM_KEYS.values() for pair in pairs)

    def _positive(self, key: str, value: str, line_num: int) -> float:
        try:
            x = float(value)
        except ValueError as e:
            raise self.error(line_num, f"malformed {key} line") from e
        if not x > 0:
            raise self.error(line_num, f"invalid value for {key}: {value}")
        return x

    def _parse_curve(self, key: str, value: str, line_num: int) -> Curve:
        try:
            numpoints = int(value)
        except ValueError as e:
            raise self.error(line_num, f"malformed {key} line") from e
        if numpoints < 2:
            raise self.error(line_num, f"{key} curve needs at least 2 points")

        points = []
        for _ in range(numpoints):
            pt = next(self.lines, None)
            if pt is None:
                raise self.error(line_num, f"{key} curve: missing points at end of file")
            line_num, line = pt
            parts = line.split(",")
            if len(parts) != 2:
                raise self.error(line_num, f"{key} curve: malformed point '{line}'")
            try:
                points.append((float(parts[0]), float(parts[1])))
            except ValueError as e:
                raise self.error(line_num, f"{key} curve: malformed point '{line}'") from e
        try:
            return Curve(points)
        except ValueError as e:
            raise self.error(line_num, f"{key} curve: {e}") from e

    def _parse_table(self, kind: str, start_line: int) -> None:
        isa: float | None = None
        spd: float | None = None
        is_mach = False
        wts: list[float] | None = None
        rows: dict[float, dict[CellField, list[float]]] = {}
        cur_row: dict[CellField, list[float]] | None = None
        row_lines: dict[float, int] = {}

        for line_num, line in self.lines:
            tokens = line.split()
            key = tokens[0]
            args = tokens[1:]

            if key == "ENDTABLE":
                break
            if key == "ISA":
                if isa is not None or len(args) != 1:
                    raise self.error(line_num, "malformed or duplicate ISA line")
                isa = self._float(args[0], line_num)
            elif key in ("IAS", "KIAS", "MACH"):
                if spd is not None or len(args) != 1:
                    raise self.error(line_num, "table needs exactly one IAS/KIAS/MACH line")
                is_mach = key == "MACH"
                spd = self._float(args[0], line_num)
                if not is_mach:
                    spd = kt2mps(spd)
            elif key == "GWLBK":
                if wts is not None or not args:
                    raise self.error(line_num, "malformed or duplicate GWLBK line")
                wts = [lbs2kg(self._float(a, line_num) * 1000) for a in args]
            elif key in _TABLE_FIELDS:
                if cur_row is None or wts is None:
                    raise self.error(line_num, f"{key} line before altitude or GWLBK line")
                field = _TABLE_FIELDS[key]
                if field in cur_row:
                    raise self.error(line_num, f"duplicate {key} line")
                values = [self._float(a, line_num) for a in args]
                try:
                    cur_row[field] = self._convert(field, fill_row(values, wts))
                except ValueError as e:
                    raise self.error(line_num, f"{key}: {e}") from e
            elif len(tokens) == 1 and _parse_altitude(key) is not None:
                alt = _parse_altitude(key)
                if isa is None or spd is None or wts is None:
                    raise self.error(line_num, "ISA, speed and GWLBK must precede altitude rows")
                if alt in rows:
                    raise self.error(line_num, f"duplicate altitude {key}")
                cur_row = rows[alt] = {}
                row_lines[alt] = line_num
            else:
                raise self.error(line_num, f"unknown table line '{key}'")
        else:
            raise self.error(start_line, "table block missing ENDTABLE")

        if isa is None or spd is None or wts is None or not rows:
            raise self.error(start_line, "incomplete table: needs ISA, speed, GWLBK and altitude rows")
        for alt, row in rows.items():
            missing = [key for key in _REQUIRED_TABLE_FIELDS[kind] if _TABLE_FIELDS[key] not in row]
            if missing:
                raise self.error(
                    row_lines[alt], f"{kind} table row at {met2feet(alt):.0f} ft lacks {', '.join(missing)}"
                )

        alts = list(rows)
        cells = np.zeros((len(alts), len(wts), len(CellField)))
        for i, alt in enumerate(alts):
            for field, values in rows[alt].items():
                cells[i, :, field] = values
        try:
            table = PerfTable(isa, spd, is_mach, np.array(alts), np.array(wts), cells)
            self.tables[kind].add(table)
        except DuplicateTableError as e:
            raise self.error(start_line, str(e)) from e
        except ValueError as e:
            raise self.error(start_line, f"malformed table: {e}") from e
        self.table_lines.append((kind, table, start_line))

    def _float(self, token: str, line_num: int) -> float:
        try:
            return float(token)
        except ValueError as e:
            raise self.error(line_num, f"malformed number '{token}'") from e

    def _convert(self, field: CellField, values: list[float]) -> list[float]:
        """Convert a table row from file units to SI."""
        assert self.num_eng is not None
        if field is CellField.VS:
            return [fpm2mps(v) for v in values]
        if field is CellField.FUSED_T:
            return [v * 60 for v in values]
        if field is CellField.FUSED:
            return [lbs2kg(v) for v in values]
        return [lbph2kgps(v * self.num_eng) for v in values]

    def _speed_limits(self, kind: str, missing: list[str]) -> tuple[SpeedLimit, ...]:
        lims = []
        for spd_key, alt_key in _SPD_LIM_KEYS[kind]:
            if spd_key in self.scalars and alt_key in self.scalars:
                lims.append(SpeedLimit(self.scalars[spd_key], self.scalars[alt_key]))
            elif spd_key in self.scalars:
                missing.append(alt_key)
            elif alt_key in self.scalars:
                missing.append(spd_key)
        return tuple(lims)

    def _build(self) -> AircraftPerf:
        missing = [k for k in ("ACFTTYPE", "ENGTYPE") if k not in self.strings]
        if self.num_eng is None:
            missing.append("NUMENG")
        missing += [k for k in _REQUIRED_SCALARS if k not in self.scalars]
        missing += [k for k in _REQUIRED_CURVES if k not in self.curves]
        clb_spd_lim = self._speed_limits("clb", missing)
        des_spd_lim = self._speed_limits("des", missing)
        if missing:
            raise PerfParseError(
                self.filename,
                None,
                f"missing required fields: {', '.join(missing)}",
                missing=tuple(missing),
            )
        assert self.num_eng is not None

        table_ff_corr = self.scalars.get("TABLEFFCORR", 1.0)
        for kind, table, start_line in self.table_lines:
            table.cells[:, :, CellField.FF] *= table_ff_corr
            table.cells[:, :, CellField.FUSED] *= table_ff_corr
            if kind == "clb":
                try:
                    table.derive_climb_ff()
                except ValueError as e:
                    raise self.error(start_line, str(e)) from e

        ref_fields = {
            attr: self.scalars[key]
            for key, attr in {**_REQUIRED_SCALARS, **_OPTIONAL_SCALARS}.items()
            if key in self.scalars and key.startswith("REF")
        }
        ref = FlightPerf(
            **ref_fields,
            clb_spd_lim=clb_spd_lim,
            des_spd_lim=des_spd_lim,
            num_eng=self.num_eng,
        )
        acft_fields = {
            attr: self.scalars[key]
            for key, attr in _REQUIRED_SCALARS.items()
            if not key.startswith("REF")
        }
        curve_fields = {
            attr: self.curves[key]
            for key, attr in {**_REQUIRED_CURVES, **_OPTIONAL_CURVES}.items()
            if key in self.curves
        }
        return AircraftPerf(
            acft_type=self.strings["ACFTTYPE"],
            eng_type=self.strings["ENGTYPE"],
            num_eng=self.num_eng,
            ref=ref,
            clb_tables=self.tables["clb"],
            crz_tables=self.tables["crz"],
            des_tables=self.tables["des"],
            table_ff_corr=table_ff_corr,
            **acft_fields,
            **curve_fields,
        )


def parse_aircraft_performance(text: str, filename: str = "<string>") -> AircraftPerf:
    """Parse the contents of a ``.perf`` file.

    Args:
        text: File contents.
        filename: Name used in error messages.

    Returns:
        The aircraft performance specification.

    Raises:
        PerfParseError: If the contents are malformed or incomplete.
    """
    try:
        return _PerfParser(text, filename).parse()
    except PerfParseError as e:
        logger.error("Error parsing acft perf file %s", e)
        raise


def load_aircraft_performance(path: str | Path) -> AircraftPerf:
    """Load a ``.perf`` file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        PerfParseError: If the file is malformed or incomplete.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Aircraft performance file not found: {path}")

    logger.info("Loading aircraft performance from: %s", path)
    with open(path, encoding="utf-8") as f:
        text = f.read()
    acft = parse_aircraft_performance(text, str(path))
    logger.info(
        "Loaded %s (%s x%d): %d climb, %d cruise, %d descent tables",
        acft.acft_type,
        acft.eng_type,
        acft.num_eng,
        len(acft.clb_tables),
        len(acft.crz_tables),
        len(acft.des_tables),
    )
    return acft
