"""Tests for the .perf file loader."""

import tempfile
from pathlib import Path

import pytest

from acfperf.performance.aircraft import AircraftPerf, SpeedLimit
from acfperf.performance.loader import PerfParseError, load_aircraft_performance, parse_aircraft_performance
from acfperf.performance.tables import CellField
from acfperf.physics.units import feet2met, fpm2mps, kt2mps, lbph2kgps, lbs2kg


def replace_line(text: str, old: str, new: str) -> str:
    """Replace one exact line of a .perf file."""
    lines = text.splitlines()
    assert old in lines, f"line not found: {old}"
    lines[lines.index(old)] = new
    return "\n".join(lines) + "\n"


class TestLoadTwinjet:
    """Test loading a complete file."""

    def test_identity(self, twinjet: AircraftPerf) -> None:
        """Test aircraft and engine identification."""
        assert twinjet.acft_type == "TWJT"
        assert twinjet.eng_type == "TF27"
        assert twinjet.num_eng == 2

    def test_scalars(self, twinjet: AircraftPerf) -> None:
        """Test engine and airframe scalars."""
        assert twinjet.eng_max_thr == 80000
        assert twinjet.eng_min_thr == 4000
        assert twinjet.eng_sfc == pytest.approx(9e-6)
        assert twinjet.wing_area == pytest.approx(122.6)
        assert twinjet.cl_max_aoa == 15
        assert twinjet.table_ff_corr == 1.0

    def test_reference_flight(self, twinjet: AircraftPerf) -> None:
        """Test the REF* keys and speed limits."""
        ref = twinjet.ref
        assert ref.zfw == 50000
        assert ref.fuel == 10000
        assert ref.crz_lvl == 35000
        assert ref.clb_ias_init == 150
        assert ref.crz_mach == pytest.approx(0.78)
        assert ref.to_flap == pytest.approx(0.5)
        assert ref.clb_spd_lim == (SpeedLimit(250, 10000),)
        assert ref.des_spd_lim == (SpeedLimit(250, 10000),)
        assert ref.num_eng == 2

    def test_curves(self, twinjet: AircraftPerf) -> None:
        """Test that curves are loaded, including the optional bank curves."""
        assert len(twinjet.cl_curve) == 7
        assert twinjet.cl_curve(4.0) == pytest.approx(0.65)
        assert twinjet.half_bank_curve is not None
        assert twinjet.full_bank_curve is not None

    def test_tables(self, twinjet: AircraftPerf) -> None:
        """Test table counts and unit conversion of a cruise cell."""
        assert len(twinjet.clb_tables) == 1
        assert len(twinjet.crz_tables) == 2
        assert len(twinjet.des_tables) == 1

        mass = lbs2kg(130000)
        ff = twinjet.crz_tables.lookup(0.0, mass, 0.78, True, feet2met(35000), CellField.FF)
        assert ff == pytest.approx(lbph2kgps(2550 * 2))

    def test_speed_axis_units(self, twinjet: AircraftPerf) -> None:
        """Test that KIAS tables are keyed in m/s and Mach tables in Mach."""
        assert [t.spd for t in twinjet.crz_tables] == pytest.approx([0.74, 0.78])
        (clb,) = list(twinjet.clb_tables)
        assert clb.spd == pytest.approx(kt2mps(250))
        assert not clb.is_mach

    def test_climb_table_derived_flow(self, twinjet: AircraftPerf) -> None:
        """Test that climb FF comes from cumulative fuel and time."""
        (clb,) = list(twinjet.clb_tables)
        # lowest row has no elapsed time: tabulated FFLB/ENG kept
        assert clb.cells[0, 0, CellField.FF] == pytest.approx(lbph2kgps(6000 * 2))
        # FL100, 110 klb: 750 lb over 3.5 min
        assert clb.cells[1, 0, CellField.FF] == pytest.approx(lbs2kg(750) / 210)

    def test_short_row_filled(self, twinjet: AircraftPerf) -> None:
        """Test that the two-value FPM row at FL200 is extrapolated."""
        (clb,) = list(twinjet.clb_tables)
        assert clb.cells[2, 2, CellField.VS] == pytest.approx(fpm2mps(1300))

    def test_descent_rates_negative(self, twinjet: AircraftPerf) -> None:
        """Test that descent vertical speeds keep their sign."""
        (des,) = list(twinjet.des_tables)
        assert (des.cells[:, :, CellField.VS] < 0).all()

    def test_load_missing_file(self) -> None:
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_aircraft_performance("/nonexistent/acft.perf")

    def test_load_from_disk(self, twinjet_text: str) -> None:
        """Test loading a file written to disk."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "copy.perf"
            path.write_text(twinjet_text)
            acft = load_aircraft_performance(str(path))
            assert acft.acft_type == "TWJT"


class TestTableFuelCorrection:
    """Test the TABLEFFCORR factor."""

    def test_correction_scales_fuel(self, twinjet: AircraftPerf, twinjet_text: str) -> None:
        """Test that tabulated fuel flows are scaled."""
        acft = parse_aircraft_performance(replace_line(twinjet_text, "TABLEFFCORR 1", "TABLEFFCORR 1.05"))
        mass = lbs2kg(130000)
        alt = feet2met(35000)
        ff = acft.crz_tables.lookup(0.0, mass, 0.78, True, alt, CellField.FF)
        ff_ref = twinjet.crz_tables.lookup(0.0, mass, 0.78, True, alt, CellField.FF)
        assert acft.table_ff_corr == pytest.approx(1.05)
        assert ff == pytest.approx(ff_ref * 1.05)

        (clb,) = list(acft.clb_tables)
        (clb_ref,) = list(twinjet.clb_tables)
        assert clb.cells[1, 0, CellField.FF] == pytest.approx(clb_ref.cells[1, 0, CellField.FF] * 1.05)


class TestMalformedFiles:
    """Test that malformed files are rejected."""

    def test_minimal_file_reports_missing_fields(self) -> None:
        """Test that a file with only VERSION and ACFTTYPE lists what is missing."""
        with pytest.raises(PerfParseError) as exc_info:
            parse_aircraft_performance("VERSION 1\nACFTTYPE B738\n", "min.perf")
        err = exc_info.value
        assert "ENGTYPE" in err.missing
        assert "NUMENG" in err.missing
        assert "CL" in err.missing
        assert "ACFTTYPE" not in err.missing
        assert err.line_num is None
        assert str(err).startswith("min.perf: missing required fields")

    def test_empty_file(self) -> None:
        """Test that an empty file is rejected."""
        with pytest.raises(PerfParseError, match="missing VERSION"):
            parse_aircraft_performance("# only a comment\n\n")

    def test_version_must_come_first(self) -> None:
        """Test that VERSION has to be the first line."""
        with pytest.raises(PerfParseError, match="first line was not VERSION") as exc_info:
            parse_aircraft_performance("ACFTTYPE B738\nVERSION 1\n", "x.perf")
        assert exc_info.value.line_num == 1
        assert str(exc_info.value).startswith("x.perf:1:")

    def test_unsupported_version(self) -> None:
        """Test that only version 1 is accepted."""
        with pytest.raises(PerfParseError, match="unsupported file version 2"):
            parse_aircraft_performance("VERSION 2\n")

    def test_unknown_key(self, twinjet_text: str) -> None:
        """Test that an unknown key is rejected with its line number."""
        text = replace_line(twinjet_text, "WINGAREA 122.6", "WINGSPAN 35.8")
        with pytest.raises(PerfParseError, match="unknown line 'WINGSPAN'") as exc_info:
            parse_aircraft_performance(text)
        assert exc_info.value.line_num == twinjet_text.splitlines().index("WINGAREA 122.6") + 1

    def test_duplicate_key(self, twinjet_text: str) -> None:
        """Test that a repeated key is rejected."""
        text = replace_line(twinjet_text, "TABLEFFCORR 1", "MAXTHR 81000")
        with pytest.raises(PerfParseError, match="duplicate MAXTHR"):
            parse_aircraft_performance(text)

    @pytest.mark.parametrize("value", ["0", "-5", "abc", ""])
    def test_invalid_scalar(self, twinjet_text: str, value: str) -> None:
        """Test that non-positive or non-numeric scalars are rejected."""
        text = replace_line(twinjet_text, "SFC 0.000009", f"SFC {value}")
        with pytest.raises(PerfParseError, match="SFC"):
            parse_aircraft_performance(text)

    def test_fractional_engine_count(self, twinjet_text: str) -> None:
        """Test that NUMENG must be an integer."""
        with pytest.raises(PerfParseError, match="NUMENG"):
            parse_aircraft_performance(replace_line(twinjet_text, "NUMENG 2", "NUMENG 1.5"))

    def test_half_speed_limit(self, twinjet_text: str) -> None:
        """Test that a speed limit without its altitude is reported missing."""
        text = replace_line(twinjet_text, "REFDESSPDLIMALT 10000", "")
        with pytest.raises(PerfParseError) as exc_info:
            parse_aircraft_performance(text)
        assert exc_info.value.missing == ("REFDESSPDLIMALT",)

    def test_malformed_curve_point(self, twinjet_text: str) -> None:
        """Test that a curve point needs exactly two numbers."""
        with pytest.raises(PerfParseError, match="SFCTHRO curve: malformed point"):
            parse_aircraft_performance(replace_line(twinjet_text, "0.5,1.3", "0.5;1.3"))

    def test_curve_too_short(self, twinjet_text: str) -> None:
        """Test that a curve header must announce at least two points."""
        text = replace_line(twinjet_text, "SFCISA 3", "SFCISA 1")
        with pytest.raises(PerfParseError, match="at least 2 points"):
            parse_aircraft_performance(text)

    def test_curve_not_increasing(self, twinjet_text: str) -> None:
        """Test that curve x values must strictly increase."""
        text = replace_line(twinjet_text, "40,1.04", "-40,1.04")
        with pytest.raises(PerfParseError, match="SFCISA curve"):
            parse_aircraft_performance(text)

    def test_table_before_numeng(self) -> None:
        """Test that tables need NUMENG first to convert fuel flows."""
        text = "VERSION 1\nCRZTABLE\nISA 0\nMACH 0.78\nGWLBK 120\nFL350\nFFLB/ENG 2300\nENDTABLE\n"
        with pytest.raises(PerfParseError, match="NUMENG must precede"):
            parse_aircraft_performance(text)

    def test_table_without_end(self) -> None:
        """Test that a table block must be closed."""
        text = "VERSION 1\nNUMENG 2\nCRZTABLE\nISA 0\nMACH 0.78\nGWLBK 120\nFL350\nFFLB/ENG 2300\n"
        with pytest.raises(PerfParseError, match="missing ENDTABLE") as exc_info:
            parse_aircraft_performance(text)
        assert exc_info.value.line_num == 3

    def test_table_row_too_long(self) -> None:
        """Test that a row cannot have more values than weights."""
        text = "VERSION 1\nNUMENG 2\nCRZTABLE\nISA 0\nMACH 0.78\nGWLBK 120\nFL350\nFFLB/ENG 2300 2400\nENDTABLE\n"
        with pytest.raises(PerfParseError, match="FFLB/ENG") as exc_info:
            parse_aircraft_performance(text)
        assert exc_info.value.line_num == 8

    def test_table_field_before_altitude(self) -> None:
        """Test that field rows need an altitude row."""
        text = "VERSION 1\nNUMENG 2\nCRZTABLE\nISA 0\nMACH 0.78\nGWLBK 120\nFFLB/ENG 2300\nENDTABLE\n"
        with pytest.raises(PerfParseError, match="before altitude"):
            parse_aircraft_performance(text)

    def test_incomplete_table(self) -> None:
        """Test that a table needs ISA, speed and weights."""
        text = "VERSION 1\nNUMENG 2\nCRZTABLE\nISA 0\nENDTABLE\n"
        with pytest.raises(PerfParseError, match="incomplete table"):
            parse_aircraft_performance(text)

    def test_duplicate_table(self, twinjet_text: str) -> None:
        """Test that two tables with the same ISA and speed are rejected."""
        text = replace_line(twinjet_text, "MACH 0.74", "MACH 0.78")
        with pytest.raises(PerfParseError, match="duplicate table"):
            parse_aircraft_performance(text)

    def test_climb_table_needs_cumulative_rows(self, twinjet_text: str) -> None:
        """Test that climb tables must give TIMM and FULB on every row."""
        text = replace_line(twinjet_text, "TIMM 3.5 4.1 4.8", "")
        with pytest.raises(PerfParseError, match="clb table row at 10000 ft lacks TIMM") as exc_info:
            parse_aircraft_performance(text)
        assert exc_info.value.line_num == 128

    def test_cruise_table_needs_fuel_flow(self, twinjet_text: str) -> None:
        """Test that a cruise row without FFLB/ENG is rejected instead of burning nothing."""
        text = replace_line(twinjet_text, "FFLB/ENG 2400 2650 2950", "FPM 0 0 0")
        with pytest.raises(PerfParseError, match="crz table row at 31000 ft lacks FFLB/ENG") as exc_info:
            parse_aircraft_performance(text)
        assert exc_info.value.line_num == 143

    def test_descent_table_needs_vertical_speed(self, twinjet_text: str) -> None:
        """Test that a descent row without FPM is rejected."""
        text = replace_line(twinjet_text, "FPM -2200 -2100 -2000", "")
        with pytest.raises(PerfParseError, match="des table row at 10000 ft lacks FPM"):
            parse_aircraft_performance(text)

    def test_negative_climb_flow(self, twinjet_text: str) -> None:
        """Test that decreasing cumulative fuel in a climb table is rejected."""
        text = replace_line(twinjet_text, "FULB 1480 1720 2010", "FULB 700 1720 2010")
        with pytest.raises(PerfParseError, match="negative climb fuel flow"):
            parse_aircraft_performance(text)

    def test_errors_are_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that parse errors are logged before being raised."""
        with pytest.raises(PerfParseError):
            parse_aircraft_performance("VERSION 9\n", "bad.perf")
        assert "bad.perf" in caplog.text
