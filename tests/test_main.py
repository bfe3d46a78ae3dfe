"""Tests for the command line entry point."""

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from acfperf.main import EXIT_ERROR, EXIT_NO_SOLUTION, EXIT_OK, main, parse_args
from acfperf.performance import drivers


def run_main(argv: list[str]) -> int:
    """Run main() with logs written to a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        with patch("acfperf.core.logging_system.get_platform_log_dir", return_value=Path(tmpdir)):
            return main(argv)


class TestParseArgs:
    """Test command line parsing."""

    def test_global_options(self) -> None:
        """Test options placed before the subcommand."""
        args = parse_args(["--isadev", "10", "--qnh", "1003", "a.perf", "info"])
        assert args.perf_file == "a.perf"
        assert args.command == "info"
        assert args.isadev == 10.0
        assert args.qnh == 1003.0
        assert not args.debug

    def test_climb_defaults(self) -> None:
        """Test the climb subcommand defaults."""
        args = parse_args(["a.perf", "climb"])
        assert args.from_alt == 0.0
        assert args.from_kcas is None
        assert args.type == "accel_takeoff"

    def test_cruise_requires_distance(self) -> None:
        """Test that a cruise leg needs its length."""
        with pytest.raises(SystemExit):
            parse_args(["a.perf", "cruise", "--mach", "0.78"])

    def test_cruise_speed_exclusive(self) -> None:
        """Test that Mach and CAS cannot both be given."""
        with pytest.raises(SystemExit):
            parse_args(["a.perf", "cruise", "--mach", "0.78", "--kcas", "270", "--dist", "100"])


class TestCommands:
    """Test running each subcommand on the twinjet."""

    def test_info(self, twinjet_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test the aircraft summary."""
        assert run_main([str(twinjet_path), "info"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "TWJT" in out
        assert "FL350" in out
        assert "1 climb, 2 cruise, 1 descent" in out

    def test_climb(self, twinjet_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test a takeoff climb to 10000 ft."""
        code = run_main([str(twinjet_path), "climb", "--to-alt", "10000", "--to-kcas", "280"])
        assert code == EXIT_OK
        assert "NM" in capsys.readouterr().out

    def test_cruise(self, twinjet_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test a cruise leg at the reference level and Mach."""
        assert run_main([str(twinjet_path), "cruise", "--dist", "200"]) == EXIT_OK
        assert "M0.78" in capsys.readouterr().out

    def test_descent(self, twinjet_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test a descent leg to 10000 ft."""
        code = run_main([str(twinjet_path), "descent", "--to-alt", "10000", "--dist", "100"])
        assert code == EXIT_OK
        assert "Descent 35000 -> 10000 ft" in capsys.readouterr().out

    def test_decel(self, twinjet_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test a level deceleration."""
        code = run_main([str(twinjet_path), "decel", "--from-kcas", "280", "--to-kcas", "250"])
        assert code == EXIT_OK
        assert "Decel 280 -> 250 kt" in capsys.readouterr().out

    def test_scenario_file(self, twinjet_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a scenario file adjusts the environment and the flight."""
        with tempfile.TemporaryDirectory() as tmpdir:
            scenario = Path(tmpdir) / "scenario.yaml"
            scenario.write_text("environment:\n  isadev: 15\nflight:\n  fuel_kg: 7000\n")
            assert run_main(["--config", str(scenario), str(twinjet_path), "info"]) == EXIT_OK

        out = capsys.readouterr().out
        assert "ISA+15" in out
        assert "7000 kg" in out

    def test_no_solution(
        self, twinjet_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test the exit code of a driver hitting its step cap."""
        monkeypatch.setattr(drivers, "MAX_ITER_STEPS", 3)
        assert run_main([str(twinjet_path), "cruise", "--dist", "200"]) == EXIT_NO_SOLUTION
        assert "No solution" in capsys.readouterr().err


class TestErrors:
    """Test error reporting."""

    def test_missing_perf_file(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test a performance file that does not exist."""
        assert run_main(["/nonexistent/acft.perf", "info"]) == EXIT_ERROR
        assert "Error" in capsys.readouterr().err

    def test_malformed_perf_file(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test a performance file that does not parse."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "bad.perf"
            path.write_text("ACFTTYPE TWJT\n")
            assert run_main([str(path), "info"]) == EXIT_ERROR
        assert "bad.perf" in capsys.readouterr().err

    def test_missing_scenario_file(self, twinjet_path: Path) -> None:
        """Test a scenario file that does not exist."""
        assert run_main(["--config", "/nonexistent/scenario.yaml", str(twinjet_path), "info"]) == EXIT_ERROR
