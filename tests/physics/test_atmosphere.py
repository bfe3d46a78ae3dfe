"""Tests for the ISA model and airspeed conversions."""

import pytest

from acfperf.physics.atmosphere import (
    ISA_SL_PRESS,
    ISA_SPEED_SOUND,
    Environment,
    adiabatic_heating,
    air_density,
    alt2fl,
    alt2press,
    fl2alt,
    isadev2sat,
    kcas2mach,
    kcas2ktas,
    keas2mach,
    ktas2kcas,
    mach2kcas,
    mach2keas,
    mach2ktas,
    press2alt,
    sat2isadev,
    sat2tat,
    speed_sound,
    tat2sat,
)
from acfperf.physics.units import hpa2pa


class TestPressureAltitude:
    """Test the barometric formula and flight levels."""

    def test_sea_level_pressure(self) -> None:
        """Test that altitude 0 gives the QNH."""
        assert alt2press(0, ISA_SL_PRESS) == pytest.approx(ISA_SL_PRESS)
        assert alt2press(0, hpa2pa(995)) == pytest.approx(hpa2pa(995))

    def test_pressure_at_fl180(self) -> None:
        """Test pressure at 18000 ft in the standard atmosphere."""
        assert alt2press(18000, ISA_SL_PRESS) == pytest.approx(50600, rel=2e-3)

    def test_press2alt_inverts_alt2press(self) -> None:
        """Test the round trip through pressure."""
        for alt in (-1000.0, 0.0, 5000.0, 24000.0, 41000.0):
            assert press2alt(alt2press(alt, hpa2pa(1020)), hpa2pa(1020)) == pytest.approx(alt, abs=1e-6)

    def test_flight_level_standard(self) -> None:
        """Test that at standard pressure the flight level is altitude / 100."""
        assert alt2fl(10000, ISA_SL_PRESS) == pytest.approx(100.0)

    def test_flight_level_low_qnh(self) -> None:
        """Test that a low QNH puts an altitude on a higher flight level."""
        assert alt2fl(10000, hpa2pa(990)) > 100.0
        assert alt2fl(10000, hpa2pa(1030)) < 100.0

    def test_fl2alt_inverts_alt2fl(self) -> None:
        """Test the round trip through flight level."""
        qnh = hpa2pa(1003)
        assert fl2alt(alt2fl(7500, qnh), qnh) == pytest.approx(7500, abs=1e-6)

    def test_altitude_out_of_range(self) -> None:
        """Test that absurd altitudes are rejected."""
        with pytest.raises(AssertionError):
            alt2press(-5000, ISA_SL_PRESS)


class TestTemperature:
    """Test ISA deviation and temperature relations."""

    def test_isa_temperature_fl100(self) -> None:
        """Test ISA temperature at FL100."""
        assert isadev2sat(100, 0) == pytest.approx(-4.8)
        assert isadev2sat(100, 10) == pytest.approx(5.2)

    def test_sat2isadev_inverts_isadev2sat(self) -> None:
        """Test the round trip through ISA deviation."""
        assert sat2isadev(250, isadev2sat(250, -7.5)) == pytest.approx(-7.5)

    def test_isothermal_above_tropopause(self) -> None:
        """Test that temperature stops decreasing at the tropopause."""
        assert isadev2sat(370, 0) == pytest.approx(isadev2sat(410, 0))
        assert isadev2sat(370, 0) == pytest.approx(-56.46, abs=0.01)

    def test_total_air_temperature(self) -> None:
        """Test ram temperature rise and its inverse."""
        tat = sat2tat(-54.3, 0.78)
        assert tat == pytest.approx(-27.7, abs=0.1)
        assert tat2sat(tat, 0.78) == pytest.approx(-54.3)

    def test_adiabatic_heating(self) -> None:
        """Test compression heating."""
        assert adiabatic_heating(1.0, 15.0) == pytest.approx(15.0)
        assert adiabatic_heating(2.0, 15.0) == pytest.approx(78.1, abs=0.2)


class TestAirProperties:
    """Test speed of sound and density."""

    def test_speed_of_sound_sea_level(self) -> None:
        """Test speed of sound at ISA sea level temperature."""
        assert speed_sound(15.0) == pytest.approx(ISA_SPEED_SOUND, rel=1e-4)

    def test_density_sea_level(self) -> None:
        """Test air density at ISA sea level."""
        assert air_density(ISA_SL_PRESS, 15.0) == pytest.approx(1.225, rel=1e-3)

    def test_density_falls_with_temperature(self) -> None:
        """Test that warmer air at the same pressure is less dense."""
        assert air_density(ISA_SL_PRESS, 35.0) < air_density(ISA_SL_PRESS, 15.0)


class TestAirspeedConversions:
    """Test CAS, TAS, EAS and Mach conversions."""

    def test_cas_equals_tas_at_isa_sea_level(self) -> None:
        """Test that CAS and TAS coincide at ISA sea level."""
        assert kcas2ktas(250, ISA_SL_PRESS, 15.0) == pytest.approx(250, rel=1e-4)

    def test_kcas2ktas_fl100(self) -> None:
        """Test 250 KCAS at 10000 ft ISA."""
        ktas = kcas2ktas(250, alt2press(10000, ISA_SL_PRESS), isadev2sat(100, 0))
        assert ktas == pytest.approx(288.7, abs=0.3)

    def test_mach2ktas_fl350(self) -> None:
        """Test Mach 0.78 at FL350 ISA."""
        assert mach2ktas(0.78, -54.3) == pytest.approx(449.7, abs=0.3)

    def test_tas_round_trip(self) -> None:
        """Test that ktas2kcas inverts kcas2ktas."""
        press = alt2press(25000, ISA_SL_PRESS)
        oat = isadev2sat(250, 12)
        assert ktas2kcas(kcas2ktas(290, press, oat), press, oat) == pytest.approx(290, rel=1e-9)

    def test_mach_round_trip(self) -> None:
        """Test that mach2kcas inverts kcas2mach."""
        press = alt2press(35000, ISA_SL_PRESS)
        assert kcas2mach(mach2kcas(0.78, press), press) == pytest.approx(0.78, rel=1e-9)

    def test_crossover_cas_at_fl350(self) -> None:
        """Test that M0.78 at FL350 is a plausible CAS."""
        assert 250 < mach2kcas(0.78, alt2press(35000, ISA_SL_PRESS)) < 280

    def test_equivalent_airspeed(self) -> None:
        """Test EAS at sea level and its inverse at altitude."""
        assert mach2keas(0.5, ISA_SL_PRESS) == pytest.approx(330.7, abs=0.1)
        press = alt2press(30000, ISA_SL_PRESS)
        assert keas2mach(mach2keas(0.8, press), press) == pytest.approx(0.8)


class TestEnvironment:
    """Test the Environment value object."""

    def test_defaults(self) -> None:
        """Test that the default environment is ISA."""
        env = Environment()
        assert env.isadev == 0.0
        assert env.qnh == ISA_SL_PRESS
        assert env.tp_alt == 36089.0

    def test_invalid_qnh(self) -> None:
        """Test that a non-positive QNH is rejected."""
        with pytest.raises(AssertionError):
            Environment(qnh=0.0)
