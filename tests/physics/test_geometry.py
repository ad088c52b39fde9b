from __future__ import annotations
import math

import pytest
from hypothesis import given, strategies as st

from eme_link_budget.link_core.model import MoonEphemeris, SiteParameters
from eme_link_budget.physics.geometry import (
    GeometryEngine,
    doppler_shift_hz,
    gmst_deg,
    julian_date,
    spectral_spreading,
)

# Seconds since the Unix epoch at J2000.0 (JD 2451545.0).
J2000_EPOCH_S = 946728000.0


def test_julian_date_at_j2000():
    assert julian_date(J2000_EPOCH_S) == pytest.approx(2451545.0)


def test_gmst_at_j2000_is_polynomial_constant():
    assert gmst_deg(J2000_EPOCH_S) == pytest.approx(280.46061837, abs=1e-6)


@given(st.floats(min_value=0.0, max_value=4.0e9, allow_nan=False))
def test_gmst_is_normalized(t):
    g = gmst_deg(t)
    assert 0.0 <= g < 360.0


def test_hour_angle_zero_on_meridian():
    eng = GeometryEngine()
    ha = eng.calculate_hour_angle(0.0, math.radians(280.46061837), J2000_EPOCH_S)
    assert ha == pytest.approx(0.0, abs=1e-8)


def test_hour_angle_wraps_to_signed_range():
    eng = GeometryEngine()
    # LST 280.46 deg, RA 0 -> 280.46 deg wraps to -79.54 deg
    ha = eng.calculate_hour_angle(0.0, 0.0, J2000_EPOCH_S)
    assert math.degrees(ha) == pytest.approx(280.46061837 - 360.0, abs=1e-6)


@given(
    st.floats(min_value=-math.pi, max_value=math.pi, allow_nan=False),
    st.floats(min_value=0.0, max_value=2 * math.pi, allow_nan=False),
    st.floats(min_value=0.0, max_value=4.0e9, allow_nan=False),
)
def test_hour_angle_in_range(lon, ra, t):
    ha = GeometryEngine().calculate_hour_angle(lon, ra, t)
    assert -math.pi - 1e-12 < ha <= math.pi + 1e-12


def test_moon_position_equator_hour_angle_60():
    az, el = GeometryEngine().calculate_moon_position(0.0, 0.0, math.radians(60.0))
    assert math.degrees(el) == pytest.approx(30.0)
    assert math.degrees(az) == pytest.approx(90.0)


def test_moon_position_zenith():
    lat = math.radians(45.0)
    _, el = GeometryEngine().calculate_moon_position(lat, lat, 0.0)
    assert math.degrees(el) == pytest.approx(90.0)


@given(
    st.floats(min_value=-1.5, max_value=1.5, allow_nan=False),
    st.floats(min_value=-0.5, max_value=0.5, allow_nan=False),
    st.floats(min_value=-math.pi, max_value=math.pi, allow_nan=False),
)
def test_azimuth_in_range(lat, dec, ha):
    az, el = GeometryEngine().calculate_moon_position(lat, dec, ha)
    assert 0.0 <= az < 2.0 * math.pi
    assert -math.pi / 2 <= el <= math.pi / 2


def test_calculate_uses_supplied_hour_angles(equator_site, moon_30deg):
    res = GeometryEngine().calculate(equator_site, equator_site, moon_30deg, 0.0, 144.0)
    assert res.moon_elevation_tx_deg == pytest.approx(30.0)
    assert res.moon_elevation_rx_deg == pytest.approx(30.0)
    assert res.hour_angle_tx_rad == pytest.approx(math.radians(60.0))
    assert res.total_path_length_km == pytest.approx(2 * 384400.0)
    assert res.moon_ra_deg == pytest.approx(120.0)
    # No libration rates -> no spreading
    assert res.spectral_spread_hz == 0.0
    assert res.coherent_integration_limit_s == 0.0
    assert res.doppler_shift_hz == 0.0


def test_calculate_derives_hour_angles_when_both_zero(equator_site):
    moon = MoonEphemeris(right_ascension=math.radians(280.46061837), declination=0.0)
    res = GeometryEngine().calculate(equator_site, equator_site, moon, J2000_EPOCH_S)
    assert res.hour_angle_tx_rad == pytest.approx(0.0, abs=1e-8)
    assert res.moon_elevation_tx_deg == pytest.approx(90.0)


def test_calculate_uses_site_longitude_per_station():
    tx = SiteParameters(longitude=0.0)
    rx = SiteParameters(longitude=math.radians(30.0))
    moon = MoonEphemeris(right_ascension=math.radians(280.46061837))
    res = GeometryEngine().calculate(tx, rx, moon, J2000_EPOCH_S)
    assert math.degrees(res.hour_angle_rx_rad - res.hour_angle_tx_rad) == pytest.approx(30.0)


def test_spectral_spreading_formula():
    s = spectral_spreading(144.0, 384400.0, 0.2, 0.1)
    rate = math.radians(math.hypot(0.2, 0.1)) / 86400.0
    v = rate * 1737.4e3
    lam = 299792458.0 / 144e6
    spread = 2 * v / lam * math.sin(math.atan2(1737.4, 384400.0))
    assert s.libration_velocity_m_s == pytest.approx(v)
    assert s.doppler_spread_hz == pytest.approx(spread)
    if spread > 0.01:
        assert s.coherent_integration_limit_s == pytest.approx(1 / (2 * spread))
    else:
        assert s.coherent_integration_limit_s == 50.0


def test_spectral_spreading_ceiling_for_small_spread():
    s = spectral_spreading(50.0, 384400.0, 1e-6, 0.0)
    assert s.doppler_spread_hz < 0.01
    assert s.coherent_integration_limit_s == 50.0


def test_spectral_spreading_at_10ghz_limits_integration():
    s = spectral_spreading(10368.0, 384400.0, 0.3, 0.2)
    assert s.doppler_spread_hz > 0.01
    assert s.coherent_integration_limit_s == pytest.approx(1 / (2 * s.doppler_spread_hz))


def test_calculate_fills_spreading_with_libration(equator_site):
    moon = MoonEphemeris(
        hour_angle_tx=0.1, hour_angle_rx=0.1,
        libration_lon_rate_deg_day=0.3, libration_lat_rate_deg_day=0.2,
    )
    res = GeometryEngine().calculate(equator_site, equator_site, moon, 0.0, 10368.0)
    assert res.spectral_spread_hz > 0.0
    assert res.moon_angular_radius_deg == pytest.approx(
        math.degrees(math.atan2(1737.4, 384400.0))
    )


def test_doppler_shift_sign_and_scale():
    # Receding Moon lowers the frequency.
    assert doppler_shift_hz(144.0, 0.1, 0.1) == pytest.approx(-144e6 * 0.2 / 299792.458)
    assert doppler_shift_hz(144.0, 0.0, 0.0) == 0.0
