from __future__ import annotations

"""
geometry.py
===========
Moon geometry as seen from the two stations of an EME link.

For each station the engine turns the Moon's equatorial position
(RA, DEC) and the local hour angle into topocentric azimuth/elevation with
the usual spherical-astronomy relations:

    el = asin(sin(lat) sin(dec) + cos(lat) cos(dec) cos(H))
    az = atan2(sin(H), cos(H) sin(lat) - tan(dec) cos(lat))   in [0, 360)

When the ephemeris does not carry hour angles (both exactly zero) they are
derived from the observation time through the Julian Date and the IAU
polynomial for Greenwich Mean Sidereal Time.

Distances are geocentric. Station parallax (about 6371 km against
384400 km) is ignored; this is an approximation, not an oversight.

When libration rates are present the engine also estimates the spectral
spread of the echo and the longest useful coherent integration time.
"""

import math
from dataclasses import dataclass
from typing import Tuple

from eme_link_budget.link_core.bands import deg2rad, rad2deg
from eme_link_budget.link_core.model import (
    GeometryResults,
    MoonEphemeris,
    SiteParameters,
)

SPEED_OF_LIGHT_M_S = 299792458.0
SPEED_OF_LIGHT_KM_S = 299792.458
MOON_RADIUS_KM = 1737.4

J2000_JD = 2451545.0
UNIX_EPOCH_JD = 2440587.5

# Coherent integration ceiling when the spread is negligible.
MAX_COHERENT_INTEGRATION_S = 50.0
MIN_RESOLVABLE_SPREAD_HZ = 0.01


# ----- Sidereal time -----

def julian_date(epoch_seconds: float) -> float:
    return UNIX_EPOCH_JD + epoch_seconds / 86400.0


def gmst_deg(epoch_seconds: float) -> float:
    """Greenwich Mean Sidereal Time in degrees, normalized to [0, 360)."""
    jd = julian_date(epoch_seconds)
    t = (jd - J2000_JD) / 36525.0
    gmst = (
        280.46061837
        + 360.98564736629 * (jd - J2000_JD)
        + 0.000387933 * t * t
        - t * t * t / 38710000.0
    )
    return gmst % 360.0


def _wrap_pm180(angle_deg: float) -> float:
    """Wrap an angle in degrees to (-180, 180]."""
    while angle_deg > 180.0:
        angle_deg -= 360.0
    while angle_deg <= -180.0:
        angle_deg += 360.0
    return angle_deg


# ----- Spectral spreading -----

@dataclass
class SpreadingResult:
    doppler_spread_hz: float = 0.0
    coherent_integration_limit_s: float = 0.0
    libration_velocity_m_s: float = 0.0
    moon_angular_radius_deg: float = 0.0


def spectral_spreading(
    frequency_mhz: float,
    moon_distance_km: float,
    libration_lon_rate_deg_day: float,
    libration_lat_rate_deg_day: float,
) -> SpreadingResult:
    """Estimate libration-driven Doppler spreading of the echo.

    The apparent rotation of the lunar disk moves its limbs at
    ``v = rate * R_moon``. The two-way Doppler of a limb is ``2 v / lambda``
    and the spread seen across the disk is that value times the sine of the
    Moon's angular radius.

    Returns
    -------
    SpreadingResult
        ``coherent_integration_limit_s`` is ``1 / (2 * spread)`` when the
        spread exceeds 0.01 Hz and the fixed 50 s ceiling otherwise.
    """
    angular_radius = math.atan2(MOON_RADIUS_KM, moon_distance_km)

    lon_rate = libration_lon_rate_deg_day * math.pi / 180.0 / 86400.0
    lat_rate = libration_lat_rate_deg_day * math.pi / 180.0 / 86400.0
    rate_rad_s = math.sqrt(lon_rate * lon_rate + lat_rate * lat_rate)

    velocity_m_s = rate_rad_s * MOON_RADIUS_KM * 1000.0
    wavelength_m = SPEED_OF_LIGHT_M_S / (frequency_mhz * 1e6)
    max_doppler_hz = 2.0 * velocity_m_s / wavelength_m
    spread_hz = max_doppler_hz * math.sin(angular_radius)

    if spread_hz > MIN_RESOLVABLE_SPREAD_HZ:
        limit_s = 1.0 / (2.0 * spread_hz)
    else:
        limit_s = MAX_COHERENT_INTEGRATION_S

    return SpreadingResult(
        doppler_spread_hz=spread_hz,
        coherent_integration_limit_s=limit_s,
        libration_velocity_m_s=velocity_m_s,
        moon_angular_radius_deg=rad2deg(angular_radius),
    )


def doppler_shift_hz(
    frequency_mhz: float, velocity_tx_km_s: float, velocity_rx_km_s: float
) -> float:
    """Two-way Doppler shift; positive radial velocities mean receding."""
    total = velocity_tx_km_s + velocity_rx_km_s
    return -(frequency_mhz * 1e6) * (total / SPEED_OF_LIGHT_KM_S)


# ----- Engine -----

class GeometryEngine:
    """Moon azimuth, elevation, hour angle and path length per station."""

    def calculate_hour_angle(
        self, longitude: float, moon_ra: float, observation_time: float
    ) -> float:
        """Local hour angle in radians, normalized to (-pi, pi]."""
        lst_deg = (gmst_deg(observation_time) + rad2deg(longitude)) % 360.0
        return deg2rad(_wrap_pm180(lst_deg - rad2deg(moon_ra)))

    def calculate_moon_position(
        self, latitude: float, moon_dec: float, hour_angle: float
    ) -> Tuple[float, float]:
        """Return (azimuth, elevation) in radians, azimuth in [0, 2*pi)."""
        sin_lat, cos_lat = math.sin(latitude), math.cos(latitude)
        sin_dec, cos_dec = math.sin(moon_dec), math.cos(moon_dec)
        sin_h, cos_h = math.sin(hour_angle), math.cos(hour_angle)

        s = sin_lat * sin_dec + cos_lat * cos_dec * cos_h
        elevation = math.asin(max(-1.0, min(1.0, s)))

        azimuth = math.atan2(sin_h, cos_h * sin_lat - math.tan(moon_dec) * cos_lat)
        if azimuth < 0.0:
            azimuth += 2.0 * math.pi
        # A tiny negative angle rounds up to exactly 2*pi.
        if azimuth >= 2.0 * math.pi:
            azimuth = 0.0
        return azimuth, elevation

    def calculate_distance(self, site: SiteParameters, moon: MoonEphemeris) -> float:
        # Geocentric distance stands in for the topocentric one.
        return moon.distance_km

    def calculate(
        self,
        tx_site: SiteParameters,
        rx_site: SiteParameters,
        moon: MoonEphemeris,
        observation_time: float,
        frequency_mhz: float = 432.0,
    ) -> GeometryResults:
        res = GeometryResults(
            moon_ra_deg=rad2deg(moon.right_ascension),
            moon_dec_deg=rad2deg(moon.declination),
            moon_distance_km=moon.distance_km,
            ephemeris_source=moon.ephemeris_source,
        )

        ha_tx, ha_rx = moon.hour_angle_tx, moon.hour_angle_rx
        if ha_tx == 0.0 and ha_rx == 0.0:
            ha_tx = self.calculate_hour_angle(
                tx_site.longitude, moon.right_ascension, observation_time
            )
            ha_rx = self.calculate_hour_angle(
                rx_site.longitude, moon.right_ascension, observation_time
            )
        res.hour_angle_tx_rad = ha_tx
        res.hour_angle_rx_rad = ha_rx

        az, el = self.calculate_moon_position(tx_site.latitude, moon.declination, ha_tx)
        res.moon_azimuth_tx_deg = rad2deg(az)
        res.moon_elevation_tx_deg = rad2deg(el)

        az, el = self.calculate_moon_position(rx_site.latitude, moon.declination, ha_rx)
        res.moon_azimuth_rx_deg = rad2deg(az)
        res.moon_elevation_rx_deg = rad2deg(el)

        res.distance_tx_km = self.calculate_distance(tx_site, moon)
        res.distance_rx_km = self.calculate_distance(rx_site, moon)
        res.total_path_length_km = res.distance_tx_km + res.distance_rx_km

        if moon.libration_lon_rate_deg_day != 0.0 or moon.libration_lat_rate_deg_day != 0.0:
            spread = spectral_spreading(
                frequency_mhz,
                moon.distance_km,
                moon.libration_lon_rate_deg_day,
                moon.libration_lat_rate_deg_day,
            )
            res.spectral_spread_hz = spread.doppler_spread_hz
            res.coherent_integration_limit_s = spread.coherent_integration_limit_s
            res.libration_velocity_m_s = spread.libration_velocity_m_s
            res.moon_angular_radius_deg = spread.moon_angular_radius_deg

        return res


__all__ = [
    "GeometryEngine",
    "SpreadingResult",
    "spectral_spreading",
    "doppler_shift_hz",
    "julian_date",
    "gmst_deg",
]
