from __future__ import annotations

"""
ephemeris.py
============
Local Moon ephemeris on top of astropy's built-in solar-system ephemeris.

No network access is needed: ``get_body("moon")`` uses the analytic lunar
theory shipped with astropy/ERFA. RA/DEC are geocentric (GCRS) and the range
rate comes from a central difference of the distance over +/-30 s. Hour
angles are left at zero so the geometry engine derives them from the
observation time.
"""

from typing import Union

import astropy.units as u
from astropy.coordinates import get_body
from astropy.time import Time, TimeDelta

from eme_link_budget.link_core.model import MoonEphemeris

ASTROPY_SOURCE = "astropy"
RANGE_RATE_STEP_S = 30.0


def to_time(when: Union[float, int, str, Time]) -> Time:
    """Epoch seconds (UTC), an ISO-8601 string or a Time -> astropy Time."""
    if isinstance(when, Time):
        return when
    if isinstance(when, str):
        return Time(when, scale="utc")
    return Time(float(when), format="unix", scale="utc")


def to_epoch_seconds(when: Union[float, int, str, Time]) -> float:
    return float(to_time(when).unix)


def _moon_distance_km(t: Time) -> float:
    return float(get_body("moon", t).distance.to(u.km).value)


def moon_ephemeris_at(when: Union[float, int, str, Time]) -> MoonEphemeris:
    """Moon position and range rate at ``when``."""
    t = to_time(when)
    moon = get_body("moon", t)

    step = TimeDelta(RANGE_RATE_STEP_S, format="sec")
    d_plus = _moon_distance_km(t + step)
    d_minus = _moon_distance_km(t - step)
    range_rate = (d_plus - d_minus) / (2.0 * RANGE_RATE_STEP_S)

    return MoonEphemeris(
        right_ascension=float(moon.ra.to(u.rad).value),
        declination=float(moon.dec.to(u.rad).value),
        distance_km=float(moon.distance.to(u.km).value),
        range_rate_km_s=range_rate,
        ephemeris_source=ASTROPY_SOURCE,
    )


__all__ = ["moon_ephemeris_at", "to_time", "to_epoch_seconds", "ASTROPY_SOURCE"]
