from __future__ import annotations
import math
from pathlib import Path

import numpy as np
import pytest
from astropy.io import fits

from eme_link_budget.link_core.model import (
    LinkBudgetParameters,
    MoonEphemeris,
    SiteParameters,
)

# ---------- Shared fixtures ----------


@pytest.fixture
def equator_site() -> SiteParameters:
    """Station on the equator at Greenwich."""
    return SiteParameters(latitude=0.0, longitude=0.0, callsign="EQ0")


@pytest.fixture
def moon_30deg() -> MoonEphemeris:
    """Moon on the celestial equator, hour angle 60 deg: 30 deg up from the equator."""
    return MoonEphemeris(
        right_ascension=math.radians(120.0),
        declination=0.0,
        distance_km=384400.0,
        hour_angle_tx=math.radians(60.0),
        hour_angle_rx=math.radians(60.0),
    )


@pytest.fixture
def params_144(equator_site, moon_30deg) -> LinkBudgetParameters:
    """Reference 2 m scenario: 50 dBm, 20/20 dBi, 0.5 dB feedlines, NF 0.5 dB."""
    return LinkBudgetParameters(
        tx_site=equator_site,
        rx_site=equator_site,
        frequency_mhz=144.0,
        bandwidth_hz=2500.0,
        tx_power_dbm=50.0,
        tx_gain_dbi=20.0,
        rx_gain_dbi=20.0,
        tx_feedline_loss_db=0.5,
        rx_feedline_loss_db=0.5,
        rx_noise_figure_db=0.5,
        moon_ephemeris=moon_30deg,
    )


@pytest.fixture
def write_healpix_fits(tmp_path: Path):
    """Write a HEALPix map as a primary HDU plus a BINTABLE extension.

    ``values_mk`` are milli-Kelvin stored as big-endian int16, one per NESTED
    pixel. ``nside=None`` omits the NSIDE card.
    """

    def _writer(values_mk, nside=1, name="sky.fits") -> Path:
        data = np.asarray(values_mk, dtype=np.int16)
        col = fits.Column(name="TEMPERATURE", format="I", array=data)
        table = fits.BinTableHDU.from_columns([col])
        if nside is not None:
            table.header["NSIDE"] = nside
        table.header["ORDERING"] = "NESTED"
        path = tmp_path / name
        fits.HDUList([fits.PrimaryHDU(), table]).writeto(path, overwrite=True)
        return path

    return _writer

