from __future__ import annotations

"""
noise.py
========
System noise temperature and noise power of the receiving station.

    T_ant = T_sky + T_spill + T_moon
    T_eff = T_ant / L + T_phys (1 - 1/L)          L = 10^(feedline_dB / 10)
    T_rx  = 290 (10^(NF_dB / 10) - 1)
    T_sys = T_eff + T_rx
    P_n   = k_B T_sys B

Sky temperature
---------------
The 408 MHz brightness toward the Moon is read from a ``SkyMapIndex`` when
one is supplied and loaded; otherwise a crude galactic-latitude estimate
picks a value between the cold (20 K) and warm (150 K) sky. Either way the
temperature is scaled to the operating frequency with the synchrotron
spectral index -2.55.

Ground spillover
----------------
The main beam (HPBW ~ 70 deg / sqrt(G)) is sampled at 36 points across
three beamwidths around the pointing elevation with a cos^2 pattern; the
weighted share of samples below the horizon, averaged over the samples,
scales the physical temperature. High above the horizon only a 2% floor
remains, and below the horizon the antenna sees the full ground.
"""

import logging
import math
from typing import Optional

import numpy as np

from eme_link_budget.link_core.model import NoiseResults
from eme_link_budget.sky.fits_map import SkyMapIndex

log = logging.getLogger(__name__)

BOLTZMANN_CONSTANT = 1.38064852e-23  # J/K
REFERENCE_TEMP_K = 290.0

SKY_REFERENCE_MHZ = 408.0
T_SKY_408_COLD = 20.0
T_SKY_408_WARM = 150.0
SPECTRAL_INDEX = -2.55

MOON_BODY_TEMP_K = 1.0

BEAMWIDTH_CONSTANT_DEG = 70.0
SPILLOVER_SAMPLES = 36
SPILLOVER_FLOOR = 0.02


def scale_sky_temperature(t408_k: float, frequency_mhz: float) -> float:
    return t408_k * (frequency_mhz / SKY_REFERENCE_MHZ) ** SPECTRAL_INDEX


class SkyNoiseModel:
    """Sky brightness toward a sky position, map-aware with analytic fallback.

    The sky map is borrowed: the caller loads it, keeps it alive for as long
    as the model is used and unloads it afterwards.
    """

    def __init__(self, sky_map: Optional[SkyMapIndex] = None) -> None:
        self.sky_map = sky_map

    @property
    def map_loaded(self) -> bool:
        return self.sky_map is not None and self.sky_map.is_loaded

    @staticmethod
    def estimate_galactic_latitude(ra_deg: float, dec_deg: float) -> float:
        # |DEC| as a stand-in, halved near the galactic centre.
        lat = abs(dec_deg)
        if 240.0 < ra_deg < 300.0:
            lat *= 0.5
        return lat

    @staticmethod
    def reference_temperature(galactic_lat_deg: float) -> float:
        if galactic_lat_deg > 60.0:
            return T_SKY_408_COLD
        if galactic_lat_deg < 20.0:
            return T_SKY_408_WARM
        factor = (galactic_lat_deg - 20.0) / 40.0
        return T_SKY_408_WARM + factor * (T_SKY_408_COLD - T_SKY_408_WARM)

    def analytic_temperature(
        self, frequency_mhz: float, ra_deg: float, dec_deg: float
    ) -> float:
        t408 = self.reference_temperature(self.estimate_galactic_latitude(ra_deg, dec_deg))
        return scale_sky_temperature(t408, frequency_mhz)

    def sky_temperature(self, frequency_mhz: float, ra_deg: float, dec_deg: float) -> float:
        if self.map_loaded:
            t408 = self.sky_map.get_temperature(ra_deg, dec_deg)
            if t408 > 0.0:
                return scale_sky_temperature(t408, frequency_mhz)
            log.debug(
                "Sky map has no positive value at RA=%.2f DEC=%.2f; using analytic sky",
                ra_deg, dec_deg,
            )
        return self.analytic_temperature(frequency_mhz, ra_deg, dec_deg)


def beamwidth_deg(gain_dbi: float) -> float:
    """Approximate half-power beamwidth of an antenna with gain ``gain_dbi``."""
    return BEAMWIDTH_CONSTANT_DEG / math.sqrt(10.0 ** (gain_dbi / 10.0))


def ground_spillover_temp(
    elevation_deg: float, gain_dbi: float, physical_temp_k: float
) -> float:
    if elevation_deg < 0.0:
        return physical_temp_k

    bw = beamwidth_deg(gain_dbi)
    if elevation_deg >= 1.5 * bw:
        return SPILLOVER_FLOOR * physical_temp_k

    span = 3.0 * bw
    step = span / SPILLOVER_SAMPLES
    offsets = -1.5 * bw + (np.arange(SPILLOVER_SAMPLES) + 0.5) * step
    weights = np.cos(np.pi * offsets / span) ** 2
    below = (elevation_deg + offsets) < 0.0
    fraction = float(np.sum(weights[below])) / SPILLOVER_SAMPLES
    return physical_temp_k * fraction


class NoiseEngine:
    def __init__(self, sky_map: Optional[SkyMapIndex] = None) -> None:
        self.sky_model = SkyNoiseModel(sky_map)

    @property
    def sky_map_active(self) -> bool:
        return self.sky_model.map_loaded

    def calculate_sky_noise_temp(self, frequency_mhz, moon_ra_deg, moon_dec_deg):
        return self.sky_model.sky_temperature(frequency_mhz, moon_ra_deg, moon_dec_deg)

    def calculate_ground_spillover_temp(self, elevation_deg, gain_dbi, physical_temp_k):
        return ground_spillover_temp(elevation_deg, gain_dbi, physical_temp_k)

    def calculate_moon_body_temp(self) -> float:
        # The lunar disk fills a negligible part of a typical EME beam.
        return MOON_BODY_TEMP_K

    @staticmethod
    def calculate_antenna_effective_temp(
        antenna_temp_k: float, feedline_loss_db: float, physical_temp_k: float
    ) -> float:
        loss = 10.0 ** (feedline_loss_db / 10.0)
        return antenna_temp_k / loss + physical_temp_k * (1.0 - 1.0 / loss)

    @staticmethod
    def calculate_receiver_noise_temp(noise_figure_db: float) -> float:
        return REFERENCE_TEMP_K * (10.0 ** (noise_figure_db / 10.0) - 1.0)

    @staticmethod
    def calculate_noise_power(system_temp_k: float, bandwidth_hz: float) -> float:
        return BOLTZMANN_CONSTANT * system_temp_k * bandwidth_hz

    def calculate(
        self,
        frequency_mhz: float,
        bandwidth_hz: float,
        rx_gain_dbi: float,
        feedline_loss_db: float,
        noise_figure_db: float,
        elevation_deg: float,
        moon_ra_deg: float,
        moon_dec_deg: float,
        physical_temp_k: float = REFERENCE_TEMP_K,
        include_ground_spillover: bool = True,
    ) -> NoiseResults:
        res = NoiseResults()
        res.sky_noise_temp_k = self.calculate_sky_noise_temp(
            frequency_mhz, moon_ra_deg, moon_dec_deg
        )
        if include_ground_spillover:
            res.ground_spillover_temp_k = self.calculate_ground_spillover_temp(
                elevation_deg, rx_gain_dbi, physical_temp_k
            )
        res.moon_body_temp_k = self.calculate_moon_body_temp()

        res.antenna_noise_temp_k = (
            res.sky_noise_temp_k + res.ground_spillover_temp_k + res.moon_body_temp_k
        )
        res.antenna_effective_temp_k = self.calculate_antenna_effective_temp(
            res.antenna_noise_temp_k, feedline_loss_db, physical_temp_k
        )
        res.receiver_noise_temp_k = self.calculate_receiver_noise_temp(noise_figure_db)
        res.system_noise_temp_k = res.antenna_effective_temp_k + res.receiver_noise_temp_k

        res.noise_power_w = self.calculate_noise_power(res.system_noise_temp_k, bandwidth_hz)
        res.noise_power_dbm = 10.0 * math.log10(res.noise_power_w * 1000.0)
        return res


__all__ = [
    "NoiseEngine",
    "SkyNoiseModel",
    "beamwidth_deg",
    "ground_spillover_temp",
    "scale_sky_temperature",
    "BOLTZMANN_CONSTANT",
]
