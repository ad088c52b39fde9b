from __future__ import annotations

"""
path_loss.py
============
Path loss of the Earth-Moon-Earth echo.

Total loss
----------
The primary figure is the combined radar-echo loss

    L_echo = 20 log10(f_MHz) + 40 log10(d_km) - 14.6        [dB]

with ``d`` the mean of the two station-Moon distances. The constant folds in
the (4 pi)^3 radar-equation geometry, unit conversions and the Moon's radar
cross-section ``0.07 * pi * R_moon^2``. The lunar scattering loss reported
next to it is therefore informational only: adding it to the total would
count the Moon twice.

    total = L_echo + atmospheric loss (both legs, when enabled)

Scattering models
-----------------
Two interchangeable models describe the Moon as a target:

- ``simple``: uniform reflectivity rho (0.07), RCS = rho * pi * R_moon^2.
- ``hagfors``: Hagfors' law with a frequency-banded roughness constant C
  and the bistatic angle phi = |el_tx - el_rx| / 2,

      S(phi) = (cos^4(phi) + C sin^2(phi))^(-3/2)

  and RCS = 0.07 * pi * R_moon^2 * S(phi). For C > 2 the law is peaked at
  phi = 0; with the small banded constants it rises gently until
  cos^2(phi) = C / 2.

Atmosphere
----------
Zenith attenuation is piecewise linear in frequency (clear air, after
ITU-R P.676 in spirit). The slant factor is 1/sin(el) above sin(el) = 0.1
and a Chapman-function correction below it. A Moon below the horizon adds
no atmospheric loss on that leg; the engine does not decide link validity.
"""

import math
from dataclasses import dataclass
from typing import Dict

from eme_link_budget.link_core.model import PathLossResults

SPEED_OF_LIGHT_M_S = 299792458.0
MOON_RADIUS_KM = 1737.1
LUNAR_REFLECTIVITY = 0.07

# Empirical constant of the combined echo formula.
ECHO_CONSTANT_DB = 14.6

EARTH_RADIUS_KM = 6371.0
ATMOSPHERE_SCALE_HEIGHT_KM = 8.0
# Below this sin(el) the flat-earth 1/sin slant factor is replaced.
MIN_FLAT_SLANT_SIN = 0.1


def echo_loss_db(frequency_mhz: float, distance_km: float) -> float:
    """Combined EME echo loss for a mean station-Moon distance."""
    return (
        20.0 * math.log10(frequency_mhz)
        + 40.0 * math.log10(distance_km)
        - ECHO_CONSTANT_DB
    )


def _moon_disk_area_m2() -> float:
    r_m = MOON_RADIUS_KM * 1000.0
    return math.pi * r_m * r_m


# ----- Scattering models -----

@dataclass
class ScatteringResult:
    loss_db: float
    rcs_dbsm: float
    bistatic_angle_deg: float = 0.0
    roughness: float = 0.0


class SimpleReflectivityModel:
    name = "simple"

    def __init__(self, reflectivity: float = LUNAR_REFLECTIVITY) -> None:
        self.reflectivity = reflectivity

    def rcs_m2(self) -> float:
        return self.reflectivity * _moon_disk_area_m2()

    def scatter(
        self, frequency_mhz: float, elevation_tx_deg: float, elevation_rx_deg: float
    ) -> ScatteringResult:
        rcs_dbsm = 10.0 * math.log10(self.rcs_m2())
        # The Moon acts as a gain, hence a negative loss.
        return ScatteringResult(loss_db=-rcs_dbsm, rcs_dbsm=rcs_dbsm)


def hagfors_roughness(frequency_mhz: float) -> float:
    """Frequency-banded Hagfors roughness constant C."""
    if frequency_mhz < 150.0:
        return 0.15
    if frequency_mhz < 500.0:
        return 0.10
    if frequency_mhz < 1500.0:
        return 0.07
    if frequency_mhz < 3000.0:
        return 0.05
    return 0.03


def bistatic_angle_deg(elevation_tx_deg: float, elevation_rx_deg: float) -> float:
    phi = abs(elevation_tx_deg - elevation_rx_deg) / 2.0
    return max(0.0, min(90.0, phi))


def hagfors_scattering(phi_deg: float, roughness: float) -> float:
    """Hagfors' law (cos^4 + C sin^2)^(-1.5), guarded at grazing angles."""
    phi = math.radians(phi_deg)
    cos_phi = max(math.cos(phi), 0.01)
    sin_phi = math.sin(phi)
    denom = cos_phi ** 4 + roughness * sin_phi * sin_phi
    denom = max(denom, 1e-10)
    return denom ** -1.5


class HagforsModel:
    name = "hagfors"

    def __init__(self, reflectivity: float = LUNAR_REFLECTIVITY) -> None:
        self.reflectivity = reflectivity

    def scatter(
        self, frequency_mhz: float, elevation_tx_deg: float, elevation_rx_deg: float
    ) -> ScatteringResult:
        c = hagfors_roughness(frequency_mhz)
        phi = bistatic_angle_deg(elevation_tx_deg, elevation_rx_deg)
        rcs_m2 = self.reflectivity * _moon_disk_area_m2() * hagfors_scattering(phi, c)
        rcs_dbsm = 10.0 * math.log10(rcs_m2)
        return ScatteringResult(
            loss_db=-rcs_dbsm, rcs_dbsm=rcs_dbsm, bistatic_angle_deg=phi, roughness=c
        )


SCATTERING_MODELS: Dict[str, type] = {
    SimpleReflectivityModel.name: SimpleReflectivityModel,
    HagforsModel.name: HagforsModel,
}


def get_scattering_model(name: str):
    try:
        return SCATTERING_MODELS[name]()
    except KeyError:
        raise ValueError(
            f"Unsupported scattering model '{name}'. "
            f"Use one of: {', '.join(sorted(SCATTERING_MODELS))}."
        ) from None


# ----- Atmosphere -----

class AtmosphericModel:
    """Clear-air gaseous attenuation along a slant path."""

    def zenith_attenuation_db(self, frequency_mhz: float) -> float:
        f_ghz = frequency_mhz / 1000.0
        if frequency_mhz < 100.0:
            return 0.001
        if frequency_mhz < 1000.0:
            return 0.01
        if frequency_mhz < 10000.0:
            return 0.01 + (f_ghz - 1.0) * 0.01
        if frequency_mhz < 24000.0:
            return 0.1 + (f_ghz - 10.0) * 0.02
        return 0.4 + (f_ghz - 24.0) * 0.05

    def slant_factor(self, elevation_deg: float) -> float:
        el = math.radians(elevation_deg)
        sin_el = math.sin(el)
        if sin_el >= MIN_FLAT_SLANT_SIN:
            return 1.0 / sin_el
        # Chapman grazing-incidence approximation near the horizon.
        ratio = EARTH_RADIUS_KM / ATMOSPHERE_SCALE_HEIGHT_KM
        cos_chi = math.cos(math.pi / 2.0 - el)
        return math.sqrt(ratio * ratio * cos_chi * cos_chi + 2.0 * ratio + 1.0) - ratio * cos_chi

    def slant_attenuation_db(self, frequency_mhz: float, elevation_deg: float) -> float:
        if elevation_deg < 0.0:
            return 0.0
        return self.zenith_attenuation_db(frequency_mhz) * self.slant_factor(elevation_deg)


# ----- Engine -----

class PathLossEngine:
    def __init__(self) -> None:
        self.atmosphere = AtmosphericModel()

    def atmospheric_loss_db(self, frequency_mhz: float, elevation_deg: float) -> float:
        if elevation_deg < 0.0:
            return 0.0
        return self.atmosphere.slant_attenuation_db(frequency_mhz, elevation_deg)

    def calculate(
        self,
        frequency_mhz: float,
        distance_tx_km: float,
        distance_rx_km: float,
        elevation_tx_deg: float,
        elevation_rx_deg: float,
        include_atmospheric: bool = True,
        use_hagfors: bool = True,
    ) -> PathLossResults:
        res = PathLossResults(use_hagfors_model=use_hagfors)
        res.wavelength_m = SPEED_OF_LIGHT_M_S / (frequency_mhz * 1e6)

        distance_km = (distance_tx_km + distance_rx_km) / 2.0
        res.free_space_loss_db = echo_loss_db(frequency_mhz, distance_km)

        model = get_scattering_model("hagfors" if use_hagfors else "simple")
        res.lunar_reflectivity = model.reflectivity
        scatter = model.scatter(frequency_mhz, elevation_tx_deg, elevation_rx_deg)
        # Reported only; the echo formula already accounts for the Moon.
        res.lunar_scattering_loss_db = scatter.loss_db
        res.lunar_rcs_dbsm = scatter.rcs_dbsm
        if use_hagfors:
            res.bistatic_angle_deg = scatter.bistatic_angle_deg
            res.hagfors_roughness_param = scatter.roughness
            res.hagfors_gain_db = scatter.rcs_dbsm

        if include_atmospheric:
            res.atmospheric_loss_tx_db = self.atmospheric_loss_db(frequency_mhz, elevation_tx_deg)
            res.atmospheric_loss_rx_db = self.atmospheric_loss_db(frequency_mhz, elevation_rx_deg)
            res.atmospheric_loss_total_db = (
                res.atmospheric_loss_tx_db + res.atmospheric_loss_rx_db
            )

        res.total_path_loss_db = res.free_space_loss_db + res.atmospheric_loss_total_db
        return res


__all__ = [
    "PathLossEngine",
    "AtmosphericModel",
    "SimpleReflectivityModel",
    "HagforsModel",
    "ScatteringResult",
    "SCATTERING_MODELS",
    "get_scattering_model",
    "echo_loss_db",
    "hagfors_roughness",
    "hagfors_scattering",
    "bistatic_angle_deg",
]
