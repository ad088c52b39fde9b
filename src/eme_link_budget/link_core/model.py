from __future__ import annotations

"""
model.py
========
Data models shared across the EME link-budget pipeline.

Inputs (stations, ephemeris, ionosphere, parameters) are frozen: they are
built once per run and never mutated during ``calculate()``. Result records
are plain dataclasses filled by the engines and aggregated by the
orchestrator.

Units are carried in the field names. Angles on input records are radians,
angles on result records are degrees unless the suffix says otherwise.
"""

from dataclasses import dataclass, field
from typing import Optional


# A ground station taking part in the link.
@dataclass(frozen=True)
class SiteParameters:
    # Geodetic latitude in radians (south negative).
    latitude: float = 0.0
    # Longitude in radians (east positive).
    longitude: float = 0.0
    # Polarization orientation angle psi in radians.
    psi: float = 0.0
    # Polarization ellipticity angle chi in radians (0 = linear).
    chi: float = 0.0
    # Maidenhead grid locator, informational only.
    grid_locator: str = ""
    callsign: str = ""


# Moon position as delivered by an ephemeris provider.
@dataclass(frozen=True)
class MoonEphemeris:
    right_ascension: float = 0.0  # rad
    declination: float = 0.0  # rad
    # Geocentric distance; normally within perigee/apogee [356000, 406000].
    distance_km: float = 384400.0
    # Hour angles per station. Both exactly zero means "not supplied".
    hour_angle_tx: float = 0.0  # rad
    hour_angle_rx: float = 0.0  # rad
    range_rate_km_s: float = 0.0
    libration_lon_rate_deg_day: float = 0.0
    libration_lat_rate_deg_day: float = 0.0
    ephemeris_source: str = "Manual"


# Ionosphere and geomagnetic inputs consumed by the polarization service.
@dataclass(frozen=True)
class IonosphereData:
    vtec_tx: float = 25.0  # TECU
    vtec_rx: float = 25.0  # TECU
    hmf2_tx_km: float = 350.0
    hmf2_rx_km: float = 350.0
    b_magnitude_tx: float = 5.0e-5  # Tesla
    b_magnitude_rx: float = 5.0e-5  # Tesla
    b_inclination_tx: float = 0.0  # rad
    b_inclination_rx: float = 0.0  # rad
    b_declination_tx: float = 0.0  # rad
    b_declination_rx: float = 0.0  # rad
    data_source: str = "Typical Values"


@dataclass(frozen=True)
class LinkBudgetParameters:
    """Complete configuration of one link-budget calculation.

    Defaults describe a typical 2 m (144 MHz) station pair: 100 W into a
    20 dBi Yagi array at both ends, 0.5 dB feedline, 0.5 dB LNA noise
    figure and a 2.5 kHz detection bandwidth.
    """

    tx_site: SiteParameters = field(default_factory=SiteParameters)
    rx_site: SiteParameters = field(default_factory=SiteParameters)

    frequency_mhz: float = 144.0
    bandwidth_hz: float = 2500.0
    tx_power_dbm: float = 50.0
    tx_gain_dbi: float = 20.0
    rx_gain_dbi: float = 20.0
    tx_feedline_loss_db: float = 0.5
    rx_feedline_loss_db: float = 0.5
    rx_noise_figure_db: float = 0.5
    physical_temp_k: float = 290.0

    # Seconds since the Unix epoch (UTC).
    observation_time: float = 0.0

    ionosphere: IonosphereData = field(default_factory=IonosphereData)
    moon_ephemeris: MoonEphemeris = field(default_factory=MoonEphemeris)

    include_faraday_rotation: bool = True
    include_spatial_rotation: bool = True
    include_moon_reflection: bool = True
    include_atmospheric_loss: bool = True
    include_ground_spillover: bool = True
    use_hagfors_model: bool = True

    # Decode floor of Q65 with a-priori decoding.
    required_snr_db: float = -30.2
    # None selects the plain libration margin, a percentage the
    # reliability-adjusted one.
    fading_reliability_percent: Optional[float] = None

    @property
    def scattering_model(self) -> str:
        return "hagfors" if self.use_hagfors_model else "simple"


@dataclass
class GeometryResults:
    distance_tx_km: float = 0.0
    distance_rx_km: float = 0.0
    total_path_length_km: float = 0.0
    # Reserved: range-rate Doppler is not folded into the geometry yet.
    doppler_shift_hz: float = 0.0
    moon_ra_deg: float = 0.0
    moon_dec_deg: float = 0.0
    moon_azimuth_tx_deg: float = 0.0
    moon_elevation_tx_deg: float = 0.0
    moon_azimuth_rx_deg: float = 0.0
    moon_elevation_rx_deg: float = 0.0
    moon_distance_km: float = 384400.0
    hour_angle_tx_rad: float = 0.0
    hour_angle_rx_rad: float = 0.0
    spectral_spread_hz: float = 0.0
    coherent_integration_limit_s: float = 0.0
    libration_velocity_m_s: float = 0.0
    moon_angular_radius_deg: float = 0.0
    ephemeris_source: str = "Manual"


@dataclass
class PathLossResults:
    # Combined EME echo loss (free space both ways plus Moon RCS).
    free_space_loss_db: float = 0.0
    # Informational; already contained in free_space_loss_db.
    lunar_scattering_loss_db: float = 51.5
    atmospheric_loss_tx_db: float = 0.0
    atmospheric_loss_rx_db: float = 0.0
    atmospheric_loss_total_db: float = 0.0
    total_path_loss_db: float = 0.0
    wavelength_m: float = 0.0
    lunar_reflectivity: float = 0.07
    bistatic_angle_deg: float = 0.0
    hagfors_roughness_param: float = 0.0
    lunar_rcs_dbsm: float = 0.0
    hagfors_gain_db: float = 0.0
    use_hagfors_model: bool = True


@dataclass
class PolarizationResults:
    spatial_rotation_deg: float = 0.0
    faraday_rotation_tx_deg: float = 0.0
    faraday_rotation_rx_deg: float = 0.0
    total_rotation_deg: float = 0.0
    plf: float = 1.0
    polarization_loss_db: float = 0.0
    polarization_efficiency_percent: float = 100.0
    parallactic_angle_tx_deg: float = 0.0
    parallactic_angle_rx_deg: float = 0.0
    slant_factor_tx: float = 1.0
    slant_factor_rx: float = 1.0


@dataclass
class NoiseResults:
    sky_noise_temp_k: float = 0.0
    ground_spillover_temp_k: float = 0.0
    moon_body_temp_k: float = 0.0
    antenna_noise_temp_k: float = 0.0
    antenna_effective_temp_k: float = 0.0
    receiver_noise_temp_k: float = 0.0
    system_noise_temp_k: float = 0.0
    noise_power_dbm: float = 0.0
    noise_power_w: float = 0.0


@dataclass
class SNRResults:
    received_signal_power_dbm: float = 0.0
    received_signal_power_w: float = 0.0
    snr_db: float = 0.0
    fading_margin_db: float = 3.0
    effective_snr_db: float = 0.0
    required_snr_db: float = -30.2
    link_margin_db: float = 0.0
    link_viable: bool = False


@dataclass
class LinkBudgetResults:
    geometry: GeometryResults = field(default_factory=GeometryResults)
    path_loss: PathLossResults = field(default_factory=PathLossResults)
    polarization: PolarizationResults = field(default_factory=PolarizationResults)
    noise: NoiseResults = field(default_factory=NoiseResults)
    snr: SNRResults = field(default_factory=SNRResults)

    total_loss_db: float = 0.0
    calculation_success: bool = False
    error_message: str = ""
    # Seconds since the Unix epoch when the result was stamped.
    calculation_time: float = 0.0


__all__ = [
    "SiteParameters",
    "MoonEphemeris",
    "IonosphereData",
    "LinkBudgetParameters",
    "GeometryResults",
    "PathLossResults",
    "PolarizationResults",
    "NoiseResults",
    "SNRResults",
    "LinkBudgetResults",
]
