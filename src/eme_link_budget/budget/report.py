from __future__ import annotations

"""Plain-text rendering of a link-budget result."""

from typing import List

from eme_link_budget.link_core.bands import frequency_band, polarization_type, rad2deg
from eme_link_budget.link_core.model import (
    LinkBudgetParameters,
    LinkBudgetResults,
    SiteParameters,
)

RULE = "=" * 64


def _section(lines: List[str], title: str) -> None:
    lines.append("")
    lines.append(title)
    lines.append("-" * len(title))


def _site_lines(name: str, site: SiteParameters) -> List[str]:
    out = [f"{name} Station:"]
    if site.callsign:
        out.append(f"  Callsign: {site.callsign}")
    if site.grid_locator:
        out.append(f"  Grid: {site.grid_locator}")
    out.append(f"  Latitude: {rad2deg(site.latitude):.4f} deg")
    out.append(f"  Longitude: {rad2deg(site.longitude):.4f} deg")
    out.append(f"  Polarization: {polarization_type(site.chi)}")
    return out


def format_report(
    params: LinkBudgetParameters,
    results: LinkBudgetResults,
    sky_map_active: bool = False,
) -> str:
    """Render ``results`` as a multi-section text report.

    A failed calculation renders the configuration and the error only.
    """
    lines = [RULE, "  EME Link Budget", RULE]

    lines.append(
        f"Frequency: {params.frequency_mhz:g} MHz ({frequency_band(params.frequency_mhz)})"
    )
    lines.append(f"TX Power: {params.tx_power_dbm:g} dBm")
    lines.append(f"TX Gain: {params.tx_gain_dbi:g} dBi")
    lines.append(f"RX Gain: {params.rx_gain_dbi:g} dBi")
    lines.append(f"RX NF: {params.rx_noise_figure_db:g} dB")
    lines.append(f"Bandwidth: {params.bandwidth_hz:g} Hz")
    lines.append("")
    lines.extend(_site_lines("TX", params.tx_site))
    lines.extend(_site_lines("RX", params.rx_site))

    if not results.calculation_success:
        lines.append("")
        lines.append(f"Error: {results.error_message.strip()}")
        return "\n".join(lines) + "\n"

    geo = results.geometry
    _section(lines, "Geometry")
    lines.append(f"  Ephemeris: {geo.ephemeris_source}")
    lines.append(f"  Moon RA: {geo.moon_ra_deg:.2f} deg")
    lines.append(f"  Moon DEC: {geo.moon_dec_deg:.2f} deg")
    lines.append(f"  Moon Distance: {geo.moon_distance_km:.2f} km")
    lines.append(f"  TX Azimuth/Elevation: {geo.moon_azimuth_tx_deg:.2f} / "
                 f"{geo.moon_elevation_tx_deg:.2f} deg")
    lines.append(f"  RX Azimuth/Elevation: {geo.moon_azimuth_rx_deg:.2f} / "
                 f"{geo.moon_elevation_rx_deg:.2f} deg")
    lines.append(f"  Path Length: {geo.total_path_length_km:.2f} km")
    lines.append(f"  Doppler Shift: {geo.doppler_shift_hz:.2f} Hz")

    if geo.spectral_spread_hz > 0.0:
        _section(lines, "Spectral Spreading")
        lines.append(f"  Moon Angular Radius: {geo.moon_angular_radius_deg:.4f} deg")
        lines.append(f"  Libration Velocity: {geo.libration_velocity_m_s:.3f} m/s")
        lines.append(f"  Doppler Spread: {geo.spectral_spread_hz:.3f} Hz")
        lines.append(
            f"  Coherent Integration Limit: {geo.coherent_integration_limit_s:.2f} s"
        )

    loss = results.path_loss
    _section(lines, "Path Loss")
    model = "Hagfors" if loss.use_hagfors_model else "Simple reflectivity"
    lines.append(f"  Scattering Model: {model}")
    lines.append(f"  Wavelength: {loss.wavelength_m:.3f} m")
    lines.append(f"  Echo Loss: {loss.free_space_loss_db:.2f} dB")
    lines.append(f"  Lunar Scattering Loss: {loss.lunar_scattering_loss_db:.2f} dB "
                 "(included in echo loss)")
    if loss.use_hagfors_model:
        lines.append(f"  Bistatic Angle: {loss.bistatic_angle_deg:.2f} deg")
        lines.append(f"  Roughness C: {loss.hagfors_roughness_param:.2f}")
        lines.append(f"  Lunar RCS: {loss.lunar_rcs_dbsm:.2f} dBsm")
    lines.append(f"  Atmospheric Loss (TX): {loss.atmospheric_loss_tx_db:.2f} dB")
    lines.append(f"  Atmospheric Loss (RX): {loss.atmospheric_loss_rx_db:.2f} dB")
    lines.append(f"  Total Path Loss: {loss.total_path_loss_db:.2f} dB")

    pol = results.polarization
    _section(lines, "Polarization")
    lines.append(f"  Spatial Rotation: {pol.spatial_rotation_deg:.3f} deg")
    lines.append(f"  Faraday Rotation (TX): {pol.faraday_rotation_tx_deg:.3f} deg")
    lines.append(f"  Faraday Rotation (RX): {pol.faraday_rotation_rx_deg:.3f} deg")
    lines.append(f"  Total Rotation: {pol.total_rotation_deg:.3f} deg")
    lines.append(f"  PLF: {pol.plf:.6f}")
    lines.append(f"  Polarization Loss: {pol.polarization_loss_db:.2f} dB")
    lines.append(f"  Efficiency: {pol.polarization_efficiency_percent:.2f} %")

    noise = results.noise
    _section(lines, "Noise")
    lines.append(f"  Sky Model: {'408 MHz sky map' if sky_map_active else 'analytic'}")
    lines.append(f"  Sky Noise Temperature: {noise.sky_noise_temp_k:.1f} K")
    lines.append(f"  Ground Spillover: {noise.ground_spillover_temp_k:.1f} K")
    lines.append(f"  Moon Body: {noise.moon_body_temp_k:.1f} K")
    lines.append(f"  Antenna Noise: {noise.antenna_noise_temp_k:.1f} K")
    lines.append(f"  Antenna Effective: {noise.antenna_effective_temp_k:.1f} K")
    lines.append(f"  Receiver Noise: {noise.receiver_noise_temp_k:.1f} K")
    lines.append(f"  System Noise: {noise.system_noise_temp_k:.1f} K")
    lines.append(f"  Noise Power: {noise.noise_power_dbm:.2f} dBm")

    snr = results.snr
    _section(lines, "SNR")
    lines.append(f"  Received Signal Power: {snr.received_signal_power_dbm:.2f} dBm")
    lines.append(f"  SNR: {snr.snr_db:.2f} dB")
    lines.append(f"  Fading Margin: {snr.fading_margin_db:.2f} dB")
    lines.append(f"  Effective SNR: {snr.effective_snr_db:.2f} dB")
    lines.append(f"  Required SNR: {snr.required_snr_db:.2f} dB")

    lines.append("")
    lines.append(RULE)
    verdict = "VIABLE" if snr.link_viable else "NOT VIABLE"
    lines.append(f"  Link Margin: {snr.link_margin_db:.2f} dB  ->  {verdict}")
    lines.append(RULE)
    return "\n".join(lines) + "\n"


__all__ = ["format_report"]
