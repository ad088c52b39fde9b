from __future__ import annotations
from dataclasses import replace

from eme_link_budget.budget.orchestrator import LinkBudget
from eme_link_budget.budget.polarization import (
    FAILURE_LOSS_DB,
    IdealPolarization,
    is_failure,
    polarization_failure,
)
from eme_link_budget.budget.report import format_report
from eme_link_budget.link_core.model import GeometryResults, PolarizationResults


def test_report_sections_for_successful_run(params_144):
    res = LinkBudget(params_144).calculate()
    text = format_report(params_144, res)
    for heading in ("Geometry", "Path Loss", "Polarization", "Noise", "SNR"):
        assert f"\n{heading}\n" in text
    assert "Frequency: 144 MHz (2m)" in text
    assert "Scattering Model: Hagfors" in text
    assert "Roughness C: 0.15" in text
    assert "Sky Model: analytic" in text
    assert "Link Margin:" in text
    # no libration rates -> no spreading section
    assert "Spectral Spreading" not in text


def test_report_names_simple_model_and_map(params_144):
    params = replace(params_144, use_hagfors_model=False)
    res = LinkBudget(params).calculate()
    text = format_report(params, res, sky_map_active=True)
    assert "Scattering Model: Simple reflectivity" in text
    assert "Roughness C" not in text
    assert "Sky Model: 408 MHz sky map" in text


def test_report_spreading_section(params_144):
    moon = replace(
        params_144.moon_ephemeris,
        libration_lon_rate_deg_day=0.3,
        libration_lat_rate_deg_day=0.2,
    )
    params = replace(params_144, frequency_mhz=10368.0, moon_ephemeris=moon)
    text = format_report(params, LinkBudget(params).calculate())
    assert "Spectral Spreading" in text
    assert "Coherent Integration Limit:" in text
    assert "(3cm)" in text


def test_report_verdict(params_144):
    res = LinkBudget(params_144).calculate()
    verdict = "VIABLE" if res.snr.link_viable else "NOT VIABLE"
    assert f"->  {verdict}" in format_report(params_144, res)


def test_report_for_failed_run(params_144):
    params = replace(params_144, bandwidth_hz=0.0)
    text = format_report(params, LinkBudget(params).calculate())
    assert "Error: Invalid bandwidth: 0 Hz." in text
    assert "Path Loss" not in text


def test_station_block(params_144):
    text = format_report(params_144, LinkBudget(params_144).calculate())
    assert "TX Station:" in text
    assert "Callsign: EQ0" in text
    assert "Polarization: Linear" in text


# ----- polarization contract -----


def test_failure_sentinel():
    r = polarization_failure()
    assert r.plf == 0.0
    assert r.polarization_loss_db == FAILURE_LOSS_DB
    assert is_failure(r)
    assert not is_failure(PolarizationResults())


def test_ideal_polarization(params_144):
    r = IdealPolarization().calculate(params_144, GeometryResults())
    assert r.plf == 1.0
    assert r.polarization_loss_db == 0.0
    assert r.polarization_efficiency_percent == 100.0
