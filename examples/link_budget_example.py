"""
link_budget_example.py
======================

Purpose
-------
Minimal example showing how to build `LinkBudgetParameters` in code, run the
link budget and read the results, without any configuration file.

What this example does
----------------------
1) Describes two 2 m stations and a Moon 30 degrees up at both ends.
2) Runs the budget with the analytic sky model (no sky map).
3) Prints the full report, then compares both scattering models.

Usage
-----
Run the example:

    python examples/link_budget_example.py

Pass a Haslam 408 MHz HEALPix FITS file as first argument to use the
map-aware sky temperature instead.
"""

import math
import sys
from dataclasses import replace

from eme_link_budget.budget.orchestrator import LinkBudget
from eme_link_budget.budget.report import format_report
from eme_link_budget.link_core.model import (
    LinkBudgetParameters,
    MoonEphemeris,
    SiteParameters,
)
from eme_link_budget.sky.fits_map import SkyMapIndex

# 1) Stations on the equator; the Moon on the celestial equator at an hour
#    angle of 60 degrees sits 30 degrees above both horizons.
site = SiteParameters(callsign="TEST", latitude=0.0, longitude=0.0)
moon = MoonEphemeris(
    right_ascension=math.radians(120.0),
    declination=0.0,
    distance_km=384400.0,
    hour_angle_tx=math.radians(60.0),
    hour_angle_rx=math.radians(60.0),
)
params = LinkBudgetParameters(tx_site=site, rx_site=site, moon_ephemeris=moon)

# 2) Optional sky map.
with SkyMapIndex() as sky:
    if len(sys.argv) > 1 and not sky.load_fits(sys.argv[1]):
        print(f"Cannot load {sys.argv[1]}, using the analytic sky model")

    budget = LinkBudget(params, sky_map=sky)
    results = budget.calculate()
    print(format_report(params, results, sky_map_active=budget.sky_map_active))

    # 3) Same link with the simple reflectivity model.
    budget.set_parameters(replace(params, use_hagfors_model=False))
    simple = budget.calculate()

print(
    f"Margin (Hagfors): {results.snr.link_margin_db:.2f} dB, "
    f"margin (simple): {simple.snr.link_margin_db:.2f} dB"
)
