from __future__ import annotations

"""
orchestrator.py
===============
Top-level EME link budget.

``LinkBudget.calculate()`` validates the parameters, then runs

    geometry -> path loss -> polarization service -> noise -> SNR

and folds everything into a fresh ``LinkBudgetResults``. It never raises:
rejected parameters and numeric failures come back as
``calculation_success=False`` with a readable ``error_message``.

States: ``"unvalidated"`` until a calculation passes validation and
completes, ``"computed"`` afterwards. A later rejected or failed call
returns to ``"unvalidated"``.
"""

import logging
import time
from typing import Optional

from eme_link_budget.budget.polarization import (
    IdealPolarization,
    PolarizationService,
    is_failure,
)
from eme_link_budget.link_core.model import (
    GeometryResults,
    LinkBudgetParameters,
    LinkBudgetResults,
    NoiseResults,
    PathLossResults,
    PolarizationResults,
    SNRResults,
)
from eme_link_budget.physics.geometry import GeometryEngine
from eme_link_budget.physics.noise import NoiseEngine
from eme_link_budget.physics.path_loss import PathLossEngine
from eme_link_budget.physics.snr import FadingMargin, SNREngine
from eme_link_budget.sky.fits_map import SkyMapIndex

log = logging.getLogger(__name__)

STATE_UNVALIDATED = "unvalidated"
STATE_COMPUTED = "computed"

# Plausible hardware ranges; outside them the inputs are most likely typos.
TX_POWER_RANGE_DBM = (-50.0, 100.0)
GAIN_RANGE_DBI = (0.0, 50.0)
NOISE_FIGURE_RANGE_DB = (0.0, 10.0)


def _outside(value: float, bounds) -> bool:
    lo, hi = bounds
    return value < lo or value > hi


class LinkBudget:
    """Validating orchestrator owning one instance of each engine.

    Parameters
    ----------
    params
        Immutable configuration of the link.
    polarization
        Polarization service; defaults to ``IdealPolarization``.
    sky_map
        Optional loaded ``SkyMapIndex``. It is borrowed: the caller keeps it
        loaded while this object is in use.
    """

    def __init__(
        self,
        params: Optional[LinkBudgetParameters] = None,
        polarization: Optional[PolarizationService] = None,
        sky_map: Optional[SkyMapIndex] = None,
    ) -> None:
        self.params = params if params is not None else LinkBudgetParameters()
        self.polarization = polarization if polarization is not None else IdealPolarization()
        self.geometry_engine = GeometryEngine()
        self.path_loss_engine = PathLossEngine()
        self.noise_engine = NoiseEngine(sky_map)
        self.snr_engine = SNREngine()
        self.fading = FadingMargin()
        self.state = STATE_UNVALIDATED
        self.last_results = LinkBudgetResults()

    def set_parameters(self, params: LinkBudgetParameters) -> None:
        self.params = params
        self.state = STATE_UNVALIDATED

    @property
    def sky_map_active(self) -> bool:
        return self.noise_engine.sky_map_active

    # ----- validation -----

    def validate_parameters(self) -> str:
        """Return every range violation in one message, '' when valid."""
        p = self.params
        problems = []
        if p.frequency_mhz <= 0:
            problems.append(f"Invalid frequency: {p.frequency_mhz:g} MHz. ")
        if p.bandwidth_hz <= 0:
            problems.append(f"Invalid bandwidth: {p.bandwidth_hz:g} Hz. ")
        if _outside(p.tx_power_dbm, TX_POWER_RANGE_DBM):
            problems.append(f"TX power out of reasonable range: {p.tx_power_dbm:g} dBm. ")
        if _outside(p.tx_gain_dbi, GAIN_RANGE_DBI):
            problems.append(f"TX gain out of reasonable range: {p.tx_gain_dbi:g} dBi. ")
        if _outside(p.rx_gain_dbi, GAIN_RANGE_DBI):
            problems.append(f"RX gain out of reasonable range: {p.rx_gain_dbi:g} dBi. ")
        if _outside(p.rx_noise_figure_db, NOISE_FIGURE_RANGE_DB):
            problems.append(
                f"RX noise figure out of reasonable range: {p.rx_noise_figure_db:g} dB. "
            )
        return "".join(problems)

    # ----- stages -----

    def calculate_geometry(self) -> GeometryResults:
        p = self.params
        return self.geometry_engine.calculate(
            p.tx_site, p.rx_site, p.moon_ephemeris, p.observation_time, p.frequency_mhz
        )

    def calculate_path_loss(self, geometry: GeometryResults) -> PathLossResults:
        p = self.params
        return self.path_loss_engine.calculate(
            p.frequency_mhz,
            geometry.distance_tx_km,
            geometry.distance_rx_km,
            geometry.moon_elevation_tx_deg,
            geometry.moon_elevation_rx_deg,
            include_atmospheric=p.include_atmospheric_loss,
            use_hagfors=p.use_hagfors_model,
        )

    def calculate_polarization(self, geometry: GeometryResults) -> PolarizationResults:
        result = self.polarization.calculate(self.params, geometry)
        if is_failure(result):
            log.warning("Polarization service failed; continuing with %.0f dB loss",
                        result.polarization_loss_db)
        return result

    def calculate_noise(self, geometry: GeometryResults) -> NoiseResults:
        p = self.params
        return self.noise_engine.calculate(
            p.frequency_mhz,
            p.bandwidth_hz,
            p.rx_gain_dbi,
            p.rx_feedline_loss_db,
            p.rx_noise_figure_db,
            geometry.moon_elevation_rx_deg,
            geometry.moon_ra_deg,
            geometry.moon_dec_deg,
            physical_temp_k=p.physical_temp_k,
            include_ground_spillover=p.include_ground_spillover,
        )

    def calculate_snr(
        self,
        geometry: GeometryResults,
        path_loss: PathLossResults,
        polarization: PolarizationResults,
        noise: NoiseResults,
    ) -> SNRResults:
        p = self.params
        margin = self.fading.margin_for(
            p.frequency_mhz, geometry.total_path_length_km, p.fading_reliability_percent
        )
        return self.snr_engine.calculate(
            p.tx_power_dbm,
            p.tx_gain_dbi,
            p.rx_gain_dbi,
            p.tx_feedline_loss_db,
            p.rx_feedline_loss_db,
            path_loss,
            polarization,
            noise,
            required_snr_db=p.required_snr_db,
            fading_margin_db=margin,
        )

    # ----- entry point -----

    def calculate(self) -> LinkBudgetResults:
        res = LinkBudgetResults(calculation_time=time.time())
        self.last_results = res

        message = self.validate_parameters()
        if message:
            log.warning("Link budget parameters rejected: %s", message.strip())
            self.state = STATE_UNVALIDATED
            res.error_message = message
            return res

        try:
            res.geometry = self.calculate_geometry()
            res.path_loss = self.calculate_path_loss(res.geometry)
            res.polarization = self.calculate_polarization(res.geometry)
            res.noise = self.calculate_noise(res.geometry)
            res.snr = self.calculate_snr(res.geometry, res.path_loss, res.polarization, res.noise)
            res.total_loss_db = (
                res.path_loss.total_path_loss_db + res.polarization.polarization_loss_db
            )
        except (ArithmeticError, ValueError, TypeError) as exc:
            log.warning("Link budget calculation failed: %s", exc)
            self.state = STATE_UNVALIDATED
            res.error_message = f"Calculation error: {exc}"
            return res

        res.calculation_success = True
        self.state = STATE_COMPUTED
        log.debug(
            "Link margin %.2f dB (%s)",
            res.snr.link_margin_db, "viable" if res.snr.link_viable else "not viable",
        )
        return res


__all__ = ["LinkBudget", "STATE_UNVALIDATED", "STATE_COMPUTED"]
