from __future__ import annotations

"""
snr.py
======
Received power, SNR and link margin.

    P_rx   = P_tx + G_tx + G_rx - L_feed_tx - L_feed_rx - (L_path + L_pol)
    SNR    = P_rx - P_noise
    SNR_eff = SNR - fading margin
    margin = SNR_eff - SNR_required           viable iff margin > 0
"""

from typing import Optional

from eme_link_budget.link_core.bands import dbm_to_watts
from eme_link_budget.link_core.model import (
    NoiseResults,
    PathLossResults,
    PolarizationResults,
    SNRResults,
)

# Q65 decode floor with a-priori information.
DEFAULT_REQUIRED_SNR_DB = -30.2

# (upper edge MHz, libration fading in dB); specular at VHF, diffuse higher up.
_LIBRATION_FADING = (
    (200.0, 2.5),
    (500.0, 3.0),
    (1500.0, 3.5),
    (5000.0, 4.5),
)
_LIBRATION_FADING_TOP = 5.5

# Distance variation over a pass.
PATH_VARIATION_MARGIN_DB = 0.5
NOMINAL_PATH_KM = 384400.0


class FadingMargin:
    """Libration fading allowance, optionally tuned to a target reliability."""

    @staticmethod
    def estimate_libration_fading(frequency_mhz: float) -> float:
        for upper, fading in _LIBRATION_FADING:
            if frequency_mhz < upper:
                return fading
        return _LIBRATION_FADING_TOP

    def calculate_margin(self, frequency_mhz: float, path_length_km: float) -> float:
        # path_length_km is accepted for callers; the variation term is fixed.
        return self.estimate_libration_fading(frequency_mhz) + PATH_VARIATION_MARGIN_DB

    def recommended_margin(self, frequency_mhz: float, reliability_percent: float) -> float:
        """Margin for a reliability target; the plain margin stands for 90%."""
        base = self.calculate_margin(frequency_mhz, NOMINAL_PATH_KM)
        if reliability_percent >= 99.0:
            return base + 2.0
        if reliability_percent >= 95.0:
            return base + 1.0
        if reliability_percent >= 90.0:
            return base
        return base - 1.0

    def margin_for(
        self,
        frequency_mhz: float,
        path_length_km: float,
        reliability_percent: Optional[float] = None,
    ) -> float:
        if reliability_percent is None:
            return self.calculate_margin(frequency_mhz, path_length_km)
        return self.recommended_margin(frequency_mhz, reliability_percent)


class SNREngine:
    @staticmethod
    def calculate_received_power(
        tx_power_dbm: float,
        tx_gain_dbi: float,
        rx_gain_dbi: float,
        tx_feedline_loss_db: float,
        rx_feedline_loss_db: float,
        total_loss_db: float,
    ) -> float:
        return (
            tx_power_dbm
            + tx_gain_dbi
            + rx_gain_dbi
            - tx_feedline_loss_db
            - rx_feedline_loss_db
            - total_loss_db
        )

    def calculate(
        self,
        tx_power_dbm: float,
        tx_gain_dbi: float,
        rx_gain_dbi: float,
        tx_feedline_loss_db: float,
        rx_feedline_loss_db: float,
        path_loss: PathLossResults,
        polarization: PolarizationResults,
        noise: NoiseResults,
        required_snr_db: float = DEFAULT_REQUIRED_SNR_DB,
        fading_margin_db: float = 3.0,
    ) -> SNRResults:
        res = SNRResults()
        total_loss = path_loss.total_path_loss_db + polarization.polarization_loss_db

        res.received_signal_power_dbm = self.calculate_received_power(
            tx_power_dbm,
            tx_gain_dbi,
            rx_gain_dbi,
            tx_feedline_loss_db,
            rx_feedline_loss_db,
            total_loss,
        )
        res.received_signal_power_w = dbm_to_watts(res.received_signal_power_dbm)
        res.snr_db = res.received_signal_power_dbm - noise.noise_power_dbm

        res.fading_margin_db = fading_margin_db
        res.effective_snr_db = res.snr_db - fading_margin_db

        res.required_snr_db = required_snr_db
        res.link_margin_db = res.effective_snr_db - required_snr_db
        res.link_viable = res.link_margin_db > 0.0
        return res


__all__ = ["SNREngine", "FadingMargin", "DEFAULT_REQUIRED_SNR_DB"]
