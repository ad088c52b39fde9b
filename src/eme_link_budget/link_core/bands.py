from __future__ import annotations

"""Unit conversions and amateur-radio labels used across the pipeline."""

import math

# (upper edge MHz, label) for the amateur allocations used for EME.
_BANDS = (
    (30.0, "HF"),
    (54.0, "6m"),
    (148.0, "2m"),
    (225.0, "1.25m"),
    (450.0, "70cm"),
    (928.0, "33cm"),
    (1300.0, "23cm"),
    (2450.0, "13cm"),
    (3500.0, "9cm"),
    (5925.0, "6cm"),
    (10500.0, "3cm"),
)


def deg2rad(degrees: float) -> float:
    return degrees * math.pi / 180.0


def rad2deg(radians: float) -> float:
    return radians * 180.0 / math.pi


def dbm_to_watts(power_dbm: float) -> float:
    return 10.0 ** ((power_dbm - 30.0) / 10.0)


def watts_to_dbm(power_w: float) -> float:
    return 10.0 * math.log10(power_w) + 30.0


def frequency_band(frequency_mhz: float) -> str:
    """Return the amateur band label for a frequency, e.g. 144 -> '2m'."""
    for upper, label in _BANDS:
        if frequency_mhz < upper:
            return label
    return "Microwave"


def polarization_type(chi: float) -> str:
    """Classify the ellipticity angle chi (radians).

    |chi| below 1 degree is linear, within 1 degree of 45 degrees is
    circular (sign gives the hand), anything else is elliptical.
    """
    chi_deg = rad2deg(chi)
    if abs(chi_deg) < 1.0:
        return "Linear"
    if abs(abs(chi_deg) - 45.0) < 1.0:
        return "RHCP" if chi_deg > 0 else "LHCP"
    return "Elliptical"
