from __future__ import annotations

import pytest
from hypothesis import given, strategies as st

from eme_link_budget.link_core.model import (
    NoiseResults,
    PathLossResults,
    PolarizationResults,
)
from eme_link_budget.physics.snr import FadingMargin, SNREngine


def _run(path_db=250.0, pol_db=0.0, noise_dbm=-142.0, required=-30.2, fading=3.0):
    return SNREngine().calculate(
        50.0, 20.0, 20.0, 0.5, 0.5,
        PathLossResults(total_path_loss_db=path_db),
        PolarizationResults(polarization_loss_db=pol_db),
        NoiseResults(noise_power_dbm=noise_dbm),
        required_snr_db=required,
        fading_margin_db=fading,
    )


def test_received_power_equation():
    res = _run(path_db=250.0, pol_db=1.5)
    assert res.received_signal_power_dbm == pytest.approx(89.0 - 251.5)
    assert res.received_signal_power_w == pytest.approx(10 ** ((89.0 - 251.5 - 30) / 10))


def test_snr_and_margin_chain():
    res = _run()
    assert res.snr_db == pytest.approx(-161.0 + 142.0)
    assert res.effective_snr_db == pytest.approx(res.snr_db - 3.0)
    assert res.link_margin_db == pytest.approx(res.effective_snr_db + 30.2)
    assert res.link_viable is True
    assert res.fading_margin_db == 3.0
    assert res.required_snr_db == -30.2


def test_zero_margin_is_not_viable():
    # -161 - (-142) - 3 = -22 exactly
    res = _run(required=-22.0)
    assert res.link_margin_db == 0.0
    assert res.link_viable is False


def test_margin_sign_flips_at_threshold():
    assert _run(required=-22.0 - 1e-9).link_viable is True
    assert _run(required=-22.0 + 1e-9).link_viable is False


def test_polarization_failure_sentinel_kills_margin():
    res = _run(pol_db=999.0)
    assert res.link_viable is False


@given(st.floats(min_value=-60.0, max_value=20.0), st.floats(min_value=0.0, max_value=10.0))
def test_viable_iff_margin_positive(required, fading):
    res = _run(required=required, fading=fading)
    assert res.link_viable == (res.link_margin_db > 0.0)


@pytest.mark.parametrize(
    "f, fading",
    [(50.0, 2.5), (144.0, 2.5), (200.0, 3.0), (432.0, 3.0), (1296.0, 3.5),
     (2304.0, 4.5), (5760.0, 5.5), (10368.0, 5.5)],
)
def test_libration_fading_bands(f, fading):
    fm = FadingMargin()
    assert fm.estimate_libration_fading(f) == fading
    assert fm.calculate_margin(f, 768800.0) == pytest.approx(fading + 0.5)


@pytest.mark.parametrize(
    "reliability, delta",
    [(99.9, 2.0), (99.0, 2.0), (95.0, 1.0), (97.0, 1.0), (90.0, 0.0), (50.0, -1.0)],
)
def test_recommended_margin(reliability, delta):
    fm = FadingMargin()
    assert fm.recommended_margin(144.0, reliability) == pytest.approx(3.0 + delta)


def test_margin_for_selects_variant():
    fm = FadingMargin()
    assert fm.margin_for(432.0, 768800.0) == pytest.approx(3.5)
    assert fm.margin_for(432.0, 768800.0, 99.0) == pytest.approx(5.5)
