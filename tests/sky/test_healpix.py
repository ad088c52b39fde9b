from __future__ import annotations
import math

import pytest
from hypothesis import given, strategies as st

from eme_link_budget.sky.healpix import (
    ang2pix_nest,
    is_valid_nside,
    npix_for,
    radec_to_theta_phi,
    xyf2nest,
)


def _pix(nside, ra_deg, dec_deg):
    return ang2pix_nest(nside, *radec_to_theta_phi(ra_deg, dec_deg))


@pytest.mark.parametrize("k", range(4))
def test_nside1_base_faces(k):
    # North cap faces 0-3, equatorial faces 4-7, south cap faces 8-11.
    assert _pix(1, 45.0 + 90.0 * k, 60.0) == k
    assert _pix(1, 90.0 * k, 0.0) == 4 + k
    assert _pix(1, 45.0 + 90.0 * k, -60.0) == 8 + k


def test_nside1_covers_all_twelve_pixels():
    seen = {
        _pix(1, ra, dec)
        for ra in range(0, 360, 15)
        for dec in range(-85, 90, 10)
    }
    assert seen == set(range(12))


def test_poles_nside2():
    assert ang2pix_nest(2, 0.0, 0.0) == 3
    assert ang2pix_nest(2, math.pi, 0.0) == 32


def test_invalid_colatitude():
    assert ang2pix_nest(4, -0.1, 0.0) == -1
    assert ang2pix_nest(4, math.pi + 0.1, 0.0) == -1


def test_xyf2nest_interleaves_bits():
    # x bits on even positions, y bits on odd positions
    assert xyf2nest(4, 1, 0, 0) == 1
    assert xyf2nest(4, 0, 1, 0) == 2
    assert xyf2nest(4, 3, 3, 0) == 15
    assert xyf2nest(4, 2, 1, 0) == 0b0110
    assert xyf2nest(4, 0, 0, 5) == 5 * 16


@pytest.mark.parametrize("nside, ok", [(1, True), (2, True), (64, True), (3, False),
                                       (0, False), (-4, False)])
def test_is_valid_nside(nside, ok):
    assert is_valid_nside(nside) is ok


def test_npix():
    assert npix_for(1) == 12
    assert npix_for(512) == 12 * 512 * 512


@given(
    st.sampled_from([1, 2, 4, 8, 16, 32, 64, 128, 256, 512]),
    st.floats(min_value=0.0, max_value=math.pi),
    st.floats(min_value=0.0, max_value=2 * math.pi, exclude_max=True),
)
def test_pixel_in_range(nside, theta, phi):
    pix = ang2pix_nest(nside, theta, phi)
    assert 0 <= pix < npix_for(nside)


@given(
    st.sampled_from([1, 2, 4, 8, 16, 32, 64, 128, 256]),
    st.floats(min_value=0.0, max_value=math.pi),
    st.floats(min_value=0.0, max_value=2 * math.pi, exclude_max=True),
)
def test_nested_hierarchy(nside, theta, phi):
    # A NESTED parent pixel index is its child's index shifted by two bits.
    assert ang2pix_nest(2 * nside, theta, phi) >> 2 == ang2pix_nest(nside, theta, phi)


@given(
    st.floats(min_value=0.0, max_value=math.pi),
    st.floats(min_value=0.0, max_value=2 * math.pi, exclude_max=True),
)
def test_deterministic(theta, phi):
    assert ang2pix_nest(64, theta, phi) == ang2pix_nest(64, theta, phi)
