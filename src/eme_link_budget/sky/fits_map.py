from __future__ import annotations

"""
fits_map.py
===========
Read-only access to a HEALPix sky-brightness map stored as a FITS binary
table (e.g. the Haslam 408 MHz all-sky survey).

The file is memory-mapped once and never copied. Only the parts of the FITS
layout needed for lookups are decoded:

- headers come in 2880-byte blocks of 80-byte ASCII cards;
- the table header starts with ``XTENSION= 'BINTABLE'`` and carries an
  ``NSIDE`` integer card;
- the pixel payload starts at the first block boundary after the ``END``
  card and is a flat array of big-endian int16, one value per NESTED pixel,
  in milli-Kelvin.

Usage
-----
    with SkyMapIndex() as sky:
        if sky.load_fits("haslam408_dsds_Remazeilles2014.fits"):
            t408 = sky.get_temperature(ra_deg=83.6, dec_deg=22.0)

A loaded index is read-only; concurrent ``get_temperature`` calls are safe,
``load_fits``/``unload`` are not.
"""

import logging
import mmap
import os
import struct
from typing import Optional, Union

from eme_link_budget.sky.healpix import (
    ang2pix_nest,
    is_valid_nside,
    npix_for,
    radec_to_theta_phi,
)

log = logging.getLogger(__name__)

BLOCK_SIZE = 2880
CARD_SIZE = 80

_BINTABLE_CARD = b"XTENSION= 'BINTABLE'"
_NSIDE_KEY = b"NSIDE   ="
_END_KEY = b"END     "
_PIXEL = struct.Struct(">h")

# Stored values are milli-Kelvin.
_VALUE_SCALE = 1000.0


class SkyMapIndex:
    """Temperature lookups on a memory-mapped HEALPix FITS map."""

    def __init__(self) -> None:
        self._file = None
        self._map: Optional[mmap.mmap] = None
        self._file_size = 0
        self._nside = 0
        self._npix = 0
        self._data_offset = 0
        self._path = ""

    # ----- lifecycle -----

    def load_fits(self, path: Union[str, os.PathLike]) -> bool:
        """Map ``path`` and locate its pixel table.

        Any previous mapping is released first. Returns ``False`` (and
        leaves the index unloaded) when the file cannot be opened or mapped
        or carries no BINTABLE header with a positive power-of-two NSIDE.
        """
        self.unload()

        try:
            self._file = open(path, "rb")
            self._file_size = os.fstat(self._file.fileno()).st_size
            self._map = mmap.mmap(self._file.fileno(), 0, access=mmap.ACCESS_READ)
        except (OSError, ValueError) as exc:
            log.warning("Cannot map sky map %s: %s", path, exc)
            self.unload()
            return False

        if hasattr(self._map, "madvise") and hasattr(mmap, "MADV_RANDOM"):
            self._map.madvise(mmap.MADV_RANDOM)

        found = self._scan_header()
        if found is None:
            log.warning("No BINTABLE with a valid NSIDE in %s", path)
            self.unload()
            return False

        self._nside, self._data_offset = found
        self._npix = npix_for(self._nside)
        self._path = os.fspath(path)
        log.debug(
            "Loaded sky map %s (nside=%d, npix=%d, data at byte %d)",
            self._path, self._nside, self._npix, self._data_offset,
        )
        return True

    def unload(self) -> None:
        """Release the mapping and the file; safe to call repeatedly."""
        if self._map is not None:
            self._map.close()
            self._map = None
        if self._file is not None:
            self._file.close()
            self._file = None
        self._file_size = 0
        self._nside = 0
        self._npix = 0
        self._data_offset = 0
        self._path = ""

    def __enter__(self) -> "SkyMapIndex":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unload()

    def __del__(self) -> None:
        self.unload()

    # ----- header scan -----

    def _scan_header(self):
        """Return ``(nside, data_offset)`` of the first usable table, or None.

        A table header may span several blocks; cards are scanned from the
        BINTABLE block until its ``END`` card. A table without a usable
        NSIDE is skipped and the search goes on with the next extension.
        """
        buf = self._map
        offset = 0
        in_table = False
        nside = 0

        while offset + BLOCK_SIZE <= self._file_size:
            if not in_table and buf[offset:offset + len(_BINTABLE_CARD)] == _BINTABLE_CARD:
                in_table = True
                nside = 0

            if in_table:
                for pos in range(offset, offset + BLOCK_SIZE, CARD_SIZE):
                    card = buf[pos:pos + CARD_SIZE]
                    if card.startswith(_NSIDE_KEY):
                        nside = _card_int(card)
                    elif card[:8] == _END_KEY:
                        if is_valid_nside(nside):
                            return nside, offset + BLOCK_SIZE
                        in_table = False
                        break
            offset += BLOCK_SIZE
        return None

    # ----- queries -----

    @property
    def is_loaded(self) -> bool:
        return self._map is not None

    @property
    def nside(self) -> int:
        return self._nside

    @property
    def npix(self) -> int:
        return self._npix

    @property
    def path(self) -> str:
        return self._path

    def pixel_value(self, pixel: int) -> float:
        """Raw pixel temperature in Kelvin; 0 outside the map or the file."""
        if self._map is None or pixel < 0 or pixel >= self._npix:
            return 0.0
        pos = self._data_offset + pixel * _PIXEL.size
        if pos + _PIXEL.size > self._file_size:
            return 0.0
        (raw,) = _PIXEL.unpack_from(self._map, pos)
        return raw / _VALUE_SCALE

    def get_temperature(self, ra_deg: float, dec_deg: float) -> float:
        """408 MHz brightness temperature (K) toward (RA, DEC), 0 if unknown."""
        if self._map is None:
            return 0.0
        theta, phi = radec_to_theta_phi(ra_deg, dec_deg)
        return self.pixel_value(ang2pix_nest(self._nside, theta, phi))


def _card_int(card: bytes) -> int:
    """Integer value of a ``KEY     = value / comment`` card, 0 if unreadable."""
    value = card[10:].split(b"/", 1)[0].strip()
    try:
        return int(value)
    except ValueError:
        return 0


__all__ = ["SkyMapIndex", "BLOCK_SIZE", "CARD_SIZE"]
