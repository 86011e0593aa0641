"""
One-body Green function reduction for the Lanczos mode.

In Lanczos mode (``NLanczosMode > 1``) every two-body measurement
``c+_{i s} c_{j s} c+_{k t} c_{l t}`` is evaluated from products of one-body
Green functions. The one-body requests of the OneBodyG file and the two
halves of every TwoBodyG row are therefore merged into one deduplicated list:
the spin-extended pair ``(i + s*Nsite, j + s*Nsite)`` is assigned a compact
index the first time it is seen, one-body rows first, then the first and the
second half of each two-body row.

--------------------------------------------------
File        : VMCDef/Ingest/lanczos.py
Description : Deduplicated one-body Green index map (Lanczos mode).
--------------------------------------------------
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numba
import numpy as np

from VMCDef.Definitions.errors import DefinitionError, SzConservationError
from VMCDef.Definitions.keywords import Manifest, TermKeyword
from VMCDef.Definitions.reader import DefFileReader
from VMCDef.Definitions.sites import check_site_columns, check_spin_columns

####################################################################################################
#! Kernels
####################################################################################################

@numba.njit(cache=True)
def _assign_compact_indices(table: np.ndarray, keys: np.ndarray, start: int) -> Tuple[np.ndarray, int]:
    """
    Assign compact indices to ``keys`` (rows of ``(row_key, col_key)``) in
    order of first appearance.

    Parameters
    ----------
    table : np.ndarray
        ``(2N, 2N)`` map, -1 for unassigned pairs. Updated in place.
    keys : np.ndarray
        ``(M, 2)`` spin-extended pairs.
    start : int
        Next free compact index.

    Returns
    -------
    (indices, next) : compact index of every key and the next free index.
    """
    indices = np.empty(keys.shape[0], dtype=np.int64)
    nxt     = start
    for m in range(keys.shape[0]):
        a = keys[m, 0]
        b = keys[m, 1]
        if table[a, b] < 0:
            table[a, b] = nxt
            nxt        += 1
        indices[m] = table[a, b]
    return indices, nxt

def spin_extended_keys(rows: np.ndarray, nsite: int, first: int = 0) -> np.ndarray:
    """
    Spin-extended ``(i + s*N, j + s*N)`` keys of ``i s j t`` columns starting at ``first``.
    """
    i, s, j, t = (rows[:, first + k] for k in range(4))
    return np.stack([i + s * nsite, j + t * nsite], axis=1).astype(np.int64)

####################################################################################################
#! Map
####################################################################################################

@dataclass
class OneBodyGreenMap:
    """
    Deduplicated one-body Green index map.

    Attributes
    ----------
    table:
        ``(2N, 2N)`` compact index per spin-extended pair, -1 if unused.
    count:
        Number of distinct pairs (the reduced one-body count).
    naive_count:
        One-body rows plus two halves per two-body row.
    one_body_indices:
        Compact index of each OneBodyG row.
    two_body_indices:
        ``(NTwoBodyG, 2)`` compact indices of the two halves of each row.
    """

    table               : np.ndarray
    count               : int
    naive_count         : int
    one_body_indices    : np.ndarray
    two_body_indices    : np.ndarray

    def lookup(self, i: int, s: int, j: int, t: int, nsite: int) -> int:
        return int(self.table[i + s * nsite, j + t * nsite])

def build_one_body_green_map(one_body: np.ndarray, two_body: np.ndarray, nsite: int) -> OneBodyGreenMap:
    """
    Build the compact map from validated request rows.

    Parameters
    ----------
    one_body : np.ndarray
        ``(NOneBodyG, 4)`` rows ``i s j t``.
    two_body : np.ndarray
        ``(NTwoBodyG, 8)`` rows ``i s j t k u l v``.
    nsite : int
        Number of sites.
    """
    table           = np.full((2 * nsite, 2 * nsite), -1, dtype=np.int64)
    one_body        = np.asarray(one_body, dtype=np.int64).reshape(-1, 4)
    two_body        = np.asarray(two_body, dtype=np.int64).reshape(-1, 8)

    ca_idx, nxt     = _assign_compact_indices(table, spin_extended_keys(one_body, nsite), 0)

    # halves interleaved: row r first half at 2r, second half at 2r + 1
    halves          = np.empty((2 * two_body.shape[0], 2), dtype=np.int64)
    halves[0::2]    = spin_extended_keys(two_body, nsite, 0)
    halves[1::2]    = spin_extended_keys(two_body, nsite, 4)
    dc_idx, nxt     = _assign_compact_indices(table, halves, nxt)

    return OneBodyGreenMap(
        table               = table,
        count               = int(nxt),
        naive_count         = one_body.shape[0] + halves.shape[0],
        one_body_indices    = ca_idx,
        two_body_indices    = dc_idx.reshape(-1, 2),
    )

####################################################################################################
#! Pre-pass
####################################################################################################

def _read_requests(manifest: Manifest, keyword: TermKeyword, width: int, nsite: int, preamble: int) -> np.ndarray:
    path = manifest.path(keyword)
    if not path:
        return np.zeros((0, width), dtype=np.int64)
    reader  = DefFileReader(path, str(keyword))
    count   = reader.header_int(1)
    rows    = reader.body(preamble).exact_rows(width, count)[0]

    check_site_columns(rows, [0, 2] if width == 4 else [0, 2, 4, 6], nsite, str(keyword), path)
    check_spin_columns(rows, [1, 3] if width == 4 else [1, 3, 5, 7], str(keyword), path)
    spin_pairs = [(1, 3)] if width == 4 else [(1, 3), (5, 7)]
    for a, b in spin_pairs:
        bad = np.flatnonzero(rows[:, a] != rows[:, b])
        if bad.size:
            raise SzConservationError(DefinitionError.SZ_NOT_CONSERVED, keyword=str(keyword), path=path, row=int(bad[0]))
    return rows

def read_green_requests(manifest: Manifest, nsite: int, preamble: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Read and validate the OneBodyG and TwoBodyG rows for the reduction.

    Both files are read in full, rows checked for site range and Sz
    conservation (``s == t`` on every creation/annihilation pair).
    """
    one_body = _read_requests(manifest, TermKeyword.ONE_BODY_G, 4, nsite, preamble)
    two_body = _read_requests(manifest, TermKeyword.TWO_BODY_G, 8, nsite, preamble)
    return one_body, two_body

def reduce_green_requests(manifest: Manifest, nsite: int, preamble: int, log=None) -> Optional[OneBodyGreenMap]:
    """Pre-pass entry point: read requests and build the map."""
    one_body, two_body  = read_green_requests(manifest, nsite, preamble)
    reduced             = build_one_body_green_map(one_body, two_body, nsite)
    if log is not None:
        log.info(f"Lanczos reduction: {reduced.naive_count} one-body requests -> {reduced.count} distinct")
    return reduced

# --------------------------------------------------------------------------
#! EOF
# --------------------------------------------------------------------------
