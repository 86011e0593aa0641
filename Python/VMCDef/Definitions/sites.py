"""
Site validation for definition rows.

A site index is valid when it lies in ``[0, Nsite)``; a pair is valid when
both of its sites are, a quad when both of its pairs are. Rows are checked
in blocks: the reader hands over an integer array of shape ``(rows, width)``
and the kernel reports the first row with an invalid column.

--------------------------------------------------
File        : VMCDef/Definitions/sites.py
Description : Site, pair and quad validity checks (scalar and block).
--------------------------------------------------
"""

from typing import Optional, Sequence

import numba
import numpy as np

from VMCDef.Definitions.errors import DefinitionError, SiteIndexError

####################################################################################################
#! Scalar predicates
####################################################################################################

def valid_site(site: int, nsite: int) -> bool:
    return 0 <= site < nsite

def valid_pair(i: int, j: int, nsite: int) -> bool:
    return valid_site(i, nsite) and valid_site(j, nsite)

def valid_quad(i: int, j: int, k: int, l: int, nsite: int) -> bool:
    return valid_pair(i, j, nsite) and valid_pair(k, l, nsite)

####################################################################################################
#! Block kernels
####################################################################################################

@numba.njit(cache=True)
def _first_invalid_row(block: np.ndarray, columns: np.ndarray, lo: int, hi: int) -> int:
    """
    Return the first row of ``block`` whose value in any of ``columns`` lies
    outside ``[lo, hi)``, or -1 when every row is valid.
    """
    nrows = block.shape[0]
    for r in range(nrows):
        for c in columns:
            v = block[r, c]
            if v < lo or v >= hi:
                return r
    return -1

@numba.njit(cache=True)
def _first_equal_row(block: np.ndarray, a: int, b: int) -> int:
    """First row with ``block[r, a] == block[r, b]``, -1 if none."""
    for r in range(block.shape[0]):
        if block[r, a] == block[r, b]:
            return r
    return -1

def first_invalid_row(block: np.ndarray, columns: Sequence[int], lo: int, hi: int) -> int:
    """Python entry point of the range kernel (accepts any integer block)."""
    if block.size == 0 or len(columns) == 0:
        return -1
    arr = np.ascontiguousarray(block, dtype=np.int64)
    return int(_first_invalid_row(arr, np.asarray(columns, dtype=np.int64), int(lo), int(hi)))

def first_equal_row(block: np.ndarray, a: int, b: int) -> int:
    if block.size == 0:
        return -1
    return int(_first_equal_row(np.ascontiguousarray(block, dtype=np.int64), int(a), int(b)))

####################################################################################################
#! Raising checks
####################################################################################################

def check_site_columns(block       : np.ndarray,
                        columns     : Sequence[int],
                        nsite       : int,
                        keyword     : Optional[str] = None,
                        path        : Optional[str] = None,
                        row_offset  : int = 0) -> None:
    """
    Validate that every listed column of ``block`` holds a valid site.

    Parameters
    ----------
    block : np.ndarray
        Integer array of shape ``(rows, width)``.
    columns : Sequence[int]
        Columns that hold site indices.
    nsite : int
        Number of lattice sites.
    keyword, path : str, optional
        Reported in the error.
    row_offset : int
        Added to the reported row (for blocks cut from a longer body).

    Raises
    ------
    SiteIndexError
        On the first row with an out-of-range site.
    """
    bad = first_invalid_row(block, columns, 0, nsite)
    if bad >= 0:
        values = [int(block[bad, c]) for c in columns]
        raise SiteIndexError(
            DefinitionError.SITE_OUT_OF_RANGE.format(nsite=nsite) + f": {values}",
            keyword=keyword, path=path, row=row_offset + bad)

def check_range_columns(block       : np.ndarray,
                        columns     : Sequence[int],
                        bound       : int,
                        message     : str,
                        error_cls   = SiteIndexError,
                        keyword     : Optional[str] = None,
                        path        : Optional[str] = None) -> None:
    """Raise ``error_cls(message)`` on the first row with a listed column outside ``[0, bound)``."""
    bad = first_invalid_row(block, columns, 0, bound)
    if bad >= 0:
        values = [int(block[bad, c]) for c in columns]
        raise error_cls(f"{message}: {values}", keyword=keyword, path=path, row=bad)

def check_spin_columns(block, columns, keyword=None, path=None) -> None:
    check_range_columns(block, columns, 2, DefinitionError.SPIN_OUT_OF_RANGE, SiteIndexError, keyword, path)

# --------------------------------------------------------------------------
#! EOF
# --------------------------------------------------------------------------
