"""
Tests for the site validity predicates and block checks.
"""

import numpy as np
import pytest

from VMCDef.Definitions.errors import SiteIndexError
from VMCDef.Definitions.sites import (
    check_site_columns, check_spin_columns, first_equal_row, first_invalid_row, valid_pair, valid_quad, valid_site,
)

def test_scalar_predicates():
    assert valid_site(0, 4) and valid_site(3, 4)
    assert not valid_site(-1, 4) and not valid_site(4, 4)
    assert valid_pair(0, 3, 4) and not valid_pair(0, 4, 4)
    assert valid_quad(0, 1, 2, 3, 4) and not valid_quad(0, 1, 2, -1, 4)

def test_first_invalid_row():
    block = np.array([[0, 9, 1], [2, 9, 4], [1, 9, 3]])
    assert first_invalid_row(block, [0, 2], 0, 4) == 1
    assert first_invalid_row(block, [0], 0, 4) == -1
    assert first_invalid_row(np.zeros((0, 3), dtype=np.int64), [0], 0, 4) == -1

def test_first_equal_row():
    block = np.array([[0, 1, 7], [2, 2, 7]])
    assert first_equal_row(block, 0, 1) == 1
    assert first_equal_row(block[:1], 0, 1) == -1

@pytest.mark.parametrize("site", [-1, 4])
def test_check_site_columns_rejects(site):
    block = np.array([[0, 1], [site, 2]])
    with pytest.raises(SiteIndexError, match=r"site index out of range \[0, 4\)") as info:
        check_site_columns(block, [0, 1], 4, keyword="Trans", path="trans.def")
    assert info.value.row == 1
    assert info.value.keyword == "Trans"

def test_check_spin_columns():
    check_spin_columns(np.array([[0, 1, 1, 0]]), [1, 3])
    with pytest.raises(SiteIndexError, match="spin index must be 0 or 1"):
        check_spin_columns(np.array([[0, 2, 1, 0]]), [1, 3])
