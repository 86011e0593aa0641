"""
Tests for the variational-parameter families: Gutzwiller, Jastrow and the
doublon-holon correlations, and for the free-parameter flags they append.
"""

import numpy as np
import pytest

from VMCDef.Definitions.errors import ConstraintError, RowCountError, SiteIndexError
from VMCDef.Definitions.families import TermFamily

def _jastrow_rows(nsite, n_idx=1):
    return [(i, j, (i + j) % n_idx) for i in range(nsite) for j in range(nsite) if i != j]

def test_gutzwiller_opt_flags_cover_every_parameter(defset):
    # Arrange
    defset.term("Gutzwiller", "NGutzwillerIdx 1", [(i, 0) for i in range(4)] + [(0, 1)], flag_line="ComplexType 0")

    # Act
    model = defset.ingest()

    # Assert
    assert model.sizes.n_para == 1
    assert model.opt_flag.shape == (model.sizes.n_para, 2)
    np.testing.assert_array_equal(model.opt_flag, [[1, 0]])
    np.testing.assert_array_equal(model.gutzwiller_idx, [0, 0, 0, 0])
    assert model.all_complex_flag == 0

def test_parameter_blocks_follow_family_order(defset):
    defset.term("Gutzwiller", "NGutzwillerIdx 1", [(i, 0) for i in range(4)] + [(0, 0)], flag_line="ComplexType 0")
    defset.term("Jastrow", "NJastrowIdx 2", _jastrow_rows(4, 2) + [(0, 1), (1, 1)], flag_line="ComplexType 1")
    model = defset.ingest()

    assert model.sizes.n_proj == 3
    assert len(model.opt_flag) == model.sizes.n_para == 3
    np.testing.assert_array_equal(model.param_block(TermFamily.GUTZWILLER), [[0, 0]])
    np.testing.assert_array_equal(model.param_block(TermFamily.JASTROW), [[1, 1], [1, 1]])
    assert model.n_optimizable() == 4
    assert model.all_complex_flag == 1

def test_jastrow_table(defset):
    defset.term("Jastrow", "NJastrowIdx 2", _jastrow_rows(4, 2) + [(0, 1), (1, 1)], flag_line="ComplexType 0")
    model = defset.ingest()

    jastrow = model.jastrow_idx
    assert jastrow[0, 1] == 1 and jastrow[1, 3] == 0
    np.testing.assert_array_equal(np.diag(jastrow), [-1, -1, -1, -1])

def test_jastrow_diagonal_row_rejected(defset):
    rows = [(0, 0, 0)] + _jastrow_rows(4)[1:]
    defset.term("Jastrow", "NJastrowIdx 1", rows + [(0, 1)], flag_line="ComplexType 0")
    with pytest.raises(SiteIndexError, match="i != j required") as info:
        defset.ingest()
    assert info.value.row == 0

def test_missing_opt_rows(defset):
    defset.term("Gutzwiller", "NGutzwillerIdx 2", [(i, i % 2) for i in range(4)] + [(0, 1)], flag_line="ComplexType 0")
    with pytest.raises(RowCountError):
        defset.ingest()

def test_trailing_opt_rows_rejected(defset):
    # one more flag row than NGutzwillerIdx declares
    defset.term("Gutzwiller", "NGutzwillerIdx 1", [(i, 0) for i in range(4)] + [(0, 1), (0, 1)], flag_line="ComplexType 0")
    with pytest.raises(RowCountError, match=r"number of rows \(2\) differs from the declared count \(1\)"):
        defset.ingest()

@pytest.mark.parametrize("first, second, message", [
    ((0, 9, 0), (0, 0, 0), "site index out of range"),
    ((9, 9, 0), (0, 2, 0), "i != j required"),
    ((0, 1, 0), (1, 1, 0), "i != j required"),
])
def test_jastrow_reports_the_first_bad_row(defset, first, second, message):
    rows = [first, second] + _jastrow_rows(4)[2:]
    defset.term("Jastrow", "NJastrowIdx 1", rows + [(0, 1)], flag_line="ComplexType 0")
    with pytest.raises(SiteIndexError, match=message) as info:
        defset.ingest()
    assert info.value.row == (1 if first == (0, 1, 0) else 0)

def test_doublon_holon_two_site(defset):
    rows = [(i, (i + 1) % 4, (i + 3) % 4, 0) for i in range(4)]
    defset.term("DH2", "NDoublonHolon2siteIdx 1", rows + [(k, 1) for k in range(6)], flag_line="ComplexType 0")
    model = defset.ingest()

    table = model.doublon_holon_2site_idx
    assert table.shape == (1, 8)
    np.testing.assert_array_equal(table[0, 0:2], [1, 3])
    np.testing.assert_array_equal(table[0, 6:8], [0, 2])
    assert model.sizes.n_para == 6
    np.testing.assert_array_equal(model.param_block(TermFamily.DOUBLON_HOLON_2SITE)[:, 0], np.ones(6))

def test_doublon_holon_index_range(defset):
    rows = [(i, (i + 1) % 4, (i + 3) % 4, 1) for i in range(4)]
    defset.term("DH2", "NDoublonHolon2siteIdx 1", rows + [(k, 1) for k in range(6)], flag_line="ComplexType 0")
    with pytest.raises(ConstraintError, match="index out of range"):
        defset.ingest()
