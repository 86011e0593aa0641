"""
Tests for the Hamiltonian-term families: transfer, Coulomb, Hund, pair
hopping, exchange, InterAll and the local-spin table.
"""

import numpy as np
import pytest

from VMCDef.Definitions.errors import ConstraintError, RowCountError, SiteIndexError, SzConservationError

TRANSFER_ROWS = [(0, 0, 1, 0, 1.0, 0.0), (1, 0, 0, 0, 1.0, 0.0)]

def test_transfer_rows_and_complex_amplitudes(defset):
    # Arrange
    defset.term("Trans", "NTransfer 2", TRANSFER_ROWS)

    # Act
    model = defset.ingest()

    # Assert
    np.testing.assert_array_equal(model.transfer, [[0, 0, 1, 0], [1, 0, 0, 0]])
    assert model.para_transfer.dtype == np.complex128
    np.testing.assert_array_equal(model.para_transfer, [1 + 0j, 1 + 0j])
    assert model.sizes.n_total_def_complex == 2

def test_transfer_keeps_imaginary_part(defset):
    defset.term("Trans", "NTransfer 1", [(0, 1, 2, 1, 0.5, -0.25)])
    model = defset.ingest()
    assert model.para_transfer[0] == pytest.approx(0.5 - 0.25j)

def test_transfer_with_fewer_rows_than_declared(defset):
    defset.term("Trans", "NTransfer 2", TRANSFER_ROWS[:1])
    with pytest.raises(RowCountError, match=r"number of rows \(1\) differs from the declared count \(2\)") as info:
        defset.ingest()
    assert info.value.keyword == "Trans"

def test_transfer_with_more_rows_than_declared(defset):
    defset.term("Trans", "NTransfer 1", TRANSFER_ROWS)
    with pytest.raises(RowCountError):
        defset.ingest()

@pytest.mark.parametrize("site", [-1, 4])
def test_transfer_site_out_of_range(defset, site):
    defset.term("Trans", "NTransfer 2", [TRANSFER_ROWS[0], (site, 0, 0, 0, 1.0, 0.0)])
    with pytest.raises(SiteIndexError, match="site index out of range") as info:
        defset.ingest()
    assert info.value.row == 1

def test_zero_count_file_is_not_read(defset):
    # rows beyond a zero count are never looked at
    defset.term("Trans", "NTransfer 0", [("garbage",)])
    model = defset.ingest()
    assert model.transfer.shape == (0, 4)

def test_two_site_interactions(defset):
    defset.term("CoulombIntra", "NCoulombIntra 2", [(0, 4.0), (3, 4.0)])
    defset.term("CoulombInter", "NCoulombInter 1", [(0, 1, 1.5)])
    defset.term("Hund", "NHund 1", [(1, 2, -0.5)])
    defset.term("Exchange", "NExchange 1", [(2, 3, 0.25)])
    model = defset.ingest()

    np.testing.assert_array_equal(model.coulomb_intra, [0, 3])
    np.testing.assert_allclose(model.para_coulomb_intra, [4.0, 4.0])
    np.testing.assert_array_equal(model.coulomb_inter, [[0, 1]])
    np.testing.assert_allclose(model.para_hund_coupling, [-0.5])
    np.testing.assert_array_equal(model.exchange_coupling, [[2, 3]])
    assert model.sizes.n_total_def_double == 2 + 1 + 1 + 1 + 1

def test_pair_hopping_stored_in_both_directions(defset):
    defset.term("PairHop", "NPairHop 2", [(0, 1, 0.3), (2, 3, 0.7)])
    model = defset.ingest()

    assert model.counts.n_pair_hop == 2
    assert model.sizes.n_pair_hopping == 4
    np.testing.assert_array_equal(model.pair_hopping, [[0, 1], [1, 0], [2, 3], [3, 2]])
    np.testing.assert_allclose(model.para_pair_hopping, [0.3, 0.3, 0.7, 0.7])

def test_inter_all_requires_sz_conservation(defset):
    defset.term("InterAll", "NInterAll 1", [(0, 0, 1, 1, 2, 1, 3, 0, 1.0, 0.0)])
    with pytest.raises(SzConservationError, match="Sz is not conserved"):
        defset.ingest()

def test_inter_all_rows(defset):
    defset.term("InterAll", "NInterAll 1", [(0, 0, 1, 0, 2, 1, 3, 1, 0.5, 0.5)])
    model = defset.ingest()
    np.testing.assert_array_equal(model.inter_all, [[0, 0, 1, 0, 2, 1, 3, 1]])
    assert model.para_inter_all[0] == pytest.approx(0.5 + 0.5j)

def test_local_spin_table(defset):
    defset.modpara(NExUpdatePath=1)
    defset.locspin(spins=[1, 0, 1, 0], n_local=2)
    model = defset.ingest()
    np.testing.assert_array_equal(model.loc_spn, [1, 0, 1, 0])

def test_local_spins_need_exchange_update(defset):
    defset.locspin(spins=[1, 0, 1, 0], n_local=2)
    with pytest.raises(ConstraintError, match="NExUpdatePath"):
        defset.ingest()

def test_local_spins_bounded_by_electron_count(defset):
    defset.modpara(ne=1, NExUpdatePath=1)
    defset.locspin(spins=[1, 1, 1, 0], n_local=3)
    with pytest.raises(ConstraintError, match="larger than 2\\*Ne"):
        defset.ingest()
