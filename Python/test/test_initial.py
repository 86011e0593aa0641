"""
Tests for the initial-value files of the variational parameters.
"""

import numpy as np
import pytest

from VMCDef.Definitions.errors import RowCountError
from VMCDef.Definitions.families import TermFamily

def _gutzwiller(ds, count=2):
    rows = [(i, i % count) for i in range(ds.nsite)]
    ds.term("Gutzwiller", f"NGutzwillerIdx {count}", rows + [(k, 1) for k in range(count)], flag_line="ComplexType 1")

def test_initial_values_land_in_their_block(defset):
    # Arrange
    _gutzwiller(defset)
    defset.term("InGutzwiller", "NGutzwillerIdx 2", [(0, -0.5, 0.25), (1, 0.1, 0.0)])

    # Act
    model = defset.ingest()

    # Assert
    block = model.para[model.sizes.param_slice(TermFamily.GUTZWILLER)]
    np.testing.assert_allclose(block, [-0.5 + 0.25j, 0.1])
    assert model.para.dtype == np.complex128

def test_slots_without_a_file_stay_zero(defset):
    _gutzwiller(defset)
    model = defset.ingest()
    np.testing.assert_array_equal(model.para, np.zeros(2))

def test_initial_values_can_be_skipped(defset):
    _gutzwiller(defset)
    defset.term("InGutzwiller", "NGutzwillerIdx 2", [(0, -0.5, 0.25), (1, 0.1, 0.0)])
    model = defset.ingest(read_initial=False)
    np.testing.assert_array_equal(model.para, np.zeros(2))

def test_initial_count_must_match_the_family(defset):
    _gutzwiller(defset)
    defset.term("InGutzwiller", "NGutzwillerIdx 3", [(0, 0.0, 0.0), (1, 0.0, 0.0), (2, 0.0, 0.0)])
    with pytest.raises(RowCountError, match=r"number of rows \(3\) differs from the declared count \(2\)"):
        defset.ingest()

def test_initial_orbital_values(small_defset):
    rows = [(0, 0, 0), (0, 1, 1), (1, 0, 1), (1, 1, 0)]
    small_defset.term("Orbital", "NOrbitalIdx 2", rows + [(0, 1), (1, 1)], flag_line="ComplexType 0")
    small_defset.term("InOrbital", "NOrbitalIdx 2", [(0, 1.0, 0.0), (1, 2.0, 0.0)])
    model = small_defset.ingest()
    np.testing.assert_allclose(model.slater, [1.0, 2.0])
