"""
Tests for the high-level session API and the model hand-off.
"""

import numpy as np
import pytest

import VMCDef
from VMCDef.Definitions.errors import IngestionAborted, SiteIndexError

def _transfer(ds):
    ds.term("Trans", "NTransfer 2", [(0, 0, 1, 0, 1.0, 0.0), (1, 0, 0, 0, 1.0, 0.0)])
    return ds.namelist()

def test_run_context_manager(defset):
    # Arrange
    namelist = _transfer(defset)

    # Act
    with VMCDef.run(namelist, config=defset.config()) as session:
        model = session.model

        # Assert
        assert session.rank == 0
        assert model.frozen
        np.testing.assert_array_equal(model.para_transfer, [1.0, 1.0])
        assert model.para_file_head.endswith("zqp")
    with pytest.raises(RuntimeError, match="has not been started"):
        session.model

def test_output_directory_is_created(defset):
    namelist = _transfer(defset)
    VMCDef.IngestSession(namelist, config=defset.config()).start()
    assert (defset.root / "output").is_dir()

def test_frozen_buffers_reject_writes(defset):
    session = VMCDef.IngestSession(_transfer(defset), config=defset.config()).start()
    with pytest.raises(ValueError):
        session.model.para_transfer[0] = 2.0
    session.stop()

def test_session_failure_reports_the_root_error(defset):
    defset.term("Jastrow", "NJastrowIdx 1", [(0, 0, 0)] * 12 + [(0, 1)], flag_line="ComplexType 0")
    session = VMCDef.IngestSession(defset.namelist(), config=defset.config())
    with pytest.raises(IngestionAborted, match="i != j required") as info:
        session.start()
    assert isinstance(info.value.cause, SiteIndexError)
    assert info.value.keyword == "Jastrow"

def test_numpy_backend_handoff_shares_memory(defset):
    session = VMCDef.IngestSession(_transfer(defset), config=defset.config()).start()
    arrays  = session.model.as_backend("numpy")
    assert np.shares_memory(arrays["transfer"], session.model.buffers["def_int"])
    with pytest.raises(ValueError, match="Unknown backend"):
        session.model.as_backend("torch")

def test_jax_backend_handoff(defset):
    jnp = pytest.importorskip("jax.numpy")
    session = VMCDef.IngestSession(_transfer(defset), config=defset.config()).start()
    arrays  = session.model.as_backend("jax")
    assert isinstance(arrays["para_transfer"], jnp.ndarray)

def test_lazy_exports():
    assert VMCDef.IngestConfig is VMCDef.Ingest.ingest_config.IngestConfig
    assert "ModPara" in VMCDef.FAMILY_REGISTRY.available()
    with pytest.raises(AttributeError):
        VMCDef.does_not_exist
