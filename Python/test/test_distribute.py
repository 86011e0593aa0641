"""
Tests for the root-to-all distribution.

Two in-process communicator doubles stand in for a two-rank run: the root
double records every collective, the worker double replays the recording in
the same call order. A worker that rebuilds the model from the replay must
end up with buffers identical to the root.
"""

import numpy as np
import pytest

from VMCDef.Definitions.errors import DefFormatError, IngestionAborted, RowCountError
from VMCDef.Ingest.ingest import ingest
from VMCDef.Parallel.distribute import broadcast_buffer, broadcast_from_root, ingest_distributed, run_root_with_result

class RecordingComm:
    """Rank 0 of a two-rank communicator; remembers every broadcast payload."""

    def __init__(self):
        self.calls = []

    def Get_rank(self):
        return 0

    def Get_size(self):
        return 2

    def bcast(self, value, root=0):
        self.calls.append(("bcast", value))
        return value

    def Bcast(self, buffer, root=0):
        self.calls.append(("Bcast", np.array(buffer, copy=True)))

class ReplayingComm:
    """Rank 1 of the same communicator; receives the recorded payloads in order."""

    def __init__(self, calls):
        self._calls = list(calls)

    def Get_rank(self):
        return 1

    def Get_size(self):
        return 2

    def _next(self, kind):
        got, payload = self._calls.pop(0)
        assert got == kind, f"collective order differs: root called {got}, worker called {kind}"
        return payload

    def bcast(self, value, root=0):
        return self._next("bcast")

    def Bcast(self, buffer, root=0):
        payload = self._next("Bcast")
        assert payload.shape == buffer.shape and payload.dtype == buffer.dtype
        buffer[...] = payload

    @property
    def pending(self):
        return len(self._calls)

def _full_defset(ds):
    ds.term("Trans", "NTransfer 2", [(0, 0, 1, 0, 1.0, 0.0), (1, 0, 0, 0, 1.0, -1.0)])
    ds.term("CoulombIntra", "NCoulombIntra 1", [(2, 4.0)])
    ds.term("Gutzwiller", "NGutzwillerIdx 1", [(i, 0) for i in range(4)] + [(0, 1)], flag_line="ComplexType 1")
    ds.term("InGutzwiller", "NGutzwillerIdx 1", [(0, 0.3, -0.1)])
    return ds.namelist()

def test_worker_receives_identical_model(defset):
    # Arrange
    namelist    = _full_defset(defset)
    config      = defset.config()
    root_comm   = RecordingComm()

    # Act
    root_model      = ingest_distributed(lambda: ingest(namelist, config), root_comm)
    worker_comm     = ReplayingComm(root_comm.calls)
    worker_model    = ingest_distributed(lambda: pytest.fail("workers must not read files"), worker_comm)

    # Assert
    assert worker_comm.pending == 0
    assert worker_model.params == root_model.params
    assert worker_model.counts == root_model.counts
    assert worker_model.sizes == root_model.sizes
    assert worker_model.data_file_head == root_model.data_file_head
    assert worker_model.all_complex_flag == root_model.all_complex_flag == 1
    for name, buffer in root_model.buffers.items():
        np.testing.assert_array_equal(worker_model.buffers[name], buffer)
    np.testing.assert_array_equal(worker_model.para_transfer, [1.0, 1.0 - 1.0j])
    assert worker_model.frozen and root_model.frozen

def test_error_is_broadcast_before_any_buffer(defset):
    defset.term("Trans", "NTransfer 2", [(0, 0, 1, 0, 1.0, 0.0)])
    namelist, config = defset.namelist(), defset.config()
    root_comm = RecordingComm()

    with pytest.raises(IngestionAborted, match="differs from the declared count") as root_info:
        ingest_distributed(lambda: ingest(namelist, config), root_comm)

    # a single collective: the failure itself
    assert [kind for kind, _ in root_comm.calls] == ["bcast"]
    assert isinstance(root_info.value.cause, RowCountError)

    worker_comm = ReplayingComm(root_comm.calls)
    with pytest.raises(IngestionAborted) as worker_info:
        ingest_distributed(lambda: None, worker_comm)
    assert worker_info.value.keyword == root_info.value.keyword == "Trans"
    assert str(worker_info.value) == str(root_info.value)

def test_serial_run_is_a_pass_through(defset):
    namelist, config = _full_defset(defset), defset.config()
    model = ingest_distributed(lambda: ingest(namelist, config), comm=None)
    assert model.frozen
    np.testing.assert_allclose(model.para, [0.3 - 0.1j])

def test_serial_failure_is_wrapped():
    def _fail():
        raise DefFormatError("bad header", keyword="Trans")
    with pytest.raises(IngestionAborted, match="bad header"):
        run_root_with_result(_fail, comm=None)

def test_helpers_without_communicator():
    buffer = np.arange(3)
    assert broadcast_from_root("x", None) == "x"
    assert broadcast_buffer(buffer, None) is buffer

def test_serial_run_is_its_own_root(defset):
    namelist, config = _full_defset(defset), defset.config()
    assert run_root_with_result(lambda: 5, comm=None, root=1) == 5

    model = ingest_distributed(lambda: ingest(namelist, config), comm=None, root=1)
    assert model.frozen
    np.testing.assert_allclose(model.para, [0.3 - 0.1j])
