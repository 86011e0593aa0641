"""
Distribution of the ingested model from the root to every process.

Only the root reads files. Its outcome is broadcast first as a single
pass/fail signal; when the root failed, every process raises the same
:class:`~VMCDef.Definitions.errors.IngestionAborted` and no buffer is sent.
On success the root broadcasts

1. the integer and double parameter buffers (run parameters and declared
   counts), the two output file heads and the aggregate complex and
   general-orbital flags,
2. every packed buffer of the model, one buffer broadcast each.

Workers rebuild the layouts from the parameter buffers, allocate, and
receive into the freshly allocated buffers. Without mpi4py, or with a single
process, every function here is a pass-through.

--------------------------------------------------
File        : VMCDef/Parallel/distribute.py
Description : Root-to-all broadcast of the ingested model (mpi4py).
--------------------------------------------------
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import numpy as np

try:  # serial runs do not need mpi4py
    from mpi4py import MPI
except ImportError:
    MPI = None

from VMCDef.Definitions.errors import IngestionAborted
from VMCDef.Definitions.modpara import DOUBLE_FIELDS, INT_FIELDS, RunParameters
from VMCDef.Ingest.model import IngestedModel
from VMCDef.Ingest.sizes import COUNT_FIELDS, DeclaredCounts
from VMCDef.vmcdef_globals import get_logger, get_rank_logger

####################################################################################################
#! Communicator helpers
####################################################################################################

def default_comm():
    """``MPI.COMM_WORLD`` when mpi4py is importable, ``None`` otherwise."""
    return MPI.COMM_WORLD if MPI is not None else None

def comm_rank(comm) -> int:
    return comm.Get_rank() if comm is not None else 0

def comm_size(comm) -> int:
    return comm.Get_size() if comm is not None else 1

def is_distributed(comm) -> bool:
    return comm is not None and comm_size(comm) > 1

def is_root(comm, root: int = 0) -> bool:
    """A serial run is its own root whatever rank ``root`` names."""
    return not is_distributed(comm) or comm_rank(comm) == root

def broadcast_from_root(value: Any, comm, root: int = 0) -> Any:
    """Broadcast a Python object from ``root`` to all ranks."""
    if is_distributed(comm):
        return comm.bcast(value if comm_rank(comm) == root else None, root=root)
    return value

def broadcast_buffer(buffer: np.ndarray, comm, root: int = 0) -> np.ndarray:
    """In-place broadcast of a contiguous numpy buffer."""
    if is_distributed(comm) and buffer.size:
        comm.Bcast(buffer, root=root)
    return buffer

####################################################################################################
#! Pass / fail barrier
####################################################################################################

def run_root_with_result(action: Callable[[], Any], comm, root: int = 0) -> Any:
    """
    Run ``action`` on ``root`` only and propagate its failure to all ranks.

    The error (or ``None``) is broadcast before anything else. On failure
    every rank raises :class:`IngestionAborted` built from the root error.

    Returns
    -------
    Any
        The action result on ``root``, ``None`` elsewhere.
    """
    result, error = None, None
    if is_root(comm, root):
        try:
            result = action()
        except Exception as exc:
            error = exc
    error = broadcast_from_root(error, comm, root)
    if error is not None:
        raise IngestionAborted.from_error(error) from error
    return result

####################################################################################################
#! Model broadcast
####################################################################################################

_BUFFER_ORDER = ("def_int", "def_double", "def_complex", "lanczos_int", "para")

def distribute_model(model: Optional[IngestedModel], comm, root: int = 0) -> IngestedModel:
    """
    Replicate the root model on every rank.

    Parameters
    ----------
    model : IngestedModel or None
        Assembled model on ``root``; ignored elsewhere.
    comm : mpi4py communicator or None
        Communicator; ``None`` means serial execution.
    root : int
        Rank holding the model.

    Returns
    -------
    IngestedModel
        The root model on ``root``, an identical copy on every other rank.
    """
    if not is_distributed(comm):
        return model

    rank = comm_rank(comm)
    if rank == root:
        param_ints, param_doubles = model.params.to_buffers()
        count_ints  = model.counts.to_buffer()
        header      = (model.params.data_file_head, model.params.para_file_head,
                       model.all_complex_flag, int(model.orbital_general))
    else:
        param_ints      = np.zeros(len(INT_FIELDS), dtype=np.int32)
        param_doubles   = np.zeros(len(DOUBLE_FIELDS), dtype=np.float64)
        count_ints      = np.zeros(len(COUNT_FIELDS), dtype=np.int32)
        header          = None

    broadcast_buffer(param_ints, comm, root)
    broadcast_buffer(param_doubles, comm, root)
    broadcast_buffer(count_ints, comm, root)
    data_head, para_head, all_complex, general = broadcast_from_root(header, comm, root)

    if rank != root:
        params  = RunParameters.from_buffers(param_ints, param_doubles, (data_head, para_head))
        counts  = DeclaredCounts.from_buffer(count_ints)
        model   = IngestedModel(params, counts)
        if model.all_complex_flag != all_complex or int(model.orbital_general) != general:
            raise IngestionAborted(f"flags received on rank {rank} disagree with the parameter buffers")

    for name in _BUFFER_ORDER:
        broadcast_buffer(model.buffers[name], comm, root)

    # identical on every rank, no broadcast needed
    model.synthesize_identity_translation()
    if rank != root:
        get_rank_logger(rank).debug(f"received definitions: {model.summary()}")
    return model

def ingest_distributed(build: Callable[[], IngestedModel], comm=None, root: int = 0) -> IngestedModel:
    """
    Root-parse, barrier and broadcast.

    Parameters
    ----------
    build : callable
        Zero-argument callable performing the root-side ingestion.
    comm : mpi4py communicator, optional
        Defaults to ``MPI.COMM_WORLD`` (or serial without mpi4py).
    root : int
        Rank that parses.

    Returns
    -------
    IngestedModel
        Read-only model, identical on every rank.
    """
    comm  = default_comm() if comm is None else comm
    model = run_root_with_result(build, comm, root)
    model = distribute_model(model, comm, root)
    if is_root(comm, root):
        get_logger().info(f"Definitions distributed to {comm_size(comm)} process(es).")
    return model.freeze()

# --------------------------------------------------------------------------
#! EOF
# --------------------------------------------------------------------------
