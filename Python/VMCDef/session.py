"""
VMCDef Session Management
=========================

High-level entry point for reading a definition set. A session bundles the
manifest path, the reader configuration and the communicator, runs the root
ingestion and the broadcast, and hands back the read-only model.

Usage
-----
    import VMCDef

    # Using context manager (recommended)
    with VMCDef.run("namelist.def") as session:
        model = session.model
        ...

    # Or creating a session object
    session = VMCDef.IngestSession("namelist.def", config=VMCDef.IngestConfig(output_dir="out"))
    model   = session.start().model
    session.stop()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from .Definitions.keywords import Manifest
from .Ingest.ingest import ingest
from .Ingest.ingest_config import IngestConfig
from .Ingest.model import IngestedModel
from .Parallel.distribute import comm_rank, default_comm, ingest_distributed
from .vmcdef_globals import get_logger

class IngestSession:
    """
    Reads one definition set and replicates it on every process.

    Parameters
    ----------
    namelist : str | Path | Manifest
        Manifest path (or parsed manifest) listing the definition files.
    config : IngestConfig, optional
        Reader configuration. Defaults to :class:`IngestConfig` built from the
        environment.
    comm : mpi4py communicator, optional
        Communicator used for the broadcast. Defaults to ``MPI.COMM_WORLD``
        when mpi4py is available, serial execution otherwise.
    log_level : int, optional
        Level applied to the global logger.

    Examples
    --------
    >>> session = IngestSession("namelist.def")
    >>> model = session.start().model
    >>> model.sizes.n_para
    """

    def __init__(self,
                 namelist: Union[str, Path, Manifest],
                 config: Optional[IngestConfig] = None,
                 comm=None,
                 log_level: Optional[int] = None):
        self._namelist  = namelist
        self._config    = config or IngestConfig()
        self._comm      = comm if comm is not None else default_comm()
        self._log       = get_logger()
        if log_level is not None:
            self._log.setLevel(log_level)
        self._model: Optional[IngestedModel] = None

    @property
    def config(self) -> IngestConfig:
        return self._config

    @property
    def rank(self) -> int:
        return comm_rank(self._comm)

    @property
    def model(self) -> IngestedModel:
        if self._model is None:
            raise RuntimeError("IngestSession has not been started.")
        return self._model

    def start(self) -> "IngestSession":
        """
        Ingest on the root and distribute to every rank.

        Returns
        -------
        IngestSession
            The started session instance.

        Raises
        ------
        IngestionAborted
            On every rank when the root failed to read the definitions.
        """
        if self.rank == self._config.root:
            self._log.info(f"Starting IngestSession(namelist={self._namelist}, config={self._config.to_dict()})")

        def _build() -> IngestedModel:
            return ingest(self._namelist, self._config, self._log)

        try:
            self._model = ingest_distributed(_build, self._comm, self._config.root)
        except Exception as e:
            if self.rank == self._config.root:
                self._log.error(f"Definition ingestion failed: {e}")
            raise
        return self

    def stop(self):
        """Release the model."""
        if self.rank == self._config.root:
            self._log.info("Stopping IngestSession")
        self._model = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False

def run(namelist: Union[str, Path, Manifest],
        config: Optional[IngestConfig] = None,
        comm=None,
        log_level: Optional[int] = logging.INFO) -> IngestSession:
    """
    Create an :class:`IngestSession` for use as a context manager.

    Examples
    --------
    >>> with run("namelist.def") as session:
    ...     print(session.model.summary())
    """
    return IngestSession(namelist, config=config, comm=comm, log_level=log_level)

# ---------------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------------
