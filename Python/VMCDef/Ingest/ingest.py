"""
Root-side ingestion: manifest -> sizing -> allocation -> assembly -> initial values.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from VMCDef.Definitions.keywords import Manifest, read_manifest
from VMCDef.Ingest.assembly import assemble_definitions
from VMCDef.Ingest.ingest_config import IngestConfig
from VMCDef.Ingest.initial import read_initial_parameters
from VMCDef.Ingest.model import IngestedModel
from VMCDef.Ingest.sizing import size_definitions
from VMCDef.vmcdef_globals import get_logger

def ingest(namelist: Union[str, Path, Manifest], config: Optional[IngestConfig] = None, log=None) -> IngestedModel:
    """
    Read every definition file listed in ``namelist`` on the calling process.

    Parameters
    ----------
    namelist : str | Path | Manifest
        Path of the manifest, or an already parsed manifest.
    config : IngestConfig, optional
        Reader configuration.

    Returns
    -------
    IngestedModel
        The assembled, still writable model.
    """
    config      = config or IngestConfig()
    log         = log or get_logger()
    manifest    = namelist if isinstance(namelist, Manifest) else read_manifest(namelist)

    sizing      = size_definitions(manifest, config, log)
    model       = assemble_definitions(manifest, sizing, config, log)
    if config.read_initial:
        read_initial_parameters(manifest, model, config, log)
    return model
