"""
VMCDef package initialization
=============================

Definition-file ingestion for variational Monte Carlo lattice models.

The package reads a keyword manifest and the fixed-format definition files it
lists (transfer integrals, interactions, Jastrow/Gutzwiller projections, pair
orbitals, translation symmetry, Green function requests, ...), sizes and
fills packed index/value buffers and replicates them on every MPI process.

Usage
-----
    import VMCDef

    with VMCDef.run("namelist.def") as session:
        model = session.model
        model.transfer, model.para_transfer, model.opt_flag

    log = VMCDef.get_logger()

----------------------------------------------------------
Date            : 19.10.2026
Description     : Definition-file ingestion and parameter-index assembly.
----------------------------------------------------------
"""

__version__         = "0.1.0"
__license__         = "CC-BY-4.0"
__description__     = "Definition-file ingestion and parameter-index assembly for VMC solvers"

__all__ = [
    # Sessions
    "IngestSession",
    "run",
    "ingest",
    # Configuration and model
    "IngestConfig",
    "IngestedModel",
    "Manifest",
    "read_manifest",
    "TermKeyword",
    "TermFamily",
    "FAMILY_REGISTRY",
    # Errors
    "DefinitionError",
    "IngestionAborted",
    # Global accessor re-exports
    "get_logger",
    # Meta
    "__version__",
    "__license__",
    "__description__",
]

####################################################################################################

import importlib
from typing import Any, Dict

from .vmcdef_globals import get_logger

# ----------------------------------------------------------------------------
# Lazy access to subpackages and common classes (keeps `import VMCDef` light)
# ----------------------------------------------------------------------------

_SUBMODULES: Dict[str, str] = {
    'Definitions'       : 'VMCDef.Definitions',
    'Ingest'            : 'VMCDef.Ingest',
    'Parallel'          : 'VMCDef.Parallel',
}

_API_EXPORTS: Dict[str, str] = {
    'IngestSession'     : 'VMCDef.session',
    'run'               : 'VMCDef.session',
    'ingest'            : 'VMCDef.Ingest.ingest',
    'IngestConfig'      : 'VMCDef.Ingest.ingest_config',
    'IngestedModel'     : 'VMCDef.Ingest.model',
    'Manifest'          : 'VMCDef.Definitions.keywords',
    'read_manifest'     : 'VMCDef.Definitions.keywords',
    'TermKeyword'       : 'VMCDef.Definitions.keywords',
    'TermFamily'        : 'VMCDef.Definitions.families',
    'FAMILY_REGISTRY'   : 'VMCDef.Definitions.families',
    'DefinitionError'   : 'VMCDef.Definitions.errors',
    'IngestionAborted'  : 'VMCDef.Definitions.errors',
}

def __getattr__(name: str) -> Any:  # PEP 562
    if name in _SUBMODULES:
        return importlib.import_module(_SUBMODULES[name])
    if name in _API_EXPORTS:
        mod = importlib.import_module(_API_EXPORTS[name])
        return getattr(mod, name)
    raise AttributeError(f"module 'VMCDef' has no attribute {name!r}")

def __dir__():
    return sorted(list(globals().keys()) + __all__)

# -------------------------------------------------------------------------------------------------
#! End of VMCDef package initialization
# -------------------------------------------------------------------------------------------------
