"""
Initial values of the variational parameters (``In*`` files).

Each initial-value file repeats the count of the family it initializes in
its header and lists one ``idx re im`` row per parameter slot::

    ======================
    NGutzwillerIdx  2
    ======================
    ======================
    ======================
       0   -0.5   0.0
       1    0.1   0.0

Values land in the ``para`` buffer of the model at the offsets fixed by the
sizing pass. Slots without a file stay zero, except the optimized translation
weights, which start from the weights of the OptTrans file.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Tuple

import numpy as np

from VMCDef.Definitions.errors import DefinitionError, RowCountError
from VMCDef.Definitions.families import FAMILY_REGISTRY, FamilySpec, Phase, TermFamily
from VMCDef.Definitions.keywords import Manifest, TermKeyword
from VMCDef.Definitions.reader import DefFileReader
from VMCDef.Ingest.ingest_config import IngestConfig
from VMCDef.Ingest.model import IngestedModel
from VMCDef.vmcdef_globals import get_logger

_Slots = Callable[[IngestedModel], Tuple[int, int, int]]

# keyword -> model -> (declared count, first slot, number of slots)
_TARGETS: Dict[TermKeyword, _Slots] = {
    TermKeyword.IN_GUTZWILLER           : lambda m: (m.counts.n_gutzwiller, m.sizes.param_offset(TermFamily.GUTZWILLER), m.counts.n_gutzwiller),
    TermKeyword.IN_JASTROW              : lambda m: (m.counts.n_jastrow, m.sizes.param_offset(TermFamily.JASTROW), m.counts.n_jastrow),
    TermKeyword.IN_DH2                  : lambda m: (m.counts.n_dh2, m.sizes.param_offset(TermFamily.DOUBLON_HOLON_2SITE), 6 * m.counts.n_dh2),
    TermKeyword.IN_DH4                  : lambda m: (m.counts.n_dh4, m.sizes.param_offset(TermFamily.DOUBLON_HOLON_4SITE), 10 * m.counts.n_dh4),
    TermKeyword.IN_ORBITAL              : lambda m: (m.counts.n_orbital, m.sizes.param_offset(TermFamily.ORBITAL), m.sizes.n_slater),
    TermKeyword.IN_ORBITAL_GENERAL      : lambda m: (m.counts.n_orbital, m.sizes.param_offset(TermFamily.ORBITAL), m.sizes.n_slater),
    TermKeyword.IN_ORBITAL_ANTIPARALLEL : lambda m: (m.counts.n_orbital_ap, m.sizes.param_offset(TermFamily.ORBITAL), m.counts.n_orbital_ap),
    TermKeyword.IN_ORBITAL_PARALLEL     : lambda m: (m.counts.n_orbital_p, m.sizes.param_offset(TermFamily.ORBITAL) + m.counts.n_orbital_ap,
                                                     2 * m.counts.n_orbital_p),
    TermKeyword.IN_OPT_TRANS            : lambda m: (m.counts.n_qp_opt_trans if m.opt_trans_enabled else 0,
                                                     m.sizes.param_offset(TermFamily.OPT_TRANSLATION), m.sizes.n_opt_trans),
}

@FAMILY_REGISTRY.handles(Phase.INITIAL, *_TARGETS)
def _read_initial_block(model: IngestedModel, spec: FamilySpec, reader: DefFileReader, config: IngestConfig) -> None:
    declared, start, slots = _TARGETS[spec.keyword](model)
    count = reader.header_int(1)
    if count != declared:
        raise RowCountError(DefinitionError.ROW_COUNT_MISMATCH.format(found=count, expected=declared),
                            keyword=reader.keyword, path=reader.path)
    _, values = reader.body(config.preamble_lines).capped_rows(3, slots, float_columns=(1, 2))
    model.para[start:start + slots] = values[:, 0] + 1j * values[:, 1]

def read_initial_parameters(manifest: Manifest, model: IngestedModel, config: Optional[IngestConfig] = None, log=None) -> np.ndarray:
    """
    Populate ``model.para`` from the listed initial-value files.

    Parameters
    ----------
    manifest : Manifest
        Keyword -> path mapping.
    model : IngestedModel
        Assembled model; its ``para`` buffer is written in place.

    Returns
    -------
    np.ndarray
        The ``para`` buffer.
    """
    config  = config or IngestConfig()
    log     = log or get_logger()
    model.opt_trans[:] = model.para_qp_opt_trans[:model.sizes.n_opt_trans]

    for spec in FAMILY_REGISTRY.ordered():
        handler = FAMILY_REGISTRY.handler(spec.keyword, Phase.INITIAL)
        path    = manifest.path(spec.keyword)
        if handler is None or not path:
            continue
        handler(model, spec, DefFileReader(path, str(spec.keyword)), config)
        log.info(f"Read File '{path}' for {spec.keyword}.")
    return model.para

# ---------------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------------
