"""
Sizing pass.

Reads only the headers of the listed definition files and fills
:class:`~VMCDef.Ingest.sizes.DeclaredCounts`. ModPara is read first and in
full, so that an invalid run-parameter file fails before any term file is
opened. Files whose header is more than a plain count (the orbital variants,
the optimized translations and the backflow range) have a dedicated sizing
handler bound in :data:`FAMILY_REGISTRY`; every other family is sized from
its header shape alone.

--------------------------------------------------
File        : VMCDef/Ingest/sizing.py
Description : Header-only pass producing declared counts and flags.
--------------------------------------------------
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from VMCDef.Definitions.errors import (
    DefinitionError, DefFormatError, FeatureNotSupportedError, MultipleDefinitionError,
)
from VMCDef.Definitions.families import FAMILY_REGISTRY, FamilySpec, HeaderShape, OrbitalMode, Phase
from VMCDef.Definitions.keywords import Manifest, TermKeyword
from VMCDef.Definitions.modpara import RunParameters, parse_modpara
from VMCDef.Definitions.reader import DefFileReader
from VMCDef.Ingest.ingest_config import IngestConfig
from VMCDef.Ingest.lanczos import OneBodyGreenMap, reduce_green_requests
from VMCDef.Ingest.sizes import DeclaredCounts
from VMCDef.vmcdef_globals import get_logger

HEADER_COUNT_LINE   = 1
HEADER_FLAG_LINE    = 2

@dataclass
class SizingResult:
    """Output of the sizing pass, input of the allocation and the assembly pass."""
    params      : RunParameters
    counts      : DeclaredCounts
    green_map   : Optional[OneBodyGreenMap] = None

class _SizingState:
    """Mutable state shared by the sizing handlers."""

    def __init__(self, config: IngestConfig, params: RunParameters):
        self.config         = config
        self.params         = params
        self.counts         = DeclaredCounts()
        self.orbital_seen   = set()

# ---------------------------------------------------------------------------
#! Generic header reading
# ---------------------------------------------------------------------------

def _size_generic(state: _SizingState, spec: FamilySpec, reader: DefFileReader) -> None:
    if spec.header in (HeaderShape.COUNT, HeaderShape.COUNT_COMPLEX):
        setattr(state.counts, spec.count_field, reader.header_int(HEADER_COUNT_LINE))
    if spec.header is HeaderShape.COUNT_COMPLEX:
        setattr(state.counts, spec.complex_field, reader.header_int(HEADER_FLAG_LINE))

# ---------------------------------------------------------------------------
#! Dedicated handlers
# ---------------------------------------------------------------------------

@FAMILY_REGISTRY.handles(Phase.SIZE, TermKeyword.ORBITAL, TermKeyword.ORBITAL_ANTIPARALLEL,
                         TermKeyword.ORBITAL_PARALLEL, TermKeyword.ORBITAL_GENERAL)
def _size_orbital(state: _SizingState, spec: FamilySpec, reader: DefFileReader) -> None:
    """
    Accumulate the orbital count over the orbital variants.

    The general file stands alone; the simple and anti-parallel files are
    two names for the same family and exclude each other.
    """
    counts  = state.counts
    mode    = spec.orbital_mode
    seen    = state.orbital_seen
    general_clash = (mode is OrbitalMode.GENERAL and seen) or (OrbitalMode.GENERAL in seen)
    simple_clash  = mode in (OrbitalMode.SIMPLE, OrbitalMode.ANTIPARALLEL) and seen & {OrbitalMode.SIMPLE, OrbitalMode.ANTIPARALLEL}
    if general_clash or simple_clash:
        raise MultipleDefinitionError(DefinitionError.MULTIPLE_ORBITAL_DEF, keyword=reader.keyword, path=reader.path)
    seen.add(mode)

    count   = reader.header_int(HEADER_COUNT_LINE)
    flag    = reader.header_int(HEADER_FLAG_LINE)
    if mode is OrbitalMode.GENERAL:
        counts.n_orbital        = count
        counts.complex_orbital  = flag
        counts.orbital_general  = 1
    elif mode is OrbitalMode.PARALLEL:
        counts.n_orbital_p      = count
        counts.n_orbital       += 2 * count
        counts.complex_orbital += flag
        if count > 0:
            counts.orbital_general = 1
    else:
        counts.n_orbital_ap     = count
        counts.n_orbital       += count
        counts.complex_orbital += flag

@FAMILY_REGISTRY.handles(Phase.SIZE, TermKeyword.OPT_TRANS)
def _size_opt_trans(state: _SizingState, spec: FamilySpec, reader: DefFileReader) -> None:
    count = reader.header_int(HEADER_COUNT_LINE)
    if count < 1:
        raise DefFormatError(f"NQPOptTrans must be >= 1, got {count}", keyword=reader.keyword, path=reader.path)
    state.counts.n_qp_opt_trans = count
    state.counts.opt_trans      = 1

@FAMILY_REGISTRY.handles(Phase.SIZE, TermKeyword.BF_RANGE)
def _size_bf_range(state: _SizingState, spec: FamilySpec, reader: DefFileReader) -> None:
    n_range, n_nz = reader.header_ints(HEADER_COUNT_LINE, 2)
    if n_range < 1 or n_nz < 1:
        raise DefFormatError(f"Nrange and Nz must be positive, got {n_range} {n_nz}", keyword=reader.keyword, path=reader.path)
    state.counts.n_range    = n_range
    state.counts.n_nz       = n_nz

# ---------------------------------------------------------------------------
#! Pass
# ---------------------------------------------------------------------------

def _check_backflow_range(counts: DeclaredCounts, manifest: Manifest) -> None:
    if counts.n_backflow > 0 and counts.n_nz < 1:
        raise DefFormatError(DefinitionError.BACKFLOW_RANGE_MISSING, keyword=str(TermKeyword.BF), path=manifest.path(TermKeyword.BF))

def _check_feature(spec: FamilySpec, config: IngestConfig, path: str) -> None:
    if spec.feature == "backflow" and not config.enable_backflow:
        raise FeatureNotSupportedError(DefinitionError.BACKFLOW_NOT_SUPPORTED, keyword=str(spec.keyword), path=path)

def read_run_parameters(manifest: Manifest, config: IngestConfig, log=None) -> RunParameters:
    """Read and finalize the ModPara file."""
    log     = log or get_logger()
    path    = manifest.path(TermKeyword.MODPARA)
    reader  = DefFileReader(path, str(TermKeyword.MODPARA))
    params  = parse_modpara(reader, config.output_dir)
    if config.make_output_dir:
        os.makedirs(config.output_dir, exist_ok=True)
    log.info(f"Read File '{path}' for {TermKeyword.MODPARA}.")
    return params.finalize(log=log)

def size_definitions(manifest: Manifest, config: Optional[IngestConfig] = None, log=None) -> SizingResult:
    """
    Run the sizing pass.

    Parameters
    ----------
    manifest : Manifest
        Keyword -> path mapping.
    config : IngestConfig, optional
        Reader configuration.

    Returns
    -------
    SizingResult
        Finalized run parameters, declared counts and, in Lanczos mode, the
        one-body Green index map.

    Raises
    ------
    DefinitionError
        On the first missing, unreadable or malformed file.
    """
    config  = config or IngestConfig()
    log     = log or get_logger()
    manifest.require()

    params  = read_run_parameters(manifest, config, log)
    state   = _SizingState(config, params)

    for spec in FAMILY_REGISTRY.ordered():
        if spec.header in (HeaderShape.PARAMETERS, HeaderShape.NONE):
            continue
        path = manifest.path(spec.keyword)
        if not path:
            continue
        _check_feature(spec, config, path)

        reader  = DefFileReader(path, str(spec.keyword))
        handler = FAMILY_REGISTRY.handler(spec.keyword, Phase.SIZE) or _size_generic
        handler(state, spec, reader)
        log.info(f"Read File '{path}' for {spec.keyword}.")
    _check_backflow_range(state.counts, manifest)

    green_map = None
    if params.lanczos_active:
        green_map = reduce_green_requests(manifest, params.nsite, config.preamble_lines, log)
        state.counts.n_one_body_g_lz    = state.counts.n_one_body_g
        state.counts.n_one_body_g       = green_map.count
    return SizingResult(params=params, counts=state.counts, green_map=green_map)

# ---------------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------------
