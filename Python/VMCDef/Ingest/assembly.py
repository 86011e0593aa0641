"""
Index assembly pass.

Every listed file is read a second time, now in full: the five-line preamble
is skipped and the body is cut into fixed-width rows that are validated and
written into the views of the :class:`~VMCDef.Ingest.model.IngestedModel`
allocated from the sizing pass. Families carrying variational parameters end
with a block of ``<raw_index> <real_flag>`` rows that is appended to the
free-parameter flags at the family offset.

Rules shared by all handlers:

* the declared count is authoritative; a file with fewer rows fails, a file
  with more rows fails unless the rows lie beyond a cap,
* rows are rejected on the first invalid site,
* the imaginary-optimizable flag of a parameter is the family complex flag.

--------------------------------------------------
File        : VMCDef/Ingest/assembly.py
Description : Full-body pass filling the model index and coefficient arrays.
--------------------------------------------------
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from VMCDef.Definitions.errors import (
    ConstraintError, DefinitionError, OptFlagError, OrbitalOrderError, SiteIndexError, SzConservationError,
)
from VMCDef.Definitions.families import FAMILY_REGISTRY, FamilySpec, Phase, TermFamily
from VMCDef.Definitions.keywords import Manifest, TermKeyword
from VMCDef.Definitions.reader import DefFileReader, TokenStream
from VMCDef.Definitions.sites import check_range_columns, check_site_columns, check_spin_columns, first_equal_row, first_invalid_row
from VMCDef.Ingest.ingest_config import IngestConfig
from VMCDef.Ingest.lanczos import OneBodyGreenMap
from VMCDef.Ingest.model import IngestedModel
from VMCDef.Ingest.sizing import SizingResult
from VMCDef.vmcdef_globals import get_logger

#: Files read even when their declared count is zero.
ALWAYS_READ = (TermKeyword.LOCSPIN, TermKeyword.ORBITAL_GENERAL, TermKeyword.BF_RANGE)

class AssemblyContext:
    """State shared by the assembly handlers of one run."""

    def __init__(self, model: IngestedModel, green_map: Optional[OneBodyGreenMap] = None):
        self.model          = model
        self.params         = model.params
        self.counts         = model.counts
        self.sizes          = model.sizes
        self.nsite          = model.params.nsite
        self.green_map      = green_map
        self.opt_written    = 0

    @property
    def ap(self) -> bool:
        return bool(self.params.ap_flag)

    # ------------------
    #! helpers
    # ------------------

    def sites(self, stream: TokenStream, block: np.ndarray, columns) -> None:
        check_site_columns(block, columns, self.nsite, stream.keyword, stream.path)

    def read_opt_block(self, stream: TokenStream, family: TermFamily, expected: int, complex_flag: int, start: int = 0) -> None:
        """
        Read the trailing ``<raw_index> <real_flag>`` rows of a family.

        Parameters
        ----------
        family : TermFamily
            Parameter family, selects the offset in ``opt_flag``.
        expected : int
            Number of rows the block must hold.
        complex_flag : int
            Family complex flag, stored as the imaginary-optimizable flag.
        start : int
            Offset inside the family block.
        """
        flags, _ = stream.exact_rows(2, expected)
        offset   = self.sizes.param_offset(family) + start
        block    = self.model.opt_flag[offset:offset + expected]
        block[:, 0] = flags[:, 1]
        block[:, 1] = 1 if complex_flag else 0
        self.opt_written += expected

def _sign_column(ints: np.ndarray, ap: bool, column: int) -> np.ndarray:
    return ints[:, column] if ap else np.ones(ints.shape[0], dtype=ints.dtype)

# ---------------------------------------------------------------------------
#! Hamiltonian terms
# ---------------------------------------------------------------------------

_handles = FAMILY_REGISTRY.handles

@_handles(Phase.ASSEMBLE, TermKeyword.LOCSPIN)
def _assemble_loc_spin(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    n, counts = ctx.nsite, ctx.counts
    ints, _ = stream.exact_rows(2, n)
    ctx.sites(stream, ints, [0])
    ctx.model.loc_spn[ints[:, 0]] = ints[:, 1]

    if counts.n_loc_spin > ctx.sizes.nsize:
        raise ConstraintError(f"NLocalSpin ({counts.n_loc_spin}) is larger than 2*Ne ({ctx.sizes.nsize})",
                              keyword=stream.keyword, path=stream.path)
    if counts.n_loc_spin > 0 and ctx.params.ex_update_path == 0:
        raise ConstraintError("NExUpdatePath must be non-zero when local spins are present",
                              keyword=stream.keyword, path=stream.path)

@_handles(Phase.ASSEMBLE, TermKeyword.TRANS)
def _assemble_transfer(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    ints, floats = stream.exact_rows(6, ctx.counts.n_transfer, float_columns=(4, 5))
    ctx.sites(stream, ints, [0, 2])
    ctx.model.transfer[:]       = ints
    ctx.model.para_transfer[:]  = floats[:, 0] + 1j * floats[:, 1]

@_handles(Phase.ASSEMBLE, TermKeyword.COULOMB_INTRA)
def _assemble_coulomb_intra(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    ints, floats = stream.exact_rows(2, ctx.counts.n_coulomb_intra, float_columns=(1,))
    ctx.sites(stream, ints, [0])
    ctx.model.coulomb_intra[:]      = ints[:, 0]
    ctx.model.para_coulomb_intra[:] = floats[:, 0]

_PAIR_TERMS = {
    TermKeyword.COULOMB_INTER   : ("coulomb_inter",     "para_coulomb_inter"),
    TermKeyword.HUND            : ("hund_coupling",     "para_hund_coupling"),
    TermKeyword.EXCHANGE        : ("exchange_coupling", "para_exchange_coupling"),
}

@_handles(Phase.ASSEMBLE, *_PAIR_TERMS)
def _assemble_pair_term(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    idx_name, para_name = _PAIR_TERMS[spec.keyword]
    ints, floats = stream.exact_rows(3, getattr(ctx.counts, spec.count_field), float_columns=(2,))
    ctx.sites(stream, ints, [0, 1])
    ctx.model.view(idx_name)[:]     = ints
    ctx.model.view(para_name)[:]    = floats[:, 0]

@_handles(Phase.ASSEMBLE, TermKeyword.PAIR_HOP)
def _assemble_pair_hop(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    ints, floats = stream.exact_rows(3, ctx.counts.n_pair_hop, float_columns=(2,))
    ctx.sites(stream, ints, [0, 1])
    hop, para = ctx.model.pair_hopping, ctx.model.para_pair_hopping
    hop[0::2]   = ints
    hop[1::2]   = ints[:, ::-1]
    para[0::2]  = floats[:, 0]
    para[1::2]  = floats[:, 0]

@_handles(Phase.ASSEMBLE, TermKeyword.INTER_ALL)
def _assemble_inter_all(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    ints, floats = stream.exact_rows(10, ctx.counts.n_inter_all, float_columns=(8, 9))
    ctx.sites(stream, ints, [0, 2, 4, 6])
    s1, s2, s3, s4 = ints[:, 1], ints[:, 3], ints[:, 5], ints[:, 7]
    bad = np.flatnonzero(~((s1 == s2) | (s3 == s4) | (s1 == s3) | (s2 == s4)))
    if bad.size:
        raise SzConservationError(DefinitionError.SZ_NOT_CONSERVED, keyword=stream.keyword, path=stream.path, row=int(bad[0]))
    ctx.model.inter_all[:]      = ints
    ctx.model.para_inter_all[:] = floats[:, 0] + 1j * floats[:, 1]

# ---------------------------------------------------------------------------
#! Projections
# ---------------------------------------------------------------------------

@_handles(Phase.ASSEMBLE, TermKeyword.GUTZWILLER)
def _assemble_gutzwiller(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    ints, _ = stream.capped_rows(2, ctx.nsite)
    ctx.sites(stream, ints, [0])
    ctx.model.gutzwiller_idx[ints[:, 0]] = ints[:, 1]
    ctx.read_opt_block(stream, TermFamily.GUTZWILLER, ctx.counts.n_gutzwiller, ctx.counts.complex_gutzwiller)

@_handles(Phase.ASSEMBLE, TermKeyword.JASTROW)
def _assemble_jastrow(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    n       = ctx.nsite
    ints, _ = stream.capped_rows(3, n * (n - 1))
    diag    = first_equal_row(ints, 0, 1)
    bad     = first_invalid_row(ints, [0, 1], 0, n)
    # rows are checked in file order, i != j before the site range
    if diag >= 0 and (bad < 0 or diag <= bad):
        raise SiteIndexError(DefinitionError.DIAGONAL_JASTROW, keyword=stream.keyword, path=stream.path, row=diag)
    ctx.sites(stream, ints, [0, 1])
    jastrow = ctx.model.jastrow_idx
    jastrow[ints[:, 0], ints[:, 1]] = ints[:, 2]
    np.fill_diagonal(jastrow, -1)
    ctx.read_opt_block(stream, TermFamily.JASTROW, ctx.counts.n_jastrow, ctx.counts.complex_jastrow)

@_handles(Phase.ASSEMBLE, TermKeyword.DH2, TermKeyword.DH4)
def _assemble_doublon_holon(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    """
    Rows ``i x_0 .. x_{m-1} n`` with ``m = 2`` (DH2) or ``m = 4`` (DH4),
    stored at ``idx[n][m*i + k] = x_k``.
    """
    n       = ctx.nsite
    m       = 2 if spec.keyword is TermKeyword.DH2 else 4
    count   = getattr(ctx.counts, spec.count_field)
    ints, _ = stream.capped_rows(m + 2, n * count)
    ctx.sites(stream, ints, list(range(m + 1)))
    check_range_columns(ints, [m + 1], count, DefinitionError.INDEX_OUT_OF_RANGE.format(what=str(spec.keyword), bound=count),
                        ConstraintError, stream.keyword, stream.path)

    table = ctx.model.view("doublon_holon_2site_idx" if m == 2 else "doublon_holon_4site_idx")
    for k in range(m):
        table[ints[:, m + 1], m * ints[:, 0] + k] = ints[:, 1 + k]
    ctx.read_opt_block(stream, spec.family, (6 if m == 2 else 10) * count, getattr(ctx.counts, spec.complex_field))

# ---------------------------------------------------------------------------
#! Orbitals
# ---------------------------------------------------------------------------

def _write_antisymmetric(ctx: AssemblyContext, I: np.ndarray, J: np.ndarray, f: np.ndarray, sgn: np.ndarray) -> None:
    ctx.model.orbital_idx[I, J] = f
    ctx.model.orbital_sgn[I, J] = sgn
    ctx.model.orbital_idx[J, I] = f
    ctx.model.orbital_sgn[J, I] = -sgn

def _check_order(stream: TokenStream, I: np.ndarray, J: np.ndarray) -> None:
    bad = np.flatnonzero(I >= J)
    if bad.size:
        raise OrbitalOrderError(DefinitionError.ORBITAL_ORDER, keyword=stream.keyword, path=stream.path, row=int(bad[0]))

@_handles(Phase.ASSEMBLE, TermKeyword.ORBITAL, TermKeyword.ORBITAL_ANTIPARALLEL)
def _assemble_orbital_antiparallel(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    """
    Rows ``i j f`` (``i j f sgn`` with antiperiodic boundaries) pairing an
    up electron on ``i`` with a down electron on ``j``.
    """
    n       = ctx.nsite
    ints, _ = stream.capped_rows(4 if ctx.ap else 3, n * n)
    ctx.sites(stream, ints, [0, 1])
    i, j, f = ints[:, 0], ints[:, 1], ints[:, 2]
    sgn     = _sign_column(ints, ctx.ap, 3)
    _check_order(stream, i, j + n)

    if ctx.model.orbital_general:
        _write_antisymmetric(ctx, i, j + n, f, sgn)
    else:
        ctx.model.orbital_idx[i, j] = f
        ctx.model.orbital_sgn[i, j] = sgn
    ctx.read_opt_block(stream, TermFamily.ORBITAL, ctx.counts.n_orbital_ap, ctx.counts.complex_orbital)

@_handles(Phase.ASSEMBLE, TermKeyword.ORBITAL_GENERAL)
def _assemble_orbital_general(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    """Rows ``i s_i j s_j f`` (+ ``sgn``) over spin-extended indices ``i + s*Nsite``."""
    n       = ctx.nsite
    ints, _ = stream.capped_rows(6 if ctx.ap else 5, 2 * n * n - n)
    ctx.sites(stream, ints, [0, 2])
    check_spin_columns(ints, [1, 3], stream.keyword, stream.path)
    I       = ints[:, 0] + ints[:, 1] * n
    J       = ints[:, 2] + ints[:, 3] * n
    _check_order(stream, I, J)
    _write_antisymmetric(ctx, I, J, ints[:, 4], _sign_column(ints, ctx.ap, 5))
    ctx.read_opt_block(stream, TermFamily.ORBITAL, ctx.counts.n_orbital, ctx.counts.complex_orbital)

@_handles(Phase.ASSEMBLE, TermKeyword.ORBITAL_PARALLEL)
def _assemble_orbital_parallel(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    """
    Rows ``i j f`` (+ ``sgn``) for same-spin pairs, ``i < j``. Each row fills
    both spin sectors with the function index ``NAP + 2 f + s``.
    """
    n, n_ap = ctx.nsite, ctx.counts.n_orbital_ap
    ints, _ = stream.capped_rows(4 if ctx.ap else 3, n * (n - 1) // 2)
    ctx.sites(stream, ints, [0, 1])
    i, j, f = ints[:, 0], ints[:, 1], ints[:, 2]
    sgn     = _sign_column(ints, ctx.ap, 3)
    _check_order(stream, i, j)
    for s in (0, 1):
        _write_antisymmetric(ctx, i + s * n, j + s * n, n_ap + 2 * f + s, sgn)
    ctx.read_opt_block(stream, TermFamily.ORBITAL, 2 * ctx.counts.n_orbital_p, ctx.counts.complex_orbital, start=n_ap)

# ---------------------------------------------------------------------------
#! Translations
# ---------------------------------------------------------------------------

def _read_permutations(ctx: AssemblyContext, stream: TokenStream, count: int, perm: np.ndarray, sgn: np.ndarray,
                       inverse: Optional[np.ndarray] = None) -> None:
    """Rows ``k j p`` (+ ``sgn``): translation ``k`` maps site ``j`` to ``p``."""
    ints, _ = stream.exact_rows(4 if ctx.ap else 3, count * ctx.nsite)
    check_range_columns(ints, [0], count, DefinitionError.INDEX_OUT_OF_RANGE.format(what="translation", bound=count),
                        ConstraintError, stream.keyword, stream.path)
    ctx.sites(stream, ints, [1, 2])
    k, j, p = ints[:, 0], ints[:, 1], ints[:, 2]
    perm[k, j]  = p
    sgn[k, j]   = _sign_column(ints, ctx.ap, 3)
    if inverse is not None:
        inverse[k, p] = j

@_handles(Phase.ASSEMBLE, TermKeyword.TRANS_SYM)
def _assemble_translation(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    count = ctx.counts.n_qp_trans
    ints, floats = stream.capped_rows(3, count, float_columns=(1, 2))
    check_range_columns(ints, [0], count, DefinitionError.INDEX_OUT_OF_RANGE.format(what="translation", bound=count),
                        ConstraintError, stream.keyword, stream.path)
    ctx.model.para_qp_trans[ints[:, 0]] = floats[:, 0] + 1j * floats[:, 1]
    _read_permutations(ctx, stream, count, ctx.model.qp_trans, ctx.model.qp_trans_sgn, ctx.model.qp_trans_inv)

@_handles(Phase.ASSEMBLE, TermKeyword.OPT_TRANS)
def _assemble_opt_translation(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    count = ctx.counts.n_qp_opt_trans
    ints, floats = stream.capped_rows(2, count, float_columns=(1,))
    check_range_columns(ints, [0], count, DefinitionError.INDEX_OUT_OF_RANGE.format(what="translation", bound=count),
                        ConstraintError, stream.keyword, stream.path)
    ctx.model.para_qp_opt_trans[ints[:, 0]] = floats[:, 0]

    block = ctx.model.param_block(TermFamily.OPT_TRANSLATION)
    block[:, 0] = 1
    block[:, 1] = 0
    ctx.opt_written += block.shape[0]
    _read_permutations(ctx, stream, count, ctx.model.qp_opt_trans, ctx.model.qp_opt_trans_sgn)

# ---------------------------------------------------------------------------
#! Green function requests
# ---------------------------------------------------------------------------

@_handles(Phase.ASSEMBLE, TermKeyword.ONE_BODY_G)
def _assemble_one_body_green(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    if ctx.green_map is None:
        ints, _ = stream.exact_rows(4, ctx.counts.n_one_body_g)
        ctx.sites(stream, ints, [0, 2])
        ctx.model.cis_ajs_idx[:] = ints
        return
    ints, _ = stream.exact_rows(4, ctx.counts.n_one_body_g_lz)
    ctx.sites(stream, ints, [0, 2])
    ctx.model.cis_ajs_idx[ctx.green_map.one_body_indices] = ints

@_handles(Phase.ASSEMBLE, TermKeyword.TWO_BODY_G_EX)
def _assemble_two_body_green_exact(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    ints, _ = stream.exact_rows(8, ctx.counts.n_two_body_g_ex)
    ctx.sites(stream, ints, [0, 2, 4, 6])
    ctx.model.cis_ajs_ckt_alt_idx[:] = ints

@_handles(Phase.ASSEMBLE, TermKeyword.TWO_BODY_G)
def _assemble_two_body_green(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    ints, _ = stream.exact_rows(8, ctx.counts.n_two_body_g)
    ctx.sites(stream, ints, [0, 2, 4, 6])
    bad = np.flatnonzero((ints[:, 1] != ints[:, 3]) | (ints[:, 5] != ints[:, 7]))
    if bad.size:
        raise SzConservationError(DefinitionError.SZ_NOT_CONSERVED, keyword=stream.keyword, path=stream.path, row=int(bad[0]))
    ctx.model.cis_ajs_ckt_alt_dc_idx[:] = ints

    if ctx.green_map is not None:
        halves = ctx.green_map.two_body_indices
        ctx.model.cis_ajs_idx[halves[:, 0]]     = ints[:, 0:4]
        ctx.model.cis_ajs_idx[halves[:, 1]]     = ints[:, 4:8]
        ctx.model.cis_ajs_ckt_alt_lz_idx[:]     = halves

# ---------------------------------------------------------------------------
#! Backflow
# ---------------------------------------------------------------------------

@_handles(Phase.ASSEMBLE, TermKeyword.BF_RANGE)
def _assemble_backflow_range(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    """Rows are validated even when no backflow index is declared."""
    n, n_range = ctx.nsite, ctx.counts.n_range
    ints, _ = stream.exact_rows(3, n * n_range)
    ctx.sites(stream, ints, [0, 1])
    if not ctx.model.has_view("pos_bf"):
        return
    rows = np.arange(ints.shape[0])
    ctx.model.pos_bf[ints[:, 0], rows % n_range] = ints[:, 1]
    ctx.model.range_idx[ints[:, 0], ints[:, 1]]  = ints[:, 2]

@_handles(Phase.ASSEMBLE, TermKeyword.BF)
def _assemble_backflow(ctx: AssemblyContext, spec: FamilySpec, stream: TokenStream) -> None:
    n, n_range = ctx.nsite, ctx.counts.n_range
    ints, _ = stream.capped_rows(5, n * n * n_range * n_range)
    ctx.sites(stream, ints, [0, 1, 2, 3])
    ctx.model.backflow_idx[ints[:, 0] * n + ints[:, 1], ints[:, 2] * n + ints[:, 3]] = ints[:, 4]
    ctx.read_opt_block(stream, TermFamily.BACKFLOW, ctx.sizes.n_proj_bf, 0)

# ---------------------------------------------------------------------------
#! Pass
# ---------------------------------------------------------------------------

def _declared(spec: FamilySpec, ctx: AssemblyContext) -> int:
    if spec.keyword in ALWAYS_READ or spec.count_field is None:
        return 1
    return getattr(ctx.counts, spec.count_field)

def assemble_definitions(manifest: Manifest, sizing: SizingResult, config: Optional[IngestConfig] = None, log=None) -> IngestedModel:
    """
    Run the assembly pass.

    Parameters
    ----------
    manifest : Manifest
        Keyword -> path mapping used by the sizing pass.
    sizing : SizingResult
        Output of :func:`~VMCDef.Ingest.sizing.size_definitions`.
    config : IngestConfig, optional
        Reader configuration.

    Returns
    -------
    IngestedModel
        Fully assembled model (still writable).

    Raises
    ------
    DefinitionError
        On the first invalid row, a row-count mismatch or an incomplete
        free-parameter description.
    """
    config  = config or IngestConfig()
    log     = log or get_logger()
    model   = IngestedModel(sizing.params, sizing.counts)
    ctx     = AssemblyContext(model, sizing.green_map)
    if sizing.green_map is not None:
        model.one_body_g_idx[:] = sizing.green_map.table

    for spec in FAMILY_REGISTRY.ordered():
        handler = FAMILY_REGISTRY.handler(spec.keyword, Phase.ASSEMBLE)
        path    = manifest.path(spec.keyword)
        if handler is None or not path or _declared(spec, ctx) <= 0:
            continue
        reader  = DefFileReader(path, str(spec.keyword))
        handler(ctx, spec, reader.body(config.preamble_lines))

    if ctx.opt_written != model.sizes.n_para:
        raise OptFlagError(f"{DefinitionError.OPT_FLAG_INCOMPLETE}: {ctx.opt_written} entries read, NPara = {model.sizes.n_para}",
                           path=manifest.source)
    model.synthesize_identity_translation()
    log.info(f"Assembled definitions: {model.summary()}")
    return model

# ---------------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------------
