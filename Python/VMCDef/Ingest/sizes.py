"""
Declared counts and derived sizes.

The sizing pass fills :class:`DeclaredCounts` from file headers. Everything
else (buffer footprints, free-parameter offsets, quadrature sizes) is derived
by :func:`derive_sizes` from the run parameters and the declared counts only.
Workers receive both through the parameter buffers and derive the very same
:class:`ModelSizes`, which is what keeps the allocation identical across
processes.

--------------------------------------------------
File        : VMCDef/Ingest/sizes.py
Description : Declared per-family counts and derived model sizes.
--------------------------------------------------
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Dict, Tuple

import numpy as np

from VMCDef.Definitions.errors import DefinitionError, DefFormatError
from VMCDef.Definitions.families import TermFamily
from VMCDef.Definitions.modpara import RunParameters

# ---------------------------------------------------------------------------
#! Declared counts
# ---------------------------------------------------------------------------

@dataclass
class DeclaredCounts:
    """
    Header counts and flags gathered by the sizing pass.

    ``n_pair_hop`` is the declared row count (each row is stored twice).
    ``n_one_body_g`` holds the deduplicated count in Lanczos mode, the raw
    declared count is then kept in ``n_one_body_g_lz``.
    """

    n_loc_spin          : int = 0
    n_transfer          : int = 0
    n_coulomb_intra     : int = 0
    n_coulomb_inter     : int = 0
    n_hund              : int = 0
    n_pair_hop          : int = 0
    n_exchange          : int = 0
    n_gutzwiller        : int = 0
    n_jastrow           : int = 0
    n_dh2               : int = 0
    n_dh4               : int = 0
    n_orbital           : int = 0
    n_orbital_ap        : int = 0
    n_orbital_p         : int = 0
    n_qp_trans          : int = 0
    n_one_body_g        : int = 0
    n_one_body_g_lz     : int = 0
    n_two_body_g        : int = 0
    n_two_body_g_ex     : int = 0
    n_inter_all         : int = 0
    n_qp_opt_trans      : int = 1
    n_range             : int = 0
    n_nz                : int = 0
    n_backflow          : int = 0
    complex_gutzwiller  : int = 0
    complex_jastrow     : int = 0
    complex_dh2         : int = 0
    complex_dh4         : int = 0
    complex_orbital     : int = 0
    orbital_general     : int = 0
    opt_trans           : int = 0

    def to_buffer(self) -> np.ndarray:
        return np.array([getattr(self, n) for n in COUNT_FIELDS], dtype=np.int32)

    @classmethod
    def from_buffer(cls, buffer: np.ndarray) -> "DeclaredCounts":
        return cls(**{n: int(v) for n, v in zip(COUNT_FIELDS, buffer)})

    @property
    def all_complex_flag(self) -> int:
        """Zero selects the real-only fast path downstream."""
        return (self.complex_gutzwiller + self.complex_jastrow + self.complex_dh2
                + self.complex_dh4 + self.complex_orbital)

COUNT_FIELDS: Tuple[str, ...] = tuple(f.name for f in fields(DeclaredCounts))

# ---------------------------------------------------------------------------
#! Derived sizes
# ---------------------------------------------------------------------------

#: Free-parameter family order.
PARAMETER_FAMILIES: Tuple[TermFamily, ...] = (
    TermFamily.GUTZWILLER,
    TermFamily.JASTROW,
    TermFamily.DOUBLON_HOLON_2SITE,
    TermFamily.DOUBLON_HOLON_4SITE,
    TermFamily.ORBITAL,
    TermFamily.OPT_TRANSLATION,
    TermFamily.BACKFLOW,
)

@dataclass(frozen=True)
class ModelSizes:
    nsite               : int
    nsite2              : int
    nsize               : int
    n_pair_hopping      : int
    n_proj              : int
    n_slater            : int
    n_opt_trans         : int
    n_range_idx         : int
    n_bf_idx_total      : int
    n_proj_bf           : int
    n_para              : int
    n_qp_fix            : int
    n_qp_full           : int
    sr_opt_size         : int
    orbital_dim         : int
    n_total_def_int     : int
    n_total_def_double  : int
    n_total_def_complex : int
    all_complex_flag    : int
    param_blocks        : Dict[TermFamily, Tuple[int, int]] = field(default_factory=dict)

    def param_offset(self, family: TermFamily) -> int:
        return self.param_blocks[family][0]

    def param_length(self, family: TermFamily) -> int:
        return self.param_blocks[family][1]

    def param_slice(self, family: TermFamily) -> slice:
        start, length = self.param_blocks[family]
        return slice(start, start + length)

    def summary(self) -> str:
        return (f"Nsite={self.nsite} Nsize={self.nsize} NProj={self.n_proj} NSlater={self.n_slater} "
                f"NOptTrans={self.n_opt_trans} NProjBF={self.n_proj_bf} NPara={self.n_para} "
                f"NTotalDefInt={self.n_total_def_int} NTotalDefDouble={self.n_total_def_double}")

def derive_sizes(params: RunParameters, counts: DeclaredCounts) -> ModelSizes:
    """
    Derive every size of the model from the run parameters and the counts.

    Parameters
    ----------
    params : RunParameters
        Finalized run parameters (``mp_trans`` already non-negative).
    counts : DeclaredCounts
        Counts gathered by the sizing pass.

    Returns
    -------
    ModelSizes
        Buffer footprints, parameter offsets and quadrature sizes.
    """
    n               = params.nsite
    n_pair_hopping  = 2 * counts.n_pair_hop
    n_proj          = counts.n_gutzwiller + counts.n_jastrow + 6 * counts.n_dh2 + 10 * counts.n_dh4
    n_slater        = counts.n_orbital
    n_opt_trans     = counts.n_qp_opt_trans if counts.opt_trans > 0 else 0

    if counts.n_backflow > 0:
        if counts.n_nz < 1:
            raise DefFormatError(DefinitionError.BACKFLOW_RANGE_MISSING, keyword="BF")
        n_range_idx     = 3 * (counts.n_range - 1) // counts.n_nz + 1
        n_bf_idx_total  = (n_range_idx - 1) * n_range_idx // 2 + n_range_idx
    else:
        n_range_idx     = 0
        n_bf_idx_total  = 0
    n_proj_bf       = n_bf_idx_total * counts.n_backflow
    n_para          = n_proj + n_slater + n_opt_trans + n_proj_bf

    n_qp_fix        = params.sp_gauss_leg * params.mp_trans
    orbital_dim     = 2 * n if counts.orbital_general else n

    n_total_def_int = (n                                    # loc_spn
                    + 4 * counts.n_transfer
                    + counts.n_coulomb_intra
                    + 2 * counts.n_coulomb_inter
                    + 2 * counts.n_hund
                    + 2 * n_pair_hopping
                    + 2 * counts.n_exchange
                    + n                                     # gutzwiller
                    + n * n                                 # jastrow
                    + 2 * n * counts.n_dh2
                    + 4 * n * counts.n_dh4
                    + 2 * orbital_dim * orbital_dim         # orbital idx + sgn
                    + 3 * n * counts.n_qp_trans
                    + 4 * counts.n_one_body_g
                    + 8 * counts.n_two_body_g_ex
                    + 8 * counts.n_two_body_g
                    + 8 * counts.n_inter_all
                    + 2 * n * counts.n_qp_opt_trans
                    + 2 * n_para)
    if counts.n_backflow > 0:
        n_total_def_int += n ** 4 + n * counts.n_range + n * n

    n_total_def_double  = (counts.n_coulomb_intra + counts.n_coulomb_inter + counts.n_hund
                        + n_pair_hopping + counts.n_exchange + counts.n_qp_opt_trans)
    n_total_def_complex = counts.n_transfer + counts.n_inter_all + counts.n_qp_trans

    lengths = (counts.n_gutzwiller, counts.n_jastrow, 6 * counts.n_dh2, 10 * counts.n_dh4,
               n_slater, n_opt_trans, n_proj_bf)
    blocks, offset = {}, 0
    for family, length in zip(PARAMETER_FAMILIES, lengths):
        blocks[family]  = (offset, length)
        offset         += length

    return ModelSizes(
        nsite               = n,
        nsite2              = 2 * n,
        nsize               = 2 * params.ne,
        n_pair_hopping      = n_pair_hopping,
        n_proj              = n_proj,
        n_slater            = n_slater,
        n_opt_trans         = n_opt_trans,
        n_range_idx         = n_range_idx,
        n_bf_idx_total      = n_bf_idx_total,
        n_proj_bf           = n_proj_bf,
        n_para              = n_para,
        n_qp_fix            = n_qp_fix,
        n_qp_full           = n_qp_fix * counts.n_qp_opt_trans,
        sr_opt_size         = n_para + 1,
        orbital_dim         = orbital_dim,
        n_total_def_int     = n_total_def_int,
        n_total_def_double  = n_total_def_double,
        n_total_def_complex = n_total_def_complex,
        all_complex_flag    = counts.all_complex_flag,
        param_blocks        = blocks,
    )

# ---------------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------------
