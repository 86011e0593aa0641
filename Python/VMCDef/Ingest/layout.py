"""
Packed buffer layouts.

Every per-family array of the ingested model is a named, reshaped view into
one of a handful of flat buffers. A :class:`BufferLayout` lists the views of
one buffer in order; its ``total`` is the exact footprint of the buffer and
is cross-checked against the footprint derived by the sizing pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np

from VMCDef.Definitions.modpara import RunParameters
from VMCDef.Ingest.sizes import DeclaredCounts, ModelSizes

@dataclass(frozen=True)
class BufferSlot:
    name    : str
    shape   : Tuple[int, ...]
    fill    : float = 0

    @property
    def size(self) -> int:
        return int(np.prod(self.shape, dtype=np.int64)) if self.shape else 1

class BufferLayout:
    """
    Ordered list of views carved out of one flat buffer.

    Parameters
    ----------
    dtype : np.dtype
        Element type of the buffer.
    slots : Sequence[BufferSlot]
        Views in buffer order.
    """

    def __init__(self, dtype, slots: Sequence[BufferSlot]):
        self.dtype  = np.dtype(dtype)
        self.slots  = list(slots)
        self.total  = sum(s.size for s in self.slots)

    def names(self) -> List[str]:
        return [s.name for s in self.slots]

    def allocate(self) -> np.ndarray:
        buffer = np.zeros(self.total, dtype=self.dtype)
        offset = 0
        for slot in self.slots:
            if slot.fill:
                buffer[offset:offset + slot.size] = slot.fill
            offset += slot.size
        return buffer

    def bind(self, buffer: np.ndarray) -> Dict[str, np.ndarray]:
        """Named views into ``buffer`` (no copies)."""
        if buffer.shape != (self.total,) or buffer.dtype != self.dtype:
            raise ValueError(f"buffer of shape {buffer.shape}/{buffer.dtype} does not match layout ({self.total},)/{self.dtype}")
        views, offset = {}, 0
        for slot in self.slots:
            views[slot.name]    = buffer[offset:offset + slot.size].reshape(slot.shape)
            offset             += slot.size
        return views

# ---------------------------------------------------------------------------
#! Model layouts
# ---------------------------------------------------------------------------

INT_DTYPE       = np.int32
DOUBLE_DTYPE    = np.float64
COMPLEX_DTYPE   = np.complex128

def def_int_layout(params: RunParameters, counts: DeclaredCounts, sizes: ModelSizes) -> BufferLayout:
    n, d = params.nsite, sizes.orbital_dim
    slots = [
        BufferSlot("loc_spn",                   (n,)),
        BufferSlot("transfer",                  (counts.n_transfer, 4)),
        BufferSlot("coulomb_intra",             (counts.n_coulomb_intra,)),
        BufferSlot("coulomb_inter",             (counts.n_coulomb_inter, 2)),
        BufferSlot("hund_coupling",             (counts.n_hund, 2)),
        BufferSlot("pair_hopping",              (sizes.n_pair_hopping, 2)),
        BufferSlot("exchange_coupling",         (counts.n_exchange, 2)),
        BufferSlot("gutzwiller_idx",            (n,)),
        BufferSlot("jastrow_idx",               (n, n)),
        BufferSlot("doublon_holon_2site_idx",   (counts.n_dh2, 2 * n)),
        BufferSlot("doublon_holon_4site_idx",   (counts.n_dh4, 4 * n)),
        BufferSlot("orbital_idx",               (d, d), fill=-1),
        BufferSlot("orbital_sgn",               (d, d)),
        BufferSlot("qp_trans",                  (counts.n_qp_trans, n)),
        BufferSlot("qp_trans_inv",              (counts.n_qp_trans, n)),
        BufferSlot("qp_trans_sgn",              (counts.n_qp_trans, n)),
        BufferSlot("cis_ajs_idx",               (counts.n_one_body_g, 4)),
        BufferSlot("cis_ajs_ckt_alt_idx",       (counts.n_two_body_g_ex, 8)),
        BufferSlot("cis_ajs_ckt_alt_dc_idx",    (counts.n_two_body_g, 8)),
        BufferSlot("inter_all",                 (counts.n_inter_all, 8)),
        BufferSlot("qp_opt_trans",              (counts.n_qp_opt_trans, n)),
        BufferSlot("qp_opt_trans_sgn",          (counts.n_qp_opt_trans, n)),
        BufferSlot("opt_flag",                  (sizes.n_para, 2)),
    ]
    if counts.n_backflow > 0:
        slots += [
            BufferSlot("backflow_idx",          (n * n, n * n), fill=-1),
            BufferSlot("pos_bf",                (n, counts.n_range)),
            BufferSlot("range_idx",             (n, n)),
        ]
    return BufferLayout(INT_DTYPE, slots)

def def_double_layout(params: RunParameters, counts: DeclaredCounts, sizes: ModelSizes) -> BufferLayout:
    return BufferLayout(DOUBLE_DTYPE, [
        BufferSlot("para_coulomb_intra",        (counts.n_coulomb_intra,)),
        BufferSlot("para_coulomb_inter",        (counts.n_coulomb_inter,)),
        BufferSlot("para_hund_coupling",        (counts.n_hund,)),
        BufferSlot("para_pair_hopping",         (sizes.n_pair_hopping,)),
        BufferSlot("para_exchange_coupling",    (counts.n_exchange,)),
        BufferSlot("para_qp_opt_trans",         (counts.n_qp_opt_trans,)),
    ])

def def_complex_layout(params: RunParameters, counts: DeclaredCounts, sizes: ModelSizes) -> BufferLayout:
    return BufferLayout(COMPLEX_DTYPE, [
        BufferSlot("para_transfer",             (counts.n_transfer,)),
        BufferSlot("para_inter_all",            (counts.n_inter_all,)),
        BufferSlot("para_qp_trans",             (counts.n_qp_trans,)),
    ])

def lanczos_layout(params: RunParameters, counts: DeclaredCounts, sizes: ModelSizes) -> BufferLayout:
    """One-body Green index map and two-body -> one-body links (empty unless Lanczos mode)."""
    if not params.lanczos_active:
        return BufferLayout(INT_DTYPE, [])
    return BufferLayout(INT_DTYPE, [
        BufferSlot("one_body_g_idx",            (sizes.nsite2, sizes.nsite2), fill=-1),
        BufferSlot("cis_ajs_ckt_alt_lz_idx",    (counts.n_two_body_g, 2)),
    ])

def variational_layout(params: RunParameters, counts: DeclaredCounts, sizes: ModelSizes) -> BufferLayout:
    """
    Variational parameter vector ``para`` with one view per parameter block.

    The four projection families share the ``proj`` view.
    """
    return BufferLayout(COMPLEX_DTYPE, [
        BufferSlot("proj",      (sizes.n_proj,)),
        BufferSlot("slater",    (sizes.n_slater,)),
        BufferSlot("opt_trans", (sizes.n_opt_trans,)),
        BufferSlot("proj_bf",   (sizes.n_proj_bf,)),
    ])

LAYOUT_BUILDERS = {
    "def_int"       : def_int_layout,
    "def_double"    : def_double_layout,
    "def_complex"   : def_complex_layout,
    "lanczos_int"   : lanczos_layout,
    "para"          : variational_layout,
}

# ---------------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------------
