"""
Ingested model context object.

The :class:`IngestedModel` owns everything the reader produces: the run
parameters, the declared counts, the derived sizes, the two output file
heads and the packed buffers together with their named views. It replaces
the process-wide variables of a classic definition reader: the sizing pass
creates it, the assembly pass fills it, the distribution layer ships its
buffers, and the solver reads it.

Views are reachable as attributes::

    model.transfer          # (NTransfer, 4) int32 view into def_int
    model.para_transfer     # (NTransfer,)   complex128 view into def_complex
    model.opt_flag          # (NPara, 2)     free-parameter flags

--------------------------------------------------
File        : VMCDef/Ingest/model.py
Description : Context object holding the assembled definition buffers.
--------------------------------------------------
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import numpy as np

try:
    import jax.numpy as jnp
    JAX_AVAILABLE = True
except ImportError:
    jnp = None
    JAX_AVAILABLE = False

from VMCDef.Definitions.families import TermFamily
from VMCDef.Definitions.modpara import RunParameters
from VMCDef.Ingest.layout import BufferLayout, LAYOUT_BUILDERS
from VMCDef.Ingest.sizes import DeclaredCounts, ModelSizes, derive_sizes

class IngestedModel:
    """
    Assembled definitions of one run.

    Parameters
    ----------
    params : RunParameters
        Finalized run parameters.
    counts : DeclaredCounts
        Header counts from the sizing pass.
    buffers : dict, optional
        Pre-filled flat buffers keyed by layout name. Missing buffers are
        allocated with their layout defaults.
    """

    def __init__(self, params: RunParameters, counts: DeclaredCounts, buffers: Optional[Dict[str, np.ndarray]] = None):
        self.params     = params
        self.counts     = counts
        self.sizes      = derive_sizes(params, counts)
        self.layouts: Dict[str, BufferLayout] = {name: build(params, counts, self.sizes) for name, build in LAYOUT_BUILDERS.items()}

        if self.layouts["def_int"].total != self.sizes.n_total_def_int:
            raise RuntimeError(f"integer layout ({self.layouts['def_int'].total}) disagrees with the sized footprint ({self.sizes.n_total_def_int})")
        if self.layouts["def_double"].total != self.sizes.n_total_def_double:
            raise RuntimeError(f"double layout ({self.layouts['def_double'].total}) disagrees with the sized footprint ({self.sizes.n_total_def_double})")

        buffers         = dict(buffers or {})
        self.buffers: Dict[str, np.ndarray] = {}
        self._views: Dict[str, np.ndarray]  = {}
        for name, layout in self.layouts.items():
            buffer = buffers.get(name)
            if buffer is None:
                buffer = layout.allocate()
            self.buffers[name] = buffer
            self._views.update(layout.bind(buffer))
        self._frozen = False

    # ------------------
    #! views
    # ------------------

    def __getattr__(self, name: str) -> Any:
        views = self.__dict__.get("_views")
        if views is not None and name in views:
            return views[name]
        raise AttributeError(f"{type(self).__name__!r} has no attribute {name!r}")

    def view(self, name: str) -> np.ndarray:
        return self._views[name]

    def has_view(self, name: str) -> bool:
        return name in self._views

    def view_names(self) -> Tuple[str, ...]:
        return tuple(self._views)

    @property
    def para(self) -> np.ndarray:
        return self.buffers["para"]

    @property
    def data_file_head(self) -> str:
        return self.params.data_file_head

    @property
    def para_file_head(self) -> str:
        return self.params.para_file_head

    # ------------------
    #! flags
    # ------------------

    @property
    def all_complex_flag(self) -> int:
        return self.sizes.all_complex_flag

    @property
    def orbital_general(self) -> bool:
        return bool(self.counts.orbital_general)

    @property
    def ap_flag(self) -> bool:
        return bool(self.params.ap_flag)

    @property
    def lanczos_active(self) -> bool:
        return self.params.lanczos_active

    @property
    def opt_trans_enabled(self) -> bool:
        return bool(self.counts.opt_trans)

    # ------------------
    #! free parameters
    # ------------------

    def param_block(self, family: TermFamily) -> np.ndarray:
        """``opt_flag`` rows reserved for ``family``."""
        return self.opt_flag[self.sizes.param_slice(family)]

    def n_optimizable(self) -> int:
        """Number of real plus imaginary optimizable components."""
        return int(np.count_nonzero(self.opt_flag))

    # ------------------
    #! lifecycle
    # ------------------

    def synthesize_identity_translation(self) -> None:
        """
        Identity optimized translation (weight 1, identity permutation,
        signs +1) used when translation optimization is disabled.
        """
        if self.opt_trans_enabled:
            return
        self.para_qp_opt_trans[0]   = 1.0
        self.qp_opt_trans[0, :]     = np.arange(self.params.nsite, dtype=self.qp_opt_trans.dtype)
        self.qp_opt_trans_sgn[0, :] = 1

    def freeze(self) -> "IngestedModel":
        """Mark every buffer and every view read-only."""
        for array in (*self.buffers.values(), *self._views.values()):
            array.setflags(write=False)
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ------------------
    #! handoff
    # ------------------

    def as_backend(self, backend: str = "numpy") -> Dict[str, Any]:
        """
        Return every named view converted for the requested backend.

        Parameters
        ----------
        backend : str
            ``'numpy'`` (views, no copy) or ``'jax'`` (device arrays).
        """
        backend = backend.lower()
        if backend in ("numpy", "np"):
            return dict(self._views)
        if backend == "jax":
            if not JAX_AVAILABLE:
                raise ImportError("JAX backend requested but jax is not installed.")
            return {name: jnp.asarray(view) for name, view in self._views.items()}
        raise ValueError(f"Unknown backend '{backend}'. Use 'numpy' or 'jax'.")

    def summary(self) -> str:
        flags = (f"AllComplexFlag={self.all_complex_flag} general={int(self.orbital_general)} "
                 f"APFlag={self.params.ap_flag} Lanczos={int(self.lanczos_active)}")
        return f"{self.sizes.summary()} {flags}"

    def __repr__(self) -> str:
        return f"IngestedModel({self.summary()})"

# ---------------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------------
