"""
Term-family descriptor table.

Each manifest keyword is described once by a :class:`FamilySpec`: which term
family it feeds, the shape of its header, which declared-count field it
fills and whether it carries a complex flag. The sizing pass and the
assembly pass both iterate :data:`FAMILY_REGISTRY` in keyword order and look
up the per-phase handler bound to each entry, so the two passes can never
disagree about which files exist or how their headers read.

--------------------------------------------------
File        : VMCDef/Definitions/families.py
Description : Tagged-variant table of term families and their handlers.
--------------------------------------------------
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

from VMCDef.Definitions.keywords import TermKeyword

# ---------------------------------------------------------------------------
#! Variants
# ---------------------------------------------------------------------------

class TermFamily(Enum):
    RUN_PARAMETERS          = auto()
    LOCAL_SPIN              = auto()
    TRANSFER                = auto()
    COULOMB_INTRA           = auto()
    COULOMB_INTER           = auto()
    HUND                    = auto()
    PAIR_HOP                = auto()
    EXCHANGE                = auto()
    GUTZWILLER              = auto()
    JASTROW                 = auto()
    DOUBLON_HOLON_2SITE     = auto()
    DOUBLON_HOLON_4SITE     = auto()
    ORBITAL                 = auto()
    TRANSLATION_SYMMETRY    = auto()
    ONE_BODY_GREEN          = auto()
    TWO_BODY_GREEN_EXACT    = auto()
    TWO_BODY_GREEN_DECOUPLED= auto()
    INTER_ALL               = auto()
    OPT_TRANSLATION         = auto()
    BACKFLOW_RANGE          = auto()
    BACKFLOW                = auto()
    INITIAL_VALUES          = auto()

    def __str__(self) -> str:
        return self.name.lower()

class OrbitalMode(Enum):
    SIMPLE          = "simple"
    ANTIPARALLEL    = "antiparallel"
    PARALLEL        = "parallel"
    GENERAL         = "general"

    def __str__(self) -> str:
        return self.value

class HeaderShape(Enum):
    """How the sizing pass reads the header of a file."""
    PARAMETERS      = "parameters"      # ModPara key/value list
    COUNT           = "count"           # 'label N'
    COUNT_COMPLEX   = "count_complex"   # 'label N' + 'label complexflag'
    RANGE           = "range"           # 'label Nrange Nz'
    NONE            = "none"            # read by a later stage

    def __str__(self) -> str:
        return self.value

class Phase(Enum):
    SIZE        = "size"
    ASSEMBLE    = "assemble"
    INITIAL     = "initial"

# ---------------------------------------------------------------------------
#! Descriptor
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FamilySpec:
    """
    Declarative description of one manifest keyword.

    Parameters
    ----------
    keyword:
        Manifest keyword.
    family:
        Term family the file feeds.
    header:
        Header shape read by the sizing pass.
    count_field:
        Attribute of the declared counts that receives the header count.
    complex_field:
        Attribute receiving the complex flag (COUNT_COMPLEX headers).
    required:
        Whether the manifest must list the keyword.
    feature:
        Capability that must be enabled for the file to be accepted.
    orbital_mode:
        Sub-variant of the orbital family.
    description:
        One-liner description.
    """

    keyword         : TermKeyword
    family          : TermFamily
    header          : HeaderShape
    count_field     : Optional[str] = None
    complex_field   : Optional[str] = None
    required        : bool = False
    feature         : Optional[str] = None
    orbital_mode    : Optional[OrbitalMode] = None
    description     : str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyword"       : str(self.keyword),
            "family"        : str(self.family),
            "header"        : str(self.header),
            "count_field"   : self.count_field,
            "complex_field" : self.complex_field,
            "required"      : self.required,
            "feature"       : self.feature,
            "orbital_mode"  : str(self.orbital_mode) if self.orbital_mode else None,
            "description"   : self.description,
        }

# ---------------------------------------------------------------------------

class FamilyRegistry:
    """
    Registry of family descriptors and their per-phase handlers.

    Handlers are callables bound by the pass modules with :meth:`bind`; a
    descriptor without a handler for a phase is skipped by that phase.
    """

    def __init__(self) -> None:
        self._registry: Dict[TermKeyword, FamilySpec] = {}
        self._handlers: Dict[Tuple[TermKeyword, Phase], Callable[..., Any]] = {}

    # ------------------
    #! registration
    # ------------------

    def register(self, spec: FamilySpec, overwrite: bool = False) -> None:
        if not overwrite and spec.keyword in self._registry:
            raise KeyError(f"Family for '{spec.keyword}' already registered.")
        self._registry[spec.keyword] = spec

    def bind(self, keyword: TermKeyword, phase: Phase, handler: Callable[..., Any]) -> None:
        if keyword not in self._registry:
            raise KeyError(f"Family for '{keyword}' is not registered.")
        self._handlers[(keyword, phase)] = handler

    def handles(self, phase: Phase, *keywords: TermKeyword) -> Callable:
        """Decorator form of :meth:`bind` for one or more keywords."""
        def decorator(func):
            for kw in keywords:
                self.bind(kw, phase, func)
            return func
        return decorator

    # ------------------
    #! accessors
    # ------------------

    def get(self, keyword: TermKeyword) -> FamilySpec:
        try:
            return self._registry[keyword]
        except KeyError as exc:
            raise KeyError(f"Family for '{keyword}' is not registered.") from exc

    def handler(self, keyword: TermKeyword, phase: Phase) -> Optional[Callable[..., Any]]:
        return self._handlers.get((keyword, phase))

    def ordered(self) -> Iterator[FamilySpec]:
        """Descriptors in keyword (processing) order."""
        for kw in TermKeyword:
            if kw in self._registry:
                yield self._registry[kw]

    def available(self) -> Tuple[str, ...]:
        return tuple(str(spec.keyword) for spec in self.ordered())

    def describe(self, keyword: TermKeyword) -> Dict[str, Any]:
        return self.get(keyword).to_dict()

# Singleton registry instance
FAMILY_REGISTRY = FamilyRegistry()

def register_family(keyword: TermKeyword, family: TermFamily, header: HeaderShape, **kwargs: Any) -> None:
    """Register a descriptor with the global registry."""
    FAMILY_REGISTRY.register(FamilySpec(keyword=keyword, family=family, header=header, **kwargs))

# ---------------------------------------------------------------------------
#! The table
# ---------------------------------------------------------------------------

_K, _F, _H = TermKeyword, TermFamily, HeaderShape

register_family(_K.MODPARA,         _F.RUN_PARAMETERS,      _H.PARAMETERS,  required=True, description="global run parameters")
register_family(_K.LOCSPIN,         _F.LOCAL_SPIN,          _H.COUNT,       count_field="n_loc_spin", required=True, description="local spin flag per site")
register_family(_K.TRANS,           _F.TRANSFER,            _H.COUNT,       count_field="n_transfer", description="hopping i s j t with complex amplitude")
register_family(_K.COULOMB_INTRA,   _F.COULOMB_INTRA,       _H.COUNT,       count_field="n_coulomb_intra", description="on-site Coulomb")
register_family(_K.COULOMB_INTER,   _F.COULOMB_INTER,       _H.COUNT,       count_field="n_coulomb_inter", description="inter-site Coulomb")
register_family(_K.HUND,            _F.HUND,                _H.COUNT,       count_field="n_hund", description="Hund coupling")
register_family(_K.PAIR_HOP,        _F.PAIR_HOP,            _H.COUNT,       count_field="n_pair_hop", description="pair hopping, stored in both directions")
register_family(_K.EXCHANGE,        _F.EXCHANGE,            _H.COUNT,       count_field="n_exchange", description="exchange coupling")
register_family(_K.GUTZWILLER,      _F.GUTZWILLER,          _H.COUNT_COMPLEX, count_field="n_gutzwiller", complex_field="complex_gutzwiller", description="Gutzwiller projection indices")
register_family(_K.JASTROW,         _F.JASTROW,             _H.COUNT_COMPLEX, count_field="n_jastrow", complex_field="complex_jastrow", description="Jastrow projection indices")
register_family(_K.DH2,             _F.DOUBLON_HOLON_2SITE, _H.COUNT_COMPLEX, count_field="n_dh2", complex_field="complex_dh2", description="2-site doublon-holon correlation")
register_family(_K.DH4,             _F.DOUBLON_HOLON_4SITE, _H.COUNT_COMPLEX, count_field="n_dh4", complex_field="complex_dh4", description="4-site doublon-holon correlation")
register_family(_K.ORBITAL,         _F.ORBITAL,             _H.COUNT_COMPLEX, count_field="n_orbital_ap", complex_field="complex_orbital",
                orbital_mode=OrbitalMode.SIMPLE, description="anti-parallel pair orbitals (simple)")
register_family(_K.ORBITAL_ANTIPARALLEL, _F.ORBITAL,        _H.COUNT_COMPLEX, count_field="n_orbital_ap", complex_field="complex_orbital",
                orbital_mode=OrbitalMode.ANTIPARALLEL, description="anti-parallel pair orbitals")
register_family(_K.ORBITAL_PARALLEL, _F.ORBITAL,            _H.COUNT_COMPLEX, count_field="n_orbital_p", complex_field="complex_orbital",
                orbital_mode=OrbitalMode.PARALLEL, description="parallel-spin pair orbitals")
register_family(_K.ORBITAL_GENERAL, _F.ORBITAL,             _H.COUNT_COMPLEX, count_field="n_orbital", complex_field="complex_orbital",
                orbital_mode=OrbitalMode.GENERAL, description="general spin-resolved pair orbitals")
register_family(_K.TRANS_SYM,       _F.TRANSLATION_SYMMETRY, _H.COUNT,      count_field="n_qp_trans", description="quantum-projection translations")
register_family(_K.ONE_BODY_G,      _F.ONE_BODY_GREEN,      _H.COUNT,       count_field="n_one_body_g", description="one-body Green function requests")
register_family(_K.TWO_BODY_G,      _F.TWO_BODY_GREEN_DECOUPLED, _H.COUNT,  count_field="n_two_body_g", description="decoupled two-body Green function requests")
register_family(_K.TWO_BODY_G_EX,   _F.TWO_BODY_GREEN_EXACT, _H.COUNT,      count_field="n_two_body_g_ex", description="two-body Green function requests")
register_family(_K.INTER_ALL,       _F.INTER_ALL,           _H.COUNT,       count_field="n_inter_all", description="general two-body interaction")
register_family(_K.OPT_TRANS,       _F.OPT_TRANSLATION,     _H.COUNT,       count_field="n_qp_opt_trans", description="optimized translation weights")
register_family(_K.BF_RANGE,        _F.BACKFLOW_RANGE,      _H.RANGE,       feature="backflow", description="backflow neighbour ranges")
register_family(_K.BF,              _F.BACKFLOW,            _H.COUNT,       count_field="n_backflow", feature="backflow", description="backflow correlation indices")

for _kw in (_K.IN_GUTZWILLER, _K.IN_JASTROW, _K.IN_DH2, _K.IN_DH4, _K.IN_ORBITAL, _K.IN_ORBITAL_ANTIPARALLEL,
            _K.IN_ORBITAL_PARALLEL, _K.IN_ORBITAL_GENERAL, _K.IN_OPT_TRANS):
    register_family(_kw, _F.INITIAL_VALUES, _H.NONE, description=f"initial values ({_kw.value[2:]})")

del _K, _F, _H, _kw

# ---------------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------------
