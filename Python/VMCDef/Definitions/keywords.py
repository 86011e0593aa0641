"""
Keyword registry of the definition manifest.

The manifest (name list) maps a fixed set of keywords to definition files::

    ModPara   modpara.def
    LocSpin   locspn.def
    Trans     trans.def
    # comment lines and blank lines are skipped

Keywords are matched case-insensitively against the versioned set defined by
:class:`TermKeyword`. The enumeration order is the processing order used by
the sizing and assembly passes.

--------------------------------------------------
File        : VMCDef/Definitions/keywords.py
Description : Manifest keywords and the keyword -> path mapping.
--------------------------------------------------
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

from VMCDef.Definitions.errors import DefinitionError, DefFileAccessError, ManifestError

# ---------------------------------------------------------------------------
#! Keywords
# ---------------------------------------------------------------------------

class TermKeyword(Enum):
    """Manifest keywords in processing order."""

    MODPARA                     = "ModPara"
    LOCSPIN                     = "LocSpin"
    TRANS                       = "Trans"
    COULOMB_INTRA               = "CoulombIntra"
    COULOMB_INTER               = "CoulombInter"
    HUND                        = "Hund"
    PAIR_HOP                    = "PairHop"
    EXCHANGE                    = "Exchange"
    GUTZWILLER                  = "Gutzwiller"
    JASTROW                     = "Jastrow"
    DH2                         = "DH2"
    DH4                         = "DH4"
    ORBITAL                     = "Orbital"
    ORBITAL_ANTIPARALLEL        = "OrbitalAntiParallel"
    ORBITAL_PARALLEL            = "OrbitalParallel"
    ORBITAL_GENERAL             = "OrbitalGeneral"
    TRANS_SYM                   = "TransSym"
    IN_GUTZWILLER               = "InGutzwiller"
    IN_JASTROW                  = "InJastrow"
    IN_DH2                      = "InDH2"
    IN_DH4                      = "InDH4"
    IN_ORBITAL                  = "InOrbital"
    IN_ORBITAL_ANTIPARALLEL     = "InOrbitalAntiParallel"
    IN_ORBITAL_PARALLEL         = "InOrbitalParallel"
    IN_ORBITAL_GENERAL          = "InOrbitalGeneral"
    ONE_BODY_G                  = "OneBodyG"
    TWO_BODY_G                  = "TwoBodyG"
    TWO_BODY_G_EX               = "TwoBodyGEx"
    INTER_ALL                   = "InterAll"
    OPT_TRANS                   = "OptTrans"
    IN_OPT_TRANS                = "InOptTrans"
    BF_RANGE                    = "BFRange"
    BF                          = "BF"

    def __str__(self) -> str:
        return self.value

    @property
    def is_initial_value(self) -> bool:
        """True for the ``In*`` keywords carrying initial variational parameters."""
        return self.value.startswith("In") and self is not TermKeyword.INTER_ALL

    @classmethod
    def lookup(cls, word: str) -> Optional["TermKeyword"]:
        """Case-insensitive lookup, ``None`` for unknown words."""
        return _LOOKUP.get(word.lower())

_LOOKUP: Dict[str, TermKeyword] = {kw.value.lower(): kw for kw in TermKeyword}

REQUIRED_KEYWORDS: Tuple[TermKeyword, ...] = (TermKeyword.MODPARA, TermKeyword.LOCSPIN)

# ---------------------------------------------------------------------------
#! Manifest
# ---------------------------------------------------------------------------

class Manifest:
    """
    Keyword -> path mapping read from the manifest file.

    Keywords that are not listed resolve to an empty path, which every pass
    interprets as "family absent, count zero".
    """

    def __init__(self, entries: Optional[Dict[TermKeyword, str]] = None, source: Optional[str] = None):
        self._entries: Dict[TermKeyword, str] = dict(entries or {})
        self.source = source

    def path(self, keyword: TermKeyword) -> str:
        return self._entries.get(keyword, "")

    def provided(self, keyword: TermKeyword) -> bool:
        return bool(self._entries.get(keyword))

    def items(self) -> Iterator[Tuple[TermKeyword, str]]:
        """Provided entries in processing order."""
        for kw in TermKeyword:
            if kw in self._entries:
                yield kw, self._entries[kw]

    def require(self, keywords=REQUIRED_KEYWORDS) -> None:
        for kw in keywords:
            if not self.provided(kw):
                raise ManifestError(DefinitionError.NEED_DEF_FILE.format(keyword=kw), keyword=str(kw), path=self.source)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, keyword: TermKeyword) -> bool:
        return self.provided(keyword)

    def __repr__(self) -> str:
        return f"Manifest({', '.join(f'{k}={v}' for k, v in self.items())})"

    @classmethod
    def from_mapping(cls, mapping: Dict[Union[str, TermKeyword], Union[str, Path]], source: Optional[str] = None) -> "Manifest":
        """Build a manifest from ``{keyword: path}``, validating keywords as the file reader does."""
        entries: Dict[TermKeyword, str] = {}
        for key, value in mapping.items():
            kw = key if isinstance(key, TermKeyword) else TermKeyword.lookup(str(key))
            if kw is None:
                raise ManifestError(DefinitionError.UNKNOWN_KEYWORD.format(keyword=key), keyword=str(key), path=source)
            entries[kw] = str(value)
        return cls(entries, source=source)

def parse_manifest(text: str, source: Optional[str] = None) -> Manifest:
    """
    Parse manifest text.

    Parameters
    ----------
    text : str
        Contents of the manifest.
    source : str, optional
        Path used in error messages.

    Returns
    -------
    Manifest
        The keyword -> path mapping.

    Raises
    ------
    ManifestError
        On an unknown keyword, a duplicated keyword or a keyword given
        without a path.
    """
    entries: Dict[TermKeyword, str] = {}
    for lineno, line in enumerate(text.splitlines()):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        tokens = stripped.split()
        if len(tokens) < 2:
            raise ManifestError(DefinitionError.KEYWORD_WITHOUT_PATH, keyword=tokens[0], path=source, row=lineno)

        word, path  = tokens[0], tokens[1]
        kw          = TermKeyword.lookup(word)
        if kw is None:
            accepted = ", ".join(k.value for k in TermKeyword)
            raise ManifestError(
                DefinitionError.UNKNOWN_KEYWORD.format(keyword=word) + f"; accepted keywords: {accepted}",
                keyword=word, path=source, row=lineno)
        if kw in entries:
            raise ManifestError(DefinitionError.DUPLICATE_KEYWORD.format(keyword=kw), keyword=str(kw), path=source, row=lineno)
        entries[kw] = path
    return Manifest(entries, source=source)

def read_manifest(path: Union[str, Path]) -> Manifest:
    """Read and parse the manifest file at ``path``."""
    try:
        with open(path, "r") as handle:
            text = handle.read()
    except OSError as exc:
        raise DefFileAccessError(f"{DefinitionError.CANNOT_OPEN}: {exc.strerror}", keyword="namelist", path=str(path)) from exc
    return parse_manifest(text, source=str(path))

# ---------------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------------
