"""
Definitions Module.
Manifest keywords, term-family descriptors, file reading and validation.
"""

from __future__ import annotations
import importlib

__all__ = [
    # keywords
    "TermKeyword",
    "Manifest",
    "read_manifest",
    "parse_manifest",
    # families
    "TermFamily",
    "OrbitalMode",
    "HeaderShape",
    "FamilySpec",
    "FAMILY_REGISTRY",
    # reader / modpara
    "DefFileReader",
    "RunParameters",
    "parse_modpara",
    # sites
    "valid_site",
    "valid_pair",
    "valid_quad",
    "check_site_columns",
    # errors
    "DefinitionError",
    "ManifestError",
    "DefFileAccessError",
    "DefFormatError",
    "RowCountError",
    "SiteIndexError",
    "SzConservationError",
    "OrbitalOrderError",
    "ConstraintError",
    "MultipleDefinitionError",
    "OptFlagError",
    "FeatureNotSupportedError",
    "IngestionAborted",
]

_EXPORT_MAP = {
    # keywords
    "TermKeyword": (".keywords", "TermKeyword"),
    "Manifest": (".keywords", "Manifest"),
    "read_manifest": (".keywords", "read_manifest"),
    "parse_manifest": (".keywords", "parse_manifest"),
    # families
    "TermFamily": (".families", "TermFamily"),
    "OrbitalMode": (".families", "OrbitalMode"),
    "HeaderShape": (".families", "HeaderShape"),
    "FamilySpec": (".families", "FamilySpec"),
    "FAMILY_REGISTRY": (".families", "FAMILY_REGISTRY"),
    # reader / modpara
    "DefFileReader": (".reader", "DefFileReader"),
    "RunParameters": (".modpara", "RunParameters"),
    "parse_modpara": (".modpara", "parse_modpara"),
    # sites
    "valid_site": (".sites", "valid_site"),
    "valid_pair": (".sites", "valid_pair"),
    "valid_quad": (".sites", "valid_quad"),
    "check_site_columns": (".sites", "check_site_columns"),
}
_EXPORT_MAP.update({name: (".errors", name) for name in __all__ if name.endswith(("Error", "Aborted"))})

def __getattr__(name: str):
    if name in _EXPORT_MAP:
        module_name, attr_name = _EXPORT_MAP[name]
        module = importlib.import_module(module_name, __name__)
        return getattr(module, attr_name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

def __dir__():
    return sorted(list(globals().keys()) + __all__)
