"""
Ingest Module.
Sizing pass, packed buffer layouts, the ingested model, index assembly,
Lanczos reduction and initial values.
"""

from __future__ import annotations
import importlib

__all__ = [
    "IngestConfig",
    "IngestedModel",
    "DeclaredCounts",
    "ModelSizes",
    "derive_sizes",
    "size_definitions",
    "SizingResult",
    "assemble_definitions",
    "build_one_body_green_map",
    "OneBodyGreenMap",
    "read_initial_parameters",
]

_EXPORT_MAP = {
    "IngestConfig": (".ingest_config", "IngestConfig"),
    "IngestedModel": (".model", "IngestedModel"),
    "DeclaredCounts": (".sizes", "DeclaredCounts"),
    "ModelSizes": (".sizes", "ModelSizes"),
    "derive_sizes": (".sizes", "derive_sizes"),
    "size_definitions": (".sizing", "size_definitions"),
    "SizingResult": (".sizing", "SizingResult"),
    "assemble_definitions": (".assembly", "assemble_definitions"),
    "build_one_body_green_map": (".lanczos", "build_one_body_green_map"),
    "OneBodyGreenMap": (".lanczos", "OneBodyGreenMap"),
    "read_initial_parameters": (".initial", "read_initial_parameters"),
}

def __getattr__(name: str):
    if name in _EXPORT_MAP:
        module_name, attr_name = _EXPORT_MAP[name]
        module = importlib.import_module(module_name, __name__)
        return getattr(module, attr_name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

def __dir__():
    return sorted(list(globals().keys()) + __all__)
