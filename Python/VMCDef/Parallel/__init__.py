"""
Parallel Module.
Root-to-all distribution of the ingested model over MPI.
"""

from __future__ import annotations
import importlib

__all__ = [
    "ingest_distributed",
    "distribute_model",
    "run_root_with_result",
    "broadcast_from_root",
    "broadcast_buffer",
    "default_comm",
    "is_root",
]

_EXPORT_MAP = {name: (".distribute", name) for name in __all__}

def __getattr__(name: str):
    if name in _EXPORT_MAP:
        module_name, attr_name = _EXPORT_MAP[name]
        module = importlib.import_module(module_name, __name__)
        return getattr(module, attr_name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

def __dir__():
    return sorted(list(globals().keys()) + __all__)
