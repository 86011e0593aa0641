"""
Ingestion configuration.

Lightweight frozen dataclass gathering the knobs of one ingestion run. The
defaults can be steered from the environment so that batch scripts do not
need to touch code:

* ``VMCDEF_OUTPUT_DIR``  : directory prefixed to the output file heads,
* ``VMCDEF_BACKFLOW``    : ``1``/``true`` enables the backflow families.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict

from VMCDef.Definitions.reader import PREAMBLE_LINES

def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")

@dataclass(frozen=True)
class IngestConfig:
    """
    Declarative configuration of the definition reader.

    Parameters
    ----------
    output_dir:
        Directory prefixed to the data and parameter file heads.
    make_output_dir:
        Create ``output_dir`` on the root process while reading ModPara.
    enable_backflow:
        Accept the BFRange/BF files. When disabled, listing either file is a
        fatal "not supported" error.
    preamble_lines:
        Lines skipped before the body of every term file.
    read_initial:
        Read the ``In*`` initial-value files when they are listed.
    root:
        Rank that parses the files and broadcasts the result.
    """

    output_dir      : str   = field(default_factory=lambda: os.environ.get("VMCDEF_OUTPUT_DIR", "output"))
    make_output_dir : bool  = True
    enable_backflow : bool  = field(default_factory=lambda: _env_flag("VMCDEF_BACKFLOW"))
    preamble_lines  : int   = PREAMBLE_LINES
    read_initial    : bool  = True
    root            : int   = 0

    def with_override(self, **updates: Any) -> "IngestConfig":
        """
        Return a new config with selected fields replaced.
        """
        return replace(self, **updates)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output_dir"        : self.output_dir,
            "make_output_dir"   : self.make_output_dir,
            "enable_backflow"   : self.enable_backflow,
            "preamble_lines"    : self.preamble_lines,
            "read_initial"      : self.read_initial,
            "root"              : self.root,
        }

# ---------------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------------
