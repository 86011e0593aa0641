"""
Shared fixtures: synthetic definition sets written to a temporary directory.

Every term file gets the usual five-line preamble (decorations plus the
count and, for parameter families, the complex flag) followed by its rows.
"""

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from VMCDef.Ingest.ingest import ingest
from VMCDef.Ingest.ingest_config import IngestConfig

RULE = "=" * 22

def def_text(count_line, rows, flag_line=None):
    """Preamble (count on line 2, optional flag on line 3) plus whitespace separated rows."""
    lines = [RULE, count_line, flag_line or RULE, RULE, RULE]
    lines += ["  ".join(str(v) for v in row) for row in rows]
    return "\n".join(lines) + "\n"

def modpara_text(nsite=4, ne=2, **keys):
    lines = [
        "--------------------",
        "Model_Parameters   0",
        "--------------------",
        "VMC_Cal_Parameters",
        "--------------------",
        "CDataFileHead  zvo",
        "CParaFileHead  zqp",
        "--------------------",
        f"Nsite          {nsite}",
        f"Ne             {ne}",
    ]
    lines += [f"{key:<14} {value}" for key, value in keys.items()]
    return "\n".join(lines) + "\n"

class DefSet:
    """Builder of a manifest and its definition files under ``root``."""

    def __init__(self, root: Path):
        self.root   = Path(root)
        self.files  = {}
        self.nsite  = 4

    def write(self, keyword, text, name=None):
        path = self.root / (name or f"{keyword.lower()}.def")
        path.write_text(text)
        self.files[keyword] = path
        return path

    def modpara(self, nsite=4, ne=2, **keys):
        self.nsite = nsite
        return self.write("ModPara", modpara_text(nsite, ne, **keys))

    def locspin(self, spins=None, n_local=0):
        spins = spins or [0] * self.nsite
        return self.write("LocSpin", def_text(f"NlocalSpin {n_local}", list(enumerate(spins))))

    def term(self, keyword, count_line, rows, flag_line=None, name=None):
        return self.write(keyword, def_text(count_line, rows, flag_line), name)

    def namelist(self, extra=None):
        if "ModPara" not in self.files:
            self.modpara()
        if "LocSpin" not in self.files:
            self.locspin()
        entries = dict(self.files)
        entries.update(extra or {})
        path = self.root / "namelist.def"
        path.write_text("".join(f"{kw:<22} {p}\n" for kw, p in entries.items()))
        return path

    def config(self, **overrides):
        base = IngestConfig(output_dir=str(self.root / "output"), enable_backflow=False)
        return base.with_override(**overrides) if overrides else base

    def ingest(self, **overrides):
        return ingest(self.namelist(), self.config(**overrides))

@pytest.fixture
def defset(tmp_path):
    return DefSet(tmp_path)

@pytest.fixture
def small_defset(tmp_path):
    """Two-site lattice with a single electron."""
    ds = DefSet(tmp_path)
    ds.modpara(nsite=2, ne=1)
    ds.locspin()
    return ds
