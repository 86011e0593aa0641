"""
Global run parameters (the ``ModPara`` file).

Layout of the file::

    --------------------
    Model_Parameters   0
    --------------------
    VMC_Cal_Parameters
    --------------------
    CDataFileHead  zvo
    CParaFileHead  zqp
    --------------------
    NVMCCalMode    0
    Nsite          4
    Ne             2
    ...

Lines 1-5 and 8 are decorative, lines 6 and 7 carry the output file heads,
everything afterwards is a ``key value`` list. Keys are case-insensitive;
integer options accept float literals and are truncated toward zero.

--------------------------------------------------
File        : VMCDef/Definitions/modpara.py
Description : Run-parameter dataclass, ModPara parser, parameter buffers.
--------------------------------------------------
"""

from __future__ import annotations

import math
import os
import time
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np

from VMCDef.Definitions.errors import DefinitionError, DefFormatError
from VMCDef.Definitions.reader import DefFileReader

# ---------------------------------------------------------------------------
#! Run parameters
# ---------------------------------------------------------------------------

@dataclass
class RunParameters:
    """
    Scalar options of one run.

    Integer fields travel in the integer parameter buffer, the ``DSROpt*``
    fields in the double parameter buffer and the two file heads as strings.
    ``ap_flag`` and ``sr_flag`` are derived from the sign of ``mp_trans`` and
    ``sr_opt_step_dt`` by :meth:`finalize`.
    """

    vmc_cal_mode        : int   = 0
    lanczos_mode        : int   = 0
    data_idx_start      : int   = 0
    data_qty_smp        : int   = 1
    nsite               : int   = 16
    ne                  : int   = 8
    sp_gauss_leg        : int   = 8
    sp_stot             : int   = 0
    mp_trans            : int   = 0
    sr_opt_itr_step     : int   = 1000
    sr_opt_itr_smp      : int   = 100
    sr_opt_fix_smp      : int   = 1
    vmc_warm_up         : int   = 10
    vmc_interval        : int   = 1
    vmc_sample          : int   = 10
    ex_update_path      : int   = 0
    rnd_seed            : int   = 11272
    split_size          : int   = 1
    n_store             : int   = 1
    ap_flag             : int   = 0
    sr_flag             : int   = 0
    # doubles
    sr_opt_red_cut      : float = 0.001
    sr_opt_sta_del      : float = 0.02
    sr_opt_step_dt      : float = 0.02
    # output heads
    data_file_head      : str   = field(default="")
    para_file_head      : str   = field(default="")

    # ------------------
    #! derived flags
    # ------------------

    def finalize(self, clock: Callable[[], float] = time.time, log=None) -> "RunParameters":
        """
        Resolve sign-encoded options.

        * negative ``rnd_seed``      -> seed taken from the clock,
        * negative ``mp_trans``      -> antiperiodic flag, absolute value kept,
        * negative ``sr_opt_step_dt`` -> diagonalization mode, absolute value kept.
        """
        if self.rnd_seed < 0:
            self.rnd_seed = int(clock()) & 0x7FFFFFFF
            if log is not None:
                log.info(f"remark: Seed = {self.rnd_seed}")
        if self.mp_trans < 0:
            self.ap_flag    = 1
            self.mp_trans   = -self.mp_trans
        if self.sr_opt_step_dt < 0:
            self.sr_flag        = 1
            self.sr_opt_step_dt = -self.sr_opt_step_dt
            if log is not None:
                log.info("remark: Diagonalization Mode")
        return self

    @property
    def lanczos_active(self) -> bool:
        return self.lanczos_mode > 1

    # ------------------
    #! buffers
    # ------------------

    def to_buffers(self) -> Tuple[np.ndarray, np.ndarray]:
        ints    = np.array([getattr(self, n) for n in INT_FIELDS], dtype=np.int32)
        doubles = np.array([getattr(self, n) for n in DOUBLE_FIELDS], dtype=np.float64)
        return ints, doubles

    @classmethod
    def from_buffers(cls, ints: np.ndarray, doubles: np.ndarray, heads: Tuple[str, str]) -> "RunParameters":
        kwargs: Dict[str, Any] = {n: int(v) for n, v in zip(INT_FIELDS, ints)}
        kwargs.update({n: float(v) for n, v in zip(DOUBLE_FIELDS, doubles)})
        kwargs["data_file_head"], kwargs["para_file_head"] = heads
        return cls(**kwargs)

    def with_override(self, **updates: Any) -> "RunParameters":
        return replace(self, **updates)

INT_FIELDS: Tuple[str, ...]     = tuple(f.name for f in fields(RunParameters) if f.type in ("int", int))
DOUBLE_FIELDS: Tuple[str, ...]  = tuple(f.name for f in fields(RunParameters) if f.type in ("float", float))

# ---------------------------------------------------------------------------
#! Keys of the ModPara file
# ---------------------------------------------------------------------------

MODPARA_KEYS: Dict[str, Tuple[str, type]] = {
    "nvmccalmode"       : ("vmc_cal_mode",      int),
    "nlanczosmode"      : ("lanczos_mode",      int),
    "ndataidxstart"     : ("data_idx_start",    int),
    "ndataqtysmp"       : ("data_qty_smp",      int),
    "nsite"             : ("nsite",             int),
    "ne"                : ("ne",                int),
    "nelectron"         : ("ne",                int),
    "nspgaussleg"       : ("sp_gauss_leg",      int),
    "nspstot"           : ("sp_stot",           int),
    "nmptrans"          : ("mp_trans",          int),
    "nsroptitrstep"     : ("sr_opt_itr_step",   int),
    "nsroptitrsmp"      : ("sr_opt_itr_smp",    int),
    "dsroptredcut"      : ("sr_opt_red_cut",    float),
    "dsroptstadel"      : ("sr_opt_sta_del",    float),
    "dsroptstepdt"      : ("sr_opt_step_dt",    float),
    "nvmcwarmup"        : ("vmc_warm_up",       int),
    "nvmcinterval"      : ("vmc_interval",      int),
    "nvmcsample"        : ("vmc_sample",        int),
    "nexupdatepath"     : ("ex_update_path",    int),
    "rndseed"           : ("rnd_seed",          int),
    "nsplitsize"        : ("split_size",        int),
    "nstore"            : ("n_store",           int),
}

HEAD_DATA_LINE      = 5
HEAD_PARA_LINE      = 6
FIRST_KEY_LINE      = 8

def parse_modpara(reader: DefFileReader, output_dir: str = "output") -> RunParameters:
    """
    Parse a ModPara file into :class:`RunParameters`.

    Parameters
    ----------
    reader : DefFileReader
        Loaded ModPara file.
    output_dir : str
        Directory prefixed to the two output file heads.

    Raises
    ------
    DefFormatError
        On a missing head line, an unknown key (``keyword " Foo " is
        incorrect``) or a non-numeric value.
    """
    params                  = RunParameters()
    params.data_file_head   = os.path.join(output_dir, reader.header_word(HEAD_DATA_LINE))
    params.para_file_head   = os.path.join(output_dir, reader.header_word(HEAD_PARA_LINE))

    for lineno in range(FIRST_KEY_LINE, len(reader.lines)):
        line = reader.lines[lineno].strip()
        if not line or line.startswith("-"):
            continue
        tokens = line.split()
        if len(tokens) < 2:
            raise DefFormatError(f"'key value' expected, got '{line}'", keyword=reader.keyword, path=reader.path, row=lineno)

        key, value  = tokens[0], tokens[1]
        entry       = MODPARA_KEYS.get(key.lower())
        if entry is None:
            raise DefFormatError(DefinitionError.INCORRECT_MODPARA_KEY.format(key=key), keyword=reader.keyword, path=reader.path, row=lineno)
        name, kind  = entry
        try:
            number  = float(value)
        except ValueError:
            raise DefFormatError(f"value '{value}' of {key} is not a number", keyword=reader.keyword, path=reader.path, row=lineno) from None
        if kind is int:
            if not math.isfinite(number):
                raise DefFormatError(f"value '{value}' of {key} is not finite", keyword=reader.keyword, path=reader.path, row=lineno)
            number = int(number)
        setattr(params, name, number)
    return params

# ---------------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------------
