"""
Tests for the ModPara parser and the run-parameter buffers.
"""

import numpy as np
import pytest

from VMCDef.Definitions.errors import DefFileAccessError, DefFormatError
from VMCDef.Definitions.modpara import DOUBLE_FIELDS, INT_FIELDS, RunParameters, parse_modpara
from VMCDef.Definitions.reader import DefFileReader

from conftest import modpara_text

def _parse(tmp_path, text, output_dir="out"):
    path = tmp_path / "modpara.def"
    path.write_text(text)
    return parse_modpara(DefFileReader(path, "ModPara"), output_dir)

def test_parse_keys_and_heads(tmp_path):
    # Arrange / Act
    params = _parse(tmp_path, modpara_text(nsite=8, ne=4, NVMCSample=200, DSROptRedCut=0.01, nsplitsize=2))

    # Assert
    assert params.nsite == 8 and params.ne == 4
    assert params.vmc_sample == 200
    assert params.split_size == 2
    assert params.sr_opt_red_cut == pytest.approx(0.01)
    assert params.data_file_head.endswith("zvo") and params.data_file_head.startswith("out")
    assert params.para_file_head.endswith("zqp")
    # untouched options keep their defaults
    assert params.sp_gauss_leg == 8

def test_integer_options_are_truncated(tmp_path):
    params = _parse(tmp_path, modpara_text(nsite=4, ne=2, NSPGaussLeg="3.9"))
    assert params.sp_gauss_leg == 3

def test_unknown_key_is_rejected(tmp_path):
    with pytest.raises(DefFormatError, match='keyword " Foo " is incorrect'):
        _parse(tmp_path, modpara_text(Foo=1.0))

def test_non_numeric_value_is_rejected(tmp_path):
    with pytest.raises(DefFormatError, match="is not a number"):
        _parse(tmp_path, modpara_text(NVMCSample="many"))

def test_unknown_key_fails_before_term_files(defset):
    # Arrange: the transfer file listed in the manifest does not exist
    defset.modpara(Foo=1.0)
    namelist = defset.namelist(extra={"Trans": defset.root / "missing_trans.def"})

    # Act / Assert: ModPara fails first, the missing file is never touched
    from VMCDef.Ingest.ingest import ingest
    with pytest.raises(DefFormatError, match='keyword " Foo " is incorrect') as info:
        ingest(namelist, defset.config())
    assert not isinstance(info.value, DefFileAccessError)
    assert info.value.keyword == "ModPara"

def test_finalize_resolves_sign_encoded_options():
    params = RunParameters(mp_trans=-4, sr_opt_step_dt=-0.05, rnd_seed=-1)
    params.finalize(clock=lambda: 1234.9)

    assert params.ap_flag == 1 and params.mp_trans == 4
    assert params.sr_flag == 1 and params.sr_opt_step_dt == pytest.approx(0.05)
    assert params.rnd_seed == 1234

def test_finalize_keeps_positive_options():
    params = RunParameters(mp_trans=2, sr_opt_step_dt=0.02, rnd_seed=7).finalize()
    assert (params.ap_flag, params.sr_flag, params.rnd_seed, params.mp_trans) == (0, 0, 7, 2)

def test_parameter_buffers_rebuild_the_same_parameters():
    params          = RunParameters(nsite=6, ne=3, lanczos_mode=2, sr_opt_sta_del=0.1,
                                    data_file_head="out/zvo", para_file_head="out/zqp")
    ints, doubles   = params.to_buffers()

    assert ints.dtype == np.int32 and ints.shape == (len(INT_FIELDS),)
    assert doubles.dtype == np.float64 and doubles.shape == (len(DOUBLE_FIELDS),)
    assert RunParameters.from_buffers(ints, doubles, ("out/zvo", "out/zqp")) == params
    assert params.lanczos_active
