"""
Tests for the manifest (name list) parser.
"""

import pytest

from VMCDef.Definitions.errors import DefFileAccessError, ManifestError
from VMCDef.Definitions.keywords import Manifest, TermKeyword, parse_manifest, read_manifest

def test_parse_skips_comments_and_matches_case_insensitively():
    # Arrange
    text = "# header comment\n\nmodpara  modpara.def\nLOCSPIN locspn.def  ignored\n  trans trans.def\n"

    # Act
    manifest = parse_manifest(text, source="namelist.def")

    # Assert
    assert manifest.path(TermKeyword.MODPARA) == "modpara.def"
    assert manifest.path(TermKeyword.LOCSPIN) == "locspn.def"
    assert manifest.path(TermKeyword.TRANS) == "trans.def"
    assert manifest.path(TermKeyword.JASTROW) == ""
    assert TermKeyword.TRANS in manifest and TermKeyword.HUND not in manifest
    assert len(manifest) == 3

def test_items_follow_processing_order():
    manifest = parse_manifest("Trans t.def\nModPara m.def\nLocSpin l.def\n")
    assert [kw for kw, _ in manifest.items()] == [TermKeyword.MODPARA, TermKeyword.LOCSPIN, TermKeyword.TRANS]

def test_unknown_keyword_lists_accepted_keywords():
    with pytest.raises(ManifestError, match="Wrong keyword 'Transfer'") as info:
        parse_manifest("ModPara m.def\nTransfer t.def\n")
    assert "OrbitalGeneral" in str(info.value)
    assert info.value.row == 1

def test_duplicate_keyword_rejected():
    with pytest.raises(ManifestError, match="more than once"):
        parse_manifest("Trans a.def\ntrans b.def\n")

def test_keyword_without_path_rejected():
    with pytest.raises(ManifestError, match="must be set as a pair"):
        parse_manifest("ModPara\n")

@pytest.mark.parametrize("missing", [TermKeyword.MODPARA, TermKeyword.LOCSPIN])
def test_required_keywords(missing):
    entries = {TermKeyword.MODPARA: "m.def", TermKeyword.LOCSPIN: "l.def"}
    del entries[missing]
    manifest = Manifest(entries)
    with pytest.raises(ManifestError, match=f"Need to make a def file for {missing}"):
        manifest.require()

def test_read_manifest_missing_file(tmp_path):
    with pytest.raises(DefFileAccessError, match="Cannot open file") as info:
        read_manifest(tmp_path / "nope.def")
    assert info.value.keyword == "namelist"

def test_from_mapping_validates_keywords():
    manifest = Manifest.from_mapping({"ModPara": "m.def", TermKeyword.LOCSPIN: "l.def"})
    assert manifest.provided(TermKeyword.MODPARA)
    with pytest.raises(ManifestError):
        Manifest.from_mapping({"NotAKeyword": "x.def"})

def test_initial_value_keywords():
    assert TermKeyword.IN_JASTROW.is_initial_value
    assert TermKeyword.IN_OPT_TRANS.is_initial_value
    assert not TermKeyword.INTER_ALL.is_initial_value
    assert not TermKeyword.JASTROW.is_initial_value
