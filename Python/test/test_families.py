"""
Tests for the term-family descriptor table shared by the sizing and the
assembly passes.
"""

import pytest

from VMCDef.Definitions.families import FAMILY_REGISTRY, HeaderShape, Phase, TermFamily
from VMCDef.Definitions.keywords import TermKeyword
import VMCDef.Ingest.ingest  # noqa: F401  (binds every handler)
from VMCDef.Ingest.sizes import COUNT_FIELDS

def test_every_keyword_is_described_in_processing_order():
    assert [spec.keyword for spec in FAMILY_REGISTRY.ordered()] == list(TermKeyword)
    assert FAMILY_REGISTRY.available()[0] == "ModPara"

def test_count_fields_exist():
    for spec in FAMILY_REGISTRY.ordered():
        if spec.count_field is not None:
            assert spec.count_field in COUNT_FIELDS, spec.keyword
        if spec.header is HeaderShape.COUNT_COMPLEX:
            assert spec.complex_field in COUNT_FIELDS, spec.keyword

def test_term_files_have_an_assembly_handler():
    for spec in FAMILY_REGISTRY.ordered():
        if spec.header in (HeaderShape.PARAMETERS, HeaderShape.NONE):
            continue
        assert FAMILY_REGISTRY.handler(spec.keyword, Phase.ASSEMBLE) is not None, spec.keyword

def test_initial_value_files_have_an_initial_handler():
    for spec in FAMILY_REGISTRY.ordered():
        if spec.family is TermFamily.INITIAL_VALUES:
            assert spec.keyword.is_initial_value
            assert FAMILY_REGISTRY.handler(spec.keyword, Phase.INITIAL) is not None, spec.keyword

def test_describe():
    info = FAMILY_REGISTRY.describe(TermKeyword.ORBITAL_PARALLEL)
    assert info["family"] == "orbital"
    assert info["orbital_mode"] == "parallel"
    assert info["count_field"] == "n_orbital_p"
    assert FAMILY_REGISTRY.get(TermKeyword.BF).feature == "backflow"

def test_duplicate_registration_rejected():
    with pytest.raises(KeyError):
        FAMILY_REGISTRY.register(FAMILY_REGISTRY.get(TermKeyword.TRANS))
