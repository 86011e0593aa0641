"""
Tests for the global logger singleton ensuring multiple import paths resolve
to the same instance.

These are lightweight runtime identity tests (no file reading) so they
should be fast and safe for CI.
"""

from importlib import reload
import logging

def test_logger_singleton_identity():
    ''' Test that get_logger() returns the same instance across multiple calls. '''
    from VMCDef.vmcdef_globals import get_logger
    log1    = get_logger()
    log2    = get_logger()
    assert log1 is log2, "get_logger() returned different instances (expected singleton)."

def test_package_reexport_is_the_same_logger():
    ''' Test that the package level accessor is the global one. '''
    import VMCDef
    from VMCDef.vmcdef_globals import get_logger
    assert VMCDef.get_logger() is get_logger()

def test_handler_attached_once_after_reload():
    ''' Reloading the module must not stack a second handler on the named logger. '''
    import VMCDef.vmcdef_globals as vg
    vg.get_logger()
    reload(vg)
    log = vg.get_logger()
    assert len(log.handlers) == 1
    assert log is logging.getLogger(vg.LOGGER_NAME)

def test_rank_logger_prefix():
    ''' Worker messages carry the rank. '''
    from VMCDef.vmcdef_globals import get_rank_logger
    msg, _ = get_rank_logger(3).process("received definitions", {})
    assert msg == "[Rank 3] received definitions"

# ----------------------------------------------------------------------------------------------------
#! End of test_globals_singleton.py
# ----------------------------------------------------------------------------------------------------
