"""
Centralized global singletons for the VMCDef package.

Motivation
==========
The definition reader is driven from many small modules (sizing, assembly,
distribution) and each of them logs what it reads. Creating a logger per
module and attaching handlers on import leads to double printing when the
package is imported from several entry points, especially under MPI where
every rank imports the package.

This module provides a SINGLE authoritative place where the shared logger is
created exactly once per Python process. All other code should import the
accessor defined here instead of configuring logging on its own.

Usage Pattern
-------------
    from VMCDef.vmcdef_globals import get_logger

    log = get_logger()
    log.info("Read File 'trans.def' for Trans.")

!IMPORTANT: Do NOT perform side effects at module import other than creating
!lightweight sentinels; the handler is attached on first access.
"""

from __future__ import annotations
from typing import Optional, Any
import logging
import os
import threading

# Thread-local storage for singletons
_LOCK               = threading.Lock()

# Internal storage for singletons
_LOGGER: Any        = None

LOGGER_NAME         = "VMCDef"
LOG_FORMAT          = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL_ENV       = "VMCDEF_LOG_LEVEL"

def get_logger(level: Optional[int] = None, **kwargs) -> logging.Logger:
    """
    Return the process-global logger instance.

    Parameters
    ----------
    level : int, optional
        Logging level applied the first time the logger is created. When
        omitted, the level is taken from ``VMCDEF_LOG_LEVEL`` (default INFO).
    **kwargs : dict
        ``fmt`` may override the record format on first creation.
    """
    global _LOGGER
    if _LOGGER is not None:
        return _LOGGER
    with _LOCK:
        if _LOGGER is None:
            logger = logging.getLogger(LOGGER_NAME)
            if not logger.handlers:
                handler = logging.StreamHandler()
                handler.setFormatter(logging.Formatter(kwargs.get("fmt", LOG_FORMAT)))
                logger.addHandler(handler)
            if level is None:
                level = logging.getLevelName(os.environ.get(LOG_LEVEL_ENV, "INFO").upper())
                if not isinstance(level, int):
                    level = logging.INFO
            logger.setLevel(level)
            logger.propagate = False
            _LOGGER = logger
    return _LOGGER

def get_rank_logger(rank: int) -> logging.LoggerAdapter:
    """Return the global logger with a ``[Rank n]`` prefix for worker messages."""
    return _RankAdapter(get_logger(), {"rank": rank})

class _RankAdapter(logging.LoggerAdapter):

    def process(self, msg, kwargs):
        return f"[Rank {self.extra['rank']}] {msg}", kwargs

# ----------------------------------------------------------------

__all__ = [
    "get_logger",
    "get_rank_logger",
]

# ----------------------------------------------------------------
#! End of VMCDef global singletons
