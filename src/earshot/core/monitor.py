"""Process memory readings via psutil."""

from __future__ import annotations

import logging
import os

import psutil

from earshot.models.runtime import MemorySample

logger = logging.getLogger("earshot.monitor")

_MB = 1024 * 1024


def read_process_memory(pid: int | None = None) -> MemorySample | None:
    """Sample RSS/VMS of a process and the host's physical memory.

    Returns None when the platform refuses introspection; callers treat that
    as "metric unavailable", not as an error.
    """
    try:
        proc = psutil.Process(pid if pid is not None else os.getpid())
        mem = proc.memory_info()
        limit = psutil.virtual_memory().total
    except psutil.NoSuchProcess:
        logger.warning("Process %s no longer exists", pid)
        return None
    except psutil.AccessDenied:
        logger.debug("Access denied reading memory of process %s", pid)
        return None
    except (OSError, NotImplementedError):
        logger.debug("Memory introspection unavailable", exc_info=True)
        return None

    return MemorySample(
        used=round(mem.rss / _MB, 2),
        total=round(mem.vms / _MB, 2),
        limit=round(limit / _MB, 2),
    )
