"""
Health-check helpers for liveness and readiness probes.

Liveness:  is the process alive and not deadlocked?  (cheap, no I/O)
Readiness: can it serve traffic?  (a prober is registered for every engine)
"""

import logging

from app.core.probe import PROBERS
from app.models_probe import SUPPORTED_ENGINE_KINDS

logger = logging.getLogger(__name__)


def check_probers() -> list[str]:
    """Engine kinds that have no prober registered."""
    return [kind.value for kind in SUPPORTED_ENGINE_KINDS if kind not in PROBERS]


def liveness_check() -> tuple[bool, list[str]]:
    """
    Lightweight liveness probe: just confirms the Python process is responsive.
    No I/O, no DB calls.  Return format matches readiness_check for consistency.
    """
    return (True, [])


def readiness_check() -> tuple[bool, list[str]]:
    """
    Returns (ok, list of failure messages). Never connects to a target database:
    readiness only means every supported engine can be dispatched.
    """
    failures = [f"prober_missing:{kind}" for kind in check_probers()]
    if failures:
        logger.warning("Readiness check failed: %s", ", ".join(failures))
    return (len(failures) == 0, failures)
