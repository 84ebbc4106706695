"""
Universal database connectivity tester.

detect -> descriptor -> prober -> normalized ProbeResult, for postgresql,
supabase, mysql and mongodb targets. Every probe is a fresh, time-bounded
connection that is closed before the call returns; nothing is pooled.
"""

from .descriptor import ConnectionDescriptor, build, descriptor_from_fields
from .detect import detect
from .errors import (
    ProbeError,
    ProbeTimeoutError,
    ProbeValidationError,
    UnsupportedEngineError,
)
from .probers import PROBERS, run_probe
from .result import ProbeResult, normalize
from .service import atest_connection, detect_type, test_connection

__all__ = [
    "ConnectionDescriptor",
    "PROBERS",
    "ProbeError",
    "ProbeResult",
    "ProbeTimeoutError",
    "ProbeValidationError",
    "UnsupportedEngineError",
    "atest_connection",
    "build",
    "descriptor_from_fields",
    "detect",
    "detect_type",
    "normalize",
    "run_probe",
    "test_connection",
]
