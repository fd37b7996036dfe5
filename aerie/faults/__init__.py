"""
Aerie faults - structured error signals.

Errors in Aerie are typed fault signals: each carries a stable code,
a domain and a severity so callers and logs can tell registry misuse
from cache or lifecycle problems.

Subsystem fault families live next to their subsystem:
- aerie.services.faults: Service registry faults
- aerie.cache.faults: Memoization engine faults
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

__all__ = [
    "Fault",
    "FaultDomain",
    "Severity",
]
