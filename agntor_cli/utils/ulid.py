"""ULID generation for invocation identifiers.

Every command invocation gets one ULID. It is bound into the structlog
context as ``scan_id`` so every log line of that invocation can be correlated.

Uses the ``python-ulid`` library — do NOT hand-roll ULID generation.
"""

from __future__ import annotations

from ulid import ULID


def generate_ulid() -> str:
    """Return a new 26-character Crockford Base32 ULID string."""
    return str(ULID())
