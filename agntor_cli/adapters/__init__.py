"""Trust capability adapters.

Re-exports the public API for ergonomic imports:

    from agntor_cli.adapters import TrustAdapter, SsrfError, create_trust_adapter

Layout:
    protocol.py — TrustAdapter Protocol + SsrfError
    local.py    — LocalTrustAdapter (scanner package + PyJWT issuer)
    fake.py     — FakeTrustAdapter (deterministic, for tests)
    factory.py  — create_trust_adapter() — builds the production adapter from config
"""

from agntor_cli.adapters.factory import create_trust_adapter
from agntor_cli.adapters.local import LocalTrustAdapter
from agntor_cli.adapters.protocol import SsrfError, TrustAdapter

__all__ = [
    "LocalTrustAdapter",
    "SsrfError",
    "TrustAdapter",
    "create_trust_adapter",
]
