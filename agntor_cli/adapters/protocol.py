"""TrustAdapter Protocol — the capability boundary the orchestrator depends on.

Implementations:
  - LocalTrustAdapter (adapters/local.py) — production, backed by the scanner
    package and the PyJWT ticket issuer.
  - FakeTrustAdapter (adapters/fake.py)   — deterministic, for tests.
Selection via create_trust_adapter() (adapters/factory.py).

Failure semantics:
  - guard() never raises; a scanner failure is reported as a BLOCK.
  - redact() is a pure function of text and policy.
  - validate_url() is the ONLY method whose normal "unsafe" signal is an
    exception: it raises SsrfError(reason).
  - Ticket primitives report problems as values (None / TicketValidationOutcome).

Calls are treated as potentially slow I/O but are issued sequentially by a
single caller; implementations need not be thread-safe.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from agntor_cli.models.scan import GuardResult, RedactResult, SettlementResult, TransactionMeta
from agntor_cli.models.ticket import AuditTicketClaims, TicketValidationOutcome
from agntor_cli.scanner.regex_engine import Policy
from agntor_cli.scanner.ssrf import SsrfError

__all__ = ["SsrfError", "TrustAdapter"]


@runtime_checkable
class TrustAdapter(Protocol):
    """Pluggable trust/security capability interface."""

    async def guard(self, text: str, policy: Policy) -> GuardResult:
        """Classify ``text`` for prompt injection. Must NEVER raise."""
        ...

    def redact(self, text: str, policy: Policy) -> RedactResult:
        """Mask sensitive spans in ``text``."""
        ...

    async def validate_url(self, url: str) -> None:
        """Return None if ``url`` is safe to fetch.

        Raises:
            SsrfError: If the URL targets an unsafe endpoint.
        """
        ...

    async def settlement_guard(self, meta: TransactionMeta) -> SettlementResult:
        """Score the fraud risk of a proposed payment."""
        ...

    def generate_ticket(self, claims: AuditTicketClaims) -> str:
        """Sign ``claims`` into a token."""
        ...

    def decode_ticket(self, token: str) -> Optional[AuditTicketClaims]:
        """Structural parse without verification. None if malformed."""
        ...

    def validate_ticket(self, token: str) -> TicketValidationOutcome:
        """Authoritative signature/expiry/structure check."""
        ...
