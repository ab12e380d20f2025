"""LocalTrustAdapter — production TrustAdapter.

Delegates detection to the scanner package and ticket cryptography to
TicketIssuer. Holds no mutable state beyond what it is constructed with.
"""

from __future__ import annotations

from typing import Optional

from agntor_cli.models.scan import GuardResult, RedactResult, SettlementResult, TransactionMeta
from agntor_cli.models.ticket import AuditTicketClaims, TicketValidationOutcome
from agntor_cli.scanner.regex_engine import Policy, guard_scan, redact_text
from agntor_cli.scanner.settlement import score_transaction
from agntor_cli.scanner.ssrf import validate_url
from agntor_cli.tickets.issuer import TicketIssuer


class LocalTrustAdapter:
    """In-process trust adapter.

    Args:
        issuer:      Ticket signer/verifier bound to the process signing key.
        policy:      Pattern sets, also used to screen settlement descriptions.
        resolve_dns: Resolve hostnames during URL validation.
    """

    def __init__(self, issuer: TicketIssuer, policy: Policy, resolve_dns: bool = True) -> None:
        self._issuer = issuer
        self._policy = policy
        self._resolve_dns = resolve_dns

    async def guard(self, text: str, policy: Policy) -> GuardResult:
        return guard_scan(text, policy)

    def redact(self, text: str, policy: Policy) -> RedactResult:
        return redact_text(text, policy)

    async def validate_url(self, url: str) -> None:
        await validate_url(url, resolve_dns=self._resolve_dns)

    async def settlement_guard(self, meta: TransactionMeta) -> SettlementResult:
        return score_transaction(meta, self._policy)

    def generate_ticket(self, claims: AuditTicketClaims) -> str:
        return self._issuer.generate_ticket(claims)

    def decode_ticket(self, token: str) -> Optional[AuditTicketClaims]:
        return self._issuer.decode_ticket(token)

    def validate_ticket(self, token: str) -> TicketValidationOutcome:
        return self._issuer.validate_ticket(token)
