"""FakeTrustAdapter — deterministic TrustAdapter for tests.

Behaviour is driven entirely by constructor arguments (literal trigger
phrases, per-URL verdicts, a canned settlement result) so orchestrator and
ticket-lifecycle tests never depend on the real detection back end.

Every call is appended to ``calls`` as ``(method, argument)`` so tests can
assert sequencing. Tickets use a fixed three-segment format with a keyed
SHA-256 tag; it is NOT a real signature scheme.
"""

from __future__ import annotations

import base64
import hashlib
import json
import time
from typing import Callable, Iterable, Optional

from pydantic import ValidationError

from agntor_cli.models.scan import (
    Classification,
    GuardResult,
    RedactionFinding,
    RedactResult,
    SettlementResult,
    TransactionMeta,
)
from agntor_cli.models.ticket import (
    AuditTicketClaims,
    TicketErrorCode,
    TicketValidationOutcome,
)
from agntor_cli.scanner.regex_engine import Policy
from agntor_cli.scanner.ssrf import SsrfError

_FAKE_HEADER = base64.urlsafe_b64encode(b'{"alg":"FAKE","typ":"JWT"}').decode("ascii").rstrip("=")


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _unb64(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


class FakeTrustAdapter:
    """Scriptable in-memory adapter.

    Args:
        guard_triggers:  Lower-case phrase → violation label. Any phrase found in
                         the text classifies it as BLOCK.
        redact_triggers: Literal substring → finding type. Every occurrence is
                         replaced with ``[REDACTED]``.
        blocked_urls:    URL → SsrfError reason. Unlisted URLs are safe.
        settlement:      Result returned by settlement_guard().
        fail_on:         Method names that raise RuntimeError when called.
        key:             Ticket tag key.
        clock:           Epoch-seconds source for expiry checks.
    """

    def __init__(
        self,
        guard_triggers: Optional[dict[str, str]] = None,
        redact_triggers: Optional[dict[str, str]] = None,
        blocked_urls: Optional[dict[str, str]] = None,
        settlement: Optional[SettlementResult] = None,
        fail_on: Iterable[str] = (),
        key: str = "fake-key",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.guard_triggers = guard_triggers or {}
        self.redact_triggers = redact_triggers or {}
        self.blocked_urls = blocked_urls or {}
        self.settlement = settlement or SettlementResult(
            classification=Classification.PASS, risk_score=0.0, reasoning="fake"
        )
        self.fail_on = frozenset(fail_on)
        self.calls: list[tuple[str, str]] = []
        self._key = key
        self._clock = clock

    def _record(self, method: str, arg: str) -> None:
        self.calls.append((method, arg))
        if method in self.fail_on:
            raise RuntimeError(f"fake {method} failure")

    async def guard(self, text: str, policy: Policy) -> GuardResult:
        self._record("guard", text)
        lowered = text.lower()
        labels = list(dict.fromkeys(
            label for phrase, label in self.guard_triggers.items() if phrase in lowered
        ))
        if labels:
            return GuardResult(Classification.BLOCK, tuple(labels))
        return GuardResult(Classification.PASS)

    def redact(self, text: str, policy: Policy) -> RedactResult:
        self._record("redact", text)
        spans: list[tuple[int, int, str]] = []
        for literal, finding_type in self.redact_triggers.items():
            start = text.find(literal)
            while start != -1:
                spans.append((start, start + len(literal), finding_type))
                start = text.find(literal, start + len(literal))
        spans.sort()
        redacted = text
        for start, end, _ in reversed(spans):
            redacted = redacted[:start] + "[REDACTED]" + redacted[end:]
        return RedactResult(
            redacted_text=redacted,
            findings=tuple(RedactionFinding(type=t, span=(s, e)) for s, e, t in spans),
        )

    async def validate_url(self, url: str) -> None:
        self._record("validate_url", url)
        if url in self.blocked_urls:
            raise SsrfError(self.blocked_urls[url])

    async def settlement_guard(self, meta: TransactionMeta) -> SettlementResult:
        self._record("settlement_guard", meta.recipient_address)
        return self.settlement

    def _tag(self, payload_segment: str) -> str:
        return hashlib.sha256(f"{self._key}.{payload_segment}".encode()).hexdigest()[:32]

    def generate_ticket(self, claims: AuditTicketClaims) -> str:
        self._record("generate_ticket", claims.subject)
        payload = _b64(json.dumps(claims.to_payload(), sort_keys=True).encode())
        return f"{_FAKE_HEADER}.{payload}.{self._tag(payload)}"

    def _parse(self, token: str) -> Optional[tuple[str, str, AuditTicketClaims]]:
        parts = token.split(".")
        if len(parts) != 3:
            return None
        try:
            claims = AuditTicketClaims.model_validate(json.loads(_unb64(parts[1])))
        except (ValueError, ValidationError):
            return None
        return parts[1], parts[2], claims

    def decode_ticket(self, token: str) -> Optional[AuditTicketClaims]:
        self._record("decode_ticket", token)
        parsed = self._parse(token)
        return parsed[2] if parsed else None

    def validate_ticket(self, token: str) -> TicketValidationOutcome:
        self._record("validate_ticket", token)
        parsed = self._parse(token)
        if parsed is None:
            return TicketValidationOutcome.failed(TicketErrorCode.MALFORMED)
        payload, tag, claims = parsed
        if tag != self._tag(payload):
            return TicketValidationOutcome.failed(TicketErrorCode.SIGNATURE_INVALID)
        if claims.expires_at <= self._clock():
            return TicketValidationOutcome.failed(TicketErrorCode.EXPIRED)
        return TicketValidationOutcome.ok()
