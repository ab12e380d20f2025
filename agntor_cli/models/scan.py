"""Scan result contracts: classifications, findings and the ThreatReport.

Everything here is created fresh per command invocation and frozen once built.
``ThreatReport.overall`` is derived from the findings on every access, so the
block-dominates-pass invariant cannot drift from the data it summarises.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Classification(str, Enum):
    """Outcome of a single security check."""

    PASS = "pass"
    BLOCK = "block"


class FindingKind(str, Enum):
    INJECTION = "injection"
    SECRET = "secret"
    SSRF = "ssrf"
    SETTLEMENT_RISK = "settlement-risk"


@dataclass(frozen=True)
class Finding:
    """One detected issue contributing to a ThreatReport.

    Fields:
        kind:           Which detector produced it.
        classification: BLOCK for admission-control findings (injection, blocked
                        URL, blocked settlement). Redaction findings are PASS:
                        they are remediation, not a gate.
        labels:         Violation / pattern labels, in detection order.
        score:          Confidence or risk score in [0.0, 1.0] where the
                        detector provides one.
        subject:        What was checked when it is not the whole input
                        (e.g. the URL for SSRF findings).
        detail:         Human-readable reason, if any.
        span:           (start, end) offsets into the input for redaction findings.
    """

    kind: FindingKind
    classification: Classification
    labels: tuple[str, ...] = ()
    score: Optional[float] = None
    subject: Optional[str] = None
    detail: Optional[str] = None
    span: Optional[tuple[int, int]] = None

    def __post_init__(self) -> None:
        if self.score is not None and not 0.0 <= self.score <= 1.0:
            raise ValueError(f"Finding score must be within [0.0, 1.0], got {self.score}")

    @property
    def is_block(self) -> bool:
        return self.classification == Classification.BLOCK


# ─── Capability adapter results ─────────────────────────────────────────────


@dataclass(frozen=True)
class GuardResult:
    classification: Classification
    violation_types: tuple[str, ...] = ()


@dataclass(frozen=True)
class RedactionFinding:
    type: str
    span: tuple[int, int]


@dataclass(frozen=True)
class RedactResult:
    redacted_text: str
    findings: tuple[RedactionFinding, ...] = ()

    @property
    def types(self) -> list[str]:
        """Distinct finding types in first-seen order."""
        return list(dict.fromkeys(f.type for f in self.findings))


@dataclass(frozen=True)
class UrlCheck:
    """Outcome of validating one URL. ``reason`` is set only when blocked."""

    url: str
    safe: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class TransactionMeta:
    """Proposed agent-to-agent payment, as supplied by the operator."""

    amount: str
    currency: str = "USD"
    recipient_address: str = ""
    service_description: Optional[str] = None
    reputation_score: Optional[float] = None
    sender_address: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "amount": self.amount,
            "currency": self.currency,
            "recipientAddress": self.recipient_address,
            "serviceDescription": self.service_description,
            "reputationScore": self.reputation_score,
        }


@dataclass(frozen=True)
class SettlementResult:
    classification: Classification
    risk_score: float
    risk_factors: tuple[str, ...] = ()
    reasoning: str = ""


# ─── Aggregate report ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ThreatReport:
    """Aggregate of one command's findings.

    ``overall`` is BLOCK iff at least one finding is block-classified.
    The remaining fields carry the raw adapter outcomes the renderer needs;
    they never influence ``overall`` except through ``findings``.
    """

    command: str
    findings: tuple[Finding, ...] = ()
    input_text: Optional[str] = None
    guard: Optional[GuardResult] = None
    redaction: Optional[RedactResult] = None
    url_checks: tuple[UrlCheck, ...] = ()
    settlement: Optional[SettlementResult] = None
    transaction: Optional[TransactionMeta] = None

    @property
    def overall(self) -> Classification:
        if any(f.is_block for f in self.findings):
            return Classification.BLOCK
        return Classification.PASS

    def findings_of(self, kind: FindingKind) -> list[Finding]:
        return [f for f in self.findings if f.kind == kind]


@dataclass(frozen=True)
class Explanation:
    """Advisory natural-language text attached to a report. Never part of ``overall``."""

    title: str
    text: str


@dataclass(frozen=True)
class ScanOutcome:
    """What a scan command hands to the renderer."""

    report: ThreatReport
    explanations: tuple[Explanation, ...] = field(default_factory=tuple)
    explainer_available: bool = False
