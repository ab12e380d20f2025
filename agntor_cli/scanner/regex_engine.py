"""Regex engine for the injection guard and secret/PII redaction.

Provides:
  - ``Policy``: the static pattern configuration injected at startup.
  - ``apply_input_cap()``: hard input limit applied before guard scanning.
  - ``guard_scan()``: classify text as pass/block by injection patterns; never raises.
  - ``redact_text()``: mask every sensitive span; pure function of text and policy.

IMPORT RULES:
  - ``import re2`` ONLY — ``import re`` is PROHIBITED in this file.
"""

from __future__ import annotations

from dataclasses import dataclass

import re2  # noqa: F401 — google-re2. NEVER: import re

from agntor_cli.constants import INPUT_HARD_CAP, REDACTION_MASK
from agntor_cli.models.scan import Classification, GuardResult, RedactionFinding, RedactResult
from agntor_cli.scanner.definitions import (
    DEFAULT_INJECTION_PATTERNS,
    DEFAULT_REDACTION_PATTERNS,
    PatternEntry,
)
from agntor_cli.utils.logger import get_logger

logger = get_logger(__name__)

#: Violation label reported when the guard itself fails (fail-safe BLOCK).
SCANNER_ERROR_LABEL = "scanner-error"


@dataclass(frozen=True)
class Policy:
    """Recognised pattern sets. Built once per process and never mutated."""

    injection_patterns: tuple[PatternEntry, ...] = DEFAULT_INJECTION_PATTERNS
    redaction_patterns: tuple[PatternEntry, ...] = DEFAULT_REDACTION_PATTERNS
    input_hard_cap: int = INPUT_HARD_CAP


DEFAULT_POLICY = Policy()


def apply_input_cap(text: str, cap: int = INPUT_HARD_CAP) -> str:
    """Return ``text`` truncated to ``cap`` characters. NEVER raises."""
    if len(text) > cap:
        logger.warning("Input truncated before scan", cap=cap, original_length=len(text))
        return text[:cap]
    return text


def guard_scan(text: str, policy: Policy = DEFAULT_POLICY) -> GuardResult:
    """Apply every injection pattern to ``text``.

    All patterns are evaluated (no first-match short-circuit) so the result
    lists every violation type present, in pattern order, without duplicates.

    INVARIANTS:
      - NEVER raises. Any exception is logged and returns BLOCK with the
        ``scanner-error`` violation (fail-safe).
      - BLOCK iff at least one pattern matched.
    """
    try:
        capped = apply_input_cap(text, policy.input_hard_cap)
        labels: list[str] = []
        for entry in policy.injection_patterns:
            if entry.label not in labels and entry.pattern.search(capped):
                labels.append(entry.label)

        if labels:
            return GuardResult(classification=Classification.BLOCK, violation_types=tuple(labels))
        return GuardResult(classification=Classification.PASS)

    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Unexpected error in guard_scan() — BLOCKING",
            error_type=type(exc).__name__,
            error=str(exc),
            exc_info=True,
        )
        return GuardResult(
            classification=Classification.BLOCK,
            violation_types=(SCANNER_ERROR_LABEL,),
        )


def redact_text(text: str, policy: Policy = DEFAULT_POLICY, mask: str = REDACTION_MASK) -> RedactResult:
    """Replace every sensitive span in ``text`` with ``mask``.

    Overlapping matches are resolved by earliest start, then longest span; the
    losing match is dropped entirely. Findings are reported in text order with
    spans relative to the ORIGINAL text.
    """
    candidates: list[tuple[int, int, str]] = []
    for entry in policy.redaction_patterns:
        for m in entry.pattern.finditer(text):
            if m.end() > m.start():
                candidates.append((m.start(), m.end(), entry.label))

    candidates.sort(key=lambda c: (c[0], -(c[1] - c[0])))

    findings: list[RedactionFinding] = []
    last_end = -1
    for start, end, label in candidates:
        if start < last_end:
            continue
        findings.append(RedactionFinding(type=label, span=(start, end)))
        last_end = end

    parts: list[str] = []
    cursor = 0
    for finding in findings:
        start, end = finding.span
        parts.append(text[cursor:start])
        parts.append(mask)
        cursor = end
    parts.append(text[cursor:])

    return RedactResult(redacted_text="".join(parts), findings=tuple(findings))
