"""Settlement risk scoring for agent-to-agent payments.

Additive model: each triggered risk factor contributes its weight from
``SETTLEMENT_WEIGHTS``; the sum is capped at 1.0. A score at or above
``SETTLEMENT_BLOCK_THRESHOLD`` classifies the transaction as block.

IMPORT RULES:
  - ``import re2`` ONLY — ``import re`` is PROHIBITED in this file.
"""

from __future__ import annotations

from typing import Optional

import re2  # noqa: F401 — google-re2. NEVER: import re

from agntor_cli.constants import (
    SETTLEMENT_BLOCK_THRESHOLD,
    SETTLEMENT_EXTREME_VALUE,
    SETTLEMENT_HIGH_VALUE,
    SETTLEMENT_LOW_REPUTATION,
    SETTLEMENT_MODERATE_REPUTATION,
    SETTLEMENT_WEIGHTS,
)
from agntor_cli.models.scan import Classification, SettlementResult, TransactionMeta
from agntor_cli.scanner.regex_engine import DEFAULT_POLICY, Policy, guard_scan

_EVM_ADDRESS = re2.compile(r'0x[a-fA-F0-9]{40}')
_BURN_ADDRESSES = frozenset({
    "0x" + "0" * 40,
    "0x000000000000000000000000000000000000dead",
})

_FACTOR_DESCRIPTIONS: dict[str, str] = {
    "burn-address-recipient": "recipient is a zero/burn address, funds would be unrecoverable",
    "malformed-recipient-address": "recipient is not a well-formed 0x address",
    "invalid-amount": "amount is not a positive number",
    "high-value-transaction": "amount exceeds the high-value threshold",
    "extreme-value-transaction": "amount exceeds the extreme-value threshold",
    "low-recipient-reputation": "recipient reputation is low",
    "moderate-recipient-reputation": "recipient reputation is only moderate",
    "unknown-recipient-reputation": "recipient reputation is unknown",
    "missing-service-description": "no service description was supplied",
    "injection-in-service-description": "service description contains prompt-injection text",
}


def _parse_amount(raw: str) -> Optional[float]:
    try:
        value = float(str(raw).replace(",", "").strip())
    except ValueError:
        return None
    if value != value or value <= 0:  # NaN or non-positive
        return None
    return value


def score_transaction(meta: TransactionMeta, policy: Policy = DEFAULT_POLICY) -> SettlementResult:
    """Score ``meta`` and classify it. Pure function; never performs I/O."""
    factors: list[str] = []

    recipient = meta.recipient_address.strip()
    if recipient.lower() in _BURN_ADDRESSES:
        factors.append("burn-address-recipient")
    elif not _EVM_ADDRESS.fullmatch(recipient):
        factors.append("malformed-recipient-address")

    amount = _parse_amount(meta.amount)
    if amount is None:
        factors.append("invalid-amount")
    elif amount > SETTLEMENT_EXTREME_VALUE:
        factors.append("extreme-value-transaction")
    elif amount > SETTLEMENT_HIGH_VALUE:
        factors.append("high-value-transaction")

    reputation = meta.reputation_score
    if reputation is None:
        factors.append("unknown-recipient-reputation")
    elif reputation < SETTLEMENT_LOW_REPUTATION:
        factors.append("low-recipient-reputation")
    elif reputation < SETTLEMENT_MODERATE_REPUTATION:
        factors.append("moderate-recipient-reputation")

    description = (meta.service_description or "").strip()
    if not description:
        factors.append("missing-service-description")
    elif guard_scan(description, policy).classification == Classification.BLOCK:
        factors.append("injection-in-service-description")

    score = round(min(1.0, sum(SETTLEMENT_WEIGHTS[f] for f in factors)), 2)
    classification = (
        Classification.BLOCK if score >= SETTLEMENT_BLOCK_THRESHOLD else Classification.PASS
    )

    if factors:
        reasoning = "; ".join(_FACTOR_DESCRIPTIONS[f] for f in factors)
        reasoning = f"{reasoning[0].upper()}{reasoning[1:]}."
    else:
        reasoning = "No risk factors detected for this transaction."

    return SettlementResult(
        classification=classification,
        risk_score=score,
        risk_factors=tuple(factors),
        reasoning=reasoning,
    )
