"""Audit ticket contracts.

Claims are parsed from (and serialised to) the token payload with pydantic, so a
structurally broken payload surfaces as a ValidationError at the boundary and
never as a half-populated claims object.

Payload field names follow bearer-token conventions:
    sub, iss, iat, exp       — subject, issuer, issued-at, expiry (epoch seconds)
    audit_level              — Bronze | Silver | Gold | Platinum
    constraints              — operating constraints (see TicketConstraints)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from agntor_cli.constants import DEFAULT_ALLOWED_MCP_SERVERS, DEFAULT_MAX_OPS_PER_HOUR
from agntor_cli.models.scan import Explanation


class AuditLevel(str, Enum):
    """Ordered audit tier: Bronze < Silver < Gold < Platinum."""

    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    def __lt__(self, other: object) -> bool:
        if isinstance(other, AuditLevel):
            return self.rank < other.rank
        return NotImplemented

    def __le__(self, other: object) -> bool:
        if isinstance(other, AuditLevel):
            return self.rank <= other.rank
        return NotImplemented

    def __gt__(self, other: object) -> bool:
        if isinstance(other, AuditLevel):
            return self.rank > other.rank
        return NotImplemented

    def __ge__(self, other: object) -> bool:
        if isinstance(other, AuditLevel):
            return self.rank >= other.rank
        return NotImplemented

    @classmethod
    def parse(cls, value: str) -> "AuditLevel":
        """Case-insensitive lookup by name ("gold", "Gold", "GOLD").

        Raises:
            ValueError: If ``value`` names no audit level.
        """
        for level in cls:
            if level.value.lower() == value.strip().lower():
                return level
        valid = ", ".join(level.value for level in cls)
        raise ValueError(f"Unknown audit level '{value}'. Valid levels: {valid}")


# Default single-operation ceiling per level. Higher levels get higher ceilings.
MAX_OP_VALUE_BY_LEVEL: dict[AuditLevel, float] = {
    AuditLevel.BRONZE: 100,
    AuditLevel.SILVER: 1_000,
    AuditLevel.GOLD: 5_000,
    AuditLevel.PLATINUM: 10_000,
}


class TicketConstraints(BaseModel):
    """Operating constraints asserted by a ticket.

    ``kill_switch_active`` is informational: it is surfaced to the operator but
    does not change the signature/expiry validation outcome.
    """

    model_config = ConfigDict(frozen=True)

    max_op_value: float = Field(ge=0)
    allowed_mcp_servers: tuple[str, ...] = ()
    kill_switch_active: bool = False
    max_ops_per_hour: int = Field(default=DEFAULT_MAX_OPS_PER_HOUR, ge=0)
    requires_x402_payment: bool = False

    @classmethod
    def for_level(cls, level: AuditLevel, **overrides: Any) -> "TicketConstraints":
        """Level defaults with any explicitly supplied (non-None) overrides applied."""
        values: dict[str, Any] = {
            "max_op_value": MAX_OP_VALUE_BY_LEVEL[level],
            "allowed_mcp_servers": DEFAULT_ALLOWED_MCP_SERVERS,
            "kill_switch_active": False,
            "max_ops_per_hour": DEFAULT_MAX_OPS_PER_HOUR,
            "requires_x402_payment": level != AuditLevel.BRONZE,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class AuditTicketClaims(BaseModel):
    """Immutable claims carried by an audit ticket."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    subject: str = Field(alias="sub", min_length=1)
    issuer: str = Field(alias="iss")
    audit_level: AuditLevel
    issued_at: int = Field(alias="iat")
    expires_at: int = Field(alias="exp")
    constraints: TicketConstraints

    def to_payload(self) -> dict[str, Any]:
        """Token payload dict using the wire field names."""
        return self.model_dump(mode="json", by_alias=True)


class TicketErrorCode(str, Enum):
    MALFORMED = "malformed"
    SIGNATURE_INVALID = "signature-invalid"
    EXPIRED = "expired"
    NONE = "none"


@dataclass(frozen=True)
class TicketValidationOutcome:
    valid: bool
    error_code: TicketErrorCode = TicketErrorCode.NONE

    @classmethod
    def ok(cls) -> "TicketValidationOutcome":
        return cls(valid=True, error_code=TicketErrorCode.NONE)

    @classmethod
    def failed(cls, code: TicketErrorCode) -> "TicketValidationOutcome":
        return cls(valid=False, error_code=code)


@dataclass(frozen=True)
class TicketOutcome:
    """What a ticket command hands to the renderer.

    ``claims`` is whatever could be structurally recovered, even when
    ``validation`` failed. ``error`` holds a user-facing failure message for
    the requested check (e.g. an undecodable token).
    """

    action: str
    token: Optional[str] = None
    claims: Optional[AuditTicketClaims] = None
    validation: Optional[TicketValidationOutcome] = None
    explanations: tuple[Explanation, ...] = ()
    explainer_available: bool = False
    error: Optional[str] = None
