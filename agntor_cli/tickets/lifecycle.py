"""Audit ticket lifecycle: generate → decode / validate.

Sits on top of the adapter's ticket primitives and owns the parts that are
policy rather than cryptography: claims assembly with per-level constraint
defaults, timestamps, and the decode-alongside-validate composition used by
every ticket-bearing command.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Callable, Optional

from agntor_cli.models.ticket import (
    AuditLevel,
    AuditTicketClaims,
    TicketConstraints,
    TicketValidationOutcome,
)
from agntor_cli.utils.logger import get_logger

if TYPE_CHECKING:
    from agntor_cli.adapters.protocol import TrustAdapter
    from agntor_cli.config import TicketConfig

logger = get_logger(__name__)


class TicketLifecycle:
    """Generate, decode and validate audit tickets.

    Args:
        adapter: Provides the signing/verification primitives.
        config:  Issuer identity and default validity.
        clock:   Epoch-seconds source used for ``iat``/``exp`` at issuance.
    """

    def __init__(
        self,
        adapter: "TrustAdapter",
        config: "TicketConfig",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._adapter = adapter
        self._config = config
        self._clock = clock

    def build_claims(
        self,
        agent_id: str,
        level: AuditLevel,
        validity_s: Optional[int] = None,
        **constraint_overrides: Any,
    ) -> AuditTicketClaims:
        """Claims for ``agent_id`` with level defaults and any overrides applied."""
        issued_at = int(self._clock())
        validity = validity_s if validity_s is not None else self._config.default_validity
        return AuditTicketClaims(
            subject=agent_id,
            issuer=self._config.issuer,
            audit_level=level,
            issued_at=issued_at,
            expires_at=issued_at + validity,
            constraints=TicketConstraints.for_level(level, **constraint_overrides),
        )

    def generate(
        self,
        agent_id: str,
        level: AuditLevel,
        validity_s: Optional[int] = None,
        **constraint_overrides: Any,
    ) -> tuple[str, AuditTicketClaims]:
        """Issue a ticket. Returns the token and its claims for immediate display."""
        claims = self.build_claims(agent_id, level, validity_s, **constraint_overrides)
        token = self._adapter.generate_ticket(claims)
        logger.info(
            "Ticket generated",
            agent_id=agent_id,
            audit_level=level.value,
            expires_at=claims.expires_at,
        )
        return token, self._adapter.decode_ticket(token) or claims

    def decode(self, token: str) -> Optional[AuditTicketClaims]:
        """Structural parse for display only. Never proof of authenticity."""
        return self._adapter.decode_ticket(token)

    def validate(self, token: str) -> TicketValidationOutcome:
        return self._adapter.validate_ticket(token)

    def inspect(self, token: str) -> tuple[TicketValidationOutcome, Optional[AuditTicketClaims]]:
        """Validate, and always attempt a decode so invalid tickets still show claims."""
        outcome = self.validate(token)
        claims = self.decode(token)
        logger.info(
            "Ticket inspected",
            valid=outcome.valid,
            error_code=outcome.error_code.value,
            decoded=claims is not None,
        )
        return outcome, claims
