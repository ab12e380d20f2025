"""Signed audit-ticket primitives: generate, decode, validate.

Token format: standard three-segment JWT (header.payload.signature), HS256 by
default, signed with the process-wide signing key.

``decode_ticket()`` is a best-effort structural parse for display and MUST NOT
be treated as proof of authenticity. ``validate_ticket()`` is authoritative.

Validation error precedence:
  1. malformed          — not three segments, undecodable header/payload,
                          or payload that is not a valid claims object
  2. signature-invalid  — signature does not verify against the signing key
  3. expired            — signature verifies but ``exp`` is in the past
"""

from __future__ import annotations

import base64
import json
from typing import Any, Optional

import jwt
from pydantic import ValidationError

from agntor_cli.constants import TICKET_ALGORITHM
from agntor_cli.models.ticket import (
    AuditTicketClaims,
    TicketErrorCode,
    TicketValidationOutcome,
)
from agntor_cli.utils.logger import get_logger

logger = get_logger(__name__)

_REQUIRED_CLAIMS = ["sub", "iss", "iat", "exp"]


def _b64url_json(segment: str) -> Any:
    """Decode one base64url JSON segment. Raises ValueError on any failure."""
    padded = segment + "=" * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        return json.loads(raw.decode("utf-8"))
    except (UnicodeError, ValueError) as exc:
        raise ValueError(f"segment is not base64url JSON: {exc}") from exc


def _structural_payload(token: str) -> dict[str, Any]:
    """Return the payload dict of a structurally well-formed token.

    Raises:
        ValueError: If the token is not three non-empty dot-separated segments
                    with a JSON-object header and payload.
    """
    parts = token.strip().split(".")
    if len(parts) != 3 or not all(parts):
        raise ValueError("token must have three dot-separated segments")
    header = _b64url_json(parts[0])
    payload = _b64url_json(parts[1])
    if not isinstance(header, dict) or not isinstance(payload, dict):
        raise ValueError("token header and payload must be JSON objects")
    return payload


class TicketIssuer:
    """Issues and checks audit tickets for one signing key."""

    def __init__(self, signing_key: str, algorithm: str = TICKET_ALGORITHM) -> None:
        if not signing_key:
            raise ValueError("signing_key must not be empty")
        self._signing_key = signing_key
        self._algorithm = algorithm

    def generate_ticket(self, claims: AuditTicketClaims) -> str:
        """Sign ``claims`` and return the encoded token."""
        return jwt.encode(claims.to_payload(), self._signing_key, algorithm=self._algorithm)

    def decode_ticket(self, token: str) -> Optional[AuditTicketClaims]:
        """Best-effort claims parse WITHOUT signature or expiry verification.

        Returns None if the token is not structurally well-formed.
        """
        try:
            payload = _structural_payload(token)
            return AuditTicketClaims.model_validate(payload)
        except (ValueError, ValidationError) as exc:
            logger.debug("Ticket decode failed", error=str(exc))
            return None

    def validate_ticket(self, token: str) -> TicketValidationOutcome:
        """Authoritative check: structure, then signature, then expiry."""
        try:
            payload = _structural_payload(token)
            AuditTicketClaims.model_validate(payload)
        except (ValueError, ValidationError) as exc:
            logger.debug("Ticket structurally malformed", error=str(exc))
            return TicketValidationOutcome.failed(TicketErrorCode.MALFORMED)

        try:
            jwt.decode(
                token.strip(),
                self._signing_key,
                algorithms=[self._algorithm],
                # iat may lie ahead of the local clock.
                options={"require": _REQUIRED_CLAIMS, "verify_iat": False},
            )
        except jwt.ExpiredSignatureError:
            return TicketValidationOutcome.failed(TicketErrorCode.EXPIRED)
        except (jwt.DecodeError, jwt.InvalidAlgorithmError) as exc:
            # InvalidSignatureError is a DecodeError. Header and payload already
            # parsed, so what remains is the signature segment or a foreign algorithm.
            logger.debug("Ticket signature rejected", error_type=type(exc).__name__)
            return TicketValidationOutcome.failed(TicketErrorCode.SIGNATURE_INVALID)
        except jwt.InvalidTokenError as exc:
            logger.debug("Ticket claims rejected", error_type=type(exc).__name__, error=str(exc))
            return TicketValidationOutcome.failed(TicketErrorCode.MALFORMED)

        return TicketValidationOutcome.ok()
