"""Trust adapter factory — builds the production adapter from loaded config.

The signing key is taken from ``config.ticket`` (AGNTOR_SIGNING_KEY has
already been applied by load_config). When none is configured the built-in
demo key is used; load_config has logged a warning about it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from agntor_cli.adapters.local import LocalTrustAdapter
from agntor_cli.adapters.protocol import TrustAdapter
from agntor_cli.scanner.regex_engine import Policy
from agntor_cli.tickets.issuer import TicketIssuer
from agntor_cli.utils.logger import get_logger

if TYPE_CHECKING:
    from agntor_cli.config import Config

logger = get_logger(__name__)


def create_trust_adapter(config: "Config", policy: Policy) -> TrustAdapter:
    """Create the in-process adapter bound to ``policy`` and the ticket key.

    Raises:
        ValueError: If the configured signing key is empty.
    """
    issuer = TicketIssuer(
        signing_key=config.ticket.effective_signing_key,
        algorithm=config.ticket.algorithm,
    )
    adapter = LocalTrustAdapter(
        issuer=issuer,
        policy=policy,
        resolve_dns=config.scanner.resolve_dns,
    )
    logger.debug(
        "trust_adapter_selected",
        adapter="LocalTrustAdapter",
        algorithm=config.ticket.algorithm,
        demo_key=config.ticket.uses_demo_key,
        resolve_dns=config.scanner.resolve_dns,
        injection_patterns=len(policy.injection_patterns),
        redaction_patterns=len(policy.redaction_patterns),
    )
    return adapter
