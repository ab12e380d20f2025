"""Command-line entry point for agntor-cli.

Usage:
    agntor scan <input...>          # guard + redact + SSRF + assessment
    agntor guard <input...>
    agntor redact <input...>
    agntor ticket --generate [--level Gold] [--agent id]
    agntor ticket --decode <token> | --validate <token>
    agntor settle [--to 0x...] [--value 250] ...
    agntor ssrf <url>

Exit status: 0 for any completed check (pass or block), 1 for an unexpected
failure, 130 on interrupt. Config errors exit 1 via load_config().
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Optional, Sequence

from agntor_cli import __version__
from agntor_cli.adapters.factory import create_trust_adapter
from agntor_cli.config import Config, build_policy, load_config
from agntor_cli.explain.engine import Explainer, ExplanationEngine, NullExplainer
from agntor_cli.models.scan import TransactionMeta
from agntor_cli.models.ticket import AuditLevel
from agntor_cli.orchestrator import ScanOrchestrator
from agntor_cli.report import ReportRenderer
from agntor_cli.tickets.lifecycle import TicketLifecycle
from agntor_cli.utils.logger import clear_scan_id, configure_logging, get_logger, set_scan_id
from agntor_cli.utils.ulid import generate_ulid

logger = get_logger(__name__)

# ─── Command defaults ────────────────────────────────────────────────────────

DEFAULT_AGENT_ID = "agent-001"
DEFAULT_AUDIT_LEVEL = AuditLevel.SILVER

DEFAULT_SENDER = "0x742d35Cc6634C0532925a3b844Bc9e7595f2bD18"
DEFAULT_RECIPIENT = "0x8ba1f109551bD432803012645Ac136ddd64DBA72"
DEFAULT_VALUE = "250"
DEFAULT_CURRENCY = "USD"
DEFAULT_SERVICE = "Code review and analysis service"
DEFAULT_REPUTATION = 0.85


def _audit_level(value: str) -> AuditLevel:
    try:
        return AuditLevel.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _reputation(value: str) -> float:
    try:
        score = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from exc
    if not 0.0 <= score <= 1.0:
        raise argparse.ArgumentTypeError(f"must be between 0 and 1, got {score}")
    return score


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agntor",
        description="Security scanner for AI agent systems.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to a config file (default: .agntor/config.yaml)")
    parser.add_argument("--no-explain", action="store_true", help="Skip reasoning-tool explanations")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Log level for stderr diagnostics (default: from config, WARNING)",
    )

    sub = parser.add_subparsers(dest="command", metavar="<command>")

    scan = sub.add_parser("scan", help="Full security scan: injection + secrets + SSRF + assessment")
    scan.add_argument("input", nargs="+")

    guard = sub.add_parser("guard", help="Scan text for prompt injection attacks")
    guard.add_argument("input", nargs="+")

    redact = sub.add_parser("redact", help="Detect and redact secrets and PII in text")
    redact.add_argument("input", nargs="+")

    ticket = sub.add_parser("ticket", help="Generate, decode, or validate audit tickets")
    action = ticket.add_mutually_exclusive_group()
    action.add_argument("--generate", action="store_true", help="Generate a sample audit ticket")
    action.add_argument("--decode", metavar="TOKEN", help="Decode a ticket (without verification)")
    action.add_argument("--validate", metavar="TOKEN", help="Validate a ticket with signature check")
    ticket.add_argument(
        "--level",
        type=_audit_level,
        default=DEFAULT_AUDIT_LEVEL,
        help="Audit level for generation (Bronze, Silver, Gold, Platinum)",
    )
    ticket.add_argument("--agent", default=DEFAULT_AGENT_ID, help="Agent ID for generation")
    ticket.add_argument("--validity", type=int, help="Ticket lifetime in seconds")
    ticket.add_argument("--max-op-value", type=float, help="Override the level's max operation value")
    ticket.add_argument("--kill-switch", action="store_true", help="Issue the ticket with the kill switch active")

    settle = sub.add_parser("settle", help="Analyze x402 payment settlement risk")
    settle.add_argument("--from", dest="sender", default=DEFAULT_SENDER, help="Sender agent address")
    settle.add_argument("--to", dest="recipient", default=DEFAULT_RECIPIENT, help="Recipient agent address")
    settle.add_argument("--value", default=DEFAULT_VALUE, help="Transaction value")
    settle.add_argument("--currency", default=DEFAULT_CURRENCY)
    settle.add_argument("--service", default=DEFAULT_SERVICE, help="Service description")
    settle.add_argument(
        "--reputation",
        type=_reputation,
        default=DEFAULT_REPUTATION,
        help="Recipient reputation score (0-1)",
    )

    ssrf = sub.add_parser("ssrf", help="Check if a URL is safe for AI agents to access")
    ssrf.add_argument("url")

    return parser


def build_orchestrator(config: Config, renderer: ReportRenderer) -> tuple[ScanOrchestrator, Explainer]:
    """Wire the per-invocation object graph from the loaded config."""
    policy = build_policy(config)
    adapter = create_trust_adapter(config, policy)
    explainer: Explainer
    if config.explain.enabled:
        explainer = ExplanationEngine(config.explain, status=renderer.console.status)
    else:
        explainer = NullExplainer()
    tickets = TicketLifecycle(adapter, config.ticket)
    return ScanOrchestrator(adapter, explainer, policy, tickets), explainer


async def run_command(args: argparse.Namespace, config: Config, renderer: ReportRenderer) -> int:
    orchestrator, explainer = build_orchestrator(config, renderer)

    renderer.banner()
    renderer.explainer_status(await explainer.is_available())

    if args.command in ("scan", "guard", "redact"):
        text = " ".join(args.input)
        if args.command == "scan":
            outcome = await orchestrator.full_scan(text)
        elif args.command == "guard":
            outcome = await orchestrator.guard_scan(text)
        else:
            outcome = await orchestrator.redact_scan(text)
        renderer.scan(outcome)

    elif args.command == "ssrf":
        renderer.scan(await orchestrator.ssrf_check(args.url))

    elif args.command == "settle":
        meta = TransactionMeta(
            amount=args.value,
            currency=args.currency,
            recipient_address=args.recipient,
            service_description=args.service,
            reputation_score=args.reputation,
            sender_address=args.sender,
        )
        renderer.scan(await orchestrator.settle(meta))

    elif args.command == "ticket":
        if args.generate:
            ticket = await orchestrator.generate_ticket(
                args.agent,
                args.level,
                validity_s=args.validity,
                max_op_value=args.max_op_value,
                kill_switch_active=True if args.kill_switch else None,
            )
        elif args.decode:
            ticket = await orchestrator.decode_ticket(args.decode)
        elif args.validate:
            ticket = await orchestrator.validate_ticket(args.validate)
        else:
            renderer.ticket_usage()
            renderer.footer()
            return 0
        renderer.ticket(ticket)

    renderer.footer()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, run one command, and return the process exit status.

    Raises:
        SystemExit: From argparse on bad arguments, or load_config() on bad config.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    renderer = ReportRenderer()

    if args.command is None:
        renderer.banner()
        parser.print_help()
        renderer.quick_start()
        return 0

    set_scan_id(generate_ulid())
    try:
        config = load_config(args.config)
        if args.no_explain:
            config.explain.enabled = False
        configure_logging(
            log_level=args.log_level or config.logging.level,
            json_output=config.logging.json,
        )
        logger.debug("Command started", command=args.command, version=__version__)
        return asyncio.run(run_command(args, config, renderer))
    except KeyboardInterrupt:
        renderer.error("Interrupted")
        return 130
    except Exception as exc:
        logger.debug("Unhandled error", error_type=type(exc).__name__, error=str(exc), exc_info=True)
        renderer.error(f"Unexpected error: {exc}")
        return 1
    finally:
        clear_scan_id()
