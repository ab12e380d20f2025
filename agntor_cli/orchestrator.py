"""Scan orchestrator — sequences adapter calls into one report per command.

Full scan order is fixed:
  1. injection guard (always)
  2. redaction (always)
  3. URL extraction from the raw text, then one validation per URL, in order
  4. enrichment, only when the explainer is available

Per-URL failures are isolated: an SsrfError on one URL is recorded as that
URL's outcome and the remaining URLs are still validated. Anything other
than SsrfError is unexpected and propagates to the caller.

``ThreatReport.overall`` is derived from findings only. Redaction findings
are PASS-classified and never flip it to BLOCK; explanations are attached
to the outcome and never to the report.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from agntor_cli.adapters.protocol import SsrfError, TrustAdapter
from agntor_cli.explain import prompts
from agntor_cli.explain.engine import Explainer
from agntor_cli.models.scan import (
    Classification,
    Explanation,
    Finding,
    FindingKind,
    GuardResult,
    RedactResult,
    ScanOutcome,
    SettlementResult,
    ThreatReport,
    TransactionMeta,
    UrlCheck,
)
from agntor_cli.models.ticket import AuditLevel, AuditTicketClaims, TicketOutcome, TicketValidationOutcome
from agntor_cli.scanner.regex_engine import Policy
from agntor_cli.scanner.ssrf import extract_urls
from agntor_cli.utils.logger import PerformanceLogger, get_logger

if TYPE_CHECKING:
    from agntor_cli.tickets.lifecycle import TicketLifecycle

logger = get_logger(__name__)

DECODE_FAILED_MESSAGE = "Failed to decode ticket. Invalid JWT format."

# Explanation titles
WHY_BLOCKED = "Why This Was Blocked"
SECRET_ANALYSIS = "Secret Analysis"
TICKET_ANALYSIS = "Ticket Analysis"
RISK_EXPLANATION = "Risk Explanation"
SSRF_EXPLANATION = "SSRF Explanation"
THREAT_ASSESSMENT = "Threat Assessment"


# ─── Finding builders ───────────────────────────────────────────────────────


def _guard_findings(result: GuardResult) -> list[Finding]:
    if result.classification != Classification.BLOCK:
        return []
    return [Finding(
        kind=FindingKind.INJECTION,
        classification=Classification.BLOCK,
        labels=result.violation_types,
    )]


def _redaction_findings(result: RedactResult) -> list[Finding]:
    return [
        Finding(
            kind=FindingKind.SECRET,
            classification=Classification.PASS,
            labels=(f.type,),
            span=f.span,
        )
        for f in result.findings
    ]


def _ssrf_findings(checks: tuple[UrlCheck, ...]) -> list[Finding]:
    return [
        Finding(
            kind=FindingKind.SSRF,
            classification=Classification.BLOCK,
            subject=c.url,
            detail=c.reason,
        )
        for c in checks
        if not c.safe
    ]


def _settlement_findings(result: SettlementResult) -> list[Finding]:
    if result.classification != Classification.BLOCK and not result.risk_factors:
        return []
    return [Finding(
        kind=FindingKind.SETTLEMENT_RISK,
        classification=result.classification,
        labels=result.risk_factors,
        score=result.risk_score,
        detail=result.reasoning or None,
    )]


class ScanOrchestrator:
    """Runs one command's checks and hands back a renderable outcome.

    Args:
        adapter:   Detection and ticket primitives.
        explainer: Advisory explanation source (NullExplainer when disabled).
        policy:    Pattern sets, fixed for the process lifetime.
        tickets:   Ticket lifecycle bound to the same adapter.
    """

    def __init__(
        self,
        adapter: TrustAdapter,
        explainer: Explainer,
        policy: Policy,
        tickets: "TicketLifecycle",
    ) -> None:
        self._adapter = adapter
        self._explainer = explainer
        self._policy = policy
        self._tickets = tickets

    # ── Enrichment ─────────────────────────────────────────────────────────

    async def _enrich(self, requests: list[tuple[str, str]]) -> tuple[bool, tuple[Explanation, ...]]:
        """Ask for one explanation per (title, prompt). Empty answers are dropped.

        Never raises: an explainer failure only costs that explanation.
        """
        try:
            available = await self._explainer.is_available()
        except Exception as exc:  # noqa: BLE001
            logger.debug("Explainer probe failed", error=str(exc), exc_info=True)
            return False, ()
        if not available:
            return False, ()

        explanations: list[Explanation] = []
        for title, prompt in requests:
            try:
                text = await self._explainer.explain(prompt)
            except Exception as exc:  # noqa: BLE001
                logger.debug("Explanation failed", title=title, error=str(exc), exc_info=True)
                continue
            if text:
                explanations.append(Explanation(title=title, text=text))
        return True, tuple(explanations)

    # ── Steps ──────────────────────────────────────────────────────────────

    async def _guard(self, text: str) -> GuardResult:
        with PerformanceLogger("guard", logger):
            return await self._adapter.guard(text, self._policy)

    def _redact(self, text: str) -> RedactResult:
        with PerformanceLogger("redact", logger):
            return self._adapter.redact(text, self._policy)

    async def _check_url(self, url: str) -> UrlCheck:
        with PerformanceLogger("validate_url", logger):
            try:
                await self._adapter.validate_url(url)
            except SsrfError as exc:
                logger.info("URL blocked", url=url, reason=exc.reason)
                return UrlCheck(url=url, safe=False, reason=exc.reason)
        return UrlCheck(url=url, safe=True)

    async def _check_urls(self, urls: list[str]) -> tuple[UrlCheck, ...]:
        checks = []
        for url in urls:
            checks.append(await self._check_url(url))
        return tuple(checks)

    def _log_report(self, report: ThreatReport) -> None:
        logger.info(
            "Scan complete",
            command=report.command,
            overall=report.overall.value,
            findings=len(report.findings),
        )

    # ── Commands ───────────────────────────────────────────────────────────

    async def full_scan(self, text: str) -> ScanOutcome:
        """Guard, redact, then validate every URL in ``text``."""
        guard = await self._guard(text)
        redaction = self._redact(text)
        urls = extract_urls(text)
        url_checks = await self._check_urls(urls)

        report = ThreatReport(
            command="scan",
            findings=tuple(
                _guard_findings(guard) + _redaction_findings(redaction) + _ssrf_findings(url_checks)
            ),
            input_text=text,
            guard=guard,
            redaction=redaction,
            url_checks=url_checks,
        )
        self._log_report(report)

        requests: list[tuple[str, str]] = []
        if guard.classification == Classification.BLOCK:
            requests.append((WHY_BLOCKED, prompts.guard_prompt(text, guard)))
        if redaction.findings:
            requests.append((SECRET_ANALYSIS, prompts.redaction_prompt(redaction)))
        for check in url_checks:
            if not check.safe:
                requests.append((f"{SSRF_EXPLANATION}: {check.url}", prompts.ssrf_prompt(check)))
        requests.append((THREAT_ASSESSMENT, prompts.assessment_prompt(text, guard, redaction, url_checks)))

        available, explanations = await self._enrich(requests)
        return ScanOutcome(report=report, explanations=explanations, explainer_available=available)

    async def guard_scan(self, text: str) -> ScanOutcome:
        guard = await self._guard(text)
        report = ThreatReport(
            command="guard",
            findings=tuple(_guard_findings(guard)),
            input_text=text,
            guard=guard,
        )
        self._log_report(report)
        requests = []
        if guard.classification == Classification.BLOCK:
            requests.append((WHY_BLOCKED, prompts.guard_prompt(text, guard)))
        available, explanations = await self._enrich(requests)
        return ScanOutcome(report=report, explanations=explanations, explainer_available=available)

    async def redact_scan(self, text: str) -> ScanOutcome:
        redaction = self._redact(text)
        report = ThreatReport(
            command="redact",
            findings=tuple(_redaction_findings(redaction)),
            input_text=text,
            redaction=redaction,
        )
        self._log_report(report)
        requests = []
        if redaction.findings:
            requests.append((SECRET_ANALYSIS, prompts.redaction_prompt(redaction)))
        available, explanations = await self._enrich(requests)
        return ScanOutcome(report=report, explanations=explanations, explainer_available=available)

    async def ssrf_check(self, url: str) -> ScanOutcome:
        check = await self._check_url(url)
        report = ThreatReport(
            command="ssrf",
            findings=tuple(_ssrf_findings((check,))),
            input_text=url,
            url_checks=(check,),
        )
        self._log_report(report)
        available, explanations = await self._enrich([(SSRF_EXPLANATION, prompts.ssrf_prompt(check))])
        return ScanOutcome(report=report, explanations=explanations, explainer_available=available)

    async def settle(self, meta: TransactionMeta) -> ScanOutcome:
        with PerformanceLogger("settlement_guard", logger):
            result = await self._adapter.settlement_guard(meta)
        report = ThreatReport(
            command="settle",
            findings=tuple(_settlement_findings(result)),
            settlement=result,
            transaction=meta,
        )
        self._log_report(report)
        prompt = prompts.settlement_prompt(
            meta.to_dict(),
            result.risk_score,
            result.risk_factors,
            result.classification.value,
        )
        available, explanations = await self._enrich([(RISK_EXPLANATION, prompt)])
        return ScanOutcome(report=report, explanations=explanations, explainer_available=available)

    # ── Tickets ────────────────────────────────────────────────────────────

    async def _ticket_explanations(
        self,
        claims: Optional[AuditTicketClaims],
        validation: Optional[TicketValidationOutcome] = None,
    ) -> tuple[bool, tuple[Explanation, ...]]:
        requests = []
        if claims is not None:
            validity = None
            if validation is not None:
                validity = "valid" if validation.valid else f"invalid ({validation.error_code.value})"
            requests.append((TICKET_ANALYSIS, prompts.ticket_prompt(claims.to_payload(), validity)))
        return await self._enrich(requests)

    async def generate_ticket(
        self,
        agent_id: str,
        level: AuditLevel,
        validity_s: Optional[int] = None,
        **constraint_overrides: Any,
    ) -> TicketOutcome:
        with PerformanceLogger("generate_ticket", logger):
            token, claims = self._tickets.generate(agent_id, level, validity_s, **constraint_overrides)
        available, explanations = await self._ticket_explanations(claims)
        return TicketOutcome(
            action="generate",
            token=token,
            claims=claims,
            explanations=explanations,
            explainer_available=available,
        )

    async def decode_ticket(self, token: str) -> TicketOutcome:
        claims = self._tickets.decode(token)
        available, explanations = await self._ticket_explanations(claims)
        return TicketOutcome(
            action="decode",
            token=token,
            claims=claims,
            explanations=explanations,
            explainer_available=available,
            error=None if claims is not None else DECODE_FAILED_MESSAGE,
        )

    async def validate_ticket(self, token: str) -> TicketOutcome:
        with PerformanceLogger("validate_ticket", logger):
            validation, claims = self._tickets.inspect(token)
        available, explanations = await self._ticket_explanations(claims, validation)
        return TicketOutcome(
            action="validate",
            token=token,
            claims=claims,
            validation=validation,
            explanations=explanations,
            explainer_available=available,
        )
