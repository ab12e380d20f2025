"""Pattern definitions for the guard and redaction scanners.

All patterns are pre-compiled at module load time using google-re2.
NO pattern compilation happens per-call or lazily.

IMPORT RULES:
  - ``import re2`` ONLY — ``import re`` is PROHIBITED in this file and any
    agntor_cli/scanner/ file (enforced by tests/unit/test_definitions.py).
"""

from __future__ import annotations

import re2  # noqa: F401 — google-re2. NEVER: import re

from dataclasses import dataclass
from typing import Any


# ---------------------------------------------------------------------------
# PatternEntry dataclass
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PatternEntry:
    """A single compiled pattern with metadata.

    Fields:
        pattern: Pre-compiled re2 pattern object.
        label:   Violation type (injection) or finding type (redaction) reported
                 when this pattern matches. Several entries may share a label.
        slug:    Kebab-case identifier unique to this entry.
    """
    pattern: Any           # re2._Regexp — pre-compiled at module load
    label: str
    slug: str


def _entry(regex: str, label: str, slug: str) -> PatternEntry:
    return PatternEntry(pattern=re2.compile(regex), label=label, slug=slug)


# ===========================================================================
# INJECTION PATTERNS
# All patterns use (?i) for case-insensitivity
# ===========================================================================

INSTRUCTION_OVERRIDE = "instruction-override"
ROLE_HIJACK = "role-hijack"
JAILBREAK_MODE = "jailbreak-mode"
SAFETY_BYPASS = "safety-bypass"
PROMPT_EXTRACTION = "prompt-extraction"
SECRET_EXFILTRATION = "secret-exfiltration"
INJECTED_INSTRUCTION_BLOCK = "injected-instruction-block"
ENCODED_PAYLOAD = "encoded-payload"
UNAUTHORIZED_TRANSFER = "unauthorized-transfer"

DEFAULT_INJECTION_PATTERNS: tuple[PatternEntry, ...] = (
    # ─── Instruction override ───────────────────────────────────────────────
    _entry(r'(?i)ignore (all |any )?(the )?(previous|prior|above|earlier) (instructions|prompts|rules)',
           INSTRUCTION_OVERRIDE, "ignore-previous-instructions"),
    _entry(r'(?i)disregard (your |all |the )?(system prompt|previous instructions|all instructions|rules)',
           INSTRUCTION_OVERRIDE, "disregard-instructions"),
    _entry(r'(?i)forget (your|all|the|any) (system prompt|instructions|rules|guidelines)',
           INSTRUCTION_OVERRIDE, "forget-system-prompt"),
    _entry(r'(?i)forget everything (you|i|we) (have been told|have said|said|told)',
           INSTRUCTION_OVERRIDE, "forget-everything"),
    _entry(r'(?i)your new (instructions|directive|purpose|role) (are|is)',
           INSTRUCTION_OVERRIDE, "new-instructions-override"),
    _entry(r'(?i)from now on (you will|you must|you shall|respond as)',
           INSTRUCTION_OVERRIDE, "from-now-on-directive"),
    # ─── Role hijack ────────────────────────────────────────────────────────
    _entry(r'(?i)\bact as (an? )?(root|admin|administrator|superuser|system)\b',
           ROLE_HIJACK, "act-as-privileged"),
    _entry(r'(?i)act as (an? )?(unrestricted|jailbroken|different) (ai|assistant|model|llm|agent)',
           ROLE_HIJACK, "act-as-unrestricted"),
    _entry(r'(?i)you are (an? )?(evil|malicious|harmful|unrestricted) (ai|assistant|bot|agent)',
           ROLE_HIJACK, "evil-ai-role-assignment"),
    _entry(r'(?i)you are no longer (bound by|restricted by|limited to)',
           ROLE_HIJACK, "no-longer-restricted"),
    # ─── Jailbreak modes ────────────────────────────────────────────────────
    _entry(r'(?i)\bDAN\b.{0,50}(mode|activate|enable)', JAILBREAK_MODE, "dan-mode-activation"),
    _entry(r'(?i)\byou are now DAN\b', JAILBREAK_MODE, "you-are-now-dan"),
    _entry(r'(?i)do anything now', JAILBREAK_MODE, "do-anything-now"),
    _entry(r'(?i)enable (developer|god|admin|root|debug|jailbreak) mode', JAILBREAK_MODE, "enable-special-mode"),
    _entry(r'(?i)you are now (in )?(DAN|jailbreak|god|unrestricted|developer|admin) mode',
           JAILBREAK_MODE, "role-confusion-mode"),
    _entry(r'(?i)\bJAILBREAK\s*:', JAILBREAK_MODE, "jailbreak-label"),
    _entry(r'(?i)pretend (you|that) (are|have) no (restrictions|limits|guidelines)',
           JAILBREAK_MODE, "pretend-no-restrictions"),
    # ─── Safety bypass ──────────────────────────────────────────────────────
    _entry(r'(?i)(override|bypass|disable) (your )?(safety|content|ethical|security) (filters|guidelines|restrictions|checks)',
           SAFETY_BYPASS, "override-safety-filters"),
    # ─── Prompt extraction ──────────────────────────────────────────────────
    _entry(r'(?i)repeat (the|your) (system|base) prompt', PROMPT_EXTRACTION, "repeat-system-prompt"),
    _entry(r'(?i)(reveal|print|show|output) (me )?(your|the) (raw |full )?(system prompt|instructions)',
           PROMPT_EXTRACTION, "reveal-system-prompt"),
    _entry(r'(?i)what (is|was|are) (your|the) (system prompt|instructions)',
           PROMPT_EXTRACTION, "extract-system-prompt"),
    # ─── Secret exfiltration ────────────────────────────────────────────────
    _entry(r'(?i)(reveal|print|send|share|leak|output) (me )?(all )?(your |the )?(api keys?|private keys?|seed phrase|mnemonic|secrets|credentials)',
           SECRET_EXFILTRATION, "exfiltrate-secrets"),
    # ─── Injected instruction blocks ────────────────────────────────────────
    _entry(r'(?i)\[(?:NEW INSTRUCTIONS|SYSTEM UPDATE|ADMIN OVERRIDE|SYSTEM MESSAGE)\]',
           INJECTED_INSTRUCTION_BLOCK, "injected-instruction-block"),
    _entry(r'(?i)\b(SYSTEM OVERRIDE|SUDO MODE|PROMPT INJECTION)\s*:',
           INJECTED_INSTRUCTION_BLOCK, "override-label"),
    _entry(r'<\|im_start\|>\s*system', INJECTED_INSTRUCTION_BLOCK, "chatml-system-block"),
    # ─── Encoded payloads ───────────────────────────────────────────────────
    _entry(r'\batob\s*\(', ENCODED_PAYLOAD, "encoded-injection-atob"),
    _entry(r'(?i)(decode|base64).{0,20}(and|then) (execute|run|follow)', ENCODED_PAYLOAD, "decode-and-execute"),
    # ─── Unauthorized transfers ─────────────────────────────────────────────
    _entry(r'(?i)\b(send|transfer|move|drain|withdraw) (all |every |the )?(of )?(your |the |my )?(funds|tokens|assets|balance|eth|usdc|crypto|money)\b',
           UNAUTHORIZED_TRANSFER, "transfer-funds"),
    _entry(r'(?i)\b(to|into) (the )?(zero|burn|null) address\b', UNAUTHORIZED_TRANSFER, "zero-address-destination"),
    _entry(r'\b0x0{40}\b', UNAUTHORIZED_TRANSFER, "zero-address-literal"),
)


# ===========================================================================
# REDACTION PATTERNS
# Order matters only for overlap resolution (earliest start wins, then longest).
# ===========================================================================

DEFAULT_REDACTION_PATTERNS: tuple[PatternEntry, ...] = (
    # ─── Cloud / SaaS credentials ───────────────────────────────────────────
    _entry(r'\b(A3T[A-Z0-9]|AKIA|AGPA|AIDA|AROA|AIPA|ANPA|ANVA|ASIA)[A-Z0-9]{16}\b',
           "aws-access-key", "aws-access-key-id"),
    _entry(r'(?i)aws.{0,20}secret.{0,20}[=:]\s*[a-zA-Z0-9/+]{40}', "aws-secret-key", "aws-secret-access-key"),
    _entry(r'sk-ant-api03-[a-zA-Z0-9_-]{93}', "anthropic-api-key", "anthropic-api-key"),
    _entry(r'sk-proj-[a-zA-Z0-9_-]{50,}', "openai-api-key", "openai-project-key"),
    _entry(r'\bsk-[a-zA-Z0-9]{48}\b', "openai-api-key", "openai-api-key"),
    _entry(r'gh[pousr]_[a-zA-Z0-9]{36}', "github-token", "github-access-token"),
    _entry(r'github_pat_[a-zA-Z0-9]{22}_[a-zA-Z0-9]{59}', "github-token", "github-fine-grained-pat"),
    _entry(r'(sk|rk)_live_[a-zA-Z0-9]{24,}', "stripe-key", "stripe-live-key"),
    _entry(r'xox[baprs]-[0-9A-Za-z-]{10,}', "slack-token", "slack-token"),
    _entry(r'AIza[0-9A-Za-z_-]{35}', "google-api-key", "google-api-key"),
    _entry(r'\beyJ[a-zA-Z0-9_-]{10,}\.eyJ[a-zA-Z0-9_-]{10,}\.[a-zA-Z0-9_-]{10,}', "jwt", "json-web-token"),
    _entry(r'Bearer\s+[a-zA-Z0-9._\-+/=]{32,}', "bearer-token", "bearer-token"),
    # ─── Private keys ───────────────────────────────────────────────────────
    _entry(r'-----BEGIN (RSA |EC |DSA |OPENSSH |ENCRYPTED )?PRIVATE KEY-----', "private-key", "pem-private-key"),
    _entry(r'\b(0x)?[a-fA-F0-9]{64}\b', "crypto-private-key", "hex-private-key"),
    _entry(r'(?i)\b(seed phrase|mnemonic)\s*(is|[:=])\s*([a-z]+ ){11,23}[a-z]+', "seed-phrase", "bip39-mnemonic"),
    # ─── Passwords ──────────────────────────────────────────────────────────
    _entry(r'(?i)\b(password|passwd|pwd)\s*(is|[:=])\s*\S+', "password", "password-assignment"),
    # ─── PII ────────────────────────────────────────────────────────────────
    _entry(r'\b[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}\b', "email", "pii-email"),
    _entry(r'\b\d{3}-\d{2}-\d{4}\b', "ssn", "pii-us-ssn"),
    _entry(
        r'\b(?:4[0-9]{3}|5[1-5][0-9]{2}|6(?:011|5[0-9]{2}))(?:[-\s]?[0-9]{4}){3}\b'
        r'|\b3[47][0-9]{2}[-\s]?[0-9]{6}[-\s]?[0-9]{5}\b',
        "credit-card",
        "pii-credit-card",
    ),
    _entry(r'(?:\+1[-.\s]?)?\(?\b[2-9][0-9]{2}\)?[-.\s][2-9][0-9]{2}[-.\s][0-9]{4}\b', "phone-number", "pii-phone-us"),
)


def compile_extra_patterns(raw_entries: list[dict], kind: str) -> tuple[PatternEntry, ...]:
    """Compile user-supplied ``{pattern, label}`` entries from config.

    Raises:
        ValueError: If an entry is missing fields or its pattern is not valid re2.
    """
    compiled: list[PatternEntry] = []
    for i, raw in enumerate(raw_entries):
        if not isinstance(raw, dict) or not raw.get("pattern") or not raw.get("label"):
            raise ValueError(f"{kind}[{i}] must be a mapping with 'pattern' and 'label'")
        try:
            pattern = re2.compile(raw["pattern"])
        except re2.error as exc:
            raise ValueError(f"{kind}[{i}] is not a valid re2 pattern: {exc}") from exc
        compiled.append(PatternEntry(pattern=pattern, label=raw["label"], slug=f"custom-{kind}-{i}"))
    return tuple(compiled)
