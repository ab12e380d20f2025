"""Shared constants for agntor-cli.

All timeouts, caps and scoring thresholds used across modules are defined here.
No magic numbers in other modules — import from here.
"""

# ─── Scanner Size Constants ──────────────────────────────────────────────────

# Hard truncation cap applied to text before guard/redact scanning.
# Prevents pathological inputs from dominating scan time.
INPUT_HARD_CAP: int = 8_192  # 8,192 characters

# Fixed token that replaces every redacted span.
REDACTION_MASK: str = "[REDACTED]"

# ─── Explanation Subprocess ─────────────────────────────────────────────────

# Availability probe timeout. A probe slower than this counts as unavailable.
EXPLAIN_PROBE_TIMEOUT_S: float = 15.0

# Explanation call timeout. On expiry the explanation is empty — never retried.
EXPLAIN_TIMEOUT_S: float = 60.0

# Output cap for one explanation call. Larger output counts as a failed call.
EXPLAIN_MAX_OUTPUT_BYTES: int = 1_048_576  # 1 MiB

# Stdout read size. Reading stops one byte past the cap and the process is killed.
EXPLAIN_READ_CHUNK_BYTES: int = 65_536  # 64 KiB

# Default reasoning tool invocation and the marker its probe output must contain.
EXPLAIN_COMMAND: tuple[str, ...] = ("gh", "copilot", "--")
EXPLAIN_PROBE_ARGS: tuple[str, ...] = ("--version",)
EXPLAIN_PROBE_MARKER: str = "Copilot CLI"
EXPLAIN_PROMPT_FLAG: str = "-p"

# Trailing usage-statistics lines; output is cut at the earliest of these.
USAGE_MARKERS: tuple[str, ...] = ("\nTotal usage est:", "\nAPI time spent:")

# Prompt excerpt limits (characters of operator input embedded in prompts).
PROMPT_INPUT_EXCERPT: int = 200
PROMPT_SCAN_EXCERPT: int = 300

# ─── Audit Tickets ───────────────────────────────────────────────────────────

TICKET_ISSUER: str = "agntor-cli"
TICKET_DEFAULT_VALIDITY_S: int = 3600
TICKET_ALGORITHM: str = "HS256"

# Demo key used when no signing key is configured. A warning is logged on use.
DEMO_SIGNING_KEY: str = "agntor-cli-demo-signing-key-2026-not-for-production"

DEFAULT_ALLOWED_MCP_SERVERS: tuple[str, ...] = ("tools.agntor.com", "api.example.com")
DEFAULT_MAX_OPS_PER_HOUR: int = 100

# ─── Settlement Risk Scoring ─────────────────────────────────────────────────

# Score at or above which a transaction is classified block.
SETTLEMENT_BLOCK_THRESHOLD: float = 0.7

# Amounts (in transaction currency) that add risk.
SETTLEMENT_HIGH_VALUE: float = 1_000.0
SETTLEMENT_EXTREME_VALUE: float = 5_000.0

# Reputation bands (0.0–1.0).
SETTLEMENT_LOW_REPUTATION: float = 0.3
SETTLEMENT_MODERATE_REPUTATION: float = 0.6

# Per-factor weights. The summed score is capped at 1.0.
SETTLEMENT_WEIGHTS: dict[str, float] = {
    "burn-address-recipient": 0.7,
    "malformed-recipient-address": 0.3,
    "invalid-amount": 0.5,
    "high-value-transaction": 0.25,
    "extreme-value-transaction": 0.45,
    "low-recipient-reputation": 0.35,
    "moderate-recipient-reputation": 0.15,
    "unknown-recipient-reputation": 0.1,
    "missing-service-description": 0.1,
    "injection-in-service-description": 0.4,
}
