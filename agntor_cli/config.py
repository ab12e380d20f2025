"""Config loading for agntor-cli.

Reads `.agntor/config.yaml` (or `~/.agntor/config.yaml`).
Raises SystemExit on parse errors, a missing `version` field or invalid values.
If no config file is found, returns default values (safe to run without config).

Config search order:
  1. `config_path` argument (the --config flag, or tests)
  2. AGNTOR_CONFIG environment variable (if set)
  3. `.agntor/config.yaml` (working directory)
  4. `~/.agntor/config.yaml` (home directory)

Environment variable overrides:
  AGNTOR_SIGNING_KEY — overrides ticket.signing_key
  AGNTOR_LOG_LEVEL   — overrides logging.level
  AGNTOR_NO_EXPLAIN  — any non-empty value other than "0"/"false" disables explanations
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Any, NoReturn, Optional

import yaml

from agntor_cli.constants import (
    DEMO_SIGNING_KEY,
    EXPLAIN_COMMAND,
    EXPLAIN_MAX_OUTPUT_BYTES,
    EXPLAIN_PROBE_ARGS,
    EXPLAIN_PROBE_MARKER,
    EXPLAIN_PROBE_TIMEOUT_S,
    EXPLAIN_TIMEOUT_S,
    INPUT_HARD_CAP,
    TICKET_ALGORITHM,
    TICKET_DEFAULT_VALIDITY_S,
    TICKET_ISSUER,
)
from agntor_cli.scanner.definitions import (
    DEFAULT_INJECTION_PATTERNS,
    DEFAULT_REDACTION_PATTERNS,
    PatternEntry,
    compile_extra_patterns,
)
from agntor_cli.scanner.regex_engine import Policy
from agntor_cli.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Version constants ────────────────────────────────────────────────────────

SUPPORTED_CONFIG_VERSION = 1
SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

# ─── Validation sets ─────────────────────────────────────────────────────────

# HMAC algorithms only: tickets are signed and verified with one shared key.
VALID_TICKET_ALGORITHMS: frozenset[str] = frozenset({"HS256", "HS384", "HS512"})

VALID_LOG_LEVELS: frozenset[str] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

_FALSE_STRINGS = frozenset({"", "0", "false", "no", "off"})

# Default config search paths (AGNTOR_CONFIG env var prepended at runtime)
DEFAULT_CONFIG_PATHS = [
    ".agntor/config.yaml",
    os.path.expanduser("~/.agntor/config.yaml"),
]


def _fail(msg: str) -> NoReturn:
    print(f"CONFIG ERROR: {msg}", file=sys.stderr)
    raise SystemExit(1)


# ─── Dataclasses ─────────────────────────────────────────────────────────────


@dataclass
class TicketConfig:
    """Audit ticket signing configuration.

    signing_key:      HMAC secret. None means the built-in demo key.
    issuer:           Value of the ``iss`` claim on issued tickets.
    default_validity: Seconds between ``iat`` and ``exp``.
    algorithm:        JWT HMAC algorithm.
    """

    signing_key: Optional[str] = None
    issuer: str = TICKET_ISSUER
    default_validity: int = TICKET_DEFAULT_VALIDITY_S
    algorithm: str = TICKET_ALGORITHM

    @property
    def uses_demo_key(self) -> bool:
        return not self.signing_key

    @property
    def effective_signing_key(self) -> str:
        return self.signing_key or DEMO_SIGNING_KEY


@dataclass
class ExplainConfig:
    """External reasoning tool used for advisory explanations."""

    enabled: bool = True
    command: list[str] = field(default_factory=lambda: list(EXPLAIN_COMMAND))
    probe_args: list[str] = field(default_factory=lambda: list(EXPLAIN_PROBE_ARGS))
    marker: str = EXPLAIN_PROBE_MARKER
    probe_timeout_s: float = EXPLAIN_PROBE_TIMEOUT_S
    timeout_s: float = EXPLAIN_TIMEOUT_S
    max_output_bytes: int = EXPLAIN_MAX_OUTPUT_BYTES


@dataclass
class ScannerConfig:
    """Detection back end configuration.

    Extra patterns are compiled with re2 while the config loads, so a bad
    pattern fails at startup rather than mid-scan.
    """

    input_hard_cap: int = INPUT_HARD_CAP
    resolve_dns: bool = True
    extra_injection_patterns: tuple[PatternEntry, ...] = ()
    extra_redaction_patterns: tuple[PatternEntry, ...] = ()


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    json: bool = False


@dataclass
class Config:
    """Root configuration object populated from .agntor/config.yaml.

    All fields have safe defaults — the CLI runs without any config file.
    """

    version: int = SUPPORTED_CONFIG_VERSION
    ticket: TicketConfig = field(default_factory=TicketConfig)
    explain: ExplainConfig = field(default_factory=ExplainConfig)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    path: Optional[str] = None

    @classmethod
    def defaults(cls) -> "Config":
        """Return a fully-default Config (no file required)."""
        return cls()

    @classmethod
    def from_dict(cls, raw: dict, path: Optional[str] = None) -> "Config":
        """Construct Config from a parsed YAML dict.

        Merges user-supplied values onto defaults; unknown keys are silently ignored.

        Raises:
            SystemExit(1): On any invalid value.
        """
        # ── Ticket ────────────────────────────────────────────────────────────
        ticket_raw = _section(raw, "ticket")
        algorithm = str(ticket_raw.get("algorithm", TICKET_ALGORITHM)).upper()
        if algorithm not in VALID_TICKET_ALGORITHMS:
            _fail(
                f"Invalid ticket.algorithm: '{algorithm}'. "
                f"Supported values: {sorted(VALID_TICKET_ALGORITHMS)}."
            )
        default_validity = ticket_raw.get("default_validity", TICKET_DEFAULT_VALIDITY_S)
        if not isinstance(default_validity, int) or isinstance(default_validity, bool) or default_validity <= 0:
            _fail(f"ticket.default_validity must be a positive integer, got {default_validity!r}.")
        signing_key = ticket_raw.get("signing_key")
        if signing_key is not None and not isinstance(signing_key, str):
            _fail("ticket.signing_key must be a string.")
        ticket = TicketConfig(
            signing_key=signing_key or None,
            issuer=str(ticket_raw.get("issuer", TICKET_ISSUER)),
            default_validity=default_validity,
            algorithm=algorithm,
        )

        # ── Explain ───────────────────────────────────────────────────────────
        explain_raw = _section(raw, "explain")
        command = explain_raw.get("command", list(EXPLAIN_COMMAND))
        if not isinstance(command, list) or not command or not all(isinstance(c, str) for c in command):
            _fail("explain.command must be a non-empty list of strings.")
        probe_args = explain_raw.get("probe_args", list(EXPLAIN_PROBE_ARGS))
        if not isinstance(probe_args, list) or not all(isinstance(a, str) for a in probe_args):
            _fail("explain.probe_args must be a list of strings.")
        explain = ExplainConfig(
            enabled=bool(explain_raw.get("enabled", True)),
            command=command,
            probe_args=probe_args,
            marker=str(explain_raw.get("marker", EXPLAIN_PROBE_MARKER)),
            probe_timeout_s=_positive_number(explain_raw, "explain", "probe_timeout_s", EXPLAIN_PROBE_TIMEOUT_S),
            timeout_s=_positive_number(explain_raw, "explain", "timeout_s", EXPLAIN_TIMEOUT_S),
            max_output_bytes=int(_positive_number(
                explain_raw, "explain", "max_output_bytes", EXPLAIN_MAX_OUTPUT_BYTES
            )),
        )

        # ── Scanner ───────────────────────────────────────────────────────────
        scanner_raw = _section(raw, "scanner")
        try:
            extra_injection = compile_extra_patterns(
                scanner_raw.get("extra_injection_patterns") or [], "extra_injection_patterns"
            )
            extra_redaction = compile_extra_patterns(
                scanner_raw.get("extra_redaction_patterns") or [], "extra_redaction_patterns"
            )
        except (TypeError, ValueError) as exc:
            _fail(f"scanner.{exc}")
        scanner = ScannerConfig(
            input_hard_cap=int(_positive_number(scanner_raw, "scanner", "input_hard_cap", INPUT_HARD_CAP)),
            resolve_dns=bool(scanner_raw.get("resolve_dns", True)),
            extra_injection_patterns=extra_injection,
            extra_redaction_patterns=extra_redaction,
        )

        # ── Logging ───────────────────────────────────────────────────────────
        logging_raw = _section(raw, "logging")
        log_level = str(logging_raw.get("level", "WARNING")).upper()
        if log_level not in VALID_LOG_LEVELS:
            _fail(f"Invalid logging.level: '{log_level}'. Supported values: {sorted(VALID_LOG_LEVELS)}.")
        log_cfg = LoggingConfig(level=log_level, json=bool(logging_raw.get("json", False)))

        return cls(
            version=raw.get("version", SUPPORTED_CONFIG_VERSION),
            ticket=ticket,
            explain=explain,
            scanner=scanner,
            logging=log_cfg,
            path=path,
        )


def _section(raw: dict, name: str) -> dict:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        _fail(f"'{name}' must be a mapping.")
    return value


def _positive_number(section: dict, section_name: str, key: str, default: Any) -> Any:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        _fail(f"{section_name}.{key} must be a positive number, got {value!r}.")
    return value


# ─── Config loading ───────────────────────────────────────────────────────────


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate agntor-cli configuration.

    If no file is found at any search path, returns default Config (not an error).
    If a file is found but invalid, writes the error to stderr and raises SystemExit(1).
    Environment overrides are applied in both cases.

    Raises:
        SystemExit(1): On YAML parse error, missing or unsupported ``version``,
                       invalid section values, or an invalid ``AGNTOR_LOG_LEVEL``.
    """
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get("AGNTOR_CONFIG")
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    if found_path is None:
        logger.debug("No config file found — using defaults", searched=search_paths)
        config = Config.defaults()
        _apply_env_overrides(config)
        _warn_on_demo_key(config)
        return config

    logger.debug("Loading config", path=found_path)

    try:
        with open(found_path) as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        _fail(f"Failed to parse {found_path}: {exc}\nCheck the YAML syntax and try again.")
    except OSError as exc:
        _fail(f"Could not read {found_path}: {exc}")

    if not isinstance(raw, dict):
        if raw is None:
            _fail(
                f"{found_path} is missing the required 'version' field.\n"
                "Add 'version: 1' to the top of your config file."
            )
        _fail(
            f"{found_path} is not a valid YAML mapping.\n"
            "The config file must be a YAML dictionary at the top level."
        )

    version = raw.get("version")
    if version is None:
        _fail(
            f"{found_path} is missing the required 'version' field.\n"
            "Add 'version: 1' to the top of your config file."
        )
    if version not in SUPPORTED_VERSIONS:
        _fail(f"Unsupported config version: {version}. Supported versions: {sorted(SUPPORTED_VERSIONS)}.")

    config = Config.from_dict(raw, path=found_path)
    _apply_env_overrides(config)
    _warn_on_demo_key(config)

    logger.debug(
        "Config loaded",
        path=found_path,
        version=config.version,
        explain_enabled=config.explain.enabled,
        extra_patterns=len(config.scanner.extra_injection_patterns)
        + len(config.scanner.extra_redaction_patterns),
    )
    return config


def _apply_env_overrides(config: Config) -> None:
    """Apply environment variable overrides to a Config object in-place.

    Raises:
        SystemExit(1): If AGNTOR_LOG_LEVEL is set to an unknown level.
    """
    env_key = os.environ.get("AGNTOR_SIGNING_KEY")
    if env_key:
        config.ticket.signing_key = env_key

    env_level = os.environ.get("AGNTOR_LOG_LEVEL")
    if env_level:
        level = env_level.upper()
        if level not in VALID_LOG_LEVELS:
            _fail(f"AGNTOR_LOG_LEVEL is not a valid log level: '{env_level}'")
        config.logging.level = level

    env_no_explain = os.environ.get("AGNTOR_NO_EXPLAIN")
    if env_no_explain is not None and env_no_explain.strip().lower() not in _FALSE_STRINGS:
        config.explain.enabled = False


def _warn_on_demo_key(config: Config) -> None:
    if config.ticket.uses_demo_key:
        logger.warning(
            "No ticket signing key configured — using the built-in demo key. "
            "Tickets issued with it are NOT trustworthy. "
            "Set AGNTOR_SIGNING_KEY or ticket.signing_key."
        )


def build_policy(config: Config) -> Policy:
    """Default pattern sets plus any configured extras, in that order."""
    return Policy(
        injection_patterns=DEFAULT_INJECTION_PATTERNS + config.scanner.extra_injection_patterns,
        redaction_patterns=DEFAULT_REDACTION_PATTERNS + config.scanner.extra_redaction_patterns,
        input_hard_cap=config.scanner.input_hard_cap,
    )


