"""Unit tests for agntor_cli/config.py: file loading, validation and env overrides.

Covers:
  - Missing config file → Config.defaults(), no exception
  - Missing / unsupported 'version' → SystemExit(1) with CONFIG ERROR on stderr
  - Invalid YAML → SystemExit(1)
  - Search order: explicit path, AGNTOR_CONFIG, working directory
  - Section validation (ticket, explain, scanner, logging)
  - AGNTOR_SIGNING_KEY / AGNTOR_LOG_LEVEL / AGNTOR_NO_EXPLAIN overrides
  - Demo signing key warning
  - build_policy() appends configured extra patterns after the defaults
"""

from __future__ import annotations

import os
from typing import Any

import pytest
from structlog.testing import capture_logs

from agntor_cli.config import (
    SUPPORTED_VERSIONS,
    Config,
    ExplainConfig,
    TicketConfig,
    build_policy,
    load_config,
)
from agntor_cli.constants import DEMO_SIGNING_KEY, EXPLAIN_COMMAND, INPUT_HARD_CAP
from agntor_cli.scanner.definitions import DEFAULT_INJECTION_PATTERNS, DEFAULT_REDACTION_PATTERNS


def _write(tmp_path: Any, body: str) -> str:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(body)
    return str(config_file)


# ─── Missing config file ─────────────────────────────────────────────────────


class TestMissingConfigFile:
    """A missing config file is NOT an error — defaults are returned."""

    def test_nonexistent_path_returns_defaults(self) -> None:
        config = load_config(config_path="/nonexistent/path/to/config.yaml")
        assert isinstance(config, Config)
        assert config.version == 1
        assert config.path is None

    def test_defaults(self) -> None:
        config = load_config()
        assert config.ticket.algorithm == "HS256"
        assert config.ticket.default_validity == 3600
        assert config.explain.enabled is True
        assert config.explain.command == list(EXPLAIN_COMMAND)
        assert config.scanner.input_hard_cap == INPUT_HARD_CAP
        assert config.scanner.resolve_dns is True
        assert config.logging.level == "WARNING"

    def test_supported_versions_constant(self) -> None:
        assert 1 in SUPPORTED_VERSIONS


# ─── Version field ───────────────────────────────────────────────────────────


class TestVersionField:
    def test_missing_version_raises_system_exit(
        self, tmp_path: Any, capsys: pytest.CaptureFixture
    ) -> None:
        path = _write(tmp_path, "ticket:\n  issuer: me\n")
        with pytest.raises(SystemExit) as exc_info:
            load_config(config_path=path)
        assert exc_info.value.code == 1
        captured = capsys.readouterr()
        assert "CONFIG ERROR" in captured.err
        assert "version" in captured.err.lower()

    def test_empty_file_raises_system_exit(self, tmp_path: Any) -> None:
        with pytest.raises(SystemExit) as exc_info:
            load_config(config_path=_write(tmp_path, ""))
        assert exc_info.value.code == 1

    @pytest.mark.parametrize("version", [0, 2, 99])
    def test_unsupported_version(self, tmp_path: Any, capsys: pytest.CaptureFixture, version: int) -> None:
        with pytest.raises(SystemExit):
            load_config(config_path=_write(tmp_path, f"version: {version}\n"))
        captured = capsys.readouterr()
        assert f"Unsupported config version: {version}" in captured.err

    def test_top_level_list_rejected(self, tmp_path: Any, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit):
            load_config(config_path=_write(tmp_path, "- version\n- 1\n"))
        assert "not a valid YAML mapping" in capsys.readouterr().err


# ─── YAML errors ─────────────────────────────────────────────────────────────


class TestInvalidYaml:
    def test_parse_error(self, tmp_path: Any, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit) as exc_info:
            load_config(config_path=_write(tmp_path, "version: 1\nticket: [unclosed\n"))
        assert exc_info.value.code == 1
        assert "Failed to parse" in capsys.readouterr().err


# ─── Search order ────────────────────────────────────────────────────────────


class TestSearchOrder:
    def test_working_directory_config_found(self, tmp_path: Any) -> None:
        (tmp_path / ".agntor").mkdir()
        (tmp_path / ".agntor" / "config.yaml").write_text("version: 1\nticket:\n  issuer: cwd-issuer\n")
        config = load_config()
        assert config.ticket.issuer == "cwd-issuer"
        assert config.path is not None

    def test_env_config_used(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write(tmp_path, "version: 1\nticket:\n  issuer: env-issuer\n")
        monkeypatch.setenv("AGNTOR_CONFIG", path)
        assert load_config().ticket.issuer == "env-issuer"

    def test_explicit_path_beats_env(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        env_file = tmp_path / "env.yaml"
        env_file.write_text("version: 1\nticket:\n  issuer: env-issuer\n")
        monkeypatch.setenv("AGNTOR_CONFIG", str(env_file))
        path = _write(tmp_path, "version: 1\nticket:\n  issuer: flag-issuer\n")
        assert load_config(config_path=path).ticket.issuer == "flag-issuer"


# ─── Section validation ──────────────────────────────────────────────────────


class TestSections:
    def test_full_file(self, tmp_path: Any) -> None:
        path = _write(tmp_path, (
            "version: 1\n"
            "ticket:\n"
            "  signing_key: file-key-0123456789abcdef0123456789ab\n"
            "  issuer: acme\n"
            "  default_validity: 600\n"
            "  algorithm: hs512\n"
            "explain:\n"
            "  enabled: false\n"
            "  command: [reasoner, \"--\"]\n"
            "  timeout_s: 5\n"
            "scanner:\n"
            "  input_hard_cap: 1024\n"
            "  resolve_dns: false\n"
            "logging:\n"
            "  level: debug\n"
            "  json: true\n"
        ))
        config = load_config(config_path=path)
        assert config.ticket == TicketConfig(
            signing_key="file-key-0123456789abcdef0123456789ab",
            issuer="acme",
            default_validity=600,
            algorithm="HS512",
        )
        assert config.explain.enabled is False
        assert config.explain.command == ["reasoner", "--"]
        assert config.explain.timeout_s == 5
        assert config.scanner.input_hard_cap == 1024
        assert config.scanner.resolve_dns is False
        assert config.logging.level == "DEBUG"
        assert config.logging.json is True

    @pytest.mark.parametrize(
        "body,fragment",
        [
            ("ticket:\n  algorithm: RS256\n", "ticket.algorithm"),
            ("ticket:\n  default_validity: -5\n", "ticket.default_validity"),
            ("ticket:\n  signing_key: [1, 2]\n", "ticket.signing_key"),
            ("explain:\n  command: []\n", "explain.command"),
            ("explain:\n  timeout_s: 0\n", "explain.timeout_s"),
            ("scanner:\n  input_hard_cap: lots\n", "scanner.input_hard_cap"),
            ("logging:\n  level: LOUD\n", "logging.level"),
            ("ticket: nope\n", "'ticket' must be a mapping"),
        ],
    )
    def test_invalid_values_rejected(
        self, tmp_path: Any, capsys: pytest.CaptureFixture, body: str, fragment: str
    ) -> None:
        with pytest.raises(SystemExit):
            load_config(config_path=_write(tmp_path, "version: 1\n" + body))
        assert fragment in capsys.readouterr().err

    def test_extra_patterns_compiled(self, tmp_path: Any) -> None:
        path = _write(tmp_path, (
            "version: 1\n"
            "scanner:\n"
            "  extra_injection_patterns:\n"
            "    - pattern: '(?i)wire the money'\n"
            "      label: custom-transfer\n"
            "  extra_redaction_patterns:\n"
            "    - pattern: 'ACME-[0-9]{6}'\n"
            "      label: acme-id\n"
        ))
        config = load_config(config_path=path)
        (injection,) = config.scanner.extra_injection_patterns
        assert injection.label == "custom-transfer"
        assert injection.pattern.search("please WIRE THE MONEY")

        policy = build_policy(config)
        assert policy.injection_patterns[: len(DEFAULT_INJECTION_PATTERNS)] == DEFAULT_INJECTION_PATTERNS
        assert policy.injection_patterns[-1].label == "custom-transfer"
        assert policy.redaction_patterns[-1].label == "acme-id"
        assert len(policy.redaction_patterns) == len(DEFAULT_REDACTION_PATTERNS) + 1

    def test_bad_extra_pattern_fails_at_load(self, tmp_path: Any, capsys: pytest.CaptureFixture) -> None:
        path = _write(tmp_path, (
            "version: 1\n"
            "scanner:\n"
            "  extra_redaction_patterns:\n"
            "    - pattern: '(a)\\1'\n"
            "      label: backref\n"
        ))
        with pytest.raises(SystemExit):
            load_config(config_path=path)
        assert "not a valid re2 pattern" in capsys.readouterr().err

    def test_build_policy_uses_input_cap(self) -> None:
        config = Config.defaults()
        config.scanner.input_hard_cap = 99
        assert build_policy(config).input_hard_cap == 99


# ─── Environment overrides ───────────────────────────────────────────────────


class TestEnvOverrides:
    def test_signing_key_override(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write(tmp_path, "version: 1\nticket:\n  signing_key: from-file-0123456789abcdef0123456\n")
        monkeypatch.setenv("AGNTOR_SIGNING_KEY", "from-env-0123456789abcdef01234567")
        config = load_config(config_path=path)
        assert config.ticket.signing_key == "from-env-0123456789abcdef01234567"

    def test_log_level_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AGNTOR_LOG_LEVEL", "info")
        assert load_config().logging.level == "INFO"

    def test_invalid_log_level_override(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ) -> None:
        monkeypatch.setenv("AGNTOR_LOG_LEVEL", "chatty")
        with pytest.raises(SystemExit):
            load_config()
        assert "AGNTOR_LOG_LEVEL" in capsys.readouterr().err

    @pytest.mark.parametrize("value,enabled", [("1", False), ("yes", False), ("0", True), ("false", True)])
    def test_no_explain_override(self, monkeypatch: pytest.MonkeyPatch, value: str, enabled: bool) -> None:
        monkeypatch.setenv("AGNTOR_NO_EXPLAIN", value)
        assert load_config().explain.enabled is enabled


# ─── Signing key ─────────────────────────────────────────────────────────────


class TestSigningKey:
    def test_demo_key_used_and_warned(self) -> None:
        with capture_logs() as logs:
            config = load_config()
        assert config.ticket.uses_demo_key
        assert config.ticket.effective_signing_key == DEMO_SIGNING_KEY
        assert any(
            entry["log_level"] == "warning" and "demo key" in entry["event"] for entry in logs
        )

    def test_configured_key_no_warning(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AGNTOR_SIGNING_KEY", "real-key-0123456789abcdef0123456789")
        with capture_logs() as logs:
            config = load_config()
        assert not config.ticket.uses_demo_key
        assert not any(entry["log_level"] == "warning" for entry in logs)

    def test_empty_key_in_file_means_demo(self, tmp_path: Any) -> None:
        config = load_config(config_path=_write(tmp_path, "version: 1\nticket:\n  signing_key: ''\n"))
        assert config.ticket.signing_key is None
        assert config.ticket.uses_demo_key


def test_explain_config_defaults_are_independent() -> None:
    first, second = ExplainConfig(), ExplainConfig()
    first.command.append("extra")
    assert second.command == list(EXPLAIN_COMMAND)
    assert "AGNTOR_CONFIG" not in os.environ
