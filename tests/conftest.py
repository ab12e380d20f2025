"""Root test configuration for agntor-cli.

Clears AGNTOR_* environment variables for every test so a developer's shell
(or a config file in their home directory) never leaks into assertions, and
provides shared builders for config, adapters and stub explainers.
"""

from __future__ import annotations

import time
from typing import Iterator, Optional

import pytest

from agntor_cli.adapters.fake import FakeTrustAdapter
from agntor_cli.adapters.local import LocalTrustAdapter
from agntor_cli.config import TicketConfig
from agntor_cli.scanner.regex_engine import DEFAULT_POLICY
from agntor_cli.tickets.issuer import TicketIssuer
from agntor_cli.tickets.lifecycle import TicketLifecycle
from agntor_cli.utils.logger import configure_logging

TEST_SIGNING_KEY = "test-signing-key-0123456789abcdef0123456789"
OTHER_SIGNING_KEY = "other-signing-key-0123456789abcdef012345678"


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    """Strip AGNTOR_* env vars and run from an empty directory with an empty HOME."""
    for name in ("AGNTOR_CONFIG", "AGNTOR_SIGNING_KEY", "AGNTOR_LOG_LEVEL", "AGNTOR_NO_EXPLAIN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        "agntor_cli.config.DEFAULT_CONFIG_PATHS",
        [".agntor/config.yaml", str(tmp_path / "home" / ".agntor" / "config.yaml")],
    )
    yield
    # main() rebinds the log stream; point it back at the session stderr.
    configure_logging()


class StubExplainer:
    """Explainer double: fixed availability, canned reply, records prompts."""

    def __init__(self, available: bool = True, reply: str = "explained", raises: bool = False) -> None:
        self.available = available
        self.reply = reply
        self.raises = raises
        self.prompts: list[str] = []
        self.probes = 0

    async def is_available(self) -> bool:
        self.probes += 1
        return self.available

    async def explain(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.raises:
            raise RuntimeError("reasoning tool exploded")
        return self.reply if self.available else ""


@pytest.fixture
def ticket_config() -> TicketConfig:
    return TicketConfig(signing_key=TEST_SIGNING_KEY)


@pytest.fixture
def issuer() -> TicketIssuer:
    return TicketIssuer(TEST_SIGNING_KEY)


@pytest.fixture
def local_adapter(issuer: TicketIssuer) -> LocalTrustAdapter:
    return LocalTrustAdapter(issuer=issuer, policy=DEFAULT_POLICY, resolve_dns=False)


@pytest.fixture
def fake_adapter() -> FakeTrustAdapter:
    return FakeTrustAdapter(
        guard_triggers={"ignore previous instructions": "instruction-override"},
        redact_triggers={"AKIA1234567890ABCDEF": "aws-access-key"},
        blocked_urls={"http://169.254.169.254/latest": "Blocked non-public address 169.254.169.254"},
    )


def make_lifecycle(adapter, config: TicketConfig, now: Optional[float] = None) -> TicketLifecycle:
    """Lifecycle whose clock is pinned to ``now`` (default: real time)."""
    if now is None:
        return TicketLifecycle(adapter, config)
    return TicketLifecycle(adapter, config, clock=lambda: now)


@pytest.fixture
def lifecycle(local_adapter: LocalTrustAdapter, ticket_config: TicketConfig) -> TicketLifecycle:
    return make_lifecycle(local_adapter, ticket_config)


@pytest.fixture
def two_hours_ago() -> float:
    return time.time() - 7200


@pytest.fixture
def stub_explainer() -> type[StubExplainer]:
    """The StubExplainer class, for tests that need several configurations."""
    return StubExplainer


@pytest.fixture
def lifecycle_at():
    """Factory: ``lifecycle_at(adapter, config, now)`` with a pinned clock."""
    return make_lifecycle


@pytest.fixture
def signing_key() -> str:
    return TEST_SIGNING_KEY


@pytest.fixture
def other_signing_key() -> str:
    return OTHER_SIGNING_KEY
