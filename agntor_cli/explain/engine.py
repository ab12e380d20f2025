"""Explanation engine — best-effort enrichment from an external reasoning tool.

Explainer is the capability the orchestrator depends on:
  - ExplanationEngine — production, shells out to the configured command
    (``gh copilot --`` by default).
  - NullExplainer     — always unavailable; used for --no-explain.

Failure semantics:
  - Neither method ever raises. Probe failure means unavailable; any call
    failure (spawn error, timeout, non-zero exit, oversized output) means "".
    Output past the cap is never buffered: the process is killed first.
  - Nothing is retried. The probe runs at most once per engine instance and
    one engine is built per command invocation.
  - Failures are logged at debug level only.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any, Callable, ContextManager, Optional, Protocol, runtime_checkable

from agntor_cli.constants import EXPLAIN_PROMPT_FLAG, EXPLAIN_READ_CHUNK_BYTES
from agntor_cli.explain.render import sanitize_output
from agntor_cli.utils.logger import PerformanceLogger, get_logger

if TYPE_CHECKING:
    from agntor_cli.config import ExplainConfig

logger = get_logger(__name__)

StatusFactory = Callable[[str], ContextManager[Any]]


async def _kill(proc: Any) -> None:
    with contextlib.suppress(ProcessLookupError):
        proc.kill()
    await proc.wait()


@runtime_checkable
class Explainer(Protocol):
    """Prompt in, sanitized text (possibly empty) out."""

    async def is_available(self) -> bool:
        ...

    async def explain(self, prompt: str) -> str:
        ...


class NullExplainer:
    """Explainer that is never available."""

    async def is_available(self) -> bool:
        return False

    async def explain(self, prompt: str) -> str:
        return ""


class ExplanationEngine:
    """Subprocess-backed Explainer.

    Args:
        config: Command, probe arguments and marker, timeouts and output cap.
        status: Optional factory for a context manager shown while an
                explanation call runs (e.g. a terminal spinner).
    """

    def __init__(self, config: "ExplainConfig", status: Optional[StatusFactory] = None) -> None:
        self._config = config
        self._status = status
        self._available: Optional[bool] = None

    async def _run(self, args: list[str], timeout: float) -> Optional[str]:
        """Run the tool once. Returns decoded stdout, or None on any failure."""
        argv = [*self._config.command, *args]
        try:
            # stderr is discarded so an unread pipe cannot stall the tool.
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            logger.debug("Reasoning tool could not be started", command=argv[0], error=str(exc))
            return None

        try:
            stdout = await asyncio.wait_for(self._collect(proc), timeout=timeout)
        except asyncio.TimeoutError:
            logger.debug("Reasoning tool timed out", command=argv[0], timeout_s=timeout)
            await _kill(proc)
            return None

        if stdout is None:
            return None
        if proc.returncode != 0:
            logger.debug("Reasoning tool exited non-zero", command=argv[0], returncode=proc.returncode)
            return None
        return stdout.decode("utf-8", errors="replace")

    async def _collect(self, proc: Any) -> Optional[bytes]:
        """Read stdout up to the cap, then wait for exit. None if the cap is exceeded."""
        cap = self._config.max_output_bytes
        buffer = bytearray()
        while len(buffer) <= cap:
            chunk = await proc.stdout.read(min(EXPLAIN_READ_CHUNK_BYTES, cap + 1 - len(buffer)))
            if not chunk:
                break
            buffer.extend(chunk)
        if len(buffer) > cap:
            logger.debug("Reasoning tool output over cap", cap=cap)
            await _kill(proc)
            return None
        await proc.wait()
        return bytes(buffer)

    async def is_available(self) -> bool:
        """Probe once; the answer is cached for the lifetime of this engine."""
        if self._available is None:
            if not self._config.enabled:
                self._available = False
            else:
                with PerformanceLogger("explain_probe", logger):
                    output = await self._run(list(self._config.probe_args), self._config.probe_timeout_s)
                self._available = output is not None and self._config.marker in output
            logger.debug("Reasoning tool availability", available=self._available)
        return self._available

    async def explain(self, prompt: str) -> str:
        if not await self.is_available():
            return ""
        status = self._status("Asking the reasoning tool...") if self._status else contextlib.nullcontext()
        with status, PerformanceLogger("explain_call", logger):
            output = await self._run([EXPLAIN_PROMPT_FLAG, prompt], self._config.timeout_s)
        return sanitize_output(output) if output else ""
