"""Browser controller that shells out to the agent-browser CLI.

agent-browser manages a persistent browser daemon; every call here is one
subprocess invocation against the same session.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, Optional, Sequence

from exceptions import BrowserNotFoundError, ObservationError, ScreenshotError
from test_types import Observation

DEFAULT_BINARY = "agent-browser"


@dataclass(frozen=True)
class CommandResult:
    """Output of a single agent-browser invocation."""

    stdout: str
    stderr: str
    success: bool


def check_agent_browser(binary: str = DEFAULT_BINARY) -> None:
    """Raise BrowserNotFoundError if the agent-browser CLI is not on PATH."""
    if shutil.which(binary) is None:
        raise BrowserNotFoundError(binary)


class AgentBrowser:
    """Async wrapper around agent-browser subcommands."""

    def __init__(
        self,
        binary: str = DEFAULT_BINARY,
        command_timeout: float = 30.0,
        snapshot_args: Sequence[str] = ("-i", "-c"),
        logger: Optional[logging.Logger] = None,
    ):
        self.binary = binary
        self.command_timeout = command_timeout
        self.snapshot_args = list(snapshot_args)
        self.logger = logger or logging.getLogger("agent_browser")

    async def run(self, args: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
        """
        Run an agent-browser command and return its output.

        Commands are passed as an argument list, e.g. ["open", "https://example.com"].
        Failures (non-zero exit, timeout, missing binary) are reported through
        ``success=False`` rather than raised.
        """
        timeout = timeout or self.command_timeout
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            return CommandResult(stdout="", stderr=str(e), success=False)

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            return CommandResult(
                stdout="",
                stderr=f"Command timed out after {timeout}s: {' '.join(args)}",
                success=False,
            )

        return CommandResult(
            stdout=stdout.decode("utf-8", errors="replace").strip(),
            stderr=stderr.decode("utf-8", errors="replace").strip(),
            success=proc.returncode == 0,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────────────

    async def open(self, url: str) -> CommandResult:
        """Open a URL in the browser."""
        return await self.run(["open", url])

    async def wait_for_network_idle(self) -> CommandResult:
        return await self.run(["wait", "--load", "networkidle"], timeout=self.command_timeout)

    async def close(self) -> CommandResult:
        """Close the browser session."""
        result = await self.run(["close"])
        if result.success:
            self.logger.info("Browser closed")
        else:
            self.logger.warning(f"Browser close failed: {result.stderr[:200]}")
        return result

    # ─────────────────────────────────────────────────────────────────────────
    # Page state
    # ─────────────────────────────────────────────────────────────────────────

    async def snapshot(self) -> str:
        """Accessibility snapshot of the current page."""
        result = await self.run(["snapshot", *self.snapshot_args])
        if not result.success:
            raise ObservationError(f"Snapshot failed: {result.stderr or 'no output'}", command="snapshot")
        return result.stdout

    async def get(self, what: Literal["url", "title"]) -> str:
        """Current page URL or title."""
        result = await self.run(["get", what])
        if not result.success:
            raise ObservationError(f"Reading page {what} failed: {result.stderr or 'no output'}", command=f"get {what}")
        return result.stdout

    async def capture_observation(self) -> Observation:
        """Capture a fresh snapshot/URL/title triple."""
        snapshot = await self.snapshot()
        url = await self.get("url")
        title = await self.get("title")
        return Observation(snapshot=snapshot, url=url, title=title)

    # ─────────────────────────────────────────────────────────────────────────
    # Screenshots
    # ─────────────────────────────────────────────────────────────────────────

    async def screenshot(self, filepath: Path, annotate: bool = False) -> CommandResult:
        args = ["screenshot", str(filepath)]
        if annotate:
            args.append("--annotate")
        return await self.run(args)

    async def take_step_screenshot(self, test_id: str, step_number: int, screenshots_dir: Path) -> Path:
        """Take a timestamped screenshot for a step and return the file path."""
        screenshots_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%f")
        filepath = screenshots_dir / f"{test_id}_step{step_number}_{timestamp}.png"
        result = await self.screenshot(filepath)
        if not result.success:
            raise ScreenshotError(f"Screenshot failed: {result.stderr[:200]}", {"path": str(filepath)})
        return filepath
