"""Human-in-the-loop decision source reading agent-browser commands from stdin."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from adapters.base import AgentAction, DecisionRequest
from prompts import SNAPSHOT_SENTINEL

SNAPSHOT_PREVIEW_CHARS = 3000
INTERACTIVE_THOUGHT = "Interactive mode: commands entered by the tester"

ReadLine = Callable[[str], Awaitable[str]]


async def _read_stdin(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


class InteractiveAdapter:
    """
    Prints the page state for each iteration and collects commands typed by a tester.

    Typing PASS, FAIL or SKIP ends the step; SNAP requests a fresh snapshot.
    An empty line asks for a verdict, where NEXT runs the commands entered so far
    and comes back with a new snapshot.
    """

    def __init__(
        self,
        read_line: Optional[ReadLine] = None,
        echo: Callable[[str], None] = print,
        logger: Optional[logging.Logger] = None,
    ):
        self.read_line = read_line or _read_stdin
        self.echo = echo
        self.logger = logger or logging.getLogger("interactive_adapter")

    def _show_state(self, request: DecisionRequest) -> None:
        observation = request.observation
        self.echo("\n" + "═" * 80)
        self.echo(f"STEP ACTION:   {request.step_description}")
        self.echo(f"EXPECTED:      {request.expected_result}")
        self.echo(f"URL:           {observation.url}")
        self.echo(f"TITLE:         {observation.title}")
        self.echo(f"ITERATION:     {request.iteration}/{request.max_iterations}")
        if request.previous_actions:
            self.echo(f"PREV ACTIONS:  {' → '.join(request.previous_actions)}")
        self.echo("─" * 80)
        self.echo("BROWSER STATE (snapshot):")
        self.echo(observation.snapshot[:SNAPSHOT_PREVIEW_CHARS])
        if len(observation.snapshot) > SNAPSHOT_PREVIEW_CHARS:
            self.echo(f"... ({len(observation.snapshot) - SNAPSHOT_PREVIEW_CHARS} more chars)")
        self.echo("─" * 80)
        self.echo("Enter agent-browser commands (one per line). Empty line = verdict.")
        self.echo("Special: PASS | FAIL | SKIP | SNAP")
        self.echo("─" * 80)

    def _passed(self, commands: List[str], actual: str) -> AgentAction:
        return AgentAction(
            thought=INTERACTIVE_THOUGHT,
            commands=commands,
            done=True,
            success=True,
            actual_result=actual.strip(),
        )

    async def _failed(self, commands: List[str]) -> AgentAction:
        actual = await self.read_line("What actually happened? ")
        return AgentAction(
            thought=INTERACTIVE_THOUGHT,
            commands=commands,
            done=True,
            success=False,
            actual_result=actual.strip(),
        )

    def _skipped(self, commands: List[str]) -> AgentAction:
        return AgentAction(
            thought=INTERACTIVE_THOUGHT,
            commands=commands,
            done=True,
            success=False,
            skipped=True,
            actual_result="Step skipped",
        )

    async def decide(self, request: DecisionRequest) -> AgentAction:
        self._show_state(request)
        commands: List[str] = []

        while True:
            line = (await self.read_line("> ")).strip()
            keyword = line.upper()

            if not line:
                verdict = (await self.read_line("Step result? (PASS/FAIL/SKIP/NEXT): ")).strip().upper()
                if verdict == "PASS":
                    actual = await self.read_line("Actual result (or Enter to use expected): ")
                    return self._passed(commands, actual.strip() or request.expected_result)
                if verdict == "FAIL":
                    return await self._failed(commands)
                if verdict == "SKIP":
                    return self._skipped(commands)
                if verdict == "NEXT":
                    return AgentAction(thought=INTERACTIVE_THOUGHT, commands=commands)
                continue

            if keyword == "PASS":
                return self._passed(commands, request.expected_result)
            if keyword == "FAIL":
                return await self._failed(commands)
            if keyword == "SKIP":
                return self._skipped(commands)
            if keyword == "SNAP":
                commands.append(SNAPSHOT_SENTINEL)
                continue

            commands.append(line)

    async def aclose(self) -> None:
        self.logger.debug("Interactive adapter closed")
