"""Step agent: drives one natural-language test step against the live page."""
from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional

from adapters.base import AgentAction, DecisionRequest, DecisionSource
from browser import AgentBrowser
from command_parser import format_command, parse_command
from prompts import SNAPSHOT_SENTINEL
from test_types import Observation, StepResult, StepStatus, TestCase, TestStep

DEFAULT_MUTATING_COMMANDS = ("click", "fill", "select", "press")
OUTPUT_PREVIEW_CHARS = 500


class StepAgent:
    """
    Runs the observe/decide/act loop for a single step until the decision
    source declares it done or the iteration ceiling is reached.
    """

    def __init__(
        self,
        browser: AgentBrowser,
        adapter: DecisionSource,
        *,
        max_iterations: int = 10,
        settle_delay: float = 1.5,
        mutating_commands: Iterable[str] = DEFAULT_MUTATING_COMMANDS,
        screenshots_folder: Optional[Path] = None,
        save_screenshots: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.browser = browser
        self.adapter = adapter
        self.max_iterations = max_iterations
        self.settle_delay = settle_delay
        self.mutating_commands = frozenset(c.lower() for c in mutating_commands)
        self.screenshots_folder = Path(screenshots_folder or "./screenshots")
        self.save_screenshots = save_screenshots
        self.sleep = sleep
        self.logger = logger or logging.getLogger("step_agent")

    def is_mutating(self, args: List[str]) -> bool:
        return bool(args) and args[0].lower() in self.mutating_commands

    async def _execute(self, command: str) -> None:
        """Run one agent-browser command and wait for the page to settle if it mutates state."""
        args = parse_command(command)
        self.logger.info(f"Executing: agent-browser {format_command(args)}")
        result = await self.browser.run(args)
        if result.stdout:
            self.logger.info(f"  → {result.stdout[:OUTPUT_PREVIEW_CHARS]}")
        if not result.success:
            self.logger.warning(f"  Command failed: {result.stderr[:OUTPUT_PREVIEW_CHARS]}")
        if self.is_mutating(args) and self.settle_delay > 0:
            await self.sleep(self.settle_delay)

    async def _take_screenshot(self, test_case: TestCase, step: TestStep) -> Optional[Path]:
        if not self.save_screenshots:
            return None
        try:
            path = await self.browser.take_step_screenshot(test_case.id, step.step, self.screenshots_folder)
        except Exception as exc:
            self.logger.warning(f"Screenshot failed for step {step.step}: {exc}")
            return None
        self.logger.info(f"Screenshot: {path}")
        return path

    async def run_step(self, test_case: TestCase, step: TestStep, system_prompt: str) -> StepResult:
        """Execute a step and return exactly one StepResult for it."""
        start = time.monotonic()
        commands_executed: List[str] = []
        action: Optional[AgentAction] = None
        iterations = 0
        status = StepStatus.FAIL
        actual = ""

        try:
            observation: Observation = await self.browser.capture_observation()

            while True:
                iterations += 1
                self.logger.info(f"Iteration {iterations}/{self.max_iterations}")
                request = DecisionRequest(
                    system_prompt=system_prompt,
                    step_description=step.action,
                    expected_result=step.expected,
                    observation=observation,
                    previous_actions=tuple(commands_executed),
                    iteration=iterations,
                    max_iterations=self.max_iterations,
                )
                action = await self.adapter.decide(request)

                for command in action.commands:
                    if command.strip() == SNAPSHOT_SENTINEL:
                        observation = await self.browser.capture_observation()
                        self.logger.info("Snapshot refreshed on request")
                        self.logger.debug(observation.snapshot[:2000])
                        continue
                    if not command.strip():
                        self.logger.warning("Skipping empty command")
                        continue
                    await self._execute(command)
                    commands_executed.append(command)

                if action.done:
                    if action.skipped:
                        status = StepStatus.SKIPPED
                    else:
                        status = StepStatus.PASS if action.success else StepStatus.FAIL
                    actual = action.actual_result
                    break

                if iterations >= self.max_iterations:
                    status = StepStatus.FAIL
                    actual = (
                        f"Step timed out after {self.max_iterations} iterations "
                        "without reaching a conclusion."
                    )
                    self.logger.warning(
                        f"Step {step.step} exhausted {self.max_iterations} iterations without completing"
                    )
                    break

                observation = await self.browser.capture_observation()
        except Exception as exc:
            status = StepStatus.ERROR
            actual = f"Error: {exc}"
            self.logger.error(f"Error in step {step.step}: {exc}")

        screenshot = await self._take_screenshot(test_case, step)
        duration_ms = (time.monotonic() - start) * 1000
        self.logger.info(f"Step {step.step}: {status.value.upper()} ({duration_ms / 1000:.1f}s)")

        return StepResult(
            step=step.step,
            action=step.action,
            expected=step.expected,
            status=status,
            actual=actual,
            reasoning=action.thought if action else "",
            commands_executed=tuple(commands_executed),
            iterations=iterations,
            screenshot=screenshot,
            duration_ms=duration_ms,
        )
