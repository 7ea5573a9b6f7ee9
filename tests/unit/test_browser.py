"""Unit tests for the agent-browser subprocess wrapper."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Tuple

import pytest

import browser as browser_module
from browser import AgentBrowser, CommandResult, check_agent_browser
from exceptions import BrowserNotFoundError, ObservationError, ScreenshotError


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process."""

    def __init__(
        self,
        stdout: bytes = b"",
        stderr: bytes = b"",
        returncode: int = 0,
        hang: bool = False,
        exited: bool = False,
    ):
        self._stdout = stdout
        self._stderr = stderr
        self.returncode = returncode
        self.hang = hang
        self.killed = False
        self.exited = exited

    async def communicate(self) -> Tuple[bytes, bytes]:
        if self.hang:
            await asyncio.sleep(3600)
        return self._stdout, self._stderr

    def kill(self) -> None:
        self.killed = True
        if self.exited:
            raise ProcessLookupError(3, "No such process")

    async def wait(self) -> int:
        return -9


@pytest.fixture
def spawned(monkeypatch):
    """Patch subprocess creation; returns (calls, queue of processes)."""
    calls: List[Tuple[str, ...]] = []
    processes: List[FakeProcess] = []

    async def fake_exec(*args, **kwargs):
        calls.append(args)
        return processes.pop(0)

    monkeypatch.setattr(browser_module.asyncio, "create_subprocess_exec", fake_exec)
    return calls, processes


class TestCheckAgentBrowser:
    """Tests for check_agent_browser."""

    def test_missing_binary(self, monkeypatch):
        monkeypatch.setattr(browser_module.shutil, "which", lambda name: None)
        with pytest.raises(BrowserNotFoundError) as exc_info:
            check_agent_browser("agent-browser")
        assert "npm install -g agent-browser" in str(exc_info.value)

    def test_binary_present(self, monkeypatch):
        monkeypatch.setattr(browser_module.shutil, "which", lambda name: "/usr/local/bin/agent-browser")
        check_agent_browser("agent-browser")


class TestRun:
    """Tests for AgentBrowser.run."""

    @pytest.mark.asyncio
    async def test_success_output_is_trimmed(self, spawned):
        calls, processes = spawned
        processes.append(FakeProcess(stdout=b"  \xe2\x9c\x93 Done\n", stderr=b""))

        result = await AgentBrowser().run(["click", "@e1"])

        assert result == CommandResult(stdout="✓ Done", stderr="", success=True)
        assert calls == [("agent-browser", "click", "@e1")]

    @pytest.mark.asyncio
    async def test_non_zero_exit(self, spawned):
        _, processes = spawned
        processes.append(FakeProcess(stderr=b"Element not found\n", returncode=1))

        result = await AgentBrowser().run(["click", "@e99"])

        assert result.success is False
        assert result.stderr == "Element not found"

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, spawned):
        _, processes = spawned
        proc = FakeProcess(hang=True)
        processes.append(proc)

        result = await AgentBrowser(command_timeout=0.01).run(["wait", "5000"])

        assert result.success is False
        assert "timed out" in result.stderr
        assert proc.killed

    @pytest.mark.asyncio
    async def test_timeout_when_process_already_exited(self, spawned):
        _, processes = spawned
        proc = FakeProcess(hang=True, exited=True)
        processes.append(proc)

        result = await AgentBrowser(command_timeout=0.01).run(["wait", "5000"])

        assert result.success is False
        assert "timed out" in result.stderr
        assert proc.killed

    @pytest.mark.asyncio
    async def test_spawn_failure(self, monkeypatch):
        async def fail(*args, **kwargs):
            raise FileNotFoundError("agent-browser")

        monkeypatch.setattr(browser_module.asyncio, "create_subprocess_exec", fail)
        result = await AgentBrowser().run(["open", "https://example.com"])
        assert result.success is False
        assert "agent-browser" in result.stderr


class TestObservation:
    """Tests for snapshot/url/title capture."""

    @pytest.mark.asyncio
    async def test_capture_observation(self, spawned):
        calls, processes = spawned
        processes.extend([
            FakeProcess(stdout=b'- link "Home" [ref=e1]\n'),
            FakeProcess(stdout=b"https://example.com/\n"),
            FakeProcess(stdout=b"Example Domain\n"),
        ])

        observation = await AgentBrowser().capture_observation()

        assert observation.snapshot == '- link "Home" [ref=e1]'
        assert observation.url == "https://example.com/"
        assert observation.title == "Example Domain"
        assert calls == [
            ("agent-browser", "snapshot", "-i", "-c"),
            ("agent-browser", "get", "url"),
            ("agent-browser", "get", "title"),
        ]

    @pytest.mark.asyncio
    async def test_snapshot_failure_raises(self, spawned):
        _, processes = spawned
        processes.append(FakeProcess(stderr=b"No browser session", returncode=1))
        with pytest.raises(ObservationError) as exc_info:
            await AgentBrowser().capture_observation()
        assert exc_info.value.command == "snapshot"

    @pytest.mark.asyncio
    async def test_title_failure_raises(self, spawned):
        _, processes = spawned
        processes.extend([
            FakeProcess(stdout=b"snapshot"),
            FakeProcess(stdout=b"https://example.com"),
            FakeProcess(returncode=1),
        ])
        with pytest.raises(ObservationError) as exc_info:
            await AgentBrowser().capture_observation()
        assert exc_info.value.command == "get title"


class TestScreenshots:
    """Tests for step screenshots."""

    @pytest.mark.asyncio
    async def test_take_step_screenshot(self, spawned, temp_dir: Path):
        calls, processes = spawned
        processes.append(FakeProcess())
        target_dir = temp_dir / "shots"

        path = await AgentBrowser().take_step_screenshot("TC001", 2, target_dir)

        assert target_dir.is_dir()
        assert path.parent == target_dir
        assert path.name.startswith("TC001_step2_")
        assert path.suffix == ".png"
        assert calls[0] == ("agent-browser", "screenshot", str(path))

    @pytest.mark.asyncio
    async def test_screenshot_failure_raises(self, spawned, temp_dir: Path):
        _, processes = spawned
        processes.append(FakeProcess(stderr=b"no page", returncode=1))
        with pytest.raises(ScreenshotError):
            await AgentBrowser().take_step_screenshot("TC001", 1, temp_dir)


class TestLifecycle:
    """Tests for open/close."""

    @pytest.mark.asyncio
    async def test_open_and_close(self, spawned):
        calls, processes = spawned
        processes.extend([FakeProcess(), FakeProcess(), FakeProcess()])
        agent_browser = AgentBrowser(binary="/opt/agent-browser")

        await agent_browser.open("https://example.com")
        await agent_browser.wait_for_network_idle()
        result = await agent_browser.close()

        assert result.success
        assert calls == [
            ("/opt/agent-browser", "open", "https://example.com"),
            ("/opt/agent-browser", "wait", "--load", "networkidle"),
            ("/opt/agent-browser", "close"),
        ]
