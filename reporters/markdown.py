"""Markdown report generator, readable in any repository browser."""
from __future__ import annotations

from pathlib import Path
from typing import List

from reporters.base import BaseReporter, ReportFormat
from test_types import CaseStatus, StepResult, StepStatus, TestReport, utcnow

STATUS_ICONS = {
    StepStatus.PASS: "✅",
    StepStatus.FAIL: "❌",
    StepStatus.SKIPPED: "⏭️",
    StepStatus.ERROR: "⚠️",
}

CASE_ICONS = {
    CaseStatus.PASS: "✅",
    CaseStatus.FAIL: "❌",
    CaseStatus.ERROR: "⚠️",
}


class MarkdownReporter(BaseReporter):
    """Generate human-readable Markdown reports."""

    extension = "md"

    @property
    def format(self) -> ReportFormat:
        return ReportFormat.MARKDOWN

    def _render_step(self, step: StepResult, heading: str) -> str:
        md = f"{heading}## Step {step.step}: {STATUS_ICONS[step.status]} {step.status.value.upper()}\n\n"
        md += f"**Action:** {step.action}\n\n"
        md += f"**Expected:** {step.expected}\n\n"
        md += f"**Actual:** {step.actual}\n\n"
        if step.commands_executed:
            md += "**Commands:**\n"
            for cmd in step.commands_executed:
                md += f"- `{cmd}`\n"
            md += "\n"
        if step.screenshot:
            md += f"**Screenshot:** [{step.screenshot.name}]({step.screenshot})\n\n"
        md += f"**Duration:** {step.duration_ms / 1000:.1f}s\n\n"
        md += "---\n\n"
        return md

    def render(self, report: TestReport, heading: str = "#") -> str:
        finished = report.finished_at.isoformat() if report.finished_at else "-"
        md = f"{heading} Test Report: {report.test_id} - {report.title}\n\n"
        md += f"**Status:** {CASE_ICONS[report.status]} {report.status.value.upper()}\n"
        md += f"**Started:** {report.started_at.isoformat()}\n"
        md += f"**Finished:** {finished}\n"
        md += f"**Duration:** {report.duration_seconds:.1f}s\n\n"
        md += f"{heading}# Summary\n\n{report.summary}\n\n"
        if report.steps:
            md += f"{heading}# Steps\n\n"
            for step in report.steps:
                md += self._render_step(step, heading)
        return md

    def generate(self, report: TestReport, output_dir: Path) -> Path:
        """Generate Markdown report for a single test case."""
        target = self.case_path(report, output_dir)
        target.write_text(self.render(report), encoding="utf-8")
        return target

    def generate_suite(self, reports: List[TestReport], output_dir: Path) -> Path:
        """Generate a Markdown summary table followed by every case report."""
        target = self.suite_path(output_dir)
        passed = sum(1 for r in reports if r.success)

        md = "# Test Suite Report\n\n"
        md += f"**Generated:** {utcnow().isoformat()}\n"
        md += f"**Passed:** {passed}/{len(reports)}\n\n"
        md += "| Test | Title | Status | Duration |\n"
        md += "|------|-------|--------|----------|\n"
        for r in reports:
            md += (
                f"| {r.test_id} | {r.title} | {CASE_ICONS[r.status]} {r.status.value.upper()} "
                f"| {r.duration_seconds:.1f}s |\n"
            )
        md += "\n"
        for r in reports:
            md += self.render(r, heading="##")

        target.write_text(md, encoding="utf-8")
        return target
