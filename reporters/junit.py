"""JUnit XML report generator for CI integration."""
from __future__ import annotations

import html
from datetime import datetime
from pathlib import Path
from typing import List

from reporters.base import BaseReporter, ReportFormat
from test_types import StepResult, StepStatus, TestReport, utcnow


class JUnitReporter(BaseReporter):
    """Generate JUnit XML reports: one <testsuite> per case, one <testcase> per step."""

    extension = "xml"

    @property
    def format(self) -> ReportFormat:
        return ReportFormat.JUNIT

    def _escape_xml(self, text: str) -> str:
        """Escape special XML characters."""
        return html.escape(str(text), quote=True)

    def _cdata(self, text: str) -> str:
        return str(text).replace("]]>", "]]]]><![CDATA[>")

    def _format_timestamp(self, dt: datetime) -> str:
        """Format datetime for JUnit XML."""
        return dt.strftime("%Y-%m-%dT%H:%M:%S")

    def _build_testcase_xml(self, report: TestReport, step: StepResult) -> str:
        """Build XML for a single step."""
        lines = []
        classname = self._escape_xml(f"testpilot.{report.test_id}")
        name = self._escape_xml(f"Step {step.step}: {step.action}")
        time_sec = f"{step.duration_ms / 1000:.3f}"

        lines.append(f'    <testcase classname="{classname}" name="{name}" time="{time_sec}">')

        if step.status is StepStatus.FAIL:
            lines.append(f'      <failure message="{self._escape_xml(step.actual)}" type="AssertionError"><![CDATA[')
        elif step.status is StepStatus.ERROR:
            lines.append(f'      <error message="{self._escape_xml(step.actual)}" type="StepError"><![CDATA[')
        elif step.status is StepStatus.SKIPPED:
            lines.append(f'      <skipped message="{self._escape_xml(step.actual)}"/>')

        if step.status in (StepStatus.FAIL, StepStatus.ERROR):
            lines.append(f"Expected: {self._cdata(step.expected)}")
            lines.append(f"Actual: {self._cdata(step.actual)}")
            if step.reasoning:
                lines.append(f"Reasoning: {self._cdata(step.reasoning)}")
            lines.append(f"Iterations: {step.iterations}")
            closing = "failure" if step.status is StepStatus.FAIL else "error"
            lines.append(f"]]></{closing}>")

        if step.commands_executed:
            lines.append("      <system-out><![CDATA[")
            for cmd in step.commands_executed:
                lines.append(f"agent-browser {self._cdata(cmd)}")
            if step.screenshot:
                lines.append(f"Screenshot: {step.screenshot}")
            lines.append("]]></system-out>")

        lines.append("    </testcase>")
        return "\n".join(lines)

    def _build_testsuite_xml(self, report: TestReport) -> str:
        tests = len(report.steps)
        failures = sum(1 for s in report.steps if s.status is StepStatus.FAIL)
        errors = sum(1 for s in report.steps if s.status is StepStatus.ERROR)
        skipped = sum(1 for s in report.steps if s.status is StepStatus.SKIPPED)

        lines = [
            f'  <testsuite name="{self._escape_xml(report.test_id + ": " + report.title)}" '
            f'tests="{tests}" '
            f'failures="{failures}" '
            f'errors="{errors + (1 if report.error else 0)}" '
            f'skipped="{skipped}" '
            f'time="{report.duration_seconds:.3f}" '
            f'timestamp="{self._format_timestamp(report.started_at)}">'
        ]
        if report.error:
            lines.append(f"    <system-err><![CDATA[{self._cdata(report.summary)}]]></system-err>")
        for step in report.steps:
            lines.append(self._build_testcase_xml(report, step))
        lines.append("  </testsuite>")
        return "\n".join(lines)

    def _render(self, reports: List[TestReport]) -> str:
        lines = ['<?xml version="1.0" encoding="UTF-8"?>']
        lines.append(f'<testsuites name="testpilot" tests="{sum(len(r.steps) for r in reports)}">')
        lines.append("  <properties>")
        lines.append('    <property name="reporter" value="testpilot-junit"/>')
        lines.append(f'    <property name="generated_at" value="{utcnow().isoformat()}"/>')
        lines.append("  </properties>")
        for report in reports:
            lines.append(self._build_testsuite_xml(report))
        lines.append("</testsuites>")
        return "\n".join(lines)

    def generate(self, report: TestReport, output_dir: Path) -> Path:
        """Generate JUnit XML report for a single test case."""
        target = self.case_path(report, output_dir)
        target.write_text(self._render([report]), encoding="utf-8")
        return target

    def generate_suite(self, reports: List[TestReport], output_dir: Path) -> Path:
        """Generate combined JUnit XML report for multiple test cases."""
        target = self.suite_path(output_dir)
        target.write_text(self._render(reports), encoding="utf-8")
        return target
