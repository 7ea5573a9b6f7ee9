"""JSON report generator for test case runs."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from reporters.base import BaseReporter, ReportFormat
from test_types import StepResult, TestReport, utcnow


class JSONReporter(BaseReporter):
    """Generate machine-readable JSON reports."""

    extension = "json"

    @property
    def format(self) -> ReportFormat:
        return ReportFormat.JSON

    def _step_to_dict(self, step: StepResult) -> Dict[str, Any]:
        """Convert StepResult to JSON-serializable dict."""
        return {
            "step": step.step,
            "action": step.action,
            "expected": step.expected,
            "status": step.status.value,
            "actual": step.actual,
            "reasoning": step.reasoning,
            "commands_executed": list(step.commands_executed),
            "iterations": step.iterations,
            "screenshot": str(step.screenshot) if step.screenshot else None,
            "duration_ms": round(step.duration_ms),
        }

    def _report_to_dict(self, report: TestReport) -> Dict[str, Any]:
        """Convert TestReport to JSON-serializable dict."""
        return {
            "test_id": report.test_id,
            "title": report.title,
            "status": report.status.value,
            "started_at": report.started_at.isoformat(),
            "finished_at": report.finished_at.isoformat() if report.finished_at else None,
            "duration_ms": round(report.duration_ms),
            "summary": report.summary,
            "error": report.error,
            "steps": [self._step_to_dict(s) for s in report.steps],
        }

    def generate(self, report: TestReport, output_dir: Path) -> Path:
        """Generate JSON report for a single test case."""
        target = self.case_path(report, output_dir)
        target.write_text(json.dumps(self._report_to_dict(report), indent=2), encoding="utf-8")
        return target

    def generate_suite(self, reports: List[TestReport], output_dir: Path) -> Path:
        """Generate combined JSON report for multiple test cases."""
        target = self.suite_path(output_dir)

        passed = sum(1 for r in reports if r.success)
        pass_rate = (passed / len(reports) * 100) if reports else 0.0
        durations = [r.duration_seconds for r in reports]

        report_data = {
            "generated_at": utcnow().isoformat(),
            "report_version": "1.0",
            "tests": [self._report_to_dict(r) for r in reports],
            "summary": {
                "total": len(reports),
                "passed": passed,
                "failed": len(reports) - passed,
                "pass_rate": round(pass_rate, 2),
                "total_duration_seconds": round(sum(durations), 2),
            },
            "failed_tests": [
                {"id": r.test_id, "status": r.status.value, "summary": r.summary}
                for r in reports if not r.success
            ],
        }

        target.write_text(json.dumps(report_data, indent=2), encoding="utf-8")
        return target
