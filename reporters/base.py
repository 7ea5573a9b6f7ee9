"""Base reporter interface for test case reports."""
from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import List

from test_types import TestReport, utcnow


class ReportFormat(str, Enum):
    """Supported report formats."""
    JSON = "json"
    MARKDOWN = "markdown"
    JUNIT = "junit"
    ALL = "all"


def report_timestamp() -> str:
    """Filesystem-safe UTC timestamp used in report file names."""
    return utcnow().strftime("%Y-%m-%dT%H-%M-%S-%f")


class BaseReporter(ABC):
    """Abstract base class for report generators."""

    extension: str = ""

    @abstractmethod
    def generate(self, report: TestReport, output_dir: Path) -> Path:
        """
        Generate a report for a single test case.

        Args:
            report: Finalized test case report
            output_dir: Directory to write report to

        Returns:
            Path to the generated report file
        """
        pass

    @abstractmethod
    def generate_suite(self, reports: List[TestReport], output_dir: Path) -> Path:
        """
        Generate a combined report for multiple test cases.

        Args:
            reports: Finalized test case reports
            output_dir: Directory to write report to

        Returns:
            Path to the generated report file
        """
        pass

    @property
    @abstractmethod
    def format(self) -> ReportFormat:
        """Return the report format this reporter generates."""
        pass

    def case_path(self, report: TestReport, output_dir: Path) -> Path:
        output_dir.mkdir(parents=True, exist_ok=True)
        return output_dir / f"{report.test_id}_{report_timestamp()}.{self.extension}"

    def suite_path(self, output_dir: Path) -> Path:
        output_dir.mkdir(parents=True, exist_ok=True)
        return output_dir / f"suite_{report_timestamp()}.{self.extension}"
