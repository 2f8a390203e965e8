"""
Report generation for conformance test results.
"""

import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from comparator import ComparisonResult, Divergence


@dataclass
class TestResult:
    """Result of a single test vector."""
    vector_name: str
    suite_name: str
    passed: bool
    execution_time_ms: float
    comparison: Optional[ComparisonResult] = None
    error: Optional[str] = None


@dataclass
class SuiteResult:
    """Result of a test suite (collection of vectors)."""
    suite_name: str
    total_tests: int
    passed_tests: int
    failed_tests: int
    skipped_tests: int
    execution_time_ms: float
    test_results: List[TestResult]

    @property
    def pass_rate(self) -> float:
        if self.total_tests == 0:
            return 0.0
        return self.passed_tests / self.total_tests * 100


@dataclass
class ConformanceReport:
    """Complete conformance test report."""
    timestamp: str
    vector_dir: str
    total_suites: int
    total_tests: int
    total_passed: int
    total_failed: int
    total_divergences: int
    execution_time_ms: float
    suite_results: List[SuiteResult]
    divergences: List[Divergence]


class ReportGenerator:
    """Generates conformance test reports."""

    def __init__(self, result_dir: str):
        """
        Initialize report generator.

        Args:
            result_dir: Directory to write reports to
        """
        self.result_dir = result_dir
        os.makedirs(result_dir, exist_ok=True)

    def generate_report(
        self,
        suite_results: List[SuiteResult],
        vector_dir: str,
        execution_time_ms: float,
    ) -> ConformanceReport:
        """Aggregate suite results into a complete conformance report."""
        total_tests = sum(s.total_tests for s in suite_results)
        total_passed = sum(s.passed_tests for s in suite_results)
        total_failed = sum(s.failed_tests for s in suite_results)

        divergences = []
        for suite in suite_results:
            for test in suite.test_results:
                if test.comparison and test.comparison.divergences:
                    divergences.extend(test.comparison.divergences)

        return ConformanceReport(
            timestamp=datetime.now(timezone.utc).isoformat(),
            vector_dir=vector_dir,
            total_suites=len(suite_results),
            total_tests=total_tests,
            total_passed=total_passed,
            total_failed=total_failed,
            total_divergences=len(divergences),
            execution_time_ms=execution_time_ms,
            suite_results=suite_results,
            divergences=divergences,
        )

    def write_json_report(
        self,
        report: ConformanceReport,
        filename: str = "conformance-report.json",
    ) -> str:
        """Write report as JSON file and return its path."""
        path = os.path.join(self.result_dir, filename)

        with open(path, "w") as f:
            json.dump(self._report_to_dict(report), f, indent=2)

        return path

    def print_summary(self, report: ConformanceReport) -> None:
        """Print summary to console."""
        print("\n" + "=" * 60)
        print("HTLC Escrow Conformance Results")
        print("=" * 60)
        print(f"Total:       {report.total_tests}")
        print(f"Passed:      {report.total_passed}")
        print(f"Failed:      {report.total_failed}")
        print(f"Divergences: {report.total_divergences}")
        print(f"Pass Rate:   {report.total_passed / max(report.total_tests, 1) * 100:.1f}%")
        print()

        for suite in report.suite_results:
            status = "PASS" if suite.failed_tests == 0 else "FAIL"
            print(f"  [{status}] {suite.suite_name}: {suite.passed_tests}/{suite.total_tests}")

        if report.divergences:
            print()
            print("DIVERGENCES FOUND:")
            for div in report.divergences[:10]:  # Show first 10
                print(f"  - {div.vector_name}: {div.field} (expected {div.expected}, got {div.actual})")
            if len(report.divergences) > 10:
                print(f"  ... and {len(report.divergences) - 10} more")

        status = "PASSED" if report.total_failed == 0 else "FAILED"
        print()
        print(f"Overall: {status}")
        print("=" * 60)

    def _report_to_dict(self, report: ConformanceReport) -> Dict[str, Any]:
        """Convert report to dictionary for JSON serialization."""
        return {
            "timestamp": report.timestamp,
            "vector_dir": report.vector_dir,
            "total_suites": report.total_suites,
            "total_tests": report.total_tests,
            "total_passed": report.total_passed,
            "total_failed": report.total_failed,
            "total_divergences": report.total_divergences,
            "execution_time_ms": report.execution_time_ms,
            "suite_results": [
                {
                    "suite_name": s.suite_name,
                    "total_tests": s.total_tests,
                    "passed_tests": s.passed_tests,
                    "failed_tests": s.failed_tests,
                    "skipped_tests": s.skipped_tests,
                    "execution_time_ms": s.execution_time_ms,
                    "pass_rate": s.pass_rate,
                    "failures": [
                        {"vector_name": t.vector_name, "error": t.error}
                        for t in s.test_results
                        if not t.passed
                    ],
                }
                for s in report.suite_results
            ],
            "divergences": [
                {
                    "field": d.field,
                    "expected": str(d.expected),
                    "actual": str(d.actual),
                    "vector_name": d.vector_name,
                    "details": d.details,
                }
                for d in report.divergences
            ],
        }
