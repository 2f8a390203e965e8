#!/usr/bin/env python3
"""
HTLC Escrow Conformance Test Runner

Replays YAML vectors against a fresh in-process escrow deployment per vector
and reports every divergence from the recorded expectations.
"""

import glob
import logging
import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import yaml

ROOT = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from htlc_escrow.errors import ErrorCode  # noqa: E402
from htlc_escrow.snapshot import deployment_to_json  # noqa: E402
from htlc_escrow.state_digest import compute_state_digest  # noqa: E402
from htlc_escrow.state_transition import apply_op  # noqa: E402
from fixtures_io import op_from_json, result_to_json, state_from_json  # noqa: E402

from comparator import ResultComparator  # noqa: E402
from config import HarnessConfig  # noqa: E402
from reporter import ConformanceReport, ReportGenerator, SuiteResult, TestResult  # noqa: E402

logger = logging.getLogger(__name__)


class ConformanceHarness:
    """Main test harness for conformance testing."""

    def __init__(self, config: HarnessConfig):
        self.config = config
        self.comparator = ResultComparator()
        self.reporter = ReportGenerator(config.result_dir)

    def execute_vector(self, vector: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a vector's operation against its pre-state."""
        deployment = state_from_json(vector["pre_state"])
        op = op_from_json(vector["operation"])
        result = result_to_json(apply_op(deployment, op))
        error_name = result["error"]
        return {
            "ok": result["ok"],
            "error_code": int(ErrorCode[error_name]) if error_name else int(ErrorCode.SUCCESS),
            "value": result["value"],
            "state_digest": compute_state_digest(deployment_to_json(deployment)),
        }

    def run_vector(self, vector: Dict[str, Any]) -> TestResult:
        """Run a single test vector."""
        vector_name = vector.get("name", "unknown")
        start_time = time.time()

        try:
            actual = self.execute_vector(vector)
            comparison = self.comparator.compare_results(
                vector.get("expected", {}), actual, vector_name
            )
            return TestResult(
                vector_name=vector_name,
                suite_name="",
                passed=not comparison.has_divergences,
                execution_time_ms=(time.time() - start_time) * 1000,
                comparison=comparison,
            )

        except Exception as e:
            logger.exception(f"Error running vector {vector_name}")
            return TestResult(
                vector_name=vector_name,
                suite_name="",
                passed=False,
                execution_time_ms=(time.time() - start_time) * 1000,
                error=str(e),
            )

    def run_suite(self, suite_path: str) -> SuiteResult:
        """Run a test suite from a YAML file."""
        suite_name = Path(suite_path).stem
        logger.info(f"Running suite: {suite_name}")

        start_time = time.time()

        with open(suite_path) as f:
            suite = yaml.safe_load(f) or {}

        vectors = [v for v in suite.get("test_vectors", []) if v.get("runnable", True)]
        test_results = []

        for vector in vectors:
            result = self.run_vector(vector)
            result.suite_name = suite_name
            test_results.append(result)

            status = "PASS" if result.passed else "FAIL"
            logger.info(f"  [{status}] {result.vector_name}")

            if not result.passed and self.config.stop_on_first_failure:
                break

        passed = sum(1 for r in test_results if r.passed)
        failed = sum(1 for r in test_results if not r.passed)

        return SuiteResult(
            suite_name=suite_name,
            total_tests=len(test_results),
            passed_tests=passed,
            failed_tests=failed,
            skipped_tests=len(vectors) - len(test_results),
            execution_time_ms=(time.time() - start_time) * 1000,
            test_results=test_results,
        )

    def run_all(self, vector_paths: List[str]) -> ConformanceReport:
        """Run all test suites."""
        start_time = time.time()

        suite_results = []
        for path in vector_paths:
            result = self.run_suite(path)
            suite_results.append(result)
            if result.failed_tests and self.config.stop_on_first_failure:
                break

        return self.reporter.generate_report(
            suite_results=suite_results,
            vector_dir=self.config.vector_dir,
            execution_time_ms=(time.time() - start_time) * 1000,
        )


def find_vector_files(vector_dir: str) -> List[str]:
    """Find all vector YAML files in directory."""
    patterns = [
        os.path.join(vector_dir, "**", "*.yaml"),
        os.path.join(vector_dir, "**", "*.yml"),
    ]

    files = []
    for pattern in patterns:
        files.extend(glob.glob(pattern, recursive=True))

    return sorted(files)


@click.command()
@click.option(
    "--vectors",
    default=None,
    help="Path to vectors directory or specific YAML file",
)
@click.option(
    "--result-dir",
    default=None,
    help="Directory to write results",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--stop-on-failure",
    is_flag=True,
    help="Stop on first test failure",
)
def main(
    vectors: Optional[str],
    result_dir: Optional[str],
    verbose: bool,
    stop_on_failure: bool,
) -> None:
    """Run HTLC escrow conformance vectors."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    # Load config from environment, then override with CLI args
    config = HarnessConfig.from_env()

    if vectors:
        config.vector_dir = vectors
    if result_dir:
        config.result_dir = result_dir
    if verbose:
        config.verbose = True
    if stop_on_failure:
        config.stop_on_first_failure = True
    if config.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if os.path.isfile(config.vector_dir):
        vector_files = [config.vector_dir]
    else:
        vector_files = find_vector_files(config.vector_dir)

    if not vector_files:
        logger.error(f"No vector files found in {config.vector_dir}")
        sys.exit(1)

    logger.info(f"Found {len(vector_files)} vector files")

    harness = ConformanceHarness(config)
    report = harness.run_all(vector_files)

    path = harness.reporter.write_json_report(report)
    harness.reporter.print_summary(report)
    logger.info(f"Report written to {path}")

    sys.exit(0 if report.total_failed == 0 else 1)


if __name__ == "__main__":
    main()
