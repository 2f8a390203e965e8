"""
Result comparison logic for conformance testing.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class Divergence:
    """A field where the engine's result differs from the vector."""
    field: str
    expected: Any
    actual: Any
    vector_name: str
    details: Optional[str] = None


@dataclass
class ComparisonResult:
    """Result of comparing an execution against a vector's expectation."""
    success: bool
    divergences: List[Divergence]

    @property
    def has_divergences(self) -> bool:
        return len(self.divergences) > 0


class ResultComparator:
    """Compares engine results with the expectations recorded in vectors."""

    def compare_results(
        self,
        expected: Dict[str, Any],
        actual: Dict[str, Any],
        vector_name: str,
    ) -> ComparisonResult:
        """
        Compare an actual execution result with the expected one.

        Args:
            expected: The vector's ``expected`` block
            actual: Result dict produced by the runner
            vector_name: Name of the test vector

        Returns:
            ComparisonResult with any divergences found
        """
        divergences = []

        # Compare success status
        exp_ok = expected.get("ok", True)
        act_ok = actual.get("ok", True)
        if exp_ok != act_ok:
            divergences.append(Divergence(
                field="ok",
                expected=exp_ok,
                actual=act_ok,
                vector_name=vector_name,
            ))

        # Compare error codes
        exp_error = expected.get("error_code", 0)
        act_error = actual.get("error_code", 0)
        if exp_error != act_error:
            divergences.append(Divergence(
                field="error_code",
                expected=exp_error,
                actual=act_error,
                vector_name=vector_name,
                details=f"Error code mismatch: expected 0x{exp_error:04x}, got 0x{act_error:04x}",
            ))

        # Compare returned value (escrow id)
        if expected.get("value") != actual.get("value"):
            divergences.append(Divergence(
                field="value",
                expected=expected.get("value"),
                actual=actual.get("value"),
                vector_name=vector_name,
            ))

        # Compare state digests
        exp_digest = expected.get("state_digest")
        act_digest = actual.get("state_digest")
        if exp_digest and exp_digest != act_digest:
            divergences.append(Divergence(
                field="state_digest",
                expected=exp_digest,
                actual=act_digest,
                vector_name=vector_name,
                details="State digest mismatch after execution",
            ))

        return ComparisonResult(
            success=len(divergences) == 0,
            divergences=divergences,
        )
