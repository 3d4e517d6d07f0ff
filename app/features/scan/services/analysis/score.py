from typing import Any, Dict


def calculate_score(passes: int, violations: int) -> float:
    """
    Percentage of applicable checks that passed, rounded to 2 decimals.

    A page with no applicable checks is vacuously compliant (100).
    """
    total_checks = passes + violations
    if total_checks == 0:
        return 100
    return round(100 * passes / total_checks, 2)


def calculate_result_score(results: Dict[str, Any]) -> float:
    """Score a single analyzer result from the size of its passes and violations buckets."""
    if results is None:
        raise ValueError("Scan results are required to calculate the accessibility score.")
    return calculate_score(len(results.get("passes") or []), len(results.get("violations") or []))
