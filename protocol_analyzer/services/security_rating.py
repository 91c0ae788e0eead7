"""
Letter-grade security rating for a set of analyzed contracts.
"""
from typing import Dict, Tuple

from protocol_analyzer.services.heuristics import SynthesisContext


class SecurityRatingCalculator:
    """
    Calculator for the heuristic security rating.
    Starts from a base score, adds bonuses for detected protections and
    subtracts a penalty for high average complexity.
    """

    BASE_SCORE = 70.0

    BONUSES = {
        "access_control": 10.0,
        "reentrancy_guard": 10.0,
        "events": 5.0,
        "pause": 5.0,
    }

    # (complexity above, penalty); checked highest first
    COMPLEXITY_PENALTIES = (
        (8.0, 15.0),
        (6.0, 10.0),
    )

    # (minimum score, grade); the last row catches everything below
    GRADE_THRESHOLDS = (
        (95.0, "A+"),
        (90.0, "A"),
        (85.0, "A-"),
        (80.0, "B+"),
        (75.0, "B"),
        (70.0, "B-"),
        (65.0, "C+"),
        (60.0, "C"),
        (55.0, "C-"),
        (50.0, "D"),
        (float("-inf"), "F"),
    )

    @staticmethod
    def detect_protections(ctx: SynthesisContext) -> Dict[str, bool]:
        """Which bonus-bearing protections are present."""
        return {
            "access_control": ctx.has_access_control,
            "reentrancy_guard": ctx.has_reentrancy_guard,
            "events": ctx.has_events,
            "pause": ctx.has_pause,
        }

    @staticmethod
    def calculate_score(protections: Dict[str, bool], average_complexity: float) -> float:
        """
        Calculate the numeric score.

        Args:
            protections: Protection name to detected flag
            average_complexity: Average contract complexity

        Returns:
            Numeric security score
        """
        score = SecurityRatingCalculator.BASE_SCORE

        for name, present in protections.items():
            if present:
                score += SecurityRatingCalculator.BONUSES.get(name, 0.0)

        for threshold, penalty in SecurityRatingCalculator.COMPLEXITY_PENALTIES:
            if average_complexity > threshold:
                score -= penalty
                break

        return score

    @staticmethod
    def get_grade(score: float) -> str:
        """Get letter grade from a numeric score."""
        for minimum, grade in SecurityRatingCalculator.GRADE_THRESHOLDS:
            if score >= minimum:
                return grade
        # NaN compares false against every threshold
        return "F"

    @staticmethod
    def rate(ctx: SynthesisContext) -> Tuple[str, float]:
        """
        Rate the protocol described by a synthesis context.

        Returns:
            Tuple of (grade, score)
        """
        score = SecurityRatingCalculator.calculate_score(
            SecurityRatingCalculator.detect_protections(ctx),
            ctx.average_complexity,
        )
        return SecurityRatingCalculator.get_grade(score), score
