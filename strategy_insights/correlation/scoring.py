"""Strength, confidence and significance scoring.

Every analyzer goes through these functions; the significance table lives
here and nowhere else.
"""

import math
from enum import Enum


class Significance(str, Enum):
    """Categorical summary of correlation strength."""

    HIGH = "high"  # strength > 0.7
    MEDIUM = "medium"  # 0.5 <= strength <= 0.7
    LOW = "low"  # strength < 0.5


HIGH_SIGNIFICANCE_THRESHOLD = 0.7
MEDIUM_SIGNIFICANCE_THRESHOLD = 0.5

# Confidence multipliers per analysis dimension
TEMPORAL_CONFIDENCE_FACTOR = 85
CAUSAL_CONFIDENCE_FACTOR = 95
RESOURCE_CONFIDENCE_FACTOR = 90

CAUSAL_BASE_STRENGTH = 0.8
CAUSAL_PROGRESS_WEIGHT = 0.2
RESOURCE_BASE_STRENGTH = 0.6
RESOURCE_STATUS_BONUS = 0.2
TEMPORAL_SATURATION_COUNT = 5
TEMPORAL_SEVERITY_WEIGHT = 0.3

# Strengths are stored rounded so that 0.8 + 0.1 reads back as 0.9
STRENGTH_PRECISION = 6


def significance_for(strength: float) -> Significance:
    """Map a strength to its significance using the canonical table."""
    if strength > HIGH_SIGNIFICANCE_THRESHOLD:
        return Significance.HIGH
    if strength >= MEDIUM_SIGNIFICANCE_THRESHOLD:
        return Significance.MEDIUM
    return Significance.LOW


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def normalize_strength(raw: float) -> float:
    """Clamp a raw signal into [0, 1]."""
    if math.isnan(raw):
        return 0.0
    return round(max(0.0, min(raw, 1.0)), STRENGTH_PRECISION)


def confidence_score(strength: float, factor: int) -> int:
    """Confidence in [0, 100] for a strength and a per-dimension factor."""
    return max(0, min(100, round_half_up(strength * factor)))


def temporal_strength(related_count: int, severity_scores: list[float]) -> float:
    """Strength from the number of nearby issues and their summed severity."""
    base = min(related_count / TEMPORAL_SATURATION_COUNT, 1.0)
    severity_bonus = sum(severity_scores) / 100
    return normalize_strength(base + severity_bonus * TEMPORAL_SEVERITY_WEIGHT)


def causal_strength(progress_fraction: float) -> float:
    """Strength of a declared cause/effect link, boosted by dependent progress."""
    return normalize_strength(CAUSAL_BASE_STRENGTH + progress_fraction * CAUSAL_PROGRESS_WEIGHT)


def resource_strength(status_matches: bool) -> float:
    """Strength of competition for a shared owner."""
    bonus = RESOURCE_STATUS_BONUS if status_matches else 0.0
    return normalize_strength(RESOURCE_BASE_STRENGTH + bonus)
