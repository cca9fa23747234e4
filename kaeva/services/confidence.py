"""Composite confidence scoring.

Four signals feed the score: how far cited sources agree with the claim, the
mean trust weight of ranked sources, the model's own confidence, and, when
media was submitted, its authenticity score. Each is clamped to [0, 1]
before weighting and the weights of each formula sum to 1.
"""

import math
from collections.abc import Iterable
from typing import Any

from kaeva.models import ConfidenceResult, Recommendation, SourceReference, Stance

WEIGHTS_WITH_MEDIA = {
    "sourceAgreement": 0.30,
    "sourceQuality": 0.20,
    "aiConfidence": 0.35,
    "mediaAuthenticity": 0.15,
}
WEIGHTS_TEXT_ONLY = {
    "sourceAgreement": 0.35,
    "sourceQuality": 0.25,
    "aiConfidence": 0.40,
}

HIGH_CONFIDENCE_THRESHOLD = 0.75
NEEDS_REVIEW_THRESHOLD = 0.50

DEFAULT_AGREEMENT = 0.5
DEFAULT_QUALITY = 0.3


def clamp(value: Any) -> float:
    """Clamp to [0, 1]; non-numbers and NaN count as 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


def recommend(score: float) -> Recommendation:
    if score >= HIGH_CONFIDENCE_THRESHOLD:
        return Recommendation.HIGH_CONFIDENCE
    if score >= NEEDS_REVIEW_THRESHOLD:
        return Recommendation.NEEDS_REVIEW
    return Recommendation.LOW_CONFIDENCE


def calculate_confidence(
    source_agreement: Any,
    source_quality: Any,
    ai_confidence: Any,
    media_authenticity: Any = None,
) -> ConfidenceResult:
    """Combine the signals into one bounded score and a recommendation.

    Args:
        source_agreement: Fraction of stanced sources that support the claim
        source_quality: Mean tier weight of ranked sources
        ai_confidence: The model's self-reported confidence
        media_authenticity: 1 - fake probability, or None when no media was analyzed

    Returns:
        ConfidenceResult whose breakdown holds exactly the clamped values weighted
    """
    breakdown = {
        "sourceAgreement": clamp(source_agreement),
        "sourceQuality": clamp(source_quality),
        "aiConfidence": clamp(ai_confidence),
    }
    if media_authenticity is not None:
        breakdown["mediaAuthenticity"] = clamp(media_authenticity)
        weights = WEIGHTS_WITH_MEDIA
    else:
        weights = WEIGHTS_TEXT_ONLY

    score = sum(breakdown[name] * weight for name, weight in weights.items())
    score = clamp(round(score, 4))
    return ConfidenceResult(score=score, breakdown=breakdown, recommendation=recommend(score))


def source_agreement(sources: Iterable[SourceReference]) -> float:
    """Supporting share of sources that took a side; 0.5 when none did."""
    supports = contradicts = 0
    for source in sources:
        if source.stance == Stance.SUPPORTS:
            supports += 1
        elif source.stance == Stance.CONTRADICTS:
            contradicts += 1
    stanced = supports + contradicts
    return supports / stanced if stanced else DEFAULT_AGREEMENT


def source_quality(sources: Iterable[SourceReference]) -> float:
    """Mean tier weight over ranked sources; 0.3 when none are ranked."""
    weights = [s.weight for s in sources if s.weight is not None]
    return sum(weights) / len(weights) if weights else DEFAULT_QUALITY
