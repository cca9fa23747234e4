"""Extraction of the trailing ```json block from a model answer.

The parser never raises: anything it cannot read falls back to an
UNVERIFIED verdict carrying the first 300 characters of the answer.
"""

import json
import math
import re

from kaeva.models import ParsedVerdict, VerdictLabel
from kaeva.utils.logging import get_component_logger

logger = get_component_logger("verdict_parser")

FALLBACK_EXPLANATION_LENGTH = 300
DEFAULT_CONFIDENCE = 0.5

_JSON_FENCE = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)


def fallback_verdict(text: str | None) -> ParsedVerdict:
    return ParsedVerdict(
        verdict=VerdictLabel.UNVERIFIED.value,
        confidence=DEFAULT_CONFIDENCE,
        explanation=(text or "")[:FALLBACK_EXPLANATION_LENGTH],
        sources=[],
    )


def _read_confidence(value) -> float:
    # Prompts ask for 0-100; anything above 1 is read as a percentage.
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        return DEFAULT_CONFIDENCE
    value = float(value)
    return value / 100 if value > 1 else value


def parse_verdict(text: str | None) -> ParsedVerdict:
    """Parse the structured verdict out of free-form model output.

    Args:
        text: Raw model answer, possibly None when verification did not run

    Returns:
        ParsedVerdict with defaults applied to every missing field
    """
    if not isinstance(text, str) or not text:
        return fallback_verdict(None)

    # The block is expected at the end; the last fence wins if the model quoted examples earlier.
    blocks = _JSON_FENCE.findall(text)
    if not blocks:
        logger.warning("Model answer has no ```json block, using fallback verdict")
        return fallback_verdict(text)

    try:
        payload = json.loads(blocks[-1].strip())
    except (json.JSONDecodeError, RecursionError) as e:
        logger.warning("Model answer has an unparseable ```json block: %s", e)
        return fallback_verdict(text)

    if not isinstance(payload, dict):
        logger.warning("Model ```json block is not an object, using fallback verdict")
        return fallback_verdict(text)

    verdict = payload.get("verdict")
    explanation = payload.get("explanation")
    sources = payload.get("sources")
    return ParsedVerdict(
        verdict=verdict if isinstance(verdict, str) and verdict else VerdictLabel.UNVERIFIED.value,
        confidence=_read_confidence(payload.get("confidence")),
        explanation=explanation if isinstance(explanation, str) else "",
        sources=sources if isinstance(sources, list) else [],
    )
