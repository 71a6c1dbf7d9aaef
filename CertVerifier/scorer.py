"""
scorer.py

Weighted authenticity score combining OCR confidence, field
completeness, paper texture and ink quality.

Weights and required fields come from config so the score can be
recalibrated without code changes; the weights must sum to 1.0 so that
``overall`` stays on the same 0..1 scale as its components.
"""

import logging
import math
from typing import Dict, Optional

from CertVerifier import config
from CertVerifier.schemas import (
    AuthenticityScore,
    CertificateFields,
    InkReport,
    ScoreComponents,
    TextureReport,
)

logger = logging.getLogger(__name__)

COMPONENTS = ("ocr", "data", "texture", "ink")


def validate_weights(weights: Dict[str, float]) -> None:
    """
    Raises:
        ValueError: If a component weight is missing, negative, or the
            weights do not sum to 1.0.
    """
    missing = [name for name in COMPONENTS if name not in weights]
    if missing:
        raise ValueError(f"Missing score weights: {missing}")

    if any(weights[name] < 0 for name in COMPONENTS):
        raise ValueError(f"Score weights must be non-negative: {weights}")

    total = sum(weights[name] for name in COMPONENTS)
    if not math.isclose(total, 1.0, abs_tol=1e-9):
        raise ValueError(f"Score weights must sum to 1.0, got {total}")


def data_completeness(fields: CertificateFields) -> float:
    """Share of the required fields that were extracted."""
    required = config.REQUIRED_FIELDS
    if not required:
        return 1.0
    present = [name for name in required if getattr(fields, name, None)]
    return len(present) / len(required)


def _clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def score_authenticity(
    ocr_confidence: float,
    fields: CertificateFields,
    texture: TextureReport,
    ink: InkReport,
    weights: Optional[Dict[str, float]] = None,
) -> AuthenticityScore:
    """
    Combine all evidence into one AuthenticityScore.

    Args:
        ocr_confidence: Recognition confidence on the 0..100 scale.
        fields: Extracted certificate fields.
        texture: Paper texture report.
        ink: Ink report.
        weights: Override ``config.SCORE_WEIGHTS``.
    """
    if weights is None:
        weights = config.SCORE_WEIGHTS
    validate_weights(weights)

    components = ScoreComponents(
        ocr=_clamp01(ocr_confidence / 100.0),
        data=data_completeness(fields),
        texture=_clamp01(texture.quality_score),
        ink=_clamp01(ink.quality),
    )

    overall = _clamp01(
        sum(weights[name] * getattr(components, name) for name in COMPONENTS)
    )

    logger.debug(
        "Score: overall=%.3f ocr=%.3f data=%.3f texture=%.3f ink=%.3f",
        overall,
        components.ocr,
        components.data,
        components.texture,
        components.ink,
    )
    return AuthenticityScore(overall=overall, components=components)
