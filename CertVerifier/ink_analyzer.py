"""
ink_analyzer.py

Ink print quality heuristics from edge statistics.

Professionally printed text has crisp glyph edges and even ink density;
home prints and photocopies bleed and vary. Two signals are combined:

1. Edge sharpness: fraction of strong responses to a 3x3 Laplacian-style
   kernel over the grayscale image, scaled and clamped to 0..1.
2. Density consistency: variance of the mean brightness of evenly
   spaced sample windows over the flattened grayscale buffer.

Analysis is supplementary evidence: any failure yields a neutral
report instead of an exception.
"""

import logging
from typing import List

import cv2
import numpy as np

from CertVerifier import config
from CertVerifier.schemas import InkReport
from CertVerifier.utils import decode_image

logger = logging.getLogger(__name__)


def analyze_ink(raw: bytes) -> InkReport:
    """
    Compute the ink report for a raw image buffer.

    Returns:
        InkReport; the neutral default (``degraded=True``) on failure.
    """
    try:
        gray = np.asarray(decode_image(raw, "L"), dtype=np.uint8)

        sharpness = edge_sharpness(gray)
        consistency = density_consistency(gray)
        quality = (sharpness + consistency) / 2

        report = InkReport(
            quality=quality,
            bleeding=classify_bleeding(sharpness),
            consistency=consistency,
            sharpness=sharpness,
            print_method=classify_print_method(sharpness),
        )
    except Exception as e:
        logger.warning("Ink pattern analysis failed: %s", e)
        return neutral_ink_report()

    logger.debug(
        "Ink: quality=%.3f sharpness=%.3f bleeding=%s consistency=%.3f",
        report.quality,
        sharpness,
        report.bleeding,
        report.consistency,
    )
    return report


def edge_sharpness(gray: np.ndarray) -> float:
    """
    Scaled fraction of pixels whose edge response exceeds the threshold.

    The kernel response is saturated to 0..255 like any 8-bit filter, so
    only bright-side edges (ink-to-paper transitions) count.
    """
    kernel = np.array(config.EDGE_KERNEL, dtype=np.float32).reshape(3, 3)
    edges = cv2.filter2D(gray, -1, kernel)

    fraction = float(np.count_nonzero(edges > config.EDGE_PIXEL_THRESHOLD)) / edges.size
    return float(min(1.0, max(0.0, fraction * config.EDGE_SHARPNESS_GAIN)))


def sample_window_means(gray: np.ndarray) -> List[float]:
    flat = gray.reshape(-1).astype(np.float64)
    count = config.INK_SAMPLE_COUNT
    window = config.INK_SAMPLE_WINDOW

    means = []
    for i in range(count):
        offset = int(len(flat) / count * i)
        means.append(float(flat[offset:offset + window].mean()))
    return means


def density_consistency(gray: np.ndarray) -> float:
    """1 - variance/scale of the window means, floored at 0."""
    variance = float(np.var(sample_window_means(gray)))
    return max(0.0, 1.0 - variance / config.INK_VARIANCE_SCALE)


def classify_bleeding(sharpness: float) -> str:
    if sharpness < config.BLEEDING_HIGH_BELOW:
        return "high"
    if sharpness < config.BLEEDING_MEDIUM_BELOW:
        return "medium"
    return "low"


def classify_print_method(sharpness: float) -> str:
    return "professional" if sharpness > config.PROFESSIONAL_PRINT_SHARPNESS else "consumer"


def neutral_ink_report() -> InkReport:
    return InkReport(
        quality=config.INK_FALLBACK_SCORE,
        bleeding="unknown",
        consistency=config.INK_FALLBACK_SCORE,
        degraded=True,
    )
