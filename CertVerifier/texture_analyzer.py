"""
texture_analyzer.py

Paper texture heuristics from per-channel colour statistics.

Genuine certificate stock tends to have a neutral, even colour and the
faint periodic variation of an embedded watermark. Both are
approximated from the mean and standard deviation of the R, G and B
channels; this is a proxy, not watermark decoding.

Analysis is supplementary evidence: any failure yields a neutral
report instead of an exception.
"""

import logging
from typing import Sequence

import numpy as np

from CertVerifier import config
from CertVerifier.schemas import TextureReport
from CertVerifier.utils import decode_image

logger = logging.getLogger(__name__)


def analyze_texture(raw: bytes) -> TextureReport:
    """
    Compute the paper texture report for a raw image buffer.

    Returns:
        TextureReport; the neutral default (``degraded=True``) on failure.
    """
    try:
        means, stds = channel_stats(raw)
        consistency = color_consistency(means)
        has_watermark = detect_watermark(stds)
        quality = texture_quality(consistency, has_watermark)

        report = TextureReport(
            quality_score=quality,
            has_watermark=has_watermark,
            color_consistency=consistency,
            brightness=float(np.mean(means)),
            contrast=float(max(stds)),
        )
    except Exception as e:
        logger.warning("Paper texture analysis failed: %s", e)
        return neutral_texture_report()

    logger.debug(
        "Texture: quality=%.3f watermark=%s consistency=%.3f",
        report.quality_score,
        report.has_watermark,
        report.color_consistency,
    )
    return report


def channel_stats(raw: bytes):
    """Per-channel (R, G, B) means and standard deviations."""
    arr = np.asarray(decode_image(raw, "RGB"), dtype=np.float64)
    pixels = arr.reshape(-1, 3)
    return pixels.mean(axis=0).tolist(), pixels.std(axis=0).tolist()


def color_consistency(means: Sequence[float]) -> float:
    r, g, b = means
    spread = abs(r - g) + abs(g - b) + abs(b - r)
    return float(min(1.0, max(0.0, 1.0 - spread / (3 * 255))))


def detect_watermark(stds: Sequence[float]) -> bool:
    """
    Award a share for every channel whose stddev falls strictly inside
    the watermark band; the image has a watermark when the sum clears
    the threshold.
    """
    low, high = config.WATERMARK_STDDEV_BAND
    score = sum(config.WATERMARK_CHANNEL_SCORE for s in stds if low < s < high)
    return score > config.WATERMARK_SCORE_THRESHOLD


def texture_quality(consistency: float, has_watermark: bool) -> float:
    bonus = config.WATERMARK_QUALITY_BONUS
    quality = (consistency + (bonus if has_watermark else 0.0)) / (1.0 + bonus)
    return float(min(1.0, max(0.0, quality)))


def neutral_texture_report() -> TextureReport:
    return TextureReport(
        quality_score=config.TEXTURE_FALLBACK_SCORE,
        has_watermark=False,
        color_consistency=config.TEXTURE_FALLBACK_SCORE,
        degraded=True,
    )
