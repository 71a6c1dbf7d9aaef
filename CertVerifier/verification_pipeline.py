"""
verification_pipeline.py

Main orchestrator for certificate verification.

Coordinates the full pipeline:
preprocess -> recognize -> extract fields -> texture + ink -> score.

Text evidence is essential: if recognition fails the call returns a
failed result without running the forensic stages. Preprocessing and
the two analyzers are supplementary; their failures degrade the result
(recorded in ``warnings``) but never abort it.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Sequence, Union

from CertVerifier import config
from CertVerifier.engine import RecognitionEngine, RecognitionError
from CertVerifier.field_extractor import extract_fields
from CertVerifier.ink_analyzer import analyze_ink
from CertVerifier.preprocessor import preprocess_image
from CertVerifier.schemas import VerificationDetails, VerificationResult
from CertVerifier.scorer import score_authenticity
from CertVerifier.texture_analyzer import analyze_texture
from CertVerifier.utils import load_image_bytes

logger = logging.getLogger(__name__)


def verify_certificate(raw: bytes, engine: RecognitionEngine) -> VerificationResult:
    """
    Verify one photographed certificate.

    Args:
        raw: Encoded image bytes.
        engine: Shared recognition engine.

    Returns:
        VerificationResult. ``success`` is False only when recognition
        failed; ``error`` then holds the cause.
    """
    warnings: List[str] = []

    # 1. Preprocess for recognition (falls back to the raw buffer)
    preprocessed = preprocess_image(raw)
    if preprocessed is raw:
        warnings.append("Preprocessing failed; recognized the original image")

    # 2. Recognize text (fatal on failure)
    try:
        recognized = engine.recognize(preprocessed)
    except RecognitionError as e:
        logger.error("Certificate verification failed: %s", e)
        return VerificationResult(
            success=False,
            is_authentic=False,
            error=str(e) or e.__class__.__name__,
            warnings=warnings,
        )

    # 3. Extract structured fields
    fields = extract_fields(recognized.text)

    # 4. Forensic analyses on the raw image, independently
    with ThreadPoolExecutor(max_workers=2) as executor:
        texture_future = executor.submit(analyze_texture, raw)
        ink_future = executor.submit(analyze_ink, raw)
        texture = texture_future.result()
        ink = ink_future.result()

    if texture.degraded:
        warnings.append("Paper texture analysis failed; neutral score used")
    if ink.degraded:
        warnings.append("Ink analysis failed; neutral score used")

    # 5. Score and decide
    authenticity = score_authenticity(recognized.confidence, fields, texture, ink)
    is_authentic = authenticity.overall > config.AUTHENTIC_THRESHOLD

    details = VerificationDetails(
        has_watermark=texture.has_watermark,
        paper_quality=texture.quality_score,
        ink_quality=ink.quality,
        text_clarity=(
            "high" if recognized.confidence > config.TEXT_CLARITY_THRESHOLD else "low"
        ),
    )

    logger.info(
        "Certificate verified: overall=%.3f authentic=%s fields=%s warnings=%d",
        authenticity.overall,
        is_authentic,
        fields.present_fields(),
        len(warnings),
    )

    return VerificationResult(
        success=True,
        text=recognized.text,
        confidence=recognized.confidence,
        fields=fields,
        texture=texture,
        ink=ink,
        authenticity=authenticity,
        is_authentic=is_authentic,
        details=details,
        warnings=warnings,
    )


def verify_file(
    file_path: Union[str, Path], engine: RecognitionEngine
) -> VerificationResult:
    """Load an image file through the validated loader and verify it."""
    logger.info("Verifying certificate image: %s", file_path)
    return verify_certificate(load_image_bytes(file_path), engine)


def verify_batch(
    raws: Sequence[bytes],
    engine: RecognitionEngine,
    max_workers: Optional[int] = None,
) -> List[VerificationResult]:
    """
    Verify several images concurrently.

    Preprocessing and forensic analysis run in parallel; the engine
    serializes recognition. Results are returned in input order.
    """
    if not raws:
        return []

    if max_workers is None:
        max_workers = config.BATCH_WORKERS

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        return list(executor.map(lambda raw: verify_certificate(raw, engine), raws))
