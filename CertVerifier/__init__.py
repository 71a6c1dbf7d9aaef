"""
Certificate Verifier

Authenticates a photographed certificate of authenticity for a luxury
good. Recognizes the printed text, extracts the certificate fields,
runs paper texture and ink forensics, and combines everything into an
explainable confidence score and an authenticity decision.

Public API:
    open_engine          - Scoped recognition engine (context manager)
    RecognitionEngine    - Serialized owner of a recognition backend
    verify_certificate   - Verify one raw image buffer
    verify_file          - Verify an image file
    verify_batch         - Verify several buffers concurrently
    VerificationResult   - Structured result model
"""

from CertVerifier.engine import (
    EngineInitializationError,
    EngineShutdownError,
    RecognitionEngine,
    RecognitionError,
    open_engine,
)
from CertVerifier.schemas import CertificateFields, VerificationResult
from CertVerifier.verification_pipeline import (
    verify_batch,
    verify_certificate,
    verify_file,
)

__all__ = [
    "open_engine",
    "RecognitionEngine",
    "RecognitionError",
    "EngineInitializationError",
    "EngineShutdownError",
    "verify_certificate",
    "verify_file",
    "verify_batch",
    "VerificationResult",
    "CertificateFields",
]
