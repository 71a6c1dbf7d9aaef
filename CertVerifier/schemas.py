"""
schemas.py

Pydantic models for the certificate verification pipeline.

Every stage hands the next one a validated model: recognized text from
the engine, extracted fields, the two forensic reports, the weighted
score, and the final VerificationResult consumed by the service layer.
"""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class BoundingBox(BaseModel):
    """Axis-aligned pixel rectangle of a recognized line."""

    x0: float = Field(..., description="Left edge")
    y0: float = Field(..., description="Top edge")
    x1: float = Field(..., description="Right edge")
    y1: float = Field(..., description="Bottom edge")


class RecognizedWord(BaseModel):
    """Single recognized word with its confidence."""

    text: str = Field(..., description="Recognized text for this word")
    confidence: float = Field(
        ..., ge=0.0, le=100.0, description="Recognition confidence (0 to 100)"
    )


class RecognizedLine(BaseModel):
    """A line of recognized text and its bounding box."""

    text: str = Field(..., description="Full line text")
    confidence: float = Field(
        ..., ge=0.0, le=100.0, description="Aggregated line confidence"
    )
    bbox: BoundingBox = Field(..., description="Line bounding box")


class RecognizedText(BaseModel):
    """Engine output for one image."""

    text: str = Field(default="", description="Full text, lines joined by newline")
    confidence: float = Field(
        default=0.0, ge=0.0, le=100.0, description="Overall confidence (0 to 100)"
    )
    lines: List[RecognizedLine] = Field(default_factory=list)
    words: List[RecognizedWord] = Field(default_factory=list)


class CertificateFields(BaseModel):
    """Structured certificate attributes. Each one is absent unless a rule fired."""

    cert_number: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    date: Optional[str] = None
    serial_number: Optional[str] = None
    issuer: Optional[str] = None

    def present_fields(self) -> List[str]:
        """Names of the fields that were extracted."""
        return [name for name, value in self.model_dump().items() if value]


class TextureReport(BaseModel):
    """Paper texture heuristics computed from channel statistics."""

    quality_score: float = Field(..., ge=0.0, le=1.0)
    has_watermark: bool = False
    color_consistency: float = Field(..., ge=0.0, le=1.0)
    brightness: Optional[float] = Field(
        default=None, description="Mean of the three channel means"
    )
    contrast: Optional[float] = Field(
        default=None, description="Largest channel standard deviation"
    )
    degraded: bool = Field(
        default=False, description="True when analysis failed and defaults were used"
    )


class InkReport(BaseModel):
    """Ink print quality heuristics computed from edge statistics."""

    quality: float = Field(..., ge=0.0, le=1.0)
    bleeding: Literal["low", "medium", "high", "unknown"] = "unknown"
    consistency: float = Field(..., ge=0.0, le=1.0)
    sharpness: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    print_method: Optional[Literal["professional", "consumer"]] = None
    degraded: bool = Field(
        default=False, description="True when analysis failed and defaults were used"
    )


class ScoreComponents(BaseModel):
    """Per-evidence scores, each already normalized to 0..1."""

    ocr: float = Field(..., ge=0.0, le=1.0)
    data: float = Field(..., ge=0.0, le=1.0)
    texture: float = Field(..., ge=0.0, le=1.0)
    ink: float = Field(..., ge=0.0, le=1.0)


class AuthenticityScore(BaseModel):
    """Weighted combination of all evidence."""

    overall: float = Field(..., ge=0.0, le=1.0)
    components: ScoreComponents


class VerificationDetails(BaseModel):
    """Human-facing summary of the forensic signals."""

    has_watermark: bool
    paper_quality: float = Field(..., ge=0.0, le=1.0)
    ink_quality: float = Field(..., ge=0.0, le=1.0)
    text_clarity: Literal["high", "low"]


class VerificationResult(BaseModel):
    """Final output handed to the service layer."""

    success: bool
    text: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    fields: CertificateFields = Field(default_factory=CertificateFields)
    texture: Optional[TextureReport] = None
    ink: Optional[InkReport] = None
    authenticity: Optional[AuthenticityScore] = None
    is_authentic: bool = False
    details: Optional[VerificationDetails] = None
    error: Optional[str] = None
    warnings: List[str] = Field(
        default_factory=list, description="Non-fatal degradations during the call"
    )


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    ERROR = "error"
    TERMINATED = "terminated"


class EngineStatus(BaseModel):
    """Snapshot of the recognition engine lifecycle."""

    state: EngineState
    backend: str
    languages: List[str] = Field(default_factory=list)
    ready: bool = False
