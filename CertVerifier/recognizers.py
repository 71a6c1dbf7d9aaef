"""
recognizers.py

Text recognition backends behind a single capability interface.

- TesseractRecognizer: pytesseract over the Tesseract LSTM engine,
  configured with a language set (Latin + Hangul by default) and an
  optional language-data directory.
- SuryaRecognizer: Surya's detection + recognition predictors, loaded
  lazily on first use.

Backends are not thread-safe; RecognitionEngine owns one and serializes
access to it.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import pytesseract
from PIL import Image

from CertVerifier import config
from CertVerifier.schemas import (
    BoundingBox,
    RecognizedLine,
    RecognizedText,
    RecognizedWord,
)

logger = logging.getLogger(__name__)


class TextRecognizer(ABC):
    """Uniform interface every recognition backend implements."""

    name: str = "base"

    @abstractmethod
    def load(self) -> None:
        """Acquire models / verify the engine is usable. Raises on failure."""
        ...

    @abstractmethod
    def recognize(self, image: Image.Image) -> RecognizedText:
        """Recognize text in a decoded image."""
        ...

    def release(self) -> None:
        """Free backend resources. Safe to call on an unloaded backend."""
        return None


class TesseractRecognizer(TextRecognizer):
    """
    Tesseract via pytesseract.

    ``load()`` checks the binary and that every configured language has
    its traineddata installed, so a missing language fails at
    initialization rather than producing empty text.
    """

    name = "tesseract"

    def __init__(
        self,
        languages: Optional[List[str]] = None,
        lang_data_dir: Optional[str] = None,
    ):
        self.languages = list(languages or config.OCR_LANGUAGES)
        self.lang_data_dir = lang_data_dir
        self._version = None

    def _tessdata_args(self) -> str:
        if self.lang_data_dir:
            return f'--tessdata-dir "{self.lang_data_dir}"'
        return ""

    def build_config(self) -> str:
        parts = [f"--oem {config.TESSERACT_OEM}", f"--psm {config.TESSERACT_PSM}"]
        if config.PRESERVE_INTERWORD_SPACES:
            parts.append("-c preserve_interword_spaces=1")
        tessdata = self._tessdata_args()
        if tessdata:
            parts.append(tessdata)
        return " ".join(parts)

    def load(self) -> None:
        self._version = pytesseract.get_tesseract_version()
        available = set(pytesseract.get_languages(config=self._tessdata_args()))
        missing = [lang for lang in self.languages if lang not in available]
        if missing:
            raise RuntimeError(
                f"Tesseract language data missing for: {', '.join(missing)}"
            )
        logger.info(
            "Tesseract %s ready with languages: %s",
            self._version,
            "+".join(self.languages),
        )

    def recognize(self, image: Image.Image) -> RecognizedText:
        data = pytesseract.image_to_data(
            image,
            lang="+".join(self.languages),
            config=self.build_config(),
            output_type=pytesseract.Output.DICT,
        )
        return parse_tesseract_data(data)

    def release(self) -> None:
        # Tesseract runs as a subprocess per call; nothing is held between calls.
        self._version = None


def parse_tesseract_data(data: Dict[str, list]) -> RecognizedText:
    """
    Turn pytesseract ``image_to_data`` output into RecognizedText.

    Non-word rows (conf -1) and blank words are dropped. Words are
    grouped into lines by (block, paragraph, line) in reading order.
    """
    words: List[RecognizedWord] = []
    grouped: Dict[Tuple[int, int, int], List[Tuple[str, float, BoundingBox]]] = {}

    for i, raw_text in enumerate(data.get("text", [])):
        text = str(raw_text).strip()
        conf = float(data["conf"][i])
        if not text or conf < 0:
            continue

        conf = min(conf, 100.0)
        left, top = float(data["left"][i]), float(data["top"][i])
        box = BoundingBox(
            x0=left,
            y0=top,
            x1=left + float(data["width"][i]),
            y1=top + float(data["height"][i]),
        )
        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        grouped.setdefault(key, []).append((text, conf, box))
        words.append(RecognizedWord(text=text, confidence=conf))

    lines = []
    for entries in grouped.values():
        lines.append(
            RecognizedLine(
                text=" ".join(text for text, _, _ in entries),
                confidence=sum(conf for _, conf, _ in entries) / len(entries),
                bbox=BoundingBox(
                    x0=min(box.x0 for _, _, box in entries),
                    y0=min(box.y0 for _, _, box in entries),
                    x1=max(box.x1 for _, _, box in entries),
                    y1=max(box.y1 for _, _, box in entries),
                ),
            )
        )

    confidence = sum(w.confidence for w in words) / len(words) if words else 0.0

    return RecognizedText(
        text="\n".join(line.text for line in lines),
        confidence=confidence,
        lines=lines,
        words=words,
    )


class SuryaRecognizer(TextRecognizer):
    """
    Wrapper around Surya's detection and recognition predictors.

    Models are loaded lazily on first use and cached for reuse.
    Surya reports line-level text, so each line's words inherit the
    line confidence.
    """

    name = "surya"

    def __init__(self, cache_dir: Optional[str] = None):
        self.cache_dir = cache_dir
        self._det_predictor = None
        self._rec_predictor = None
        self._models_loaded = False

    def load(self) -> None:
        if self._models_loaded:
            return

        if self.cache_dir:
            # Read by surya's settings at import time
            os.environ.setdefault("MODEL_CACHE_DIR", self.cache_dir)

        try:
            from surya.detection import DetectionPredictor
            from surya.foundation import FoundationPredictor
            from surya.recognition import RecognitionPredictor
        except ImportError:
            raise ImportError(
                "surya-ocr is required. Install it with: pip install 'cert-verifier[surya]'"
            )

        logger.info("Loading Surya models...")
        self._det_predictor = DetectionPredictor()
        self._rec_predictor = RecognitionPredictor(FoundationPredictor())
        self._models_loaded = True
        logger.info("Surya models loaded successfully")

    def recognize(self, image: Image.Image) -> RecognizedText:
        self.load()
        predictions = self._rec_predictor(
            [image.convert("RGB")], det_predictor=self._det_predictor
        )
        return parse_surya_result(predictions[0])

    def release(self) -> None:
        self._det_predictor = None
        self._rec_predictor = None
        self._models_loaded = False
        logger.info("Surya models released")


def parse_surya_result(result) -> RecognizedText:
    """Map a Surya OCRResult onto RecognizedText, scaling confidences to 0..100."""
    lines: List[RecognizedLine] = []
    words: List[RecognizedWord] = []

    for text_line in result.text_lines:
        text = text_line.text.strip()
        if not text:
            continue

        confidence = float(getattr(text_line, "confidence", 0.0) or 0.0)
        confidence = max(0.0, min(confidence, 1.0)) * 100.0
        x1, y1, x2, y2 = getattr(text_line, "bbox", [0, 0, 0, 0])

        lines.append(
            RecognizedLine(
                text=text,
                confidence=confidence,
                bbox=BoundingBox(x0=float(x1), y0=float(y1), x1=float(x2), y1=float(y2)),
            )
        )
        words.extend(
            RecognizedWord(text=token, confidence=confidence) for token in text.split()
        )

    return RecognizedText(
        text="\n".join(line.text for line in lines),
        confidence=_compute_text_confidence(lines),
        lines=lines,
        words=words,
    )


def _compute_text_confidence(lines: List[RecognizedLine]) -> float:
    """
    Overall confidence as a weighted average of line confidences.
    Weight is proportional to the number of characters in each line.
    """
    if not lines:
        return 0.0

    total_chars = sum(len(line.text) for line in lines)
    if total_chars == 0:
        return 0.0

    weighted_sum = sum(line.confidence * len(line.text) for line in lines)
    return weighted_sum / total_chars


def build_recognizer(
    name: Optional[str] = None,
    languages: Optional[List[str]] = None,
    lang_data_dir: Optional[str] = None,
    cache_dir: Optional[str] = None,
) -> TextRecognizer:
    """Create a backend by name (``tesseract`` or ``surya``)."""
    name = (name or config.OCR_BACKEND).lower()

    if name == "tesseract":
        return TesseractRecognizer(
            languages=languages,
            lang_data_dir=lang_data_dir or config.OCR_LANG_DATA_DIR,
        )
    if name == "surya":
        return SuryaRecognizer(cache_dir=cache_dir or config.OCR_CACHE_DIR)

    raise ValueError(f"Unknown recognition backend: {name!r}")
