"""
config.py

Configuration module for the certificate verification pipeline.

Purpose:
--------
Contains every constant used across the module: recognition engine
settings, preprocessing parameters, forensic heuristics, scoring
weights and decision thresholds.

Design Principle:
-----------------
Configuration is isolated from business logic.
Recalibrating a threshold or a weight should not require editing
the analyzers or the scorer. Values are read at call time
(``config.X``), so tests and callers may override them at runtime.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# -----------------------------
# Recognition engine
# -----------------------------
OCR_BACKEND: str = os.getenv("CERT_OCR_BACKEND", "tesseract")  # tesseract | surya
OCR_LANGUAGES = [
    lang for lang in os.getenv("CERT_OCR_LANGUAGES", "eng+kor").split("+") if lang
]
OCR_LANG_DATA_DIR = os.getenv("CERT_OCR_LANG_DATA_DIR") or None
OCR_CACHE_DIR = os.getenv("CERT_OCR_CACHE_DIR") or None

TESSERACT_OEM = 1  # LSTM only
TESSERACT_PSM = 3  # Fully automatic page segmentation
PRESERVE_INTERWORD_SPACES = True

# -----------------------------
# Preprocessing
# -----------------------------
PREPROCESS_MAX_WIDTH = 2000
PREPROCESS_MAX_HEIGHT = 2000
CONTRAST_CUTOFF_PERCENT = 1
MEDIAN_WINDOW = 3
BINARIZE_THRESHOLD = 128

# -----------------------------
# Texture analysis
# -----------------------------
WATERMARK_STDDEV_BAND = (10.0, 30.0)  # open interval
WATERMARK_CHANNEL_SCORE = 0.33
WATERMARK_SCORE_THRESHOLD = 0.6
WATERMARK_QUALITY_BONUS = 0.3
TEXTURE_FALLBACK_SCORE = 0.5

# -----------------------------
# Ink analysis
# -----------------------------
EDGE_KERNEL = [-1, -1, -1, -1, 8, -1, -1, -1, -1]
EDGE_PIXEL_THRESHOLD = 128
EDGE_SHARPNESS_GAIN = 10.0
BLEEDING_HIGH_BELOW = 0.05
BLEEDING_MEDIUM_BELOW = 0.1
PROFESSIONAL_PRINT_SHARPNESS = 0.7
INK_SAMPLE_COUNT = 10
INK_SAMPLE_WINDOW = 100
INK_VARIANCE_SCALE = 10000.0
INK_FALLBACK_SCORE = 0.5

# -----------------------------
# Scoring
# -----------------------------
SCORE_WEIGHTS = {
    "ocr": 0.25,
    "data": 0.25,
    "texture": 0.25,
    "ink": 0.25,
}
REQUIRED_FIELDS = ("cert_number", "brand", "date")

# -----------------------------
# Decision
# -----------------------------
# The degraded/mock path of the wider product used 0.65 for the same call;
# only the full pipeline threshold lives here.
AUTHENTIC_THRESHOLD = 0.8
TEXT_CLARITY_THRESHOLD = 80.0

# -----------------------------
# Security
# -----------------------------
MAX_FILE_SIZE_MB = float(os.getenv("CERT_MAX_FILE_SIZE_MB", "20"))
ALLOWED_EXTENSIONS = [".png", ".jpg", ".jpeg", ".tiff", ".tif", ".bmp", ".webp"]

# -----------------------------
# Performance
# -----------------------------
BATCH_WORKERS = int(os.getenv("CERT_BATCH_WORKERS", "4"))
