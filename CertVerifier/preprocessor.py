"""
preprocessor.py

Image preprocessing pipeline that prepares a photographed certificate
for text recognition.

Steps run in a fixed order: grayscale, contrast stretch, sharpen,
median denoise, resize-to-fit, binarization. The pipeline works with
PIL Images for colour and filter steps, converting to OpenCV format
for the median filter, resize and threshold.

Preprocessing is best effort: if any step fails the original buffer is
returned unchanged and recognition runs on the raw photo.
"""

import logging
from typing import Optional, Tuple

import cv2
import numpy as np
from PIL import Image, ImageFilter, ImageOps

from CertVerifier import config
from CertVerifier.utils import decode_image

logger = logging.getLogger(__name__)


def preprocess_image(
    raw: bytes,
    max_size: Optional[Tuple[int, int]] = None,
    threshold: Optional[int] = None,
) -> bytes:
    """
    Run the preprocessing pipeline on a raw image buffer.

    Args:
        raw: Encoded image bytes as supplied by the caller.
        max_size: Override (width, height) bounding box for resizing.
        threshold: Override the binarization threshold.

    Returns:
        PNG-encoded binarized grayscale image, or ``raw`` itself when
        any step fails.
    """
    if max_size is None:
        max_size = (config.PREPROCESS_MAX_WIDTH, config.PREPROCESS_MAX_HEIGHT)
    if threshold is None:
        threshold = config.BINARIZE_THRESHOLD

    try:
        image = decode_image(raw)

        gray = to_grayscale(image)
        gray = normalize_contrast(gray)
        gray = sharpen(gray)
        logger.debug("Grayscale, contrast and sharpening done")

        arr = np.array(gray)
        arr = denoise(arr)
        arr = resize_to_fit(arr, max_size)
        arr = binarize(arr, threshold)
        logger.debug("Denoise, resize and binarization done")

        return encode_png(arr)
    except Exception as e:
        logger.warning("Preprocessing failed, using original image: %s", e)
        return raw


def to_grayscale(image: Image.Image) -> Image.Image:
    return image.convert("L")


def normalize_contrast(image: Image.Image) -> Image.Image:
    """
    Stretch the histogram so the darkest and brightest pixels span 0..255.

    A small percentage is clipped at each end so that a few specular
    highlights do not defeat the stretch.
    """
    return ImageOps.autocontrast(image, cutoff=config.CONTRAST_CUTOFF_PERCENT)


def sharpen(image: Image.Image) -> Image.Image:
    return image.filter(ImageFilter.SHARPEN)


def denoise(arr: np.ndarray) -> np.ndarray:
    """Median filter, removes salt-and-pepper noise from camera sensors."""
    return cv2.medianBlur(arr, config.MEDIAN_WINDOW)


def resize_to_fit(arr: np.ndarray, max_size: Tuple[int, int]) -> np.ndarray:
    """
    Shrink the image to fit inside ``max_size`` keeping the aspect ratio.

    Images already inside the box are returned as-is; never enlarges.
    """
    max_w, max_h = max_size
    h, w = arr.shape[:2]

    scale = min(max_w / w, max_h / h)
    if scale >= 1.0:
        return arr

    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))

    logger.info("Downscaling image from %dx%d to %dx%d", w, h, new_w, new_h)
    return cv2.resize(arr, (new_w, new_h), interpolation=cv2.INTER_AREA)


def binarize(arr: np.ndarray, threshold: int) -> np.ndarray:
    """Pixels at or above ``threshold`` become white, the rest black."""
    # cv2 THRESH_BINARY keeps values strictly greater than the threshold
    _, binary = cv2.threshold(arr, threshold - 1, 255, cv2.THRESH_BINARY)
    return binary


def encode_png(arr: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", arr)
    if not ok:
        raise ValueError("PNG encoding failed")
    return buf.tobytes()
