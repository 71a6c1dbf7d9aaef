"""
utils.py

File I/O, validation, security checks and decoding helpers for the
verification pipeline.

Handles:
- Image file loading and format validation
- File path sanitization against path traversal
- File size enforcement
- Decoding raw image buffers into PIL Images
"""

import io
import logging
from pathlib import Path
from typing import Union

from PIL import Image

from CertVerifier import config

logger = logging.getLogger(__name__)


class ImageFileError(Exception):
    """Raised when file validation or image decoding fails."""

    pass


class ImageSecurityError(Exception):
    """Raised when a security check fails (e.g., path traversal)."""

    pass


def sanitize_path(file_path: Union[str, Path]) -> Path:
    """
    Validate and sanitize a file path.

    Rejects paths containing '..', symlinks, and anything that is not
    an existing regular file.

    Raises:
        ImageSecurityError: If path traversal is detected.
        ImageFileError: If file does not exist or is not a regular file.
    """
    raw = str(file_path)
    if ".." in Path(raw).parts:
        raise ImageSecurityError(f"Path traversal detected in: {raw}")

    path = Path(file_path)
    if path.is_symlink():
        raise ImageSecurityError(f"Symlinks are not allowed: {path}")

    path = path.resolve()
    if not path.exists():
        raise ImageFileError(f"File not found: {path}")

    if not path.is_file():
        raise ImageFileError(f"Not a regular file: {path}")

    return path


def validate_file(file_path: Path) -> None:
    """
    Validate file extension and size.

    Raises:
        ImageFileError: If validation fails.
    """
    ext = file_path.suffix.lower()
    if ext not in config.ALLOWED_EXTENSIONS:
        raise ImageFileError(
            f"Unsupported file extension '{ext}'. "
            f"Allowed: {config.ALLOWED_EXTENSIONS}"
        )

    size = file_path.stat().st_size
    if size == 0:
        raise ImageFileError(f"File is empty: {file_path}")

    size_mb = size / (1024 * 1024)
    if size_mb > config.MAX_FILE_SIZE_MB:
        raise ImageFileError(
            f"File too large: {size_mb:.1f}MB exceeds "
            f"limit of {config.MAX_FILE_SIZE_MB}MB"
        )


def load_image_bytes(file_path: Union[str, Path]) -> bytes:
    """
    Read an image file into a raw byte buffer after path and file checks.

    Returns:
        The undecoded file contents.

    Raises:
        ImageFileError: If validation fails.
        ImageSecurityError: If path validation fails.
    """
    path = sanitize_path(file_path)
    validate_file(path)

    logger.info("Loading file: %s (type: %s)", path.name, path.suffix.lower())
    return path.read_bytes()


def decode_image(raw: bytes, mode: str = "RGB") -> Image.Image:
    """
    Decode a raw image buffer into a fully loaded PIL Image in ``mode``.

    Pillow signals damaged data with several unrelated exception types
    (``SyntaxError`` for broken PNG chunks, ``DecompressionBombError``
    for oversized headers, ``OSError`` for truncation); all of them are
    reported as ImageFileError.

    Raises:
        ImageFileError: If the buffer is empty or not a readable raster.
    """
    if not raw:
        raise ImageFileError("Image buffer is empty")

    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.load()
            return img.convert(mode)
    except Exception as e:
        raise ImageFileError(f"Cannot decode image buffer: {e}") from e
