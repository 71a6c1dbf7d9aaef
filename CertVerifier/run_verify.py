"""
Verify certificate-of-authenticity photos and print one JSON object
mapping each image path to its verification result.

Usage:
    python -m CertVerifier.run_verify path/to/certificate.jpg
    python -m CertVerifier.run_verify a.jpg b.png --backend surya
    python -m CertVerifier.run_verify cert.png --languages eng+kor --verbose
"""

import argparse
import json
import logging
import signal
import sys
from typing import List, Optional

from CertVerifier.engine import open_engine
from CertVerifier.schemas import VerificationResult
from CertVerifier.utils import ImageFileError, ImageSecurityError, load_image_bytes
from CertVerifier.verification_pipeline import verify_batch

logger = logging.getLogger(__name__)


def _raise_system_exit(signum, frame):
    raise SystemExit(128 + signum)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Verify photographed certificates of authenticity."
    )
    parser.add_argument("images", nargs="+", help="Image files (PNG, JPEG, TIFF, BMP, WEBP)")
    parser.add_argument("--backend", default=None, help="Recognition backend: tesseract | surya")
    parser.add_argument(
        "--languages",
        default=None,
        help="Recognition languages joined by '+', e.g. eng+kor",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    raws = []
    for path in args.images:
        try:
            raws.append(load_image_bytes(path))
        except (ImageFileError, ImageSecurityError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2

    languages = args.languages.split("+") if args.languages else None

    # External termination unwinds through the engine scope below
    previous_handler = signal.signal(signal.SIGTERM, _raise_system_exit)
    try:
        with open_engine(backend=args.backend, languages=languages) as engine:
            results: List[VerificationResult] = verify_batch(raws, engine)
    finally:
        # None means the handler was installed outside Python
        if previous_handler is not None:
            signal.signal(signal.SIGTERM, previous_handler)

    report = {
        path: result.model_dump(mode="json")
        for path, result in zip(args.images, results)
    }
    print(json.dumps(report, indent=2, ensure_ascii=False))

    return 0 if all(r.success for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
