"""
field_extractor.py

Rule-based extraction of certificate fields from recognized text.

Each field is driven by an ordered list of rules evaluated top to
bottom; the first rule that matches wins and later rules are never
tried. Rules are plain data (tag + compiled pattern + capture group) so
they can be listed, reordered or extended without touching the
extraction code.

Supported labels are English and Korean, matching the default
recognition language set.
"""

import logging
import re
import unicodedata
from typing import List, NamedTuple, Optional, Pattern, Sequence, Tuple

from CertVerifier.schemas import CertificateFields

logger = logging.getLogger(__name__)


class PatternRule(NamedTuple):
    tag: str
    pattern: Pattern
    group: int = 1


def _rule(tag: str, regex: str, group: int = 1, flags: int = re.IGNORECASE) -> PatternRule:
    return PatternRule(tag, re.compile(regex, flags), group)


# Structured number first, then labelled prefixes. Labelled values must
# contain a digit so headings like "Certificate of Authenticity" do not match.
CERT_NUMBER_RULES: List[PatternRule] = [
    _rule("structured", r"CERT[-\s]?\d{4}[-\s]?\d{6}", group=0),
    _rule(
        "certificate_label",
        r"Certificate\s*(?:No\.?|Number)?\s*#?\s*:?\s*([A-Z0-9-]*\d[A-Z0-9-]*)",
    ),
    _rule("korean_label", r"인증(?:서)?\s*번호\s*:?\s*([A-Z0-9-]*\d[A-Z0-9-]*)"),
]

# List order is precedence: the first brand found in the text wins.
BRANDS: List[str] = [
    "Chanel",
    "Louis Vuitton",
    "Hermès",
    "Hermes",
    "Gucci",
    "Rolex",
    "Cartier",
    "Prada",
    "Dior",
    "샤넬",
    "루이비통",
    "에르메스",
    "구찌",
    "롤렉스",
]

DATE_RULES: List[PatternRule] = [
    _rule("iso", r"(?<!\d)\d{4}[-/.]\d{1,2}[-/.]\d{1,2}(?!\d)", group=0),
    _rule("day_first", r"(?<!\d)\d{1,2}[-/.]\d{1,2}[-/.]\d{4}(?!\d)", group=0),
    _rule(
        "month_name",
        r"\b(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s+\d{1,2},?\s+\d{4}",
        group=0,
    ),
    _rule("korean", r"\d{4}\s*년\s*\d{1,2}\s*월\s*\d{1,2}\s*일", group=0),
]

SERIAL_RULES: List[PatternRule] = [
    _rule("serial_label", r"Serial\s*(?:No\.?|Number)?\s*#?\s*:?\s*([A-Z0-9]+)"),
    _rule("sn_label", r"S/N\s*:?\s*([A-Z0-9]+)"),
    _rule("korean_label", r"일련\s*번호\s*:?\s*([A-Z0-9]+)"),
]

MODEL_KEYWORDS: List[str] = ["model", "style", "모델", "스타일"]

ISSUER_RULES: List[PatternRule] = [
    _rule("issued_by", r"Issued\s+by\s*:?\s*(.+)"),
    _rule("certified_by", r"Certified\s+by\s*:?\s*(.+)"),
    _rule("korean_issuer", r"발행처\s*:?\s*(.+)"),
]

_TOKEN_SPLIT = re.compile(r"[:\s]+")
_NON_ID_CHARS = re.compile(r"[^A-Za-z0-9-]")


def first_match(rules: Sequence[PatternRule], text: str) -> Optional[Tuple[str, str]]:
    """
    Return ``(tag, value)`` for the first rule whose pattern matches.

    A match whose captured value is blank does not count, and the next
    rule is tried.
    """
    for rule in rules:
        match = rule.pattern.search(text)
        if not match:
            continue
        value = (match.group(rule.group) or "").strip()
        if value:
            return rule.tag, value
    return None


def strip_diacritics(text: str) -> str:
    """Drop combining accents (è -> e). Hangul syllables are left intact."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return unicodedata.normalize("NFC", stripped)


def extract_cert_number(text: str) -> Optional[str]:
    hit = first_match(CERT_NUMBER_RULES, text)
    if hit is None:
        return None
    value = _NON_ID_CHARS.sub("", hit[1])
    return value or None


def extract_brand(text: str) -> Optional[str]:
    haystack = text.casefold()
    for brand in BRANDS:
        if brand.casefold() in haystack:
            return strip_diacritics(brand)
    return None


def extract_date(text: str) -> Optional[str]:
    hit = first_match(DATE_RULES, text)
    return hit[1] if hit else None


def extract_serial_number(text: str) -> Optional[str]:
    hit = first_match(SERIAL_RULES, text)
    return hit[1] if hit else None


def extract_model(text: str) -> Optional[str]:
    """
    Scan line by line for a model keyword and take the tokens after it.

    The first line that yields a non-empty value wins.
    """
    for line in text.splitlines():
        lowered = line.casefold()
        for keyword in MODEL_KEYWORDS:
            if keyword not in lowered:
                continue

            parts = [p for p in _TOKEN_SPLIT.split(line) if p]
            index = next(
                (i for i, part in enumerate(parts) if keyword in part.casefold()), -1
            )
            if 0 <= index < len(parts) - 1:
                return " ".join(parts[index + 1:])
    return None


def extract_issuer(text: str) -> Optional[str]:
    hit = first_match(ISSUER_RULES, text)
    return hit[1] if hit else None


def extract_fields(text: str) -> CertificateFields:
    """
    Parse recognized text into CertificateFields.

    Pure and deterministic; a field is left as None when no rule fires.
    """
    text = unicodedata.normalize("NFC", text or "")

    fields = CertificateFields(
        cert_number=extract_cert_number(text),
        brand=extract_brand(text),
        model=extract_model(text),
        date=extract_date(text),
        serial_number=extract_serial_number(text),
        issuer=extract_issuer(text),
    )

    logger.debug("Extracted fields: %s", fields.present_fields())
    return fields
