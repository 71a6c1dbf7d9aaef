"""
Tests for the weighted authenticity scorer.
"""

from unittest.mock import patch

import pytest

from CertVerifier import config
from CertVerifier.schemas import CertificateFields, InkReport, TextureReport
from CertVerifier.scorer import data_completeness, score_authenticity, validate_weights

FULL_FIELDS = CertificateFields(
    cert_number="CERT-2024-123456", brand="Chanel", date="2024-03-15"
)


def _texture(quality):
    return TextureReport(quality_score=quality, color_consistency=quality)


def _ink(quality):
    return InkReport(quality=quality, consistency=quality)


class TestWeights:
    def test_default_weights_sum_to_one(self):
        assert sum(config.SCORE_WEIGHTS.values()) == pytest.approx(1.0)
        validate_weights(config.SCORE_WEIGHTS)

    def test_rejects_bad_sum(self):
        with pytest.raises(ValueError, match="sum to 1.0"):
            validate_weights({"ocr": 0.5, "data": 0.5, "texture": 0.5, "ink": 0.5})

    def test_rejects_missing_component(self):
        with pytest.raises(ValueError, match="Missing"):
            validate_weights({"ocr": 0.5, "data": 0.5})

    def test_rejects_negative_weight(self):
        with pytest.raises(ValueError, match="non-negative"):
            validate_weights({"ocr": 1.5, "data": -0.5, "texture": 0.0, "ink": 0.0})

    def test_scoring_validates_config(self):
        bad = {"ocr": 0.4, "data": 0.4, "texture": 0.4, "ink": 0.4}
        with patch.object(config, "SCORE_WEIGHTS", bad):
            with pytest.raises(ValueError):
                score_authenticity(90, FULL_FIELDS, _texture(0.9), _ink(0.9))


class TestDataCompleteness:
    def test_all_required(self):
        assert data_completeness(FULL_FIELDS) == 1.0

    def test_partial(self):
        fields = CertificateFields(cert_number="X-1", brand="Dior")
        assert data_completeness(fields) == pytest.approx(2 / 3)

    def test_optional_fields_do_not_count(self):
        fields = CertificateFields(model="Kelly", serial_number="123", issuer="Hermes")
        assert data_completeness(fields) == 0.0


class TestScoreAuthenticity:
    def test_weighted_sum(self):
        score = score_authenticity(80, FULL_FIELDS, _texture(0.6), _ink(0.4))
        assert score.overall == pytest.approx(0.25 * (0.8 + 1.0 + 0.6 + 0.4))
        assert score.components.ocr == pytest.approx(0.8)
        assert score.components.data == 1.0
        assert score.components.texture == pytest.approx(0.6)
        assert score.components.ink == pytest.approx(0.4)

    def test_strong_evidence_is_authentic_range(self):
        score = score_authenticity(95, FULL_FIELDS, _texture(0.85), _ink(0.9))
        assert score.overall > 0.8

    def test_all_zero(self):
        score = score_authenticity(0, CertificateFields(), _texture(0.0), _ink(0.0))
        assert score.overall == 0.0

    def test_bounds_hold_for_out_of_range_confidence(self):
        score = score_authenticity(150, FULL_FIELDS, _texture(1.0), _ink(1.0))
        assert score.components.ocr == 1.0
        assert 0.0 <= score.overall <= 1.0

    def test_custom_weights(self):
        weights = {"ocr": 1.0, "data": 0.0, "texture": 0.0, "ink": 0.0}
        score = score_authenticity(
            42, CertificateFields(), _texture(1.0), _ink(1.0), weights=weights
        )
        assert score.overall == pytest.approx(0.42)

    def test_deterministic(self):
        args = (88.5, FULL_FIELDS, _texture(0.7), _ink(0.6))
        assert score_authenticity(*args) == score_authenticity(*args)
