"""
Tests for the recognition backends.

Tesseract calls are patched at the pytesseract boundary and Surya is
replaced in sys.modules, so no OCR binary or model is needed.
"""

import os
import sys
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from CertVerifier import config
from CertVerifier.recognizers import (
    SuryaRecognizer,
    TesseractRecognizer,
    build_recognizer,
    parse_surya_result,
    parse_tesseract_data,
)


def _tesseract_data():
    """image_to_data output for two lines, with layout rows and a blank word."""
    return {
        "text": ["", "CERT-2024-123456", "Chanel", "", "Date:", "2024-03-15", " "],
        "conf": ["-1", "96", 90.0, "-1", 80, "70", "-1"],
        "block_num": [1, 1, 1, 1, 1, 1, 1],
        "par_num": [1, 1, 1, 1, 1, 1, 1],
        "line_num": [0, 1, 1, 2, 2, 2, 2],
        "left": [0, 10, 200, 0, 10, 80, 0],
        "top": [0, 10, 12, 0, 50, 52, 0],
        "width": [0, 180, 60, 0, 60, 100, 0],
        "height": [0, 20, 18, 0, 20, 20, 0],
    }


class TestParseTesseractData:
    def test_groups_words_into_lines(self):
        result = parse_tesseract_data(_tesseract_data())
        assert [line.text for line in result.lines] == [
            "CERT-2024-123456 Chanel",
            "Date: 2024-03-15",
        ]
        assert result.text == "CERT-2024-123456 Chanel\nDate: 2024-03-15"

    def test_drops_layout_rows_and_blank_words(self):
        result = parse_tesseract_data(_tesseract_data())
        assert [w.text for w in result.words] == [
            "CERT-2024-123456",
            "Chanel",
            "Date:",
            "2024-03-15",
        ]

    def test_confidences(self):
        result = parse_tesseract_data(_tesseract_data())
        assert result.confidence == pytest.approx((96 + 90 + 80 + 70) / 4)
        assert result.lines[0].confidence == pytest.approx(93.0)
        assert result.lines[1].confidence == pytest.approx(75.0)

    def test_line_bbox_is_union_of_words(self):
        bbox = parse_tesseract_data(_tesseract_data()).lines[0].bbox
        assert (bbox.x0, bbox.y0, bbox.x1, bbox.y1) == (10, 10, 260, 30)

    def test_empty_output(self):
        result = parse_tesseract_data({"text": [], "conf": []})
        assert result.text == ""
        assert result.confidence == 0.0
        assert result.lines == []


class TestTesseractRecognizer:
    def test_default_languages_from_config(self):
        with patch.object(config, "OCR_LANGUAGES", ["eng", "kor"]):
            recognizer = TesseractRecognizer()
        assert recognizer.languages == ["eng", "kor"]

    def test_build_config(self):
        cfg = TesseractRecognizer(lang_data_dir="/opt/tessdata").build_config()
        assert "--oem 1" in cfg
        assert "--psm 3" in cfg
        assert "preserve_interword_spaces=1" in cfg
        assert '--tessdata-dir "/opt/tessdata"' in cfg

    def test_build_config_without_lang_data_dir(self):
        assert "--tessdata-dir" not in TesseractRecognizer().build_config()

    @patch("CertVerifier.recognizers.pytesseract.get_languages")
    @patch("CertVerifier.recognizers.pytesseract.get_tesseract_version")
    def test_load_succeeds_with_languages_installed(self, mock_version, mock_langs):
        mock_version.return_value = "5.3.0"
        mock_langs.return_value = ["eng", "kor", "osd"]
        TesseractRecognizer(languages=["eng", "kor"]).load()
        mock_langs.assert_called_once()

    @patch("CertVerifier.recognizers.pytesseract.get_languages")
    @patch("CertVerifier.recognizers.pytesseract.get_tesseract_version")
    def test_load_fails_on_missing_language(self, mock_version, mock_langs):
        mock_version.return_value = "5.3.0"
        mock_langs.return_value = ["eng", "osd"]
        with pytest.raises(RuntimeError, match="kor"):
            TesseractRecognizer(languages=["eng", "kor"]).load()

    @patch("CertVerifier.recognizers.pytesseract.image_to_data")
    def test_recognize_passes_language_set(self, mock_data):
        mock_data.return_value = _tesseract_data()
        recognizer = TesseractRecognizer(languages=["eng", "kor"])

        result = recognizer.recognize(Image.new("L", (50, 50), color=255))

        _, kwargs = mock_data.call_args
        assert kwargs["lang"] == "eng+kor"
        assert "--psm 3" in kwargs["config"]
        assert "CERT-2024-123456" in result.text


def _surya_line(text, confidence, bbox=(10, 10, 200, 40)):
    line = MagicMock()
    line.text = text
    line.confidence = confidence
    line.bbox = list(bbox)
    return line


class TestParseSuryaResult:
    def test_scales_confidence_to_percent(self):
        result = MagicMock()
        result.text_lines = [_surya_line("Certificate No: ABC-123", 0.9)]
        parsed = parse_surya_result(result)
        assert parsed.lines[0].confidence == pytest.approx(90.0)
        assert parsed.confidence == pytest.approx(90.0)

    def test_skips_blank_lines_and_splits_words(self):
        result = MagicMock()
        result.text_lines = [
            _surya_line("  ", 0.5),
            _surya_line("Issued by Chanel", 0.8),
        ]
        parsed = parse_surya_result(result)
        assert parsed.text == "Issued by Chanel"
        assert [w.text for w in parsed.words] == ["Issued", "by", "Chanel"]
        assert all(w.confidence == pytest.approx(80.0) for w in parsed.words)

    def test_confidence_weighted_by_length(self):
        result = MagicMock()
        result.text_lines = [_surya_line("ab", 1.0), _surya_line("abcdef", 0.5)]
        # 2*100 + 6*50 = 500 / 8 = 62.5
        assert parse_surya_result(result).confidence == pytest.approx(62.5)


@pytest.fixture
def fake_surya():
    modules = {
        "surya": MagicMock(),
        "surya.detection": MagicMock(),
        "surya.foundation": MagicMock(),
        "surya.recognition": MagicMock(),
    }
    with patch.dict(sys.modules, modules):
        yield modules


class TestSuryaRecognizer:
    def test_initializes_unloaded(self):
        recognizer = SuryaRecognizer()
        assert recognizer._models_loaded is False
        assert recognizer._rec_predictor is None

    def test_load_and_release(self, fake_surya):
        recognizer = SuryaRecognizer()
        recognizer.load()
        assert recognizer._models_loaded is True

        recognizer.release()
        assert recognizer._models_loaded is False
        assert recognizer._det_predictor is None

    def test_load_exports_cache_dir(self, fake_surya):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("MODEL_CACHE_DIR", None)
            SuryaRecognizer(cache_dir="/tmp/surya-cache").load()
            assert os.environ["MODEL_CACHE_DIR"] == "/tmp/surya-cache"

    def test_recognize_maps_predictions(self, fake_surya):
        prediction = MagicMock()
        prediction.text_lines = [_surya_line("CERT-2024-123456", 0.95)]
        recognizer = SuryaRecognizer()
        recognizer.load()
        recognizer._rec_predictor = MagicMock(return_value=[prediction])

        result = recognizer.recognize(Image.new("L", (50, 50)))

        assert result.text == "CERT-2024-123456"
        assert result.confidence == pytest.approx(95.0)


class TestBuildRecognizer:
    def test_tesseract(self):
        recognizer = build_recognizer("tesseract", languages=["eng"])
        assert isinstance(recognizer, TesseractRecognizer)
        assert recognizer.languages == ["eng"]

    def test_surya(self):
        assert isinstance(build_recognizer("surya"), SuryaRecognizer)

    def test_default_backend(self):
        with patch.object(config, "OCR_BACKEND", "tesseract"):
            assert isinstance(build_recognizer(), TesseractRecognizer)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_recognizer("abacus")
