"""Tests for deterministic certificate scoring and the forensic oracle adapters."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from lumora.config import ForensicsPolicy
from lumora.forensics.oracles import (
    NEUTRAL_TAMPER,
    Degraded,
    ElaTamperDetector,
    Ok,
    TesseractTextExtractor,
    TextReading,
    run_oracle,
    safe_detect_tamper,
)
from lumora.forensics.scoring import (
    REASON_HIGH_TAMPER,
    REASON_MISSING_REGISTRY,
    REASON_MISSING_TEXT,
    REASON_MODERATE_TAMPER,
    classify,
    score_certificate,
)
from lumora.models.enums import TrustStatus

POLICY = ForensicsPolicy()
GOOD_TEXT = "FEDERAL REPUBLIC CERTIFICATE OF REGISTRATION NAFDAC A4-1234"


class TestScoreCertificate:
    def test_high_tamper_and_empty_text_is_fake(self):
        score, reasons = score_certificate(25, "", "A4-1234", POLICY)
        assert score == 1.0
        assert classify(score, POLICY) == TrustStatus.FAKE
        assert REASON_HIGH_TAMPER in reasons
        assert REASON_MISSING_TEXT in reasons

    def test_deterministic(self):
        assert score_certificate(25, "", None, POLICY) == score_certificate(25, "", None, POLICY)

    def test_clean_certificate(self):
        score, reasons = score_certificate(3, GOOD_TEXT, "A4-1234", POLICY)
        assert score == 0.0
        assert reasons == []
        assert classify(score, POLICY) == TrustStatus.CLEAN

    def test_moderate_tamper_only(self):
        score, reasons = score_certificate(15, GOOD_TEXT, None, POLICY)
        assert score == 0.2
        assert reasons == [REASON_MODERATE_TAMPER]
        assert classify(score, POLICY) == TrustStatus.CLEAN

    def test_thresholds_are_exclusive(self):
        assert score_certificate(20, GOOD_TEXT, None, POLICY)[1] == [REASON_MODERATE_TAMPER]
        assert score_certificate(10, GOOD_TEXT, None, POLICY)[1] == []

    def test_registry_number_missing_from_text(self):
        score, reasons = score_certificate(0, GOOD_TEXT, "B9-9999", POLICY)
        assert score == 0.4
        assert reasons == [REASON_MISSING_REGISTRY]
        assert classify(score, POLICY) == TrustStatus.SUSPICIOUS

    def test_registry_match_is_case_insensitive(self):
        assert score_certificate(0, GOOD_TEXT.lower(), "a4-1234", POLICY) == (0.0, [])

    def test_short_text_after_stripping(self):
        score, reasons = score_certificate(0, "   abc   \n", None, POLICY)
        assert reasons == [REASON_MISSING_TEXT]
        assert score == 0.4


@pytest.mark.parametrize(
    "score,expected",
    [
        (0.0, TrustStatus.CLEAN),
        (0.24, TrustStatus.CLEAN),
        (0.25, TrustStatus.SUSPICIOUS),
        (0.69, TrustStatus.SUSPICIOUS),
        (0.7, TrustStatus.FAKE),
        (1.0, TrustStatus.FAKE),
    ],
)
def test_classify_boundaries(score, expected):
    assert classify(score) == expected


class TestOracles:
    def test_run_oracle_ok(self):
        result = run_oracle(lambda: TextReading("hello"), TextReading(""))
        assert isinstance(result, Ok)
        assert result.value.text == "hello"
        assert result.degraded is False

    def test_run_oracle_degrades_on_failure(self):
        def boom():
            raise RuntimeError("ocr engine crashed")

        result = run_oracle(boom, TextReading(""))
        assert isinstance(result, Degraded)
        assert result.value.text == ""
        assert "crashed" in result.error

    def test_ela_on_real_image(self, tmp_path):
        path = tmp_path / "certificate.png"
        Image.new("RGB", (64, 48), color=(200, 30, 30)).save(path)
        reading = ElaTamperDetector().detect_tamper(str(path))
        assert 0.0 <= reading.confidence <= 255.0
        assert reading.metadata["width"] == 64
        assert reading.metadata["height"] == 48

    def test_missing_file_is_neutral(self, tmp_path):
        result = safe_detect_tamper(ElaTamperDetector(), str(tmp_path / "missing.jpg"))
        assert result.degraded is True
        assert result.value == NEUTRAL_TAMPER

    def test_tesseract_extractor(self, tmp_path):
        path = tmp_path / "certificate.png"
        Image.new("RGB", (32, 32), color="white").save(path)
        with patch("lumora.forensics.oracles.pytesseract") as mock_tess:
            mock_tess.image_to_string = MagicMock(return_value="NAFDAC A4-1234\n")
            reading = TesseractTextExtractor().extract_text(str(path))
        assert reading.text == "NAFDAC A4-1234\n"
