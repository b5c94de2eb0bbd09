"""Tests for the verification state machine."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from lumora.errors import StorageError
from lumora.models import Code, ImmutableRecordError, VerificationLog
from lumora.models.enums import TrustDecision, TrustStatus, VerificationState
from lumora.services.verification import (
    GeoPoint,
    get_scan_history,
    mark_code_used,
    normalize_code,
    trust_decision,
    verify,
)


def _log_count(db) -> int:
    return db.scalar(select(func.count(VerificationLog.id)))


@pytest.fixture
def issued_code(db, make_manufacturer, make_batch, make_code):
    batch = make_batch(make_manufacturer(), batch_number="B1")
    return make_code(batch, "LUM-AAA111")


class TestScenario:
    def test_genuine_then_used_then_invalid(self, db, issued_code):
        first = verify(db, "LUM-AAA111")
        assert first.state == VerificationState.GENUINE
        assert first.prior_scan_count == 0
        assert first.trust_decision == TrustDecision.SAFE_TO_USE
        assert first.batch_info.batch_number == "B1"
        assert first.batch_info.product_name == "Paracetamol 500mg"
        assert first.batch_info.manufacturer_name == "Acme Pharma"

        second = verify(db, "LUM-AAA111")
        assert second.state == VerificationState.CODE_ALREADY_USED
        assert second.prior_scan_count == 1
        assert second.trust_decision == TrustDecision.DO_NOT_USE

        third = verify(db, "LUM-AAA111")
        assert third.prior_scan_count == 2

        missing = verify(db, "LUM-DOES-NOT-EXIST")
        assert missing.state == VerificationState.INVALID
        log = db.get(VerificationLog, missing.log_id)
        assert log.manufacturer_id is None
        assert log.verification_state == "INVALID"

    def test_first_scan_consumes_code(self, db, issued_code):
        verify(db, "LUM-AAA111")
        row = db.execute(
            select(Code.is_used, Code.first_used_at).where(Code.id == issued_code.id)
        ).one()
        assert row.is_used is True
        assert row.first_used_at is not None

    def test_round_trip_every_log_matches_outcome(self, db, issued_code):
        outcomes = [verify(db, "LUM-AAA111") for _ in range(3)]
        history = get_scan_history(db, "lum-aaa111")
        assert [log.id for log in history] == [o.log_id for o in outcomes]
        assert [log.verification_state for log in history] == [o.state.value for o in outcomes]


class TestNormalisation:
    def test_lowercase_and_whitespace_are_normalised(self, db, issued_code):
        outcome = verify(db, "  lum-aaa111 \n")
        assert outcome.state == VerificationState.GENUINE
        assert outcome.code_value == "LUM-AAA111"

    @pytest.mark.parametrize("raw", ["", "   ", "LUM-\x00BAD", "X" * 65, "X" * 300, None, 42])
    def test_malformed_input_is_invalid_and_logged(self, db, raw):
        outcome = verify(db, raw)
        assert outcome.state == VerificationState.INVALID
        assert outcome.trust_decision == TrustDecision.DO_NOT_USE
        assert len(outcome.code_value) <= 64
        assert _log_count(db) == 1

    def test_normalize_code(self):
        assert normalize_code(" abc-12 ") == "ABC-12"
        assert normalize_code("-LEADING") is None
        assert normalize_code(42) is None  # type: ignore[arg-type]


class TestStates:
    def test_unregistered_product_with_known_manufacturer_hint(self, db, make_manufacturer):
        manufacturer = make_manufacturer()
        outcome = verify(db, "LUM-NEVERISSUED", manufacturer_hint_id=manufacturer.id)
        assert outcome.state == VerificationState.UNREGISTERED_PRODUCT
        assert outcome.trust_decision == TrustDecision.VERIFY_WITH_PHARMACIST
        assert db.get(VerificationLog, outcome.log_id).manufacturer_id == manufacturer.id

    def test_unknown_manufacturer_hint_stays_invalid(self, db):
        outcome = verify(db, "LUM-NEVERISSUED", manufacturer_hint_id=999)
        assert outcome.state == VerificationState.INVALID

    def test_fake_manufacturer_overrides_to_suspicious(self, db, make_manufacturer, make_batch, make_code):
        manufacturer = make_manufacturer(ai_status=TrustStatus.FAKE.value, ai_score=0.9)
        make_code(make_batch(manufacturer), "LUM-FAKE000001")

        first = verify(db, "LUM-FAKE000001")
        assert first.state == VerificationState.SUSPICIOUS_PATTERN
        assert first.base_state == VerificationState.GENUINE
        assert first.trust_decision == TrustDecision.REPORT_TO_REGULATOR

        second = verify(db, "LUM-FAKE000001")
        assert second.state == VerificationState.SUSPICIOUS_PATTERN
        assert second.base_state == VerificationState.CODE_ALREADY_USED

    def test_recalled_batch_carries_flag(self, db, make_manufacturer, make_batch, make_code):
        batch = make_batch(make_manufacturer(), is_recalled=True)
        make_code(batch, "LUM-RECALL0001")
        outcome = verify(db, "LUM-RECALL0001")
        assert outcome.state == VerificationState.GENUINE
        assert outcome.recall_flag is True
        assert outcome.trust_decision == TrustDecision.DO_NOT_USE

    def test_expired_batch(self, db, make_manufacturer, make_batch, make_code):
        batch = make_batch(make_manufacturer(), expiration_date=date.today() - timedelta(days=1))
        make_code(batch, "LUM-EXPIRED001")
        outcome = verify(db, "LUM-EXPIRED001")
        assert outcome.batch_info.expired is True
        assert outcome.trust_decision == TrustDecision.DO_NOT_USE


class TestConcurrency:
    def test_only_one_conditional_update_wins(self, db, issued_code):
        now = datetime.now(UTC)
        assert mark_code_used(db, issued_code.id, now) is True
        assert mark_code_used(db, issued_code.id, now) is False

    def test_losing_the_race_yields_already_used(self, db, issued_code):
        # Another scanner flips the flag after this session loaded the code as unused
        assert issued_code.is_used is False
        mark_code_used(db, issued_code.id, datetime.now(UTC))
        db.commit()
        outcome = verify(db, "LUM-AAA111")
        assert outcome.state == VerificationState.CODE_ALREADY_USED


class TestGeo:
    def test_precise_location_with_consent(self, db, issued_code):
        outcome = verify(db, "LUM-AAA111", geo=GeoPoint(6.524379, 3.379206), consent_geo=True)
        log = db.get(VerificationLog, outcome.log_id)
        assert (log.latitude, log.longitude, log.location_accuracy) == (6.524379, 3.379206, "precise")

    def test_no_location_for_genuine_without_consent(self, db, issued_code):
        outcome = verify(db, "LUM-AAA111", geo=GeoPoint(6.52, 3.37))
        log = db.get(VerificationLog, outcome.log_id)
        assert log.latitude is None and log.location_accuracy is None

    def test_coarse_location_for_reuse_without_consent(self, db, issued_code):
        verify(db, "LUM-AAA111")
        outcome = verify(db, "LUM-AAA111", geo=GeoPoint(6.524379, 3.379206))
        log = db.get(VerificationLog, outcome.log_id)
        assert (log.latitude, log.longitude, log.location_accuracy) == (6.5, 3.4, "coarse")

    def test_out_of_range_coordinates_are_dropped(self, db, issued_code):
        outcome = verify(db, "LUM-AAA111", geo=GeoPoint(123.0, 3.0), consent_geo=True)
        assert db.get(VerificationLog, outcome.log_id).latitude is None


class TestPersistence:
    def test_commit_failure_raises_storage_error_and_writes_nothing(self, db, issued_code):
        with patch.object(db, "commit", side_effect=OperationalError("COMMIT", {}, Exception("down"))):
            with pytest.raises(StorageError):
                verify(db, "LUM-AAA111")
        assert _log_count(db) == 0
        assert db.scalar(select(Code.is_used).where(Code.id == issued_code.id)) is False

    def test_logs_are_append_only(self, db, issued_code):
        outcome = verify(db, "LUM-AAA111")
        log = db.get(VerificationLog, outcome.log_id)
        log.verification_state = "GENUINE_EDITED"
        with pytest.raises(ImmutableRecordError):
            db.commit()
        db.rollback()


@pytest.mark.parametrize(
    "state,expired,recalled,expected",
    [
        (VerificationState.GENUINE, False, False, TrustDecision.SAFE_TO_USE),
        (VerificationState.GENUINE, True, False, TrustDecision.DO_NOT_USE),
        (VerificationState.CODE_ALREADY_USED, False, False, TrustDecision.DO_NOT_USE),
        (VerificationState.UNREGISTERED_PRODUCT, False, False, TrustDecision.VERIFY_WITH_PHARMACIST),
        (VerificationState.SUSPICIOUS_PATTERN, False, True, TrustDecision.REPORT_TO_REGULATOR),
        (VerificationState.INVALID, False, False, TrustDecision.DO_NOT_USE),
    ],
)
def test_trust_decision_table(state, expired, recalled, expected):
    assert trust_decision(state, expired=expired, recalled=recalled) == expected
