"""
Tests for the intake gate.
"""

from datetime import date

import pytest

from doubles import make_email
from techinvoice.services.eligibility import (
    REASON_DUPLICATE,
    REASON_EMPTY_CONTENT,
    REASON_NO_MARKER,
    IntakeRulesConfig,
    IntakeValidator,
    create_intake_validator,
)


def seed(store, source_email_id):
    return store.create({
        "source_email_id": source_email_id,
        "sender": "someone@example.com",
        "invoice_date": date(2024, 1, 1),
        "amount": 0.0,
    })


def test_eligible_email(store):
    decision = IntakeValidator(store).is_eligible(make_email())

    assert decision.eligible is True
    assert decision.reason is None


@pytest.mark.parametrize("subject", ["TECH INVOICE #42", "Your tech invoice", "fwd: Tech Invoice - X"])
def test_marker_is_case_insensitive_substring(store, subject):
    assert IntakeValidator(store).is_eligible(make_email(subject=subject)).eligible is True


@pytest.mark.parametrize("subject", ["Invoice for January", "Tech-Invoice", "technology invoice", ""])
def test_subject_without_marker_rejected(store, subject):
    decision = IntakeValidator(store).is_eligible(make_email(subject=subject))

    assert decision.eligible is False
    assert decision.reason == REASON_NO_MARKER


@pytest.mark.parametrize("content", ["", "   ", "\n\t  \n"])
def test_blank_content_rejected(store, content):
    decision = IntakeValidator(store).is_eligible(make_email(content=content))

    assert decision.eligible is False
    assert decision.reason == REASON_EMPTY_CONTENT


def test_first_failing_rule_wins(store):
    """Missing marker is reported even when the content is also empty"""
    decision = IntakeValidator(store).is_eligible(make_email(subject="hello", content=" "))

    assert decision.reason == REASON_NO_MARKER


def test_recent_duplicate_rejected(store):
    seed(store, "msg-001")

    decision = IntakeValidator(store).is_eligible(make_email(id="msg-001"))

    assert decision.eligible is False
    assert decision.reason == REASON_DUPLICATE


def test_duplicate_outside_scan_window_is_missed(store):
    """Best-effort mode only looks at the most recent records"""
    seed(store, "msg-old")
    for i in range(3):
        seed(store, f"msg-new-{i}")

    validator = IntakeValidator(store, IntakeRulesConfig(duplicate_scan_window=3))

    assert validator.is_eligible(make_email(id="msg-old")).eligible is True
    assert validator.is_eligible(make_email(id="msg-new-0")).eligible is False


def test_strict_duplicate_check_finds_old_records(store):
    seed(store, "msg-old")
    for i in range(3):
        seed(store, f"msg-new-{i}")

    validator = IntakeValidator(
        store, IntakeRulesConfig(duplicate_scan_window=3, strict_duplicate_check=True)
    )
    decision = validator.is_eligible(make_email(id="msg-old"))

    assert decision.eligible is False
    assert decision.reason == REASON_DUPLICATE


def test_gate_has_no_side_effects(store):
    IntakeValidator(store).is_eligible(make_email())

    assert store.count() == 0


def test_factory_overrides(store):
    validator = create_intake_validator(store, subject_marker="vendor bill", duplicate_scan_window=5)

    assert validator.config.subject_marker == "vendor bill"
    assert validator.config.duplicate_scan_window == 5
    assert validator.is_eligible(make_email(subject="Vendor Bill 7")).eligible is True
    assert validator.is_eligible(make_email(subject="Tech Invoice")).eligible is False
