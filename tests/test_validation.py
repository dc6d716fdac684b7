# tests/test_validation.py

import pytest

from store.exceptions import InvalidArgument, PayloadTooLarge
from store.validation import (
    sanitize_object,
    serialized_size,
    validate_audit_entry,
    validate_day_key,
    validate_doc_params,
)


@pytest.mark.parametrize("school_id", ["", None, 42, ["school_001"]])
def test_validate_doc_params_rejects_bad_school_id(school_id):
    with pytest.raises(InvalidArgument, match="Invalid schoolId"):
        validate_doc_params(school_id)


def test_validate_doc_params_rejects_bad_doc_id():
    with pytest.raises(InvalidArgument, match="Invalid document ID"):
        validate_doc_params("school_001", "")
    with pytest.raises(InvalidArgument, match="Invalid document ID"):
        validate_doc_params("school_001", 7)


def test_validate_doc_params_rejects_path_separators():
    with pytest.raises(InvalidArgument):
        validate_doc_params("school_001/plans")
    with pytest.raises(InvalidArgument):
        validate_doc_params("school_001", "plan_1/days")


def test_validate_doc_params_accepts_valid_ids():
    validate_doc_params("school_001")
    validate_doc_params("school_001", "plan_1")


@pytest.mark.parametrize("day_key", ["2024-1-05", "20240105", "", None, "2024-01-05T00:00"])
def test_validate_day_key_rejects_bad_format(day_key):
    with pytest.raises(InvalidArgument, match="dayKey"):
        validate_day_key(day_key)


def test_sanitize_object_drops_dangerous_keys_at_every_level():
    raw = {
        "__proto__": {"admin": True},
        "ok": 1,
        "nested": {"constructor": "x", "keep": [{"prototype": 1, "v": 2}]},
    }

    clean = sanitize_object(raw)

    assert clean == {"ok": 1, "nested": {"keep": [{"v": 2}]}}
    assert "__proto__" in raw


def test_sanitize_object_returns_a_copy():
    raw = {"a": {"b": [1, 2]}}

    clean = sanitize_object(raw)
    clean["a"]["b"].append(3)

    assert raw == {"a": {"b": [1, 2]}}


def test_validate_audit_entry_requires_action():
    with pytest.raises(InvalidArgument, match="action"):
        validate_audit_entry({"actorId": "u1"})


def test_validate_audit_entry_requires_actor():
    with pytest.raises(InvalidArgument, match="actorId"):
        validate_audit_entry({"action": "login"})


def test_validate_audit_entry_requires_mapping():
    with pytest.raises(InvalidArgument):
        validate_audit_entry("login")


def test_validate_audit_entry_keeps_only_allowed_fields():
    entry = validate_audit_entry(
        {"action": "login", "actedBy": "u1", "password": "hunter2", "asRole": "admin"}
    )

    assert entry == {"action": "login", "actedBy": "u1", "asRole": "admin"}


def test_details_at_limit_are_kept():
    # {"b":"..."} serializes to the payload length plus 8 bytes
    details = {"b": "x" * 4992}
    assert serialized_size(details) == 5000

    entry = validate_audit_entry({"action": "a", "actorId": "u", "details": details})

    assert entry["details"] == details


def test_details_over_limit_are_truncated():
    details = {"b": "x" * 4993}

    entry = validate_audit_entry({"action": "a", "actorId": "u", "details": details})

    assert entry["details"] == {
        "truncated": True,
        "size": 5001,
        "summary": "Details truncated due to size limit",
    }


def test_details_are_sanitized():
    entry = validate_audit_entry(
        {"action": "a", "actorId": "u", "details": {"__proto__": 1, "x": 2}}
    )

    assert entry["details"] == {"x": 2}


def test_entry_over_limit_is_rejected():
    with pytest.raises(PayloadTooLarge):
        validate_audit_entry({"action": "a", "actorId": "u", "target": "t" * 10001})


def test_size_limits_follow_settings(settings):
    settings.AUDIT_MAX_DETAILS_SIZE = 20

    entry = validate_audit_entry(
        {"action": "a", "actorId": "u", "details": {"note": "x" * 30}}
    )

    assert entry["details"]["truncated"] is True
