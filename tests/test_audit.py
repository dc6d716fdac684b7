# tests/test_audit.py

import pytest

from store.audit import (
    audit,
    audit_log_queryset,
    context_entry,
    require_audit_context,
)
from store.exceptions import InvalidArgument
from users.session import AuditContext


def test_audit_appends_sanitized_entry(store, read_audit):
    ok = audit(
        "school_001",
        {"action": "login", "actorId": "u1", "secret": "x", "details": {"__proto__": 1, "ip": "1.2.3.4"}},
        store=store,
    )

    entries = read_audit()
    assert ok is True
    assert len(entries) == 1
    entry = entries[0]
    assert entry["action"] == "login"
    assert entry["details"] == {"ip": "1.2.3.4"}
    assert "secret" not in entry
    assert isinstance(entry["ts"], str)


def test_invalid_entry_goes_to_fallback(store, read_audit):
    ok = audit("school_001", {"actorId": "u1"}, store=store)

    errors = read_audit(collection="_audit_errors")
    assert ok is False
    assert read_audit() == []
    assert len(errors) == 1
    assert errors[0]["originalEntry"] == {"actorId": "u1"}
    assert "action" in errors[0]["error"]
    assert "Traceback" in errors[0]["stack"]


def test_oversized_entry_goes_to_fallback(store, read_audit):
    ok = audit("school_001", {"action": "a", "actorId": "u", "target": "t" * 20000}, store=store)

    errors = read_audit(collection="_audit_errors")
    assert ok is False
    assert "too large" in errors[0]["error"]


def test_write_failure_goes_to_fallback(audit_failing_store, read_audit):
    ok = audit("school_001", {"action": "login", "actorId": "u1"}, store=audit_failing_store())

    errors = read_audit(collection="_audit_errors")
    assert ok is False
    assert errors[0]["error"] == "audit store unavailable"
    assert errors[0]["originalEntry"] == {"action": "login", "actorId": "u1"}


def test_fallback_failure_never_raises(audit_failing_store):
    store = audit_failing_store(fail_fallback=True)

    assert audit("school_001", {"action": "login", "actorId": "u1"}, store=store) is False


def test_invalid_school_id_never_raises(store):
    assert audit("", {"action": "login", "actorId": "u1"}, store=store) is False


def test_fallback_stores_original_entry_json_safe(store, read_audit):
    audit("school_001", {"actorId": "u", "when": object()}, store=store)

    original = read_audit(collection="_audit_errors")[0]["originalEntry"]
    assert original["actorId"] == "u"
    assert original["when"].startswith("<object")


def test_audit_log_queryset_is_newest_first(store):
    for action in ["first", "second", "third"]:
        audit("school_001", {"action": action, "actorId": "u"}, store=store)

    actions = [row.data["action"] for row in audit_log_queryset("school_001")]

    assert actions == ["third", "second", "first"]


def test_require_audit_context():
    with pytest.raises(InvalidArgument, match="Audit context is required"):
        require_audit_context(None)
    with pytest.raises(InvalidArgument):
        require_audit_context({"asRole": "teacher"})
    require_audit_context({"actedBy": "u1"})


def test_context_entry_from_own_context(teacher_ctx):
    entry = context_entry(teacher_ctx, "comment_save", target="plan_1/2024-01-15", details={"role": "teacher"})

    assert entry == {
        "action": "comment_save",
        "actedBy": "teacher_001",
        "asRole": "teacher",
        "target": "plan_1/2024-01-15",
        "details": {"role": "teacher"},
    }


def test_context_entry_records_imitated_user(imitating_ctx):
    entry = context_entry(imitating_ctx, "comment_save")

    assert entry["actedBy"] == "admin_001"
    assert entry["details"] == {"asUserId": "teacher_001"}


def test_context_entry_accepts_mapping():
    ctx = AuditContext("u1", "admin", "u2").to_dict()

    entry = context_entry(ctx, "theme_update")

    assert entry["asRole"] == "admin"
    assert entry["details"]["asUserId"] == "u2"
