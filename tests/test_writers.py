# tests/test_writers.py

import re

import pytest

from behavior.writers import log_custom_incident, save_comment, save_matrix_cell
from schools.writers import set_theme
from store.exceptions import InvalidArgument, NotFound, StorageError

DAY = "2024-01-15"


def _day(store, plan_id="plan_1"):
    return store.doc("schools", "school_001", "plans", plan_id, "days", DAY).get()


def test_save_matrix_cell_writes_and_recalculates(store, sample_plan, teacher_ctx, read_audit):
    save_matrix_cell("school_001", sample_plan, DAY, "P1", "G2", True, teacher_ctx, store=store)
    result = save_matrix_cell("school_001", sample_plan, DAY, "P1", "G1", 2, teacher_ctx, store=store)

    day = _day(store)
    assert day.get("matrix") == {"P1": {"G1": 2, "G2": True}}
    assert day.get("totals") == {"pct": 100, "amPct": 100, "pmPct": 0}
    assert isinstance(day.get("lastModified"), str)
    assert result.audited is True
    assert result.data == {"totals": {"pct": 100, "amPct": 100, "pmPct": 0}}

    entry = read_audit()[-1]
    assert entry["action"] == "matrix_cell_update"
    assert entry["actedBy"] == "teacher_001"
    assert entry["asRole"] == "teacher"
    assert entry["target"] == "plan_1/2024-01-15"
    assert entry["details"] == {"periodId": "P1", "goalId": "G1", "value": 2}


def test_save_matrix_cell_keeps_other_fields(store, sample_plan, teacher_ctx):
    ref = store.doc("schools", "school_001", "plans", sample_plan, "days", DAY)
    ref.set({"comments": {"teacher": "hi"}, "matrix": {"P2": {"G1": 1}}})

    save_matrix_cell("school_001", sample_plan, DAY, "P1", "G1", 0, teacher_ctx, store=store)

    data = ref.get().to_dict()
    assert data["comments"] == {"teacher": "hi"}
    assert data["matrix"] == {"P1": {"G1": 0}, "P2": {"G1": 1}}


@pytest.mark.parametrize(
    "period_id, goal_id, value",
    [
        ("P.1", "G1", 1),
        ("P1", "G.1", 1),
        ("", "G1", 1),
        ("P1", "G1", "2"),
        ("P1", "G1", None),
        ("P1", "G1", float("nan")),
    ],
)
def test_save_matrix_cell_rejects_bad_input(store, sample_plan, teacher_ctx, period_id, goal_id, value):
    with pytest.raises(InvalidArgument):
        save_matrix_cell("school_001", sample_plan, DAY, period_id, goal_id, value, teacher_ctx, store=store)
    assert _day(store).exists is False


def test_writers_require_audit_context(store, sample_plan):
    with pytest.raises(InvalidArgument, match="Audit context is required"):
        save_matrix_cell("school_001", sample_plan, DAY, "P1", "G1", 1, None, store=store)
    with pytest.raises(InvalidArgument, match="Audit context is required"):
        save_comment("school_001", sample_plan, DAY, "teacher", "hi", {"asRole": "teacher"}, store=store)
    assert _day(store).exists is False


def test_audit_failure_does_not_fail_the_write(store, sample_plan, teacher_ctx, audit_failing_store, read_audit):
    result = save_matrix_cell(
        "school_001", sample_plan, DAY, "P1", "G1", 1, teacher_ctx, store=audit_failing_store()
    )

    assert result.audited is False
    assert _day(store).get("matrix.P1.G1") == 1
    assert read_audit(collection="_audit_errors")[0]["originalEntry"]["action"] == "matrix_cell_update"


def test_recalculation_failure_does_not_fail_the_write(store, school, teacher_ctx):
    result = save_matrix_cell("school_001", "no_plan", DAY, "P1", "G1", 1, teacher_ctx, store=store)

    assert result.data == {"totals": None}
    assert result.audited is True
    assert _day(store, "no_plan").get("matrix") == {"P1": {"G1": 1}}


def test_write_failure_is_a_storage_error(broken_store, teacher_ctx):
    with pytest.raises(StorageError, match="Failed to save matrix cell: boom"):
        save_matrix_cell("school_001", "plan_1", DAY, "P1", "G1", 1, teacher_ctx, store=broken_store())


def test_imitated_writes_record_the_imitated_user(store, sample_plan, imitating_ctx, read_audit):
    save_comment("school_001", sample_plan, DAY, "teacher", "ok", imitating_ctx, store=store)

    entry = read_audit()[-1]
    assert entry["actedBy"] == "admin_001"
    assert entry["asRole"] == "teacher"
    assert entry["details"]["asUserId"] == "teacher_001"


def test_save_comment_teacher_and_specials(store, sample_plan, teacher_ctx, read_audit):
    save_comment("school_001", sample_plan, DAY, "teacher", "Great day", teacher_ctx, store=store)
    save_comment("school_001", sample_plan, DAY, "music", "Sang well", teacher_ctx, store=store)

    assert _day(store).get("comments") == {"teacher": "Great day", "specials": {"music": "Sang well"}}
    assert read_audit()[-1]["details"] == {"role": "music", "textLength": 9}


def test_empty_comment_clears(store, sample_plan, teacher_ctx):
    save_comment("school_001", sample_plan, DAY, "teacher", "Great day", teacher_ctx, store=store)
    save_comment("school_001", sample_plan, DAY, "teacher", "", teacher_ctx, store=store)

    assert _day(store).get("comments.teacher") == ""


def test_save_comment_rejects_bad_input(store, sample_plan, teacher_ctx):
    with pytest.raises(InvalidArgument):
        save_comment("school_001", sample_plan, DAY, "teacher", None, teacher_ctx, store=store)
    with pytest.raises(InvalidArgument):
        save_comment("school_001", sample_plan, DAY, "", "hi", teacher_ctx, store=store)


def test_log_custom_incident_appends(store, sample_plan, teacher_ctx, read_audit):
    first = log_custom_incident(
        "school_001", sample_plan, DAY, {"label": "Great Job!", "colorHex": "#4CAF50"}, None, "teacher", teacher_ctx, store=store
    )
    second = log_custom_incident(
        "school_001", sample_plan, DAY, {"label": "Needs Redirect"}, "Left seat", "specials", teacher_ctx, store=store
    )

    incidents = _day(store).get("incidents")
    assert [i["id"] for i in incidents] == [first.data["id"], second.data["id"]]
    assert re.match(r"^inc_\d+_[0-9a-f]{9}$", first.data["id"])
    assert incidents[0]["note"] is None
    assert incidents[0]["colorHex"] == "#4CAF50"
    assert incidents[1]["colorHex"] == "#000000"
    assert incidents[1]["source"] == "specials"
    assert isinstance(incidents[1]["ts"], int)
    assert read_audit()[-1]["details"] == {"label": "Needs Redirect", "source": "specials", "hasNote": True}


@pytest.mark.parametrize(
    "button, note, source",
    [
        ({"colorHex": "#fff"}, None, "teacher"),
        ("Great Job!", None, "teacher"),
        ({"label": "Great Job!"}, None, "parent"),
        ({"label": "Great Job!"}, 12, "teacher"),
    ],
)
def test_log_custom_incident_rejects_bad_input(store, sample_plan, teacher_ctx, button, note, source):
    with pytest.raises(InvalidArgument):
        log_custom_incident("school_001", sample_plan, DAY, button, note, source, teacher_ctx, store=store)


def test_set_theme_updates_and_audits(store, school, read_audit):
    ctx = {"actedBy": "admin_001", "asRole": "admin", "asUserId": "admin_001"}
    theme = {"mode": "dark", "vars": {"--bg": "#000", "--fg": "#fff"}, "__proto__": {}}

    result = set_theme(school, theme, ctx=ctx, store=store)

    assert store.doc("schools", school).get().get("theme") == {
        "mode": "dark",
        "vars": {"--bg": "#000", "--fg": "#fff"},
    }
    assert result.audited is True
    entry = read_audit()[-1]
    assert entry["action"] == "theme_update"
    assert entry["details"] == {"mode": "dark", "varCount": 2}


def test_set_theme_without_context_is_not_audited(store, school, read_audit):
    result = set_theme(school, {"mode": "light"}, store=store)

    assert result.audited is None
    assert read_audit() == []


def test_set_theme_requires_existing_school(store):
    with pytest.raises(NotFound):
        set_theme("school_404", {"mode": "light"}, store=store)


@pytest.mark.parametrize("theme", [None, {"mode": 3}, {"vars": ["x"]}, {"vars": {"--bg": 1}}])
def test_set_theme_rejects_bad_theme(store, school, theme):
    with pytest.raises(InvalidArgument):
        set_theme(school, theme, store=store)
