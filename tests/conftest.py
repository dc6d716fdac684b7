# tests/conftest.py

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from store.client import get_store
from store.exceptions import StorageError
from users.identity import get_identity_provider
from users.models import Profile
from users.session import AuditContext, AuthSession

SCHOOL_ID = "school_001"
PASSWORD = "secret123"

User = get_user_model()


@pytest.fixture(autouse=True)
def tracker_settings(settings):
    settings.SECURE_SSL_REDIRECT = False
    settings.STORE_RETRY_DELAY = 0
    settings.DEFAULT_SCHOOL_ID = SCHOOL_ID
    settings.SCHOOL_TIMEZONE = "America/Detroit"
    get_identity_provider.cache_clear()
    cache.clear()
    yield settings
    get_identity_provider.cache_clear()
    cache.clear()


@pytest.fixture
def store(db):
    return get_store()


@pytest.fixture
def school(store):
    store.doc("schools", SCHOOL_ID).set(
        {"name": "Demo School", "theme": {"mode": "light", "vars": {}}}
    )
    return SCHOOL_ID


@pytest.fixture
def sample_plan(store, school):
    store.doc("schools", school, "plans", "plan_1").set(
        {
            "studentId": "student_1",
            "teacherId": "teacher_001",
            "active": True,
            "planType": "PercentageAMPM",
            "schedule": [
                {"id": "P1", "label": "A", "am": True},
                {"id": "P2", "label": "B", "am": False},
            ],
            "goals": [
                {"id": "G1", "label": "On Task", "kind": "stepper"},
                {"id": "G2", "label": "Respectful", "kind": "checkbox"},
            ],
        }
    )
    return "plan_1"


@pytest.fixture
def teacher_ctx():
    return AuditContext("teacher_001", "teacher", "teacher_001")


@pytest.fixture
def imitating_ctx():
    return AuditContext("admin_001", "teacher", "teacher_001")


def make_user(username, roles, school_id=SCHOOL_ID, password=PASSWORD):
    user = User.objects.create_user(
        username=username, email=f"{username}@example.com", password=password
    )
    Profile.objects.create(user=user, roles=list(roles), school_id=school_id)
    return user


@pytest.fixture
def admin_user(db):
    return make_user("admin_001", ["admin"])


@pytest.fixture
def teacher_user(db):
    return make_user("teacher_001", ["teacher"])


@pytest.fixture
def achievement_user(db):
    return make_user("achieve_001", ["achievement"])


def signed_in_session(user, store, storage=None, clock=None):
    options = {"storage": storage if storage is not None else {}, "store": store}
    if clock is not None:
        options["clock"] = clock
    session = AuthSession(**options)
    session.on_auth_state_changed(session.provider.identity_for(user))
    return session


@pytest.fixture
def admin_session(admin_user, store):
    return signed_in_session(admin_user, store)


@pytest.fixture
def teacher_session(teacher_user, store):
    return signed_in_session(teacher_user, store)


@pytest.fixture
def api_client():
    return APIClient()


class _RejectingCollection:
    def __init__(self, error):
        self.error = error

    def add(self, data):
        raise self.error


class _AuditFailingStore:
    """Real store whose ``audit_logs`` (and optionally ``_audit_errors``) reject writes."""

    def __init__(self, store, error, fail_fallback):
        self._store = store
        self.error = error
        self.fail_fallback = fail_fallback

    def doc(self, *segments):
        return self._store.doc(*segments)

    def batch(self):
        return self._store.batch()

    def collection(self, *segments):
        if segments[-1] == "audit_logs" or (
            self.fail_fallback and segments[-1] == "_audit_errors"
        ):
            return _RejectingCollection(self.error)
        return self._store.collection(*segments)


@pytest.fixture
def audit_failing_store(store):
    def factory(error=None, fail_fallback=False):
        return _AuditFailingStore(
            store, error or StorageError("audit store unavailable"), fail_fallback
        )

    return factory


class _BrokenReference:
    def __init__(self, error):
        self.error = error

    def get(self):
        raise self.error

    def set(self, data, merge=False):
        raise self.error

    def update(self, fields):
        raise self.error


class _BrokenStore:
    """Every document operation fails with ``error``."""

    def __init__(self, error):
        self.error = error

    def doc(self, *segments):
        return _BrokenReference(self.error)

    def collection(self, *segments):
        return _RejectingCollection(self.error)


@pytest.fixture
def broken_store():
    def factory(error=None):
        return _BrokenStore(error or RuntimeError("boom"))

    return factory


def audit_entries(store, school_id=SCHOOL_ID, collection="audit_logs"):
    return [s.to_dict() for s in store.collection("schools", school_id, collection).get()]


@pytest.fixture
def read_audit(store):
    def reader(school_id=SCHOOL_ID, collection="audit_logs"):
        return audit_entries(store, school_id, collection)

    return reader
