"""
Hierarchical document store on top of the ``Document`` model.

Paths alternate collection and document segments::

    store.doc('schools', school_id, 'plans', plan_id, 'days', day_key)
    store.collection('schools', school_id, 'students')

Merge writes treat top-level keys as dotted field paths and deep-merge
mapping values, so writing ``{'matrix.P1.G1': 2}`` never clobbers other
cells of the same document. ``update`` replaces each addressed field
wholesale and requires the document to exist.
"""

import copy
import logging
import uuid
from collections.abc import Mapping
from contextlib import contextmanager
from functools import lru_cache

from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import InvalidArgument, NotFound, StorageError
from .models import Document

logger = logging.getLogger(__name__)

# Query operators and the Django lookups they translate to
QUERY_LOOKUPS = {
    '==': 'exact',
    'in': 'in',
}

ASCENDING = 'ASCENDING'
DESCENDING = 'DESCENDING'


class _ServerTimestamp:
    def __repr__(self):
        return 'SERVER_TIMESTAMP'


# Replaced with the server time when the write is applied
SERVER_TIMESTAMP = _ServerTimestamp()


class ArrayAppend:
    """Append values to a list field as part of the write itself."""

    def __init__(self, *values):
        self.values = list(values)

    def __repr__(self):
        return f"ArrayAppend({self.values!r})"


def _split(segments):
    parts = []
    for segment in segments:
        if not isinstance(segment, str) or not segment:
            raise InvalidArgument(f"Invalid path segment: {segment!r}")
        for part in segment.strip('/').split('/'):
            if not part:
                raise InvalidArgument(f"Invalid path: {'/'.join(segments)}")
            parts.append(part)
    return parts


def _field_path(field_path):
    if not isinstance(field_path, str) or not field_path:
        raise InvalidArgument(f"Invalid field path: {field_path!r}")
    segments = field_path.split('.')
    if any(not s for s in segments):
        raise InvalidArgument(f"Invalid field path: {field_path!r}")
    return segments


def _resolve(value, existing=None, deep=False):
    """Materialize sentinels and copy ``value`` so stored data never aliases caller data."""
    if value is SERVER_TIMESTAMP:
        return timezone.now().isoformat()
    if isinstance(value, ArrayAppend):
        base = list(existing) if isinstance(existing, list) else []
        return base + [_resolve(v) for v in value.values]
    if isinstance(value, Mapping):
        base = dict(existing) if deep and isinstance(existing, dict) else {}
        for key, item in value.items():
            key = str(key)
            base[key] = _resolve(item, base.get(key), deep)
        return base
    if isinstance(value, (list, tuple)):
        return [_resolve(v) for v in value]
    return copy.deepcopy(value)


def _set_field(target, segments, value, deep):
    node = target
    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        node = child
    leaf = segments[-1]
    node[leaf] = _resolve(value, node.get(leaf), deep)


@contextmanager
def _storage_errors(action, path):
    try:
        yield
    except DatabaseError as e:
        logger.error(f"Store {action} failed for {path}: {e}")
        raise StorageError(f"{action} {path} failed: {e}") from e


class DocumentSnapshot:
    def __init__(self, reference, data=None, create_time=None, update_time=None):
        self.reference = reference
        self._data = data
        self.create_time = create_time
        self.update_time = update_time

    @property
    def id(self):
        return self.reference.id

    @property
    def path(self):
        return self.reference.path

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        if self._data is None:
            return None
        return copy.deepcopy(self._data)

    def get(self, field_path, default=None):
        node = self._data
        for segment in _field_path(field_path):
            if not isinstance(node, dict) or segment not in node:
                return default
            node = node[segment]
        return copy.deepcopy(node)

    def __repr__(self):
        return f"<DocumentSnapshot {self.path} exists={self.exists}>"


class DocumentReference:
    def __init__(self, store, parts):
        self._store = store
        self._parts = list(parts)

    @property
    def id(self):
        return self._parts[-1]

    @property
    def path(self):
        return '/'.join(self._parts)

    @property
    def parent(self):
        return CollectionReference(self._store, self._parts[:-1])

    def collection(self, *segments):
        return self._store.collection(self.path, *segments)

    def _row(self, for_update=False):
        qs = Document.objects.filter(path=self.path)
        if for_update:
            qs = qs.select_for_update()
        return qs.first()

    def _save(self, data):
        Document.objects.update_or_create(
            path=self.path,
            defaults={
                'collection': self.parent.path,
                'doc_id': self.id,
                'data': data,
            },
        )

    def get(self):
        with _storage_errors('get', self.path):
            row = self._row()
        if row is None:
            return DocumentSnapshot(self)
        return DocumentSnapshot(self, row.data, row.created_at, row.updated_at)

    def set(self, data, merge=False):
        if not isinstance(data, Mapping):
            raise InvalidArgument("Document data must be a mapping")
        with _storage_errors('set', self.path), transaction.atomic():
            if merge:
                row = self._row(for_update=True)
                current = copy.deepcopy(row.data) if row is not None else {}
                for field_path, value in data.items():
                    _set_field(current, _field_path(field_path), value, deep=True)
            else:
                current = _resolve(data)
            self._save(current)

    def update(self, fields):
        if not isinstance(fields, Mapping) or not fields:
            raise InvalidArgument("Update fields must be a non-empty mapping")
        with _storage_errors('update', self.path), transaction.atomic():
            row = self._row(for_update=True)
            if row is None:
                raise NotFound(f"No document to update: {self.path}")
            current = copy.deepcopy(row.data)
            for field_path, value in fields.items():
                _set_field(current, _field_path(field_path), value, deep=False)
            self._save(current)

    def delete(self):
        with _storage_errors('delete', self.path):
            Document.objects.filter(path=self.path).delete()

    def __eq__(self, other):
        return isinstance(other, DocumentReference) and other.path == self.path

    def __hash__(self):
        return hash(self.path)

    def __repr__(self):
        return f"<DocumentReference {self.path}>"


class Query:
    def __init__(self, store, parts, filters=None, orders=None, limit=None):
        self._store = store
        self._parts = list(parts)
        self._filters = list(filters or [])
        self._orders = list(orders or [])
        self._limit = limit

    @property
    def path(self):
        return '/'.join(self._parts)

    def _copy(self, **overrides):
        options = {
            'filters': self._filters,
            'orders': self._orders,
            'limit': self._limit,
        }
        options.update(overrides)
        return Query(self._store, self._parts, **options)

    def where(self, field_path, op, value):
        if op not in QUERY_LOOKUPS:
            raise InvalidArgument(f"Unsupported query operator: {op}")
        _field_path(field_path)
        return self._copy(filters=self._filters + [(field_path, op, value)])

    def order_by(self, field_path, direction=ASCENDING):
        if direction not in (ASCENDING, DESCENDING):
            raise InvalidArgument(f"Invalid direction: {direction}")
        _field_path(field_path)
        return self._copy(orders=self._orders + [(field_path, direction)])

    def limit(self, count):
        if not isinstance(count, int) or count < 0:
            raise InvalidArgument("Limit must be a non-negative integer")
        return self._copy(limit=count)

    def queryset(self):
        """Translate the query into a ``Document`` queryset."""
        qs = Document.objects.filter(collection=self.path)
        for field_path, op, value in self._filters:
            lookup = 'data__' + '__'.join(_field_path(field_path))
            qs = qs.filter(**{f"{lookup}__{QUERY_LOOKUPS[op]}": value})
        if self._orders:
            ordering = []
            for field_path, direction in self._orders:
                key = 'data__' + '__'.join(_field_path(field_path))
                ordering.append(f"-{key}" if direction == DESCENDING else key)
            qs = qs.order_by(*ordering, 'id')
        if self._limit is not None:
            qs = qs[:self._limit]
        return qs

    def stream(self):
        with _storage_errors('query', self.path):
            rows = list(self.queryset())
        for row in rows:
            ref = DocumentReference(self._store, row.path.split('/'))
            yield DocumentSnapshot(ref, row.data, row.created_at, row.updated_at)

    def get(self):
        return list(self.stream())


class CollectionReference(Query):
    def __init__(self, store, parts):
        super().__init__(store, parts)

    @property
    def id(self):
        return self._parts[-1]

    def document(self, doc_id=None):
        if doc_id is None:
            doc_id = uuid.uuid4().hex[:20]
        return self._store.doc(self.path, doc_id)

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return ref


class WriteBatch:
    """Collects writes and applies them in one transaction on ``commit``."""

    def __init__(self, store):
        self._store = store
        self._writes = []

    def set(self, reference, data, merge=False):
        self._writes.append(lambda: reference.set(data, merge=merge))
        return self

    def update(self, reference, fields):
        self._writes.append(lambda: reference.update(fields))
        return self

    def delete(self, reference):
        self._writes.append(reference.delete)
        return self

    def __len__(self):
        return len(self._writes)

    def commit(self):
        with _storage_errors('batch commit', f"{len(self._writes)} writes"), transaction.atomic():
            for write in self._writes:
                write()
        count = len(self._writes)
        self._writes = []
        return count


class DocumentStore:
    def doc(self, *segments):
        parts = _split(segments)
        if len(parts) % 2:
            raise InvalidArgument(f"Document path must have an even number of segments: {'/'.join(parts)}")
        return DocumentReference(self, parts)

    def collection(self, *segments):
        parts = _split(segments)
        if not len(parts) % 2:
            raise InvalidArgument(f"Collection path must have an odd number of segments: {'/'.join(parts)}")
        return CollectionReference(self, parts)

    def batch(self):
        return WriteBatch(self)


@lru_cache(maxsize=None)
def get_store():
    return DocumentStore()
