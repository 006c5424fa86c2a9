import io
import itertools

import pytest

from tetela_radar.app import create_app
from tetela_radar.services.accident_service import AccidentService
from tetela_radar.services.record_store import JsonFileRecordStore
from tetela_radar.services.storage_service import LocalUploader

# 1x1 transparent GIF
GIF_BYTES = (
    b"GIF89a\x01\x00\x01\x00\x80\x00\x00\x00\x00\x00\xff\xff\xff!\xf9\x04\x01"
    b"\x00\x00\x00\x00,\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x01D\x00;"
)


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "data" / "accidents.json"


@pytest.fixture
def store(data_file):
    return JsonFileRecordStore(data_file)


@pytest.fixture
def service(store):
    return AccidentService(store)


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def app_factory(store, upload_dir):
    def make(uploader=None, **overrides):
        settings = {
            "TESTING": True,
            "RECORD_STORE": "file",
            "MEDIA_BACKEND": "local",
            "UPLOAD_FOLDER": str(upload_dir),
            "ID_POLICY": "timestamp",
            "RESTORE_TARGET": "seed",
            "REQUIRE_FIELDS": False,
        }
        settings.update(overrides)
        if uploader is None:
            uploader = LocalUploader(str(upload_dir))
        return create_app(settings, store=store, uploader=uploader)
    return make


@pytest.fixture
def app(app_factory):
    return app_factory()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def image_file():
    """Factory for multipart file tuples accepted by the Flask test client."""
    def make(name="test.gif", data=GIF_BYTES, mimetype="image/gif"):
        return (io.BytesIO(data), name, mimetype)
    return make


# --- in-memory Firestore -----------------------------------------------------

class FakeSnapshot:
    def __init__(self, ref, data):
        self.reference = ref
        self.id = ref.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocRef:
    def __init__(self, collection, doc_id):
        self.collection = collection
        self.id = doc_id

    def get(self):
        return FakeSnapshot(self, self.collection.docs.get(self.id))

    def set(self, data):
        self.collection.docs[self.id] = dict(data)

    def delete(self):
        self.collection.docs.pop(self.id, None)


class FakeQuery:
    def __init__(self, collection, filters=(), order=None, limit=None):
        self.collection = collection
        self.filters = list(filters)
        self.order = order
        self._limit = limit

    def where(self, field, op, value):
        assert op == "=="
        return FakeQuery(self.collection, self.filters + [(field, value)], self.order, self._limit)

    def order_by(self, field, direction="ASCENDING"):
        return FakeQuery(self.collection, self.filters, (field, direction), self._limit)

    def limit(self, n):
        return FakeQuery(self.collection, self.filters, self.order, n)

    def stream(self):
        rows = [(k, v) for k, v in self.collection.docs.items()
                if all(v.get(f) == val for f, val in self.filters)]
        if self.order:
            field, direction = self.order
            rows = [r for r in rows if field in r[1]]
            rows.sort(key=lambda r: r[1][field], reverse=direction == "DESCENDING")
        if self._limit:
            rows = rows[:self._limit]
        return [FakeSnapshot(FakeDocRef(self.collection, k), v) for k, v in rows]


class FakeCollection(FakeQuery):
    _ids = itertools.count(1)

    def __init__(self):
        self.docs = {}
        super().__init__(self)

    def document(self, doc_id=None):
        return FakeDocRef(self, doc_id or f"auto{next(self._ids)}")

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return None, ref


class FakeBatch:
    def __init__(self, client):
        self.client = client
        self.ops = []

    def set(self, ref, data):
        self.ops.append(lambda: ref.set(data))

    def delete(self, ref):
        self.ops.append(ref.delete)

    def commit(self):
        self.client.commits += 1
        for op in self.ops:
            op()


class FakeFirestore:
    def __init__(self):
        self.collections = {}
        self.commits = 0

    def collection(self, name):
        return self.collections.setdefault(name, FakeCollection())

    def batch(self):
        return FakeBatch(self)


@pytest.fixture
def fake_db():
    return FakeFirestore()
