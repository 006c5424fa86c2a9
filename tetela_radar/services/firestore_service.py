"""
Firestore-backed record store.
The client is passed in (or created lazily) to avoid initialization-order issues
with firebase_admin.initialize_app().
"""

import logging

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPIError

from tetela_radar.errors import StorageError
from tetela_radar.services.record_store import RecordStore

logger = logging.getLogger(__name__)

# Firestore batches accept at most 500 writes
BATCH_SIZE = 400


def get_db():
    return firestore.client()


def _to_iso(item):
    # convert Firestore timestamps to iso strings so records stay JSON friendly
    for key in ("createdAt", "timestamp"):
        ts = item.get(key)
        if ts is not None and hasattr(ts, "isoformat"):
            item[key] = ts.isoformat()
    return item


def _doc_to_record(doc):
    item = doc.to_dict() or {}
    item["_id"] = doc.id
    return _to_iso(item)


class FirestoreRecordStore(RecordStore):
    """
    One document per record, always under an auto-generated document id
    (exposed as "_id"). Record ids are not unique, so "id" is only a field.
    """

    def __init__(self, client=None, collection="accidents"):
        self._client = client
        self.collection_name = collection

    @property
    def db(self):
        if self._client is None:
            self._client = get_db()
        return self._client

    def _collection(self):
        return self.db.collection(self.collection_name)

    def load_all(self):
        try:
            return [_doc_to_record(d) for d in self._collection().stream()]
        except GoogleAPIError as exc:
            logger.exception("Failed to read collection %s", self.collection_name)
            raise StorageError(StorageError.UPSTREAM_FAILED, str(exc)) from exc

    def load_ordered(self, descending=True, limit=None):
        """Records ordered by createdAt. Documents without createdAt are skipped by Firestore."""
        direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
        q = self._collection().order_by("createdAt", direction=direction)
        if limit:
            q = q.limit(limit)
        try:
            return [_doc_to_record(d) for d in q.stream()]
        except GoogleAPIError as exc:
            logger.exception("Failed ordered read on %s", self.collection_name)
            raise StorageError(StorageError.UPSTREAM_FAILED, str(exc)) from exc

    def save_all(self, records):
        """Replace the whole collection: delete every document, then write each record."""
        col = self._collection()
        try:
            refs = [d.reference for d in col.stream()]
            ops = [("delete", ref, None) for ref in refs]
            for record in records:
                data = {k: v for k, v in record.items() if k != "_id"}
                ops.append(("set", col.document(), data))

            for start in range(0, len(ops), BATCH_SIZE):
                batch = self.db.batch()
                for op, ref, data in ops[start:start + BATCH_SIZE]:
                    if op == "delete":
                        batch.delete(ref)
                    else:
                        batch.set(ref, data)
                batch.commit()
        except GoogleAPIError as exc:
            logger.exception("Failed to replace collection %s", self.collection_name)
            raise StorageError(StorageError.UPSTREAM_FAILED, str(exc)) from exc
        logger.info("Replaced %s with %d records", self.collection_name, len(records))

    def append(self, record):
        data = {k: v for k, v in record.items() if k != "_id"}
        try:
            _, ref = self._collection().add(data)
        except GoogleAPIError as exc:
            logger.exception("Failed to add record %s", record.get("id"))
            raise StorageError(StorageError.UPSTREAM_FAILED, str(exc)) from exc
        logger.debug("Added record %s as document %s", record.get("id"), ref.id)
        return record

    def delete(self, record_id):
        """Delete every document whose "id" field matches, else the document with that doc id."""
        col = self._collection()
        try:
            deleted = False
            candidates = [record_id]
            if isinstance(record_id, str) and record_id.isdigit():
                candidates.append(int(record_id))
            for value in candidates:
                for doc in col.where("id", "==", value).stream():
                    doc.reference.delete()
                    deleted = True
            if deleted:
                return True

            # records without an "id" field can still be removed by their _id
            ref = col.document(str(record_id))
            if ref.get().exists:
                ref.delete()
                return True
            return False
        except GoogleAPIError as exc:
            logger.exception("Failed to delete record %s", record_id)
            raise StorageError(StorageError.UPSTREAM_FAILED, str(exc)) from exc
