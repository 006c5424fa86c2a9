"""
Record store for incident reports.

The whole collection lives in one JSON array. ``load_all`` returns it,
``save_all`` replaces it. There is no locking: two writers that load the same
snapshot will overwrite each other (last writer wins).
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from tetela_radar.errors import StorageError

logger = logging.getLogger(__name__)


def _same_id(record, record_id):
    # records without an id never match
    value = record.get("id")
    return value is not None and str(value) == str(record_id)


class RecordStore:
    """Interface shared by the file and Firestore stores."""

    def load_all(self):
        raise NotImplementedError

    def save_all(self, records):
        raise NotImplementedError

    def load_ordered(self, descending=True, limit=None):
        """
        Records sorted by createdAt (ISO strings sort chronologically).
        Records without createdAt are left out, as the Firestore query does.
        """
        dated = [r for r in self.load_all() if r.get("createdAt")]
        dated.sort(key=lambda r: str(r["createdAt"]), reverse=descending)
        return dated[:limit] if limit else dated

    def append(self, record):
        """Add one record by rewriting the full collection."""
        records = self.load_all()
        records.append(record)
        self.save_all(records)
        return record

    def delete(self, record_id):
        """Remove records whose id matches. Returns True if any were removed."""
        records = self.load_all()
        kept = [r for r in records if not _same_id(r, record_id)]
        if len(kept) == len(records):
            return False
        self.save_all(kept)
        return True


class JsonFileRecordStore(RecordStore):
    """Keeps the collection in a pretty-printed UTF-8 JSON file."""

    def __init__(self, path):
        self.path = Path(path)

    def __repr__(self):
        return f"JsonFileRecordStore({str(self.path)!r})"

    def load_all(self):
        if not self.path.exists():
            logger.info("Accidents file %s not found, returning empty list", self.path)
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.exception("Error reading accidents data from %s", self.path)
            raise StorageError(StorageError.READ_FAILED, str(exc)) from exc

        if not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except ValueError as exc:
            logger.error("Accidents file %s is not valid JSON: %s", self.path, exc)
            raise StorageError(StorageError.CORRUPT, f"{self.path} is not valid JSON") from exc
        if not isinstance(data, list):
            logger.error("Accidents file %s does not hold a JSON array", self.path)
            raise StorageError(StorageError.CORRUPT, f"{self.path} does not hold a JSON array")

        logger.debug("Read %d accidents from %s", len(data), self.path)
        return data

    def save_all(self, records):
        records = list(records)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            payload = json.dumps(records, ensure_ascii=False, indent=2)
            # write a sibling temp file, then swap it in
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=self.path.name + ".", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as exc:
            logger.exception("Error writing accidents data to %s", self.path)
            raise StorageError(StorageError.WRITE_FAILED, str(exc)) from exc
        finally:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.info("Wrote %d accidents to %s", len(records), self.path)
