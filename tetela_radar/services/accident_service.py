"""
Accident service: list / create / restore / delete over a record store.

Configuration:
- id_policy: "timestamp" (epoch millis) or "random" (1000-9999). Neither is
  guaranteed unique.
- restore_target: "seed" (bundled incidents) or "empty".
"""

import copy
import logging
import random
import time
from datetime import datetime, timezone

from tetela_radar.errors import ValidationError
from tetela_radar.services.seed_data import SEED_ACCIDENTS
from tetela_radar.services.validation import (
    REQUIRED_FIELDS,
    classify_risk_level,
    image_reference,
    missing_required_fields,
)

logger = logging.getLogger(__name__)

ID_POLICIES = ("timestamp", "random")
RESTORE_TARGETS = ("seed", "empty")
ORDERS = ("newest", "oldest")

# legacy image keys folded into imageUrl on create
LEGACY_IMAGE_KEYS = ("image", "imagenes")


def timestamp_id():
    return int(time.time() * 1000)


def random_id():
    return random.randint(1000, 9999)


def utc_now_iso():
    return datetime.now(timezone.utc).isoformat()


class AccidentService:
    def __init__(self, store, id_policy="timestamp", restore_target="seed",
                 seed_records=None, require_fields=False):
        if id_policy not in ID_POLICIES:
            raise ValueError(f"id_policy must be one of {ID_POLICIES}, got {id_policy!r}")
        if restore_target not in RESTORE_TARGETS:
            raise ValueError(f"restore_target must be one of {RESTORE_TARGETS}, got {restore_target!r}")
        self.store = store
        self.id_policy = id_policy
        self.restore_target = restore_target
        self.seed_records = SEED_ACCIDENTS if seed_records is None else seed_records
        self.require_fields = require_fields

    def list(self, order=None, limit=None):
        """
        Stored order by default. order="newest"/"oldest" sorts by createdAt and
        leaves out records that have none (the seed incidents, for example).
        """
        if order is None:
            return self.store.load_all()
        if order not in ORDERS:
            raise ValueError(f"order must be one of {ORDERS}, got {order!r}")
        return self.store.load_ordered(descending=order == "newest", limit=limit)

    def search(self, text=None, risk=None, order=None):
        """
        Filter the collection. text: case-insensitive substring over nombre,
        municipio, tipo and descripcion. risk: low / medium / high.
        """
        items = self.list(order=order)
        if risk:
            wanted = classify_risk_level(risk)
            items = [r for r in items if classify_risk_level(r.get("nivel_riesgo")) == wanted]
        if text:
            qlow = text.lower()
            fields = ("nombre", "municipio", "tipo", "descripcion")
            items = [r for r in items
                     if any(qlow in str(r.get(f) or "").lower() for f in fields)]
        return items

    def _new_id(self):
        return random_id() if self.id_policy == "random" else timestamp_id()

    def create(self, candidate, image_url=None, image_public_id=None):
        """
        Store a new record and return it with server-assigned id and createdAt.
        Raises ValidationError (only when require_fields is on) or StorageError.
        """
        record = dict(candidate)
        if self.require_fields:
            missing = missing_required_fields(record, REQUIRED_FIELDS)
            if missing:
                raise ValidationError(missing)

        if not record.get("id"):
            record["id"] = self._new_id()
        record["createdAt"] = utc_now_iso()

        ref = image_url or image_reference(record)
        for key in LEGACY_IMAGE_KEYS:
            record.pop(key, None)
        if ref:
            record["imageUrl"] = ref
        if image_public_id:
            record["imagePublicId"] = image_public_id

        stored = self.store.append(record)
        logger.info("Saved accident %s (%s)", stored.get("id"), stored.get("tipo"))
        return stored

    def restore_defaults(self):
        data = copy.deepcopy(self.seed_records) if self.restore_target == "seed" else []
        self.store.save_all(data)
        logger.info("Restored %d default accidents (target=%s)", len(data), self.restore_target)
        return data

    def delete(self, record_id):
        removed = self.store.delete(record_id)
        if removed:
            logger.info("Deleted accident %s", record_id)
        return removed
