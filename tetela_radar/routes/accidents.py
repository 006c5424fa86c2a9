"""
Routes for incident reports.

GET    /api/accidents            (optional ?q=text, ?risk=low|medium|high,
                                  ?order=newest|oldest, ?limit=N)
POST   /api/accidents            JSON record, or multipart: accident (JSON string) + image (file)
POST   /api/accidents/validate   report-form checks without saving
POST   /api/accidents/restore
DELETE /api/accidents/<id>
"""

import json
import logging

from flask import Blueprint, current_app, jsonify, request

from tetela_radar.errors import StorageError, UploadError, ValidationError
from tetela_radar.services.accident_service import ORDERS
from tetela_radar.services.validation import validate_report_form

logger = logging.getLogger(__name__)

accidents_bp = Blueprint("accidents", __name__)


def _service():
    return current_app.extensions["accident_service"]


def _uploader():
    return current_app.extensions["media_uploader"]


def _fail(error, status):
    return jsonify({"success": False, "error": error}), status


def _read_candidate():
    """
    Return (record, image_file, error). Multipart bodies carry the record as a
    JSON string in the "accident" field; plain form fields are accepted too.
    """
    if request.mimetype == "multipart/form-data":
        image = request.files.get("image")
        raw = request.form.get("accident")
        if raw is None:
            return request.form.to_dict(), image, None
        try:
            record = json.loads(raw)
        except ValueError:
            return None, None, "El campo 'accident' no es JSON válido"
    else:
        image = None
        record = request.get_json(silent=True)
        if record is None:
            return None, None, "El cuerpo de la solicitud debe ser JSON válido"

    if not isinstance(record, dict):
        return None, None, "El incidente debe ser un objeto JSON"
    return record, image, None


@accidents_bp.route("/accidents", methods=["GET"])
def list_accidents():
    q = request.args.get("q")
    risk = request.args.get("risk")
    order = request.args.get("order") or None
    limit = request.args.get("limit", type=int)
    if order is not None and order not in ORDERS:
        return _fail(f"order debe ser uno de: {', '.join(ORDERS)}", 400)
    if q or risk:
        items = _service().search(text=q, risk=risk, order=order)
        if limit:
            items = items[:limit]
    else:
        items = _service().list(order=order, limit=limit)
    logger.info("Sending %d accidents", len(items))
    return jsonify(items)


@accidents_bp.route("/accidents", methods=["POST"])
def create_accident():
    record, image, error = _read_candidate()
    if error:
        return _fail(error, 400)

    image_url = None
    public_id = None
    warning = None
    if image is not None and image.filename:
        try:
            result = _uploader().upload(image)
            image_url, public_id = result.url, result.public_id
        except UploadError as e:
            # keep the report, just without the picture
            logger.warning("Image upload failed (%s), saving accident without image: %s",
                           e.reason, e.message)
            warning = e.message

    try:
        saved = _service().create(record, image_url=image_url, image_public_id=public_id)
    except ValidationError as e:
        return _fail(str(e), 400)
    except StorageError as e:
        logger.error("Failed to save accident: %s (%s)", e.message, e.reason)
        return _fail("Error al guardar el incidente", 500)

    message = "Incidente guardado exitosamente"
    if warning:
        message += f" (sin imagen: {warning})"
    return jsonify({"success": True, "message": message, "data": saved}), 201


@accidents_bp.route("/accidents/validate", methods=["POST"])
def validate_accident():
    record, _, error = _read_candidate()
    if error:
        return _fail(error, 400)
    errors = validate_report_form(record)
    return jsonify({"success": not errors, "errors": errors})


@accidents_bp.route("/accidents/restore", methods=["POST"])
def restore_accidents():
    try:
        data = _service().restore_defaults()
    except StorageError as e:
        logger.error("Failed to restore initial data: %s (%s)", e.message, e.reason)
        return _fail("Error al restaurar los datos iniciales", 500)
    return jsonify({
        "success": True,
        "message": "Datos iniciales restaurados exitosamente",
        "data": data,
    })


@accidents_bp.route("/accidents/<record_id>", methods=["DELETE"])
def delete_accident(record_id):
    try:
        removed = _service().delete(record_id)
    except StorageError as e:
        logger.error("Failed to delete accident %s: %s", record_id, e.message)
        return _fail("Error al eliminar el incidente", 500)
    if not removed:
        return _fail("Incidente no encontrado", 404)
    return jsonify({"success": True, "message": "Incidente eliminado exitosamente"})
