"""
Image upload.

Endpoint:
POST /api/upload

Form fields (multipart/form-data):
- image (file, required)
- folder (string, optional)
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from tetela_radar.errors import UploadError

logger = logging.getLogger(__name__)

upload_bp = Blueprint("upload", __name__)


@upload_bp.route("/upload", methods=["POST"])
def upload_image():
    image = request.files.get("image")
    folder = request.form.get("folder") or None
    uploader = current_app.extensions["media_uploader"]

    try:
        result = uploader.upload(image, folder=folder)
    except UploadError as e:
        if e.client_error:
            return jsonify({"error": e.message}), 400
        logger.error("Image upload failed (%s): %s", e.reason, e.message)
        return jsonify({"error": f"Error al subir la imagen: {e.message}"}), 500

    return jsonify({
        "message": "Imagen subida exitosamente",
        "url": result.url,
        "public_id": result.public_id,
    }), 200
