"""
Main Flask app. Builds the record store, accident service and media uploader
once, registers blueprints and serves uploaded images.
Run from the project root:
    python -m tetela_radar.app
"""

import logging
import os
import socket
import sys
from datetime import datetime, timezone

import firebase_admin
from firebase_admin import credentials
from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from tetela_radar import config
from tetela_radar.errors import StorageError
from tetela_radar.routes.accidents import accidents_bp
from tetela_radar.routes.upload import upload_bp
from tetela_radar.services.accident_service import AccidentService
from tetela_radar.services.firestore_service import FirestoreRecordStore
from tetela_radar.services.record_store import JsonFileRecordStore
from tetela_radar.services.storage_service import build_uploader

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level="INFO"):
    """Console logging for the whole package; safe to call more than once."""
    pkg_logger = logging.getLogger("tetela_radar")
    pkg_logger.setLevel(level)
    if not pkg_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        pkg_logger.addHandler(handler)
    return pkg_logger


def init_firebase(credentials_path, storage_bucket=None):
    """Initialize Firebase Admin once (service account file must exist)."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass
    if not os.path.exists(credentials_path):
        raise FileNotFoundError(f"Place {credentials_path} in the project root before running.")
    cred = credentials.Certificate(credentials_path)
    options = {"storageBucket": storage_bucket} if storage_bucket else None
    return firebase_admin.initialize_app(cred, options)


def build_store(cfg):
    kind = (cfg.get("RECORD_STORE") or "file").lower()
    if kind == "file":
        return JsonFileRecordStore(cfg["ACCIDENTS_FILE"])
    if kind == "firestore":
        return FirestoreRecordStore(collection=cfg.get("FIRESTORE_COLLECTION") or "accidents")
    raise ValueError(f"Unknown RECORD_STORE {kind!r}")


def register_error_handlers(app):
    @app.errorhandler(StorageError)
    def storage_error(e):
        logger.error("Storage error (%s): %s", e.reason, e.message)
        return jsonify({"success": False, "error": "Error al leer los datos de incidentes"}), 500

    @app.errorhandler(HTTPException)
    def http_error(e):
        if e.code == 404:
            message = "Endpoint not found"
        else:
            message = e.description or e.name
        return jsonify({"success": False, "error": message}), e.code

    @app.errorhandler(Exception)
    def unhandled_error(e):
        logger.exception("Unhandled error: %s", e)
        return jsonify({"success": False, "error": "Internal server error"}), 500


def create_app(overrides=None, store=None, uploader=None):
    """
    Build the Flask app. overrides update the settings from config.py;
    store / uploader replace the configured ones (tests pass fakes here).
    """
    app = Flask(__name__)
    app.config.update(config.as_dict())
    if overrides:
        app.config.update(overrides)
    # accept base64 images inside JSON bodies
    if not app.config.get("MAX_CONTENT_LENGTH"):
        app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024

    configure_logging(app.config["LOG_LEVEL"])
    CORS(app)

    needs_firebase = (
        (store is None and app.config["RECORD_STORE"] == "firestore")
        or (uploader is None and app.config["MEDIA_BACKEND"] == "firebase")
    )
    if needs_firebase:
        init_firebase(app.config["FIREBASE_CREDENTIALS"], app.config.get("FIREBASE_STORAGE_BUCKET"))

    store = store if store is not None else build_store(app.config)
    app.extensions["record_store"] = store
    app.extensions["accident_service"] = AccidentService(
        store,
        id_policy=app.config["ID_POLICY"],
        restore_target=app.config["RESTORE_TARGET"],
        require_fields=app.config["REQUIRE_FIELDS"],
    )
    app.extensions["media_uploader"] = uploader if uploader is not None else build_uploader(app.config)

    app.register_blueprint(accidents_bp, url_prefix="/api")
    app.register_blueprint(upload_bp, url_prefix="/api")
    register_error_handlers(app)

    @app.route("/api/health")
    def health():
        return jsonify({
            "status": "OK",
            "message": "Backend server is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    # Serve uploaded images at /uploads/<filename>
    @app.route("/uploads/<path:filename>")
    def uploaded_file(filename):
        return send_from_directory(os.path.abspath(app.config["UPLOAD_FOLDER"]), filename)

    logger.info("Record store: %r", store)
    return app


def port_is_free(host, port):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, port))
        except OSError:
            return False
    return True


def find_free_port(host, start, probes=10):
    """First port in [start, start + probes) that can be bound."""
    for port in range(start, start + probes):
        if port_is_free(host, port):
            return port
        logger.warning("Port %d is in use, trying %d", port, port + 1)
    raise OSError(f"No free port in {start}-{start + probes - 1}")


def main():
    app = create_app()
    host = app.config["HOST"]
    port = find_free_port(host, app.config["PORT"], app.config["PORT_PROBES"])
    logger.info("Servidor corriendo en http://localhost:%d", port)
    logger.info("Health check endpoint: http://localhost:%d/api/health", port)
    app.run(host=host, port=port)


if __name__ == "__main__":
    main()
