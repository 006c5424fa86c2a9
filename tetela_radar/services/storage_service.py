# tetela_radar/services/storage_service.py

import io
import logging
import os
import time
import uuid
from collections import namedtuple

import cloudinary.exceptions
import cloudinary.uploader
from firebase_admin import storage
from werkzeug.utils import secure_filename

from tetela_radar.errors import UploadError

logger = logging.getLogger(__name__)

ALLOWED_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}
DEFAULT_MAX_BYTES = 10 * 1024 * 1024

UploadResult = namedtuple("UploadResult", ["url", "public_id"])


def read_image(file, max_bytes=DEFAULT_MAX_BYTES):
    """
    Check an uploaded file (werkzeug FileStorage) and return (data, content_type, ext).
    Raises UploadError for missing, non-image or oversized payloads.
    """
    if file is None or not getattr(file, "filename", None):
        raise UploadError(UploadError.MISSING_FILE, "No se ha seleccionado ningún archivo")

    content_type = (file.mimetype or "").lower()
    if content_type not in ALLOWED_TYPES:
        raise UploadError(UploadError.DISALLOWED_FORMAT,
                          "Solo se permiten archivos de imagen (JPEG, PNG, GIF, WEBP)")

    data = file.read()
    if not data:
        raise UploadError(UploadError.MISSING_FILE, "El archivo está vacío")
    if len(data) > max_bytes:
        raise UploadError(UploadError.OVERSIZED,
                          f"La imagen debe ser menor a {max_bytes // (1024 * 1024)}MB")

    name = file.filename
    ext = secure_filename(name.rsplit(".", 1)[-1].lower()) if "." in name else ""
    return data, content_type, ext or ALLOWED_TYPES[content_type]


def unique_name(ext):
    return f"accident-{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}.{ext}"


class CloudinaryUploader:
    """Uploads to Cloudinary, signed with the account key/secret (or an unsigned preset)."""

    def __init__(self, cloud_name=None, api_key=None, api_secret=None,
                 upload_preset=None, folder="tetela_radar", max_bytes=DEFAULT_MAX_BYTES):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.upload_preset = upload_preset
        self.folder = folder
        self.max_bytes = max_bytes

    def _options(self, folder):
        if not self.cloud_name or not (self.upload_preset or (self.api_key and self.api_secret)):
            raise UploadError(UploadError.MISSING_CREDENTIALS,
                              "Cloudinary credentials are not configured")
        opts = {
            "cloud_name": self.cloud_name,
            "folder": folder or self.folder,
            "resource_type": "image",
        }
        if self.api_key and self.api_secret:
            opts.update(api_key=self.api_key, api_secret=self.api_secret)
        if self.upload_preset:
            opts["upload_preset"] = self.upload_preset
            if not self.api_secret:
                opts["unsigned"] = True
        return opts

    def upload(self, file, folder=None):
        data, _, _ = read_image(file, self.max_bytes)
        opts = self._options(folder)
        try:
            result = cloudinary.uploader.upload(io.BytesIO(data), **opts)
        except cloudinary.exceptions.Error as exc:
            raise _cloudinary_error(exc) from exc

        url = result.get("secure_url") or result.get("url")
        if not url:
            raise UploadError(UploadError.UPSTREAM_FAILED, "Cloudinary response has no URL")
        logger.info("Uploaded image to Cloudinary: %s", result.get("public_id"))
        return UploadResult(url, result.get("public_id"))


def _cloudinary_error(exc):
    msg = str(exc)
    low = msg.lower()
    if "preset" in low and "not found" in low:
        reason = UploadError.PRESET_NOT_FOUND
    elif "file size too large" in low:
        reason = UploadError.OVERSIZED
    elif "invalid image" in low:
        reason = UploadError.DISALLOWED_FORMAT
    elif "api key" in low or "api_key" in low or "must supply" in low:
        reason = UploadError.MISSING_CREDENTIALS
    else:
        reason = UploadError.UPSTREAM_FAILED
    return UploadError(reason, msg)


class FirebaseStorageUploader:
    """
    Uploads an image to Firebase Storage and returns:
    - public download URL
    - blob name (as public_id)
    """

    def __init__(self, bucket=None, folder="incidents", max_bytes=DEFAULT_MAX_BYTES):
        self.bucket_name = bucket
        self.folder = folder
        self.max_bytes = max_bytes

    def upload(self, file, folder=None):
        data, content_type, ext = read_image(file, self.max_bytes)
        if not self.bucket_name:
            raise UploadError(UploadError.MISSING_CREDENTIALS,
                              "FIREBASE_STORAGE_BUCKET is not configured")
        try:
            bucket = storage.bucket(self.bucket_name)
            blob = bucket.blob(f"{folder or self.folder}/{unique_name(ext)}")
            blob.upload_from_string(data, content_type=content_type)
            # Make public for map popups
            blob.make_public()
        except Exception as exc:
            logger.exception("Firebase Storage upload failed")
            raise UploadError(UploadError.UPSTREAM_FAILED, str(exc)) from exc
        return UploadResult(blob.public_url, blob.name)


class LocalUploader:
    """Saves images under the uploads folder; the app serves them at /uploads/<name>."""

    def __init__(self, upload_folder, max_bytes=DEFAULT_MAX_BYTES):
        self.upload_folder = upload_folder
        self.max_bytes = max_bytes

    def upload(self, file, folder=None):
        data, _, ext = read_image(file, self.max_bytes)
        name = unique_name(ext)
        folder = secure_filename(folder or "")
        rel = f"{folder}/{name}" if folder else name
        path = os.path.join(self.upload_folder, rel)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as fh:
                fh.write(data)
        except OSError as exc:
            logger.exception("Could not save image to %s", path)
            raise UploadError(UploadError.UPSTREAM_FAILED, str(exc)) from exc
        return UploadResult(f"/uploads/{rel}", rel)


def build_uploader(cfg):
    """Pick the uploader named by cfg["MEDIA_BACKEND"]."""
    backend = (cfg.get("MEDIA_BACKEND") or "cloudinary").lower()
    max_bytes = cfg.get("MAX_IMAGE_BYTES", DEFAULT_MAX_BYTES)
    if backend == "cloudinary":
        return CloudinaryUploader(
            cloud_name=cfg.get("CLOUDINARY_CLOUD_NAME"),
            api_key=cfg.get("CLOUDINARY_API_KEY"),
            api_secret=cfg.get("CLOUDINARY_API_SECRET"),
            upload_preset=cfg.get("CLOUDINARY_UPLOAD_PRESET"),
            folder=cfg.get("MEDIA_FOLDER") or "tetela_radar",
            max_bytes=max_bytes,
        )
    if backend == "firebase":
        return FirebaseStorageUploader(bucket=cfg.get("FIREBASE_STORAGE_BUCKET"), max_bytes=max_bytes)
    if backend == "local":
        return LocalUploader(cfg["UPLOAD_FOLDER"], max_bytes=max_bytes)
    raise ValueError(f"Unknown MEDIA_BACKEND {backend!r}")
