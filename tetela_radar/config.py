"""
Central configuration. Loads environment variables from ../.env.
"""
import os
from dotenv import load_dotenv
from pathlib import Path

# Load .env from project root
root = Path(__file__).resolve().parents[1]
load_dotenv(root / ".env")


def _flag(name, default="false"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "10000"))
# How many consecutive ports to try when PORT is busy
PORT_PROBES = 10

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# "file" or "firestore"
RECORD_STORE = os.getenv("RECORD_STORE", "file")
ACCIDENTS_FILE = os.getenv("ACCIDENTS_FILE", str(root / "data" / "accidents.json"))
FIRESTORE_COLLECTION = os.getenv("FIRESTORE_COLLECTION", "accidents")

# Service account file for Firebase Admin (Firestore / Storage)
FIREBASE_CREDENTIALS = os.getenv("FIREBASE_CREDENTIALS", "firebase_admin_key.json")
# Firebase Storage bucket name (e.g. "your-project-id.appspot.com")
FIREBASE_STORAGE_BUCKET = os.getenv("FIREBASE_STORAGE_BUCKET")

# "timestamp" (epoch millis) or "random" (4-digit integer)
ID_POLICY = os.getenv("ID_POLICY", "timestamp")
# "seed" (bundled sample incidents) or "empty"
RESTORE_TARGET = os.getenv("RESTORE_TARGET", "seed")
# Reject creates without nombre / tipo / descripcion
REQUIRE_FIELDS = _flag("REQUIRE_FIELDS")

# "cloudinary", "firebase" or "local"
MEDIA_BACKEND = os.getenv("MEDIA_BACKEND", "cloudinary")
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")
CLOUDINARY_UPLOAD_PRESET = os.getenv("CLOUDINARY_UPLOAD_PRESET")
MEDIA_FOLDER = os.getenv("MEDIA_FOLDER", "tetela_radar")

# Where uploaded images are saved locally (local backend, and served at /uploads)
UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", str(root / "uploads"))
MAX_IMAGE_BYTES = int(float(os.getenv("MAX_IMAGE_MB", "10")) * 1024 * 1024)


def as_dict():
    """Snapshot of the settings above, keyed the way app.config expects them."""
    return {
        "HOST": HOST,
        "PORT": PORT,
        "PORT_PROBES": PORT_PROBES,
        "LOG_LEVEL": LOG_LEVEL,
        "RECORD_STORE": RECORD_STORE,
        "ACCIDENTS_FILE": ACCIDENTS_FILE,
        "FIRESTORE_COLLECTION": FIRESTORE_COLLECTION,
        "FIREBASE_CREDENTIALS": FIREBASE_CREDENTIALS,
        "FIREBASE_STORAGE_BUCKET": FIREBASE_STORAGE_BUCKET,
        "ID_POLICY": ID_POLICY,
        "RESTORE_TARGET": RESTORE_TARGET,
        "REQUIRE_FIELDS": REQUIRE_FIELDS,
        "MEDIA_BACKEND": MEDIA_BACKEND,
        "CLOUDINARY_CLOUD_NAME": CLOUDINARY_CLOUD_NAME,
        "CLOUDINARY_API_KEY": CLOUDINARY_API_KEY,
        "CLOUDINARY_API_SECRET": CLOUDINARY_API_SECRET,
        "CLOUDINARY_UPLOAD_PRESET": CLOUDINARY_UPLOAD_PRESET,
        "MEDIA_FOLDER": MEDIA_FOLDER,
        "UPLOAD_FOLDER": UPLOAD_FOLDER,
        "MAX_IMAGE_BYTES": MAX_IMAGE_BYTES,
    }
