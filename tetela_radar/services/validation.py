"""
Record helpers shared with the web client:
- required-field and report-form checks
- risk level classification (Spanish / English synonyms)
- reading the image reference from any of the historical shapes
"""

import re

REQUIRED_FIELDS = ("nombre", "tipo", "descripcion")

FORM_REQUIRED = {
    "nombre": "El nombre del incidente es requerido",
    "municipio": "El municipio es requerido",
    "fecha": "La fecha es requerida",
    "hora": "La hora es requerida",
    "tipo": "El tipo de incidente es requerido",
    "descripcion": "La descripción es requerida",
}

RISK_SYNONYMS = (
    ("low", ("bajo", "low")),
    ("medium", ("medio", "medium")),
    ("high", ("alto", "high", "crítico", "critico")),
)

PHONE_RE = re.compile(r"^\d{10}$")


def _blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def missing_required_fields(record, fields=REQUIRED_FIELDS):
    return [f for f in fields if _blank(record.get(f))]


def _as_float(value):
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def validate_report_form(record):
    """
    Apply the report form rules to a candidate record.
    Returns {field: message}; an empty dict means the record is valid.
    """
    errors = {f: msg for f, msg in FORM_REQUIRED.items() if _blank(record.get(f))}

    affected = record.get("afectados")
    try:
        ok = not isinstance(affected, bool) and int(str(affected)) >= 0
    except (TypeError, ValueError):
        ok = False
    if not ok:
        errors["afectados"] = "El número de afectados es requerido y debe ser un número positivo"

    phone = record.get("telefono")
    if not _blank(phone) and not PHONE_RE.match(str(phone)):
        errors["telefono"] = "El número de teléfono debe tener 10 dígitos"

    coords = record.get("coordenadas")
    if not isinstance(coords, (list, tuple)) or len(coords) != 2:
        errors["coordenadas"] = "Las coordenadas deben ser [longitud, latitud]"
    else:
        lng, lat = _as_float(coords[0]), _as_float(coords[1])
        if lng is None or not -180 <= lng <= 180:
            errors["longitud"] = "La longitud debe ser un número entre -180 y 180"
        if lat is None or not -90 <= lat <= 90:
            errors["latitud"] = "La latitud debe ser un número entre -90 y 90"

    return errors


def classify_risk_level(value):
    """Map a free-form risk label to low / medium / high, or "default"."""
    label = str(value or "").lower()
    for level, words in RISK_SYNONYMS:
        if any(w in label for w in words):
            return level
    return "default"


def image_reference(record):
    """
    Return the record's image as a single string (URL, relative path or data URI).
    Accepts imageUrl, image, and imagenes[] (strings or {"url": ...}).
    """
    for key in ("imageUrl", "image"):
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value

    images = record.get("imagenes")
    if isinstance(images, str) and images.strip():
        return images
    if isinstance(images, (list, tuple)):
        for item in images:
            if isinstance(item, dict):
                item = item.get("url") or item.get("secure_url")
            if isinstance(item, str) and item.strip():
                return item
    return None
