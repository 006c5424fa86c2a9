"""
Exceptions shared by the stores, the uploaders and the routes.

Each carries a short ``reason`` code so the HTTP layer can pick a status code
without parsing messages.
"""


class StorageError(Exception):
    """The record store could not be read or written."""

    CORRUPT = "corrupt"
    READ_FAILED = "read_failed"
    WRITE_FAILED = "write_failed"
    UPSTREAM_FAILED = "upstream_failed"

    def __init__(self, reason, message=None):
        self.reason = reason
        self.message = message or reason
        super().__init__(self.message)


class UploadError(Exception):
    """The media host rejected or failed an image upload."""

    MISSING_FILE = "missing_file"
    OVERSIZED = "oversized"
    DISALLOWED_FORMAT = "disallowed_format"
    MISSING_CREDENTIALS = "missing_credentials"
    PRESET_NOT_FOUND = "preset_not_found"
    UPSTREAM_FAILED = "upstream_failed"

    CLIENT_REASONS = (MISSING_FILE, OVERSIZED, DISALLOWED_FORMAT)

    def __init__(self, reason, message=None):
        self.reason = reason
        self.message = message or reason
        super().__init__(self.message)

    @property
    def client_error(self):
        return self.reason in self.CLIENT_REASONS


class ValidationError(Exception):
    """A candidate record is missing required fields."""

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__("Missing required fields: " + ", ".join(self.missing))
