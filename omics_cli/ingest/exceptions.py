"""Custom exceptions for the ingestion pipeline."""

from __future__ import annotations

import json
from typing import Any


class DecodeError(Exception):
    def __init__(self, message: str | None = None):
        self.message = f"Decode failed: {message}" if message else "Decode failed"
        super().__init__(self.message)


class UploadError(Exception):
    """Raised when one or more entries of a submitted bundle were rejected.

    Entries that succeeded in the same bundle stay applied on the server.
    """

    def __init__(self, failures: list[Any]):
        self.failures = failures
        self.message = f"Error when ingesting resources: {json.dumps(failures)}"
        super().__init__(self.message)
