from __future__ import annotations

from dataclasses import dataclass
from typing import Any

Resource = dict[str, Any]
"""One JSON-like FHIR resource. No schema is enforced client-side."""


@dataclass
class IngestResult:
    """Result returned from :meth:`IngestPipeline.run`."""

    records: int = 0
    batches: int = 0
