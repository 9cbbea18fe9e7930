from __future__ import annotations

from omics_cli.exceptions import ConfigError
from omics_cli.ingest.types import Resource

DEFAULT_CHUNK_SIZE = 100


class Batcher:
    """Accumulates resources and hands them out in groups of ``chunk_size``.

    Owns the only pending list in the pipeline. Records leave in arrival
    order, each in exactly one batch; only the batch returned by
    :meth:`drain` at end of input may be smaller than ``chunk_size``.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
            raise ConfigError(f"Chunk size must be an integer, got {chunk_size!r}")
        if chunk_size <= 0:
            raise ConfigError(f"Chunk size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        self._pending: list[Resource] = []

    def __len__(self) -> int:
        return len(self._pending)

    def add(self, record: Resource) -> list[Resource] | None:
        """Queue *record*; return a full batch once the threshold is reached."""
        self._pending.append(record)
        if len(self._pending) >= self.chunk_size:
            return self._take()
        return None

    def drain(self) -> list[Resource] | None:
        """Return whatever is still pending, or ``None`` if nothing is."""
        if not self._pending:
            return None
        return self._take()

    def _take(self) -> list[Resource]:
        batch, self._pending = self._pending, []
        return batch
