from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any, TextIO

from omics_cli.ingest.batcher import Batcher
from omics_cli.ingest.decoder import (
    DEFAULT_READ_SIZE,
    iter_csv_rows,
    iter_json_values,
)
from omics_cli.ingest.mapper import CsvConfig, map_row
from omics_cli.ingest.types import IngestResult, Resource
from omics_cli.ingest.uploader import FhirUploader

logger = logging.getLogger(__name__)


class IngestPipeline:
    """Stream records from a text source into sequential bundle uploads.

    decode → (map, CSV only) → flatten → batch → upload

    Each record is fully handled before the next one is read, and a full
    batch is uploaded (and acknowledged) before intake resumes, so at most
    one batch of resources is held in memory and batches reach the server
    in input order.

    The first decode, mapping or upload error aborts the run and
    propagates. Batches already uploaded are not rolled back.
    """

    def __init__(
        self,
        uploader: FhirUploader,
        batcher: Batcher,
        csv_config: CsvConfig | None = None,
        *,
        read_size: int = DEFAULT_READ_SIZE,
    ) -> None:
        self._uploader = uploader
        self._batcher = batcher
        self._csv_config = csv_config
        self._read_size = read_size

    def records(self, stream: TextIO) -> Iterator[Any]:
        """Yield decoded (and, in CSV mode, mapped) values from *stream*."""
        if self._csv_config is None:
            yield from iter_json_values(stream, self._read_size)
            return
        for row in iter_csv_rows(stream):
            yield map_row(self._csv_config, row)

    async def run(self, stream: TextIO) -> IngestResult:
        result = IngestResult()
        values = self.records(stream)
        try:
            for value in values:
                for record in _flatten(value):
                    result.records += 1
                    batch = self._batcher.add(record)
                    if batch is not None:
                        await self._upload(batch, result)

            batch = self._batcher.drain()
            if batch is not None:
                await self._upload(batch, result)
        finally:
            values.close()

        logger.info(
            "Ingested %d resources in %d bundles", result.records, result.batches
        )
        return result

    async def _upload(self, batch: list[Resource], result: IngestResult) -> None:
        logger.info(
            "Uploading bundle %d (%d resources)", result.batches + 1, len(batch)
        )
        await self._uploader.upload(batch)
        result.batches += 1


def _flatten(value: Any) -> list[Resource]:
    if isinstance(value, list):
        return value
    return [value]
