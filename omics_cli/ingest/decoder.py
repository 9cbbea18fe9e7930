"""Lazy record decoders for the ingestion pipeline.

Both decoders read from a stream a little at a time and yield values as soon
as they are complete, so the caller can suspend intake (e.g. while a batch
upload is in flight) without the whole input being buffered.
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterator
from decimal import Decimal
from typing import IO, Any, TextIO

import ijson

from omics_cli.ingest.exceptions import DecodeError

logger = logging.getLogger(__name__)

DEFAULT_READ_SIZE = 64 * 1024


class _ByteReader:
    """Feeds ijson bytes from a text or binary stream.

    Also notes whether anything other than whitespace was read, so empty
    input can be told apart from a truncated value.
    """

    def __init__(self, stream: IO[Any]) -> None:
        self._stream = stream
        self.saw_content = False

    def read(self, size: int = -1) -> bytes:
        try:
            data = self._stream.read(size)
        except UnicodeDecodeError as exc:
            raise DecodeError(f"input is not valid UTF-8: {exc}") from exc
        if isinstance(data, str):
            data = data.encode("utf-8")
        if data and not self.saw_content and data.strip():
            self.saw_content = True
        return data


def _plain(value: Any) -> Any:
    # ijson returns Decimal for non-integers – coerce for JSON serialization
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def iter_json_values(
    stream: IO[Any], read_size: int = DEFAULT_READ_SIZE
) -> Iterator[Any]:
    """Yield each top-level JSON value found in *stream*.

    The input is a sequence of JSON values separated by optional whitespace
    (newline-delimited JSON is the common case), not a single JSON array.
    A top-level array is yielded as one ``list``; flattening it is up to
    the caller.

    Raises:
        DecodeError: if the input contains anything that is not valid JSON.
    """
    reader = _ByteReader(stream)
    try:
        values = ijson.items(reader, "", multiple_values=True, buf_size=read_size)
        for value in values:
            yield _plain(value)
    except ijson.IncompleteJSONError as exc:
        if reader.saw_content:
            raise DecodeError(f"incomplete JSON value: {exc}") from exc
    except ijson.JSONError as exc:
        raise DecodeError(str(exc)) from exc
    except UnicodeDecodeError as exc:
        raise DecodeError(f"input is not valid UTF-8: {exc}") from exc


def iter_csv_rows(stream: TextIO) -> Iterator[dict[str, str]]:
    """Yield one ``{header: value}`` mapping per CSV data row.

    The first row is the header. Blank lines are skipped. Cells missing
    from a short row come back as ``None``.

    Raises:
        DecodeError: on malformed CSV (e.g. an unterminated quoted field).
    """
    reader = csv.DictReader(stream, strict=True)
    try:
        for row in reader:
            yield row
    except csv.Error as exc:
        raise DecodeError(f"CSV line {reader.line_num}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise DecodeError(f"input is not valid UTF-8: {exc}") from exc
    logger.debug("Read %d CSV lines", reader.line_num)
