"""Declarative CSV-row → resource mapping.

A mapping file lists ``fieldMaps`` rules. Each rule writes either a
constant ``value`` or the cell named by ``columnName`` to the location
``jpath`` inside the resource being built::

    {
      "fieldMaps": [
        {"jpath": "resourceType", "value": "Observation"},
        {"jpath": "subject.reference", "columnName": "patient"},
        {"jpath": "valueQuantity.value", "columnName": "result", "isNumber": true}
      ]
    }

Supported ``jpath`` forms:
  - dotted keys with bracket indexes   e.g. ``name[0].given[1]``
  - quoted bracket keys                e.g. ``extension["a.b"].url``
  - slash pointers                     e.g. ``/code/coding/0/code``
"""

from __future__ import annotations

import copy
import math
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from omics_cli.exceptions import ConfigError
from omics_cli.ingest.types import Resource

Segment = str | int


class PathSyntaxError(ValueError):
    pass


_TOKEN = re.compile(r"""\[(\d+)\]|\[(["'])(.*?)\2\]|([^.\[\]]+)""")


def parse_path(jpath: str) -> list[Segment]:
    """Split *jpath* into keys (``str``) and list positions (``int``)."""
    if jpath.startswith("/"):
        return [
            int(part) if part.isdigit() else part.replace("~1", "/").replace("~0", "~")
            for part in jpath[1:].split("/")
        ]

    segments: list[Segment] = []
    pos = 0
    while pos < len(jpath):
        if segments and jpath[pos] == ".":
            pos += 1
        m = _TOKEN.match(jpath, pos)
        if not m:
            raise PathSyntaxError(f"Malformed path '{jpath}' at position {pos}")
        index, _, quoted, name = m.groups()
        if index is not None:
            segments.append(int(index))
        elif quoted is not None:
            segments.append(quoted)
        else:
            segments.append(int(name) if name.isdigit() else name)
        pos = m.end()

    if not segments:
        raise PathSyntaxError("Empty path")
    return segments


def _child(container: dict | list, seg: Segment) -> Any:
    if isinstance(container, list):
        if isinstance(seg, int) and seg < len(container):
            return container[seg]
        return None
    return container.get(str(seg) if isinstance(seg, int) else seg)


def _put(container: dict | list, seg: Segment, value: Any) -> None:
    if isinstance(container, list):
        if not isinstance(seg, int):
            raise PathSyntaxError(f"Cannot set key '{seg}' on a list")
        if seg >= len(container):
            container.extend([None] * (seg + 1 - len(container)))
        container[seg] = value
    else:
        container[str(seg) if isinstance(seg, int) else seg] = value


def set_path(obj: dict, jpath: str, value: Any) -> dict:
    """Write *value* at *jpath* inside *obj*, creating containers on the way.

    A missing intermediate becomes a list when the following segment is a
    position, otherwise a dict. Scalars in the way are replaced.
    Returns *obj*.
    """
    segments = parse_path(jpath)
    cur: dict | list = obj
    for seg, nxt in zip(segments, segments[1:]):
        child = _child(cur, seg)
        if not isinstance(child, (dict, list)):
            child = [] if isinstance(nxt, int) else {}
            _put(cur, seg, child)
        cur = child
    _put(cur, segments[-1], value)
    return obj


def number_or_string(value: str) -> int | float | str:
    """Return *value* as a number when it is a finite numeric literal.

    ``"42"`` → ``42``, ``"2.5"`` → ``2.5``; ``"abc"``, ``"1a"``, ``"NaN"``
    and ``"Infinity"`` are returned unchanged.
    """
    text = value.strip()
    if "_" in text:
        return value
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return value
    return number if math.isfinite(number) else value


# ---------------------------------------------------------------------------
# Mapping configuration
# ---------------------------------------------------------------------------


class FieldMap(BaseModel):
    """One mapping rule.

    A truthy ``value`` wins over ``columnName``; falsy constants such as
    ``false``, ``0`` or ``""`` count as unset.
    """

    model_config = ConfigDict(populate_by_name=True)

    jpath: str
    column_name: str | None = Field(None, alias="columnName")
    value: Any = None
    is_number: bool = Field(False, alias="isNumber")

    @field_validator("jpath")
    @classmethod
    def _check_jpath(cls, jpath: str) -> str:
        parse_path(jpath)
        return jpath


class CsvConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field_maps: list[FieldMap] = Field(alias="fieldMaps")


def load_csv_config(path: str | Path) -> CsvConfig:
    """Read and validate a CSV mapping file.

    Raises:
        ConfigError: if the file cannot be read or is not a valid mapping.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read CSV config {path}: {exc}") from exc
    try:
        return CsvConfig.model_validate_json(text)
    except ValidationError as exc:
        raise ConfigError(f"Invalid CSV config {path}: {exc}") from exc


def map_row(config: CsvConfig, row: Mapping[str, str | None]) -> Resource:
    """Build one resource from a CSV row by applying every rule in order."""
    resource: Resource = {}
    try:
        for field_map in config.field_maps:
            if field_map.value:
                set_path(resource, field_map.jpath, copy.deepcopy(field_map.value))
            elif field_map.column_name and row.get(field_map.column_name):
                raw = row[field_map.column_name]
                set_path(
                    resource,
                    field_map.jpath,
                    number_or_string(raw) if field_map.is_number else raw,
                )
    except PathSyntaxError as exc:
        raise ConfigError(f"Conflicting jpath in CSV config: {exc}") from exc
    return resource
