from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EntryResponse(BaseModel):
    """Server verdict for one bundle entry (``entry[i].response``)."""

    model_config = ConfigDict(extra="allow")

    status: str
    outcome: dict[str, Any] | None = None


class BundleResponseEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    response: EntryResponse


class BundleResponse(BaseModel):
    """Body returned by the FHIR service for a posted bundle."""

    model_config = ConfigDict(extra="allow")

    entry: list[BundleResponseEntry] = Field(default_factory=list)


class RnaQuantificationSetSearchRequest(BaseModel):
    datasetIds: list[str]
    pageSize: int | None = None
    pageToken: str | None = None
