from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from omics_cli.api.client import FhirClient
from omics_cli.api.exceptions import ApiResponseError
from omics_cli.api.models import BundleResponse
from omics_cli.ingest.exceptions import UploadError
from omics_cli.ingest.types import Resource

logger = logging.getLogger(__name__)

DATASET_TAG_SYSTEM = "http://lifeomic.com/fhir/dataset"
SUCCESS_STATUSES = frozenset({"200", "201"})

ResponseSink = Callable[[list[dict[str, Any]]], None]


def tag_dataset(resource: Resource, project: str | None) -> Resource:
    """Replace any dataset tag on *resource* with one for *project*.

    Does nothing when *project* is empty. Creates ``meta`` and
    ``meta.tag`` if missing. Returns *resource*, modified in place.
    """
    if not project or not isinstance(resource, dict):
        return resource

    meta = resource.get("meta")
    if not isinstance(meta, dict):
        meta = resource["meta"] = {}
    tags = meta.get("tag")
    if isinstance(tags, list):
        tags = [
            t for t in tags
            if not (isinstance(t, dict) and t.get("system") == DATASET_TAG_SYSTEM)
        ]
    else:
        tags = []
    tags.append({"system": DATASET_TAG_SYSTEM, "code": project})
    meta["tag"] = tags
    return resource


def build_bundle(resources: list[Resource]) -> dict[str, Any]:
    """Wrap *resources* in a ``collection`` Bundle, one entry each, in order."""
    return {
        "resourceType": "Bundle",
        "type": "collection",
        "entry": [{"resource": resource} for resource in resources],
    }


class FhirUploader:
    """Posts batches of resources to the FHIR service as bundles.

    Each call to :meth:`upload` is one request. The server adjudicates
    entries one by one, so a rejected entry does not undo its siblings;
    the call still fails as a whole so the caller stops feeding input.
    """

    def __init__(
        self,
        client: FhirClient,
        *,
        project: str | None = None,
        on_response: ResponseSink | None = None,
    ) -> None:
        self._client = client
        self.project = project
        self._on_response = on_response

    async def upload(self, batch: list[Resource]) -> BundleResponse:
        """Upload *batch* and return the parsed server response.

        Raises:
            UploadError: if any entry's status is neither ``200`` nor ``201``.
        """
        url = f"{self._client.get_account()}/dstu3"
        for resource in batch:
            tag_dataset(resource, self.project)

        data = await self._client.post(url, build_bundle(batch))
        try:
            response = BundleResponse.model_validate(data)
        except ValidationError as exc:
            raise ApiResponseError(f"Unexpected bundle response: {exc}") from exc

        if self._on_response is not None:
            self._on_response(data.get("entry") or [])

        failed = [
            e.response.outcome
            for e in response.entry
            if e.response.status not in SUCCESS_STATUSES
        ]
        if failed:
            logger.warning(
                "%d of %d entries rejected", len(failed), len(response.entry)
            )
            raise UploadError(failed)

        logger.info("Uploaded bundle of %d resources", len(batch))
        return response
