from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from omics_cli.api.client import FhirClient
from omics_cli.api.exceptions import ApiHTTPError, ApiResponseError
from omics_cli.exceptions import ConfigError
from omics_cli.ingest.exceptions import UploadError
from omics_cli.ingest.uploader import (
    DATASET_TAG_SYSTEM,
    FhirUploader,
    build_bundle,
    tag_dataset,
)
from tests.conftest import ACCOUNT, API_URL, TOKEN, FakeFhirServer


def _dataset_tags(resource: dict) -> list[dict]:
    return [t for t in resource["meta"]["tag"] if t.get("system") == DATASET_TAG_SYSTEM]


# ── tag_dataset ──────────────────────────────────────────────────────


def test_tag_dataset_without_meta() -> None:
    resource = {"resourceType": "Patient"}
    tag_dataset(resource, "proj-1")
    assert resource["meta"] == {"tag": [{"system": DATASET_TAG_SYSTEM, "code": "proj-1"}]}


def test_tag_dataset_with_meta_but_no_tags() -> None:
    resource = {"meta": {"versionId": "3"}}
    tag_dataset(resource, "proj-1")
    assert resource["meta"]["versionId"] == "3"
    assert resource["meta"]["tag"] == [{"system": DATASET_TAG_SYSTEM, "code": "proj-1"}]


def test_tag_dataset_replaces_conflicting_tags() -> None:
    other = {"system": "http://example.org/tags", "code": "keep"}
    resource = {
        "meta": {
            "tag": [
                {"system": DATASET_TAG_SYSTEM, "code": "old-1"},
                other,
                {"system": DATASET_TAG_SYSTEM, "code": "old-2"},
            ]
        }
    }
    tag_dataset(resource, "proj-1")

    assert _dataset_tags(resource) == [{"system": DATASET_TAG_SYSTEM, "code": "proj-1"}]
    assert other in resource["meta"]["tag"]


def test_tag_dataset_is_idempotent() -> None:
    resource: dict[str, Any] = {}
    tag_dataset(resource, "p")
    tag_dataset(resource, "p")
    assert len(_dataset_tags(resource)) == 1


def test_tag_dataset_without_project_is_noop() -> None:
    resource = {"resourceType": "Patient"}
    tag_dataset(resource, None)
    tag_dataset(resource, "")
    assert resource == {"resourceType": "Patient"}


def test_build_bundle_preserves_order() -> None:
    bundle = build_bundle([{"id": "1"}, {"id": "2"}])
    assert bundle == {
        "resourceType": "Bundle",
        "type": "collection",
        "entry": [{"resource": {"id": "1"}}, {"resource": {"id": "2"}}],
    }


# ── FhirUploader ─────────────────────────────────────────────────────


async def test_upload_posts_one_bundle(
    fhir_client: FhirClient, fhir_server: FakeFhirServer
) -> None:
    uploader = FhirUploader(fhir_client, project="proj-1")
    response = await uploader.upload([{"resourceType": "Patient"}, {"resourceType": "Patient"}])

    assert len(fhir_server.requests) == 1
    request = fhir_server.requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"{API_URL}/v1/fhir/{ACCOUNT}/dstu3"
    assert request.headers["Authorization"] == f"Bearer {TOKEN}"
    assert request.headers["LifeOmic-Account"] == ACCOUNT

    bundle = fhir_server.bundles[0]
    assert bundle["type"] == "collection"
    assert all(
        _dataset_tags(r) == [{"system": DATASET_TAG_SYSTEM, "code": "proj-1"}]
        for r in fhir_server.batches[0]
    )
    assert [e.response.status for e in response.entry] == ["201", "201"]


async def test_upload_reports_response_entries(
    fhir_client: FhirClient,
) -> None:
    seen: list[list[dict]] = []
    uploader = FhirUploader(fhir_client, on_response=seen.append)
    await uploader.upload([{"id": "a"}])
    assert seen == [[{"response": {"status": "201"}}]]


async def test_reported_entries_keep_server_fields() -> None:
    entry = {
        "fullUrl": "Patient/a",
        "response": {"status": "201", "etag": None, "location": "Patient/a/_history/1"},
    }
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json={"entry": [entry]})
    )
    client = FhirClient(API_URL, token=TOKEN, account=ACCOUNT, transport=transport)
    seen: list[list[dict]] = []
    await FhirUploader(client, on_response=seen.append).upload([{"id": "a"}])
    assert seen == [[entry]]


async def test_partial_failure_lists_only_failed_outcomes() -> None:
    server = FakeFhirServer(status_for=lambda i, r: "400" if i == 1 else "200")
    client = FhirClient(API_URL, token=TOKEN, account=ACCOUNT, transport=server.transport())
    seen: list[list[dict]] = []
    uploader = FhirUploader(client, on_response=seen.append)

    with pytest.raises(UploadError) as excinfo:
        await uploader.upload([{"id": "1"}, {"id": "2"}, {"id": "3"}])

    failures = excinfo.value.failures
    assert len(failures) == 1
    assert failures[0]["issue"][0]["diagnostics"] == "entry 1"
    assert str(excinfo.value).startswith("Error when ingesting resources: ")
    assert json.loads(str(excinfo.value).split(": ", 1)[1]) == failures
    # The response is still reported before failing
    assert len(seen) == 1 and len(seen[0]) == 3


async def test_non_2xx_status_strings_fail() -> None:
    server = FakeFhirServer(status_for=lambda i, r: "201 Created")
    client = FhirClient(API_URL, token=TOKEN, account=ACCOUNT, transport=server.transport())
    with pytest.raises(UploadError):
        await FhirUploader(client).upload([{"id": "1"}])


async def test_upload_requires_account() -> None:
    server = FakeFhirServer()
    client = FhirClient(API_URL, token=TOKEN, transport=server.transport())
    with pytest.raises(ConfigError):
        await FhirUploader(client).upload([{"id": "1"}])
    assert server.requests == []


async def test_upload_http_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(403, text="forbidden"))
    client = FhirClient(API_URL, token=TOKEN, account=ACCOUNT, transport=transport)
    with pytest.raises(ApiHTTPError) as excinfo:
        await FhirUploader(client).upload([{"id": "1"}])
    assert excinfo.value.status_code == 403


async def test_upload_unexpected_response_shape() -> None:
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json={"entry": [{"nope": True}]})
    )
    client = FhirClient(API_URL, token=TOKEN, account=ACCOUNT, transport=transport)
    with pytest.raises(ApiResponseError):
        await FhirUploader(client).upload([{"id": "1"}])
