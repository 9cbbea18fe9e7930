from __future__ import annotations

import io
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from omics_cli.api.client import FhirClient, Ga4ghClient

API_URL = "https://api.test.local"
ACCOUNT = "acme"
TOKEN = "test-token-0123456789"

StatusFn = Callable[[int, dict[str, Any]], str]
Handler = Callable[[httpx.Request], httpx.Response]


def ndjson(*values: Any) -> io.StringIO:
    """Build a text stream with one JSON value per line."""
    return io.StringIO("\n".join(json.dumps(v) for v in values))


def write_csv_config(path: Path, field_maps: list[dict[str, Any]]) -> Path:
    path.write_text(json.dumps({"fieldMaps": field_maps}), encoding="utf-8")
    return path


class FakeFhirServer:
    """Records posted bundles and answers each entry with a status.

    ``status_for(index, resource)`` decides each entry's status; the
    default accepts everything with ``201``. Rejected entries carry an
    ``OperationOutcome`` naming their position in the bundle.
    """

    def __init__(self, status_for: StatusFn | None = None) -> None:
        self.status_for: StatusFn = status_for or (lambda i, r: "201")
        self.requests: list[httpx.Request] = []

    @property
    def bundles(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    @property
    def batches(self) -> list[list[dict[str, Any]]]:
        return [[e["resource"] for e in b["entry"]] for b in self.bundles]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        bundle = json.loads(request.content)
        entries = []
        for i, entry in enumerate(bundle["entry"]):
            status = self.status_for(i, entry["resource"])
            response: dict[str, Any] = {"status": status}
            if status not in ("200", "201"):
                response["outcome"] = {
                    "resourceType": "OperationOutcome",
                    "issue": [{"severity": "error", "diagnostics": f"entry {i}"}],
                }
            entries.append({"response": response})
        return httpx.Response(200, json={"resourceType": "Bundle", "entry": entries})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture()
def fhir_server() -> FakeFhirServer:
    return FakeFhirServer()


@pytest.fixture()
def fhir_client(fhir_server: FakeFhirServer) -> FhirClient:
    return FhirClient(
        API_URL, token=TOKEN, account=ACCOUNT, transport=fhir_server.transport()
    )


@pytest.fixture()
def make_ga4gh_client() -> Callable[[Handler], Ga4ghClient]:
    def _make(handler: Handler) -> Ga4ghClient:
        return Ga4ghClient(
            API_URL,
            token=TOKEN,
            account=ACCOUNT,
            transport=httpx.MockTransport(handler),
        )

    return _make


@pytest.fixture()
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the CLI at a throwaway config file with no env overrides."""
    path = tmp_path / "config" / "config.toml"
    monkeypatch.setenv("OMICS_CLI_CONFIG", str(path))
    for var in ("OMICS_API_URL", "OMICS_ACCOUNT", "OMICS_TOKEN"):
        monkeypatch.delenv(var, raising=False)
    return path
