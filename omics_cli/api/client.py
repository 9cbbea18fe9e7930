"""Async REST clients for the FHIR and GA4GH services."""

from __future__ import annotations

import logging
from typing import Any, ClassVar

import httpx

from omics_cli.api.exceptions import ApiHTTPError, ApiRequestError, ApiResponseError
from omics_cli.api.models import RnaQuantificationSetSearchRequest
from omics_cli.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.us.lifeomic.com"
DEFAULT_TIMEOUT = 60.0
ACCOUNT_HEADER = "LifeOmic-Account"


class ApiClient:
    """Authenticated JSON client rooted at one service of the platform API.

    Subclasses set :attr:`service`, the path prefix of the service below
    the API root (e.g. ``"v1/fhir"``). Relative paths passed to
    :meth:`post` are resolved against ``<base_url>/<service>/``.

    Example:
        >>> fhir = FhirClient("https://api.example.com", token="t", account="acme")
        >>> async with fhir:
        ...     data = await fhir.post(f"{fhir.get_account()}/dstu3", bundle)
    """

    service: ClassVar[str] = ""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        *,
        token: str | None = None,
        account: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        root = base_url.rstrip("/")
        self.base_url = f"{root}/{self.service}/" if self.service else f"{root}/"
        self.account = account or None

        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if self.account:
            headers[ACCOUNT_HEADER] = self.account

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def get_account(self) -> str:
        """Return the account the requests are made for.

        Raises:
            ConfigError: if no account was configured.
        """
        if not self.account:
            raise ConfigError(
                "No account configured. Pass --account or run "
                "'omics config set account <id>'."
            )
        return self.account

    async def post(self, path: str, body: Any) -> Any:
        """POST *body* as JSON and return the decoded JSON response."""
        try:
            response = await self._client.post(path.lstrip("/"), json=body)
        except httpx.RequestError as exc:
            raise ApiRequestError(f"Request to {path} failed: {exc}") from exc

        url = str(response.request.url)
        logger.info("POST %s → %s", url, response.status_code)

        if not response.is_success:
            raise ApiHTTPError(response.status_code, url, response.text[:500])

        try:
            return response.json()
        except ValueError as exc:
            raise ApiResponseError(f"Invalid JSON from {url}: {exc}") from exc

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()


class FhirClient(ApiClient):
    service = "v1/fhir"


class Ga4ghClient(ApiClient):
    service = "v1/ga4gh"

    async def search_rna_quantification_sets(
        self,
        dataset_id: str,
        *,
        page_size: int | None = None,
        page_token: str | None = None,
    ) -> Any:
        """Return one page of RNA quantification sets for *dataset_id*."""
        request = RnaQuantificationSetSearchRequest(
            datasetIds=[dataset_id], pageSize=page_size, pageToken=page_token
        )
        return await self.post(
            "rnaquantificationsets/search", request.model_dump(exclude_none=True)
        )
