from omics_cli.api.client import (
    DEFAULT_API_URL,
    DEFAULT_TIMEOUT,
    ApiClient,
    FhirClient,
    Ga4ghClient,
)
from omics_cli.api.exceptions import (
    ApiError,
    ApiHTTPError,
    ApiRequestError,
    ApiResponseError,
)
from omics_cli.api.models import BundleResponse, BundleResponseEntry, EntryResponse

__all__ = [
    "DEFAULT_API_URL",
    "DEFAULT_TIMEOUT",
    "ApiClient",
    "FhirClient",
    "Ga4ghClient",
    "ApiError",
    "ApiHTTPError",
    "ApiRequestError",
    "ApiResponseError",
    "BundleResponse",
    "BundleResponseEntry",
    "EntryResponse",
]
