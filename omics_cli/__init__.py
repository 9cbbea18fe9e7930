"""Command-line client for FHIR and GA4GH genomics REST APIs."""

from omics_cli.exceptions import ConfigError

__version__ = "0.1.0"

__all__ = ["ConfigError", "__version__"]
