from __future__ import annotations

import argparse
import asyncio
import io
import logging
import sys
from collections.abc import Callable, Coroutine
from typing import Any, TextIO, TypeVar

from omics_cli.api.client import ApiClient, FhirClient, Ga4ghClient
from omics_cli.api.exceptions import ApiError
from omics_cli.cli import output as out
from omics_cli.cli.config import (
    OUTPUT_FORMATS,
    Config,
    config_exists,
    config_path_display,
    load_config,
    save_config,
)
from omics_cli.exceptions import ConfigError
from omics_cli.ingest.batcher import DEFAULT_CHUNK_SIZE, Batcher
from omics_cli.ingest.exceptions import DecodeError, UploadError
from omics_cli.ingest.mapper import load_csv_config
from omics_cli.ingest.pipeline import IngestPipeline
from omics_cli.ingest.uploader import FhirUploader

logger = logging.getLogger(__name__)

DESCRIPTION = """\
omics — command-line client for the FHIR and GA4GH genomics APIs

Quick start:
  omics config set account <account-id>
  omics config set token <api-token>
  cat resources.ndjson | omics fhir ingest --project <dataset-id>"""


# ── Infrastructure helpers ──────────────────────────────────────────


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{text}'") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return value


def _output_format(cfg: Config, args: argparse.Namespace) -> str:
    return getattr(args, "format", None) or cfg.default_format


C = TypeVar("C", bound=ApiClient)


def _make_client(
    client_cls: type[C], cfg: Config, args: argparse.Namespace
) -> C:
    """Build an API client from saved settings, letting ``--account`` win."""
    if not cfg.token:
        raise ConfigError(
            "No API token configured. Run 'omics config set token <token>' "
            "or set OMICS_TOKEN."
        )
    return client_cls(
        cfg.api_url,
        token=cfg.token,
        account=getattr(args, "account", None) or cfg.account,
        timeout=cfg.timeout,
    )


def _stdin() -> TextIO:
    """Standard input as UTF-8 text with newlines left untranslated."""
    buffer = getattr(sys.stdin, "buffer", None)
    if buffer is None:
        return sys.stdin
    return io.TextIOWrapper(buffer, encoding="utf-8", newline="")


# ── fhir ────────────────────────────────────────────────────────────


async def cmd_fhir_ingest(args: argparse.Namespace) -> None:
    """Create or update FHIR resources read from stdin."""
    cfg = load_config()
    fmt = _output_format(cfg, args)

    # Settings problems surface before any input is read
    csv_config = load_csv_config(args.csv) if args.csv else None
    batcher = Batcher(args.chunk)
    logger.info("Reading %s from stdin", "CSV rows" if csv_config else "JSON values")

    async with _make_client(FhirClient, cfg, args) as client:
        client.get_account()
        uploader = FhirUploader(
            client,
            project=args.project,
            on_response=lambda entries: out.emit(entries, fmt),
        )
        pipeline = IngestPipeline(uploader, batcher, csv_config)
        result = await pipeline.run(_stdin())

    out.success(
        f"Ingested {result.records:,} resources in {result.batches:,} bundles"
    )


# ── genomics ────────────────────────────────────────────────────────


async def cmd_genomics_list_rna_quantification_sets(args: argparse.Namespace) -> None:
    """List RNA quantification sets of one dataset, one page at a time."""
    cfg = load_config()

    async with _make_client(Ga4ghClient, cfg, args) as client:
        data = await client.search_rna_quantification_sets(
            args.dataset_id,
            page_size=args.page_size,
            page_token=args.next_page_token,
        )

    out.emit(data, _output_format(cfg, args))


# ── config ──────────────────────────────────────────────────────────


async def cmd_config_show(args: argparse.Namespace) -> None:
    """Display current configuration."""
    cfg = load_config()

    out.header(f"Configuration ({config_path_display()})")
    out.kv("API URL", cfg.api_url)
    out.kv("Account", cfg.account or out.dim("not set"))
    out.kv("Token", cfg.masked_token or out.dim("not set"))
    out.kv("Timeout", f"{cfg.timeout:g}s")
    out.kv("Format", cfg.default_format)

    if not cfg.is_configured:
        out.info("")
        out.info("To finish setting up:")
        if not cfg.account:
            out.next_step("omics config set account <account-id>")
        if not cfg.token:
            out.next_step("omics config set token <api-token>")


async def cmd_config_set(args: argparse.Namespace) -> None:
    """Change one setting and save it."""
    cfg = load_config() if config_exists() else Config()
    cfg.set(args.key, args.value)
    path = save_config(cfg)
    out.success(f"{args.key} saved to {path}")


async def cmd_config_path(args: argparse.Namespace) -> None:
    """Print the config file path."""
    print(config_path_display())


# ── Argument parsing ────────────────────────────────────────────────


def _common_options(*, suppress: bool) -> argparse.ArgumentParser:
    """Options accepted both before and after the subcommand name."""
    default = argparse.SUPPRESS if suppress else None
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-a",
        "--account",
        default=default,
        help="Account to act on (overrides the configured account)",
    )
    common.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default=default,
        help="Output format for command results (default: from config)",
    )
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress else False,
        help="Show request and batch progress logs on stderr",
    )
    return common


def _build_parser() -> argparse.ArgumentParser:
    common = _common_options(suppress=True)
    parser = argparse.ArgumentParser(
        prog="omics",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[_common_options(suppress=False)],
    )
    sub = parser.add_subparsers(dest="command", title="commands")

    # fhir
    p_fhir = sub.add_parser("fhir", help="Operations on FHIR resources")
    fhir_sub = p_fhir.add_subparsers(dest="fhir_command", title="fhir commands")

    p_ingest = fhir_sub.add_parser(
        "ingest",
        parents=[common],
        help="Create or update FHIR resources read from stdin",
        description=(
            "Create or update one or more FHIR resources. Resources are read "
            "from stdin as a stream of JSON values, or as CSV rows when --csv "
            "names a field-mapping file, and posted in bundles of --chunk."
        ),
    )
    p_ingest.add_argument(
        "--chunk",
        type=_positive_int,
        default=DEFAULT_CHUNK_SIZE,
        help=f"Number of resources per bundle (default: {DEFAULT_CHUNK_SIZE})",
    )
    p_ingest.add_argument(
        "--project",
        help="Tag every resource with the given project (dataset) ID",
    )
    p_ingest.add_argument(
        "--csv",
        metavar="PATH",
        help="CSV field-mapping configuration file (JSON)",
    )

    # genomics
    p_gen = sub.add_parser("genomics", help="Operations on GA4GH genomics data")
    gen_sub = p_gen.add_subparsers(dest="genomics_command", title="genomics commands")

    p_rna = gen_sub.add_parser(
        "list-rna-quantification-sets",
        parents=[common],
        help="List RNA quantification sets by dataset",
    )
    p_rna.add_argument("dataset_id", metavar="datasetId", help="The dataset id")
    p_rna.add_argument(
        "-n",
        "--page-size",
        type=int,
        default=25,
        help="Number of items to return (default: 25)",
    )
    p_rna.add_argument(
        "-t",
        "--next-page-token",
        help="Token of the page to fetch, from a previous response",
    )

    # config
    p_cfg = sub.add_parser("config", help="View and change settings")
    cfg_sub = p_cfg.add_subparsers(dest="config_command", title="config commands")

    cfg_sub.add_parser("show", parents=[common], help="Show current settings")

    p_cfg_set = cfg_sub.add_parser("set", parents=[common], help="Change a setting")
    p_cfg_set.add_argument(
        "key",
        choices=["api_url", "account", "token", "timeout", "default_format"],
        help="Setting to change",
    )
    p_cfg_set.add_argument("value", help="New value")

    cfg_sub.add_parser("path", parents=[common], help="Print config file location")

    return parser


# ── Dispatch ────────────────────────────────────────────────────────

_CommandHandler = Callable[[argparse.Namespace], Coroutine[Any, Any, None]]

_FHIR_MAP: dict[str, _CommandHandler] = {
    "ingest": cmd_fhir_ingest,
}

_GENOMICS_MAP: dict[str, _CommandHandler] = {
    "list-rna-quantification-sets": cmd_genomics_list_rna_quantification_sets,
}

_CONFIG_MAP: dict[str, _CommandHandler] = {
    "show": cmd_config_show,
    "set": cmd_config_set,
    "path": cmd_config_path,
}

_GROUPS: dict[str, tuple[str, dict[str, _CommandHandler]]] = {
    "fhir": ("fhir_command", _FHIR_MAP),
    "genomics": ("genomics_command", _GENOMICS_MAP),
    "config": ("config_command", _CONFIG_MAP),
}

_REPORTED_ERRORS = (ConfigError, DecodeError, UploadError, ApiError)


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="  %(name)s: %(message)s",
        )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    if not args.command:
        parser.print_help()
        return

    dest, handlers = _GROUPS[args.command]
    subcommand = getattr(args, dest)
    if not subcommand:
        parser.parse_args([args.command, "--help"])
        return

    handler = handlers.get(subcommand)
    if handler is None:
        parser.print_help()
        return

    try:
        asyncio.run(handler(args))
    except _REPORTED_ERRORS as exc:
        out.error(str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        print(file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
