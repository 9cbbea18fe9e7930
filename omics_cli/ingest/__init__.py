from omics_cli.ingest.batcher import DEFAULT_CHUNK_SIZE, Batcher
from omics_cli.ingest.decoder import iter_csv_rows, iter_json_values
from omics_cli.ingest.exceptions import DecodeError, UploadError
from omics_cli.ingest.mapper import (
    CsvConfig,
    FieldMap,
    load_csv_config,
    map_row,
    number_or_string,
    set_path,
)
from omics_cli.ingest.pipeline import IngestPipeline
from omics_cli.ingest.types import IngestResult, Resource
from omics_cli.ingest.uploader import (
    DATASET_TAG_SYSTEM,
    FhirUploader,
    build_bundle,
    tag_dataset,
)

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "Batcher",
    "iter_csv_rows",
    "iter_json_values",
    "DecodeError",
    "UploadError",
    "CsvConfig",
    "FieldMap",
    "load_csv_config",
    "map_row",
    "number_or_string",
    "set_path",
    "IngestPipeline",
    "IngestResult",
    "Resource",
    "DATASET_TAG_SYSTEM",
    "FhirUploader",
    "build_bundle",
    "tag_dataset",
]
