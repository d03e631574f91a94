from api_csv_exporter.driver import RunErr, RunOk, RunState, drain
from api_csv_exporter.errors import (
    ConversionError,
    ExportError,
    FetchError,
    StorageError,
)
from api_csv_exporter.exporter import PagedExporter

__all__ = [
    "PagedExporter",
    "RunState",
    "RunOk",
    "RunErr",
    "drain",
    "ExportError",
    "FetchError",
    "ConversionError",
    "StorageError",
]
