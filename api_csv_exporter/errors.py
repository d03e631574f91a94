from typing import Optional


class ExportError(Exception):
    """Base for every failure that ends a run."""

    kind = "export"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class FetchError(ExportError):
    kind = "fetch"


class ConversionError(ExportError):
    kind = "conversion"


class StorageError(ExportError):
    kind = "storage"
