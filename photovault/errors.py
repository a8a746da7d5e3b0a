from __future__ import annotations

from dataclasses import dataclass


class PhotoVaultError(Exception):
    pass


class ValidationError(PhotoVaultError):
    """Bad request input: disallowed content type, missing or malformed parameter."""


class PipelineError(PhotoVaultError):
    """A failure tied to one file of an upload batch.

    ``filename`` is the stored name of the file whose pipeline failed, so the
    coordinator knows exactly which artifacts to clean up. It is ``None`` for
    failures outside a per-file pipeline (e.g. a bulk purge).
    """

    def __init__(self, filename: str | None, message: str) -> None:
        super().__init__(message)
        self.filename = filename
        self.message = message

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}: {self.message}"
        return self.message


class ProcessingError(PipelineError):
    """An image could not be decoded, thumbnailed or read for metadata."""


class StorageError(PipelineError):
    """The record store rejected or failed a read/write."""


@dataclass(frozen=True)
class IngestFailure:
    filename: str
    error: PipelineError


class BatchIngestError(PhotoVaultError):
    def __init__(self, failures: list[IngestFailure]) -> None:
        names = ", ".join(f.filename for f in failures)
        super().__init__(f"{len(failures)} file(s) failed to ingest: {names}")
        self.failures = failures
