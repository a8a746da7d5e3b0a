from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import BinaryIO, Iterable

from ..config import IngestConfig
from ..errors import StorageError, ValidationError

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    ACCEPT = "accept"
    SKIP = "skip"


@dataclass(frozen=True)
class IncomingFile:
    filename: str | None
    content_type: str | None
    stream: BinaryIO


@dataclass(frozen=True)
class StoredUpload:
    name: str
    path: Path
    size: int


@dataclass
class AcceptedBatch:
    stored: list[StoredUpload] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def stored_name(filename: str | None) -> str:
    # keep the uploaded name exactly, minus any directory part a client may send
    name = PureWindowsPath(PurePosixPath(filename or "").name).name
    if not name.strip() or name in (".", ".."):
        raise ValidationError("Missing file name")
    return name


def validate_upload(incoming: IncomingFile, config: IngestConfig) -> Decision:
    ctype = (incoming.content_type or "").split(";", 1)[0].strip().lower()
    if ctype not in config.allowed_content_types:
        raise ValidationError("Only images are allowed")

    name = stored_name(incoming.filename)
    if config.original_path(name).exists():
        return Decision.SKIP
    return Decision.ACCEPT


def _write_exclusive(path: Path, stream: BinaryIO) -> int:
    # "xb" fails if another upload stored the same name first
    with path.open("xb") as handle:
        shutil.copyfileobj(stream, handle)
        return handle.tell()


def accept_uploads(files: Iterable[IncomingFile], config: IngestConfig) -> AcceptedBatch:
    """Validate a whole batch, then store the originals that are not duplicates.

    Every file is checked before anything is written, so one disallowed
    content type rejects the batch with no side effects. Names already present
    in the upload directory, or repeated inside the batch, are skipped.
    """
    incoming = list(files)
    decisions = [validate_upload(item, config) for item in incoming]

    batch = AcceptedBatch()
    seen: set[str] = set()
    for item, decision in zip(incoming, decisions):
        name = stored_name(item.filename)
        if decision is Decision.SKIP or name in seen:
            logger.info("Skipping upload %s: name already stored", name)
            batch.skipped.append(name)
            continue

        path = config.original_path(name)
        try:
            size = _write_exclusive(path, item.stream)
        except FileExistsError:
            logger.info("Skipping upload %s: stored concurrently by another request", name)
            batch.skipped.append(name)
            continue
        except OSError as exc:
            logger.error("Could not store upload %s: %s", name, exc)
            path.unlink(missing_ok=True)
            for done in batch.stored:
                done.path.unlink(missing_ok=True)
            raise StorageError(name, f"could not store original: {exc}") from exc
        seen.add(name)
        batch.stored.append(StoredUpload(name=name, path=path, size=size))

    return batch
