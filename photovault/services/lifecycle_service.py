from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy.orm import Session

from ..config import IngestConfig
from ..errors import ValidationError
from . import photo_store

logger = logging.getLogger(__name__)


@dataclass
class PurgeReport:
    files_deleted: int = 0
    file_errors: int = 0
    photos_deleted: int = 0
    faces_deleted: int = 0


def parse_id_list(raw: Any) -> list[int]:
    """Parse ``"1,2,3"`` (or a list of ids) into integer ids.

    Missing, empty or non-integer input is a :class:`ValidationError`.
    """
    if raw is None:
        raise ValidationError("ids parameter is missing!")
    if isinstance(raw, str):
        parts = raw.replace("\n", ",").split(",")
    elif isinstance(raw, (list, tuple)):
        parts = list(raw)
    else:
        raise ValidationError("ids parameter must be a comma-separated list")

    ids: list[int] = []
    for part in parts:
        token = str(part).strip()
        if not token:
            continue
        try:
            ids.append(int(token))
        except ValueError:
            raise ValidationError(f"invalid id: {token!r}") from None
    if not ids:
        raise ValidationError("ids parameter is missing!")
    return ids


def trash(db: Session, raw_ids: Any) -> int:
    ids = parse_id_list(raw_ids)
    logger.info("Trashing ids: %s", ids)
    return photo_store.trash_photos(db, ids)


def _delete_files_in_dir(directory: Path, report: PurgeReport) -> None:
    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        logger.error("Error listing %s: %s", directory, exc)
        report.file_errors += 1
        return

    for entry in entries:
        if not entry.is_file() and not entry.is_symlink():
            continue
        try:
            entry.unlink()
            report.files_deleted += 1
        except OSError as exc:
            logger.error("Error deleting file %s: %s", entry, exc)
            report.file_errors += 1


def purge_all(db: Session, config: IngestConfig) -> PurgeReport:
    """Delete every original, thumbnail, photo record and face record.

    File deletion is best-effort and never stops the record deletion.
    Raises :class:`StorageError` when the records cannot be deleted.
    """
    report = PurgeReport()
    _delete_files_in_dir(config.upload_path, report)
    _delete_files_in_dir(config.thumbnail_path, report)

    report.photos_deleted, report.faces_deleted = photo_store.delete_all_records(db)
    logger.info(
        "Purged files=%s file_errors=%s photos=%s faces=%s",
        report.files_deleted,
        report.file_errors,
        report.photos_deleted,
        report.faces_deleted,
    )
    return report
