from __future__ import annotations

import concurrent.futures
import logging
from datetime import datetime
from typing import Callable, Sequence

from sqlalchemy.orm import Session, sessionmaker

from ..config import IngestConfig
from ..errors import BatchIngestError, IngestFailure, PipelineError, ProcessingError, StorageError
from ..models.photo import Photo
from . import photo_store
from .exif_service import extract_metadata
from .metadata_service import normalize_metadata
from .thumbnail_service import generate_thumbnail, thumbnail_path_for
from .upload_service import StoredUpload

logger = logging.getLogger(__name__)

__all__ = ["BatchIngestor", "IngestConfig"]


class BatchIngestor:
    """Runs the per-file pipeline over one upload batch.

    Each stored original gets a thumbnail, its metadata extracted and
    normalized, and a photo record. Files run concurrently; :meth:`ingest`
    returns once all of them finished. If any file failed, the whole batch is
    undone (records deleted, originals and thumbnails removed) and
    :class:`BatchIngestError` is raised naming the files that failed.
    """

    def __init__(
        self,
        config: IngestConfig,
        session_factory: sessionmaker[Session],
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config
        self.session_factory = session_factory
        self.clock = clock

    def ingest_one(self, upload: StoredUpload) -> Photo:
        thumb = generate_thumbnail(upload.path, self.config)
        raw = extract_metadata(upload.path)
        normalized = normalize_metadata(
            raw,
            upload.size,
            now=self.clock(),
            thumbnail_size=(thumb.width, thumb.height),
        )
        with self.session_factory() as db:
            return photo_store.create_photo(db, upload.name, normalized.date_created, normalized.meta_data)

    def _run(self, upload: StoredUpload) -> Photo:
        try:
            return self.ingest_one(upload)
        except PipelineError as exc:
            if exc.filename is None:
                exc.filename = upload.name
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected failure ingesting %s", upload.name)
            raise ProcessingError(upload.name, f"unexpected error: {exc}") from exc

    def ingest(self, uploads: Sequence[StoredUpload]) -> list[Photo]:
        if not uploads:
            return []

        created: dict[str, Photo] = {}
        failures: list[IngestFailure] = []
        with concurrent.futures.ThreadPoolExecutor(max_workers=max(1, self.config.workers)) as executor:
            futures = {executor.submit(self._run, upload): upload for upload in uploads}
            for future in concurrent.futures.as_completed(futures):
                upload = futures[future]
                try:
                    created[upload.name] = future.result()
                except PipelineError as exc:
                    logger.error("Error ingesting %s: %s", upload.name, exc)
                    failures.append(IngestFailure(filename=upload.name, error=exc))

        if failures:
            self.compensate(uploads, list(created.values()))
            raise BatchIngestError(failures)

        return [created[upload.name] for upload in uploads]

    def compensate(self, uploads: Sequence[StoredUpload], created: Sequence[Photo]) -> None:
        """Undo a failed batch so every one of its names can be uploaded again."""
        if created:
            try:
                with self.session_factory() as db:
                    removed = photo_store.delete_photos(db, [p.id for p in created])
                logger.info("Rolled back %s photo record(s) of failed batch", removed)
            except StorageError as exc:
                logger.error("Could not roll back records of failed batch: %s", exc)

        for upload in uploads:
            for path in (upload.path, thumbnail_path_for(upload.name, self.config)):
                try:
                    path.unlink(missing_ok=True)
                except OSError as exc:
                    logger.error("Could not delete %s during cleanup: %s", path, exc)
