from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Body, Depends, File, UploadFile
from sqlalchemy.orm import Session, sessionmaker

from ..config import IngestConfig
from ..db import SessionLocal, get_db
from ..errors import ValidationError
from ..services import lifecycle_service, photo_store
from ..services.ingest_service import BatchIngestor
from ..services.upload_service import IncomingFile, accept_uploads

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

def get_ingest_config() -> IngestConfig:
    return IngestConfig.from_settings()

def get_session_factory() -> sessionmaker[Session]:
    return SessionLocal

@router.get("/photos", name="list_photos")
def list_photos(db: Session = Depends(get_db)):
    return [p.to_dict() for p in photo_store.list_photos(db, trashed=False)]

@router.get("/photos/trashed", name="list_trashed")
def list_trashed(db: Session = Depends(get_db)):
    return [p.to_dict() for p in photo_store.list_photos(db, trashed=True)]

@router.post("/photos", name="upload_photos")
def upload_photos(
    photos: list[UploadFile] = File(...),
    config: IngestConfig = Depends(get_ingest_config),
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
):
    incoming = [IncomingFile(filename=f.filename, content_type=f.content_type, stream=f.file) for f in photos]
    batch = accept_uploads(incoming, config)

    created = BatchIngestor(config, session_factory).ingest(batch.stored)
    return {
        "message": "Images uploaded!",
        "photos": [p.to_dict() for p in created],
        "skipped": batch.skipped,
    }

@router.post("/photos/trash", name="trash_photos")
def trash_photos(payload: dict | None = Body(None), db: Session = Depends(get_db)):
    modified = lifecycle_service.trash(db, (payload or {}).get("ids"))
    return {"message": f"{modified} Photos trashed successfully!", "modified": modified}

@router.delete("/photos", name="purge_all")
def purge_all(db: Session = Depends(get_db), config: IngestConfig = Depends(get_ingest_config)):
    report = lifecycle_service.purge_all(db, config)
    return {
        "message": "Deleted successfully!",
        "photos_deleted": report.photos_deleted,
        "faces_deleted": report.faces_deleted,
        "file_errors": report.file_errors,
    }

@router.post("/faces", name="save_faces")
def save_faces(payload: dict | None = Body(None), db: Session = Depends(get_db)):
    faces = (payload or {}).get("faces")
    if isinstance(faces, str):
        try:
            faces = json.loads(faces)
        except json.JSONDecodeError:
            raise ValidationError("faces must be valid JSON") from None
    if not isinstance(faces, dict):
        raise ValidationError("faces parameter is missing!")

    logger.info("Saving face descriptors for labels: %s", list(faces))
    rows = photo_store.save_faces(db, faces)
    return {"message": "Face descriptors saved!", "saved": len(rows)}
