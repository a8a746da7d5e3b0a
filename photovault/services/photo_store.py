from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Iterable, Mapping

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import StorageError
from ..models.face import Face
from ..models.photo import Photo

logger = logging.getLogger(__name__)


def list_photos(db: Session, trashed: bool = False) -> list[Photo]:
    q = select(Photo).where(Photo.trashed == trashed).order_by(Photo.date_created.desc(), Photo.id.desc())
    return list(db.scalars(q).all())


def create_photo(db: Session, name: str, date_created: datetime, meta_data: str) -> Photo:
    photo = Photo(name=name, date_created=date_created, meta_data=meta_data, trashed=False)
    db.add(photo)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError(name, f"could not save photo record: {exc}") from exc
    logger.info("Photo saved at id: %s", photo.id)
    return photo


def delete_photos(db: Session, ids: Iterable[int]) -> int:
    id_list = list(ids)
    if not id_list:
        return 0
    try:
        res = db.execute(delete(Photo).where(Photo.id.in_(id_list)))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError(None, f"could not delete photo records: {exc}") from exc
    return res.rowcount or 0


def trash_photos(db: Session, ids: Iterable[int]) -> int:
    # already-trashed rows are not counted as modified
    q = (
        update(Photo)
        .where(Photo.id.in_(list(ids)), Photo.trashed == False)  # noqa: E712
        .values(trashed=True)
    )
    try:
        res = db.execute(q)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError(None, f"could not trash photos: {exc}") from exc
    return res.rowcount or 0


def delete_all_records(db: Session) -> tuple[int, int]:
    """Delete every photo and face record in one transaction; returns both counts."""
    try:
        photos = db.execute(delete(Photo)).rowcount or 0
        faces = db.execute(delete(Face)).rowcount or 0
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError(None, f"could not delete records: {exc}") from exc
    return photos, faces


def save_faces(db: Session, faces: Mapping[str, Any]) -> list[Face]:
    rows = [Face(label=label, descriptors=json.dumps(descriptors)) for label, descriptors in faces.items()]
    db.add_all(rows)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError(None, f"could not save face descriptors: {exc}") from exc
    for row in rows:
        logger.info("Face saved at id: %s", row.id)
    return rows
