from __future__ import annotations
from datetime import datetime
from typing import Any

from sqlalchemy import String, DateTime, Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base

class Photo(Base):
    __tablename__ = "photos"

    id: Mapped[int] = mapped_column(primary_key=True)
    # stored filename, same under the upload and thumbnail directories
    name: Mapped[str] = mapped_column(String(512), unique=True, index=True)

    date_created: Mapped[datetime] = mapped_column(DateTime)
    # JSON text, or "" when the image carried no embedded metadata
    meta_data: Mapped[str] = mapped_column(Text, default="")

    trashed: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "dateCreated": self.date_created.isoformat() if self.date_created else None,
            "metaData": self.meta_data,
            "trashed": bool(self.trashed),
        }
