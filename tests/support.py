from __future__ import annotations

import io
import tempfile
import unittest
from pathlib import Path

from PIL import Image

from photovault.config import IngestConfig
from photovault.db import init_db, make_engine, make_session_factory


def image_bytes(size=(800, 600), fmt="JPEG", color=(200, 120, 40), exif=None, mode="RGB") -> bytes:
    buf = io.BytesIO()
    img = Image.new(mode, size, color)
    kwargs = {"exif": exif} if exif is not None else {}
    img.save(buf, format=fmt, **kwargs)
    return buf.getvalue()


def write_image(path: Path, **kwargs) -> Path:
    path.write_bytes(image_bytes(**kwargs))
    return path


class StorageTestCase(unittest.TestCase):
    """Temp upload/thumbnail directories plus a throwaway SQLite database."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.upload_dir = root / "uploads"
        self.thumb_dir = root / "thumbnails"
        self.upload_dir.mkdir()
        self.thumb_dir.mkdir()

        self.engine = make_engine(f"sqlite:///{root / 'test.db'}")
        init_db(self.engine)
        self.Session = make_session_factory(self.engine)
        self.config = IngestConfig(
            upload_path=self.upload_dir,
            thumbnail_path=self.thumb_dir,
            thumbnail_max_side=320,
            workers=4,
        )

    def tearDown(self) -> None:
        self.engine.dispose()
        self._tmp.cleanup()
