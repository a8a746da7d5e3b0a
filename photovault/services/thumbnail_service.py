"""Thumbnail generation for stored originals."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError
from PIL.Image import Resampling

from ..config import IngestConfig
from ..errors import ProcessingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Thumbnail:
    path: Path
    width: int
    height: int


def thumbnail_name(name: str, prefix: str = "thumb_") -> str:
    return f"{prefix}{name}"


def thumbnail_path_for(name: str, config: IngestConfig) -> Path:
    return config.thumbnail_path / thumbnail_name(name, config.thumbnail_prefix)


def _format_for(path: Path, fallback: str | None) -> str:
    fmt = Image.registered_extensions().get(path.suffix.lower())
    return fmt or fallback or "JPEG"


def build_thumbnail_image(image: Image.Image, max_side: int) -> Image.Image:
    """Return a reduced copy of ``image``.

    The longest side is bounded by ``max_side`` and is always at least one
    pixel shorter than the source, so small images still shrink.
    """

    resized = ImageOps.exif_transpose(image)
    safe_side = max(1, min(int(max_side), max(resized.size) - 1))
    resized.thumbnail((safe_side, safe_side), resample=Resampling.LANCZOS)
    return resized


def generate_thumbnail(original: Path, config: IngestConfig) -> Thumbnail:
    """Write the thumbnail for ``original`` and return where it went and its size.

    The thumbnail keeps the original's name (behind the configured prefix) and
    therefore its extension; the encoder is picked from that extension.
    Raises :class:`ProcessingError` when the original cannot be decoded.
    """

    output_path = thumbnail_path_for(original.name, config)
    try:
        with Image.open(original) as image:
            image.load()
            fmt = _format_for(output_path, image.format)
            resized = build_thumbnail_image(image, config.thumbnail_max_side)
    except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise ProcessingError(original.name, f"cannot decode image: {exc}") from exc

    if fmt == "JPEG" and resized.mode not in ("RGB", "L"):
        resized = resized.convert("RGB")

    save_kwargs = {"quality": config.thumbnail_quality} if fmt in ("JPEG", "WEBP") else {}
    try:
        resized.save(output_path, format=fmt, **save_kwargs)
    except (OSError, ValueError) as exc:
        logger.error("Thumbnail save failed for %s: %s", output_path, exc)
        raise ProcessingError(original.name, f"cannot write thumbnail: {exc}") from exc

    return Thumbnail(path=output_path, width=resized.width, height=resized.height)
