"""Read embedded capture metadata (EXIF) from stored originals."""

from __future__ import annotations

import math
import struct
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from PIL import ExifTags, Image, UnidentifiedImageError

from ..errors import ProcessingError

Tag = ExifTags.Base
GPSTag = ExifTags.GPS


@dataclass(frozen=True)
class RawMetadata:
    """Embedded fields as found in the file. Anything may be missing."""

    captured_at: str | None = None
    make: str | None = None
    model: str | None = None
    width: int | None = None
    height: int | None = None
    max_aperture: float | None = None
    focal_length: float | None = None
    iso: int | None = None
    gps_latitude: tuple[float, float, float] | None = None
    gps_latitude_ref: str | None = None
    gps_longitude: tuple[float, float, float] | None = None
    gps_longitude_ref: str | None = None
    thumb_width: int | None = None
    thumb_height: int | None = None


def _as_str(value: Any) -> str | None:
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    if not isinstance(value, str):
        return None
    cleaned = value.strip("\x00").strip()
    return cleaned or None


def _as_float(value: Any) -> float | None:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        value = value[0] if value else None
    try:
        number = float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    return number if math.isfinite(number) else None


def _as_int(value: Any) -> int | None:
    number = _as_float(value)
    return int(number) if number is not None else None


def _as_triplet(value: Any) -> tuple[float, float, float] | None:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)) or len(value) < 3:
        return None
    parts = [_as_float(v) for v in value[:3]]
    if any(p is None for p in parts):
        return None
    return parts[0], parts[1], parts[2]


def thumbnail_dimensions(entry: Mapping[int, Any]) -> tuple[int | None, int | None]:
    """Geometric (width, height) of the embedded thumbnail entry.

    This is the one place that maps the extractor's thumbnail tags to
    geometry. Some EXIF readers report the thumbnail pair transposed relative
    to the main image entry; Pillow does not, so its IFD1
    ``ImageWidth``/``ImageLength`` are returned as they are.
    """

    width = _as_int(entry.get(Tag.ImageWidth) or entry.get(Tag.ExifImageWidth))
    height = _as_int(entry.get(Tag.ImageLength) or entry.get(Tag.ExifImageHeight))
    return width, height


def raw_metadata_from_exif(exif: Any, fallback_size: tuple[int, int] | None = None) -> RawMetadata:
    """Map a Pillow ``Image.Exif`` (or anything with ``get``/``get_ifd``) to :class:`RawMetadata`."""

    exif_ifd = exif.get_ifd(ExifTags.IFD.Exif) or {}
    gps_ifd = exif.get_ifd(ExifTags.IFD.GPSInfo) or {}
    thumb_ifd = exif.get_ifd(ExifTags.IFD.IFD1) or {}

    captured_at = (
        _as_str(exif_ifd.get(Tag.DateTimeOriginal))
        or _as_str(exif_ifd.get(Tag.DateTimeDigitized))
        or _as_str(exif.get(Tag.DateTime))
    )

    width = _as_int(exif.get(Tag.ImageWidth)) or _as_int(exif_ifd.get(Tag.ExifImageWidth))
    height = _as_int(exif.get(Tag.ImageLength)) or _as_int(exif_ifd.get(Tag.ExifImageHeight))
    if (width is None or height is None) and fallback_size:
        width, height = fallback_size

    thumb_width, thumb_height = thumbnail_dimensions(thumb_ifd)

    return RawMetadata(
        captured_at=captured_at,
        make=_as_str(exif.get(Tag.Make)),
        model=_as_str(exif.get(Tag.Model)),
        width=width,
        height=height,
        max_aperture=_as_float(exif_ifd.get(Tag.MaxApertureValue)),
        focal_length=_as_float(exif_ifd.get(Tag.FocalLength)),
        iso=_as_int(exif_ifd.get(Tag.ISOSpeedRatings)),
        gps_latitude=_as_triplet(gps_ifd.get(GPSTag.GPSLatitude)),
        gps_latitude_ref=_as_str(gps_ifd.get(GPSTag.GPSLatitudeRef)),
        gps_longitude=_as_triplet(gps_ifd.get(GPSTag.GPSLongitude)),
        gps_longitude_ref=_as_str(gps_ifd.get(GPSTag.GPSLongitudeRef)),
        thumb_width=thumb_width,
        thumb_height=thumb_height,
    )


def extract_metadata(path: Path) -> RawMetadata | None:
    """Return the embedded metadata of ``path``, or ``None`` if it carries none.

    Raises :class:`ProcessingError` when the file is not a readable image or
    its metadata block is corrupt.
    """

    try:
        with Image.open(path) as image:
            exif = image.getexif()
            if not exif:
                return None
            return raw_metadata_from_exif(exif, fallback_size=image.size)
    except (OSError, UnidentifiedImageError) as exc:
        raise ProcessingError(path.name, f"cannot read image: {exc}") from exc
    except (ValueError, TypeError, struct.error) as exc:
        raise ProcessingError(path.name, f"cannot read embedded metadata: {exc}") from exc
