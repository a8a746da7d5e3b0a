from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Any

from .exif_service import RawMetadata

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_EXIF_DATE_FORMATS = ("%Y:%m:%d %H:%M:%S", DATE_FORMAT, "%Y:%m:%d %H:%M:%S%z")


@dataclass(frozen=True)
class MetadataBlob:
    dateCreated: str
    megaPixels: float | None
    width: int | None
    height: int | None
    size: str
    device: str | None
    aperture: str | None
    focalLength: float | None
    iso: int | None
    latitude: float | None
    longitude: float | None
    thumbWidth: int | None
    thumbHeight: int | None

    def to_json(self) -> str:
        return json.dumps(self.__dict__)


@dataclass(frozen=True)
class NormalizedMetadata:
    date_created: datetime
    # serialized MetadataBlob, or "" when the image had no embedded metadata
    meta_data: str


def calculate_megapixels(width: int | None, height: int | None) -> float | None:
    if not width or not height:
        return None
    return round(width * height / 1_000_000, 1)


def format_bytes(size: int, si: bool = True, digits: int = 1) -> str:
    thresh = 1000 if si else 1024
    if abs(size) < thresh:
        return f"{size} B"
    units = ["kB", "MB", "GB", "TB", "PB", "EB"] if si else ["KiB", "MiB", "GiB", "TiB", "PiB", "EiB"]
    value = float(size)
    unit = -1
    while True:
        value /= thresh
        unit += 1
        if round(abs(value), digits) < thresh or unit == len(units) - 1:
            break
    return f"{value:.{digits}f} {units[unit]}"


def to_fixed_trunc(value: Any, digits: int) -> str | None:
    """Render ``value`` with ``digits`` decimals, dropping the rest instead of rounding."""
    if value is None:
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return str(number.quantize(Decimal(1).scaleb(-digits), rounding=ROUND_DOWN))


def convert_coordinate(dms: tuple[float, float, float] | None, ref: str | None = None) -> float | None:
    """Degrees/minutes/seconds to signed decimal degrees (south and west negative)."""
    if not dms:
        return None
    degrees, minutes, seconds = dms
    value = degrees + minutes / 60.0 + seconds / 3600.0
    if ref and ref.strip().upper() in ("S", "W"):
        value = -value
    return round(value, 6)


def _parse_capture_date(raw: str | None) -> datetime | None:
    if not raw:
        return None
    for fmt in _EXIF_DATE_FORMATS:
        try:
            parsed = datetime.strptime(raw, fmt)
        except ValueError:
            continue
        return parsed.replace(tzinfo=None)
    return None


def _device(raw: RawMetadata) -> str | None:
    parts = [p for p in (raw.make, raw.model) if p]
    return " ".join(parts) or None


def normalize_metadata(
    raw: RawMetadata | None,
    size_bytes: int,
    now: datetime | None = None,
    thumbnail_size: tuple[int, int] | None = None,
) -> NormalizedMetadata:
    """Build the record's creation date and serialized metadata blob.

    ``now`` is the ingestion time; it stands in for the capture time when the
    image has none. ``thumbnail_size`` fills ``thumbWidth``/``thumbHeight``
    when the file carries no embedded thumbnail entry.
    """
    now = (now or datetime.now()).replace(microsecond=0)
    if raw is None:
        return NormalizedMetadata(date_created=now, meta_data="")

    captured = _parse_capture_date(raw.captured_at) or now

    thumb_width, thumb_height = raw.thumb_width, raw.thumb_height
    if (thumb_width is None or thumb_height is None) and thumbnail_size:
        thumb_width, thumb_height = thumbnail_size

    blob = MetadataBlob(
        dateCreated=captured.strftime(DATE_FORMAT),
        megaPixels=calculate_megapixels(raw.width, raw.height),
        width=raw.width,
        height=raw.height,
        size=format_bytes(size_bytes, si=True),
        device=_device(raw),
        aperture=to_fixed_trunc(raw.max_aperture, 1),
        focalLength=raw.focal_length,
        iso=raw.iso,
        latitude=convert_coordinate(raw.gps_latitude, raw.gps_latitude_ref),
        longitude=convert_coordinate(raw.gps_longitude, raw.gps_longitude_ref),
        thumbWidth=thumb_width,
        thumbHeight=thumb_height,
    )
    return NormalizedMetadata(date_created=captured, meta_data=blob.to_json())
