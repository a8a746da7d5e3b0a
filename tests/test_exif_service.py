import struct
import tempfile
import unittest
from fractions import Fraction
from pathlib import Path

from PIL import ExifTags, Image

from photovault.errors import ProcessingError
from photovault.services.exif_service import extract_metadata, raw_metadata_from_exif, thumbnail_dimensions

from support import write_image

Tag = ExifTags.Base
GPS = ExifTags.GPS


class FakeExif(dict):
    """Minimal stand-in for ``PIL.Image.Exif``: top-level tags plus sub-IFDs."""

    def __init__(self, tags, ifds=None):
        super().__init__(tags)
        self._ifds = ifds or {}

    def get_ifd(self, tag):
        return self._ifds.get(tag, {})


def exif_with_thumbnail_entry(width: int, height: int) -> bytes:
    """Little-endian EXIF block: IFD0 with Orientation=1, IFD1 with the thumbnail size."""
    entry = "<HHIHH"  # tag, SHORT, count 1, value, padding
    ifd0 = struct.pack("<H", 1) + struct.pack(entry, 0x0112, 3, 1, 1, 0) + struct.pack("<I", 26)
    ifd1 = (
        struct.pack("<H", 2)
        + struct.pack(entry, 0x0100, 3, 1, width, 0)
        + struct.pack(entry, 0x0101, 3, 1, height, 0)
        + struct.pack("<I", 0)
    )
    return b"Exif\x00\x00" + b"II*\x00" + struct.pack("<I", 8) + ifd0 + ifd1


class TestThumbnailDimensions(unittest.TestCase):
    def test_image_tags_keep_their_order(self) -> None:
        entry = {Tag.ImageWidth: 160, Tag.ImageLength: 90}
        self.assertEqual(thumbnail_dimensions(entry), (160, 90))

    def test_pixel_dimension_tags_as_fallback(self) -> None:
        entry = {Tag.ExifImageWidth: 160, Tag.ExifImageHeight: 120}
        self.assertEqual(thumbnail_dimensions(entry), (160, 120))

    def test_missing_entry(self) -> None:
        self.assertEqual(thumbnail_dimensions({}), (None, None))

    def test_embedded_thumbnail_of_real_jpeg(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = write_image(Path(tmp) / "landscape.jpg", size=(800, 600), exif=exif_with_thumbnail_entry(160, 120))
            raw = extract_metadata(path)

        self.assertIsNotNone(raw)
        self.assertEqual((raw.width, raw.height), (800, 600))
        self.assertEqual((raw.thumb_width, raw.thumb_height), (160, 120))


class TestRawMetadataFromExif(unittest.TestCase):
    def test_maps_all_sections(self) -> None:
        exif = FakeExif(
            {Tag.Make: "NIKON CORPORATION\x00", Tag.Model: "NIKON D750", Tag.DateTime: "2020:01:01 00:00:00"},
            {
                ExifTags.IFD.Exif: {
                    Tag.DateTimeOriginal: "2019:08:15 09:10:11",
                    Tag.MaxApertureValue: Fraction(57, 20),
                    Tag.FocalLength: Fraction(35, 1),
                    Tag.ISOSpeedRatings: 200,
                    Tag.ExifImageWidth: 6016,
                    Tag.ExifImageHeight: 4016,
                },
                ExifTags.IFD.GPSInfo: {
                    GPS.GPSLatitudeRef: "N",
                    GPS.GPSLatitude: (Fraction(40), Fraction(26), Fraction(46)),
                    GPS.GPSLongitudeRef: "W",
                    GPS.GPSLongitude: (Fraction(79), Fraction(58), Fraction(56)),
                },
                ExifTags.IFD.IFD1: {Tag.ImageWidth: 160, Tag.ImageLength: 107},
            },
        )

        raw = raw_metadata_from_exif(exif, fallback_size=(10, 10))

        self.assertEqual(raw.captured_at, "2019:08:15 09:10:11")
        self.assertEqual(raw.make, "NIKON CORPORATION")
        self.assertEqual(raw.model, "NIKON D750")
        self.assertEqual((raw.width, raw.height), (6016, 4016))
        self.assertAlmostEqual(raw.max_aperture, 2.85)
        self.assertEqual(raw.focal_length, 35.0)
        self.assertEqual(raw.iso, 200)
        self.assertEqual(raw.gps_latitude, (40.0, 26.0, 46.0))
        self.assertEqual(raw.gps_longitude_ref, "W")
        self.assertEqual((raw.thumb_width, raw.thumb_height), (160, 107))

    def test_sparse_exif_uses_fallbacks(self) -> None:
        exif = FakeExif({Tag.DateTime: "2018:02:03 04:05:06"})
        raw = raw_metadata_from_exif(exif, fallback_size=(640, 480))

        self.assertEqual(raw.captured_at, "2018:02:03 04:05:06")
        self.assertEqual((raw.width, raw.height), (640, 480))
        self.assertIsNone(raw.make)
        self.assertIsNone(raw.max_aperture)
        self.assertIsNone(raw.gps_latitude)
        self.assertEqual((raw.thumb_width, raw.thumb_height), (None, None))

    def test_malformed_values_are_dropped(self) -> None:
        exif = FakeExif(
            {Tag.Make: 17},
            {
                ExifTags.IFD.Exif: {Tag.MaxApertureValue: "wide", Tag.ISOSpeedRatings: (100, 200)},
                ExifTags.IFD.GPSInfo: {GPS.GPSLatitude: (40, 26)},
            },
        )
        raw = raw_metadata_from_exif(exif)

        self.assertIsNone(raw.make)
        self.assertIsNone(raw.max_aperture)
        self.assertEqual(raw.iso, 100)
        self.assertIsNone(raw.gps_latitude)


class TestExtractMetadata(unittest.TestCase):
    def test_image_without_metadata(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = write_image(Path(tmp) / "plain.png", fmt="PNG")
            self.assertIsNone(extract_metadata(path))

    def test_reads_camera_tags_from_jpeg(self) -> None:
        exif = Image.Exif()
        exif[Tag.Make] = "Canon"
        exif[Tag.Model] = "EOS R5"
        with tempfile.TemporaryDirectory() as tmp:
            path = write_image(Path(tmp) / "cam.jpg", size=(300, 200), exif=exif)
            raw = extract_metadata(path)

        self.assertIsNotNone(raw)
        self.assertEqual(raw.make, "Canon")
        self.assertEqual(raw.model, "EOS R5")
        self.assertEqual((raw.width, raw.height), (300, 200))
        self.assertIsNone(raw.captured_at)

    def test_undecodable_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "broken.jpg"
            path.write_bytes(b"definitely not an image")
            with self.assertRaises(ProcessingError) as ctx:
                extract_metadata(path)
        self.assertEqual(ctx.exception.filename, "broken.jpg")


if __name__ == "__main__":
    unittest.main()
