"""Tests for embedded metadata extraction."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from photo_auditor.extractor import MetadataExtractor, parse_exif_datetime

from conftest import utc


class FakeTag:
    """Stand-in for an exifread IfdTag."""

    def __init__(self, printable, values=None):
        self.printable = printable
        self.values = values if values is not None else [printable]

    def __str__(self):
        return self.printable


def _ffprobe_result(data, returncode=0):
    result = MagicMock()
    result.returncode = returncode
    result.stdout = json.dumps(data)
    return result


@pytest.fixture
def image_file(tmp_path):
    path = tmp_path / 'IMG_0001.jpg'
    path.write_bytes(b'\xff\xd8\xff\xe0fake')
    return path


@pytest.fixture
def video_file(tmp_path):
    path = tmp_path / 'clip.mp4'
    path.write_bytes(b'\x00\x00\x00\x18ftypmp42')
    return path


class TestParseExifDatetime:

    def test_without_offset_reads_as_utc(self):
        assert parse_exif_datetime('2025:04:01 10:00:00') == utc(2025, 4, 1, 10)

    def test_offset_is_applied(self):
        assert parse_exif_datetime('2025:04:01 10:00:00', '+02:00') == utc(2025, 4, 1, 8)
        assert parse_exif_datetime('2025:04:01 10:00:00', '-05:30') == utc(2025, 4, 1, 15, 30)

    def test_malformed_offset_is_ignored(self):
        assert parse_exif_datetime('2025:04:01 10:00:00', 'garbage') == utc(2025, 4, 1, 10)

    @pytest.mark.parametrize('value', ['', '0000:00:00 00:00:00', '    :  :     :  :  ', '2025:13:01 10:00:00'])
    def test_blank_or_impossible_values(self, value):
        assert parse_exif_datetime(value) is None


class TestImageExtraction:

    def test_reads_capture_time_offset_and_size(self, image_file):
        tags = {
            'EXIF DateTimeOriginal': FakeTag('2025:04:01 10:00:00'),
            'EXIF OffsetTimeOriginal': FakeTag('+09:00'),
            'EXIF ExifImageWidth': FakeTag('4032', [4032]),
            'EXIF ExifImageLength': FakeTag('3024', [3024]),
        }
        with patch('photo_auditor.extractor.exifread.process_file', return_value=tags):
            metadata = MetadataExtractor().extract(image_file)

        assert metadata.capture_time == utc(2025, 4, 1, 1)
        assert (metadata.width, metadata.height) == (4032, 3024)
        assert metadata.error is None
        assert metadata.file_time is not None

    def test_falls_back_to_later_date_tags(self, image_file):
        tags = {
            'EXIF DateTimeOriginal': FakeTag('0000:00:00 00:00:00'),
            'Image DateTime': FakeTag('2024:12:31 23:59:59'),
            'Image ImageWidth': FakeTag('800', [800]),
            'Image ImageLength': FakeTag('600', [600]),
        }
        with patch('photo_auditor.extractor.exifread.process_file', return_value=tags):
            metadata = MetadataExtractor().extract(image_file)

        assert metadata.capture_time == utc(2024, 12, 31, 23, 59, 59)
        assert (metadata.width, metadata.height) == (800, 600)

    def test_no_tags_means_absent_fields(self, image_file):
        with patch('photo_auditor.extractor.exifread.process_file', return_value={}):
            metadata = MetadataExtractor().extract(image_file)

        assert metadata.capture_time is None
        assert metadata.width is None
        assert metadata.error is None

    def test_reader_failure_is_reported_not_raised(self, image_file):
        with patch('photo_auditor.extractor.exifread.process_file', side_effect=ValueError('bad IFD')):
            metadata = MetadataExtractor().extract(image_file)

        assert metadata.capture_time is None
        assert metadata.error == 'bad IFD'
        assert metadata.file_time is not None

    def test_missing_file(self, tmp_path):
        metadata = MetadataExtractor().extract(tmp_path / 'gone.jpg')
        assert metadata.error
        assert metadata.file_time is None


class TestVideoExtraction:

    def test_reads_creation_time_and_video_stream_size(self, video_file):
        data = {
            'format': {'tags': {'creation_time': '2020-07-28T11:49:03.000000Z'}},
            'streams': [
                {'codec_type': 'audio'},
                {'codec_type': 'video', 'width': 1920, 'height': 1080},
            ],
        }
        with patch('photo_auditor.extractor.subprocess.run', return_value=_ffprobe_result(data)) as run:
            metadata = MetadataExtractor(timeout_seconds=7).extract(video_file)

        assert metadata.capture_time == utc(2020, 7, 28, 11, 49, 3)
        assert (metadata.width, metadata.height) == (1920, 1080)
        assert run.call_args.kwargs['timeout'] == 7
        assert run.call_args.args[0][0] == 'ffprobe'

    def test_video_without_creation_time(self, video_file):
        with patch('photo_auditor.extractor.subprocess.run', return_value=_ffprobe_result({})):
            metadata = MetadataExtractor().extract(video_file)

        assert metadata.capture_time is None
        assert metadata.error is None

    def test_timeout_yields_absent_metadata(self, video_file):
        timeout = subprocess.TimeoutExpired(cmd='ffprobe', timeout=5)
        with patch('photo_auditor.extractor.subprocess.run', side_effect=timeout):
            metadata = MetadataExtractor(timeout_seconds=5).extract(video_file)

        assert metadata.capture_time is None
        assert 'timed out' in metadata.error
        assert metadata.file_time is not None

    def test_ffprobe_failure(self, video_file):
        with patch('photo_auditor.extractor.subprocess.run', return_value=_ffprobe_result({}, returncode=1)):
            metadata = MetadataExtractor().extract(video_file)

        assert metadata.capture_time is None
        assert 'ffprobe exited with 1' in metadata.error

    def test_ffprobe_not_installed(self, video_file):
        with patch('photo_auditor.extractor.subprocess.run', side_effect=FileNotFoundError('ffprobe')):
            metadata = MetadataExtractor().extract(video_file)

        assert metadata.error
