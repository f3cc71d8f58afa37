"""Tests for capture-time guessing from filenames."""

import pytest

from photo_auditor.filename_dates import FILENAME_PATTERNS, guess_time_from_filename

from conftest import utc


class TestKnownPatterns:
    """Each supported naming convention yields its encoded instant."""

    @pytest.mark.parametrize('name, expected', [
        ('FB_IMG_1577836800000.jpg', utc(2020, 1, 1, 0, 0, 0)),
        ('20250101_1230.jpg', utc(2025, 1, 1, 12, 30)),
        ('Screenshot_20240315-142501.png', utc(2024, 3, 15, 14, 25, 1)),
        ('P_20230704_101112.jpg', utc(2023, 7, 4, 10, 11, 12)),
        ('VideoEditor_20220101 10-20-30.mp4', utc(2022, 1, 1, 10, 20, 30)),
        ('2020-02-03-04-05-06.mp4', utc(2020, 2, 3, 4, 5, 6)),
    ])
    def test_pattern_decodes_instant(self, name, expected):
        assert guess_time_from_filename(name) == expected

    def test_facebook_keeps_milliseconds(self):
        guessed = guess_time_from_filename('FB_IMG_1577836800123.jpg')
        assert guessed.microsecond == 123000

    def test_v_prefix_drops_seconds(self):
        """V_ names carry seconds but only hours and minutes are used."""
        assert guess_time_from_filename('V_20210505_123456_vc1.mp4') == utc(2021, 5, 5, 12, 34, 0)

    def test_date_prefix_ignores_trailing_digits(self):
        assert guess_time_from_filename('20250101_123059_HDR.jpg') == utc(2025, 1, 1, 12, 30)

    def test_matching_is_case_insensitive(self):
        assert guess_time_from_filename('screenshot_20240315-142501.PNG') == utc(2024, 3, 15, 14, 25, 1)
        assert guess_time_from_filename('fb_img_1577836800000.jpg') == utc(2020, 1, 1)

    def test_result_is_utc_aware(self):
        guessed = guess_time_from_filename('P_20230704_101112.jpg')
        assert guessed.tzinfo is not None
        assert guessed.utcoffset().total_seconds() == 0


class TestPrecedence:

    def test_first_listed_pattern_wins(self):
        """A date prefix is listed before the screenshot convention."""
        name = '20250101_1230_Screenshot_20240315-142501.png'
        assert guess_time_from_filename(name) == utc(2025, 1, 1, 12, 30)

    def test_facebook_wins_over_later_patterns(self):
        name = 'FB_IMG_1577836800000_P_20230704_101112.jpg'
        assert guess_time_from_filename(name) == utc(2020, 1, 1)

    def test_pattern_order_is_stable(self):
        names = [name for name, _, _ in FILENAME_PATTERNS]
        assert names == [
            'facebook', 'date_hhmm_prefix', 'screenshot', 'p_prefix',
            'video_editor', 'v_prefix', 'dashed_video',
        ]


class TestNoGuess:

    @pytest.mark.parametrize('name', [
        'IMG_20250101.jpg',
        'DSC_0001.JPG',
        'holiday.png',
        '2020-02-03-04-05-06.jpg',
        'VideoEditor_20220101 10-20-30.mov',
        '',
    ])
    def test_unrecognized_name_returns_none(self, name):
        assert guess_time_from_filename(name) is None

    @pytest.mark.parametrize('name', [
        '20251340_1230.jpg',
        'Screenshot_20240230-000000.png',
        'P_20230704_256000.jpg',
        '2020-02-30-04-05-06.mp4',
    ])
    def test_impossible_date_returns_none(self, name):
        assert guess_time_from_filename(name) is None

    def test_impossible_date_does_not_fall_through(self):
        """The first matching pattern decides even when its date is invalid."""
        name = '20251340_1230_Screenshot_20240315-142501.png'
        assert guess_time_from_filename(name) is None
