"""Unit tests for data models."""

from dataclasses import FrozenInstanceError

import pytest

from models.clip import QUALITY_PRESETS, ClipOptions
from models.preview import PreviewMetadata, TrackInfo
from models.video import DirectURL, VideoInfo
from utils.errors import CacheCorrupt


class TestClipOptions:
    """Tests for ClipOptions clamping."""

    def test_defaults(self):
        options = ClipOptions.from_query({})
        assert options == ClipOptions(
            quality="medium", duration_seconds=7, include_audio=True, width=640, height=360
        )

    @pytest.mark.parametrize(
        "raw,expected",
        [("1", 3), ("3", 3), ("10", 10), ("25", 10), ("5", 5)],
    )
    def test_duration_clamped(self, raw, expected):
        assert ClipOptions.from_query({"duration": raw}).duration_seconds == expected

    def test_odd_width_rounded_up_after_clamp(self):
        assert ClipOptions.from_query({"width": "239"}).width == 240
        assert ClipOptions.from_query({"width": "241"}).width == 242

    def test_height_clamped_and_even(self):
        assert ClipOptions.from_query({"height": "100"}).height == 180
        assert ClipOptions.from_query({"height": "5000"}).height == 1080
        assert ClipOptions.from_query({"height": "481"}).height == 482

    def test_unparseable_numbers_fall_back_to_defaults(self):
        options = ClipOptions.from_query({"duration": "abc", "width": None, "height": ""})
        assert options.duration_seconds == 7
        assert options.width == 640
        assert options.height == 360

    @pytest.mark.parametrize("raw", ["inf", "-inf", "1e400", "nan"])
    def test_non_finite_numbers_fall_back_to_defaults(self, raw):
        options = ClipOptions.from_query({"duration": raw, "width": raw, "height": raw})
        assert options.duration_seconds == 7
        assert options.width == 640
        assert options.height == 360

    def test_unknown_quality_falls_back_to_medium(self):
        assert ClipOptions.from_query({"quality": "ultra"}).quality == "medium"
        assert ClipOptions.from_query({"quality": "max"}).quality == "max"

    def test_audio_false_only_for_literal_false(self):
        assert ClipOptions.from_query({"audio": "false"}).include_audio is False
        assert ClipOptions.from_query({"audio": False}).include_audio is False
        assert ClipOptions.from_query({"audio": "0"}).include_audio is True
        assert ClipOptions.from_query({"audio": "true"}).include_audio is True

    def test_to_dict_round_trips(self):
        options = ClipOptions(quality="low", duration_seconds=5, include_audio=False, width=1280, height=720)
        assert ClipOptions.from_dict(options.to_dict()) == options

    def test_preset_lookup(self):
        assert ClipOptions(quality="max").preset is QUALITY_PRESETS["max"]
        assert ClipOptions().duration_ms == 7000


class TestQualityPresets:
    """Tests for the fixed encoder presets."""

    def test_all_levels_present(self):
        assert set(QUALITY_PRESETS) == {"low", "medium", "max"}

    def test_max_uses_slower_speed_preset(self):
        assert QUALITY_PRESETS["max"].speed_preset == "medium"
        assert QUALITY_PRESETS["medium"].speed_preset == "fast"
        assert QUALITY_PRESETS["low"].profile == "baseline"


class TestTrackInfo:
    """Tests for TrackInfo."""

    def test_artist_and_search_query(self):
        track = TrackInfo(id="x", title="Song", artists=["A", "B"])
        assert track.artist == "A, B"
        assert track.search_query == "A B Song"


class TestPreviewMetadata:
    """Tests for PreviewMetadata serialisation."""

    def test_round_trip(self, sample_metadata):
        assert PreviewMetadata.from_dict(sample_metadata.to_dict()) == sample_metadata

    def test_missing_key_is_corrupt(self, sample_metadata):
        data = sample_metadata.to_dict()
        del data["youtube_video_id"]
        with pytest.raises(CacheCorrupt):
            PreviewMetadata.from_dict(data)

    def test_ill_typed_value_is_corrupt(self, sample_metadata):
        data = sample_metadata.to_dict()
        data["clip_start_ms"] = "not a number"
        with pytest.raises(CacheCorrupt):
            PreviewMetadata.from_dict(data)

    def test_is_immutable(self, sample_metadata):
        with pytest.raises(FrozenInstanceError):
            sample_metadata.title = "Changed"
        with pytest.raises(FrozenInstanceError):
            sample_metadata.youtube_metadata.duration_seconds = 1


class TestVideoModels:
    """Tests for video info and source descriptors."""

    def test_use_direct_url(self):
        assert VideoInfo(video_id="abc12345678", title="t", duration=10, url="https://x").use_direct_url
        assert not VideoInfo(video_id="abc12345678", title="t", duration=10, formats=[]).use_direct_url

    def test_direct_url_headers(self):
        assert not DirectURL(url="https://x").requires_auth_headers
        assert DirectURL(url="https://x", headers={"Cookie": "a=b"}).requires_auth_headers
