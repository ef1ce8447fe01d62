"""Unit tests for data models."""

from pathlib import Path

from reelforge.models.asset import AssetOrigin, AssetType, MediaCandidate, VisualAsset
from reelforge.models.job import JobStatus
from reelforge.models.render import ArtifactKind, RenderResult, RenderSettings
from reelforge.models.script import ScriptDocument


class TestScriptDocument:
    """Tests for ScriptDocument parsing."""

    def test_defaults_for_missing_fields(self):
        """Test that an empty payload gets title, duration and platform defaults."""
        script = ScriptDocument.from_dict({})
        assert script.title == "Generated Video"
        assert script.duration == 30.0
        assert script.platform == "general"
        assert script.scenes == ()

    def test_accepts_snake_case_keys(self):
        script = ScriptDocument.from_dict(
            {"scenes": [{"start_time": 1, "end_time": 4, "visual_direction": "Forest"}]}
        )
        assert script.scenes[0].start_time == 1
        assert script.scenes[0].visual_direction == "Forest"

    def test_to_dict_uses_camel_case(self, sample_script):
        data = sample_script.to_dict()
        assert data["scenes"][1]["onScreenText"] == "SUBSCRIBE"
        assert ScriptDocument.from_dict(data) == sample_script


class TestMediaCandidate:
    """Tests for MediaCandidate URL selection."""

    def test_download_url_is_primary(self, sample_candidate):
        assert sample_candidate.primary_url == "https://cdn.example.com/photo-large.jpg"
        assert sample_candidate.secondary_url == "https://cdn.example.com/photo-small.jpg"

    def test_no_secondary_when_urls_match(self):
        candidate = MediaCandidate(url="https://x/a.jpg", download_url="https://x/a.jpg", type="image")
        assert candidate.secondary_url is None
        assert MediaCandidate(url="https://x/a.jpg", type="image").secondary_url is None

    def test_aspect_ratio(self, sample_candidate):
        assert sample_candidate.aspect_ratio == 0.5625
        assert MediaCandidate(url="u", type="image").aspect_ratio == 0.0


class TestVisualAsset:
    def test_missing_file_is_not_renderable(self, temp_dir):
        asset = VisualAsset("scene_1", AssetType.IMAGE, temp_dir / "nope.jpg", AssetOrigin.PROVIDER)
        assert not asset.is_renderable()

    def test_empty_file_is_not_renderable(self, temp_dir):
        path = temp_dir / "empty.jpg"
        path.touch()
        asset = VisualAsset("scene_1", AssetType.IMAGE, path, AssetOrigin.PROVIDER)
        assert not asset.is_renderable()

    def test_still_types(self):
        assert AssetType.IMAGE.is_still
        assert AssetType.PLACEHOLDER.is_still
        assert not AssetType.VIDEO.is_still


class TestRenderSettings:
    def test_platform_presets(self):
        shorts = RenderSettings.for_platform("youtube-shorts")
        assert shorts.resolution == "1080x1920"
        assert shorts.max_duration == 60

    def test_unknown_platform_uses_general(self):
        assert RenderSettings.for_platform("myspace").resolution == "720x1280"
        assert RenderSettings.for_platform(None).resolution == "720x1280"

    def test_output_args(self):
        args = RenderSettings().output_args()
        assert args[args.index("-c:v") + 1] == "libx264"
        assert args[args.index("-pix_fmt") + 1] == "yuv420p"


class TestRenderResult:
    def test_degraded_flags(self):
        assert not RenderResult(Path("a.mp4"), ArtifactKind.VIDEO).degraded
        assert RenderResult(Path("a.html"), ArtifactKind.SLIDESHOW).degraded
        assert not RenderResult(None, None).succeeded


def test_terminal_statuses():
    assert JobStatus.COMPLETED_WITH_ERRORS.is_terminal
    assert JobStatus.FAILED.is_terminal
    assert not JobStatus.PROCESSING.is_terminal
