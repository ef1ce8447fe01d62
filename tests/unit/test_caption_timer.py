"""Unit tests for caption timing."""

import pytest

from reelforge.models.caption import CaptionKind
from reelforge.models.script import Scene
from reelforge.services.caption_timer import generate_captions, time_scene_captions
from reelforge.services.script_analyzer import analyze_script


def make_scene(voiceover: str, start: float = 0.0, end: float = 5.0, overlay: str = "") -> Scene:
    return Scene(
        scene_id="scene_1",
        start_time=start,
        end_time=end,
        voiceover=voiceover,
        on_screen_text=overlay,
    )


class TestTimeSceneCaptions:
    def test_short_narration_emits_one_segment(self):
        captions = time_scene_captions(make_scene("welcome to the show today"))

        assert len(captions) == 1
        assert captions[0].kind == CaptionKind.SPOKEN
        assert captions[0].text == "welcome to the show today"
        assert captions[0].start_time == 0.0
        assert captions[0].end_time == pytest.approx(5.0)

    def test_groups_words_in_sixes(self):
        words = " ".join(f"w{i}" for i in range(13))
        captions = time_scene_captions(make_scene(words, 10.0, 23.0))

        assert [len(c.text.split()) for c in captions] == [6, 6, 1]
        assert captions[0].start_time == 10.0
        assert captions[0].end_time == pytest.approx(16.0)
        assert captions[1].start_time == captions[0].end_time
        assert captions[2].start_time == captions[1].end_time

    def test_segments_never_exceed_scene(self):
        words = " ".join(["word"] * 17)
        scene = make_scene(words, 2.0, 9.0)
        captions = time_scene_captions(scene)

        assert all(c.end_time <= scene.end_time for c in captions)
        assert sum(c.duration for c in captions) <= scene.duration + 1e-9
        assert captions[-1].end_time == min(captions[-1].end_time, scene.end_time)

    def test_empty_narration_emits_no_spoken_segments(self):
        assert time_scene_captions(make_scene("")) == []
        assert time_scene_captions(make_scene("   ")) == []

    def test_overlay_spans_whole_scene(self):
        captions = time_scene_captions(make_scene("", 5.0, 10.0, overlay="SUBSCRIBE"))

        assert len(captions) == 1
        assert captions[0].kind == CaptionKind.OVERLAY
        assert (captions[0].start_time, captions[0].end_time) == (5.0, 10.0)


class TestGenerateCaptions:
    def test_two_scene_example(self, sample_script):
        captions = generate_captions(analyze_script(sample_script))

        scene_a = [c for c in captions if c.scene_id == "scene_1"]
        scene_b = [c for c in captions if c.scene_id == "scene_2"]

        assert len(scene_a) == 1
        assert scene_a[0].text == "welcome to the show today"
        assert scene_a[0].start_time == 0.0
        assert scene_a[0].end_time == pytest.approx(5.0)

        spoken_b = [c for c in scene_b if c.kind == CaptionKind.SPOKEN]
        overlay_b = [c for c in scene_b if c.kind == CaptionKind.OVERLAY]
        assert [c.text for c in spoken_b] == ["thanks for watching"]
        assert [c.text for c in overlay_b] == ["SUBSCRIBE"]
        assert (overlay_b[0].start_time, overlay_b[0].end_time) == (5.0, 10.0)
