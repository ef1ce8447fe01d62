"""Unit tests for script analysis: defaults, keywords and media-type hints."""

from reelforge.models.script import RawScene, ScriptDocument
from reelforge.services.script_analyzer import (
    DEFAULT_SCENE_WINDOW,
    analyze_scene,
    analyze_script,
    determine_media_type,
    extract_keywords,
)


class TestExtractKeywords:
    def test_lowercases_and_strips_punctuation(self):
        assert extract_keywords("Sunrise, over the MOUNTAIN lake!") == ("sunrise", "mountain", "lake")

    def test_drops_stop_words_and_short_tokens(self):
        keywords = extract_keywords("Show a close up of the city at night")
        assert "show" not in keywords
        assert "the" not in keywords
        assert "a" not in keywords
        assert "up" not in keywords
        assert "of" not in keywords
        assert keywords == ("close", "city", "night")

    def test_limits_to_five_keywords(self):
        keywords = extract_keywords("alpha bravo charlie delta echo foxtrot golf")
        assert keywords == ("alpha", "bravo", "charlie", "delta", "echo")

    def test_non_string_input_returns_empty(self):
        assert extract_keywords(None) == ()
        assert extract_keywords(42) == ()
        assert extract_keywords("   ") == ()


class TestDetermineMediaType:
    def test_motion_keyword_requests_video(self):
        assert determine_media_type("Time-lapse of clouds") == "video"
        assert determine_media_type("Cars MOVING through traffic") == "video"

    def test_static_direction_requests_image(self):
        assert determine_media_type("Portrait of a chef") == "image"

    def test_missing_or_non_string_defaults_to_image(self):
        assert determine_media_type(None) == "image"
        assert determine_media_type("") == "image"
        assert determine_media_type(["motion"]) == "image"


class TestAnalyzeScene:
    def test_missing_times_use_defaults(self):
        scene = analyze_scene(RawScene(voiceover="hello there"), 0)
        assert scene.scene_id == "scene_1"
        assert scene.start_time == 0.0
        assert scene.end_time == DEFAULT_SCENE_WINDOW
        assert scene.duration == 5.0

    def test_missing_end_time_is_start_plus_window(self):
        scene = analyze_scene(RawScene(start_time=12), 2)
        assert scene.scene_id == "scene_3"
        assert scene.start_time == 12.0
        assert scene.end_time == 17.0

    def test_end_before_start_gets_default_window(self):
        scene = analyze_scene(RawScene(start_time=8, end_time=3), 0)
        assert scene.end_time == 13.0
        assert scene.duration > 0

    def test_keywords_fall_back_to_voiceover(self):
        scene = analyze_scene(RawScene(voiceover="Fresh pasta recipes", visual_direction=None), 0)
        assert scene.search_keywords == ("fresh", "pasta", "recipes")
        assert scene.media_type == "image"

    def test_visual_direction_drives_keywords(self):
        scene = analyze_scene(
            RawScene(voiceover="ignored words here", visual_direction="Drone motion over forest"),
            0,
        )
        assert scene.search_keywords == ("drone", "motion", "forest")
        assert scene.media_type == "video"

    def test_non_string_visual_direction_does_not_raise(self):
        scene = analyze_scene(RawScene(visual_direction={"shot": "wide"}, voiceover="ocean waves"), 0)
        assert scene.visual_direction == ""
        assert scene.media_type == "image"
        assert scene.search_keywords == ("ocean", "waves")


class TestAnalyzeScript:
    def test_preserves_scene_order(self, sample_script):
        scenes = analyze_script(sample_script)
        assert [s.scene_id for s in scenes] == ["scene_1", "scene_2"]
        assert scenes[1].on_screen_text == "SUBSCRIBE"
        assert scenes[1].media_type == "video"

    def test_empty_script_yields_no_scenes(self):
        assert analyze_script(ScriptDocument()) == []

    def test_accepts_snake_case_fields(self):
        script = ScriptDocument.from_dict(
            {"scenes": [{"start_time": 1, "end_time": 4, "visual_direction": "Busy market"}]}
        )
        scene = analyze_script(script)[0]
        assert (scene.start_time, scene.end_time) == (1.0, 4.0)
        assert scene.search_keywords == ("busy", "market")
