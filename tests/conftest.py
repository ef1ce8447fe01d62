"""Shared pytest fixtures for reelforge tests."""

import sys
import tempfile
from pathlib import Path
from typing import Dict, Generator, Optional
from unittest.mock import AsyncMock, Mock

import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from reelforge.models.asset import MediaCandidate  # noqa: E402
from reelforge.models.script import ScriptDocument  # noqa: E402
from reelforge.utils.progress import JobTracker  # noqa: E402

# Smallest valid PNG: 1x1 transparent pixel
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06"
    b"\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\xff\xff?\x00\x05"
    b"\xfe\x02\xfe\xa7V\xbd\xfa\x00\x00\x00\x00IEND\xaeB`\x82"
)


def write_media(path: Path, content: bytes = PNG_BYTES) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


class FakeProvider:
    """In-memory media provider.

    results: candidates returned by every search
    search_error: raised by every search instead
    failing_urls: URLs whose download raises
    """

    def __init__(
        self,
        results: Optional[list] = None,
        search_error: Optional[Exception] = None,
        failing_urls: Optional[set] = None,
    ):
        self.results = results or []
        self.search_error = search_error
        self.failing_urls = failing_urls or set()
        self.searches: list[tuple] = []
        self.downloads: list[str] = []

    async def search(self, keywords: str, media_type: str, limit: int) -> list:
        self.searches.append((keywords, media_type, limit))
        if self.search_error:
            raise self.search_error
        return list(self.results[:limit])

    async def download(self, url: str, output_path: Path, media_type: str = "image") -> Path:
        self.downloads.append(url)
        if url in self.failing_urls:
            raise ConnectionError(f"cannot fetch {url}")
        suffix = ".mp4" if media_type == "video" else ".jpg"
        return write_media(Path(output_path).with_suffix(suffix))


class FakeSynthesizer:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: list[tuple] = []

    def render(self, text: str, width: int, height: int, output_path: Path) -> Path:
        self.calls.append((text, width, height))
        if self.error:
            raise self.error
        return write_media(Path(output_path))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_script_data() -> Dict:
    """Two-scene script used throughout the docs."""
    return {
        "title": "Welcome Reel",
        "duration": 10,
        "platform": "general",
        "scenes": [
            {
                "startTime": 0,
                "endTime": 5,
                "voiceover": "welcome to the show today",
                "visualDirection": "Sunrise over mountain lake",
            },
            {
                "startTime": 5,
                "endTime": 10,
                "voiceover": "thanks for watching",
                "visualDirection": "Crowd cheering in slow motion",
                "onScreenText": "SUBSCRIBE",
            },
        ],
    }


@pytest.fixture
def sample_script(sample_script_data) -> ScriptDocument:
    return ScriptDocument.from_dict(sample_script_data)


@pytest.fixture
def tracker() -> JobTracker:
    return JobTracker()


@pytest.fixture
def sample_candidate() -> MediaCandidate:
    return MediaCandidate(
        url="https://cdn.example.com/photo-small.jpg",
        download_url="https://cdn.example.com/photo-large.jpg",
        type="image",
        title="Mountain lake at sunrise",
        width=1080,
        height=1920,
        provider="pexels",
    )


@pytest.fixture
def fake_downloader():
    """AssetDownloader stand-in that writes a small file."""

    async def download(url, output_path, media_type="image", timeout_seconds=None, referer=None):
        return write_media(Path(output_path))

    downloader = Mock()
    downloader.download = AsyncMock(side_effect=download)
    return downloader


@pytest.fixture
def fake_encoder():
    """FFmpegEncoder stand-in that writes the output file and reports progress."""

    async def encode(graph, settings, output_path, on_event=None):
        if on_event:
            from reelforge.render.encoder import EncoderEvent, EncoderSignal

            on_event(EncoderEvent(EncoderSignal.START, message="start"))
            on_event(EncoderEvent(EncoderSignal.PROGRESS, percent=50.0))
            on_event(EncoderEvent(EncoderSignal.COMPLETE, percent=100.0))
        return write_media(Path(output_path), b"\x00" * 2048)

    encoder = Mock()
    encoder.encode = AsyncMock(side_effect=encode)
    encoder.probe_duration = AsyncMock(return_value=None)
    return encoder


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider


@pytest.fixture
def make_synthesizer():
    """Factory for FakeSynthesizer instances."""
    return FakeSynthesizer


@pytest.fixture
def sample_timeline(sample_script, temp_dir):
    """Timeline over the sample script: an image for scene_1, a clip for scene_2."""
    from reelforge.models.asset import AssetMetadata, AssetOrigin, AssetType, VisualAsset
    from reelforge.services.caption_timer import generate_captions
    from reelforge.services.script_analyzer import analyze_script
    from reelforge.services.timeline_assembler import assemble_timeline

    scenes = analyze_script(sample_script)
    assets = {
        "scene_1": VisualAsset(
            scene_id="scene_1",
            type=AssetType.IMAGE,
            path=write_media(temp_dir / "scratch" / "scene_1.png"),
            origin=AssetOrigin.PROVIDER,
            metadata=AssetMetadata(title="Lake", source="pexels"),
        ),
        "scene_2": VisualAsset(
            scene_id="scene_2",
            type=AssetType.VIDEO,
            path=write_media(temp_dir / "scratch" / "scene_2.mp4", b"\x00" * 512),
            origin=AssetOrigin.PROVIDER,
            metadata=AssetMetadata(title="Crowd", source="pixabay"),
        ),
    }
    return assemble_timeline(sample_script, scenes, assets, generate_captions(scenes))
