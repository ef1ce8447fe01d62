"""Unit tests for AssetDownloader helpers and error mapping."""

from unittest.mock import AsyncMock, patch

import pytest

from reelforge.services.downloader import AssetDownloader, DownloadError, guess_extension
from reelforge.utils.retry import NetworkError, TemporaryServiceError


class TestGuessExtension:
    def test_content_type_wins(self):
        assert guess_extension("image/png; charset=binary", "https://x/a.jpg") == ".png"
        assert guess_extension("video/mp4", "https://x/clip", "video") == ".mp4"

    def test_falls_back_to_url_suffix(self):
        assert guess_extension("application/octet-stream", "https://x/photo.JPEG?w=720") == ".jpg"
        assert guess_extension("", "https://x/clip.webm") == ".webm"

    def test_falls_back_to_media_type(self):
        assert guess_extension("", "https://x/asset", "video") == ".mp4"
        assert guess_extension("", "https://x/asset") == ".jpg"


class TestAssetDownloader:
    @pytest.mark.asyncio
    async def test_empty_url_rejected(self, temp_dir):
        with pytest.raises(DownloadError):
            await AssetDownloader().download("", temp_dir / "scene_1")

    @pytest.mark.asyncio
    async def test_network_errors_become_download_errors(self, temp_dir):
        downloader = AssetDownloader()
        with patch.object(
            downloader, "_download_with_retry", new=AsyncMock(side_effect=NetworkError("reset"))
        ):
            with pytest.raises(DownloadError, match="reset"):
                await downloader.download("https://x/a.jpg", temp_dir / "scene_1")

    @pytest.mark.asyncio
    async def test_temporary_errors_become_download_errors(self, temp_dir):
        downloader = AssetDownloader()
        with patch.object(
            downloader, "_download_with_retry", new=AsyncMock(side_effect=TemporaryServiceError("429"))
        ):
            with pytest.raises(DownloadError):
                await downloader.download("https://x/a.jpg", temp_dir / "scene_1")

    @pytest.mark.asyncio
    async def test_uses_per_call_timeout(self, temp_dir):
        downloader = AssetDownloader(timeout_seconds=45)
        target = temp_dir / "scene_1.jpg"
        inner = AsyncMock(return_value=target)
        with patch.object(downloader, "_download_with_retry", new=inner):
            path = await downloader.download("https://x/a.jpg", target, timeout_seconds=15)

        assert path == target
        assert inner.call_args.args[3] == 15
