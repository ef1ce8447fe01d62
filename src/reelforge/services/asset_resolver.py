"""Asset resolution cascade: one visual per scene.

Each scene is tried against an ordered list of tiers:

    1. provider        - search the media provider, download the first candidate
    2. placeholder     - render the scene text over a gradient
    3. fallback-stock  - download one generic stock image

A tier either returns a VisualAsset or raises. Failures are recorded as job
warnings; a scene only becomes a job error when every tier failed.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional, Protocol

from reelforge.models.asset import AssetMetadata, AssetOrigin, AssetType, VisualAsset
from reelforge.models.render import RenderSettings
from reelforge.models.script import Scene
from reelforge.services.downloader import AssetDownloader
from reelforge.services.media_sources.base import MediaProvider
from reelforge.utils.logging import set_scene_context
from reelforge.utils.progress import JobTracker

logger = logging.getLogger(__name__)

FALLBACK_STOCK_URL = (
    "https://images.unsplash.com/photo-1557804506-669a67965ba0"
    "?w=720&h=1280&fit=crop&auto=format"
)
FALLBACK_TIMEOUT_SECONDS = 15.0
DEFAULT_RESULT_LIMIT = 5

ResolutionTier = Callable[[Scene, Path, list[str]], Awaitable[VisualAsset]]


class AssetResolutionError(Exception):
    """Raised when a tier, or the whole cascade, cannot produce an asset."""


class Synthesizer(Protocol):
    def render(self, text: str, width: int, height: int, output_path: Path) -> Path:
        ...


def _verified_size(path: Path) -> int:
    """Size of a downloaded file; raises if it is missing or empty."""
    path = Path(path)
    if not path.is_file():
        raise AssetResolutionError(f"File was not written: {path}")
    size = path.stat().st_size
    if size == 0:
        raise AssetResolutionError(f"File is empty: {path}")
    return size


class AssetResolver:
    """Resolves scenes to local visual assets, in parallel up to max_concurrent."""

    def __init__(
        self,
        provider: MediaProvider,
        synthesizer: Synthesizer,
        downloader: AssetDownloader,
        tracker: JobTracker,
        settings: Optional[RenderSettings] = None,
        max_concurrent: int = 4,
        result_limit: int = DEFAULT_RESULT_LIMIT,
        fallback_url: str = FALLBACK_STOCK_URL,
        fallback_timeout: float = FALLBACK_TIMEOUT_SECONDS,
    ):
        self.provider = provider
        self.synthesizer = synthesizer
        self.downloader = downloader
        self.tracker = tracker
        self.settings = settings or RenderSettings()
        self.max_concurrent = max(1, max_concurrent)
        self.result_limit = result_limit
        self.fallback_url = fallback_url
        self.fallback_timeout = fallback_timeout

    @property
    def tiers(self) -> list[tuple[str, ResolutionTier]]:
        """Resolution tiers in the order they are attempted."""
        return [
            ("provider", self._from_provider),
            ("placeholder", self._from_placeholder),
            ("fallback-stock", self._from_fallback_stock),
        ]

    async def resolve_all(
        self, job_id: str, scenes: Iterable[Scene], scratch_dir: Path
    ) -> dict[str, VisualAsset]:
        """Resolve every scene; the result is keyed by scene_id.

        Scenes whose every tier failed are missing from the result and were
        recorded as job errors.
        """
        scenes = list(scenes)
        total = len(scenes)
        if total == 0:
            return {}

        semaphore = asyncio.Semaphore(self.max_concurrent)
        done = 0
        progress_lock = asyncio.Lock()

        async def resolve_one(scene: Scene) -> Optional[VisualAsset]:
            nonlocal done
            set_scene_context(scene.scene_id)
            async with semaphore:
                try:
                    asset = await self.resolve_scene(job_id, scene, scratch_dir)
                except AssetResolutionError as e:
                    self.tracker.add_error(job_id, str(e), scene_id=scene.scene_id)
                    asset = None
            async with progress_lock:
                done += 1
                self.tracker.update_stage_progress(
                    job_id, done / total, f"Resolved {done}/{total} scenes"
                )
            return asset

        results = await asyncio.gather(*(resolve_one(scene) for scene in scenes))

        assets = {scene.scene_id: asset for scene, asset in zip(scenes, results) if asset is not None}
        logger.info(f"Resolved {len(assets)}/{total} scenes")
        return assets

    async def resolve_scene(self, job_id: str, scene: Scene, scratch_dir: Path) -> VisualAsset:
        """Walk the tiers until one produces an asset.

        Raises:
            AssetResolutionError: If every tier failed
        """
        failures: list[str] = []
        for tier_name, tier in self.tiers:
            try:
                asset = await tier(scene, Path(scratch_dir), failures)
            except Exception as e:
                reason = str(e) or e.__class__.__name__
                failures.append(f"{tier_name}: {reason}")
                self.tracker.add_warning(
                    job_id,
                    f"{tier_name} failed for {scene.scene_id}: {reason}",
                    scene_id=scene.scene_id,
                    tier=tier_name,
                )
                continue

            logger.debug(f"{scene.scene_id} resolved by {tier_name} -> {asset.path.name}")
            return asset

        raise AssetResolutionError(
            f"All resolution tiers failed for {scene.scene_id} ({'; '.join(failures)})"
        )

    async def _from_provider(self, scene: Scene, scratch_dir: Path, failures: list[str]) -> VisualAsset:
        if not scene.search_keywords:
            raise AssetResolutionError("No search keywords")

        candidates = await self.provider.search(scene.search_query, scene.media_type, self.result_limit)
        if not candidates:
            raise AssetResolutionError(f"No results for '{scene.search_query}'")

        candidate = candidates[0]
        media_type = "video" if candidate.type == "video" else "image"
        target = scratch_dir / scene.scene_id

        try:
            path = await self.provider.download(candidate.primary_url, target, media_type)
            size = _verified_size(path)
        except Exception as e:
            if not candidate.secondary_url:
                raise
            logger.debug(f"Primary download failed for {scene.scene_id} ({e}), trying secondary URL")
            path = await self.provider.download(candidate.secondary_url, target, media_type)
            size = _verified_size(path)

        return VisualAsset(
            scene_id=scene.scene_id,
            type=AssetType(media_type),
            path=Path(path),
            origin=AssetOrigin.PROVIDER,
            metadata=AssetMetadata(
                title=candidate.title or scene.search_query,
                source=candidate.provider or "provider",
                width=candidate.width,
                height=candidate.height,
                file_size=size,
                original_url=candidate.primary_url,
            ),
        )

    async def _from_placeholder(self, scene: Scene, scratch_dir: Path, failures: list[str]) -> VisualAsset:
        width, height = self.settings.width, self.settings.height
        render = asyncio.ensure_future(
            asyncio.to_thread(
                self.synthesizer.render,
                scene.display_text,
                width,
                height,
                scratch_dir / f"{scene.scene_id}_placeholder.png",
            )
        )
        try:
            path = await asyncio.shield(render)
        except asyncio.CancelledError:
            # The worker thread cannot be interrupted; let it finish writing
            # before the caller removes the scratch directory
            await asyncio.wait([render])
            raise
        size = _verified_size(path)
        return VisualAsset(
            scene_id=scene.scene_id,
            type=AssetType.PLACEHOLDER,
            path=Path(path),
            origin=AssetOrigin.SYNTHETIC,
            metadata=AssetMetadata(
                title=f"Placeholder for {scene.scene_id}",
                source="placeholder",
                width=width,
                height=height,
                file_size=size,
                fallback_reason="; ".join(failures) or None,
            ),
        )

    async def _from_fallback_stock(self, scene: Scene, scratch_dir: Path, failures: list[str]) -> VisualAsset:
        path = await self.downloader.download(
            self.fallback_url,
            scratch_dir / f"{scene.scene_id}_fallback.jpg",
            media_type="image",
            timeout_seconds=self.fallback_timeout,
        )
        size = _verified_size(path)
        return VisualAsset(
            scene_id=scene.scene_id,
            type=AssetType.IMAGE,
            path=Path(path),
            origin=AssetOrigin.FALLBACK_STOCK,
            metadata=AssetMetadata(
                title=f"Fallback image for {scene.scene_id}",
                source="unsplash-fallback",
                width=self.settings.width,
                height=self.settings.height,
                file_size=size,
                original_url=self.fallback_url,
                fallback_reason="; ".join(failures) or None,
            ),
        )
