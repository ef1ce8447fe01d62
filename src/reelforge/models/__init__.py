# Data models for reelforge
from .script import RawScene, Scene, ScriptDocument
from .asset import AssetMetadata, AssetOrigin, AssetType, MediaCandidate, VisualAsset
from .caption import CaptionKind, CaptionSegment
from .timeline import Timeline, TimelineScene, Transition
from .job import JobEvent, JobIssue, JobStatus, ProcessingJob, Stage
from .render import PLATFORM_PRESETS, ArtifactKind, RenderResult, RenderSettings

__all__ = [
    "RawScene",
    "Scene",
    "ScriptDocument",
    "AssetMetadata",
    "AssetOrigin",
    "AssetType",
    "MediaCandidate",
    "VisualAsset",
    "CaptionKind",
    "CaptionSegment",
    "Timeline",
    "TimelineScene",
    "Transition",
    "JobEvent",
    "JobIssue",
    "JobStatus",
    "ProcessingJob",
    "Stage",
    "PLATFORM_PRESETS",
    "ArtifactKind",
    "RenderResult",
    "RenderSettings",
]
