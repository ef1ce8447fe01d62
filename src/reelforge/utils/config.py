"""Configuration loading and validation for reelforge."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def load_config() -> dict:
    """Load configuration from environment variables."""

    def resolve_path(path: str | None, default_relative: str) -> str:
        if not path:
            return str(PROJECT_ROOT / default_relative)
        if Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    config = {
        # Stock media provider keys (all optional)
        "pexels_api_key": os.getenv("PEXELS_API_KEY", ""),
        "pixabay_api_key": os.getenv("PIXABAY_API_KEY", ""),
        "unsplash_access_key": os.getenv("UNSPLASH_ACCESS_KEY", ""),
        # Where deliverables and per-job scratch directories live
        "output_dir": resolve_path(os.getenv("OUTPUT_DIR"), "output/videos"),
        "scratch_dir": resolve_path(os.getenv("SCRATCH_DIR"), "temp/video-gen"),
        # Asset resolution
        "max_concurrent_scenes": int(os.getenv("MAX_CONCURRENT_SCENES", "4")),
        "search_result_limit": int(os.getenv("SEARCH_RESULT_LIMIT", "5")),
        "search_timeout_seconds": float(os.getenv("SEARCH_TIMEOUT_SECONDS", "30")),
        "download_timeout_seconds": float(os.getenv("DOWNLOAD_TIMEOUT_SECONDS", "45")),
        "fallback_download_timeout_seconds": float(
            os.getenv("FALLBACK_DOWNLOAD_TIMEOUT_SECONDS", "15")
        ),
        # Per-provider request budgets (requests per minute)
        "unsplash_rate_limit": int(os.getenv("UNSPLASH_RATE_LIMIT", "50")),
        "pixabay_rate_limit": int(os.getenv("PIXABAY_RATE_LIMIT", "100")),
        "pexels_rate_limit": int(os.getenv("PEXELS_RATE_LIMIT", "200")),
        # Scratch cleanup grace delay after artifact handoff
        "cleanup_grace_seconds": float(os.getenv("CLEANUP_GRACE_SECONDS", "5")),
        # Encoding engine
        "ffmpeg_path": os.getenv("FFMPEG_PATH", "ffmpeg"),
        "ffprobe_path": os.getenv("FFPROBE_PATH", "ffprobe"),
        # Logging
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_json": _env_bool("LOG_JSON"),
    }

    return config


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return list of errors."""
    errors = []

    if config.get("max_concurrent_scenes", 0) < 1:
        errors.append("MAX_CONCURRENT_SCENES must be at least 1")

    if config.get("search_result_limit", 0) < 1:
        errors.append("SEARCH_RESULT_LIMIT must be at least 1")

    for key in ("search_timeout_seconds", "download_timeout_seconds"):
        if config.get(key, 0) <= 0:
            errors.append(f"{key.upper()} must be positive")

    if config.get("cleanup_grace_seconds", 0) < 0:
        errors.append("CLEANUP_GRACE_SECONDS cannot be negative")

    for key in ("output_dir", "scratch_dir"):
        folder = config.get(key)
        if not folder:
            errors.append(f"{key.upper()} is required")
            continue
        try:
            Path(folder).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Cannot create {key}: {e}")

    return errors
