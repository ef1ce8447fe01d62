# Shared utilities for reelforge
