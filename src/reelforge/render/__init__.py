"""Rendering: filter graphs, FFmpeg driver and the fallback ladder."""

from reelforge.render.encoder import EncoderError, EncoderEvent, EncoderSignal, FFmpegEncoder
from reelforge.render.filter_graph import FilterGraph, FilterGraphError, build_filter_graph
from reelforge.render.pipeline import RenderPipeline
from reelforge.render.slideshow import SlideshowError, write_data_dump, write_slideshow

__all__ = [
    "EncoderError",
    "EncoderEvent",
    "EncoderSignal",
    "FFmpegEncoder",
    "FilterGraph",
    "FilterGraphError",
    "build_filter_graph",
    "RenderPipeline",
    "SlideshowError",
    "write_data_dump",
    "write_slideshow",
]
