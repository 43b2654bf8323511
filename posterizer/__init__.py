"""Posterizer package."""
from posterizer.histogram import GreyHistogram
from posterizer.pipeline import Posterizer
from posterizer.raster_ingest import GreyRaster, decode
from posterizer.tracer import ContourTracer, TraceRequest
from posterizer.types import (
    AUTO,
    TRANSPARENT,
    ChannelMode,
    ColorStop,
    FillStrategy,
    ImageLoadError,
    ImageNotLoaded,
    InvalidConfig,
    InvalidRange,
    Layer,
    LoadInProgress,
    PosterizedDocument,
    PosterizerConfig,
    PosterizerError,
    RangeDistribution,
    RangeStats,
    UnsupportedSource,
)

__version__ = "0.1.0"

__all__ = [
    "GreyHistogram",
    "Posterizer",
    "GreyRaster",
    "decode",
    "ContourTracer",
    "TraceRequest",
    "AUTO",
    "TRANSPARENT",
    "ChannelMode",
    "ColorStop",
    "FillStrategy",
    "ImageLoadError",
    "ImageNotLoaded",
    "InvalidConfig",
    "InvalidRange",
    "Layer",
    "LoadInProgress",
    "PosterizedDocument",
    "PosterizerConfig",
    "PosterizerError",
    "RangeDistribution",
    "RangeStats",
    "UnsupportedSource",
]
