"""Posterizer: layered tracing of an image at several thresholds."""
import dataclasses
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional

import numpy as np

from posterizer.compositor import composite_layers
from posterizer.histogram import GreyHistogram
from posterizer.intensity import (
    EXTRA_STOP_MIN_STEPS,
    add_extra_color_stop,
    assign_intensities,
)
from posterizer.raster_ingest import GreyRaster, ImageSource, load_pixels, reduce_to_grey
from posterizer.svg_export import generate_svg, generate_symbol
from posterizer.thresholds import (
    resolve_color_stops,
    resolve_step_count,
    resolve_threshold,
)
from posterizer.tracer import ContourTracer, TraceRequest, Vectorizer
from posterizer.types import (
    ChannelMode,
    ColorStop,
    FillStrategy,
    ImageNotLoaded,
    InvalidConfig,
    Layer,
    LoadInProgress,
    PosterizedDocument,
    PosterizerConfig,
)

logger = logging.getLogger(__name__)

TracerFactory = Callable[[GreyRaster], Vectorizer]


class Posterizer:
    """
    Traces an image at several thresholds and stacks the results.

    Every layer is a fully opaque shape filled with a partially
    transparent color; painted back to front they reproduce the tonal
    structure of the image.
    """

    def __init__(
        self,
        config: Optional[PosterizerConfig] = None,
        tracer_factory: TracerFactory = ContourTracer,
        **params
    ):
        """
        Initialize posterizer.

        Args:
            config: Configuration (uses defaults if None)
            tracer_factory: Builds the vectorizer for a loaded raster
            **params: Configuration overrides, see PosterizerConfig
        """
        self.config = config or PosterizerConfig()
        self.tracer_factory = tracer_factory

        self._pixels: Optional[np.ndarray] = None
        self._channel: Optional[ChannelMode] = None
        self._raster: Optional[GreyRaster] = None
        self._histogram: Optional[GreyHistogram] = None
        self._tracer: Optional[Vectorizer] = None
        self._threshold: Optional[int] = None

        self._load_lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

        if params:
            self.set_parameters(**params)

    @property
    def is_loaded(self) -> bool:
        return self._raster is not None

    @property
    def raster(self) -> GreyRaster:
        if self._raster is None:
            raise ImageNotLoaded("No image loaded")
        return self._raster

    @property
    def histogram(self) -> GreyHistogram:
        if self._histogram is None:
            raise ImageNotLoaded("No image loaded")
        return self._histogram

    def _begin_load(self) -> None:
        if not self._load_lock.acquire(blocking=False):
            raise LoadInProgress("Another image is still loading")

    def _use_pixels(self, pixels: np.ndarray, channel: ChannelMode) -> None:
        raster = reduce_to_grey(pixels, channel)
        histogram = raster.histogram()
        tracer = self.tracer_factory(raster)

        self._pixels = pixels
        self._channel = channel
        self._raster = raster
        self._histogram = histogram
        self._tracer = tracer
        self._threshold = None

    def _finish_load(self, source: ImageSource) -> "Posterizer":
        try:
            self._use_pixels(load_pixels(source), self.config.channel)

            raster = self._raster
            logger.info(
                f"Loaded {raster.width}x{raster.height} image "
                f"({self._histogram.pixel_count} px, {self._channel.value})"
            )
            return self
        finally:
            self._load_lock.release()

    def load_image(self, source: ImageSource) -> "Posterizer":
        """
        Decode an image and make it the current raster.

        Args:
            source: Path, URL, bytes, PIL image, numpy array or GreyRaster

        Returns:
            self

        Raises:
            LoadInProgress: If another load has not finished
            ImageLoadError: If decoding fails; the previous image is kept
        """
        self._begin_load()
        return self._finish_load(source)

    def load_image_async(self, source: ImageSource) -> "Future[Posterizer]":
        """
        Decode an image on a worker thread.

        The in-flight check happens before submitting, so a concurrent
        second load fails right away instead of queueing.

        Returns:
            Future resolving to self, or to the decoding error
        """
        self._begin_load()
        try:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="posterizer-load"
                )
            return self._executor.submit(self._finish_load, source)
        except BaseException:
            self._load_lock.release()
            raise

    def close(self) -> None:
        """Shut down the background loader, if one was started."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "Posterizer":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def set_parameters(self, **params) -> None:
        """
        Merge parameters into the configuration.

        Raises:
            InvalidConfig: On unknown keys or bad values; configuration is
                left untouched
        """
        known = {f.name for f in dataclasses.fields(PosterizerConfig)}
        unknown = sorted(set(params) - known)
        if unknown:
            raise InvalidConfig(f"Unknown parameters: {', '.join(unknown)}")

        self.config = dataclasses.replace(self.config, **params)
        self._threshold = None

        # Grey levels depend on the channel, rebuild them from the kept pixels
        if self._pixels is not None and self.config.channel != self._channel:
            self._use_pixels(self._pixels, self.config.channel)

    def threshold(self) -> int:
        """Binary threshold, computed once per image and configuration."""
        if self._threshold is None:
            self._threshold = resolve_threshold(self.config, self.histogram)
            logger.debug(f"Resolved threshold: {self._threshold}")
        return self._threshold

    def color_stops(self) -> List[ColorStop]:
        """Color stops with intensities, least to most saturated."""
        config = self.config
        histogram = self.histogram
        threshold = self.threshold()

        values = resolve_color_stops(config, histogram, threshold)
        stops = assign_intensities(
            values,
            histogram if config.fill_strategy != FillStrategy.SPREAD else None,
            config.fill_strategy,
            config.black_on_white,
            threshold,
        )

        if resolve_step_count(config, threshold) >= EXTRA_STOP_MIN_STEPS:
            stops = add_extra_color_stop(stops, histogram, config.black_on_white)

        return stops

    def layers(self) -> List[Layer]:
        """Visible layers with traced paths, in painting order."""
        if self._tracer is None:
            raise ImageNotLoaded("No image loaded")

        black_on_white = self.config.black_on_white
        layers = []

        for layer in composite_layers(self.color_stops()):
            request = TraceRequest(threshold=layer.threshold, black_on_white=black_on_white)
            path_data = self._tracer.trace(request)
            layers.append(dataclasses.replace(layer, path_data=path_data))
            logger.debug(
                f"Layer threshold={layer.threshold} opacity={layer.opacity_string}"
            )

        return layers

    def render(self) -> PosterizedDocument:
        """
        Run the whole pipeline on the loaded image.

        Returns:
            PosterizedDocument with one entry per visible layer
        """
        raster = self.raster
        layers = self.layers()
        logger.info(f"Rendered {len(layers)} layers")

        return PosterizedDocument(
            width=raster.width,
            height=raster.height,
            layers=layers,
            background=self.config.background,
            fill_color=self.config.fill_color,
        )

    def get_svg(self) -> str:
        """Standalone SVG document."""
        return generate_svg(self.render())

    def get_symbol(self, symbol_id: str) -> str:
        """Reusable <symbol> fragment with viewBox only."""
        return generate_symbol(self.render(), symbol_id)
