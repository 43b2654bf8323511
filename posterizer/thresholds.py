"""Threshold planning: binary threshold, step count and color stops."""
import logging
from typing import List, Optional

from posterizer.histogram import MAX_LEVEL, GreyHistogram
from posterizer.types import AUTO, PosterizerConfig, RangeDistribution

logger = logging.getLogger(__name__)

# Step count used when both threshold and steps are automatic
DEFAULT_AUTO_STEPS = 4
# Spans wider than this get 4 automatic steps instead of 3
WIDE_SPAN = 200


def saturation_edge(black_on_white: bool) -> int:
    """Grey level of the most saturated foreground color."""
    return 0 if black_on_white else MAX_LEVEL


def color_span(threshold: float, black_on_white: bool) -> float:
    """Number of levels between the threshold and the saturated edge."""
    return abs(threshold - saturation_edge(black_on_white))


def resolve_threshold(config: PosterizerConfig, histogram: GreyHistogram) -> int:
    """Explicit threshold, or Otsu's threshold over the whole histogram."""
    if config.threshold == AUTO:
        return histogram.auto_threshold()
    return config.threshold


def _filter_explicit_steps(steps: List[int]) -> List[int]:
    unique = []
    for value in steps:
        if 0 < value < MAX_LEVEL and value not in unique:
            unique.append(value)
    return unique


def resolve_step_count(config: PosterizerConfig, threshold: float) -> int:
    """
    Number of color stops to generate.

    Args:
        config: Configuration snapshot
        threshold: Resolved binary threshold

    Returns:
        Step count (at least 1)
    """
    explicit = config.explicit_steps
    if explicit is not None:
        return len(_filter_explicit_steps(explicit))

    span = int(color_span(threshold, config.black_on_white))

    if config.threshold == AUTO and config.steps == AUTO:
        steps = DEFAULT_AUTO_STEPS
    elif config.steps == AUTO:
        steps = 4 if span > WIDE_SPAN else 3
    else:
        steps = max(2, config.steps)

    # A threshold on the saturated edge leaves room for the threshold alone
    return max(1, min(span, steps))


def _explicit_color_stops(steps: List[int], threshold: float, black_on_white: bool) -> List[float]:
    stops = _filter_explicit_steps(steps)
    if not stops:
        return [threshold]

    # Least saturated first: descending for dark-on-light
    stops.sort(reverse=black_on_white)

    if threshold not in stops:
        first = stops[0]
        if (black_on_white and threshold > first) or (not black_on_white and threshold < first):
            stops.insert(0, threshold)

    return stops


def _equal_color_stops(step_count: int, threshold: float, black_on_white: bool) -> List[float]:
    span = color_span(threshold, black_on_white)
    step_size = span / step_count
    stops = []

    for i in reversed(range(step_count)):
        # The outermost stop is the threshold itself, free of rounding error
        distance = span if i == step_count - 1 else min(span, (i + 1) * step_size)
        stops.append(distance if black_on_white else MAX_LEVEL - distance)

    return stops


def _auto_color_stops(
    histogram: GreyHistogram,
    step_count: int,
    threshold: int,
    black_on_white: bool
) -> List[float]:
    if black_on_white:
        stops = histogram.multilevel_thresholding(step_count - 1, 0, threshold)
        stops.append(threshold)
        stops.reverse()
    else:
        stops = histogram.multilevel_thresholding(step_count - 1, threshold, MAX_LEVEL)
        stops.insert(0, threshold)

    # Degenerate ranges can echo the threshold back
    unique = []
    for value in stops:
        if value not in unique:
            unique.append(value)
    return unique


def resolve_color_stops(
    config: PosterizerConfig,
    histogram: Optional[GreyHistogram],
    threshold: int
) -> List[float]:
    """
    Grey-level boundaries of each layer, least to most saturated.

    Args:
        config: Configuration snapshot
        histogram: Image histogram (only needed for automatic distribution)
        threshold: Resolved binary threshold

    Returns:
        Strictly monotonic list of thresholds; descending for dark-on-light,
        ascending for light-on-dark
    """
    black_on_white = config.black_on_white
    explicit = config.explicit_steps

    if explicit is not None:
        stops = _explicit_color_stops(explicit, threshold, black_on_white)
    else:
        step_count = resolve_step_count(config, threshold)
        if config.range_distribution == RangeDistribution.EQUAL:
            stops = _equal_color_stops(step_count, threshold, black_on_white)
        else:
            if histogram is None:
                raise ValueError("Automatic range distribution needs a histogram")
            stops = _auto_color_stops(histogram, step_count, threshold, black_on_white)

    logger.debug(f"Resolved color stops: {stops}")
    return stops
