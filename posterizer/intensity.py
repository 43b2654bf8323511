"""Representative intensity for each color stop."""
import logging
import math
from typing import List, Optional, Sequence, Tuple

from posterizer.histogram import MAX_LEVEL, GreyHistogram, round_level
from posterizer.thresholds import color_span, saturation_edge
from posterizer.types import ColorStop, FillStrategy

logger = logging.getLogger(__name__)

# Dominant color search skips this fraction of the range on its unsaturated side
DOMINANT_INSET = 0.1
DOMINANT_MAX_TOLERANCE = 5
# Lower bound on the spread factor, keeps narrow spans from collapsing
SPREAD_MIN_FACTOR = 0.5

# Extra stop refinement
EXTRA_STOP_MIN_STEPS = 10
EXTRA_STOP_RANGE = 25


def stop_range(stops: Sequence[float], index: int, black_on_white: bool,
               shared_edge: bool = False) -> Tuple[int, int]:
    """
    Grey levels owned by a stop, as an inclusive (start, end) pair.

    A stop owns the levels from its threshold up to (not including) the
    next more saturated stop, or up to the saturated edge for the last one.
    With ``shared_edge`` the next stop's own level is included, so
    neighbouring ranges meet on a common level.
    """
    threshold = stops[index]
    last = index + 1 == len(stops)
    step = 0 if shared_edge else 1

    if black_on_white:
        next_value = -step if last else stops[index + 1]
        return round_level(next_value + step), round_level(threshold)

    next_value = MAX_LEVEL + step if last else stops[index + 1]
    return round_level(threshold), round_level(next_value - step)


def _spread_color(start: int, end: int, index: int, count: int,
                  full_range: float, black_on_white: bool) -> float:
    factor = index / (count - 1) if count > 1 else 0.0
    size = end - start
    scale = max(SPREAD_MIN_FACTOR, full_range / MAX_LEVEL)
    if black_on_white:
        return start + size * scale * factor
    return end - size * scale * factor


def _dominant_color(histogram: GreyHistogram, start: int, end: int, black_on_white: bool) -> float:
    size = end - start
    padding = round_level(size * DOMINANT_INSET)
    tolerance = max(1, min(DOMINANT_MAX_TOLERANCE, size))
    if black_on_white:
        return histogram.get_dominant_color(start, end - padding, tolerance)
    return histogram.get_dominant_color(start + padding, end, tolerance)


def to_intensity(color: float, black_on_white: bool) -> float:
    """Map a grey level to foreground strength, 1 = fully saturated."""
    value = (MAX_LEVEL - color if black_on_white else color) / MAX_LEVEL
    return min(1.0, max(0.0, value))


def assign_intensities(
    stops: Sequence[float],
    histogram: Optional[GreyHistogram],
    fill_strategy: FillStrategy,
    black_on_white: bool,
    threshold: float
) -> List[ColorStop]:
    """
    Pair every stop with the intensity of the color it represents.

    Args:
        stops: Thresholds ordered least to most saturated
        histogram: Image histogram, unused by the spread strategy
        fill_strategy: How the color of each range is chosen
        black_on_white: Polarity
        threshold: Resolved binary threshold

    Returns:
        ColorStop list in the same order; ranges without pixels get
        intensity 0
    """
    full_range = color_span(threshold, black_on_white)
    result = []

    for index, value in enumerate(stops):
        start, end = stop_range(stops, index, black_on_white)

        if fill_strategy == FillStrategy.SPREAD:
            # Spread runs up to the neighbouring stop itself
            low, high = stop_range(stops, index, black_on_white, shared_edge=True)
            color = _spread_color(low, high, index, len(stops), full_range, black_on_white)
        else:
            stats = histogram.get_stats(start, end) if start <= end else None
            if stats is None or stats.is_empty:
                logger.debug(f"Stop {value} owns no pixels in [{start}, {end}]")
                result.append(ColorStop(value, 0.0))
                continue

            if fill_strategy == FillStrategy.DOMINANT:
                color = _dominant_color(histogram, start, end, black_on_white)
            elif fill_strategy == FillStrategy.MEAN:
                color = stats.mean
            else:
                color = stats.median

        if color == -1:
            result.append(ColorStop(value, 0.0))
            continue

        result.append(ColorStop(value, to_intensity(color, black_on_white)))

    return result


def add_extra_color_stop(
    stops: List[ColorStop],
    histogram: GreyHistogram,
    black_on_white: bool
) -> List[ColorStop]:
    """
    Split a wide most-saturated range to bring out shadows and line art.

    When the last stop owns more than EXTRA_STOP_RANGE levels and is not
    already fully saturated, a stop is added one standard deviation from
    the mean of that range, provided it falls within EXTRA_STOP_RANGE of
    the saturated edge (otherwise exactly EXTRA_STOP_RANGE from it).

    Returns:
        The same list, possibly with one more stop appended
    """
    if not stops:
        return stops

    last = stops[-1]
    edge = saturation_edge(black_on_white)
    range_start, range_end = (0, last.value) if black_on_white else (last.value, MAX_LEVEL)

    if range_end - range_start <= EXTRA_STOP_RANGE or last.intensity == 1:
        return stops

    levels = histogram.get_stats(range_start, range_end)
    if levels.is_empty:
        return stops

    # Work in distance from the saturated edge so both polarities match
    mean_distance = abs(edge - levels.mean)
    distance = EXTRA_STOP_RANGE
    for candidate in (mean_distance + levels.std_dev, mean_distance - levels.std_dev):
        if 0 <= candidate <= EXTRA_STOP_RANGE:
            distance = candidate
            break

    if black_on_white:
        new_value = distance
        inner = histogram.get_stats(0, distance)
    else:
        new_value = MAX_LEVEL - distance
        inner = histogram.get_stats(new_value, MAX_LEVEL)

    if inner.is_empty or math.isnan(inner.mean):
        return stops

    stops.append(ColorStop(new_value, to_intensity(inner.mean, black_on_white)))
    logger.debug(f"Added extra color stop at {new_value:.2f}")
    return stops
