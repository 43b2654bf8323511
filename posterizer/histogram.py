"""Grey-level histogram with range statistics and Otsu thresholding."""
import logging
import math
from typing import Dict, List, Optional, Tuple

import numpy as np

from posterizer.raster_ingest import GreyRaster
from posterizer.types import InvalidRange, RangeStats, UnsupportedSource

logger = logging.getLogger(__name__)

LEVELS = 256
MAX_LEVEL = LEVELS - 1

# Threshold counts above this get a warning, results rarely improve past it
MULTILEVEL_ADVISORY_AMOUNT = 4


def round_level(value: float) -> int:
    """Round half up, so 0.5 -> 1 and 2.5 -> 3."""
    return int(math.floor(value + 0.5))


class GreyHistogram:
    """
    256-bucket histogram of grey levels.

    The counts are immutable after construction; every derived table
    (sorted levels, range stats, pair lookup) is computed on first use
    and kept for the lifetime of the instance.
    """

    def __init__(self, bins):
        bins = np.asarray(bins)
        if bins.shape != (LEVELS,):
            raise ValueError(f"Expected {LEVELS} bins, got shape {bins.shape}")
        if np.any(bins < 0):
            raise ValueError("Bin counts must be non-negative")

        self._bins = bins.astype(np.int64)
        self._bins.setflags(write=False)
        self.pixel_count = int(self._bins.sum())

        self._sorted_levels: Optional[np.ndarray] = None
        self._stats_cache: Dict[Tuple[int, int], RangeStats] = {}
        self._pair_lookup: Optional[np.ndarray] = None

    @classmethod
    def build(cls, source) -> "GreyHistogram":
        """
        Count grey levels of a raster in a single pass.

        Args:
            source: GreyRaster or 2-D integer array with values 0..255

        Returns:
            GreyHistogram

        Raises:
            UnsupportedSource: If the source is not 8-bit grey data
        """
        if isinstance(source, GreyRaster):
            data = source.data
        elif isinstance(source, np.ndarray):
            data = source
        else:
            raise UnsupportedSource(
                f"Cannot build histogram from {type(source).__name__}"
            )

        if data.ndim != 2:
            raise UnsupportedSource(f"Expected 2D grey array, got {data.ndim}D")
        if not np.issubdtype(data.dtype, np.integer):
            raise UnsupportedSource(f"Expected integer grey values, got {data.dtype}")
        if data.size and (data.min() < 0 or data.max() > MAX_LEVEL):
            raise UnsupportedSource("Grey values must lie in 0..255")

        bins = np.bincount(data.ravel().astype(np.intp), minlength=LEVELS)
        return cls(bins)

    @property
    def bins(self) -> np.ndarray:
        """Read-only view of the counts, index = grey level."""
        return self._bins

    @property
    def sorted_levels(self) -> np.ndarray:
        """Levels ordered by ascending count, ties by level value."""
        if self._sorted_levels is None:
            self._sorted_levels = np.argsort(self._bins, kind="stable")
        return self._sorted_levels

    def _validate_range(self, start: float, end: float) -> Tuple[int, int]:
        start = round_level(start)
        end = round_level(end)
        if not (0 <= start <= MAX_LEVEL and 0 <= end <= MAX_LEVEL) or start > end:
            raise InvalidRange(
                f"Bad range [{start}, {end}]: both bounds must be in 0..255 "
                "and the first cannot be larger than the second"
            )
        return start, end

    def get_stats(self, start: float = 0, end: float = MAX_LEVEL) -> RangeStats:
        """
        Statistics for levels in [start, end].

        Args:
            start: First level of the range (rounded)
            end: Last level of the range (rounded)

        Returns:
            RangeStats, cached per range

        Raises:
            InvalidRange: If bounds are outside 0..255 or inverted
        """
        start, end = self._validate_range(start, end)
        key = (start, end)
        cached = self._stats_cache.get(key)
        if cached is not None:
            return cached

        counts = self._bins[start:end + 1]
        levels = np.arange(start, end + 1)
        pixels = int(counts.sum())
        occupied = counts[counts > 0]

        if pixels == 0:
            stats = RangeStats(
                pixel_count=0,
                mean=math.nan,
                median=math.nan,
                std_dev=math.nan,
                unique_levels=0,
                mean_pixels_per_level=0.0,
                median_pixels_per_level=0.0,
                peak_pixels_per_level=0,
            )
        else:
            mean = float((counts * levels).sum()) / pixels

            # Walk levels in natural order until half the pixels are covered
            cumulative = np.cumsum(counts)
            median_index = int(np.argmax(cumulative >= max(1, pixels // 2)))

            variance = float((counts * (levels - mean) ** 2).sum()) / pixels

            stats = RangeStats(
                pixel_count=pixels,
                mean=mean,
                median=float(start + median_index),
                std_dev=math.sqrt(variance),
                unique_levels=int(occupied.size),
                mean_pixels_per_level=pixels / occupied.size,
                median_pixels_per_level=float(np.median(occupied)),
                peak_pixels_per_level=int(occupied.max()),
            )

        self._stats_cache[key] = stats
        return stats

    def get_dominant_color(self, min_level: float, max_level: float, tolerance: int = 1) -> int:
        """
        Level with the most pixels around it.

        Each candidate is scored by the pixel count of a window of
        ``tolerance`` levels starting ``tolerance // 2`` below it.

        Args:
            min_level: Range start (rounded, swapped with max_level if larger)
            max_level: Range end
            tolerance: Window width in levels

        Returns:
            Dominant level, or -1 if the range holds no pixels
        """
        min_level = round_level(min_level)
        max_level = round_level(max_level)
        tolerance = int(tolerance) or 1

        if min_level == max_level:
            return min_level

        if min_level > max_level:
            min_level, max_level = max_level, min_level

        min_level = max(0, min_level)
        max_level = min(MAX_LEVEL, max_level)

        # Window offsets truncate toward zero: tolerance 5 -> -2..4
        first_offset = int(tolerance / -2)
        padded = np.concatenate([[0], np.cumsum(self._bins)])

        candidates = np.arange(min_level, max_level + 1)
        lows = np.clip(candidates + first_offset, 0, LEVELS)
        highs = np.clip(candidates + tolerance, 0, LEVELS)
        window_sums = padded[highs] - padded[lows]

        best = int(np.argmax(window_sums))
        if window_sums[best] == 0:
            return -1
        return int(candidates[best])

    def auto_threshold(self, start: int = 0, end: int = MAX_LEVEL) -> int:
        """
        Binary threshold for [start, end] using Otsu's method.

        A split at level ``t`` puts [start, t-1] in the background class
        and [t, end] in the foreground class. The first split with the
        greatest between-class variance wins.

        Returns:
            Threshold level; the only occupied level when the range holds a
            single level, ``start`` when the range is empty
        """
        start, end = self._validate_range(start, end)
        degenerate = self._degenerate_level(start, end)
        if degenerate is not None:
            return degenerate

        counts = self._bins[start:end + 1].astype(np.float64)
        levels = np.arange(start, end + 1, dtype=np.float64)
        total = counts.sum()
        total_sum = (counts * levels).sum()

        # Background for split t = levels start..t-1
        w_b = np.cumsum(counts)[:-1]
        sum_b = np.cumsum(counts * levels)[:-1]
        w_f = total - w_b

        with np.errstate(divide="ignore", invalid="ignore"):
            m_b = sum_b / w_b
            m_f = (total_sum - sum_b) / w_f
            between = w_b * w_f * (m_b - m_f) ** 2
        between = np.where((w_b > 0) & (w_f > 0), between, 0.0)

        return start + 1 + int(np.argmax(between))

    def _degenerate_level(self, start: int, end: int) -> Optional[int]:
        """Threshold for ranges that cannot be split, None otherwise."""
        occupied = np.flatnonzero(self._bins[start:end + 1])
        if occupied.size == 0:
            return start
        if occupied.size == 1:
            return start + int(occupied[0])
        return None

    def _get_pair_lookup(self) -> np.ndarray:
        """
        Table H where H[i, j] scores levels i..j treated as one class.

        With P the fraction of pixels in i..j and S their first moment,
        H = S^2 / P (0 for empty classes). Summing H over a partition
        differs from the between-class variance only by a constant, so
        maximizing one maximizes the other.
        """
        if self._pair_lookup is not None:
            return self._pair_lookup

        total = max(self.pixel_count, 1)
        p = self._bins / total
        cum_p = np.concatenate([[0.0], np.cumsum(p)])
        cum_s = np.concatenate([[0.0], np.cumsum(p * np.arange(LEVELS))])

        # P[i, j] = cum[j + 1] - cum[i]
        prob = cum_p[None, 1:] - cum_p[:-1, None]
        moment = cum_s[None, 1:] - cum_s[:-1, None]

        with np.errstate(divide="ignore", invalid="ignore"):
            table = np.where(prob > 0, moment * moment / prob, 0.0)
        table[np.tril_indices(LEVELS, k=-1)] = 0.0

        self._pair_lookup = table
        logger.debug("Built multilevel threshold lookup table")
        return table

    def multilevel_thresholding(self, amount: int, start: int = 0, end: int = MAX_LEVEL) -> List[int]:
        """
        Optimal set of thresholds splitting [start, end] into amount+1 classes.

        Thresholds t1 < ... < tk lie in (start, end] and each is the first
        level of its class: [start, t1-1], [t1, t2-1], ..., [tk, end].
        The partition maximizes the summed pair lookup score; among equal
        partitions the lexicographically smallest is returned, which is the
        first one an ascending enumeration would meet.

        Args:
            amount: Number of thresholds wanted
            start: First level of the range
            end: Last level of the range

        Returns:
            Ascending list of thresholds (empty when amount < 1)

        Raises:
            InvalidRange: If bounds are outside 0..255 or inverted
        """
        start, end = self._validate_range(start, end)
        amount = min(int(amount), end - start)
        if amount < 1:
            return []

        degenerate = self._degenerate_level(start, end)
        if degenerate is not None:
            return [degenerate]

        if amount > MULTILEVEL_ADVISORY_AMOUNT:
            logger.warning(
                f"Computing {amount} thresholds at once, expect slow results "
                "and nearly empty classes"
            )

        table = self._get_pair_lookup()

        # best[s]: best score for [s, end] split into the current number of classes
        best = table[:, end].copy()
        choices = []

        for classes in range(2, amount + 2):
            last_start = end - (classes - 1)
            new_best = np.full(LEVELS, -np.inf)
            choice = np.zeros(LEVELS, dtype=np.intp)

            for s in range(start, last_start + 1):
                cuts = np.arange(s + 1, end - (classes - 2) + 1)
                scores = table[s, cuts - 1] + best[cuts]
                idx = int(np.argmax(scores))
                new_best[s] = scores[idx]
                choice[s] = cuts[idx]

            best = new_best
            choices.append(choice)

        thresholds = []
        s = start
        for choice in reversed(choices):
            s = int(choice[s])
            thresholds.append(s)

        return thresholds
