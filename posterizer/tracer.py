"""Binary mask tracing into SVG path data."""
import logging
from dataclasses import dataclass
from typing import Dict, List, Protocol

import numpy as np
from skimage.measure import approximate_polygon, find_contours

from posterizer.raster_ingest import GreyRaster

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceRequest:
    """Everything a tracer needs to binarize the raster."""
    threshold: float
    black_on_white: bool = True


class Vectorizer(Protocol):
    """Anything that turns a thresholded raster into SVG path data."""

    def trace(self, request: TraceRequest) -> str:
        ...


def foreground_mask(data: np.ndarray, request: TraceRequest) -> np.ndarray:
    """Pixels at or past the threshold on the foreground side."""
    if request.black_on_white:
        return data <= request.threshold
    return data >= request.threshold


def format_number(x: float, precision: int) -> str:
    """
    Format number with given precision.

    Trailing zeros and a dangling decimal point are removed.
    """
    formatted = f"{x:.{precision}f}"
    if '.' in formatted:
        formatted = formatted.rstrip('0').rstrip('.')
    if formatted == "-0":
        formatted = "0"
    return formatted


def ring_to_path(ring: np.ndarray, precision: int = 2) -> str:
    """
    Convert a closed (N, 2) ring of (x, y) points to path commands.

    Args:
        ring: Points, first and last may coincide
        precision: Decimal places

    Returns:
        ``M x,y L x,y ... Z`` or an empty string for degenerate rings
    """
    if len(ring) > 1 and np.allclose(ring[0], ring[-1]):
        ring = ring[:-1]
    if len(ring) < 3:
        return ""

    fmt = lambda v: format_number(v, precision)
    points = [f"{fmt(x)},{fmt(y)}" for x, y in ring]
    return f"M{points[0]} L" + " ".join(points[1:]) + " Z"


class ContourTracer:
    """
    Default vectorizer built on marching squares.

    The mask is padded by one pixel so shapes touching the border close
    along the image edge. Contours run through pixel corners, so a mask
    covering the whole image traces the rectangle (0, 0)-(width, height).
    """

    def __init__(self, raster: GreyRaster, tolerance: float = 0.5, precision: int = 2):
        """
        Args:
            raster: Image to trace
            tolerance: Polygon simplification tolerance in pixels (0 disables)
            precision: Decimal places for coordinates
        """
        self.raster = raster
        self.tolerance = tolerance
        self.precision = precision
        self._cache: Dict[TraceRequest, str] = {}

    def _rings(self, mask: np.ndarray) -> List[np.ndarray]:
        # Upsample 2x so every pixel contributes a full square
        upsampled = np.kron(mask, np.ones((2, 2), dtype=bool))
        padded = np.pad(upsampled, 1, mode="constant", constant_values=False)

        rings = []
        for contour in find_contours(padded.astype(np.float64), 0.5):
            if self.tolerance > 0:
                contour = approximate_polygon(contour, tolerance=self.tolerance * 2)
            # (row, col) in padded, upsampled space -> (x, y) in image space
            xy = np.column_stack([contour[:, 1] - 0.5, contour[:, 0] - 0.5]) / 2.0
            xy = np.round(xy * 2.0) / 2.0
            # Snapping collapses the cut corners marching squares produces
            keep = np.ones(len(xy), dtype=bool)
            keep[1:] = np.any(np.diff(xy, axis=0) != 0, axis=1)
            rings.append(xy[keep])
        return rings

    def trace(self, request: TraceRequest) -> str:
        """
        Trace the foreground for a threshold.

        Returns:
            SVG path data, empty when no pixel passes the threshold
        """
        cached = self._cache.get(request)
        if cached is not None:
            return cached

        mask = foreground_mask(self.raster.data, request)
        if not mask.any():
            path_data = ""
        else:
            commands = [ring_to_path(ring, self.precision) for ring in self._rings(mask)]
            path_data = " ".join(c for c in commands if c)

        logger.debug(
            f"Traced threshold {request.threshold} "
            f"({int(mask.sum())} px, {len(path_data)} chars)"
        )
        self._cache[request] = path_data
        return path_data
