"""Tests for mask tracing."""
import re

import numpy as np
import pytest

from posterizer.raster_ingest import GreyRaster
from posterizer.tracer import (
    ContourTracer,
    TraceRequest,
    foreground_mask,
    format_number,
    ring_to_path,
)


def path_points(path_data):
    """All (x, y) coordinates of a path string."""
    return [
        (float(x), float(y))
        for x, y in re.findall(r"(-?[\d.]+),(-?[\d.]+)", path_data)
    ]


class TestFormatNumber:
    """Test number formatting."""

    @pytest.mark.parametrize("value,expected", [
        (1.0, "1"),
        (1.5, "1.5"),
        (1.25, "1.25"),
        (0.001, "0"),
        (-0.001, "0"),
        (10.10, "10.1"),
    ])
    def test_format(self, value, expected):
        assert format_number(value, 2) == expected


class TestRingToPath:

    def test_square(self):
        ring = np.array([[0, 0], [2, 0], [2, 2], [0, 2], [0, 0]], dtype=float)
        assert ring_to_path(ring) == "M0,0 L2,0 2,2 0,2 Z"

    def test_degenerate(self):
        ring = np.array([[0, 0], [1, 1], [0, 0]], dtype=float)
        assert ring_to_path(ring) == ""


class TestForegroundMask:

    def test_polarity(self):
        data = np.array([[10, 100, 200]], dtype=np.uint8)

        dark = foreground_mask(data, TraceRequest(threshold=100, black_on_white=True))
        light = foreground_mask(data, TraceRequest(threshold=100, black_on_white=False))

        assert dark.tolist() == [[True, True, False]]
        assert light.tolist() == [[False, True, True]]


class TestContourTracer:
    """Test marching squares tracing."""

    def test_full_mask_spans_image(self):
        raster = GreyRaster(np.zeros((6, 9), dtype=np.uint8))
        path_data = ContourTracer(raster).trace(TraceRequest(threshold=128))

        xs, ys = zip(*path_points(path_data))
        assert path_data.startswith("M")
        assert path_data.endswith("Z")
        assert (min(xs), max(xs)) == (0, 9)
        assert (min(ys), max(ys)) == (0, 6)

    def test_empty_mask(self):
        raster = GreyRaster(np.full((5, 5), 255, dtype=np.uint8))
        assert ContourTracer(raster).trace(TraceRequest(threshold=128)) == ""

    def test_square_bounds(self):
        data = np.full((20, 20), 255, dtype=np.uint8)
        data[5:15, 4:12] = 0
        path_data = ContourTracer(GreyRaster(data)).trace(TraceRequest(threshold=128))

        xs, ys = zip(*path_points(path_data))
        assert (min(xs), max(xs)) == (4, 12)
        assert (min(ys), max(ys)) == (5, 15)

    def test_hole_traces_two_rings(self):
        data = np.zeros((12, 12), dtype=np.uint8)
        data[4:8, 4:8] = 255
        path_data = ContourTracer(GreyRaster(data)).trace(TraceRequest(threshold=128))

        assert path_data.count("M") == 2

    def test_white_on_black(self):
        data = np.zeros((10, 10), dtype=np.uint8)
        data[2:5, 2:5] = 200
        tracer = ContourTracer(GreyRaster(data))

        assert tracer.trace(TraceRequest(threshold=150, black_on_white=False)) != ""
        assert tracer.trace(TraceRequest(threshold=250, black_on_white=False)) == ""

    def test_results_cached(self):
        tracer = ContourTracer(GreyRaster(np.zeros((4, 4), dtype=np.uint8)))
        request = TraceRequest(threshold=10)

        first = tracer.trace(request)
        second = tracer.trace(TraceRequest(threshold=10))

        assert first == second
        assert len(tracer._cache) == 1
