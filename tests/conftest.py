"""Pytest configuration and fixtures."""
import numpy as np
import pytest
from PIL import Image

from posterizer.histogram import GreyHistogram


def clusters_image(levels, counts, width=10):
    """Grey image holding ``counts[i]`` pixels of ``levels[i]``, one row per 10 px."""
    values = np.concatenate([np.full(c, l, dtype=np.uint8) for l, c in zip(levels, counts)])
    return values.reshape(-1, width)


def histogram_of(levels, counts):
    """Histogram with the given counts at the given levels."""
    bins = np.zeros(256, dtype=np.int64)
    for level, count in zip(levels, counts):
        bins[level] += count
    return GreyHistogram(bins)


@pytest.fixture
def gradient_image():
    """256x4 grey image, column x has level x."""
    return np.tile(np.arange(256, dtype=np.uint8), (4, 1))


@pytest.fixture
def black_image():
    """Uniform black 10x10 image."""
    return np.zeros((10, 10), dtype=np.uint8)


@pytest.fixture
def png_path(tmp_path):
    """PNG on disk with a dark square on a light background."""
    img = np.full((40, 40, 3), 230, dtype=np.uint8)
    img[10:30, 10:30] = [20, 20, 20]
    img[15:25, 15:25] = [120, 120, 120]
    path = tmp_path / "square.png"
    Image.fromarray(img).save(path)
    return path
