"""Raster image ingestion and reduction to grey levels."""
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union
from urllib.error import URLError
from urllib.request import urlopen

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from posterizer.types import ChannelMode, ImageLoadError, UnsupportedSource

logger = logging.getLogger(__name__)

HTTP_PROTOCOL_URL_HEADER = "http://"
HTTPS_PROTOCOL_URL_HEADER = "https://"

# Rec. 709 luma coefficients
LUMINANCE_WEIGHTS = np.array([0.2126, 0.7152, 0.0722])

URL_TIMEOUT = 30.0

ImageSource = Union[str, Path, bytes, bytearray, Image.Image, np.ndarray, "GreyRaster"]


@dataclass
class GreyRaster:
    """Single-channel 8-bit raster."""
    data: np.ndarray  # (H, W) uint8
    _histogram: Optional[object] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.data.ndim != 2 or self.data.dtype != np.uint8:
            raise UnsupportedSource(
                f"GreyRaster needs a 2D uint8 array, got {self.data.ndim}D {self.data.dtype}"
            )

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    def grey(self, x: int, y: int) -> int:
        return int(self.data[y, x])

    def histogram(self):
        """Histogram of this raster, built once."""
        if self._histogram is None:
            from posterizer.histogram import GreyHistogram
            self._histogram = GreyHistogram.build(self)
        return self._histogram


CHANNEL_INDEX = {
    ChannelMode.RED: 0,
    ChannelMode.GREEN: 1,
    ChannelMode.BLUE: 2,
}


def luminance(rgb: np.ndarray) -> np.ndarray:
    """
    Reduce RGB values to grey levels.

    Args:
        rgb: (H, W, 3) array with values in [0, 255]

    Returns:
        (H, W) uint8 array
    """
    grey = rgb[..., :3].astype(np.float64) @ LUMINANCE_WEIGHTS
    return _to_uint8(grey)


def composite_on_white(rgba: np.ndarray) -> np.ndarray:
    """Flatten RGBA values in [0, 255] onto a white background."""
    alpha = rgba[..., 3:4].astype(np.float64) / 255.0
    rgb = rgba[..., :3].astype(np.float64)
    return 255.0 + (rgb - 255.0) * alpha


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


def pixels_from_array(image: np.ndarray) -> np.ndarray:
    """
    Normalize a numpy image to 8-bit grey or RGB pixels.

    Args:
        image: (H, W), (H, W, 1), (H, W, 3) or (H, W, 4) array, either
            integer in 0..255, boolean, or floating point in [0, 1]

    Returns:
        (H, W) or (H, W, 3) uint8 array; alpha is composited on white
    """
    if image.ndim not in (2, 3):
        raise UnsupportedSource(f"Expected 2D or 3D array, got {image.ndim}D")

    if np.issubdtype(image.dtype, np.floating):
        if image.size and (image.min() < 0.0 or image.max() > 1.0):
            raise UnsupportedSource("Floating point images must lie in [0, 1]")
        image = image * 255.0
    elif image.dtype == np.bool_:
        image = image.astype(np.float64) * 255.0
    elif not np.issubdtype(image.dtype, np.integer):
        raise UnsupportedSource(f"Unsupported array dtype {image.dtype}")
    elif image.size and (image.min() < 0 or image.max() > 255):
        raise UnsupportedSource("Integer images must lie in 0..255")

    if image.ndim == 2:
        return _to_uint8(image.astype(np.float64))

    channels = image.shape[2]
    if channels == 4:
        return _to_uint8(composite_on_white(image))
    if channels == 3:
        return _to_uint8(image.astype(np.float64))
    if channels == 1:
        return pixels_from_array(image[..., 0])

    raise UnsupportedSource(f"Expected 1, 3 or 4 channels, got {channels}")


def pixels_from_pil(img: Image.Image) -> np.ndarray:
    """PIL image as (H, W) or (H, W, 3) uint8 pixels, alpha composited on white."""
    img = ImageOps.exif_transpose(img)

    if img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info):
        rgba = np.asarray(img.convert("RGBA"))
        return _to_uint8(composite_on_white(rgba))

    if img.mode == "L":
        return np.array(img, dtype=np.uint8)

    return np.array(img.convert("RGB"), dtype=np.uint8)


def reduce_to_grey(pixels: np.ndarray, channel: ChannelMode = ChannelMode.LUMINANCE) -> GreyRaster:
    """
    Pick the grey level of every pixel.

    Grey pixels are used as they are; color pixels give either their
    luminance or a single channel.
    """
    if pixels.ndim == 2:
        return GreyRaster(pixels)
    if channel == ChannelMode.LUMINANCE:
        return GreyRaster(luminance(pixels))
    return GreyRaster(np.ascontiguousarray(pixels[..., CHANNEL_INDEX[channel]]))


def grey_from_array(image: np.ndarray, channel: ChannelMode = ChannelMode.LUMINANCE) -> GreyRaster:
    """Create GreyRaster from numpy array."""
    return reduce_to_grey(pixels_from_array(image), channel)


def grey_from_pil(img: Image.Image, channel: ChannelMode = ChannelMode.LUMINANCE) -> GreyRaster:
    """Reduce a PIL image to grey levels, compositing alpha on white."""
    return reduce_to_grey(pixels_from_pil(img), channel)


def _read_url(url: str) -> bytes:
    try:
        with urlopen(url, timeout=URL_TIMEOUT) as response:
            return response.read()
    except (URLError, OSError, ValueError) as e:
        raise ImageLoadError(f"Failed to fetch image {url}: {e}") from e


def _open_bytes(data: bytes, name: str) -> np.ndarray:
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return pixels_from_pil(img)
    except (UnidentifiedImageError, OSError) as e:
        raise ImageLoadError(f"Failed to decode image {name}: {e}") from e


def load_pixels(source: ImageSource) -> np.ndarray:
    """
    Read an image source into grey or RGB pixels.

    Args:
        source: File path, http(s) URL, encoded bytes, PIL image, numpy
            array or GreyRaster

    Returns:
        (H, W) or (H, W, 3) uint8 array

    Raises:
        ImageLoadError: If the source cannot be read or decoded
        UnsupportedSource: If the source type cannot be reduced to grey
    """
    if isinstance(source, GreyRaster):
        return source.data

    if isinstance(source, np.ndarray):
        return pixels_from_array(source)

    if isinstance(source, Image.Image):
        return pixels_from_pil(source)

    if isinstance(source, (bytes, bytearray)):
        return _open_bytes(bytes(source), "<buffer>")

    if isinstance(source, str) and source.startswith(
        (HTTP_PROTOCOL_URL_HEADER, HTTPS_PROTOCOL_URL_HEADER)
    ):
        logger.info(f"Fetching image from {source}")
        return _open_bytes(_read_url(source), source)

    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.is_file():
            raise ImageLoadError(f"Image file not found: {path}")
        try:
            with Image.open(path) as img:
                img.load()
                return pixels_from_pil(img)
        except (UnidentifiedImageError, OSError) as e:
            raise ImageLoadError(f"Failed to load image {path}: {e}") from e

    raise UnsupportedSource(f"Unsupported image source type: {type(source).__name__}")


def decode(source: ImageSource, channel: ChannelMode = ChannelMode.LUMINANCE) -> GreyRaster:
    """
    Decode an image source into a grey raster.

    Args:
        source: Anything load_pixels accepts
        channel: Luminance or the single color channel to keep

    Returns:
        GreyRaster
    """
    if isinstance(source, GreyRaster):
        return source
    return reduce_to_grey(load_pixels(source), channel)
