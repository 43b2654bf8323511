"""Core types for the posterization pipeline."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Union

# Sentinels accepted by configuration fields
AUTO = "auto"
TRANSPARENT = "transparent"

StepsValue = Union[int, str, Sequence[int]]


class FillStrategy(Enum):
    """How a representative color is picked for each color stop."""
    SPREAD = "spread"
    DOMINANT = "dominant"
    MEAN = "mean"
    MEDIAN = "median"


class RangeDistribution(Enum):
    """How thresholds between the binary threshold and the edge are placed."""
    AUTO = "auto"
    EQUAL = "equal"


class ChannelMode(Enum):
    """Which value of a color pixel becomes its grey level."""
    LUMINANCE = "luminance"
    RED = "r"
    GREEN = "g"
    BLUE = "b"


class PosterizerError(Exception):
    """Base exception for posterization errors."""
    pass


class InvalidConfig(PosterizerError, ValueError):
    """Malformed configuration value."""
    pass


class InvalidRange(PosterizerError, ValueError):
    """Histogram queried with a bad level range."""
    pass


class ImageLoadError(PosterizerError):
    """Image could not be decoded."""
    pass


class UnsupportedSource(ImageLoadError):
    """Image source cannot be reduced to 8-bit grey values."""
    pass


class LoadInProgress(PosterizerError):
    """Another image load is still running on the same posterizer."""
    pass


class ImageNotLoaded(PosterizerError):
    """Operation requires a loaded image."""
    pass


@dataclass(frozen=True)
class RangeStats:
    """Statistics for a closed range of grey levels.

    Level statistics (mean, median, std_dev) are NaN when the range
    holds no pixels.
    """
    pixel_count: int
    mean: float
    median: float
    std_dev: float
    unique_levels: int
    mean_pixels_per_level: float
    median_pixels_per_level: float
    peak_pixels_per_level: int

    @property
    def is_empty(self) -> bool:
        return self.pixel_count == 0


@dataclass
class ColorStop:
    """One posterization layer: threshold plus visual intensity in [0, 1]."""
    value: float
    intensity: float = 0.0


@dataclass(frozen=True)
class Layer:
    """Resolved layer ready for rendering."""
    threshold: float
    opacity: float
    path_data: str = ""

    @property
    def opacity_string(self) -> str:
        return f"{self.opacity:.3f}"


def _coerce_enum(enum_cls, value, name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise InvalidConfig(f"Bad '{name}' value {value!r}, expected one of: {choices}")


def _is_int(value) -> bool:
    # bool is an int subclass but never a valid level
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class PosterizerConfig:
    """Configuration snapshot consumed by each render."""
    threshold: Union[int, str] = 142
    black_on_white: bool = True
    steps: StepsValue = AUTO
    fill_strategy: FillStrategy = FillStrategy.DOMINANT
    range_distribution: RangeDistribution = RangeDistribution.AUTO
    background: str = TRANSPARENT
    color: str = AUTO
    channel: ChannelMode = ChannelMode.LUMINANCE

    def __post_init__(self):
        """Validate and normalize values."""
        if self.threshold != AUTO:
            if not _is_int(self.threshold) or not 0 <= self.threshold <= 255:
                raise InvalidConfig(f"Bad 'threshold' value {self.threshold!r}")

        steps = self.steps
        if isinstance(steps, (list, tuple)):
            if not all(_is_int(s) for s in steps):
                raise InvalidConfig(f"Bad 'steps' value {steps!r}")
            object.__setattr__(self, "steps", tuple(steps))
        elif steps != AUTO and (not _is_int(steps) or not 1 <= steps <= 255):
            raise InvalidConfig(f"Bad 'steps' value {steps!r}")

        object.__setattr__(
            self, "fill_strategy",
            _coerce_enum(FillStrategy, self.fill_strategy, "fill_strategy")
        )
        object.__setattr__(
            self, "range_distribution",
            _coerce_enum(RangeDistribution, self.range_distribution, "range_distribution")
        )
        object.__setattr__(
            self, "channel", _coerce_enum(ChannelMode, self.channel, "channel")
        )

        if not isinstance(self.background, str) or not self.background:
            raise InvalidConfig(f"Bad 'background' value {self.background!r}")
        if not isinstance(self.color, str) or not self.color:
            raise InvalidConfig(f"Bad 'color' value {self.color!r}")

    @property
    def explicit_steps(self) -> Optional[List[int]]:
        """Explicit step list, or None when steps is a count or AUTO."""
        if isinstance(self.steps, tuple):
            return list(self.steps)
        return None

    @property
    def fill_color(self) -> str:
        if self.color == AUTO:
            return "black" if self.black_on_white else "white"
        return self.color


@dataclass
class PosterizedDocument:
    """Ordered layers plus the canvas they are painted on."""
    width: int
    height: int
    layers: List[Layer] = field(default_factory=list)
    background: str = TRANSPARENT
    fill_color: str = "black"

    @property
    def has_background(self) -> bool:
        return self.background != TRANSPARENT
