"""Layer opacities for back-to-front compositing of color stops."""
import logging
from typing import List, Sequence

from posterizer.types import ColorStop, Layer

logger = logging.getLogger(__name__)


def layer_opacity(intensity: float, previous: float) -> float:
    """
    Fill opacity that turns ``previous`` into ``intensity`` when painted over it.

    Solves the src-over equation ``result = previous + a * (1 - previous)``
    for ``a``, written as ``(previous - intensity) / (previous - 1)``.
    Clamped to [0, 1]; a fully saturated base cannot be changed.
    """
    if previous == 0:
        opacity = intensity
    elif previous >= 1:
        opacity = 0.0
    else:
        opacity = (previous - intensity) / (previous - 1)
    return min(1.0, max(0.0, opacity))


def composite_layers(stops: Sequence[ColorStop]) -> List[Layer]:
    """
    Convert intensities into per-layer opacities.

    Each stop's mask is a superset of the next one, so painting the
    layers in order reproduces every stop's intensity inside its own
    range. Layers whose opacity rounds to 0 at three decimals are dropped.

    Args:
        stops: Color stops ordered least to most saturated

    Returns:
        Visible layers in painting order
    """
    layers = []
    previous = 0.0

    for stop in stops:
        opacity = layer_opacity(stop.intensity, previous)
        previous = stop.intensity

        if round(opacity, 3) == 0:
            logger.debug(f"Dropping invisible layer at threshold {stop.value}")
            continue

        layers.append(Layer(threshold=stop.value, opacity=opacity))

    return layers
