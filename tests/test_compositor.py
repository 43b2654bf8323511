"""Tests for layer compositing."""
import pytest

from posterizer.compositor import composite_layers, layer_opacity
from posterizer.types import ColorStop


def paint(opacities):
    """Intensity after painting each layer over the previous result."""
    result = 0.0
    history = []
    for opacity in opacities:
        result = result + opacity * (1 - result)
        history.append(result)
    return history


class TestLayerOpacity:
    """Test the single-layer opacity solve."""

    def test_first_layer_uses_intensity(self):
        assert layer_opacity(0.4, 0.0) == 0.4

    def test_equal_intensity_is_invisible(self):
        assert layer_opacity(0.3, 0.3) == 0.0

    def test_full_saturation(self):
        assert layer_opacity(1.0, 0.6) == 1.0

    def test_lighter_layer_clamped(self):
        """A layer cannot lighten what is beneath it."""
        assert layer_opacity(0.2, 0.5) == 0.0

    def test_saturated_base(self):
        assert layer_opacity(1.0, 1.0) == 0.0


class TestCompositeLayers:
    """Test opacity sequences."""

    def test_equal_layers_dropped(self):
        layers = composite_layers([ColorStop(200, 0.3), ColorStop(100, 0.3)])

        assert len(layers) == 1
        assert layers[0].threshold == 200
        assert layers[0].opacity == pytest.approx(0.3)

    def test_two_layers(self):
        layers = composite_layers([ColorStop(200, 0.6), ColorStop(100, 1.0)])

        assert [l.opacity for l in layers] == [pytest.approx(0.6), 1.0]
        assert layers[1].opacity_string == "1.000"

    def test_painting_reproduces_intensities(self):
        intensities = [0.2, 0.45, 0.7, 0.95]
        stops = [ColorStop(v, i) for v, i in zip([200, 150, 100, 50], intensities)]

        layers = composite_layers(stops)

        assert len(layers) == 4
        assert paint([l.opacity for l in layers]) == pytest.approx(intensities)

    def test_zero_intensity_first_layer_dropped(self):
        layers = composite_layers([ColorStop(128, 0.0), ColorStop(0, 1.0)])

        assert len(layers) == 1
        assert layers[0].threshold == 0
        assert layers[0].opacity_string == "1.000"

    def test_tiny_opacity_dropped(self):
        """Opacities that round to 0.000 contribute nothing."""
        layers = composite_layers([ColorStop(200, 0.5), ColorStop(100, 0.5002)])
        assert len(layers) == 1

    def test_empty(self):
        assert composite_layers([]) == []
