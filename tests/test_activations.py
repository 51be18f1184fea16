import math

import pytest

from poolneat.activations import doubles_equal, sigmoid01, sigmoid11, tanh, tanh_derivative


class TestActivations:
    """Tests for the activation math."""

    @pytest.mark.parametrize(
        "x, expected",
        [(-2.0, 0.1192), (-1.0, 0.2689), (0.0, 0.5), (1.0, 0.7311), (2.0, 0.8808), (5.0, 0.9933)],
    )
    def test_sigmoid01_reference_points(self, x, expected):
        assert sigmoid01(x) == pytest.approx(expected, abs=1e-3)

    def test_sigmoid01_extremes(self):
        """Large magnitudes saturate instead of overflowing."""
        assert sigmoid01(-1000.0) == 0.0
        assert sigmoid01(1000.0) == pytest.approx(1.0)

    def test_sigmoid11_is_bipolar(self):
        assert sigmoid11(0.0) == 0.0
        assert sigmoid11(3.0) == pytest.approx(-sigmoid11(-3.0))
        assert -1.0 < sigmoid11(-10.0) < sigmoid11(10.0) < 1.0

    def test_tanh_and_derivative(self):
        y = tanh(0.5)
        assert y == pytest.approx(math.tanh(0.5))
        assert tanh_derivative(y) == pytest.approx(1 - math.tanh(0.5) ** 2)

    def test_doubles_equal(self):
        assert doubles_equal(0.98201379, 0.982013791)
        assert not doubles_equal(0.5, 0.6)
