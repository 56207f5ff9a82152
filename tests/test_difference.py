"""
Tests for the staggered difference operator.
"""

import numpy as np
import pytest

from cpmlfd.errors import InvalidArgument
from cpmlfd.modeling.coefficients import difference_coefficients
from cpmlfd.modeling.difference import difference, staggered_average


@pytest.mark.parametrize("order", [1, 2, 3, 4])
@pytest.mark.parametrize("axis", [0, 1])
def test_output_shape(order, axis):
    """The differenced axis shrinks by 2*order - 1, the other is unchanged."""
    data = np.random.default_rng(0).normal(size=(20, 24))
    out = difference(data, difference_coefficients(order), 1.0, axis=axis)
    expected = list(data.shape)
    expected[axis] -= 2 * order - 1
    assert out.shape == tuple(expected)
# end def test_output_shape


def test_linear_ramp_is_exact():
    """A linear ramp has the same derivative at every half-grid point."""
    spacing = 2.5
    x = np.arange(30) * spacing
    data = np.tile(3.0 * x, (5, 1))
    for order in (1, 2, 3, 5):
        out = difference(data, difference_coefficients(order), spacing, axis=1)
        np.testing.assert_allclose(out, 3.0, rtol=1e-10)
    # end for
# end def test_linear_ramp_is_exact


def test_quadratic_evaluated_on_half_grid():
    """The derivative of z**2 sits halfway between samples."""
    order = 3
    spacing = 0.5
    z = np.arange(40) * spacing
    data = np.tile((z ** 2)[:, np.newaxis], (1, 4))
    out = difference(data, difference_coefficients(order), spacing, axis=0)
    half = z[order - 1:order - 1 + out.shape[0]] + spacing / 2.0
    np.testing.assert_allclose(out[:, 0], 2.0 * half, rtol=1e-10)
# end def test_quadratic_evaluated_on_half_grid


@pytest.mark.parametrize("order", [1, 2, 3, 4, 5])
def test_highest_exact_polynomial_degree(order):
    """Polynomials up to degree 2*order - 1 are differentiated exactly."""
    degree = 2 * order - 1
    spacing = 0.1
    z = 1.0 + np.arange(30) * spacing
    data = np.tile((z ** degree)[:, np.newaxis], (1, 3))
    out = difference(data, difference_coefficients(order), spacing, axis=0)
    half = z[order - 1:order - 1 + out.shape[0]] + spacing / 2.0
    np.testing.assert_allclose(out[:, 1], degree * half ** (degree - 1), rtol=1e-7)
# end def test_highest_exact_polynomial_degree


def test_order_two_explicit_values():
    """Direct evaluation of the order-two stencil on a short sequence."""
    c = difference_coefficients(2)
    data = np.array([[0.0, 1.0, 4.0, 9.0, 16.0, 25.0]])
    out = difference(data, c, 1.0, axis=1)
    expected = [
        c[0] * (4.0 - 1.0) + c[1] * (9.0 - 0.0),
        c[0] * (9.0 - 4.0) + c[1] * (16.0 - 1.0),
        c[0] * (16.0 - 9.0) + c[1] * (25.0 - 4.0),
    ]
    np.testing.assert_allclose(out[0], expected)
# end def test_order_two_explicit_values


def test_three_dimensional_axes():
    """All three axes of a 3-D volume are differentiable."""
    c = difference_coefficients(2)
    t = np.arange(12, dtype=float)
    volume = np.broadcast_to(t, (6, 7, 12)).copy()
    out = difference(volume, c, 1.0, axis=2)
    assert out.shape == (6, 7, 9)
    np.testing.assert_allclose(out, 1.0)
    assert difference(volume, c, 1.0, axis=0).shape == (3, 7, 12)
# end def test_three_dimensional_axes


def test_input_is_not_modified():
    """The operator allocates a new array."""
    data = np.arange(50, dtype=float).reshape(5, 10)
    copy = data.copy()
    out = difference(data, difference_coefficients(2), 1.0, axis=1)
    np.testing.assert_array_equal(data, copy)
    assert not np.shares_memory(out, data)
# end def test_input_is_not_modified


@pytest.mark.parametrize(
    "data, axis, spacing",
    [
        (np.zeros(10), 0, 1.0),
        (np.zeros((2, 2, 2, 2)), 0, 1.0),
        (np.zeros((10, 10)), 2, 1.0),
        (np.zeros((10, 10)), -1, 1.0),
        (np.zeros((10, 10)), 0, 0.0),
        (np.zeros((10, 10)), 0, -1.0),
    ]
)
def test_invalid_arguments(data, axis, spacing):
    """Bad rank, axis or spacing is rejected."""
    with pytest.raises(InvalidArgument):
        difference(data, difference_coefficients(2), spacing, axis=axis)
    # end with
# end def test_invalid_arguments


def test_order_too_large_for_extent():
    """A stencil wider than the axis is rejected instead of reading out of bounds."""
    c = difference_coefficients(3)
    with pytest.raises(InvalidArgument):
        difference(np.zeros((5, 20)), c, 1.0, axis=0)
    # end with
    assert difference(np.zeros((6, 20)), c, 1.0, axis=0).shape == (1, 20)
# end def test_order_too_large_for_extent


def test_empty_coefficients():
    """At least one weight is required."""
    with pytest.raises(InvalidArgument):
        difference(np.zeros((10, 10)), np.array([]), 1.0)
    # end with
# end def test_empty_coefficients


def test_staggered_average_matches_difference_grid():
    """Averaging a ramp gives its value at the half-grid points of the operator."""
    order = 3
    x = np.arange(20, dtype=float)
    data = np.tile(x, (3, 1))
    averaged = staggered_average(data, order, axis=1)
    assert averaged.shape == difference(data, difference_coefficients(order), 1.0, axis=1).shape
    np.testing.assert_allclose(averaged[0], x[order - 1:order - 1 + averaged.shape[1]] + 0.5)
# end def test_staggered_average_matches_difference_grid
