import math

EPSILON = 0.00001


def doubles_equal(a: float, b: float, epsilon: float = EPSILON) -> bool:
    """Returns True if the two floats are equal within a small tolerance."""
    return a == b or abs(a - b) < epsilon


def sigmoid01(x: float) -> float:
    """Logistic sigmoid, bounded to (0, 1).

    Approximate outputs:
        -2 -> 0.119, 0 -> 0.5, 1 -> 0.731, 2 -> 0.881
    """
    # math.exp overflows for large negative inputs
    if x < -700.0:
        return 0.0
    return 1.0 / (1.0 + math.exp(-x))


def sigmoid11(x: float) -> float:
    """Bipolar sigmoid, bounded to (-1, 1)."""
    return 2.0 * sigmoid01(x) - 1.0


def tanh(x: float) -> float:
    return math.tanh(x)


def tanh_derivative(y: float) -> float:
    """Derivative of tanh expressed in terms of its output."""
    return 1.0 - y ** 2
