"""Tuple-based 2D vector helpers shared by the engine modules."""

from __future__ import annotations

import math
from typing import Tuple


Vector = Tuple[float, float]


def vector_add(a: Vector, b: Vector) -> Vector:
    return (a[0] + b[0], a[1] + b[1])


def vector_sub(a: Vector, b: Vector) -> Vector:
    return (a[0] - b[0], a[1] - b[1])


def vector_scale(v: Vector, scalar: float) -> Vector:
    return (v[0] * scalar, v[1] * scalar)


def vector_length(v: Vector) -> float:
    return math.sqrt(v[0] * v[0] + v[1] * v[1])


def vector_length_sq(v: Vector) -> float:
    return v[0] * v[0] + v[1] * v[1]


def vector_dot(a: Vector, b: Vector) -> float:
    return a[0] * b[0] + a[1] * b[1]


def vector_zero() -> Vector:
    return (0.0, 0.0)


def perpendicular(v: Vector) -> Vector:
    """Counter-clockwise normal of ``v`` (same length)."""
    return (-v[1], v[0])


def unit_or_default(v: Vector, default: Vector = (1.0, 0.0)) -> Tuple[Vector, float]:
    """Return ``(unit_vector, length)``; degenerate vectors map to ``default``."""
    length = vector_length(v)
    if length == 0.0:
        return default, 0.0
    return (v[0] / length, v[1] / length), length
