"""Path smoothing: B-spline and Bezier interpolation and box-constrained QP."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np
from scipy.optimize import lsq_linear

from .util import Point3d

_log = logging.getLogger(__name__)


def _as_point(point) -> Point3d:
    if isinstance(point, Point3d):
        return point
    return Point3d(*(float(v) for v in point))


class Optimizer(ABC):
    """Turns a path of poses into a smoother one."""

    def __init__(self, path: Sequence):
        self.path: List[Point3d] = [_as_point(p) for p in path]

    @abstractmethod
    def process(self) -> List[Point3d]:
        """Return the optimised path."""


class BSpline(Optimizer):
    """Cubic B-spline through all path points used as control points."""

    def __init__(self, path: Sequence, num_samples: int):
        super().__init__(path)
        self.num_samples = num_samples

    def basis_fun(self, i: int, k: int, t: float, knots: Sequence[float]) -> float:
        """Recursive basis value; a zero denominator is replaced by one."""
        if k == 1:
            return 1.0 if knots[i] <= t < knots[i + 1] else 0.0
        left_den = knots[i + k] - knots[i]
        right_den = knots[i + k + 1] - knots[i + 1]
        left = (t - knots[i]) / (left_den if left_den != 0 else 1.0)
        right = (knots[i + k + 1] - t) / (right_den if right_den != 0 else 1.0)
        return (left * self.basis_fun(i, k - 1, t, knots)
                + right * self.basis_fun(i + 1, k - 1, t, knots))

    def generate_knots(self, k: int, num_control_points: int) -> List[float]:
        """Clamped knot vector so the curve keeps the first and last points."""
        n = num_control_points
        knots = [0.0] * (n + k + 1)
        knots[k:n + 1] = [(i - k + 1) / (n - k + 1) for i in range(k, n + 1)]
        knots[n + 1:] = [1.0] * k
        return knots

    def process(self) -> List[Point3d]:
        k = 3
        knots = self.generate_knots(k, len(self.path))
        span = knots[-1] - knots[0]
        solution: List[Point3d] = []
        for j in range(self.num_samples):
            t = j / self.num_samples * span + knots[0]
            weights = [self.basis_fun(i, k, t, knots) for i in range(len(self.path))]
            x = sum(w * p.x for w, p in zip(weights, self.path))
            y = sum(w * p.y for w, p in zip(weights, self.path))
            solution.append(Point3d(x, y, 0.0))
        return solution


class Bezier(Optimizer):
    """Piecewise cubic Bezier curve with continuous tangents at path points."""

    DEGREE = 3

    def __init__(self, path: Sequence, num_samples: int):
        super().__init__(path)
        self.num_samples = num_samples

    def binomial(self, n: int, i: int) -> int:
        return math.comb(n, i)

    def generate_control_points(self) -> List[Point3d]:
        """Insert two control points between each pair of consecutive path points."""
        if not self.path:
            raise ValueError("path is empty")
        control = [self.path[0]]
        if len(self.path) < 2:
            _log.warning("a Bezier curve needs at least two path points")
            return control
        for index, (p0, p3) in enumerate(zip(self.path, self.path[1:])):
            if index == 0:
                p1 = Point3d((2 * p0.x + p3.x) / 3, (2 * p0.y + p3.y) / 3)
            else:
                previous = control[-2]
                p1 = Point3d(2 * p0.x - previous.x, 2 * p0.y - previous.y)
            p2 = Point3d((p0.x + 2 * p3.x) / 3, (p0.y + 2 * p3.y) / 3)
            control.extend((p1, p2, p3))
        return control

    def process(self) -> List[Point3d]:
        control = self.generate_control_points()
        n = self.DEGREE
        solution: List[Point3d] = []
        for index in range(0, len(control) - n, n):
            segment = control[index:index + n + 1]
            for m in range(self.num_samples + 1):
                t = m / self.num_samples
                factors = [self.binomial(n, i) * t ** i * (1 - t) ** (n - i)
                           for i in range(n + 1)]
                solution.append(Point3d(
                    sum(f * p.x for f, p in zip(factors, segment)),
                    sum(f * p.y for f, p in zip(factors, segment)),
                    0.0,
                ))
        return solution


@dataclass
class QPProblem:
    """Box-constrained QP: minimise 0.5 x'Hx + g'x with lower <= A x <= upper.

    ``factor`` and ``target`` give the same objective as the least-squares
    residual ``factor @ x - target``, up to a constant.
    """

    hessian: np.ndarray
    linear_matrix: np.ndarray
    gradient: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    factor: np.ndarray
    target: np.ndarray


class QP(Optimizer):
    """Smoothness, length and reference-deviation QP over interleaved x, y values.

    Every coordinate may move within [lower_bound, upper_bound] of its reference
    value; the first point is held fixed.
    """

    def __init__(self, lower_bound: float, upper_bound: float, weight_smooth: float,
                 weight_length: float, weight_ref: float, path: Sequence):
        super().__init__(path)
        self.lower_bound = lower_bound
        self.upper_bound = upper_bound
        self.weight_smooth = weight_smooth
        self.weight_length = weight_length
        self.weight_ref = weight_ref

    def build_problem(self) -> QPProblem:
        n = len(self.path)
        if n <= 0:
            raise ValueError("path is empty")
        if min(self.weight_smooth, self.weight_length, self.weight_ref) < 0:
            raise ValueError("weights must be non-negative")

        size = 2 * n
        smooth_cols = max(size - 4, 0)
        length_cols = max(size - 2, 0)
        a1 = (np.eye(size, smooth_cols) - 2 * np.eye(size, smooth_cols, k=-2)
              + np.eye(size, smooth_cols, k=-4))
        a2 = np.eye(size, length_cols) - np.eye(size, length_cols, k=-2)
        a3 = np.eye(size)

        ref = np.array([[p.x, p.y] for p in self.path], dtype=float).ravel()
        low_offset = np.full(size, float(self.lower_bound))
        up_offset = np.full(size, float(self.upper_bound))
        low_offset[:2] = 0.0
        up_offset[:2] = 0.0

        hessian = 2.0 * (self.weight_smooth * a1 @ a1.T
                         + self.weight_length * a2 @ a2.T
                         + self.weight_ref * a3 @ a3)
        factor = np.vstack([math.sqrt(self.weight_smooth) * a1.T,
                            math.sqrt(self.weight_length) * a2.T,
                            math.sqrt(self.weight_ref) * a3])
        target = np.concatenate([np.zeros(smooth_cols + length_cols),
                                 math.sqrt(self.weight_ref) * ref])
        return QPProblem(
            hessian=hessian,
            linear_matrix=a3,
            gradient=self.weight_ref * (-2.0 * ref),
            lower=ref + low_offset,
            upper=ref + up_offset,
            factor=factor,
            target=target,
        )

    def process(self) -> List[Point3d]:
        problem = self.build_problem()
        if np.any(problem.lower > problem.upper):
            raise ValueError("lower bound exceeds upper bound")
        solution = problem.lower.copy()
        free = problem.lower < problem.upper
        if free.any():
            fixed = ~free
            rhs = problem.target - problem.factor[:, fixed] @ solution[fixed]
            result = lsq_linear(problem.factor[:, free], rhs,
                                bounds=(problem.lower[free], problem.upper[free]),
                                method="bvls")
            solution[free] = result.x
        return [Point3d(float(x), float(y), 0.0) for x, y in solution.reshape(-1, 2)]