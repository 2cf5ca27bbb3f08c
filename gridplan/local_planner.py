"""Local planners that fan out candidate paths and score them against a reference."""

from __future__ import annotations

import logging
import math
import time
from abc import ABC, abstractmethod
from typing import Iterator, List, NamedTuple, Sequence, Tuple

import numpy as np

from .optim import BSpline
from .util import MapInfoTool, Point3d, euclidean_dis

_log = logging.getLogger(__name__)

Path = List[Point3d]


class LocalPlanResult(NamedTuple):
    """Candidate paths in world coordinates and the end points that were generated."""

    paths: List[Path]
    destinations: List[Point3d]


def _as_point(point) -> Point3d:
    if isinstance(point, Point3d):
        return point
    return Point3d(*(float(v) for v in point))


def _frange(start: float, stop: float, step: float, inclusive: bool = False) -> Iterator[float]:
    """Accumulating float range, stepping exactly as repeated addition does."""
    value = start
    while value <= stop if inclusive else value < stop:
        yield value
        value += step


class LocalPlanner(ABC):
    """Generates local candidate paths around the robot and picks the best one."""

    OBSTACLE_WINDOW = 4
    REF_LOOKAHEAD = 10
    REF_WEIGHT = 3.0

    def __init__(self, grid, ref_path: Sequence, origin_x: float = 0.0,
                 origin_y: float = 0.0, resolution: float = 1.0):
        self.grid = np.array(grid, dtype=int)
        if self.grid.ndim != 2:
            raise ValueError("the occupancy grid must be two-dimensional")
        self.ref_path: Path = [_as_point(p) for p in ref_path]
        self.origin_x = origin_x
        self.origin_y = origin_y
        self.resolution = resolution
        self.map_tool = MapInfoTool(self.grid, origin_x, origin_y, resolution)

    def local_to_global(self, local_point: Point3d, shift_point: Point3d,
                        heading: float) -> Point3d:
        """Map a point of the heading-aligned frame into the world frame."""
        theta = math.pi / 2 - heading
        c, s = math.cos(theta), math.sin(theta)
        return Point3d(shift_point.x + local_point.x * c + local_point.y * s,
                       shift_point.y - local_point.x * s + local_point.y * c,
                       0.0)

    def global_to_local(self, global_point: Point3d, shift_point: Point3d,
                        heading: float) -> Point3d:
        """Map a world point into the heading-aligned frame."""
        theta = math.pi / 2 - heading
        c, s = math.cos(theta), math.sin(theta)
        dx = global_point.x - shift_point.x
        dy = global_point.y - shift_point.y
        return Point3d(dx * c - dy * s, dx * s + dy * c, 0.0)

    @staticmethod
    def _heading(pos: Point3d, pos_ahead: Point3d) -> float:
        return math.atan2(pos.y - pos_ahead.y, pos.x - pos_ahead.x)

    @abstractmethod
    def process(self, radius: float, pos, pos_ahead) -> LocalPlanResult:
        """Generate candidate paths starting at pos, heading away from pos_ahead."""

    def _obstacle_score(self, point: Point3d) -> float:
        cell = self.map_tool.world_to_map(point.x, point.y)
        rows, cols = self.grid.shape
        score = 0.0
        window = range(-self.OBSTACLE_WINDOW, self.OBSTACLE_WINDOW + 1)
        for i in window:
            x = cell.x + i
            if not 0 <= x < rows:
                continue
            for j in window:
                y = cell.y + j
                if 0 <= y < cols and self.grid[x, y] != 0:
                    score -= (i * i + j * j) * self.resolution ** 2
        return score

    def _reference_distance(self, point: Point3d, current_index: int) -> float:
        """Distance to the nearest reference point found by a forward local search."""
        ref = self.ref_path
        index, count = current_index, 0
        while True:
            count += 1
            current_dis = euclidean_dis(point.x, point.y, ref[index].x, ref[index].y)
            if index + count < len(ref):
                ahead = ref[index + count]
                next_dis = euclidean_dis(point.x, point.y, ahead.x, ahead.y)
            else:
                next_dis = current_dis
            if current_dis > next_dis:
                index += count
                count = 0
            if count >= self.REF_LOOKAHEAD:
                return current_dis

    def get_best_path(self, current_index: int, paths: Sequence[Sequence]) -> Path:
        """Highest-scoring path by reference deviation and nearby obstacles."""
        if not paths:
            raise ValueError("no candidate paths")
        if not 0 <= current_index < len(self.ref_path):
            raise ValueError("reference index is outside the reference path")
        started = time.perf_counter()
        best_path: Path | None = None
        best_score = -math.inf
        for path in paths:
            points = [_as_point(p) for p in path]
            obs_score = sum(self._obstacle_score(p) for p in points)
            ref_score = -sum(self._reference_distance(p, current_index) for p in points)
            score = self.REF_WEIGHT * ref_score + obs_score
            if score > best_score:
                best_score, best_path = score, points
        if best_path is None:
            raise ValueError("no candidate path could be scored")
        _log.debug("found the best local path in %.3f ms",
                   (time.perf_counter() - started) * 1000)
        return list(best_path)


class OnlineLocalPlanner(LocalPlanner):
    """Fans out quintic-polynomial paths to end points along a line ahead."""

    LINE_DIVISIONS = 30
    PATH_SEGMENTS = 10
    END_SLOPE = 3.0

    def _quintic_path(self, x: float, y: float) -> Path:
        if x == 0:
            step = y / self.PATH_SEGMENTS
            return [Point3d(0.0, j * step, 0.0) for j in range(self.PATH_SEGMENTS + 1)]
        slope = self.END_SLOPE if x > 0 else -self.END_SLOPE
        a = np.array([
            [0, 0, 0, 0, 0, 1],
            [0, 0, 0, 0, 1, 0],
            [0, 0, 0, 2, 0, 0],
            [x ** 5, x ** 4, x ** 3, x ** 2, x, 1],
            [5 * x ** 4, 4 * x ** 3, 3 * x ** 2, 2 * x, 1, 0],
            [20 * x ** 3, 12 * x ** 2, 6 * x, 2, 0, 0],
        ], dtype=float)
        b = np.array([0, slope, 0, y, slope, 0], dtype=float)
        coeffs = np.linalg.solve(a, b)
        step = x / self.PATH_SEGMENTS
        path = []
        for j in range(self.PATH_SEGMENTS + 1):
            px = j * step
            path.append(Point3d(px, float(np.polyval(coeffs, px)), 0.0))
        return path

    def process(self, radius: float, pos, pos_ahead) -> LocalPlanResult:
        if radius <= 0:
            raise ValueError("radius must be positive")
        pos, pos_ahead = _as_point(pos), _as_point(pos_ahead)
        started = time.perf_counter()
        heading = self._heading(pos, pos_ahead)

        y = radius
        local_destinations = [Point3d(x, y, 0.0) for x in
                              _frange(-y, y, radius / self.LINE_DIVISIONS, inclusive=True)]
        paths = [[self.local_to_global(p, pos, heading) for p in self._quintic_path(d.x, d.y)]
                 for d in local_destinations]
        destinations = [pos] + [self.local_to_global(d, pos, heading)
                                for d in local_destinations]
        _log.debug("generated %d local paths in %.3f ms", len(paths),
                   (time.perf_counter() - started) * 1000)
        return LocalPlanResult(paths, destinations)


class OfflineLocalPlanner(LocalPlanner):
    """Builds three-segment fan trees of end points and interpolates them with B-splines."""

    ITER_ANGLE = 10.0
    SPLINE_SAMPLES = 20

    def get_dest_point(self, angle: float, radius: float, origin_pos) -> Point3d:
        """Point at the given angle (degrees) and distance from origin_pos."""
        origin = _as_point(origin_pos)
        radians = angle * math.pi / 180.0
        return Point3d(radius * math.cos(radians) + origin.x,
                       radius * math.sin(radians) + origin.y, 0.0)

    def path_generator(self, radius: float, iter_angle: float) -> Tuple[List[Path], List[Point3d]]:
        """Return the four-point segment-end paths and every end point generated.

        Each later segment fans out at two and three times the first angle step.
        """
        step1 = int(iter_angle)
        if step1 <= 0:
            raise ValueError("iteration angle must be at least one degree")
        step2, step3 = 2 * iter_angle, 3 * iter_angle
        origin = Point3d()
        solutions: List[Path] = []
        destinations: List[Point3d] = []

        for angle1 in _frange(float(step1), 180.0, float(step1)):
            p1 = self.get_dest_point(angle1, radius, origin)
            destinations.append(p1)
            heading1 = math.degrees(math.atan2(p1.y - origin.y, p1.x - origin.x))
            for angle2 in _frange(-(90 - heading1 - step2), 90 + heading1 - step2, step2):
                p2 = self.get_dest_point(angle2, radius, p1)
                destinations.append(p2)
                heading2 = math.degrees(math.atan2(p2.y - p1.y, p2.x - p1.x))
                for angle3 in _frange(-(90 - heading2 - step3), 90 + heading2 - step3, step3):
                    p3 = self.get_dest_point(angle3, radius, p2)
                    destinations.append(p3)
                    solutions.append([origin, p1, p2, p3])
        return solutions, destinations

    def process(self, radius: float, pos, pos_ahead) -> LocalPlanResult:
        if radius <= 0:
            raise ValueError("radius must be positive")
        pos, pos_ahead = _as_point(pos), _as_point(pos_ahead)
        started = time.perf_counter()
        heading = self._heading(pos, pos_ahead)

        local_paths, local_destinations = self.path_generator(radius, self.ITER_ANGLE)
        paths = []
        for local_path in local_paths:
            smooth = BSpline(local_path, self.SPLINE_SAMPLES).process()
            paths.append([self.local_to_global(p, pos, heading) for p in smooth])
        destinations = [self.local_to_global(d, pos, heading) for d in local_destinations]
        _log.debug("generated %d local paths in %.3f ms", len(paths),
                   (time.perf_counter() - started) * 1000)
        return LocalPlanResult(paths, destinations)