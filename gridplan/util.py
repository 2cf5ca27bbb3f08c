"""Geometry helpers, 2-D k-d trees, visual markers and occupancy-grid queries."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Optional, Sequence

import numpy as np


@dataclass(frozen=True)
class Point2:
    """A point on the grid or in the plane."""

    x: float = 0
    y: float = 0


@dataclass
class Point3d:
    """A planar pose: position plus heading."""

    x: float = 0.0
    y: float = 0.0
    yaw: float = 0.0

    @classmethod
    def from_point2(cls, point: Point2) -> "Point3d":
        return cls(float(point.x), float(point.y), 0.0)


@dataclass
class KDTreeNode:
    """One node of a two-dimensional k-d tree."""

    point: Point2
    axis: int
    left: Optional["KDTreeNode"] = None
    right: Optional["KDTreeNode"] = None


def build_kd_tree(points: Iterable[Point2], depth: int = 0) -> Optional[KDTreeNode]:
    """Build a k-d tree by splitting on the median, alternating x and y."""
    axis = depth % 2
    ordered = sorted(points, key=(lambda p: p.x) if axis == 0 else (lambda p: p.y))
    if not ordered:
        return None
    mid = len(ordered) // 2
    node = KDTreeNode(ordered[mid], axis)
    node.left = build_kd_tree(ordered[:mid], depth + 1)
    node.right = build_kd_tree(ordered[mid + 1:], depth + 1)
    return node


def euclidean_dis(x1: float, y1: float, x2: float, y2: float) -> float:
    return math.sqrt((x1 - x2) ** 2 + (y1 - y2) ** 2)


def manhattan_dis(x1: float, y1: float, x2: float, y2: float) -> float:
    return float(abs(x1 - x2) + abs(y1 - y2))


def diagonal_dis(x1: float, y1: float, x2: float, y2: float) -> float:
    """Diagonal-distance heuristic as the planner evaluates it.

    The expression yields the smaller offset when the x offset scaled by
    sqrt(2) exceeds the y offset, and the x offset otherwise.
    """
    adx, ady = abs(x1 - x2), abs(y1 - y2)
    if math.sqrt(2) * adx > ady:
        return float(ady)
    return float(ady if adx + adx + ady - 2 * adx > ady else adx)


def get_min_dis_index(
    start_num: int, current_pose: Sequence[float], path: Sequence[Sequence[float]]
) -> int:
    """Index of the path point nearest to the pose, searching from start_num on.

    Returns 0 when no point lies at or after start_num.
    """
    best_index, best_dis = 0, math.inf
    start = max(start_num, 0)
    for index, point in enumerate(path[start:], start=start):
        dis = euclidean_dis(point[0], point[1], current_pose[0], current_pose[1])
        if dis < best_dis:
            best_dis, best_index = dis, index
    return best_index


class MarkerType(IntEnum):
    ARROW = 0
    CUBE = 1
    SPHERE = 2
    CYLINDER = 3
    LINE_STRIP = 4
    LINE_LIST = 5
    CUBE_LIST = 6
    SPHERE_LIST = 7
    POINTS = 8


class MarkerAction(IntEnum):
    ADD = 0
    MODIFY = 0
    DELETE = 2
    DELETEALL = 3


@dataclass
class Marker:
    """A visualisation marker: a typed, coloured list of points in a frame."""

    type: MarkerType = MarkerType.ARROW
    action: MarkerAction = MarkerAction.ADD
    frame_id: str = ""
    ns: str = ""
    id: int = 0
    stamp: float = 0.0
    lifetime: float = 0.0
    color: tuple = (0.0, 0.0, 0.0, 0.0)
    scale: tuple = (0.0, 0.0)
    orientation_w: float = 1.0
    points: list = field(default_factory=list)


_MARKER_TYPES = {
    "line_list": MarkerType.LINE_LIST,
    "line": MarkerType.LINE_STRIP,
    "point": MarkerType.SPHERE_LIST,
}


def create_visual_marker(
    alpha: float,
    color: Sequence[float],
    scale: Sequence[float],
    frame_id: str,
    marker_type: str,
    marker_id: int = 0,
) -> Marker:
    """Create an empty marker of type "line_list", "line" or "point".

    Only point markers carry a y scale; an unknown type leaves the default type.
    """
    return Marker(
        type=_MARKER_TYPES.get(marker_type, MarkerType.ARROW),
        action=MarkerAction.ADD,
        frame_id=frame_id,
        ns=frame_id,
        id=marker_id,
        stamp=time.time(),
        color=(color[0], color[1], color[2], alpha),
        scale=(scale[0], scale[1] if marker_type == "point" else 0.0),
        orientation_w=1.0,
    )


class MapInfoTool:
    """Coordinate conversion and collision queries over an occupancy grid."""

    def __init__(self, grid=None, origin_x: float = 0.0, origin_y: float = 0.0,
                 resolution: float = 1.0):
        self.origin_x = origin_x
        self.origin_y = origin_y
        self.resolution = resolution
        self._grid: Optional[np.ndarray] = None
        if grid is not None:
            self.set_map(grid)

    @property
    def grid(self) -> Optional[np.ndarray]:
        return self._grid

    def set_map(self, grid) -> None:
        self._grid = np.array(grid, dtype=int)

    def _require_map(self) -> np.ndarray:
        if self._grid is None:
            raise RuntimeError("no map has been set")
        return self._grid

    def world_to_map(self, x: float, y: float) -> Point2:
        return Point2(int((x - self.origin_x) / self.resolution),
                      int((y - self.origin_y) / self.resolution))

    def map_to_world(self, x: int, y: int) -> Point2:
        return Point2(x * self.resolution + self.origin_x,
                      y * self.resolution + self.origin_y)

    def in_boundary(self, x: int, y: int) -> bool:
        rows, cols = self._require_map().shape
        return 0 <= x < rows and 0 <= y < cols

    def has_obstacle(self, x: int, y: int) -> bool:
        return bool(self._require_map()[x, y] != 0)

    def is_line_available(self, x1: int, y1: int, x2: int, y2: int) -> bool:
        """Walk the Bresenham line (end cell excluded) and report whether it is free."""
        steep = abs(y2 - y1) > abs(x2 - x1)
        if steep:
            x1, y1 = y1, x1
            x2, y2 = y2, x2
        if x1 > x2:
            x1, x2 = x2, x1
            y1, y2 = y2, y1
        delta_x = x2 - x1
        if delta_x == 0:
            return True
        delta_error = abs(y2 - y1) / delta_x
        y_step = 1 if y1 < y2 else -1
        error = 0.0
        y_k = y1
        for x in range(x1, x2):
            cell = (y_k, x) if steep else (x, y_k)
            if not self.in_boundary(*cell) or self.has_obstacle(*cell):
                return False
            error += delta_error
            if error >= 0.5:
                y_k += y_step
                error -= 1.0
        return True