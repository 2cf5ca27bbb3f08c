"""Path-tracking controllers producing linear and angular velocity commands."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

from .util import euclidean_dis, get_min_dis_index


class Controller(ABC):
    """Tracks a path of (x, y) points from the current position and heading."""

    def __init__(self, path: Sequence[Sequence[float]], current_pos: Sequence[float],
                 current_radian: float):
        self.path: List[Tuple[float, float]] = [(p[0], p[1]) for p in path]
        self.current_pos: Tuple[float, float] = (current_pos[0], current_pos[1])
        self.current_radian = current_radian
        self.last_index = 0

    def _require_path(self) -> None:
        if not self.path:
            raise ValueError("path is empty")

    @abstractmethod
    def control(self) -> Tuple[float, float]:
        """Return the (linear, angular) velocity command for the current state."""


class PurePursuit(Controller):
    """Pure-pursuit steering towards a look-ahead point on the path."""

    GAIN = 3.0
    SPEED = 0.5
    LOOK_AHEAD_OFFSET = 1.0
    WHEEL_BASE = 2.0

    def control(self) -> Tuple[float, float]:
        self._require_path()
        ld = self.GAIN * self.SPEED + self.LOOK_AHEAD_OFFSET
        cx, cy = self.current_pos
        ahead_pos = (cx + ld * math.sin(self.current_radian),
                     cy + ld * math.cos(self.current_radian))

        ahead_index = get_min_dis_index(self.last_index, ahead_pos, self.path)
        self.last_index = ahead_index

        last = len(self.path) - 1
        while True:
            dis = euclidean_dis(cx, cy, *self.path[ahead_index])
            if dis >= ld:
                break
            ahead_index += 1
            if ahead_index >= last:
                ahead_index = last
                dis = euclidean_dis(cx, cy, *self.path[ahead_index])
                break

        px, py = self.path[ahead_index]
        alpha = math.atan2(py - cy, px - cx) - self.current_radian
        delta = math.atan2(2 * self.WHEEL_BASE * math.sin(alpha), dis)
        return self.SPEED, delta


class Stanley(Controller):
    """Stanley steering from cross-track and heading error."""

    GAIN = 0.1
    SPEED = 0.5
    HEADING_WEIGHT = 0.3

    def control(self) -> Tuple[float, float]:
        self._require_path()
        cx, cy = self.current_pos
        index = get_min_dis_index(self.last_index, self.current_pos, self.path)
        self.last_index = index

        px, py = self.path[index]
        e_y = euclidean_dis(cx, cy, px, py)
        side = (cy - py) * math.cos(self.current_radian) - (cx - px) * math.sin(self.current_radian)
        if side > 0:
            e_y = -e_y

        if index > 0:
            qx, qy = self.path[index - 1]
            path_radian = math.atan2(py - qy, px - qx)
        else:
            path_radian = math.atan2(py, px)

        theta_e = path_radian - self.current_radian
        delta = math.atan2(self.GAIN * e_y, self.SPEED) + theta_e * self.HEADING_WEIGHT
        if delta > math.pi:
            delta -= 2 * math.pi
        elif delta < -math.pi:
            delta += 2 * math.pi

        if index == len(self.path) - 1:
            return 0.0, 0.0
        return self.SPEED, delta