"""Grid A* global planner and the common global-planner base."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .util import MapInfoTool, Point3d, euclidean_dis


class PlanningError(RuntimeError):
    """Raised when a planner cannot produce a path."""


class GlobalPlanner(ABC):
    """A planner that searches an occupancy grid from a start cell to a goal cell.

    The grid is indexed as ``grid[x, y]``; cells holding a positive value are
    obstacles.
    """

    def __init__(self, grid, start: Sequence[int], goal: Sequence[int],
                 origin_x: float = 0.0, origin_y: float = 0.0, resolution: float = 1.0):
        self.grid = np.array(grid, dtype=int)
        if self.grid.ndim != 2:
            raise ValueError("the occupancy grid must be two-dimensional")
        self.start: Tuple[int, int] = (int(start[0]), int(start[1]))
        self.goal: Tuple[int, int] = (int(goal[0]), int(goal[1]))
        self.origin_x = origin_x
        self.origin_y = origin_y
        self.resolution = resolution
        self.map_tool = MapInfoTool(self.grid, origin_x, origin_y, resolution)

    @abstractmethod
    def get_plan(self) -> List[Point3d]:
        """Return the planned path in world coordinates."""


@dataclass(eq=False)
class AstarNode:
    """A search node on the grid together with its costs and parent."""

    x: int
    y: int
    g_cost: float = 0.0
    h_cost: float = 0.0
    f_cost: float = 0.0
    parent: Optional["AstarNode"] = None


class AStar(GlobalPlanner):
    """Eight-connected A* search over the occupancy grid."""

    def __init__(self, grid, start: Sequence[int], goal: Sequence[int],
                 origin_x: float = 0.0, origin_y: float = 0.0, resolution: float = 1.0):
        super().__init__(grid, start, goal, origin_x, origin_y, resolution)
        self._reset()

    def _reset(self) -> None:
        self.open_set: List[AstarNode] = []
        self.close_set: List[AstarNode] = []
        self.open_set_map = np.zeros(self.grid.shape, dtype=bool)
        self.close_set_map = np.zeros(self.grid.shape, dtype=bool)

    def get_node_cost(self, node: AstarNode) -> float:
        """Distance from the start to the node plus distance from the node to the goal."""
        return (euclidean_dis(node.x, node.y, *self.start)
                + euclidean_dis(node.x, node.y, *self.goal))

    def neighbor_search(self, node: AstarNode) -> bool:
        """Open the free neighbours of node; True once the goal is among them.

        The heuristic of every neighbour is measured from node itself, and a
        neighbour that is already open keeps the cost it was opened with.
        """
        rows, cols = self.grid.shape
        h_cost = euclidean_dis(node.x, node.y, *self.goal)
        for i in (-1, 0, 1):
            x = node.x + i
            if not 0 <= x < rows:
                continue
            for j in (-1, 0, 1):
                if i == 0 and j == 0:
                    continue
                y = node.y + j
                if not 0 <= y < cols:
                    continue
                g_cost = node.g_cost + math.hypot(i, j)
                neighbor = AstarNode(x, y, g_cost, h_cost, g_cost + h_cost, node)
                if (x, y) == self.goal:
                    self.open_set.append(neighbor)
                    return True
                if self.grid[x, y] > 0 or self.close_set_map[x, y] or self.open_set_map[x, y]:
                    continue
                self.open_set.append(neighbor)
                self.open_set_map[x, y] = True
        return False

    def get_path(self, node: AstarNode) -> List[Point3d]:
        """Follow parents back to the start; the start cell itself is left out."""
        path: List[Point3d] = []
        current: Optional[AstarNode] = node
        while (current.x, current.y) != self.start:
            world = self.map_tool.map_to_world(current.x, current.y)
            path.append(Point3d.from_point2(world))
            current = current.parent
            if current is None:
                raise PlanningError("node chain does not lead back to the start")
        path.reverse()
        return path

    def _select_index(self) -> int:
        # Costs are compared at integer precision; the first of the cheapest wins.
        return min(enumerate(self.open_set), key=lambda item: math.floor(item[1].f_cost))[0]

    def get_plan(self) -> List[Point3d]:
        self._reset()
        sx, sy = self.start
        if not self.map_tool.in_boundary(sx, sy):
            raise PlanningError("start point is outside the map")
        if self.grid[sx, sy] > 0:
            raise PlanningError("start point is in an obstacle")

        self.open_set.append(AstarNode(sx, sy))
        self.open_set_map[sx, sy] = True

        while True:
            if not self.open_set:
                raise PlanningError("no path to the goal")
            index = self._select_index()
            current = self.open_set[index]
            if (current.x, current.y) == self.goal:
                break
            self.close_set.append(current)
            self.close_set_map[current.x, current.y] = True
            del self.open_set[index]
            self.open_set_map[current.x, current.y] = False
            if self.neighbor_search(current):
                current = self.open_set[-1]
                break

        return self.get_path(current)