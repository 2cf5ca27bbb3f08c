# gridplan

Path planning on 2-D occupancy grids.

gridplan is a library. Its modules are:

- `gridplan.astar`: `AStar` runs an 8-connected A* search from a start cell to a goal cell. `get_plan()` returns the path as a list of `Point3d` in world coordinates. The start cell is left out of the path. The search raises `PlanningError` when the start is outside the map or inside an obstacle, or when the goal cannot be reached. `GlobalPlanner` is the abstract base class for planners of this kind.
- `gridplan.optim`: path smoothers that share the `Optimizer` base class. Each one has a `process()` method that returns a new list of `Point3d`.
  - `BSpline(path, num_samples)` evaluates a clamped cubic B-spline that uses the path points as its control points.
  - `Bezier(path, num_samples)` builds a piecewise cubic Bézier curve. The curve has continuous tangents at the path points.
  - `QP(lower_bound, upper_bound, weight_smooth, weight_length, weight_ref, path)` balances three terms: smoothness, length and distance from the reference path. Each coordinate may move only within `[lower_bound, upper_bound]` of its reference value, and the first point stays fixed. `build_problem()` returns the matrices of the problem as a `QPProblem`. `process()` solves it with SciPy's bounded least squares.
- `gridplan.local_planner`: local planners that create candidate paths from the current pose.
  - `OnlineLocalPlanner` fits quintic polynomials from the pose to end points spread along a line ahead.
  - `OfflineLocalPlanner` builds three-segment fans of end points and interpolates each fan with a B-spline.
  - `process(radius, pos, pos_ahead)` returns a `LocalPlanResult`, which holds `paths` and `destinations` in world coordinates.
  - `get_best_path(current_index, paths)` picks the candidate with the best score. The score rewards closeness to the reference path and penalises obstacles near the path.
  - `local_to_global` and `global_to_local` convert points between the world frame and the frame aligned with the heading.
- `gridplan.controllers`: path-tracking controllers, `PurePursuit` and `Stanley`. Both derive from `Controller(path, current_pos, current_radian)`. `control()` returns a `(linear, angular)` velocity pair and raises `ValueError` when the path is empty. `Stanley` returns `(0.0, 0.0)` once the nearest path point is the last one.
- `gridplan.util`: shared helpers.
  - The point types `Point2` and `Point3d`.
  - The distance functions `euclidean_dis`, `manhattan_dis` and `diagonal_dis`.
  - `get_min_dis_index`, which finds the nearest path point.
  - `build_kd_tree` and `KDTreeNode`, for 2-D k-d trees.
  - `create_visual_marker`, which builds plain `Marker` records.
  - `MapInfoTool`, which converts between world and map coordinates, tests bounds and obstacles, and checks line of sight along a Bresenham line with `is_line_available`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Grids and coordinates

A grid is a 2-D integer array, for example a NumPy array. Cells are indexed `grid[x, y]`: the first index is the row and the second is the column. A value of `0` marks a free cell. The planners treat positive values as obstacles, and `MapInfoTool.has_obstacle` treats any non-zero value as one.

An origin and a resolution relate world coordinates to map coordinates:

```
map_x = int((x - origin_x) / resolution)
world_x = map_x * resolution + origin_x
```

## Example

```python
import numpy as np

from gridplan.astar import AStar
from gridplan.optim import BSpline
from gridplan.util import MapInfoTool

grid = np.zeros((20, 20), dtype=int)
grid[5:15, 10] = 1  # a wall

planner = AStar(grid, (2, 2), (18, 18), origin_x=0.0, origin_y=0.0, resolution=0.05)
path = planner.get_plan()  # list of Point3d in world coordinates

smooth = BSpline(path, 50).process()

tool = MapInfoTool(grid, 0.0, 0.0, 0.05)
print(tool.is_line_available(0, 0, 19, 0))  # True
```

## What it does not do

gridplan is only a library of algorithms. It has:

- no command-line program;
- no process that receives maps, poses or goals from a robot or a message bus;
- no process that publishes paths or velocity commands;
- no probabilistic roadmap sampler.

`Marker` objects are plain data records. Nothing in the package draws or sends them. You provide the grids and poses, and you call the planners, smoothers and controllers from your own code.