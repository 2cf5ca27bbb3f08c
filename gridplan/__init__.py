"""Path planning, smoothing and tracking on 2-D occupancy grids."""

__version__ = "0.1.0"
__all__ = ["astar", "controllers", "local_planner", "optim", "util"]