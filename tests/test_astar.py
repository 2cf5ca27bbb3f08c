import math

import numpy as np
import pytest

from gridplan.astar import AStar, AstarNode, GlobalPlanner, PlanningError


def _cells(planner, path):
    return [(planner.map_tool.world_to_map(p.x, p.y).x,
             planner.map_tool.world_to_map(p.x, p.y).y) for p in path]


def _assert_connected(start, cells):
    previous = start
    for cell in cells:
        assert max(abs(cell[0] - previous[0]), abs(cell[1] - previous[1])) == 1
        previous = cell


def test_open_grid_reaches_goal():
    planner = AStar(np.zeros((5, 5)), (0, 0), (4, 4))
    path = planner.get_plan()
    cells = _cells(planner, path)
    assert cells[-1] == (4, 4)
    assert (0, 0) not in cells
    _assert_connected((0, 0), cells)


def test_path_points_have_zero_yaw():
    planner = AStar(np.zeros((4, 4)), (0, 0), (3, 2))
    path = planner.get_plan()
    assert all(p.yaw == 0.0 for p in path)


def test_start_equals_goal_gives_empty_path():
    planner = AStar(np.zeros((3, 3)), (1, 1), (1, 1))
    assert planner.get_plan() == []


def test_start_in_obstacle_raises():
    grid = np.zeros((3, 3))
    grid[0, 0] = 100
    with pytest.raises(PlanningError):
        AStar(grid, (0, 0), (2, 2)).get_plan()


def test_start_outside_map_raises():
    with pytest.raises(PlanningError):
        AStar(np.zeros((3, 3)), (5, 0), (2, 2)).get_plan()


def test_enclosed_goal_raises():
    grid = np.zeros((5, 5))
    grid[3, 3] = grid[3, 4] = grid[4, 3] = 100
    with pytest.raises(PlanningError):
        AStar(grid, (0, 0), (4, 4)).get_plan()


def test_wall_with_gap_is_avoided():
    grid = np.zeros((7, 7))
    grid[3, :6] = 100
    planner = AStar(grid, (0, 0), (6, 0))
    cells = _cells(planner, planner.get_plan())
    assert cells[-1] == (6, 0)
    assert all(grid[x, y] == 0 for x, y in cells)
    assert (3, 6) in cells
    _assert_connected((0, 0), cells)


def test_negative_cells_are_free():
    grid = -np.ones((4, 4))
    planner = AStar(grid, (0, 0), (3, 3))
    cells = _cells(planner, planner.get_plan())
    assert cells[-1] == (3, 3)


def test_world_coordinates_use_origin_and_resolution():
    planner = AStar(np.zeros((4, 4)), (0, 0), (2, 2), origin_x=1.0, origin_y=2.0,
                    resolution=0.5)
    path = planner.get_plan()
    expected = planner.map_tool.map_to_world(2, 2)
    assert (path[-1].x, path[-1].y) == pytest.approx((expected.x, expected.y))


def test_get_node_cost_sums_both_distances():
    planner = AStar(np.zeros((5, 5)), (0, 0), (3, 4))
    assert planner.get_node_cost(AstarNode(0, 0)) == pytest.approx(5.0)
    node = AstarNode(3, 4)
    assert planner.get_node_cost(node) == planner.get_node_cost(AstarNode(0, 0))


def test_neighbor_search_opens_corner_neighbours():
    planner = AStar(np.zeros((5, 5)), (0, 0), (4, 4))
    found = planner.neighbor_search(AstarNode(0, 0))
    assert found is False
    assert {(n.x, n.y) for n in planner.open_set} == {(0, 1), (1, 0), (1, 1)}
    diagonal = next(n for n in planner.open_set if (n.x, n.y) == (1, 1))
    assert diagonal.g_cost == pytest.approx(math.sqrt(2))
    assert diagonal.f_cost == pytest.approx(diagonal.g_cost + diagonal.h_cost)


def test_neighbor_search_reports_goal():
    planner = AStar(np.zeros((3, 3)), (0, 0), (1, 1))
    start = AstarNode(0, 0)
    assert planner.neighbor_search(start) is True
    goal = planner.open_set[-1]
    assert (goal.x, goal.y) == (1, 1)
    assert goal.parent is start


def test_neighbor_search_skips_obstacles():
    grid = np.zeros((3, 3))
    grid[0, 1] = 100
    planner = AStar(grid, (0, 0), (2, 2))
    planner.neighbor_search(AstarNode(0, 0))
    assert (0, 1) not in {(n.x, n.y) for n in planner.open_set}


def test_get_path_follows_parents():
    planner = AStar(np.zeros((4, 4)), (0, 0), (2, 2))
    start = AstarNode(0, 0)
    mid = AstarNode(1, 1, parent=start)
    end = AstarNode(2, 2, parent=mid)
    path = planner.get_path(end)
    assert [(p.x, p.y) for p in path] == [(1.0, 1.0), (2.0, 2.0)]


def test_get_path_broken_chain_raises():
    planner = AStar(np.zeros((4, 4)), (0, 0), (2, 2))
    with pytest.raises(PlanningError):
        planner.get_path(AstarNode(2, 2))


def test_planner_can_run_twice():
    planner = AStar(np.zeros((5, 5)), (0, 0), (4, 2))
    first = _cells(planner, planner.get_plan())
    second = _cells(planner, planner.get_plan())
    assert second[-1] == (4, 2)
    _assert_connected((0, 0), second)
    assert second == first


def test_base_class_is_abstract():
    with pytest.raises(TypeError):
        GlobalPlanner(np.zeros((2, 2)), (0, 0), (1, 1))


def test_grid_must_be_two_dimensional():
    with pytest.raises(ValueError):
        AStar(np.zeros(4), (0, 0), (1, 1))