import math

import numpy as np
import pytest

from gridplan.util import (
    MapInfoTool,
    MarkerType,
    Point2,
    build_kd_tree,
    create_visual_marker,
    diagonal_dis,
    euclidean_dis,
    get_min_dis_index,
    manhattan_dis,
)


def test_euclidean_pinned_value():
    assert euclidean_dis(0, 0, 3, 4) == pytest.approx(5.0)


def test_euclidean_symmetric_and_below_manhattan():
    a = euclidean_dis(1.5, -2.0, 4.0, 7.5)
    b = euclidean_dis(4.0, 7.5, 1.5, -2.0)
    assert a == pytest.approx(b)
    assert manhattan_dis(1.5, -2.0, 4.0, 7.5) >= a


def test_manhattan_symmetric():
    assert manhattan_dis(2, 3, -4, 9) == manhattan_dis(-4, 9, 2, 3)


def test_diagonal_returns_y_offset_when_x_dominates():
    assert diagonal_dis(0, 0, 5, 2) == 2


def test_diagonal_returns_x_offset_when_y_dominates():
    assert diagonal_dis(0, 0, 1, 5) == 1


def test_get_min_dis_index_finds_nearest():
    path = [(0.0, 0.0), (1.0, 0.0), (2.0, 0.0), (3.0, 0.0)]
    assert get_min_dis_index(0, path[2], path) == 2


def test_get_min_dis_index_respects_start():
    path = [(0.0, 0.0), (1.0, 0.0), (2.0, 0.0), (3.0, 0.0)]
    start = 2
    assert get_min_dis_index(start, path[0], path) == start


def test_get_min_dis_index_start_past_end_gives_zero():
    path = [(0.0, 0.0), (1.0, 0.0)]
    assert get_min_dis_index(len(path) + 3, (1.0, 0.0), path) == 0


def test_point_marker_keeps_both_scales():
    m = create_visual_marker(0.5, (0.1, 0.2, 0.3), (0.4, 0.6), "map", "point", 7)
    assert m.type == MarkerType.SPHERE_LIST
    assert m.scale == (0.4, 0.6)
    assert m.color == (0.1, 0.2, 0.3, 0.5)
    assert m.id == 7
    assert m.ns == "map" and m.frame_id == "map"
    assert m.points == []


def test_line_markers_drop_y_scale():
    strip = create_visual_marker(1.0, (1, 0, 0), (0.4, 0.6), "map", "line")
    lst = create_visual_marker(1.0, (1, 0, 0), (0.4, 0.6), "map", "line_list")
    assert strip.type == MarkerType.LINE_STRIP
    assert lst.type == MarkerType.LINE_LIST
    assert strip.scale[1] == lst.scale[1] == 0.0
    assert strip.scale[0] == 0.4


def test_unknown_marker_type_is_default():
    m = create_visual_marker(1.0, (1, 0, 0), (0.4, 0.6), "map", "blob")
    assert m.type == MarkerType.ARROW


def _collect(node, out):
    if node is None:
        return
    out.append(node.point)
    _collect(node.left, out)
    _collect(node.right, out)


def _subtree(node):
    out = []
    _collect(node, out)
    return out


def _check_split(node):
    if node is None:
        return
    key = (lambda p: p.x) if node.axis == 0 else (lambda p: p.y)
    assert all(key(p) <= key(node.point) for p in _subtree(node.left))
    assert all(key(p) >= key(node.point) for p in _subtree(node.right))
    _check_split(node.left)
    _check_split(node.right)


def test_kd_tree_holds_all_points_and_splits():
    points = [Point2(x, y) for x, y in [(3, 1), (7, 2), (1, 9), (4, 4), (8, 8), (2, 6), (5, 0)]]
    root = build_kd_tree(points)
    assert root.axis == 0
    assert sorted(_subtree(root), key=lambda p: (p.x, p.y)) == sorted(
        points, key=lambda p: (p.x, p.y))
    _check_split(root)


def test_kd_tree_empty():
    assert build_kd_tree([]) is None


def test_world_map_round_trip():
    tool = MapInfoTool(np.zeros((10, 10)), origin_x=-2.0, origin_y=1.0, resolution=0.5)
    world = tool.map_to_world(4, 7)
    assert tool.world_to_map(world.x + 0.1, world.y + 0.1) == Point2(4, 7)


def test_boundary_and_obstacle():
    grid = np.zeros((4, 6), dtype=int)
    grid[2, 5] = 100
    tool = MapInfoTool(grid)
    assert tool.in_boundary(3, 5)
    assert not tool.in_boundary(4, 0)
    assert not tool.in_boundary(0, -1)
    assert tool.has_obstacle(2, 5)
    assert not tool.has_obstacle(2, 4)


def test_queries_without_map_raise():
    with pytest.raises(RuntimeError):
        MapInfoTool().in_boundary(0, 0)


def test_line_free_and_blocked():
    grid = np.zeros((10, 10), dtype=int)
    tool = MapInfoTool(grid)
    assert tool.is_line_available(0, 0, 9, 9)
    assert tool.is_line_available(0, 0, 9, 0)
    grid[5, 5] = 1
    tool.set_map(grid)
    assert not tool.is_line_available(0, 0, 9, 9)
    assert not tool.is_line_available(9, 9, 0, 0)
    assert tool.is_line_available(0, 0, 9, 0)


def test_steep_line_blocked():
    grid = np.zeros((10, 10), dtype=int)
    grid[0, 4] = 1
    tool = MapInfoTool(grid)
    assert not tool.is_line_available(0, 0, 0, 9)
    assert tool.is_line_available(1, 0, 1, 9)


def test_line_leaving_map_is_unavailable():
    tool = MapInfoTool(np.zeros((10, 10), dtype=int))
    assert not tool.is_line_available(0, 0, 15, 0)


def test_degenerate_line_is_available():
    tool = MapInfoTool(np.ones((3, 3), dtype=int))
    assert tool.is_line_available(1, 1, 1, 1)