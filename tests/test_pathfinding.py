"""
Pathfinder tests: grid search, access control, quarantine and bounds.
No pygame dependency: imports only logic from cart_simulation.
"""

from cart_simulation import (
    Agent, CellKind, HospitalMap, build_demo_map, build_floor, find_path,
    find_nearest_charger, find_nearest_staging, paint_cells, path_battery_drain,
    path_length, path_travel_time, verify_floor,
)
from cart_simulation.hospital_map import Charger, StagingArea
from cart_simulation.map_builder import rect, vline


# -- Helpers ----------------------------------------------------------

def _open_floor(width=5, height=5):
    return build_floor("f1", width, height, walkable=True)


def _agent(profiles=("GENERAL",), pos=(0, 0)):
    return Agent("a1", pos, "f1", access_profiles=list(profiles))


def _assert_adjacent(path):
    for (x1, y1), (x2, y2) in zip(path, path[1:]):
        assert abs(x1 - x2) + abs(y1 - y2) == 1


# -- Grid search ------------------------------------------------------

def test_open_grid_shortest_path():
    floor = _open_floor()
    path = find_path(floor, (0, 0), (4, 4))
    assert path is not None
    assert path[0] == (0, 0)
    assert path[-1] == (4, 4)
    assert path_length(path) == 8
    _assert_adjacent(path)


def test_start_equals_goal():
    floor = _open_floor()
    assert find_path(floor, (2, 2), (2, 2)) == [(2, 2)]


def test_wall_with_gap_routes_through_gap():
    floor = _open_floor()
    paint_cells(floor, vline(2, 0, 3), CellKind.OBSTACLE)
    path = find_path(floor, (0, 0), (4, 0))
    assert path is not None
    assert (2, 4) in path
    assert all(floor.cell_at(p).is_open for p in path)
    _assert_adjacent(path)


def test_full_wall_no_path():
    floor = _open_floor()
    paint_cells(floor, vline(2, 0, 4), CellKind.OBSTACLE)
    assert find_path(floor, (0, 0), (4, 0)) is None


def test_out_of_bounds_returns_none():
    floor = _open_floor()
    assert find_path(floor, (0, 0), (5, 0)) is None
    assert find_path(floor, (-1, 0), (4, 0)) is None


def test_goal_on_obstacle_returns_none():
    floor = _open_floor()
    paint_cells(floor, [(4, 4)], CellKind.OBSTACLE)
    assert find_path(floor, (0, 0), (4, 4)) is None


# -- Access control ---------------------------------------------------

def test_restricted_goal_needs_profile():
    floor = _open_floor()
    paint_cells(floor, [(4, 4)], CellKind.RESTRICTED, ["ICU"])
    assert find_path(floor, (0, 0), (4, 4), _agent(["GENERAL"])) is None
    assert find_path(floor, (0, 0), (4, 4), _agent(["GENERAL", "ICU"])) is not None


def test_restricted_cells_ignored_without_agent():
    floor = _open_floor()
    paint_cells(floor, [(4, 4)], CellKind.RESTRICTED, ["ICU"])
    assert find_path(floor, (0, 0), (4, 4)) is not None


def test_restricted_band_forces_detour():
    floor = _open_floor()
    # Row 2 restricted except the rightmost cell
    paint_cells(floor, rect(0, 2, 3, 2), CellKind.RESTRICTED, ["OR"])
    path = find_path(floor, (0, 0), (0, 4), _agent())
    assert path is not None
    assert (4, 2) in path
    assert path_length(path) == 12


def test_restricted_without_profile_list_is_open():
    floor = _open_floor()
    paint_cells(floor, [(4, 4)], CellKind.RESTRICTED, [])
    assert find_path(floor, (0, 0), (4, 4), _agent()) is not None


def test_quarantine_blocks_every_agent():
    floor = _open_floor()
    paint_cells(floor, [(4, 4)], CellKind.QUARANTINE)
    assert find_path(floor, (0, 0), (4, 4)) is None
    assert find_path(floor, (0, 0), (4, 4), _agent(["GENERAL", "ICU", "OR"])) is None


def test_quarantine_wall_with_gap():
    floor = _open_floor()
    paint_cells(floor, vline(2, 1, 4), CellKind.QUARANTINE)
    path = find_path(floor, (0, 4), (4, 4))
    assert path is not None
    assert (2, 0) in path


# -- Facilities and demo floor -----------------------------------------

def test_nearest_charger_by_path_distance():
    floor = _open_floor()
    paint_cells(floor, vline(1, 0, 3), CellKind.OBSTACLE)
    # (0, 0) is nearer in a straight line but the wall makes it 10 steps away
    chargers = [Charger("behind-wall", (0, 0), "f1"), Charger("open", (4, 3), "f1")]
    found = find_nearest_charger(floor, (2, 0), chargers)
    assert found is not None
    charger, dist = found
    assert charger.id == "open"
    assert dist == 5


def test_nearest_charger_none_when_unreachable():
    floor = _open_floor()
    paint_cells(floor, vline(2, 0, 4), CellKind.OBSTACLE)
    assert find_nearest_charger(floor, (0, 0), [Charger("c", (4, 0), "f1")]) is None


def test_demo_map_facilities_connected():
    hospital_map = build_demo_map()
    floor = hospital_map.get_floor("floor-1")
    assert floor.width == 40
    assert floor.height == 30
    assert verify_floor(floor, hospital_map)


def test_demo_map_icu_needs_profile():
    hospital_map = build_demo_map()
    floor = hospital_map.get_floor("floor-1")
    ward_cart = Agent("a", (10, 15), "floor-1", access_profiles=["GENERAL", "WARD"])
    icu_cart = Agent("b", (10, 15), "floor-1", access_profiles=["GENERAL", "ICU"])
    assert find_path(floor, (10, 15), (5, 5), ward_cart) is None
    path = find_path(floor, (10, 15), (5, 5), icu_cart)
    assert path is not None
    assert (5, 11) in path


def test_hospital_map_lookups():
    hospital_map = HospitalMap(floors=[_open_floor()], chargers=[Charger("c", (1, 1), "f1")])
    assert hospital_map.get_floor("missing") is None
    assert hospital_map.charger_at("f1", (1, 1)).id == "c"
    assert hospital_map.charger_at("f1", (2, 2)) is None


def test_path_cost_helpers():
    path = [(0, 0), (1, 0), (2, 0), (2, 1)]
    assert path_length(path) == 3
    assert path_length([(0, 0)]) == 0
    assert path_travel_time(path, 1.5) == 2.0
    assert abs(path_battery_drain(path, 0.2) - 0.6) < 1e-9


def test_nearest_staging_skips_other_floors():
    floor = _open_floor()
    areas = [StagingArea("upstairs", (0, 1), "f2"), StagingArea("here", (4, 4), "f1")]
    area, dist = find_nearest_staging(floor, (0, 0), areas)
    assert area.id == "here"
    assert dist == 8
