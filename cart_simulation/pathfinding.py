"""A* pathfinding on a hospital floor grid."""

from __future__ import annotations

import heapq
from typing import TYPE_CHECKING, Iterable, TypeVar

if TYPE_CHECKING:
    from .hospital_map import Floor, GridCell
    from .models import Agent

Position = tuple[int, int]
F = TypeVar("F")

_NEIGHBOR_OFFSETS = ((1, 0), (-1, 0), (0, 1), (0, -1))


def is_traversable(cell: GridCell, agent: Agent | None = None) -> bool:
    """Return ``True`` if *agent* (or any agent, when ``None``) may enter *cell*.

    Obstacles and quarantine are absolute. Restricted cells are checked only
    when an agent is given, and only if the cell lists required profiles.
    """
    if not cell.is_open:
        return False
    if cell.is_restricted and agent is not None:
        required = cell.restricted_access_profiles
        if required and not agent.access_profiles.intersection(required):
            return False
    return True


def find_path(
    floor: Floor,
    start: Position,
    goal: Position,
    agent: Agent | None = None,
) -> list[Position] | None:
    """A* with Manhattan heuristic and unit step cost over the 4-connected grid.

    Returns list of ``(x, y)`` from *start* to *goal* inclusive, or ``None`` if no path.
    Equal f-scores are expanded in discovery order.
    """
    if not floor.in_bounds(start) or not floor.in_bounds(goal):
        return None
    goal_cell = floor.cell_at(goal)
    if goal_cell is None or not is_traversable(goal_cell, agent):
        return None

    def h(node: Position) -> int:
        return abs(node[0] - goal[0]) + abs(node[1] - goal[1])

    counter = 0
    open_set: list[tuple[int, int, Position]] = [(h(start), counter, start)]
    came_from: dict[Position, Position] = {}
    g_score: dict[Position, int] = {start: 0}
    closed: set[Position] = set()

    while open_set:
        _, _, current = heapq.heappop(open_set)
        if current in closed:
            continue

        if current == goal:
            path: list[Position] = [current]
            while current in came_from:
                current = came_from[current]
                path.append(current)
            path.reverse()
            return path

        closed.add(current)
        for dx, dy in _NEIGHBOR_OFFSETS:
            neighbor = (current[0] + dx, current[1] + dy)
            if neighbor in closed:
                continue
            cell = floor.cell_at(neighbor)
            if cell is None or not is_traversable(cell, agent):
                continue
            tentative_g = g_score[current] + 1
            if tentative_g < g_score.get(neighbor, float("inf")):
                came_from[neighbor] = current
                g_score[neighbor] = tentative_g
                counter += 1
                heapq.heappush(open_set, (tentative_g + h(neighbor), counter, neighbor))

    return None


def path_length(path: list[Position]) -> int:
    """Number of steps (cells moved) along *path*."""
    return max(len(path) - 1, 0)


def path_travel_time(path: list[Position], speed: float) -> float:
    return path_length(path) / speed


def path_battery_drain(path: list[Position], drain_rate: float) -> float:
    return path_length(path) * drain_rate


def can_complete_path_with_battery(
    path: list[Position],
    battery: float,
    drain_rate: float,
    min_remaining: float = 10.0,
) -> bool:
    return battery - path_battery_drain(path, drain_rate) >= min_remaining


def find_nearest_facility(
    floor: Floor,
    pos: Position,
    facilities: Iterable[F],
    agent: Agent | None = None,
) -> tuple[F, int] | None:
    """Return ``(facility, distance)`` for the closest reachable facility on *floor*.

    Distance is the A* path length, not the straight-line distance; ties keep
    the first facility listed.
    """
    best: tuple[F, int] | None = None
    for facility in facilities:
        if facility.floor_id != floor.id:
            continue
        route = find_path(floor, pos, facility.position, agent)
        if route is None:
            continue
        dist = path_length(route)
        if best is None or dist < best[1]:
            best = (facility, dist)
    return best


def find_nearest_charger(floor, pos, chargers, agent=None):
    return find_nearest_facility(floor, pos, chargers, agent)


def find_nearest_staging(floor, pos, staging_areas, agent=None):
    return find_nearest_facility(floor, pos, staging_areas, agent)
