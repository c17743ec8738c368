"""Floor builders and editor-style paint helpers."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from .enums import CellKind
from .constants import CELL_SIZE
from .hospital_map import (
    Charger, Floor, GridCell, HospitalMap, Room, StagingArea, StoragePoint,
)
from .pathfinding import find_path

logger = logging.getLogger(__name__)

Position = tuple[int, int]


def rect(x1: int, y1: int, x2: int, y2: int) -> Iterator[Position]:
    """Cells of the inclusive rectangle ``(x1, y1)``-``(x2, y2)``."""
    for y in range(y1, y2 + 1):
        for x in range(x1, x2 + 1):
            yield (x, y)


def vline(x: int, y1: int, y2: int) -> Iterator[Position]:
    return rect(x, y1, x, y2)


def build_floor(
    floor_id: str,
    width: int,
    height: int,
    name: str | None = None,
    walkable: bool = False,
    cell_size: int = CELL_SIZE,
) -> Floor:
    """Create a *width* x *height* floor whose cells are all walkable or all blank."""
    grid = [
        [GridCell(x, y, floor_id, walkable=walkable) for x in range(width)]
        for y in range(height)
    ]
    return Floor(id=floor_id, name=name or floor_id, grid=grid, cell_size=cell_size)


def paint_cells(
    floor: Floor,
    positions: Iterable[Position],
    kind: CellKind,
    access_profiles: Iterable[str] | None = None,
) -> int:
    """Apply *kind* to every in-bounds cell in *positions*. Returns cells painted."""
    profiles = list(access_profiles or [])
    painted = 0
    for pos in positions:
        cell = floor.cell_at(pos)
        if cell is None:
            continue
        if kind == CellKind.WALKABLE:
            cell.walkable = True
            cell.is_obstacle = False
        elif kind == CellKind.OBSTACLE:
            cell.walkable = False
            cell.is_obstacle = True
        elif kind == CellKind.QUARANTINE:
            cell.is_quarantine = True
        elif kind == CellKind.RESTRICTED:
            cell.is_restricted = True
            cell.restricted_access_profiles = list(profiles)
        else:
            # Facilities sit on walkable cells
            cell.walkable = True
            cell.is_obstacle = False
            cell.is_charger = cell.is_charger or kind == CellKind.CHARGER
            cell.is_storage = cell.is_storage or kind == CellKind.STORAGE
            cell.is_staging = cell.is_staging or kind == CellKind.STAGING
        painted += 1
    return painted


def build_corridor_floor(floor_id: str, length: int) -> Floor:
    """A single walkable 1-cell-high corridor of *length* cells."""
    return build_floor(floor_id, length, 1, walkable=True)


def build_demo_map(floor_id: str = "floor-1") -> HospitalMap:
    """Create the demo hospital floor. Returns a ``HospitalMap`` with one floor.

    Layout (40 x 30): a horizontal main corridor (rows 12-17) crossed by a
    vertical corridor (cols 18-22), three rooms above and three below, each
    reached through a single doorway.
    """
    floor = build_floor(floor_id, 40, 30, name="Floor 1")
    paint_cells(floor, rect(0, 0, 39, 29), CellKind.OBSTACLE)

    # 1. CORRIDORS
    paint_cells(floor, rect(0, 12, 39, 17), CellKind.WALKABLE)
    paint_cells(floor, rect(18, 0, 22, 29), CellKind.WALKABLE)

    # 2. ROOMS (interior walkable, doorway through the wall rows)
    rooms = [
        ("ICU Bay 1", "ICU", (2, 2, 8, 10), (5, 11)),
        ("OR Suite A", "OR", (12, 2, 16, 10), (14, 11)),
        ("Ward A", "WARD", (26, 2, 36, 10), (31, 11)),
        ("Ward B", "WARD", (2, 20, 8, 27), (5, 18)),
        ("Pharmacy", "PHARMACY", (12, 20, 16, 27), (14, 18)),
        ("Isolation", "GENERAL", (26, 20, 36, 27), (31, 18)),
    ]
    room_records: list[Room] = []
    for idx, (name, room_type, bounds, door) in enumerate(rooms, 1):
        cells = list(rect(*bounds))
        paint_cells(floor, cells, CellKind.WALKABLE)
        door_cells = [door] if door[1] == 11 else [door, (door[0], 19)]
        paint_cells(floor, door_cells, CellKind.WALKABLE)
        for pos in cells:
            floor.cell_at(pos).room_id = f"room-{idx}"
        room_records.append(Room(f"room-{idx}", name, room_type, floor_id, cells))

    # 3. ACCESS CONTROL
    paint_cells(floor, rect(2, 2, 8, 11), CellKind.RESTRICTED, ["ICU"])
    paint_cells(floor, rect(12, 2, 16, 11), CellKind.RESTRICTED, ["OR"])
    paint_cells(floor, rect(33, 20, 36, 27), CellKind.QUARANTINE)

    # 4. FACILITIES
    chargers = [
        Charger("charger-1", (2, 15), floor_id),
        Charger("charger-2", (37, 15), floor_id),
    ]
    storage = [
        StoragePoint(
            "storage-1", "Central Supply", (20, 5), floor_id,
            available_items={"Masks": 100, "IV Fluids": 50, "Surgical Tools": 20, "Medications": 200},
        ),
    ]
    staging = [
        StagingArea("staging-1", (10, 14), floor_id, capacity=3),
        StagingArea("staging-2", (30, 16), floor_id, capacity=3),
    ]
    paint_cells(floor, [c.position for c in chargers], CellKind.CHARGER)
    paint_cells(floor, [s.position for s in storage], CellKind.STORAGE)
    paint_cells(floor, [s.position for s in staging], CellKind.STAGING)

    return HospitalMap(
        floors=[floor],
        rooms=room_records,
        chargers=chargers,
        storage_points=storage,
        staging_areas=staging,
    )


def verify_floor(floor: Floor, hospital_map: HospitalMap) -> bool:
    """Check every charger and staging area on *floor* is reachable from the first one."""
    points = [c.position for c in hospital_map.chargers_on(floor.id)]
    points += [s.position for s in hospital_map.staging_on(floor.id)]
    if len(points) < 2:
        return True
    ok = True
    origin = points[0]
    for target in points[1:]:
        if find_path(floor, origin, target) is None:
            logger.warning("[Map] %s: no path %s -> %s", floor.id, origin, target)
            ok = False
    return ok
