"""Map data: grid cells, floors and the facilities placed on them.

The core only reads these records; mutation belongs to the map editor
(``map_builder`` helpers in this package).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .constants import CELL_SIZE, DEFAULT_CHARGE_RATE

Position = tuple[int, int]


@dataclass
class GridCell:
    """One floor tile."""
    x: int
    y: int
    floor_id: str
    walkable: bool = False
    is_obstacle: bool = False
    is_quarantine: bool = False
    is_restricted: bool = False
    restricted_access_profiles: list[str] = field(default_factory=list)
    is_charger: bool = False
    is_storage: bool = False
    is_staging: bool = False
    is_connector: bool = False
    connector_id: str | None = None
    room_id: str | None = None

    @property
    def pos(self) -> Position:
        return (self.x, self.y)

    @property
    def is_open(self) -> bool:
        """Walkable and not hard-blocked, ignoring access restrictions."""
        return self.walkable and not self.is_obstacle and not self.is_quarantine


@dataclass
class Floor:
    """Row-major grid (``grid[y][x]``) of one hospital floor."""
    id: str
    name: str
    grid: list[list[GridCell]]
    cell_size: int = CELL_SIZE

    def __post_init__(self) -> None:
        widths = {len(row) for row in self.grid}
        if len(widths) > 1:
            raise ValueError(f"floor {self.id}: grid rows have unequal widths {sorted(widths)}")

    @property
    def width(self) -> int:
        return len(self.grid[0]) if self.grid else 0

    @property
    def height(self) -> int:
        return len(self.grid)

    def in_bounds(self, pos: Position) -> bool:
        x, y = pos
        return 0 <= x < self.width and 0 <= y < self.height

    def cell_at(self, pos: Position) -> GridCell | None:
        if not self.in_bounds(pos):
            return None
        return self.grid[pos[1]][pos[0]]

    def cells(self):
        for row in self.grid:
            yield from row


@dataclass
class Charger:
    id: str
    position: Position
    floor_id: str
    charge_rate: float = DEFAULT_CHARGE_RATE   # % per second
    capacity: int = 1


@dataclass
class StoragePoint:
    id: str
    name: str
    position: Position
    floor_id: str
    service_time: float = 30.0
    capacity: int = 1
    available_items: dict[str, int] = field(default_factory=dict)


@dataclass
class StagingArea:
    id: str
    position: Position
    floor_id: str
    capacity: int = 1


@dataclass
class Room:
    id: str
    name: str
    room_type: str
    floor_id: str
    cells: list[Position] = field(default_factory=list)
    service_capacity: int = 1


@dataclass
class Connector:
    """Elevator or stairs linking floors; carried for completeness, never routed through."""
    id: str
    name: str
    connector_type: str
    floors: dict[str, Position] = field(default_factory=dict)
    travel_time: float = 0.0
    energy_cost: float = 0.0
    capacity: int = 1


@dataclass
class HospitalMap:
    floors: list[Floor] = field(default_factory=list)
    rooms: list[Room] = field(default_factory=list)
    connectors: list[Connector] = field(default_factory=list)
    chargers: list[Charger] = field(default_factory=list)
    storage_points: list[StoragePoint] = field(default_factory=list)
    staging_areas: list[StagingArea] = field(default_factory=list)

    def get_floor(self, floor_id: str) -> Floor | None:
        for floor in self.floors:
            if floor.id == floor_id:
                return floor
        return None

    def chargers_on(self, floor_id: str) -> list[Charger]:
        return [c for c in self.chargers if c.floor_id == floor_id]

    def charger_at(self, floor_id: str, pos: Position) -> Charger | None:
        for charger in self.chargers:
            if charger.floor_id == floor_id and charger.position == pos:
                return charger
        return None

    def staging_on(self, floor_id: str) -> list[StagingArea]:
        return [s for s in self.staging_areas if s.floor_id == floor_id]
