from enum import Enum


class PriorityTier(Enum):
    IMMEDIATE   = "IMMEDIATE"     # Code blue, crash cart
    EMERGENCY   = "EMERGENCY"
    URGENT      = "URGENT"
    SEMI_URGENT = "SEMI_URGENT"
    NON_URGENT  = "NON_URGENT"

    @property
    def rank(self) -> int:
        """0 for IMMEDIATE up to 4 for NON_URGENT."""
        return _TIER_ORDER.index(self)

    @property
    def is_urgent(self) -> bool:
        return self in (PriorityTier.IMMEDIATE, PriorityTier.EMERGENCY)


_TIER_ORDER = list(PriorityTier)


class JobState(Enum):
    QUEUED      = "QUEUED"
    ASSIGNED    = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    PAUSED      = "PAUSED"
    DELAYED     = "DELAYED"
    DELIVERED   = "DELIVERED"
    CANCELLED   = "CANCELLED"
    INFEASIBLE  = "INFEASIBLE"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.DELIVERED, JobState.CANCELLED)


class AgentStatus(Enum):
    IDLE         = "IDLE"
    MOVING       = "MOVING"
    PICKING_UP   = "PICKING_UP"
    DROPPING_OFF = "DROPPING_OFF"
    CHARGING     = "CHARGING"
    WAITING      = "WAITING"
    FAILED       = "FAILED"


class Pool(Enum):
    URGENT     = "URGENT"
    NON_URGENT = "NON_URGENT"


class RouteAction(Enum):
    PICKUP  = "PICKUP"
    DROPOFF = "DROPOFF"


class EventType(Enum):
    JOB_CREATED        = "JOB_CREATED"
    JOB_ASSIGNED       = "JOB_ASSIGNED"
    JOB_COMPLETED      = "JOB_COMPLETED"
    JOB_DELAYED        = "JOB_DELAYED"
    JOB_INFEASIBLE     = "JOB_INFEASIBLE"
    JOB_CANCELLED      = "JOB_CANCELLED"
    TRIAGE_CREATED     = "TRIAGE_CREATED"
    TRIAGE_ESCALATED   = "TRIAGE_ESCALATED"
    TRIAGE_DEESCALATED = "TRIAGE_DEESCALATED"
    TRIAGE_RESOLVED    = "TRIAGE_RESOLVED"
    AGENT_DELAYED      = "AGENT_DELAYED"
    AGENT_LOW_BATTERY  = "AGENT_LOW_BATTERY"
    REPLAN_COMPLETED   = "REPLAN_COMPLETED"


class SimulationState(Enum):
    STOPPED    = "STOPPED"
    RUNNING    = "RUNNING"
    PAUSED     = "PAUSED"
    REPLANNING = "REPLANNING"


class CellKind(Enum):
    """Paint kinds accepted by ``map_builder.paint_cells``."""
    WALKABLE   = "walkable"
    OBSTACLE   = "obstacle"
    QUARANTINE = "quarantine"
    RESTRICTED = "restricted"
    CHARGER    = "charger"
    STORAGE    = "storage"
    STAGING    = "staging"
