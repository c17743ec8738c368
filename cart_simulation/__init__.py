"""
Hospital cart fleet simulation package.

Public API re-exports. The pygame viewer lives in ``renderer`` and
``__main__`` and is not imported here.
"""

from .enums import (
    PriorityTier, JobState, AgentStatus, Pool, RouteAction,
    EventType, SimulationState, CellKind,
)
from .constants import *  # noqa: F401,F403
from .hospital_map import (
    GridCell, Floor, Charger, StoragePoint, StagingArea, Room, Connector, HospitalMap,
)
from .models import Agent, Job, DeliveryItem, Location, JobProgress
from .pathfinding import (
    find_path, is_traversable, path_length, path_travel_time, path_battery_drain,
    can_complete_path_with_battery, find_nearest_charger, find_nearest_staging,
)
from .priority import effective_priority, sort_jobs_by_priority, check_job_feasibility
from .plan import RouteStep, AgentPlan, Plan, PlanMetrics, AgentExecutionState
from .map_builder import build_floor, paint_cells, build_corridor_floor, build_demo_map, verify_floor
from .dispatcher import Dispatcher
from .events import SimEvent, EventLog
from .metrics import LiveMetrics, compute_run_metrics
from .context import SimulationConfig, SimulationContext
from .executor import TickExecutor
from .controls import SimulationControls
from .triage import TriageCase, TRIAGE_BUNDLES, open_triage_case
from .headless import build_demo_context, build_random_context, run_headless

__all__ = [
    "PriorityTier", "JobState", "AgentStatus", "Pool", "RouteAction",
    "EventType", "SimulationState", "CellKind",
    "GridCell", "Floor", "Charger", "StoragePoint", "StagingArea", "Room", "Connector",
    "HospitalMap",
    "Agent", "Job", "DeliveryItem", "Location", "JobProgress",
    "find_path", "is_traversable", "path_length", "path_travel_time", "path_battery_drain",
    "can_complete_path_with_battery", "find_nearest_charger", "find_nearest_staging",
    "effective_priority", "sort_jobs_by_priority", "check_job_feasibility",
    "RouteStep", "AgentPlan", "Plan", "PlanMetrics", "AgentExecutionState",
    "build_floor", "paint_cells", "build_corridor_floor", "build_demo_map", "verify_floor",
    "Dispatcher",
    "SimEvent", "EventLog",
    "LiveMetrics", "compute_run_metrics",
    "SimulationConfig", "SimulationContext",
    "TickExecutor",
    "SimulationControls",
    "TriageCase", "TRIAGE_BUNDLES", "open_triage_case",
    "build_demo_context", "build_random_context", "run_headless",
]
