"""Plan records produced by the dispatcher and consumed by the tick executor."""

from __future__ import annotations

from dataclasses import dataclass, field

from .enums import RouteAction

Position = tuple[int, int]


@dataclass
class RouteStep:
    position: Position
    floor_id: str
    arrival_time: float
    action: RouteAction | None = None
    duration: float = 0.0


@dataclass
class AgentPlan:
    agent_id: str
    route: list[RouteStep]
    job_ids: list[str]
    estimated_energy: float = 0.0   # Wh
    estimated_co2: float = 0.0      # g

    @property
    def has_route(self) -> bool:
        return len(self.route) > 0


@dataclass
class PlanMetrics:
    total_energy_wh: float = 0.0
    total_co2_g: float = 0.0
    idle_waiting_seconds: float = 0.0
    idle_charging_seconds: float = 0.0
    on_time_percentage: float = 100.0
    batched_deliveries: int = 0
    deadheading_percentage: float = 0.0
    energy_per_item: float = 0.0


@dataclass
class Plan:
    timestamp: float
    agent_plans: list[AgentPlan] = field(default_factory=list)
    unassigned_job_ids: list[str] = field(default_factory=list)
    metrics: PlanMetrics = field(default_factory=PlanMetrics)

    def plan_for(self, agent_id: str) -> AgentPlan | None:
        for agent_plan in self.agent_plans:
            if agent_plan.agent_id == agent_id:
                return agent_plan
        return None

    def assignments(self) -> dict[str, str]:
        """Return ``{job_id: agent_id}`` for every routed job."""
        return {
            job_id: agent_plan.agent_id
            for agent_plan in self.agent_plans
            for job_id in agent_plan.job_ids
        }


@dataclass
class AgentExecutionState:
    """Per-agent cursor into its route; rebuilt on every new plan."""
    step_index: int = 0
    action_start_time: float | None = None
    target_charger: Position | None = None
    route_completed: bool = False
    move_progress: float = 0.0      # fraction of a cell covered since the last move
    blocked: bool = False
