"""Simulation context: the single object threaded through the core.

Holds the map, the fleet, the job queue, the current plan, the run
configuration and the event sink. Nothing in the core keeps global state.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .enums import JobState, Pool, PriorityTier
from .constants import (
    CO2_PER_WH, DEFAULT_DROPOFF_SERVICE_TIME, DEFAULT_PICKUP_SERVICE_TIME,
    METRICS_PUSH_INTERVAL, REPLAN_COOLDOWN, SPEED_MAX, SPEED_MIN,
    STARVATION_THRESHOLD,
)
from .events import EventLog, EventSink, SimEvent, job_cancelled, job_created, job_infeasible
from .models import Agent, DeliveryItem, Job, Location
from .priority import check_job_feasibility, queue_order_key

if TYPE_CHECKING:
    from .hospital_map import HospitalMap
    from .plan import Plan
    from .triage import TriageCase

logger = logging.getLogger(__name__)

_TIERS = list(PriorityTier)


def clamp_speed(multiplier: float) -> float:
    return min(max(multiplier, SPEED_MIN), SPEED_MAX)


@dataclass
class SimulationConfig:
    speed_multiplier: float = 1.0
    co2_per_wh: float = CO2_PER_WH
    default_pickup_service_time: float = DEFAULT_PICKUP_SERVICE_TIME
    default_dropoff_service_time: float = DEFAULT_DROPOFF_SERVICE_TIME
    starvation_threshold_seconds: float = STARVATION_THRESHOLD
    replan_cooldown_seconds: float = REPLAN_COOLDOWN
    metrics_push_interval_ticks: int = METRICS_PUSH_INTERVAL

    def __post_init__(self) -> None:
        self.speed_multiplier = clamp_speed(self.speed_multiplier)


class IdGenerator:
    """Per-prefix sequential ids: ``job-1``, ``job-2``, ``triage-1`` ..."""

    def __init__(self) -> None:
        self._counters: dict[str, int] = defaultdict(int)

    def next(self, prefix: str) -> str:
        self._counters[prefix] += 1
        return f"{prefix}-{self._counters[prefix]}"

    def reset(self) -> None:
        self._counters.clear()


class SimulationContext:
    def __init__(
        self,
        hospital_map: HospitalMap,
        agents: list[Agent] | None = None,
        jobs: list[Job] | None = None,
        config: SimulationConfig | None = None,
        event_sink: EventSink | None = None,
    ) -> None:
        self.hospital_map: HospitalMap = hospital_map
        self.agents: list[Agent] = list(agents or [])
        self.jobs: list[Job] = list(jobs or [])
        self.config: SimulationConfig = config or SimulationConfig()
        self.event_log: EventLog | None = None
        if event_sink is None:
            self.event_log = EventLog()
            event_sink = self.event_log
        self.event_sink: EventSink = event_sink
        self.ids: IdGenerator = IdGenerator()
        self.triage_cases: list[TriageCase] = []
        self.plan: Plan | None = None
        self.current_time: float = 0.0

        for agent in self.agents:
            if hospital_map.get_floor(agent.floor_id) is None:
                raise ValueError(f"agent {agent.agent_id} is on unknown floor {agent.floor_id!r}")

    def emit(self, event: SimEvent) -> None:
        if event.event_id is None:
            event.event_id = self.ids.next("event")
        self.event_sink(event)

    # -- Lookups ------------------------------------------------------------

    def get_agent(self, agent_id: str) -> Agent | None:
        for agent in self.agents:
            if agent.agent_id == agent_id:
                return agent
        return None

    def get_job(self, job_id: str) -> Job | None:
        for job in self.jobs:
            if job.job_id == job_id:
                return job
        return None

    def jobs_in_state(self, *states: JobState) -> list[Job]:
        return [j for j in self.jobs if j.state in states]

    def available_agents(self) -> list[Agent]:
        return [a for a in self.agents if a.is_available]

    def agents_by_pool(self, pool: Pool) -> list[Agent]:
        return [a for a in self.agents if a.pool == pool]

    def agents_on_floor(self, floor_id: str) -> list[Agent]:
        return [a for a in self.agents if a.floor_id == floor_id]

    # -- Job queue ----------------------------------------------------------

    def add_job(
        self,
        dropoff: Location,
        item: DeliveryItem,
        priority: PriorityTier,
        deadline: float,
        pickup: Location | None = None,
        pickup_service_time: float | None = None,
        dropoff_service_time: float | None = None,
        triage_case_id: str | None = None,
    ) -> Job:
        """Queue a new job. *deadline* is absolute simulated time."""
        if pickup_service_time is None:
            pickup_service_time = self.config.default_pickup_service_time
        if dropoff_service_time is None:
            dropoff_service_time = self.config.default_dropoff_service_time
        job = Job(
            job_id=self.ids.next("job"),
            dropoff=dropoff,
            item=item,
            priority=priority,
            deadline=deadline,
            created_at=self.current_time,
            pickup=pickup,
            pickup_service_time=pickup_service_time,
            dropoff_service_time=dropoff_service_time,
            triage_case_id=triage_case_id,
        )
        self.jobs.append(job)
        logger.info("[Queue] %s created: %s -> %s (%s)",
                    job.job_id, item.item_type, dropoff.position, priority.value)
        self.emit(job_created(self.current_time, job.job_id, priority.value,
                              dropoff.position, dropoff.floor_id))
        return job

    def _shift_tier(self, job_id: str, step: int) -> bool:
        job = self.get_job(job_id)
        if job is None or job.state.is_terminal:
            return False
        index = min(max(job.priority.rank + step, 0), len(_TIERS) - 1)
        if index == job.priority.rank:
            return False
        job.set_priority(_TIERS[index])
        return True

    def escalate_job(self, job_id: str) -> bool:
        """Move a job one tier towards IMMEDIATE."""
        return self._shift_tier(job_id, -1)

    def defer_job(self, job_id: str) -> bool:
        """Move a job one tier towards NON_URGENT."""
        return self._shift_tier(job_id, +1)

    def cancel_job(self, job_id: str) -> bool:
        job = self.get_job(job_id)
        if job is None or job.state.is_terminal:
            return False
        agent = self.get_agent(job.assigned_agent_id) if job.assigned_agent_id else None
        if agent is not None and agent.current_job_id == job_id:
            agent.clear_job()
        job.set_state(JobState.CANCELLED)
        logger.info("[Queue] %s cancelled", job_id)
        self.emit(job_cancelled(self.current_time, job_id))
        return True

    def sorted_queue(self) -> list[Job]:
        """QUEUED and ASSIGNED jobs in display order."""
        return sorted(self.jobs_in_state(JobState.QUEUED, JobState.ASSIGNED), key=queue_order_key)

    def check_feasibility(self) -> list[Job]:
        """Mark every queued job that can never be served as INFEASIBLE."""
        marked = []
        for job in self.jobs_in_state(JobState.QUEUED):
            result = check_job_feasibility(job, self.agents, self.hospital_map)
            if result.feasible:
                continue
            job.set_state(JobState.INFEASIBLE, result.reason)
            logger.info("[Queue] %s infeasible: %s", job.job_id, result.reason)
            self.emit(job_infeasible(self.current_time, job.job_id, result.reason or ""))
            marked.append(job)
        return marked
