"""Data models: Agent (cart), Job and their delivery records."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .enums import AgentStatus, JobState, Pool, PriorityTier
from .constants import (
    AGENT_ACCESS_PROFILES, AGENT_DRAIN_RATE, AGENT_PAYLOAD_LIMIT, AGENT_SPEED,
    DEFAULT_DROPOFF_SERVICE_TIME, DEFAULT_PICKUP_SERVICE_TIME,
)

logger = logging.getLogger(__name__)

Position = tuple[int, int]


@dataclass
class Location:
    position: Position
    floor_id: str
    room_id: str | None = None


@dataclass
class DeliveryItem:
    item_type: str
    quantity: int
    weight: float  # kg, whole consignment


@dataclass
class JobProgress:
    picked_up: bool = False
    pickup_time: float | None = None
    delivered_time: float | None = None


class Agent:
    """A delivery cart moving on a hospital floor grid."""

    def __init__(
        self,
        agent_id: str,
        pos: Position,
        floor_id: str,
        name: str | None = None,
        speed: float = AGENT_SPEED,
        battery: float = 100.0,
        max_battery: float = 100.0,
        battery_drain_rate: float = AGENT_DRAIN_RATE,
        payload_limit: float = AGENT_PAYLOAD_LIMIT,
        access_profiles: list[str] | tuple[str, ...] = AGENT_ACCESS_PROFILES,
        pool: Pool = Pool.NON_URGENT,
    ) -> None:
        if speed <= 0:
            raise ValueError(f"agent {agent_id}: speed must be > 0, got {speed}")
        self.agent_id: str = agent_id
        self.name: str = name or agent_id
        self.pos: Position = pos
        self.floor_id: str = floor_id
        self.speed: float = speed
        self.max_battery: float = max_battery
        self.battery: float = min(max(battery, 0.0), max_battery)
        self.battery_drain_rate: float = battery_drain_rate
        self.payload_limit: float = payload_limit
        self.current_payload: float = 0.0
        self.access_profiles: set[str] = set(access_profiles)
        self.status: AgentStatus = AgentStatus.IDLE
        self.current_job_id: str | None = None
        self.pool: Pool = pool

    def __repr__(self) -> str:
        return (
            f"Agent({self.agent_id!r}, pos={self.pos}, status={self.status.value}, "
            f"battery={self.battery:.1f}, job={self.current_job_id!r})"
        )

    @property
    def is_available(self) -> bool:
        """Idle with no job; battery thresholds are applied by the dispatcher."""
        return self.status == AgentStatus.IDLE and self.current_job_id is None

    def set_position(self, pos: Position, floor_id: str | None = None) -> None:
        self.pos = pos
        if floor_id is not None:
            self.floor_id = floor_id

    def drain_battery(self, amount: float) -> None:
        self.battery = max(0.0, self.battery - amount)

    def charge_battery(self, amount: float) -> None:
        self.battery = min(self.max_battery, self.battery + amount)

    def assign_job(self, job_id: str) -> None:
        self.current_job_id = job_id
        self.status = AgentStatus.MOVING

    def clear_job(self) -> None:
        """Drop the job reference; payload is reset since the load leaves with the job."""
        self.current_job_id = None
        self.current_payload = 0.0
        self.status = AgentStatus.IDLE

    def set_payload(self, payload: float) -> None:
        self.current_payload = min(max(payload, 0.0), self.payload_limit)


class Job:
    """A delivery request from an optional pickup to a dropoff."""

    def __init__(
        self,
        job_id: str,
        dropoff: Location,
        item: DeliveryItem,
        priority: PriorityTier,
        deadline: float,
        created_at: float = 0.0,
        pickup: Location | None = None,
        pickup_service_time: float = DEFAULT_PICKUP_SERVICE_TIME,
        dropoff_service_time: float = DEFAULT_DROPOFF_SERVICE_TIME,
        triage_case_id: str | None = None,
    ) -> None:
        self.job_id: str = job_id
        self.pickup: Location | None = pickup
        self.dropoff: Location = dropoff
        self.item: DeliveryItem = item
        self.priority: PriorityTier = priority
        self.deadline: float = deadline
        self.created_at: float = created_at
        self.state: JobState = JobState.QUEUED
        self.assigned_agent_id: str | None = None
        self.triage_case_id: str | None = triage_case_id
        self.pickup_service_time: float = pickup_service_time
        self.dropoff_service_time: float = dropoff_service_time
        self.progress: JobProgress = JobProgress()
        self.delay_reason: str | None = None
        self.infeasible_reason: str | None = None
        self.estimated_start_time: float | None = None
        self.estimated_delivery_time: float | None = None
        self.is_likely_late: bool = False

    def __repr__(self) -> str:
        return f"Job({self.job_id!r}, {self.priority.value}, {self.state.value})"

    @property
    def floor_id(self) -> str:
        return self.dropoff.floor_id

    def set_state(self, state: JobState, reason: str | None = None) -> bool:
        """Move to *state*. Returns ``False`` if the job is already terminal."""
        if self.state.is_terminal:
            logger.debug(
                "[Job] %s is %s, ignoring transition to %s",
                self.job_id, self.state.value, state.value,
            )
            return False
        self.state = state
        if state == JobState.DELAYED:
            self.delay_reason = reason
        elif state == JobState.INFEASIBLE:
            self.infeasible_reason = reason
        return True

    def assign_agent(self, agent_id: str) -> None:
        if self.set_state(JobState.ASSIGNED):
            self.assigned_agent_id = agent_id

    def unassign_agent(self) -> None:
        """Return the job to the queue; pickup progress is discarded with the load."""
        if self.set_state(JobState.QUEUED):
            self.assigned_agent_id = None
            self.delay_reason = None
            self.progress = JobProgress()

    def mark_picked_up(self, time: float) -> None:
        if self.set_state(JobState.IN_PROGRESS):
            self.progress.picked_up = True
            self.progress.pickup_time = time

    def mark_delivered(self, time: float) -> None:
        if self.set_state(JobState.DELIVERED):
            self.progress.picked_up = True
            self.progress.delivered_time = time

    def set_priority(self, priority: PriorityTier) -> None:
        self.priority = priority

    def update_etas(self, start_time: float, delivery_time: float, is_late: bool) -> None:
        self.estimated_start_time = start_time
        self.estimated_delivery_time = delivery_time
        self.is_likely_late = is_late

    def is_late(self) -> bool:
        delivered = self.progress.delivered_time
        return delivered is not None and delivered > self.deadline
