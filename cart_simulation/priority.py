"""Queue ordering score and job feasibility checks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from .enums import JobState, PriorityTier
from .constants import STARVATION_CAP, STARVATION_THRESHOLD, TIER_WEIGHT

if TYPE_CHECKING:
    from .hospital_map import HospitalMap
    from .models import Agent, Job


@dataclass
class Feasibility:
    feasible: bool
    reason: str | None = None


def effective_priority(
    job: Job,
    now: float,
    starvation_threshold: float = STARVATION_THRESHOLD,
) -> float:
    """Lower is served first.

    Tier dominates (``TIER_WEIGHT`` per rank), time-to-deadline breaks ties
    within a tier, and jobs waiting past *starvation_threshold* earn a
    discount capped at ``STARVATION_CAP``. IMMEDIATE jobs get no discount.
    """
    score = job.priority.rank * TIER_WEIGHT
    score += max(0.0, job.deadline - now)
    wait_time = now - job.created_at
    if wait_time > starvation_threshold and job.priority != PriorityTier.IMMEDIATE:
        score -= min(wait_time - starvation_threshold, STARVATION_CAP)
    return score


def sort_jobs_by_priority(
    jobs: Iterable[Job],
    now: float,
    starvation_threshold: float = STARVATION_THRESHOLD,
) -> list[Job]:
    """Stable ascending sort by effective priority."""
    return sorted(jobs, key=lambda j: effective_priority(j, now, starvation_threshold))


def queue_order_key(job: Job) -> tuple[int, float, float]:
    """Display ordering: tier, then deadline, then age."""
    return (job.priority.rank, job.deadline, job.created_at)


def check_job_feasibility(
    job: Job,
    agents: Iterable[Agent],
    hospital_map: HospitalMap,
) -> Feasibility:
    """Necessary conditions only; a feasible job may still be unassignable right now."""
    floor = hospital_map.get_floor(job.dropoff.floor_id)
    if floor is None:
        return Feasibility(False, "Floor not found")

    dropoff_cell = floor.cell_at(job.dropoff.position)
    if dropoff_cell is None or not dropoff_cell.is_open:
        return Feasibility(False, "Dropoff location not walkable")

    if not any(a.payload_limit >= job.item.weight for a in agents):
        return Feasibility(False, "No agent can handle payload weight")

    if job.pickup is not None:
        pickup_floor = hospital_map.get_floor(job.pickup.floor_id) or floor
        pickup_cell = pickup_floor.cell_at(job.pickup.position)
        if pickup_cell is None or not pickup_cell.is_open:
            return Feasibility(False, "Pickup location not walkable")

    return Feasibility(True)


def is_queued(job: Job) -> bool:
    return job.state == JobState.QUEUED
