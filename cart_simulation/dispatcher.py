"""Greedy priority-ordered assignment of queued jobs to carts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from .enums import AgentStatus, Pool, RouteAction
from .constants import (
    CO2_PER_WH, ENERGY_PER_CELL_WH, ETA_DELIVERY_OFFSET, ETA_START_OFFSET,
    LIKELY_LATE_BUFFER, MIN_DISPATCH_BATTERY, MIN_REMAINING_BATTERY,
    STARVATION_THRESHOLD,
)
from .pathfinding import can_complete_path_with_battery, find_path, path_battery_drain, path_length
from .plan import AgentPlan, Plan, PlanMetrics, RouteStep
from .priority import is_queued, sort_jobs_by_priority

if TYPE_CHECKING:
    from .hospital_map import Floor, HospitalMap
    from .models import Agent, Job

logger = logging.getLogger(__name__)

Position = tuple[int, int]
Legs = tuple[list[Position] | None, list[Position]]


class Dispatcher:
    """Builds a fresh ``Plan`` from the queue, the roster and the map.

    Holds configuration only, so ``create_plan`` gives the same answer for the
    same inputs and never writes to job or agent records.
    """

    def __init__(
        self,
        starvation_threshold: float = STARVATION_THRESHOLD,
        co2_per_wh: float = CO2_PER_WH,
    ) -> None:
        self.starvation_threshold = starvation_threshold
        self.co2_per_wh = co2_per_wh

    # -- candidate selection ------------------------------------------

    def _eligible_agents(self, job: Job, agents: Iterable[Agent]) -> list[Agent]:
        """Apply the availability, pool and payload filters in that order."""
        available = [
            a for a in agents
            if a.status == AgentStatus.IDLE
            and a.current_job_id is None
            and a.battery > MIN_DISPATCH_BATTERY
        ]
        if not available:
            return []

        preferred = Pool.URGENT if job.priority.is_urgent else Pool.NON_URGENT
        pool_agents = [a for a in available if a.pool == preferred]
        if not pool_agents and job.priority.is_urgent:
            # Urgent work may borrow from the non-urgent pool
            pool_agents = [a for a in available if a.pool == Pool.NON_URGENT]
        if not pool_agents:
            pool_agents = available

        return [a for a in pool_agents if a.payload_limit >= job.item.weight]

    def _plan_legs(self, agent: Agent, job: Job, floor: Floor) -> Legs | None:
        """Return ``(pickup_leg, dropoff_leg)`` for *agent*, or ``None`` if either is unreachable."""
        pickup_leg: list[Position] | None = None
        start = agent.pos
        if job.pickup is not None:
            pickup_leg = find_path(floor, agent.pos, job.pickup.position, agent)
            if pickup_leg is None:
                return None
            start = job.pickup.position
        dropoff_leg = find_path(floor, start, job.dropoff.position, agent)
        if dropoff_leg is None:
            return None
        return pickup_leg, dropoff_leg

    def find_best_agent(
        self,
        job: Job,
        agents: Iterable[Agent],
        hospital_map: HospitalMap,
    ) -> tuple[Agent, Legs] | None:
        """Nearest eligible agent by total path length; ties keep roster order."""
        candidates = self._eligible_agents(job, agents)
        if not candidates:
            return None
        floor = hospital_map.get_floor(job.dropoff.floor_id)
        if floor is None:
            return None

        best: tuple[Agent, Legs] | None = None
        best_dist = float("inf")
        for agent in candidates:
            if agent.floor_id != job.dropoff.floor_id:
                continue  # same floor only
            legs = self._plan_legs(agent, job, floor)
            if legs is None:
                logger.debug("[Dispatcher] %s: no path for %s", agent.agent_id, job.job_id)
                continue
            pickup_leg, dropoff_leg = legs
            full_path = (pickup_leg or []) + dropoff_leg[1 if pickup_leg else 0:]
            if not can_complete_path_with_battery(
                full_path, agent.battery, agent.battery_drain_rate, MIN_REMAINING_BATTERY,
            ):
                logger.debug(
                    "[Dispatcher] %s: battery %.1f%% too low for %s (needs %.1f%%)",
                    agent.agent_id, agent.battery, job.job_id,
                    path_battery_drain(full_path, agent.battery_drain_rate),
                )
                continue
            dist = path_length(full_path)
            if dist < best_dist:
                best_dist = dist
                best = (agent, legs)
        return best

    # -- route construction -------------------------------------------

    def build_agent_plan(
        self,
        agent: Agent,
        job: Job,
        hospital_map: HospitalMap,
        now: float,
        legs: Legs | None = None,
    ) -> AgentPlan | None:
        """Expand a single job into timed route steps for *agent*."""
        floor = hospital_map.get_floor(agent.floor_id)
        if floor is None:
            return None
        if legs is None:
            legs = self._plan_legs(agent, job, floor)
            if legs is None:
                return None
        pickup_leg, dropoff_leg = legs

        route: list[RouteStep] = []
        time = now
        energy = 0.0

        def walk(leg: list[Position]) -> None:
            nonlocal time
            for pos in leg:
                route.append(RouteStep(pos, floor.id, time))
                time += 1.0 / agent.speed

        if job.pickup is not None and pickup_leg is not None:
            walk(pickup_leg)
            route.append(RouteStep(
                job.pickup.position, floor.id, time,
                action=RouteAction.PICKUP, duration=job.pickup_service_time,
            ))
            time += job.pickup_service_time
            energy += len(pickup_leg) * ENERGY_PER_CELL_WH

        walk(dropoff_leg)
        route.append(RouteStep(
            job.dropoff.position, floor.id, time,
            action=RouteAction.DROPOFF, duration=job.dropoff_service_time,
        ))
        energy += len(dropoff_leg) * ENERGY_PER_CELL_WH

        return AgentPlan(
            agent_id=agent.agent_id,
            route=route,
            job_ids=[job.job_id],
            estimated_energy=energy,
            estimated_co2=energy * self.co2_per_wh,
        )

    # -- full plan ----------------------------------------------------

    def create_plan(
        self,
        jobs: Iterable[Job],
        agents: list[Agent],
        hospital_map: HospitalMap,
        now: float,
    ) -> Plan:
        """Single greedy pass over the priority-sorted queue."""
        agent_plans: list[AgentPlan] = []
        unassigned: list[str] = []
        claimed: set[str] = set()

        for job in sort_jobs_by_priority(filter(is_queued, jobs), now, self.starvation_threshold):
            free = [a for a in agents if a.agent_id not in claimed]
            found = self.find_best_agent(job, free, hospital_map)
            if found is not None:
                agent, legs = found
                agent_plan = self.build_agent_plan(agent, job, hospital_map, now, legs)
                if agent_plan is not None:
                    agent_plans.append(agent_plan)
                    claimed.add(agent.agent_id)
                    logger.info(
                        "[Dispatcher] %s -> %s (%s, %d steps)",
                        job.job_id, agent.agent_id, job.priority.value, len(agent_plan.route),
                    )
                    continue
            unassigned.append(job.job_id)

        metrics = PlanMetrics(
            total_energy_wh=sum(p.estimated_energy for p in agent_plans),
            total_co2_g=sum(p.estimated_co2 for p in agent_plans),
        )
        return Plan(
            timestamp=now,
            agent_plans=agent_plans,
            unassigned_job_ids=unassigned,
            metrics=metrics,
        )


def estimate_unassigned(job: Job, now: float) -> tuple[float, float, bool]:
    """Rough ``(start, delivery, likely_late)`` for a job the plan could not place."""
    likely_late = job.deadline < now + LIKELY_LATE_BUFFER
    return now + ETA_START_OFFSET, now + ETA_DELIVERY_OFFSET, likely_late
