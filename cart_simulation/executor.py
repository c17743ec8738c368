"""Tick executor: advances every cart one simulated tick at a time.

Per agent, in order: charging, critical battery, charger diversion, idle
bookkeeping, route following. After all agents have moved the executor
decides whether to ask the dispatcher for a new plan, and every few ticks
pushes a metrics snapshot to its observers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from .enums import AgentStatus, JobState, RouteAction
from .constants import (
    CHARGE_COMPLETE_BATTERY, CRITICAL_BATTERY, DEFAULT_CHARGE_RATE,
    ENERGY_PER_CELL_WH, LOW_BATTERY_SEEK, SECONDS_PER_TICK,
)
from .dispatcher import Dispatcher, estimate_unassigned
from .events import (
    agent_delayed, agent_low_battery, job_assigned, job_completed, job_delayed, replan_completed,
)
from .metrics import LiveMetrics
from .pathfinding import find_nearest_charger, find_path, is_traversable
from .plan import AgentExecutionState, AgentPlan, PlanMetrics, RouteStep

if TYPE_CHECKING:
    from .context import SimulationContext
    from .models import Agent, Job

logger = logging.getLogger(__name__)

Position = tuple[int, int]

_EPS = 1e-9


class TickExecutor:
    """Owns the per-agent execution cursors for the context's current plan."""

    def __init__(self, context: SimulationContext, dispatcher: Dispatcher | None = None) -> None:
        self.context = context
        self.dispatcher = dispatcher or Dispatcher(
            starvation_threshold=context.config.starvation_threshold_seconds,
            co2_per_wh=context.config.co2_per_wh,
        )
        self.states: dict[str, AgentExecutionState] = {}
        self.metrics = LiveMetrics()
        self.tick_count: int = 0
        self.replan_count: int = 0
        self.last_replan_time: float | None = None
        self._last_queued_ids: frozenset[str] | None = None
        self._metrics_observers: list[Callable[[PlanMetrics], None]] = []

    def add_metrics_observer(self, observer: Callable[[PlanMetrics], None]) -> None:
        self._metrics_observers.append(observer)

    def reset(self) -> None:
        """Forget cursors, counters and accumulated metrics."""
        self.states.clear()
        self.metrics = LiveMetrics()
        self.tick_count = 0
        self.replan_count = 0
        self.last_replan_time = None
        self._last_queued_ids = None

    def state_for(self, agent_id: str) -> AgentExecutionState:
        return self.states.setdefault(agent_id, AgentExecutionState())

    # -- Tick -----------------------------------------------------------------

    def tick(self) -> None:
        """Advance by one base tick scaled by the configured speed multiplier."""
        self.advance(SECONDS_PER_TICK * self.context.config.speed_multiplier)

    def advance(self, dt: float) -> None:
        ctx = self.context
        ctx.current_time += dt
        now = ctx.current_time

        for agent in ctx.agents:
            self._update_agent(agent, dt, now)

        self.tick_count += 1
        self._maybe_replan(now)

        if self.tick_count % ctx.config.metrics_push_interval_ticks == 0:
            self.push_metrics()

    def _update_agent(self, agent: Agent, dt: float, now: float) -> None:
        state = self.state_for(agent.agent_id)

        if agent.status == AgentStatus.CHARGING:
            self._charge(agent, state, dt)
            return

        if agent.battery <= CRITICAL_BATTERY and state.target_charger is None:
            self._divert_to_charger(agent, state, now, forced=True)

        if state.target_charger is not None:
            self._follow_diversion(agent, state, dt, now)
            return

        if agent.current_job_id is None and agent.status in (AgentStatus.IDLE, AgentStatus.WAITING):
            self.metrics.idle_waiting_seconds += dt

        agent_plan = self._active_plan(agent, state)
        if agent_plan is None:
            if agent.current_job_id is None and agent.battery < LOW_BATTERY_SEEK and not state.blocked:
                self._divert_to_charger(agent, state, now, forced=False)
            return

        self._follow_route(agent, agent_plan, state, dt, now)

    def _active_plan(self, agent: Agent, state: AgentExecutionState) -> AgentPlan | None:
        plan = self.context.plan
        if plan is None or state.route_completed:
            return None
        agent_plan = plan.plan_for(agent.agent_id)
        if agent_plan is None or not agent_plan.has_route:
            return None
        return agent_plan

    # -- Battery ------------------------------------------------------------

    def _charge(self, agent: Agent, state: AgentExecutionState, dt: float) -> None:
        charger = self.context.hospital_map.charger_at(agent.floor_id, agent.pos)
        rate = charger.charge_rate if charger is not None else DEFAULT_CHARGE_RATE
        agent.charge_battery(rate * dt)
        self.metrics.idle_charging_seconds += dt
        if agent.battery >= CHARGE_COMPLETE_BATTERY:
            agent.status = AgentStatus.IDLE
            state.target_charger = None
            logger.info("[Battery] %s charged to %.1f%%", agent.agent_id, agent.battery)

    def _divert_to_charger(
        self, agent: Agent, state: AgentExecutionState, now: float, forced: bool,
    ) -> None:
        ctx = self.context
        job_id = agent.current_job_id
        if forced:
            if job_id is not None:
                job = ctx.get_job(job_id)
                if job is not None:
                    job.unassign_agent()
                agent.clear_job()
            state.route_completed = True
            state.action_start_time = None

        floor = ctx.hospital_map.get_floor(agent.floor_id)
        found = None
        if floor is not None:
            found = find_nearest_charger(
                floor, agent.pos, ctx.hospital_map.chargers_on(agent.floor_id), agent,
            )
        if found is None:
            if not state.blocked:
                logger.warning("[Battery] %s has no reachable charger", agent.agent_id)
                ctx.emit(agent_delayed(now, agent.agent_id, agent.name, agent.pos, agent.floor_id))
            state.blocked = True
            agent.status = AgentStatus.WAITING
            return

        charger, dist = found
        state.target_charger = charger.position
        state.move_progress = 0.0
        state.blocked = False
        agent.status = AgentStatus.MOVING
        if forced:
            logger.info("[Battery] %s critical at %.1f%%, diverting to %s (%d cells)",
                        agent.agent_id, agent.battery, charger.id, dist)
            ctx.emit(agent_low_battery(now, agent.agent_id, agent.name, agent.battery, job_id))
        else:
            logger.info("[Battery] %s low at %.1f%%, heading to %s",
                        agent.agent_id, agent.battery, charger.id)

    def _follow_diversion(self, agent: Agent, state: AgentExecutionState, dt: float, now: float) -> None:
        target = state.target_charger
        if agent.pos != target:
            agent.status = AgentStatus.MOVING
            self._credit_motion(agent, state, dt)
            self._move_toward(agent, state, target, now)
        if agent.pos == target:
            agent.status = AgentStatus.CHARGING
            state.move_progress = 0.0
            logger.info("[Battery] %s docked at %s", agent.agent_id, target)

    # -- Movement ------------------------------------------------------------

    def _credit_motion(self, agent: Agent, state: AgentExecutionState, dt: float) -> None:
        state.move_progress += agent.speed * dt
        self.metrics.record_motion_time(dt, loaded=agent.current_payload > 0)

    def _next_cell(self, agent: Agent, target: Position) -> Position | None:
        floor = self.context.hospital_map.get_floor(agent.floor_id)
        if floor is None:
            return None
        x, y = agent.pos
        if abs(x - target[0]) + abs(y - target[1]) == 1:
            cell = floor.cell_at(target)
            if cell is not None and is_traversable(cell, agent):
                return target
        # Off the expected track (or the next cell closed): search again
        path = find_path(floor, agent.pos, target, agent)
        if path is None or len(path) < 2:
            return None
        return path[1]

    def _move_toward(self, agent: Agent, state: AgentExecutionState, target: Position, now: float) -> bool:
        """Spend whole cells of accumulated progress walking to *target*."""
        while state.move_progress >= 1.0 - _EPS and agent.pos != target:
            next_pos = self._next_cell(agent, target)
            if next_pos is None:
                state.move_progress = 0.0
                if not state.blocked:
                    logger.info("[Executor] %s cannot reach %s", agent.agent_id, target)
                    self.context.emit(agent_delayed(now, agent.agent_id, agent.name, target, agent.floor_id))
                state.blocked = True
                agent.status = AgentStatus.WAITING
                return False
            agent.set_position(next_pos)
            agent.drain_battery(agent.battery_drain_rate)
            self.metrics.record_move(ENERGY_PER_CELL_WH)
            state.move_progress -= 1.0
            state.blocked = False
        return agent.pos == target

    # -- Route following ------------------------------------------------------

    def _route_abandoned(self, agent: Agent, agent_plan: AgentPlan) -> bool:
        """True once the agent no longer holds the route's job (cancelled or requeued)."""
        job_id = agent.current_job_id
        if job_id is None or job_id not in agent_plan.job_ids:
            return True
        job = self.context.get_job(job_id)
        return job is None or job.state.is_terminal or job.assigned_agent_id != agent.agent_id

    def _follow_route(
        self, agent: Agent, agent_plan: AgentPlan, state: AgentExecutionState, dt: float, now: float,
    ) -> None:
        if self._route_abandoned(agent, agent_plan):
            logger.info("[Executor] %s dropping route for %s", agent.agent_id, agent_plan.job_ids)
            state.route_completed = True
            if agent.current_job_id in agent_plan.job_ids:
                agent.clear_job()
            elif agent.current_job_id is None:
                agent.status = AgentStatus.IDLE
            return

        route = agent_plan.route
        credited = False
        while state.step_index < len(route):
            step = route[state.step_index]

            if agent.pos != step.position:
                if not credited:
                    credited = True
                    agent.status = AgentStatus.MOVING
                    self._credit_motion(agent, state, dt)
                arrived = self._move_toward(agent, state, step.position, now)
                self._sync_delay(agent, agent_plan, state, step.position, now)
                if not arrived:
                    return
                continue

            if step.action is None:
                state.step_index += 1
                continue

            if state.action_start_time is None:
                state.action_start_time = now
                state.move_progress = 0.0
                agent.status = (AgentStatus.PICKING_UP if step.action == RouteAction.PICKUP
                                else AgentStatus.DROPPING_OFF)
            if now - state.action_start_time + _EPS < step.duration:
                return

            self._complete_action(agent, agent_plan, step, now)
            state.action_start_time = None
            state.step_index += 1
            if state.step_index < len(route):
                return

        state.route_completed = True
        if agent.current_job_id is None:
            agent.status = AgentStatus.IDLE
        logger.debug("[Executor] %s finished route", agent.agent_id)

    def _sync_delay(
        self, agent: Agent, agent_plan: AgentPlan, state: AgentExecutionState,
        target: Position, now: float,
    ) -> None:
        """Mark held jobs DELAYED while the cart is stuck and restore them once it moves."""
        for job in self._route_jobs(agent_plan):
            if state.blocked and job.state in (JobState.ASSIGNED, JobState.IN_PROGRESS):
                reason = f"{agent.agent_id} cannot reach {target}"
                job.set_state(JobState.DELAYED, reason)
                logger.info("[Executor] %s delayed: %s", job.job_id, reason)
                self.context.emit(job_delayed(now, job.job_id, agent.agent_id, reason))
            elif not state.blocked and job.state == JobState.DELAYED:
                job.set_state(JobState.IN_PROGRESS if job.progress.picked_up else JobState.ASSIGNED)
                job.delay_reason = None

    def _route_jobs(self, agent_plan: AgentPlan) -> list[Job]:
        jobs = (self.context.get_job(job_id) for job_id in agent_plan.job_ids)
        return [job for job in jobs if job is not None]

    def _complete_action(self, agent: Agent, agent_plan: AgentPlan, step: RouteStep, now: float) -> None:
        jobs = self._route_jobs(agent_plan)

        if step.action == RouteAction.PICKUP:
            for job in jobs:
                if job.state == JobState.ASSIGNED and not job.progress.picked_up:
                    job.mark_picked_up(now)
                    agent.set_payload(agent.current_payload + job.item.weight)
                    logger.info("[Executor] %s picked up %s for %s",
                                agent.agent_id, job.item.item_type, job.job_id)
                    break
            return

        for job in jobs:
            if job.state not in (JobState.ASSIGNED, JobState.IN_PROGRESS):
                continue
            job.mark_delivered(now)
            on_time = now <= job.deadline
            self.metrics.record_delivery(on_time)
            agent.set_payload(agent.current_payload - job.item.weight)
            late_by = max(0.0, now - job.deadline)
            logger.info("[Executor] %s delivered %s at t=%.1f%s", agent.agent_id, job.job_id, now,
                        "" if on_time else f" ({late_by:.0f}s late)")
            self.context.emit(job_completed(now, job.job_id, agent.agent_id, late_by))
            break

        if all(job.state.is_terminal for job in jobs):
            agent.clear_job()

    # -- Replanning ------------------------------------------------------------

    def _has_active_routes(self) -> bool:
        plan = self.context.plan
        if plan is None:
            return False
        return any(
            agent_plan.has_route and not self.state_for(agent_plan.agent_id).route_completed
            for agent_plan in plan.agent_plans
        )

    def _maybe_replan(self, now: float) -> None:
        ctx = self.context
        plan_cleared = False
        if ctx.plan is not None and not self._has_active_routes():
            plan_cleared = bool(ctx.plan.agent_plans)
            ctx.plan = None
        if ctx.plan is not None:
            return

        queued = ctx.jobs_in_state(JobState.QUEUED)
        if not queued or not ctx.available_agents():
            return

        queued_ids = frozenset(job.job_id for job in queued)
        cooled_down = (
            self.last_replan_time is None
            or now - self.last_replan_time >= ctx.config.replan_cooldown_seconds - _EPS
        )
        if queued_ids != self._last_queued_ids:
            self.replan("New jobs available")
        elif plan_cleared:
            self.replan("Routes completed")
        elif cooled_down:
            self.replan("Periodic retry")

    def release_active_routes(self) -> None:
        """Return jobs on unfinished routes to the queue before a new plan replaces them."""
        ctx = self.context
        if ctx.plan is None:
            return
        for agent_plan in ctx.plan.agent_plans:
            if self.state_for(agent_plan.agent_id).route_completed:
                continue
            for job in self._route_jobs(agent_plan):
                if job.state in (JobState.ASSIGNED, JobState.IN_PROGRESS, JobState.DELAYED):
                    job.unassign_agent()
            agent = ctx.get_agent(agent_plan.agent_id)
            if agent is not None and agent.current_job_id in agent_plan.job_ids:
                agent.clear_job()

    def replan(self, reason: str = "Manual replan") -> None:
        """Ask the dispatcher for a fresh plan and apply its assignments."""
        ctx = self.context
        now = ctx.current_time
        self.release_active_routes()

        plan = self.dispatcher.create_plan(ctx.jobs, ctx.agents, ctx.hospital_map, now)
        self.replan_count += 1
        self.last_replan_time = now

        for agent_plan in plan.agent_plans:
            agent = ctx.get_agent(agent_plan.agent_id)
            last = agent_plan.route[-1]
            delivery_eta = last.arrival_time + last.duration
            for job in self._route_jobs(agent_plan):
                job.assign_agent(agent.agent_id)
                job.update_etas(agent_plan.route[0].arrival_time, delivery_eta,
                                delivery_eta > job.deadline)
                agent.assign_job(job.job_id)
                ctx.emit(job_assigned(now, job.job_id, agent.agent_id, agent.name))

        for job_id in plan.unassigned_job_ids:
            job = ctx.get_job(job_id)
            if job is not None:
                job.update_etas(*estimate_unassigned(job, now))

        # Diversions survive a replan; route cursors do not
        diverting = {aid: st.target_charger for aid, st in self.states.items() if st.target_charger}
        self.states = {}
        for agent in ctx.agents:
            state = self.state_for(agent.agent_id)
            if plan.plan_for(agent.agent_id) is None:
                state.target_charger = diverting.get(agent.agent_id)

        ctx.plan = plan
        self._last_queued_ids = frozenset(j.job_id for j in ctx.jobs_in_state(JobState.QUEUED))

        logger.info("[Replan] t=%.1f %s: %d assigned, %d unassigned",
                    now, reason, len(plan.agent_plans), len(plan.unassigned_job_ids))
        ctx.emit(replan_completed(now, reason, len(plan.agent_plans), len(plan.unassigned_job_ids),
                                  plan.metrics.total_energy_wh, plan.metrics.total_co2_g))

    # -- Metrics ------------------------------------------------------------

    def push_metrics(self) -> PlanMetrics:
        snapshot = self.metrics.snapshot(self.context.config.co2_per_wh)
        if self.context.plan is not None:
            self.context.plan.metrics = snapshot
        for observer in self._metrics_observers:
            observer(snapshot)
        return snapshot
