"""Start/pause/stop/reset and speed control for a running simulation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .enums import AgentStatus, SimulationState
from .context import clamp_speed

if TYPE_CHECKING:
    from .executor import TickExecutor

logger = logging.getLogger(__name__)


class SimulationControls:
    """The control surface a UI (or a test) drives.

    ``step()`` is the timer callback: it advances the executor only while the
    simulation is RUNNING.
    """

    def __init__(self, executor: TickExecutor) -> None:
        self.executor = executor
        self.context = executor.context
        self.state: SimulationState = SimulationState.STOPPED
        self.last_replan_reason: str | None = None

    @property
    def is_running(self) -> bool:
        return self.state == SimulationState.RUNNING

    @property
    def speed_multiplier(self) -> float:
        return self.context.config.speed_multiplier

    def start(self) -> None:
        if self.state != SimulationState.REPLANNING:
            self.state = SimulationState.RUNNING
            logger.info("[Controls] running at %.1fx", self.speed_multiplier)

    def pause(self) -> None:
        if self.state == SimulationState.RUNNING:
            self.state = SimulationState.PAUSED
            logger.info("[Controls] paused at t=%.1f", self.context.current_time)

    def toggle_pause(self) -> None:
        if self.state == SimulationState.RUNNING:
            self.pause()
        else:
            self.start()

    def stop(self) -> None:
        self.state = SimulationState.STOPPED

    def reset(self) -> None:
        """Stop and rewind the clock. In-flight jobs go back to the queue; delivered ones stay delivered."""
        self.state = SimulationState.STOPPED
        self.executor.release_active_routes()
        self.context.current_time = 0.0
        self.context.plan = None
        self.executor.reset()
        for agent in self.context.agents:
            # Charger diversions were dropped with the executor state
            if agent.current_job_id is None and agent.status != AgentStatus.CHARGING:
                agent.status = AgentStatus.IDLE
        self.last_replan_reason = None
        logger.info("[Controls] reset")

    def set_speed_multiplier(self, multiplier: float) -> float:
        self.context.config.speed_multiplier = clamp_speed(multiplier)
        return self.context.config.speed_multiplier

    def step(self) -> bool:
        """Advance one tick if running. Returns whether time moved."""
        if self.state != SimulationState.RUNNING:
            return False
        self.executor.tick()
        return True

    def replan_now(self, reason: str = "Manual replan") -> None:
        previous = self.state
        self.state = SimulationState.REPLANNING
        try:
            self.executor.replan(reason)
        finally:
            self.state = previous
        self.last_replan_reason = reason
