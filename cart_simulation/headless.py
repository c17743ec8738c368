"""Headless (no-GUI) simulation runner."""

from __future__ import annotations

import logging
import random
import time as _time

from .enums import Pool, PriorityTier
from .constants import SECONDS_PER_TICK, SUPPLY_POINT
from .context import SimulationConfig, SimulationContext
from .executor import TickExecutor
from .map_builder import build_demo_map
from .metrics import compute_run_metrics
from .models import Agent, DeliveryItem, Location

logger = logging.getLogger(__name__)

DEMO_FLOOR = "floor-1"

# (pickup, dropoff, item, tier, weight kg, deadline s)
_DEMO_JOBS = [
    ((20, 5), (5, 5), "IV Fluids", PriorityTier.URGENT, 2.0, 300.0),
    ((20, 5), (31, 5), "Masks", PriorityTier.NON_URGENT, 0.5, 600.0),
    ((14, 24), (14, 5), "Medications", PriorityTier.EMERGENCY, 1.0, 180.0),
    ((20, 5), (5, 24), "Surgical Tools", PriorityTier.SEMI_URGENT, 3.0, 450.0),
]


def build_demo_context(config: SimulationConfig | None = None) -> SimulationContext:
    """The demo hospital floor with three carts and four queued jobs."""
    hospital_map = build_demo_map(DEMO_FLOOR)
    agents = [
        Agent("agent-1", (10, 15), DEMO_FLOOR, name="Cart Alpha",
              access_profiles=["GENERAL", "WARD"]),
        Agent("agent-2", (30, 15), DEMO_FLOOR, name="Cart Beta", battery=85.0,
              access_profiles=["GENERAL", "WARD", "ICU"]),
        Agent("agent-3", (20, 14), DEMO_FLOOR, name="Cart Gamma", battery=95.0,
              access_profiles=["GENERAL", "ICU", "OR"], pool=Pool.URGENT),
    ]
    context = SimulationContext(hospital_map, agents, config=config)
    for pickup, dropoff, item_type, tier, weight, deadline in _DEMO_JOBS:
        context.add_job(
            dropoff=Location(dropoff, DEMO_FLOOR),
            item=DeliveryItem(item_type, 1, weight),
            priority=tier,
            deadline=deadline,
            pickup=Location(pickup, DEMO_FLOOR),
        )
    return context


def build_random_context(
    num_agents: int = 3,
    num_jobs: int = 10,
    seed: int | None = None,
    config: SimulationConfig | None = None,
) -> SimulationContext:
    """Demo floor with *num_agents* carts on random corridor cells and *num_jobs* random jobs.

    Dropoffs are drawn from unrestricted open cells so every job is
    deliverable by a GENERAL cart.
    """
    rng = random.Random(seed)
    hospital_map = build_demo_map(DEMO_FLOOR)
    floor = hospital_map.get_floor(DEMO_FLOOR)

    open_cells = [
        cell.pos for cell in floor.cells()
        if cell.is_open and not cell.is_restricted and cell.pos != SUPPLY_POINT
    ]
    corridor = [pos for pos in open_cells if floor.cell_at(pos).room_id is None]
    rooms = [pos for pos in open_cells if floor.cell_at(pos).room_id is not None]

    if num_agents > len(corridor):
        raise ValueError(
            f"Cannot place {num_agents} agents: only {len(corridor)} corridor cells available"
        )

    rng.shuffle(corridor)
    agents = [
        Agent(f"agent-{i + 1}", corridor[i], DEMO_FLOOR,
              pool=Pool.URGENT if i % 3 == 2 else Pool.NON_URGENT)
        for i in range(num_agents)
    ]
    context = SimulationContext(hospital_map, agents, config=config)

    tiers = list(PriorityTier)
    for _ in range(num_jobs):
        tier = rng.choice(tiers)
        context.add_job(
            dropoff=Location(rng.choice(rooms), DEMO_FLOOR),
            item=DeliveryItem("Supplies", 1, round(rng.uniform(0.5, 10.0), 1)),
            priority=tier,
            deadline=rng.uniform(180.0, 900.0) + tier.rank * 120.0,
            pickup=Location(SUPPLY_POINT, DEMO_FLOOR),
        )
    return context


def run_headless(
    context: SimulationContext | None = None,
    sim_duration: float = 600.0,
    tick_dt: float = SECONDS_PER_TICK,
) -> dict:
    """Run the simulation without pygame rendering, using a fixed timestep.

    Returns a dict of performance metrics.
    """
    if context is None:
        context = build_demo_context()
    executor = TickExecutor(context)
    wall_start = _time.monotonic()

    total_ticks = 0
    while context.current_time < sim_duration:
        executor.advance(tick_dt)
        total_ticks += 1

    wall_elapsed = _time.monotonic() - wall_start
    snapshot = executor.push_metrics()

    result = {
        "num_agents": len(context.agents),
        "num_jobs": len(context.jobs),
        "delivered": executor.metrics.delivered,
        "on_time_percentage": snapshot.on_time_percentage,
        "total_energy_wh": snapshot.total_energy_wh,
        "total_co2_g": snapshot.total_co2_g,
        "deadheading_percentage": snapshot.deadheading_percentage,
        "idle_waiting_seconds": snapshot.idle_waiting_seconds,
        "idle_charging_seconds": snapshot.idle_charging_seconds,
        "replan_count": executor.replan_count,
        "total_ticks": total_ticks,
        "sim_duration": context.current_time,
        "wall_clock_seconds": wall_elapsed,
    }
    result.update(compute_run_metrics(context.jobs))
    logger.info("[Headless] %d/%d delivered in %.0fs sim (%.2fs wall)",
                result["delivered"], result["num_jobs"], context.current_time, wall_elapsed)
    return result
