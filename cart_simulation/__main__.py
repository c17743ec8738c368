"""Interactive pygame entry point.

Run with::

    python -m cart_simulation
"""

from __future__ import annotations

import logging
import random
import sys

import pygame

from .enums import PriorityTier
from .constants import FPS, SPEED_STEPS, SUPPLY_POINT
from .controls import SimulationControls
from .executor import TickExecutor
from .headless import DEMO_FLOOR, build_demo_context
from .map_builder import verify_floor
from .models import DeliveryItem, Location
from .renderer import render, window_size

logger = logging.getLogger(__name__)


def _add_random_job(controls: SimulationControls, rng: random.Random) -> None:
    context = controls.context
    floor = context.hospital_map.get_floor(DEMO_FLOOR)
    targets = [
        cell.pos for cell in floor.cells()
        if cell.is_open and cell.room_id is not None and not cell.is_restricted
    ]
    tier = rng.choice(list(PriorityTier))
    context.add_job(
        dropoff=Location(rng.choice(targets), DEMO_FLOOR),
        item=DeliveryItem("Supplies", 1, round(rng.uniform(0.5, 5.0), 1)),
        priority=tier,
        deadline=context.current_time + 180.0 + tier.rank * 120.0,
        pickup=Location(SUPPLY_POINT, DEMO_FLOOR),
    )


def main() -> None:
    """Launch the interactive hospital cart simulation."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
    )

    context = build_demo_context()
    executor = TickExecutor(context)
    controls = SimulationControls(executor)
    floor = context.hospital_map.get_floor(DEMO_FLOOR)
    verify_floor(floor, context.hospital_map)
    rng = random.Random()

    pygame.init()
    screen = pygame.display.set_mode(window_size(floor))
    pygame.display.set_caption("Hospital Cart Fleet Simulation")
    clock = pygame.time.Clock()

    font_sm = pygame.font.SysFont("Arial", 11)
    font_md = pygame.font.SysFont("Arial", 14, bold=True)

    logger.info("Floor %s: %dx%d cells, %d agents, %d jobs",
                floor.id, floor.width, floor.height, len(context.agents), len(context.jobs))
    logger.info("Controls: Space=pause, Up/Down=speed steps, R=replan, J=random job, Backspace=reset")
    logger.info("Press Q or close window to quit.")

    speed_index = SPEED_STEPS.index(1.0)
    controls.start()

    running = True
    while running:
        clock.tick(FPS)

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False

            elif event.type == pygame.KEYDOWN:
                if event.key in (pygame.K_q, pygame.K_ESCAPE):
                    running = False

                elif event.key == pygame.K_UP:
                    speed_index = min(speed_index + 1, len(SPEED_STEPS) - 1)
                    logger.info("Speed: %sx", controls.set_speed_multiplier(SPEED_STEPS[speed_index]))

                elif event.key == pygame.K_DOWN:
                    speed_index = max(speed_index - 1, 0)
                    logger.info("Speed: %sx", controls.set_speed_multiplier(SPEED_STEPS[speed_index]))

                elif event.key == pygame.K_SPACE:
                    controls.toggle_pause()

                elif event.key == pygame.K_r:
                    controls.replan_now()

                elif event.key == pygame.K_j:
                    _add_random_job(controls, rng)

                elif event.key == pygame.K_BACKSPACE:
                    controls.reset()

        # One base tick per frame; the multiplier scales simulated time
        controls.step()

        render(screen, controls, floor, font_sm, font_md)
        pygame.display.flip()

    pygame.quit()
    sys.exit()


if __name__ == "__main__":
    main()
