"""All pygame rendering functions for the hospital floor viewer."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pygame

from .enums import JobState
from .constants import (
    BG_COLOR, OUTLINE_COLOR, CELL_COLORS, PANEL_WIDTH,
    PANEL_BG, PANEL_TEXT, PANEL_HEADER, PANEL_SEPARATOR,
    PANEL_GREEN, PANEL_YELLOW, PANEL_RED,
    PRIORITY_COLORS, AGENT_STATUS_COLORS, ROUTE_COLOR,
)

if TYPE_CHECKING:
    from .controls import SimulationControls
    from .hospital_map import Floor, GridCell
    from .models import Agent, Job
    from .plan import AgentPlan


def window_size(floor: Floor) -> tuple[int, int]:
    return floor.width * floor.cell_size + PANEL_WIDTH, floor.height * floor.cell_size


def _cell_color(cell: GridCell) -> tuple[int, int, int]:
    if cell.is_charger:
        return CELL_COLORS["charger"]
    if cell.is_storage:
        return CELL_COLORS["storage"]
    if cell.is_staging:
        return CELL_COLORS["staging"]
    if cell.is_quarantine:
        return CELL_COLORS["quarantine"]
    if not cell.is_open:
        return CELL_COLORS["blocked"]
    if cell.is_restricted:
        return CELL_COLORS["restricted"]
    return CELL_COLORS["walkable"]


def draw_cell(surface: pygame.Surface, cell: GridCell, size: int) -> None:
    rect = pygame.Rect(cell.x * size, cell.y * size, size, size)
    pygame.draw.rect(surface, _cell_color(cell), rect)
    if cell.is_open:
        pygame.draw.rect(surface, OUTLINE_COLOR, rect, 1)


def draw_job(surface: pygame.Surface, job: Job, size: int) -> None:
    """Dropoff marker: a small square in the job's priority colour."""
    x, y = job.dropoff.position
    inset = size // 4
    rect = pygame.Rect(x * size + inset, y * size + inset, size - 2 * inset, size - 2 * inset)
    pygame.draw.rect(surface, PRIORITY_COLORS[job.priority], rect)
    if job.is_likely_late:
        pygame.draw.rect(surface, PANEL_RED, rect.inflate(4, 4), 1)


def draw_agent(
    surface: pygame.Surface,
    agent: Agent,
    agent_plan: AgentPlan | None,
    step_index: int,
    size: int,
    font: pygame.font.Font,
) -> None:
    """Agent circle coloured by status with battery arc, plus its remaining route."""
    if agent_plan is not None:
        for step in agent_plan.route[step_index:]:
            sx, sy = step.position
            pygame.draw.circle(surface, ROUTE_COLOR, (sx * size + size // 2, sy * size + size // 2), 2)

    cx = agent.pos[0] * size + size // 2
    cy = agent.pos[1] * size + size // 2
    radius = size // 2 - 2
    pygame.draw.circle(surface, AGENT_STATUS_COLORS[agent.status], (cx, cy), radius)
    pygame.draw.circle(surface, (0, 0, 0), (cx, cy), radius, 2)

    if agent.battery < 20:
        pygame.draw.circle(surface, PANEL_RED, (cx, cy), radius + 2, 2)

    label = font.render(agent.agent_id.rsplit("-", 1)[-1], True, (255, 255, 255))
    surface.blit(label, label.get_rect(center=(cx, cy)))


def draw_metrics_panel(
    surface: pygame.Surface,
    font_sm: pygame.font.Font,
    font_md: pygame.font.Font,
    controls: SimulationControls,
    left: int,
    height: int,
) -> None:
    """Draw the metrics panel on the right side of the window."""
    context = controls.context
    executor = controls.executor
    panel_rect = pygame.Rect(left, 0, PANEL_WIDTH, height)
    pygame.draw.rect(surface, PANEL_BG, panel_rect)

    y = 10
    line_h = 16
    section_gap = 8

    def header(text: str) -> None:
        nonlocal y
        pygame.draw.line(surface, PANEL_SEPARATOR, (left + 10, y), (left + PANEL_WIDTH - 10, y))
        y += 4
        surface.blit(font_md.render(text, True, PANEL_HEADER), (left + 10, y))
        y += line_h + 4

    def row(label_text: str, value: str, color: tuple = PANEL_TEXT) -> None:
        nonlocal y
        surface.blit(font_sm.render(f"  {label_text}: {value}", True, color), (left + 8, y))
        y += line_h

    # 1. SIMULATION
    header("SIMULATION")
    t = context.current_time
    row("Time", f"{int(t // 3600):02d}:{int(t % 3600 // 60):02d}:{int(t % 60):02d}")
    row("Speed", f"{controls.speed_multiplier}x")
    row("State", controls.state.value, PANEL_GREEN if controls.is_running else PANEL_YELLOW)
    row("Replans", str(executor.replan_count))
    y += section_gap

    # 2. FLEET
    header("FLEET")
    for agent in context.agents:
        color = PANEL_RED if agent.battery < 20 else PANEL_TEXT
        row(agent.name, f"{agent.status.value} {agent.battery:.0f}%", color)
    y += section_gap

    # 3. QUEUE
    header("QUEUE")
    queue = context.sorted_queue()
    delivered = len(context.jobs_in_state(JobState.DELIVERED))
    row("Open", f"{len(queue)}  Delivered: {delivered}")
    for job in queue[:6]:
        row(job.job_id, f"{job.priority.value} {job.state.value}", PRIORITY_COLORS[job.priority])
    y += section_gap

    # 4. METRICS
    header("METRICS")
    m = executor.metrics.snapshot(context.config.co2_per_wh)
    row("Energy", f"{m.total_energy_wh:.1f} Wh")
    row("CO2", f"{m.total_co2_g:.1f} g")
    row("On time", f"{m.on_time_percentage:.0f}%")
    row("Deadheading", f"{m.deadheading_percentage:.0f}%")
    row("Idle", f"{m.idle_waiting_seconds:.0f}s  Charging: {m.idle_charging_seconds:.0f}s")
    y += section_gap

    # 5. EVENTS
    header("EVENTS")
    if context.event_log is not None:
        for event in context.event_log.recent(5):
            row(f"{event.timestamp:.0f}s", event.summary[:32])

    hint = font_sm.render("Space:Pause Up/Dn:Speed R:Replan J:Job", True, PANEL_SEPARATOR)
    surface.blit(hint, (left + 10, height - 20))


def render(
    screen: pygame.Surface,
    controls: SimulationControls,
    floor: Floor,
    font_sm: pygame.font.Font,
    font_md: pygame.font.Font,
) -> None:
    """Full frame render: background, cells, job markers, agents, panel."""
    screen.fill(BG_COLOR)
    context = controls.context
    size = floor.cell_size

    for cell in floor.cells():
        draw_cell(screen, cell, size)

    for job in context.sorted_queue():
        if job.floor_id == floor.id:
            draw_job(screen, job, size)

    plan = context.plan
    for agent in context.agents_on_floor(floor.id):
        agent_plan = plan.plan_for(agent.agent_id) if plan is not None else None
        state = controls.executor.state_for(agent.agent_id)
        if state.route_completed:
            agent_plan = None
        draw_agent(screen, agent, agent_plan, state.step_index, size, font_sm)

    draw_metrics_panel(screen, font_sm, font_md, controls, floor.width * size, floor.height * size)
