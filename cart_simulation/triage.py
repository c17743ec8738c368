"""Triage cases: a patient event that expands into a bundle of delivery jobs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enums import EventType, JobState, PriorityTier
from .constants import SUPPLY_POINT, TRIAGE_DEADLINE_OFFSETS, TRIAGE_DEFAULT_DEADLINE_OFFSET
from .events import triage_event
from .models import DeliveryItem, Location

if TYPE_CHECKING:
    from .context import SimulationContext
    from .models import Job

logger = logging.getLogger(__name__)

LEVEL_TO_PRIORITY = {
    1: PriorityTier.IMMEDIATE,
    2: PriorityTier.EMERGENCY,
    3: PriorityTier.URGENT,
    4: PriorityTier.SEMI_URGENT,
    5: PriorityTier.NON_URGENT,
}

# bundle -> (display name, [(item type, quantity, weight kg)])
TRIAGE_BUNDLES: dict[str, tuple[str, list[tuple[str, int, float]]]] = {
    "CRASH_CODE_BLUE": ("Crash/Code Blue", [
        ("Defibrillator", 1, 5.0),
        ("Emergency Meds", 1, 0.5),
        ("IV Kit", 2, 1.0),
    ]),
    "TRAUMA": ("Trauma", [
        ("Blood Products", 2, 1.0),
        ("Surgical Kit", 1, 3.0),
        ("Bandages", 5, 0.5),
    ]),
    "OR_PREP": ("OR Prep", [
        ("Surgical Instruments", 1, 4.0),
        ("Sterile Drapes", 3, 1.0),
        ("Anesthesia Supplies", 1, 2.0),
    ]),
    "ISOLATION": ("Isolation", [
        ("PPE Kit", 5, 0.5),
        ("Isolation Gowns", 10, 1.0),
        ("N95 Masks", 20, 0.2),
    ]),
}


def deadline_offset(level: int) -> float:
    return TRIAGE_DEADLINE_OFFSETS.get(level, TRIAGE_DEFAULT_DEADLINE_OFFSET)


@dataclass
class TriageCase:
    case_id: str
    level: int
    location: Location
    created_at: float
    bundle: str | None = None
    linked_job_ids: list[str] = field(default_factory=list)
    resolved: bool = False
    notes: str = ""

    @property
    def priority(self) -> PriorityTier:
        return LEVEL_TO_PRIORITY[self.level]

    @property
    def status(self) -> str:
        return "RESOLVED" if self.resolved else "ACTIVE"


def _check_level(level: int) -> None:
    if level not in LEVEL_TO_PRIORITY:
        raise ValueError(f"triage level must be 1-5, got {level}")


def open_triage_case(
    context: SimulationContext,
    level: int,
    location: Location,
    bundle: str | None = None,
    supply_point: Location | None = None,
    notes: str = "",
) -> TriageCase:
    """Register a case and queue one job per bundle item."""
    _check_level(level)
    if bundle is not None and bundle not in TRIAGE_BUNDLES:
        raise ValueError(f"unknown triage bundle {bundle!r}")

    now = context.current_time
    case = TriageCase(
        case_id=context.ids.next("triage"),
        level=level,
        location=location,
        created_at=now,
        bundle=bundle,
        notes=notes,
    )
    context.triage_cases.append(case)
    context.emit(triage_event(
        EventType.TRIAGE_CREATED, now, case.case_id,
        f"Level {level} triage case opened",
        position=location.position, floor_id=location.floor_id,
    ))

    if bundle is not None:
        pickup = supply_point or Location(SUPPLY_POINT, location.floor_id)
        _, items = TRIAGE_BUNDLES[bundle]
        for item_type, quantity, weight in items:
            job = context.add_job(
                dropoff=Location(location.position, location.floor_id, location.room_id),
                item=DeliveryItem(item_type, quantity, weight),
                priority=case.priority,
                deadline=now + deadline_offset(level),
                pickup=pickup,
                triage_case_id=case.case_id,
            )
            case.linked_job_ids.append(job.job_id)

    logger.info("[Triage] %s level %d at %s: %d jobs",
                case.case_id, level, location.position, len(case.linked_job_ids))
    return case


def get_case(context: SimulationContext, case_id: str) -> TriageCase | None:
    for case in context.triage_cases:
        if case.case_id == case_id:
            return case
    return None


def _linked_open_jobs(context: SimulationContext, case: TriageCase) -> list[Job]:
    jobs = (context.get_job(job_id) for job_id in case.linked_job_ids)
    return [j for j in jobs if j is not None and j.state == JobState.QUEUED]


def _set_level(context: SimulationContext, case: TriageCase, level: int, event_type: EventType) -> int:
    if level == case.level:
        return level
    old = case.level
    case.level = level
    for job in _linked_open_jobs(context, case):
        job.set_priority(case.priority)
    context.emit(triage_event(
        event_type, context.current_time, case.case_id,
        f"Triage case level {old} -> {level}",
        position=case.location.position, floor_id=case.location.floor_id,
        job_ids=case.linked_job_ids,
    ))
    logger.info("[Triage] %s level %d -> %d", case.case_id, old, level)
    return level


def escalate(context: SimulationContext, case_id: str) -> int | None:
    """Raise the case one level (towards 1). Returns the new level."""
    case = get_case(context, case_id)
    if case is None:
        return None
    return _set_level(context, case, max(case.level - 1, 1), EventType.TRIAGE_ESCALATED)


def deescalate(context: SimulationContext, case_id: str) -> int | None:
    case = get_case(context, case_id)
    if case is None:
        return None
    return _set_level(context, case, min(case.level + 1, 5), EventType.TRIAGE_DEESCALATED)


def resolve(context: SimulationContext, case_id: str) -> bool:
    case = get_case(context, case_id)
    if case is None or case.resolved:
        return False
    case.resolved = True
    context.emit(triage_event(
        EventType.TRIAGE_RESOLVED, context.current_time, case.case_id,
        "Triage case resolved", job_ids=case.linked_job_ids,
    ))
    return True
