"""Simulation events and the in-process event log."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from .enums import EventType
from .constants import MAX_EVENTS

logger = logging.getLogger(__name__)

Position = tuple[int, int]


@dataclass
class SimEvent:
    event_type: EventType
    timestamp: float
    summary: str
    details: str | None = None
    job_ids: list[str] = field(default_factory=list)
    agent_ids: list[str] = field(default_factory=list)
    triage_case_id: str | None = None
    position: Position | None = None
    floor_id: str | None = None
    impact: dict[str, float] = field(default_factory=dict)
    acknowledged: bool = False
    event_id: str | None = None  # stamped by SimulationContext.emit


EventSink = Callable[[SimEvent], None]


class EventLog:
    """Newest-first list of events, capped at *max_events*.

    Instances are callable so they can be handed to the context as its sink.
    """

    def __init__(self, max_events: int = MAX_EVENTS) -> None:
        self.max_events = max_events
        self.events: list[SimEvent] = []

    def __call__(self, event: SimEvent) -> None:
        self.add(event)

    def __len__(self) -> int:
        return len(self.events)

    def add(self, event: SimEvent) -> None:
        self.events.insert(0, event)
        del self.events[self.max_events:]

    def acknowledge(self, event_id: str) -> bool:
        for event in self.events:
            if event.event_id == event_id:
                event.acknowledged = True
                return True
        return False

    def acknowledge_all(self) -> None:
        for event in self.events:
            event.acknowledged = True

    @property
    def unacknowledged_count(self) -> int:
        return sum(1 for e in self.events if not e.acknowledged)

    def by_type(self, event_type: EventType) -> list[SimEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def recent(self, n: int = 10) -> list[SimEvent]:
        return self.events[:n]

    def clear(self) -> None:
        self.events.clear()


# -- Factories ---------------------------------------------------------------

def job_created(now: float, job_id: str, priority: str, dropoff: Position, floor_id: str) -> SimEvent:
    return SimEvent(
        EventType.JOB_CREATED, now, f"New {priority} job created",
        job_ids=[job_id], position=dropoff, floor_id=floor_id,
    )


def job_assigned(now: float, job_id: str, agent_id: str, agent_name: str) -> SimEvent:
    return SimEvent(
        EventType.JOB_ASSIGNED, now, f"Job {job_id} assigned to {agent_name}",
        job_ids=[job_id], agent_ids=[agent_id],
    )


def job_completed(now: float, job_id: str, agent_id: str, late_by: float) -> SimEvent:
    summary = f"Job {job_id} delivered"
    if late_by > 0:
        summary += f" ({late_by:.0f}s late)"
    return SimEvent(
        EventType.JOB_COMPLETED, now, summary,
        job_ids=[job_id], agent_ids=[agent_id],
        impact={"late_jobs": 1 if late_by > 0 else 0, "time_delta": late_by},
    )


def job_infeasible(now: float, job_id: str, reason: str) -> SimEvent:
    return SimEvent(
        EventType.JOB_INFEASIBLE, now, f"Job {job_id} is infeasible",
        details=reason, job_ids=[job_id],
    )


def job_cancelled(now: float, job_id: str) -> SimEvent:
    return SimEvent(EventType.JOB_CANCELLED, now, f"Job {job_id} cancelled", job_ids=[job_id])


def job_delayed(now: float, job_id: str, agent_id: str, reason: str) -> SimEvent:
    return SimEvent(
        EventType.JOB_DELAYED, now, f"Job {job_id} delayed",
        details=reason, job_ids=[job_id], agent_ids=[agent_id],
    )


def agent_low_battery(now: float, agent_id: str, agent_name: str, battery: float,
                      job_id: str | None = None) -> SimEvent:
    details = f"Job {job_id} returned to queue" if job_id else None
    return SimEvent(
        EventType.AGENT_LOW_BATTERY, now,
        f"{agent_name} battery critical ({battery:.0f}%)",
        details=details,
        job_ids=[job_id] if job_id else [],
        agent_ids=[agent_id],
    )


def agent_delayed(now: float, agent_id: str, agent_name: str, target: Position,
                  floor_id: str) -> SimEvent:
    return SimEvent(
        EventType.AGENT_DELAYED, now, f"{agent_name} cannot find path",
        details=f"No route to {target}",
        agent_ids=[agent_id], position=target, floor_id=floor_id,
    )


def replan_completed(now: float, reason: str, assigned: int, unassigned: int,
                     energy_wh: float, co2_g: float) -> SimEvent:
    return SimEvent(
        EventType.REPLAN_COMPLETED, now, f"Replan: {reason}",
        details=f"{assigned} assigned, {unassigned} unassigned",
        impact={"energy_delta": energy_wh, "co2_delta": co2_g},
    )


def triage_event(event_type: EventType, now: float, case_id: str, summary: str,
                 position: Position | None = None, floor_id: str | None = None,
                 job_ids: list[str] | None = None) -> SimEvent:
    return SimEvent(
        event_type, now, summary,
        job_ids=list(job_ids or []), triage_case_id=case_id,
        position=position, floor_id=floor_id,
    )
