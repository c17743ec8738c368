"""Running fleet metrics and the end-of-run summary."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from .enums import JobState
from .constants import CO2_PER_WH
from .plan import PlanMetrics

if TYPE_CHECKING:
    from .models import Job


@dataclass
class LiveMetrics:
    """Accumulated by the tick executor; snapshotted into ``PlanMetrics``."""
    total_energy_wh: float = 0.0
    idle_waiting_seconds: float = 0.0
    idle_charging_seconds: float = 0.0
    moving_with_payload_seconds: float = 0.0
    moving_without_payload_seconds: float = 0.0
    delivered: int = 0
    on_time: int = 0
    cells_moved: int = 0

    def record_move(self, energy_wh: float) -> None:
        self.total_energy_wh += energy_wh
        self.cells_moved += 1

    def record_motion_time(self, dt: float, loaded: bool) -> None:
        if loaded:
            self.moving_with_payload_seconds += dt
        else:
            self.moving_without_payload_seconds += dt

    def record_delivery(self, on_time: bool) -> None:
        self.delivered += 1
        if on_time:
            self.on_time += 1

    @property
    def deadheading_percentage(self) -> float:
        moving = self.moving_with_payload_seconds + self.moving_without_payload_seconds
        return self.moving_without_payload_seconds / moving * 100.0 if moving > 0 else 0.0

    @property
    def on_time_percentage(self) -> float:
        return self.on_time / self.delivered * 100.0 if self.delivered else 100.0

    def snapshot(self, co2_per_wh: float = CO2_PER_WH) -> PlanMetrics:
        return PlanMetrics(
            total_energy_wh=self.total_energy_wh,
            total_co2_g=self.total_energy_wh * co2_per_wh,
            idle_waiting_seconds=self.idle_waiting_seconds,
            idle_charging_seconds=self.idle_charging_seconds,
            on_time_percentage=self.on_time_percentage,
            deadheading_percentage=self.deadheading_percentage,
            energy_per_item=self.total_energy_wh / self.delivered if self.delivered else 0.0,
        )


def compute_run_metrics(jobs: Iterable[Job]) -> dict[str, int | float]:
    """Job-level totals for reports."""
    jobs = list(jobs)
    delivered = [j for j in jobs if j.state == JobState.DELIVERED]
    late = sum(1 for j in delivered if j.is_late())
    lateness = [
        j.progress.delivered_time - j.deadline for j in delivered
        if j.progress.delivered_time is not None and j.is_late()
    ]
    return {
        "total_jobs": len(jobs),
        "delivered_jobs": len(delivered),
        "late_jobs": late,
        "queued_jobs": sum(1 for j in jobs if j.state == JobState.QUEUED),
        "infeasible_jobs": sum(1 for j in jobs if j.state == JobState.INFEASIBLE),
        "max_lateness": round(max(lateness), 6) if lateness else 0.0,
    }
