"""
Tick executor tests: end-to-end delivery on a corridor, payload and battery
handling, charger diversion, blocked routes and the replan trigger.
"""

import math

from cart_simulation import (
    Agent, AgentStatus, CellKind, DeliveryItem, EventType, HospitalMap, Job,
    JobState, Location, PriorityTier, SimulationContext, TickExecutor,
    build_corridor_floor, paint_cells,
)
from cart_simulation.hospital_map import Charger


# -- Helpers ----------------------------------------------------------

def _context(agents, jobs=(), length=10, chargers=()):
    hospital_map = HospitalMap(
        floors=[build_corridor_floor("f1", length)],
        chargers=[Charger(f"c{i}", pos, "f1") for i, pos in enumerate(chargers, 1)],
    )
    return SimulationContext(hospital_map, agents, list(jobs))


def _job(job_id="j1", pickup=(0, 0), dropoff=(9, 0), weight=5.0, deadline=100.0,
         pickup_time=2.0, dropoff_time=2.0, tier=PriorityTier.URGENT):
    return Job(
        job_id,
        dropoff=Location(dropoff, "f1"),
        item=DeliveryItem("Blood", 1, weight),
        priority=tier,
        deadline=deadline,
        pickup=Location(pickup, "f1") if pickup else None,
        pickup_service_time=pickup_time,
        dropoff_service_time=dropoff_time,
    )


def _run(executor, ticks, dt=0.1):
    for _ in range(ticks):
        executor.advance(dt)


# -- End to end -------------------------------------------------------

def test_corridor_delivery_end_to_end():
    agent = Agent("a1", (0, 0), "f1", speed=1.0)
    job = _job()
    context = _context([agent], [job])
    executor = TickExecutor(context)

    _run(executor, 200)

    assert job.state == JobState.DELIVERED
    # 9 cells at 1 cell/s plus 2 s pickup and 2 s dropoff
    assert abs(job.progress.delivered_time - 13.0) <= 0.5
    assert not job.is_late()
    assert agent.pos == (9, 0)
    assert agent.status == AgentStatus.IDLE
    assert agent.current_job_id is None
    assert agent.current_payload == 0.0
    assert abs(agent.battery - (100.0 - 9 * agent.battery_drain_rate)) < 1e-6

    assert context.plan is None
    assert len(context.event_log.by_type(EventType.JOB_ASSIGNED)) == 1
    assert len(context.event_log.by_type(EventType.JOB_COMPLETED)) == 1
    assert executor.metrics.delivered == 1
    assert executor.metrics.on_time_percentage == 100.0


def test_assignment_written_back_on_replan():
    agent = Agent("a1", (0, 0), "f1")
    job = _job()
    context = _context([agent], [job])
    executor = TickExecutor(context)

    executor.advance(0.1)

    assert executor.replan_count == 1
    assert job.state == JobState.ASSIGNED
    assert job.assigned_agent_id == "a1"
    assert agent.current_job_id == "j1"
    assert agent.status == AgentStatus.MOVING
    assert job.estimated_delivery_time is not None
    assert len(context.event_log.by_type(EventType.REPLAN_COMPLETED)) == 1


def test_payload_round_trip():
    agent = Agent("a1", (0, 0), "f1", payload_limit=10.0)
    job = _job(weight=5.0)
    executor = TickExecutor(_context([agent], [job]))

    max_payload = 0.0
    picked_payload = None
    for _ in range(200):
        executor.advance(0.1)
        max_payload = max(max_payload, agent.current_payload)
        if job.state == JobState.IN_PROGRESS and picked_payload is None:
            picked_payload = agent.current_payload

    assert picked_payload == 5.0
    assert max_payload <= agent.payload_limit
    assert job.state == JobState.DELIVERED
    assert agent.current_payload == 0.0


def test_job_without_pickup_delivered():
    agent = Agent("a1", (2, 0), "f1")
    job = _job(pickup=None, dropoff=(6, 0))
    executor = TickExecutor(_context([agent], [job]))

    _run(executor, 100)

    assert job.state == JobState.DELIVERED
    assert job.progress.pickup_time is None
    assert agent.pos == (6, 0)


def test_late_delivery_recorded():
    agent = Agent("a1", (0, 0), "f1")
    job = _job(deadline=5.0)
    context = _context([agent], [job])
    executor = TickExecutor(context)

    _run(executor, 200)

    assert job.state == JobState.DELIVERED
    assert job.is_late()
    assert executor.metrics.on_time_percentage == 0.0
    completed = context.event_log.by_type(EventType.JOB_COMPLETED)[0]
    assert completed.impact["late_jobs"] == 1


# -- Battery ----------------------------------------------------------

def test_critical_battery_requeues_job_and_charges():
    agent = Agent("a1", (5, 0), "f1")
    job = _job(pickup=(9, 0), dropoff=(8, 0))
    context = _context([agent], [job], chargers=[(0, 0)])
    executor = TickExecutor(context)

    executor.advance(0.1)
    assert job.state == JobState.ASSIGNED

    agent.battery = 4.0
    executor.advance(0.1)

    assert job.state == JobState.QUEUED
    assert job.assigned_agent_id is None
    assert agent.current_job_id is None
    assert executor.state_for("a1").target_charger == (0, 0)
    assert len(context.event_log.by_type(EventType.AGENT_LOW_BATTERY)) == 1

    saw_charging = False
    left_charger = False
    for _ in range(1500):
        executor.advance(0.1)
        assert 0.0 <= agent.battery <= agent.max_battery
        if agent.status == AgentStatus.CHARGING:
            saw_charging = True
            assert agent.pos == (0, 0)
        elif saw_charging:
            left_charger = True
            break

    assert left_charger
    assert agent.battery >= 95.0
    # Charged agent is dispatchable again and picks the requeued job back up
    assert job.state == JobState.ASSIGNED
    assert agent.current_job_id == "j1"


def test_critical_battery_after_pickup_discards_load():
    agent = Agent("a1", (0, 0), "f1")
    job = _job(pickup=(2, 0), dropoff=(9, 0), weight=5.0)
    context = _context([agent], [job], chargers=[(0, 0)])
    executor = TickExecutor(context)

    for _ in range(100):
        executor.advance(0.1)
        if job.state == JobState.IN_PROGRESS:
            break
    assert job.state == JobState.IN_PROGRESS
    assert agent.current_payload == 5.0

    agent.battery = 4.0
    executor.advance(0.1)

    assert job.state == JobState.QUEUED
    assert job.assigned_agent_id is None
    assert job.progress.picked_up is False
    assert job.progress.pickup_time is None
    assert agent.current_job_id is None
    assert agent.current_payload == 0.0
    assert agent.status == AgentStatus.MOVING
    assert executor.state_for("a1").target_charger == (0, 0)


def test_idle_low_battery_agent_seeks_charger():
    agent = Agent("a1", (5, 0), "f1", battery=15.0)
    context = _context([agent], chargers=[(9, 0)])
    executor = TickExecutor(context)

    executor.advance(0.1)

    assert executor.state_for("a1").target_charger == (9, 0)
    assert agent.status == AgentStatus.MOVING
    assert context.event_log.by_type(EventType.AGENT_LOW_BATTERY) == []

    _run(executor, 60)
    assert agent.pos == (9, 0)
    assert agent.status == AgentStatus.CHARGING


def test_battery_bounds():
    agent = Agent("a1", (0, 0), "f1", battery=3.0, max_battery=100.0)
    agent.drain_battery(10.0)
    assert agent.battery == 0.0
    agent.charge_battery(250.0)
    assert agent.battery == 100.0
    assert Agent("a2", (0, 0), "f1", battery=150.0).battery == 100.0


def test_idle_time_accumulates():
    agent = Agent("a1", (0, 0), "f1")
    executor = TickExecutor(_context([agent]))
    _run(executor, 10)
    assert abs(executor.metrics.idle_waiting_seconds - 1.0) < 1e-6


# -- Route disruptions ------------------------------------------------

def test_blocked_route_emits_single_delay_event():
    agent = Agent("a1", (0, 0), "f1")
    job = _job(pickup=None, dropoff=(9, 0))
    context = _context([agent], [job])
    executor = TickExecutor(context)

    executor.advance(0.1)
    paint_cells(context.hospital_map.get_floor("f1"), [(5, 0)], CellKind.QUARANTINE)
    _run(executor, 150)

    assert agent.pos == (4, 0)
    assert job.state == JobState.DELAYED
    assert job.delay_reason == "a1 cannot reach (5, 0)"
    assert job.assigned_agent_id == "a1"
    assert len(context.event_log.by_type(EventType.AGENT_DELAYED)) == 1
    assert len(context.event_log.by_type(EventType.JOB_DELAYED)) == 1


def test_delayed_job_resumes_when_path_clears():
    agent = Agent("a1", (0, 0), "f1")
    job = _job(pickup=(2, 0), dropoff=(9, 0))
    context = _context([agent], [job])
    executor = TickExecutor(context)
    blocked_cell = context.hospital_map.get_floor("f1").cell_at((6, 0))

    executor.advance(0.1)
    blocked_cell.is_quarantine = True
    _run(executor, 150)
    assert job.state == JobState.DELAYED
    assert job.progress.picked_up

    blocked_cell.is_quarantine = False
    _run(executor, 10)
    assert job.state == JobState.IN_PROGRESS
    assert job.delay_reason is None

    _run(executor, 100)
    assert job.state == JobState.DELIVERED
    assert agent.current_payload == 0.0


def test_cancelled_job_releases_agent():
    agent = Agent("a1", (0, 0), "f1")
    job = _job(pickup=None, dropoff=(9, 0))
    context = _context([agent], [job])
    executor = TickExecutor(context)

    _run(executor, 30)
    assert context.cancel_job("j1")
    stopped_at = agent.pos
    _run(executor, 30)

    assert job.state == JobState.CANCELLED
    assert agent.current_job_id is None
    assert agent.status == AgentStatus.IDLE
    assert agent.pos == stopped_at
    assert context.plan is None


def test_manual_replan_reissues_in_flight_job():
    agent = Agent("a1", (0, 0), "f1")
    job = _job()
    context = _context([agent], [job])
    executor = TickExecutor(context)

    _run(executor, 5)
    executor.replan("Manual replan")

    assert executor.replan_count == 2
    assert job.state == JobState.ASSIGNED
    assert agent.current_job_id == "j1"

    _run(executor, 200)
    assert job.state == JobState.DELIVERED


# -- Replan trigger ---------------------------------------------------

def test_replan_cooldown_with_no_eligible_agents():
    agent = Agent("a1", (0, 0), "f1", payload_limit=1.0)
    job = _job(weight=5.0)
    context = _context([agent], [job])
    executor = TickExecutor(context)

    _run(executor, 200)  # 20 simulated seconds

    assert 1 <= executor.replan_count <= math.ceil(20 / 5)
    assert job.state == JobState.QUEUED
    assert job.is_likely_late  # deadline 100 < now + 120
    assert job.estimated_start_time is not None


def test_new_job_triggers_replan_before_cooldown():
    agent = Agent("a1", (0, 0), "f1", payload_limit=1.0)
    context = _context([agent], [_job("heavy", weight=5.0)])
    executor = TickExecutor(context)

    _run(executor, 3)
    assert executor.replan_count == 1

    context.jobs.append(_job("light", weight=0.5))
    executor.advance(0.1)

    assert executor.replan_count == 2
    assert context.get_job("light").state == JobState.ASSIGNED


def test_no_replan_without_idle_agents():
    agent = Agent("a1", (0, 0), "f1")
    agent.status = AgentStatus.WAITING
    executor = TickExecutor(_context([agent], [_job()]))
    _run(executor, 100)
    assert executor.replan_count == 0


def test_metrics_pushed_every_tenth_tick():
    agent = Agent("a1", (0, 0), "f1")
    executor = TickExecutor(_context([agent], [_job()]))
    pushed = []
    executor.add_metrics_observer(pushed.append)

    _run(executor, 35)

    assert len(pushed) == 3
    assert pushed[-1].total_energy_wh >= pushed[0].total_energy_wh
