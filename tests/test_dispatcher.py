"""Greedy dispatcher: pool preference, filters, route construction and determinism."""

from cart_simulation import (
    Agent, DeliveryItem, Dispatcher, HospitalMap, Job, JobState, Location,
    Pool, PriorityTier, RouteAction, build_corridor_floor, build_floor,
)
from cart_simulation.dispatcher import estimate_unassigned


# -- Helpers ----------------------------------------------------------

def _grid_map(width=10, height=10):
    return HospitalMap(floors=[build_floor("f1", width, height, walkable=True)])


def _corridor_map(length=10):
    return HospitalMap(floors=[build_corridor_floor("f1", length)])


def _job(job_id="j1", tier=PriorityTier.URGENT, pickup=(1, 0), dropoff=(2, 0),
         weight=1.0, deadline=500.0, pickup_time=15.0, dropoff_time=20.0):
    return Job(
        job_id,
        dropoff=Location(dropoff, "f1"),
        item=DeliveryItem("Meds", 1, weight),
        priority=tier,
        deadline=deadline,
        pickup=Location(pickup, "f1") if pickup else None,
        pickup_service_time=pickup_time,
        dropoff_service_time=dropoff_time,
    )


def _agent(agent_id, pos, pool=Pool.NON_URGENT, **kwargs):
    return Agent(agent_id, pos, "f1", pool=pool, **kwargs)


def _assigned(plan):
    return plan.assignments()


# -- Pools ------------------------------------------------------------

def test_urgent_job_prefers_urgent_pool_over_nearer_agent():
    near = _agent("near", (0, 0))
    far = _agent("far", (9, 9), pool=Pool.URGENT)
    plan = Dispatcher().create_plan([_job(tier=PriorityTier.EMERGENCY)], [near, far], _grid_map(), 0.0)
    assert _assigned(plan) == {"j1": "far"}


def test_urgent_job_borrows_non_urgent_pool():
    agent = _agent("a1", (0, 0))
    plan = Dispatcher().create_plan([_job(tier=PriorityTier.IMMEDIATE)], [agent], _grid_map(), 0.0)
    assert _assigned(plan) == {"j1": "a1"}


def test_non_urgent_job_falls_back_to_any_available_agent():
    agent = _agent("a1", (0, 0), pool=Pool.URGENT)
    plan = Dispatcher().create_plan([_job(tier=PriorityTier.NON_URGENT)], [agent], _grid_map(), 0.0)
    assert _assigned(plan) == {"j1": "a1"}


def test_non_urgent_job_prefers_own_pool():
    urgent = _agent("u", (1, 1), pool=Pool.URGENT)
    regular = _agent("r", (9, 9))
    plan = Dispatcher().create_plan([_job(tier=PriorityTier.SEMI_URGENT)], [urgent, regular], _grid_map(), 0.0)
    assert _assigned(plan) == {"j1": "r"}


# -- Filters ----------------------------------------------------------

def test_payload_limit_rejects_agent():
    agent = _agent("a1", (0, 0), payload_limit=1.0)
    plan = Dispatcher().create_plan([_job(weight=5.0)], [agent], _grid_map(), 0.0)
    assert plan.agent_plans == []
    assert plan.unassigned_job_ids == ["j1"]


def test_low_battery_agent_not_dispatched():
    agent = _agent("a1", (0, 0), battery=20.0)
    plan = Dispatcher().create_plan([_job()], [agent], _grid_map(), 0.0)
    assert plan.unassigned_job_ids == ["j1"]


def test_battery_must_cover_both_legs():
    # 19 cells at 1% per cell leaves 6% < 10%
    agent = _agent("a1", (0, 0), battery=25.0, battery_drain_rate=1.0)
    job = _job(pickup=(0, 0), dropoff=(19, 0))
    plan = Dispatcher().create_plan([job], [agent], _corridor_map(20), 0.0)
    assert plan.unassigned_job_ids == ["j1"]

    agent.battery_drain_rate = 0.5
    plan = Dispatcher().create_plan([job], [agent], _corridor_map(20), 0.0)
    assert _assigned(plan) == {"j1": "a1"}


def test_busy_agent_skipped():
    agent = _agent("a1", (0, 0))
    agent.assign_job("other")
    plan = Dispatcher().create_plan([_job()], [agent], _grid_map(), 0.0)
    assert plan.unassigned_job_ids == ["j1"]


def test_agent_on_other_floor_skipped():
    hospital_map = HospitalMap(floors=[
        build_floor("f1", 5, 5, walkable=True),
        build_floor("f2", 5, 5, walkable=True),
    ])
    agent = Agent("a1", (0, 0), "f2")
    plan = Dispatcher().create_plan([_job()], [agent], hospital_map, 0.0)
    assert plan.unassigned_job_ids == ["j1"]


def test_only_queued_jobs_considered():
    job = _job()
    job.set_state(JobState.INFEASIBLE, "test")
    plan = Dispatcher().create_plan([job], [_agent("a1", (0, 0))], _grid_map(), 0.0)
    assert plan.agent_plans == []
    assert plan.unassigned_job_ids == []


# -- Selection --------------------------------------------------------

def test_nearest_agent_wins():
    far = _agent("far", (9, 9))
    near = _agent("near", (1, 1))
    plan = Dispatcher().create_plan([_job()], [far, near], _grid_map(), 0.0)
    assert _assigned(plan) == {"j1": "near"}


def test_tie_goes_to_roster_order():
    first = _agent("first", (1, 2))
    second = _agent("second", (1, 2))
    plan = Dispatcher().create_plan([_job()], [first, second], _grid_map(), 0.0)
    assert _assigned(plan) == {"j1": "first"}


def test_one_job_per_agent_highest_priority_first():
    agent = _agent("a1", (0, 0))
    low = _job("low", tier=PriorityTier.NON_URGENT)
    high = _job("high", tier=PriorityTier.URGENT)
    plan = Dispatcher().create_plan([low, high], [agent], _grid_map(), 0.0)
    assert _assigned(plan) == {"high": "a1"}
    assert plan.unassigned_job_ids == ["low"]


def test_create_plan_does_not_touch_records():
    agent = _agent("a1", (0, 0))
    job = _job()
    Dispatcher().create_plan([job], [agent], _grid_map(), 0.0)
    assert job.state == JobState.QUEUED
    assert job.assigned_agent_id is None
    assert agent.current_job_id is None


def test_deterministic_for_same_inputs():
    agents = [_agent("a1", (0, 0)), _agent("a2", (5, 5)), _agent("a3", (9, 0), pool=Pool.URGENT)]
    jobs = [
        _job("j1", PriorityTier.EMERGENCY, pickup=(3, 3), dropoff=(7, 7)),
        _job("j2", PriorityTier.NON_URGENT, pickup=(0, 9), dropoff=(9, 9)),
        _job("j3", PriorityTier.URGENT, pickup=None, dropoff=(4, 4)),
    ]
    hospital_map = _grid_map()
    first = Dispatcher().create_plan(jobs, agents, hospital_map, 10.0)
    second = Dispatcher().create_plan(jobs, agents, hospital_map, 10.0)
    assert first.assignments() == second.assignments()
    assert [p.route for p in first.agent_plans] == [p.route for p in second.agent_plans]


# -- Route construction -----------------------------------------------

def test_route_steps_and_timing():
    agent = _agent("a1", (0, 0))
    job = _job(pickup=(0, 0), dropoff=(9, 0), pickup_time=2.0, dropoff_time=2.0)
    plan = Dispatcher().create_plan([job], [agent], _corridor_map(10), 0.0)
    route = plan.plan_for("a1").route

    assert len(route) == 13
    assert route[1].action == RouteAction.PICKUP
    assert route[1].duration == 2.0
    assert route[-1].action == RouteAction.DROPOFF
    assert route[-1].position == (9, 0)
    assert route[-1].arrival_time == 13.0
    assert [s.action for s in route].count(None) == 11


def test_route_steps_adjacent_or_identical():
    agent = _agent("a1", (0, 0))
    job = _job(pickup=(5, 5), dropoff=(9, 2))
    route = Dispatcher().create_plan([job], [agent], _grid_map(), 0.0).plan_for("a1").route
    for a, b in zip(route, route[1:]):
        dist = abs(a.position[0] - b.position[0]) + abs(a.position[1] - b.position[1])
        assert dist in (0, 1)


def test_route_without_pickup_starts_at_agent():
    agent = _agent("a1", (3, 0))
    job = _job(pickup=None, dropoff=(6, 0))
    route = Dispatcher().create_plan([job], [agent], _corridor_map(10), 0.0).plan_for("a1").route
    assert route[0].position == (3, 0)
    assert [s.action for s in route if s.action] == [RouteAction.DROPOFF]
    assert len(route) == 5


def test_energy_and_co2_estimates():
    agent = _agent("a1", (0, 0))
    job = _job(pickup=(0, 0), dropoff=(9, 0))
    plan = Dispatcher(co2_per_wh=0.5).create_plan([job], [agent], _corridor_map(10), 0.0)
    agent_plan = plan.plan_for("a1")
    assert abs(agent_plan.estimated_energy - 1.1) < 1e-9
    assert abs(agent_plan.estimated_co2 - 0.55) < 1e-9
    assert abs(plan.metrics.total_energy_wh - 1.1) < 1e-9


def test_estimate_unassigned():
    job = _job(deadline=150.0)
    start, delivery, late = estimate_unassigned(job, now=100.0)
    assert start == 160.0
    assert delivery == 280.0
    assert late

    job = _job(deadline=500.0)
    assert not estimate_unassigned(job, now=100.0)[2]
