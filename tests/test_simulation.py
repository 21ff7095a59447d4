# tests/test_simulation.py
import random

import pytest

from trafix.config import AmbulanceEvent, SimulationConfig
from trafix.errors import ConfigurationError, UnreachableDestination
from trafix.grid import Direction
from trafix.intersection import FAIR
from trafix.simulation import SimulationMetrics, TrafficSimulation


# ------------------------- Fixtures -------------------------

@pytest.fixture
def busy_config():
    return SimulationConfig(rows=3, cols=3, cycles=6, random_initial_queues=True, seed=99,
                            ambulance=AmbulanceEvent(trigger_cycle=3, source=0, destination=8))


def quiet_config(**kwargs):
    '''Arrival range collapsed to [0, 0]'''
    return SimulationConfig(max_arrival_per_lane=0, **kwargs)


# ------------------------- End to end -------------------------

def test_empty_two_by_two_cycle_stays_empty_with_green_north():
    simulation = TrafficSimulation(quiet_config(rows=2, cols=2, cycles=1,
                                                cycle_seconds=30, service_rate=0.5))
    (snapshot,) = simulation.run()

    assert snapshot.queues == ((0, 0, 0, 0),) * 4
    assert snapshot.green_directions == (Direction.NORTH,) * 4
    assert snapshot.allocations == ((9, 7, 7, 7),) * 4
    assert not snapshot.routed
    assert simulation.metrics.vehicles_arrived == 0
    assert simulation.metrics.vehicles_served == 0
    assert simulation.metrics.average_queue_length == 0


def test_ambulance_between_adjacent_nodes_gets_east():
    config = SimulationConfig(rows=1, cols=2, cycles=1, cycle_seconds=30, seed=3,
                              ambulance=AmbulanceEvent(trigger_cycle=1, source=0, destination=1))
    simulation = TrafficSimulation(config)
    snapshot = simulation.step()

    origin, destination = simulation.intersections
    assert origin.ambulance_override == (False, False, True, False)
    assert destination.ambulance_override == (False, False, False, False)
    assert snapshot.overrides == (Direction.EAST, None)
    assert snapshot.allocations[0] == (0, 0, 30, 0)
    assert snapshot.green_directions[0] is Direction.EAST
    assert snapshot.distance_path == (0, 1)
    assert snapshot.congestion_path == (0, 1)


def test_override_ignores_queue_state():
    config = quiet_config(rows=1, cols=2, cycles=1,
                          ambulance=AmbulanceEvent(trigger_cycle=1, source=0, destination=1))
    simulation = TrafficSimulation(config)
    simulation.intersections[0].queues = [40, 40, 0, 40]
    snapshot = simulation.step()

    assert snapshot.allocations[0] == (0, 0, 30, 0)
    assert snapshot.green_directions[0] is Direction.EAST
    assert snapshot.queues[0] == (40, 40, 0, 40)
    assert snapshot.served[0] == (0, 0, 0, 0)


def test_override_lasts_a_single_cycle():
    config = SimulationConfig(rows=1, cols=3, cycles=2, seed=8,
                              ambulance=AmbulanceEvent(trigger_cycle=1, source=2, destination=0))
    simulation = TrafficSimulation(config)
    first, second = simulation.run()

    assert first.overrides == (None, Direction.WEST, Direction.WEST)
    assert second.overrides == (None, None, None)
    assert not second.routed
    assert all(i.policy == FAIR for i in simulation.intersections)


def test_ambulance_only_routes_on_trigger_cycle(busy_config):
    snapshots = TrafficSimulation(busy_config).run()
    assert [s.routed for s in snapshots] == [False, False, True, False, False, False]
    routed = snapshots[2]
    assert routed.congestion_path[0] == 0
    assert routed.congestion_path[-1] == 8
    assert len(routed.distance_path) == 5
    assert routed.overrides[8] is None


# ------------------------- Route choice -------------------------

def congested_center_simulation(route_by):
    config = quiet_config(rows=3, cols=3, cycles=1, route_by=route_by,
                          ambulance=AmbulanceEvent(trigger_cycle=1, source=3, destination=5))
    simulation = TrafficSimulation(config)
    simulation.intersections[4].queues = [20, 10, 10, 10]
    return simulation


def test_distance_route_goes_through_busy_center():
    snapshot = congested_center_simulation('distance').step()
    assert snapshot.distance_path == (3, 4, 5)
    assert snapshot.overrides[3] is Direction.EAST
    assert snapshot.overrides[4] is Direction.EAST


def test_congestion_route_avoids_busy_center():
    snapshot = congested_center_simulation('congestion').step()
    assert 4 not in snapshot.congestion_path
    assert snapshot.overrides[4] is None
    assert snapshot.overrides[3] in (Direction.NORTH, Direction.SOUTH)


def test_empty_route_is_an_invariant_violation():
    config = quiet_config(rows=1, cols=2, cycles=1,
                          ambulance=AmbulanceEvent(trigger_cycle=1, source=0, destination=1))
    simulation = TrafficSimulation(config)
    simulation.graph.remove_edge(0, 1)
    with pytest.raises(UnreachableDestination):
        simulation.step()


# ------------------------- Service -------------------------

def test_service_capped_by_rate_and_allocation():
    simulation = TrafficSimulation(quiet_config(rows=1, cols=1, cycles=1, service_rate=0.2))
    simulation.intersections[0].queues = [10, 0, 0, 0]
    snapshot = simulation.step()

    assert snapshot.allocations[0] == (27, 1, 1, 1)
    assert snapshot.served[0] == (5, 0, 0, 0)
    assert snapshot.queues[0] == (5, 0, 0, 0)
    assert snapshot.green_directions[0] is Direction.NORTH


def test_service_never_exceeds_queue():
    simulation = TrafficSimulation(quiet_config(rows=1, cols=1, cycles=1, service_rate=5))
    simulation.intersections[0].queues = [3, 1, 0, 2]
    snapshot = simulation.step()
    assert snapshot.served[0] == (3, 1, 0, 2)
    assert snapshot.queues[0] == (0, 0, 0, 0)


# ------------------------- Invariants -------------------------

def test_queues_are_conserved_every_cycle(busy_config):
    simulation = TrafficSimulation(busy_config)
    before = [tuple(i.queues) for i in simulation.intersections]

    for snapshot in simulation.run():
        for node, queues in enumerate(snapshot.queues):
            assert all(q >= 0 for q in queues)
            assert sum(queues) == (
                sum(before[node]) + sum(snapshot.arrivals[node]) - sum(snapshot.served[node])
            )
            for d in range(4):
                assert queues[d] == before[node][d] + snapshot.arrivals[node][d] \
                    - snapshot.served[node][d]
        before = list(snapshot.queues)


def test_allocations_sum_to_cycle(busy_config):
    for snapshot in TrafficSimulation(busy_config).run():
        assert all(sum(times) == busy_config.cycle_seconds for times in snapshot.allocations)


def test_arrivals_within_bound():
    config = SimulationConfig(rows=2, cols=3, cycles=10, max_arrival_per_lane=5, seed=4)
    for snapshot in TrafficSimulation(config).run():
        assert all(0 <= count <= 5 for counts in snapshot.arrivals for count in counts)


def test_metrics_match_snapshots(busy_config):
    simulation = TrafficSimulation(busy_config)
    snapshots = simulation.run()
    metrics = simulation.metrics

    assert metrics.cycles == 6
    assert metrics.vehicles_arrived == sum(sum(map(sum, s.arrivals)) for s in snapshots)
    assert metrics.vehicles_served == sum(sum(map(sum, s.served)) for s in snapshots)
    assert metrics.cumulative_queue_sum == sum(s.total_queue for s in snapshots)
    assert metrics.average_queue_length == pytest.approx(
        metrics.cumulative_queue_sum / (6 * 9)
    )


def test_average_queue_is_zero_before_any_cycle():
    assert SimulationMetrics(node_count=4).average_queue_length == 0


# ------------------------- Setup and clock -------------------------

def test_random_initial_queues_in_range():
    simulation = TrafficSimulation(SimulationConfig(rows=4, cols=4, random_initial_queues=True,
                                                    seed=1))
    queues = [q for i in simulation.intersections for q in i.queues]
    assert all(0 <= q < 20 for q in queues)
    assert any(q > 0 for q in queues)


def test_zero_initial_queues_by_default():
    simulation = TrafficSimulation(SimulationConfig(rows=2, cols=2))
    assert all(i.queues == [0, 0, 0, 0] for i in simulation.intersections)
    assert all(i.green_direction is None for i in simulation.intersections)


def test_intersections_attached_to_graph_nodes():
    simulation = TrafficSimulation(SimulationConfig(rows=2, cols=3))
    for node, intersection in enumerate(simulation.intersections):
        assert intersection.node == node
        assert simulation.graph.nodes[node]['intersection'] is intersection


def test_same_seed_reproduces_run(busy_config):
    assert TrafficSimulation(busy_config).run() == TrafficSimulation(busy_config).run()


def test_explicit_generator_is_used():
    config = SimulationConfig(rows=2, cols=2, cycles=3)
    first = TrafficSimulation(config, rng=random.Random(17)).run()
    second = TrafficSimulation(config, rng=random.Random(17)).run()
    assert first == second


def test_clock_advances_one_cycle_duration_per_cycle():
    config = quiet_config(rows=1, cols=1, cycles=3, cycle_seconds=45)
    simulation = TrafficSimulation(config)
    snapshots = simulation.run()

    assert [s.time for s in snapshots] == [0, 45, 90]
    assert [s.cycle for s in snapshots] == [1, 2, 3]
    assert simulation.env.now == 135


def test_on_cycle_sees_each_snapshot():
    seen = []
    snapshots = TrafficSimulation(quiet_config(rows=1, cols=2, cycles=4)).run(on_cycle=seen.append)
    assert seen == snapshots


def test_run_rejects_non_positive_cycles():
    with pytest.raises(ConfigurationError):
        TrafficSimulation(SimulationConfig()).run(cycles=0)


def test_debug_output(capsys):
    config = quiet_config(rows=1, cols=2, cycles=1,
                          ambulance=AmbulanceEvent(trigger_cycle=1, source=0, destination=1))
    TrafficSimulation(config, debug=True).run()
    out = capsys.readouterr().out
    assert '000.0s: Cycle 1 starting' in out
    assert 'Preempted TL at node 0' in out
