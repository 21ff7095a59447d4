'''
Cycle simulator for the traffic grid

Each cycle, in order, with cycle-wide barriers between the steps:
1) Arrival - random arrivals added to every directional queue
2) Routing - on the ambulance trigger cycle only, route the ambulance and
   grant priority along its path
3) Allocation + Service - green time split per intersection, queues
   discharged at the service rate
4) Report - post-service queue totals accumulated

Simulated time is kept by a SimPy environment and advances cycle_seconds per
cycle.
'''


# Standard Library:
from collections.abc import Callable, Generator
from dataclasses import dataclass
from itertools import pairwise
import math
import random

# Third-Party:
import simpy  # type: ignore
import simpy.events  # type: ignore

# Local:
from trafix.allocator import allocate_green_times, apply_policy
from trafix.config import INITIAL_QUEUE_LIMIT, SimulationConfig
from trafix.errors import ConfigurationError, UnreachableDestination
from trafix.grid import DIRECTIONS, Direction, build_grid_graph, get_direction
from trafix.intersection import Intersection
from trafix.router import congestion_path, distance_path


# Guards floor() against service_rate * seconds landing just under an integer
SERVICE_EPSILON = 1e-9


@dataclass
class SimulationMetrics:
    '''
    Accumulators across all simulated cycles
    '''
    node_count: int
    vehicles_arrived: int = 0
    vehicles_served: int = 0
    cumulative_queue_sum: int = 0
    cycles: int = 0

    @property
    def average_queue_length(self) -> float:
        '''
        Average post-cycle queue length per node, 0 if no cycle ran
        '''
        if self.cycles == 0 or self.node_count == 0:
            return 0.0
        return self.cumulative_queue_sum / (self.cycles * self.node_count)


@dataclass(frozen=True)
class CycleSnapshot:
    '''
    Read-only view of the grid after one cycle

    Per-node tuples are indexed by node id; per-direction tuples are in
    N, S, E, W order
    '''
    cycle: int
    time: float
    queues: tuple[tuple[int, ...], ...]
    green_directions: tuple[Direction | None, ...]
    allocations: tuple[tuple[int, ...], ...]
    arrivals: tuple[tuple[int, ...], ...]
    served: tuple[tuple[int, ...], ...]
    overrides: tuple[Direction | None, ...]
    distance_path: tuple[int, ...] | None = None
    congestion_path: tuple[int, ...] | None = None

    @property
    def routed(self) -> bool:
        return self.distance_path is not None

    @property
    def total_queue(self) -> int:
        return sum(sum(queues) for queues in self.queues)


class TrafficSimulation:
    '''
    Owns the traffic grid, its intersections and the simulation clock

    The cycle simulator is the sole writer of intersection state
    '''
    def __init__(self, config: SimulationConfig, rng: random.Random | None = None,
                 debug: bool = False) -> None:
        self.config = config
        self.rng = rng if rng is not None else random.Random(config.seed)
        self.debug = debug
        self.env = simpy.Environment()
        self.graph = build_grid_graph(config.rows, config.cols)
        self.intersections: list[Intersection] = []
        for node in self.graph.nodes:
            queues = (
                [self.rng.randrange(INITIAL_QUEUE_LIMIT) for _ in DIRECTIONS]
                if config.random_initial_queues else None
            )
            intersection = Intersection(node, queues)
            self.graph.nodes[node]['intersection'] = intersection
            self.intersections.append(intersection)
        self.metrics = SimulationMetrics(node_count=len(self.intersections))
        self.cycle = 0

    def __repr__(self) -> str:
        return (f'TrafficSimulation({self.config.rows}x{self.config.cols}, '
                f'cycle={self.cycle}, now={self.env.now})')

    def log(self, message: str) -> None:
        if self.debug:
            print(f'{self.env.now:05.1f}s: {message}')

    def run(self, cycles: int | None = None,
            on_cycle: Callable[[CycleSnapshot], None] | None = None) -> list[CycleSnapshot]:
        '''
        Simulate a fixed number of cycles (default config.cycles)

        Args:
        * cycles: Number of cycles to simulate
        * on_cycle: Called with each cycle's snapshot as soon as it completes

        Returns:
        * Snapshot of every simulated cycle in order
        '''
        cycles = self.config.cycles if cycles is None else cycles
        if cycles <= 0:
            raise ConfigurationError(f'Number of cycles must be positive, got: {cycles}')

        snapshots: list[CycleSnapshot] = []
        self.env.process(self._cycle_loop(cycles, snapshots, on_cycle))
        self.env.run()
        return snapshots

    def _cycle_loop(self, cycles: int, snapshots: list[CycleSnapshot],
                    on_cycle: Callable[[CycleSnapshot], None] | None
                    ) -> Generator[simpy.events.Event, None, None]:
        for _ in range(cycles):
            snapshot = self.step()
            snapshots.append(snapshot)
            if on_cycle is not None:
                on_cycle(snapshot)
            yield self.env.timeout(self.config.cycle_seconds)

    def step(self) -> CycleSnapshot:
        '''
        Advance the whole grid by exactly one cycle
        '''
        self.cycle += 1
        self.log(f'Cycle {self.cycle} starting')

        for intersection in self.intersections:
            intersection.reset_policy()

        arrivals = self._arrive()

        paths: tuple[tuple[int, ...] | None, tuple[int, ...] | None] = (None, None)
        ambulance = self.config.ambulance
        if ambulance is not None and ambulance.trigger_cycle == self.cycle:
            paths = self._route_ambulance()

        allocations, served = self._allocate_and_serve()

        self.metrics.cycles += 1
        return CycleSnapshot(
            cycle=self.cycle,
            time=self.env.now,
            queues=tuple(tuple(i.queues) for i in self.intersections),
            green_directions=tuple(i.green_direction for i in self.intersections),
            allocations=allocations,
            arrivals=arrivals,
            served=served,
            overrides=tuple(i.priority_direction for i in self.intersections),
            distance_path=paths[0],
            congestion_path=paths[1],
        )

    def _arrive(self) -> tuple[tuple[int, ...], ...]:
        arrivals = []
        for intersection in self.intersections:
            counts = []
            for direction in DIRECTIONS:
                count = self.rng.randint(0, self.config.max_arrival_per_lane)
                intersection.arrive(direction, count)
                counts.append(count)
            self.metrics.vehicles_arrived += sum(counts)
            arrivals.append(tuple(counts))
        return tuple(arrivals)

    def _route_ambulance(self) -> tuple[tuple[int, ...], tuple[int, ...]]:
        '''
        Compute both routes over the live queue state and grant priority to
        the outbound direction at every node on the chosen route except the
        destination
        '''
        ambulance = self.config.ambulance
        by_distance = distance_path(self.graph, ambulance.source, ambulance.destination)
        by_congestion = congestion_path(self.graph, ambulance.source, ambulance.destination,
                                        self.config.congestion_divisor)
        if not by_distance or not by_congestion:
            raise UnreachableDestination(f'No route from {ambulance.source} to '
                                         f'{ambulance.destination} on the traffic grid')

        route = by_congestion if self.config.route_by == 'congestion' else by_distance
        self.log(f'Ambulance routed {ambulance.source} -> {ambulance.destination} '
                 f'({self.config.route_by}): {route}')

        for current_node, next_node in pairwise(route):
            direction = get_direction(self.graph, current_node, next_node)
            self.graph.nodes[current_node]['intersection'].grant_priority(direction)
            self.log(f'Preempted TL at node {current_node} for Ambulance, {direction=}')

        return tuple(by_distance), tuple(by_congestion)

    def _allocate_and_serve(self) -> tuple[tuple[tuple[int, ...], ...], tuple[tuple[int, ...], ...]]:
        allocations, served = [], []
        for intersection in self.intersections:
            baseline = allocate_green_times(intersection.queues, self.config.cycle_seconds)
            times, green = apply_policy(baseline, intersection.policy, self.config.cycle_seconds)
            intersection.allocation = times
            intersection.green_direction = green

            discharged = []
            for direction in DIRECTIONS:
                capacity = math.floor(self.config.service_rate * times[direction.index]
                                      + SERVICE_EPSILON)
                discharged.append(intersection.serve(direction, capacity))
            self.metrics.vehicles_served += sum(discharged)
            self.metrics.cumulative_queue_sum += intersection.total_queue

            allocations.append(times)
            served.append(tuple(discharged))
        return tuple(allocations), tuple(served)
