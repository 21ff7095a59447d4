'''
Text rendering of the traffic grid and end of run reporting
'''


# Standard Library:
from collections.abc import Sequence
import statistics

# Local:
from trafix.grid import Direction
from trafix.simulation import CycleSnapshot, SimulationMetrics, TrafficSimulation


def format_network_state(queues: Sequence[Sequence[int]],
                         green_directions: Sequence[Direction | None],
                         cols: int, cycle: int) -> str:
    '''
    Grid rendered one row per line:
    [Node 0] (N:3 S:0 E:1 W:2) G:N  [Node 1] (N:0 S:4 E:0 W:0) G:S
    '''
    lines = [f'=== Cycle {cycle} Network State ===']
    for start in range(0, len(queues), cols):
        cells = []
        for node in range(start, min(start + cols, len(queues))):
            north, south, east, west = queues[node]
            cell = f'[Node {node}] (N:{north} S:{south} E:{east} W:{west})'
            if (green := green_directions[node]) is not None:
                cell += f' G:{green.short}'
            cells.append(cell)
        lines.append('  '.join(cells))
    lines.append('=' * 30)
    return '\n'.join(lines)


def format_snapshot(snapshot: CycleSnapshot, cols: int) -> str:
    text = format_network_state(snapshot.queues, snapshot.green_directions, cols, snapshot.cycle)
    if snapshot.routed:
        text += (f'\nAmbulance distance route:   {format_path(snapshot.distance_path)}'
                 f'\nAmbulance congestion route: {format_path(snapshot.congestion_path)}')
    return text


def format_simulation(simulation: TrafficSimulation) -> str:
    '''
    Current state of a simulation - cycle 0 before anything ran
    '''
    return format_network_state(
        [i.queues for i in simulation.intersections],
        [i.green_direction for i in simulation.intersections],
        simulation.config.cols, simulation.cycle
    )


def format_path(path: Sequence[int] | None) -> str:
    if not path:
        return '(none)'
    return ' -> '.join(str(node) for node in path)


def summarize(metrics: SimulationMetrics, snapshots: Sequence[CycleSnapshot]) -> dict[str, float]:
    '''
    Final scalars plus per-cycle network queue statistics
    '''
    totals = [snapshot.total_queue for snapshot in snapshots]
    return {
        'vehicles_arrived': metrics.vehicles_arrived,
        'vehicles_served': metrics.vehicles_served,
        'average_queue_length': metrics.average_queue_length,
        'mean_network_queue': statistics.mean(totals) if totals else 0.0,
        'max_network_queue': max(totals) if totals else 0,
    }


def report_results(metrics: SimulationMetrics, snapshots: Sequence[CycleSnapshot]) -> None:
    '''
    Basic reporting at conclusion of simulation
    '''
    summary = summarize(metrics, snapshots)

    print('\nTraffic Grid Summary')
    print(f'Cycles simulated: {metrics.cycles}')
    print(f'Vehicles arrived: {summary["vehicles_arrived"]}')
    print(f'Vehicles served: {summary["vehicles_served"]}')
    print(f'Average queue length per node after each cycle: '
          f'{summary["average_queue_length"]:.2f}')
    if snapshots:
        print(f'Average vehicles queued in grid after each cycle: '
              f'{summary["mean_network_queue"]:.2f}')
        print(f'Max vehicles queued in grid after a cycle: {summary["max_network_queue"]}')
