'''
Command line front end:
* Parameters from flags, a preset environment, or interactive prompts
  (empty answer keeps the default)
* Prints the network state every cycle and a summary at the end
'''


# Standard Library:
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime
from typing import Any
import argparse
import sys

# Local:
from trafix.config import GRID_SIZE, ROUTE_CHOICES, AmbulanceEvent, SimulationConfig, get_environment
from trafix.errors import ConfigurationError
from trafix.report import format_simulation, format_snapshot, report_results
from trafix.simulation import TrafficSimulation


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='trafix',
        description='Simulate signal timing and ambulance priority on a grid of intersections'
    )
    parser.add_argument('--size', choices=('small', 'medium', 'large'),
                        help=f'Start from a preset traffic grid (default: {GRID_SIZE}); the preset '
                        'ambulance is dropped when --rows, --cols or --cycles no longer fit it')
    parser.add_argument('--rows', type=int, help='Grid rows')
    parser.add_argument('--cols', type=int, help='Grid columns')
    parser.add_argument('--cycles', type=int, help='Number of cycles to simulate')
    parser.add_argument('--cycle-seconds', type=int, help='Signal time per intersection per cycle')
    parser.add_argument('--service-rate', type=float, help='Vehicles served per second of green')
    parser.add_argument('--max-arrivals', type=int, dest='max_arrival_per_lane',
                        help='Upper bound of random arrivals per lane per cycle')
    parser.add_argument('--congestion-divisor', type=int,
                        help='Queued vehicles per extra unit of congestion routing cost')
    parser.add_argument('--random-initial', action='store_true', default=None,
                        dest='random_initial_queues', help='Start with random queues')
    parser.add_argument('--seed', type=int, help='Random seed for reproducible runs')
    parser.add_argument('--ambulance', type=int, nargs=3, metavar=('CYCLE', 'SOURCE', 'DEST'),
                        help='Dispatch an ambulance on CYCLE (1-based) from SOURCE to DEST node')
    parser.add_argument('--route-by', choices=ROUTE_CHOICES,
                        help='Route the ambulance follows (default: congestion)')
    parser.add_argument('--interactive', '-i', action='store_true',
                        help='Prompt for parameters')
    parser.add_argument('--debug', action='store_true', help='Print simulator diagnostics')
    parser.add_argument('--quiet', '-q', action='store_true',
                        help='Only print the final summary')
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> SimulationConfig:
    '''
    Preset (or defaults) overridden by any flags given
    '''
    base = get_environment(args.size or GRID_SIZE)
    overrides: dict[str, Any] = {
        name: getattr(args, name)
        for name in ('rows', 'cols', 'cycles', 'cycle_seconds', 'service_rate',
                     'max_arrival_per_lane', 'congestion_divisor', 'random_initial_queues',
                     'seed', 'route_by')
        if getattr(args, name) is not None
    }
    if args.ambulance is not None:
        overrides['ambulance'] = AmbulanceEvent(*args.ambulance)
    else:
        overrides['ambulance'] = preset_ambulance(
            base, overrides.get('rows', base.rows), overrides.get('cols', base.cols),
            overrides.get('cycles', base.cycles)
        )
    return replace(base, **overrides)


def preset_ambulance(base: SimulationConfig, rows: int, cols: int,
                     cycles: int) -> AmbulanceEvent | None:
    '''
    Preset ambulance, kept only while the grid shape is unchanged and its
    trigger cycle still falls within the run
    '''
    ambulance = base.ambulance
    if ambulance is None or (rows, cols) != (base.rows, base.cols):
        return None
    if ambulance.trigger_cycle > cycles:
        return None
    return ambulance


def prompt(label: str, default: Any, convert: Callable[[str], Any],
           input_fn: Callable[[str], str] | None = None) -> Any:
    input_fn = input_fn or input
    text = input_fn(f'Enter {label} (default {default}): ').strip()
    if not text:
        return default
    try:
        return convert(text)
    except ValueError as e:
        raise ConfigurationError(f'Invalid value for {label}: {text!r}') from e


def prompt_config(defaults: SimulationConfig,
                  input_fn: Callable[[str], str] | None = None) -> SimulationConfig:
    '''
    Collect parameters interactively, keeping defaults for empty answers
    '''
    values: dict[str, Any] = {
        'rows': prompt('grid rows R', defaults.rows, int, input_fn),
        'cols': prompt('grid cols C', defaults.cols, int, input_fn),
        'cycles': prompt('number of cycles', defaults.cycles, int, input_fn),
        'cycle_seconds': prompt('cycle time per intersection in seconds',
                                defaults.cycle_seconds, int, input_fn),
        'service_rate': prompt('service rate (vehicles per second when green)',
                               defaults.service_rate, float, input_fn),
    }

    ambulance = preset_ambulance(defaults, values['rows'], values['cols'], values['cycles'])
    default_trigger = ambulance.trigger_cycle if ambulance else 'none'
    trigger = prompt('ambulance trigger cycle', default_trigger,
                     lambda text: 'none' if text.lower() == 'none' else int(text), input_fn)
    if trigger == 'none':
        values['ambulance'] = None
    else:
        source = prompt('ambulance source node', ambulance.source if ambulance else 0,
                        int, input_fn)
        destination = prompt('ambulance destination node',
                             ambulance.destination if ambulance
                             else values['rows'] * values['cols'] - 1, int, input_fn)
        values['ambulance'] = AmbulanceEvent(trigger, source, destination)

    return replace(defaults, **values)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        config = build_config(args)
        if args.interactive:
            config = prompt_config(config)
    except ConfigurationError as e:
        print(f'Configuration error: {e}', file=sys.stderr)
        return 2

    simulation = TrafficSimulation(config, debug=args.debug)
    print(f'Starting traffic grid simulation - {config.rows}x{config.cols} - at '
          f'{datetime.now():%Y-%m-%d %H:%M:%S} for {config.cycles} cycles')

    on_cycle = None
    if not args.quiet:
        print('\nInitial network state:')
        print(format_simulation(simulation))
        on_cycle = lambda snapshot: print(f'\n{format_snapshot(snapshot, config.cols)}')

    snapshots = simulation.run(on_cycle=on_cycle)
    report_results(simulation.metrics, snapshots)
    return 0
