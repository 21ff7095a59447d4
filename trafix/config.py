'''
Simulation configuration:
* Global defaults
* Validated configuration objects - rejected at setup, before any cycle runs
* Preset traffic grid environments
'''


# Standard Library:
from dataclasses import dataclass
import math

# Local:
from trafix.errors import ConfigurationError, InvalidDimension


# Global Constants:
CYCLE_SECONDS = 30  # Signal time distributed per intersection per cycle
SERVICE_RATE = 0.5  # Vehicles per second of green
MAX_ARRIVAL_PER_LANE = 5  # Arrivals per direction per cycle drawn from [0, #]
CONGESTION_DIVISOR = 5  # Queued vehicles per extra unit of routing cost
INITIAL_QUEUE_LIMIT = 20  # Random initial queues drawn from [0, # - 1]
GRID_SIZE = 'small'  # small | medium | large
ROUTE_CHOICES = ('congestion', 'distance')


@dataclass(frozen=True)
class AmbulanceEvent:
    '''
    Ambulance dispatched on trigger_cycle (1-based) from source to destination
    '''
    trigger_cycle: int
    source: int
    destination: int


@dataclass(frozen=True)
class SimulationConfig:
    rows: int = 2
    cols: int = 2
    cycles: int = 1
    cycle_seconds: int = CYCLE_SECONDS
    service_rate: float = SERVICE_RATE
    max_arrival_per_lane: int = MAX_ARRIVAL_PER_LANE
    congestion_divisor: int = CONGESTION_DIVISOR
    random_initial_queues: bool = False
    seed: int | None = None
    ambulance: AmbulanceEvent | None = None
    route_by: str = 'congestion'

    def __post_init__(self) -> None:
        if self.rows <= 0 or self.cols <= 0:
            raise InvalidDimension(f'Grid dimensions must be positive, got: {self.rows}x{self.cols}')
        if self.cycles <= 0:
            raise ConfigurationError(f'Number of cycles must be positive, got: {self.cycles}')
        if not isinstance(self.cycle_seconds, int) or isinstance(self.cycle_seconds, bool):
            raise ConfigurationError('Cycle duration must be a whole number of seconds, got: '
                                     f'{self.cycle_seconds!r}')
        if self.cycle_seconds <= 0:
            raise ConfigurationError(f'Cycle duration must be positive, got: {self.cycle_seconds}')
        if not math.isfinite(self.service_rate) or self.service_rate <= 0:
            raise ConfigurationError(f'Service rate must be a positive finite number, got: {self.service_rate}')
        if self.max_arrival_per_lane < 0:
            raise ConfigurationError('Maximum arrivals per lane must be non-negative, got: '
                                     f'{self.max_arrival_per_lane}')
        if self.congestion_divisor <= 0:
            raise ConfigurationError('Congestion divisor must be positive, got: '
                                     f'{self.congestion_divisor}')
        if self.route_by not in ROUTE_CHOICES:
            raise ConfigurationError(f'Expected route_by of {" or ".join(ROUTE_CHOICES)}, '
                                     f'got: {self.route_by}')
        if self.ambulance is not None:
            self._validate_ambulance(self.ambulance)

    def _validate_ambulance(self, ambulance: AmbulanceEvent) -> None:
        if not 1 <= ambulance.trigger_cycle <= self.cycles:
            raise ConfigurationError(f'Ambulance trigger cycle must be within 1-{self.cycles}, '
                                     f'got: {ambulance.trigger_cycle}')
        for name, node in (('source', ambulance.source), ('destination', ambulance.destination)):
            if not 0 <= node < self.node_count:
                raise ConfigurationError(f'Ambulance {name} must be within 0-{self.node_count - 1}, '
                                         f'got: {node}')

    @property
    def node_count(self) -> int:
        return self.rows * self.cols


def get_environment(size: str) -> SimulationConfig:
    '''
    Convenience function to select a traffic grid environment
    '''
    # Small and simple 2x2 traffic grid:
    small = SimulationConfig(rows=2, cols=2, cycles=5)

    # Medium 4x4 traffic grid - ambulance crosses corner to corner:
    medium = SimulationConfig(
        rows=4, cols=4, cycles=10, random_initial_queues=True,
        ambulance=AmbulanceEvent(trigger_cycle=3, source=12, destination=3)
    )

    # Large 6x6 traffic grid - ambulance crosses corner to corner:
    large = SimulationConfig(
        rows=6, cols=6, cycles=20, random_initial_queues=True,
        ambulance=AmbulanceEvent(trigger_cycle=5, source=30, destination=5)
    )

    match size:
        case 'small':
            return small
        case 'medium':
            return medium
        case 'large':
            return large
        case _:
            raise ValueError(f'Expected traffic grid size of small, medium, or large, got: {size}')
