'''
Intersection state:
* Four directional queues (N, S, E, W) - vehicles waiting to depart heading
  that compass direction
* Green direction recorded for the most recently simulated cycle
* Allocation policy for the current cycle - Fair or AmbulancePriority
'''


# Standard Library:
from collections.abc import Iterable
from dataclasses import dataclass

# Local:
from trafix.grid import DIRECTIONS, Direction


@dataclass(frozen=True)
class Fair:
    '''
    Proportional-fair green time split
    '''

    def __repr__(self) -> str:
        return 'Fair'


@dataclass(frozen=True)
class AmbulancePriority:
    '''
    Entire cycle goes to the ambulance's outbound direction
    '''
    direction: Direction

    def __repr__(self) -> str:
        return f'AmbulancePriority({self.direction.short})'


AllocationPolicy = Fair | AmbulancePriority

FAIR = Fair()


class Intersection:
    '''
    Represent a signalized intersection at one grid node

    Mutated in place by the cycle simulator; queues never go negative since
    service is capped at the queue length
    '''
    def __init__(self, node: int, queues: Iterable[int] | None = None) -> None:
        self.node = node
        self.queues = [0] * len(DIRECTIONS) if queues is None else list(queues)
        if len(self.queues) != len(DIRECTIONS):
            raise ValueError(f'Expected {len(DIRECTIONS)} queue lengths, got: {self.queues}')
        if any(count < 0 for count in self.queues):
            raise ValueError(f'Queue lengths must be non-negative, got: {self.queues}')
        self.green_direction: Direction | None = None
        self.allocation: tuple[int, ...] | None = None
        self.policy: AllocationPolicy = FAIR

    def __repr__(self) -> str:
        green = self.green_direction.short if self.green_direction else None
        return f'Intersection({self.node}, queues={self.queues}, {green=}, {self.policy!r})'

    @property
    def total_queue(self) -> int:
        return sum(self.queues)

    def queue(self, direction: Direction) -> int:
        return self.queues[direction.index]

    def arrive(self, direction: Direction, count: int) -> None:
        if count < 0:
            raise ValueError(f'Arrival count must be non-negative, got: {count}')
        self.queues[direction.index] += count

    def serve(self, direction: Direction, capacity: int) -> int:
        '''
        Discharge up to capacity vehicles from a queue, returns number served
        '''
        served = min(max(capacity, 0), self.queues[direction.index])
        self.queues[direction.index] -= served
        return served

    def reset_policy(self) -> None:
        self.policy = FAIR

    def grant_priority(self, direction: Direction) -> None:
        '''
        Give the ambulance's outbound direction the whole cycle

        If priority was already granted this cycle, the direction first in
        N, S, E, W order is kept
        '''
        if isinstance(self.policy, AmbulancePriority) and self.policy.direction.index <= direction.index:
            return
        self.policy = AmbulancePriority(direction)

    @property
    def priority_direction(self) -> Direction | None:
        if isinstance(self.policy, AmbulancePriority):
            return self.policy.direction
        return None

    @property
    def ambulance_override(self) -> tuple[bool, ...]:
        '''
        Per-direction override flags (N, S, E, W) - at most one is set
        '''
        return tuple(self.priority_direction is direction for direction in DIRECTIONS)
