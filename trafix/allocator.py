'''
Green time allocation for one intersection and one cycle

The baseline split is proportional to queue lengths with a 1 second floor so
no direction starves, reconciled one second at a time to sum exactly to the
cycle duration.  An ambulance priority policy replaces the baseline with the
whole cycle for the ambulance's direction.
'''


# Standard Library:
from collections.abc import Sequence

# Local:
from trafix.grid import DIRECTIONS, Direction
from trafix.intersection import AllocationPolicy, AmbulancePriority


def _round_share(queue: int, total: int, cycle_seconds: int) -> int:
    '''
    round(cycle_seconds * queue / total) with halves rounded up, computed in
    integers
    '''
    return (2 * queue * cycle_seconds + total) // (2 * total)


def allocate_green_times(queues: Sequence[int], cycle_seconds: int) -> tuple[int, ...]:
    '''
    Split cycle_seconds among the four directions of an intersection

    Args:
    * queues: Queue lengths in N, S, E, W order
    * cycle_seconds: Total signal time to distribute (> 0)

    Returns:
    * Four non-negative integers (N, S, E, W) summing exactly to cycle_seconds

    Rules:
    * All queues empty - equal split, remainder goes to North
    * Otherwise proportional share, at least 1 second each
    * Over target - take a second from the smallest queue still above 1 second
      (above 0 once the floor can't hold, i.e. cycle_seconds < 4)
    * Under target - add a second to the largest queue
    * Ties go to the first direction in N, S, E, W order
    '''
    if len(queues) != len(DIRECTIONS):
        raise ValueError(f'Expected {len(DIRECTIONS)} queue lengths, got: {list(queues)}')
    if not isinstance(cycle_seconds, int) or isinstance(cycle_seconds, bool):
        raise ValueError(f'Cycle duration must be a whole number of seconds, got: {cycle_seconds!r}')
    if cycle_seconds <= 0:
        raise ValueError(f'Cycle duration must be positive, got: {cycle_seconds}')

    total = sum(queues)
    if total == 0:
        times = [cycle_seconds // len(DIRECTIONS)] * len(DIRECTIONS)
        times[Direction.NORTH.index] += cycle_seconds % len(DIRECTIONS)
        return tuple(times)

    times = [max(1, _round_share(queue, total, cycle_seconds)) for queue in queues]
    assigned = sum(times)

    while assigned > cycle_seconds:
        idx = _smallest_queue(queues, times, above=1)
        if idx is None:
            idx = _smallest_queue(queues, times, above=0)
        times[idx] -= 1
        assigned -= 1

    while assigned < cycle_seconds:
        idx = max(range(len(queues)), key=lambda i: queues[i])
        times[idx] += 1
        assigned += 1

    return tuple(times)


def _smallest_queue(queues: Sequence[int], times: list[int], above: int) -> int | None:
    idx, best = None, None
    for i, queue in enumerate(queues):
        if times[i] > above and (best is None or queue < best):
            idx, best = i, queue
    return idx


def apply_policy(baseline: Sequence[int], policy: AllocationPolicy,
                 cycle_seconds: int) -> tuple[tuple[int, ...], Direction]:
    '''
    Resolve the final split and green direction for a cycle

    Ambulance priority discards the baseline and awards the entire cycle to
    the ambulance direction; otherwise the baseline stands and the direction
    with the largest allocation is green (first in N, S, E, W order on ties)
    '''
    if isinstance(policy, AmbulancePriority):
        times = [0] * len(DIRECTIONS)
        times[policy.direction.index] = cycle_seconds
        return tuple(times), policy.direction

    best = max(range(len(baseline)), key=lambda i: baseline[i])
    return tuple(baseline), Direction.from_index(best)
