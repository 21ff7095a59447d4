'''
Emergency vehicle routing over the traffic grid

Both variants use Dijkstra's algorithm with a heapq priority queue and differ
only in edge cost:
* Distance - every hop costs 1
* Congestion - entering node v costs 1 + congestion(v) // divisor, where
  congestion(v) is the live sum of v's queues at search time

Weight functions take (u, v, edge_data) so they can also be handed to the
NetworkX shortest path functions.
'''


# Standard Library:
from collections.abc import Callable, Sequence
from itertools import pairwise
from math import inf
import heapq  # For Dijkstra's priority queue

# Third-Party:
import networkx  # type: ignore

# Local:
from trafix.config import CONGESTION_DIVISOR


WeightFunction = Callable[[int, int, dict], int]


def distance_weight(u: int, v: int, data: dict) -> int:
    '''
    Static hop weight stored on the edge
    '''
    return data.get('length', 1)


def congestion_weight(graph: networkx.DiGraph,
                      divisor: int = CONGESTION_DIVISOR) -> WeightFunction:
    '''
    Build a weight function charging 1 + congestion(v) // divisor for entering v

    Queue totals are read from each node's 'intersection' attribute when the
    weight is evaluated, never stored on the edges
    '''
    if divisor <= 0:
        raise ValueError(f'Congestion divisor must be positive, got: {divisor}')

    def weight(u: int, v: int, data: dict) -> int:
        intersection = graph.nodes[v].get('intersection')
        congestion = intersection.total_queue if intersection is not None else 0
        return 1 + congestion // divisor

    return weight


def shortest_path(graph: networkx.DiGraph, start_node: int, end_node: int,
                  weight: WeightFunction = distance_weight) -> list[int]:
    '''
    Computes the shortest path from start_node to end_node using Dijkstra's
    algorithm.  Complexity is O((V + E) log V).

    Args:
    * graph: The traffic grid
    * start_node: Source node id
    * end_node: Destination node id
    * weight: Edge cost function (u, v, edge_data) -> non-negative cost

    Returns:
    * Node ids from start_node to end_node inclusive, [start_node] if both are
      the same node, or [] if end_node can't be reached
    '''
    for node in (start_node, end_node):
        if node not in graph:
            raise ValueError(f'Node {node} is not in the traffic grid')

    distances = {node: inf for node in graph.nodes}
    predecessors: dict[int, int | None] = {node: None for node in graph.nodes}
    distances[start_node] = 0

    pq = [(0, start_node)]  # (distance, node)

    while pq:
        dist, current_node = heapq.heappop(pq)

        if dist > distances[current_node]:
            continue  # Stale entry

        if current_node == end_node:
            break

        for neighbor, data in graph.adj[current_node].items():
            new_dist = dist + weight(current_node, neighbor, data)

            if new_dist < distances[neighbor]:
                distances[neighbor] = new_dist
                predecessors[neighbor] = current_node
                heapq.heappush(pq, (new_dist, neighbor))

    if distances[end_node] == inf:
        return []

    # Reconstruct the path
    path = []
    current = end_node
    while current is not None:
        path.append(current)
        current = predecessors[current]
    path.reverse()

    return path


def path_cost(graph: networkx.DiGraph, path: Sequence[int],
              weight: WeightFunction = distance_weight) -> int:
    '''
    Total weight of a path, 0 for a single node path
    '''
    return sum(weight(u, v, graph.edges[u, v]) for u, v in pairwise(path))


def distance_path(graph: networkx.DiGraph, start_node: int, end_node: int) -> list[int]:
    return shortest_path(graph, start_node, end_node, distance_weight)


def congestion_path(graph: networkx.DiGraph, start_node: int, end_node: int,
                    divisor: int = CONGESTION_DIVISOR) -> list[int]:
    return shortest_path(graph, start_node, end_node, congestion_weight(graph, divisor))
