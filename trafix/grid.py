'''
Traffic grid topology:
* R x C grid of intersections represented as a directed graph with NetworkX
* Node id is row * C + col
* Each node connects to its North, South, East and West neighbors (no
  diagonals, no wraparound) with symmetric unit-length edges
'''


# Standard Library:
from enum import Enum
from typing import Self

# Third-Party:
import networkx  # type: ignore

# Local:
from trafix.errors import InvalidDimension


class Direction(Enum):
    '''
    Compass directions in fixed N, S, E, W order

    Each value holds (index, row delta, column delta)
    '''
    NORTH = (0, -1, 0)
    SOUTH = (1, 1, 0)
    EAST = (2, 0, 1)
    WEST = (3, 0, -1)

    @property
    def index(self) -> int:
        return self.value[0]

    @property
    def delta(self) -> tuple[int, int]:
        return self.value[1], self.value[2]

    @property
    def short(self) -> str:
        return self.name[0]

    @classmethod
    def from_index(cls, index: int) -> Self:
        return DIRECTIONS[index]

    def __repr__(self) -> str:
        return self.name


# N, S, E, W - the order used for queues, allocations and tie-breaks
DIRECTIONS = tuple(Direction)


def node_id(row: int, col: int, cols: int) -> int:
    return row * cols + col


def node_coords(node: int, cols: int) -> tuple[int, int]:
    return divmod(node, cols)


def build_grid_graph(rows: int, cols: int) -> networkx.DiGraph:
    '''
    Build the traffic grid for simulation

    Args:
    * rows: Number of grid rows (R > 0)
    * cols: Number of grid columns (C > 0)

    Returns:
    * Directed graph with one node per intersection (attribute pos=(row, col))
      and an edge with length 1 to every in-bounds compass neighbor
    '''
    if rows <= 0 or cols <= 0:
        raise InvalidDimension(f'Grid dimensions must be positive, got: {rows}x{cols}')

    G = networkx.DiGraph(rows=rows, cols=cols)
    for row in range(rows):
        for col in range(cols):
            G.add_node(node_id(row, col, cols), pos=(row, col))

    for row in range(rows):
        for col in range(cols):
            u = node_id(row, col, cols)
            for direction in DIRECTIONS:
                dr, dc = direction.delta
                nr, nc = row + dr, col + dc
                if 0 <= nr < rows and 0 <= nc < cols:
                    # Note:  length is the static hop weight
                    G.add_edge(u, node_id(nr, nc, cols), length=1)

    return G


def adjacency(graph: networkx.DiGraph) -> dict[int, list[tuple[int, int]]]:
    '''
    Plain adjacency mapping:  node -> [(neighbor, weight), ...]
    '''
    return {
        node: [(neighbor, data['length']) for neighbor, data in graph.adj[node].items()]
        for node in graph.nodes
    }


def get_direction(graph: networkx.DiGraph, current_node: int, next_node: int) -> Direction:
    '''
    Compass direction of travel from current_node to an adjacent next_node
    '''
    (row, col), (next_row, next_col) = graph.nodes[current_node]['pos'], graph.nodes[next_node]['pos']
    delta = (next_row - row, next_col - col)
    for direction in DIRECTIONS:
        if direction.delta == delta:
            return direction

    raise ValueError(f'Invalid move between {current_node} and {next_node}. '
                     'Expected orthogonal movement to an adjacent node.')
