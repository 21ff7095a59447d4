'''
Trafix - traffic signal and emergency routing simulation over a grid of
intersections
'''


from trafix.allocator import allocate_green_times, apply_policy
from trafix.config import AmbulanceEvent, SimulationConfig, get_environment
from trafix.errors import ConfigurationError, InvalidDimension, UnreachableDestination
from trafix.grid import DIRECTIONS, Direction, build_grid_graph, node_coords, node_id
from trafix.intersection import FAIR, AmbulancePriority, Fair, Intersection
from trafix.router import congestion_path, distance_path, path_cost, shortest_path
from trafix.simulation import CycleSnapshot, SimulationMetrics, TrafficSimulation

__version__ = '0.1.0'
