"""
exactcdt: exact constrained Delaunay triangulation in the plane,
with Voronoi and natural neighbor queries.
"""
__version__='0.1'

from .grid.halfedge_grid import (GridException, TopologyError, InvalidCoordinate,
                                 HalfEdge)
from .grid.constraints import ConstraintViolation, IntersectingConstraints
from .grid.exact_delaunay import Triangulation, DuplicateNode, Location
