"""
Natural neighbor (Sibson) weights from the cavity of a virtual
insertion.

Inserting a point x into a Delaunay triangulation removes the
triangles whose circumcircles contain x.  The boundary of that cavity
gives the natural neighbors of x, and the area x would steal from the
Voronoi cell of each neighbor gives its weight.  Nothing here touches
a triangulation; the caller supplies the cavity geometry.
"""
import numpy as np

from ..utils import circumcenter

def signed_area_py(points):
    # typical voronoi regions don't have that many vertices and
    # using straight python is ~3x faster.
    N=len(points)
    area=0.0
    for i in range(N):
        ip1 = (i+1)%N
        area += points[i][0]*points[ip1][1] - points[ip1][0]*points[i][1]
    return 0.5*area

def nn_weights(x,boundary,old_centers):
    """
    x: [2] location of the point to interpolate
    boundary: [N,2] the natural neighbors of x, counter-clockwise
      around the cavity
    old_centers: list of N lists.  old_centers[i] holds the circumcenters
      of the cavity triangles incident to boundary[i], in counter-clockwise
      order around boundary[i] starting from the triangle on the edge
      boundary[i]->boundary[i+1].

    returns [N] weights summing to 1, or None when the areas are
    degenerate.
    """
    boundary=np.asarray(boundary,np.float64)
    N=len(boundary)
    if N<3:
        return None
    # vertices of the new voronoi cell of x: g[i] is equidistant from
    # x, boundary[i] and boundary[i+1]
    nxt=np.roll(boundary,-1,axis=0)
    g=circumcenter(np.broadcast_to(x,boundary.shape),boundary,nxt)
    if not np.all(np.isfinite(g)):
        return None

    weights=np.zeros(N,np.float64)
    for i in range(N):
        poly=[g[i]] + list(old_centers[i]) + [g[i-1]]
        weights[i]=abs(signed_area_py(poly))

    total=weights.sum()
    if not np.isfinite(total) or total<=0.0:
        return None
    return weights/total
