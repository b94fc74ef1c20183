"""
Queries against the Voronoi dual of the triangulation: voronoi cells,
natural neighbor weights and interpolation, and nearest neighbors.
None of these modify the triangulation.
"""
import numpy as np

from ..spatial import robust_predicates, interp_nn
from ..utils import dist2, signed_area


class DualMixin(object):
    def voronoi_cell(self,n):
        """
        Generate the vertices of the voronoi cell of node n (the
        circumcenters of the triangles around n) counter-clockwise.
        The cell of a hull node is unbounded, and only the circumcenters
        of its triangles are generated, starting just after the outer
        half-edge.
        """
        if self.dim()<2:
            return
        outs=list(self.node_out_halfedges(n))
        for k,h in enumerate(outs):
            if self.he_cell(h)==self.INF_CELL:
                outs=outs[k+1:]+outs[:k]
                break
        for h in outs:
            yield self.cell_center(self.he_cell(h)).copy()

    def cavity_cells(self,x,loc):
        """
        Cells whose circumcircle strictly contains x, grown from the
        located cell(s) without crossing constraints.
        """
        xs=self.nodes['x']
        seeds=[loc.cell]
        if loc.loc_type==self.IN_EDGE:
            c_opp=loc.loc_index.cell_opp()
            if c_opp>=0:
                seeds.append(c_opp)
        cavity=set(seeds)
        stack=list(seeds)
        while stack:
            c=stack.pop()
            for h in self.cell_to_halfedges(c):
                if self.edges['constrained'][h>>1]:
                    continue
                d=self.he_cell(h^1)
                if d<0 or d in cavity:
                    continue
                pts=xs[self.cell_to_nodes(d)]
                if robust_predicates.incircle(pts[0],pts[1],pts[2],x)>0:
                    cavity.add(d)
                    stack.append(d)
        return cavity

    def cavity_boundary(self,cavity):
        """
        Half-edges on the boundary of the set of cells cavity, in
        counter-clockwise order, or None if the boundary is not a
        simple loop.
        """
        by_origin={}
        for c in cavity:
            for h in self.cell_to_halfedges(c):
                if self.he_cell(h^1) in cavity:
                    continue
                o=self.he_origin(h)
                if o in by_origin:
                    return None
                by_origin[o]=h
        h0=next(iter(by_origin.values()))
        loop=[h0]
        while True:
            h=by_origin.get(self.he_dest(loop[-1]))
            if h is None:
                return None
            if h==h0:
                break
            loop.append(h)
        if len(loop)!=len(by_origin):
            return None
        return loop

    def barycentric_weights(self,x,loc):
        """ {node: weight} for x in the located cell """
        xs=self.nodes['x']
        if loc.loc_type==self.IN_VERTEX:
            return {loc.loc_index:1.0}
        if loc.cell<0:
            # on an edge of a chain, or of the hull
            a,b=[int(n) for n in loc.loc_index.nodes()]
            ab=xs[b]-xs[a]
            alpha=float(np.dot(x-xs[a],ab)/np.dot(ab,ab))
            return {a:1.0-alpha,b:alpha}
        nodes=self.cell_to_nodes(loc.cell)
        pts=xs[nodes]
        total=signed_area(pts)
        weights={}
        for i,n in enumerate(nodes):
            sub=pts.copy()
            sub[i]=x
            weights[n]=signed_area(sub)/total
        return weights

    def natural_neighbor_weights(self,x):
        """
        Sibson coordinates of x: {node: weight}, weights summing to 1.
        Empty outside the convex hull.  On a hull edge the weights are
        linear along the edge.  Falls back to barycentric weights if the
        cavity is degenerate.
        """
        x=self.check_coordinate(x)
        d=self.dim()
        if d<1:
            if d==0:
                loc=self.locate(x)
                if loc.loc_type==self.IN_VERTEX:
                    return {loc.loc_index:1.0}
            return {}
        loc=self.locate(x)
        if loc.loc_type==self.IN_VERTEX:
            return {loc.loc_index:1.0}
        if loc.loc_type in (self.OUTSIDE_CONVEX_HULL,self.OUTSIDE_AFFINE_HULL):
            return {}
        if d==1:
            return self.barycentric_weights(x,loc)
        if loc.loc_type==self.IN_EDGE and loc.loc_index.cell_opp()<0:
            loc=loc._replace(cell=self.INF_CELL)
            return self.barycentric_weights(x,loc)

        cavity=self.cavity_cells(x,loc)
        loop=self.cavity_boundary(cavity)
        weights=None
        if loop is not None:
            xs=self.nodes['x']
            orientation=robust_predicates.orientation
            if all(orientation(xs[self.he_origin(h)],xs[self.he_dest(h)],x)>0
                   for h in loop):
                boundary=[self.he_origin(h) for h in loop]
                old_centers=[]
                for i,h in enumerate(loop):
                    stop=loop[i-1]^1
                    centers=[]
                    g=h
                    while g!=stop:
                        centers.append(self.cell_center(self.he_cell(g)))
                        g=self.ccw_out(g)
                    old_centers.append(centers)
                w=interp_nn.nn_weights(x,xs[boundary],old_centers)
                if w is not None:
                    weights=dict(zip(boundary,w))
        if weights is None:
            self.log.debug("natural_neighbor_weights: degenerate cavity at %s"%x)
            weights=self.barycentric_weights(x,loc)
        return weights

    def natural_neighbor_interpolate(self,x,values):
        """ values: indexed by node.  nan outside the hull """
        weights=self.natural_neighbor_weights(x)
        if not weights:
            return np.nan
        return sum(w*values[n] for n,w in weights.items())

    def barycentric_interpolate(self,x,values):
        """ linear interpolation of values (indexed by node) over the
        triangle containing x.  nan outside the hull.
        """
        x=self.check_coordinate(x)
        if self.dim()<0:
            return np.nan
        loc=self.locate(x)
        if loc.loc_type in (self.OUTSIDE_CONVEX_HULL,self.OUTSIDE_AFFINE_HULL):
            return np.nan
        weights=self.barycentric_weights(x,loc)
        return sum(w*values[n] for n,w in weights.items())

    def nearest_neighbor(self,x):
        """
        The node closest to x, or None if there are no nodes.  Ties go
        to whichever is found first.
        """
        x=self.check_coordinate(x)
        if self.dim()<0:
            return None
        xs=self.nodes['x']
        n=self.nearest_located_vertex(x,self.locate(x))
        # greedy descent on the delaunay graph
        d_n=dist2(xs[n],x)
        while True:
            best=n
            for m in self.node_to_nodes(n):
                d_m=dist2(xs[m],x)
                if d_m<d_n:
                    best=m
                    d_n=d_m
            if best==n:
                break
            n=best
        if self.num_constraints():
            # constrained edges can hide the nearest node from the walk
            valid=np.nonzero(~self.nodes['deleted'])[0]
            d=dist2(xs[valid],x)
            m=int(valid[np.argmin(d)])
            if d.min()<d_n:
                n=m
        return n
