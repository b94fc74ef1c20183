# A pure-python, exact constrained delaunay triangulation.
# uses robust_predicates for orientation and in-circle tests, and
# keeps the topology in a half-edge structure so that every local
# operation is constant time.
from collections import namedtuple
from contextlib import contextmanager

import numpy as np
from scipy import spatial

from ..spatial import robust_predicates
from ..utils import set_keywords, dist2
from .halfedge_grid import (HalfEdgeGrid, GridException, TopologyError,
                            InvalidCoordinate, listenable, rec_to_dict)
from .constraints import (ConstraintsMixin, ConstraintViolation,
                          IntersectingConstraints, segments_cross)
from .removal import RemovalMixin
from .dual import DualMixin
from .hierarchy import DelaunayHierarchy

class DuplicateNode(GridException):
    pass

# cell: the located triangle, INF_CELL when outside or dim<2
# loc_type: one of the Triangulation.IN_*/OUTSIDE_* constants
# loc_index: node for IN_VERTEX, HalfEdge for IN_EDGE and
#   OUTSIDE_CONVEX_HULL, the dimension for OUTSIDE_AFFINE_HULL
Location=namedtuple('Location',['cell','loc_type','loc_index'])


class Triangulation(ConstraintsMixin,RemovalMixin,DualMixin,HalfEdgeGrid):
    """
    Constrained Delaunay triangulation of a set of points in the
    plane, with exact predicates.

    The triangulation always covers the convex hull of its vertices.
    Faces to the left of their half-edges, triangles counter-clockwise,
    and the unmeshed region outside the hull is INF_CELL.
    """
    INF_CELL=HalfEdgeGrid.UNMESHED

    # location types
    IN_VERTEX=0
    IN_EDGE=2
    IN_FACE=3
    OUTSIDE_CONVEX_HULL=4
    OUTSIDE_AFFINE_HULL=5

    # local exception types
    DuplicateNode=DuplicateNode
    ConstraintViolation=ConstraintViolation
    IntersectingConstraints=IntersectingConstraints
    InvalidCoordinate=InvalidCoordinate

    post_check=False # enables [expensive] checks after operations
    hierarchy=True   # maintain coarse levels to speed up locate
    hierarchy_ratio=30
    max_levels=5
    seed=None

    node_dtype=HalfEdgeGrid.node_dtype + [ ('up',np.int32) ]

    def __init__(self,extra_node_fields=[],**kwargs):
        set_keywords(self,kwargs)
        super(Triangulation,self).__init__(extra_node_fields=extra_node_fields)
        self.rng=np.random.default_rng(self.seed)
        self._last_cell=self.INF_CELL
        if self.hierarchy:
            self.dh=DelaunayHierarchy(self,
                                      factory=self.new_hierarchy_level,
                                      ratio=self.hierarchy_ratio,
                                      max_levels=self.max_levels,
                                      rng=self.rng)
        else:
            self.dh=None

    def update_element_defaults(self):
        super(Triangulation,self).update_element_defaults()
        self.node_defaults['up']=self.UNDEFINED

    def new_hierarchy_level(self):
        """ an empty, unconstrained triangulation to hold one coarse level """
        return Triangulation(hierarchy=False,
                             seed=int(self.rng.integers(2**31)),
                             extra_node_fields=[('down',np.int32)])

    @contextmanager
    def atomic(self):
        """
        Changes made inside the block, including changes to the
        hierarchy levels, are reverted if the block raises.
        """
        outermost=not self.recording()
        cp=self.checkpoint()
        dh_cp=self.dh.checkpoint() if self.dh is not None else None
        try:
            yield cp
        except BaseException:
            self.revert(cp)
            if dh_cp is not None:
                self.dh.revert(dh_cp)
            if outermost:
                self.commit()
                if self.dh is not None:
                    self.dh.commit()
            raise
        if outermost:
            self.commit()
            if self.dh is not None:
                self.dh.commit()

    def dim(self):
        if self.Ncells_valid():
            return 2
        elif self.Nedges_valid():
            return 1
        elif self.Nnodes_valid():
            return 0
        else:
            return -1

    def first_valid_node(self,exclude=None):
        for n in self.valid_node_iter():
            if n!=exclude:
                return n
        return None

    def check_coordinate(self,x):
        try:
            x=np.asarray(x,np.float64)
        except (TypeError,ValueError) as exc:
            raise InvalidCoordinate("Could not convert %r to a point"%(x,)) from exc
        if x.shape!=(2,):
            raise InvalidCoordinate("Points must have 2 coordinates, got shape %s"%(x.shape,))
        if not np.all(np.isfinite(x)):
            raise InvalidCoordinate("Point %s is not finite"%x)
        return x

    #-# Point location

    def choose_start_cell(self,t=None):
        """ the cell last located, or any valid cell """
        c=self._last_cell
        if (0<=c<self.Ncells()) and not self.cells['deleted'][c]:
            return c
        for c in self.valid_cell_iter():
            return c
        return self.INF_CELL

    def cell_for_node(self,n):
        """ some triangle incident to node n, or INF_CELL """
        for h in self.node_out_halfedges(n):
            c=self.he_cell(h)
            if c>=0:
                return c
        return self.INF_CELL

    def locate(self,t,hint=None):
        """
        Find where the point t falls relative to the triangulation.
        hint: a node near t to start the walk from.  Without a hint
          the hierarchy (if enabled) chooses the start.
        Returns a Location.
        """
        t=self.check_coordinate(t)
        d=self.dim()
        if d<=0:
            return self.locate_0d(t,d)
        if d==1:
            return self.locate_1d(t)

        c=self.INF_CELL
        if hint is None and self.dh is not None:
            hint=self.dh.locate_start(t)
        if (hint is not None) and (0<=hint<self.Nnodes()) \
           and not self.nodes['deleted'][hint]:
            c=self.cell_for_node(hint)
        if c<0:
            c=self.choose_start_cell(t)
        loc=self.locate_2d(t,c)
        if loc.cell>=0:
            self._last_cell=loc.cell
        return loc

    def locate_0d(self,t,d):
        if d<0:
            return Location(self.INF_CELL,self.OUTSIDE_AFFINE_HULL,-1)
        n=self.first_valid_node()
        if np.all(self.nodes['x'][n]==t):
            return Location(self.INF_CELL,self.IN_VERTEX,n)
        return Location(self.INF_CELL,self.OUTSIDE_AFFINE_HULL,0)

    def locate_1d(self,t):
        """
        All nodes are collinear.  Check whether t is on that line, and
        walk along the chain comparing the coordinate which varies.
        """
        xs=self.nodes['x']
        j=next(self.valid_edge_iter())
        h=2*j
        xa=xs[self.he_origin(h)]
        xb=xs[self.he_dest(h)]
        if robust_predicates.orientation(xa,xb,t)!=0:
            return Location(self.INF_CELL,self.OUTSIDE_AFFINE_HULL,1)

        axis=0 if xa[0]!=xb[0] else 1
        sgn=1.0 if xb[axis]>xa[axis] else -1.0
        kt=sgn*t[axis]

        while True:
            u=self.he_origin(h)
            w=self.he_dest(h)
            ku=sgn*xs[u,axis]
            kw=sgn*xs[w,axis]
            if kt==ku:
                return Location(self.INF_CELL,self.IN_VERTEX,u)
            if kt==kw:
                return Location(self.INF_CELL,self.IN_VERTEX,w)
            if ku<kt<kw:
                return Location(self.INF_CELL,self.IN_EDGE,self.halfedge_of(h))
            if kt>kw:
                nxt=self.he_next(h)
                if nxt==h^1:
                    return Location(self.INF_CELL,self.OUTSIDE_CONVEX_HULL,
                                    self.halfedge_of(h))
                h=nxt
            else:
                prv=self.he_prev(h)
                if prv==h^1:
                    return Location(self.INF_CELL,self.OUTSIDE_CONVEX_HULL,
                                    self.halfedge_of(h^1))
                h=prv

    def locate_2d(self,t,c):
        """
        Stochastic remembering walk from cell c.  The edge just crossed
        is never tested again, and the first edge tested in each
        triangle is chosen at random, which guarantees termination.
        """
        xs=self.nodes['x']
        orientation=robust_predicates.orientation
        h_entry=-1
        while True:
            hes=self.cell_to_halfedges(c)
            k0=int(self.rng.integers(3))
            zeros=[]
            for k in range(3):
                h=hes[(k0+k)%3]
                if h==h_entry:
                    continue
                o=orientation(xs[self.he_origin(h)],xs[self.he_dest(h)],t)
                if o<0:
                    break
                if o==0:
                    zeros.append(h)
            else:
                return self.classify_in_cell(c,zeros)
            g=h^1
            c_next=self.he_cell(g)
            if c_next==self.INF_CELL:
                return Location(self.INF_CELL,self.OUTSIDE_CONVEX_HULL,
                                self.halfedge_of(g))
            c=c_next
            h_entry=g

    def classify_in_cell(self,c,zeros):
        if len(zeros)==0:
            return Location(c,self.IN_FACE,None)
        if len(zeros)==1:
            return Location(c,self.IN_EDGE,self.halfedge_of(zeros[0]))
        if len(zeros)==2:
            h1,h2=zeros
            if self.he_dest(h1)==self.he_origin(h2):
                n=self.he_dest(h1)
            else:
                n=self.he_dest(h2)
            return Location(c,self.IN_VERTEX,n)
        raise TopologyError("Cell %d is degenerate"%c)

    def nearest_located_vertex(self,t,loc):
        """ of the vertices of the located element, the one closest to t """
        if loc.loc_type==self.IN_VERTEX:
            return loc.loc_index
        if loc.loc_type in (self.IN_EDGE,self.OUTSIDE_CONVEX_HULL):
            cands=list(loc.loc_index.nodes())
        elif loc.loc_type==self.IN_FACE:
            cands=self.cell_to_nodes(loc.cell)
        else:
            return self.first_valid_node()
        d=dist2(self.nodes['x'][cands],t)
        return cands[int(np.argmin(d))]

    #-# Insertion

    @listenable
    def add_node(self,**kwargs):
        """
        Insert a vertex at kwargs['x'], or return the existing vertex at
        that location (updating its data if given).
        """
        x=self.check_coordinate(kwargs['x'])
        kwargs['x']=x
        hint=kwargs.pop('_hint',None)
        # locate first, so a failure leaves no dangling node
        loc=self.locate(x,hint=hint)

        if loc.loc_type==self.IN_VERTEX:
            n=loc.loc_index
            if 'data' in kwargs:
                HalfEdgeGrid.modify_node(self,n,data=kwargs['data'])
            return n
        n=super(Triangulation,self).add_node(**kwargs)
        self.tri_insert(n,loc)
        if self.dh is not None:
            self.dh.insert(n)
        if self.post_check:
            self.check_all()
        return n

    def insert(self,x,data=None):
        if data is None:
            return self.add_node(x=x)
        return self.add_node(x=x,data=data)

    def insert_with_data(self,x,payload):
        """ like insert, but an existing vertex at x gets the new payload """
        return self.add_node(x=x,data=payload)

    def tri_insert(self,n,loc):
        lt=loc.loc_type
        if lt==self.OUTSIDE_AFFINE_HULL:
            opp=self.tri_insert_outside_affine_hull(n,loc)
        elif lt==self.OUTSIDE_CONVEX_HULL:
            opp=self.tri_insert_outside_convex_hull(n,loc)
        elif lt==self.IN_EDGE:
            opp=self.tri_insert_in_edge(n,loc)
        elif lt==self.IN_FACE:
            opp=self.tri_insert_in_face(n,loc)
        else:
            raise TopologyError("Unexpected location type %s"%lt)
        self.propagating_flip(n,opp)

    def tri_insert_outside_affine_hull(self,n,loc):
        d=loc.loc_index
        if d<0:
            # the first node
            return []
        if d==0:
            a=self.first_valid_node(exclude=n)
            j=self.add_edge(nodes=[a,n])
            h=2*j
            self.link(h,h^1)
            self.link(h^1,h)
            self.set_node_he(a,h)
            self.set_node_he(n,h^1)
            return []
        # collinear chain to a fan of triangles
        xs=self.nodes['x']
        h=2*next(self.valid_edge_iter())
        if robust_predicates.orientation(xs[self.he_origin(h)],
                                         xs[self.he_dest(h)],
                                         xs[n])<0:
            h=h^1
        return self.insert_fan(n,h)

    def tri_insert_outside_convex_hull(self,n,loc):
        h=loc.loc_index.he
        if self.dim()==1:
            # extend the chain beyond its end e=dest(h)
            e=self.he_dest(h)
            j=self.add_edge(nodes=[e,n])
            f=2*j
            self.link(h,f)
            self.link(f,f^1)
            self.link(f^1,h^1)
            self.set_node_he(n,f^1)
            return []
        return self.insert_fan(n,h)

    def insert_fan(self,n,h):
        """
        Connect n to the run of outer half-edges visible from n which
        includes h.  Returns the half-edges of the run, now opposite n
        in the new triangles.
        """
        xs=self.nodes['x']
        xn=xs[n]
        def visible(g):
            return robust_predicates.orientation(xs[self.he_origin(g)],
                                                 xs[self.he_dest(g)],xn)>0
        run=[h]
        while True:
            g=self.he_prev(run[0])
            if g==run[-1] or not visible(g):
                break
            run.insert(0,g)
        while True:
            g=self.he_next(run[-1])
            if g==run[0] or not visible(g):
                break
            run.append(g)

        prev_outer=self.he_prev(run[0])
        next_outer=self.he_next(run[-1])
        verts=[self.he_origin(run[0])] + [self.he_dest(s) for s in run]
        spokes=[self.add_edge(nodes=[v,n]) for v in verts]
        for i,s in enumerate(run):
            self.add_cell([s,2*spokes[i+1],2*spokes[i]+1])

        into_n=2*spokes[0]
        out_of_n=2*spokes[-1]+1
        self.link(prev_outer,into_n)
        self.link(into_n,out_of_n)
        self.link(out_of_n,next_outer)
        self.set_node_he(n,out_of_n)
        self.log.debug("Fan of %d triangles from node %d"%(len(run),n))
        return run

    def tri_insert_in_edge(self,n,loc):
        h=loc.loc_index.he
        if loc.cell==self.INF_CELL:
            # dimension 1, split the chain
            self.split_edge(h,n)
            return []
        INF=self.INF_CELL
        g=h^1
        cL=self.he_cell(h)
        cR=self.he_cell(g)
        if cL!=INF:
            h1=self.he_next(h)
            h2=self.he_next(h1)
            self.delete_cell(cL)
        if cR!=INF:
            g1=self.he_next(g)
            g2=self.he_next(g1)
            self.delete_cell(cR)
        # now h: a->n, H: n->b
        H=self.split_edge(h,n)
        G=H^1
        opp=[]
        if cL!=INF:
            j=self.add_edge(nodes=[n,self.he_dest(h1)])
            self.add_cell([h,2*j,h2])
            self.add_cell([H,h1,2*j+1])
            opp+=[h1,h2]
        if cR!=INF:
            k=self.add_edge(nodes=[n,self.he_dest(g1)])
            self.add_cell([G,2*k,g2])
            self.add_cell([g,g1,2*k+1])
            opp+=[g1,g2]
        return opp

    def tri_insert_in_face(self,n,loc):
        c=loc.cell
        h0,h1,h2=self.cell_to_halfedges(c)
        a,b,cc=[self.he_origin(h) for h in (h0,h1,h2)]
        self.delete_cell(c)
        ja=self.add_edge(nodes=[n,a])
        jb=self.add_edge(nodes=[n,b])
        jc=self.add_edge(nodes=[n,cc])
        self.add_cell([h0,2*jb+1,2*ja])
        self.add_cell([h1,2*jc+1,2*jb])
        self.add_cell([h2,2*ja+1,2*jc])
        self.set_node_he(n,2*ja)
        return [h0,h1,h2]

    #-# Flips

    def flip_edge(self,j):
        """
        Flip the diagonal j of the quad formed by its two triangles.
        Before, 2j runs a->b in (a,b,c) and 2j+1 runs b->a in (b,a,d).
        After, 2j runs c->d in (d,b,c) and 2j+1 d->c in (c,a,d).
        Half-edges other than j keep their identity.
        """
        assert not self.edges['constrained'][j]
        h=2*j
        g=h+1
        h1=self.he_next(h)
        h2=self.he_next(h1)
        g1=self.he_next(g)
        g2=self.he_next(g1)
        a=self.he_origin(h)
        b=self.he_dest(h)
        c=self.he_dest(h1)
        d=self.he_dest(g1)
        cL=self.he_cell(h)
        cR=self.he_cell(g)
        assert cL>=0 and cR>=0

        self.modify_edge(j,nodes=[c,d])
        self.link(g2,h1)
        self.link(h1,h)
        self.link(h,g2)
        self.link(h2,g1)
        self.link(g1,g)
        self.link(g,h2)
        self.set_he_cell(g2,cL)
        self.set_he_cell(h2,cR)
        self.modify_cell(cL,he=h,_center=np.nan)
        self.modify_cell(cR,he=g,_center=np.nan)
        if self.nodes['he'][a]==h:
            self.set_node_he(a,g1)
        if self.nodes['he'][b]==g:
            self.set_node_he(b,h1)

    def propagating_flip(self,n,hes):
        """
        n: node just inserted
        hes: half-edges opposite n in its new triangles.
        Flip until every edge opposite n is locally Delaunay.
        """
        xs=self.nodes['x']
        p=xs[n]
        stack=list(hes)
        while stack:
            h=stack.pop()
            if self.edges['constrained'][h>>1]:
                continue
            g=h^1
            if self.he_cell(g)==self.INF_CELL:
                continue
            g1=self.he_next(g)
            g2=self.he_next(g1)
            d=self.he_dest(g1)
            # cocircular ties keep the existing edge
            if robust_predicates.incircle(xs[self.he_origin(h)],
                                          xs[self.he_dest(h)],
                                          p,xs[d])>0:
                self.flip_edge(h>>1)
                stack.append(g1)
                stack.append(g2)

    def legalize_edges(self,js,region=None):
        """
        Lawson flips starting from the edges js.  region, if given, is a
        set of edges which may be flipped; edges outside it are taken as
        fixed.  Returns the number of flips.
        """
        xs=self.nodes['x']
        INF=self.INF_CELL
        stack=list(js)
        count=0
        while stack:
            j=stack.pop()
            if self.edges['deleted'][j] or self.edges['constrained'][j]:
                continue
            h=2*j
            g=h+1
            if self.he_cell(h)==INF or self.he_cell(g)==INF:
                continue
            h1=self.he_next(h)
            g1=self.he_next(g)
            if robust_predicates.incircle(xs[self.he_origin(h)],
                                          xs[self.he_dest(h)],
                                          xs[self.he_dest(h1)],
                                          xs[self.he_dest(g1)])>0:
                quad=[h1>>1,self.he_next(h1)>>1,g1>>1,self.he_next(g1)>>1]
                self.flip_edge(j)
                count+=1
                for k in quad:
                    if (region is None) or (k in region):
                        stack.append(k)
        if count:
            self.log.debug("legalize_edges: %d flips"%count)
        return count

    def restore_delaunay(self,n):
        """ re-legalize the star of n and the edges opposite n """
        js=[]
        for h in self.node_out_halfedges(n):
            js.append(h>>1)
            if self.he_cell(h)>=0:
                js.append(self.he_next(h)>>1)
        return self.legalize_edges(js)

    #-# Moving nodes

    @listenable
    def modify_node(self,n,_brute_force=False,**kwargs):
        """
        Update fields of node n.  If 'x' is given the node is moved and
        the triangulation repaired.
        _brute_force: if True, move node by delete/add, rather than trying
          a short cut.
        """
        if 'x' not in kwargs:
            return super(Triangulation,self).modify_node(n,**kwargs)
        x=self.check_coordinate(kwargs['x'])
        kwargs['x']=x
        if np.all(x==self.nodes['x'][n]):
            return super(Triangulation,self).modify_node(n,**kwargs)

        if self.dim()<2:
            # short cuts only exist for the 2D case
            _brute_force=True

        if not _brute_force and self.can_shortcut_move(n,x):
            super(Triangulation,self).modify_node(n,**kwargs)
            for c in self.node_to_cells(n):
                self.invalidate_cell_center(c)
            self.restore_delaunay(n)
            if self.dh is not None:
                self.dh.move(n)
        else:
            self.move_brute_force(n,kwargs)
        if self.post_check:
            self.check_all()

    def can_shortcut_move(self,n,x):
        """
        True if moving n to x keeps every incident triangle positively
        oriented and, for a hull node, keeps the hull convex.
        """
        xs=self.nodes['x']
        orientation=robust_predicates.orientation
        h_outer=None
        for h in self.node_out_halfedges(n):
            if self.he_cell(h)==self.INF_CELL:
                h_outer=h
                continue
            h1=self.he_next(h)
            if orientation(x,xs[self.he_origin(h1)],xs[self.he_dest(h1)])<=0:
                return False
        if h_outer is not None:
            h_in=self.he_prev(h_outer)
            pts=[xs[self.he_origin(self.he_prev(h_in))],
                 xs[self.he_origin(h_in)],
                 x,
                 xs[self.he_dest(h_outer)],
                 xs[self.he_dest(self.he_next(h_outer))]]
            for i in range(3):
                if orientation(*pts[i:i+3])>0:
                    return False
        return True

    def move_brute_force(self,n,kwargs):
        fields=rec_to_dict(self.nodes[n])
        for k in ('x','he','up','deleted'):
            del fields[k]
        fields.update(kwargs)
        others=[]
        for j in self.node_to_constraints(n):
            a,b=self.edges['nodes'][j]
            others.append(int(b) if a==n else int(a))
        height=self.dh.height(n) if self.dh is not None else 0

        with self.atomic():
            self.delete_node(n,_drop_constraints=True)
            n_new=self.add_node(_index=n,**fields)
            if n_new!=n:
                self.log.warning("Node %d moved onto node %d, rolling back"%(n,n_new))
                raise self.DuplicateNode("Node %d moved onto existing node %d"%(n,n_new))
            if self.dh is not None and self.dh.height(n)!=height:
                # keep the coarse levels the same size
                self.dh.remove(n)
                self.dh.insert(n,height=height)
            for m in others:
                self.add_constraint(n,m)

    #-# Bulk loading

    def bulk_load(self,points,edges=None):
        """
        Initialize an empty triangulation from an array of points [N,2],
        and optionally a list of [a,b] constraints indexing points.
        Constraints are split where they pass through other points or
        cross each other.  Not undoable.

        Returns an array mapping each input point to its node.  Duplicate
        points map to the same node.
        """
        points=np.asarray(points,np.float64)
        if points.ndim!=2 or points.shape[1]!=2:
            raise InvalidCoordinate("points must be [N,2], got shape %s"%(points.shape,))
        if not np.all(np.isfinite(points)):
            raise InvalidCoordinate("points must be finite")
        if self.Nnodes_valid():
            raise GridException("bulk_load requires an empty triangulation")

        self.clear()
        self._last_cell=self.INF_CELL
        if self.dh is not None:
            self.dh.clear()
        if len(points)==0:
            return np.zeros(0,np.int32)

        uniq,first,inverse=np.unique(points,axis=0,return_index=True,return_inverse=True)
        # nodes are numbered in order of first occurrence
        order=np.argsort(first)
        rank=np.zeros(len(order),np.int32)
        rank[order]=np.arange(len(order))
        mapping=rank[inverse.ravel()]
        pts=uniq[order]

        if self.bulk_seed(pts):
            if self.dh is not None:
                self.dh.rebuild()
        else:
            self.log.info("bulk_load: falling back to incremental insertion of %d points"%len(pts))
            self.clear()
            if self.dh is not None:
                self.dh.clear()
            for p in pts:
                self.add_node(x=p)

        if edges is not None:
            for a,b in edges:
                self.add_constraint_and_split(int(mapping[a]),int(mapping[b]))
        if self.post_check:
            self.check_all()
        return mapping

    def bulk_seed(self,pts):
        """
        Build the topology from scipy's triangulation of the distinct
        points pts.  The result is verified with the exact predicates
        and legalized.  Returns False, possibly leaving partial state,
        when the seed cannot be used.
        """
        if len(pts)<3:
            return False
        try:
            # centering improves qhull's robustness
            sdt=spatial.Delaunay(pts-pts.mean(axis=0))
        except (spatial.QhullError,ValueError) as exc:
            self.log.info("bulk_load: qhull failed: %s"%exc)
            return False
        if len(sdt.coplanar):
            return False

        orientation=robust_predicates.orientation
        tris=[]
        for tri in sdt.simplices:
            a,b,c=[int(i) for i in tri]
            o=orientation(pts[a],pts[b],pts[c])
            if o==0:
                return False
            if o<0:
                b,c=c,b
            tris.append((a,b,c))

        edge_idx={}
        edge_nodes=[]
        cell_hes=[]
        for tri in tris:
            hes=[]
            for u,v in [(tri[0],tri[1]),(tri[1],tri[2]),(tri[2],tri[0])]:
                key=(min(u,v),max(u,v))
                if key not in edge_idx:
                    edge_idx[key]=len(edge_nodes)
                    edge_nodes.append((u,v))
                    hes.append(2*edge_idx[key])
                else:
                    j=edge_idx[key]
                    if edge_nodes[j]!=(v,u):
                        return False
                    hes.append(2*j+1)
            cell_hes.append(hes)

        N=len(pts)
        nodes=np.zeros(N,self.node_dtype)
        nodes[:]=self.node_defaults
        nodes['x']=pts
        nodes['deleted']=False
        edges=np.zeros(len(edge_nodes),self.edge_dtype)
        edges[:]=self.edge_defaults
        edges['nodes']=edge_nodes
        edges['deleted']=False
        cells=np.zeros(len(cell_hes),self.cell_dtype)
        cells[:]=self.cell_defaults
        cells['deleted']=False

        for c,hes in enumerate(cell_hes):
            cells['he'][c]=hes[0]
            for k in range(3):
                h=hes[k]
                nxt=hes[(k+1)%3]
                edges['next'][h>>1,h&1]=nxt
                edges['prev'][nxt>>1,nxt&1]=h
                edges['cells'][h>>1,h&1]=c
                nodes['he'][edges['nodes'][h>>1,h&1]]=h

        # link the outer loop through the origin of each outer half-edge
        outer_from={}
        for j in range(len(edges)):
            for orient in (0,1):
                if edges['cells'][j,orient]==self.INF_CELL:
                    origin=int(edges['nodes'][j,orient])
                    if origin in outer_from:
                        return False
                    outer_from[origin]=2*j+orient
        for origin,h in outer_from.items():
            dest=int(edges['nodes'][h>>1,1-(h&1)])
            if dest not in outer_from:
                return False
            nxt=outer_from[dest]
            edges['next'][h>>1,h&1]=nxt
            edges['prev'][nxt>>1,nxt&1]=h
        if np.any(nodes['he']<0):
            return False

        self.nodes=nodes
        self.edges=edges
        self.cells=cells
        try:
            self.check_topology()
            self.check_convex_hull()
        except TopologyError as exc:
            self.log.info("bulk_load: seed rejected: %s"%exc)
            return False
        self.legalize_edges(range(self.Nedges()))
        return True

    #-# Iteration

    def vertices(self):
        return self.valid_node_iter()

    def directed_edges(self):
        for j in self.valid_edge_iter():
            yield self.halfedge(j,0)
            yield self.halfedge(j,1)

    def faces(self):
        return self.valid_cell_iter()

    def outer_halfedge(self):
        """ some half-edge on the outer loop, or None if dim<1 """
        outer=np.nonzero( (self.edges['cells']==self.INF_CELL)
                          & ~self.edges['deleted'][:,None] )
        if len(outer[0])==0:
            return None
        return 2*int(outer[0][0]) + int(outer[1][0])

    def convex_hull(self):
        """
        Nodes on the convex hull in counter-clockwise order.  For
        collinear nodes, the two ends of the chain.
        """
        d=self.dim()
        if d<0:
            return []
        if d==0:
            return [self.first_valid_node()]
        h0=self.outer_halfedge()
        if d==1:
            ends=[]
            h=h0
            while True:
                if self.he_next(h)==h^1:
                    ends.append(self.he_dest(h))
                h=self.he_next(h)
                if h==h0:
                    break
            return ends
        hull=[]
        h=h0
        while True:
            hull.append(self.he_origin(h))
            h=self.he_next(h)
            if h==h0:
                break
        return hull[::-1]

    #-# Checks

    def check_orientations(self):
        for c in self.valid_cell_iter():
            pts=self.nodes['x'][self.cell_to_nodes(c)]
            if robust_predicates.orientation(*pts)<=0:
                raise TopologyError("Cell %d is not counter-clockwise"%c)
        return True

    def check_local_delaunay(self):
        """ Check both sides of each unconstrained edge """
        xs=self.nodes['x']
        for j in self.valid_edge_iter():
            if self.edges['constrained'][j]:
                continue
            h=2*j
            g=h+1
            if self.he_cell(h)<0 or self.he_cell(g)<0:
                continue
            a,b,c=self.cell_to_nodes(self.he_cell(h))
            d=self.he_dest(self.he_next(g))
            if robust_predicates.incircle(xs[a],xs[b],xs[c],xs[d])>0:
                raise TopologyError("Node %d is inside the circumcircle of cell %d (%d,%d,%d)"%(
                    d,self.he_cell(h),a,b,c))
        return True

    def check_global_delaunay(self):
        """
        Brute force: no node visible from the interior of a cell falls
        inside its circumcircle.  Visibility is blocked by constrained
        edges.
        """
        xs=self.nodes['x']
        con=[self.edges['nodes'][j] for j in self.constraint_edges()]
        for c in self.valid_cell_iter():
            nodes=self.cell_to_nodes(c)
            pnts=xs[nodes]
            centroid=pnts.mean(axis=0)
            for n in self.valid_node_iter():
                if n in nodes:
                    continue
                if robust_predicates.incircle(pnts[0],pnts[1],pnts[2],xs[n])<=0:
                    continue
                if any(segments_cross(centroid,xs[n],xs[a],xs[b],proper=True)
                       for a,b in con):
                    continue
                raise TopologyError("Node %d is inside the circumcircle of cell %d (%d,%d,%d)"%(
                    n,c,nodes[0],nodes[1],nodes[2]))
        return True

    def check_convex_hull(self):
        """ consecutive outer half-edges never turn left """
        if self.dim()<2:
            return True
        xs=self.nodes['x']
        h0=self.outer_halfedge()
        h=h0
        while True:
            nxt=self.he_next(h)
            if robust_predicates.orientation(xs[self.he_origin(h)],
                                             xs[self.he_dest(h)],
                                             xs[self.he_dest(nxt)])>0:
                raise TopologyError("Hull is not convex at node %d"%self.he_dest(h))
            h=nxt
            if h==h0:
                break
        return True

    def check_constraints(self):
        for j in self.constraint_edges():
            if self.edges['deleted'][j]:
                raise TopologyError("Constrained edge %d is deleted"%j)
        return True

    def check_all(self):
        self.check_topology()
        self.check_orientations()
        self.check_local_delaunay()
        self.check_convex_hull()
        self.check_constraints()
        return True
