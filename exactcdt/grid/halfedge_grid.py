"""
Half-edge (doubly connected edge list) storage for planar triangulations.

Elements live in numpy structured arrays, referenced by integer index
and marked deleted rather than removed.  Each undirected edge j stores
its two half-edges side by side, so half-edge h=2*j+orient is the edge
j traversed from edges['nodes'][j,orient] to edges['nodes'][j,1-orient].
The opposite half-edge is h^1.

Faces lie to the left of their half-edges.  Half-edges bordering the
unmeshed region carry INF_CELL, and are linked into a single loop of
their own, so next/prev are defined for every half-edge.
"""
import logging
from collections import defaultdict
from functools import wraps

import numpy as np

from .. import undoer
from ..utils import array_append, circumcenter, circular_pairs

class GridException(Exception):
    pass

class TopologyError(GridException):
    """ Internal invariants of the mesh are broken.  Indicates a bug
    rather than bad input.
    """
    pass

class InvalidCoordinate(GridException,ValueError):
    pass

class HalfEdge(object):
    def __init__(self,grid,edge,orient):
        """
        orient: 0 means the usual from node 0 to node 1, i.e. the half-edge
        with edges['cells'][j,0] on its left.
        """
        self.grid=grid
        self.j=int(edge)
        self.orient=int(orient)

    @property
    def he(self):
        """ integer handle of this half-edge """
        return 2*self.j+self.orient

    def __str__(self):
        return "<HalfEdge %d -> %d>"%( self.node_rev(),self.node_fwd() )

    def __repr__(self):
        return self.__str__()

    def fwd(self):
        """ next half-edge around the face """
        return self.grid.halfedge_of(self.grid.he_next(self.he))
    def rev(self):
        """ previous half-edge around the face """
        return self.grid.halfedge_of(self.grid.he_prev(self.he))

    def cell(self):
        # the cell (or a <0 flag) which this half-edge faces
        return self.grid.he_cell(self.he)
    def cell_opp(self):
        return self.grid.he_cell(self.he^1)

    def opposite(self):
        return HalfEdge(grid=self.grid,edge=self.j,orient=1-self.orient)

    def node_rev(self):
        """ index of the node in the reverse direction of the halfedge """
        return int(self.grid.edges['nodes'][self.j, self.orient])
    def node_fwd(self):
        """ index of the node in the forward direction of the halfedge """
        return int(self.grid.edges['nodes'][self.j, 1-self.orient])
    def nodes(self):
        """
        equivalent to [node_rev(),node_fwd()]
        """
        return self.grid.edges['nodes'][self.j, [self.orient, 1-self.orient]]

    @staticmethod
    def from_nodes(grid,rev,fwd):
        h=grid.nodes_to_halfedge(rev,fwd)
        if h is None:
            return None
        return grid.halfedge_of(h)

    def __eq__(self,other):
        return ( isinstance(other,HalfEdge) and
                 (other.grid   is self.grid) and
                 (other.j      == self.j )   and
                 (other.orient == self.orient) )

    def __ne__(self,other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash( (id(self.grid),self.j,self.orient) )


def rec_to_dict(r):
    d={}
    for name in r.dtype.names:
        d[name]=r[name]
    return d

# a baseclass which handles registering listeners for a particular method,
# and a decorator to mark which methods can be monitored.

class Listenable(object):
    def __init__(self,*a,**k):
        super(Listenable,self).__init__(*a,**k)
        self.__post_listeners=defaultdict(list) # func_name => list of functions
        self.__pre_listeners =defaultdict(list) # ditto

    def subscribe_after(self,func_name,callback):
        if callback not in self.__post_listeners[func_name]:
            self.__post_listeners[func_name].append(callback)
    def subscribe_before(self,func_name,callback):
        if callback not in self.__pre_listeners[func_name]:
            self.__pre_listeners[func_name].append(callback)
    def unsubscribe_after(self,func_name,callback):
        if callback in self.__post_listeners[func_name]:
            self.__post_listeners[func_name].remove(callback)
    def unsubscribe_before(self,func_name,callback):
        if callback in self.__pre_listeners[func_name]:
            self.__pre_listeners[func_name].remove(callback)

    def fire_after(self,func_name,*a,**k):
        for func in self.__post_listeners[func_name]:
            func(self,func_name,*a,**k)
    def fire_before(self,func_name,*a,**k):
        for func in self.__pre_listeners[func_name]:
            func(self,func_name,*a,**k)

    def __getstate__(self):
        # callbacks are often bound methods or closures, which do not
        # pickle.  drop them from the saved state.
        save_pre=self.__pre_listeners
        save_post=self.__post_listeners
        self.__pre_listeners=defaultdict(list)
        self.__post_listeners=defaultdict(list)
        try:
            try:
                d=super(Listenable,self).__getstate__()
            except AttributeError:
                d=dict(self.__dict__)
            if d is None:
                d=dict(self.__dict__)
        finally:
            self.__pre_listeners=save_pre
            self.__post_listeners=save_post
        return d

def listenable(f):
    @wraps(f)
    def wrapper(self,*args,**kwargs):
        func_name=f.__name__
        self.fire_before(func_name,*args,**kwargs)
        val=f(self,*args,**kwargs)
        self.fire_after(func_name,*args,return_value=val,**kwargs)
        return val

    return wrapper


class HalfEdgeGrid(Listenable,undoer.OpHistory):
    """
    Storage and local surgery for a planar subdivision.  Nothing here
    knows about geometry beyond caching circumcenters: the methods
    only keep next/prev/opposite/cell relations and node anchors
    consistent, and record enough for undo.
    """
    UNDEFINED=-1
    UNMESHED=-2 # edges['cells'] for a half-edge on the unmeshed side
    INF_CELL=UNMESHED

    GridException=GridException
    TopologyError=TopologyError

    # dependent values are prefixed with an underscore, and are nan when
    # stale.  Use cell_center(), not cells['_center'] directly.
    node_dtype = [ ('x',(np.float64,2)),
                   ('he',np.int32),   # an outgoing half-edge
                   ('data',object),   # opaque client payload
                   ('deleted',np.bool_) ]
    edge_dtype = [ ('nodes',(np.int32,2)),
                   ('cells',(np.int32,2)),
                   ('next',(np.int32,2)),
                   ('prev',(np.int32,2)),
                   ('constrained',np.bool_),
                   ('deleted',np.bool_) ]
    cell_dtype = [ ('he',np.int32),
                   ('_center',(np.float64,2)),
                   ('deleted',np.bool_) ]

    def __init__(self,
                 extra_node_fields=[],
                 extra_edge_fields=[],
                 extra_cell_fields=[]):
        super(HalfEdgeGrid,self).__init__()
        self.init_log()
        # copy so the class-wide definitions are untouched
        self.node_dtype = self.node_dtype + list(extra_node_fields)
        self.edge_dtype = self.edge_dtype + list(extra_edge_fields)
        self.cell_dtype = self.cell_dtype + list(extra_cell_fields)
        self.update_element_defaults()
        self.clear()

    def init_log(self):
        self.log = logging.getLogger(self.__class__.__name__)

    def __setstate__(self,state):
        self.__dict__.update(state)
        self.init_log()

    def update_element_defaults(self):
        """
        Template records for new elements.  Floating fields get nan,
        object fields None, indices UNDEFINED.
        """
        def make_default(dtype):
            d=np.zeros( (), dtype)
            for name in d.dtype.names:
                if np.issubdtype(d[name].dtype,np.floating):
                    d[name]=np.nan
                elif d[name].dtype==np.object_:
                    d[name]=None
            return d

        self.node_defaults=make_default(self.node_dtype)
        self.node_defaults['he']=self.UNDEFINED
        self.edge_defaults=make_default(self.edge_dtype)
        self.edge_defaults['nodes']=self.UNDEFINED
        self.edge_defaults['cells']=self.INF_CELL
        self.edge_defaults['next']=self.UNDEFINED
        self.edge_defaults['prev']=self.UNDEFINED
        self.cell_defaults=make_default(self.cell_dtype)
        self.cell_defaults['he']=self.UNDEFINED

    def clear(self):
        """ drop all elements """
        self.nodes=np.zeros(0,self.node_dtype)
        self.edges=np.zeros(0,self.edge_dtype)
        self.cells=np.zeros(0,self.cell_dtype)

    #-# Counts and iteration

    def Nnodes(self):
        return len(self.nodes)
    def Nedges(self):
        return len(self.edges)
    def Ncells(self):
        return len(self.cells)

    def Nnodes_valid(self):
        return int(np.sum(~self.nodes['deleted']))
    def Nedges_valid(self):
        return int(np.sum(~self.edges['deleted']))
    def Ncells_valid(self):
        return int(np.sum(~self.cells['deleted']))

    def valid_node_iter(self):
        for n in np.nonzero(~self.nodes['deleted'])[0]:
            yield int(n)
    def valid_edge_iter(self):
        for j in np.nonzero(~self.edges['deleted'])[0]:
            yield int(j)
    def valid_cell_iter(self):
        for c in np.nonzero(~self.cells['deleted'])[0]:
            yield int(c)

    #-# Undo support.  Every write to an element goes through _touch()
    # first, and every new element through _append().

    def _touch(self,kind,i):
        if self.state=='recording':
            self.push_op(self._restore,kind,i,getattr(self,kind)[i].copy())

    def _restore(self,kind,i,rec):
        getattr(self,kind)[i]=rec

    def _append(self,kind,rec):
        arr=array_append(getattr(self,kind),rec)
        setattr(self,kind,arr)
        i=len(arr)-1
        self.push_op(self._truncate,kind,i)
        return i

    def _truncate(self,kind,n):
        setattr(self,kind,getattr(self,kind)[:n])

    #-# Half-edge navigation

    def halfedge(self,j,orient):
        return HalfEdge(self,j,orient)
    def halfedge_of(self,h):
        return HalfEdge(self,h>>1,h&1)

    def he_origin(self,h):
        return int(self.edges['nodes'][h>>1,h&1])
    def he_dest(self,h):
        return int(self.edges['nodes'][h>>1,1-(h&1)])
    def he_next(self,h):
        return int(self.edges['next'][h>>1,h&1])
    def he_prev(self,h):
        return int(self.edges['prev'][h>>1,h&1])
    def he_cell(self,h):
        return int(self.edges['cells'][h>>1,h&1])

    def ccw_out(self,h):
        """ the next outgoing half-edge counter-clockwise around the
        origin of h """
        return self.he_prev(h)^1
    def cw_out(self,h):
        return self.he_next(h^1)

    def node_out_halfedges(self,n):
        """ outgoing half-edges of n, counter-clockwise """
        h0=int(self.nodes['he'][n])
        if h0<0:
            return
        h=h0
        while True:
            yield h
            h=self.ccw_out(h)
            if h==h0:
                break

    def node_to_nodes(self,n):
        return [self.he_dest(h) for h in self.node_out_halfedges(n)]
    def node_to_edges(self,n):
        return [h>>1 for h in self.node_out_halfedges(n)]
    def node_to_cells(self,n):
        cells=[self.he_cell(h) for h in self.node_out_halfedges(n)]
        return [c for c in cells if c>=0]

    def nodes_to_halfedge(self,n1,n2):
        for h in self.node_out_halfedges(n1):
            if self.he_dest(h)==n2:
                return h
        return None

    def nodes_to_edge(self,n1,n2=None):
        if n2 is None:
            n1,n2=n1
        h=self.nodes_to_halfedge(n1,n2)
        if h is None:
            return None
        return h>>1

    def cell_to_halfedges(self,c):
        h0=int(self.cells['he'][c])
        h1=self.he_next(h0)
        return [h0,h1,self.he_next(h1)]
    def cell_to_nodes(self,c):
        return [self.he_origin(h) for h in self.cell_to_halfedges(c)]
    def cell_to_cells(self,c):
        return [self.he_cell(h^1) for h in self.cell_to_halfedges(c)]

    #-# Primitive modifications.  These do not check planarity, and may
    # leave the mesh inconsistent between calls.

    def add_node(self,**kwargs):
        i=kwargs.pop('_index',None)
        if (i is None) or (i==len(self.nodes)):
            i=self._append('nodes',self.node_defaults)
        else:
            if not self.nodes['deleted'][i]:
                raise GridException("Node %d is in use"%i)
            self._touch('nodes',i)
            self.nodes[i]=self.node_defaults

        for k,v in kwargs.items():
            self.nodes[k][i]=v
        return i

    def modify_node(self,n,**kws):
        self._touch('nodes',n)
        for k,v in kws.items():
            self.nodes[k][n]=v

    def delete_node(self,n):
        self._touch('nodes',n)
        self.nodes['deleted'][n]=True
        self.nodes['he'][n]=self.UNDEFINED

    def add_edge(self,**kwargs):
        """ The new edge is isolated: both half-edges face INF_CELL
        and are not linked to anything.
        """
        j=self._append('edges',self.edge_defaults)
        for k,v in kwargs.items():
            self.edges[k][j]=v
        return j

    def modify_edge(self,j,**kws):
        self._touch('edges',j)
        for k,v in kws.items():
            self.edges[k][j]=v

    def delete_edge(self,j):
        self._touch('edges',j)
        self.edges['deleted'][j]=True

    def link(self,h1,h2):
        """ splice h2 in after h1 along their common face """
        self._touch('edges',h1>>1)
        if (h2>>1)!=(h1>>1):
            self._touch('edges',h2>>1)
        self.edges['next'][h1>>1,h1&1]=h2
        self.edges['prev'][h2>>1,h2&1]=h1

    def set_he_cell(self,h,c):
        self._touch('edges',h>>1)
        self.edges['cells'][h>>1,h&1]=c

    def set_node_he(self,n,h):
        self._touch('nodes',n)
        self.nodes['he'][n]=h

    def add_cell(self,hes):
        """
        Close the loop of half-edges hes into a new cell, linking them
        and pointing them at the cell.
        """
        c=self._append('cells',self.cell_defaults)
        self.cells['he'][c]=hes[0]
        for a,b in circular_pairs(hes):
            self.link(a,b)
        for h in hes:
            self.set_he_cell(h,c)
        return c

    def modify_cell(self,c,**kws):
        self._touch('cells',c)
        for k,v in kws.items():
            self.cells[k][c]=v

    def delete_cell(self,c):
        """ Merge the cell into the unmeshed region.  Links are left in
        place for the caller to rewire.
        """
        for h in self.cell_to_halfedges(c):
            self.set_he_cell(h,self.INF_CELL)
        self._touch('cells',c)
        self.cells['deleted'][c]=True

    def split_edge(self,h,n):
        """
        Split the edge of half-edge h (a->b) at node n, in place.  After
        the call h runs a->n and the returned half-edge H runs n->b, each
        on the same side (and face) that h was.  The opposite half-edges
        are h^1 (n->a) and H^1 (b->n).  Cells are not split, so a
        triangle becomes a quad until the caller adds the spoke.
        """
        g=h^1
        a=self.he_origin(h)
        b=self.he_dest(h)
        X=self.he_next(h)
        Y=self.he_next(g)
        P=self.he_prev(h)
        Q=self.he_prev(g)
        cL=self.he_cell(h)
        cR=self.he_cell(g)

        j=h>>1
        nodes=[a,n] if (h&1)==0 else [n,a]
        self.modify_edge(j,nodes=nodes)
        k=self.add_edge(nodes=[n,b],
                        constrained=self.edges['constrained'][j])
        H=2*k
        G=H^1
        # turnarounds in a degenerate chain
        if X==g:
            X=G
        if Q==h:
            Q=H

        self.link(P,h)
        self.link(h,H)
        self.link(H,X)
        self.link(Q,G)
        self.link(G,g)
        self.link(g,Y)
        self.set_he_cell(H,cL)
        self.set_he_cell(G,cR)

        if self.nodes['he'][b]==g:
            self.set_node_he(b,G)
        self.set_node_he(n,H)
        return H

    #-# Derived geometry

    def cell_center(self,c):
        """ circumcenter of cell c, cached """
        if np.isnan(self.cells['_center'][c,0]):
            pts=self.nodes['x'][self.cell_to_nodes(c)]
            self.cells['_center'][c]=circumcenter(pts[0],pts[1],pts[2])
        return self.cells['_center'][c]

    def cells_center(self,refresh=False):
        """ circumcenters of all cells, nan for deleted cells """
        if refresh:
            self.cells['_center']=np.nan
        for c in self.valid_cell_iter():
            self.cell_center(c)
        return self.cells['_center']

    def invalidate_cell_center(self,c):
        self.modify_cell(c,_center=np.nan)

    #-# Consistency

    def check_topology(self):
        """
        Verify next/prev/opposite/cell relations and node anchors.
        Raises TopologyError, returns True if all is well.
        """
        INF=self.INF_CELL
        for j in self.valid_edge_iter():
            for orient in (0,1):
                h=2*j+orient
                nxt=self.he_next(h)
                prv=self.he_prev(h)
                if nxt<0 or prv<0:
                    raise TopologyError("Half-edge %d is not linked"%h)
                if self.edges['deleted'][nxt>>1] or self.edges['deleted'][prv>>1]:
                    raise TopologyError("Half-edge %d linked to a deleted edge"%h)
                if self.he_prev(nxt)!=h or self.he_next(prv)!=h:
                    raise TopologyError("next/prev disagree at half-edge %d"%h)
                if self.he_dest(h)!=self.he_origin(nxt):
                    raise TopologyError("Half-edge %d does not meet its successor"%h)
                c=self.he_cell(h)
                if self.he_cell(nxt)!=c:
                    raise TopologyError("Half-edge %d and successor differ in cell"%h)
                if c!=INF:
                    if self.cells['deleted'][c]:
                        raise TopologyError("Half-edge %d faces deleted cell %d"%(h,c))
                    if self.he_next(self.he_next(nxt))!=h:
                        raise TopologyError("Cell %d is not a triangle"%c)
                if self.edges['nodes'][j,0]==self.edges['nodes'][j,1]:
                    raise TopologyError("Edge %d is degenerate"%j)
                if self.nodes['deleted'][self.he_origin(h)]:
                    raise TopologyError("Edge %d uses a deleted node"%j)
        for c in self.valid_cell_iter():
            h=int(self.cells['he'][c])
            if h<0 or self.edges['deleted'][h>>1] or self.he_cell(h)!=c:
                raise TopologyError("Cell %d has a bad half-edge anchor"%c)
        n_valid=self.Nnodes_valid()
        for n in self.valid_node_iter():
            h=int(self.nodes['he'][n])
            if h<0:
                if n_valid>1:
                    raise TopologyError("Node %d is orphaned"%n)
                continue
            if self.edges['deleted'][h>>1] or self.he_origin(h)!=n:
                raise TopologyError("Node %d has a bad half-edge anchor"%n)
        return True
