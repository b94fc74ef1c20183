"""
Constrained edges: inserting a segment between two existing nodes by
removing the triangles it crosses and re-triangulating either side.
"""

import numpy as np

from ..spatial import robust_predicates
from ..utils import set_keywords, segment_segment_intersection
from .halfedge_grid import GridException

class ConstraintViolation(GridException):
    """ The operation would break or cross a constrained edge """
    edge=None
    node=None
    nodes=None
    def __init__(self,*a,**k):
        super(ConstraintViolation,self).__init__(*a)
        set_keywords(self,k)

class IntersectingConstraints(ConstraintViolation):
    pass


def ordered(x1,x2,x3):
    """
    given collinear points, return true if they are in order
    along that line
    """
    if x1[0]!=x2[0]:
        i=0
    else:
        i=1
    return (x1[i]<x2[i]) == (x2[i]<x3[i])

def strictly_between(x1,x2,x3):
    """ collinear x2 lies in the open segment x1-x3 """
    if np.all(x2==x1) or np.all(x2==x3):
        return False
    return ordered(x1,x2,x3)

def segments_cross(p,q,r,s,proper=False):
    """
    True if the segments p-q and r-s intersect somewhere other than
    at a shared endpoint.
    proper: only count crossings at a single point interior to both.
    """
    orientation=robust_predicates.orientation
    o1=orientation(p,q,r)
    o2=orientation(p,q,s)
    o3=orientation(r,s,p)
    o4=orientation(r,s,q)
    if o1*o2<0 and o3*o4<0:
        return True
    if proper:
        return False
    if o1==0 and o2==0:
        # collinear. overlapping interiors, or identical
        if strictly_between(p,r,q) or strictly_between(p,s,q) \
           or strictly_between(r,p,s) or strictly_between(r,q,s):
            return True
        return ( (np.all(p==r) and np.all(q==s)) or
                 (np.all(p==s) and np.all(q==r)) )
    # an endpoint touching the interior of the other segment
    if o1==0 and strictly_between(p,r,q):
        return True
    if o2==0 and strictly_between(p,s,q):
        return True
    if o3==0 and strictly_between(r,p,s):
        return True
    if o4==0 and strictly_between(r,q,s):
        return True
    return False


class ConstraintsMixin(object):
    """
    Methods for adding and removing constrained edges, mixed in to
    Triangulation.
    """
    def node_to_constraints(self,n):
        return [j
                for j in self.node_to_edges(n)
                if self.edges['constrained'][j]]

    def constraint_edges(self):
        return [int(j) for j in np.nonzero( self.edges['constrained']
                                            & ~self.edges['deleted'] )[0]]

    def num_constraints(self):
        return len(self.constraint_edges())

    def is_constraint_edge(self,j):
        return bool(self.edges['constrained'][j]) and not self.edges['deleted'][j]

    def exists_constraint(self,nA,nB):
        j=self.nodes_to_edge(nA,nB)
        return (j is not None) and bool(self.edges['constrained'][j])

    def gen_intersected_elements(self,nA,nB):
        """
        Walk the segment from node nA to node nB, yielding the elements
        it passes through in order:
          ('node',n) for nA, nB, and any node lying on the segment,
          ('cell',c) for each triangle whose interior it crosses,
          ('edge',HalfEdge) for each edge crossed at an interior point,
            oriented from right to left of the segment.
        """
        xs=self.nodes['x']
        orientation=robust_predicates.orientation
        xb=xs[nB]
        yield ('node',nA)
        s=nA
        while s!=nB:
            xs_=xs[s]
            step=None
            for h in self.node_out_halfedges(s):
                x=self.he_dest(h)
                if x==nB:
                    step=('node',nB)
                    break
                if orientation(xs_,xb,xs[x])==0 and ordered(xs_,xs[x],xb):
                    step=('node',x)
                    break
                if self.he_cell(h)==self.INF_CELL:
                    continue
                h1=self.he_next(h)
                if orientation(xs_,xb,xs[x])<0 and \
                   orientation(xs_,xb,xs[self.he_dest(h1)])>0:
                    step=('cross',h1)
                    break
            if step is None:
                raise self.TopologyError("Segment from node %d does not leave it toward node %d"%(s,nB))
            if step[0]=='node':
                yield step
                s=step[1]
                continue

            h=step[1]
            yield ('cell',self.he_cell(h))
            while True:
                yield ('edge',self.halfedge_of(h))
                g=h^1
                yield ('cell',self.he_cell(g))
                z=self.he_dest(self.he_next(g))
                if z==nB:
                    yield ('node',nB)
                    s=nB
                    break
                o=orientation(xs_,xb,xs[z])
                if o==0:
                    yield ('node',z)
                    s=z
                    break
                if o>0:
                    h=self.he_next(g)
                else:
                    h=self.he_prev(g)

    def find_intersected_elements(self,nA,nB):
        return list(self.gen_intersected_elements(nA,nB))

    def get_conflicting_edges(self,nA,nB):
        """ constrained edges crossed by the segment nA-nB """
        return [elt[1].j
                for elt in self.gen_intersected_elements(nA,nB)
                if elt[0]=='edge' and self.edges['constrained'][elt[1].j]]

    def can_add_constraint(self,nA,nB):
        """ True if add_constraint(nA,nB) would succeed """
        if nA==nB or self.nodes_to_edge(nA,nB) is not None:
            return True
        return not self.get_conflicting_edges(nA,nB)

    def intersects_constraint(self,pA,pB):
        """ True if the segment between points pA and pB touches the
        interior of any constrained edge.
        """
        pA=np.asarray(pA,np.float64)
        pB=np.asarray(pB,np.float64)
        xs=self.nodes['x']
        for j in self.constraint_edges():
            a,b=self.edges['nodes'][j]
            if segments_cross(pA,pB,xs[a],xs[b]):
                return True
        return False

    def add_constraint(self,nA,nB):
        """
        Make the segment nA-nB part of the triangulation, and mark it
        constrained.  A segment passing through other nodes is split
        there into several constrained edges.
        Returns the list of constrained edges from nA to nB, empty when
        nA==nB.  Raises IntersectingConstraints, before changing
        anything, if the segment crosses a constrained edge.
        """
        if nA==nB:
            return []
        jAB=self.nodes_to_edge(nA,nB)
        if jAB is not None:
            # no work to do - topology already good.
            if not self.edges['constrained'][jAB]:
                self.modify_edge(jAB,constrained=True)
            return [jAB]

        int_elts=self.find_intersected_elements(nA,nB)

        # check the whole path before changing anything
        for elt in int_elts:
            if elt[0]=='edge' and self.edges['constrained'][elt[1].j]:
                raise self.IntersectingConstraints("Constraint intersects a constraint",
                                                   edge=elt[1].j,nodes=[nA,nB])
        stops=[elt[1] for elt in int_elts if elt[0]=='node']
        if len(stops)>2:
            self.log.debug("Constraint %d-%d passes through %d nodes"%(nA,nB,len(stops)-2))
            js=[]
            with self.atomic():
                for a,b in zip(stops[:-1],stops[1:]):
                    js+=self.add_constraint(a,b)
            return js

        j=self.constrain_segment(nA,nB,int_elts)
        if self.post_check:
            self.check_all()
        return [j]

    def constrain_segment(self,nA,nB,int_elts):
        """
        Remove the triangles crossed by the segment nA-nB, which passes
        through no other node and crosses no constraint, then add the
        constrained edge and retriangulate either side.
        int_elts: as from find_intersected_elements(nA,nB)
        """
        crossed=[elt[1].he for elt in int_elts if elt[0]=='edge']
        dead_cells=[elt[1] for elt in int_elts if elt[0]=='cell']

        # boundaries of the two holes, each in the order they will be
        # traversed from nA to nB.
        h=crossed[0]
        right=[self.he_prev(h)]
        left=[self.he_next(h)]
        for h_next in crossed[1:]:
            g=h^1
            if h_next==self.he_next(g):
                left.append(self.he_prev(g))
            else:
                right.append(self.he_next(g))
            h=h_next
        g=h^1
        right.append(self.he_next(g))
        left.append(self.he_prev(g))

        for c in dead_cells:
            self.delete_cell(c)
        for h in crossed:
            self.delete_edge(h>>1)

        j=self.add_edge(nodes=[nA,nB],constrained=True)
        self.log.debug("Constraint %d-%d crossed %d edges"%(nA,nB,len(crossed)))

        for hole in [right+[2*j+1], [2*j]+left[::-1]]:
            new_edges=self.fill_hole(hole)
            self.legalize_edges(new_edges,region=set(new_edges))
        return j

    def remove_constraint(self,nA=None,nB=None,j=None):
        """
        Clear the constrained flag of the edge nA-nB (or edge j).  The
        edge itself stays, and is flipped if it no longer satisfies the
        Delaunay criterion.
        """
        if j is None:
            if nA==nB:
                self.log.warning("remove_constraint: Ignoring duplicate nodes nA=nB=%s"%nA)
                return
            j=self.nodes_to_edge(nA,nB)
            if j is None:
                self.log.warning("remove_constraint: no edge found for nA=%s nB=%s"%(nA,nB))
                return
        if not self.edges['constrained'][j]:
            self.log.warning("remove_constraint: edge %d is not constrained"%j)
            return
        self.modify_edge(j,constrained=False)
        self.legalize_edges([j])
        if self.post_check:
            self.check_all()

    def try_add_constraint(self,nA,nB):
        """
        Like add_constraint, but if the segment would cross a constrained
        edge nothing is added.  Returns the list of constrained edges,
        possibly empty.
        """
        try:
            return self.add_constraint(nA,nB)
        except IntersectingConstraints:
            return []

    def path_nodes(self,nA,js):
        """ nodes along the chain of edges js, starting from nA """
        nodes=[nA]
        for j in js:
            a,b=self.edges['nodes'][j]
            nodes.append(int(b) if a==nodes[-1] else int(a))
        return nodes

    def split_constraint(self,x,j):
        """
        Insert a node at x (which should lie on constrained edge j),
        and replace j by two constraints through the new node.
        Returns the node.
        """
        nodes_other=self.edges['nodes'][j].copy()
        self.remove_constraint(j=j)
        n_new=self.add_node(x=x)
        for n in nodes_other:
            if n!=n_new:
                self.add_constraint(int(n),n_new)
        return n_new

    def add_constraint_and_split(self,nA,nB):
        """
        Like add_constraint, but nodes are inserted where the new segment
        crosses existing constraints, and the segment is split at nodes
        it passes through.  All or nothing.
        Returns [list of nodes],[list of edges] along the segment.
        """
        with self.atomic():
            all_segs=[ [nA,nB] ]
            result_nodes=[nA]
            result_edges=[]
            while all_segs:
                a,b=all_segs.pop(0)
                try:
                    js=self.add_constraint(a,b)
                except IntersectingConstraints as exc:
                    j_other=exc.edge
                    segA=self.nodes['x'][self.edges['nodes'][j_other]]
                    segB=self.nodes['x'][[a,b]]
                    x_int,alphas=segment_segment_intersection(segA,segB)
                    if x_int is None:
                        raise
                    n_new=self.split_constraint(x_int,j_other)
                    if b!=n_new:
                        all_segs.insert(0,[n_new,b])
                    if a!=n_new:
                        all_segs.insert(0,[a,n_new])
                    continue
                result_nodes+=self.path_nodes(a,js)[1:]
                result_edges+=js
        return result_nodes,result_edges

    def add_constrained_linestring(self,coords,closed=False,split=False):
        """
        Add nodes at coords (reusing existing nodes), and constrain
        consecutive pairs.
        closed: also connect the last node back to the first.
        split: insert nodes where the segments cross existing constraints
          rather than raising.
        All or nothing.  Returns [list of nodes],[list of edges]
        """
        with self.atomic():
            nodes=[self.add_node(x=x) for x in coords]
            pairs=list(zip(nodes[:-1],nodes[1:]))
            if closed and len(nodes)>2:
                pairs.append( (nodes[-1],nodes[0]) )
            result_nodes=[nodes[0]]
            result_edges=[]
            for a,b in pairs:
                if split:
                    sub_nodes,sub_edges=self.add_constraint_and_split(a,b)
                    result_nodes+=sub_nodes[1:]
                    result_edges+=sub_edges
                else:
                    js=self.add_constraint(a,b)
                    result_nodes+=self.path_nodes(a,js)[1:]
                    result_edges+=js
        return result_nodes,result_edges
