"""
Removing vertices from the triangulation, and the hole filling shared
with constraint insertion.
"""

from ..spatial import robust_predicates
from .halfedge_grid import GridException, TopologyError, listenable

def in_closed_triangle(a,b,c,p):
    orientation=robust_predicates.orientation
    return ( orientation(a,b,p)>=0 and
             orientation(b,c,p)>=0 and
             orientation(c,a,p)>=0 )


class RemovalMixin(object):
    @listenable
    def delete_node(self,n,_drop_constraints=False):
        """
        Remove node n and retriangulate the hole it leaves.
        Raises ConstraintViolation, before changing anything, if n is the
        endpoint of a constraint.
        _drop_constraints: instead clear the constraints of n first.
        """
        if self.nodes['deleted'][n]:
            raise GridException("Node %d is already deleted"%n)
        js=self.node_to_constraints(n)
        if js:
            if not _drop_constraints:
                raise self.ConstraintViolation("Node %d is an endpoint of %d constraints"%(n,len(js)),
                                               node=n)
            for j in js:
                self.modify_edge(j,constrained=False)

        if self.dh is not None:
            self.dh.remove(n)

        d=self.dim()
        if d==2:
            self.delete_node_2d(n)
        elif d==1:
            self.delete_node_1d(n)
        else:
            super(RemovalMixin,self).delete_node(n)
        if self.post_check:
            self.check_all()

    def remove(self,n):
        """ delete node n, returning its data """
        data=self.nodes['data'][n]
        self.delete_node(n)
        return data

    def delete_node_1d(self,n):
        outs=list(self.node_out_halfedges(n))
        if len(outs)==1:
            # end of the chain
            h=outs[0]
            g=h^1
            u=self.he_dest(h)
            P=self.he_prev(g)
            N=self.he_next(h)
            self.delete_edge(h>>1)
            if P==h:
                # the chain was a single edge
                self.set_node_he(u,self.UNDEFINED)
            else:
                self.link(P,N)
                if self.nodes['he'][u]==g:
                    self.set_node_he(u,N)
        else:
            assert len(outs)==2
            h_a,h_b=outs
            a=self.he_dest(h_a)
            b=self.he_dest(h_b)
            P=self.he_prev(h_a^1)
            X=self.he_next(h_b)
            Q=self.he_prev(h_b^1)
            R=self.he_next(h_a)
            self.delete_edge(h_a>>1)
            self.delete_edge(h_b>>1)
            j=self.add_edge(nodes=[a,b])
            f=2*j
            fb=f+1
            # turnarounds at the ends of the chain
            if P==h_a:
                P=fb
            if X==h_b^1:
                X=fb
            if Q==h_b:
                Q=f
            if R==h_a^1:
                R=f
            self.link(P,f)
            self.link(f,X)
            self.link(Q,fb)
            self.link(fb,R)
            if self.nodes['he'][a]==h_a^1:
                self.set_node_he(a,f)
            if self.nodes['he'][b]==h_b^1:
                self.set_node_he(b,fb)
        super(RemovalMixin,self).delete_node(n)

    def delete_node_2d(self,n):
        outs=list(self.node_out_halfedges(n))
        k_out=[i for i,h in enumerate(outs) if self.he_cell(h)==self.INF_CELL]
        if k_out:
            return self.delete_hull_node(n,outs,k_out[0])

        ring=[self.he_next(h) for h in outs]
        for h in outs:
            self.delete_cell(self.he_cell(h))
        for h in outs:
            self.delete_edge(h>>1)
        for h,s in zip(outs,ring):
            m=self.he_dest(h)
            if self.nodes['he'][m]==h^1:
                self.set_node_he(m,s)
        super(RemovalMixin,self).delete_node(n)
        new_edges=self.fill_hole(ring)
        self.legalize_edges(new_edges,region=set(new_edges))

    def delete_hull_node(self,n,outs,k):
        """
        n is on the hull, and outs[k] is its outgoing half-edge along the
        hull.  The neighbors of n, in order from the incoming hull edge
        to the outgoing one, form a chain; its convex part becomes the
        new hull and the pockets between are triangulated.
        """
        xs=self.nodes['x']
        INF=self.INF_CELL
        i0=(k+1)%len(outs)
        order=outs[i0:]+outs[:i0]
        assert self.he_cell(order[-1])==INF

        h_in=order[0]^1
        h_out=order[-1]
        p_in=self.he_prev(h_in)
        p_out=self.he_next(h_out)
        chain=[self.he_dest(h) for h in order]
        links=[self.he_next(h) for h in order[:-1]]

        hull=[0]
        for i in range(1,len(chain)):
            while len(hull)>=2 and robust_predicates.orientation(xs[chain[hull[-2]]],
                                                                 xs[chain[hull[-1]]],
                                                                 xs[chain[i]])>0:
                hull.pop()
            hull.append(i)

        for h in order[:-1]:
            self.delete_cell(self.he_cell(h))
        for h in order:
            self.delete_edge(h>>1)
        for i,h in enumerate(order):
            m=chain[i]
            if self.nodes['he'][m]==h^1:
                self.set_node_he(m,links[i] if i<len(links) else p_out)
        super(RemovalMixin,self).delete_node(n)

        outer=[]
        pockets=[]
        for ia,ib in zip(hull[:-1],hull[1:]):
            if ib==ia+1:
                outer.append(links[ia])
            else:
                j=self.add_edge(nodes=[chain[ia],chain[ib]])
                outer.append(2*j)
                pockets.append(links[ia:ib]+[2*j+1])
        seq=[p_in]+outer+[p_out]
        for a,b in zip(seq[:-1],seq[1:]):
            self.link(a,b)

        for pocket in pockets:
            new_edges=self.fill_hole(pocket)
            self.legalize_edges(new_edges,region=set(new_edges))
        self.log.debug("Removed hull node %d, %d pockets"%(n,len(pockets)))

    def fill_hole(self,hes):
        """
        hes: half-edges around a simple polygon, counter-clockwise, with
        the unmeshed hole on their left.  Triangulate the hole by ear
        clipping.  Returns the new edges, which the caller may want to
        legalize.
        """
        xs=self.nodes['x']
        poly=list(hes)
        pts={}
        for h in poly:
            o=self.he_origin(h)
            pts[o]=tuple(xs[o])
            # anchors may point to edges which were removed
            he_o=self.nodes['he'][o]
            if he_o<0 or self.edges['deleted'][he_o>>1]:
                self.set_node_he(o,h)

        new_edges=[]
        i=0
        while len(poly)>3:
            N=len(poly)
            for step in range(N):
                k=(i+step)%N
                e1=poly[k]
                e2=poly[(k+1)%N]
                u=self.he_origin(e1)
                v=self.he_origin(e2)
                w=self.he_dest(e2)
                if robust_predicates.orientation(pts[u],pts[v],pts[w])<=0:
                    continue
                for e in poly:
                    o=self.he_origin(e)
                    if o in (u,v,w):
                        continue
                    if in_closed_triangle(pts[u],pts[v],pts[w],pts[o]):
                        break
                else:
                    break
            else:
                raise TopologyError("No ear found while filling a hole of %d sides"%N)

            j=self.add_edge(nodes=[w,u])
            self.add_cell([e1,e2,2*j])
            new_edges.append(j)
            if k+1<N:
                poly[k:k+2]=[2*j+1]
            else:
                poly[k]=2*j+1
                del poly[0]
                k-=1
            i=k
        self.add_cell(poly)
        return new_edges
