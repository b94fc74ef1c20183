import pickle

import numpy as np
import pytest

from exactcdt.grid.halfedge_grid import HalfEdgeGrid, HalfEdge, TopologyError

def single_triangle():
    """ a HalfEdgeGrid holding the triangle (0,0),(1,0),(0,1) """
    g=HalfEdgeGrid()
    a=g.add_node(x=[0,0])
    b=g.add_node(x=[1,0])
    c=g.add_node(x=[0,1])
    jab=g.add_edge(nodes=[a,b])
    jbc=g.add_edge(nodes=[b,c])
    jca=g.add_edge(nodes=[c,a])
    g.add_cell([2*jab,2*jbc,2*jca])
    # outer loop runs clockwise
    g.link(2*jab+1,2*jca+1)
    g.link(2*jca+1,2*jbc+1)
    g.link(2*jbc+1,2*jab+1)
    g.set_node_he(a,2*jab)
    g.set_node_he(b,2*jbc)
    g.set_node_he(c,2*jca)
    return g

def test_single_triangle():
    g=single_triangle()
    assert g.check_topology()
    assert g.Nnodes_valid()==3
    assert g.Nedges_valid()==3
    assert g.Ncells_valid()==1
    assert g.cell_to_nodes(0)==[0,1,2]
    assert g.cell_to_cells(0)==[g.INF_CELL]*3
    assert sorted(g.node_to_nodes(0))==[1,2]
    assert g.node_to_cells(0)==[0]

def test_rotation():
    g=single_triangle()
    outs=list(g.node_out_halfedges(0))
    assert len(outs)==2
    # counter-clockwise: toward node 1 then node 2
    h=g.nodes_to_halfedge(0,1)
    assert g.he_dest(g.ccw_out(h))==2
    assert g.cw_out(g.ccw_out(h))==h

def test_halfedge_object():
    g=single_triangle()
    he=HalfEdge.from_nodes(g,0,1)
    assert he.node_rev()==0
    assert he.node_fwd()==1
    assert list(he.nodes())==[0,1]
    assert he.cell()==0
    assert he.cell_opp()==g.INF_CELL
    assert he.fwd().node_fwd()==2
    assert he.rev().node_rev()==2
    assert he.opposite().opposite()==he
    assert he!=he.opposite()
    assert g.halfedge_of(he.he)==he
    assert HalfEdge.from_nodes(g,0,5) is None

def test_split_edge():
    g=single_triangle()
    n=g.add_node(x=[0.5,0])
    h=g.nodes_to_halfedge(0,1)
    c=g.he_cell(h)
    g.delete_cell(c)
    H=g.split_edge(h,n)
    assert g.he_origin(h)==0 and g.he_dest(h)==n
    assert g.he_origin(H)==n and g.he_dest(H)==1
    # and close it back up as two triangles
    h1=g.he_next(H)
    h2=g.he_next(h1)
    j=g.add_edge(nodes=[n,2])
    g.add_cell([h,2*j,h2])
    g.add_cell([H,h1,2*j+1])
    assert g.check_topology()
    assert g.Ncells_valid()==2

def test_check_topology_detects_damage():
    g=single_triangle()
    g.edges['next'][0,0]=g.UNDEFINED
    with pytest.raises(TopologyError):
        g.check_topology()

def test_revert():
    g=single_triangle()
    nodes=g.nodes.copy()
    edges=g.edges.copy()
    cp=g.checkpoint()
    g.delete_cell(0)
    g.add_node(x=[5,5])
    g.modify_node(0,x=[-1,-1])
    g.revert(cp)
    g.commit()
    assert len(g.nodes)==len(nodes)
    assert np.all(g.nodes['x']==nodes['x'])
    assert np.all(g.edges['cells']==edges['cells'])
    assert g.Ncells_valid()==1

def test_atomic():
    g=single_triangle()
    with pytest.raises(ValueError):
        with g.atomic():
            g.add_node(x=[3,3])
            raise ValueError("boom")
    assert g.Nnodes()==3
    with g.atomic():
        g.add_node(x=[3,3])
    assert g.Nnodes()==4
    assert not g.recording()

def test_cell_center():
    g=single_triangle()
    assert np.allclose(g.cell_center(0),[0.5,0.5])
    centers=g.cells_center()
    assert np.allclose(centers[0],[0.5,0.5])

def test_listeners():
    g=single_triangle()
    seen=[]
    def callback(grid,func_name,**kw):
        seen.append( (func_name,kw['return_value']) )
    # plain HalfEdgeGrid methods are not listenable, but the machinery
    # is available to subclasses
    g.subscribe_after('add_node',callback)
    g.fire_after('add_node',return_value=7)
    assert seen==[('add_node',7)]
    g.unsubscribe_after('add_node',callback)
    g.fire_after('add_node',return_value=8)
    assert len(seen)==1

def test_pickle():
    g=single_triangle()
    g.subscribe_after('add_node',lambda *a,**k: None)
    g2=pickle.loads(pickle.dumps(g))
    assert g2.check_topology()
    assert g2.log is not None
