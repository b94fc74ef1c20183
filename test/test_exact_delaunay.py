import pickle

import numpy as np
import pytest

from exactcdt.grid import exact_delaunay
from exactcdt.spatial import robust_predicates
Triangulation=exact_delaunay.Triangulation

def euler_ok(dt):
    """ counts for a triangulation of the convex hull """
    V=dt.Nnodes_valid()
    E=dt.Nedges_valid()
    F=dt.Ncells_valid()
    h=len(dt.convex_hull())
    if dt.dim()<2:
        return F==0
    return (E==3*V-3-h) and (F==2*V-2-h)

def random_dt(N=100,seed=1,**kw):
    rng=np.random.default_rng(seed)
    dt=Triangulation(seed=seed,**kw)
    for x in rng.random((N,2)):
        dt.add_node(x=x)
    return dt

#-# Building up some basic tests:
def test_basic1():
    dt = Triangulation(post_check=True)
    pnts = [ [0,0],
             [5,0],
             [10,0],
             [5,5] ]

    dt.add_node( x=pnts[0] ) # This tests insert into empty
    assert dt.dim()==0
    dt.add_node( x=pnts[1] ) # adjacent_vertex
    assert dt.dim()==1
    dt.add_node( x=pnts[2] ) # adjacent_vertex
    assert dt.dim()==1
    dt.add_node( x=pnts[3] ) # adjacent_edge
    assert dt.dim()==2

    dt.add_node( x=[3,0] ) # colinear
    dt.add_node( x=[6,2] ) # into cell interior
    assert dt.check_global_delaunay()
    assert euler_ok(dt)

def test_empty():
    dt=Triangulation()
    assert dt.dim()==-1
    loc=dt.locate([0,0])
    assert loc.loc_type==dt.OUTSIDE_AFFINE_HULL
    assert dt.convex_hull()==[]
    assert dt.nearest_neighbor([0,0]) is None
    assert list(dt.vertices())==[]

def test_duplicate_returns_existing():
    dt=Triangulation()
    a=dt.add_node(x=[1,2])
    assert dt.add_node(x=[1,2])==a
    dt.add_node(x=[3,2])
    dt.add_node(x=[2,5])
    assert dt.insert([2,5])==2
    assert dt.Nnodes_valid()==3

def test_duplicate_leaves_topology():
    dt=Triangulation(post_check=True)
    rng=np.random.default_rng(21)
    pnts=rng.random((40,2))
    for x in pnts:
        dt.add_node(x=x)
    counts=(dt.Nnodes_valid(),dt.Nedges_valid(),dt.Ncells_valid())
    edges=dt.edges['nodes'].copy()
    for n in [0,7,39]:
        assert dt.insert(pnts[n])==n
    assert (dt.Nnodes_valid(),dt.Nedges_valid(),dt.Ncells_valid())==counts
    assert np.all(dt.edges['nodes']==edges)

def test_insert_with_data():
    dt=Triangulation()
    n=dt.insert([0,0],data='first')
    assert dt.nodes['data'][n]=='first'
    # insert keeps the old payload, insert_with_data replaces it
    assert dt.insert([0,0])==n
    assert dt.nodes['data'][n]=='first'
    assert dt.insert_with_data([0,0],'second')==n
    assert dt.nodes['data'][n]=='second'

def test_invalid_coordinates():
    dt=Triangulation()
    dt.add_node(x=[0,0])
    for bad in [ [np.nan,0], [0,np.inf], [1,2,3], 'abc' ]:
        with pytest.raises(dt.InvalidCoordinate):
            dt.add_node(x=bad)
    # also a ValueError for generic callers
    with pytest.raises(ValueError):
        dt.locate([np.nan,np.nan])
    assert dt.Nnodes_valid()==1

def test_collinear_then_lift():
    dt=Triangulation(post_check=True)
    for i in [0,4,2,6,1,5,3]:
        dt.add_node(x=[i,2*i])
    assert dt.dim()==1
    assert dt.Nedges_valid()==6
    assert sorted(dt.convex_hull())==[0,3]
    dt.add_node(x=[0,5])
    assert dt.dim()==2
    assert dt.Ncells_valid()==6
    assert euler_ok(dt)

def test_flip2():
    dt = Triangulation(post_check=True)

    dt.add_node( x=[0,0] )
    for i in range(5):
        dt.add_node( x=[10,i] )
    # This one requires a flip:
    dt.add_node( x=[5,1] )
    assert dt.check_global_delaunay()

def test_locate_types():
    dt=Triangulation()
    for x in [[0,0],[10,0],[0,10]]:
        dt.add_node(x=x)
    loc=dt.locate([1,1])
    assert loc.loc_type==dt.IN_FACE
    loc=dt.locate([5,0])
    assert loc.loc_type==dt.IN_EDGE
    assert sorted(loc.loc_index.nodes())==[0,1]
    loc=dt.locate([10,0])
    assert loc.loc_type==dt.IN_VERTEX
    assert loc.loc_index==1
    loc=dt.locate([20,20])
    assert loc.loc_type==dt.OUTSIDE_CONVEX_HULL
    he=loc.loc_index
    assert he.cell()==dt.INF_CELL
    assert robust_predicates.orientation(dt.nodes['x'][he.node_rev()],
                                         dt.nodes['x'][he.node_fwd()],
                                         [20,20])>0

def test_locate_1d():
    dt=Triangulation()
    for x in [[0,0],[1,1],[3,3]]:
        dt.add_node(x=x)
    assert dt.locate([2,2]).loc_type==dt.IN_EDGE
    assert dt.locate([1,1]).loc_type==dt.IN_VERTEX
    loc=dt.locate([5,5])
    assert loc.loc_type==dt.OUTSIDE_CONVEX_HULL
    assert loc.loc_index.node_fwd()==2
    loc=dt.locate([-1,-1])
    assert loc.loc_index.node_fwd()==0
    loc=dt.locate([0,1])
    assert loc.loc_type==dt.OUTSIDE_AFFINE_HULL
    assert loc.loc_index==1

def test_random_delaunay():
    dt=random_dt(200)
    assert dt.check_all()
    assert dt.check_global_delaunay()
    assert euler_ok(dt)

def test_grid_points():
    # many cocircular quadruples and collinear hull points
    dt=Triangulation(post_check=True)
    for i in range(6):
        for j in range(6):
            dt.add_node(x=[i,j])
    assert dt.check_global_delaunay()
    assert dt.Ncells_valid()==50
    assert euler_ok(dt)

def test_hull_is_ccw():
    dt=random_dt(50)
    hull=dt.convex_hull()
    xs=dt.nodes['x']
    for a,b,c in zip(hull,np.roll(hull,-1),np.roll(hull,-2)):
        assert robust_predicates.orientation(xs[a],xs[b],xs[c])>=0

def test_iteration():
    dt=random_dt(20)
    assert len(list(dt.vertices()))==20
    assert len(list(dt.directed_edges()))==2*dt.Nedges_valid()
    assert len(list(dt.faces()))==dt.Ncells_valid()
    # each call is a fresh generator
    assert len(list(dt.vertices()))==20

def test_move_shortcut():
    dt=Triangulation(post_check=True)
    for x in [[0,0],[10,0],[10,10],[0,10],[5,5]]:
        dt.add_node(x=x)
    dt.modify_node(4,x=[5.5,5])
    assert np.all(dt.nodes['x'][4]==[5.5,5])
    assert dt.check_global_delaunay()

def test_move_far():
    dt=random_dt(40,post_check=True)
    n=7
    dt.modify_node(n,x=[2.0,-1.5])
    assert np.all(dt.nodes['x'][n]==[2.0,-1.5])
    assert dt.Nnodes_valid()==40
    assert dt.check_global_delaunay()
    assert n in dt.convex_hull()

def test_move_onto_existing():
    dt=random_dt(20)
    nodes=dt.nodes.copy()
    with pytest.raises(dt.DuplicateNode):
        dt.modify_node(3,x=dt.nodes['x'][5])
    assert np.all(dt.nodes['x'][~nodes['deleted']]==nodes['x'][~nodes['deleted']])
    assert dt.Nnodes_valid()==20
    assert dt.check_all()

# # Testing the atomic nature of modify_node()

def test_atomic_move():
    """ Make sure that when a modify_node call tries an
    illegal move of a node with a constraint, the DT state
    is restored to the original state before raising the exception
    """
    dt = Triangulation()
    pnts = [ [0,0],
             [5,0],
             [10,0],
             [5,5],
             [3,0],
             [6,2],
             [12,4]]
    for pnt in pnts:
        dt.add_node( x=pnt )
    dt.add_constraint(0,5)
    dt.add_constraint(3,2)
    nodes=dt.nodes.copy()
    edges=dt.edges.copy()
    cells=dt.cells.copy()

    assert np.all( dt.nodes['x'][5]==[6,2] )

    with pytest.raises(dt.IntersectingConstraints):
        dt.modify_node(5,x=[8,3])
    # And the nodes/constraints should be where they started.
    assert np.all( dt.nodes['x'][5]==[6,2] )
    assert len(dt.nodes)==len(nodes)
    assert np.all(dt.edges['nodes']==edges['nodes'])
    assert np.all(dt.edges['constrained']==edges['constrained'])
    assert np.all(dt.cells['deleted']==cells['deleted'])
    assert dt.exists_constraint(0,5)
    assert dt.check_all()

def test_modify_data_only():
    dt=random_dt(10)
    x=dt.nodes['x'][2].copy()
    dt.modify_node(2,data={'depth':3})
    assert dt.nodes['data'][2]=={'depth':3}
    assert np.all(dt.nodes['x'][2]==x)

def test_listeners():
    dt=Triangulation()
    added=[]
    deleted=[]
    def on_add(grid,func_name,**kw):
        added.append(kw['return_value'])
    def on_delete(grid,func_name,n,**kw):
        deleted.append(n)
    dt.subscribe_after('add_node',on_add)
    dt.subscribe_after('delete_node',on_delete)
    for x in [[0,0],[1,0],[0,1]]:
        dt.add_node(x=x)
    dt.delete_node(1)
    assert added==[0,1,2]
    assert deleted==[1]

def test_bulk_load():
    rng=np.random.default_rng(5)
    pnts=rng.random((300,2))
    dt=Triangulation(post_check=False)
    mapping=dt.bulk_load(pnts)
    assert np.all(mapping==np.arange(300))
    assert dt.check_all()
    assert dt.check_global_delaunay()
    assert euler_ok(dt)

    # same faces as incremental insertion, for points in general position
    dt2=Triangulation()
    for p in pnts:
        dt2.add_node(x=p)
    tris=lambda g: sorted( tuple(sorted(g.cell_to_nodes(c)))
                           for c in g.valid_cell_iter() )
    assert tris(dt)==tris(dt2)

def test_bulk_load_duplicates_and_constraints():
    pnts=np.array([[0,0],[10,0],[10,10],[0,10],[10,0],[5,5],[2,8]],np.float64)
    dt=Triangulation()
    mapping=dt.bulk_load(pnts,edges=[[0,2]])
    assert dt.Nnodes_valid()==6
    assert mapping[1]==mapping[4]
    assert list(mapping)==[0,1,2,3,1,4,5]
    # 0-2 runs through 5,5
    assert dt.exists_constraint(0,4)
    assert dt.exists_constraint(4,2)

def test_bulk_load_degenerate():
    # all collinear: falls back to incremental insertion
    pnts=np.c_[np.arange(10.),2*np.arange(10.)]
    dt=Triangulation()
    dt.bulk_load(pnts)
    assert dt.dim()==1
    assert dt.Nedges_valid()==9
    with pytest.raises(dt.GridException):
        dt.bulk_load(pnts)

def test_pickle():
    dt=random_dt(30)
    dt2=pickle.loads(pickle.dumps(dt))
    assert dt2.check_all()
    n=dt2.add_node(x=[0.5,0.55])
    assert dt2.check_global_delaunay()
    assert dt2.nodes['x'][n][1]==0.55
