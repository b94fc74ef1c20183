import numpy as np
import pytest

from exactcdt.grid import exact_delaunay
Triangulation=exact_delaunay.Triangulation

def build(N=400,seed=3,**kw):
    rng=np.random.default_rng(seed)
    pnts=rng.random((N,2))
    dt=Triangulation(seed=seed,hierarchy_ratio=4,**kw)
    for x in pnts:
        dt.add_node(x=x)
    return dt,pnts

def check_links(dt):
    """ up/down fields agree between every pair of adjacent levels """
    dh=dt.dh
    for k,lvl in enumerate(dh.levels):
        below=dh.grid_at(k-1)
        for m in lvl.valid_node_iter():
            n=lvl.nodes['down'][m]
            assert not below.nodes['deleted'][n]
            assert below.nodes['up'][n]==m
            assert np.all(below.nodes['x'][n]==lvl.nodes['x'][m])
        ups=below.nodes['up'][~below.nodes['deleted']]
        assert (ups>=0).sum()==lvl.Nnodes_valid()

def test_levels_shrink():
    dt,pnts=build()
    levels=dt.dh.levels
    assert len(levels)>=1
    sizes=[dt.Nnodes_valid()]+[lvl.Nnodes_valid() for lvl in levels]
    assert all(a>=b for a,b in zip(sizes[:-1],sizes[1:]))
    assert len(levels)<=dt.max_levels
    for lvl in levels:
        assert lvl.dh is None
        assert lvl.check_all()
    check_links(dt)

def test_locate_matches_plain_walk():
    dt,pnts=build()
    plain=Triangulation(hierarchy=False)
    for x in pnts:
        plain.add_node(x=x)
    assert plain.dh is None

    rng=np.random.default_rng(9)
    for t in rng.random((100,2))*1.2-0.1:
        a=dt.locate(t)
        b=plain.locate(t)
        assert a.loc_type==b.loc_type
        if a.loc_type==dt.IN_FACE:
            assert ( sorted(dt.cell_to_nodes(a.cell))
                     == sorted(plain.cell_to_nodes(b.cell)) )
    # a vertex is found exactly
    loc=dt.locate(pnts[17])
    assert loc.loc_type==dt.IN_VERTEX
    assert loc.loc_index==17

def test_height():
    dt,pnts=build(100)
    for n in dt.valid_node_iter():
        h=dt.dh.height(n)
        assert 0<=h<=len(dt.dh.levels)
        if dt.nodes['up'][n]<0:
            assert h==0

def test_remove_cascades():
    dt,pnts=build()
    promoted=[n for n in dt.valid_node_iter() if dt.nodes['up'][n]>=0]
    assert promoted
    n=promoted[0]
    m=dt.nodes['up'][n]
    dt.delete_node(n)
    assert dt.dh.levels[0].nodes['deleted'][m]
    check_links(dt)
    assert dt.check_all()

def test_move_keeps_height():
    dt,pnts=build(200)
    promoted=[n for n in dt.valid_node_iter() if dt.nodes['up'][n]>=0]
    n=promoted[0]
    h=dt.dh.height(n)
    dt.modify_node(n,x=[0.5,1.5])
    assert dt.dh.height(n)==h
    m=dt.nodes['up'][n]
    assert np.all(dt.dh.levels[0].nodes['x'][m]==[0.5,1.5])
    check_links(dt)

def test_atomic_reverts_levels():
    dt,pnts=build(50)
    n_levels=len(dt.dh.levels)
    sizes=[lvl.Nnodes_valid() for lvl in dt.dh.levels]
    rng=np.random.default_rng(4)
    with pytest.raises(ValueError):
        with dt.atomic():
            for x in rng.random((300,2))+2.0:
                dt.add_node(x=x)
            raise ValueError("revert")
    assert dt.Nnodes_valid()==50
    assert len(dt.dh.levels)==n_levels
    assert [lvl.Nnodes_valid() for lvl in dt.dh.levels]==sizes
    check_links(dt)

def test_bulk_load_rebuilds():
    rng=np.random.default_rng(8)
    dt=Triangulation(hierarchy_ratio=4,seed=8)
    dt.bulk_load(rng.random((300,2)))
    assert len(dt.dh.levels)>=1
    check_links(dt)
    n=dt.add_node(x=[0.25,0.75])
    assert dt.check_global_delaunay()
