"""
A stack of coarser triangulations over random subsets of the nodes,
used to start point location close to the target.

levels[0] holds a sample of the nodes of the base grid, levels[1] a
sample of levels[0], and so on.  Each node of a level records the node
it copies in the level below in its 'down' field, and each copied node
records its copy in its 'up' field.  Coarse levels are plain Delaunay
triangulations: constraints only exist on the base grid.
"""
import logging

import numpy as np

from .halfedge_grid import HalfEdgeGrid, TopologyError

class DelaunayHierarchy(object):
    def __init__(self,grid,factory,ratio=30,max_levels=5,rng=None):
        """
        grid: the base Triangulation
        factory: callable returning a new, empty level
        ratio: on average one node in ratio is promoted to the next level
        """
        self.grid=grid
        self.factory=factory
        self.ratio=ratio
        self.max_levels=max_levels
        if rng is None:
            rng=np.random.default_rng()
        self.rng=rng
        self.levels=[]
        self.hints={}
        self.log=logging.getLogger(self.__class__.__name__)

    def grid_at(self,k):
        """ level k, where -1 is the base grid """
        if k<0:
            return self.grid
        return self.levels[k]

    def clear(self):
        self.levels=[]
        self.hints={}

    def random_height(self):
        height=0
        while height<self.max_levels and self.rng.random()*self.ratio<1.0:
            height+=1
        return height

    def insert(self,n,height=None):
        """
        Copy node n of the base grid into the first height levels,
        height chosen at random if not given.
        """
        if height is None:
            height=self.random_height()
        x=self.grid.nodes['x'][n]
        below=n
        for k in range(height):
            if k==len(self.levels):
                self.levels.append(self.factory())
                self.log.debug("Hierarchy now has %d levels"%len(self.levels))
            lvl=self.levels[k]
            hint=self.hints.get(k)
            if (hint is not None) and (hint>=lvl.Nnodes() or lvl.nodes['deleted'][hint]):
                hint=None
            m=lvl.add_node(x=x,down=below,_hint=hint)
            if lvl.nodes['down'][m]!=below:
                raise TopologyError("Level %d already had a node at %s"%(k,x))
            HalfEdgeGrid.modify_node(self.grid_at(k-1),below,up=m)
            below=m

    def height(self,n):
        """ number of levels holding a copy of base node n """
        h=0
        m=self.grid.nodes['up'][n]
        while m>=0:
            m=self.levels[h].nodes['up'][m]
            h+=1
        return h

    def remove(self,n):
        """ drop the copies of base node n from all levels """
        m=int(self.grid.nodes['up'][n])
        k=0
        while m>=0:
            lvl=self.levels[k]
            up=int(lvl.nodes['up'][m])
            lvl.delete_node(m)
            m=up
            k+=1
        if self.grid.nodes['up'][n]>=0:
            HalfEdgeGrid.modify_node(self.grid,n,up=self.grid.UNDEFINED)

    def move(self,n):
        """ base node n has moved.  update its copies at the same height """
        height=self.height(n)
        self.remove(n)
        self.insert(n,height=height)

    def rebuild(self):
        """ discard the levels and promote all base nodes afresh """
        self.clear()
        self.grid.nodes['up']=self.grid.UNDEFINED
        for n in self.grid.valid_node_iter():
            self.insert(n)

    def locate_start(self,t):
        """
        Descend through the levels, locating t in each starting from the
        node found in the level above.  Returns the base grid node
        nearest t in the finest level, or None if there is no usable
        level.
        """
        node=None
        self.hints={}
        for k in range(len(self.levels)-1,-1,-1):
            lvl=self.levels[k]
            if lvl.dim()<2:
                node=None
                continue
            loc=lvl.locate(t,hint=node)
            m=lvl.nearest_located_vertex(t,loc)
            self.hints[k]=m
            node=int(lvl.nodes['down'][m])
        return node

    #-# Undo, so the levels follow the base grid through atomic()

    def checkpoint(self):
        return (len(self.levels),[lvl.checkpoint() for lvl in self.levels])

    def revert(self,cp):
        n_levels,cps=cp
        del self.levels[n_levels:]
        for lvl,lvl_cp in zip(self.levels,cps):
            lvl.revert(lvl_cp)
        self.hints={}

    def commit(self):
        for lvl in self.levels:
            lvl.commit()
