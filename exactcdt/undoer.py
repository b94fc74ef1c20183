"""
Generic support for recording operations, with the option
of undoing those operations.

Mutating methods call push_op() with a method and arguments which
will reverse the change.  Nothing is recorded until a checkpoint()
is taken, so the bookkeeping costs nothing in the common case.

commit() discards the entire stack, so partial commits are not
supported.  Nested checkpoints work since a checkpoint is just a
position in the stack.
"""
import logging
from contextlib import contextmanager

log=logging.getLogger(__name__)

class OpHistory(object):
    state='inactive' # 'recording','reverting'

    class Checkpoint(object):
        def __init__(self,serial,frame):
            self.serial=serial
            self.frame=frame
        def __repr__(self):
            return "<Checkpoint %d:%d>"%(self.serial,self.frame)

    op_stack_serial = 17
    op_stack = None
    abs_serial=0

    def checkpoint(self):
        assert self.state != 'reverting'

        if self.op_stack is None:
            self.op_stack_serial += 1
            self.op_stack = []
        self.state='recording'
        return self.Checkpoint(self.op_stack_serial,len(self.op_stack))

    def revert(self,cp):
        if cp.serial != self.op_stack_serial:
            raise ValueError( ("The current op stack has serial %d,"
                               "but your checkpoint is %s")%(self.op_stack_serial,
                                                             cp.serial) )
        if self.state!='recording':
            raise RuntimeError("Tried to revert, but not recording")
        try:
            self.state='reverting'
            while len(self.op_stack) > cp.frame:
                self.pop_op()
        finally:
            self.state='recording'

    def commit(self):
        assert self.state != 'reverting'
        self.op_stack = None
        self.op_stack_serial += 1
        self.state='inactive'

    def recording(self):
        return self.state=='recording'

    def push_op(self,meth,*data,**kwdata):
        self.abs_serial=self.abs_serial+1
        if self.state!='recording':
            return

        if self.op_stack is not None:
            self.op_stack.append( (meth,data,kwdata) )

    def pop_op(self):
        assert self.state=='reverting'

        self.abs_serial=self.abs_serial+1

        meth,args,kwargs = self.op_stack.pop()
        log.debug("popping: %s",meth.__name__)
        meth(*args,**kwargs)

    @contextmanager
    def atomic(self):
        """
        Context manager: changes made inside the block are reverted
        if the block raises.  When nested, only the outermost block
        commits.
        """
        outermost=not self.recording()
        cp=self.checkpoint()
        try:
            yield cp
        except BaseException:
            self.revert(cp)
            if outermost:
                self.commit()
            raise
        if outermost:
            self.commit()

    def __getstate__(self):
        try:
            d=super(OpHistory,self).__getstate__()
        except AttributeError:
            d = dict(self.__dict__)
        if d is None:
            d = dict(self.__dict__)
        else:
            d = dict(d)

        d['op_stack']=None
        d['state']='inactive'

        return d
