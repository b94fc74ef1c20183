"""
Small numerical and bookkeeping helpers shared by the grid code.
"""
import itertools

import numpy as np

def dist2(a,b):
    """ squared distance, avoids the sqrt when only comparing """
    d=np.asarray(a,np.float64)-np.asarray(b,np.float64)
    return (d**2).sum(axis=-1)

def signed_area(points):
    points=np.asarray(points)
    i = np.arange(points.shape[0])
    ip1 = (i+1)%(points.shape[0])
    return 0.5*(points[i,0]*points[ip1,1] - points[ip1,0]*points[i,1]).sum()

def circumcenter(p1,p2,p3):
    """
    Circumcenter of the triangle p1,p2,p3.  Works on single points
    or stacks of points [...,2].  Collinear input gives inf/nan.
    """
    p1=np.asarray(p1,np.float64)
    p2=np.asarray(p2,np.float64)
    p3=np.asarray(p3,np.float64)
    ref = p1

    p2x = p2[...,0] - ref[...,0]
    p2y = p2[...,1] - ref[...,1]
    p3x = p3[...,0] - ref[...,0]
    p3y = p3[...,1] - ref[...,1]

    vc = np.zeros( p1.shape, np.float64)

    # relative to p1, which drops the p1 terms
    with np.errstate(divide='ignore',invalid='ignore'):
        dd=2.0*(p2x*p3y - p3x*p2y)
        b2=p2x**2+p2y**2
        b3=p3x**2+p3y**2
        vc[...,0]=(p3y*b2 - p2y*b3)/dd + ref[...,0]
        vc[...,1]=(p2x*b3 - p3x*b2)/dd + ref[...,1]

    return vc

def circular_pairs(iterable):
    """
    like pairwise, but closes the loop.
    s -> (s0,s1), (s1,s2), (s2, s3), ..., (sN,s0)
    """
    a, b = itertools.tee(iterable)
    b = itertools.cycle(b)
    next(b, None)
    return zip(a, b)

def segment_segment_alphas(segA,segB):
    """
    Solve for the two alpha values for an intersection

    (1-a) * segA[0] + a*segA[1] =  (1-b) * segB[0] + b*segB[1]

    Return [a,b], unless lines are parallel, then [nan,nan]
    """
    mat=np.array( [ [segA[1,0]-segA[0,0], -segB[1,0]+segB[0,0]],
                    [segA[1,1]-segA[0,1], -segB[1,1]+segB[0,1]]],
                  np.float64)
    b=np.array( [ -segA[0,0] + segB[0,0],
                  -segA[0,1] + segB[0,1] ],
                np.float64 )
    try:
        x=np.linalg.solve(mat,b)
    except np.linalg.LinAlgError:
        # collinear or parallel
        return np.array( [np.nan,np.nan] )
    return x

def segment_segment_intersection(segA,segB):
    """
    If segA and segB intersect, return the point of intersection
    and the alphas along each segment.  Otherwise None,alphas.
    """
    segA=np.asarray(segA,np.float64)
    segB=np.asarray(segB,np.float64)
    alphas=segment_segment_alphas(segA,segB)
    if np.isnan(alphas[0]):
        # collinear or parallel. may not overlap at all
        return None,alphas
    if ((alphas[0]>=0) and (alphas[1]>=0) and
        (alphas[0]<=1) and (alphas[1]<=1) ):
        a=alphas[0]
        return (1-a)*segA[0]+a*segA[1], alphas
    return None,alphas

sentinel=object()
def array_append( A, b=sentinel ):
    """
    append b to A, where b.shape == A.shape[1:]
    Attempts to make this fast by dynamically resizing the base array of
    A, and returning the appropriate slice.

    if b is not given, zeros are appended to A
    """
    # A may be a view with a different layout than its base, or the base
    # may be full.  In those cases allocate a new, larger base.
    if (A.base is None) or type(A.base) in (str,bytes) \
           or A.base.size == A.size or A.base.strides != A.strides \
           or A.shape[1:] != A.base.shape[1:]:
        new_shape = list(A.shape)

        # twice as long as A, plus a bit in case A is empty
        new_shape[0] = new_shape[0]*2 + 10

        base = np.zeros( new_shape, dtype=A.dtype)
        base[:len(A)] = A
    else:
        base = A.base

    A = base[:len(A)+1]
    if b is sentinel:
        return A
    if A.dtype.isbuiltin:
        A[-1] = b
    else:
        # structured records: 0-d arrays and np.void both offer tolist()
        try:
            val=b.tolist()
        except AttributeError:
            val=tuple(b)
        A[-1] = val
    return A

def set_keywords(obj,kw):
    """
    Utility for __init__ methods to update object state with
    keyword arguments.  Checks that the attributes already
    exist, to avoid spelling mistakes.  Uses getattr and
    setattr for compatibility with properties.
    """
    for k in kw:
        try:
            getattr(obj,k)
        except AttributeError:
            raise AttributeError("Setting attribute %s failed because it doesn't exist on %s"%(k,obj))
        setattr(obj,k,kw[k])
