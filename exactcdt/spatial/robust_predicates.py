# Pure python implementation of J.R. Shewchuk's robust geometric predicates.
# The orientation test follows orient2d from predicates.c stage by stage.
# The in-circle test runs the two cheap stages of incircleadapt and falls
# back to exact rational arithmetic for the rare inputs that get past them.
#
# Python floats are IEEE doubles with round-to-nearest, which is all the
# expansion arithmetic below requires.
from fractions import Fraction

## Initialization:
#  figure out machine epsilon and the splitter for Dekker's product
every_other = 1
half = 0.5
epsilon = 1.0
splitter = 1.0
check = 1.0

while 1:
    lastcheck = check
    epsilon *= half
    if every_other:
        splitter *= 2.0

    every_other = 1-every_other
    check = 1.0 + epsilon
    if not ((check != 1.0) and (check != lastcheck)):
        break

splitter += 1.0
# Error bounds for orientation and incircle tests.
resulterrbound = (3.0 + 8.0 * epsilon) * epsilon
ccwerrboundA = (3.0 + 16.0 * epsilon) * epsilon
ccwerrboundB = (2.0 + 12.0 * epsilon) * epsilon
ccwerrboundC = (9.0 + 64.0 * epsilon) * epsilon * epsilon
iccerrboundA = (10.0 + 96.0 * epsilon) * epsilon
iccerrboundB = (4.0 + 48.0 * epsilon) * epsilon


## these are all macros in the C version:

def Fast_Two_Sum(a,b):
    x = a + b
    bvirt = x-a
    y = b-bvirt
    return x,y

def Two_Sum(a,b):
    x = a + b
    bvirt = x - a
    avirt = x - bvirt
    bround = b - bvirt
    around = a - avirt
    return x,around + bround

def Two_Diff(a, b):
    x = a - b
    bvirt = a - x
    avirt = x + bvirt
    bround = bvirt - b
    around = a - avirt
    return x,around + bround

def Two_Diff_Tail(a, b, x):
    bvirt = a - x
    avirt = x + bvirt
    bround = bvirt - b
    around = a - avirt
    return around + bround

def Split(a):
    c = splitter * a
    abig = c - a
    ahi = c - abig
    return ahi,a - ahi

def Two_Product_Presplit(a, b, bhi, blo):
    x = a * b
    ahi,alo = Split(a)
    err1 = x - (ahi * bhi)
    err2 = err1 - (alo * bhi)
    err3 = err2 - (ahi * blo)
    return x,(alo * blo) - err3

def Two_Product(a, b):
    bhi,blo = Split(b)
    return Two_Product_Presplit(a,b,bhi,blo)

def Two_One_Diff(a1, a0, b):
    _i, x0 = Two_Diff(a0, b)
    x2, x1 = Two_Sum(a1, _i)
    return x2,x1,x0

def Two_Two_Diff(a1, a0, b1, b0):
    _j, _0, x0 = Two_One_Diff(a1, a0, b0)
    x3, x2, x1 = Two_One_Diff(_j, _0, b1)
    return x3, x2, x1, x0

def product_diff(a,b,c,d):
    """ exact a*b - c*d as a 4 term expansion, smallest first """
    ab1,ab0 = Two_Product(a,b)
    cd1,cd0 = Two_Product(c,d)
    x3,x2,x1,x0 = Two_Two_Diff(ab1,ab0,cd1,cd0)
    return [x0,x1,x2,x3]


## Operations on expansions: lists of non-overlapping floats, smallest
## magnitude first.

def fast_expansion_sum_zeroelim(e, f):
    # merge the two expansions by magnitude, then accumulate
    merged=[]
    ei=fi=0
    while ei<len(e) and fi<len(f):
        if (f[fi] > e[ei]) == (f[fi] > -e[ei]):
            merged.append(e[ei])
            ei+=1
        else:
            merged.append(f[fi])
            fi+=1
    merged.extend(e[ei:])
    merged.extend(f[fi:])

    h=[]
    Q=merged[0]
    if len(merged)>1:
        Q,hh=Fast_Two_Sum(merged[1],Q)
        if hh != 0.0:
            h.append(hh)
        for now in merged[2:]:
            Q,hh=Two_Sum(Q,now)
            if hh != 0.0:
                h.append(hh)
    if (Q != 0.0) or (len(h) == 0):
        h.append(Q)
    return h

def scale_expansion_zeroelim(e, b):
    h = []
    bhi,blo = Split(b)
    Q, hh = Two_Product_Presplit(e[0], b, bhi, blo)

    if hh != 0:
        h.append(hh)

    for enow in e[1:]:
        product1, product0 = Two_Product_Presplit(enow, b, bhi, blo)
        sum_, hh = Two_Sum(Q, product0)
        if hh != 0:
            h.append(hh)

        Q, hh = Fast_Two_Sum(product1, sum_)
        if hh != 0:
            h.append(hh)

    if (Q != 0.0) or (len(h) == 0):
        h.append(Q)

    return h

def estimate(e):
    Q = e[0]
    for enow in e[1:]:
        Q += enow
    return Q


## Orientation

def counterclockwiseadapt(pa, pb, pc, detsum):
    acx = pa[0] - pc[0]
    bcx = pb[0] - pc[0]
    acy = pa[1] - pc[1]
    bcy = pb[1] - pc[1]

    B = product_diff(acx,bcy,acy,bcx)

    det = estimate(B)
    errbound = ccwerrboundB * detsum
    if (det >= errbound) or (-det >= errbound):
        return det

    acxtail = Two_Diff_Tail(pa[0], pc[0], acx)
    bcxtail = Two_Diff_Tail(pb[0], pc[0], bcx)
    acytail = Two_Diff_Tail(pa[1], pc[1], acy)
    bcytail = Two_Diff_Tail(pb[1], pc[1], bcy)

    if (acxtail == 0.0) and (acytail == 0.0) and (bcxtail == 0.0) and (bcytail == 0.0):
        return det

    errbound = ccwerrboundC * detsum + resulterrbound * abs(det)
    det += (acx * bcytail + bcy * acxtail) - (acy * bcxtail + bcx * acytail)

    if (det >= errbound) or (-det >= errbound):
        return det

    C1 = fast_expansion_sum_zeroelim(B, product_diff(acxtail,bcy,acytail,bcx))
    C2 = fast_expansion_sum_zeroelim(C1, product_diff(acx,bcytail,acy,bcxtail))
    D = fast_expansion_sum_zeroelim(C2, product_diff(acxtail,bcytail,acytail,bcxtail))

    # the largest component carries the sign
    return D[-1]

def counterclockwise(pa, pb, pc):
    """
    Positive if pa,pb,pc occur in counterclockwise order, negative
    if clockwise, zero if collinear.  The magnitude is approximately
    twice the signed area, but only the sign is exact.
    """
    detleft = (pa[0] - pc[0]) * (pb[1] - pc[1])
    detright = (pa[1] - pc[1]) * (pb[0] - pc[0])
    det = detleft - detright

    if detleft > 0.0:
        if detright <= 0.0:
            return det
        else:
            detsum = detleft + detright
    elif detleft < 0.0:
        if detright >= 0.0:
            return det
        else:
            detsum = -detleft - detright
    else:
        return det

    errbound = ccwerrboundA * detsum
    if (det >= errbound) or (-det >= errbound):
        return det

    return counterclockwiseadapt(pa, pb, pc, detsum)


## In-circle

def incircle_exact(pa, pb, pc, pd):
    """
    The in-circle determinant in exact rational arithmetic.  Slow, only
    reached when the floating point stages cannot decide the sign.
    """
    dx,dy=Fraction(pd[0]),Fraction(pd[1])
    adx = Fraction(pa[0]) - dx
    bdx = Fraction(pb[0]) - dx
    cdx = Fraction(pc[0]) - dx
    ady = Fraction(pa[1]) - dy
    bdy = Fraction(pb[1]) - dy
    cdy = Fraction(pc[1]) - dy

    alift = adx * adx + ady * ady
    blift = bdx * bdx + bdy * bdy
    clift = cdx * cdx + cdy * cdy
    return ( alift * (bdx*cdy - cdx*bdy)
             + blift * (cdx*ady - adx*cdy)
             + clift * (adx*bdy - bdx*ady) )

def incircleadapt(pa, pb, pc, pd, permanent):
    adx = pa[0] - pd[0]
    bdx = pb[0] - pd[0]
    cdx = pc[0] - pd[0]
    ady = pa[1] - pd[1]
    bdy = pb[1] - pd[1]
    cdy = pc[1] - pd[1]

    def lifted(det2,dx,dy):
        # (dx^2+dy^2)*det2, exactly
        xx = scale_expansion_zeroelim(scale_expansion_zeroelim(det2, dx), dx)
        yy = scale_expansion_zeroelim(scale_expansion_zeroelim(det2, dy), dy)
        return fast_expansion_sum_zeroelim(xx, yy)

    adet = lifted(product_diff(bdx,cdy,cdx,bdy),adx,ady)
    bdet = lifted(product_diff(cdx,ady,adx,cdy),bdx,bdy)
    cdet = lifted(product_diff(adx,bdy,bdx,ady),cdx,cdy)

    fin1 = fast_expansion_sum_zeroelim(fast_expansion_sum_zeroelim(adet, bdet),
                                       cdet)
    det = estimate(fin1)
    errbound = iccerrboundB * permanent
    if (det != 0.0) and ((det >= errbound) or (-det >= errbound)):
        return det

    tails = [ Two_Diff_Tail(pa[0], pd[0], adx),
              Two_Diff_Tail(pa[1], pd[1], ady),
              Two_Diff_Tail(pb[0], pd[0], bdx),
              Two_Diff_Tail(pb[1], pd[1], bdy),
              Two_Diff_Tail(pc[0], pd[0], cdx),
              Two_Diff_Tail(pc[1], pd[1], cdy) ]
    if not any(tails):
        # differences were exact, so fin1 is the exact determinant
        return fin1[-1]

    # only the sign is meaningful, and a tiny Fraction may underflow
    # to 0.0 when converted.
    exact=incircle_exact(pa,pb,pc,pd)
    return float((exact>0)-(exact<0))

def incircle(pa, pb, pc, pd):
    """
    Positive if pd lies inside the circle through pa, pb, pc when those
    are in counterclockwise order, negative if outside, zero if the four
    are cocircular.  The sign is reversed for clockwise pa, pb, pc.
    """
    adx = pa[0] - pd[0]
    bdx = pb[0] - pd[0]
    cdx = pc[0] - pd[0]
    ady = pa[1] - pd[1]
    bdy = pb[1] - pd[1]
    cdy = pc[1] - pd[1]

    bdxcdy = bdx * cdy
    cdxbdy = cdx * bdy
    alift = adx * adx + ady * ady

    cdxady = cdx * ady
    adxcdy = adx * cdy
    blift = bdx * bdx + bdy * bdy

    adxbdy = adx * bdy
    bdxady = bdx * ady
    clift = cdx * cdx + cdy * cdy

    det = alift * (bdxcdy - cdxbdy) \
        + blift * (cdxady - adxcdy) \
        + clift * (adxbdy - bdxady)

    permanent = (abs(bdxcdy) + abs(cdxbdy)) * alift \
              + (abs(cdxady) + abs(adxcdy)) * blift \
              + (abs(adxbdy) + abs(bdxady)) * clift

    errbound = iccerrboundA * permanent
    if (det > errbound) or  (-det > errbound):
        return det

    return incircleadapt(pa, pb, pc, pd, permanent)


def _sign(val):
    # float cast, otherwise numpy floats make numpy bools
    val=float(val)
    return (val>0)-(val<0)

def orientation(a,b,c):
    """ +1 for a left turn a->b->c, -1 for a right turn, 0 for collinear.
    """
    return _sign(counterclockwise(a,b,c))

def incircle_sign(a,b,c,d):
    """ +1 if d is inside the circle through counterclockwise a,b,c,
    -1 outside, 0 on the circle.
    """
    return _sign(incircle(a,b,c,d))
