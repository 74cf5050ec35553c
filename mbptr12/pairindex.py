#!/usr/bin/env python
# Copyright 2014-2020 The PySCF Developers. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

'''
Pair indices of two-electron tensors

Same-spin pairs of one orbital space are packed in the strict lower
triangle: pair (i,j) with i > j has index i*(i-1)/2 + j and the element of
(j,i) is the negative of it.  Opposite-spin pairs, and pairs of two different
spaces, use the rectangular index i*n2 + j.
'''

import numpy
from mbptr12.errors import ProgrammingError
from mbptr12 import spin as spincase


def triang_half_INDEX_ordered(i, j):
    return i*(i+1)//2 + j

def triang_half_INDEX(i, j):
    if i > j:
        return i*(i+1)//2 + j
    else:
        return j*(j+1)//2 + i

def ordinary_INDEX(i, j, coldim):
    return i*coldim + j

def lowertriang_index(p, q):
    '''Index of (p,q), q < p, in strictly lower triangular storage'''
    if q >= p:
        raise ProgrammingError('lowertriang_index(p,q) requires q < p',
                               'lowertriang_index')
    return p*(p+1)//2 + q - p

def lowerupper_index(p, q):
    if p == q:
        raise ProgrammingError('lowerupper_index(p,q) requires p != q',
                               'lowerupper_index')
    if p > q:
        return lowertriang_index(p, q)
    else:
        return lowertriang_index(q, p)

def indexsizeorder_sign(p, q):
    if p > q:
        return 1
    elif q > p:
        return -1
    else:
        return 0

def antisym_pairindex(i, j):
    ii = max(i, j)
    jj = min(i, j)
    return (ii-1)*ii//2 + jj


def pair_dim(n1, n2, S, same_space=True):
    '''Number of pairs of orbitals from two spaces of ranks n1 and n2'''
    if S != spincase.AlphaBeta and same_space:
        if n1 != n2:
            raise ProgrammingError('identical spaces of different rank %d %d'
                                   % (n1, n2), 'pair_dim')
        return n1*(n1-1)//2
    return n1 * n2


class SpinMOPairIter(object):
    '''Loop over the (i,j) pairs of two orbital spaces for a given spin case.

    Iteration yields tuples (i, j, ij).  For same-spin pairs of identical
    spaces only i > j is visited.
    '''
    def __init__(self, n1, n2, S, same_space=True):
        self.n1 = n1
        self.n2 = n2
        self.spincase = S
        self.antisymm = (S != spincase.AlphaBeta and same_space)
        if self.antisymm and n1 != n2:
            raise ProgrammingError('identical spaces of different rank',
                                   'SpinMOPairIter')
        self.nij = pair_dim(n1, n2, S, same_space)

    def __len__(self):
        return self.nij

    def __iter__(self):
        if self.antisymm:
            ij = 0
            for i in range(self.n1):
                for j in range(i):
                    yield i, j, ij
                    ij += 1
        else:
            for i in range(self.n1):
                for j in range(self.n2):
                    yield i, j, i*self.n2 + j

    def ij(self, i, j):
        '''Pair index and sign of (i,j); sign is 0 for i == j in a same-spin
        triangle'''
        if self.antisymm:
            sign = indexsizeorder_sign(i, j)
            if sign == 0:
                return -1, 0
            return antisym_pairindex(i, j), sign
        return i*self.n2 + j, 1

    def ij_ab(self, i, j):
        return i*self.n2 + j

    def ij_ba(self, i, j):
        return j*self.n1 + i


def tril_pairs(n):
    '''Row and column indices (i > j) of the same-spin pairs, in pair order'''
    return numpy.tril_indices(n, -1)


def antisymmetrize(A, n1, n2, n3, n4, bra_same=True, ket_same=True):
    '''Same-spin tensor from a tensor over rectangular (opposite-spin like)
    pair indices.

    A has rows nbra_blocks*n1*n2 and columns nket_blocks*n3*n4 (the blocks
    being geminal functions).  The result is A(ij,kl) - A(ij,lk) packed over
    the i > j and k > l triangles for identical spaces, and rectangular
    otherwise.
    '''
    A = numpy.asarray(A)
    nrow, ncol = A.shape
    if nrow % (n1*n2 or 1) or ncol % (n3*n4 or 1):
        raise ProgrammingError('dimensions %s do not match the pair spaces'
                               % (A.shape,), 'antisymmetrize')
    nbb = nrow // (n1*n2) if n1*n2 else 0
    nkb = ncol // (n3*n4) if n3*n4 else 0
    nbra = pair_dim(n1, n2, spincase.AlphaAlpha, bra_same)
    nket = pair_dim(n3, n4, spincase.AlphaAlpha, ket_same)
    if nbb == 0 or nkb == 0 or nbra == 0 or nket == 0:
        return numpy.zeros((nbb*nbra, nkb*nket))
    A = A.reshape(nbb, n1, n2, nkb, n3, n4)
    if ket_same:
        A = A - A.transpose(0, 1, 2, 3, 5, 4)
        k, l = tril_pairs(n3)
        A = A[:, :, :, :, k, l]
    elif bra_same:
        A = A - A.transpose(0, 2, 1, 3, 4, 5)
        A = A.reshape(nbb, n1, n2, nkb, nket)
    else:
        raise ProgrammingError('nothing to antisymmetrize over', 'antisymmetrize')
    if bra_same:
        i, j = tril_pairs(n1)
        A = A[:, i, j]
    else:
        A = A.reshape(nbb, n1*n2, nkb, nket)
    return numpy.ascontiguousarray(A.reshape(nbb*nbra, nkb*nket))


def unpack_antisym(A, n1, n3):
    '''Expand a same-spin matrix over i>j, k>l pairs to a full
    antisymmetric 4-index array a[i,j,k,l]'''
    out = numpy.zeros((n1, n1, n3, n3))
    i, j = tril_pairs(n1)
    k, l = tril_pairs(n3)
    blk = numpy.zeros((len(i), n3, n3))
    blk[:, k, l] = A
    blk[:, l, k] = -A
    out[i, j] = blk
    out[j, i] = -blk
    return out

def pack_antisym(a):
    '''Inverse of unpack_antisym'''
    n1, n3 = a.shape[0], a.shape[2]
    i, j = tril_pairs(n1)
    k, l = tril_pairs(n3)
    return numpy.ascontiguousarray(a[i, j][:, k, l])


def to_pair_matrix(a, antisym):
    '''4-index a[p,q,r,s] -> (pq, rs) matrix, packed over p>q, r>s if antisym'''
    if antisym:
        return pack_antisym(a)
    n1, n2, n3, n4 = a.shape
    return a.reshape(n1*n2, n3*n4)


def symmetrize(A):
    return (A + A.T) * .5

def to_lower_triangle(A):
    '''Symmetric matrix generated from the lower triangle of A'''
    A = numpy.asarray(A)
    return numpy.tril(A) + numpy.tril(A, -1).T
