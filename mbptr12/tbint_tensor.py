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
Assembly of two-electron tensors from integral transforms

compute_tbint_tensor copies integrals into a pair-indexed matrix,
contract_tbint_tensor forms the resolution-of-identity product

    T(ij,kl) += sum_xy <ij|op1|xy> w(x,y) <kl|op2|xy>

Both loop over the bra pairs owned by this process (round-robin), so the
result has to be summed over the message group by the caller.  Geminal
functions of bra and ket form the outer blocks of T: rows fb*nbra + ij and
columns fk*nket + kl.
'''

import numpy
from mbptr12.errors import ProgrammingError
from mbptr12 import pairindex
from mbptr12 import parallel
from mbptr12 import spin as spincase


class DirectContraction(object):
    '''Uniform weight'''
    def __init__(self, prefactor=1.):
        self.prefactor = prefactor

    def __call__(self, n1, n2):
        return numpy.full((n1, n2), self.prefactor)


class CABSOBSContraction(object):
    '''Subtraction of the OBS pair projector, sum over p,q in OBS with -1'''
    def __init__(self, nobs1, nobs2=None):
        if nobs2 is None:
            nobs2 = nobs1
        self.nobs1 = nobs1
        self.nobs2 = nobs2

    def __call__(self, n1, n2):
        if n1 != self.nobs1 or n2 != self.nobs2:
            raise ProgrammingError('integration spaces must be the OBS',
                                   'CABSOBSContraction')
        return numpy.full((n1, n2), -1.)


class ABSOBSContraction(object):
    '''Projector (1-O1)(1-O2) - V1 V2 in the OBS: +1 over occupied pairs,
    -1 over virtual pairs, 0 over the mixed pairs'''
    def __init__(self, nobs1, nocc1, nocc2, nobs2=None):
        if nobs2 is None:
            nobs2 = nobs1
        self.nobs1 = nobs1
        self.nobs2 = nobs2
        self.nocc1 = nocc1
        self.nocc2 = nocc2

    def __call__(self, n1, n2):
        if n1 != self.nobs1 or n2 != self.nobs2:
            raise ProgrammingError('integration spaces must be the OBS',
                                   'ABSOBSContraction')
        w = numpy.zeros((n1, n2))
        w[:self.nocc1,:self.nocc2] = 1.
        w[self.nocc1:,self.nocc2:] = -1.
        return w


def _pair_dim(n1, n2, antisymmetrize, same):
    if antisymmetrize and same:
        return pairindex.pair_dim(n1, n2, spincase.AlphaAlpha, True)
    return n1 * n2


def _check_tform(tform, tbint_type, space1, space2, space3, space4):
    if tform.oper != tbint_type:
        raise ProgrammingError('transform %s holds %s, not %s' %
                               (tform.label, tform.oper, tbint_type),
                               'tbint_tensor')
    ranks = tuple(s.rank for s in tform.spaces)
    expected = (space1.rank, space2.rank, space3.rank, space4.rank)
    if ranks != expected:
        raise ProgrammingError('transform %s has dimensions %s, expected %s' %
                               (tform.label, ranks, expected), 'tbint_tensor')


def _gather_pairs(tform, nbra, n2, out, rows, oper=0):
    '''Copy the pair blocks of the given bra pairs into rows of out'''
    acc = tform.ints_acc()
    acc.activate()
    try:
        for ij in rows:
            i, j = divmod(ij, n2)
            blk = acc.retrieve_pair_block(i, j, oper)
            out[ij] = blk.ravel()
            acc.release_pair_block(i, j, oper)
    finally:
        acc.deactivate()
    return out


def compute_tbint_tensor(T, tbint_type, bra1, bra2, ket1, ket2,
                         antisymmetrize, tforms, group=None, oper=0):
    '''T += <bra1 bra2|op|ket1 ket2>

    Args:
        T : 2D array
            nfb*nbra x nfk*nket; nbra and nket are packed same-spin pair
            dimensions when antisymmetrize is set and the particle spaces
            are identical
        tforms : list
            transforms (bra1 ket1|op|bra2 ket2), element fb*nfk + fk
    '''
    nb1, nb2, nk1, nk2 = bra1.rank, bra2.rank, ket1.rank, ket2.rank
    bra_same = bra1 is bra2
    ket_same = ket1 is ket2
    nbra = _pair_dim(nb1, nb2, antisymmetrize, bra_same)
    nket = _pair_dim(nk1, nk2, antisymmetrize, ket_same)
    if nbra == 0 or nket == 0:
        return T
    nfk = T.shape[1] // nket
    nfb = len(tforms) // nfk if nfk else 0
    if T.shape != (nfb*nbra, nfk*nket) or nfb*nfk != len(tforms):
        raise ProgrammingError('tensor %s does not match %d x %d blocks of '
                               '%d x %d pairs' % (T.shape, nfb, nfk, nbra, nket),
                               'compute_tbint_tensor')

    nbra_rect = nb1 * nb2
    nket_rect = nk1 * nk2
    rows = parallel.round_robin(nbra_rect, group)
    temp = numpy.zeros((nfb*nbra_rect, nfk*nket_rect))
    for fb in range(nfb):
        for fk in range(nfk):
            tform = tforms[fb*nfk+fk]
            _check_tform(tform, tbint_type, bra1, ket1, bra2, ket2)
            blk = numpy.zeros((nbra_rect, nket_rect))
            _gather_pairs(tform, nbra_rect, nb2, blk, rows, oper)
            temp[fb*nbra_rect:(fb+1)*nbra_rect,
                 fk*nket_rect:(fk+1)*nket_rect] = blk

    if antisymmetrize:
        T += pairindex.antisymmetrize(temp, nb1, nb2, nk1, nk2, bra_same, ket_same)
    else:
        T += temp
    return T


def contract_tbint_tensor(T, tbint_type_bra, tbint_type_ket,
                          bra1, bra2, intb1, intb2,
                          ket1, ket2, intk1, intk2,
                          contraction, antisymmetrize,
                          tforms_bra, tforms_ket, group=None):
    '''T += sum_xy <bra1 bra2|op1|x y> w(x,y) <ket1 ket2|op2|x y>

    x runs over intb1 (= intk1), y over intb2 (= intk2).  tforms_bra has one
    transform (bra1 intb1|op1|bra2 intb2) per bra function and tforms_ket one
    transform (ket1 intk1|op2|ket2 intk2) per ket function.
    '''
    if intb1.rank != intk1.rank or intb2.rank != intk2.rank:
        raise ProgrammingError('integration spaces of bra and ket differ',
                               'contract_tbint_tensor')
    nb1, nb2, nk1, nk2 = bra1.rank, bra2.rank, ket1.rank, ket2.rank
    bra_same = bra1 is bra2
    ket_same = ket1 is ket2
    nbra = _pair_dim(nb1, nb2, antisymmetrize, bra_same)
    nket = _pair_dim(nk1, nk2, antisymmetrize, ket_same)
    nfb = len(tforms_bra)
    nfk = len(tforms_ket)
    if T.shape != (nfb*nbra, nfk*nket):
        raise ProgrammingError('tensor %s does not match %d x %d blocks of '
                               '%d x %d pairs' % (T.shape, nfb, nfk, nbra, nket),
                               'contract_tbint_tensor')
    nx, ny = intb1.rank, intb2.rank
    if nbra == 0 or nket == 0 or nx*ny == 0:
        return T

    w = numpy.asarray(contraction(nx, ny)).ravel()
    nbra_rect = nb1 * nb2
    nket_rect = nk1 * nk2
    rows = list(parallel.round_robin(nbra_rect, group))
    Lbs = []
    for tform in tforms_bra:
        _check_tform(tform, tbint_type_bra, bra1, intb1, bra2, intb2)
        Lb = numpy.zeros((nbra_rect, nx*ny))
        _gather_pairs(tform, nbra_rect, nb2, Lb, rows)
        Lbs.append(Lb * w)
    Lks = []
    for tform in tforms_ket:
        _check_tform(tform, tbint_type_ket, ket1, intk1, ket2, intk2)
        Lk = numpy.zeros((nket_rect, nx*ny))
        _gather_pairs(tform, nket_rect, nk2, Lk, range(nket_rect))
        Lks.append(Lk)

    temp = numpy.zeros((nfb*nbra_rect, nfk*nket_rect))
    for fb in range(nfb):
        for fk in range(nfk):
            temp[fb*nbra_rect:(fb+1)*nbra_rect,
                 fk*nket_rect:(fk+1)*nket_rect] = numpy.dot(Lbs[fb], Lks[fk].T)

    if antisymmetrize:
        T += pairindex.antisymmetrize(temp, nb1, nb2, nk1, nk2, bra_same, ket_same)
    else:
        T += temp
    return T
