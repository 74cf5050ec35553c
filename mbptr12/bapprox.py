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
B intermediate in the standard approximations, and the coupling matrix A

B(kl,mn) = <kl|f Q12 (F1 + F2) Q12 f|mn> is assembled from "particle 1"
contributions T(kl,mn), in which the one-body operator acts on particle 1,
and their images under the permutation of the two particles

    B = T + P12 T + <kl|[f,[T1,f]]|mn>

A''  <[f,[T,f]]> plus the (h+J)-dressed X
A'   as A'' with the full Fock operator
B    A' minus the exchange commutator <f [K1, f]>
C    the Fock and exchange terms resolved in the RI basis
C'   as C with the Fock operator in the first term and without the
     exchange term

A', A'' and B assume the generalized and extended Brillouin conditions;
switching them off (gbc/ebc = False) adds the corresponding RI terms.

Ref:
* Kedzuch, Milko, Noga, IJQC 105, 929 (2005)
* Valeev, JCP 125, 244106 (2006)
'''

import numpy
from pyscf.lib import logger
from mbptr12 import spin as spincase
from mbptr12 import corrfactor as cf
from mbptr12.errors import FeatureNotImplemented
from mbptr12.tbint_tensor import (compute_tbint_tensor, contract_tbint_tensor,
                                  DirectContraction)


def p12(M, nf1, n1, n2, nf2, n3, n4):
    '''M(f,ab; f',cd) -> M(f,ba; f',dc)'''
    M = M.reshape(nf1,n1,n2,nf2,n3,n4).transpose(0,2,1,3,5,4)
    return M.reshape(nf1*n2*n1, nf2*n4*n3)


def p12sym(ev, S, particle1, *args):
    '''T(1,2) + P12 T(2,1) of a particle-1 contribution'''
    s1, s2 = spincase.case1(S), spincase.case2(S)
    t12 = particle1(ev, s1, s2, *args)
    if s1 == s2 or not ev.spin_polarized:
        t21 = t12
    else:
        t21 = particle1(ev, s2, s1, *args)
    nf = ev.corrfactor.nfunctions
    n1, n2 = ev.GGspace(s2).rank, ev.GGspace(s1).rank
    return t12 + p12(t21, nf, n1, n2, nf, n1, n2)


def _occ_kind(ev):
    if ev.r12tech.projector == 1:
        return 'orbs'
    return 'occ'

def _ri_kind(ev, nabs):
    if ev.do_ri_in_abs(nabs):
        return 'ribs'
    return 'orbs'

def _zeros(ev, s1, s2):
    nf = ev.corrfactor.nfunctions
    n = nf * ev.GGspace(s1).rank * ev.GGspace(s2).rank
    return numpy.zeros((n, n))


def contract_f12_(ev, T, s1, s2, x1, x2, y1, y2, prefactor=1.):
    '''T += prefactor sum_xy <kl|f|x1 x2> <mn|f|y1 y2>, kl and mn in GG'''
    if x1.rank == 0 or x2.rank == 0:
        return T
    nf = ev.corrfactor.nfunctions
    G1, G2 = ev.GGspace(s1), ev.GGspace(s2)
    tforms_bra = ev.tforms(cf.F12, G1, x1, G2, x2, nf, 1)
    tforms_ket = ev.tforms(cf.F12, G1, y1, G2, y2, nf, 1)
    return contract_tbint_tensor(T, cf.F12, cf.F12, G1, G2, x1, x2,
                                 G1, G2, y1, y2, DirectContraction(prefactor),
                                 False, tforms_bra, tforms_ket, ev.group)


def compute_diag_(ev, T, S):
    '''<kl|[f,[T1,f]]|mn>'''
    nf = ev.corrfactor.nfunctions
    G1, G2 = ev.pair_spaces('GG', S)
    tforms = ev.tforms(cf.F12T1F12, G1, G1, G2, G2, nf, nf)
    return compute_tbint_tensor(T, cf.F12T1F12, G1, G2, G1, G2, False,
                                tforms, ev.group)


def onebody_f12f12_(ev, s1, s2, oper):
    '''1/2 (<kl|f f|(o m) n> + h.c.), o expanded in the RI basis'''
    nf = ev.corrfactor.nfunctions
    G1, G2 = ev.GGspace(s1), ev.GGspace(s2)
    oG1 = ev.f_bra_ket(s1, oper, 'GG', _ri_kind(ev, 0))
    M = _zeros(ev, s1, s2)
    tforms = ev.tforms(cf.F12F12, G1, oG1, G2, G2, nf, nf)
    compute_tbint_tensor(M, cf.F12F12, G1, G2, oG1, G2, False, tforms, ev.group)
    return (M + M.T) * .5


def exchange_(ev, s1, s2):
    '''sum_PQR <kl|f|P Q> K_PR <R Q|f|mn>'''
    kind1 = _ri_kind(ev, 0)
    kind2 = _ri_kind(ev, 1)
    T = _zeros(ev, s1, s2)
    kx1 = ev.f_bra_ket(s1, 'K', kind1, kind1)
    x1 = ev.space(kind1, s1)
    x2 = ev.space(kind2, s2)
    return contract_f12_(ev, T, s1, s2, kx1, x2, x1, x2)


def fock_ri_(ev, s1, s2, oper):
    '''Fock-operator terms of approximation C resolved in the RI basis'''
    okind = _occ_kind(ev)
    pkind = _ri_kind(ev, 0)
    do_ri = ev.do_ri_in_abs()
    projector2 = ev.r12tech.projector == 2
    T = onebody_f12f12_(ev, s1, s2, oper)

    o1, o2 = ev.space(okind, s1), ev.space(okind, s2)
    p1 = ev.space(pkind, s1)
    # - <kl|f|(F P) m><P m|f|ij>
    fp1 = ev.f_bra_ket(s1, 'F', pkind, pkind)
    contract_f12_(ev, T, s1, s2, fp1, o2, p1, o2, -1.)
    if projector2:
        # - <kl|f|(F q) a><q a|f|ij>
        q1 = ev.orbs(s1)
        v2 = ev.vir(s2)
        fq1 = ev.f_bra_ket(s1, 'F', 'orbs', 'orbs')
        contract_f12_(ev, T, s1, s2, fq1, v2, q1, v2, -1.)
    if do_ri:
        c1, c2 = ev.cabs(s1), ev.cabs(s2)
        # + <kl|f|(F m) a'><m a'|f|ij>
        fo1 = ev.f_bra_ket(s1, 'F', okind, okind)
        contract_f12_(ev, T, s1, s2, fo1, c2, o1, c2, 1.)
        M = _zeros(ev, s1, s2)
        # <kl|f|m a'><(F m) a'|f|ij>
        fom1 = ev.f_bra_ket(s1, 'F', okind, pkind)
        contract_f12_(ev, M, s1, s2, o1, c2, fom1, c2)
        if projector2:
            # <kl|f|a' b><(F a') b|f|ij>
            v2 = ev.vir(s2)
            fc1 = ev.f_bra_ket(s1, 'F', 'cabs', 'orbs')
            contract_f12_(ev, M, s1, s2, c1, v2, fc1, v2)
        T -= M + M.T
    return T


def gbc_(ev, s1, s2):
    '''<kl|f|m a'><(F m)_a' a'|f|ij> + h.c.'''
    okind = _occ_kind(ev)
    T = _zeros(ev, s1, s2)
    o1 = ev.space(okind, s1)
    c2 = ev.cabs(s2)
    fo1 = ev.f_bra_ket(s1, 'F', okind, 'cabs')
    contract_f12_(ev, T, s1, s2, o1, c2, fo1, c2)
    return T + T.T


def ebc_(ev, s1, s2):
    '''<kl|f|a' b><(F a')_e b|f|ij> + h.c.'''
    T = _zeros(ev, s1, s2)
    c1 = ev.cabs(s1)
    v2 = ev.vir(s2)
    fc1 = ev.f_bra_ket(s1, 'F', 'cabs', 'vir')
    contract_f12_(ev, T, s1, s2, c1, v2, fc1, v2)
    return T + T.T


def compute_B_onebody_(ev, B, X, S, oper=None):
    '''B += 1/2 (X (F1+F2) + (F1+F2) X), the Fock operator represented in the
    GG space'''
    if oper is None:
        if ev.r12tech.stdapprox == "A''":
            oper = 'hJ'
        else:
            oper = 'F'
    s1, s2 = spincase.case1(S), spincase.case2(S)
    G1, G2 = ev.GGspace(s1), ev.GGspace(s2)
    f1 = ev.oper_matrix(oper, G1, G1, s1)
    f2 = ev.oper_matrix(oper, G2, G2, s2)
    fpair = numpy.kron(f1, numpy.eye(G2.rank)) + numpy.kron(numpy.eye(G1.rank), f2)
    fpair = numpy.kron(numpy.eye(ev.corrfactor.nfunctions), fpair)
    B += (numpy.dot(X, fpair) + numpy.dot(fpair, X)) * .5
    return B


def _cabs_empty(ev):
    return any(ev.cabs(s).rank == 0 for s in spincase.SpinCase1)


def compute_B_(ev, B, BB, X, S):
    '''B over rectangular GG pairs of S, accumulated into B.  The exchange
    commutator of approximation B (projector 2 only) is also accumulated
    into BB.'''
    log = logger.new_logger(ev)
    tech = ev.r12tech
    approx = tech.stdapprox
    projector2 = tech.projector == 2
    nonzero_ri = ev.do_ri_in_abs() and not _cabs_empty(ev) and not tech.omit_B
    nonzero_gbc = (not tech.gbc and nonzero_ri and projector2 and
                   approx != 'C')
    if nonzero_gbc and not ev.world.obs_eq_vbs():
        raise FeatureNotImplemented('gbc = False with a separate VBS',
                                    'compute_B_')
    compute_diag_(ev, B, S)
    if approx in ("A''", "A'", 'B'):
        compute_B_onebody_(ev, B, X, S)
        if approx == 'B' and projector2 and not tech.omit_B:
            BB -= p12sym(ev, S, exchange_)
            B += BB
    elif approx == 'C':
        B += p12sym(ev, S, fock_ri_, 'hJ')
        B -= p12sym(ev, S, exchange_)
    else:
        B += p12sym(ev, S, fock_ri_, 'F')

    if (not tech.ebc and nonzero_ri and projector2 and ev.vir().rank > 0 and
            approx in ("A''", "A'", 'B')):
        B -= p12sym(ev, S, ebc_)
    if nonzero_gbc:
        B -= p12sym(ev, S, gbc_)
    log.debug1('B(%s) in approximation %s', spincase.to_string(S), approx)
    return B


def compute_A_(ev, S):
    '''A(f kl, ab) = <kl|f|(F a)_a' b> + <kl|f|a (F b)_a'> over rectangular
    pairs, active virtuals in the ket'''
    s1, s2 = spincase.case1(S), spincase.case2(S)
    nf = ev.corrfactor.nfunctions
    G1, G2 = ev.GGspace(s1), ev.GGspace(s2)
    a1, a2 = ev.vir_act(s1), ev.vir_act(s2)
    A = numpy.zeros((nf*G1.rank*G2.rank, a1.rank*a2.rank))
    if not ev.do_ri_in_abs() or ev.cabs(s1).rank == 0 or ev.cabs(s2).rank == 0:
        return A
    fa1 = ev.f_bra_ket(s1, 'F', 'vir_act', 'cabs')
    fa2 = ev.f_bra_ket(s2, 'F', 'vir_act', 'cabs')
    compute_tbint_tensor(A, cf.F12, G1, G2, fa1, a2, False,
                         ev.tforms(cf.F12, G1, fa1, G2, a2, nf, 1), ev.group)
    compute_tbint_tensor(A, cf.F12, G1, G2, a1, fa2, False,
                         ev.tforms(cf.F12, G1, a1, G2, fa2, nf, 1), ev.group)
    return A
